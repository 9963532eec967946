"""
podseeder - bulk-populate Solid pods from a generated directory tree.

Each subdirectory of the source root holds the files of one pod. Uploads are
checkpointed so an interrupted run can be restarted without redoing work.

Usage:
    from podseeder import (
        CheckpointStore, PopulateConfig, PopulateOrchestrator, SessionCache,
        find_accounts_from_dir, resolve_identity, static_token_factory,
    )

    orders = await find_accounts_from_dir("generated/")
    pods = [resolve_identity(order, "https://pods.example.org") for order in orders]
    checkpoint = await CheckpointStore.open("uploads.json")
    sessions = SessionCache(static_token_factory())

    async with PopulateOrchestrator(sessions, PopulateConfig(add_acl=True), checkpoint) as populator:
        result = await populator.populate(pods)
"""
from .errors import (
    CheckpointFormatError,
    CheckpointIOError,
    DiscoveryError,
    MetadataError,
    PodSeederError,
    PopulateError,
    SessionAcquisitionError,
    UploadError,
)
from .models import AccountOrder, AuthzFlavor, PodIdentity, PopulateConfig, SessionCredential
from .orchestrator import PopulateOrchestrator, PopulateResult, WorkPartitioner
from .services import (
    CheckpointStore,
    SessionCache,
    find_accounts_from_dir,
    resolve_identity,
    static_token_factory,
)

__version__ = "0.1.0"
__all__ = [
    # Main
    "PopulateOrchestrator",
    "PopulateResult",
    "WorkPartitioner",
    "CheckpointStore",
    # Models
    "AccountOrder",
    "AuthzFlavor",
    "PodIdentity",
    "PopulateConfig",
    "SessionCredential",
    # Services
    "SessionCache",
    "find_accounts_from_dir",
    "resolve_identity",
    "static_token_factory",
    # Errors
    "PodSeederError",
    "DiscoveryError",
    "SessionAcquisitionError",
    "CheckpointIOError",
    "CheckpointFormatError",
    "UploadError",
    "MetadataError",
    "PopulateError",
]
