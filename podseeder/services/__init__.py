"""Services for podseeder."""
from .checkpoint import CheckpointStore
from .checkpoint_storage import DirectoryLock, LocalCheckpointStorage
from .discovery import find_accounts_from_dir, resolve_identity
from .listing import DirectoryLister, DirEntry, DirListing
from .pod_client import AuthzMetadataAttacher, PodContentUploader, PodHTTPClient
from .session import SessionCache, static_token_factory

__all__ = [
    "CheckpointStore",
    "DirectoryLock",
    "LocalCheckpointStorage",
    "find_accounts_from_dir",
    "resolve_identity",
    "DirectoryLister",
    "DirEntry",
    "DirListing",
    "AuthzMetadataAttacher",
    "PodContentUploader",
    "PodHTTPClient",
    "SessionCache",
    "static_token_factory",
]
