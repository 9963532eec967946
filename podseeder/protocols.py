"""
Protocols (Interfaces) for Dependency Inversion.

Each collaborator of the populate run sits behind a small interface so the
scheduler and the checkpoint ledger can be exercised against fakes.
"""
from typing import AsyncContextManager, Protocol, runtime_checkable

from .models import AuthzFlavor, PodIdentity, SessionCredential


@runtime_checkable
class ISessionCache(Protocol):
    """Interface for session acquisition."""

    async def get_session(self, identity: PodIdentity) -> SessionCredential:
        """Return a (possibly cached) session credential for the pod."""
        ...


@runtime_checkable
class IContentUploader(Protocol):
    """Interface for storing file content in a pod."""

    async def upload(
        self,
        session: SessionCredential,
        identity: PodIdentity,
        content: bytes,
        path_in_pod: str,
        content_type: str,
        retries: int,
    ) -> None:
        """Store content at path_in_pod, raising UploadError on failure."""
        ...


@runtime_checkable
class IMetadataAttacher(Protocol):
    """Interface for attaching authorization documents."""

    async def attach(
        self,
        session: SessionCredential,
        identity: PodIdentity,
        dir_in_pod: str,
        file_name: str,
        flavor: AuthzFlavor,
        retries: int,
    ) -> None:
        """Attach an authorization document, raising MetadataError on failure."""
        ...


@runtime_checkable
class IDirectoryLister(Protocol):
    """Interface for listing source directories."""

    async def list(self, path: str, recursive: bool):
        """Return a DirListing for path."""
        ...


@runtime_checkable
class ICheckpointStorage(Protocol):
    """Storage port used by the checkpoint ledger."""

    async def read_text(self, path: str) -> str:
        ...

    async def write_text(self, path: str, content: str) -> None:
        ...

    async def exists(self, path: str) -> bool:
        ...

    async def rename(self, src: str, dst: str) -> None:
        ...

    async def remove(self, path: str) -> None:
        ...

    def lock(self, path: str) -> AsyncContextManager[None]:
        """Exclusive cross-process lock keyed by path."""
        ...
