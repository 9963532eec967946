"""Shared fakes for podseeder tests."""
import asyncio
from contextlib import asynccontextmanager
from typing import Dict, List, Optional

import pytest

from podseeder.errors import MetadataError, UploadError
from podseeder.models import PodIdentity


class InMemoryCheckpointStorage:
    """ICheckpointStorage fake keeping files in a dict and logging every call."""

    def __init__(self, files: Optional[Dict[str, str]] = None):
        self.files: Dict[str, str] = dict(files or {})
        self.ops: List[tuple] = []
        self.locked: set = set()
        self.fail_on: Dict[str, Exception] = {}

    def _check(self, op: str) -> None:
        error = self.fail_on.get(op)
        if error is not None:
            raise error

    async def read_text(self, path: str) -> str:
        self.ops.append(("read", path))
        self._check("read")
        if path not in self.files:
            raise FileNotFoundError(path)
        return self.files[path]

    async def write_text(self, path: str, content: str) -> None:
        self.ops.append(("write", path))
        self._check("write")
        self.files[path] = content

    async def exists(self, path: str) -> bool:
        return path in self.files

    async def rename(self, src: str, dst: str) -> None:
        self.ops.append(("rename", src, dst))
        self._check("rename")
        self.files[dst] = self.files.pop(src)

    async def remove(self, path: str) -> None:
        self.ops.append(("remove", path))
        self._check("remove")
        del self.files[path]

    @asynccontextmanager
    async def lock(self, path: str):
        assert path not in self.locked, f"{path} locked twice"
        self.ops.append(("lock", path))
        self._check("lock")
        self.locked.add(path)
        try:
            yield
        finally:
            self.locked.discard(path)
            self.ops.append(("unlock", path))


class RecordingUploader:
    """IContentUploader fake recording uploads; paths in ``fail`` raise UploadError."""

    def __init__(self, fail=(), delay: float = 0.0):
        self.calls: List[tuple] = []
        self.fail = set(fail)
        self.delay = delay

    async def upload(self, session, identity, content, path_in_pod, content_type, retries):
        if self.delay:
            await asyncio.sleep(self.delay)
        if path_in_pod in self.fail:
            raise UploadError(f"cannot store {path_in_pod}", retries=retries, status_code=500)
        self.calls.append((identity.username, path_in_pod, content, content_type, retries))


class RecordingAttacher:
    """IMetadataAttacher fake recording attachments."""

    def __init__(self, fail=()):
        self.calls: List[tuple] = []
        self.fail = set(fail)

    async def attach(self, session, identity, dir_in_pod, file_name, flavor, retries):
        if file_name in self.fail:
            raise MetadataError(f"cannot attach to {file_name}", retries=retries)
        self.calls.append((identity.username, dir_in_pod, file_name, flavor, retries))


def make_identity(name: str, index: int = 0, server: str = "https://pods.example.org", dir: str = "") -> PodIdentity:
    pod_uri = f"{server}/{name}/"
    return PodIdentity(
        username=name,
        web_id=f"{pod_uri}profile/card#me",
        pod_uri=pod_uri,
        oidc_issuer=f"{server}/",
        index=index,
        dir=dir,
    )


@pytest.fixture
def memory_storage():
    return InMemoryCheckpointStorage()


@pytest.fixture
def alice():
    return make_identity("alice", 0)


@pytest.fixture
def bob():
    return make_identity("bob", 1)


@pytest.fixture
def make_pod():
    return make_identity


@pytest.fixture
def uploader():
    return RecordingUploader()


@pytest.fixture
def attacher():
    return RecordingAttacher()


@pytest.fixture
def fakes():
    """Fake classes for tests that need custom instances."""
    class _Fakes:
        Storage = InMemoryCheckpointStorage
        Uploader = RecordingUploader
        Attacher = RecordingAttacher
    return _Fakes
