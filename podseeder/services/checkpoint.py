"""
CheckpointStore - durable ledger of completed uploads.

Every (pod, path in pod) pair whose content and authorization documents were
all stored is recorded here. The set is flushed to disk every ``save_every``
completions and once more at the end of a run, so an interrupted run can be
restarted without uploading the same files again.

File format: JSON array of ``"{web_id}-{path_in_pod}"`` strings.
"""
import asyncio
import json
import logging
from typing import Callable, Iterable, Optional, Set

from ..errors import CheckpointFormatError, CheckpointIOError
from ..models import PodIdentity
from ..protocols import ICheckpointStorage
from .checkpoint_storage import LocalCheckpointStorage

logger = logging.getLogger(__name__)

DEFAULT_SAVE_EVERY = 100
TMP_SUFFIX = ".TMP"
OLD_SUFFIX = ".TMP.OLD"


def checkpoint_key(identity: PodIdentity, path_in_pod: str) -> str:
    return f"{identity.key}-{path_in_pod}"


class CheckpointStore:
    """
    Idempotent set of completed upload units with crash-safe persistence.

    Usage:
        store = await CheckpointStore.open("uploads.json")
        if not store.has(pod, "data/a.txt"):
            ...
            await store.add(pod, "data/a.txt")
        await store.flush()
    """

    def __init__(
        self,
        path: Optional[str] = None,
        on_save: Optional[Callable[[int], None]] = None,
        entries: Optional[Iterable[str]] = None,
        storage: Optional[ICheckpointStorage] = None,
        save_every: int = DEFAULT_SAVE_EVERY,
    ):
        """
        Args:
            path: Checkpoint file. Without a path the ledger is memory-only.
            on_save: Called with the total entry count after each periodic flush
            entries: Previously recorded keys
            storage: Storage port (default: local filesystem)
            save_every: Completions between periodic flushes
        """
        self._path = path
        self._on_save = on_save or (lambda count: None)
        self._entries: Set[str] = set(entries or ())
        self._storage = storage or LocalCheckpointStorage()
        self._save_every = save_every
        self._pending = 0
        self._flush_lock = asyncio.Lock()

    @property
    def path(self) -> Optional[str]:
        return self._path

    @property
    def entries(self) -> frozenset:
        return frozenset(self._entries)

    @property
    def pending(self) -> int:
        """Completions recorded since the last periodic flush."""
        return self._pending

    def __len__(self) -> int:
        return len(self._entries)

    def __contains__(self, key: object) -> bool:
        return key in self._entries

    def has(self, identity: PodIdentity, path_in_pod: str) -> bool:
        return checkpoint_key(identity, path_in_pod) in self._entries

    async def add(self, identity: PodIdentity, path_in_pod: str) -> bool:
        """
        Record a completed upload, flushing every ``save_every`` completions.

        Returns True when this call wrote the checkpoint file.
        """
        self._entries.add(checkpoint_key(identity, path_in_pod))
        self._pending += 1
        if self._pending >= self._save_every:
            self._pending = 0
            await self.flush()
            self._on_save(len(self._entries))
            return True
        return False

    async def flush(self) -> None:
        """
        Persist the full entry set.

        The new content is written next to the checkpoint and renamed into
        place, so readers only ever see the previous or the new complete file.
        """
        if not self._path:
            return

        async with self._flush_lock:
            try:
                await self._write_locked()
            except CheckpointIOError as e:
                logger.error("CheckpointStore: flush of %s failed: %s", self._path, e)
                raise
            except OSError as e:
                logger.error("CheckpointStore: flush of %s failed: %s", self._path, e)
                raise CheckpointIOError(f"Cannot write checkpoint {self._path}: {e}") from e

    async def _write_locked(self) -> None:
        path = self._path
        tmp_path = f"{path}{TMP_SUFFIX}"
        old_path = f"{path}{OLD_SUFFIX}"
        content = json.dumps(sorted(self._entries), indent=3)

        async with self._storage.lock(path):
            await self._storage.write_text(tmp_path, content)
            if not await self._storage.exists(tmp_path):
                raise CheckpointIOError(f"Temporary checkpoint {tmp_path} vanished after write")

            if await self._storage.exists(path):
                await self._storage.rename(path, old_path)
            await self._storage.rename(tmp_path, path)
            if await self._storage.exists(old_path):
                await self._storage.remove(old_path)

        logger.debug("CheckpointStore: saved %d entries to %s", len(self._entries), path)

    @classmethod
    async def from_file(
        cls,
        path: str,
        on_save: Optional[Callable[[int], None]] = None,
        storage: Optional[ICheckpointStorage] = None,
        save_every: int = DEFAULT_SAVE_EVERY,
    ) -> "CheckpointStore":
        """
        Restore a ledger from ``path``.

        Falls back to ``<path>.TMP.OLD`` when a previous run was killed after
        moving the old file aside but before the new one was renamed in.
        Assumes no other process writes the checkpoint while it is read.
        """
        storage = storage or LocalCheckpointStorage()
        source = path
        if not await storage.exists(path):
            backup = f"{path}{OLD_SUFFIX}"
            if await storage.exists(backup):
                logger.warning("CheckpointStore: %s missing, restoring from %s", path, backup)
                source = backup

        try:
            content = await storage.read_text(source)
        except (OSError, UnicodeDecodeError) as e:
            raise CheckpointFormatError(f"Cannot read checkpoint {source}: {e}") from e

        try:
            data = json.loads(content)
        except json.JSONDecodeError as e:
            raise CheckpointFormatError(f"Checkpoint {source} is not valid JSON: {e}") from e

        if not isinstance(data, list) or not all(isinstance(item, str) for item in data):
            raise CheckpointFormatError(f"Checkpoint {source} must be a JSON array of strings")

        logger.info("CheckpointStore: loaded %d entries from %s", len(data), source)
        return cls(path, on_save=on_save, entries=data, storage=storage, save_every=save_every)

    @classmethod
    async def open(
        cls,
        path: str,
        on_save: Optional[Callable[[int], None]] = None,
        storage: Optional[ICheckpointStorage] = None,
        save_every: int = DEFAULT_SAVE_EVERY,
    ) -> "CheckpointStore":
        """Restore from ``path`` if it (or its backup) exists, else start empty."""
        storage = storage or LocalCheckpointStorage()
        if await storage.exists(path) or await storage.exists(f"{path}{OLD_SUFFIX}"):
            return await cls.from_file(path, on_save=on_save, storage=storage, save_every=save_every)
        logger.debug("CheckpointStore: no checkpoint at %s, starting fresh", path)
        return cls(path, on_save=on_save, storage=storage, save_every=save_every)
