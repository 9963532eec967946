"""
Checkpoint storage port - local filesystem implementation.

Blocking file operations run in a worker thread so the event loop keeps
serving in-flight uploads while the checkpoint is written.
"""
import asyncio
import logging
import os
import shutil
import time
import uuid
from contextlib import asynccontextmanager
from typing import AsyncIterator, Optional

from ..errors import CheckpointLockError

logger = logging.getLogger(__name__)

LOCK_SUFFIX = ".lock"
OWNER_FILE = "owner"


class DirectoryLock:
    """
    Cross-process advisory lock backed by a sentinel directory.

    ``mkdir`` is atomic on local filesystems, so whichever process creates
    ``<path>.lock`` first owns the lock. The owner writes a random token into
    the sentinel and touches it every ``stale / 2`` seconds while holding it.
    A sentinel whose mtime is older than ``stale`` seconds is treated as left
    behind by a killed process.
    """

    def __init__(
        self,
        path: str,
        timeout: float = 10.0,
        retry_interval: float = 0.1,
        stale: float = 10.0,
    ):
        self._path = path
        self._lock_dir = f"{path}{LOCK_SUFFIX}"
        self._owner_file = os.path.join(self._lock_dir, OWNER_FILE)
        self._timeout = timeout
        self._retry_interval = retry_interval
        self._stale = stale
        self._token = uuid.uuid4().hex
        self._heartbeat: Optional[asyncio.Task] = None

    @property
    def lock_path(self) -> str:
        return self._lock_dir

    @property
    def token(self) -> str:
        return self._token

    def _read_owner(self) -> Optional[str]:
        try:
            with open(self._owner_file, "r", encoding="utf-8") as f:
                return f.read().strip() or None
        except (FileNotFoundError, NotADirectoryError):
            return None

    def _owns(self) -> bool:
        return self._read_owner() == self._token

    def _try_acquire(self) -> bool:
        try:
            os.mkdir(self._lock_dir)
        except FileExistsError:
            self._remove_if_stale()
            return False

        with open(self._owner_file, "w", encoding="utf-8") as f:
            f.write(self._token)
        return True

    def _remove_if_stale(self) -> None:
        owner = self._read_owner()
        try:
            age = time.time() - os.stat(self._lock_dir).st_mtime
        except FileNotFoundError:
            # Released between mkdir and stat
            return
        if age <= self._stale:
            return
        # Another waiter may have taken the stale lock over meanwhile
        if self._read_owner() != owner:
            return

        graveyard = f"{self._lock_dir}.stale-{self._token}"
        logger.warning("Removing stale checkpoint lock %s (age %.1fs)", self._lock_dir, age)
        try:
            os.rename(self._lock_dir, graveyard)
        except FileNotFoundError:
            return
        shutil.rmtree(graveyard, ignore_errors=True)

    def _touch(self) -> bool:
        if not self._owns():
            return False
        os.utime(self._lock_dir)
        return True

    async def _keep_alive(self) -> None:
        interval = max(self._stale / 2, 0.01)
        while True:
            await asyncio.sleep(interval)
            try:
                alive = await asyncio.to_thread(self._touch)
            except OSError as e:
                logger.error("Cannot refresh checkpoint lock %s: %s", self._lock_dir, e)
                return
            if not alive:
                logger.error("Checkpoint lock %s was taken over by another process", self._lock_dir)
                return

    async def acquire(self) -> None:
        deadline = time.monotonic() + self._timeout
        while True:
            try:
                acquired = await asyncio.to_thread(self._try_acquire)
            except OSError as e:
                raise CheckpointLockError(f"Cannot lock {self._path}: {e}") from e
            if acquired:
                self._heartbeat = asyncio.create_task(self._keep_alive())
                logger.debug("Acquired checkpoint lock %s", self._lock_dir)
                return
            if time.monotonic() >= deadline:
                raise CheckpointLockError(
                    f"Timed out after {self._timeout}s waiting for lock {self._lock_dir}"
                )
            await asyncio.sleep(self._retry_interval)

    def _remove_owned(self) -> bool:
        if not os.path.isdir(self._lock_dir):
            return False
        if not self._owns():
            return False
        shutil.rmtree(self._lock_dir)
        return True

    async def release(self) -> None:
        if self._heartbeat is not None:
            self._heartbeat.cancel()
            try:
                await self._heartbeat
            except asyncio.CancelledError:
                pass
            self._heartbeat = None

        try:
            removed = await asyncio.to_thread(self._remove_owned)
        except OSError as e:
            raise CheckpointLockError(f"Cannot unlock {self._path}: {e}") from e
        if not removed:
            logger.warning("Checkpoint lock %s was no longer held by this process", self._lock_dir)
            return
        logger.debug("Released checkpoint lock %s", self._lock_dir)


class LocalCheckpointStorage:
    """
    Filesystem storage for checkpoint files.

    Implements ICheckpointStorage protocol.
    """

    def __init__(self, lock_timeout: float = 10.0, lock_stale: float = 10.0):
        self._lock_timeout = lock_timeout
        self._lock_stale = lock_stale

    async def read_text(self, path: str) -> str:
        def _read() -> str:
            with open(path, "r", encoding="utf-8") as f:
                return f.read()

        return await asyncio.to_thread(_read)

    async def write_text(self, path: str, content: str) -> None:
        def _write() -> None:
            with open(path, "w", encoding="utf-8") as f:
                f.write(content)
                f.flush()
                os.fsync(f.fileno())

        await asyncio.to_thread(_write)

    async def exists(self, path: str) -> bool:
        return await asyncio.to_thread(os.path.exists, path)

    async def rename(self, src: str, dst: str) -> None:
        await asyncio.to_thread(os.replace, src, dst)

    async def remove(self, path: str) -> None:
        await asyncio.to_thread(os.remove, path)

    @asynccontextmanager
    async def lock(self, path: str) -> AsyncIterator[None]:
        lock = DirectoryLock(path, timeout=self._lock_timeout, stale=self._lock_stale)
        await lock.acquire()
        try:
            yield
        except BaseException:
            # Keep the original error; a failed unlock is only logged here
            try:
                await lock.release()
            except CheckpointLockError as e:
                logger.error("%s", e)
            raise
        await lock.release()
