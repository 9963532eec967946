"""Runs a single UploadTask: content, authorization documents, checkpoint."""
import asyncio
import logging
from pathlib import Path
from typing import Optional

from ..models import PopulateConfig
from ..protocols import IContentUploader, IMetadataAttacher
from ..services.checkpoint import CheckpointStore
from ..utils.events import EventEmitter
from .models import TaskResult, UploadTask

logger = logging.getLogger(__name__)


class UploadTaskRunner:
    """
    Executes upload tasks for the partitioner.

    A task only counts as done, and is only recorded in the checkpoint, when
    its content and every requested authorization document were stored.
    Upload failures end up in the TaskResult; checkpoint write failures are
    raised because progress can no longer be saved.
    """

    def __init__(
        self,
        uploader: IContentUploader,
        attacher: IMetadataAttacher,
        config: PopulateConfig,
        checkpoint: Optional[CheckpointStore] = None,
        events: Optional[EventEmitter] = None,
    ):
        self._uploader = uploader
        self._attacher = attacher
        self._config = config
        self._checkpoint = checkpoint
        self._events = events

    async def _emit(self, event_name: str, *args) -> None:
        if self._events:
            await self._events.emit(event_name, *args)

    async def __call__(self, task: UploadTask) -> TaskResult:
        return await self.execute(task)

    async def execute(self, task: UploadTask) -> TaskResult:
        logger.debug(
            "Uploading. account=%s file='%s' path_in_pod='%s'",
            task.identity.username, task.source_path, task.path_in_pod,
        )
        await self._emit("task_start", task)

        try:
            content = await asyncio.to_thread(Path(task.source_path).read_bytes)
            await self._uploader.upload(
                task.session,
                task.identity,
                content,
                task.path_in_pod,
                self._config.content_type,
                self._config.upload_retries,
            )
            for flavor in task.flavors:
                await self._attacher.attach(
                    task.session,
                    task.identity,
                    task.dir_in_pod,
                    task.file_name,
                    flavor,
                    self._config.authz_retries,
                )
        except Exception as e:
            error_msg = str(e) or type(e).__name__
            logger.error(
                "Upload of '%s' to %s failed: %s",
                task.path_in_pod, task.identity.pod_uri, error_msg,
            )
            result = TaskResult(task, error=e)
            await self._emit("task_fail", result)
            return result

        if self._checkpoint is not None:
            if await self._checkpoint.add(task.identity, task.path_in_pod):
                await self._emit("checkpoint_saved", len(self._checkpoint))

        result = TaskResult(task)
        await self._emit("task_complete", result)
        return result
