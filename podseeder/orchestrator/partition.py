"""
Work partitioning by destination server.

Pod servers are independent of each other, so the upload concurrency limit
applies per authentication origin: one busy server never slows down another,
and no single server gets more than ``max_parallelism`` requests at once.
"""
import asyncio
import logging
from typing import Awaitable, Callable, Dict, List

from .models import TaskResult, UploadTask

logger = logging.getLogger(__name__)

TaskExecutor = Callable[[UploadTask], Awaitable[TaskResult]]


class WorkPartitioner:
    """
    Per-origin queues of upload tasks.

    Origins keep the order in which they were first seen, tasks keep the
    order in which they were added.
    """

    def __init__(self):
        self._queues: Dict[str, List[UploadTask]] = {}

    def add(self, task: UploadTask) -> None:
        self._queues.setdefault(task.origin, []).append(task)

    @property
    def origins(self) -> List[str]:
        return list(self._queues)

    def queue(self, origin: str) -> List[UploadTask]:
        return list(self._queues.get(origin, ()))

    def __len__(self) -> int:
        return sum(len(queue) for queue in self._queues.values())

    async def run(self, execute: TaskExecutor, max_parallelism: int = 1) -> List[TaskResult]:
        """
        Execute every queued task.

        With ``max_parallelism <= 1`` tasks run one by one, origin after
        origin. Otherwise each origin runs up to ``max_parallelism`` tasks at
        once and all origins run concurrently.

        ``execute`` reports per-task failures in its TaskResult; an exception
        escaping it aborts the whole run.
        """
        if max_parallelism <= 1:
            return await self._run_sequential(execute)
        return await self._run_parallel(execute, max_parallelism)

    async def _run_sequential(self, execute: TaskExecutor) -> List[TaskResult]:
        results = []
        for queue in self._queues.values():
            for task in queue:
                results.append(await execute(task))
        return results

    async def _run_parallel(self, execute: TaskExecutor, max_parallelism: int) -> List[TaskResult]:
        origin_runs = [
            asyncio.create_task(self._run_origin(origin, queue, execute, max_parallelism))
            for origin, queue in self._queues.items()
        ]
        try:
            per_origin = await asyncio.gather(*origin_runs)
        except BaseException:
            for run in origin_runs:
                if not run.done():
                    run.cancel()
            await asyncio.gather(*origin_runs, return_exceptions=True)
            raise

        results: List[TaskResult] = []
        for origin_results in per_origin:
            results.extend(origin_results)
        return results

    async def _run_origin(
        self,
        origin: str,
        queue: List[UploadTask],
        execute: TaskExecutor,
        max_parallelism: int,
    ) -> List[TaskResult]:
        semaphore = asyncio.Semaphore(max_parallelism)

        async def _bounded(task: UploadTask) -> TaskResult:
            async with semaphore:
                return await execute(task)

        logger.debug("Starting %d task(s) for %s (max %d in flight)", len(queue), origin, max_parallelism)
        runs = [asyncio.create_task(_bounded(task)) for task in queue]
        try:
            return list(await asyncio.gather(*runs))
        except BaseException:
            for run in runs:
                if not run.done():
                    run.cancel()
            await asyncio.gather(*runs, return_exceptions=True)
            raise
