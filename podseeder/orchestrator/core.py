"""Core orchestrator - populates pods from a directory tree."""
import logging
from typing import List, Optional, Sequence

from ..errors import PopulateError
from ..models import PodIdentity, PopulateConfig
from ..protocols import IContentUploader, IDirectoryLister, IMetadataAttacher, ISessionCache
from ..services.checkpoint import CheckpointStore
from ..services.listing import DirectoryLister
from ..services.pod_client import AuthzMetadataAttacher, PodContentUploader, PodHTTPClient
from ..utils.events import EventEmitter
from .models import PopulatePlan, PopulateResult, UploadTask
from .partition import WorkPartitioner
from .task_runner import UploadTaskRunner

logger = logging.getLogger(__name__)


class PopulateOrchestrator:
    """
    Uploads every file below each pod's source directory into that pod.

    Files already recorded in the checkpoint are skipped, the rest are queued
    per authentication origin and dispatched by a WorkPartitioner.

    Usage:
        async with PopulateOrchestrator(sessions, config, checkpoint) as populator:
            result = await populator.populate(identities)
    """

    def __init__(
        self,
        sessions: ISessionCache,
        config: Optional[PopulateConfig] = None,
        checkpoint: Optional[CheckpointStore] = None,
        uploader: Optional[IContentUploader] = None,
        attacher: Optional[IMetadataAttacher] = None,
        lister: Optional[IDirectoryLister] = None,
        events: Optional[EventEmitter] = None,
    ):
        """
        Args:
            sessions: Session cache used to acquire pod credentials
            config: Populate configuration
            checkpoint: Ledger of completed uploads (optional)
            uploader: Content uploader (default: HTTP PUT)
            attacher: Authorization document writer (default: HTTP PUT)
            lister: Source directory lister
            events: Receives task_start/task_complete/task_fail events
        """
        self._sessions = sessions
        self._config = config or PopulateConfig()
        self._checkpoint = checkpoint
        self._uploader = uploader
        self._attacher = attacher
        self._lister = lister or DirectoryLister()
        self._events = events
        self._http: Optional[PodHTTPClient] = None

    async def __aenter__(self):
        if self._uploader is None or self._attacher is None:
            self._http = PodHTTPClient()
            await self._http.__aenter__()
            self._uploader = self._uploader or PodContentUploader(self._http)
            self._attacher = self._attacher or AuthzMetadataAttacher(self._http)
        return self

    async def __aexit__(self, *args):
        if self._http:
            await self._http.__aexit__(*args)
            self._http = None

    @property
    def config(self) -> PopulateConfig:
        return self._config

    async def plan(self, identities: Sequence[PodIdentity]) -> PopulatePlan:
        """List every pod directory and queue the files not yet uploaded."""
        logger.debug(
            "plan(identities=%d, first=%s, add_acl=%s, add_acr=%s)",
            len(identities),
            identities[0].web_id if identities else None,
            self._config.add_acl,
            self._config.add_acr,
        )
        partitioner = WorkPartitioner()
        skipped = 0
        flavors = self._config.flavors

        for identity in identities:
            session = await self._sessions.get_session(identity)
            listing = await self._lister.list(identity.dir, True)

            if not listing.files:
                logger.info("Skipping empty %s for pod %s", identity.dir, identity.pod_uri)
                continue

            logger.info(
                "Preparing upload of %d files to pod %s (%d). First file: '%s'",
                len(listing.files), identity.pod_uri, identity.index, listing.files[0].path_from_base,
            )

            for entry in listing.files:
                path_in_pod = entry.path_from_base
                dir_in_pod = path_in_pod[: len(path_in_pod) - len(entry.name)]

                if self._checkpoint is not None and self._checkpoint.has(identity, path_in_pod):
                    skipped += 1
                    continue

                partitioner.add(
                    UploadTask(
                        identity=identity,
                        session=session,
                        source_path=entry.full_path,
                        path_in_pod=path_in_pod,
                        file_name=entry.name,
                        dir_in_pod=dir_in_pod,
                        flavors=flavors,
                    )
                )

        return PopulatePlan(partitioner, skipped)

    async def populate(
        self,
        identities: Sequence[PodIdentity],
        raise_on_failure: bool = False,
    ) -> PopulateResult:
        """
        Upload all pending files and flush the checkpoint.

        Failed tasks do not stop the others. The checkpoint is flushed after
        every queue has drained so all successful uploads are kept.

        Raises:
            SessionAcquisitionError: a pod session could not be obtained
            CheckpointIOError: the checkpoint could not be written
            PopulateError: some tasks failed and raise_on_failure is set
        """
        if self._uploader is None or self._attacher is None:
            raise RuntimeError("PopulateOrchestrator not initialized. Use 'async with' context.")

        plan = await self.plan(identities)
        logger.info(
            "Will now upload %d files to %d servers. %d uploads skipped because already done.",
            plan.planned, plan.servers, plan.skipped,
        )
        if self._events:
            await self._events.emit("plan_ready", plan)

        runner = UploadTaskRunner(
            self._uploader,
            self._attacher,
            self._config,
            checkpoint=self._checkpoint,
            events=self._events,
        )
        results = await plan.partitioner.run(runner, self._config.max_parallelism)

        if self._checkpoint is not None:
            await self._checkpoint.flush()

        result = PopulateResult(
            planned=plan.planned,
            skipped=plan.skipped,
            servers=plan.servers,
            results=results,
        )
        logger.info("Populate complete: %d uploaded, %d failed", result.uploaded, result.failed)

        if raise_on_failure and not result.all_success:
            raise PopulateError(result.errors)
        return result


async def populate_pods_from_dir(
    identities: List[PodIdentity],
    sessions: ISessionCache,
    config: Optional[PopulateConfig] = None,
    checkpoint: Optional[CheckpointStore] = None,
    **kwargs,
) -> PopulateResult:
    """One-shot helper around PopulateOrchestrator."""
    async with PopulateOrchestrator(sessions, config, checkpoint, **kwargs) as populator:
        return await populator.populate(identities)
