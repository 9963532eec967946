"""Orchestrator data models."""
from dataclasses import dataclass, field
from typing import TYPE_CHECKING, List, Optional, Tuple

from ..models import AuthzFlavor, PodIdentity, SessionCredential

if TYPE_CHECKING:
    from .partition import WorkPartitioner


@dataclass(frozen=True)
class UploadTask:
    """One file to store in one pod."""
    identity: PodIdentity
    session: SessionCredential
    source_path: str
    path_in_pod: str
    file_name: str
    dir_in_pod: str
    flavors: Tuple[AuthzFlavor, ...] = ()

    @property
    def origin(self) -> str:
        return self.identity.oidc_issuer


@dataclass(frozen=True)
class TaskResult:
    """Outcome of running one UploadTask."""
    task: UploadTask
    error: Optional[BaseException] = None

    @property
    def success(self) -> bool:
        return self.error is None


@dataclass
class PopulateResult:
    """Result of a populate run."""
    planned: int
    skipped: int
    servers: int
    results: List[TaskResult] = field(default_factory=list)

    @property
    def uploaded(self) -> int:
        return sum(1 for r in self.results if r.success)

    @property
    def failed(self) -> int:
        return sum(1 for r in self.results if not r.success)

    @property
    def errors(self) -> List[BaseException]:
        return [r.error for r in self.results if r.error is not None]

    @property
    def all_success(self) -> bool:
        return self.failed == 0


@dataclass
class PopulatePlan:
    """Tasks prepared for a populate run."""
    partitioner: "WorkPartitioner"
    skipped: int = 0

    @property
    def planned(self) -> int:
        return len(self.partitioner)

    @property
    def servers(self) -> int:
        return len(self.partitioner.origins)
