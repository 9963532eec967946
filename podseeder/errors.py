"""Exception hierarchy for podseeder."""
from typing import List, Optional


class PodSeederError(RuntimeError):
    """Base class for all podseeder failures."""


class DiscoveryError(PodSeederError):
    """Raised when the source directory layout cannot be used."""


class SessionAcquisitionError(PodSeederError):
    """Raised when no session credential can be obtained for a pod."""


class CheckpointIOError(PodSeederError):
    """Raised when persisting the checkpoint file fails."""


class CheckpointLockError(CheckpointIOError):
    """Raised when the checkpoint lock cannot be acquired."""


class CheckpointFormatError(PodSeederError):
    """Raised when a checkpoint file cannot be read back."""


class UploadError(PodSeederError):
    """Raised when a file could not be stored in a pod."""

    def __init__(self, message: str, retries: int = 0, status_code: Optional[int] = None):
        super().__init__(message)
        self.retries = retries
        self.status_code = status_code


class MetadataError(PodSeederError):
    """Raised when an authorization document could not be attached."""

    def __init__(self, message: str, retries: int = 0, status_code: Optional[int] = None):
        super().__init__(message)
        self.retries = retries
        self.status_code = status_code


class PopulateError(PodSeederError):
    """Aggregate failure of a populate run."""

    def __init__(self, errors: List[BaseException]):
        self.errors = list(errors)
        super().__init__(f"{len(self.errors)} upload task(s) failed")
