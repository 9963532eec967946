"""Orchestrator package - plans and dispatches pod uploads."""
from .core import PopulateOrchestrator, populate_pods_from_dir
from .models import PopulatePlan, PopulateResult, TaskResult, UploadTask
from .partition import WorkPartitioner

__all__ = [
    "PopulateOrchestrator",
    "populate_pods_from_dir",
    "PopulatePlan",
    "PopulateResult",
    "TaskResult",
    "UploadTask",
    "WorkPartitioner",
]
