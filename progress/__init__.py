"""Progress aggregation for tasks, issues and projects."""

from .weights import (
    IMPORTANCE_WEIGHTS,
    DEFAULT_WEIGHT,
    importance_weight,
    is_counted,
    round_progress,
    weighted_average,
    issue_progress,
    issue_weight,
)
from .checklist import derive_task_progress, derive_task_status
from .engine import ProgressEngine

__all__ = [
    "IMPORTANCE_WEIGHTS",
    "DEFAULT_WEIGHT",
    "importance_weight",
    "is_counted",
    "round_progress",
    "weighted_average",
    "issue_progress",
    "issue_weight",
    "derive_task_progress",
    "derive_task_status",
    "ProgressEngine",
]
