"""Importance weights and weighted-average progress.

Pure functions over task/issue snapshots. Nothing here touches the store,
so weights are always derived from the current task set rather than cached.
"""

import math
from typing import Dict, Iterable, Optional, Tuple, Union

from contracts import Importance, Task, TaskStatus


IMPORTANCE_WEIGHTS: Dict[Importance, int] = {
    Importance.CRITICAL: 4,
    Importance.HIGH: 3,
    Importance.MEDIUM: 2,
    Importance.LOW: 1,
}

DEFAULT_WEIGHT = 1


def importance_weight(importance: Optional[Union[Importance, str]]) -> int:
    """Weight for an importance level; unset or unknown levels weigh 1."""
    if importance is None:
        return DEFAULT_WEIGHT
    try:
        return IMPORTANCE_WEIGHTS[Importance(importance)]
    except ValueError:
        return DEFAULT_WEIGHT


def is_counted(task: Task) -> bool:
    """Archived and discarded tasks never take part in aggregation."""
    return not task.archived and task.status != TaskStatus.DISCARDED


def round_progress(value: float) -> float:
    """Round half-up to one decimal and clamp to [0, 100]."""
    rounded = math.floor(value * 10 + 0.5) / 10
    return min(100.0, max(0.0, rounded))


def weighted_average(pairs: Iterable[Tuple[float, float]]) -> float:
    """Rounded weighted average of (value, weight) pairs; 0 when empty."""
    total_weighted = 0.0
    total_weight = 0.0
    for value, weight in pairs:
        total_weighted += value * weight
        total_weight += weight
    if total_weight == 0:
        return 0.0
    return round_progress(total_weighted / total_weight)


def issue_progress(tasks: Iterable[Task]) -> float:
    """Importance-weighted mean of counted task progress (unset progress is 0)."""
    return weighted_average(
        (task.progress or 0.0, importance_weight(task.importance))
        for task in tasks
        if is_counted(task)
    )


def issue_weight(tasks: Iterable[Task]) -> float:
    """Weight of an issue inside its project.

    The arithmetic mean of the importance weights of its counted tasks, or
    the default weight when it has none. Independent of the issue's own
    progress weighting.
    """
    weights = [importance_weight(task.importance) for task in tasks if is_counted(task)]
    if not weights:
        return float(DEFAULT_WEIGHT)
    return sum(weights) / len(weights)
