"""Task progress and status derived from a checklist."""

import math
from typing import Optional, Sequence, Union

from contracts import ChecklistItem, TaskStatus


# Progress for tasks without a checklist
STATUS_PROGRESS = {
    TaskStatus.COMPLETED: 100.0,
    TaskStatus.IN_PROGRESS: 50.0,
    TaskStatus.ON_HOLD: 25.0,
    TaskStatus.DISCARDED: 0.0,
    TaskStatus.INCOMPLETE: 0.0,
}


def derive_task_progress(
    checklist: Sequence[ChecklistItem],
    status: Optional[Union[TaskStatus, str]] = None,
) -> float:
    """Completed share of the checklist, or a status-based value when empty."""
    if not checklist:
        if status is None:
            return 0.0
        return STATUS_PROGRESS.get(TaskStatus(status), 0.0)

    done = sum(1 for item in checklist if item.completed)
    return math.floor(done / len(checklist) * 100 * 10 + 0.5) / 10


def derive_task_status(
    checklist: Sequence[ChecklistItem],
    status: Union[TaskStatus, str],
) -> TaskStatus:
    """Status after a checklist change.

    An emptied checklist drops in_progress/completed back to incomplete and
    leaves other statuses alone.
    """
    current = TaskStatus(status)
    if not checklist:
        if current in (TaskStatus.IN_PROGRESS, TaskStatus.COMPLETED):
            return TaskStatus.INCOMPLETE
        return current

    if all(item.completed for item in checklist):
        return TaskStatus.COMPLETED
    if any(item.completed for item in checklist):
        return TaskStatus.IN_PROGRESS
    return TaskStatus.INCOMPLETE
