"""Progress Aggregation Engine.

Derives 0-100 progress bottom-up from persisted state:

- Task progress comes from its checklist (see ``checklist``)
- Issue progress is the importance-weighted mean of its counted tasks
- Project progress is the mean of its issues' progress, each issue weighted
  by the mean importance weight of its own counted tasks

The recompute entry points never raise on store failures: they log the
error and return 0, so a 0 on a populated hierarchy may mean a failed read.
"""

import logging
from typing import List, Optional, Sequence

from contracts import ChecklistItem, Issue, Task
from errors import NotFoundError
from stores import DocumentStore
from common.storage_paths import (
    issue_path,
    issues_collection,
    project_path,
    task_path,
    tasks_collection,
)
from .checklist import derive_task_progress, derive_task_status
from .weights import DEFAULT_WEIGHT, issue_progress, issue_weight, weighted_average


logger = logging.getLogger(__name__)


class ProgressEngine:
    """Recomputes and persists issue and project progress."""

    def __init__(self, store: DocumentStore):
        self.store = store

    async def _load_tasks(self, project_id: str, issue_id: str) -> List[Task]:
        snapshots = await self.store.list(tasks_collection(project_id, issue_id))
        return [Task.from_snapshot(s) for s in snapshots]

    async def recompute_issue_progress(self, project_id: str, issue_id: str) -> float:
        """Recompute an issue's progress from its tasks and persist it.

        Returns:
            The new progress, or 0 if the store could not be read or written
        """
        try:
            tasks = await self._load_tasks(project_id, issue_id)
            progress = issue_progress(tasks)
            await self.store.update(issue_path(project_id, issue_id), {"progress": progress})
            logger.debug("Issue %s/%s progress -> %s", project_id, issue_id, progress)
            return progress
        except Exception:
            logger.exception("Error recomputing progress for issue %s/%s", project_id, issue_id)
            return 0.0

    async def recompute_project_progress(self, project_id: str) -> float:
        """Recompute a project's progress from its issues and persist it.

        Archived issues and issues whose progress was never computed are left
        out. An issue with no counted tasks still takes part, with weight 1.

        Returns:
            The new progress, or 0 if the store could not be read or written
        """
        try:
            snapshots = await self.store.list(issues_collection(project_id))
            issues = [Issue.from_snapshot(s) for s in snapshots]
            counted = [i for i in issues if not i.archived and i.progress is not None]

            pairs = []
            for issue in counted:
                weight = await self._issue_weight(project_id, issue.id)
                pairs.append((issue.progress, weight))

            progress = weighted_average(pairs)
            await self.store.update(project_path(project_id), {"progress": progress})
            logger.debug("Project %s progress -> %s", project_id, progress)
            return progress
        except Exception:
            logger.exception("Error recomputing progress for project %s", project_id)
            return 0.0

    async def _issue_weight(self, project_id: str, issue_id: str) -> float:
        """Issue weight from a fresh task snapshot; 1 if the tasks cannot be read."""
        try:
            tasks = await self._load_tasks(project_id, issue_id)
        except Exception:
            logger.exception("Error reading tasks for issue weight %s/%s", project_id, issue_id)
            return float(DEFAULT_WEIGHT)
        return issue_weight(tasks)

    async def refresh(self, project_id: str, issue_id: Optional[str] = None) -> float:
        """Recompute the issue (when given) and then its project.

        Returns:
            The project's new progress
        """
        if issue_id is not None:
            await self.recompute_issue_progress(project_id, issue_id)
        return await self.recompute_project_progress(project_id)

    async def update_checklist(
        self,
        project_id: str,
        issue_id: str,
        task_id: str,
        checklist: Sequence[ChecklistItem],
    ) -> Task:
        """Replace a task's checklist, derive its progress and status, re-aggregate.

        Raises:
            NotFoundError: The task does not exist
        """
        path = task_path(project_id, issue_id, task_id)
        snapshot = await self.store.get(path)
        if snapshot is None:
            raise NotFoundError(f"Task not found: {task_id}")
        task = Task.from_snapshot(snapshot)

        items = [ChecklistItem.model_validate(item) for item in checklist]
        progress = derive_task_progress(items, task.status)
        status = derive_task_status(items, task.status)

        updated = await self.store.update(
            path,
            {
                "checklist": [item.model_dump() for item in items],
                "progress": progress,
                "status": status.value,
            },
            expected_version=snapshot.version,
        )
        await self.refresh(project_id, issue_id)
        return Task.from_snapshot(updated)
