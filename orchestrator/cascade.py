"""Cascading deletion of an issue and everything beneath it."""

import logging
from typing import Dict, Optional

from access import RoleGuard
from config import settings
from contracts import Attachment, Role
from errors import NotFoundError
from progress import ProgressEngine
from stores import BlobStore, DocumentStore
from common.storage_paths import (
    attachment_blob_path,
    attachments_collection,
    comments_collection,
    issue_path,
    tasks_collection,
)


logger = logging.getLogger(__name__)


class IssueDeleter:
    """Deletes an issue with its tasks, comments, attachments and blobs.

    The store does not cascade, so each subcollection is emptied explicitly
    before its parent document is removed.
    """

    def __init__(
        self,
        store: DocumentStore,
        blob_store: BlobStore,
        caller_id: Optional[str] = None,
        role_guard: Optional[RoleGuard] = None,
        progress_engine: Optional[ProgressEngine] = None,
    ):
        self.store = store
        self.blob_store = blob_store
        self.roles = role_guard or RoleGuard(store, caller_id or settings.caller_id)
        self.progress = progress_engine or ProgressEngine(store)

    async def delete_issue(self, project_id: str, issue_id: str) -> Dict[str, int]:
        """Delete an issue and re-aggregate its project.

        Blob deletion failures are logged and do not stop the cascade.

        Returns:
            Counts of deleted tasks, comments and attachments

        Raises:
            AuthorizationError: Caller is not admin on the project
            NotFoundError: The issue does not exist
        """
        await self.roles.ensure_project_role(project_id, [Role.ADMIN])

        if await self.store.get(issue_path(project_id, issue_id)) is None:
            raise NotFoundError(f"Issue not found: {issue_id}")

        counts = {"tasks": 0, "comments": 0, "attachments": 0}
        for task_snapshot in await self.store.list(tasks_collection(project_id, issue_id)):
            task_id = task_snapshot.id

            for comment in await self.store.list(comments_collection(project_id, issue_id, task_id)):
                await self.store.delete(comment.path)
                counts["comments"] += 1

            for snapshot in await self.store.list(attachments_collection(project_id, issue_id, task_id)):
                attachment = Attachment.from_snapshot(snapshot)
                blob_path = attachment.storage_path or attachment_blob_path(
                    project_id, issue_id, task_id, attachment.id, attachment.file_name
                )
                try:
                    await self.blob_store.delete(blob_path)
                except Exception:
                    logger.warning("Error deleting blob %s", blob_path, exc_info=True)
                await self.store.delete(snapshot.path)
                counts["attachments"] += 1

            await self.store.delete(task_snapshot.path)
            counts["tasks"] += 1

        await self.store.delete(issue_path(project_id, issue_id))
        logger.info(
            "Deleted issue %s/%s (%d tasks, %d comments, %d attachments)",
            project_id, issue_id, counts["tasks"], counts["comments"], counts["attachments"],
        )

        await self.progress.recompute_project_progress(project_id)
        return counts


async def delete_issue(
    store: DocumentStore,
    blob_store: BlobStore,
    caller_id: str,
    project_id: str,
    issue_id: str,
) -> Dict[str, int]:
    """Convenience function to delete an issue as caller_id."""
    deleter = IssueDeleter(store, blob_store, caller_id=caller_id)
    return await deleter.delete_issue(project_id, issue_id)
