"""Issue Migration Orchestrator - moves an issue and its subtree between projects.

The move runs as a fixed sequence of steps:
1. Check roles, existence and the target's active-issue capacity
2. Reconcile dates against the target project and the issue's tasks
3. Resolve the final name, the tag mapping and the assignees to drop
4. Write the issue, then each task with its comments and attachments,
   deleting each source record after its copy
5. Delete the source issue and re-aggregate progress

Steps 1-3 raise before anything is written. Step 4 is best-effort: tag
creation and attachment copy failures are logged and skipped, and nothing
already written is rolled back.
"""

import logging
import mimetypes
from dataclasses import dataclass
from datetime import datetime
from typing import Any, Dict, List, Mapping, Optional, Tuple, Union

from pydantic import ValidationError as PydanticValidationError

from access import RoleGuard, TagDirectory
from config import settings
from contracts import (
    Attachment,
    Comment,
    Issue,
    IssueOverrides,
    MoveResult,
    Project,
    RemovedAssignees,
    Role,
    Task,
)
from errors import CapacityError, NotFoundError, ValidationError
from progress import ProgressEngine
from stores import BlobStore, DocumentSnapshot, DocumentStore
from common.dates import format_date
from common.storage_paths import (
    attachment_blob_path,
    attachments_collection,
    comments_collection,
    issue_path,
    issues_collection,
    project_path,
    task_path,
    tasks_collection,
)


logger = logging.getLogger(__name__)

OverridesInput = Union[IssueOverrides, Mapping[str, Any], None]


@dataclass
class DatePlan:
    """Issue dates before and after fitting them into the target project."""
    original_start: Optional[datetime]
    original_end: Optional[datetime]
    start: Optional[datetime]
    end: Optional[datetime]
    start_clamped: bool = False
    end_clamped: bool = False

    @property
    def adjusted(self) -> bool:
        return self.start_clamped or self.end_clamped


class IssueMigrationOrchestrator:
    """Moves one issue, with its tasks, comments and attachments, to another project.

    Responsibilities:
    - Enforce admin role on both projects and the target's capacity
    - Clamp dates into the target window without breaking task coverage
    - Rename on conflict, remap tags, drop non-member assignees
    - Relocate attachment blobs and re-aggregate progress on both sides
    """

    def __init__(
        self,
        store: DocumentStore,
        blob_store: BlobStore,
        caller_id: Optional[str] = None,
        role_guard: Optional[RoleGuard] = None,
        tag_directory: Optional[TagDirectory] = None,
        progress_engine: Optional[ProgressEngine] = None,
        max_active_issues: Optional[int] = None,
    ):
        """Initialize the orchestrator.

        Args:
            store: Document store holding the project hierarchy
            blob_store: Blob store holding attachment content
            caller_id: Identity of the caller (ignored when role_guard is given)
            role_guard: Role collaborator; built from caller_id when omitted
            tag_directory: Tag collaborator; built over store when omitted
            progress_engine: Aggregation engine; built over store when omitted
            max_active_issues: Active-issue cap (defaults to settings)
        """
        self.store = store
        self.blob_store = blob_store
        self.roles = role_guard or RoleGuard(store, caller_id or settings.caller_id)
        self.tags = tag_directory or TagDirectory(store)
        self.progress = progress_engine or ProgressEngine(store)
        self.max_active_issues = (
            settings.max_active_issues if max_active_issues is None else max_active_issues
        )

    async def move_issue(
        self,
        source_project_id: str,
        issue_id: str,
        target_project_id: str,
        overrides: OverridesInput = None,
    ) -> MoveResult:
        """Move an issue from one project to another.

        Args:
            source_project_id: Project currently holding the issue
            issue_id: Issue to move; it keeps its id in the target
            target_project_id: Destination project
            overrides: Field values to apply on arrival (explicit None clears)

        Returns:
            MoveResult with the final name and any adjustments made

        Raises:
            AuthorizationError: Caller is not admin on both projects
            NotFoundError: The issue or the target project does not exist
            CapacityError: The target already has the maximum of active issues
            ValidationError: The fitted dates are inverted or do not cover the tasks
        """
        overrides = _coerce_overrides(overrides)

        await self.roles.ensure_project_role(source_project_id, [Role.ADMIN])
        await self.roles.ensure_project_role(target_project_id, [Role.ADMIN])

        if source_project_id == target_project_id:
            return await self._same_project_result(source_project_id, issue_id, overrides)

        # Step 1: Preconditions
        source_snapshot = await self.store.get(issue_path(source_project_id, issue_id))
        if source_snapshot is None:
            raise NotFoundError(f"The issue to move was not found: {issue_id}")
        issue = Issue.from_snapshot(source_snapshot)

        target_snapshot = await self.store.get(project_path(target_project_id))
        if target_snapshot is None:
            raise NotFoundError(f"The target project was not found: {target_project_id}")
        target_project = Project.from_snapshot(target_snapshot)

        target_issues = [
            Issue.from_snapshot(s)
            for s in await self.store.list(issues_collection(target_project_id))
        ]

        will_be_archived = overrides.archived if overrides.archived is not None else issue.archived
        if not will_be_archived:
            self._check_capacity(target_issues)

        # Step 2: Dates
        task_snapshots = await self.store.list(tasks_collection(source_project_id, issue_id))
        tasks = [Task.from_snapshot(s) for s in task_snapshots]

        plan = plan_dates(issue, overrides, target_project)
        check_coverage(plan, tasks)

        # Step 3: Name, tags, assignees
        requested_name = overrides.name if overrides.name is not None else issue.name
        final_name = resolve_name(requested_name, target_issues, exclude_id=issue_id)

        tag_mapping, skipped_tags = await self._reconcile_tags(
            source_project_id, target_project_id, tasks
        )
        kept_assignees, removed_assignees = prune_assignees(tasks, target_project.member_ids)

        logger.info(
            "Moving issue %s from %s to %s as %r (%d tasks)",
            issue_id, source_project_id, target_project_id, final_name, len(tasks),
        )

        # Step 4: Writes
        await self._write_issue(source_snapshot, target_project_id, overrides, final_name, plan)

        for task in tasks:
            await self._move_task(
                task,
                source_project_id,
                target_project_id,
                issue_id,
                tag_mapping,
                kept_assignees[task.id],
                project_name=target_project.name or None,
                issue_name=final_name,
            )

        # Step 5: Remove source, re-aggregate
        await self.store.delete(issue_path(source_project_id, issue_id))

        await self.progress.recompute_issue_progress(target_project_id, issue_id)
        await self.progress.recompute_project_progress(source_project_id)
        await self.progress.recompute_project_progress(target_project_id)

        return MoveResult(
            final_name=final_name,
            date_adjusted=plan.adjusted,
            original_start=plan.original_start if plan.adjusted else None,
            original_end=plan.original_end if plan.adjusted else None,
            adjusted_start=plan.start if plan.adjusted else None,
            adjusted_end=plan.end if plan.adjusted else None,
            removed_assignees=removed_assignees or None,
            skipped_tags=skipped_tags or None,
        )

    async def _same_project_result(
        self,
        project_id: str,
        issue_id: str,
        overrides: IssueOverrides,
    ) -> MoveResult:
        """Result for a move onto the same project; nothing is written."""
        if overrides.name is not None:
            return MoveResult(final_name=overrides.name, date_adjusted=False)
        snapshot = await self.store.get(issue_path(project_id, issue_id))
        name = Issue.from_snapshot(snapshot).name if snapshot is not None else ""
        return MoveResult(final_name=name, date_adjusted=False)

    def _check_capacity(self, target_issues: List[Issue]) -> None:
        active = sum(1 for i in target_issues if not i.archived)
        if active >= self.max_active_issues:
            raise CapacityError(
                f"The target project has reached its limit of {self.max_active_issues} "
                f"active issues. Archive or delete an issue in the target project "
                f"before moving this one."
            )

    async def _reconcile_tags(
        self,
        source_project_id: str,
        target_project_id: str,
        tasks: List[Task],
    ) -> Tuple[Dict[str, str], List[str]]:
        """Map source tag ids onto target tag ids, creating missing tags.

        Returns:
            (source id -> target id, names of tags that could not be created)
        """
        used: Dict[str, None] = {}
        for task in tasks:
            for tag_id in task.tag_ids:
                if isinstance(tag_id, str) and tag_id.strip():
                    used.setdefault(tag_id, None)
        if not used:
            return {}, []

        source_tags = {t.id: t for t in await self.tags.list_tags(source_project_id)}
        target_tags = await self.tags.list_tags(target_project_id)
        target_by_name = {t.name: t for t in target_tags if t.name}

        mapping: Dict[str, str] = {}
        to_create: Dict[str, List[str]] = {}
        colors: Dict[str, Optional[str]] = {}
        for tag_id in used:
            source_tag = source_tags.get(tag_id)
            if source_tag is None or not source_tag.name:
                continue
            existing = target_by_name.get(source_tag.name)
            if existing is not None:
                mapping[tag_id] = existing.id
            else:
                to_create.setdefault(source_tag.name, []).append(tag_id)
                colors.setdefault(source_tag.name, source_tag.color)

        names = list(to_create)
        available = max(0, self.tags.max_tags - len(target_tags))
        skipped = names[available:]
        if skipped:
            logger.warning(
                "Target project %s tag limit reached; skipping tags: %s",
                target_project_id, ", ".join(skipped),
            )

        for name in names[:available]:
            try:
                new_id = await self.tags.create_tag(target_project_id, name, colors[name])
            except Exception:
                logger.exception("Error creating tag %r in project %s", name, target_project_id)
                skipped.append(name)
                continue
            for source_id in to_create[name]:
                mapping[source_id] = new_id

        return mapping, skipped

    async def _write_issue(
        self,
        source_snapshot: DocumentSnapshot,
        target_project_id: str,
        overrides: IssueOverrides,
        final_name: str,
        plan: DatePlan,
    ) -> None:
        payload: Dict[str, Any] = {**source_snapshot.data, "project_id": target_project_id}
        payload.update(overrides.present())
        payload["name"] = final_name
        if plan.start_clamped:
            payload["start_date"] = plan.start
        if plan.end_clamped:
            payload["end_date"] = plan.end

        moved = Issue.model_validate({**payload, "id": source_snapshot.id})
        await self.store.set(issue_path(target_project_id, source_snapshot.id), moved.to_document())

    async def _move_task(
        self,
        task: Task,
        source_project_id: str,
        target_project_id: str,
        issue_id: str,
        tag_mapping: Dict[str, str],
        assignee_ids: List[str],
        project_name: Optional[str],
        issue_name: str,
    ) -> None:
        mapped_tags = list(dict.fromkeys(
            tag_mapping[tag_id] for tag_id in task.tag_ids if tag_id in tag_mapping
        ))
        moved = task.model_copy(update={
            "project_id": target_project_id,
            "issue_id": issue_id,
            "tag_ids": mapped_tags,
            "assignee_ids": assignee_ids,
        })
        await self.store.set(task_path(target_project_id, issue_id, task.id), moved.to_document())

        await self._move_comments(source_project_id, target_project_id, issue_id, task.id)

        attachments = await self.store.list(
            attachments_collection(source_project_id, issue_id, task.id)
        )
        for snapshot in attachments:
            try:
                await self._move_attachment(
                    snapshot,
                    target_project_id,
                    issue_id,
                    task,
                    project_name=project_name,
                    issue_name=issue_name,
                )
            except Exception:
                logger.exception(
                    "Error moving attachment record %s of task %s; skipping it",
                    snapshot.id, task.id,
                )

        await self.store.delete(task_path(source_project_id, issue_id, task.id))

    async def _move_comments(
        self,
        source_project_id: str,
        target_project_id: str,
        issue_id: str,
        task_id: str,
    ) -> None:
        target_collection = comments_collection(target_project_id, issue_id, task_id)
        for snapshot in await self.store.list(comments_collection(source_project_id, issue_id, task_id)):
            try:
                document = Comment.from_snapshot(snapshot).to_document()
            except PydanticValidationError:
                logger.warning("Unreadable comment %s; moving it unchanged", snapshot.id, exc_info=True)
                document = snapshot.data
            await self.store.set(f"{target_collection}/{snapshot.id}", document)
            await self.store.delete(snapshot.path)

    async def _move_attachment(
        self,
        snapshot: DocumentSnapshot,
        target_project_id: str,
        issue_id: str,
        task: Task,
        project_name: Optional[str],
        issue_name: str,
    ) -> None:
        """Copy one attachment's blob and record into the target hierarchy.

        A failed copy leaves the record pointing at its previous blob.
        """
        target_collection = attachments_collection(target_project_id, issue_id, task.id)
        try:
            attachment = Attachment.from_snapshot(snapshot)
        except PydanticValidationError:
            logger.warning("Unreadable attachment %s; moving its record unchanged", snapshot.id, exc_info=True)
            await self.store.set(f"{target_collection}/{snapshot.id}", snapshot.data)
            await self.store.delete(snapshot.path)
            return

        new_blob_path = attachment_blob_path(
            target_project_id, issue_id, task.id, attachment.id, attachment.file_name
        )

        file_url, storage_path = attachment.file_url, attachment.storage_path
        try:
            new_url = await self._copy_blob(attachment, new_blob_path)
        except Exception:
            logger.exception(
                "Error moving attachment %s of task %s; keeping its previous location",
                attachment.id, task.id,
            )
        else:
            if new_url is not None:
                file_url, storage_path = new_url, new_blob_path

        record = attachment.model_copy(update={
            "file_url": file_url,
            "storage_path": storage_path,
            "project_id": target_project_id,
            "project_name": project_name,
            "issue_id": issue_id,
            "issue_name": issue_name,
            "task_id": task.id,
            "task_title": task.title or None,
        })
        await self.store.set(f"{target_collection}/{attachment.id}", record.to_document())
        await self.store.delete(snapshot.path)

    async def _copy_blob(self, attachment: Attachment, new_path: str) -> Optional[str]:
        """Copy an attachment's content to new_path and return the new locator.

        Prefers a freshly resolved URL over the stored one, which may have
        expired. The old blob is deleted only after the copy succeeded.
        Returns None when the record has nothing to copy.
        """
        content_type = mimetypes.guess_type(attachment.file_name)[0]

        if attachment.storage_path:
            url = attachment.file_url
            try:
                url = await self.blob_store.get_download_url(attachment.storage_path)
            except Exception:
                if not url:
                    raise
                logger.warning(
                    "Could not resolve a download URL for %s; using the stored URL",
                    attachment.storage_path,
                )
            content = await self.blob_store.download(url)
            await self.blob_store.upload(new_path, content, content_type)
            new_url = await self.blob_store.get_download_url(new_path)
            try:
                await self.blob_store.delete(attachment.storage_path)
            except Exception:
                logger.warning("Error deleting old blob %s", attachment.storage_path, exc_info=True)
            return new_url

        if attachment.file_url:
            content = await self.blob_store.download(attachment.file_url)
            await self.blob_store.upload(new_path, content, content_type)
            return await self.blob_store.get_download_url(new_path)

        logger.warning("Attachment %s has neither a storage path nor a URL", attachment.id)
        return None


def _coerce_overrides(overrides: OverridesInput) -> IssueOverrides:
    if overrides is None:
        return IssueOverrides()
    if isinstance(overrides, IssueOverrides):
        return overrides
    return IssueOverrides.model_validate(dict(overrides))


def plan_dates(issue: Issue, overrides: IssueOverrides, target_project: Project) -> DatePlan:
    """Effective issue dates clamped into the target project's window."""
    start = overrides.start_date if overrides.has("start_date") else issue.start_date
    end = overrides.end_date if overrides.has("end_date") else issue.end_date
    plan = DatePlan(original_start=start, original_end=end, start=start, end=end)

    if target_project.start_date and plan.start and plan.start < target_project.start_date:
        plan.start = target_project.start_date
        plan.start_clamped = True
    if target_project.end_date and plan.end and plan.end > target_project.end_date:
        plan.end = target_project.end_date
        plan.end_clamped = True
    return plan


def check_coverage(plan: DatePlan, tasks: List[Task]) -> None:
    """Raise ValidationError unless the planned dates cover every task."""
    if plan.start and plan.end and plan.start > plan.end:
        raise ValidationError(
            f"The issue start date {format_date(plan.start)} would fall after its end date "
            f"{format_date(plan.end)} in the target project. Adjust the issue dates or the "
            f"target project's period, then try again."
        )

    for task in tasks:
        if plan.start and task.start_date and task.start_date < plan.start:
            lead = (
                f"The issue start date was adjusted to {format_date(plan.start)} to fit the "
                f"target project's period"
                if plan.start_clamped
                else f"The issue start date {format_date(plan.start)}"
            )
            raise ValidationError(
                f"{lead}, but it does not cover task '{task.title}' "
                f"(start date: {format_date(task.start_date)}). Extend the target project's "
                f"period or adjust the task dates, then try again."
            )
        if plan.end and task.end_date and task.end_date > plan.end:
            lead = (
                f"The issue end date was adjusted to {format_date(plan.end)} to fit the "
                f"target project's period"
                if plan.end_clamped
                else f"The issue end date {format_date(plan.end)}"
            )
            raise ValidationError(
                f"{lead}, but it does not cover task '{task.title}' "
                f"(end date: {format_date(task.end_date)}). Extend the target project's "
                f"period or adjust the task dates, then try again."
            )


def resolve_name(name: str, target_issues: List[Issue], exclude_id: Optional[str] = None) -> str:
    """Name to use in the target, suffixed " (n)" if an active issue has it.

    The suffix uses the smallest n not taken by any target issue, archived or not.
    """
    others = [i for i in target_issues if i.id != exclude_id]
    if not any(i.name == name and not i.archived for i in others):
        return name

    taken = {i.name for i in others}
    counter = 1
    while f"{name} ({counter})" in taken:
        counter += 1
    return f"{name} ({counter})"


def prune_assignees(
    tasks: List[Task],
    member_ids: List[str],
) -> Tuple[Dict[str, List[str]], List[RemovedAssignees]]:
    """Split each task's assignees into target members and removed ids.

    Blank ids are dropped without being reported.

    Returns:
        (task id -> kept assignee ids, per-task removal report)
    """
    members = set(member_ids)
    kept: Dict[str, List[str]] = {}
    removed: List[RemovedAssignees] = []
    for task in tasks:
        valid = [a for a in task.assignee_ids if isinstance(a, str) and a.strip()]
        kept[task.id] = [a for a in valid if a in members]
        dropped = [a for a in valid if a not in members]
        if dropped:
            removed.append(RemovedAssignees(task_id=task.id, assignee_ids=dropped))
    return kept, removed


async def move_issue(
    store: DocumentStore,
    blob_store: BlobStore,
    caller_id: str,
    source_project_id: str,
    issue_id: str,
    target_project_id: str,
    overrides: OverridesInput = None,
) -> MoveResult:
    """Convenience function to move an issue as caller_id.

    Args:
        store: Document store holding the project hierarchy
        blob_store: Blob store holding attachment content
        caller_id: Identity performing the move
        source_project_id: Project currently holding the issue
        issue_id: Issue to move
        target_project_id: Destination project
        overrides: Field values to apply on arrival

    Returns:
        MoveResult
    """
    orchestrator = IssueMigrationOrchestrator(store, blob_store, caller_id=caller_id)
    return await orchestrator.move_issue(source_project_id, issue_id, target_project_id, overrides)
