"""Tests for the entity and migration contracts.

Verifies that documents load from store snapshots, normalize their dates,
and keep fields they do not declare.
"""

import pytest
from datetime import datetime, timezone
from pydantic import ValidationError as PydanticValidationError

from contracts import (
    Attachment,
    ChecklistItem,
    Comment,
    Importance,
    Issue,
    IssueOverrides,
    MoveResult,
    Project,
    RemovedAssignees,
    Role,
    Task,
    TaskStatus,
)
from stores import DocumentSnapshot


def _snapshot(doc_id, data, path=None):
    return DocumentSnapshot(id=doc_id, path=path or f"things/{doc_id}", data=data, version=1)


class TestEntityContracts:
    """Test entity documents."""

    def test_project_from_snapshot(self):
        project = Project.from_snapshot(_snapshot("p1", {
            "name": "Apollo",
            "member_ids": ["u1", "u2"],
            "roles": {"u1": "admin", "u2": "member"},
            "start_date": "2024-01-01",
        }))
        assert project.id == "p1"
        assert project.roles["u1"] == Role.ADMIN
        assert project.start_date == datetime(2024, 1, 1, tzinfo=timezone.utc)
        assert project.progress is None

    def test_issue_dates_normalized(self):
        issue = Issue.from_snapshot(_snapshot("i1", {
            "project_id": "p1",
            "name": "Alpha",
            "start_date": "2024-02-01T09:30:00Z",
            "end_date": None,
        }))
        assert issue.start_date == datetime(2024, 2, 1, 9, 30, tzinfo=timezone.utc)
        assert issue.end_date is None

    def test_issue_archived_coerced(self):
        issue = Issue.from_snapshot(_snapshot("i1", {
            "project_id": "p1", "name": "Alpha", "archived": None,
        }))
        assert issue.archived is False

    def test_unknown_fields_survive_round_trip(self):
        issue = Issue.from_snapshot(_snapshot("i1", {
            "project_id": "p1", "name": "Alpha", "legacy_flag": "keep-me",
        }))
        document = issue.to_document()
        assert document["legacy_flag"] == "keep-me"
        assert "id" not in document

    def test_task_blank_importance_is_unset(self):
        for raw in ("", "Urgent", 3, None):
            task = Task.from_snapshot(_snapshot("t1", {
                "project_id": "p1", "issue_id": "i1", "title": "Write", "importance": raw,
            }))
            assert task.importance is None

    def test_attachment_nulls_fall_back_to_defaults(self):
        attachment = Attachment.from_snapshot(_snapshot("a1", {
            "file_name": None, "file_size": None, "uploaded_by": 7, "storage_path": "",
        }))
        assert attachment.file_name == ""
        assert attachment.file_size == 0
        assert attachment.uploaded_by == ""
        assert attachment.storage_path is None

    def test_task_defaults(self):
        task = Task.from_snapshot(_snapshot("t1", {
            "project_id": "p1", "issue_id": "i1", "title": "Write",
            "tag_ids": None, "assignee_ids": "u1",
        }))
        assert task.status == TaskStatus.INCOMPLETE
        assert task.tag_ids == []
        assert task.assignee_ids == []
        assert task.importance is None
        assert task.progress is None

    def test_task_enums_stored_as_values(self):
        task = Task(
            project_id="p1", issue_id="i1", title="Write",
            importance=Importance.HIGH, status=TaskStatus.ON_HOLD,
        )
        document = task.to_document()
        assert document["importance"] == "High"
        assert document["status"] == "on_hold"

    def test_task_rejects_unknown_status(self):
        with pytest.raises(PydanticValidationError):
            Task(project_id="p1", issue_id="i1", title="Write", status="paused")

    def test_checklist_items(self):
        task = Task(
            project_id="p1", issue_id="i1", title="Write",
            checklist=[{"id": "c1", "text": "Draft", "completed": True}],
        )
        assert task.checklist == [ChecklistItem(id="c1", text="Draft", completed=True)]

    def test_comment_from_snapshot(self):
        comment = Comment.from_snapshot(_snapshot("c1", {
            "text": "Looks good", "created_by": "u2", "created_at": "2024-05-01T10:00:00Z",
        }))
        assert comment.created_at == datetime(2024, 5, 1, 10, tzinfo=timezone.utc)
        assert comment.mentions == []

    def test_attachment_defaults(self):
        attachment = Attachment.from_snapshot(_snapshot("a1", {"file_name": "spec.pdf"}))
        assert attachment.file_url is None
        assert attachment.storage_path is None
        assert attachment.file_size == 0


class TestMigrationContracts:
    """Test overrides and move results."""

    def test_omitted_override_is_absent(self):
        overrides = IssueOverrides(name="Beta")
        assert overrides.has("name")
        assert not overrides.has("start_date")
        assert overrides.present() == {"name": "Beta"}

    def test_explicit_none_is_present(self):
        overrides = IssueOverrides(start_date=None)
        assert overrides.has("start_date")
        assert overrides.present() == {"start_date": None}

    def test_override_dates_normalized(self):
        overrides = IssueOverrides.model_validate({"end_date": "2024-06-30"})
        assert overrides.end_date == datetime(2024, 6, 30, tzinfo=timezone.utc)

    def test_unknown_override_rejected(self):
        with pytest.raises(PydanticValidationError):
            IssueOverrides.model_validate({"project_id": "p2"})

    def test_override_progress_bounded(self):
        with pytest.raises(PydanticValidationError):
            IssueOverrides(progress=120)

    def test_move_result_defaults(self):
        result = MoveResult(final_name="Alpha")
        assert result.date_adjusted is False
        assert result.original_start is None
        assert result.removed_assignees is None
        assert result.skipped_tags is None

    def test_move_result_with_removals(self):
        result = MoveResult(
            final_name="Alpha (1)",
            removed_assignees=[RemovedAssignees(task_id="t1", assignee_ids=["u9"])],
            skipped_tags=["urgent"],
        )
        assert result.removed_assignees[0].assignee_ids == ["u9"]
        assert result.skipped_tags == ["urgent"]
