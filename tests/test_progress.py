"""Tests for progress weighting, checklist derivation and the aggregation engine."""

import asyncio
import logging
from unittest.mock import patch

import pytest

from contracts import ChecklistItem, Importance, Task, TaskStatus
from errors import NotFoundError
from progress import (
    ProgressEngine,
    derive_task_progress,
    derive_task_status,
    importance_weight,
    issue_progress,
    issue_weight,
    round_progress,
    weighted_average,
)
from stores import InMemoryDocumentStore


def _task(progress=None, importance=None, status="incomplete", archived=False, **extra):
    return Task(
        project_id="p1", issue_id="i1", title="Task",
        progress=progress, importance=importance, status=status, archived=archived,
        **extra,
    )


def _hierarchy():
    """Project p1 with two issues: i1 (High 100, Low 0) and i2 (Critical 50)."""
    return InMemoryDocumentStore({
        "projects/p1": {"name": "Apollo", "roles": {"u1": "admin"}},
        "projects/p1/issues/i1": {"project_id": "p1", "name": "Alpha"},
        "projects/p1/issues/i1/tasks/t1": {
            "project_id": "p1", "issue_id": "i1", "title": "Design",
            "importance": "High", "progress": 100,
        },
        "projects/p1/issues/i1/tasks/t2": {
            "project_id": "p1", "issue_id": "i1", "title": "Build",
            "importance": "Low", "progress": 0,
        },
        "projects/p1/issues/i2": {"project_id": "p1", "name": "Beta"},
        "projects/p1/issues/i2/tasks/t3": {
            "project_id": "p1", "issue_id": "i2", "title": "Ship",
            "importance": "Critical", "progress": 50,
        },
    })


class TestWeights:
    """Test importance weights and averaging."""

    def test_weight_table(self):
        assert importance_weight(Importance.CRITICAL) == 4
        assert importance_weight("High") == 3
        assert importance_weight(Importance.MEDIUM) == 2
        assert importance_weight(Importance.LOW) == 1

    def test_unset_or_unknown_importance(self):
        assert importance_weight(None) == 1
        assert importance_weight("Urgent") == 1

    def test_round_progress(self):
        assert round_progress(66.66666) == 66.7
        assert round_progress(12.25) == 12.3
        assert round_progress(-3) == 0.0
        assert round_progress(150) == 100.0

    def test_weighted_average_empty(self):
        assert weighted_average([]) == 0.0

    def test_issue_progress_weighted(self):
        tasks = [_task(100, Importance.HIGH), _task(0, Importance.LOW)]
        assert issue_progress(tasks) == 75.0

    def test_unset_progress_counts_as_zero(self):
        tasks = [_task(100), _task(None)]
        assert issue_progress(tasks) == 50.0

    def test_excluded_tasks_do_not_matter(self):
        base = [_task(40, Importance.MEDIUM)]
        for progress in (0, 55, 100):
            tasks = base + [
                _task(progress, Importance.CRITICAL, archived=True),
                _task(progress, Importance.HIGH, status=TaskStatus.DISCARDED),
            ]
            assert issue_progress(tasks) == 40.0

    def test_only_excluded_tasks(self):
        tasks = [_task(100, archived=True), _task(80, status=TaskStatus.DISCARDED)]
        assert issue_progress(tasks) == 0.0

    def test_issue_weight(self):
        assert issue_weight([_task(0, Importance.CRITICAL), _task(0, Importance.LOW)]) == 2.5
        assert issue_weight([]) == 1.0
        assert issue_weight([_task(0, Importance.CRITICAL, archived=True)]) == 1.0


class TestChecklist:
    """Test checklist-driven task progress and status."""

    def _items(self, *done):
        return [ChecklistItem(id=f"c{i}", text="x", completed=d) for i, d in enumerate(done)]

    def test_progress_from_checklist(self):
        assert derive_task_progress(self._items(True, False, False)) == 33.3
        assert derive_task_progress(self._items(True, True, False)) == 66.7
        assert derive_task_progress(self._items(True, True)) == 100.0

    def test_progress_without_checklist(self):
        assert derive_task_progress([], TaskStatus.COMPLETED) == 100.0
        assert derive_task_progress([], "in_progress") == 50.0
        assert derive_task_progress([], TaskStatus.ON_HOLD) == 25.0
        assert derive_task_progress([]) == 0.0

    def test_status_from_checklist(self):
        assert derive_task_status(self._items(True, True), "incomplete") == TaskStatus.COMPLETED
        assert derive_task_status(self._items(True, False), "incomplete") == TaskStatus.IN_PROGRESS
        assert derive_task_status(self._items(False, False), "completed") == TaskStatus.INCOMPLETE

    def test_emptied_checklist(self):
        assert derive_task_status([], TaskStatus.COMPLETED) == TaskStatus.INCOMPLETE
        assert derive_task_status([], TaskStatus.IN_PROGRESS) == TaskStatus.INCOMPLETE
        assert derive_task_status([], TaskStatus.ON_HOLD) == TaskStatus.ON_HOLD


class TestProgressEngine:
    """Test ProgressEngine against the in-memory store."""

    def test_recompute_issue_progress(self):
        store = _hierarchy()
        engine = ProgressEngine(store)
        assert asyncio.run(engine.recompute_issue_progress("p1", "i1")) == 75.0
        assert asyncio.run(store.get("projects/p1/issues/i1")).data["progress"] == 75.0

    def test_issue_without_tasks(self):
        store = InMemoryDocumentStore({
            "projects/p1/issues/i1": {"project_id": "p1", "name": "Empty"},
        })
        engine = ProgressEngine(store)
        assert asyncio.run(engine.recompute_issue_progress("p1", "i1")) == 0.0

    def test_project_uses_derived_issue_weights(self):
        store = InMemoryDocumentStore({
            "projects/p1": {"name": "Apollo"},
            "projects/p1/issues/a": {"project_id": "p1", "name": "A", "progress": 50},
            "projects/p1/issues/a/tasks/t1": {
                "project_id": "p1", "issue_id": "a", "title": "x",
                "importance": "Critical", "progress": 50,
            },
            "projects/p1/issues/b": {"project_id": "p1", "name": "B", "progress": 100},
            "projects/p1/issues/b/tasks/t2": {
                "project_id": "p1", "issue_id": "b", "title": "y",
                "importance": "Low", "progress": 100,
            },
        })
        engine = ProgressEngine(store)
        assert asyncio.run(engine.recompute_project_progress("p1")) == 60.0
        assert asyncio.run(store.get("projects/p1")).data["progress"] == 60.0

    def test_project_excludes_archived_and_uncomputed(self):
        store = InMemoryDocumentStore({
            "projects/p1": {"name": "Apollo"},
            "projects/p1/issues/a": {"project_id": "p1", "name": "A", "progress": 80},
            "projects/p1/issues/b": {"project_id": "p1", "name": "B", "progress": 0, "archived": True},
            "projects/p1/issues/c": {"project_id": "p1", "name": "C"},
        })
        engine = ProgressEngine(store)
        assert asyncio.run(engine.recompute_project_progress("p1")) == 80.0

    def test_issue_with_no_tasks_weighs_one(self):
        store = InMemoryDocumentStore({
            "projects/p1": {"name": "Apollo"},
            "projects/p1/issues/a": {"project_id": "p1", "name": "A"},
            "projects/p1/issues/b": {"project_id": "p1", "name": "B"},
            "projects/p1/issues/b/tasks/t1": {
                "project_id": "p1", "issue_id": "b", "title": "x",
                "importance": "Low", "progress": 100,
            },
        })
        engine = ProgressEngine(store)
        asyncio.run(engine.recompute_issue_progress("p1", "a"))
        asyncio.run(engine.recompute_issue_progress("p1", "b"))
        assert asyncio.run(engine.recompute_project_progress("p1")) == 50.0

    def test_project_without_issues(self):
        store = InMemoryDocumentStore({"projects/p1": {"name": "Apollo"}})
        engine = ProgressEngine(store)
        assert asyncio.run(engine.recompute_project_progress("p1")) == 0.0

    def test_project_recompute_is_idempotent(self):
        store = _hierarchy()
        engine = ProgressEngine(store)
        asyncio.run(engine.recompute_issue_progress("p1", "i1"))
        asyncio.run(engine.recompute_issue_progress("p1", "i2"))
        first = asyncio.run(engine.recompute_project_progress("p1"))
        second = asyncio.run(engine.recompute_project_progress("p1"))
        assert first == second
        # (75 * 2 + 50 * 4) / 6
        assert first == 58.3

    def test_issue_read_failure_returns_zero(self, caplog):
        store = _hierarchy()
        engine = ProgressEngine(store)
        with patch.object(store, "list", side_effect=RuntimeError("store offline")):
            with caplog.at_level(logging.ERROR, logger="progress.engine"):
                result = asyncio.run(engine.recompute_issue_progress("p1", "i1"))
        assert result == 0.0
        assert any("Error recomputing progress for issue p1/i1" in r.getMessage() for r in caplog.records)

    def test_project_write_failure_returns_zero(self, caplog):
        store = _hierarchy()
        engine = ProgressEngine(store)
        with patch.object(store, "update", side_effect=RuntimeError("write rejected")):
            with caplog.at_level(logging.ERROR, logger="progress.engine"):
                result = asyncio.run(engine.recompute_project_progress("p1"))
        assert result == 0.0
        assert any(r.levelno == logging.ERROR for r in caplog.records)

    def test_missing_issue_returns_zero(self, caplog):
        store = InMemoryDocumentStore()
        engine = ProgressEngine(store)
        with caplog.at_level(logging.ERROR, logger="progress.engine"):
            assert asyncio.run(engine.recompute_issue_progress("p1", "nope")) == 0.0
        assert caplog.records

    def test_update_checklist(self):
        store = _hierarchy()
        engine = ProgressEngine(store)
        task = asyncio.run(engine.update_checklist("p1", "i1", "t2", [
            {"id": "c1", "text": "Code", "completed": True},
            {"id": "c2", "text": "Test", "completed": False},
        ]))
        assert task.progress == 50.0
        assert task.status == TaskStatus.IN_PROGRESS
        # (100 * 3 + 50 * 1) / 4
        assert asyncio.run(store.get("projects/p1/issues/i1")).data["progress"] == 87.5
        assert asyncio.run(store.get("projects/p1")).data["progress"] == pytest.approx(87.5)

    def test_blank_or_unknown_importance_weighs_one(self):
        store = InMemoryDocumentStore({
            "projects/p1/issues/i1": {"project_id": "p1", "name": "Alpha"},
            "projects/p1/issues/i1/tasks/t1": {
                "project_id": "p1", "issue_id": "i1", "title": "x",
                "importance": "High", "progress": 100,
            },
            "projects/p1/issues/i1/tasks/t2": {
                "project_id": "p1", "issue_id": "i1", "title": "y",
                "importance": "", "progress": 0,
            },
            "projects/p1/issues/i1/tasks/t3": {
                "project_id": "p1", "issue_id": "i1", "title": "z",
                "importance": "Urgent", "progress": 100,
            },
        })
        engine = ProgressEngine(store)
        # (100 * 3 + 0 * 1 + 100 * 1) / 5
        assert asyncio.run(engine.recompute_issue_progress("p1", "i1")) == 80.0

    def test_update_checklist_missing_task(self):
        engine = ProgressEngine(InMemoryDocumentStore())
        with pytest.raises(NotFoundError):
            asyncio.run(engine.update_checklist("p1", "i1", "t9", []))
