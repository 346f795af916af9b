"""Pydantic contracts for the tracker core.

Every document read from or written to the store is typed through these
contracts.
"""

from .entity_contracts import (
    Role,
    Importance,
    TaskStatus,
    Document,
    Project,
    Issue,
    ChecklistItem,
    Task,
    Tag,
    Comment,
    Attachment,
)

from .migration_contracts import (
    IssueOverrides,
    RemovedAssignees,
    MoveResult,
)

__all__ = [
    # Entities
    "Role",
    "Importance",
    "TaskStatus",
    "Document",
    "Project",
    "Issue",
    "ChecklistItem",
    "Task",
    "Tag",
    "Comment",
    "Attachment",
    # Migration
    "IssueOverrides",
    "RemovedAssignees",
    "MoveResult",
]
