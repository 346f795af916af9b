"""Entity contracts for the project hierarchy.

Project → Issue → Task → {Comment, Attachment, ChecklistItem}, plus the
project-scoped Tag. Documents keep unknown fields so a move copies records
written by newer clients without losing data.
"""

from pydantic import BaseModel, Field, field_validator
from typing import Any, Dict, List, Optional, Type, TypeVar
from datetime import datetime
from enum import Enum

from common.dates import normalize_date


D = TypeVar("D", bound="Document")


class Role(str, Enum):
    """Project membership role."""
    ADMIN = "admin"
    MEMBER = "member"
    GUEST = "guest"


class Importance(str, Enum):
    """Task importance; drives progress weighting."""
    CRITICAL = "Critical"
    HIGH = "High"
    MEDIUM = "Medium"
    LOW = "Low"


class TaskStatus(str, Enum):
    """Task workflow status."""
    INCOMPLETE = "incomplete"
    IN_PROGRESS = "in_progress"
    COMPLETED = "completed"
    ON_HOLD = "on_hold"
    DISCARDED = "discarded"


class Document(BaseModel):
    """A record stored at a path in the document store.

    The document id lives in the path, not in the stored data.
    """

    id: Optional[str] = Field(default=None, description="Document id (last path segment)")

    model_config = {
        "extra": "allow",
        "use_enum_values": True,
        "populate_by_name": True,
    }

    @classmethod
    def from_snapshot(cls: Type[D], snapshot: Any) -> D:
        """Build the model from a store snapshot (id + data)."""
        return cls.model_validate({**snapshot.data, "id": snapshot.id})

    def to_document(self) -> Dict[str, Any]:
        """Data to persist; the id is carried by the path."""
        return self.model_dump(exclude={"id"})


class _Dated(Document):
    """Document with optional start/end dates normalized on load."""

    start_date: Optional[datetime] = None
    end_date: Optional[datetime] = None
    created_at: Optional[datetime] = None

    @field_validator("start_date", "end_date", "created_at", mode="before")
    @classmethod
    def _normalize_dates(cls, value: Any) -> Optional[datetime]:
        return normalize_date(value)


class Project(_Dated):
    """Top-level container for issues, tags and members."""

    name: str
    description: Optional[str] = None
    goal: Optional[str] = None
    member_ids: List[str] = Field(default_factory=list)
    roles: Dict[str, Role] = Field(default_factory=dict)
    archived: bool = False
    progress: Optional[float] = Field(
        default=None,
        description="Derived 0-100 value; written only by the progress engine",
    )


class Issue(_Dated):
    """A unit of work inside a project, grouping tasks."""

    project_id: str
    name: str
    description: Optional[str] = None
    goal: Optional[str] = None
    theme_color: Optional[str] = None
    archived: bool = False
    progress: Optional[float] = Field(
        default=None,
        description="Derived 0-100 value; None until first computed",
    )
    representative_task_id: Optional[str] = None
    pinned_by: List[str] = Field(default_factory=list)

    @field_validator("archived", mode="before")
    @classmethod
    def _archived_default(cls, value: Any) -> bool:
        return bool(value)


class ChecklistItem(BaseModel):
    """A single checklist entry on a task."""

    id: str
    text: str = ""
    completed: bool = False


class Task(_Dated):
    """A leaf work item; its progress feeds the issue and project averages."""

    project_id: str
    issue_id: str
    title: str
    description: Optional[str] = None
    importance: Optional[Importance] = None
    status: TaskStatus = TaskStatus.INCOMPLETE
    archived: bool = False
    assignee_ids: List[str] = Field(default_factory=list)
    tag_ids: List[str] = Field(default_factory=list)
    checklist: List[ChecklistItem] = Field(default_factory=list)
    progress: Optional[float] = None
    created_by: Optional[str] = None

    @field_validator("archived", mode="before")
    @classmethod
    def _archived_default(cls, value: Any) -> bool:
        return bool(value)

    @field_validator("assignee_ids", "tag_ids", mode="before")
    @classmethod
    def _list_default(cls, value: Any) -> List[Any]:
        return list(value) if isinstance(value, (list, tuple)) else []

    @field_validator("importance", mode="before")
    @classmethod
    def _known_importance(cls, value: Any) -> Optional[Any]:
        # Blank or unrecognized levels read as unset (weight 1)
        if isinstance(value, Importance):
            return value
        if isinstance(value, str) and value in {level.value for level in Importance}:
            return value
        return None


class Tag(Document):
    """Project-scoped label referenced by tasks."""

    name: str
    color: Optional[str] = None
    created_at: Optional[datetime] = None


class Comment(Document):
    """Discussion entry on a task."""

    text: str = ""
    created_by: str = ""
    created_at: Optional[datetime] = None
    mentions: List[str] = Field(default_factory=list)
    author_username: Optional[str] = None
    author_photo_url: Optional[str] = None

    @field_validator("created_at", mode="before")
    @classmethod
    def _normalize_created(cls, value: Any) -> Optional[datetime]:
        return normalize_date(value)

    @field_validator("text", "created_by", mode="before")
    @classmethod
    def _text_default(cls, value: Any) -> str:
        return value if isinstance(value, str) else ""

    @field_validator("author_username", "author_photo_url", mode="before")
    @classmethod
    def _optional_text(cls, value: Any) -> Optional[str]:
        return value if isinstance(value, str) and value else None

    @field_validator("mentions", mode="before")
    @classmethod
    def _mentions_default(cls, value: Any) -> List[str]:
        if not isinstance(value, (list, tuple)):
            return []
        return [m for m in value if isinstance(m, str)]


class Attachment(Document):
    """File attached to a task; content lives in the blob store."""

    file_name: str = ""
    file_url: Optional[str] = Field(default=None, description="Download locator at write time")
    file_size: int = 0
    storage_path: Optional[str] = Field(default=None, description="Blob path in the blob store")
    uploaded_by: str = ""
    uploaded_at: Optional[datetime] = None
    # Denormalized for list views
    project_id: Optional[str] = None
    project_name: Optional[str] = None
    issue_id: Optional[str] = None
    issue_name: Optional[str] = None
    task_id: Optional[str] = None
    task_title: Optional[str] = None

    @field_validator("uploaded_at", mode="before")
    @classmethod
    def _normalize_uploaded(cls, value: Any) -> Optional[datetime]:
        return normalize_date(value)

    # Older clients wrote nulls and mixed types; fall back to the defaults
    @field_validator("file_name", "uploaded_by", mode="before")
    @classmethod
    def _text_default(cls, value: Any) -> str:
        return value if isinstance(value, str) else ""

    @field_validator(
        "file_url", "storage_path", "project_id", "project_name",
        "issue_id", "issue_name", "task_id", "task_title",
        mode="before",
    )
    @classmethod
    def _optional_text(cls, value: Any) -> Optional[str]:
        return value if isinstance(value, str) and value else None

    @field_validator("file_size", mode="before")
    @classmethod
    def _size_default(cls, value: Any) -> int:
        if isinstance(value, bool) or not isinstance(value, (int, float)):
            return 0
        return int(value)
