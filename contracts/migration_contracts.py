"""Contracts for moving an issue between projects."""

from pydantic import BaseModel, Field, field_validator
from typing import Any, Dict, List, Optional
from datetime import datetime

from common.dates import normalize_date


class IssueOverrides(BaseModel):
    """Field values to apply to the issue as it lands in the target project.

    Only fields that were explicitly passed count as present, so an explicit
    ``start_date=None`` clears the date while an omitted one keeps it.
    """

    name: Optional[str] = None
    description: Optional[str] = None
    start_date: Optional[datetime] = None
    end_date: Optional[datetime] = None
    goal: Optional[str] = None
    theme_color: Optional[str] = None
    archived: Optional[bool] = None
    progress: Optional[float] = Field(default=None, ge=0, le=100)

    model_config = {"extra": "forbid"}

    @field_validator("start_date", "end_date", mode="before")
    @classmethod
    def _normalize_dates(cls, value: Any) -> Optional[datetime]:
        return normalize_date(value)

    def has(self, field_name: str) -> bool:
        """True when the field was explicitly provided."""
        return field_name in self.model_fields_set

    def present(self) -> Dict[str, Any]:
        """The explicitly provided fields and their values."""
        return {name: getattr(self, name) for name in self.model_fields_set}


class RemovedAssignees(BaseModel):
    """Assignees dropped from one task because they are not target members."""

    task_id: str
    assignee_ids: List[str]


class MoveResult(BaseModel):
    """Outcome of a move.

    Optional fields are populated only when the matching condition occurred:
    dates were clamped, assignees were pruned, or tags were skipped.
    """

    final_name: str
    date_adjusted: bool = False
    original_start: Optional[datetime] = None
    original_end: Optional[datetime] = None
    adjusted_start: Optional[datetime] = None
    adjusted_end: Optional[datetime] = None
    removed_assignees: Optional[List[RemovedAssignees]] = None
    skipped_tags: Optional[List[str]] = None
