"""Orchestrator module for issue migration and cascading deletion."""

from .issue_mover import (
    DatePlan,
    IssueMigrationOrchestrator,
    check_coverage,
    move_issue,
    plan_dates,
    prune_assignees,
    resolve_name,
)
from .cascade import IssueDeleter, delete_issue

__all__ = [
    "DatePlan",
    "IssueMigrationOrchestrator",
    "check_coverage",
    "move_issue",
    "plan_dates",
    "prune_assignees",
    "resolve_name",
    "IssueDeleter",
    "delete_issue",
]
