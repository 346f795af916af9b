"""Error taxonomy shared by the stores, the progress engine and the orchestrator."""

from typing import Optional


STALE_DATA_MESSAGE = "The data is stale. Reload and try again."
GENERIC_FAILURE_MESSAGE = "The operation failed. Try again later."

# Store error codes that signal an optimistic-concurrency rejection
CONFLICT_CODES = ("aborted", "failed-precondition")


class TrackerError(Exception):
    """Base class for every error raised by the tracker core."""


class AuthorizationError(TrackerError):
    """Caller does not hold an accepted role on the project."""


class NotFoundError(TrackerError):
    """A project, issue or task document does not exist."""


class CapacityError(TrackerError):
    """A per-project limit (active issues, tags) would be exceeded."""


class ValidationError(TrackerError):
    """Date ordering, coverage or uniqueness rules were violated."""


class ConflictError(TrackerError):
    """A write was rejected because the document changed since it was read."""

    def __init__(self, message: str, code: str = "failed-precondition"):
        super().__init__(message)
        self.code = code


def is_conflict(error: BaseException) -> bool:
    """True for ConflictError or any store error carrying a conflict code."""
    if isinstance(error, ConflictError):
        return True
    code: Optional[str] = getattr(error, "code", None)
    return code in CONFLICT_CODES


def user_message(error: BaseException) -> str:
    """Message suitable for showing to an end user.

    Precondition and validation failures carry specific, actionable text and
    are returned verbatim. Conflicts are mapped to a generic stale-data hint so
    raw store codes never reach the user.
    """
    if is_conflict(error):
        return STALE_DATA_MESSAGE
    if isinstance(error, TrackerError):
        return str(error)
    return GENERIC_FAILURE_MESSAGE
