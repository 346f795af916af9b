"""Date normalization for values read back from the document store."""

from datetime import date, datetime, time, timezone
from typing import Any, Optional


def normalize_date(value: Any) -> Optional[datetime]:
    """Coerce a stored date-like value to an aware UTC datetime.

    Accepts datetime, date, ISO-8601 strings and store timestamp objects that
    expose ``to_datetime()`` or ``toDate()``. Anything that cannot be
    interpreted (including empty strings) becomes None. Naive values are
    taken to be UTC.
    """
    if value is None or value == "":
        return None

    if isinstance(value, datetime):
        converted = value
    elif isinstance(value, date):
        converted = datetime.combine(value, time.min)
    elif isinstance(value, str):
        text = value.strip()
        if text.endswith("Z"):
            text = text[:-1] + "+00:00"
        try:
            converted = datetime.fromisoformat(text)
        except ValueError:
            return None
    else:
        converter = getattr(value, "to_datetime", None) or getattr(value, "toDate", None)
        if not callable(converter):
            return None
        try:
            converted = converter()
        except (TypeError, ValueError):
            return None
        if not isinstance(converted, datetime):
            return None

    if converted.tzinfo is None:
        return converted.replace(tzinfo=timezone.utc)
    return converted.astimezone(timezone.utc)


def format_date(value: Optional[datetime]) -> str:
    """Render a date for user-facing messages (YYYY-MM-DD)."""
    if value is None:
        return "-"
    return value.strftime("%Y-%m-%d")


def utcnow() -> datetime:
    return datetime.now(timezone.utc)
