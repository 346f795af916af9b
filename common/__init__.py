"""Shared date and path helpers."""

from .dates import normalize_date, format_date, utcnow
from . import storage_paths

__all__ = [
    "normalize_date",
    "format_date",
    "utcnow",
    "storage_paths",
]
