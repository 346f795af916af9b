"""Authorization and tag collaborators backed by the document store."""

from .roles import RoleGuard
from .tags import TagDirectory

__all__ = [
    "RoleGuard",
    "TagDirectory",
]
