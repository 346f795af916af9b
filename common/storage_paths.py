"""Document and blob path builders for the project hierarchy.

Every path the core reads or writes goes through these helpers so the
layout lives in exactly one place:

    projects/{pid}
    projects/{pid}/tags/{tag_id}
    projects/{pid}/issues/{iid}
    projects/{pid}/issues/{iid}/tasks/{tid}
    projects/{pid}/issues/{iid}/tasks/{tid}/comments/{cid}
    projects/{pid}/issues/{iid}/tasks/{tid}/attachments/{aid}
"""

import re
import unicodedata


_WHITESPACE = re.compile(r"\s+")
_UNSAFE = re.compile(r"[^a-zA-Z0-9_.-]")


def project_path(project_id: str) -> str:
    return f"projects/{project_id}"


def tags_collection(project_id: str) -> str:
    return f"{project_path(project_id)}/tags"


def issues_collection(project_id: str) -> str:
    return f"{project_path(project_id)}/issues"


def issue_path(project_id: str, issue_id: str) -> str:
    return f"{issues_collection(project_id)}/{issue_id}"


def tasks_collection(project_id: str, issue_id: str) -> str:
    return f"{issue_path(project_id, issue_id)}/tasks"


def task_path(project_id: str, issue_id: str, task_id: str) -> str:
    return f"{tasks_collection(project_id, issue_id)}/{task_id}"


def comments_collection(project_id: str, issue_id: str, task_id: str) -> str:
    return f"{task_path(project_id, issue_id, task_id)}/comments"


def attachments_collection(project_id: str, issue_id: str, task_id: str) -> str:
    return f"{task_path(project_id, issue_id, task_id)}/attachments"


def safe_file_name(file_name: str) -> str:
    """Make a file name safe for use inside a blob path.

    NFKC-normalizes, collapses whitespace runs to ``_`` and replaces every
    character outside ``[a-zA-Z0-9_.-]`` with ``_``.
    """
    normalized = unicodedata.normalize("NFKC", file_name)
    normalized = _WHITESPACE.sub("_", normalized)
    return _UNSAFE.sub("_", normalized)


def attachment_blob_path(
    project_id: str,
    issue_id: str,
    task_id: str,
    attachment_id: str,
    file_name: str,
) -> str:
    """Blob path for an attachment's content."""
    collection = attachments_collection(project_id, issue_id, task_id)
    return f"{collection}/{attachment_id}_{safe_file_name(file_name)}"
