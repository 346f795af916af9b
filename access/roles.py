"""Project role checks."""

from typing import Iterable, Union

from contracts import Project, Role
from errors import AuthorizationError, NotFoundError
from stores import DocumentStore
from common.storage_paths import project_path


class RoleGuard:
    """Resolves the caller's role on a project and enforces accepted roles.

    Identity resolution happens upstream; the guard is built per caller.
    """

    def __init__(self, store: DocumentStore, caller_id: str):
        self.store = store
        self.caller_id = caller_id

    async def ensure_project_role(
        self,
        project_id: str,
        roles: Iterable[Union[Role, str]],
    ) -> Role:
        """Return the caller's role if it is one of ``roles``.

        Raises:
            NotFoundError: The project does not exist
            AuthorizationError: The caller has no role, or one not accepted
        """
        snapshot = await self.store.get(project_path(project_id))
        if snapshot is None:
            raise NotFoundError(f"Project not found: {project_id}")
        project = Project.from_snapshot(snapshot)

        accepted = {Role(r) for r in roles}
        raw_role = project.roles.get(self.caller_id) if self.caller_id else None
        if raw_role is None or Role(raw_role) not in accepted:
            needed = ", ".join(sorted(r.value for r in accepted))
            raise AuthorizationError(
                f"You do not have permission for this action on project "
                f"'{project.name}' (requires: {needed})"
            )
        return Role(raw_role)
