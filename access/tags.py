"""Project-scoped tag directory."""

from typing import List, Optional

from config import settings
from contracts import Tag
from errors import CapacityError, ValidationError
from stores import DocumentStore
from common.dates import utcnow
from common.storage_paths import tags_collection


class TagDirectory:
    """Lists and creates the tags of a project."""

    def __init__(self, store: DocumentStore, max_tags: Optional[int] = None):
        self.store = store
        self.max_tags = settings.max_tags_per_project if max_tags is None else max_tags

    async def list_tags(self, project_id: str) -> List[Tag]:
        snapshots = await self.store.list(tags_collection(project_id))
        return [Tag.from_snapshot(s) for s in snapshots]

    async def create_tag(
        self,
        project_id: str,
        name: str,
        color: Optional[str] = None,
    ) -> str:
        """Create a tag and return its id.

        Raises:
            ValidationError: Blank name, or the name is already used in the project
            CapacityError: The project already holds max_tags tags
        """
        if not name or not name.strip():
            raise ValidationError("Tag name must not be empty")

        existing = await self.list_tags(project_id)
        if any(tag.name == name for tag in existing):
            raise ValidationError(f'Tag name "{name}" is already used in this project')
        if len(existing) >= self.max_tags:
            raise CapacityError(
                f"This project already has the maximum of {self.max_tags} tags"
            )

        tag = Tag(name=name, color=color or None, created_at=utcnow())
        return await self.store.add(tags_collection(project_id), tag.to_document())
