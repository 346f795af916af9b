"""Base document and blob store interfaces."""

from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional


@dataclass
class DocumentSnapshot:
    """A document as read from the store."""
    id: str
    path: str
    data: Dict[str, Any] = field(default_factory=dict)
    version: int = 0


class DocumentStore(ABC):
    """Path-addressed hierarchical document store.

    Paths alternate collection and document segments
    (``projects/p1/issues/i1``). Collections are implicit: a document's
    subcollections exist independently of the document itself, and deleting
    a document never cascades.
    """

    @property
    @abstractmethod
    def name(self) -> str:
        """Backend name (memory, ...)."""
        pass

    @abstractmethod
    async def get(self, path: str) -> Optional[DocumentSnapshot]:
        """Read one document, or None when it does not exist."""
        pass

    @abstractmethod
    async def list(
        self,
        collection_path: str,
        where: Optional[Dict[str, Any]] = None,
    ) -> List[DocumentSnapshot]:
        """List the documents directly inside a collection.

        Args:
            collection_path: Path of the collection
            where: Optional equality filters (field -> value)

        Returns:
            Snapshots in insertion order
        """
        pass

    @abstractmethod
    async def add(self, collection_path: str, data: Dict[str, Any]) -> str:
        """Create a document with a generated id and return the id."""
        pass

    @abstractmethod
    async def set(self, path: str, data: Dict[str, Any]) -> DocumentSnapshot:
        """Create or replace the document at path."""
        pass

    @abstractmethod
    async def update(
        self,
        path: str,
        changes: Dict[str, Any],
        expected_version: Optional[int] = None,
    ) -> DocumentSnapshot:
        """Merge changes into an existing document.

        Raises:
            NotFoundError: The document does not exist
            ConflictError: expected_version is given and the stored version differs
        """
        pass

    @abstractmethod
    async def delete(self, path: str) -> None:
        """Delete the document at path; deleting a missing document is a no-op."""
        pass


class BlobStore(ABC):
    """Path-addressed binary storage referenced by attachment records."""

    @property
    @abstractmethod
    def name(self) -> str:
        """Backend name (memory, ...)."""
        pass

    @abstractmethod
    async def upload(self, path: str, content: bytes, content_type: Optional[str] = None) -> None:
        """Store content at path, replacing any existing object."""
        pass

    @abstractmethod
    async def get_download_url(self, path: str) -> str:
        """Resolve a fresh download locator for the object at path.

        Raises:
            NotFoundError: No object is stored at path
        """
        pass

    @abstractmethod
    async def download(self, url: str) -> bytes:
        """Fetch content through a download locator."""
        pass

    @abstractmethod
    async def delete(self, path: str) -> None:
        """Delete the object at path.

        Raises:
            NotFoundError: No object is stored at path
        """
        pass
