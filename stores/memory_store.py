"""In-memory document and blob stores.

Reference implementations of the store interfaces: used by the test suite
and by the developer CLI to run the core against a JSON fixture.
"""

import copy
import secrets
import uuid
from typing import Any, Dict, List, Optional, Tuple
from urllib.parse import quote, unquote, urlsplit, parse_qs

from config import settings
from errors import ConflictError, NotFoundError
from .base import BlobStore, DocumentSnapshot, DocumentStore


def _parent(path: str) -> str:
    return path.rsplit("/", 1)[0] if "/" in path else ""


def _check_document_path(path: str) -> None:
    segments = path.strip("/").split("/")
    if len(segments) % 2 != 0 or any(not s for s in segments):
        raise ValueError(f"Not a document path: {path!r}")


class InMemoryDocumentStore(DocumentStore):
    """Dict-backed document store with per-document versions.

    Every write bumps the document's version; ``update`` with an
    ``expected_version`` rejects stale writers with ConflictError.
    """

    def __init__(self, documents: Optional[Dict[str, Dict[str, Any]]] = None):
        self._docs: Dict[str, Tuple[Dict[str, Any], int]] = {}
        for path, data in (documents or {}).items():
            _check_document_path(path)
            self._docs[path] = (copy.deepcopy(data), 1)

    @property
    def name(self) -> str:
        return "memory"

    def _snapshot(self, path: str) -> DocumentSnapshot:
        data, version = self._docs[path]
        return DocumentSnapshot(
            id=path.rsplit("/", 1)[-1],
            path=path,
            data=copy.deepcopy(data),
            version=version,
        )

    async def get(self, path: str) -> Optional[DocumentSnapshot]:
        if path not in self._docs:
            return None
        return self._snapshot(path)

    async def list(
        self,
        collection_path: str,
        where: Optional[Dict[str, Any]] = None,
    ) -> List[DocumentSnapshot]:
        results = []
        for path, (data, _) in self._docs.items():
            if _parent(path) != collection_path:
                continue
            if where and any(data.get(k) != v for k, v in where.items()):
                continue
            results.append(self._snapshot(path))
        return results

    async def add(self, collection_path: str, data: Dict[str, Any]) -> str:
        doc_id = uuid.uuid4().hex[:20]
        await self.set(f"{collection_path}/{doc_id}", data)
        return doc_id

    async def set(self, path: str, data: Dict[str, Any]) -> DocumentSnapshot:
        _check_document_path(path)
        version = self._docs[path][1] + 1 if path in self._docs else 1
        self._docs[path] = (copy.deepcopy(data), version)
        return self._snapshot(path)

    async def update(
        self,
        path: str,
        changes: Dict[str, Any],
        expected_version: Optional[int] = None,
    ) -> DocumentSnapshot:
        if path not in self._docs:
            raise NotFoundError(f"Document not found: {path}")
        data, version = self._docs[path]
        if expected_version is not None and expected_version != version:
            raise ConflictError(
                f"Version conflict on {path}: expected {expected_version}, found {version}",
                code="failed-precondition",
            )
        merged = {**data, **copy.deepcopy(changes)}
        self._docs[path] = (merged, version + 1)
        return self._snapshot(path)

    async def delete(self, path: str) -> None:
        self._docs.pop(path, None)

    def paths(self) -> List[str]:
        """All stored document paths, in insertion order."""
        return list(self._docs)

    def dump(self) -> Dict[str, Dict[str, Any]]:
        """Copy of every document keyed by path."""
        return {path: copy.deepcopy(data) for path, (data, _) in self._docs.items()}


class InMemoryBlobStore(BlobStore):
    """Dict-backed blob store issuing tokenized download URLs.

    Re-uploading an object rotates its token, so URLs handed out earlier
    stop resolving, as they would against a real bucket.
    """

    def __init__(
        self,
        blobs: Optional[Dict[str, bytes]] = None,
        scheme: Optional[str] = None,
        bucket: Optional[str] = None,
    ):
        self.scheme = scheme or settings.blob_url_scheme
        self.bucket = bucket or settings.blob_bucket
        self._blobs: Dict[str, Tuple[bytes, Optional[str], str]] = {}
        for path, content in (blobs or {}).items():
            self._blobs[path] = (bytes(content), None, secrets.token_hex(8))

    @property
    def name(self) -> str:
        return "memory"

    async def upload(self, path: str, content: bytes, content_type: Optional[str] = None) -> None:
        self._blobs[path] = (bytes(content), content_type, secrets.token_hex(8))

    async def get_download_url(self, path: str) -> str:
        if path not in self._blobs:
            raise NotFoundError(f"Blob not found: {path}")
        token = self._blobs[path][2]
        return f"{self.scheme}://{self.bucket}/{quote(path, safe='')}?token={token}"

    async def download(self, url: str) -> bytes:
        parts = urlsplit(url)
        if parts.scheme != self.scheme or parts.netloc != self.bucket:
            raise NotFoundError(f"Unknown download URL: {url}")
        path = unquote(parts.path.lstrip("/"))
        token = parse_qs(parts.query).get("token", [""])[0]
        stored = self._blobs.get(path)
        if stored is None or stored[2] != token:
            raise NotFoundError(f"Download URL no longer valid: {url}")
        return stored[0]

    async def delete(self, path: str) -> None:
        if path not in self._blobs:
            raise NotFoundError(f"Blob not found: {path}")
        del self._blobs[path]

    def exists(self, path: str) -> bool:
        return path in self._blobs

    def paths(self) -> List[str]:
        return list(self._blobs)

    def read(self, path: str) -> bytes:
        """Stored content at path, bypassing download URLs."""
        if path not in self._blobs:
            raise NotFoundError(f"Blob not found: {path}")
        return self._blobs[path][0]

    def content_type(self, path: str) -> Optional[str]:
        return self._blobs[path][1]
