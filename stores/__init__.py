"""Document and blob store abstraction."""

from .base import BlobStore, DocumentSnapshot, DocumentStore
from .memory_store import InMemoryBlobStore, InMemoryDocumentStore
from .factory import (
    get_blob_store,
    get_document_store,
    register_blob_store,
    register_document_store,
)

__all__ = [
    "BlobStore",
    "DocumentSnapshot",
    "DocumentStore",
    "InMemoryBlobStore",
    "InMemoryDocumentStore",
    "get_blob_store",
    "get_document_store",
    "register_blob_store",
    "register_document_store",
]
