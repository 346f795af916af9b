"""Factory for creating document and blob stores."""

from typing import Dict, Optional, Type

from config import settings
from .base import BlobStore, DocumentStore
from .memory_store import InMemoryBlobStore, InMemoryDocumentStore


# Registry of available backends
DOCUMENT_STORES: Dict[str, Type[DocumentStore]] = {
    "memory": InMemoryDocumentStore,
    "in-memory": InMemoryDocumentStore,
}

BLOB_STORES: Dict[str, Type[BlobStore]] = {
    "memory": InMemoryBlobStore,
    "in-memory": InMemoryBlobStore,
}


def register_document_store(name: str, store_class: Type[DocumentStore]) -> None:
    """Make a document store backend available to get_document_store."""
    DOCUMENT_STORES[name.lower()] = store_class


def register_blob_store(name: str, store_class: Type[BlobStore]) -> None:
    """Make a blob store backend available to get_blob_store."""
    BLOB_STORES[name.lower()] = store_class


def get_document_store(backend: Optional[str] = None, **kwargs) -> DocumentStore:
    """Get a document store instance.

    Args:
        backend: Backend name (defaults to settings.document_store_backend)
        **kwargs: Passed to the backend constructor

    Examples:
        get_document_store()
        get_document_store("memory", documents={"projects/p1": {...}})
    """
    key = (backend or settings.document_store_backend).lower()
    if key not in DOCUMENT_STORES:
        raise ValueError(
            f"Unknown document store: {backend}. "
            f"Available: {list(DOCUMENT_STORES.keys())}"
        )
    return DOCUMENT_STORES[key](**kwargs)


def get_blob_store(backend: Optional[str] = None, **kwargs) -> BlobStore:
    """Get a blob store instance.

    Args:
        backend: Backend name (defaults to settings.blob_store_backend)
        **kwargs: Passed to the backend constructor
    """
    key = (backend or settings.blob_store_backend).lower()
    if key not in BLOB_STORES:
        raise ValueError(
            f"Unknown blob store: {backend}. "
            f"Available: {list(BLOB_STORES.keys())}"
        )
    return BLOB_STORES[key](**kwargs)
