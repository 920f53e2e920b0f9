"""
Vector Store Module - in-memory collections with HNSW search

Holds named collections of vectors, each with its own HNSW index and
record store, and mirrors collection metadata to an optional external
ledger in the background.

Quick Start:
    from vector_store import CollectionRegistry

    registry = CollectionRegistry()
    cid = registry.create("papers", dimension=3)
    rid = registry.insert(cid, [1.0, 0.0, 0.0], {"title": "A"})

    hits = registry.search(cid, [0.9, 0.1, 0.0], k=1)
    print(hits[0].record_id, hits[0].score)
"""

__version__ = "1.0.0"

from .exceptions import (
    CollectionNotFoundError,
    DimensionMismatchError,
    EmbeddingFailureError,
    InvalidMetadataError,
    InvalidNameError,
    InvalidVectorError,
    LedgerUnavailableError,
    NotFoundError,
    RecordNotFoundError,
    UnsupportedDocumentError,
    VectorEngineError,
    error_kind,
)
from .ledger import HttpLedgerClient, LedgerClient, LedgerSync
from .models import (
    Collection,
    LedgerCollection,
    RecordPage,
    SearchHit,
    VectorInput,
    VectorRecord,
)
from .registry import CollectionRegistry

__all__ = [
    "__version__",
    "CollectionRegistry",
    "LedgerSync",
    "LedgerClient",
    "HttpLedgerClient",
    "Collection",
    "VectorRecord",
    "VectorInput",
    "SearchHit",
    "RecordPage",
    "LedgerCollection",
    "VectorEngineError",
    "NotFoundError",
    "CollectionNotFoundError",
    "RecordNotFoundError",
    "DimensionMismatchError",
    "InvalidNameError",
    "InvalidMetadataError",
    "InvalidVectorError",
    "EmbeddingFailureError",
    "LedgerUnavailableError",
    "UnsupportedDocumentError",
    "error_kind",
]
