"""
Data Models for the Vector Store

Defines:
1. Collection - metadata of a named vector space (one index, one record store)
2. VectorRecord - an immutable stored vector with metadata
3. VectorInput - a vector/metadata pair submitted for insertion
4. SearchHit - a single search result with cosine similarity
5. RecordPage - a page of live records in insertion order
6. LedgerCollection, LedgerCreatePayload, LedgerUpdatePayload - ledger wire models

Design Principles:
- Pydantic v2 for validation (consistent with chunking and ann_index)
- Ledger payloads use camelCase aliases on the wire
- Registry hands out copies; mutating a returned model never touches state
"""

from datetime import datetime, timezone
from typing import Any, Optional

from pydantic import BaseModel, ConfigDict, Field


def utc_now() -> datetime:
    return datetime.now(timezone.utc)


class Collection(BaseModel):
    """A named vector space with a fixed dimension."""
    id: str = Field(
        ...,
        description="Opaque identifier, never reused",
    )
    name: str = Field(
        ...,
        description="Display name",
    )
    description: str = Field(
        "",
        description="Free-text description",
    )
    dimension: int = Field(
        ...,
        description="Length of every vector in this collection",
        gt=0,
    )
    is_public: bool = Field(
        True,
        description="Visibility flag forwarded to the ledger",
    )
    record_count: int = Field(
        0,
        description="Number of live (not tombstoned) records held locally",
        ge=0,
    )
    created: datetime = Field(
        default_factory=utc_now,
        description="Creation time (UTC)",
    )
    updated: datetime = Field(
        default_factory=utc_now,
        description="Time of the last mutation (UTC)",
    )
    rehydrated: bool = Field(
        False,
        description="True for shadows synthesised from the ledger (empty index)",
    )
    ledger_record_count: Optional[int] = Field(
        None,
        description="Record count reported by the ledger for shadows",
    )


class VectorRecord(BaseModel):
    """A stored vector. Immutable once written; deletion is a tombstone."""
    model_config = ConfigDict(frozen=True)

    id: str = Field(
        ...,
        description="Record identifier, unique within its collection",
    )
    vector: list[float] = Field(
        ...,
        description="Vector exactly as inserted",
    )
    metadata: dict[str, Any] = Field(
        default_factory=dict,
        description="Validated metadata (str/int/float/bool/nested maps)",
    )
    timestamp: datetime = Field(
        default_factory=utc_now,
        description="Insertion time (UTC)",
    )
    internal_id: int = Field(
        ...,
        description="Arena slot of this record in the collection's index",
        ge=0,
    )


class VectorInput(BaseModel):
    """A vector and its metadata, as submitted to insert_batch."""
    vector: list[float] = Field(
        ...,
        description="Vector to insert",
    )
    metadata: dict[str, Any] = Field(
        default_factory=dict,
        description="Metadata to attach",
    )


class SearchHit(BaseModel):
    """A single search result."""
    record_id: str = Field(
        ...,
        description="ID of the matching record",
    )
    score: float = Field(
        ...,
        description="Cosine similarity (1 = identical direction)",
    )
    metadata: dict[str, Any] = Field(
        default_factory=dict,
        description="Record metadata",
    )


class RecordPage(BaseModel):
    """A page of live records in insertion order."""
    records: list[VectorRecord] = Field(
        default_factory=list,
        description="Records on this page",
    )
    total: int = Field(
        0,
        description="Number of live records in the collection",
    )
    limit: int = Field(
        100,
        description="Requested page size",
    )
    offset: int = Field(
        0,
        description="Requested offset",
    )
    has_more: bool = Field(
        False,
        description="True if offset + len(records) < total",
    )


# =============================================================================
# LEDGER WIRE MODELS
# =============================================================================


class LedgerCollection(BaseModel):
    """Collection metadata as known to the external ledger."""
    model_config = ConfigDict(populate_by_name=True)

    id: str = Field(..., alias="collectionId")
    name: str = ""
    description: str = ""
    dimension: int = 0
    is_public: bool = Field(True, alias="isPublic")
    record_count: int = Field(0, alias="recordCount")
    created: Optional[datetime] = None
    updated: Optional[datetime] = None


class LedgerCreatePayload(BaseModel):
    """Message sent to the ledger when a collection is created."""
    model_config = ConfigDict(populate_by_name=True)

    collection_id: str = Field(..., alias="collectionId")
    name: str
    description: str = ""
    dimension: int
    is_public: bool = Field(True, alias="isPublic")

    @classmethod
    def from_collection(cls, collection: Collection) -> "LedgerCreatePayload":
        return cls(
            collection_id=collection.id,
            name=collection.name,
            description=collection.description,
            dimension=collection.dimension,
            is_public=collection.is_public,
        )


class LedgerUpdatePayload(BaseModel):
    """Message sent to the ledger after records were inserted or deleted."""
    model_config = ConfigDict(populate_by_name=True)

    collection_id: str = Field(..., alias="collectionId")
    record_count: int = Field(..., alias="recordCount")
    content_hash: str = Field(..., alias="opaqueContentHash")
