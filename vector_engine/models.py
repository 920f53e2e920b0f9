"""
Request and response models for the HTTP API.
"""

import base64
import binascii
from typing import Any, Optional

from pydantic import BaseModel, ConfigDict, Field

from chunking.models import ChunkingStrategy
from ingestion.models import DocumentSource
from vector_store.models import Collection, SearchHit, VectorInput


class CreateCollectionRequest(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    name: str
    dimension: Optional[int] = None
    description: str = ""
    is_public: bool = Field(True, alias="isPublic")
    allow_reserved_name: bool = Field(False, alias="allowReservedName")


class CollectionListResponse(BaseModel):
    collections: list[Collection]
    total: int


class InsertRequest(BaseModel):
    vector: list[float]
    metadata: dict[str, Any] = Field(default_factory=dict)


class InsertResponse(BaseModel):
    record_id: str


class InsertBatchRequest(BaseModel):
    items: list[VectorInput]


class InsertBatchResponse(BaseModel):
    record_ids: list[str]


class InsertTextRequest(BaseModel):
    text: str
    metadata: dict[str, Any] = Field(default_factory=dict)


class SearchRequest(BaseModel):
    """Search by vector, or by query text (embedded server-side)."""
    vector: Optional[list[float]] = None
    query: Optional[str] = None
    k: int = Field(10, ge=1, le=1000)
    filter: Optional[dict[str, Any]] = None
    ef: Optional[int] = Field(None, ge=1)


class SearchResponse(BaseModel):
    collection_id: str
    results: list[SearchHit]


class DeleteResponse(BaseModel):
    deleted: bool


class DocumentPayload(BaseModel):
    filename: str
    mime_type: str = "text/plain"
    content_base64: str

    def to_source(self) -> DocumentSource:
        try:
            raw = base64.b64decode(self.content_base64, validate=True)
        except (binascii.Error, ValueError) as e:
            raise ValueError(f"content_base64 is not valid base64: {e}") from e
        return DocumentSource(filename=self.filename, mime_type=self.mime_type, raw_bytes=raw)


class IngestRequest(BaseModel):
    """Ingest plain text or an encoded text document."""
    collection_id: Optional[str] = None
    text: Optional[str] = None
    document: Optional[DocumentPayload] = None
    strategy: ChunkingStrategy = Field(default_factory=ChunkingStrategy)
    embed: bool = True
    collection_name: Optional[str] = None


class ChunkRequest(BaseModel):
    text: str
    strategy: ChunkingStrategy = Field(default_factory=ChunkingStrategy)
