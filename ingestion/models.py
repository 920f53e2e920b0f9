"""
Data Models for the Ingestion Pipeline

Defines:
1. EmbeddingResult - vector produced by an embedding provider
2. DocumentSource - raw document bytes plus filename and MIME type
3. IngestionReport - outcome of ingesting one document
"""

import json
from pathlib import Path
from typing import Optional

from pydantic import BaseModel, Field

from chunking.models import ChunkingStrategy, DocumentChunk
from vector_store.exceptions import UnsupportedDocumentError

_JSON_MIME_TYPES = {"application/json", "application/ld+json"}


class EmbeddingResult(BaseModel):
    """Output of a single embedding call."""
    vector: list[float] = Field(
        ...,
        description="Dense embedding vector",
    )
    dimension: int = Field(
        ...,
        description="Length of the vector",
        gt=0,
    )
    model: str = Field(
        "",
        description="Model that produced the vector",
    )
    tokens: int = Field(
        0,
        description="Tokens consumed (reported or estimated)",
        ge=0,
    )


class DocumentSource(BaseModel):
    """
    A document handed over by an external extraction/storage layer.

    Only textual content is accepted; binary formats must be converted to
    text by the caller before ingestion.
    """
    filename: str = Field(
        ...,
        description="Original filename",
    )
    mime_type: str = Field(
        "text/plain",
        description="MIME type, optionally with a charset parameter",
    )
    raw_bytes: bytes = Field(
        b"",
        description="Document content",
    )

    @property
    def stem(self) -> str:
        return Path(self.filename).stem or "document"

    @property
    def base_mime_type(self) -> str:
        return self.mime_type.split(";")[0].strip().lower()

    @property
    def charset(self) -> str:
        for param in self.mime_type.split(";")[1:]:
            key, _, value = param.partition("=")
            if key.strip().lower() == "charset" and value.strip():
                return value.strip().strip('"')
        return "utf-8"

    def to_text(self) -> str:
        """
        Decode the document to plain text.

        text/* is decoded with its charset (utf-8 by default); JSON is
        pretty-printed so every key/value lands on its own line.

        Raises:
            UnsupportedDocumentError: For any other type, unknown charsets or
                malformed JSON.
        """
        mime_type = self.base_mime_type
        try:
            if mime_type.startswith("text/"):
                return self.raw_bytes.decode(self.charset, errors="replace")
            if mime_type in _JSON_MIME_TYPES:
                data = json.loads(self.raw_bytes.decode(self.charset))
                return json.dumps(data, indent=2, ensure_ascii=False)
        except (LookupError, ValueError) as e:
            raise UnsupportedDocumentError(self.mime_type, self.filename) from e
        raise UnsupportedDocumentError(self.mime_type, self.filename)


class IngestionReport(BaseModel):
    """Outcome of ingesting one document."""
    document_id: str = Field(
        ...,
        description="ID assigned to the ingested document",
    )
    collection_id: Optional[str] = Field(
        None,
        description="Target collection (None when embedding was disabled)",
    )
    strategy: ChunkingStrategy = Field(
        ...,
        description="Chunking strategy that was applied",
    )
    chunks: list[DocumentChunk] = Field(
        default_factory=list,
        description="All chunks, including ones whose embedding failed",
    )
    chunk_count: int = Field(
        0,
        description="Number of chunks produced",
    )
    embedded_count: int = Field(
        0,
        description="Number of chunks embedded successfully",
    )
    failed_count: int = Field(
        0,
        description="Number of chunks whose embedding failed",
    )
    inserted_record_ids: list[str] = Field(
        default_factory=list,
        description="Record ids in chunk order",
    )
    processing_time_seconds: float = Field(
        0.0,
        description="Wall time of the whole ingestion",
    )
