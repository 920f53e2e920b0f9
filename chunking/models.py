"""
Data Models for the Chunking Pipeline

Defines:
1. ChunkingStrategy - Strategy kind, chunk size and overlap
2. DocumentChunk - A text span with offsets into the source text
3. ChunkingStats - Size statistics over a chunking run
4. ChunkingResult - Complete chunking output

Design Principles:
- Pydantic v2 for validation and serialization
- Offsets are explicit: chunk.text == source[chunk.start:chunk.end]
- Strategy validation is an explicit step (ensure_valid) so that a bad
  configuration surfaces as InvalidStrategyError, never as a half-built model

Usage:
    strategy = ChunkingStrategy(kind="fixed", chunk_size=100, overlap=20)
    result = TextChunker().chunk(text, strategy)
    result.save("chunks.json")
"""

import json
import uuid
from datetime import datetime, timezone
from pathlib import Path
from typing import Any, Optional

from pydantic import BaseModel, ConfigDict, Field

from .exceptions import InvalidStrategyError

STRATEGY_KINDS = ("fixed", "sentence", "paragraph", "semantic")


class ChunkingStrategy(BaseModel):
    """
    Tagged chunking configuration.

    Accepts both snake_case names and the wire names used by API clients
    (``type``, ``chunkSize``). Invariant: ``0 <= overlap < chunk_size``.
    """
    model_config = ConfigDict(populate_by_name=True)

    kind: str = Field(
        "sentence",
        alias="type",
        description="Strategy kind: fixed, sentence, paragraph or semantic",
    )
    chunk_size: int = Field(
        1000,
        alias="chunkSize",
        description="Maximum chunk size in characters",
    )
    overlap: int = Field(
        200,
        description="Overlap between consecutive chunks in characters",
    )
    metadata: dict[str, Any] = Field(
        default_factory=dict,
        description="Extra metadata copied into every produced chunk",
    )

    def ensure_valid(self) -> "ChunkingStrategy":
        """
        Check the strategy invariants.

        Raises:
            InvalidStrategyError: If the kind is unknown, chunk_size is not
                positive, or overlap is outside [0, chunk_size).
        """
        if self.kind not in STRATEGY_KINDS:
            raise InvalidStrategyError(
                f"Unknown chunking strategy '{self.kind}' "
                f"(expected one of: {', '.join(STRATEGY_KINDS)})",
                strategy_kind=self.kind,
            )
        if self.chunk_size <= 0:
            raise InvalidStrategyError(
                f"chunk_size ({self.chunk_size}) must be greater than 0",
                strategy_kind=self.kind,
            )
        if self.overlap < 0:
            raise InvalidStrategyError(
                f"overlap ({self.overlap}) must not be negative",
                strategy_kind=self.kind,
            )
        if self.overlap >= self.chunk_size:
            raise InvalidStrategyError(
                f"overlap ({self.overlap}) must be less than "
                f"chunk_size ({self.chunk_size})",
                strategy_kind=self.kind,
            )
        return self

    @property
    def step(self) -> int:
        """Window advance for the fixed strategy."""
        return self.chunk_size - self.overlap


class DocumentChunk(BaseModel):
    """
    A contiguous span of the source text, ready for embedding.

    Chunks are transient: they live for the duration of one ingestion and
    are discarded once their vector has been committed to a record.
    """
    chunk_id: str = Field(
        default_factory=lambda: uuid.uuid4().hex,
        description="Unique chunk identifier",
    )
    text: str = Field(
        ...,
        description="The chunk text (exact slice of the source)",
    )
    start: int = Field(
        ...,
        description="Start offset into the source text (inclusive)",
        ge=0,
    )
    end: int = Field(
        ...,
        description="End offset into the source text (exclusive)",
        ge=0,
    )
    chunk_index: int = Field(
        ...,
        description="Position of this chunk among its siblings (0-indexed)",
        ge=0,
    )
    metadata: dict[str, Any] = Field(
        default_factory=dict,
        description="Strategy-specific metadata (sentence_count, errors, ...)",
    )
    embedding: Optional[list[float]] = Field(
        None,
        description="Embedding vector once produced",
    )

    @property
    def length(self) -> int:
        return self.end - self.start

    def to_dict(self) -> dict[str, Any]:
        return self.model_dump(mode="json")


class ChunkingStats(BaseModel):
    """Statistics about the chunking process."""
    total_chunks: int = 0
    total_characters: int = 0
    avg_chunk_characters: float = 0.0
    min_chunk_characters: int = 0
    max_chunk_characters: int = 0
    source_characters: int = 0


class ChunkingResult(BaseModel):
    """Complete result of chunking one text."""
    strategy: ChunkingStrategy = Field(
        ...,
        description="Strategy used for chunking",
    )
    chunks: list[DocumentChunk] = Field(
        default_factory=list,
        description="All chunks in source order",
    )
    stats: ChunkingStats = Field(
        default_factory=ChunkingStats,
        description="Chunking statistics",
    )
    created_at: datetime = Field(
        default_factory=lambda: datetime.now(timezone.utc),
        description="When chunking was performed",
    )

    @property
    def total_chunks(self) -> int:
        return len(self.chunks)

    def get_chunk_by_id(self, chunk_id: str) -> Optional[DocumentChunk]:
        """Find a chunk by its ID."""
        for chunk in self.chunks:
            if chunk.chunk_id == chunk_id:
                return chunk
        return None

    def to_dict(self) -> dict[str, Any]:
        return self.model_dump(mode="json", by_alias=True)

    def to_json(self, indent: int = 2) -> str:
        return json.dumps(self.to_dict(), ensure_ascii=False, indent=indent)

    def save(self, path: str) -> None:
        """Save chunking result to a JSON file."""
        Path(path).write_text(self.to_json(), encoding="utf-8")

    @classmethod
    def load(cls, path: str) -> "ChunkingResult":
        """Load chunking result from a JSON file."""
        data = json.loads(Path(path).read_text(encoding="utf-8"))
        return cls.model_validate(data)
