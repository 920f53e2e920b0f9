"""
Chunking Module - Offset-tracked text chunking for vector ingestion

Splits plain text into ordered chunks under one of four strategies
(fixed, sentence, paragraph, semantic). Every chunk is an exact slice of
the source text and carries its start/end offsets.

Quick Start:
    from chunking import TextChunker, ChunkingStrategy

    strategy = ChunkingStrategy(kind="sentence", chunk_size=500, overlap=100)
    result = TextChunker().chunk(text, strategy)
    result.save("chunks.json")
"""

__version__ = "1.0.0"

from .chunker import TextChunker, paragraph_spans
from .config import ChunkingServiceConfig
from .exceptions import ChunkingError, InvalidStrategyError
from .models import (
    STRATEGY_KINDS,
    ChunkingResult,
    ChunkingStats,
    ChunkingStrategy,
    DocumentChunk,
)
from .sentence_splitter import sentence_spans, split_sentences
from .service import ChunkingService
from .token_counter import count_tokens

__all__ = [
    "__version__",
    "TextChunker",
    "ChunkingService",
    "ChunkingServiceConfig",
    "ChunkingError",
    "InvalidStrategyError",
    "STRATEGY_KINDS",
    "ChunkingResult",
    "ChunkingStats",
    "ChunkingStrategy",
    "DocumentChunk",
    "paragraph_spans",
    "sentence_spans",
    "split_sentences",
    "count_tokens",
]
