"""
Text Chunker - Core chunking logic for the ingestion pipeline

Takes plain text (already extracted by the caller) and a ChunkingStrategy
and produces a ChunkingResult of DocumentChunks whose text is always an
exact slice of the source.

Strategies:
1. fixed     - sliding character window of chunk_size, advancing by
               chunk_size - overlap; the last partial window is kept.
2. sentence  - sentences accumulated up to chunk_size; the next chunk
               re-includes trailing sentences worth >= overlap characters.
3. paragraph - blank-line separated paragraphs accumulated up to
               chunk_size, without overlap.
4. semantic  - currently runs the sentence strategy.

Usage:
    from chunking import TextChunker, ChunkingStrategy

    chunker = TextChunker()
    result = chunker.chunk(text, ChunkingStrategy(kind="fixed", chunk_size=100, overlap=20))
    for chunk in result.chunks:
        print(chunk.chunk_index, chunk.start, chunk.end)
"""

import logging
import re
from pathlib import Path
from typing import Any, Optional

from .models import (
    ChunkingResult,
    ChunkingStats,
    ChunkingStrategy,
    DocumentChunk,
)
from .sentence_splitter import sentence_spans, trim_span

logger = logging.getLogger(__name__)

_PARAGRAPH_BREAK = re.compile(r"\n\s*\n")


def paragraph_spans(text: str) -> list[tuple[int, int]]:
    """Return (start, end) offsets of blank-line separated paragraphs."""
    spans: list[tuple[int, int]] = []
    position = 0
    for separator in _PARAGRAPH_BREAK.finditer(text):
        span = trim_span(text, position, separator.start())
        if span:
            spans.append(span)
        position = separator.end()
    tail = trim_span(text, position, len(text))
    if tail:
        spans.append(tail)
    return spans


class TextChunker:
    """
    Splits text into ordered, offset-tracked chunks under a strategy.

    Stateless: one instance can be shared across threads.
    """

    def __init__(self, default_strategy: Optional[ChunkingStrategy] = None):
        self.default_strategy = default_strategy or ChunkingStrategy()

    def chunk(
        self,
        text: str,
        strategy: Optional[ChunkingStrategy] = None,
    ) -> ChunkingResult:
        """
        Chunk a text.

        Args:
            text: Plain source text.
            strategy: Strategy to apply. Uses the default strategy if omitted.

        Returns:
            ChunkingResult with all chunks and statistics.

        Raises:
            InvalidStrategyError: If the strategy fails validation. Raised
                before any chunking work is done.
        """
        strategy = (strategy or self.default_strategy).ensure_valid()
        text = text or ""

        if not text.strip():
            return ChunkingResult(strategy=strategy)

        if strategy.kind == "fixed":
            raw_chunks = self._fixed_chunks(text, strategy)
        elif strategy.kind == "paragraph":
            raw_chunks = self._paragraph_chunks(text, strategy)
        else:
            if strategy.kind == "semantic":
                logger.debug("Semantic chunking runs the sentence strategy")
            raw_chunks = self._sentence_chunks(text, strategy)

        chunks = self._create_chunk_objects(text, raw_chunks, strategy)
        logger.debug(
            "Chunked %d characters into %d chunks (%s)",
            len(text), len(chunks), strategy.kind,
        )
        return ChunkingResult(
            strategy=strategy,
            chunks=chunks,
            stats=self._compute_stats(chunks, text),
        )

    def chunk_file(
        self,
        path: str,
        strategy: Optional[ChunkingStrategy] = None,
        encoding: str = "utf-8",
    ) -> ChunkingResult:
        """Read a text file and chunk its contents."""
        return self.chunk(Path(path).read_text(encoding=encoding), strategy)

    # -------------------------------------------------------------------------
    # Strategies
    # -------------------------------------------------------------------------

    def _fixed_chunks(
        self, text: str, strategy: ChunkingStrategy
    ) -> list[dict[str, Any]]:
        chunks: list[dict[str, Any]] = []
        start = 0
        while start < len(text):
            end = min(start + strategy.chunk_size, len(text))
            chunks.append({"start": start, "end": end, "metadata": {}})
            start += strategy.step
            if start >= end:
                break
        return chunks

    def _sentence_chunks(
        self, text: str, strategy: ChunkingStrategy
    ) -> list[dict[str, Any]]:
        """
        Greedy sentence accumulation with sentence-granular overlap.

        The overlap carried into a new chunk is made of whole sentences from
        the end of the previous chunk, walking back until at least
        ``overlap`` characters are covered. The previous chunk's first
        sentence is never carried (otherwise a chunk could repeat entirely),
        and carried sentences are dropped from the front when they would
        push the new chunk past chunk_size together with the incoming one.
        """
        spans = sentence_spans(text)
        chunks: list[dict[str, Any]] = []
        current: list[int] = []
        carried_count = 0

        for i, (_, sentence_end) in enumerate(spans):
            if current and sentence_end - spans[current[0]][0] > strategy.chunk_size:
                chunks.append(self._sentence_chunk(spans, current, carried_count))
                carried = self._overlap_sentences(spans, current, strategy, sentence_end)
                current = carried + [i]
                carried_count = len(carried)
            else:
                current.append(i)

        if current:
            chunks.append(self._sentence_chunk(spans, current, carried_count))

        return chunks

    @staticmethod
    def _sentence_chunk(
        spans: list[tuple[int, int]],
        indices: list[int],
        carried_count: int,
    ) -> dict[str, Any]:
        return {
            "start": spans[indices[0]][0],
            "end": spans[indices[-1]][1],
            "metadata": {
                "sentence_count": len(indices),
                "overlap_sentences": carried_count,
            },
        }

    @staticmethod
    def _overlap_sentences(
        spans: list[tuple[int, int]],
        previous: list[int],
        strategy: ChunkingStrategy,
        incoming_end: int,
    ) -> list[int]:
        if strategy.overlap <= 0 or len(previous) < 2:
            return []

        previous_end = spans[previous[-1]][1]
        carried: list[int] = []
        for idx in reversed(previous[1:]):
            carried.insert(0, idx)
            if previous_end - spans[idx][0] >= strategy.overlap:
                break

        while carried and incoming_end - spans[carried[0]][0] > strategy.chunk_size:
            carried.pop(0)

        return carried

    def _paragraph_chunks(
        self, text: str, strategy: ChunkingStrategy
    ) -> list[dict[str, Any]]:
        if strategy.overlap:
            logger.debug("Paragraph chunking ignores overlap=%d", strategy.overlap)

        spans = paragraph_spans(text)
        chunks: list[dict[str, Any]] = []
        current: list[int] = []

        for i, (_, paragraph_end) in enumerate(spans):
            if current and paragraph_end - spans[current[0]][0] > strategy.chunk_size:
                chunks.append(self._paragraph_chunk(spans, current))
                current = [i]
            else:
                current.append(i)

        if current:
            chunks.append(self._paragraph_chunk(spans, current))

        return chunks

    @staticmethod
    def _paragraph_chunk(
        spans: list[tuple[int, int]], indices: list[int]
    ) -> dict[str, Any]:
        return {
            "start": spans[indices[0]][0],
            "end": spans[indices[-1]][1],
            "metadata": {"paragraph_count": len(indices)},
        }

    # -------------------------------------------------------------------------
    # Internal methods
    # -------------------------------------------------------------------------

    def _create_chunk_objects(
        self,
        text: str,
        raw_chunks: list[dict[str, Any]],
        strategy: ChunkingStrategy,
    ) -> list[DocumentChunk]:
        base_metadata = {
            **strategy.metadata,
            "strategy": strategy.kind,
            "chunk_size": strategy.chunk_size,
            "overlap": strategy.overlap,
        }
        if strategy.kind == "semantic":
            base_metadata["effective_strategy"] = "sentence"

        return [
            DocumentChunk(
                text=text[raw["start"]:raw["end"]],
                start=raw["start"],
                end=raw["end"],
                chunk_index=i,
                metadata={**base_metadata, **raw["metadata"]},
            )
            for i, raw in enumerate(raw_chunks)
        ]

    def _compute_stats(self, chunks: list[DocumentChunk], text: str) -> ChunkingStats:
        if not chunks:
            return ChunkingStats(source_characters=len(text))

        lengths = [c.length for c in chunks]
        return ChunkingStats(
            total_chunks=len(chunks),
            total_characters=sum(lengths),
            avg_chunk_characters=sum(lengths) / len(lengths),
            min_chunk_characters=min(lengths),
            max_chunk_characters=max(lengths),
            source_characters=len(text),
        )
