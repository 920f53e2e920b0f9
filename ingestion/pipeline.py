"""
Ingestion Pipeline - text to searchable records

Steps for one document:
1. Validate the chunking strategy (nothing happens on failure)
2. Chunk the text
3. Embed every chunk; a failed chunk keeps its error in
   metadata["embedding_error"] and is left out of the insert
4. Resolve the target collection. Without a collection id a new one is
   created, sized by the first successful embedding
5. Check every embedding against the collection dimension; one mismatch
   aborts the document before anything is inserted
6. Insert all embedded chunks as one batch

A document is processed to completion or not at all; only individual
chunk embedding failures are tolerated.

Usage:
    from ingestion import IngestionPipeline, OllamaEmbedder
    from vector_store import CollectionRegistry

    pipeline = IngestionPipeline(CollectionRegistry(), OllamaEmbedder())
    report = pipeline.ingest(None, text, ChunkingStrategy(kind="sentence"))
    print(report.collection_id, report.inserted_record_ids)
"""

import logging
import time
import uuid
from typing import Any, Optional

from chunking import ChunkingStrategy, DocumentChunk, TextChunker
from vector_store.exceptions import (
    DimensionMismatchError,
    EmbeddingFailureError,
    format_error_chain,
)
from vector_store.models import VectorInput
from vector_store.registry import CollectionRegistry

from .embedder import EmbeddingProvider
from .models import DocumentSource, EmbeddingResult, IngestionReport

logger = logging.getLogger(__name__)

DEFAULT_COLLECTION_NAME = "document_collection"


class IngestionPipeline:
    """
    Chunks, embeds and stores documents.

    Stateless apart from its collaborators; safe to share across threads.
    """

    def __init__(
        self,
        registry: CollectionRegistry,
        embedder: Optional[EmbeddingProvider] = None,
        chunker: Optional[TextChunker] = None,
        default_dimension: int = 768,
    ):
        """
        Initialize the pipeline.

        Args:
            registry: Registry that receives the records.
            embedder: Embedding provider. Required unless embed=False.
            chunker: Text chunker. Uses a default TextChunker if omitted.
            default_dimension: Dimension of auto-created collections when
                no chunk could be embedded.
        """
        self.registry = registry
        self.embedder = embedder
        self.chunker = chunker or TextChunker()
        self.default_dimension = default_dimension

    def ingest(
        self,
        collection_id: Optional[str],
        text: str,
        strategy: Optional[ChunkingStrategy] = None,
        embed: bool = True,
        collection_name: Optional[str] = None,
        source: Optional[DocumentSource] = None,
        document_id: Optional[str] = None,
    ) -> IngestionReport:
        """
        Ingest one document.

        Args:
            collection_id: Target collection, or None to create one.
            text: Plain document text.
            strategy: Chunking strategy (the chunker's default if omitted).
            embed: False only chunks (no embedding, no collection, no insert).
            collection_name: Name for an auto-created collection.
            source: Original document, recorded in record metadata.
            document_id: ID for the document (generated if omitted).

        Returns:
            IngestionReport with chunks and inserted record ids.

        Raises:
            InvalidStrategyError: Invalid strategy (before any work).
            CollectionNotFoundError: Unknown collection_id.
            DimensionMismatchError: An embedding does not fit the collection.
            EmbeddingFailureError: embed=True without an embedding provider.
        """
        start_time = time.time()
        strategy = (strategy or self.chunker.default_strategy).ensure_valid()
        document_id = document_id or uuid.uuid4().hex

        if collection_id is not None:
            self.registry.require(collection_id)
        if embed and self.embedder is None:
            raise EmbeddingFailureError("No embedding provider configured")

        chunks = self.chunker.chunk(text, strategy).chunks
        report = IngestionReport(
            document_id=document_id,
            strategy=strategy,
            chunks=chunks,
            chunk_count=len(chunks),
        )
        if not embed:
            report.processing_time_seconds = round(time.time() - start_time, 3)
            return report

        embedded = self._embed_chunks(chunks)
        report.embedded_count = len(embedded)
        report.failed_count = len(chunks) - len(embedded)

        if collection_id is not None:
            dimension = self.registry.require(collection_id).dimension
        elif embedded:
            dimension = embedded[0][1].dimension
        else:
            dimension = self.default_dimension

        for chunk, result in embedded:
            if len(result.vector) != dimension:
                raise DimensionMismatchError(
                    dimension,
                    len(result.vector),
                    f"Embedding of chunk {chunk.chunk_index} has dimension "
                    f"{len(result.vector)}, collection expects {dimension}",
                )

        if collection_id is None:
            collection_id = self.registry.create(
                self._collection_name(collection_name, source),
                dimension,
                description=f"Created by ingestion of document {document_id}",
            )
        report.collection_id = collection_id

        items = [
            VectorInput(
                vector=result.vector,
                metadata=self._record_metadata(chunk, result, document_id, source),
            )
            for chunk, result in embedded
        ]
        if items:
            report.inserted_record_ids = self.registry.insert_batch(collection_id, items)

        report.processing_time_seconds = round(time.time() - start_time, 3)
        logger.info(
            "Ingested document %s into %s: %d chunks, %d inserted, %d failed",
            document_id, collection_id, report.chunk_count,
            len(report.inserted_record_ids), report.failed_count,
        )
        return report

    def ingest_source(
        self,
        collection_id: Optional[str],
        source: DocumentSource,
        strategy: Optional[ChunkingStrategy] = None,
        embed: bool = True,
        collection_name: Optional[str] = None,
    ) -> IngestionReport:
        """Decode a DocumentSource to text and ingest it."""
        return self.ingest(
            collection_id,
            source.to_text(),
            strategy,
            embed=embed,
            collection_name=collection_name,
            source=source,
        )

    # -------------------------------------------------------------------------
    # Internal methods
    # -------------------------------------------------------------------------

    def _embed_chunks(
        self, chunks: list[DocumentChunk]
    ) -> list[tuple[DocumentChunk, EmbeddingResult]]:
        embedded: list[tuple[DocumentChunk, EmbeddingResult]] = []
        for chunk in chunks:
            try:
                result = self.embedder.embed(chunk.text)
            except EmbeddingFailureError as e:
                logger.warning(
                    "Embedding failed for chunk %d:\n%s",
                    chunk.chunk_index, format_error_chain(e),
                )
                chunk.metadata["embedding_error"] = str(e)
                continue
            chunk.embedding = result.vector
            embedded.append((chunk, result))
        return embedded

    @staticmethod
    def _collection_name(
        collection_name: Optional[str],
        source: Optional[DocumentSource],
    ) -> str:
        if collection_name:
            return collection_name
        if source is not None:
            return f"{source.stem}_collection"
        return DEFAULT_COLLECTION_NAME

    @staticmethod
    def _record_metadata(
        chunk: DocumentChunk,
        result: EmbeddingResult,
        document_id: str,
        source: Optional[DocumentSource],
    ) -> dict[str, Any]:
        metadata = {
            **chunk.metadata,
            "document_id": document_id,
            "chunk_id": chunk.chunk_id,
            "chunk_index": chunk.chunk_index,
            "start": chunk.start,
            "end": chunk.end,
            "text": chunk.text,
            "embedding_model": result.model,
            "tokens": result.tokens,
        }
        if source is not None:
            metadata["source"] = {
                "filename": source.filename,
                "mime_type": source.base_mime_type,
            }
        return metadata
