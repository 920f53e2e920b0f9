"""
Vector Engine - the boundary surface of the in-memory vector search core

Wires the collection registry, the ledger sync, the embedding provider
and the ingestion pipeline together and exposes the operations callers
use. Transport (HTTP, CLI) lives elsewhere and only talks to this class.

Usage:
    from vector_engine import EngineConfig, VectorEngine

    with VectorEngine(EngineConfig.from_env()) as engine:
        cid = engine.create_collection("papers", dimension=3)
        rid = engine.insert(cid, [1.0, 0.0, 0.0], {"title": "A"})
        hits = engine.search(cid, [1.0, 0.0, 0.0], k=1)
"""

import logging
from typing import Any, Iterable, Mapping, Optional, Sequence

from chunking import ChunkingResult, ChunkingStrategy, TextChunker
from ingestion import (
    DocumentSource,
    EmbeddingProvider,
    IngestionPipeline,
    IngestionReport,
    OllamaEmbedder,
)
from vector_store import (
    Collection,
    CollectionRegistry,
    HttpLedgerClient,
    LedgerClient,
    LedgerSync,
    RecordPage,
    SearchHit,
    VectorRecord,
)
from vector_store.metadata import MetadataFilter
from vector_store.registry import BatchItem

from .config import EngineConfig

logger = logging.getLogger(__name__)


class VectorEngine:
    """
    Facade over the registry, ledger sync and ingestion pipeline.

    Thread-safe; one instance serves all request workers.
    """

    def __init__(
        self,
        config: Optional[EngineConfig] = None,
        embedder: Optional[EmbeddingProvider] = None,
        ledger_client: Optional[LedgerClient] = None,
    ):
        """
        Initialize the engine.

        Args:
            config: Engine configuration. Uses defaults if not provided.
            embedder: Embedding provider. An OllamaEmbedder is created from
                the config if not provided.
            ledger_client: Ledger transport. An HttpLedgerClient is created
                when the config names a ledger URL; otherwise syncing is off.
        """
        self.config = config or EngineConfig()

        if ledger_client is None and self.config.ledger_enabled:
            ledger_client = HttpLedgerClient(
                self.config.ledger_base_url,
                timeout=self.config.ledger_timeout,
            )
        self.ledger = LedgerSync(
            ledger_client,
            max_retries=self.config.ledger_max_retries,
            backoff_seconds=self.config.ledger_backoff_seconds,
        )

        self.registry = CollectionRegistry(
            index_params=self.config.hnsw_params(),
            over_sample_factor=self.config.over_sample_factor,
            ledger=self.ledger,
        )
        self.embedder = embedder or OllamaEmbedder(
            model=self.config.embedding_model,
            base_url=self.config.ollama_base_url,
        )
        self.chunker = TextChunker()
        self.pipeline = IngestionPipeline(
            self.registry,
            self.embedder,
            chunker=self.chunker,
            default_dimension=self.config.default_dimension,
        )

        if self.config.rehydrate_on_startup and self.ledger.is_configured:
            self.rehydrate()

    def __enter__(self) -> "VectorEngine":
        return self

    def __exit__(self, *exc_info) -> None:
        self.close()

    # -------------------------------------------------------------------------
    # Collections
    # -------------------------------------------------------------------------

    def create_collection(
        self,
        name: str,
        dimension: Optional[int] = None,
        description: str = "",
        is_public: bool = True,
        allow_reserved_name: bool = False,
    ) -> str:
        """Create a collection; dimension defaults to config.default_dimension."""
        return self.registry.create(
            name,
            dimension if dimension is not None else self.config.default_dimension,
            description=description,
            is_public=is_public,
            allow_reserved_name=allow_reserved_name,
        )

    def get_collection(self, collection_id: str) -> Optional[Collection]:
        return self.registry.get(collection_id)

    def list_collections(self, sync: bool = True) -> list[Collection]:
        """
        List collections.

        Args:
            sync: Also adopt ledger-known collections missing locally
                (best effort, no-op without a ledger).
        """
        if sync:
            self.rehydrate()
        return self.registry.list_collections()

    def delete_collection(self, collection_id: str) -> bool:
        return self.registry.delete_collection(collection_id)

    def rehydrate(self) -> list[str]:
        """Adopt ledger-known collections as empty shadows."""
        return self.ledger.rehydrate(self.registry)

    # -------------------------------------------------------------------------
    # Records
    # -------------------------------------------------------------------------

    def insert(
        self,
        collection_id: str,
        vector: Sequence[float],
        metadata: Optional[Mapping[str, Any]] = None,
    ) -> str:
        return self.registry.insert(collection_id, vector, metadata)

    def insert_batch(self, collection_id: str, items: Iterable[BatchItem]) -> list[str]:
        return self.registry.insert_batch(collection_id, items)

    def insert_text(
        self,
        collection_id: str,
        text: str,
        metadata: Optional[Mapping[str, Any]] = None,
    ) -> str:
        """
        Embed a text and insert it as one record.

        The record metadata gains ``text``, ``embedding_model`` and ``tokens``.

        Raises:
            EmbeddingFailureError: If the text cannot be embedded.
        """
        self.registry.require(collection_id)
        result = self.embedder.embed(text)
        return self.registry.insert(
            collection_id,
            result.vector,
            {
                **(metadata or {}),
                "text": text,
                "embedding_model": result.model,
                "tokens": result.tokens,
            },
        )

    def get_record(self, collection_id: str, record_id: str) -> Optional[VectorRecord]:
        return self.registry.get_record(collection_id, record_id)

    def delete_record(self, collection_id: str, record_id: str) -> bool:
        return self.registry.delete(collection_id, record_id)

    def list_records(
        self,
        collection_id: str,
        limit: int = 100,
        offset: int = 0,
    ) -> RecordPage:
        return self.registry.list_records(collection_id, limit=limit, offset=offset)

    # -------------------------------------------------------------------------
    # Search
    # -------------------------------------------------------------------------

    def search(
        self,
        collection_id: str,
        vector: Sequence[float],
        k: int = 10,
        metadata_filter: Optional[MetadataFilter] = None,
        ef: Optional[int] = None,
    ) -> list[SearchHit]:
        return self.registry.search(
            collection_id, vector, k=k, metadata_filter=metadata_filter, ef=ef
        )

    def search_text(
        self,
        collection_id: str,
        query: str,
        k: int = 10,
        metadata_filter: Optional[MetadataFilter] = None,
        ef: Optional[int] = None,
    ) -> list[SearchHit]:
        """Embed a query text and search with it."""
        self.registry.require(collection_id)
        result = self.embedder.embed(query)
        return self.search(collection_id, result.vector, k, metadata_filter, ef)

    # -------------------------------------------------------------------------
    # Documents
    # -------------------------------------------------------------------------

    def chunk(
        self,
        text: str,
        strategy: Optional[ChunkingStrategy] = None,
    ) -> ChunkingResult:
        """Chunk a text without embedding or storing it."""
        return self.chunker.chunk(text, strategy)

    def ingest_document(
        self,
        collection_id: Optional[str],
        text: str,
        strategy: Optional[ChunkingStrategy] = None,
        embed: bool = True,
        collection_name: Optional[str] = None,
        source: Optional[DocumentSource] = None,
    ) -> IngestionReport:
        return self.pipeline.ingest(
            collection_id,
            text,
            strategy,
            embed=embed,
            collection_name=collection_name,
            source=source,
        )

    def ingest_source(
        self,
        collection_id: Optional[str],
        source: DocumentSource,
        strategy: Optional[ChunkingStrategy] = None,
        embed: bool = True,
        collection_name: Optional[str] = None,
    ) -> IngestionReport:
        return self.pipeline.ingest_source(
            collection_id,
            source,
            strategy,
            embed=embed,
            collection_name=collection_name,
        )

    # -------------------------------------------------------------------------
    # Diagnostics and lifecycle
    # -------------------------------------------------------------------------

    def stats(self) -> dict[str, Any]:
        return {
            **self.registry.stats(),
            "ledger": self.ledger.stats(),
            "index": {
                "m": self.config.hnsw_m,
                "ef_construction": self.config.hnsw_ef_construction,
                "ef_search": self.config.hnsw_ef_search,
                "over_sample_factor": self.config.over_sample_factor,
            },
        }

    def health(self) -> dict[str, Any]:
        result: dict[str, Any] = {"status": "ok", "collections": len(self.registry)}
        health_check = getattr(self.embedder, "health_check", None)
        if callable(health_check):
            result["embedder"] = health_check()
        return result

    def close(self) -> None:
        """Deliver pending ledger messages and stop the ledger worker."""
        self.ledger.close()
        logger.debug("Vector engine closed")
