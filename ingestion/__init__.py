"""
Ingestion Module - chunk, embed and store documents

Quick Start:
    from ingestion import IngestionPipeline, OllamaEmbedder
    from vector_store import CollectionRegistry

    pipeline = IngestionPipeline(CollectionRegistry(), OllamaEmbedder())
    report = pipeline.ingest(None, "First sentence. Second sentence.")
"""

from .embedder import EmbeddingProvider, OllamaEmbedder
from .models import DocumentSource, EmbeddingResult, IngestionReport
from .pipeline import IngestionPipeline

__all__ = [
    "IngestionPipeline",
    "EmbeddingProvider",
    "OllamaEmbedder",
    "EmbeddingResult",
    "DocumentSource",
    "IngestionReport",
]
