"""
Vector Engine - in-memory vector search with document ingestion

Quick Start:
    from vector_engine import EngineConfig, VectorEngine

    engine = VectorEngine(EngineConfig(default_dimension=3))
    cid = engine.create_collection("papers")
    engine.insert(cid, [1.0, 0.0, 0.0])
    hits = engine.search(cid, [1.0, 0.0, 0.0], k=1)
    engine.close()
"""

__version__ = "1.0.0"

from .config import EngineConfig
from .engine import VectorEngine
from .logging_config import get_logger, setup_logging

__all__ = [
    "__version__",
    "EngineConfig",
    "VectorEngine",
    "setup_logging",
    "get_logger",
]
