"""
Pytest fixtures for the vector engine tests.
"""

import hashlib
import threading
from typing import Optional

import pytest

from ann_index import HNSWParams
from ingestion.models import EmbeddingResult
from vector_engine import EngineConfig, VectorEngine
from vector_store import CollectionRegistry, LedgerSync
from vector_store.exceptions import EmbeddingFailureError, LedgerUnavailableError
from vector_store.models import (
    LedgerCollection,
    LedgerCreatePayload,
    LedgerUpdatePayload,
)


class FakeEmbedder:
    """
    Deterministic embedder: the vector is derived from a sha256 of the text.

    Texts containing ``fail_marker`` raise EmbeddingFailureError.
    """

    def __init__(self, dimension: int = 8, fail_marker: str = "FAIL", model: str = "fake-embed"):
        self.dimension = dimension
        self.fail_marker = fail_marker
        self.model = model
        self.calls: list[str] = []

    def embed(self, text: str) -> EmbeddingResult:
        self.calls.append(text)
        if self.fail_marker and self.fail_marker in text:
            raise EmbeddingFailureError("fake failure", model=self.model)
        digest = hashlib.sha256(text.encode("utf-8")).digest()
        vector = [(digest[i % len(digest)] - 127.5) / 127.5 for i in range(self.dimension)]
        return EmbeddingResult(
            vector=vector,
            dimension=self.dimension,
            model=self.model,
            tokens=len(text.split()),
        )


class FakeLedgerClient:
    """In-memory ledger that can be told to fail the next N calls."""

    def __init__(self, failures: int = 0, status_code: Optional[int] = None):
        self.failures = failures
        self.status_code = status_code
        self.created: list[LedgerCreatePayload] = []
        self.updated: list[LedgerUpdatePayload] = []
        self.remote: dict[str, LedgerCollection] = {}
        self.attempts = 0
        self._lock = threading.Lock()

    def _maybe_fail(self) -> None:
        with self._lock:
            self.attempts += 1
            if self.failures > 0:
                self.failures -= 1
                raise LedgerUnavailableError("ledger down", status_code=self.status_code)

    def create_collection(self, payload: LedgerCreatePayload) -> None:
        self._maybe_fail()
        self.created.append(payload)

    def update_collection(self, payload: LedgerUpdatePayload) -> None:
        self._maybe_fail()
        self.updated.append(payload)

    def list_collections(self) -> list[str]:
        self._maybe_fail()
        return list(self.remote)

    def get_collection(self, collection_id: str) -> Optional[LedgerCollection]:
        self._maybe_fail()
        return self.remote.get(collection_id)


@pytest.fixture
def params():
    """Small, seeded HNSW parameters for reproducible graphs."""
    return HNSWParams(m=8, ef_construction=64, ef_search=32, initial_capacity=4, seed=42)


@pytest.fixture
def registry(params):
    """Registry without a ledger."""
    return CollectionRegistry(index_params=params)


@pytest.fixture
def fake_embedder():
    return FakeEmbedder()


@pytest.fixture
def fake_ledger():
    return FakeLedgerClient()


@pytest.fixture
def ledger_sync(fake_ledger):
    sync = LedgerSync(fake_ledger, max_retries=2, backoff_seconds=0.0, sleep=lambda _: None)
    yield sync
    sync.close()


@pytest.fixture
def engine(fake_embedder):
    """Engine with a fake embedder and no ledger."""
    config = EngineConfig(default_dimension=8, hnsw_m=8, hnsw_ef_construction=64, hnsw_seed=7)
    with VectorEngine(config, embedder=fake_embedder) as engine:
        yield engine
