"""Tests for vector_engine: VectorEngine, EngineConfig and logging setup."""

import logging

import pytest

from chunking import ChunkingStrategy, InvalidStrategyError
from conftest import FakeEmbedder, FakeLedgerClient
from ingestion import DocumentSource, OllamaEmbedder
from vector_engine import EngineConfig, VectorEngine, get_logger, setup_logging
from vector_engine.logging_config import PACKAGE_LOGGERS
from vector_store import HttpLedgerClient
from vector_store.exceptions import (
    CollectionNotFoundError,
    EmbeddingFailureError,
    InvalidNameError,
)
from vector_store.models import LedgerCollection


# ---------------------------------------------------------------------------
# Fixtures
# ---------------------------------------------------------------------------

@pytest.fixture
def small_config():
    return EngineConfig(default_dimension=8, hnsw_m=8, hnsw_ef_construction=64, hnsw_seed=7)


@pytest.fixture
def restore_loggers():
    """Undo setup_logging so handlers do not leak into other tests."""
    saved = {
        name: (logging.getLogger(name).level, list(logging.getLogger(name).handlers))
        for name in PACKAGE_LOGGERS
    }
    yield
    for name, (level, handlers) in saved.items():
        package_logger = logging.getLogger(name)
        for handler in package_logger.handlers:
            if handler not in handlers:
                handler.close()
        package_logger.handlers[:] = handlers
        package_logger.setLevel(level)


# ---------------------------------------------------------------------------
# Tests
# ---------------------------------------------------------------------------

class TestCollections:
    def test_create_uses_default_dimension(self, engine):
        cid = engine.create_collection("papers")
        assert engine.get_collection(cid).dimension == 8

    def test_create_explicit_dimension(self, engine):
        cid = engine.create_collection("papers", dimension=3, is_public=False)
        collection = engine.get_collection(cid)
        assert collection.dimension == 3
        assert collection.is_public is False

    def test_reserved_name(self, engine):
        with pytest.raises(InvalidNameError):
            engine.create_collection("default")
        assert engine.create_collection("default", allow_reserved_name=True)

    def test_list_and_delete(self, engine):
        a = engine.create_collection("a")
        b = engine.create_collection("b")
        assert [c.id for c in engine.list_collections()] == [a, b]

        assert engine.delete_collection(a) is True
        assert [c.id for c in engine.list_collections()] == [b]
        assert engine.get_collection(a) is None


class TestRecords:
    def test_insert_search_delete(self, engine):
        cid = engine.create_collection("papers", dimension=3)
        id1 = engine.insert(cid, [1.0, 0.0, 0.0], {"title": "A"})
        engine.insert(cid, [0.0, 1.0, 0.0])
        id3 = engine.insert(cid, [0.9, 0.1, 0.0])

        hits = engine.search(cid, [1.0, 0.0, 0.0], k=2)
        assert [h.record_id for h in hits] == [id1, id3]
        assert hits[0].metadata == {"title": "A"}

        assert engine.delete_record(cid, id1) is True
        assert engine.get_record(cid, id1) is None
        assert id1 not in [h.record_id for h in engine.search(cid, [1.0, 0.0, 0.0], k=3)]

    def test_insert_batch_and_list(self, engine):
        cid = engine.create_collection("papers", dimension=2)
        ids = engine.insert_batch(cid, [([1.0, 0.0], {"n": 1}), ([0.0, 1.0], {"n": 2})])

        page = engine.list_records(cid, limit=1)
        assert page.total == 2
        assert [r.id for r in page.records] == ids[:1]
        assert page.has_more is True

    def test_insert_text(self, engine, fake_embedder):
        cid = engine.create_collection("notes")
        rid = engine.insert_text(cid, "Hello vector world", {"lang": "en"})
        record = engine.get_record(cid, rid)

        assert record.vector == fake_embedder.embed("Hello vector world").vector
        assert record.metadata == {
            "lang": "en",
            "text": "Hello vector world",
            "embedding_model": "fake-embed",
            "tokens": 3,
        }

    def test_insert_text_unknown_collection(self, engine, fake_embedder):
        with pytest.raises(CollectionNotFoundError):
            engine.insert_text("missing", "text")
        assert fake_embedder.calls == []

    def test_insert_text_embedding_failure(self, engine):
        cid = engine.create_collection("notes")
        with pytest.raises(EmbeddingFailureError):
            engine.insert_text(cid, "this will FAIL")
        assert engine.get_collection(cid).record_count == 0

    def test_search_text(self, engine):
        cid = engine.create_collection("notes")
        target = engine.insert_text(cid, "The quick brown fox")
        engine.insert_text(cid, "Lorem ipsum dolor")

        hits = engine.search_text(cid, "The quick brown fox", k=1)
        assert hits[0].record_id == target


class TestDocuments:
    def test_chunk(self, engine):
        result = engine.chunk("a" * 250, ChunkingStrategy(kind="fixed", chunk_size=100, overlap=20))
        assert result.total_chunks == 4

    def test_chunk_invalid_strategy(self, engine):
        with pytest.raises(InvalidStrategyError):
            engine.chunk("text", ChunkingStrategy(kind="fixed", chunk_size=5, overlap=5))

    def test_ingest_document(self, engine):
        report = engine.ingest_document(None, "First sentence. Second sentence.", collection_name="doc")
        collection = engine.get_collection(report.collection_id)
        assert collection.name == "doc"
        assert collection.record_count == len(report.inserted_record_ids) == 1

    def test_ingest_source(self, engine):
        source = DocumentSource(filename="notes.md", mime_type="text/markdown", raw_bytes=b"Some notes.")
        report = engine.ingest_source(None, source)
        assert engine.get_collection(report.collection_id).name == "notes_collection"


class TestLedgerIntegration:
    def test_rehydrate_on_startup(self, small_config):
        client = FakeLedgerClient()
        client.remote = {"r1": LedgerCollection(id="r1", name="remote", dimension=8, record_count=3)}

        with VectorEngine(small_config, embedder=FakeEmbedder(), ledger_client=client) as engine:
            shadow = engine.get_collection("r1")
            assert shadow.rehydrated is True
            assert shadow.ledger_record_count == 3
            assert engine.stats()["rehydrated_collections"] == 1

    def test_rehydrate_disabled(self, small_config):
        small_config.rehydrate_on_startup = False
        client = FakeLedgerClient()
        client.remote = {"r1": LedgerCollection(id="r1", name="remote", dimension=8)}

        with VectorEngine(small_config, embedder=FakeEmbedder(), ledger_client=client) as engine:
            assert engine.get_collection("r1") is None
            assert [c.id for c in engine.list_collections(sync=True)] == ["r1"]

    def test_list_without_sync(self, small_config):
        small_config.rehydrate_on_startup = False
        client = FakeLedgerClient()
        client.remote = {"r1": LedgerCollection(id="r1", name="remote", dimension=8)}

        with VectorEngine(small_config, embedder=FakeEmbedder(), ledger_client=client) as engine:
            assert engine.list_collections(sync=False) == []

    def test_mutations_reach_ledger(self, small_config):
        client = FakeLedgerClient()
        with VectorEngine(small_config, embedder=FakeEmbedder(), ledger_client=client) as engine:
            cid = engine.create_collection("papers", dimension=2)
            engine.insert(cid, [1.0, 0.0])
            assert engine.ledger.flush(timeout=5)

        assert [p.collection_id for p in client.created] == [cid]
        assert client.updated[-1].record_count == 1

    def test_http_client_built_from_config(self, small_config):
        small_config.ledger_base_url = "http://ledger:9000"
        small_config.rehydrate_on_startup = False
        with VectorEngine(small_config, embedder=FakeEmbedder()) as engine:
            assert isinstance(engine.ledger.client, HttpLedgerClient)
            assert engine.ledger.client.base_url == "http://ledger:9000"

    def test_no_ledger_by_default(self, engine):
        assert engine.ledger.is_configured is False


class TestDiagnostics:
    def test_stats(self, engine):
        cid = engine.create_collection("papers", dimension=2)
        engine.insert(cid, [1.0, 0.0])
        stats = engine.stats()

        assert stats["total_collections"] == 1
        assert stats["total_records"] == 1
        assert stats["ledger"]["configured"] is False
        assert stats["index"]["m"] == 8

    def test_health_without_embedder_check(self, engine):
        assert engine.health() == {"status": "ok", "collections": 0}

    def test_default_embedder_is_ollama(self, small_config):
        with VectorEngine(small_config) as engine:
            assert isinstance(engine.embedder, OllamaEmbedder)
            assert engine.embedder.model == small_config.embedding_model


class TestEngineConfig:
    def test_defaults(self, monkeypatch):
        for name in ("VECTOR_DIMENSION", "HNSW_M", "LEDGER_BASE_URL", "HNSW_SEED", "LEDGER_REHYDRATE"):
            monkeypatch.delenv(name, raising=False)
        config = EngineConfig.from_env()

        assert config.default_dimension == 768
        assert config.hnsw_m == 16
        assert config.hnsw_seed is None
        assert config.ledger_enabled is False
        assert config.rehydrate_on_startup is True

    def test_from_env(self, monkeypatch):
        monkeypatch.setenv("VECTOR_DIMENSION", "384")
        monkeypatch.setenv("HNSW_M", "12")
        monkeypatch.setenv("HNSW_EF_SEARCH", "80")
        monkeypatch.setenv("HNSW_SEED", "5")
        monkeypatch.setenv("SEARCH_OVER_SAMPLE_FACTOR", "4")
        monkeypatch.setenv("EMBEDDING_MODEL", "mxbai-embed-large")
        monkeypatch.setenv("LEDGER_BASE_URL", "http://ledger")
        monkeypatch.setenv("LEDGER_TIMEOUT", "2.5")
        monkeypatch.setenv("LEDGER_REHYDRATE", "false")
        config = EngineConfig.from_env()

        assert config.default_dimension == 384
        assert config.hnsw_m == 12
        assert config.hnsw_ef_search == 80
        assert config.hnsw_seed == 5
        assert config.over_sample_factor == 4
        assert config.embedding_model == "mxbai-embed-large"
        assert config.ledger_enabled is True
        assert config.ledger_timeout == 2.5
        assert config.rehydrate_on_startup is False

    def test_hnsw_params(self, small_config):
        params = small_config.hnsw_params()
        assert params.m == 8
        assert params.ef_construction == 64
        assert params.seed == 7
        assert params.max_links_layer0 == 16


class TestLogging:
    def test_setup_configures_all_packages(self, restore_loggers):
        root = setup_logging(level=logging.DEBUG)

        assert root.name == "vector_engine"
        for name in PACKAGE_LOGGERS:
            package_logger = logging.getLogger(name)
            assert package_logger.level == logging.DEBUG
            assert len(package_logger.handlers) == 1

    def test_setup_twice_does_not_duplicate(self, restore_loggers):
        setup_logging()
        setup_logging()
        assert len(logging.getLogger("vector_store").handlers) == 1

    def test_log_file(self, restore_loggers, tmp_path):
        log_file = tmp_path / "engine.log"
        setup_logging(log_file=log_file)
        logging.getLogger("vector_store.registry").info("hello from the registry")

        for handler in logging.getLogger("vector_store").handlers:
            handler.flush()
        assert "hello from the registry" in log_file.read_text(encoding="utf-8")

    def test_get_logger(self):
        assert get_logger("api").name == "vector_engine.api"
        assert get_logger("vector_engine.app").name == "vector_engine.app"
