"""Tests for ingestion.embedder: OllamaEmbedder."""

import ollama
import pytest
from unittest.mock import MagicMock, patch

from ingestion.embedder import OllamaEmbedder
from vector_store.exceptions import EmbeddingFailureError


# ---------------------------------------------------------------------------
# Fixtures
# ---------------------------------------------------------------------------

FAKE_EMBEDDING = [0.1] * 768  # 768-dimensional fake embedding


@pytest.fixture
def mock_client():
    """Create a mock Ollama client."""
    with patch("ingestion.embedder.ollama.Client") as MockClient:
        client = MockClient.return_value
        client.embed.return_value = {
            "embeddings": [FAKE_EMBEDDING],
            "prompt_eval_count": 5,
        }
        client.list.return_value = MagicMock(
            models=[
                MagicMock(model="nomic-embed-text:latest"),
                MagicMock(model="llama3:latest"),
            ]
        )
        yield client


@pytest.fixture
def embedder(mock_client):
    """Create an embedder with mocked Ollama client."""
    return OllamaEmbedder(model="nomic-embed-text")


# ---------------------------------------------------------------------------
# Tests
# ---------------------------------------------------------------------------

class TestEmbed:
    def test_single_text(self, embedder, mock_client):
        result = embedder.embed("Ein Testtext")
        assert result.vector == FAKE_EMBEDDING
        assert result.dimension == 768
        assert result.model == "nomic-embed-text"
        assert result.tokens == 5
        mock_client.embed.assert_called_once_with(model="nomic-embed-text", input="Ein Testtext")

    def test_client_created_with_host(self, mock_client):
        with patch("ingestion.embedder.ollama.Client") as MockClient:
            OllamaEmbedder(base_url="http://ollama:11434")
        MockClient.assert_called_once_with(host="http://ollama:11434")

    def test_injected_client(self):
        client = MagicMock()
        client.embed.return_value = {"embeddings": [[1.0, 2.0]], "prompt_eval_count": 1}
        assert OllamaEmbedder(client=client).embed("x").vector == [1.0, 2.0]

    def test_token_fallback(self, embedder, mock_client):
        mock_client.embed.return_value = {"embeddings": [FAKE_EMBEDDING]}
        with patch("ingestion.embedder.count_tokens", return_value=42) as mock_count:
            result = embedder.embed("Test")
        assert result.tokens == 42
        mock_count.assert_called_once_with("Test")

    def test_sets_dimensions(self, embedder, mock_client):
        assert embedder.dimensions is None
        embedder.embed("Test")
        assert embedder.dimensions == 768

    def test_empty_text_raises(self, embedder, mock_client):
        with pytest.raises(EmbeddingFailureError, match="empty"):
            embedder.embed("")
        mock_client.embed.assert_not_called()

    def test_whitespace_only_raises(self, embedder):
        with pytest.raises(EmbeddingFailureError, match="empty"):
            embedder.embed("   ")

    def test_empty_response_raises(self, embedder, mock_client):
        mock_client.embed.return_value = {"embeddings": []}
        with pytest.raises(EmbeddingFailureError, match="no embedding"):
            embedder.embed("Test")


class TestErrors:
    def test_response_error(self, embedder, mock_client):
        mock_client.embed.side_effect = ollama.ResponseError("model not found")
        with pytest.raises(EmbeddingFailureError, match="nomic-embed-text") as exc_info:
            embedder.embed("Test")
        assert isinstance(exc_info.value.original_error, ollama.ResponseError)
        assert exc_info.value.kind == "EmbeddingFailure"

    def test_connection_error(self, mock_client):
        mock_client.embed.side_effect = ConnectionError("refused")
        embedder = OllamaEmbedder(model="nomic-embed-text")
        with pytest.raises(EmbeddingFailureError, match="Ollama"):
            embedder.embed("Test")

    def test_other_error(self, embedder, mock_client):
        mock_client.embed.side_effect = RuntimeError("boom")
        with pytest.raises(EmbeddingFailureError, match="generation failed") as exc_info:
            embedder.embed("Test")
        assert exc_info.value.model == "nomic-embed-text"


class TestHealthCheck:
    def test_healthy(self, embedder):
        result = embedder.health_check()
        assert result["healthy"] is True
        assert result["ollama_running"] is True
        assert result["model_available"] is True

    def test_model_not_available(self, mock_client):
        embedder = OllamaEmbedder(model="nonexistent-model")
        result = embedder.health_check()
        assert result["healthy"] is False
        assert result["ollama_running"] is True
        assert result["model_available"] is False
        assert "not found" in result["error"]

    def test_ollama_not_running(self, mock_client):
        mock_client.list.side_effect = ConnectionError("refused")
        embedder = OllamaEmbedder(model="nomic-embed-text")
        result = embedder.health_check()
        assert result["healthy"] is False
        assert result["ollama_running"] is False
        assert "Cannot connect" in result["error"]
