"""
Ollama Embedder - Local embedding generation via Ollama API

Wraps the Ollama Python client to turn chunk text into dense vectors for
the ingestion pipeline and for text queries.

Design:
- Thin wrapper around ollama.Client.embed() (available since ollama 0.4+)
- Every failure surfaces as EmbeddingFailureError so the pipeline can
  record it per chunk and carry on
- Token usage comes from Ollama's prompt_eval_count when reported,
  otherwise it is estimated with tiktoken
- Health check to verify Ollama is running and the model is available

Usage:
    from ingestion.embedder import OllamaEmbedder

    embedder = OllamaEmbedder(model="nomic-embed-text")
    result = embedder.embed("An example text")
    print(result.dimension, result.tokens)
"""

import logging
from typing import Optional, Protocol

import ollama

from chunking.token_counter import count_tokens
from vector_store.exceptions import EmbeddingFailureError

from .models import EmbeddingResult

logger = logging.getLogger(__name__)


class EmbeddingProvider(Protocol):
    """Anything that turns text into a vector. Failures raise EmbeddingFailureError."""

    def embed(self, text: str) -> EmbeddingResult: ...


class OllamaEmbedder:
    """
    Generates text embeddings using a local Ollama model.

    The embedder connects to a running Ollama instance and uses a specified
    embedding model to convert text into dense vector representations.
    """

    def __init__(
        self,
        model: str = "nomic-embed-text",
        base_url: str = "http://localhost:11434",
        client: Optional[ollama.Client] = None,
    ):
        """
        Initialize the embedder.

        Args:
            model: Ollama model name for embeddings.
            base_url: Ollama API base URL.
            client: Optional pre-created Ollama client (for testing).
        """
        self.model = model
        self.base_url = base_url
        self._client = client or ollama.Client(host=base_url)
        self._dimensions: Optional[int] = None

    @property
    def dimensions(self) -> Optional[int]:
        """Return the embedding dimensions (available after first embed call)."""
        return self._dimensions

    def embed(self, text: str) -> EmbeddingResult:
        """
        Generate an embedding for a single text.

        Args:
            text: The text to embed.

        Returns:
            EmbeddingResult with the vector, its dimension and token usage.

        Raises:
            EmbeddingFailureError: On empty text, Ollama errors, connection
                failures or an empty response.
        """
        if not text or not text.strip():
            raise EmbeddingFailureError("Cannot embed empty text", model=self.model)

        try:
            response = self._client.embed(model=self.model, input=text)
        except ollama.ResponseError as e:
            raise EmbeddingFailureError(
                f"Ollama embedding failed for model '{self.model}'",
                model=self.model,
                original_error=e,
            ) from e
        except Exception as e:
            if "Connection" in type(e).__name__ or "refused" in str(e).lower():
                raise EmbeddingFailureError(
                    f"Cannot connect to Ollama at {self.base_url}. "
                    f"Is Ollama running? Start it with: ollama serve",
                    model=self.model,
                    original_error=e,
                ) from e
            raise EmbeddingFailureError(
                "Embedding generation failed",
                model=self.model,
                original_error=e,
            ) from e

        embeddings = response["embeddings"]
        if not embeddings or not embeddings[0]:
            raise EmbeddingFailureError(
                f"Ollama returned no embedding for model '{self.model}'",
                model=self.model,
            )

        vector = [float(x) for x in embeddings[0]]
        self._dimensions = len(vector)
        tokens = response.get("prompt_eval_count") or count_tokens(text)

        return EmbeddingResult(
            vector=vector,
            dimension=len(vector),
            model=self.model,
            tokens=tokens,
        )

    def health_check(self) -> dict[str, bool | str]:
        """
        Check if Ollama is running and the embedding model is available.

        Returns:
            Dict with 'healthy' (bool), 'ollama_running' (bool),
            'model_available' (bool), and 'error' (str, if any).
        """
        result = {
            "healthy": False,
            "ollama_running": False,
            "model_available": False,
            "model": self.model,
            "error": "",
        }

        try:
            models = self._client.list()
            result["ollama_running"] = True

            model_names = [m.model for m in models.models]
            # "nomic-embed-text" matches "nomic-embed-text:latest"
            result["model_available"] = any(
                m.startswith(self.model) for m in model_names
            )

            if not result["model_available"]:
                result["error"] = (
                    f"Model '{self.model}' not found. "
                    f"Available: {model_names}. "
                    f"Pull it with: ollama pull {self.model}"
                )
            else:
                result["healthy"] = True

        except Exception as e:
            result["error"] = f"Cannot connect to Ollama: {e}"

        return result
