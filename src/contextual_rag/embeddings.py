"""
Embeddings module
----------------
Purpose: Convert text to vector embeddings using local Ollama or Sentence-Transformers,
and compare embeddings with cosine similarity.

Every client exposes the same two calls used by ingestion, retrieval and
source attribution:
    embed(text) -> List[float]
    embed_batch(texts) -> List[List[float]]   (order-preserving, 1:1)
"""
import requests
import numpy as np
from typing import List, Sequence
import logging

logger = logging.getLogger(__name__)


class OllamaEmbeddingClient:
    """
    Client for Ollama embedding service

    Requires: ollama serve running on localhost:11434
    Model: nomic-embed-text
    """
    def __init__(
        self,
        base_url: str = "http://localhost:11434",
        model: str = "nomic-embed-text",
        timeout: int = 30
    ):
        """
        Initialize the Ollama embedding client
        Args:
            base_url: Ollama server URL
            model: Embedding model name
            timeout: Request timeout in seconds
        """
        self.base_url = base_url
        self.model = model
        self.timeout = timeout

        self._test_connection()

    def _test_connection(self) -> None:
        """Test if Ollama is running."""
        try:
            response = requests.get(
                f"{self.base_url}/api/tags",
                timeout=5
            )
            if response.status_code != 200:
                raise ConnectionError(f"Ollama returned {response.status_code}")

            logger.info(f"✓ Connected to Ollama at {self.base_url}")
        except requests.exceptions.ConnectionError:
            raise ConnectionError(
                f"Cannot connect to Ollama at {self.base_url}. "
                "Start it with: ollama serve"
            )

    def _post_embed(self, payload_input) -> List[List[float]]:
        try:
            response = requests.post(
                f"{self.base_url}/api/embed",
                json={
                    "model": self.model,
                    "input": payload_input
                },
                timeout=self.timeout
            )

            if response.status_code != 200:
                raise RuntimeError(
                    f"Ollama error {response.status_code}: {response.text}"
                )

            return response.json()["embeddings"]

        except requests.exceptions.Timeout:
            raise TimeoutError(
                f"Ollama request timed out after {self.timeout}s"
            )
        except requests.exceptions.ConnectionError:
            raise ConnectionError(
                f"Lost connection to Ollama at {self.base_url}"
            )
        except KeyError as e:
            raise ValueError(f"Unexpected Ollama response format: {e}")

    def embed(self, text: str) -> List[float]:
        """
        Get embedding for a single text.
        Args:
            text: Text to embed

        Returns:
            List of floats

        Raises:
            TimeoutError, ConnectionError: If Ollama cannot be reached
            ValueError: If the response has an unexpected shape
        """
        return self._post_embed(text)[0]

    def embed_batch(self, texts: List[str]) -> List[List[float]]:
        """
        Get embeddings for multiple texts in one /api/embed call.

        Args:
            texts: List of texts to embed

        Returns:
            List of embeddings (one per text, same order)
        """
        if not texts:
            return []

        embeddings = self._post_embed(list(texts))
        if len(embeddings) != len(texts):
            raise ValueError(
                f"Ollama returned {len(embeddings)} embeddings for {len(texts)} texts"
            )
        return embeddings


class SentenceTransformerEmbeddingClient:
    """
    Client for Sentence-Transformers embeddings (local, free).

    No external service required - runs locally.

    Install with: pip install sentence-transformers
    """

    def __init__(self, model_name: str = "all-mpnet-base-v2"):
        """
        Initialize Sentence-Transformers embedding client.

        Args:
            model_name: HuggingFace model name

        Note: First initialization downloads the model
        """
        logger.info(f"Initializing Sentence-Transformers (model: {model_name})")

        try:
            from sentence_transformers import SentenceTransformer
            self.model = SentenceTransformer(model_name)
            logger.info(f"✓ Loaded Sentence-Transformer model: {model_name}")
        except ImportError:
            raise ImportError(
                "sentence-transformers not installed. "
                "Install with: pip install sentence-transformers"
            )
        except Exception as e:
            logger.error(f"Failed to load Sentence-Transformer model: {e}")
            raise

    def embed(self, text: str) -> List[float]:
        try:
            embedding = self.model.encode(text, convert_to_numpy=True)
            return embedding.tolist()
        except Exception as e:
            logger.error(f"Failed to embed text: {e}")
            raise

    def embed_batch(self, texts: List[str]) -> List[List[float]]:
        """
        Get embeddings for multiple texts (more efficient than calling embed() for each).

        Args:
            texts: List of texts to embed

        Returns:
            List of embeddings (one per text)
        """
        if not texts:
            return []
        try:
            embeddings = self.model.encode(list(texts), convert_to_numpy=True)
            return [emb.tolist() for emb in embeddings]
        except Exception as e:
            logger.error(f"Failed to embed batch: {e}")
            raise


def cosine_similarity(vec_a: Sequence[float], vec_b: Sequence[float]) -> float:
    """
    Calculate cosine similarity between two vectors.

    Args:
        vec_a: First vector
        vec_b: Second vector

    Returns:
        Similarity score from -1 to 1 (1 = identical direction).
        A zero vector has similarity 0.0 with anything.

    Raises:
        ValueError: If the vectors do not have the same dimension

    Example:
        >>> cosine_similarity([1.0, 0.0, 0.0], [1.0, 0.0, 0.0])
        1.0
    """
    a = np.asarray(vec_a, dtype=float)
    b = np.asarray(vec_b, dtype=float)

    if a.shape != b.shape:
        raise ValueError(
            f"Embedding dimension mismatch: {a.shape[0] if a.ndim else 0} "
            f"vs {b.shape[0] if b.ndim else 0}"
        )

    dot_product = np.dot(a, b)
    norm_a = np.linalg.norm(a)
    norm_b = np.linalg.norm(b)

    if norm_a == 0 or norm_b == 0:
        return 0.0

    return float(dot_product / (norm_a * norm_b))


# ============ TESTS ============

def test_cosine_similarity():
    """Test cosine similarity calculation."""
    # Identical vectors
    vec1 = [1.0, 0.0, 0.0]
    vec2 = [1.0, 0.0, 0.0]
    assert abs(cosine_similarity(vec1, vec2) - 1.0) < 0.01

    # Orthogonal vectors
    vec3 = [1.0, 0.0, 0.0]
    vec4 = [0.0, 1.0, 0.0]
    assert abs(cosine_similarity(vec3, vec4) - 0.0) < 0.01


def test_cosine_similarity_not_normalized():
    """Raw vectors: only direction matters."""
    assert abs(cosine_similarity([3.0, 4.0], [6.0, 8.0]) - 1.0) < 1e-9
    assert abs(cosine_similarity([1.0, 0.0], [-2.0, 0.0]) + 1.0) < 1e-9


def test_cosine_similarity_zero_vector():
    assert cosine_similarity([0.0, 0.0], [1.0, 2.0]) == 0.0


def test_cosine_similarity_dimension_mismatch():
    import pytest

    with pytest.raises(ValueError):
        cosine_similarity([1.0, 0.0], [1.0, 0.0, 0.0])


if __name__ == "__main__":
    import os

    logging.basicConfig(level=logging.INFO)
    backend = os.getenv("EMBEDDING_BACKEND", "sentence-transformers").lower()

    if backend == "ollama":
        client = OllamaEmbeddingClient()
    else:
        client = SentenceTransformerEmbeddingClient()

    first, second = client.embed_batch(["The sky is blue.", "Grass is green."])
    print(f"✓ Embedding created: {len(first)} dimensions")
    print(f"  Similarity between texts: {cosine_similarity(first, second):.3f}")
