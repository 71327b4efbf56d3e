"""
Embedding providers and the embedding client used by indexing and retrieval.
"""

import hashlib
import math
import time
from abc import ABC, abstractmethod
from typing import List

from ..core.errors import EmbeddingError, ValidationError
from ..util.logging import logger


class IEmbeddingProvider(ABC):
    """Abstract interface for embedding providers."""

    @abstractmethod
    def embed_text(self, text: str) -> List[float]:
        """Generate embedding vector for given text."""
        pass

    @abstractmethod
    def get_dimension(self) -> int:
        """Get the dimension of the embedding vectors."""
        pass

    @property
    def model_name(self) -> str:
        return type(self).__name__


class DeterministicHashEmbedding(IEmbeddingProvider):
    """Deterministic hash-based embedding provider for testing purposes.

    Each dimension is derived from a SHA-256 digest of the text and the
    dimension index, so the same text always yields the same vector without
    any model or network dependency.
    """

    def __init__(self, dimension: int = 384):
        self.dimension = dimension

    def embed_text(self, text: str) -> List[float]:
        vector = []
        block = 0
        while len(vector) < self.dimension:
            digest = hashlib.sha256(f"{block}:{text}".encode("utf-8")).digest()
            # 8 values of 4 bytes each per digest, mapped to [-1, 1]
            for i in range(0, len(digest), 4):
                value = int.from_bytes(digest[i:i + 4], "big")
                vector.append((value / (2 ** 32)) * 2 - 1)
            block += 1

        return vector[:self.dimension]

    def get_dimension(self) -> int:
        return self.dimension


class SentenceTransformerEmbedding(IEmbeddingProvider):
    """Local sentence-transformers embedding provider.

    The model is loaded lazily on first use.
    """

    def __init__(self, model_name: str = "all-MiniLM-L6-v2"):
        self._model_name = model_name
        self._model = None
        self._dimension = None

    @property
    def model_name(self) -> str:
        return self._model_name

    @property
    def model(self):
        if self._model is None:
            from sentence_transformers import SentenceTransformer
            logger.info(f"Loading embedding model {self._model_name} (first time only)...")
            self._model = SentenceTransformer(self._model_name)
        return self._model

    def embed_text(self, text: str) -> List[float]:
        embedding = self.model.encode(text, convert_to_tensor=False)
        return embedding.tolist()

    def get_dimension(self) -> int:
        if self._dimension is None:
            self._dimension = self.model.get_sentence_embedding_dimension()
        return self._dimension


class GeminiEmbedding(IEmbeddingProvider):
    """Remote embeddings from the Gemini embedContent endpoint."""

    def __init__(self, client, model: str = "text-embedding-004"):
        self.client = client
        self.model = model
        self._dimension = None

    @property
    def model_name(self) -> str:
        return self.model

    def embed_text(self, text: str) -> List[float]:
        values = self.client.embed_content(self.model, text)
        if self._dimension is None and values:
            self._dimension = len(values)
        return values

    def get_dimension(self) -> int:
        if self._dimension is None:
            self._dimension = len(self.client.embed_content(self.model, "dimension check"))
        return self._dimension


class EmbeddingClient:
    """Validating wrapper around an embedding provider.

    Every failure of the underlying provider surfaces as EmbeddingError so
    callers can decide between aborting (indexing) and degrading (retrieval).
    """

    def __init__(self, provider: IEmbeddingProvider):
        self.provider = provider

    def embed(self, text: str) -> List[float]:
        """
        Embed text into a fixed-length vector.

        Args:
            text: Input text; must be non-empty after trimming

        Returns:
            List of floats of the provider's dimension

        Raises:
            ValidationError: if text is empty or whitespace
            EmbeddingError: if the provider fails or returns a malformed vector
        """
        if text is None or not text.strip():
            raise ValidationError("Content cannot be empty.")

        start_time = time.time()
        try:
            raw = self.provider.embed_text(text)
        except EmbeddingError:
            raise
        except Exception as e:
            logger.log_remote_call("embed", self.provider.model_name, (time.time() - start_time) * 1000,
                                   status="failed", details={"error": str(e)})
            raise EmbeddingError("Failed to create embedding for the provided text.") from e

        vector = self._validate(raw)
        logger.log_remote_call("embed", self.provider.model_name, (time.time() - start_time) * 1000,
                               details={"dimension": len(vector)})
        return vector

    @staticmethod
    def _validate(raw) -> List[float]:
        if raw is None:
            raise EmbeddingError("Embedding provider returned no vector.")
        try:
            vector = [float(v) for v in raw]
        except (TypeError, ValueError) as e:
            raise EmbeddingError("Embedding provider returned a malformed vector.") from e
        if not vector:
            raise EmbeddingError("Embedding provider returned an empty vector.")
        if not all(math.isfinite(v) for v in vector):
            raise EmbeddingError("Embedding provider returned non-finite values.")
        return vector
