"""
Tests for embedding providers and the validating embedding client.
"""

from unittest.mock import Mock

import pytest

from vectorchat.core.errors import EmbeddingError, ValidationError
from vectorchat.vector.embeddings import DeterministicHashEmbedding, EmbeddingClient, GeminiEmbedding


class TestDeterministicHashEmbedding:

    def test_dimension(self):
        """Test the hash provider reports its dimension."""
        provider = DeterministicHashEmbedding(dimension=10)
        assert len(provider.embed_text("hello")) == 10
        assert provider.get_dimension() == 10

    def test_deterministic(self):
        """Test the same text embeds to the same vector."""
        provider = DeterministicHashEmbedding()
        assert provider.embed_text("same text") == provider.embed_text("same text")

    def test_different_text_different_vector(self):
        """Test different text embeds differently."""
        provider = DeterministicHashEmbedding()
        assert provider.embed_text("one") != provider.embed_text("two")

    def test_values_in_range(self):
        """Test hash embedding components stay in range."""
        vector = DeterministicHashEmbedding(dimension=64).embed_text("range check")
        assert all(-1.0 <= v <= 1.0 for v in vector)


class TestGeminiEmbedding:

    def test_delegates_to_client(self):
        """Test the Gemini provider calls the REST client."""
        client = Mock()
        client.embed_content.return_value = [0.1, 0.2, 0.3]
        provider = GeminiEmbedding(client, model="text-embedding-004")

        assert provider.embed_text("hello") == [0.1, 0.2, 0.3]
        client.embed_content.assert_called_once_with("text-embedding-004", "hello")
        assert provider.get_dimension() == 3
        assert provider.model_name == "text-embedding-004"


class TestEmbeddingClient:

    def test_embed_returns_floats(self):
        """Test the embedding client returns floats."""
        provider = Mock()
        provider.embed_text.return_value = [1, 2, 3]
        provider.model_name = "mock"

        assert EmbeddingClient(provider).embed("text") == [1.0, 2.0, 3.0]

    @pytest.mark.parametrize("text", ["", "   ", None])
    def test_empty_text_is_validation_error(self, text):
        """Test blank text is a validation error."""
        provider = Mock()
        with pytest.raises(ValidationError):
            EmbeddingClient(provider).embed(text)
        provider.embed_text.assert_not_called()

    def test_provider_failure_is_embedding_error(self):
        """Test provider failures become EmbeddingError."""
        provider = Mock()
        provider.embed_text.side_effect = ConnectionError("down")
        provider.model_name = "mock"

        with pytest.raises(EmbeddingError, match="Failed to create embedding"):
            EmbeddingClient(provider).embed("text")

    @pytest.mark.parametrize("raw", [None, [], ["x"], [float("nan"), 1.0], [float("inf")]])
    def test_malformed_vector_is_embedding_error(self, raw):
        """Test a malformed vector becomes EmbeddingError."""
        provider = Mock()
        provider.embed_text.return_value = raw
        provider.model_name = "mock"

        with pytest.raises(EmbeddingError):
            EmbeddingClient(provider).embed("text")
