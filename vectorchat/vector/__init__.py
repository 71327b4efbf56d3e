"""
Local retrieval-augmented grounding: embeddings, per-user vector store,
similarity ranking and prompt augmentation.
"""

from .types import VectorEntry, RetrievalResult, ScoredEntry
from .embeddings import (
    IEmbeddingProvider,
    DeterministicHashEmbedding,
    SentenceTransformerEmbedding,
    GeminiEmbedding,
    EmbeddingClient
)
from .store import VectorStore, VectorStoreRegistry
from .ranker import cosine_similarity, find_best_match, clears_threshold, DEFAULT_RELEVANCE_THRESHOLD
from .prompt import build_prompt

__all__ = [
    'VectorEntry',
    'RetrievalResult',
    'ScoredEntry',
    'IEmbeddingProvider',
    'DeterministicHashEmbedding',
    'SentenceTransformerEmbedding',
    'GeminiEmbedding',
    'EmbeddingClient',
    'VectorStore',
    'VectorStoreRegistry',
    'cosine_similarity',
    'find_best_match',
    'clears_threshold',
    'DEFAULT_RELEVANCE_THRESHOLD',
    'build_prompt'
]
