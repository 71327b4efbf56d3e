"""
Cosine similarity ranking over stored vector entries.

A linear scan is used: stores are expected to hold tens to low hundreds of
documents, so O(n*D) per query is fine.
"""

from typing import List, Optional, Sequence

import numpy as np

from .types import RetrievalResult, ScoredEntry, VectorEntry

DEFAULT_RELEVANCE_THRESHOLD = 0.75


def cosine_similarity(a: Sequence[float], b: Sequence[float]) -> float:
    """
    Cosine similarity between two vectors.

    Returns 0.0 when the lengths differ or either vector has zero magnitude,
    so a dimension mismatch simply fails to match instead of raising.
    """
    vec_a = np.asarray(a, dtype=np.float64)
    vec_b = np.asarray(b, dtype=np.float64)

    if vec_a.shape != vec_b.shape or vec_a.ndim != 1:
        return 0.0

    norm_a = np.linalg.norm(vec_a)
    norm_b = np.linalg.norm(vec_b)
    if norm_a == 0 or norm_b == 0:
        return 0.0

    similarity = float(np.dot(vec_a, vec_b) / (norm_a * norm_b))
    # Rounding can push parallel vectors a hair past 1
    return max(-1.0, min(1.0, similarity))


def clears_threshold(score: float, threshold: float = DEFAULT_RELEVANCE_THRESHOLD) -> bool:
    """The threshold is exclusive: a score equal to it does not clear."""
    return score > threshold


def score_entries(query: Sequence[float], entries: List[VectorEntry]) -> List[float]:
    """Similarity of query to every entry, in entry order."""
    if not entries:
        return []

    query_vec = np.asarray(query, dtype=np.float64)
    dimension = query_vec.shape[0] if query_vec.ndim == 1 else -1

    if all(entry.dimension == dimension for entry in entries):
        matrix = np.asarray([entry.embedding for entry in entries], dtype=np.float64)
        norms = np.linalg.norm(matrix, axis=1)
        query_norm = np.linalg.norm(query_vec)
        if query_norm == 0:
            return [0.0] * len(entries)

        dots = matrix @ query_vec
        scores = []
        for dot, norm in zip(dots, norms):
            if norm == 0:
                scores.append(0.0)
            else:
                scores.append(max(-1.0, min(1.0, float(dot / (norm * query_norm)))))
        return scores

    # Mixed dimensions: mismatched entries score 0
    return [cosine_similarity(query_vec, entry.embedding) for entry in entries]


def find_best_match(query: Sequence[float], entries: List[VectorEntry],
                    threshold: Optional[float] = None, top_k: int = 1) -> RetrievalResult:
    """
    Find the entry most similar to the query.

    Args:
        query: Query embedding
        entries: Stored entries in insertion order
        threshold: Exclusive relevance threshold (default 0.75)
        top_k: How many above-threshold entries to keep in result.ranked

    Returns:
        RetrievalResult; no entry when entries is empty. Ties go to the
        first-encountered entry.
    """
    if threshold is None:
        threshold = DEFAULT_RELEVANCE_THRESHOLD

    if not entries:
        return RetrievalResult(threshold=threshold)

    scores = score_entries(query, entries)

    best_index = 0
    for i in range(1, len(scores)):
        if scores[i] > scores[best_index]:
            best_index = i

    best_score = scores[best_index]
    cleared = clears_threshold(best_score, threshold)

    ranked = []
    if cleared:
        above = [ScoredEntry(entry=entries[i], score=scores[i])
                 for i in range(len(entries)) if clears_threshold(scores[i], threshold)]
        # sorted() is stable, so equal scores keep insertion order
        ranked = sorted(above, key=lambda scored: -scored.score)[:max(top_k, 1)]

    return RetrievalResult(
        entry=entries[best_index],
        score=best_score,
        cleared_threshold=cleared,
        threshold=threshold,
        ranked=ranked,
    )
