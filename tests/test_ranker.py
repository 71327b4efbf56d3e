"""
Tests for cosine similarity and best-match ranking.
"""

import math

import pytest

from vectorchat.vector.ranker import (
    DEFAULT_RELEVANCE_THRESHOLD,
    clears_threshold,
    cosine_similarity,
    find_best_match,
    score_entries,
)
from vectorchat.vector.types import VectorEntry


def _entry(entry_id, embedding, content=None):
    return VectorEntry(id=entry_id, content=content or f"content {entry_id}", embedding=embedding)


class TestCosineSimilarity:

    def test_identical_vectors(self):
        """Test identical vectors score 1."""
        assert cosine_similarity([1.0, 2.0, 3.0], [1.0, 2.0, 3.0]) == pytest.approx(1.0)

    def test_orthogonal_vectors(self):
        """Test orthogonal vectors score 0."""
        assert cosine_similarity([1.0, 0.0], [0.0, 1.0]) == pytest.approx(0.0)

    def test_opposite_vectors(self):
        """Test opposite vectors score -1."""
        assert cosine_similarity([1.0, 0.0], [-1.0, 0.0]) == pytest.approx(-1.0)

    def test_scale_invariant(self):
        """Test scaling a vector does not change its score."""
        assert cosine_similarity([1.0, 2.0], [10.0, 20.0]) == pytest.approx(1.0)

    def test_symmetric(self):
        """Test similarity is symmetric."""
        a, b = [0.3, -0.2, 0.9], [0.1, 0.4, 0.5]
        assert cosine_similarity(a, b) == pytest.approx(cosine_similarity(b, a))

    def test_length_mismatch_is_zero(self):
        """Test vectors of different length score 0."""
        assert cosine_similarity([1.0, 0.0, 0.0], [1.0, 0.0]) == 0.0

    def test_zero_vector_is_zero(self):
        """Test a zero vector scores 0."""
        assert cosine_similarity([0.0, 0.0], [1.0, 0.0]) == 0.0
        assert cosine_similarity([1.0, 0.0], [0.0, 0.0]) == 0.0

    def test_result_within_bounds(self):
        """Test tiny vectors stay within [-1, 1]."""
        score = cosine_similarity([1e-3, 1e-3, 1e-3], [1e-3, 1e-3, 1e-3])
        assert -1.0 <= score <= 1.0
        assert not math.isnan(score)


class TestThreshold:

    def test_default_threshold(self):
        """Test the default relevance threshold."""
        assert DEFAULT_RELEVANCE_THRESHOLD == 0.75

    def test_threshold_is_exclusive(self):
        """Test a score equal to the threshold does not clear it."""
        assert clears_threshold(0.75) is False
        assert clears_threshold(0.751) is True
        assert clears_threshold(0.2) is False

    def test_custom_threshold(self):
        """Test a custom threshold is exclusive too."""
        assert clears_threshold(0.6, threshold=0.5) is True
        assert clears_threshold(0.5, threshold=0.5) is False


class TestFindBestMatch:

    def test_empty_entries(self):
        """Test an empty store has no match."""
        result = find_best_match([1.0, 0.0], [])

        assert result.entry is None
        assert result.has_match is False
        assert result.cleared_threshold is False
        assert result.should_augment is False

    def test_best_match_is_the_highest_score(self):
        """Test the highest score wins."""
        entries = [
            _entry("a", [0.0, 1.0, 0.0]),
            _entry("b", [0.9, 0.1, 0.0]),
            _entry("c", [0.5, 0.5, 0.0]),
        ]

        result = find_best_match([1.0, 0.0, 0.0], entries)

        assert result.entry.id == "b"
        assert result.score == pytest.approx(cosine_similarity([1.0, 0.0, 0.0], [0.9, 0.1, 0.0]))
        assert result.cleared_threshold is True

    def test_score_exactly_at_threshold_does_not_clear(self):
        """Test a best score of exactly 0.75 is not injected."""
        # cos([1,0,0,0,0], [3,2,1,1,1]) = 3 / 4 = 0.75
        result = find_best_match([1.0, 0.0, 0.0, 0.0, 0.0], [_entry("edge", [3.0, 2.0, 1.0, 1.0, 1.0])])

        assert result.score == 0.75
        assert result.cleared_threshold is False
        assert result.should_augment is False
        assert result.ranked == []

    def test_below_threshold_still_reports_best_entry(self):
        """Test a below-threshold best entry is still reported."""
        result = find_best_match([1.0, 0.0], [_entry("x", [0.2, 1.0])])

        assert result.entry.id == "x"
        assert result.cleared_threshold is False

    def test_tied_best_scores_pick_the_earlier_entry(self):
        """Test scores of 0.91, 0.60, 0.91 pick the first entry."""
        side = math.sqrt(1 - 0.91 ** 2)
        entries = [
            _entry("first", [0.91, side]),
            _entry("weak", [0.6, 0.8]),
            _entry("twin", [0.91, -side]),
        ]

        scores = score_entries([1.0, 0.0], entries)
        result = find_best_match([1.0, 0.0], entries)

        assert scores == pytest.approx([0.91, 0.60, 0.91])
        assert scores[0] == scores[2]
        assert result.entry.id == "first"

    def test_ties_go_to_first_inserted(self):
        """Test equal scores pick the first inserted entry."""
        entries = [
            _entry("first", [1.0, 0.0]),
            _entry("second", [2.0, 0.0]),
            _entry("third", [3.0, 0.0]),
        ]

        result = find_best_match([1.0, 0.0], entries)

        assert result.entry.id == "first"

    def test_mismatched_dimension_entry_scores_zero(self):
        """Test an entry of another dimension scores 0."""
        entries = [
            _entry("short", [1.0, 0.0]),
            _entry("right", [0.8, 0.6, 0.0]),
        ]

        scores = score_entries([1.0, 0.0, 0.0], entries)
        result = find_best_match([1.0, 0.0, 0.0], entries)

        assert scores[0] == 0.0
        assert result.entry.id == "right"

    def test_top_k_ranks_above_threshold_entries(self):
        """Test top-k keeps above-threshold entries in score order."""
        entries = [
            _entry("low", [0.0, 1.0]),
            _entry("mid", [0.9, 0.2]),
            _entry("high", [1.0, 0.01]),
        ]

        result = find_best_match([1.0, 0.0], entries, top_k=3)

        assert [s.entry.id for s in result.ranked] == ["high", "mid"]
        assert result.entry.id == "high"

    def test_top_k_one_keeps_only_best(self):
        """Test top-1 keeps only the best entry."""
        entries = [_entry("a", [1.0, 0.1]), _entry("b", [1.0, 0.0])]

        result = find_best_match([1.0, 0.0], entries, top_k=1)

        assert len(result.ranked) == 1
        assert result.ranked[0].entry.id == "b"

    def test_custom_threshold_is_recorded(self):
        """Test the threshold used is recorded on the result."""
        result = find_best_match([1.0, 0.0], [_entry("a", [1.0, 1.0])], threshold=0.5)

        assert result.threshold == 0.5
        assert result.cleared_threshold is True
