"""
Vector entry and retrieval result types.
"""

from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional


@dataclass
class VectorEntry:
    """A stored document and its embedding."""

    id: str
    """Unique identifier assigned at insertion"""

    content: str
    """Original source text, reproduced verbatim in augmented prompts"""

    embedding: List[float]
    """Embedding vector; every entry of a store has the same length"""

    def to_dict(self) -> Dict[str, Any]:
        return {"id": self.id, "content": self.content, "embedding": list(self.embedding)}

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "VectorEntry":
        """Build an entry from its persisted form.

        Raises:
            ValueError: if a field is missing or has the wrong type
        """
        if not isinstance(data, dict):
            raise ValueError(f"entry must be an object, got {type(data).__name__}")

        entry_id = data.get("id")
        content = data.get("content")
        embedding = data.get("embedding")

        if not isinstance(entry_id, str) or not entry_id:
            raise ValueError("entry id must be a non-empty string")
        if not isinstance(content, str):
            raise ValueError(f"entry {entry_id} content must be a string")
        if not isinstance(embedding, list) or not all(
            isinstance(v, (int, float)) and not isinstance(v, bool) for v in embedding
        ):
            raise ValueError(f"entry {entry_id} embedding must be a list of numbers")

        return cls(id=entry_id, content=content, embedding=[float(v) for v in embedding])

    @property
    def dimension(self) -> int:
        return len(self.embedding)


@dataclass
class ScoredEntry:
    """An entry paired with its similarity to a query."""

    entry: VectorEntry
    score: float


@dataclass
class RetrievalResult:
    """Outcome of a best-match search. Ephemeral, never persisted."""

    entry: Optional[VectorEntry] = None
    """Best-matching entry, None when the store was empty"""

    score: float = 0.0
    """Cosine similarity of the best match, in [-1, 1]"""

    cleared_threshold: bool = False
    """True only if score is strictly above the relevance threshold"""

    threshold: float = 0.75

    ranked: List[ScoredEntry] = field(default_factory=list)
    """Entries above the threshold in rank order, used for top-k context"""

    @property
    def has_match(self) -> bool:
        return self.entry is not None

    @property
    def should_augment(self) -> bool:
        return self.entry is not None and self.cleared_threshold
