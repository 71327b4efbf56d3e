"""
Per-user vector store persisted as a JSON list in a durable storage slot.

Every mutation rewrites the whole serialized list. At the expected scale
(hundreds of entries) this keeps persistence trivial; concurrent writers
resolve as last-write-wins.
"""

import json
import uuid
from typing import Callable, List, Optional, Sequence

from ..core.errors import DimensionMismatch, PersistenceCorruption, ValidationError
from ..core.storage import IStorage, user_key
from ..util.logging import logger
from .types import VectorEntry

DEFAULT_NAMESPACE = "vectorDB"


def serialize_entries(entries: List[VectorEntry]) -> str:
    return json.dumps([entry.to_dict() for entry in entries])


def deserialize_entries(key: str, blob: str) -> List[VectorEntry]:
    """
    Parse a persisted store.

    Raises:
        PersistenceCorruption: if the blob is not a JSON list of valid entries
    """
    try:
        data = json.loads(blob)
    except (TypeError, ValueError) as e:
        raise PersistenceCorruption(key, f"invalid JSON: {e}") from e

    if not isinstance(data, list):
        raise PersistenceCorruption(key, f"expected a list, got {type(data).__name__}")

    try:
        return [VectorEntry.from_dict(item) for item in data]
    except ValueError as e:
        raise PersistenceCorruption(key, str(e)) from e


class VectorStore:
    """
    Ordered collection of VectorEntry owned by a single user.

    Insertion order is kept for display; it only matters to retrieval as the
    tie-break between equal scores.
    """

    def __init__(self, storage: IStorage, user_id: str, namespace: str = DEFAULT_NAMESPACE):
        self.storage = storage
        self.user_id = user_id
        self.key = user_key(namespace, user_id)
        self.last_corruption: Optional[PersistenceCorruption] = None
        self._entries: List[VectorEntry] = []

    def _load(self) -> List[VectorEntry]:
        """Read the persisted entries; corrupt data loads as an empty store."""
        blob = self.storage.get(self.key)
        if blob is None:
            self._entries = []
            return self._entries

        try:
            self._entries = deserialize_entries(self.key, blob)
            self.last_corruption = None
        except PersistenceCorruption as e:
            self.last_corruption = e
            logger.log_persistence_corruption(self.key, e.reason)
            self._entries = []

        return self._entries

    def _persist(self) -> None:
        if self._entries:
            self.storage.set(self.key, serialize_entries(self._entries))
        else:
            self.storage.remove(self.key)

    @property
    def dimension(self) -> Optional[int]:
        """Embedding dimension shared by the stored entries, None when empty."""
        entries = self._load()
        return entries[0].dimension if entries else None

    def add(self, content: str, embedding: Sequence[float]) -> VectorEntry:
        """
        Append a new entry and persist the store.

        Args:
            content: Source text, must be non-empty after trimming
            embedding: Embedding of content

        Returns:
            The created VectorEntry

        Raises:
            ValidationError: if content or embedding is empty
            DimensionMismatch: if embedding length differs from stored entries
        """
        if content is None or not content.strip():
            raise ValidationError("Content cannot be empty.")
        if embedding is None or len(embedding) == 0:
            raise ValidationError("Embedding cannot be empty.")

        entries = self._load()
        if entries and len(embedding) != entries[0].dimension:
            logger.log_vector_operation("add", self.user_id, {
                "expected_dimension": entries[0].dimension,
                "dimension": len(embedding)
            }, status="rejected")
            raise DimensionMismatch(entries[0].dimension, len(embedding))

        entry = VectorEntry(
            id=uuid.uuid4().hex,
            content=content,
            embedding=[float(v) for v in embedding],
        )
        entries.append(entry)
        self._persist()

        logger.log_vector_operation("add", self.user_id, {
            "entry_id": entry.id,
            "dimension": entry.dimension,
            "size": len(entries)
        })
        return entry

    def remove(self, entry_id: str) -> bool:
        """Remove the entry with entry_id. Returns whether anything was removed."""
        entries = self._load()
        remaining = [entry for entry in entries if entry.id != entry_id]
        if len(remaining) == len(entries):
            return False

        self._entries = remaining
        self._persist()
        logger.log_vector_operation("remove", self.user_id, {"entry_id": entry_id, "size": len(remaining)})
        return True

    def rebuild(self, embed: Callable[[str], Sequence[float]]) -> int:
        """
        Re-embed every entry with embed, keeping ids, content and order.

        Nothing is written unless every entry was embedded to the same
        dimension. Returns the number of entries rebuilt.
        """
        entries = self._load()
        if not entries:
            return 0

        embeddings = [[float(v) for v in embed(entry.content)] for entry in entries]
        dimensions = sorted({len(embedding) for embedding in embeddings})
        if len(dimensions) > 1:
            raise DimensionMismatch(dimensions[0], dimensions[-1])

        for entry, embedding in zip(entries, embeddings):
            entry.embedding = embedding
        self._persist()

        logger.log_vector_operation("rebuild", self.user_id, {"size": len(entries), "dimension": dimensions[0]})
        return len(entries)

    def clear(self) -> None:
        """Empty the store and remove its persisted slot."""
        self._entries = []
        self.storage.remove(self.key)
        logger.log_vector_operation("clear", self.user_id)

    def list(self) -> List[VectorEntry]:
        """Snapshot of the entries in insertion order."""
        return list(self._load())

    def get(self, entry_id: str) -> Optional[VectorEntry]:
        for entry in self._load():
            if entry.id == entry_id:
                return entry
        return None

    def __len__(self) -> int:
        return len(self._load())


class VectorStoreRegistry:
    """Hands out the vector store of each user over a shared storage backend."""

    def __init__(self, storage: IStorage, namespace: str = DEFAULT_NAMESPACE):
        self.storage = storage
        self.namespace = namespace

    def for_user(self, user_id: str) -> VectorStore:
        return VectorStore(self.storage, user_id, self.namespace)
