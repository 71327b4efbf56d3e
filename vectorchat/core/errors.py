"""
Error taxonomy shared by the storage, vector and chat layers.
"""


class VectorChatError(Exception):
    """Base class for all vectorchat errors."""


class ValidationError(VectorChatError):
    """User-correctable input problem, e.g. empty content submitted for indexing."""


class EmbeddingError(VectorChatError):
    """The embedding call failed or returned a malformed/empty vector."""


class PersistenceCorruption(VectorChatError):
    """A persisted slot could not be parsed."""

    def __init__(self, key: str, reason: str):
        super().__init__(f"Corrupt data in slot '{key}': {reason}")
        self.key = key
        self.reason = reason


class DimensionMismatch(VectorChatError):
    """An embedding's length differs from the dimension of the store."""

    def __init__(self, expected: int, actual: int):
        super().__init__(f"Embedding dimension {actual} does not match store dimension {expected}")
        self.expected = expected
        self.actual = actual


class RemoteServiceError(VectorChatError):
    """Chat completion, grounded search or image generation failed."""


class StaleTurnError(VectorChatError):
    """A retrieval finished after its conversation turn was superseded."""

    def __init__(self, conversation_id: str, turn_id: int):
        super().__init__(f"Turn {turn_id} of conversation '{conversation_id}' was superseded")
        self.conversation_id = conversation_id
        self.turn_id = turn_id
