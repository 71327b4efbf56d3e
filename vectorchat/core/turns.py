"""
Conversation turn tracking.

Each submitted message opens a new turn for its conversation. Work that
finishes after a newer turn was opened (e.g. an embedding call that returns
after the user sent another message) must be discarded.
"""

import threading
from dataclasses import dataclass
from typing import Dict


@dataclass(frozen=True)
class Turn:
    conversation_id: str
    turn_id: int


class TurnTracker:
    """Thread-safe monotonic turn counter per conversation."""

    def __init__(self):
        self._current: Dict[str, int] = {}
        self._lock = threading.Lock()

    def begin(self, conversation_id: str) -> Turn:
        """Open a new turn, superseding any earlier turn of the conversation."""
        with self._lock:
            turn_id = self._current.get(conversation_id, 0) + 1
            self._current[conversation_id] = turn_id
            return Turn(conversation_id, turn_id)

    def is_current(self, turn: Turn) -> bool:
        with self._lock:
            return self._current.get(turn.conversation_id) == turn.turn_id

    def cancel(self, conversation_id: str) -> None:
        """Supersede the in-flight turn without starting a new message (navigation away)."""
        with self._lock:
            self._current[conversation_id] = self._current.get(conversation_id, 0) + 1
