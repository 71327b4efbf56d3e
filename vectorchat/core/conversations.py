"""
Per-user conversation history.

The whole list of conversations is one storage slot. A corrupt slot is
discarded and replaced by a fresh conversation; an empty list persists as
an absent slot.
"""

import json
import time
import uuid
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional

from ..util.logging import logger
from .storage import IStorage, user_key

FEEDBACK_CATEGORIES = ["Inaccurate", "Unhelpful", "Offensive", "Other"]
DEFAULT_TITLE = "New Chat"


def now_ms() -> int:
    return int(time.time() * 1000)


@dataclass
class Feedback:
    rating: str  # "good" or "bad"
    categories: List[str] = field(default_factory=list)
    comment: Optional[str] = None

    def to_dict(self) -> Dict[str, Any]:
        return {"rating": self.rating, "categories": list(self.categories), "comment": self.comment}

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "Feedback":
        return cls(rating=data["rating"], categories=list(data.get("categories") or []),
                   comment=data.get("comment"))


@dataclass
class Message:
    id: str
    role: str  # "user" or "model"
    content: str
    timestamp: int = field(default_factory=now_ms)
    sources: Optional[List[Dict[str, str]]] = None
    feedback: Optional[Feedback] = None
    is_error: bool = False

    def to_dict(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "role": self.role,
            "content": self.content,
            "timestamp": self.timestamp,
            "sources": self.sources,
            "feedback": self.feedback.to_dict() if self.feedback else None,
            "is_error": self.is_error,
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "Message":
        feedback = data.get("feedback")
        return cls(
            id=str(data["id"]),
            role=data["role"],
            content=data.get("content", ""),
            timestamp=int(data.get("timestamp") or 0),
            sources=data.get("sources"),
            feedback=Feedback.from_dict(feedback) if feedback else None,
            is_error=bool(data.get("is_error") or data.get("isError")),
        )


@dataclass
class Conversation:
    id: str
    title: str
    messages: List[Message] = field(default_factory=list)
    timestamp: int = field(default_factory=now_ms)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "title": self.title,
            "messages": [m.to_dict() for m in self.messages],
            "timestamp": self.timestamp,
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "Conversation":
        return cls(
            id=str(data["id"]),
            title=data.get("title") or DEFAULT_TITLE,
            messages=[Message.from_dict(m) for m in data.get("messages") or []],
            timestamp=int(data.get("timestamp") or 0),
        )

    def user_message_count(self) -> int:
        return sum(1 for m in self.messages if m.role == "user")

    def find_message(self, message_id: str) -> Optional[Message]:
        for message in self.messages:
            if message.id == message_id:
                return message
        return None


class ConversationStore:
    """Load, mutate and persist one user's conversations."""

    def __init__(self, storage: IStorage, user_id: str, display_name: Optional[str] = None,
                 namespace: str = "chatHistory"):
        self.storage = storage
        self.user_id = user_id
        self.display_name = display_name or user_id
        self.key = user_key(namespace, user_id)

    def _load(self) -> List[Conversation]:
        blob = self.storage.get(self.key)
        if blob is None:
            return []
        try:
            data = json.loads(blob)
            if not isinstance(data, list):
                raise ValueError(f"expected a list, got {type(data).__name__}")
            return [Conversation.from_dict(item) for item in data]
        except (ValueError, KeyError, TypeError) as e:
            logger.log_persistence_corruption(self.key, str(e))
            # Clear corrupted history so the next load starts clean
            self.storage.remove(self.key)
            return []

    def _save(self, conversations: List[Conversation]) -> None:
        if conversations:
            self.storage.set(self.key, json.dumps([c.to_dict() for c in conversations]))
        else:
            self.storage.remove(self.key)

    def list(self) -> List[Conversation]:
        """Conversations, most recently active first. Creates one if none exist."""
        conversations = self._load()
        if not conversations:
            return [self.new_conversation()]
        return sorted(conversations, key=lambda c: c.timestamp, reverse=True)

    def new_conversation(self) -> Conversation:
        """Start a conversation seeded with a greeting from the model."""
        conversation = Conversation(
            id=uuid.uuid4().hex,
            title=DEFAULT_TITLE,
            messages=[Message(id="initial", role="model",
                              content=f"Hello, {self.display_name}! How can I assist you today?")],
        )
        conversations = self._load()
        conversations.insert(0, conversation)
        self._save(conversations)
        return conversation

    def get(self, conversation_id: str) -> Optional[Conversation]:
        for conversation in self._load():
            if conversation.id == conversation_id:
                return conversation
        return None

    def save_conversation(self, conversation: Conversation) -> Conversation:
        """Replace (or insert) a conversation and persist the whole list."""
        conversations = [c for c in self._load() if c.id != conversation.id]
        conversations.insert(0, conversation)
        self._save(conversations)
        return conversation

    def delete(self, conversation_id: str) -> bool:
        conversations = self._load()
        remaining = [c for c in conversations if c.id != conversation_id]
        if len(remaining) == len(conversations):
            return False
        self._save(remaining)
        return True

    def set_feedback(self, conversation_id: str, message_id: str, feedback: Optional[Feedback]) -> Optional[Message]:
        """Attach (or clear, with None) feedback on a message."""
        conversation = self.get(conversation_id)
        if conversation is None:
            return None
        message = conversation.find_message(message_id)
        if message is None:
            return None
        message.feedback = feedback
        self.save_conversation(conversation)
        return message
