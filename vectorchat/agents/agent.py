"""
Collaborator interfaces and data classes for chat completion and web grounding.
"""

from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import Any, Dict, Iterator, List, Optional


class GroundingMode(str, Enum):
    """Where outgoing messages get their grounding from."""
    DISABLED = "disabled"
    WEB_SEARCH = "web-search"
    LOCAL_VECTOR = "local-vector"

    @classmethod
    def parse(cls, value) -> "GroundingMode":
        """Parse a mode, accepting the legacy 'nexus' and 'vector' names."""
        if isinstance(value, cls):
            return value
        legacy = {"nexus": cls.WEB_SEARCH, "vector": cls.LOCAL_VECTOR}
        normalized = (value or "").strip().lower()
        if normalized in legacy:
            return legacy[normalized]
        return cls(normalized)


class ReasoningMode(str, Enum):
    NORMAL = "normal"
    FAST = "fast"  # thinking disabled


@dataclass
class ChatMessage:
    """A message of conversation history sent to the chat model."""
    role: str  # "user" or "model"
    content: str


@dataclass
class Source:
    """A web page cited by a grounded response."""
    uri: str
    title: str

    def to_dict(self) -> Dict[str, str]:
        return {"uri": self.uri, "title": self.title}


@dataclass
class GroundedResponse:
    """Response of the live web-search grounding collaborator."""
    text: str
    sources: List[Source] = field(default_factory=list)
    model_used: str = ""
    processing_time_ms: int = 0
    timestamp: datetime = field(default_factory=datetime.now)


class IChatProvider(ABC):
    """Abstract chat completion collaborator."""

    def __init__(self, model_name: str):
        self.model_name = model_name

    @abstractmethod
    def stream_chat(self, prompt: str, history: Optional[List[ChatMessage]] = None,
                    system_instruction: Optional[str] = None,
                    reasoning_mode: ReasoningMode = ReasoningMode.NORMAL) -> Iterator[str]:
        """
        Send a prompt with conversation history and stream the reply.

        Args:
            prompt: The (possibly augmented) user prompt
            history: Previous conversation messages, oldest first
            system_instruction: Persona instruction for the model
            reasoning_mode: FAST disables model thinking where supported

        Returns:
            Iterator of text chunks

        Raises:
            RemoteServiceError: if the model call fails
        """
        pass

    @abstractmethod
    def generate(self, prompt: str, system_instruction: Optional[str] = None,
                 thinking: bool = True, max_output_tokens: Optional[int] = None,
                 response_schema: Optional[Dict[str, Any]] = None) -> str:
        """Single-shot completion; with response_schema the reply is JSON text."""
        pass

    def get_status(self) -> Dict[str, Any]:
        return {"provider": type(self).__name__, "model": self.model_name}


class IWebSearchProvider(ABC):
    """Abstract live web-search grounding collaborator."""

    @abstractmethod
    def search(self, prompt: str) -> GroundedResponse:
        """Answer the prompt with live web grounding and cited sources."""
        pass


def filter_history(history: Optional[List[ChatMessage]]) -> List[ChatMessage]:
    """Drop messages with no text; the model rejects empty turns."""
    if not history:
        return []
    return [msg for msg in history if msg.content and msg.content.strip()]
