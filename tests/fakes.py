"""
Scripted collaborators standing in for the embedding, chat and web-search services.
"""

from typing import Dict, List, Optional

from vectorchat.agents.agent import GroundedResponse, IChatProvider, IWebSearchProvider, ReasoningMode, Source
from vectorchat.core.errors import RemoteServiceError
from vectorchat.vector.embeddings import IEmbeddingProvider


class ScriptedEmbedding(IEmbeddingProvider):
    """Returns a fixed vector per text; unknown text raises unless a default is set."""

    def __init__(self, vectors: Dict[str, List[float]], default: Optional[List[float]] = None):
        self.vectors = vectors
        self.default = default
        self.calls = []
        self.fail = False

    def embed_text(self, text: str) -> List[float]:
        self.calls.append(text)
        if self.fail:
            raise ConnectionError("embedding service unreachable")
        if text in self.vectors:
            return self.vectors[text]
        if self.default is not None:
            return self.default
        raise KeyError(text)

    def get_dimension(self) -> int:
        return len(next(iter(self.vectors.values())))


class RecordingChatProvider(IChatProvider):
    """Echo-style chat model that records every prompt it receives."""

    def __init__(self, reply: str = "Paris is the capital of France.", chunks: int = 2):
        super().__init__("recording-model")
        self.reply = reply
        self.chunks = chunks
        self.prompts = []
        self.histories = []
        self.system_instructions = []
        self.generated = []
        self.generate_reply = "Capital Of France"
        self.fail = False

    def stream_chat(self, prompt, history=None, system_instruction=None, reasoning_mode=ReasoningMode.NORMAL):
        self.prompts.append(prompt)
        self.histories.append(list(history or []))
        self.system_instructions.append(system_instruction)
        if self.fail:
            raise RemoteServiceError("An error occurred. Please try again.")
        size = max(1, len(self.reply) // self.chunks)
        for i in range(0, len(self.reply), size):
            yield self.reply[i:i + size]

    def generate(self, prompt, system_instruction=None, thinking=True, max_output_tokens=None,
                 response_schema=None):
        self.generated.append(prompt)
        if self.fail:
            raise RemoteServiceError("generation failed")
        return self.generate_reply


class StaticWebSearch(IWebSearchProvider):

    def __init__(self):
        self.prompts = []

    def search(self, prompt: str) -> GroundedResponse:
        self.prompts.append(prompt)
        return GroundedResponse(
            text="Live answer from the web.",
            sources=[Source(uri="https://example.org/paris", title="Paris - Example")],
            model_used="web-model",
        )


