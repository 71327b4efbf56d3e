"""
Gemini-backed chat completion and live web-search grounding.
"""

import time
from typing import Any, Dict, Iterator, List, Optional

from ..core.errors import RemoteServiceError
from ..util.logging import logger
from .agent import (
    ChatMessage,
    GroundedResponse,
    IChatProvider,
    IWebSearchProvider,
    ReasoningMode,
    Source,
    filter_history,
)
from .gemini_client import GeminiClient


class GeminiChatProvider(IChatProvider):
    """Chat completion through Gemini generateContent / streamGenerateContent."""

    def __init__(self, client: GeminiClient, model_name: str = "gemini-2.5-flash"):
        super().__init__(model_name)
        self.client = client

    def stream_chat(self, prompt: str, history: Optional[List[ChatMessage]] = None,
                    system_instruction: Optional[str] = None,
                    reasoning_mode: ReasoningMode = ReasoningMode.NORMAL) -> Iterator[str]:
        contents = GeminiClient.build_contents(
            prompt, [{"role": msg.role, "content": msg.content} for msg in filter_history(history)]
        )
        body = GeminiClient.build_body(
            contents,
            system_instruction=system_instruction,
            thinking_budget=0 if reasoning_mode == ReasoningMode.FAST else None,
        )

        start_time = time.time()
        chunk_count = 0
        for event in self.client.stream_generate_content(self.model_name, body):
            text = GeminiClient.extract_text(event)
            if text:
                chunk_count += 1
                yield text

        logger.log_remote_call("chat_stream", self.model_name, (time.time() - start_time) * 1000,
                               details={"chunks": chunk_count, "history_messages": len(contents) - 1})

    def generate(self, prompt: str, system_instruction: Optional[str] = None,
                 thinking: bool = True, max_output_tokens: Optional[int] = None,
                 response_schema: Optional[Dict[str, Any]] = None) -> str:
        body = GeminiClient.build_body(
            GeminiClient.build_contents(prompt),
            system_instruction=system_instruction,
            thinking_budget=None if thinking else 0,
            max_output_tokens=max_output_tokens,
            response_schema=response_schema,
        )
        response = self.client.generate_content(self.model_name, body)
        return GeminiClient.extract_text(response)


class GeminiWebSearch(IWebSearchProvider):
    """Live web grounding through the google_search tool."""

    def __init__(self, client: GeminiClient, model_name: str = "gemini-2.5-flash"):
        self.client = client
        self.model_name = model_name

    def search(self, prompt: str) -> GroundedResponse:
        body = GeminiClient.build_body(
            GeminiClient.build_contents(prompt),
            tools=[{"google_search": {}}],
        )

        start_time = time.time()
        try:
            response = self.client.generate_content(self.model_name, body)
        except RemoteServiceError as e:
            raise RemoteServiceError("Failed to get a grounded response. The web may be unreachable.") from e

        sources = [Source(uri=s["uri"], title=s["title"]) for s in GeminiClient.extract_sources(response)]
        return GroundedResponse(
            text=GeminiClient.extract_text(response),
            sources=sources,
            model_used=self.model_name,
            processing_time_ms=int((time.time() - start_time) * 1000),
        )
