"""
Grounding orchestrator.

Routes every outgoing user message through the path selected by the user's
grounding mode:

- disabled      message goes to the chat model verbatim
- web-search    live web grounding collaborator answers, vector store untouched
- local-vector  embed -> list store -> best match -> augmented prompt -> chat model

Retrieval failures degrade to the unaugmented message; they never drop it.
"""

from dataclasses import dataclass, field
from enum import Enum
from typing import Iterator, List, Optional

from ..core.errors import EmbeddingError, StaleTurnError, ValidationError
from ..core.turns import Turn, TurnTracker
from ..util.logging import logger
from ..vector.embeddings import EmbeddingClient
from ..vector.prompt import build_prompt
from ..vector.ranker import DEFAULT_RELEVANCE_THRESHOLD, find_best_match
from ..vector.store import VectorStoreRegistry
from ..vector.types import RetrievalResult
from .agent import (
    ChatMessage,
    GroundingMode,
    IChatProvider,
    IWebSearchProvider,
    ReasoningMode,
    Source,
)


class GroundingPath(str, Enum):
    PASS_THROUGH = "pass_through"
    WEB_SEARCH = "web_search"
    LOCAL_VECTOR = "local_vector"


_PATHS = {
    GroundingMode.DISABLED: GroundingPath.PASS_THROUGH,
    GroundingMode.WEB_SEARCH: GroundingPath.WEB_SEARCH,
    GroundingMode.LOCAL_VECTOR: GroundingPath.LOCAL_VECTOR,
}


def select_path(mode: GroundingMode) -> GroundingPath:
    """Pure three-way dispatch on the active grounding mode."""
    return _PATHS[GroundingMode.parse(mode)]


@dataclass
class PreparedPrompt:
    """The prompt that will reach the chat model, with how it was produced."""
    prompt: str
    original: str
    path: GroundingPath
    retrieval: Optional[RetrievalResult] = None
    degraded_reason: Optional[str] = None

    @property
    def augmented(self) -> bool:
        return self.prompt != self.original


@dataclass
class TurnOutcome:
    """Result of handling one user message."""
    text: str
    path: GroundingPath
    prompt_sent: Optional[str] = None
    sources: List[Source] = field(default_factory=list)
    retrieval: Optional[RetrievalResult] = None
    degraded_reason: Optional[str] = None
    superseded: bool = False

    @property
    def augmented(self) -> bool:
        return self.retrieval is not None and self.retrieval.should_augment


class GroundingOrchestrator:
    """Wires the grounding mode selector to the retrieval pipeline and collaborators."""

    def __init__(self, embedding_client: EmbeddingClient, stores: VectorStoreRegistry,
                 chat_provider: IChatProvider, web_search: Optional[IWebSearchProvider] = None,
                 turn_tracker: Optional[TurnTracker] = None,
                 threshold: float = DEFAULT_RELEVANCE_THRESHOLD, top_k: int = 1):
        self.embedding_client = embedding_client
        self.stores = stores
        self.chat_provider = chat_provider
        self.web_search = web_search
        self.turn_tracker = turn_tracker or TurnTracker()
        self.threshold = threshold
        self.top_k = top_k

    def _check_turn(self, turn: Optional[Turn]) -> None:
        if turn is not None and not self.turn_tracker.is_current(turn):
            raise StaleTurnError(turn.conversation_id, turn.turn_id)

    def retrieve(self, user_id: str, message: str) -> Optional[RetrievalResult]:
        """
        Best match for message in the user's store.

        Returns None without embedding anything when the store is empty.

        Raises:
            EmbeddingError: if the query cannot be embedded
        """
        entries = self.stores.for_user(user_id).list()
        if not entries:
            logger.log_retrieval(user_id, entries_scanned=0)
            return None

        query = self.embedding_client.embed(message)
        result = find_best_match(query, entries, threshold=self.threshold, top_k=self.top_k)
        logger.log_retrieval(user_id, result.entry.id if result.entry else None, result.score,
                             result.cleared_threshold, len(entries))
        return result

    def prepare_prompt(self, user_id: str, message: str, mode: GroundingMode,
                       turn: Optional[Turn] = None) -> PreparedPrompt:
        """
        Produce the prompt for the chat model in disabled or local-vector mode.

        Raises:
            ValueError: for web-search mode, which does not use the chat model
            StaleTurnError: if turn was superseded while the query was embedded
        """
        path = select_path(mode)
        if path == GroundingPath.WEB_SEARCH:
            raise ValueError("web-search grounding does not prepare a chat prompt")

        if path == GroundingPath.PASS_THROUGH:
            return PreparedPrompt(prompt=message, original=message, path=path)

        try:
            retrieval = self.retrieve(user_id, message)
        except EmbeddingError as e:
            self._check_turn(turn)
            logger.log_grounding_dispatch(user_id, GroundingMode.LOCAL_VECTOR.value,
                                          details={"degraded": str(e)})
            return PreparedPrompt(prompt=message, original=message, path=path, degraded_reason=str(e))

        # The embedding call is the suspension point; its result may be stale now
        self._check_turn(turn)

        return PreparedPrompt(
            prompt=build_prompt(message, retrieval),
            original=message,
            path=path,
            retrieval=retrieval,
        )

    def stream_reply(self, prepared: PreparedPrompt, history: Optional[List[ChatMessage]] = None,
                     system_instruction: Optional[str] = None,
                     reasoning_mode: ReasoningMode = ReasoningMode.NORMAL,
                     turn: Optional[Turn] = None) -> Iterator[str]:
        """Stream the chat model's reply to a prepared prompt, stopping if the turn is superseded."""
        for chunk in self.chat_provider.stream_chat(prepared.prompt, history=history,
                                                    system_instruction=system_instruction,
                                                    reasoning_mode=reasoning_mode):
            self._check_turn(turn)
            yield chunk

    def handle_message(self, user_id: str, message: str, mode: GroundingMode,
                       history: Optional[List[ChatMessage]] = None,
                       system_instruction: Optional[str] = None,
                       reasoning_mode: ReasoningMode = ReasoningMode.NORMAL,
                       turn: Optional[Turn] = None) -> TurnOutcome:
        """
        Handle one user message end to end.

        Args:
            user_id: Owner of the vector store consulted in local-vector mode
            message: The user's message, verbatim
            mode: Active grounding mode (read only)
            history: Earlier conversation messages
            system_instruction: Persona instruction for the chat model
            reasoning_mode: Model thinking setting
            turn: Turn this message belongs to; results for superseded turns are discarded

        Returns:
            TurnOutcome; superseded=True with empty text when the turn went stale

        Raises:
            ValidationError: if message is empty
            RemoteServiceError: if the chat model or web grounding call fails
        """
        if message is None or not message.strip():
            raise ValidationError("Message cannot be empty.")

        path = select_path(mode)

        if path == GroundingPath.WEB_SEARCH:
            if self.web_search is None:
                raise ValueError("web-search grounding is not configured")
            response = self.web_search.search(message)
            if turn is not None and not self.turn_tracker.is_current(turn):
                return TurnOutcome(text="", path=path, superseded=True)
            logger.log_grounding_dispatch(user_id, GroundingMode.WEB_SEARCH.value,
                                          details={"sources": len(response.sources)})
            return TurnOutcome(text=response.text, path=path, sources=response.sources)

        try:
            prepared = self.prepare_prompt(user_id, message, mode, turn=turn)
            logger.log_grounding_dispatch(user_id, GroundingMode.parse(mode).value, augmented=prepared.augmented)
            text = "".join(self.stream_reply(prepared, history=history, system_instruction=system_instruction,
                                             reasoning_mode=reasoning_mode, turn=turn))
        except StaleTurnError:
            logger.log_operation("grounding.turn", "superseded", {"user_id": user_id})
            return TurnOutcome(text="", path=path, superseded=True)

        return TurnOutcome(
            text=text,
            path=path,
            prompt_sent=prepared.prompt,
            retrieval=prepared.retrieval,
            degraded_reason=prepared.degraded_reason,
        )
