"""
Chat API.

Every user message is routed through the grounding orchestrator according to
the user's grounding mode (or a per-message override). Both sides of the
exchange are persisted to the user's conversation history.
"""

import uuid
from typing import Iterator, List, Optional

from fastapi import APIRouter, Depends, HTTPException, status
from fastapi.responses import StreamingResponse

from ..agents.agent import ChatMessage, GroundingMode, filter_history
from ..agents.assistant import generate_conversation_insights, generate_title, refine_content
from ..agents.orchestrator import GroundingPath, TurnOutcome, select_path
from ..core.conversations import Conversation, ConversationStore, Feedback, Message, now_ms
from ..core.errors import RemoteServiceError, StaleTurnError, ValidationError
from ..core.profile import UserProfile
from ..util.logging import logger
from .schemas import (
    ChatMessageRequest,
    ChatMessageResponse,
    ConversationListResponse,
    ConversationModel,
    FeedbackRequest,
    InsightsRequest,
    MessageModel,
    RefineRequest,
    RefineResponse,
    RetrievalInfo,
    SourceModel,
)
from .services import Services, get_services

router = APIRouter()


def _history(conversation: Conversation) -> List[ChatMessage]:
    """Earlier messages sent as model context; failed replies are left out."""
    return filter_history([
        ChatMessage(role=m.role, content=m.content) for m in conversation.messages if not m.is_error
    ])


def _open_conversation(store: ConversationStore, conversation_id: Optional[str]) -> Conversation:
    if conversation_id is None:
        return store.list()[0]
    conversation = store.get(conversation_id)
    if conversation is None:
        raise HTTPException(status_code=404, detail="Conversation not found")
    return conversation


def _resolve_mode(profile: UserProfile, override: Optional[str]) -> GroundingMode:
    return GroundingMode.parse(override) if override else profile.grounding_mode


def _require_grounding_path(services: Services, mode: GroundingMode) -> None:
    """Reject a turn whose grounding path has no collaborator, before anything is persisted."""
    if select_path(mode) == GroundingPath.WEB_SEARCH and services.web_search is None:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="web-search grounding is not configured")


def _message_model(message: Message) -> MessageModel:
    return MessageModel(
        id=message.id,
        role=message.role,
        content=message.content,
        timestamp=message.timestamp,
        sources=[SourceModel(**s) for s in message.sources] if message.sources else None,
        feedback=message.feedback.to_dict() if message.feedback else None,
        is_error=message.is_error,
    )


def _retrieval_info(outcome: TurnOutcome) -> Optional[RetrievalInfo]:
    retrieval = outcome.retrieval
    if retrieval is None:
        return None
    return RetrievalInfo(
        entry_id=retrieval.entry.id if retrieval.entry else None,
        score=retrieval.score,
        cleared_threshold=retrieval.cleared_threshold,
        threshold=retrieval.threshold,
    )


def _finish_exchange(services: Services, store: ConversationStore, conversation: Conversation,
                     user_message: Message, reply: Message) -> Optional[str]:
    """Persist the model reply and title a conversation after its first exchange."""
    conversation.messages.append(reply)
    conversation.timestamp = now_ms()

    title = None
    if conversation.user_message_count() == 1 and not reply.is_error:
        title = generate_title(services.chat_provider, user_message.content, reply.content)
        conversation.title = title

    store.save_conversation(conversation)
    return title


@router.post("/message", response_model=ChatMessageResponse)
def send_message(req: ChatMessageRequest, services: Services = Depends(get_services)):
    """
    Send a message and wait for the complete reply.

    A reply whose turn was superseded by a newer message in the same
    conversation is discarded and reported with superseded=True.
    """
    profile = services.profiles.get(req.user_id)
    mode = _resolve_mode(profile, req.grounding_mode)
    store = services.conversations(req.user_id)
    conversation = _open_conversation(store, req.conversation_id)
    _require_grounding_path(services, mode)

    history = _history(conversation)
    user_message = Message(id=uuid.uuid4().hex, role="user", content=req.content)
    conversation.messages.append(user_message)
    conversation.timestamp = now_ms()
    store.save_conversation(conversation)

    turn = services.turn_tracker.begin(conversation.id)

    try:
        outcome = services.orchestrator.handle_message(
            req.user_id,
            req.content,
            mode,
            history=history,
            system_instruction=profile.effective_system_instruction,
            reasoning_mode=profile.reasoning_mode,
            turn=turn,
        )
    except ValidationError as e:
        raise HTTPException(status_code=status.HTTP_422_UNPROCESSABLE_ENTITY, detail=str(e))
    except ValueError as e:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(e))
    except RemoteServiceError as e:
        logger.error(f"Chat turn failed for {req.user_id}: {e}")
        reply = Message(id=uuid.uuid4().hex, role="model", content=str(e), is_error=True)
        _finish_exchange(services, store, conversation, user_message, reply)
        return ChatMessageResponse(
            message_id=reply.id,
            conversation_id=conversation.id,
            content=reply.content,
            grounding_mode=mode.value,
            is_error=True,
        )

    if outcome.superseded:
        return ChatMessageResponse(
            message_id=user_message.id,
            conversation_id=conversation.id,
            content="",
            grounding_mode=mode.value,
            superseded=True,
        )

    sources = [s.to_dict() for s in outcome.sources]
    reply = Message(id=uuid.uuid4().hex, role="model", content=outcome.text, sources=sources or None)
    title = _finish_exchange(services, store, conversation, user_message, reply)

    return ChatMessageResponse(
        message_id=reply.id,
        conversation_id=conversation.id,
        content=reply.content,
        grounding_mode=mode.value,
        augmented=outcome.augmented,
        sources=[SourceModel(**s) for s in sources],
        retrieval=_retrieval_info(outcome),
        degraded_reason=outcome.degraded_reason,
        title=title,
    )


@router.post("/stream")
def stream_message(req: ChatMessageRequest, services: Services = Depends(get_services)):
    """Send a message and stream the reply as plain text chunks."""
    profile = services.profiles.get(req.user_id)
    mode = _resolve_mode(profile, req.grounding_mode)
    store = services.conversations(req.user_id)
    conversation = _open_conversation(store, req.conversation_id)
    _require_grounding_path(services, mode)

    history = _history(conversation)
    user_message = Message(id=uuid.uuid4().hex, role="user", content=req.content)
    conversation.messages.append(user_message)
    conversation.timestamp = now_ms()
    store.save_conversation(conversation)

    turn = services.turn_tracker.begin(conversation.id)
    path = select_path(mode)

    def _chunks() -> Iterator[str]:
        parts = []
        sources = None
        is_error = False
        try:
            if path == GroundingPath.WEB_SEARCH:
                response = services.web_search.search(req.content)
                if not services.turn_tracker.is_current(turn):
                    return
                sources = [s.to_dict() for s in response.sources] or None
                parts.append(response.text)
                yield response.text
            else:
                prepared = services.orchestrator.prepare_prompt(req.user_id, req.content, mode, turn=turn)
                logger.log_grounding_dispatch(req.user_id, mode.value, augmented=prepared.augmented)
                for chunk in services.orchestrator.stream_reply(
                        prepared, history=history,
                        system_instruction=profile.effective_system_instruction,
                        reasoning_mode=profile.reasoning_mode, turn=turn):
                    parts.append(chunk)
                    yield chunk
        except StaleTurnError:
            logger.log_operation("grounding.turn", "superseded", {"user_id": req.user_id})
            return
        except RemoteServiceError as e:
            logger.error(f"Chat stream failed for {req.user_id}: {e}")
            is_error = True
            parts = [str(e)]
            yield str(e)

        reply = Message(id=uuid.uuid4().hex, role="model", content="".join(parts),
                        sources=sources, is_error=is_error)
        _finish_exchange(services, store, conversation, user_message, reply)

    return StreamingResponse(
        _chunks(),
        media_type="text/plain",
        headers={"X-Conversation-Id": conversation.id, "X-Grounding-Mode": mode.value},
    )


@router.get("/{user_id}/conversations", response_model=ConversationListResponse)
def list_conversations(user_id: str, services: Services = Depends(get_services)):
    conversations = services.conversations(user_id).list()
    return ConversationListResponse(conversations=[
        ConversationModel(id=c.id, title=c.title, timestamp=c.timestamp,
                          messages=[_message_model(m) for m in c.messages])
        for c in conversations
    ])


@router.post("/{user_id}/conversations", response_model=ConversationModel, status_code=201)
def create_conversation(user_id: str, services: Services = Depends(get_services)):
    conversation = services.conversations(user_id).new_conversation()
    return ConversationModel(id=conversation.id, title=conversation.title, timestamp=conversation.timestamp,
                             messages=[_message_model(m) for m in conversation.messages])


@router.delete("/{user_id}/conversations/{conversation_id}", status_code=204)
def delete_conversation(user_id: str, conversation_id: str, services: Services = Depends(get_services)):
    services.turn_tracker.cancel(conversation_id)
    if not services.conversations(user_id).delete(conversation_id):
        raise HTTPException(status_code=404, detail="Conversation not found")


@router.post("/refine", response_model=RefineResponse)
def refine(req: RefineRequest, services: Services = Depends(get_services)):
    try:
        return RefineResponse(content=refine_content(services.chat_provider, req.instruction, req.content))
    except RemoteServiceError as e:
        raise HTTPException(status_code=status.HTTP_502_BAD_GATEWAY, detail=str(e))


@router.post("/insights")
def insights(req: InsightsRequest, services: Services = Depends(get_services)):
    conversation = services.conversations(req.user_id).get(req.conversation_id)
    if conversation is None:
        raise HTTPException(status_code=404, detail="Conversation not found")
    return generate_conversation_insights(services.chat_provider, conversation.messages).to_dict()


@router.post("/feedback", response_model=MessageModel)
def feedback(req: FeedbackRequest, services: Services = Depends(get_services)):
    """Rate a model message; a null rating clears existing feedback."""
    value = None
    if req.rating is not None:
        # Categories and comments only accompany negative ratings
        bad = req.rating == "bad"
        value = Feedback(rating=req.rating, categories=list(req.categories) if bad else [],
                         comment=req.comment if bad else None)

    message = services.conversations(req.user_id).set_feedback(req.conversation_id, req.message_id, value)
    if message is None:
        raise HTTPException(status_code=404, detail="Message not found")
    return _message_model(message)
