"""
Tests for grounding mode dispatch and the local retrieval pipeline.
"""

import pytest

from vectorchat.agents.agent import ChatMessage, GroundingMode
from vectorchat.agents.orchestrator import GroundingOrchestrator, GroundingPath, select_path
from vectorchat.core.errors import EmbeddingError, StaleTurnError, ValidationError
from vectorchat.core.turns import TurnTracker
from vectorchat.vector.embeddings import EmbeddingClient
from vectorchat.vector.store import VectorStoreRegistry

from fakes import ScriptedEmbedding

PARIS_DOC = "The capital of France is Paris."
QUESTION = "What is the capital of France?"
OFF_TOPIC = "How do I bake bread?"


@pytest.fixture
def embedding_provider():
    return ScriptedEmbedding({
        PARIS_DOC: [1.0, 0.0, 0.0],
        QUESTION: [0.9, 0.1, 0.0],
        OFF_TOPIC: [0.0, 0.0, 1.0],
    })


@pytest.fixture
def stores(storage):
    return VectorStoreRegistry(storage)


@pytest.fixture
def orchestrator(embedding_provider, stores, chat_provider, web_search):
    return GroundingOrchestrator(
        embedding_client=EmbeddingClient(embedding_provider),
        stores=stores,
        chat_provider=chat_provider,
        web_search=web_search,
        turn_tracker=TurnTracker(),
    )


def _index(orchestrator, user_id, text):
    embedding = orchestrator.embedding_client.embed(text)
    return orchestrator.stores.for_user(user_id).add(text, embedding)


class TestSelectPath:

    @pytest.mark.parametrize("mode, path", [
        (GroundingMode.DISABLED, GroundingPath.PASS_THROUGH),
        (GroundingMode.WEB_SEARCH, GroundingPath.WEB_SEARCH),
        (GroundingMode.LOCAL_VECTOR, GroundingPath.LOCAL_VECTOR),
        ("nexus", GroundingPath.WEB_SEARCH),
        ("vector", GroundingPath.LOCAL_VECTOR),
    ])
    def test_dispatch(self, mode, path):
        """Test each grounding mode maps to its path."""
        assert select_path(mode) == path

    def test_unknown_mode(self):
        """Test an unknown grounding mode is rejected."""
        with pytest.raises(ValueError):
            select_path("telepathy")


class TestLocalVectorGrounding:

    def test_relevant_document_augments_prompt(self, orchestrator, chat_provider):
        """Test a relevant document is injected into the prompt."""
        _index(orchestrator, "alice", PARIS_DOC)

        outcome = orchestrator.handle_message("alice", QUESTION, GroundingMode.LOCAL_VECTOR)

        expected = (
            "Using the following context, answer the user's question.\n\n---\n\n"
            f"Context: \"{PARIS_DOC}\"\n\n---\n\n"
            f"Question: \"{QUESTION}\""
        )
        assert chat_provider.prompts == [expected]
        assert outcome.augmented is True
        assert outcome.prompt_sent == expected
        assert outcome.text == chat_provider.reply
        assert outcome.retrieval.cleared_threshold is True
        assert outcome.path == GroundingPath.LOCAL_VECTOR

    def test_irrelevant_document_sends_question_verbatim(self, orchestrator, chat_provider):
        """Test a below-threshold match leaves the question unchanged."""
        _index(orchestrator, "alice", PARIS_DOC)

        outcome = orchestrator.handle_message("alice", OFF_TOPIC, GroundingMode.LOCAL_VECTOR)

        assert chat_provider.prompts == [OFF_TOPIC]
        assert outcome.augmented is False
        assert outcome.retrieval.entry is not None
        assert outcome.retrieval.cleared_threshold is False

    def test_empty_store_skips_embedding(self, orchestrator, embedding_provider, chat_provider):
        """Test an empty store makes no embedding call."""
        outcome = orchestrator.handle_message("alice", QUESTION, GroundingMode.LOCAL_VECTOR)

        assert embedding_provider.calls == []
        assert chat_provider.prompts == [QUESTION]
        assert outcome.retrieval is None

    def test_other_users_documents_are_not_used(self, orchestrator, chat_provider):
        """Test retrieval only reads the requesting user's store."""
        _index(orchestrator, "bob", PARIS_DOC)

        orchestrator.handle_message("alice", QUESTION, GroundingMode.LOCAL_VECTOR)

        assert chat_provider.prompts == [QUESTION]

    def test_embedding_failure_degrades_to_question(self, orchestrator, embedding_provider, chat_provider):
        """Test an embedding failure falls back to the plain question."""
        _index(orchestrator, "alice", PARIS_DOC)
        embedding_provider.fail = True

        outcome = orchestrator.handle_message("alice", QUESTION, GroundingMode.LOCAL_VECTOR)

        assert chat_provider.prompts == [QUESTION]
        assert outcome.text == chat_provider.reply
        assert outcome.degraded_reason is not None

    def test_retrieve_raises_embedding_error(self, orchestrator, embedding_provider):
        """Test retrieve itself surfaces embedding failures."""
        _index(orchestrator, "alice", PARIS_DOC)
        embedding_provider.fail = True

        with pytest.raises(EmbeddingError):
            orchestrator.retrieve("alice", QUESTION)

    def test_history_and_persona_are_forwarded(self, orchestrator, chat_provider):
        """Test history and persona reach the chat model."""
        history = [ChatMessage(role="model", content="Hello!")]

        orchestrator.handle_message("alice", QUESTION, GroundingMode.LOCAL_VECTOR, history=history,
                                    system_instruction="Be brief.")

        assert chat_provider.histories == [history]
        assert chat_provider.system_instructions == ["Be brief."]


class TestOtherModes:

    def test_disabled_sends_message_verbatim(self, orchestrator, embedding_provider, chat_provider):
        """Test disabled grounding sends the message unchanged."""
        _index(orchestrator, "alice", PARIS_DOC)
        embedding_provider.calls.clear()

        outcome = orchestrator.handle_message("alice", QUESTION, GroundingMode.DISABLED)

        assert chat_provider.prompts == [QUESTION]
        assert embedding_provider.calls == []
        assert outcome.path == GroundingPath.PASS_THROUGH

    def test_web_search_does_not_touch_vector_store(self, orchestrator, embedding_provider,
                                                    chat_provider, web_search):
        """Test web-search grounding skips the vector store."""
        _index(orchestrator, "alice", PARIS_DOC)
        embedding_provider.calls.clear()

        outcome = orchestrator.handle_message("alice", QUESTION, GroundingMode.WEB_SEARCH)

        assert web_search.prompts == [QUESTION]
        assert chat_provider.prompts == []
        assert embedding_provider.calls == []
        assert outcome.text == "Live answer from the web."
        assert outcome.sources[0].uri == "https://example.org/paris"

    def test_web_search_without_provider(self, embedding_provider, stores, chat_provider):
        """Test web-search grounding without a provider fails."""
        orchestrator = GroundingOrchestrator(EmbeddingClient(embedding_provider), stores, chat_provider)

        with pytest.raises(ValueError):
            orchestrator.handle_message("alice", QUESTION, GroundingMode.WEB_SEARCH)

    def test_prepare_prompt_rejects_web_search(self, orchestrator):
        """Test prompt preparation refuses web-search mode."""
        with pytest.raises(ValueError):
            orchestrator.prepare_prompt("alice", QUESTION, GroundingMode.WEB_SEARCH)

    @pytest.mark.parametrize("message", ["", "   "])
    def test_empty_message_rejected(self, orchestrator, chat_provider, message):
        """Test a blank message is rejected."""
        with pytest.raises(ValidationError):
            orchestrator.handle_message("alice", message, GroundingMode.DISABLED)
        assert chat_provider.prompts == []


class TestStaleTurns:

    def test_superseded_turn_discards_retrieval(self, orchestrator, embedding_provider, chat_provider):
        """Test a superseded turn discards its retrieval."""
        _index(orchestrator, "alice", PARIS_DOC)
        tracker = orchestrator.turn_tracker
        turn = tracker.begin("conv-1")

        original_embed = embedding_provider.embed_text

        def embed_then_supersede(text):
            # User sends another message while this embedding is in flight
            tracker.begin("conv-1")
            return original_embed(text)

        embedding_provider.embed_text = embed_then_supersede

        outcome = orchestrator.handle_message("alice", QUESTION, GroundingMode.LOCAL_VECTOR, turn=turn)

        assert outcome.superseded is True
        assert outcome.text == ""
        assert chat_provider.prompts == []

    def test_prepare_prompt_raises_for_stale_turn(self, orchestrator):
        """Test prompt preparation raises for a stale turn."""
        _index(orchestrator, "alice", PARIS_DOC)
        turn = orchestrator.turn_tracker.begin("conv-1")
        orchestrator.turn_tracker.cancel("conv-1")

        with pytest.raises(StaleTurnError):
            orchestrator.prepare_prompt("alice", QUESTION, GroundingMode.LOCAL_VECTOR, turn=turn)

    def test_current_turn_is_answered(self, orchestrator, chat_provider):
        """Test the current turn is answered."""
        turn = orchestrator.turn_tracker.begin("conv-1")

        outcome = orchestrator.handle_message("alice", QUESTION, GroundingMode.DISABLED, turn=turn)

        assert outcome.superseded is False
        assert outcome.text == chat_provider.reply

    def test_web_search_result_for_stale_turn_is_discarded(self, orchestrator, web_search):
        """Test a web-search result for a stale turn is discarded."""
        turn = orchestrator.turn_tracker.begin("conv-1")
        orchestrator.turn_tracker.begin("conv-1")

        outcome = orchestrator.handle_message("alice", QUESTION, GroundingMode.WEB_SEARCH, turn=turn)

        assert outcome.superseded is True


def test_turn_tracker_sequence():
    """Test turn numbers increase per conversation."""
    tracker = TurnTracker()
    first = tracker.begin("c")
    second = tracker.begin("c")
    other = tracker.begin("d")

    assert tracker.is_current(first) is False
    assert tracker.is_current(second) is True
    assert tracker.is_current(other) is True
