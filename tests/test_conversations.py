"""
Tests for conversation history persistence and feedback.
"""

import pytest

from vectorchat.core.conversations import DEFAULT_TITLE, Conversation, ConversationStore, Feedback, Message
from vectorchat.core.insights import relevant_messages, summarize_feedback


@pytest.fixture
def conversations(storage):
    return ConversationStore(storage, "alice", display_name="Alice")


class TestConversationStore:

    def test_first_list_creates_greeting(self, storage, conversations):
        """Test a new user starts with a greeting conversation."""
        listed = conversations.list()

        assert len(listed) == 1
        assert listed[0].title == DEFAULT_TITLE
        assert listed[0].messages[0].id == "initial"
        assert listed[0].messages[0].content == "Hello, Alice! How can I assist you today?"
        assert storage.get("chatHistory_alice") is not None

    def test_save_and_reload(self, storage, conversations):
        """Test a saved conversation reloads unchanged."""
        conversation = conversations.new_conversation()
        conversation.messages.append(Message(id="m1", role="user", content="Hi"))
        conversations.save_conversation(conversation)

        reloaded = ConversationStore(storage, "alice").get(conversation.id)

        assert [m.id for m in reloaded.messages] == ["initial", "m1"]
        assert reloaded.user_message_count() == 1

    def test_list_is_newest_first(self, conversations):
        """Test conversations are listed newest first."""
        older = conversations.new_conversation()
        older.timestamp = 1000
        conversations.save_conversation(older)
        newer = conversations.new_conversation()
        newer.timestamp = 2000
        conversations.save_conversation(newer)

        assert [c.id for c in conversations.list()] == [newer.id, older.id]

    def test_delete(self, storage, conversations):
        """Test deleting a conversation."""
        conversation = conversations.new_conversation()

        assert conversations.delete(conversation.id) is True
        assert conversations.delete(conversation.id) is False
        assert storage.get("chatHistory_alice") is None

    def test_corrupt_history_is_discarded(self, storage, conversations):
        """Test corrupt history is removed and replaced."""
        storage.set("chatHistory_alice", "{broken")

        listed = conversations.list()

        assert len(listed) == 1
        assert listed[0].messages[0].id == "initial"

    def test_set_and_clear_feedback(self, conversations):
        """Test setting and clearing message feedback."""
        conversation = conversations.new_conversation()

        message = conversations.set_feedback(conversation.id, "initial",
                                             Feedback(rating="bad", categories=["Unhelpful"], comment="vague"))
        assert message.feedback.rating == "bad"
        assert conversations.get(conversation.id).messages[0].feedback.comment == "vague"

        conversations.set_feedback(conversation.id, "initial", None)
        assert conversations.get(conversation.id).messages[0].feedback is None

    def test_feedback_on_unknown_message(self, conversations):
        """Test feedback on an unknown message is refused."""
        conversation = conversations.new_conversation()
        assert conversations.set_feedback(conversation.id, "nope", Feedback(rating="good")) is None
        assert conversations.set_feedback("missing", "initial", Feedback(rating="good")) is None


class TestInsightsHelpers:

    def test_summarize_feedback(self):
        """Test the local feedback tally."""
        messages = [
            Message(id="1", role="model", content="a", feedback=Feedback(rating="good")),
            Message(id="2", role="model", content="b",
                    feedback=Feedback(rating="bad", categories=["Inaccurate", "Other"], comment="wrong year")),
            Message(id="3", role="model", content="c", feedback=Feedback(rating="bad", categories=["Inaccurate"])),
            Message(id="4", role="user", content="d"),
        ]

        summary = summarize_feedback(messages)

        assert summary.good == 1
        assert summary.bad == 2
        assert summary.category_counts["Inaccurate"] == 2
        assert summary.category_counts["Other"] == 1
        assert summary.comments == [{
            "message_content": "b",
            "feedback_comment": "wrong year",
            "categories": ["Inaccurate", "Other"],
        }]

    def test_relevant_messages_skip_greeting_and_empty(self):
        """Test the greeting and empty messages are not analysed."""
        conversation = Conversation(id="c", title="t", messages=[
            Message(id="initial", role="model", content="Hello"),
            Message(id="x", role="user", content="   "),
            Message(id="y", role="user", content="Real question"),
        ])

        assert [m.id for m in relevant_messages(conversation.messages)] == ["y"]
