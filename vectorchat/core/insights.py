"""
Local (no model call) analysis of the feedback left on a conversation.
"""

from dataclasses import dataclass, field
from typing import Any, Dict, List

from .conversations import FEEDBACK_CATEGORIES, Message


@dataclass
class FeedbackSummary:
    good: int = 0
    bad: int = 0
    category_counts: Dict[str, int] = field(default_factory=lambda: {c: 0 for c in FEEDBACK_CATEGORIES})
    common_themes: List[str] = field(default_factory=list)
    comments: List[Dict[str, Any]] = field(default_factory=list)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "good": self.good,
            "bad": self.bad,
            "category_counts": dict(self.category_counts),
            "common_themes": list(self.common_themes),
            "comments": list(self.comments),
        }


@dataclass
class ConversationInsights:
    summary: str
    action_items: List[str]
    sentiment: str  # Positive|Negative|Neutral|Mixed
    key_topics: List[str]
    feedback_summary: FeedbackSummary

    def to_dict(self) -> Dict[str, Any]:
        return {
            "summary": self.summary,
            "action_items": list(self.action_items),
            "sentiment": self.sentiment,
            "key_topics": list(self.key_topics),
            "feedback_summary": self.feedback_summary.to_dict(),
        }


def summarize_feedback(messages: List[Message]) -> FeedbackSummary:
    """Tally good/bad ratings, negative categories and comments."""
    summary = FeedbackSummary()

    for msg in messages:
        if not msg.feedback:
            continue
        if msg.feedback.rating == "good":
            summary.good += 1
        elif msg.feedback.rating == "bad":
            summary.bad += 1
            for category in msg.feedback.categories:
                if category in summary.category_counts:
                    summary.category_counts[category] += 1
            if msg.feedback.comment:
                summary.comments.append({
                    "message_content": msg.content,
                    "feedback_comment": msg.feedback.comment,
                    "categories": list(msg.feedback.categories),
                })

    return summary


def relevant_messages(messages: List[Message]) -> List[Message]:
    """Messages worth analysing: non-empty and not the greeting."""
    return [m for m in messages if m.content.strip() and m.id != "initial"]
