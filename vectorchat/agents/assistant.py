"""
Model-backed helpers around a conversation: titles, refinement, insights
and avatar images.
"""

import json
from typing import List

from ..core.conversations import Message
from ..core.errors import RemoteServiceError
from ..core.insights import ConversationInsights, relevant_messages, summarize_feedback
from ..util.logging import logger
from .agent import IChatProvider

TITLE_SYSTEM_INSTRUCTION = (
    "You are a title generator. Your only job is to create a short, relevant title for a conversation. "
    "Do not add any conversational text, explanations, or quotation marks. Just output the title."
)
REFINE_SYSTEM_INSTRUCTION = (
    "You are a text editor. Your task is to modify the given text based on the user's instruction. "
    "Output only the modified text, without any additional commentary, conversational text, or quotation marks."
)
AVATAR_SYSTEM_INSTRUCTION = (
    "You are a creative prompt engineer for an AI image generator. Your task is to take a user's brief idea "
    "and expand it into a single, detailed, descriptive sentence for a futuristic, high-quality avatar. "
    "Do not add any conversational text or explanations, just output the enhanced prompt."
)

INSIGHTS_SCHEMA = {
    "type": "OBJECT",
    "properties": {
        "summary": {"type": "STRING", "description": "A concise, neutral summary of the conversation's main points."},
        "actionItems": {"type": "ARRAY", "items": {"type": "STRING"},
                        "description": "Tasks, questions, or follow-ups explicitly mentioned or strongly implied."},
        "sentiment": {"type": "STRING",
                      "description": "Overall sentiment. One of: Positive, Negative, Neutral, Mixed."},
        "keyTopics": {"type": "ARRAY", "items": {"type": "STRING"},
                      "description": "Up to 5 main topics or keywords from the conversation."},
    },
}
THEMES_SCHEMA = {
    "type": "OBJECT",
    "properties": {
        "commonThemes": {"type": "ARRAY", "items": {"type": "STRING"},
                         "description": "Up to 3 common themes identified from the feedback."},
    },
}
SENTIMENTS = ["Positive", "Negative", "Neutral", "Mixed"]


def fallback_title(user_message: str) -> str:
    return user_message[:30] + "..." if len(user_message) > 30 else user_message


def generate_title(chat_provider: IChatProvider, user_message: str, model_response: str) -> str:
    """A title of at most 4 words; falls back to the truncated user message."""
    try:
        title = chat_provider.generate(
            f"Based on the following conversation, create a concise title (4 words maximum).\n\n"
            f"User: \"{user_message}\"\n\nAI: \"{model_response}\"",
            system_instruction=TITLE_SYSTEM_INSTRUCTION,
            thinking=False,
            max_output_tokens=15,
        )
    except RemoteServiceError as e:
        logger.warning(f"Title generation failed: {e}")
        return fallback_title(user_message)

    title = (title or "").strip().replace('"', "").replace("'", "")
    return title or fallback_title(user_message)


def refine_content(chat_provider: IChatProvider, instruction: str, content: str) -> str:
    """Rewrite content according to instruction, e.g. 'Make it shorter'."""
    try:
        refined = chat_provider.generate(
            f"{instruction}:\n\n---\n\n\"{content}\"",
            system_instruction=REFINE_SYSTEM_INSTRUCTION,
            thinking=False,
        )
    except RemoteServiceError as e:
        raise RemoteServiceError("Failed to refine the response. Please try again.") from e
    return refined.strip()


def generate_conversation_insights(chat_provider: IChatProvider, messages: List[Message]) -> ConversationInsights:
    """
    Summarize a conversation and the feedback left on it.

    The feedback tally is computed locally and is returned even when the
    model call fails.
    """
    feedback_summary = summarize_feedback(messages)

    relevant = relevant_messages(messages)
    if not relevant:
        return ConversationInsights(
            summary="This conversation is just getting started.",
            action_items=[],
            sentiment="Neutral",
            key_topics=[],
            feedback_summary=feedback_summary,
        )

    history = "\n".join(f"{m.role}: {m.content}" for m in relevant)

    try:
        general = json.loads(chat_provider.generate(
            "Analyze the following conversation. Provide a concise summary, a list of action items, the overall "
            "sentiment (Positive, Negative, Neutral, or Mixed), and a list of up to 5 key topics discussed."
            f"\n\n---\n\n{history}",
            response_schema=INSIGHTS_SCHEMA,
        ))
        if not isinstance(general, dict):
            raise ValueError(f"expected an insights object, got {type(general).__name__}")

        if feedback_summary.comments:
            feedback_context = "\n\n".join(
                f"Feedback #{i + 1}:\n- AI Message: \"{c['message_content']}\"\n"
                f"- User's Reason(s): {', '.join(c['categories']) or 'N/A'}\n"
                f"- User's Comment: \"{c['feedback_comment']}\""
                for i, c in enumerate(feedback_summary.comments)
            )
            themes = json.loads(chat_provider.generate(
                "Based on the following user feedback, identify up to 3 common themes or recurring problems. "
                "A theme is a high-level summary of an issue. For example, \"AI is too verbose\" or "
                f"\"Factual inaccuracies about history\".\n\n---\n\n{feedback_context}",
                response_schema=THEMES_SCHEMA,
            ))
            if not isinstance(themes, dict):
                raise ValueError(f"expected a themes object, got {type(themes).__name__}")
            feedback_summary.common_themes = list(themes.get("commonThemes") or [])[:3]
    except (RemoteServiceError, ValueError) as e:
        logger.error(f"Error generating conversation insights: {e}")
        return ConversationInsights(
            summary="AI analysis failed.",
            action_items=[],
            sentiment="Neutral",
            key_topics=[],
            feedback_summary=feedback_summary,
        )

    sentiment = general.get("sentiment")
    return ConversationInsights(
        summary=general.get("summary", ""),
        action_items=list(general.get("actionItems") or []),
        sentiment=sentiment if sentiment in SENTIMENTS else "Neutral",
        key_topics=list(general.get("keyTopics") or [])[:5],
        feedback_summary=feedback_summary,
    )


def generate_avatar(chat_provider: IChatProvider, gemini_client, image_model: str, prompt: str) -> str:
    """
    Expand a short idea into an image prompt and render a square PNG avatar.

    Returns:
        A data:image/png;base64 URL
    """
    try:
        enhanced_prompt = chat_provider.generate(
            f"Expand this into a detailed image prompt for a profile avatar: \"{prompt}\"",
            system_instruction=AVATAR_SYSTEM_INSTRUCTION,
            thinking=False,
        ).strip()

        images = gemini_client.generate_images(image_model, enhanced_prompt or prompt,
                                               number_of_images=1, aspect_ratio="1:1", mime_type="image/png")
    except RemoteServiceError as e:
        raise RemoteServiceError("Failed to generate AI avatar. Please try again.") from e

    if not images:
        raise RemoteServiceError("No image was generated.")
    return f"data:image/png;base64,{images[0]}"
