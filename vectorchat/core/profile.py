"""
Per-user profile: display name, reasoning and grounding modes, persona.
"""

import json
import os
from dataclasses import asdict, dataclass
from typing import Any, Dict, Optional

from ..agents.agent import GroundingMode, ReasoningMode
from ..util.logging import audit_event, logger
from .storage import IStorage, user_key

DEFAULT_SYSTEM_INSTRUCTION = (
    "You are FAV AI, a friendly and helpful assistant. Your tone should be warm, approachable, "
    "and conversational. Prioritize being clear and accurate, but feel free to add a touch of wit. "
    "Your primary goal is to assist the user in a positive and engaging way."
)
CREATIVE_WRITER_INSTRUCTION = (
    "You are a master creative writer. Your expertise lies in storytelling, poetry, and evocative prose. "
    "Your tone is artistic and imaginative. You should help users craft compelling narratives, write "
    "beautiful descriptions, and explore the nuances of language. Your primary goal is to inspire "
    "creativity and assist with all forms of artistic writing."
)
TECHNICAL_EXPERT_INSTRUCTION = (
    "You are a technical expert and programmer. Your communication style is precise, logical, and direct. "
    "You provide accurate, efficient, and well-documented solutions to technical problems, code-related "
    "queries, and data analysis tasks. You must prioritize correctness and clarity above all else, avoiding "
    "conversational fluff. Assume you are speaking to a fellow technical professional."
)

SYSTEM_INSTRUCTION_PRESETS = {
    "default": DEFAULT_SYSTEM_INSTRUCTION,
    "creative_writer": CREATIVE_WRITER_INSTRUCTION,
    "technical_expert": TECHNICAL_EXPERT_INSTRUCTION,
}


def default_grounding_mode() -> GroundingMode:
    try:
        return GroundingMode.parse(os.getenv("DEFAULT_GROUNDING_MODE", "disabled"))
    except ValueError:
        return GroundingMode.DISABLED


@dataclass
class UserProfile:
    username: str
    display_name: str
    reasoning_mode: ReasoningMode = ReasoningMode.NORMAL
    grounding_mode: GroundingMode = GroundingMode.DISABLED
    system_instruction: Optional[str] = None
    avatar: Optional[str] = None  # data URL

    @property
    def effective_system_instruction(self) -> str:
        return self.system_instruction or DEFAULT_SYSTEM_INSTRUCTION

    def to_dict(self) -> Dict[str, Any]:
        data = asdict(self)
        data["reasoning_mode"] = self.reasoning_mode.value
        data["grounding_mode"] = self.grounding_mode.value
        return data

    @classmethod
    def from_dict(cls, username: str, data: Dict[str, Any]) -> "UserProfile":
        """Build a profile, back-filling fields older records do not have."""
        try:
            reasoning = ReasoningMode(data.get("reasoning_mode") or data.get("reasoningMode") or "normal")
        except ValueError:
            reasoning = ReasoningMode.NORMAL

        raw_grounding = data.get("grounding_mode") or data.get("groundingMode")
        try:
            grounding = GroundingMode.parse(raw_grounding) if raw_grounding else default_grounding_mode()
        except ValueError:
            grounding = default_grounding_mode()

        return cls(
            username=username,
            display_name=data.get("display_name") or data.get("displayName") or username,
            reasoning_mode=reasoning,
            grounding_mode=grounding,
            system_instruction=data.get("system_instruction") or data.get("systemInstruction"),
            avatar=data.get("avatar"),
        )


class ProfileStore:
    """Profiles persisted per user under '<namespace>_<username>'."""

    def __init__(self, storage: IStorage, namespace: str = "profile"):
        self.storage = storage
        self.namespace = namespace

    def get(self, username: str) -> UserProfile:
        """Load a profile; a missing or corrupt record yields a default profile."""
        key = user_key(self.namespace, username)
        blob = self.storage.get(key)
        if blob is None:
            return UserProfile(username=username, display_name=username, grounding_mode=default_grounding_mode())

        try:
            data = json.loads(blob)
            if not isinstance(data, dict):
                raise ValueError(f"expected an object, got {type(data).__name__}")
        except ValueError as e:
            logger.log_persistence_corruption(key, str(e))
            return UserProfile(username=username, display_name=username, grounding_mode=default_grounding_mode())

        return UserProfile.from_dict(username, data)

    def save(self, profile: UserProfile) -> UserProfile:
        self.storage.set(user_key(self.namespace, profile.username), json.dumps(profile.to_dict()))
        return profile

    def update(self, username: str, **changes) -> UserProfile:
        """Apply non-None changes to the stored profile and persist it."""
        profile = self.get(username)
        if changes.get("display_name") is not None:
            profile.display_name = changes["display_name"]
        if changes.get("reasoning_mode") is not None:
            profile.reasoning_mode = ReasoningMode(changes["reasoning_mode"])
        if changes.get("grounding_mode") is not None:
            profile.grounding_mode = GroundingMode.parse(changes["grounding_mode"])
            audit_event("profile.grounding_mode", {"user_id": username}, {"mode": profile.grounding_mode.value})
        if changes.get("avatar") is not None or changes.get("system_instruction") is not None:
            audit_event("profile.persona", {"user_id": username},
                        {"avatar": changes.get("avatar"), "system_instruction": changes.get("system_instruction")},
                        sensitive_fields=["avatar"])
        if "system_instruction" in changes and changes["system_instruction"] is not None:
            # Empty string resets to the default persona
            profile.system_instruction = changes["system_instruction"] or None
        if changes.get("avatar") is not None:
            profile.avatar = changes["avatar"]
        return self.save(profile)
