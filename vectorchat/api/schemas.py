"""
Request/response models for the HTTP API.
"""

from datetime import datetime
from typing import Any, Dict, List, Optional

from pydantic import BaseModel, Field, field_validator

from ..core.profile import SYSTEM_INSTRUCTION_PRESETS

VALID_GROUNDING_MODES = ['disabled', 'web-search', 'local-vector', 'nexus', 'vector']
VALID_REASONING_MODES = ['normal', 'fast']
VALID_RATINGS = ['good', 'bad']
VALID_FEEDBACK_CATEGORIES = ['Inaccurate', 'Unhelpful', 'Offensive', 'Other']


class HealthResponse(BaseModel):
    status: str
    version: str
    storage_health: bool
    config_issues: List[str] = []


class ErrorResponse(BaseModel):
    error_type: str
    message: str
    timestamp: datetime = None
    details: Optional[Dict[str, Any]] = None

    def __init__(self, **data):
        super().__init__(timestamp=datetime.now(), **data)


# Vector store

class IndexDocumentRequest(BaseModel):
    content: str

    @field_validator('content')
    @classmethod
    def content_must_not_be_empty(cls, v):
        if not v.strip():
            raise ValueError('Content cannot be empty.')
        return v


class VectorEntryResponse(BaseModel):
    id: str
    content: str
    dimension: int


class VectorEntryListResponse(BaseModel):
    entries: List[VectorEntryResponse]
    count: int
    dimension: Optional[int] = None


class RemoveEntryResponse(BaseModel):
    removed: bool
    id: str


# Profile

class ProfileResponse(BaseModel):
    username: str
    display_name: str
    reasoning_mode: str
    grounding_mode: str
    system_instruction: Optional[str] = None
    avatar: Optional[str] = None


class ProfileUpdateRequest(BaseModel):
    display_name: Optional[str] = None
    reasoning_mode: Optional[str] = None
    grounding_mode: Optional[str] = None
    system_instruction: Optional[str] = None
    preset: Optional[str] = None  # built-in persona, ignored when system_instruction is given

    @field_validator('preset')
    @classmethod
    def preset_must_exist(cls, v):
        if v is not None and v not in SYSTEM_INSTRUCTION_PRESETS:
            raise ValueError(f'preset must be one of: {list(SYSTEM_INSTRUCTION_PRESETS)}')
        return v

    @field_validator('grounding_mode')
    @classmethod
    def grounding_mode_must_be_valid(cls, v):
        if v is not None and v not in VALID_GROUNDING_MODES:
            raise ValueError(f'grounding_mode must be one of: {VALID_GROUNDING_MODES}')
        return v

    @field_validator('reasoning_mode')
    @classmethod
    def reasoning_mode_must_be_valid(cls, v):
        if v is not None and v not in VALID_REASONING_MODES:
            raise ValueError(f'reasoning_mode must be one of: {VALID_REASONING_MODES}')
        return v

    @field_validator('display_name')
    @classmethod
    def display_name_must_not_be_empty(cls, v):
        if v is not None and not v.strip():
            raise ValueError('display_name cannot be empty')
        return v


class AvatarRequest(BaseModel):
    prompt: str

    @field_validator('prompt')
    @classmethod
    def prompt_must_not_be_empty(cls, v):
        if not v.strip():
            raise ValueError('prompt cannot be empty')
        return v


class AvatarResponse(BaseModel):
    avatar: str


# Chat

class SourceModel(BaseModel):
    uri: str
    title: str


class ChatMessageRequest(BaseModel):
    user_id: str
    content: str
    conversation_id: Optional[str] = None
    grounding_mode: Optional[str] = None  # per-turn override of the profile mode

    @field_validator('content')
    @classmethod
    def content_must_not_be_empty(cls, v):
        if not v.strip():
            raise ValueError('content cannot be empty')
        return v

    @field_validator('grounding_mode')
    @classmethod
    def grounding_mode_must_be_valid(cls, v):
        if v is not None and v not in VALID_GROUNDING_MODES:
            raise ValueError(f'grounding_mode must be one of: {VALID_GROUNDING_MODES}')
        return v


class RetrievalInfo(BaseModel):
    entry_id: Optional[str] = None
    score: float
    cleared_threshold: bool
    threshold: float


class ChatMessageResponse(BaseModel):
    message_id: str
    conversation_id: str
    content: str
    grounding_mode: str
    augmented: bool = False
    superseded: bool = False
    is_error: bool = False
    sources: List[SourceModel] = []
    retrieval: Optional[RetrievalInfo] = None
    degraded_reason: Optional[str] = None
    title: Optional[str] = None
    timestamp: datetime = Field(default_factory=datetime.now)


class MessageModel(BaseModel):
    id: str
    role: str
    content: str
    timestamp: int
    sources: Optional[List[SourceModel]] = None
    feedback: Optional[Dict[str, Any]] = None
    is_error: bool = False


class ConversationModel(BaseModel):
    id: str
    title: str
    timestamp: int
    messages: List[MessageModel]


class ConversationListResponse(BaseModel):
    conversations: List[ConversationModel]


class RefineRequest(BaseModel):
    instruction: str
    content: str

    @field_validator('instruction', 'content')
    @classmethod
    def must_not_be_empty(cls, v):
        if not v.strip():
            raise ValueError('value cannot be empty')
        return v


class RefineResponse(BaseModel):
    content: str


class InsightsRequest(BaseModel):
    user_id: str
    conversation_id: str


class FeedbackRequest(BaseModel):
    user_id: str
    conversation_id: str
    message_id: str
    rating: Optional[str] = None  # None clears feedback
    categories: List[str] = []
    comment: Optional[str] = None

    @field_validator('rating')
    @classmethod
    def rating_must_be_valid(cls, v):
        if v is not None and v not in VALID_RATINGS:
            raise ValueError(f'rating must be one of: {VALID_RATINGS}')
        return v

    @field_validator('categories')
    @classmethod
    def categories_must_be_valid(cls, v):
        invalid = [c for c in v if c not in VALID_FEEDBACK_CATEGORIES]
        if invalid:
            raise ValueError(f'categories must be drawn from: {VALID_FEEDBACK_CATEGORIES}')
        return v
