"""
Runtime configuration read from environment variables.
Factory helpers build the configured storage, embedding and chat providers.
"""

import os

# Remote generative AI API (Gemini REST)
GEMINI_API_KEY = os.getenv("GEMINI_API_KEY")
GEMINI_API_BASE = os.getenv("GEMINI_API_BASE", "https://generativelanguage.googleapis.com/v1beta")
GEMINI_CHAT_MODEL = os.getenv("GEMINI_CHAT_MODEL", "gemini-2.5-flash")
GEMINI_EMBED_MODEL = os.getenv("GEMINI_EMBED_MODEL", "text-embedding-004")
GEMINI_IMAGE_MODEL = os.getenv("GEMINI_IMAGE_MODEL", "imagen-4.0-generate-001")
GEMINI_TIMEOUT_SEC = os.getenv("GEMINI_TIMEOUT_SEC", "60")

# Provider selection
CHAT_PROVIDER = os.getenv("CHAT_PROVIDER", "gemini")  # gemini|ollama
OLLAMA_MODEL = os.getenv("OLLAMA_MODEL", "llama3.1:8b")
EMBED_PROVIDER = os.getenv("EMBED_PROVIDER", "gemini")  # gemini|sentence|hash
EMBED_MODEL_NAME = os.getenv("EMBED_MODEL_NAME", "all-MiniLM-L6-v2")

# Durable storage
STORAGE_BACKEND = os.getenv("STORAGE_BACKEND", "sqlite")  # sqlite|file|memory
DB_PATH = os.getenv("DB_PATH", "./data/vectorchat.db")
STORAGE_DIR = os.getenv("STORAGE_DIR", "./data/storage")

# Retrieval policy
VECTOR_NAMESPACE = os.getenv("VECTOR_NAMESPACE", "vectorDB")
PROFILE_NAMESPACE = os.getenv("PROFILE_NAMESPACE", "profile")
CONVERSATION_NAMESPACE = os.getenv("CONVERSATION_NAMESPACE", "chatHistory")
# Parsed by the getters so validate_config can report malformed values
RELEVANCE_THRESHOLD = os.getenv("RELEVANCE_THRESHOLD", "0.75")
RETRIEVAL_TOP_K = os.getenv("RETRIEVAL_TOP_K", "1")
DEFAULT_GROUNDING_MODE = os.getenv("DEFAULT_GROUNDING_MODE", "disabled")  # disabled|web-search|local-vector

DEBUG = os.getenv("DEBUG", "false").lower() == "true"

VERSION = "1.0.0"

VALID_CHAT_PROVIDERS = ["gemini", "ollama"]
VALID_EMBED_PROVIDERS = ["gemini", "sentence", "hash"]
VALID_STORAGE_BACKENDS = ["sqlite", "file", "memory"]


def debug_enabled():
    """Check if debug mode is enabled."""
    return os.getenv("DEBUG", "false").lower() == "true"


def get_relevance_threshold() -> float:
    """Relevance threshold; a best score must exceed it to be injected."""
    return float(os.getenv("RELEVANCE_THRESHOLD", RELEVANCE_THRESHOLD))


def get_retrieval_top_k() -> int:
    """Number of matched entries injected into an augmented prompt."""
    return int(os.getenv("RETRIEVAL_TOP_K", RETRIEVAL_TOP_K))


def get_gemini_timeout() -> int:
    return int(os.getenv("GEMINI_TIMEOUT_SEC", GEMINI_TIMEOUT_SEC))


def get_api_key():
    return os.getenv("GEMINI_API_KEY", GEMINI_API_KEY or "") or None


def get_storage():
    """Get the configured durable storage backend."""
    backend = os.getenv("STORAGE_BACKEND", STORAGE_BACKEND)

    if backend == "memory":
        from .storage import InMemoryStorage
        return InMemoryStorage()
    elif backend == "file":
        from .storage import JsonFileStorage
        return JsonFileStorage(os.getenv("STORAGE_DIR", STORAGE_DIR))
    else:
        from .storage import SQLiteStorage
        return SQLiteStorage(os.getenv("DB_PATH", DB_PATH))


def get_gemini_client():
    """Get a Gemini REST client for the configured key and models."""
    from ..agents.gemini_client import GeminiClient
    return GeminiClient(
        api_key=get_api_key(),
        base_url=os.getenv("GEMINI_API_BASE", GEMINI_API_BASE),
        timeout=get_gemini_timeout(),
    )


def get_embedding_provider():
    """Get configured embedding provider implementation."""
    provider = os.getenv("EMBED_PROVIDER", EMBED_PROVIDER)

    if provider == "hash":
        from ..vector.embeddings import DeterministicHashEmbedding
        return DeterministicHashEmbedding()
    elif provider == "sentence":
        from ..vector.embeddings import SentenceTransformerEmbedding
        return SentenceTransformerEmbedding(os.getenv("EMBED_MODEL_NAME", EMBED_MODEL_NAME))
    else:
        from ..vector.embeddings import GeminiEmbedding
        return GeminiEmbedding(get_gemini_client(), os.getenv("GEMINI_EMBED_MODEL", GEMINI_EMBED_MODEL))


def get_chat_provider():
    """Get configured chat completion provider."""
    provider = os.getenv("CHAT_PROVIDER", CHAT_PROVIDER)

    if provider == "ollama":
        from ..agents.ollama_agent import OllamaChatProvider
        return OllamaChatProvider(os.getenv("OLLAMA_MODEL", OLLAMA_MODEL))
    else:
        from ..agents.gemini_agent import GeminiChatProvider
        return GeminiChatProvider(get_gemini_client(), os.getenv("GEMINI_CHAT_MODEL", GEMINI_CHAT_MODEL))


def validate_config():
    """Validate configuration and return any issues."""
    issues = []

    chat_provider = os.getenv("CHAT_PROVIDER", CHAT_PROVIDER)
    embed_provider = os.getenv("EMBED_PROVIDER", EMBED_PROVIDER)
    backend = os.getenv("STORAGE_BACKEND", STORAGE_BACKEND)

    if chat_provider not in VALID_CHAT_PROVIDERS:
        issues.append(f"Invalid CHAT_PROVIDER: {chat_provider}")

    if embed_provider not in VALID_EMBED_PROVIDERS:
        issues.append(f"Invalid EMBED_PROVIDER: {embed_provider}")

    if backend not in VALID_STORAGE_BACKENDS:
        issues.append(f"Invalid STORAGE_BACKEND: {backend}")

    try:
        threshold = get_relevance_threshold()
        if not -1.0 <= threshold <= 1.0:
            issues.append("RELEVANCE_THRESHOLD must be within [-1, 1]")
    except ValueError:
        issues.append("RELEVANCE_THRESHOLD must be a number")

    try:
        if get_retrieval_top_k() < 1:
            issues.append("RETRIEVAL_TOP_K must be >= 1")
    except ValueError:
        issues.append("RETRIEVAL_TOP_K must be an integer")

    try:
        get_gemini_timeout()
    except ValueError:
        issues.append("GEMINI_TIMEOUT_SEC must be an integer")

    default_mode = os.getenv("DEFAULT_GROUNDING_MODE", DEFAULT_GROUNDING_MODE)
    if default_mode not in ["disabled", "web-search", "local-vector"]:
        issues.append(f"Invalid DEFAULT_GROUNDING_MODE: {default_mode}")

    if (chat_provider == "gemini" or embed_provider == "gemini") and not get_api_key():
        issues.append("GEMINI_API_KEY is required when a gemini provider is selected")

    return issues
