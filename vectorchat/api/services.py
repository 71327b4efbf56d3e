"""
Process-wide service container shared by the API routers.
"""

import os
from dataclasses import dataclass
from typing import Optional

from ..agents.agent import IChatProvider, IWebSearchProvider
from ..agents.orchestrator import GroundingOrchestrator
from ..core import config
from ..core.conversations import ConversationStore
from ..core.profile import ProfileStore
from ..core.storage import IStorage
from ..core.turns import TurnTracker
from ..vector.embeddings import EmbeddingClient, IEmbeddingProvider
from ..vector.store import VectorStoreRegistry


@dataclass
class Services:
    storage: IStorage
    vector_stores: VectorStoreRegistry
    profiles: ProfileStore
    embedding_client: EmbeddingClient
    chat_provider: IChatProvider
    web_search: Optional[IWebSearchProvider]
    orchestrator: GroundingOrchestrator
    turn_tracker: TurnTracker
    gemini_client: Optional[object] = None
    image_model: str = config.GEMINI_IMAGE_MODEL
    conversation_namespace: str = config.CONVERSATION_NAMESPACE

    def conversations(self, user_id: str) -> ConversationStore:
        profile = self.profiles.get(user_id)
        return ConversationStore(self.storage, user_id, profile.display_name, self.conversation_namespace)


def build_services(storage: IStorage, embedding_provider: IEmbeddingProvider, chat_provider: IChatProvider,
                   web_search: Optional[IWebSearchProvider] = None, gemini_client=None,
                   threshold: Optional[float] = None, top_k: Optional[int] = None) -> Services:
    """Assemble the service graph from its collaborators."""
    vector_stores = VectorStoreRegistry(storage, os.getenv("VECTOR_NAMESPACE", config.VECTOR_NAMESPACE))
    embedding_client = EmbeddingClient(embedding_provider)
    turn_tracker = TurnTracker()
    orchestrator = GroundingOrchestrator(
        embedding_client=embedding_client,
        stores=vector_stores,
        chat_provider=chat_provider,
        web_search=web_search,
        turn_tracker=turn_tracker,
        threshold=threshold if threshold is not None else config.get_relevance_threshold(),
        top_k=top_k if top_k is not None else config.get_retrieval_top_k(),
    )
    return Services(
        storage=storage,
        vector_stores=vector_stores,
        profiles=ProfileStore(storage, os.getenv("PROFILE_NAMESPACE", config.PROFILE_NAMESPACE)),
        embedding_client=embedding_client,
        chat_provider=chat_provider,
        web_search=web_search,
        orchestrator=orchestrator,
        turn_tracker=turn_tracker,
        gemini_client=gemini_client,
        image_model=os.getenv("GEMINI_IMAGE_MODEL", config.GEMINI_IMAGE_MODEL),
        conversation_namespace=os.getenv("CONVERSATION_NAMESPACE", config.CONVERSATION_NAMESPACE),
    )


def build_default_services() -> Services:
    """Services wired from environment configuration."""
    from ..agents.gemini_agent import GeminiWebSearch

    gemini_client = config.get_gemini_client()
    return build_services(
        storage=config.get_storage(),
        embedding_provider=config.get_embedding_provider(),
        chat_provider=config.get_chat_provider(),
        web_search=GeminiWebSearch(gemini_client, os.getenv("GEMINI_CHAT_MODEL", config.GEMINI_CHAT_MODEL)),
        gemini_client=gemini_client,
    )


_services: Optional[Services] = None


def get_services() -> Services:
    """FastAPI dependency returning the shared services, built on first use."""
    global _services
    if _services is None:
        _services = build_default_services()
    return _services
