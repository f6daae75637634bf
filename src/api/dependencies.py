"""
FastAPI dependencies
"""
from functools import lru_cache

from src.infrastructure.storage import AnalysisStore, get_analysis_store
from src.providers.registry import ProviderRegistry, build_provider_registry
from src.services.chat_service import ChatService
from src.services.document_service import get_document_service
from src.services.media_service import MediaTranscoder
from src.services.orchestrator import AnalysisOrchestrator, OrchestratorConfig
from src.utils.config import get_settings


# Provider registry (built once from settings)
@lru_cache()
def get_provider_registry() -> ProviderRegistry:
    """Get cached provider registry"""
    return build_provider_registry(get_settings())


# Record store
def get_store() -> AnalysisStore:
    """Get record store instance"""
    return get_analysis_store()


# Orchestrator
@lru_cache()
def get_orchestrator_cached() -> AnalysisOrchestrator:
    """Get cached analysis orchestrator instance"""
    settings = get_settings()
    return AnalysisOrchestrator(
        registry=get_provider_registry(),
        transcoder=MediaTranscoder(),
        store=get_analysis_store(),
        config=OrchestratorConfig.from_settings(settings),
        document_service=get_document_service(),
    )


def get_orchestrator() -> AnalysisOrchestrator:
    """Get analysis orchestrator instance"""
    return get_orchestrator_cached()


# Chat
@lru_cache()
def get_chat_service_cached() -> ChatService:
    """Get cached chat service instance"""
    settings = get_settings()
    return ChatService(
        registry=get_provider_registry(),
        store=get_analysis_store(),
        default_model=settings.DEFAULT_LLM_PROVIDER,
        timeout=settings.LLM_TIMEOUT_SECONDS,
    )


def get_chat_service() -> ChatService:
    """Get chat service instance"""
    return get_chat_service_cached()
