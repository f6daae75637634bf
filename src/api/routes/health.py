"""
Health check and provider status routes
"""
from datetime import datetime, timezone

from fastapi import APIRouter, Depends

from src.api.dependencies import get_provider_registry
from src.api.schemas.response import HealthResponse, StatusResponse
from src.providers.registry import ProviderRegistry
from src.utils.config import settings
from src.utils.logger import get_logger

logger = get_logger(__name__)
router = APIRouter(tags=["Health"])
status_router = APIRouter(tags=["Health"])


@router.get("/health", response_model=HealthResponse)
async def health_check():
    """Liveness check"""
    return HealthResponse(
        status="healthy",
        version=settings.APP_VERSION,
        environment=settings.ENVIRONMENT,
        timestamp=datetime.now(timezone.utc)
    )


@status_router.get("/status", response_model=StatusResponse)
async def provider_status(registry: ProviderRegistry = Depends(get_provider_registry)):
    """
    Which providers are configured, per capability

    Credentials are never echoed; only a configured flag per provider.
    """
    llm_available = registry.has_llm
    return StatusResponse(
        status="ok" if llm_available else "degraded",
        providers=registry.status(),
        storage_backend=settings.STORAGE_BACKEND,
        llm_available=llm_available,
        timestamp=datetime.now(timezone.utc),
        message=None if llm_available else "No language-model provider is configured"
    )
