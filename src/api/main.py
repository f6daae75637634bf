"""
FastAPI Main Application
Multi-provider personality analysis API
"""
from contextlib import asynccontextmanager

from fastapi import FastAPI
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from starlette.exceptions import HTTPException as StarletteHTTPException

from src.api.dependencies import get_provider_registry
from src.api.middleware.error_handler import (
    analysis_exception_handler,
    generic_exception_handler,
    http_exception_handler,
    validation_exception_handler,
)
from src.api.middleware.logging import LoggingMiddleware
from src.api.middleware.rate_limit import RateLimitMiddleware
from src.api.routes import analyze, chat, health, sessions
from src.infrastructure.http_client import close_shared_http_client
from src.utils.config import Settings, get_settings
from src.utils.exceptions import AnalysisServiceException
from src.utils.logger import get_logger

logger = get_logger(__name__)

DESCRIPTION = """
Personality profiles from images, video, text and documents.

- **Face analysis**: Face++, Azure Face, Google Vision and AWS Rekognition run concurrently and are merged per person
- **Video**: segment extraction, transcription fallback chain (Gladia, AssemblyAI, Deepgram, Whisper) and Azure Video Indexer
- **Language models**: OpenAI, Anthropic, DeepSeek and Perplexity with preference-ordered fallback
- **Completeness gate**: incomplete assessments are reprompted once, then rejected
- **Chat**: follow-up questions about a stored analysis
"""


@asynccontextmanager
async def lifespan(app: FastAPI):
    settings = get_settings()
    logger.info(f"Starting {settings.APP_NAME} v{settings.APP_VERSION} ({settings.ENVIRONMENT})")

    registry = get_provider_registry()
    for capability, providers in registry.status().items():
        configured = [name for name, ok in providers.items() if ok]
        logger.info(f"{capability}: {', '.join(configured) if configured else 'none configured'}")
    if not registry.has_llm:
        logger.warning("No language-model provider configured; analysis requests will return 503")

    yield

    logger.info("Shutting down...")
    await close_shared_http_client()
    logger.info("Shutdown complete")


def create_app(settings: Settings = None) -> FastAPI:
    """Build the application: middleware, exception handlers and routers"""
    settings = settings or get_settings()

    app = FastAPI(
        title=settings.APP_NAME,
        version=settings.APP_VERSION,
        description=DESCRIPTION,
        lifespan=lifespan,
        debug=settings.DEBUG
    )

    # Allow all origins in development
    app.add_middleware(
        CORSMiddleware,
        allow_origins=["*"] if settings.is_development else settings.CORS_ORIGINS,
        allow_credentials=False if settings.is_development else settings.CORS_CREDENTIALS,
        allow_methods=["*"],
        allow_headers=["*"],
    )
    if settings.RATE_LIMIT_ENABLED:
        app.add_middleware(
            RateLimitMiddleware,
            requests=settings.RATE_LIMIT_REQUESTS,
            period=settings.RATE_LIMIT_PERIOD,
            analysis_requests=settings.RATE_LIMIT_ANALYSIS_REQUESTS
        )
    # Added last so it wraps everything, rate-limited responses included
    app.add_middleware(LoggingMiddleware)

    app.add_exception_handler(AnalysisServiceException, analysis_exception_handler)
    app.add_exception_handler(RequestValidationError, validation_exception_handler)
    app.add_exception_handler(StarletteHTTPException, http_exception_handler)
    app.add_exception_handler(Exception, generic_exception_handler)

    app.include_router(health.router)
    for router in (health.status_router, analyze.router, chat.router, sessions.router):
        app.include_router(router, prefix=settings.API_PREFIX)

    @app.get("/", include_in_schema=False)
    async def root():
        return {
            "name": settings.APP_NAME,
            "version": settings.APP_VERSION,
            "docs": "/docs",
            "health": "/health",
            "status": f"{settings.API_PREFIX}/status"
        }

    return app


app = create_app()


if __name__ == "__main__":
    import uvicorn

    settings = get_settings()
    uvicorn.run(
        "src.api.main:app",
        host=settings.HOST,
        port=settings.PORT,
        reload=settings.RELOAD,
        workers=settings.WORKERS if not settings.RELOAD else 1,
        log_level=settings.LOG_LEVEL.lower()
    )
