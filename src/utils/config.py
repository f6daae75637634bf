"""
Configuration management with environment variable support
"""
from pathlib import Path
from typing import Optional, List
from pydantic import Field
from pydantic_settings import BaseSettings
from functools import lru_cache


class Settings(BaseSettings):
    """Application settings with validation"""

    # Application
    APP_NAME: str = "Persona Analysis API"
    APP_VERSION: str = "1.0.0"
    DEBUG: bool = False
    ENVIRONMENT: str = "development"  # development, staging, production

    # API
    API_PREFIX: str = "/api"
    HOST: str = "0.0.0.0"
    PORT: int = 5000
    WORKERS: int = 1
    RELOAD: bool = False

    # CORS
    CORS_ORIGINS: List[str] = ["http://localhost:3000", "http://localhost:5000"]
    CORS_CREDENTIALS: bool = True

    # Rate Limiting
    RATE_LIMIT_ENABLED: bool = True
    RATE_LIMIT_REQUESTS: int = 100
    RATE_LIMIT_PERIOD: int = 60  # seconds
    RATE_LIMIT_ANALYSIS_REQUESTS: int = 20  # POST /analyze* share a smaller budget

    # Uploads (base64 JSON bodies)
    MAX_UPLOAD_SIZE: int = 100 * 1024 * 1024  # 100MB
    SCRATCH_DIR: Optional[str] = None  # None = system temp dir

    # Record storage
    STORAGE_BACKEND: str = "memory"  # memory, redis
    REDIS_URL: Optional[str] = None
    REDIS_HOST: str = "localhost"
    REDIS_PORT: int = 6379
    REDIS_DB: int = 0
    REDIS_PASSWORD: Optional[str] = None
    REDIS_KEY_PREFIX: str = "persona"

    # Logging
    LOG_LEVEL: str = "INFO"
    LOG_FORMAT: str = "json"  # json, text
    LOG_FILE: Optional[str] = None

    # Face analysis providers
    FACEPP_API_KEY: Optional[str] = None
    FACEPP_API_SECRET: Optional[str] = None
    FACEPP_ENDPOINT: str = "https://api-us.faceplusplus.com/facepp/v3/detect"
    AZURE_FACE_API_KEY: Optional[str] = None
    AZURE_FACE_ENDPOINT: Optional[str] = None
    GOOGLE_CLOUD_VISION_API_KEY: Optional[str] = None
    AWS_ACCESS_KEY_ID: Optional[str] = None
    AWS_SECRET_ACCESS_KEY: Optional[str] = None
    AWS_REGION: str = "us-east-1"

    # Transcription providers
    GLADIA_API_KEY: Optional[str] = None
    ASSEMBLYAI_API_KEY: Optional[str] = None
    TRANSCRIPTION_POLL_ATTEMPTS: int = 30
    TRANSCRIPTION_POLL_INTERVAL: float = 1.0
    DEEPGRAM_API_KEY: Optional[str] = None
    WHISPER_MODEL: str = "whisper-1"

    # Video indexing
    AZURE_VIDEO_INDEXER_KEY: Optional[str] = None
    AZURE_VIDEO_INDEXER_LOCATION: Optional[str] = None
    AZURE_VIDEO_INDEXER_ACCOUNT_ID: Optional[str] = None
    VIDEO_INDEXER_POLL_ATTEMPTS: int = 20
    VIDEO_INDEXER_POLL_INTERVAL: float = 5.0

    # Language model providers
    OPENAI_API_KEY: Optional[str] = None
    OPENAI_MODEL: str = "gpt-4o"
    ANTHROPIC_API_KEY: Optional[str] = None
    ANTHROPIC_MODEL: str = "claude-sonnet-4-20250514"
    DEEPSEEK_API_KEY: Optional[str] = None
    DEEPSEEK_MODEL: str = "deepseek-chat"
    DEEPSEEK_BASE_URL: str = "https://api.deepseek.com/v1"
    PERPLEXITY_API_KEY: Optional[str] = None
    PERPLEXITY_MODEL: str = "sonar"
    PERPLEXITY_BASE_URL: str = "https://api.perplexity.ai"

    # Provider preference order per capability (first = most preferred)
    FACE_PROVIDER_ORDER: List[str] = ["facepp", "azure_face", "google_vision", "aws_rekognition"]
    TRANSCRIPTION_PROVIDER_ORDER: List[str] = ["gladia", "assemblyai", "deepgram", "openai_whisper"]
    LLM_PROVIDER_ORDER: List[str] = ["anthropic", "openai", "perplexity", "deepseek"]
    DEFAULT_LLM_PROVIDER: str = "openai"

    # Timeouts (seconds)
    PROVIDER_TIMEOUT_SECONDS: float = 60.0
    LLM_TIMEOUT_SECONDS: float = 180.0
    VIDEO_INDEXER_TIMEOUT_SECONDS: float = 180.0
    MEDIA_TIMEOUT_SECONDS: float = 300.0
    REQUEST_DEADLINE_SECONDS: float = 600.0

    # Analysis
    MAX_PEOPLE_LIMIT: int = 5
    DEFAULT_VIDEO_DURATION_SECONDS: float = 5.0
    ASSESSMENT_MIN_FIELD_LENGTH: int = 10
    LLM_MAX_REPROMPTS: int = Field(default=1, ge=0, le=1)

    class Config:
        env_file = ".env"
        env_file_encoding = "utf-8"
        case_sensitive = True

    @property
    def is_development(self) -> bool:
        return self.ENVIRONMENT == "development"

    @property
    def scratch_path(self) -> Optional[Path]:
        """Parent directory for request-scoped scratch dirs (None = system temp)"""
        if not self.SCRATCH_DIR:
            return None
        path = Path(self.SCRATCH_DIR)
        path.mkdir(parents=True, exist_ok=True)
        return path

    @property
    def redis_url_resolved(self) -> str:
        if self.REDIS_URL:
            return self.REDIS_URL
        if self.REDIS_PASSWORD:
            return f"redis://:{self.REDIS_PASSWORD}@{self.REDIS_HOST}:{self.REDIS_PORT}/{self.REDIS_DB}"
        return f"redis://{self.REDIS_HOST}:{self.REDIS_PORT}/{self.REDIS_DB}"


@lru_cache()
def get_settings() -> Settings:
    """Get cached settings instance"""
    return Settings()


# Convenience accessors
settings = get_settings()
