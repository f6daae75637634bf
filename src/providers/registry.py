"""
Provider registry built from settings

One adapter instance per known provider, ordered by the configured
preference list of its capability. Unconfigured adapters stay in the
registry; they answer Unavailable without touching the network.
"""
from dataclasses import dataclass, field
from typing import Dict, List, Optional, Sequence, TypeVar

import httpx

from src.providers.face import (
    AzureFaceAdapter,
    FaceAdapter,
    FacePlusPlusAdapter,
    GoogleVisionAdapter,
    RekognitionAdapter,
)
from src.providers.llm import (
    AnthropicAdapter,
    DeepSeekAdapter,
    LLMAdapter,
    OpenAIAdapter,
    PerplexityAdapter,
)
from src.providers.transcription import (
    AssemblyAIAdapter,
    DeepgramAdapter,
    GladiaAdapter,
    TranscriptionAdapter,
    WhisperAdapter,
)
from src.providers.video_indexer import AzureVideoIndexerAdapter
from src.utils.config import Settings
from src.utils.logger import get_logger

logger = get_logger(__name__)

A = TypeVar("A")


def _in_order(adapters: Sequence[A], order: Sequence[str]) -> List[A]:
    """Adapters sorted by preference; names missing from ``order`` go last"""
    rank = {name: i for i, name in enumerate(order)}
    return sorted(adapters, key=lambda a: rank.get(a.name, len(rank)))


@dataclass
class ProviderRegistry:
    face: List[FaceAdapter] = field(default_factory=list)
    transcription: List[TranscriptionAdapter] = field(default_factory=list)
    llm: List[LLMAdapter] = field(default_factory=list)
    video_indexer: Optional[AzureVideoIndexerAdapter] = None

    @staticmethod
    def configured(adapters: Sequence[A]) -> List[A]:
        return [a for a in adapters if a.is_configured]

    def llm_chain(self, preferred: Optional[str] = None) -> List[LLMAdapter]:
        """LLM adapters in preference order, with ``preferred`` moved to the front"""
        chain = list(self.llm)
        if preferred:
            chain.sort(key=lambda a: a.name != preferred)
        return chain

    @property
    def has_llm(self) -> bool:
        return bool(self.configured(self.llm))

    def status(self) -> Dict[str, Dict[str, bool]]:
        """Configured flag per provider, grouped by capability"""
        status = {
            "face": {a.name: a.is_configured for a in self.face},
            "transcription": {a.name: a.is_configured for a in self.transcription},
            "llm": {a.name: a.is_configured for a in self.llm},
        }
        if self.video_indexer is not None:
            status["video_indexing"] = {self.video_indexer.name: self.video_indexer.is_configured}
        return status


def build_provider_registry(settings: Settings, http_client: Optional[httpx.AsyncClient] = None) -> ProviderRegistry:
    """Create every adapter from settings, each holding only its own credentials"""
    face = [
        FacePlusPlusAdapter(settings.FACEPP_API_KEY, settings.FACEPP_API_SECRET, settings.FACEPP_ENDPOINT,
                            http_client=http_client),
        AzureFaceAdapter(settings.AZURE_FACE_API_KEY, settings.AZURE_FACE_ENDPOINT, http_client=http_client),
        GoogleVisionAdapter(settings.GOOGLE_CLOUD_VISION_API_KEY, http_client=http_client),
        RekognitionAdapter(settings.AWS_ACCESS_KEY_ID, settings.AWS_SECRET_ACCESS_KEY, settings.AWS_REGION),
    ]
    transcription = [
        GladiaAdapter(settings.GLADIA_API_KEY, settings.TRANSCRIPTION_POLL_ATTEMPTS, settings.TRANSCRIPTION_POLL_INTERVAL,
                      http_client=http_client),
        AssemblyAIAdapter(settings.ASSEMBLYAI_API_KEY, settings.TRANSCRIPTION_POLL_ATTEMPTS,
                          settings.TRANSCRIPTION_POLL_INTERVAL, http_client=http_client),
        DeepgramAdapter(settings.DEEPGRAM_API_KEY, http_client=http_client),
        WhisperAdapter(settings.OPENAI_API_KEY, settings.WHISPER_MODEL),
    ]
    llm = [
        OpenAIAdapter(settings.OPENAI_API_KEY, settings.OPENAI_MODEL),
        AnthropicAdapter(settings.ANTHROPIC_API_KEY, settings.ANTHROPIC_MODEL),
        DeepSeekAdapter(settings.DEEPSEEK_API_KEY, settings.DEEPSEEK_MODEL, settings.DEEPSEEK_BASE_URL),
        PerplexityAdapter(settings.PERPLEXITY_API_KEY, settings.PERPLEXITY_MODEL, settings.PERPLEXITY_BASE_URL),
    ]
    video_indexer = AzureVideoIndexerAdapter(
        settings.AZURE_VIDEO_INDEXER_KEY,
        settings.AZURE_VIDEO_INDEXER_LOCATION,
        settings.AZURE_VIDEO_INDEXER_ACCOUNT_ID,
        poll_attempts=settings.VIDEO_INDEXER_POLL_ATTEMPTS,
        poll_interval=settings.VIDEO_INDEXER_POLL_INTERVAL,
        http_client=http_client,
    )

    registry = ProviderRegistry(
        face=_in_order(face, settings.FACE_PROVIDER_ORDER),
        transcription=_in_order(transcription, settings.TRANSCRIPTION_PROVIDER_ORDER),
        llm=_in_order(llm, settings.LLM_PROVIDER_ORDER),
        video_indexer=video_indexer,
    )

    logger.info("Provider registry built", extra={"providers": registry.status()})
    return registry
