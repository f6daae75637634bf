"""
Typed provider outcomes

Every adapter call ends in exactly one ProviderResult: either a fully
populated success or a classified failure. Adapters never raise past
their boundary; callers branch on ``ok``.
"""
from dataclasses import dataclass
from enum import Enum
from typing import Generic, Optional, TypeVar

T = TypeVar("T")


class Capability(str, Enum):
    """External capabilities the orchestrator can fan out to"""
    FACE = "face"
    TRANSCRIPTION = "transcription"
    VIDEO_INDEXING = "video_indexing"
    LLM = "llm"


class ErrorKind(str, Enum):
    """Classified reason for a failed provider call"""
    UNAVAILABLE = "unavailable"          # credentials missing, never attempted
    AUTH_FAILED = "auth_failed"
    RATE_LIMITED = "rate_limited"
    MALFORMED = "malformed"
    TIMEOUT = "timeout"
    UNKNOWN = "unknown"
    ALL_PROVIDERS_FAILED = "all_providers_failed"


@dataclass(frozen=True)
class ProviderResult(Generic[T]):
    """Outcome of one provider call"""
    ok: bool
    provider: str
    value: Optional[T] = None
    error: Optional[ErrorKind] = None
    message: Optional[str] = None

    def __post_init__(self):
        if self.ok and self.error is not None:
            raise ValueError("successful result cannot carry an error")
        if not self.ok and self.error is None:
            raise ValueError("failed result requires an error kind")

    @classmethod
    def success(cls, provider: str, value: T) -> "ProviderResult[T]":
        return cls(ok=True, provider=provider, value=value)

    @classmethod
    def failure(
        cls,
        provider: str,
        error: ErrorKind,
        message: Optional[str] = None
    ) -> "ProviderResult[T]":
        return cls(ok=False, provider=provider, error=error, message=message)

    def to_dict(self) -> dict:
        if self.ok:
            return {"ok": True, "provider": self.provider}
        return {
            "ok": False,
            "provider": self.provider,
            "error": self.error.value,
            "message": self.message,
        }
