"""
Provider adapter base

Adapters are stateless: they hold only their own credentials and an HTTP
client, and turn every failure into a classified ProviderResult.
"""
import json
from typing import Optional

import httpx
import openai
from pydantic_ai.exceptions import ModelHTTPError, UnexpectedModelBehavior

from src.core.results import ErrorKind, ProviderResult
from src.infrastructure.http_client import get_shared_http_client
from src.utils.logger import get_logger

logger = get_logger(__name__)


class ProviderCallError(Exception):
    """Raised inside an adapter when the provider reports an already-classified failure"""

    def __init__(self, kind: ErrorKind, message: str):
        self.kind = kind
        super().__init__(message)


def _kind_for_status(status: int) -> ErrorKind:
    if status in (401, 403):
        return ErrorKind.AUTH_FAILED
    if status == 429:
        return ErrorKind.RATE_LIMITED
    if status in (408, 504):
        return ErrorKind.TIMEOUT
    return ErrorKind.UNKNOWN


def classify_exception(exc: BaseException) -> ErrorKind:
    """Map a provider-call exception onto an ErrorKind"""
    if isinstance(exc, ProviderCallError):
        return exc.kind
    if isinstance(exc, httpx.HTTPStatusError):
        return _kind_for_status(exc.response.status_code)
    if isinstance(exc, (httpx.TimeoutException, openai.APITimeoutError)):
        return ErrorKind.TIMEOUT
    if isinstance(exc, openai.APIStatusError):
        return _kind_for_status(exc.status_code)
    if isinstance(exc, ModelHTTPError):
        return _kind_for_status(exc.status_code)
    if isinstance(exc, UnexpectedModelBehavior):
        return ErrorKind.MALFORMED
    if isinstance(exc, (json.JSONDecodeError, KeyError, IndexError, TypeError, ValueError)):
        return ErrorKind.MALFORMED
    return ErrorKind.UNKNOWN


class ProviderAdapter:
    """Base class for every external provider adapter"""

    name: str = "provider"

    def __init__(self, http_client: Optional[httpx.AsyncClient] = None):
        self._http_client = http_client

    @property
    def http(self) -> httpx.AsyncClient:
        return self._http_client or get_shared_http_client()

    @property
    def is_configured(self) -> bool:
        """True when every credential this provider needs is present"""
        raise NotImplementedError

    def unavailable(self) -> ProviderResult:
        return ProviderResult.failure(self.name, ErrorKind.UNAVAILABLE, "credentials not configured")

    def failed(self, exc: BaseException) -> ProviderResult:
        kind = classify_exception(exc)
        logger.warning(f"{self.name} call failed ({kind.value}): {exc}")
        return ProviderResult.failure(self.name, kind, str(exc)[:500])
