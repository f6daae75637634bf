"""
Per-client sliding-window rate limiting

Analysis requests fan out to several paid providers, so they draw from a
smaller budget than the cheap session and record endpoints.
"""
import time
from collections import defaultdict, deque
from typing import Deque, Dict, Optional, Tuple

from fastapi import Request
from starlette.middleware.base import BaseHTTPMiddleware

from src.api.middleware.error_handler import service_error_response
from src.utils.config import settings
from src.utils.exceptions import RateLimitExceededError
from src.utils.logger import get_logger

logger = get_logger(__name__)


class SlidingWindow:
    """Timestamps of accepted requests per client within the last ``period`` seconds"""

    def __init__(self, limit: int, period: int):
        self.limit = limit
        self.period = period
        self._hits: Dict[str, Deque[float]] = defaultdict(deque)

    def acquire(self, client_id: str, now: float) -> Tuple[bool, int]:
        """Record a hit; returns (allowed, retry_after_seconds)"""
        hits = self._hits[client_id]
        while hits and hits[0] <= now - self.period:
            hits.popleft()

        if len(hits) >= self.limit:
            retry_after = int(self.period - (now - hits[0])) + 1
            return False, retry_after

        hits.append(now)
        return True, 0


class RateLimitMiddleware(BaseHTTPMiddleware):
    """In-memory limiter (one process); put a shared limiter in front for multi-worker deployments"""

    def __init__(self, app, requests: Optional[int] = None, period: Optional[int] = None,
                 analysis_requests: Optional[int] = None):
        super().__init__(app)
        period = period or settings.RATE_LIMIT_PERIOD
        self.general = SlidingWindow(requests or settings.RATE_LIMIT_REQUESTS, period)
        self.analysis = SlidingWindow(analysis_requests or settings.RATE_LIMIT_ANALYSIS_REQUESTS, period)
        self.analysis_prefix = f"{settings.API_PREFIX}/analyze"
        self.exempt_paths = {"/health", f"{settings.API_PREFIX}/status"}

        logger.info(
            f"RateLimitMiddleware initialized: {self.general.limit} requests "
            f"({self.analysis.limit} analyses) per {period}s"
        )

    @staticmethod
    def _client_id(request: Request) -> str:
        forwarded = request.headers.get("X-Forwarded-For")
        if forwarded:
            return forwarded.split(",")[0].strip()
        return request.client.host if request.client else "unknown"

    def _window(self, request: Request) -> SlidingWindow:
        if request.method == "POST" and request.url.path.startswith(self.analysis_prefix):
            return self.analysis
        return self.general

    async def dispatch(self, request: Request, call_next):
        if request.url.path in self.exempt_paths:
            return await call_next(request)

        client_id = self._client_id(request)
        allowed, retry_after = self._window(request).acquire(client_id, time.monotonic())
        if not allowed:
            logger.warning(f"Rate limit exceeded for client {client_id} on {request.url.path}")
            return service_error_response(RateLimitExceededError(retry_after=retry_after))

        return await call_next(request)
