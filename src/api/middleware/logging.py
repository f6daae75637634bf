"""
Request/response logging middleware
"""
import time
import uuid

from fastapi import Request
from starlette.middleware.base import BaseHTTPMiddleware

from src.utils.logger import get_logger, request_id_var

logger = get_logger(__name__)

QUIET_PATHS = {"/health"}


class LoggingMiddleware(BaseHTTPMiddleware):
    """Logs every request with its status and duration"""

    async def dispatch(self, request: Request, call_next):
        request_id = request.headers.get("X-Request-ID") or uuid.uuid4().hex[:16]
        token = request_id_var.set(request_id)
        start_time = time.perf_counter()
        log = logger.debug if request.url.path in QUIET_PATHS else logger.info

        try:
            log(f"Request: {request.method} {request.url.path}", extra={
                "method": request.method,
                "path": request.url.path,
                "client_host": request.client.host if request.client else None
            })

            response = await call_next(request)
            duration = time.perf_counter() - start_time

            log(f"Response: {response.status_code} in {duration:.3f}s", extra={
                "method": request.method,
                "path": request.url.path,
                "status_code": response.status_code,
                "duration_seconds": duration
            })
        finally:
            request_id_var.reset(token)

        response.headers["X-Process-Time"] = f"{duration:.4f}"
        response.headers["X-Request-ID"] = request_id
        return response
