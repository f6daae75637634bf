"""
Global error handlers

Every failure leaves the API as
    {"success": false, "error": ..., "error_type": ..., "details": {...}}
"""
import logging
from typing import Any, Dict, Optional

from fastapi import Request, status
from fastapi.encoders import jsonable_encoder
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException as StarletteHTTPException

from src.utils.exceptions import AnalysisServiceException, RateLimitExceededError
from src.utils.logger import get_logger

logger = get_logger(__name__)


def error_response(
    status_code: int,
    error: str,
    error_type: str,
    details: Optional[Dict[str, Any]] = None,
    headers: Optional[Dict[str, str]] = None
) -> JSONResponse:
    return JSONResponse(
        status_code=status_code,
        content=jsonable_encoder({
            "success": False,
            "error": error,
            "error_type": error_type,
            "details": details or {},
        }),
        headers=headers,
    )


def service_error_response(exc: AnalysisServiceException) -> JSONResponse:
    headers = None
    if isinstance(exc, RateLimitExceededError) and exc.details.get("retry_after"):
        headers = {"Retry-After": str(exc.details["retry_after"])}
    return error_response(exc.status_code, exc.message, exc.__class__.__name__, exc.details, headers)


async def analysis_exception_handler(request: Request, exc: AnalysisServiceException):
    """Provider, validation, media and storage failures raised by the service"""
    log = logger.error if exc.status_code >= 500 else logger.warning
    log(f"{exc.__class__.__name__}: {exc.message}", extra={
        "status_code": exc.status_code,
        "details": exc.details,
        "path": request.url.path
    })
    return service_error_response(exc)


def _field(loc) -> str:
    # drop the leading "body"/"query" segment
    parts = [str(part) for part in loc[1:]] or [str(part) for part in loc]
    return ".".join(parts)


async def validation_exception_handler(request: Request, exc: RequestValidationError):
    """Malformed request bodies and query parameters"""
    errors = [{"field": _field(e.get("loc", ())), "message": e.get("msg", "")} for e in exc.errors()]
    logger.warning(f"Validation error on {request.url.path}: {errors}")
    return error_response(
        status.HTTP_422_UNPROCESSABLE_ENTITY, "Validation error", "ValidationError", {"errors": errors}
    )


async def http_exception_handler(request: Request, exc: StarletteHTTPException):
    logger.warning(f"HTTP {exc.status_code} on {request.url.path}: {exc.detail}")
    return error_response(exc.status_code, str(exc.detail), "HTTPException", headers=getattr(exc, "headers", None))


async def generic_exception_handler(request: Request, exc: Exception):
    """Anything unexpected; internals are only echoed at DEBUG level"""
    logger.error(f"Unexpected exception: {exc}", exc_info=True, extra={"path": request.url.path})
    details = {"message": str(exc)} if logger.getEffectiveLevel() <= logging.DEBUG else {}
    return error_response(
        status.HTTP_500_INTERNAL_SERVER_ERROR, "Internal server error", "InternalServerError", details
    )
