"""
Structured logging configuration

Every record carries the id of the HTTP request it was emitted under, so the
fan-out of one analysis (face, transcription, indexing, language models) can
be followed across concurrently running provider calls.
"""
import sys
import logging
from contextvars import ContextVar
from datetime import datetime, timezone
from pathlib import Path
from typing import Any, Dict, Optional
from pythonjsonlogger import jsonlogger

from src.utils.config import settings

# Set by the request logging middleware; inherited by tasks spawned for the request
request_id_var: ContextVar[Optional[str]] = ContextVar("request_id", default=None)

NOISY_LOGGERS = ("httpx", "httpcore", "urllib3", "botocore", "boto3", "openai", "anthropic")


class RequestContextFilter(logging.Filter):
    """Attach the current request id to each record"""

    def filter(self, record: logging.LogRecord) -> bool:
        record.request_id = request_id_var.get() or "-"
        return True


class CustomJsonFormatter(jsonlogger.JsonFormatter):
    """JSON formatter adding service metadata"""

    def add_fields(self, log_record: Dict[str, Any], record: logging.LogRecord, message_dict: Dict[str, Any]):
        super().add_fields(log_record, record, message_dict)

        log_record["timestamp"] = datetime.now(timezone.utc).isoformat().replace("+00:00", "Z")
        log_record["level"] = record.levelname
        log_record["logger"] = record.name
        log_record["request_id"] = getattr(record, "request_id", "-")
        log_record["environment"] = settings.ENVIRONMENT
        log_record["service"] = f"{settings.APP_NAME} {settings.APP_VERSION}"


def _formatter() -> logging.Formatter:
    if settings.LOG_FORMAT == "json":
        return CustomJsonFormatter("%(timestamp)s %(level)s %(name)s %(message)s")
    return logging.Formatter(
        "%(asctime)s [%(request_id)s] %(name)s %(levelname)s: %(message)s",
        datefmt="%Y-%m-%d %H:%M:%S"
    )


def setup_logging() -> logging.Logger:
    """Configure the root logger from settings (idempotent)"""
    root = logging.getLogger()
    root.setLevel(getattr(logging, settings.LOG_LEVEL.upper(), logging.INFO))
    root.handlers.clear()

    formatter = _formatter()
    context = RequestContextFilter()

    handlers = [logging.StreamHandler(sys.stdout)]
    if settings.LOG_FILE:
        log_path = Path(settings.LOG_FILE)
        log_path.parent.mkdir(parents=True, exist_ok=True)
        handlers.append(logging.FileHandler(log_path))

    for handler in handlers:
        handler.setFormatter(formatter)
        handler.addFilter(context)
        root.addHandler(handler)

    for name in NOISY_LOGGERS:
        logging.getLogger(name).setLevel(logging.WARNING)

    return root


def get_logger(name: str) -> logging.Logger:
    """Get logger instance for module"""
    return logging.getLogger(name)


# Initialize logging on import
setup_logging()
