"""Structured logging with request and upload context.

Every record carries the correlation ID of the request that produced it.
While an upload is running, records also carry the upload kind and target
video, so one upload can be followed from staging to the object store,
including the pipeline work done in the threadpool.
"""

import json
import logging
import sys
import traceback
import uuid
from contextlib import contextmanager
from contextvars import ContextVar
from datetime import datetime, timezone
from typing import Any, Iterator, Optional

correlation_id_var: ContextVar[Optional[str]] = ContextVar("correlation_id", default=None)
upload_context_var: ContextVar[Optional[dict[str, str]]] = ContextVar(
    "upload_context", default=None
)

# LogRecord attributes that are not user-supplied extras
_RECORD_ATTRS = frozenset(
    vars(logging.LogRecord("", 0, "", 0, "", (), None)).keys()
) | {"message", "asctime", "correlation_id", "upload"}


def get_correlation_id() -> str:
    """Get the current correlation ID, generating one outside a request."""
    cid = correlation_id_var.get()
    if cid is None:
        cid = str(uuid.uuid4())
        correlation_id_var.set(cid)
    return cid


def set_correlation_id(correlation_id: str) -> None:
    correlation_id_var.set(correlation_id)


def clear_correlation_id() -> None:
    correlation_id_var.set(None)


@contextmanager
def upload_log_context(kind: str, video_id: str, user_id: str) -> Iterator[None]:
    """Tag every record logged inside the block with the running upload.

    Args:
        kind: Pipeline kind ("video" or "thumbnail")
        video_id: Target video record
        user_id: Uploading user
    """
    token = upload_context_var.set(
        {"kind": kind, "video_id": video_id, "user_id": user_id}
    )
    try:
        yield
    finally:
        upload_context_var.reset(token)


class RequestContextFilter(logging.Filter):
    """Adds the correlation ID and any running upload to each record."""

    def filter(self, record: logging.LogRecord) -> bool:
        record.correlation_id = get_correlation_id()
        record.upload = upload_context_var.get()
        return True


class StructuredFormatter(logging.Formatter):
    """One JSON object per record."""

    def __init__(self, include_stack_trace: bool = True):
        super().__init__()
        self.include_stack_trace = include_stack_trace

    def format(self, record: logging.LogRecord) -> str:
        log_data: dict[str, Any] = {
            "timestamp": datetime.fromtimestamp(record.created, tz=timezone.utc).isoformat(),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
            "correlation_id": getattr(record, "correlation_id", None) or get_correlation_id(),
            "source": f"{record.module}:{record.lineno}",
        }

        upload = getattr(record, "upload", None)
        if upload:
            log_data["upload"] = upload

        extra = {
            key: value
            for key, value in record.__dict__.items()
            if key not in _RECORD_ATTRS
        }
        if extra:
            log_data["extra"] = extra

        if record.exc_info and self.include_stack_trace:
            exc_type, exc_value, _ = record.exc_info
            log_data["exception"] = {
                "type": exc_type.__name__ if exc_type else None,
                "message": str(exc_value) if exc_value else None,
                "stack_trace": traceback.format_exception(*record.exc_info),
            }

        return json.dumps(log_data, default=str)


def setup_logging(
    level: str = "INFO",
    json_format: bool = True,
    include_stack_trace: bool = True,
) -> None:
    """Set up application logging.

    Args:
        level: Log level (DEBUG, INFO, WARNING, ERROR, CRITICAL)
        json_format: Use JSON structured logging
        include_stack_trace: Include stack traces in error logs
    """
    log_level = getattr(logging, level.upper())
    root_logger = logging.getLogger()
    root_logger.setLevel(log_level)

    for handler in root_logger.handlers[:]:
        root_logger.removeHandler(handler)

    handler = logging.StreamHandler(sys.stdout)
    handler.setLevel(log_level)
    handler.addFilter(RequestContextFilter())

    if json_format:
        handler.setFormatter(StructuredFormatter(include_stack_trace=include_stack_trace))
    else:
        handler.setFormatter(logging.Formatter(
            "%(asctime)s %(levelname)s %(name)s [%(correlation_id)s] %(message)s"
        ))

    root_logger.addHandler(handler)

    # Quiet chatty libraries; boto3 logs every request at INFO
    for name in ("uvicorn.access", "sqlalchemy.engine", "botocore", "boto3", "s3transfer"):
        logging.getLogger(name).setLevel(logging.WARNING)


def log_error(
    logger: logging.Logger,
    message: str,
    exception: Optional[BaseException] = None,
    **extra: Any,
) -> None:
    """Log an error with optional exception and context fields."""
    if exception is not None:
        logger.error(message, exc_info=exception, extra=extra)
    else:
        logger.error(message, extra=extra)


def log_warning(logger: logging.Logger, message: str, **extra: Any) -> None:
    logger.warning(message, extra=extra)


def log_info(logger: logging.Logger, message: str, **extra: Any) -> None:
    logger.info(message, extra=extra)
