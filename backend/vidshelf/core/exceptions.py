"""Application error taxonomy and its HTTP mapping.

Every error a request can fail with belongs to one category. The category
decides the status code and is the only thing named in the response; the
internal detail (tool stderr, SDK message) is logged, never returned.
"""

import logging
from typing import Optional

from fastapi import FastAPI, Request, status
from fastapi.responses import JSONResponse

from vidshelf.core.logging import log_error, log_warning

logger = logging.getLogger(__name__)


class AppError(Exception):
    """Base exception for request failures."""

    category = "internal_error"
    status_code = status.HTTP_500_INTERNAL_SERVER_ERROR

    def __init__(self, message: str, internal_detail: Optional[str] = None):
        super().__init__(message)
        self.message = message
        self.internal_detail = internal_detail


class ValidationError(AppError):
    """Bad content type, oversized body or malformed identifier."""

    category = "validation_error"
    status_code = status.HTTP_400_BAD_REQUEST


class AuthError(AppError):
    """Missing or invalid credential, or caller does not own the record."""

    category = "auth_error"
    status_code = status.HTTP_401_UNAUTHORIZED


class NotFoundError(AppError):
    category = "not_found"
    status_code = status.HTTP_404_NOT_FOUND


class ToolError(AppError):
    """External media tool failed."""

    category = "tool_error"


class StorageError(AppError):
    """Local staging, object store or record store I/O failed."""

    category = "storage_error"


def error_payload(exc: AppError) -> dict:
    return {"error": exc.category, "detail": exc.message}


async def app_error_handler(request: Request, exc: AppError) -> JSONResponse:
    """Render an AppError as a JSON error response."""
    if exc.status_code >= 500:
        log_error(
            logger,
            f"{exc.category}: {exc.message}",
            exception=exc,
            path=request.url.path,
            internal_detail=exc.internal_detail,
        )
    else:
        log_warning(
            logger,
            f"{exc.category}: {exc.message}",
            path=request.url.path,
            internal_detail=exc.internal_detail,
        )

    return JSONResponse(status_code=exc.status_code, content=error_payload(exc))


def register_exception_handlers(app: FastAPI) -> None:
    app.add_exception_handler(AppError, app_error_handler)
