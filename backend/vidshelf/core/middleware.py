"""HTTP middleware: request metrics, correlation IDs and request logging."""

import logging
import time
import uuid
from typing import Callable

from fastapi import Request, Response
from starlette.middleware.base import BaseHTTPMiddleware

from vidshelf.core.logging import clear_correlation_id, set_correlation_id
from vidshelf.core.metrics import (
    HTTP_REQUEST_DURATION_SECONDS,
    HTTP_REQUESTS_IN_PROGRESS,
    HTTP_REQUESTS_TOTAL,
)

CORRELATION_ID_HEADER = "X-Correlation-ID"

logger = logging.getLogger("vidshelf.requests")


def route_template(request: Request) -> str:
    """Matched route path (``/api/video_upload/{video_id}``) or a fixed label.

    Keeps metric label cardinality bounded: IDs never appear in labels and
    unmatched paths share one label.
    """
    route = request.scope.get("route")
    path = getattr(route, "path", None)
    return path or "unmatched"


class MetricsMiddleware(BaseHTTPMiddleware):
    """Counts requests and observes their duration per route template."""

    async def dispatch(self, request: Request, call_next: Callable) -> Response:
        method = request.method
        in_progress = HTTP_REQUESTS_IN_PROGRESS.labels(method=method)
        in_progress.inc()

        start = time.perf_counter()
        status_code = 500
        try:
            response = await call_next(request)
            status_code = response.status_code
            return response
        finally:
            in_progress.dec()
            endpoint = route_template(request)
            HTTP_REQUEST_DURATION_SECONDS.labels(
                method=method, endpoint=endpoint
            ).observe(time.perf_counter() - start)
            HTTP_REQUESTS_TOTAL.labels(
                method=method, endpoint=endpoint, status_code=str(status_code)
            ).inc()


class CorrelationIdMiddleware(BaseHTTPMiddleware):
    """Takes the caller's correlation ID or issues one, and echoes it back."""

    async def dispatch(self, request: Request, call_next: Callable) -> Response:
        correlation_id = request.headers.get(CORRELATION_ID_HEADER) or str(uuid.uuid4())
        set_correlation_id(correlation_id)
        try:
            response = await call_next(request)
            response.headers[CORRELATION_ID_HEADER] = correlation_id
            return response
        finally:
            clear_correlation_id()


class RequestLoggingMiddleware(BaseHTTPMiddleware):
    """Logs one line per finished request.

    Server errors log at ERROR, client errors at WARNING. The declared body
    size is included so oversized uploads are visible before they are read.
    """

    async def dispatch(self, request: Request, call_next: Callable) -> Response:
        start = time.perf_counter()
        fields = {
            "method": request.method,
            "path": request.url.path,
            "client_ip": request.client.host if request.client else None,
            "content_length": request.headers.get("content-length"),
        }

        try:
            response = await call_next(request)
        except Exception:
            logger.exception(
                "Request failed",
                extra={**fields, "duration_ms": _elapsed_ms(start)},
            )
            raise

        fields.update(status_code=response.status_code, duration_ms=_elapsed_ms(start))
        if response.status_code >= 500:
            level = logging.ERROR
        elif response.status_code >= 400:
            level = logging.WARNING
        else:
            level = logging.INFO
        logger.log(level, "Request completed", extra=fields)
        return response


def _elapsed_ms(start: float) -> float:
    return round((time.perf_counter() - start) * 1000, 2)
