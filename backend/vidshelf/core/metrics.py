"""Prometheus metrics for the upload service.

Exposes HTTP request metrics and upload pipeline metrics on a custom registry.
"""

import os

from prometheus_client import (
    CONTENT_TYPE_LATEST,
    CollectorRegistry,
    Counter,
    Gauge,
    Histogram,
    Info,
    generate_latest,
    multiprocess,
)

REGISTRY = CollectorRegistry()

# Several uvicorn/gunicorn workers share one metrics directory
if "PROMETHEUS_MULTIPROC_DIR" in os.environ:
    multiprocess.MultiProcessCollector(REGISTRY)


# ============================================
# Application Info
# ============================================
APP_INFO = Info(
    "vidshelf_app",
    "Application information",
    registry=REGISTRY,
)


# ============================================
# HTTP Request Metrics
# ============================================
HTTP_REQUESTS_TOTAL = Counter(
    "http_requests_total",
    "Total HTTP requests",
    ["method", "endpoint", "status_code"],
    registry=REGISTRY,
)

HTTP_REQUEST_DURATION_SECONDS = Histogram(
    "http_request_duration_seconds",
    "HTTP request duration in seconds",
    ["method", "endpoint"],
    buckets=[0.01, 0.025, 0.05, 0.1, 0.25, 0.5, 1.0, 2.5, 5.0, 10.0, 30.0, 120.0],
    registry=REGISTRY,
)

HTTP_REQUESTS_IN_PROGRESS = Gauge(
    "http_requests_in_progress",
    "Number of HTTP requests currently in progress",
    ["method"],
    registry=REGISTRY,
)


# ============================================
# Upload Pipeline Metrics
# ============================================
UPLOADS_TOTAL = Counter(
    "uploads_total",
    "Total uploads by kind and outcome",
    ["kind", "outcome"],
    registry=REGISTRY,
)

UPLOAD_BYTES_TOTAL = Counter(
    "upload_bytes_total",
    "Bytes staged from inbound uploads",
    ["kind"],
    registry=REGISTRY,
)

UPLOAD_STAGE_DURATION_SECONDS = Histogram(
    "upload_stage_duration_seconds",
    "Time spent in each upload pipeline stage",
    ["stage"],
    buckets=[0.01, 0.05, 0.1, 0.5, 1.0, 5.0, 10.0, 30.0, 60.0, 300.0],
    registry=REGISTRY,
)


def set_app_info(version: str, environment: str) -> None:
    """Set application info labels."""
    APP_INFO.info({
        "version": version,
        "environment": environment,
    })


def record_upload(kind: str, outcome: str) -> None:
    """Count a finished upload.

    Args:
        kind: Pipeline kind ("video" or "thumbnail")
        outcome: "success" or the error category
    """
    UPLOADS_TOTAL.labels(kind=kind, outcome=outcome).inc()


def observe_stage(stage: str, seconds: float) -> None:
    UPLOAD_STAGE_DURATION_SECONDS.labels(stage=stage).observe(seconds)


def get_metrics() -> bytes:
    """Generate Prometheus metrics output."""
    return generate_latest(REGISTRY)


def get_metrics_content_type() -> str:
    return CONTENT_TYPE_LATEST
