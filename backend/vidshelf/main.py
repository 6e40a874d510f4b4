"""FastAPI application entry point."""

from contextlib import asynccontextmanager

from fastapi import FastAPI, Response
from fastapi.middleware.cors import CORSMiddleware
from fastapi.staticfiles import StaticFiles

from vidshelf.core.config import settings
from vidshelf.core.database import init_db
from vidshelf.core.exceptions import register_exception_handlers
from vidshelf.core.logging import setup_logging
from vidshelf.core.metrics import get_metrics, get_metrics_content_type, set_app_info
from vidshelf.core.middleware import (
    CorrelationIdMiddleware,
    MetricsMiddleware,
    RequestLoggingMiddleware,
)
from vidshelf.modules.upload.router import router as upload_router
from vidshelf.modules.video.router import router as video_router


@asynccontextmanager
async def lifespan(app: FastAPI):
    await init_db()
    yield


app = FastAPI(
    title=settings.PROJECT_NAME,
    version=settings.VERSION,
    description="""
## vidshelf API

Stores uploaded videos and thumbnails in object storage and records their
public URLs on video records.

### Authentication

All endpoints except `/health` and `/metrics` require a JWT Bearer token.

```
Authorization: Bearer <access_token>
```
    """,
    openapi_url=f"{settings.API_V1_PREFIX}/openapi.json",
    lifespan=lifespan,
    openapi_tags=[
        {"name": "health", "description": "Health check and metrics endpoints"},
        {"name": "videos", "description": "Video records"},
        {"name": "uploads", "description": "Video and thumbnail uploads"},
    ],
)

setup_logging(
    level="DEBUG" if settings.DEBUG else settings.LOG_LEVEL,
    json_format=settings.LOG_JSON,
    include_stack_trace=True,
)

set_app_info(
    version=settings.VERSION,
    environment="development" if settings.DEBUG else "production",
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.CORS_ORIGINS,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

app.add_middleware(RequestLoggingMiddleware)
app.add_middleware(CorrelationIdMiddleware)
app.add_middleware(MetricsMiddleware)

register_exception_handlers(app)


@app.get("/health", tags=["health"])
async def health_check() -> dict[str, str]:
    """Health check endpoint.

    Returns:
        dict: Health status with "healthy" value.
    """
    return {"status": "healthy"}


@app.get("/metrics", tags=["health"], include_in_schema=False)
async def metrics() -> Response:
    """Prometheus metrics in text exposition format."""
    return Response(content=get_metrics(), media_type=get_metrics_content_type())


# Include routers
app.include_router(video_router, prefix=settings.API_V1_PREFIX)
app.include_router(upload_router, prefix=settings.API_V1_PREFIX)

# Local backend serves stored objects itself
if settings.STORAGE_BACKEND == "local":
    app.mount(
        "/assets",
        StaticFiles(directory=settings.LOCAL_STORAGE_PATH, check_dir=False),
        name="assets",
    )
