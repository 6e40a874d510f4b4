"""Application configuration settings.

All configuration values are loaded from environment variables (.env file).
No sensitive values should be hardcoded here.
"""

from typing import Optional
from pydantic_settings import BaseSettings


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    # Application
    PROJECT_NAME: str = "vidshelf API"
    VERSION: str = "0.1.0"
    API_V1_PREFIX: str = "/api"
    DEBUG: bool = False

    # Logging
    LOG_LEVEL: str = "INFO"
    LOG_JSON: bool = True

    # Database (video records)
    DATABASE_URL: str = "sqlite+aiosqlite:///./vidshelf.db"

    # Security - REQUIRED (no defaults for sensitive values)
    SECRET_KEY: str
    ACCESS_TOKEN_EXPIRE_MINUTES: int = 60

    # CORS
    CORS_ORIGINS: list[str] = []

    # Storage Configuration
    # STORAGE_BACKEND: local, s3, minio
    STORAGE_BACKEND: str = "local"

    # Local Storage (when STORAGE_BACKEND=local)
    LOCAL_STORAGE_PATH: str = "./assets"
    LOCAL_STORAGE_BASE_URL: str = "http://localhost:8091/assets"

    # S3/MinIO/Compatible Storage (when STORAGE_BACKEND=s3 or minio)
    STORAGE_BUCKET: str = ""
    STORAGE_REGION: str = "us-east-1"
    STORAGE_ACCESS_KEY: str = ""
    STORAGE_SECRET_KEY: str = ""
    STORAGE_ENDPOINT_URL: Optional[str] = None  # Required for MinIO
    STORAGE_USE_SSL: bool = True

    # CDN Configuration (optional, for any backend)
    CDN_DOMAIN: Optional[str] = None
    CDN_ENABLED: bool = False

    # Upload pipeline
    UPLOAD_TEMP_DIR: Optional[str] = None  # None = system temp dir
    MAX_UPLOAD_SIZE_BYTES: int = 1 << 30  # 1 GiB
    MAX_THUMBNAIL_SIZE_BYTES: int = 10 << 20  # 10 MiB
    UPLOAD_CLASSIFY_ASPECT_RATIO: bool = True
    UPLOAD_FAST_START: bool = True

    # External media tools
    FFMPEG_PATH: str = "ffmpeg"
    FFPROBE_PATH: str = "ffprobe"
    PROBE_TIMEOUT_SECONDS: float = 30.0
    REMUX_TIMEOUT_SECONDS: float = 300.0

    class Config:
        env_file = ".env"
        case_sensitive = True
        extra = "ignore"


settings = Settings()
