"""Object storage backends for uploaded assets.

Supports: local filesystem, S3, MinIO, and other S3-compatible storage.
The public URL of a stored object is either a direct store URL or a URL
through a CDN domain, selected by configuration.
"""

import logging
import os
import shutil
import tempfile
from abc import ABC, abstractmethod
from dataclasses import dataclass
from functools import lru_cache
from pathlib import Path
from typing import BinaryIO, Optional

import boto3
from botocore.config import Config as BotoConfig
from botocore.exceptions import BotoCoreError, ClientError

from vidshelf.core.config import Settings, settings

logger = logging.getLogger(__name__)


@dataclass
class StorageResult:
    """Result of a storage operation."""
    success: bool
    key: str
    url: str
    file_size: int = 0
    etag: Optional[str] = None
    error_message: Optional[str] = None


@dataclass
class StorageConfig:
    """Storage configuration."""
    backend: str  # local, s3, minio
    bucket: str = ""
    region: str = ""
    access_key: str = ""
    secret_key: str = ""
    endpoint_url: Optional[str] = None
    use_ssl: bool = True
    local_path: str = "./assets"
    local_base_url: str = "http://localhost:8091/assets"
    cdn_domain: Optional[str] = None
    cdn_enabled: bool = False

    @classmethod
    def from_settings(cls, source: Settings) -> "StorageConfig":
        return cls(
            backend=source.STORAGE_BACKEND,
            bucket=source.STORAGE_BUCKET,
            region=source.STORAGE_REGION,
            access_key=source.STORAGE_ACCESS_KEY,
            secret_key=source.STORAGE_SECRET_KEY,
            endpoint_url=source.STORAGE_ENDPOINT_URL,
            use_ssl=source.STORAGE_USE_SSL,
            local_path=source.LOCAL_STORAGE_PATH,
            local_base_url=source.LOCAL_STORAGE_BASE_URL,
            cdn_domain=source.CDN_DOMAIN,
            cdn_enabled=source.CDN_ENABLED,
        )


class StorageBackend(ABC):
    """Abstract base class for storage backends."""

    def __init__(self, config: StorageConfig):
        self.config = config

    @abstractmethod
    def upload_fileobj(
        self,
        fileobj: BinaryIO,
        key: str,
        content_type: str = "application/octet-stream",
    ) -> StorageResult:
        """Upload a file object to storage."""

    def upload_file(
        self,
        file_path: str,
        key: str,
        content_type: str = "application/octet-stream",
    ) -> StorageResult:
        """Upload a local file to storage."""
        try:
            f = open(file_path, "rb")
        except OSError as e:
            return StorageResult(success=False, key=key, url="", error_message=str(e))
        with f:
            return self.upload_fileobj(f, key, content_type)

    @abstractmethod
    def delete(self, key: str) -> bool:
        """Delete an object from storage."""

    @abstractmethod
    def exists(self, key: str) -> bool:
        """Check if an object exists in storage."""

    @abstractmethod
    def direct_url(self, key: str) -> str:
        """URL of the object on the store itself."""

    def get_url(self, key: str) -> str:
        """Public URL for an object, through the CDN when one is enabled."""
        if self.config.cdn_enabled and self.config.cdn_domain:
            return f"https://{self.config.cdn_domain}/{key}"
        return self.direct_url(key)


class LocalStorage(StorageBackend):
    """Local filesystem storage backend."""

    def __init__(self, config: StorageConfig):
        super().__init__(config)
        self.base_path = Path(config.local_path)
        self.base_path.mkdir(parents=True, exist_ok=True)

    def _get_full_path(self, key: str) -> Path:
        return self.base_path / key

    def upload_fileobj(
        self,
        fileobj: BinaryIO,
        key: str,
        content_type: str = "application/octet-stream",
    ) -> StorageResult:
        """Copy a file object under the storage root.

        The object is written to a sibling temp file and renamed into place,
        so a failed copy never leaves a partial object behind.
        """
        dest_path = self._get_full_path(key)
        tmp_name = None
        try:
            dest_path.parent.mkdir(parents=True, exist_ok=True)
            with tempfile.NamedTemporaryFile(
                dir=dest_path.parent, prefix=".partial-", delete=False
            ) as tmp:
                tmp_name = tmp.name
                shutil.copyfileobj(fileobj, tmp)
            os.replace(tmp_name, dest_path)
            tmp_name = None

            return StorageResult(
                success=True,
                key=key,
                url=self.get_url(key),
                file_size=dest_path.stat().st_size,
            )
        except OSError as e:
            return StorageResult(
                success=False,
                key=key,
                url="",
                error_message=str(e),
            )
        finally:
            if tmp_name is not None and os.path.exists(tmp_name):
                os.remove(tmp_name)

    def delete(self, key: str) -> bool:
        file_path = self._get_full_path(key)
        try:
            file_path.unlink()
            return True
        except FileNotFoundError:
            return False
        except OSError as e:
            logger.warning("Failed to delete local object %s: %s", key, e)
            return False

    def exists(self, key: str) -> bool:
        return self._get_full_path(key).is_file()

    def direct_url(self, key: str) -> str:
        return f"{self.config.local_base_url.rstrip('/')}/{key}"


class S3Storage(StorageBackend):
    """S3/MinIO compatible storage backend."""

    def __init__(self, config: StorageConfig):
        super().__init__(config)
        self._client = None

    def _get_client(self):
        """Get or create S3 client."""
        if self._client is None:
            client_kwargs = {
                "service_name": "s3",
                "region_name": self.config.region or "us-east-1",
            }

            if self.config.access_key and self.config.secret_key:
                client_kwargs["aws_access_key_id"] = self.config.access_key
                client_kwargs["aws_secret_access_key"] = self.config.secret_key

            # For MinIO or other S3-compatible storage
            if self.config.endpoint_url:
                client_kwargs["endpoint_url"] = self.config.endpoint_url
                client_kwargs["config"] = BotoConfig(
                    signature_version="s3v4",
                    s3={"addressing_style": "path"},
                )
                if not self.config.use_ssl:
                    client_kwargs["use_ssl"] = False

            self._client = boto3.client(**client_kwargs)

        return self._client

    def upload_fileobj(
        self,
        fileobj: BinaryIO,
        key: str,
        content_type: str = "application/octet-stream",
    ) -> StorageResult:
        """Upload a file object to S3/MinIO with a single PutObject."""
        try:
            client = self._get_client()

            fileobj.seek(0, os.SEEK_END)
            file_size = fileobj.tell()
            fileobj.seek(0)

            response = client.put_object(
                Bucket=self.config.bucket,
                Key=key,
                Body=fileobj,
                ContentType=content_type,
            )

            etag = response.get("ETag", "").strip('"')

            return StorageResult(
                success=True,
                key=key,
                url=self.get_url(key),
                file_size=file_size,
                etag=etag,
            )
        except (BotoCoreError, ClientError, OSError) as e:
            return StorageResult(
                success=False,
                key=key,
                url="",
                error_message=str(e),
            )

    def delete(self, key: str) -> bool:
        try:
            self._get_client().delete_object(Bucket=self.config.bucket, Key=key)
            return True
        except (BotoCoreError, ClientError) as e:
            logger.warning("Failed to delete s3 object %s: %s", key, e)
            return False

    def exists(self, key: str) -> bool:
        try:
            self._get_client().head_object(Bucket=self.config.bucket, Key=key)
            return True
        except ClientError:
            return False

    def direct_url(self, key: str) -> str:
        if self.config.endpoint_url:
            return f"{self.config.endpoint_url.rstrip('/')}/{self.config.bucket}/{key}"
        return f"https://{self.config.bucket}.s3.{self.config.region}.amazonaws.com/{key}"


def create_storage_backend(config: StorageConfig) -> StorageBackend:
    """Create appropriate storage backend."""
    backend_type = config.backend.lower()

    if backend_type == "local":
        return LocalStorage(config)
    elif backend_type in ("s3", "minio", "aws"):
        return S3Storage(config)
    else:
        raise ValueError(f"Unsupported storage backend: {backend_type}")


@lru_cache(maxsize=1)
def get_storage() -> StorageBackend:
    """Get the default storage backend, shared across requests."""
    return create_storage_backend(StorageConfig.from_settings(settings))
