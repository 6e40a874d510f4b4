"""Tests for object storage backends and public URL selection."""

import io
from unittest.mock import MagicMock

import pytest
from botocore.exceptions import ClientError

from vidshelf.core.storage import (
    LocalStorage,
    S3Storage,
    StorageConfig,
    create_storage_backend,
)


def s3_config(**overrides) -> StorageConfig:
    options = dict(backend="s3", bucket="tubes", region="us-west-2")
    options.update(overrides)
    return StorageConfig(**options)


def client_error(operation: str) -> ClientError:
    return ClientError(
        {"Error": {"Code": "AccessDenied", "Message": "Access Denied"}},
        operation,
    )


class FailingReader(io.RawIOBase):
    """Stream that fails part way through a copy."""

    def __init__(self):
        self.reads = 0

    def readable(self) -> bool:
        return True

    def readinto(self, buffer) -> int:
        self.reads += 1
        if self.reads > 1:
            raise OSError("connection reset")
        buffer[:4] = b"data"
        return 4


class TestPublicUrl:
    def test_cdn_url_when_enabled(self, tmp_path) -> None:
        storage = LocalStorage(
            StorageConfig(
                backend="local",
                local_path=str(tmp_path),
                cdn_domain="d111111abcdef8.cloudfront.net",
                cdn_enabled=True,
            )
        )

        assert storage.get_url("landscape/abc.mp4") == (
            "https://d111111abcdef8.cloudfront.net/landscape/abc.mp4"
        )

    def test_direct_url_when_cdn_disabled(self, tmp_path) -> None:
        storage = LocalStorage(
            StorageConfig(
                backend="local",
                local_path=str(tmp_path),
                local_base_url="http://localhost:8091/assets/",
                cdn_domain="d111111abcdef8.cloudfront.net",
                cdn_enabled=False,
            )
        )

        assert storage.get_url("a.png") == "http://localhost:8091/assets/a.png"

    def test_s3_direct_url(self) -> None:
        storage = S3Storage(s3_config())

        assert storage.get_url("portrait/abc.mp4") == (
            "https://tubes.s3.us-west-2.amazonaws.com/portrait/abc.mp4"
        )

    def test_s3_compatible_endpoint_url(self) -> None:
        storage = S3Storage(s3_config(endpoint_url="http://minio:9000/"))

        assert storage.get_url("other/abc.mp4") == "http://minio:9000/tubes/other/abc.mp4"


class TestLocalStorage:
    def test_upload_file_writes_under_key(self, tmp_path) -> None:
        source = tmp_path / "source.mp4"
        source.write_bytes(b"moov" * 100)
        storage = LocalStorage(StorageConfig(backend="local", local_path=str(tmp_path / "assets")))

        result = storage.upload_file(str(source), "landscape/abc.mp4", "video/mp4")

        assert result.success
        assert result.file_size == 400
        assert storage.exists("landscape/abc.mp4")
        assert (tmp_path / "assets" / "landscape" / "abc.mp4").read_bytes() == b"moov" * 100

    def test_failed_copy_leaves_no_partial_object(self, tmp_path) -> None:
        root = tmp_path / "assets"
        storage = LocalStorage(StorageConfig(backend="local", local_path=str(root)))

        result = storage.upload_fileobj(
            io.BufferedReader(FailingReader()), "landscape/abc.mp4"
        )

        assert not result.success
        assert "connection reset" in result.error_message
        assert not storage.exists("landscape/abc.mp4")
        assert list((root / "landscape").iterdir()) == []

    def test_missing_source_file(self, tmp_path) -> None:
        storage = LocalStorage(StorageConfig(backend="local", local_path=str(tmp_path)))

        result = storage.upload_file(str(tmp_path / "missing.mp4"), "a.mp4")

        assert not result.success
        assert result.url == ""

    def test_delete(self, tmp_path) -> None:
        storage = LocalStorage(StorageConfig(backend="local", local_path=str(tmp_path)))
        storage.upload_fileobj(io.BytesIO(b"x"), "a.mp4")

        assert storage.delete("a.mp4") is True
        assert storage.delete("a.mp4") is False
        assert not storage.exists("a.mp4")


class TestS3Storage:
    def test_put_object_with_content_type(self, tmp_path) -> None:
        source = tmp_path / "clip.processing.mp4"
        source.write_bytes(b"ftyp" * 10)
        storage = S3Storage(s3_config())
        storage._client = MagicMock()
        storage._client.put_object.return_value = {"ETag": '"abc123"'}

        result = storage.upload_file(str(source), "landscape/k.mp4", "video/mp4")

        assert result.success
        assert result.etag == "abc123"
        assert result.file_size == 40
        kwargs = storage._client.put_object.call_args.kwargs
        assert kwargs["Bucket"] == "tubes"
        assert kwargs["Key"] == "landscape/k.mp4"
        assert kwargs["ContentType"] == "video/mp4"

    def test_client_error_is_reported(self, tmp_path) -> None:
        source = tmp_path / "clip.mp4"
        source.write_bytes(b"data")
        storage = S3Storage(s3_config())
        storage._client = MagicMock()
        storage._client.put_object.side_effect = client_error("PutObject")

        result = storage.upload_file(str(source), "k.mp4", "video/mp4")

        assert not result.success
        assert "AccessDenied" in result.error_message

    def test_delete_and_exists(self) -> None:
        storage = S3Storage(s3_config())
        storage._client = MagicMock()
        storage._client.head_object.side_effect = client_error("HeadObject")

        assert storage.delete("k.mp4") is True
        storage._client.delete_object.assert_called_once_with(Bucket="tubes", Key="k.mp4")
        assert storage.exists("k.mp4") is False

    def test_delete_failure(self) -> None:
        storage = S3Storage(s3_config())
        storage._client = MagicMock()
        storage._client.delete_object.side_effect = client_error("DeleteObject")

        assert storage.delete("k.mp4") is False


class TestBackendFactory:
    @pytest.mark.parametrize("backend,expected", [("local", LocalStorage), ("s3", S3Storage), ("MinIO", S3Storage)])
    def test_known_backends(self, tmp_path, backend: str, expected: type) -> None:
        config = StorageConfig(backend=backend, local_path=str(tmp_path))

        assert isinstance(create_storage_backend(config), expected)

    def test_unknown_backend(self) -> None:
        with pytest.raises(ValueError):
            create_storage_backend(StorageConfig(backend="ftp"))
