"""In-memory stand-ins for the media tools and the object store."""

import os
import shutil
from typing import BinaryIO, Optional

from vidshelf.core.storage import StorageBackend, StorageConfig, StorageResult
from vidshelf.modules.upload.ffmpeg import MediaToolkit
from vidshelf.modules.upload.models import StreamGeometry

CDN_DOMAIN = "cdn.example.com"


class FakeToolkit(MediaToolkit):
    """MediaToolkit that reports a fixed geometry and copies on remux.

    ``remux_error`` is raised after a partial output file has been written,
    the way a killed ffmpeg leaves one behind.
    """

    def __init__(
        self,
        width: int = 1280,
        height: int = 720,
        probe_error: Optional[Exception] = None,
        remux_error: Optional[Exception] = None,
    ):
        self.width = width
        self.height = height
        self.probe_error = probe_error
        self.remux_error = remux_error
        self.calls: list[tuple] = []

    def probe(self, path: str) -> StreamGeometry:
        self.calls.append(("probe", path))
        if self.probe_error is not None:
            raise self.probe_error
        return StreamGeometry(width=self.width, height=self.height)

    def remux(self, input_path: str, output_path: str) -> None:
        self.calls.append(("remux", input_path, output_path))
        if self.remux_error is not None:
            with open(output_path, "wb") as f:
                f.write(b"partial")
            raise self.remux_error
        shutil.copyfile(input_path, output_path)

    @property
    def called(self) -> list[str]:
        return [call[0] for call in self.calls]


class MemoryStorage(StorageBackend):
    """Object store keeping objects in a dict.

    Records which local paths existed at the moment of each transfer.
    """

    def __init__(
        self,
        fail_upload: bool = False,
        fail_delete: bool = False,
        cdn_domain: Optional[str] = CDN_DOMAIN,
    ):
        super().__init__(
            StorageConfig(
                backend="memory",
                cdn_domain=cdn_domain,
                cdn_enabled=cdn_domain is not None,
            )
        )
        self.fail_upload = fail_upload
        self.fail_delete = fail_delete
        self.objects: dict[str, bytes] = {}
        self.content_types: dict[str, str] = {}
        self.transfers: list[dict] = []

    def upload_file(
        self,
        file_path: str,
        key: str,
        content_type: str = "application/octet-stream",
    ) -> StorageResult:
        directory = os.path.dirname(file_path)
        self.transfers.append({
            "path": file_path,
            "key": key,
            "local_files": sorted(os.listdir(directory)),
        })
        return super().upload_file(file_path, key, content_type)

    def upload_fileobj(
        self,
        fileobj: BinaryIO,
        key: str,
        content_type: str = "application/octet-stream",
    ) -> StorageResult:
        if self.fail_upload:
            return StorageResult(
                success=False, key=key, url="", error_message="simulated outage"
            )
        data = fileobj.read()
        self.objects[key] = data
        self.content_types[key] = content_type
        return StorageResult(
            success=True, key=key, url=self.get_url(key), file_size=len(data)
        )

    def delete(self, key: str) -> bool:
        if self.fail_delete:
            return False
        return self.objects.pop(key, None) is not None

    def exists(self, key: str) -> bool:
        return key in self.objects

    def direct_url(self, key: str) -> str:
        return f"memory://objects/{key}"
