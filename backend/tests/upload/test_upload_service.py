"""Tests for the upload service: ownership, recording and orphan cleanup."""

import io
import logging
import uuid
from unittest.mock import AsyncMock, MagicMock

import pytest

from fakes import FakeToolkit, MemoryStorage
from vidshelf.modules.upload.dependencies import VIDEO_TYPES
from vidshelf.modules.upload.exceptions import ProbeFailure
from vidshelf.modules.upload.pipeline import PipelineConfig, UploadPipeline
from vidshelf.modules.upload.service import VideoUploadService
from vidshelf.modules.video.models import Video
from vidshelf.modules.video.service import NotVideoOwnerError, RecordUpdateFailure


def make_video() -> Video:
    return Video(id=uuid.uuid4(), user_id=uuid.uuid4(), title="Clip")


def make_service(tmp_path, storage=None, toolkit=None, video_service=None):
    config = PipelineConfig(
        kind="video",
        accepted_types=VIDEO_TYPES,
        max_bytes=1 << 20,
        classify=True,
        fast_start=True,
        output_content_type="video/mp4",
        temp_dir=str(tmp_path / "staging"),
    )
    pipeline = UploadPipeline(config, storage or MemoryStorage(), toolkit or FakeToolkit())

    if video_service is None:
        video_service = MagicMock()

        async def set_url(video, url):
            video.video_url = url
            return video

        video_service.set_video_url = AsyncMock(side_effect=set_url)

    return VideoUploadService(video_service, pipeline)


class TestUploadService:
    @pytest.mark.asyncio
    async def test_upload_records_url(self, tmp_path) -> None:
        storage = MemoryStorage()
        service = make_service(tmp_path, storage=storage)
        video = make_video()

        updated = await service.upload_video(video, io.BytesIO(b"mp4 bytes"), "video/mp4")

        assert updated.video_url is not None
        key = updated.video_url.split("/", 3)[3]
        assert storage.exists(key)
        service.video_service.set_video_url.assert_awaited_once()

    @pytest.mark.asyncio
    async def test_pipeline_failure_leaves_record_untouched(self, tmp_path) -> None:
        toolkit = FakeToolkit(probe_error=ProbeFailure("couldn't determine aspect ratio"))
        service = make_service(tmp_path, toolkit=toolkit)

        with pytest.raises(ProbeFailure):
            await service.upload_video(make_video(), io.BytesIO(b"x"), "video/mp4")

        service.video_service.set_video_url.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_authorize_propagates_ownership_error(self, tmp_path) -> None:
        video_service = MagicMock()
        video_service.get_owned_video = AsyncMock(side_effect=NotVideoOwnerError())
        service = make_service(tmp_path, video_service=video_service)

        with pytest.raises(NotVideoOwnerError):
            await service.authorize(uuid.uuid4(), uuid.uuid4())


class TestOrphanCompensation:
    """A stored object is removed again when the record cannot be updated."""

    @pytest.mark.asyncio
    async def test_record_failure_deletes_stored_object(self, tmp_path) -> None:
        storage = MemoryStorage()
        video_service = MagicMock()
        video_service.set_video_url = AsyncMock(
            side_effect=RecordUpdateFailure("couldn't update video")
        )
        service = make_service(tmp_path, storage=storage, video_service=video_service)

        with pytest.raises(RecordUpdateFailure):
            await service.upload_video(make_video(), io.BytesIO(b"mp4 bytes"), "video/mp4")

        assert len(storage.transfers) == 1
        assert storage.objects == {}

    @pytest.mark.asyncio
    async def test_failed_compensation_is_logged(self, tmp_path, caplog) -> None:
        storage = MemoryStorage(fail_delete=True)
        video_service = MagicMock()
        video_service.set_video_url = AsyncMock(
            side_effect=RecordUpdateFailure("couldn't update video")
        )
        service = make_service(tmp_path, storage=storage, video_service=video_service)

        with caplog.at_level(logging.ERROR, logger="vidshelf.modules.upload.service"):
            with pytest.raises(RecordUpdateFailure):
                await service.upload_video(make_video(), io.BytesIO(b"mp4 bytes"), "video/mp4")

        orphan_key = storage.transfers[0]["key"]
        assert storage.exists(orphan_key)
        records = [r for r in caplog.records if "unreferenced" in r.getMessage()]
        assert len(records) == 1
        assert records[0].key == orphan_key
