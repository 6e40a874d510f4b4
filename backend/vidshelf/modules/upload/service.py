"""Upload service.

Ties the upload pipeline to the video record: verifies ownership, runs the
blocking pipeline off the event loop, writes the resulting URL on the record.
"""

import logging
import uuid
from typing import Awaitable, BinaryIO, Callable, Optional

from starlette.concurrency import run_in_threadpool

from vidshelf.core.exceptions import AppError
from vidshelf.core.logging import log_error, log_info, upload_log_context
from vidshelf.core.metrics import record_upload
from vidshelf.modules.upload.models import UploadStage
from vidshelf.modules.upload.pipeline import PipelineResult, UploadPipeline
from vidshelf.modules.video.models import Video
from vidshelf.modules.video.service import RecordUpdateFailure, VideoService

logger = logging.getLogger(__name__)


class VideoUploadService:
    """Runs uploads for video records."""

    def __init__(self, video_service: VideoService, pipeline: UploadPipeline):
        self.video_service = video_service
        self.pipeline = pipeline

    @property
    def kind(self) -> str:
        return self.pipeline.config.kind

    async def authorize(self, video_id: uuid.UUID, user_id: uuid.UUID) -> Video:
        """Load the target record and check ownership before any body is read.

        Raises:
            VideoNotFoundError: If the record does not exist
            NotVideoOwnerError: If ``user_id`` does not own it
        """
        try:
            return await self.video_service.get_owned_video(video_id, user_id)
        except AppError as e:
            record_upload(self.kind, e.category)
            raise

    async def upload_video(
        self,
        video: Video,
        stream: BinaryIO,
        content_type: Optional[str],
        declared_size: Optional[int] = None,
    ) -> Video:
        """Store the video file and record its URL on ``video``."""
        return await self._upload(
            video, stream, content_type, declared_size, self.video_service.set_video_url
        )

    async def upload_thumbnail(
        self,
        video: Video,
        stream: BinaryIO,
        content_type: Optional[str],
        declared_size: Optional[int] = None,
    ) -> Video:
        """Store the thumbnail image and record its URL on ``video``."""
        return await self._upload(
            video, stream, content_type, declared_size, self.video_service.set_thumbnail_url
        )

    async def _upload(
        self,
        video: Video,
        stream: BinaryIO,
        content_type: Optional[str],
        declared_size: Optional[int],
        record: Callable[[Video, str], Awaitable[Video]],
    ) -> Video:
        video_id = str(video.id)

        with upload_log_context(self.kind, video_id, str(video.user_id)):
            log_info(logger, "Upload started", content_type=content_type)

            try:
                # Context is copied into the worker thread
                result = await run_in_threadpool(
                    self.pipeline.run, stream, content_type, declared_size
                )
                video = await self._record(video, video_id, result, record)
            except AppError as e:
                record_upload(self.kind, e.category)
                raise

            result.stages.extend([UploadStage.RECORDED, UploadStage.COMPLETE])
            record_upload(self.kind, "success")
            log_info(
                logger,
                "Upload complete",
                url=result.url,
                stages=[stage.value for stage in result.stages],
            )
        return video

    async def _record(
        self,
        video: Video,
        video_id: str,
        result: PipelineResult,
        record: Callable[[Video, str], Awaitable[Video]],
    ) -> Video:
        """Write the URL on the record, deleting the stored object if that fails."""
        try:
            return await record(video, result.url)
        except RecordUpdateFailure:
            deleted = await run_in_threadpool(self.pipeline.storage.delete, result.key)
            if not deleted:
                log_error(
                    logger,
                    "Stored object left unreferenced after record update failure",
                    kind=self.kind,
                    key=result.key,
                    video_id=video_id,
                )
            raise
