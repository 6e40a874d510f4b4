"""Upload API router.

Implements the video and thumbnail upload endpoints. Ownership and the
declared request size are checked before the body is read. The multipart
body is then parsed as it streams in, and the file part is fed to the
pipeline without being spooled first.
"""

import uuid
from contextlib import asynccontextmanager
from typing import AsyncIterator, Optional

from fastapi import APIRouter, Depends, Request
from sqlalchemy.ext.asyncio import AsyncSession

from vidshelf.core.database import get_db
from vidshelf.core.exceptions import ValidationError
from vidshelf.modules.auth.jwt import get_current_user_id
from vidshelf.modules.upload.dependencies import (
    get_thumbnail_pipeline,
    get_video_pipeline,
)
from vidshelf.modules.upload.exceptions import PayloadTooLarge
from vidshelf.modules.upload.multipart import (
    BlockingPartStream,
    MultipartFileReader,
    max_body_bytes,
)
from vidshelf.modules.upload.pipeline import UploadPipeline
from vidshelf.modules.upload.service import VideoUploadService
from vidshelf.modules.video.schemas import VideoResponse
from vidshelf.modules.video.service import VideoService, parse_video_id

router = APIRouter(tags=["uploads"])

VIDEO_FIELD = "video"
THUMBNAIL_FIELD = "thumbnail"


def declared_content_length(request: Request) -> Optional[int]:
    value = request.headers.get("content-length")
    if value is None:
        return None
    try:
        return int(value)
    except ValueError as e:
        raise ValidationError(
            "Invalid Content-Length header", internal_detail=value
        ) from e


def validate_body_size(request: Request, pipeline: UploadPipeline) -> None:
    """Reject a declared body that cannot hold a file within the limit.

    The limit applies to the file; the body may be larger by the multipart
    framing allowance.

    Raises:
        PayloadTooLarge: If Content-Length is above the body limit
    """
    length = declared_content_length(request)
    max_file_bytes = pipeline.config.max_bytes
    if length is not None and length > max_body_bytes(max_file_bytes):
        raise PayloadTooLarge(
            f"Upload exceeds the maximum size of {max_file_bytes} bytes",
            internal_detail=f"declared body size: {length}",
        )


@asynccontextmanager
async def open_upload_part(
    request: Request, field: str, pipeline: UploadPipeline
) -> AsyncIterator[MultipartFileReader]:
    """Read the body up to the file part under ``field`` and yield its reader.

    Raises:
        ValidationError: If the body is not a valid multipart form
        MissingFile: If ``field`` is absent or not a file
        PayloadTooLarge: If the body passes the size limit
        StagingFailure: If the client disconnects mid-upload
    """
    reader = MultipartFileReader(request, field, pipeline.config.max_bytes)
    try:
        await reader.open()
        yield reader
    finally:
        await reader.aclose()


@router.post("/video_upload/{video_id}", response_model=VideoResponse)
async def upload_video(
    video_id: str,
    request: Request,
    user_id: uuid.UUID = Depends(get_current_user_id),
    db: AsyncSession = Depends(get_db),
    pipeline: UploadPipeline = Depends(get_video_pipeline),
):
    """Upload an MP4 for a video record.

    The file is classified by aspect ratio, remuxed for fast start and
    stored under ``<classification>/<hex>.mp4``; the record's ``video_url``
    is set to its public URL.
    """
    service = VideoUploadService(VideoService(db), pipeline)
    video = await service.authorize(parse_video_id(video_id), user_id)
    validate_body_size(request, pipeline)

    async with open_upload_part(request, VIDEO_FIELD, pipeline) as part:
        return await service.upload_video(
            video, BlockingPartStream(part), part.content_type
        )


@router.post("/thumbnail_upload/{video_id}", response_model=VideoResponse)
async def upload_thumbnail(
    video_id: str,
    request: Request,
    user_id: uuid.UUID = Depends(get_current_user_id),
    db: AsyncSession = Depends(get_db),
    pipeline: UploadPipeline = Depends(get_thumbnail_pipeline),
):
    """Upload a JPEG or PNG thumbnail for a video record."""
    service = VideoUploadService(VideoService(db), pipeline)
    video = await service.authorize(parse_video_id(video_id), user_id)
    validate_body_size(request, pipeline)

    async with open_upload_part(request, THUMBNAIL_FIELD, pipeline) as part:
        return await service.upload_thumbnail(
            video, BlockingPartStream(part), part.content_type
        )
