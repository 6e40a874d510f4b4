"""Video record module."""

from vidshelf.modules.video.models import Video
from vidshelf.modules.video.repository import VideoRepository
from vidshelf.modules.video.service import (
    VideoService,
    VideoNotFoundError,
    NotVideoOwnerError,
    InvalidVideoIdError,
    RecordUpdateFailure,
    parse_video_id,
)

__all__ = [
    # Models
    "Video",
    # Repositories
    "VideoRepository",
    # Service
    "VideoService",
    "VideoNotFoundError",
    "NotVideoOwnerError",
    "InvalidVideoIdError",
    "RecordUpdateFailure",
    "parse_video_id",
]
