"""Video service for record lookups, ownership checks and URL updates."""

import uuid
from typing import Optional

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from vidshelf.core.exceptions import AuthError, NotFoundError, StorageError, ValidationError
from vidshelf.modules.video.models import Video
from vidshelf.modules.video.repository import VideoRepository


class VideoNotFoundError(NotFoundError):
    """Raised when video is not found."""

    def __init__(self, video_id: uuid.UUID):
        super().__init__("video not found")
        self.video_id = video_id


class NotVideoOwnerError(AuthError):
    """Raised when the caller does not own the video."""

    def __init__(self):
        super().__init__("user is not video owner")


class RecordUpdateFailure(StorageError):
    """Raised when a video record cannot be written."""


class VideoService:
    """Service for video record operations."""

    def __init__(self, session: AsyncSession):
        """Initialize service with database session."""
        self.session = session
        self.video_repo = VideoRepository(session)

    async def create_video(
        self,
        user_id: uuid.UUID,
        title: str,
        description: Optional[str] = None,
    ) -> Video:
        return await self.video_repo.create(
            user_id=user_id,
            title=title,
            description=description,
        )

    async def get_video(self, video_id: uuid.UUID) -> Video:
        """Get video by ID.

        Raises:
            VideoNotFoundError: If no record has this ID
        """
        video = await self.video_repo.get_by_id(video_id)
        if video is None:
            raise VideoNotFoundError(video_id)
        return video

    async def get_owned_video(self, video_id: uuid.UUID, user_id: uuid.UUID) -> Video:
        """Get a video and verify that ``user_id`` owns it.

        Raises:
            VideoNotFoundError: If no record has this ID
            NotVideoOwnerError: If the record belongs to another user
        """
        video = await self.get_video(video_id)
        if video.user_id != user_id:
            raise NotVideoOwnerError()
        return video

    async def list_videos(self, user_id: uuid.UUID) -> list[Video]:
        return await self.video_repo.list_by_user(user_id)

    async def set_video_url(self, video: Video, video_url: str) -> Video:
        """Persist the public URL of the uploaded video."""
        return await self._update(video, video_url=video_url)

    async def set_thumbnail_url(self, video: Video, thumbnail_url: str) -> Video:
        """Persist the public URL of the uploaded thumbnail."""
        return await self._update(video, thumbnail_url=thumbnail_url)

    async def _update(self, video: Video, **fields) -> Video:
        try:
            video = await self.video_repo.update(video, **fields)
            await self.session.commit()
            return video
        except SQLAlchemyError as e:
            await self.session.rollback()
            raise RecordUpdateFailure(
                "couldn't update video", internal_detail=str(e)
            ) from e


class InvalidVideoIdError(ValidationError):
    """Raised when a video ID path segment is not a UUID."""

    def __init__(self, value: str):
        super().__init__("Invalid ID")
        self.value = value


def parse_video_id(value: str) -> uuid.UUID:
    """Parse a video ID path segment.

    Raises:
        InvalidVideoIdError: If ``value`` is not a UUID
    """
    try:
        return uuid.UUID(value)
    except ValueError as e:
        raise InvalidVideoIdError(value) from e
