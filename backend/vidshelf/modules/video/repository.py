"""Video repository for database operations."""

import uuid
from typing import Optional

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from vidshelf.modules.video.models import Video


class VideoRepository:
    """Repository for Video CRUD operations."""

    def __init__(self, session: AsyncSession):
        """Initialize repository with database session."""
        self.session = session

    async def create(
        self,
        user_id: uuid.UUID,
        title: str,
        description: Optional[str] = None,
    ) -> Video:
        """Create a new video record owned by ``user_id``."""
        video = Video(
            user_id=user_id,
            title=title,
            description=description,
        )

        self.session.add(video)
        await self.session.flush()
        await self.session.refresh(video)
        return video

    async def get_by_id(self, video_id: uuid.UUID) -> Optional[Video]:
        """Get video by ID."""
        result = await self.session.execute(
            select(Video).where(Video.id == video_id)
        )
        return result.scalar_one_or_none()

    async def list_by_user(self, user_id: uuid.UUID) -> list[Video]:
        result = await self.session.execute(
            select(Video)
            .where(Video.user_id == user_id)
            .order_by(Video.created_at.desc())
        )
        return list(result.scalars().all())

    async def update(self, video: Video, **kwargs) -> Video:
        """Update video fields and flush.

        Args:
            video: Video instance to update
            **kwargs: Fields to update

        Returns:
            Video: Updated video instance
        """
        for key, value in kwargs.items():
            if hasattr(video, key):
                setattr(video, key, value)

        await self.session.flush()
        await self.session.refresh(video)
        return video
