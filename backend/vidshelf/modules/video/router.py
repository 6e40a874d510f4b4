"""Video API router.

Implements REST endpoints for video records.
"""

import uuid

from fastapi import APIRouter, Depends, status
from sqlalchemy.ext.asyncio import AsyncSession

from vidshelf.core.database import get_db
from vidshelf.modules.auth.jwt import get_current_user_id
from vidshelf.modules.video.schemas import VideoCreateRequest, VideoResponse
from vidshelf.modules.video.service import VideoService, parse_video_id

router = APIRouter(prefix="/videos", tags=["videos"])


@router.post("", response_model=VideoResponse, status_code=status.HTTP_201_CREATED)
async def create_video(
    data: VideoCreateRequest,
    user_id: uuid.UUID = Depends(get_current_user_id),
    db: AsyncSession = Depends(get_db),
):
    """Create a draft video record owned by the caller."""
    service = VideoService(db)
    video = await service.create_video(
        user_id=user_id,
        title=data.title,
        description=data.description,
    )
    return video


@router.get("", response_model=list[VideoResponse])
async def list_videos(
    user_id: uuid.UUID = Depends(get_current_user_id),
    db: AsyncSession = Depends(get_db),
):
    """List the caller's videos, newest first."""
    service = VideoService(db)
    return await service.list_videos(user_id)


@router.get("/{video_id}", response_model=VideoResponse)
async def get_video(
    video_id: str,
    user_id: uuid.UUID = Depends(get_current_user_id),
    db: AsyncSession = Depends(get_db),
):
    """Get one of the caller's videos by ID."""
    service = VideoService(db)
    return await service.get_owned_video(parse_video_id(video_id), user_id)
