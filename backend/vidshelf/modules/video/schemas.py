"""Pydantic schemas for video module."""

import uuid
from datetime import datetime
from typing import Optional

from pydantic import BaseModel, ConfigDict, Field

MAX_TITLE_LENGTH = 255
MAX_DESCRIPTION_LENGTH = 5000


class VideoCreateRequest(BaseModel):
    """Request schema for creating a draft video record."""

    title: str = Field(..., min_length=1, max_length=MAX_TITLE_LENGTH)
    description: Optional[str] = Field(None, max_length=MAX_DESCRIPTION_LENGTH)


class VideoResponse(BaseModel):
    """Response schema for a video record."""

    model_config = ConfigDict(from_attributes=True)

    id: uuid.UUID
    user_id: uuid.UUID
    title: str
    description: Optional[str] = None
    thumbnail_url: Optional[str] = None
    video_url: Optional[str] = None
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None
