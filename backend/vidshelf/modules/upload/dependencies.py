"""Pipeline construction from settings.

The pipeline never reads global settings; everything it needs is resolved
here and passed in, so tests can override these dependencies.
"""

from functools import lru_cache

from vidshelf.core.config import Settings, settings
from vidshelf.core.storage import get_storage
from vidshelf.modules.upload.ffmpeg import FFmpegToolkit, MediaToolkit
from vidshelf.modules.upload.keys import extension_for_media_type
from vidshelf.modules.upload.pipeline import PipelineConfig, UploadPipeline


def accepted_types(*media_types: str) -> dict[str, str]:
    """Map each accepted media type to the extension its keys end with."""
    return {media_type: extension_for_media_type(media_type) for media_type in media_types}


VIDEO_TYPES = accepted_types("video/mp4")
THUMBNAIL_TYPES = accepted_types("image/jpeg", "image/png")


def video_pipeline_config(source: Settings) -> PipelineConfig:
    return PipelineConfig(
        kind="video",
        accepted_types=VIDEO_TYPES,
        max_bytes=source.MAX_UPLOAD_SIZE_BYTES,
        classify=source.UPLOAD_CLASSIFY_ASPECT_RATIO,
        fast_start=source.UPLOAD_FAST_START,
        output_content_type="video/mp4",
        temp_dir=source.UPLOAD_TEMP_DIR,
    )


def thumbnail_pipeline_config(source: Settings) -> PipelineConfig:
    return PipelineConfig(
        kind="thumbnail",
        accepted_types=THUMBNAIL_TYPES,
        max_bytes=source.MAX_THUMBNAIL_SIZE_BYTES,
        key_bytes=32,
        urlsafe_keys=True,
        temp_dir=source.UPLOAD_TEMP_DIR,
    )


@lru_cache(maxsize=1)
def get_media_toolkit() -> MediaToolkit:
    return FFmpegToolkit(
        ffmpeg_path=settings.FFMPEG_PATH,
        ffprobe_path=settings.FFPROBE_PATH,
        probe_timeout=settings.PROBE_TIMEOUT_SECONDS,
        remux_timeout=settings.REMUX_TIMEOUT_SECONDS,
    )


def get_video_pipeline() -> UploadPipeline:
    """FastAPI dependency for the video upload pipeline."""
    return UploadPipeline(
        video_pipeline_config(settings),
        storage=get_storage(),
        toolkit=get_media_toolkit(),
    )


def get_thumbnail_pipeline() -> UploadPipeline:
    """FastAPI dependency for the thumbnail upload pipeline."""
    return UploadPipeline(
        thumbnail_pipeline_config(settings),
        storage=get_storage(),
    )
