"""Upload module: staging, inspection, fast-start remux and object storage.

Takes an uploaded video from the HTTP request to a public URL on the video
record.
"""

from vidshelf.modules.upload.exceptions import (
    EmptyUpload,
    MissingFile,
    NoStreamsFailure,
    PayloadTooLarge,
    ProbeFailure,
    RemuxFailure,
    StagingFailure,
    TransferFailure,
    UnsupportedMediaType,
)
from vidshelf.modules.upload.ffmpeg import (
    FFmpegToolkit,
    MediaToolkit,
    get_fast_start_output_path,
    parse_probe_output,
)
from vidshelf.modules.upload.keys import (
    extension_for_media_type,
    generate_storage_key,
)
from vidshelf.modules.upload.models import (
    Classification,
    StreamGeometry,
    UploadStage,
    classify_aspect_ratio,
)
from vidshelf.modules.upload.pipeline import (
    PipelineConfig,
    PipelineResult,
    UploadPipeline,
)
from vidshelf.modules.upload.service import VideoUploadService

__all__ = [
    # Models
    "Classification",
    "StreamGeometry",
    "UploadStage",
    "classify_aspect_ratio",
    # Tools
    "MediaToolkit",
    "FFmpegToolkit",
    "get_fast_start_output_path",
    "parse_probe_output",
    # Keys
    "generate_storage_key",
    "extension_for_media_type",
    # Pipeline
    "PipelineConfig",
    "PipelineResult",
    "UploadPipeline",
    "VideoUploadService",
    # Errors
    "UnsupportedMediaType",
    "PayloadTooLarge",
    "MissingFile",
    "EmptyUpload",
    "StagingFailure",
    "TransferFailure",
    "ProbeFailure",
    "NoStreamsFailure",
    "RemuxFailure",
]
