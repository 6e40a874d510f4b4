"""Upload pipeline errors.

Each failure is a subclass of one category from ``vidshelf.core.exceptions``
so the HTTP layer can map it without knowing the pipeline.
"""

from vidshelf.core.exceptions import StorageError, ToolError, ValidationError


class UnsupportedMediaType(ValidationError):
    """Declared content type is not accepted by the pipeline."""


class PayloadTooLarge(ValidationError):
    """Upload exceeds the configured size limit."""


class MissingFile(ValidationError):
    """Multipart form has no file under the expected field."""


class EmptyUpload(ValidationError):
    """Uploaded file has no content."""


class StagingFailure(StorageError):
    """Inbound stream could not be copied to a local temp file."""


class TransferFailure(StorageError):
    """Object store rejected or failed the upload."""


class ProbeFailure(ToolError):
    """ffprobe exited non-zero, timed out or produced unreadable output."""


class NoStreamsFailure(ToolError):
    """ffprobe succeeded but reported no media streams."""


class RemuxFailure(ToolError):
    """ffmpeg exited non-zero or timed out while remuxing."""
