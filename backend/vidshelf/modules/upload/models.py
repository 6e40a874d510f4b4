"""Domain types for the upload pipeline."""

from dataclasses import dataclass
from enum import Enum

# Target ratios and the absolute tolerance used to bucket a video
LANDSCAPE_RATIO = 16 / 9
PORTRAIT_RATIO = 9 / 16
ASPECT_RATIO_TOLERANCE = 0.1


class Classification(str, Enum):
    """Aspect-ratio bucket of an uploaded video."""

    LANDSCAPE = "landscape"
    PORTRAIT = "portrait"
    OTHER = "other"

    @property
    def prefix(self) -> str:
        """Storage key prefix for this bucket, e.g. ``landscape/``."""
        return f"{self.value}/"


class UploadStage(str, Enum):
    """Stages of one upload, in order. Any stage may end in FAILED."""

    RECEIVED = "received"
    VALIDATED = "validated"
    STAGED = "staged"
    INSPECTED = "inspected"
    REMUXED = "remuxed"
    KEYED = "keyed"
    TRANSFERRED = "transferred"
    RECORDED = "recorded"
    COMPLETE = "complete"
    FAILED = "failed"


@dataclass(frozen=True)
class StreamGeometry:
    """Width and height of the first stream of a media file."""

    width: int
    height: int

    @property
    def ratio(self) -> float:
        if self.height <= 0:
            return 0.0
        return self.width / self.height


def classify_aspect_ratio(width: int, height: int) -> Classification:
    """Bucket a width/height pair.

    Landscape when the ratio is within the tolerance of 16:9, portrait when
    within the tolerance of 9:16, otherwise other. Degenerate geometry
    (zero or negative sides) is other.
    """
    if width <= 0 or height <= 0:
        return Classification.OTHER

    ratio = width / height

    if abs(ratio - LANDSCAPE_RATIO) < ASPECT_RATIO_TOLERANCE:
        return Classification.LANDSCAPE

    if abs(ratio - PORTRAIT_RATIO) < ASPECT_RATIO_TOLERANCE:
        return Classification.PORTRAIT

    return Classification.OTHER
