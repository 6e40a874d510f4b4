"""FFmpeg/ffprobe utilities for the upload pipeline.

Implements stream inspection (aspect-ratio classification) with ffprobe and
fast-start remuxing with ffmpeg. Both tools are invoked without re-encoding
and with a bounded timeout.
"""

import json
import logging
import os
import subprocess
from abc import ABC, abstractmethod
from typing import Type

from vidshelf.core.exceptions import ToolError
from vidshelf.modules.upload.exceptions import (
    NoStreamsFailure,
    ProbeFailure,
    RemuxFailure,
)
from vidshelf.modules.upload.models import (
    Classification,
    StreamGeometry,
    classify_aspect_ratio,
)

logger = logging.getLogger(__name__)

# Keep only the tail of tool stderr in logged error detail
STDERR_TAIL_CHARS = 2000


def get_fast_start_output_path(file_path: str) -> str:
    """Derive the remux output path: ``/tmp/a.mp4`` -> ``/tmp/a.processing.mp4``."""
    base, ext = os.path.splitext(file_path)
    return f"{base}.processing{ext}"


def parse_probe_output(stdout: str) -> StreamGeometry:
    """Parse ffprobe JSON output into the first stream's geometry.

    A first stream without width/height (e.g. audio) yields 0x0.

    Raises:
        ProbeFailure: If the output is not the expected JSON document
        NoStreamsFailure: If the document lists no streams
    """
    try:
        data = json.loads(stdout)
    except json.JSONDecodeError as e:
        raise ProbeFailure(
            "couldn't read media information", internal_detail=str(e)
        ) from e

    if not isinstance(data, dict):
        raise ProbeFailure(
            "couldn't read media information",
            internal_detail="ffprobe output is not a JSON object",
        )

    streams = data.get("streams") or []
    if not isinstance(streams, list):
        raise ProbeFailure(
            "couldn't read media information",
            internal_detail="ffprobe 'streams' is not a list",
        )
    if not streams:
        raise NoStreamsFailure("no streams found")

    first = streams[0]
    width = first.get("width", 0) if isinstance(first, dict) else None
    height = first.get("height", 0) if isinstance(first, dict) else None

    for value in (width, height):
        if not isinstance(value, int) or isinstance(value, bool):
            raise ProbeFailure(
                "couldn't read media information",
                internal_detail=f"unexpected stream geometry: {first!r}",
            )

    return StreamGeometry(width=width, height=height)


class MediaToolkit(ABC):
    """Capability interface over the external media tools."""

    @abstractmethod
    def probe(self, path: str) -> StreamGeometry:
        """Return the geometry of the first stream of ``path``."""

    @abstractmethod
    def remux(self, input_path: str, output_path: str) -> None:
        """Rewrite ``input_path`` to ``output_path`` with fast-start layout."""

    def get_aspect_ratio(self, path: str) -> Classification:
        geometry = self.probe(path)
        classification = classify_aspect_ratio(geometry.width, geometry.height)
        logger.debug(
            "Probed %dx%d (ratio %.3f): %s",
            geometry.width,
            geometry.height,
            geometry.ratio,
            classification.value,
        )
        return classification


class FFmpegToolkit(MediaToolkit):
    """MediaToolkit backed by the ffprobe and ffmpeg binaries."""

    def __init__(
        self,
        ffmpeg_path: str = "ffmpeg",
        ffprobe_path: str = "ffprobe",
        probe_timeout: float = 30.0,
        remux_timeout: float = 300.0,
        output_format: str = "mp4",
    ):
        """Initialize toolkit.

        Args:
            ffmpeg_path: Path to ffmpeg binary
            ffprobe_path: Path to ffprobe binary
            probe_timeout: Seconds before ffprobe is killed
            remux_timeout: Seconds before ffmpeg is killed
            output_format: Container format forced on remux output
        """
        self.ffmpeg_path = ffmpeg_path
        self.ffprobe_path = ffprobe_path
        self.probe_timeout = probe_timeout
        self.remux_timeout = remux_timeout
        self.output_format = output_format

    def build_probe_command(self, path: str) -> list[str]:
        return [
            self.ffprobe_path,
            "-v", "error",
            "-print_format", "json",
            "-show_streams",
            path,
        ]

    def build_remux_command(self, input_path: str, output_path: str) -> list[str]:
        """Build ffmpeg command copying all streams into a fast-start container."""
        return [
            self.ffmpeg_path,
            "-y",
            "-v", "error",
            "-i", input_path,
            "-c", "copy",
            "-movflags", "faststart",
            "-f", self.output_format,
            output_path,
        ]

    def probe(self, path: str) -> StreamGeometry:
        """Get first stream geometry using ffprobe.

        Raises:
            ProbeFailure: On non-zero exit, timeout or unreadable output
            NoStreamsFailure: If ffprobe reports no streams
        """
        result = self._run(
            self.build_probe_command(path),
            self.probe_timeout,
            ProbeFailure,
            "couldn't determine aspect ratio",
        )
        geometry = parse_probe_output(result.stdout)
        logger.debug(
            "Probed %s: %dx%d", path, geometry.width, geometry.height
        )
        return geometry

    def remux(self, input_path: str, output_path: str) -> None:
        """Remux for fast start without re-encoding.

        Raises:
            RemuxFailure: On non-zero exit or timeout
        """
        self._run(
            self.build_remux_command(input_path, output_path),
            self.remux_timeout,
            RemuxFailure,
            "couldn't process video for fast start",
        )

    def _run(
        self,
        cmd: list[str],
        timeout: float,
        failure: Type[ToolError],
        message: str,
    ) -> subprocess.CompletedProcess:
        try:
            result = subprocess.run(
                cmd,
                capture_output=True,
                text=True,
                timeout=timeout,
                check=False,
            )
        except subprocess.TimeoutExpired as e:
            raise failure(
                message, internal_detail=f"{cmd[0]} timed out after {timeout}s"
            ) from e
        except OSError as e:
            raise failure(message, internal_detail=f"{cmd[0]}: {e}") from e

        if result.returncode != 0:
            stderr = (result.stderr or "")[-STDERR_TAIL_CHARS:]
            raise failure(
                message,
                internal_detail=f"{cmd[0]} exited with {result.returncode}: {stderr}",
            )

        return result
