"""Upload-to-storage pipeline.

One invocation takes an inbound byte stream through
validate -> stage -> inspect -> remux -> key -> transfer and returns the
public URL of the stored object. Inspection and remuxing are optional and
selected by ``PipelineConfig``.

Every local file the pipeline creates is registered on an ``ExitStack`` as
soon as it exists, so it is removed on every exit path. A failed removal is
logged and never replaces the error that ended the pipeline.
"""

import io
import logging
import os
import tempfile
import time
from contextlib import ExitStack, contextmanager
from dataclasses import dataclass, field
from typing import BinaryIO, Iterator, Mapping, Optional

from vidshelf.core.logging import log_info, log_warning
from vidshelf.core.metrics import UPLOAD_BYTES_TOTAL, observe_stage
from vidshelf.core.storage import StorageBackend
from vidshelf.modules.upload.exceptions import (
    EmptyUpload,
    PayloadTooLarge,
    StagingFailure,
    TransferFailure,
    UnsupportedMediaType,
)
from vidshelf.modules.upload.ffmpeg import MediaToolkit, get_fast_start_output_path
from vidshelf.modules.upload.keys import generate_storage_key
from vidshelf.modules.upload.models import Classification, UploadStage

logger = logging.getLogger(__name__)

COPY_CHUNK_SIZE = 1 << 20  # 1 MiB


@dataclass(frozen=True)
class PipelineConfig:
    """Behaviour of one pipeline variant.

    Attributes:
        kind: Label used in logs and metrics ("video", "thumbnail")
        accepted_types: Accepted media types mapped to the stored extension
        max_bytes: Largest accepted upload
        classify: Probe the staged file and prefix keys with its classification
        fast_start: Remux the staged file before transfer
        output_content_type: Content type of the stored object, None keeps
            the declared one
        key_bytes: Random bytes in the storage key
        urlsafe_keys: base64url instead of hex key identifiers
        temp_dir: Directory for staged files, None for the system default
    """

    kind: str
    accepted_types: Mapping[str, str]
    max_bytes: int
    classify: bool = False
    fast_start: bool = False
    output_content_type: Optional[str] = None
    key_bytes: int = 16
    urlsafe_keys: bool = False
    temp_dir: Optional[str] = None


@dataclass
class PipelineResult:
    """Outcome of a successful pipeline run."""

    key: str
    url: str
    content_type: str
    size: int
    classification: Optional[Classification] = None
    stages: list[UploadStage] = field(default_factory=list)


def parse_media_type(content_type: Optional[str]) -> str:
    """Strip parameters from a Content-Type value and lowercase it."""
    if not content_type:
        return ""
    return content_type.split(";", 1)[0].strip().lower()


class UploadPipeline:
    """Stages, inspects, remuxes and stores one upload at a time.

    Holds no per-request state; a single instance can serve concurrent
    requests.
    """

    def __init__(
        self,
        config: PipelineConfig,
        storage: StorageBackend,
        toolkit: Optional[MediaToolkit] = None,
    ):
        if (config.classify or config.fast_start) and toolkit is None:
            raise ValueError(
                f"{config.kind} pipeline needs a media toolkit to classify or remux"
            )
        self.config = config
        self.storage = storage
        self.toolkit = toolkit

    def validate_content_type(self, content_type: Optional[str]) -> str:
        """Return the accepted media type for ``content_type``.

        Raises:
            UnsupportedMediaType: If the declared type is not accepted
        """
        media_type = parse_media_type(content_type)
        if media_type not in self.config.accepted_types:
            allowed = ", ".join(sorted(self.config.accepted_types))
            raise UnsupportedMediaType(
                f"Unsupported content type. Allowed: {allowed}",
                internal_detail=f"declared content type: {content_type!r}",
            )
        return media_type

    def validate_size(self, declared_size: Optional[int]) -> None:
        """Reject a declared size above the limit before reading any body.

        Raises:
            PayloadTooLarge: If ``declared_size`` exceeds ``max_bytes``
        """
        if declared_size is not None and declared_size > self.config.max_bytes:
            raise PayloadTooLarge(
                f"Upload exceeds the maximum size of {self.config.max_bytes} bytes",
                internal_detail=f"declared size: {declared_size}",
            )

    def run(
        self,
        stream: BinaryIO,
        content_type: Optional[str],
        declared_size: Optional[int] = None,
    ) -> PipelineResult:
        """Run the pipeline on an inbound stream.

        Args:
            stream: Readable binary stream with the uploaded bytes
            content_type: Declared content type of the upload
            declared_size: Size announced by the client, if any

        Returns:
            PipelineResult with the storage key and public URL

        Raises:
            ValidationError, ToolError, StorageError subclasses; no local
            file created here outlives the call.
        """
        stages = [UploadStage.RECEIVED]

        with self._track(UploadStage.VALIDATED, stages):
            media_type = self.validate_content_type(content_type)
            self.validate_size(declared_size)

        extension = self.config.accepted_types[media_type]

        with ExitStack() as cleanup:
            with self._track(UploadStage.STAGED, stages):
                staged_path, size = self._stage(stream, extension, cleanup)

            classification = None
            if self.config.classify:
                with self._track(UploadStage.INSPECTED, stages):
                    classification = self.toolkit.get_aspect_ratio(staged_path)

            upload_path = staged_path
            if self.config.fast_start:
                with self._track(UploadStage.REMUXED, stages):
                    upload_path = self._remux(staged_path, cleanup)

            with self._track(UploadStage.KEYED, stages):
                key = generate_storage_key(
                    classification,
                    extension,
                    nbytes=self.config.key_bytes,
                    urlsafe=self.config.urlsafe_keys,
                )

            with self._track(UploadStage.TRANSFERRED, stages):
                stored_type = self.config.output_content_type or media_type
                url = self._transfer(upload_path, key, stored_type)

        log_info(
            logger,
            "Upload stored",
            kind=self.config.kind,
            key=key,
            size=size,
            classification=classification.value if classification else None,
        )

        return PipelineResult(
            key=key,
            url=url,
            content_type=stored_type,
            size=size,
            classification=classification,
            stages=stages,
        )

    def _stage(
        self,
        stream: BinaryIO,
        extension: str,
        cleanup: ExitStack,
    ) -> tuple[str, int]:
        """Copy the inbound stream to a new temp file.

        Returns:
            (path, size) of the staged file, whose handle is already closed
        """
        if self.config.temp_dir:
            os.makedirs(self.config.temp_dir, exist_ok=True)

        try:
            staged = tempfile.NamedTemporaryFile(
                prefix=f"vidshelf-{self.config.kind}-",
                suffix=extension,
                dir=self.config.temp_dir,
                delete=False,
            )
        except OSError as e:
            raise StagingFailure(
                "couldn't create temp file", internal_detail=str(e)
            ) from e

        cleanup.callback(remove_file, staged.name)

        size = 0
        try:
            with staged:
                rewind(stream)
                while True:
                    chunk = stream.read(COPY_CHUNK_SIZE)
                    if not chunk:
                        break
                    size += len(chunk)
                    if size > self.config.max_bytes:
                        raise PayloadTooLarge(
                            f"Upload exceeds the maximum size of {self.config.max_bytes} bytes",
                            internal_detail=f"stream exceeded limit after {size} bytes",
                        )
                    staged.write(chunk)
        except OSError as e:
            raise StagingFailure(
                "couldn't copy to temp file", internal_detail=str(e)
            ) from e

        if size == 0:
            raise EmptyUpload("Uploaded file is empty")

        UPLOAD_BYTES_TOTAL.labels(kind=self.config.kind).inc(size)
        return staged.name, size

    def _remux(self, staged_path: str, cleanup: ExitStack) -> str:
        output_path = get_fast_start_output_path(staged_path)
        # Registered before ffmpeg runs so partial output is removed too
        cleanup.callback(remove_file, output_path)
        self.toolkit.remux(staged_path, output_path)
        return output_path

    def _transfer(self, path: str, key: str, content_type: str) -> str:
        result = self.storage.upload_file(path, key, content_type)
        if not result.success:
            raise TransferFailure(
                "couldn't upload to object storage",
                internal_detail=result.error_message,
            )
        return result.url

    @contextmanager
    def _track(self, stage: UploadStage, stages: list[UploadStage]) -> Iterator[None]:
        """Time a stage and log its outcome."""
        start = time.perf_counter()
        try:
            yield
        except Exception as e:
            stages.append(UploadStage.FAILED)
            log_warning(
                logger,
                "Upload stage failed",
                kind=self.config.kind,
                stage=stage.value,
                error_type=type(e).__name__,
            )
            raise
        finally:
            observe_stage(stage.value, time.perf_counter() - start)

        stages.append(stage)
        logger.debug("Upload %s stage reached: %s", self.config.kind, stage.value)


def remove_file(path: str) -> None:
    """Remove a pipeline temp file; missing files are fine, errors are logged."""
    try:
        os.remove(path)
    except FileNotFoundError:
        pass
    except OSError as e:
        log_warning(
            logger,
            "Failed to remove temp file",
            path=path,
            error=str(e),
        )


def rewind(stream: BinaryIO) -> None:
    """Seek a stream back to its start when it supports seeking."""
    try:
        stream.seek(0)
    except (AttributeError, io.UnsupportedOperation):
        pass
