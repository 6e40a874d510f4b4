"""Streaming multipart reader for upload requests.

The request body is parsed as it arrives with ``python_multipart``. Only the
file part under the expected field is handed on, chunk by chunk; nothing is
spooled here. The body is counted as it is read, so an oversized request is
cut off at the limit whether or not it declared a Content-Length.
"""

from collections import deque
from typing import AsyncIterator, Optional

import anyio.from_thread
from python_multipart.exceptions import MultipartParseError
from python_multipart.multipart import MultipartParser, parse_options_header
from starlette.requests import ClientDisconnect, Request

from vidshelf.core.exceptions import ValidationError
from vidshelf.modules.upload.exceptions import (
    MissingFile,
    PayloadTooLarge,
    StagingFailure,
)

# Room for boundaries, part headers and small form fields around the file
MULTIPART_OVERHEAD_BYTES = 64 * 1024


def max_body_bytes(max_file_bytes: int) -> int:
    """Largest request body accepted for a file of at most ``max_file_bytes``."""
    return max_file_bytes + MULTIPART_OVERHEAD_BYTES


class MultipartFileReader:
    """Pulls one file part out of a multipart/form-data request body.

    Call ``open`` to read up to the end of the part's headers, which makes
    ``content_type`` and ``filename`` available before any file data is
    taken. ``read_chunk`` then returns file data until the part ends.
    """

    def __init__(self, request: Request, field: str, max_file_bytes: int):
        self.field = field
        self.max_file_bytes = max_file_bytes
        self.limit = max_body_bytes(max_file_bytes)
        self.received = 0

        self.content_type: Optional[str] = None
        self.filename: Optional[str] = None

        self._body: AsyncIterator[bytes] = request.stream()
        self._parser = MultipartParser(
            _boundary(request.headers.get("content-type")),
            {
                "on_part_begin": self._on_part_begin,
                "on_part_data": self._on_part_data,
                "on_part_end": self._on_part_end,
                "on_header_field": self._on_header_field,
                "on_header_value": self._on_header_value,
                "on_header_end": self._on_header_end,
                "on_headers_finished": self._on_headers_finished,
            },
        )

        self._headers: dict[bytes, bytes] = {}
        self._header_field = b""
        self._header_value = b""
        self._in_target = False
        self._found = False
        self._part_done = False
        self._chunks: deque[bytes] = deque()

    async def open(self) -> None:
        """Read the body up to the headers of the file part.

        Raises:
            MissingFile: If the body ends without a file under ``field``
            PayloadTooLarge: If the body passes the limit first
        """
        while not self._found:
            if not await self._feed():
                raise MissingFile(
                    f"Unable to find file field '{self.field}' in form data"
                )

    async def read_chunk(self) -> bytes:
        """Next piece of file data, or ``b""`` once the part has ended.

        Raises:
            PayloadTooLarge: If the body passes the limit
            StagingFailure: If the body ends inside the part
        """
        while not self._chunks:
            if self._part_done:
                return b""
            if not await self._feed():
                raise StagingFailure(
                    "upload interrupted",
                    internal_detail="body ended inside the file part",
                )
        return self._chunks.popleft()

    async def aclose(self) -> None:
        aclose = getattr(self._body, "aclose", None)
        if aclose is not None:
            await aclose()

    async def _feed(self) -> bool:
        """Parse the next body chunk. False once the body is exhausted."""
        try:
            chunk = await self._body.__anext__()
        except StopAsyncIteration:
            return False
        except ClientDisconnect as e:
            raise StagingFailure(
                "upload interrupted", internal_detail="client disconnected"
            ) from e

        self.received += len(chunk)
        if self.received > self.limit:
            raise PayloadTooLarge(
                f"Upload exceeds the maximum size of {self.max_file_bytes} bytes",
                internal_detail=f"request body passed {self.limit} bytes",
            )

        try:
            self._parser.write(chunk)
        except MultipartParseError as e:
            raise ValidationError(
                "Unable to parse multipart form", internal_detail=str(e)
            ) from e
        return True

    def _on_part_begin(self) -> None:
        self._headers = {}

    def _on_header_field(self, data: bytes, start: int, end: int) -> None:
        self._header_field += data[start:end]

    def _on_header_value(self, data: bytes, start: int, end: int) -> None:
        self._header_value += data[start:end]

    def _on_header_end(self) -> None:
        self._headers[self._header_field.lower()] = self._header_value
        self._header_field = b""
        self._header_value = b""

    def _on_headers_finished(self) -> None:
        if self._found:
            return
        _, options = parse_options_header(self._headers.get(b"content-disposition", b""))
        if options.get(b"name") != self.field.encode() or b"filename" not in options:
            return

        self._found = True
        self._in_target = True
        self.filename = options[b"filename"].decode("latin-1")
        content_type = self._headers.get(b"content-type")
        self.content_type = content_type.decode("latin-1") if content_type else None

    def _on_part_data(self, data: bytes, start: int, end: int) -> None:
        if self._in_target and end > start:
            self._chunks.append(data[start:end])

    def _on_part_end(self) -> None:
        if self._in_target:
            self._in_target = False
            self._part_done = True


class BlockingPartStream:
    """Readable file object over a ``MultipartFileReader``.

    For code running in a worker thread started by ``run_in_threadpool``;
    each read that needs more data waits on the event loop for it.
    """

    def __init__(self, reader: MultipartFileReader):
        self.reader = reader
        self._buffer = b""
        self._eof = False

    def read(self, size: int = -1) -> bytes:
        while not self._eof and (size < 0 or len(self._buffer) < size):
            chunk = anyio.from_thread.run(self.reader.read_chunk)
            if not chunk:
                self._eof = True
            self._buffer += chunk

        if size < 0:
            data, self._buffer = self._buffer, b""
        else:
            data, self._buffer = self._buffer[:size], self._buffer[size:]
        return data


def _boundary(content_type: Optional[str]) -> bytes:
    media_type, options = parse_options_header(content_type or "")
    boundary = options.get(b"boundary")
    if media_type != b"multipart/form-data" or not boundary:
        raise ValidationError(
            "Request body must be multipart/form-data",
            internal_detail=f"content type: {content_type!r}",
        )
    return boundary
