"""Byte-range file streaming for the jukebox server.

Serves audio files honoring the HTTP ``Range`` request header so browsers
can seek. Only single ranges of the form ``bytes=<start>-[<end>]`` are
supported: for a comma-separated multi-range request only the first range
is honored, and suffix ranges (``bytes=-<n>``) are rejected as
unsatisfiable.
"""

import asyncio
import mimetypes
import os
import re
from collections.abc import AsyncIterator
from dataclasses import dataclass
from fastapi.responses import Response, StreamingResponse
from jukebox.config import AUDIO_MIME_TYPES, DEFAULT_MIME_TYPE, STREAM_CHUNK_SIZE
from jukebox.services.library import TrackFileMissingError
from pathlib import Path
from starlette.types import Receive, Scope, Send

RANGE_UNIT_PREFIX = "bytes="
_RANGE_SPEC = re.compile(r"^\s*(\d*)\s*-\s*(\d*)\s*$")


@dataclass(frozen=True)
class ByteRange:
    """Inclusive byte span of a file."""

    start: int
    end: int

    @property
    def length(self) -> int:
        return self.end - self.start + 1


class RangeNotSatisfiableError(Exception):
    """The Range header cannot be satisfied for a file of this size."""

    def __init__(self, file_size: int, header: str | None = None):
        super().__init__(f"Range {header!r} not satisfiable for {file_size} bytes")
        self.file_size = file_size
        self.header = header


def parse_range_header(header: str, file_size: int) -> ByteRange:
    """Parse a ``Range`` header value against a file size.

    Args:
        header: Raw header value, e.g. ``"bytes=0-99"``
        file_size: Size of the file in bytes

    Returns:
        The requested span, with ``end`` clamped to the last byte of the file

    Raises:
        RangeNotSatisfiableError: Malformed header, ``start > end``, or a
            start beyond the end of the file
    """
    value = header.strip()
    if not value.lower().startswith(RANGE_UNIT_PREFIX):
        raise RangeNotSatisfiableError(file_size, header)

    first_range = value[len(RANGE_UNIT_PREFIX) :].split(",", 1)[0]
    match = _RANGE_SPEC.match(first_range)
    if match is None or not match.group(1):
        raise RangeNotSatisfiableError(file_size, header)

    start = int(match.group(1))
    end = int(match.group(2)) if match.group(2) else file_size - 1
    if start > end or start >= file_size:
        raise RangeNotSatisfiableError(file_size, header)

    return ByteRange(start=start, end=min(end, file_size - 1))


def guess_mime_type(filepath: str | Path) -> str:
    """Content type for an audio file, defaulting to ``audio/mpeg``."""
    suffix = Path(filepath).suffix.lower()
    if suffix in AUDIO_MIME_TYPES:
        return AUDIO_MIME_TYPES[suffix]
    mime_type, _ = mimetypes.guess_type(str(filepath))
    return mime_type or DEFAULT_MIME_TYPE


async def iter_file_range(
    filepath: str | Path,
    start: int,
    length: int,
    chunk_size: int = STREAM_CHUNK_SIZE,
) -> AsyncIterator[bytes]:
    """Yield ``length`` bytes of a file starting at ``start``.

    Reads run on the default executor. The file handle is closed however the
    iteration ends: exhaustion, error, or ``aclose()`` after a disconnect.
    """
    loop = asyncio.get_running_loop()
    f = await loop.run_in_executor(None, open, filepath, "rb")
    try:
        await loop.run_in_executor(None, f.seek, start)
        remaining = length
        while remaining > 0:
            chunk = await loop.run_in_executor(None, f.read, min(chunk_size, remaining))
            if not chunk:
                break
            remaining -= len(chunk)
            yield chunk
    finally:
        f.close()


class RangeStreamingResponse(StreamingResponse):
    """StreamingResponse that always closes its body iterator.

    Starlette stops iterating when the client disconnects but leaves the
    generator suspended; closing it here releases the open file right away.
    """

    async def __call__(self, scope: Scope, receive: Receive, send: Send) -> None:
        try:
            await super().__call__(scope, receive, send)
        finally:
            aclose = getattr(self.body_iterator, "aclose", None)
            if aclose is not None:
                await aclose()


async def stream_file(filepath: str | Path, range_header: str | None) -> Response:
    """Build the response for streaming a file.

    Args:
        filepath: Absolute path resolved from the library index
        range_header: Value of the request's ``Range`` header, if any

    Returns:
        200 with the whole file, 206 with the requested span, or 416 with
        ``Content-Range: bytes */<size>`` when the range is unsatisfiable

    Raises:
        TrackFileMissingError: The file disappeared since it was indexed
    """
    loop = asyncio.get_running_loop()
    try:
        stat_result = await loop.run_in_executor(None, os.stat, filepath)
    except FileNotFoundError as e:
        raise TrackFileMissingError(str(filepath)) from e

    file_size = stat_result.st_size
    mime_type = guess_mime_type(filepath)

    if not range_header:
        return RangeStreamingResponse(
            iter_file_range(filepath, 0, file_size),
            status_code=200,
            media_type=mime_type,
            headers={
                "Content-Length": str(file_size),
                "Accept-Ranges": "bytes",
            },
        )

    try:
        byte_range = parse_range_header(range_header, file_size)
    except RangeNotSatisfiableError:
        return Response(
            status_code=416,
            headers={"Content-Range": f"bytes */{file_size}"},
        )

    return RangeStreamingResponse(
        iter_file_range(filepath, byte_range.start, byte_range.length),
        status_code=206,
        media_type=mime_type,
        headers={
            "Content-Range": f"bytes {byte_range.start}-{byte_range.end}/{file_size}",
            "Accept-Ranges": "bytes",
            "Content-Length": str(byte_range.length),
        },
    )
