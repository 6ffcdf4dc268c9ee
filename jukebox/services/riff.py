"""Minimal RIFF/WAVE chunk walker.

Used only when mutagen cannot report a duration for a ``.wav`` file. Reads
the ``fmt `` byte rate and the ``data`` chunk size from the file header and
derives the duration from them.

Known limitation: chunks are advanced by ``chunk_data_start + chunk_size``
without the RIFF word-alignment pad byte, so a file with an odd-sized chunk
ahead of ``fmt ``/``data`` is misparsed (and reported as unknown duration).
"""

import struct
from jukebox.config import WAV_HEADER_BYTES
from pathlib import Path

RIFF_MAGIC = b"RIFF"
WAVE_MAGIC = b"WAVE"
CHUNK_HEADER_SIZE = 8
FMT_CHUNK_ID = b"fmt "
DATA_CHUNK_ID = b"data"

# Offset of the 32-bit byte rate inside the fmt chunk data
FMT_BYTE_RATE_OFFSET = 8
FMT_MIN_SIZE = 16


def parse_wav_duration(buffer: bytes) -> int | None:
    """Compute a WAVE file's duration from its leading bytes.

    Args:
        buffer: The first bytes of the file (need not be the whole file)

    Returns:
        Duration in whole seconds, or None if it cannot be determined
    """
    if len(buffer) < 12 or buffer[0:4] != RIFF_MAGIC or buffer[8:12] != WAVE_MAGIC:
        return None

    byte_rate = None
    data_size = None
    offset = 12
    try:
        while offset + CHUNK_HEADER_SIZE <= len(buffer):
            chunk_id = buffer[offset : offset + 4]
            (chunk_size,) = struct.unpack_from("<I", buffer, offset + 4)
            chunk_data_start = offset + CHUNK_HEADER_SIZE

            if chunk_id == FMT_CHUNK_ID and chunk_data_start + FMT_MIN_SIZE <= len(buffer):
                (byte_rate,) = struct.unpack_from("<I", buffer, chunk_data_start + FMT_BYTE_RATE_OFFSET)
            elif chunk_id == DATA_CHUNK_ID:
                data_size = chunk_size

            if byte_rate and data_size:
                break
            offset = chunk_data_start + chunk_size
    except struct.error:
        return None

    if not byte_rate or not data_size:
        return None
    return round(data_size / byte_rate)


def read_wav_duration(filepath: str | Path) -> int | None:
    """Read a WAVE file's header and return its duration in seconds.

    Only the first ``WAV_HEADER_BYTES`` are read, regardless of file size.
    I/O errors are reported as an unknown duration.
    """
    try:
        with open(filepath, "rb") as f:
            header = f.read(WAV_HEADER_BYTES)
    except OSError:
        return None
    return parse_wav_duration(header)
