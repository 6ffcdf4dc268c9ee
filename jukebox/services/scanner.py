"""Music file scanner service for the jukebox server.

Walks the library root for audio content and extracts metadata from each
file. Metadata extraction never raises: unreadable files produce a fallback
result that records why the tags could not be used.
"""

import enum
import math
import os
from collections.abc import Iterator
from dataclasses import dataclass
from jukebox.config import AUDIO_EXTENSIONS
from jukebox.services.riff import read_wav_duration
from pathlib import Path
from typing import Any

UNKNOWN = "Unknown"
WAV_EXTENSION = ".wav"

# Tag keys per container: ID3, MP4, and Vorbis-style comments (FLAC, OGG)
ID3_KEYS = {"title": "TIT2", "artist": "TPE1", "album": "TALB"}
MP4_KEYS = {"title": "\xa9nam", "artist": "\xa9ART", "album": "\xa9alb"}
VORBIS_KEYS = {"title": "title", "artist": "artist", "album": "album"}


class MetadataSource(enum.Enum):
    """Where a track's metadata came from."""

    TAGS = "tags"
    FALLBACK = "fallback"


@dataclass(frozen=True)
class TrackMetadata:
    """Result of reading a file's metadata."""

    title: str
    artist: str
    album: str
    duration_seconds: int | None = None
    source: MetadataSource = MetadataSource.TAGS
    error: str | None = None

    @property
    def used_fallback(self) -> bool:
        return self.source is MetadataSource.FALLBACK


def is_audio_file(path: Path) -> bool:
    """Check if a file is a supported audio file."""
    return path.suffix.lower() in AUDIO_EXTENSIONS


def walk_audio_files(root: str | Path) -> Iterator[Path]:
    """Yield every supported audio file below ``root``.

    A missing or unreadable root yields nothing. Errors listing any directory
    below the root are raised to the caller; symlinked directories are not
    followed.

    Args:
        root: Library root directory

    Yields:
        Absolute paths of audio files, in directory enumeration order
    """
    root = Path(root)
    if not root.is_dir():
        return

    def on_error(error: OSError) -> None:
        if error.filename is not None and Path(error.filename) == root:
            return
        raise error

    for dirpath, _, filenames in os.walk(root, onerror=on_error):
        for filename in filenames:
            filepath = Path(dirpath) / filename
            if is_audio_file(filepath):
                yield filepath


def _first_tag(tags: Any, key: str) -> str | None:
    if key not in tags:
        return None
    value = tags[key]
    # ID3 frames carry their values in .text
    values = getattr(value, "text", value)
    if isinstance(values, str):
        values = [values]
    if not values:
        return None
    text = str(values[0]).strip()
    return text or None


def _read_tags(audio: Any) -> dict[str, str | None]:
    """Read title/artist/album from whichever tag format the file carries."""
    import mutagen.id3
    import mutagen.mp4

    tags = getattr(audio, "tags", None)
    if not tags:
        return {}

    if isinstance(tags, mutagen.id3.ID3):
        keys = ID3_KEYS
    elif isinstance(tags, mutagen.mp4.MP4Tags):
        keys = MP4_KEYS
    else:
        keys = VORBIS_KEYS

    return {field: _first_tag(tags, key) for field, key in keys.items()}


def _fallback_duration(filepath: Path) -> int | None:
    if filepath.suffix.lower() == WAV_EXTENSION:
        return read_wav_duration(filepath)
    return None


def extract_metadata(filepath: str | Path) -> TrackMetadata:
    """Extract metadata from an audio file using mutagen.

    Duration comes from mutagen when it reports one; otherwise ``.wav``
    files fall back to the RIFF chunk parser.

    Args:
        filepath: Path to the audio file

    Returns:
        TrackMetadata; ``source`` is FALLBACK when the tags could not be read
    """
    import mutagen

    filepath = Path(filepath)
    fallback_title = filepath.stem

    try:
        audio = mutagen.File(filepath)
    except Exception as e:
        return TrackMetadata(
            title=fallback_title,
            artist=UNKNOWN,
            album=UNKNOWN,
            duration_seconds=_fallback_duration(filepath),
            source=MetadataSource.FALLBACK,
            error=f"{type(e).__name__}: {e}",
        )

    if audio is None:
        return TrackMetadata(
            title=fallback_title,
            artist=UNKNOWN,
            album=UNKNOWN,
            duration_seconds=_fallback_duration(filepath),
            source=MetadataSource.FALLBACK,
            error="unrecognized audio format",
        )

    length = getattr(getattr(audio, "info", None), "length", None)
    if length is not None and math.isfinite(length) and length > 0:
        duration = round(length)
    else:
        duration = _fallback_duration(filepath)

    try:
        tags = _read_tags(audio)
    except Exception as e:
        return TrackMetadata(
            title=fallback_title,
            artist=UNKNOWN,
            album=UNKNOWN,
            duration_seconds=duration,
            source=MetadataSource.FALLBACK,
            error=f"{type(e).__name__}: {e}",
        )

    if not any(tags.values()):
        return TrackMetadata(
            title=fallback_title,
            artist=UNKNOWN,
            album=UNKNOWN,
            duration_seconds=duration,
            source=MetadataSource.FALLBACK,
            error="no title/artist/album tags",
        )

    return TrackMetadata(
        title=tags.get("title") or fallback_title,
        artist=tags.get("artist") or UNKNOWN,
        album=tags.get("album") or UNKNOWN,
        duration_seconds=duration,
    )


def get_file_size(filepath: str | Path) -> int:
    """Get file size in bytes. Raises OSError if the file is gone."""
    return os.path.getsize(filepath)
