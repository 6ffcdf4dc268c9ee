"""Artwork lookup service for the jukebox server.

Finds album artwork for an audio file: embedded pictures first, then an
image file sitting next to the track.
"""

import base64
from dataclasses import dataclass
from jukebox.logging import log_file_operation
from pathlib import Path

ARTWORK_STEMS = ["cover", "folder", "album", "front", "artwork"]
ARTWORK_MIME_TYPES = {
    ".jpg": "image/jpeg",
    ".jpeg": "image/jpeg",
    ".png": "image/png",
}


@dataclass(frozen=True)
class Artwork:
    """Raw image bytes plus where they came from."""

    data: bytes
    mime_type: str
    source: str


def get_embedded_artwork(filepath: str | Path) -> Artwork | None:
    """Extract embedded artwork from an audio file.

    Args:
        filepath: Path to the audio file

    Returns:
        Artwork, or None if the file carries no picture or cannot be read
    """
    import mutagen
    import mutagen.flac
    import mutagen.id3
    import mutagen.mp4
    import mutagen.oggvorbis

    try:
        audio = mutagen.File(filepath)
        if audio is None:
            return None

        # MP3 / WAV (ID3) - APIC frame
        if isinstance(audio.tags, mutagen.id3.ID3) and audio.tags.getall("APIC"):
            apic = audio.tags.getall("APIC")[0]
            return Artwork(data=apic.data, mime_type=apic.mime or "image/jpeg", source="embedded")

        # MP4/M4A - covr atom
        if isinstance(audio.tags, mutagen.mp4.MP4Tags) and "covr" in audio.tags:
            cover = audio.tags["covr"][0]
            mime_type = "image/png" if cover.imageformat == mutagen.mp4.MP4Cover.FORMAT_PNG else "image/jpeg"
            return Artwork(data=bytes(cover), mime_type=mime_type, source="embedded")

        # FLAC - pictures
        if isinstance(audio, mutagen.flac.FLAC) and audio.pictures:
            pic = audio.pictures[0]
            return Artwork(data=pic.data, mime_type=pic.mime or "image/jpeg", source="embedded")

        # OGG Vorbis - metadata_block_picture
        if isinstance(audio, mutagen.oggvorbis.OggVorbis) and "metadata_block_picture" in audio:
            pic = mutagen.flac.Picture(base64.b64decode(audio["metadata_block_picture"][0]))
            return Artwork(data=pic.data, mime_type=pic.mime or "image/jpeg", source="embedded")

    except Exception as e:
        log_file_operation("artwork_read_failed", filepath, error=str(e))

    return None


def get_folder_artwork(filepath: str | Path) -> Artwork | None:
    """Find an artwork image in the same folder as the audio file.

    Matches ``cover``, ``folder``, ``album``, ``front`` and ``artwork``
    images case-insensitively, in that order of preference.
    """
    folder = Path(filepath).parent

    try:
        candidates = {f.name.lower(): f for f in folder.iterdir() if f.is_file()}
    except OSError:
        return None

    for stem in ARTWORK_STEMS:
        for ext, mime_type in ARTWORK_MIME_TYPES.items():
            artwork_path = candidates.get(f"{stem}{ext}")
            if artwork_path is None:
                continue
            try:
                return Artwork(data=artwork_path.read_bytes(), mime_type=mime_type, source="folder")
            except OSError as e:
                log_file_operation("artwork_read_failed", artwork_path, error=str(e))

    return None


def get_artwork(filepath: str | Path) -> Artwork | None:
    """Get artwork for an audio file, trying embedded first then folder-based."""
    artwork = get_embedded_artwork(filepath)
    if artwork:
        return artwork
    return get_folder_artwork(filepath)
