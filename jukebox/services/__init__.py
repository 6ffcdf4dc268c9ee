"""Backend services for the jukebox server."""

from jukebox.services.cache import TrackCache
from jukebox.services.library import LibraryIndex, MusicLibrary
from jukebox.services.playlists import PlaylistStore
from jukebox.services.queue import PlayQueue
from jukebox.services.scanner import extract_metadata, walk_audio_files

__all__ = [
    "LibraryIndex",
    "MusicLibrary",
    "PlayQueue",
    "PlaylistStore",
    "TrackCache",
    "extract_metadata",
    "walk_audio_files",
]
