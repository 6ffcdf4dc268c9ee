"""Request dependencies resolving the per-app services."""

from fastapi import Request
from jukebox.services.library import MusicLibrary
from jukebox.services.playlists import PlaylistStore
from jukebox.services.queue import PlayQueue


def get_library(request: Request) -> MusicLibrary:
    """Get the music library owned by this app."""
    return request.app.state.library


def get_playlist_store(request: Request) -> PlaylistStore:
    """Get the playlist store owned by this app."""
    return request.app.state.playlists


def get_play_queue(request: Request) -> PlayQueue:
    """Get the play queue owned by this app."""
    return request.app.state.queue
