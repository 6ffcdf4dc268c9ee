"""API routes for the jukebox server."""

from jukebox.routes.library import router as library_router
from jukebox.routes.playlists import router as playlists_router
from jukebox.routes.queue import router as queue_router
from jukebox.routes.stream import router as stream_router

__all__ = [
    "library_router",
    "playlists_router",
    "queue_router",
    "stream_router",
]
