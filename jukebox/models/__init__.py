"""Pydantic models for the jukebox API."""

from jukebox.models.playlist import Playlist, PlaylistCreate, PlaylistUpdate
from jukebox.models.queue import QueueRequest, QueueResponse
from jukebox.models.responses import (
    DeleteTrackResponse,
    HealthResponse,
    OkResponse,
    PlaylistResponse,
    PlaylistsResponse,
    RescanResponse,
    StatusResponse,
)
from jukebox.models.track import Track

__all__ = [
    # Track models
    "Track",
    # Queue models
    "QueueRequest",
    "QueueResponse",
    # Playlist models
    "Playlist",
    "PlaylistCreate",
    "PlaylistUpdate",
    # Response models
    "DeleteTrackResponse",
    "HealthResponse",
    "OkResponse",
    "PlaylistResponse",
    "PlaylistsResponse",
    "RescanResponse",
    "StatusResponse",
]
