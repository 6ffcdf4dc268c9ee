"""Response models for API endpoints."""

from jukebox.models.playlist import Playlist
from jukebox.models.track import Track
from pydantic import BaseModel, ConfigDict
from pydantic.alias_generators import to_camel


class _CamelModel(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


class RescanResponse(BaseModel):
    """Response for a forced library rescan."""

    tracks: list[Track]
    count: int


class DeleteTrackResponse(_CamelModel):
    """Response after a track's file was deleted."""

    ok: bool = True
    deleted_id: str
    filename: str


class PlaylistResponse(BaseModel):
    """Response wrapping a single playlist."""

    playlist: Playlist


class PlaylistsResponse(BaseModel):
    """Response for playlists listing."""

    playlists: list[Playlist]


class OkResponse(BaseModel):
    """Bare acknowledgement."""

    ok: bool = True


class HealthResponse(_CamelModel):
    """Health check response."""

    ok: bool = True
    tracks_count: int


class StatusResponse(_CamelModel):
    """Server status response."""

    music_dir: str
    track_count: int
    queue_size: int
