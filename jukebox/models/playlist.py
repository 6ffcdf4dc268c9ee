"""Playlist models for the music library."""

from datetime import datetime
from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel


class Playlist(BaseModel):
    """Named, ordered list of track ids.

    Track ids are not checked against the library; ids of deleted tracks are kept.
    """

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

    id: str
    name: str
    track_ids: list[str] = Field(default_factory=list)
    created_at: datetime
    updated_at: datetime


class PlaylistCreate(BaseModel):
    """Request to create a new playlist."""

    name: str = Field(min_length=1, max_length=200)


class PlaylistUpdate(BaseModel):
    """Request to rename a playlist and/or replace its tracks."""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

    name: str | None = Field(None, max_length=200)
    track_ids: list[str] | None = None
