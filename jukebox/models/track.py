"""Track models for the music library."""

from pydantic import BaseModel, ConfigDict
from pydantic.alias_generators import to_camel


class Track(BaseModel):
    """Public representation of one scanned audio file.

    The absolute path on disk is not a field; it lives only in the
    in-memory library index.
    """

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True, frozen=True)

    id: str
    filename: str
    relative_path: str
    title: str
    artist: str
    album: str
    duration_seconds: int | None = None
    size_bytes: int = 0
