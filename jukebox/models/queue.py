"""Play queue models."""

from pydantic import BaseModel, ConfigDict
from pydantic.alias_generators import to_camel


class QueueRequest(BaseModel):
    """Request body for appending to or replacing the queue."""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

    track_ids: list[str]


class QueueResponse(BaseModel):
    """Current queue contents."""

    queue: list[str]
