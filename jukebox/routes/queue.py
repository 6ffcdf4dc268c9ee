"""Queue routes for the jukebox API."""

from fastapi import APIRouter, Depends
from jukebox.models.queue import QueueRequest, QueueResponse
from jukebox.routes.deps import get_play_queue
from jukebox.services.queue import PlayQueue

router = APIRouter(prefix="/queue", tags=["queue"])


@router.get("", response_model=QueueResponse)
async def get_queue(queue: PlayQueue = Depends(get_play_queue)):
    """Get the current queue."""
    return QueueResponse(queue=queue.items())


@router.post("", response_model=QueueResponse)
async def add_to_queue(request: QueueRequest, queue: PlayQueue = Depends(get_play_queue)):
    """Append tracks to the end of the queue."""
    return QueueResponse(queue=queue.extend(request.track_ids))


@router.post("/replace", response_model=QueueResponse)
async def replace_queue(request: QueueRequest, queue: PlayQueue = Depends(get_play_queue)):
    """Replace the whole queue."""
    return QueueResponse(queue=queue.replace(request.track_ids))


@router.delete("", response_model=QueueResponse)
async def clear_queue(queue: PlayQueue = Depends(get_play_queue)):
    """Remove all tracks from the queue."""
    return QueueResponse(queue=queue.clear())
