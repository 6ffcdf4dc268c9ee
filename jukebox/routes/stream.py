"""Audio streaming route for the jukebox API."""

from fastapi import APIRouter, Depends, Header, HTTPException
from jukebox.routes.deps import get_library
from jukebox.services.library import MusicLibrary, TrackFileMissingError
from jukebox.services.streaming import stream_file

router = APIRouter(tags=["stream"])


@router.get("/stream/{track_id}")
async def stream_track(
    track_id: str,
    range_header: str | None = Header(None, alias="Range"),
    library: MusicLibrary = Depends(get_library),
):
    """Stream a track's file, honoring single byte-range requests.

    The path is resolved once here; a rescan that replaces the index while
    the response is streaming does not affect it.
    """
    filepath = library.resolve_path_by_id(track_id)
    if filepath is None:
        raise HTTPException(status_code=404, detail=f"Track with id {track_id} not found")

    try:
        return await stream_file(filepath, range_header)
    except TrackFileMissingError as e:
        raise HTTPException(status_code=404, detail="Track file not found on disk") from e
