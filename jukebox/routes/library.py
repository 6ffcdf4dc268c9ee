"""Library routes for the jukebox API."""

import asyncio
from fastapi import APIRouter, Depends, HTTPException, Query
from fastapi.responses import Response
from jukebox.logging import log_api_request, log_error
from jukebox.models.responses import DeleteTrackResponse, RescanResponse
from jukebox.models.track import Track
from jukebox.routes.deps import get_library
from jukebox.services.artwork import get_artwork
from jukebox.services.library import (
    MusicLibrary,
    PathOutsideLibraryError,
    TrackFileBusyError,
    TrackFileMissingError,
    TrackNotFoundError,
)

router = APIRouter(tags=["library"])


async def _rescan_or_500(library: MusicLibrary) -> list[Track]:
    try:
        return await library.rescan()
    except OSError as e:
        log_error(e, root=str(library.root))
        raise HTTPException(status_code=500, detail=f"Library scan failed: {e}") from e


@router.get("/tracks", response_model=list[Track])
async def list_tracks(
    refresh: str | None = Query(None, description="Set to 1 to rescan before listing"),
    library: MusicLibrary = Depends(get_library),
):
    """Get all tracks in the library."""
    if refresh == "1":
        log_api_request("list_tracks", description="refresh requested")
        return await _rescan_or_500(library)
    return library.list_tracks()


@router.get("/tracks/{track_id}", response_model=Track)
async def get_track(track_id: str, library: MusicLibrary = Depends(get_library)):
    """Get a single track by id."""
    track = library.find_by_id(track_id)
    if track is None:
        raise HTTPException(status_code=404, detail=f"Track with id {track_id} not found")
    return track


@router.delete("/tracks/{track_id}", response_model=DeleteTrackResponse)
async def delete_track(track_id: str, library: MusicLibrary = Depends(get_library)):
    """Delete a track's file from disk and remove it from the library."""
    log_api_request("delete_track", track_id=track_id)
    try:
        track = await library.delete_track(track_id)
    except TrackNotFoundError as e:
        raise HTTPException(status_code=404, detail=f"Track with id {track_id} not found") from e
    except TrackFileMissingError as e:
        raise HTTPException(status_code=404, detail="Track file not found on disk") from e
    except PathOutsideLibraryError as e:
        raise HTTPException(status_code=403, detail="Track path is outside the music directory") from e
    except TrackFileBusyError as e:
        raise HTTPException(status_code=409, detail="Cannot delete: file in use or permission denied") from e
    except OSError as e:
        log_error(e, root=str(library.root))
        raise HTTPException(status_code=500, detail=f"Library scan failed: {e}") from e
    return DeleteTrackResponse(deleted_id=track.id, filename=track.filename)


@router.post("/rescan", response_model=RescanResponse)
async def rescan_library(library: MusicLibrary = Depends(get_library)):
    """Force a fresh walk of the library root."""
    log_api_request("rescan")
    tracks = await _rescan_or_500(library)
    return RescanResponse(tracks=tracks, count=len(tracks))


@router.get("/cover/{track_id}")
async def get_cover(track_id: str, library: MusicLibrary = Depends(get_library)):
    """Get album artwork for a track.

    Tries embedded artwork first, then folder-based artwork.
    """
    filepath = library.resolve_path_by_id(track_id)
    if filepath is None:
        raise HTTPException(status_code=404, detail="Cover not found")

    loop = asyncio.get_running_loop()
    artwork = await loop.run_in_executor(library.executor, get_artwork, filepath)
    if artwork is None:
        raise HTTPException(status_code=404, detail="Cover not found")
    return Response(content=artwork.data, media_type=artwork.mime_type)
