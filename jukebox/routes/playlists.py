"""Playlists routes for the jukebox API."""

from fastapi import APIRouter, Depends, HTTPException
from jukebox.models.playlist import PlaylistCreate, PlaylistUpdate
from jukebox.models.responses import OkResponse, PlaylistResponse, PlaylistsResponse
from jukebox.routes.deps import get_playlist_store
from jukebox.services.playlists import PlaylistStore

router = APIRouter(prefix="/playlists", tags=["playlists"])


@router.get("", response_model=PlaylistsResponse)
async def get_playlists(store: PlaylistStore = Depends(get_playlist_store)):
    """Get all playlists."""
    return PlaylistsResponse(playlists=store.list_playlists())


@router.post("", status_code=201, response_model=PlaylistResponse)
async def create_playlist(request: PlaylistCreate, store: PlaylistStore = Depends(get_playlist_store)):
    """Create a new, empty playlist."""
    if not request.name.strip():
        raise HTTPException(status_code=422, detail="Playlist name must not be blank")
    return PlaylistResponse(playlist=store.create_playlist(request.name))


@router.put("/{playlist_id}", response_model=PlaylistResponse)
async def update_playlist(
    playlist_id: str,
    request: PlaylistUpdate,
    store: PlaylistStore = Depends(get_playlist_store),
):
    """Rename a playlist and/or replace its tracks."""
    playlist = store.update_playlist(playlist_id, name=request.name, track_ids=request.track_ids)
    if playlist is None:
        raise HTTPException(status_code=404, detail=f"Playlist with id {playlist_id} not found")
    return PlaylistResponse(playlist=playlist)


@router.delete("/{playlist_id}", response_model=OkResponse)
async def delete_playlist(playlist_id: str, store: PlaylistStore = Depends(get_playlist_store)):
    """Delete a playlist."""
    if not store.delete_playlist(playlist_id):
        raise HTTPException(status_code=404, detail=f"Playlist with id {playlist_id} not found")
    return OkResponse()
