"""Playlist store for the jukebox server.

Playlists live in a single JSON file, ``{"playlists": [...]}``, created on
first use. Playlists reference tracks by id only; ids of tracks that have
since been deleted are kept as they are.
"""

import json
import os
import tempfile
import threading
import uuid
from datetime import UTC, datetime
from jukebox.logging import log_file_operation
from jukebox.models.playlist import Playlist
from pathlib import Path
from pydantic import ValidationError
from typing import Any


class PlaylistStoreError(Exception):
    """The playlists file exists but cannot be read or written."""


class PlaylistStore:
    """JSON-file backed playlist CRUD.

    Every operation reads the file fresh and writes it back whole; a lock
    keeps concurrent requests from interleaving read-modify-write cycles.
    """

    def __init__(self, path: str | Path):
        """Initialize the store.

        Args:
            path: Location of the playlists JSON file
        """
        self.path = Path(path)
        self._lock = threading.Lock()

    def _ensure_store(self) -> None:
        if not self.path.exists():
            self._write({"playlists": []})

    def _read(self) -> list[dict[str, Any]]:
        self._ensure_store()
        try:
            data = json.loads(self.path.read_text(encoding="utf-8"))
        except (OSError, ValueError) as e:
            raise PlaylistStoreError(f"Cannot read {self.path}: {e}") from e
        if not isinstance(data, dict) or not isinstance(data.get("playlists"), list):
            return []
        return data["playlists"]

    def _write(self, data: dict[str, Any]) -> None:
        try:
            self.path.parent.mkdir(parents=True, exist_ok=True)
            with tempfile.NamedTemporaryFile(
                "w", encoding="utf-8", dir=self.path.parent, prefix=f".{self.path.name}.", delete=False
            ) as f:
                json.dump(data, f, indent=2)
            os.replace(f.name, self.path)
        except OSError as e:
            raise PlaylistStoreError(f"Cannot write {self.path}: {e}") from e

    def _load(self) -> list[Playlist]:
        try:
            return [Playlist.model_validate(item) for item in self._read()]
        except ValidationError as e:
            raise PlaylistStoreError(f"Invalid playlist in {self.path}: {e.error_count()} errors") from e

    def _save(self, playlists: list[Playlist]) -> None:
        self._write({"playlists": [p.model_dump(mode="json", by_alias=True) for p in playlists]})

    def list_playlists(self) -> list[Playlist]:
        """Get all playlists in creation order."""
        with self._lock:
            return self._load()

    def get_playlist(self, playlist_id: str) -> Playlist | None:
        """Get a playlist by id."""
        with self._lock:
            return next((p for p in self._load() if p.id == playlist_id), None)

    def create_playlist(self, name: str) -> Playlist:
        """Create an empty playlist.

        Args:
            name: Display name (surrounding whitespace is stripped)

        Returns:
            The new playlist
        """
        now = datetime.now(UTC)
        playlist = Playlist(id=uuid.uuid4().hex, name=name.strip(), track_ids=[], created_at=now, updated_at=now)
        with self._lock:
            playlists = self._load()
            playlists.append(playlist)
            self._save(playlists)
        log_file_operation("playlist_create", self.path, playlist_id=playlist.id)
        return playlist

    def update_playlist(
        self,
        playlist_id: str,
        name: str | None = None,
        track_ids: list[str] | None = None,
    ) -> Playlist | None:
        """Rename a playlist and/or replace its track list.

        Blank names are ignored. Track ids replace the previous list wholesale.

        Returns:
            The updated playlist, or None if no playlist has that id
        """
        with self._lock:
            playlists = self._load()
            for i, playlist in enumerate(playlists):
                if playlist.id != playlist_id:
                    continue
                changes: dict[str, Any] = {"updated_at": datetime.now(UTC)}
                if name is not None and name.strip():
                    changes["name"] = name.strip()
                if track_ids is not None:
                    changes["track_ids"] = list(track_ids)
                playlists[i] = playlist.model_copy(update=changes)
                self._save(playlists)
                return playlists[i]
        return None

    def delete_playlist(self, playlist_id: str) -> bool:
        """Delete a playlist. Returns False if no playlist has that id."""
        with self._lock:
            playlists = self._load()
            remaining = [p for p in playlists if p.id != playlist_id]
            if len(remaining) == len(playlists):
                return False
            self._save(remaining)
        log_file_operation("playlist_delete", self.path, playlist_id=playlist_id)
        return True
