"""Persisted snapshot of the last library scan.

The cache lets the server answer listing requests at startup before the
first authoritative rescan finishes. It is a JSON document::

    {"updatedAt": "<ISO-8601>", "tracks": [<Track>, ...]}

Neither reading nor writing the cache ever raises: a missing or corrupt file
is a cold start, and a failed write leaves the in-memory index authoritative.
"""

import json
import os
import tempfile
from contextlib import suppress
from datetime import UTC, datetime
from jukebox.logging import log_cache_operation
from jukebox.models.track import Track
from pathlib import Path
from pydantic import BaseModel, ConfigDict, ValidationError
from pydantic.alias_generators import to_camel


class CacheDocument(BaseModel):
    """On-disk layout of the track cache."""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

    updated_at: datetime
    tracks: list[Track]


class TrackCache:
    """Reads and writes the track cache file."""

    def __init__(self, path: str | Path):
        """Initialize the cache.

        Args:
            path: Location of the JSON cache file
        """
        self.path = Path(path)

    def load(self) -> list[Track]:
        """Load the cached track list.

        Returns:
            Cached tracks, or an empty list when the cache is absent or invalid
        """
        try:
            raw = self.path.read_text(encoding="utf-8")
        except FileNotFoundError:
            log_cache_operation("miss", self.path)
            return []
        except OSError as e:
            log_cache_operation("load_failed", self.path, error=str(e))
            return []

        try:
            data = json.loads(raw)
        except ValueError as e:
            log_cache_operation("load_failed", self.path, error=f"invalid JSON: {e}")
            return []

        if not isinstance(data, dict) or not isinstance(data.get("tracks"), list):
            log_cache_operation("load_failed", self.path, error="missing track list")
            return []

        try:
            tracks = [Track.model_validate(item) for item in data["tracks"]]
        except ValidationError as e:
            log_cache_operation("load_failed", self.path, error=f"invalid track entry: {e.error_count()} errors")
            return []

        log_cache_operation("load", self.path, track_count=len(tracks))
        return tracks

    def save(self, tracks: list[Track]) -> bool:
        """Write the track list to the cache file.

        The file is replaced atomically so a crash mid-write never leaves a
        truncated cache behind.

        Args:
            tracks: Public track records to persist

        Returns:
            True if the cache was written, False if the write failed
        """
        document = CacheDocument(updated_at=datetime.now(UTC), tracks=tracks)
        payload = document.model_dump_json(by_alias=True, indent=2)

        tmp_name = None
        try:
            self.path.parent.mkdir(parents=True, exist_ok=True)
            with tempfile.NamedTemporaryFile(
                "w", encoding="utf-8", dir=self.path.parent, prefix=f".{self.path.name}.", delete=False
            ) as f:
                tmp_name = f.name
                f.write(payload)
            os.replace(tmp_name, self.path)
        except OSError as e:
            log_cache_operation("save_failed", self.path, error=str(e))
            if tmp_name is not None:
                with suppress(OSError):
                    Path(tmp_name).unlink(missing_ok=True)
            return False

        log_cache_operation("save", self.path, track_count=len(tracks))
        return True
