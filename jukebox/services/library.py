"""Music library service for the jukebox server.

Owns the in-memory library index and keeps it in step with the library root
on disk. Every rescan rebuilds the whole index from a fresh walk, publishes
it with a single reference swap, and persists it to the track cache.

Track ids are the SHA-1 of the root-relative path (with ``/`` separators), so
an unmoved file keeps its id across scans and a rename produces a new one.
"""

import asyncio
import hashlib
import os
from collections.abc import Iterable
from concurrent.futures import ThreadPoolExecutor
from dataclasses import dataclass, field
from eliot import start_action
from jukebox.config import SCAN_WORKERS
from jukebox.logging import log_file_operation
from jukebox.models.track import Track
from jukebox.services.cache import TrackCache
from jukebox.services.scanner import extract_metadata, get_file_size, walk_audio_files
from pathlib import Path


class LibraryError(Exception):
    """Base class for library errors surfaced to the route layer."""


class TrackNotFoundError(LibraryError):
    """No track with the given id is in the library."""


class TrackFileMissingError(LibraryError):
    """The track is indexed but its file is no longer on disk."""


class TrackFileBusyError(LibraryError):
    """The track's file could not be removed (in use or no permission)."""


class PathOutsideLibraryError(LibraryError):
    """The resolved path lies outside the library root."""


def track_id(relative_path: str) -> str:
    """Derive a track's stable id from its root-relative path."""
    return hashlib.sha1(relative_path.encode("utf-8")).hexdigest()


def relative_track_path(root: Path, filepath: Path) -> str:
    """Return ``filepath`` relative to ``root`` with ``/`` separators."""
    return filepath.relative_to(root).as_posix()


def _is_contained(relative_path: str) -> bool:
    path = Path(relative_path)
    return not path.is_absolute() and ".." not in path.parts


@dataclass(frozen=True)
class LibraryEntry:
    """A track together with its server-internal absolute path."""

    track: Track
    absolute_path: Path


@dataclass(frozen=True)
class LibraryIndex:
    """Immutable snapshot of the library.

    Both lookup maps are built before the index is published, so a reader
    holding an index never sees one map newer than the other.
    """

    entries: tuple[LibraryEntry, ...] = ()
    tracks_by_id: dict[str, Track] = field(default_factory=dict)
    paths_by_id: dict[str, Path] = field(default_factory=dict)

    @classmethod
    def build(cls, entries: Iterable[LibraryEntry]) -> "LibraryIndex":
        entries = tuple(entries)
        return cls(
            entries=entries,
            tracks_by_id={entry.track.id: entry.track for entry in entries},
            paths_by_id={entry.track.id: entry.absolute_path for entry in entries},
        )

    def __len__(self) -> int:
        return len(self.entries)


class MusicLibrary:
    """Scanner, reconciler and lookup surface for one library root.

    Blocking filesystem work runs on a thread pool so the event loop keeps
    serving requests during a scan.

    Rescans are serialized: each call takes a ticket, and a caller whose
    ticket was already covered by a scan that started after it asked returns
    that scan's result. Calls that pile up behind a running scan therefore
    collapse into a single follow-up scan, and an older scan can never
    publish after a newer one.
    """

    def __init__(
        self,
        root: str | Path,
        cache: TrackCache,
        max_workers: int = SCAN_WORKERS,
    ):
        """Initialize the library.

        Args:
            root: Library root directory
            cache: Track cache used for startup loads and post-scan saves
            max_workers: Worker threads for filesystem and metadata work
        """
        self.root = Path(root)
        self.cache = cache
        self.executor = ThreadPoolExecutor(max_workers=max_workers, thread_name_prefix="jukebox-scan")
        self._index = LibraryIndex()
        self._lock = asyncio.Lock()
        self._requested = 0
        self._completed = 0

    @property
    def index(self) -> LibraryIndex:
        """The currently published index snapshot."""
        return self._index

    @property
    def rescan_in_progress(self) -> bool:
        return self._lock.locked()

    def list_tracks(self) -> list[Track]:
        """Get all tracks in the library."""
        return [entry.track for entry in self._index.entries]

    def find_by_id(self, track_id: str) -> Track | None:
        """Get a single track by id, or None if unknown."""
        return self._index.tracks_by_id.get(track_id)

    def resolve_path_by_id(self, track_id: str) -> Path | None:
        """Get the absolute path of a track's file, or None if unknown.

        For streaming and deletion only; never include it in a response.
        """
        return self._index.paths_by_id.get(track_id)

    async def load_cache(self) -> list[Track]:
        """Publish the persisted snapshot from the last scan.

        Intended for startup, before the first rescan. A missing or invalid
        cache yields an empty list. The cached snapshot is ignored if a rescan
        has already published an index.
        """
        loop = asyncio.get_running_loop()
        with start_action(action_type="library:load_cache", path=str(self.cache.path)) as action:
            tracks = await loop.run_in_executor(self.executor, self.cache.load)
            index = LibraryIndex.build(
                LibraryEntry(track=track, absolute_path=self.root / Path(track.relative_path))
                for track in tracks
                if _is_contained(track.relative_path)
            )
            if self._completed == 0:
                self._index = index
            action.add_success_fields(track_count=len(index))
        return self.list_tracks()

    async def rescan(self) -> list[Track]:
        """Rebuild the index from a fresh walk of the library root.

        Returns:
            The public track list after the scan

        Raises:
            OSError: If a directory below the root cannot be listed; the
                previous index stays published
        """
        self._requested += 1
        ticket = self._requested

        async with self._lock:
            if self._completed >= ticket:
                return self.list_tracks()

            target = self._requested
            with start_action(action_type="library:rescan", root=str(self.root)) as action:
                index = await self._scan()
                self._index = index
                self._completed = target
                action.add_success_fields(track_count=len(index))

            loop = asyncio.get_running_loop()
            await loop.run_in_executor(self.executor, self.cache.save, [entry.track for entry in index.entries])

        return self.list_tracks()

    async def delete_track(self, track_id: str) -> Track:
        """Delete a track's file from disk and rescan.

        Raises:
            TrackNotFoundError: Unknown track id
            PathOutsideLibraryError: The indexed path escapes the library root
            TrackFileMissingError: The file is already gone
            TrackFileBusyError: The file could not be removed
        """
        track = self.find_by_id(track_id)
        filepath = self.resolve_path_by_id(track_id)
        if track is None or filepath is None:
            raise TrackNotFoundError(track_id)

        # Normalized but not resolved, so a symlinked track removes the link only
        absolute = Path(os.path.abspath(filepath))
        if not absolute.is_relative_to(os.path.abspath(self.root)):
            raise PathOutsideLibraryError(str(filepath))

        loop = asyncio.get_running_loop()
        try:
            await loop.run_in_executor(self.executor, os.remove, absolute)
        except FileNotFoundError as e:
            raise TrackFileMissingError(str(filepath)) from e
        except PermissionError as e:
            raise TrackFileBusyError(str(filepath)) from e
        except OSError as e:
            # EBUSY and friends on platforms that lock open files
            raise TrackFileBusyError(str(filepath)) from e

        log_file_operation("delete", absolute, track_id=track_id)
        await self.rescan()
        return track

    async def _scan(self) -> LibraryIndex:
        loop = asyncio.get_running_loop()
        filepaths = await loop.run_in_executor(self.executor, lambda: list(walk_audio_files(self.root)))
        if not filepaths:
            return LibraryIndex()

        entries = await asyncio.gather(
            *(loop.run_in_executor(self.executor, self._scan_file, filepath) for filepath in filepaths)
        )
        return LibraryIndex.build(entry for entry in entries if entry is not None)

    def _scan_file(self, filepath: Path) -> LibraryEntry | None:
        """Build the index entry for one file (runs on a worker thread)."""
        try:
            size = get_file_size(filepath)
        except FileNotFoundError:
            # Removed between the walk and the stat
            log_file_operation("vanished", filepath)
            return None

        metadata = extract_metadata(filepath)
        if metadata.used_fallback:
            log_file_operation("metadata_fallback", filepath, error=metadata.error)

        relative_path = relative_track_path(self.root, filepath)
        track = Track(
            id=track_id(relative_path),
            filename=filepath.name,
            relative_path=relative_path,
            title=metadata.title,
            artist=metadata.artist,
            album=metadata.album,
            duration_seconds=metadata.duration_seconds,
            size_bytes=size,
        )
        return LibraryEntry(track=track, absolute_path=filepath)

    def close(self) -> None:
        """Release the worker threads."""
        self.executor.shutdown(wait=False, cancel_futures=True)

