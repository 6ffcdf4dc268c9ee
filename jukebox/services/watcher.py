"""Filesystem watcher that keeps the library index current.

watchdog reports changes under the library root on its own thread; the
handler forwards them to a RescanScheduler on the event loop, which
debounces bursts of events and keeps at most one rescan task in flight.
"""

import asyncio
from eliot import log_message
from jukebox.config import RESCAN_DEBOUNCE
from jukebox.logging import log_error
from jukebox.services.library import MusicLibrary
from jukebox.services.scanner import is_audio_file
from pathlib import Path
from watchdog.events import (
    EVENT_TYPE_CREATED,
    EVENT_TYPE_DELETED,
    EVENT_TYPE_MODIFIED,
    EVENT_TYPE_MOVED,
    FileSystemEvent,
    FileSystemEventHandler,
)
from watchdog.observers import Observer


class RescanScheduler:
    """Debounced, coalescing trigger for library rescans.

    Each ``trigger()`` restarts the debounce timer. When the timer fires a
    rescan task starts, unless one is already running, in which case the
    pending flag is set and exactly one follow-up rescan runs after it.
    """

    def __init__(
        self,
        library: MusicLibrary,
        delay: float = RESCAN_DEBOUNCE,
        loop: asyncio.AbstractEventLoop | None = None,
    ):
        self.library = library
        self.delay = delay
        self.loop = loop or asyncio.get_running_loop()
        self._timer: asyncio.TimerHandle | None = None
        self._task: asyncio.Task | None = None
        self._pending = False
        self._closed = False

    @property
    def idle(self) -> bool:
        """True when no timer is armed and no rescan is running."""
        return self._timer is None and (self._task is None or self._task.done())

    def trigger(self) -> None:
        """Request a rescan. Must be called on the event loop thread."""
        if self._closed:
            return
        if self._timer is not None:
            self._timer.cancel()
        self._timer = self.loop.call_later(self.delay, self._fire)

    def trigger_threadsafe(self) -> None:
        """Request a rescan from a non-loop thread (watchdog observers)."""
        if self.loop.is_closed():
            return
        self.loop.call_soon_threadsafe(self.trigger)

    def _fire(self) -> None:
        self._timer = None
        if self._task is not None and not self._task.done():
            self._pending = True
            return
        self._task = self.loop.create_task(self._run())

    async def _run(self) -> None:
        while True:
            self._pending = False
            try:
                await self.library.rescan()
            except Exception as e:
                log_error(e, trigger_source="watcher", root=str(self.library.root))
            if not self._pending or self._closed:
                break

    async def wait_idle(self) -> None:
        """Wait until the timer has fired and the resulting rescans finished."""
        while not self.idle:
            if self._task is not None and not self._task.done():
                await self._task
            else:
                await asyncio.sleep(self.delay / 4 or 0.01)

    async def close(self) -> None:
        """Cancel the pending timer and wait for a running rescan to finish."""
        self._closed = True
        if self._timer is not None:
            self._timer.cancel()
            self._timer = None
        if self._task is not None and not self._task.done():
            await self._task


class LibraryEventHandler(FileSystemEventHandler):
    """Turns watchdog events into rescan triggers.

    File events only count for supported audio files; directory creation,
    removal and moves always count.
    """

    RELEVANT_EVENTS = {EVENT_TYPE_CREATED, EVENT_TYPE_DELETED, EVENT_TYPE_MODIFIED, EVENT_TYPE_MOVED}

    def __init__(self, scheduler: RescanScheduler):
        self.scheduler = scheduler

    def is_relevant(self, event: FileSystemEvent) -> bool:
        if event.event_type not in self.RELEVANT_EVENTS:
            return False
        if event.is_directory:
            return event.event_type != EVENT_TYPE_MODIFIED
        paths = [event.src_path, getattr(event, "dest_path", "")]
        return any(path and is_audio_file(Path(_as_str(path))) for path in paths)

    def on_any_event(self, event: FileSystemEvent) -> None:
        if self.is_relevant(event):
            self.scheduler.trigger_threadsafe()


def _as_str(path: str | bytes) -> str:
    return path.decode() if isinstance(path, bytes) else path


class LibraryWatcher:
    """Runs a watchdog observer over the library root."""

    def __init__(self, root: str | Path, scheduler: RescanScheduler):
        self.root = Path(root)
        self.scheduler = scheduler
        self.observer: Observer | None = None

    def start(self) -> bool:
        """Start watching. Returns False if the root does not exist."""
        if not self.root.is_dir():
            log_message(message_type="watcher_skipped", root=str(self.root), message=f"Not watching missing {self.root}")
            return False

        self.observer = Observer()
        self.observer.schedule(LibraryEventHandler(self.scheduler), str(self.root), recursive=True)
        self.observer.daemon = True
        self.observer.start()
        log_message(message_type="watcher_started", root=str(self.root), message=f"Watching {self.root}")
        return True

    def stop(self) -> None:
        """Stop the observer thread."""
        if self.observer is None:
            return
        self.observer.stop()
        self.observer.join(timeout=5)
        self.observer = None
