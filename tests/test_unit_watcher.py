"""Unit tests for the rescan scheduler and filesystem watcher."""

import asyncio
import pytest
from jukebox.services.watcher import LibraryEventHandler, LibraryWatcher, RescanScheduler
from pathlib import Path
from unittest.mock import Mock
from watchdog.events import (
    DirCreatedEvent,
    DirDeletedEvent,
    DirModifiedEvent,
    FileClosedEvent,
    FileCreatedEvent,
    FileDeletedEvent,
    FileModifiedEvent,
    FileMovedEvent,
)


class FakeLibrary:
    """Counts rescans; each one blocks until ``release`` is set."""

    def __init__(self, fail: bool = False):
        self.root = Path("/music")
        self.calls = 0
        self.fail = fail
        self.release = asyncio.Event()
        self.release.set()

    async def rescan(self):
        self.calls += 1
        await self.release.wait()
        if self.fail:
            raise PermissionError("denied")
        return []


class TestRescanScheduler:
    """Debouncing and coalescing of rescan triggers."""

    @pytest.mark.asyncio
    async def test_burst_of_triggers_runs_one_rescan(self):
        library = FakeLibrary()
        scheduler = RescanScheduler(library, delay=0.05)

        for _ in range(10):
            scheduler.trigger()
            await asyncio.sleep(0.005)
        await scheduler.wait_idle()

        assert library.calls == 1
        assert scheduler.idle

    @pytest.mark.asyncio
    async def test_no_rescan_before_delay(self):
        library = FakeLibrary()
        scheduler = RescanScheduler(library, delay=0.2)

        scheduler.trigger()
        await asyncio.sleep(0.05)

        assert library.calls == 0
        assert not scheduler.idle
        await scheduler.close()

    @pytest.mark.asyncio
    async def test_triggers_during_rescan_queue_one_follow_up(self):
        library = FakeLibrary()
        library.release.clear()
        scheduler = RescanScheduler(library, delay=0.01)

        scheduler.trigger()
        await asyncio.sleep(0.05)
        assert library.calls == 1

        # Several debounced bursts while the first rescan is still running
        for _ in range(3):
            scheduler.trigger()
            await asyncio.sleep(0.03)

        library.release.set()
        await scheduler.wait_idle()

        assert library.calls == 2

    @pytest.mark.asyncio
    async def test_failed_rescan_is_logged_not_raised(self):
        library = FakeLibrary(fail=True)
        scheduler = RescanScheduler(library, delay=0.01)

        scheduler.trigger()
        await scheduler.wait_idle()

        assert library.calls == 1
        assert scheduler.idle

    @pytest.mark.asyncio
    async def test_close_cancels_pending_timer(self):
        library = FakeLibrary()
        scheduler = RescanScheduler(library, delay=0.05)

        scheduler.trigger()
        await scheduler.close()
        await asyncio.sleep(0.1)

        assert library.calls == 0
        scheduler.trigger()
        await asyncio.sleep(0.1)
        assert library.calls == 0

    @pytest.mark.asyncio
    async def test_trigger_threadsafe_from_worker_thread(self):
        library = FakeLibrary()
        scheduler = RescanScheduler(library, delay=0.01)
        loop = asyncio.get_running_loop()

        await loop.run_in_executor(None, scheduler.trigger_threadsafe)
        await asyncio.sleep(0.05)
        await scheduler.wait_idle()

        assert library.calls == 1


class TestLibraryEventHandler:
    """Which watchdog events count as library changes."""

    @pytest.fixture
    def scheduler(self):
        return Mock()

    @pytest.fixture
    def handler(self, scheduler):
        return LibraryEventHandler(scheduler)

    @pytest.mark.parametrize(
        "event",
        [
            FileCreatedEvent("/music/a.mp3"),
            FileDeletedEvent("/music/Album/b.FLAC"),
            FileModifiedEvent("/music/c.wav"),
            FileMovedEvent("/music/d.mp3", "/music/e.mp3"),
            FileMovedEvent("/music/d.part", "/music/d.ogg"),
            FileMovedEvent("/music/d.m4a", "/music/d.bak"),
            FileCreatedEvent(b"/music/bytes.mp3"),
            DirCreatedEvent("/music/New Album"),
            DirDeletedEvent("/music/Old Album"),
        ],
    )
    def test_relevant(self, handler, scheduler, event):
        handler.dispatch(event)
        scheduler.trigger_threadsafe.assert_called_once()

    @pytest.mark.parametrize(
        "event",
        [
            FileCreatedEvent("/music/cover.jpg"),
            FileModifiedEvent("/music/notes.txt"),
            FileMovedEvent("/music/a.tmp", "/music/b.tmp"),
            DirModifiedEvent("/music/Album"),
            FileClosedEvent("/music/a.mp3"),
        ],
    )
    def test_irrelevant(self, handler, scheduler, event):
        handler.dispatch(event)
        scheduler.trigger_threadsafe.assert_not_called()


class TestLibraryWatcher:
    """Observer lifecycle."""

    def test_missing_root_is_not_watched(self, tmp_path):
        watcher = LibraryWatcher(tmp_path / "nope", Mock())
        assert watcher.start() is False
        assert watcher.observer is None
        watcher.stop()

    @pytest.mark.slow
    @pytest.mark.asyncio
    async def test_new_file_triggers_rescan(self, music_dir):
        library = FakeLibrary()
        scheduler = RescanScheduler(library, delay=0.05)
        watcher = LibraryWatcher(music_dir, scheduler)

        assert watcher.start() is True
        try:
            (music_dir / "new.mp3").write_bytes(b"\x00" * 100)
            for _ in range(100):
                if library.calls:
                    break
                await asyncio.sleep(0.05)
        finally:
            watcher.stop()
            await scheduler.close()

        assert library.calls >= 1
        assert watcher.observer is None
