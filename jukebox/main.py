"""FastAPI app for the jukebox music server.

This is the main entry point. It wires the library, playlist store and play
queue into the API routers and runs the startup sequence: load the track
cache, rescan the library root, then start watching it for changes.
"""

import time
from contextlib import asynccontextmanager
from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from jukebox import __version__, config
from jukebox.logging import log_error, setup_logging
from jukebox.models.responses import HealthResponse, StatusResponse
from jukebox.routes import library_router, playlists_router, queue_router, stream_router
from jukebox.services.cache import TrackCache
from jukebox.services.library import MusicLibrary
from jukebox.services.playlists import PlaylistStore, PlaylistStoreError
from jukebox.services.queue import PlayQueue
from jukebox.services.watcher import LibraryWatcher, RescanScheduler
from pathlib import Path


def create_app(
    music_dir: str | Path | None = None,
    data_dir: str | Path | None = None,
    watch: bool | None = None,
    rescan_debounce: float | None = None,
) -> FastAPI:
    """Create the API app.

    Arguments default to the values in ``jukebox.config``.

    Args:
        music_dir: Library root to scan and stream from
        data_dir: Directory holding the track cache and playlists file
        watch: Whether to watch the library root for changes
        rescan_debounce: Seconds to wait after the last change before rescanning
    """
    music_dir = Path(music_dir) if music_dir is not None else config.MUSIC_DIR
    data_dir = Path(data_dir) if data_dir is not None else config.DATA_DIR
    watch = config.WATCH_LIBRARY if watch is None else watch
    rescan_debounce = config.RESCAN_DEBOUNCE if rescan_debounce is None else rescan_debounce

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        """Application lifespan handler."""
        app.state.start_time = time.time()
        library: MusicLibrary = app.state.library

        await library.load_cache()
        try:
            await library.rescan()
        except OSError as e:
            # Keep serving the cached snapshot; the next rescan may succeed
            log_error(e, root=str(music_dir), phase="startup")

        scheduler = RescanScheduler(library, delay=rescan_debounce)
        watcher = LibraryWatcher(music_dir, scheduler)
        app.state.scheduler = scheduler
        if watch:
            watcher.start()

        print(f"jukebox v{__version__} started")
        print(f"Music directory: {music_dir}")

        yield

        watcher.stop()
        await scheduler.close()
        library.close()
        print("jukebox shutting down")

    app = FastAPI(
        title="jukebox",
        description="Local music library server with byte-range streaming",
        version=__version__,
        lifespan=lifespan,
    )

    app.state.music_dir = music_dir
    app.state.library = MusicLibrary(music_dir, TrackCache(data_dir / config.CACHE_FILENAME))
    app.state.playlists = PlaylistStore(data_dir / config.PLAYLISTS_FILENAME)
    app.state.queue = PlayQueue()

    # Browser player may be served from another origin
    app.add_middleware(
        CORSMiddleware,
        allow_origins=["*"],
        allow_methods=["*"],
        allow_headers=["*"],
        expose_headers=["Content-Range", "Content-Length", "Accept-Ranges"],
    )

    app.include_router(library_router, prefix="/api")
    app.include_router(stream_router, prefix="/api")
    app.include_router(queue_router, prefix="/api")
    app.include_router(playlists_router, prefix="/api")

    @app.exception_handler(PlaylistStoreError)
    async def playlist_store_error_handler(request: Request, exc: PlaylistStoreError):
        return JSONResponse(status_code=500, content={"detail": str(exc)})

    @app.get("/api/health", response_model=HealthResponse)
    async def health_check(request: Request):
        """Health check endpoint."""
        return HealthResponse(tracks_count=len(request.app.state.library.index))

    @app.get("/api/status", response_model=StatusResponse)
    async def status(request: Request):
        """Library and queue summary."""
        return StatusResponse(
            music_dir=str(request.app.state.music_dir),
            track_count=len(request.app.state.library.index),
            queue_size=len(request.app.state.queue),
        )

    return app


def run():
    """Entry point for running the server."""
    import uvicorn

    setup_logging(config.LOG_LEVEL, config.LOG_FILE)
    uvicorn.run(
        create_app(),
        host=config.API_HOST,
        port=config.API_PORT,
        reload=False,
        log_level="info",
    )


if __name__ == "__main__":
    run()
