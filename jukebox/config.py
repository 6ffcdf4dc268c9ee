import os
from decouple import config
from pathlib import Path


def _resolve_dir(value: str) -> Path:
    """Resolve a configured directory, treating relative paths as relative to the working directory."""
    path = Path(value.strip()).expanduser()
    if not path.is_absolute():
        path = Path(os.getcwd()) / path
    return path.resolve()


# Library Configuration
MUSIC_DIR = _resolve_dir(config('MUSIC_DIR', default='music') or 'music')

# Data Configuration (track cache + playlists)
DATA_DIR = _resolve_dir(config('JUKEBOX_DATA_DIR', default='data') or 'data')
CACHE_FILENAME = 'tracks-cache.json'
PLAYLISTS_FILENAME = 'playlists.json'

# Server Configuration
API_HOST = config('JUKEBOX_API_HOST', default='0.0.0.0')
API_PORT = config('JUKEBOX_API_PORT', default=3000, cast=int)

# Watcher Configuration
WATCH_LIBRARY = config('JUKEBOX_WATCH', default=True, cast=bool)
RESCAN_DEBOUNCE = config('JUKEBOX_RESCAN_DEBOUNCE', default=0.5, cast=float)

# Scanner Configuration
SCAN_WORKERS = config('JUKEBOX_SCAN_WORKERS', default=4, cast=int)

# Logging Configuration
LOG_LEVEL = config('LOG_LEVEL', default='INFO')
LOG_FILE = config('LOG_FILE', default=None)

# Audio Configuration
AUDIO_EXTENSIONS = {
    '.flac',
    '.m4a',
    '.mp3',
    '.ogg',
    '.wav',
}

AUDIO_MIME_TYPES = {
    '.flac': 'audio/flac',
    '.m4a': 'audio/mp4',
    '.mp3': 'audio/mpeg',
    '.ogg': 'audio/ogg',
    '.wav': 'audio/wav',
}
DEFAULT_MIME_TYPE = 'audio/mpeg'

# WAV headers always sit near the start of the file
WAV_HEADER_BYTES = 64 * 1024

# Streaming Configuration
STREAM_CHUNK_SIZE = 64 * 1024
