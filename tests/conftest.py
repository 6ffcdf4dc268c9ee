import pytest
import sys
from pathlib import Path

# Add project root to path
project_root = Path(__file__).parent.parent
sys.path.insert(0, str(project_root))

# Hypothesis configuration for property-based testing
from hypothesis import settings

# Register Hypothesis profiles
settings.register_profile("fast", max_examples=50, deadline=None)
settings.register_profile("thorough", max_examples=1000, deadline=None)
settings.load_profile("fast")  # Default to fast profile


def pytest_collection_modifyitems(items):
    """Automatically order tests: unit tests first, then property tests, then E2E tests.

    Individual tests marked with @pytest.mark.order("last") will run at the very end.
    """
    for item in items:
        # Skip if item already has explicit order marker
        if hasattr(item, 'get_closest_marker') and item.get_closest_marker('order'):
            continue

        # Assign order based on test file name
        test_file = str(item.fspath)
        if 'test_unit_' in test_file:
            item.add_marker(pytest.mark.order(1))
        elif 'test_props_' in test_file:
            item.add_marker(pytest.mark.order(2))
        elif 'test_e2e_' in test_file:
            item.add_marker(pytest.mark.order(3))


@pytest.fixture
def music_dir(tmp_path):
    """Empty library root."""
    root = tmp_path / "music"
    root.mkdir()
    return root


@pytest.fixture
def data_dir(tmp_path):
    """Directory for the track cache and playlists file (not created up front)."""
    return tmp_path / "data"


@pytest.fixture
def cache_file(data_dir):
    return data_dir / "tracks-cache.json"


@pytest.fixture
def library(music_dir, cache_file):
    """MusicLibrary over an empty temporary root."""
    from jukebox.services.cache import TrackCache
    from jukebox.services.library import MusicLibrary

    lib = MusicLibrary(music_dir, TrackCache(cache_file), max_workers=2)
    yield lib
    lib.close()


@pytest.fixture
def app_client(music_dir, data_dir):
    """TestClient for an app over the temporary library, with the watcher disabled.

    Files must be written to ``music_dir`` before the fixture is requested
    (or followed by ``POST /api/rescan``) to be indexed.
    """
    from fastapi.testclient import TestClient
    from jukebox.main import create_app

    app = create_app(music_dir=music_dir, data_dir=data_dir, watch=False)
    with TestClient(app) as client:
        yield client
