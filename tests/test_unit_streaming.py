"""Unit tests for Range parsing and file streaming."""

import asyncio
import pytest
from jukebox.services import streaming
from jukebox.services.library import TrackFileMissingError, track_id
from jukebox.services.streaming import (
    ByteRange,
    RangeNotSatisfiableError,
    guess_mime_type,
    iter_file_range,
    parse_range_header,
    stream_file,
)
from starlette.requests import ClientDisconnect
from tests.helpers.audio_files import write_junk


class TestParseRangeHeader:
    """``Range: bytes=<start>-[<end>]`` against a 1000-byte file."""

    @pytest.mark.parametrize(
        "header,expected",
        [
            ("bytes=0-99", ByteRange(0, 99)),
            ("bytes=0-0", ByteRange(0, 0)),
            ("bytes=500-", ByteRange(500, 999)),
            ("bytes=999-", ByteRange(999, 999)),
            ("bytes=900-5000", ByteRange(900, 999)),
            ("bytes=0-999", ByteRange(0, 999)),
            ("BYTES=10-19", ByteRange(10, 19)),
            ("  bytes= 10 - 19 ", ByteRange(10, 19)),
        ],
    )
    def test_satisfiable(self, header, expected):
        assert parse_range_header(header, 1000) == expected

    def test_only_first_of_multiple_ranges(self):
        assert parse_range_header("bytes=0-9,20-29", 1000) == ByteRange(0, 9)

    @pytest.mark.parametrize(
        "header",
        [
            "bytes=500-100",
            "bytes=1000-",
            "bytes=1000-1999",
            "bytes=-100",
            "bytes=-",
            "bytes=abc-def",
            "items=0-99",
            "0-99",
            "",
        ],
    )
    def test_unsatisfiable(self, header):
        with pytest.raises(RangeNotSatisfiableError) as excinfo:
            parse_range_header(header, 1000)
        assert excinfo.value.file_size == 1000

    def test_empty_file_has_no_satisfiable_range(self):
        with pytest.raises(RangeNotSatisfiableError):
            parse_range_header("bytes=0-", 0)

    def test_length(self):
        assert ByteRange(0, 99).length == 100
        assert ByteRange(5, 5).length == 1


class TestGuessMimeType:
    @pytest.mark.parametrize(
        "name,expected",
        [
            ("a.mp3", "audio/mpeg"),
            ("a.MP3", "audio/mpeg"),
            ("a.wav", "audio/wav"),
            ("a.flac", "audio/flac"),
            ("a.ogg", "audio/ogg"),
            ("a.m4a", "audio/mp4"),
            ("noextension", "audio/mpeg"),
        ],
    )
    def test_audio_types(self, name, expected):
        assert guess_mime_type(name) == expected


class TestIterFileRange:
    """Chunked reads of a byte span."""

    @pytest.mark.asyncio
    async def test_reads_exact_span(self, tmp_path):
        path = write_junk(tmp_path / "a.mp3", size=1000)
        content = path.read_bytes()

        chunks = [c async for c in iter_file_range(path, 100, 250, chunk_size=64)]

        assert b"".join(chunks) == content[100:350]
        assert max(len(c) for c in chunks) <= 64

    @pytest.mark.asyncio
    async def test_stops_at_end_of_file(self, tmp_path):
        path = write_junk(tmp_path / "a.mp3", size=100)
        data = b"".join([c async for c in iter_file_range(path, 90, 50)])
        assert len(data) == 10

    @pytest.mark.asyncio
    async def test_zero_length(self, tmp_path):
        path = write_junk(tmp_path / "a.mp3", size=100)
        assert [c async for c in iter_file_range(path, 0, 0)] == []

    @pytest.mark.asyncio
    async def test_early_close(self, tmp_path):
        path = write_junk(tmp_path / "a.mp3", size=1000)
        chunks = iter_file_range(path, 0, 1000, chunk_size=10)
        assert len(await chunks.__anext__()) == 10
        await chunks.aclose()


class TestStreamFile:
    """Response construction without a running server."""

    @pytest.mark.asyncio
    async def test_missing_file(self, tmp_path):
        with pytest.raises(TrackFileMissingError):
            await stream_file(tmp_path / "gone.mp3", None)

    @pytest.mark.asyncio
    async def test_full_response_headers(self, tmp_path):
        path = write_junk(tmp_path / "a.ogg", size=1000)
        response = await stream_file(path, None)
        assert response.status_code == 200
        assert response.headers["content-length"] == "1000"
        assert response.headers["accept-ranges"] == "bytes"
        assert response.media_type == "audio/ogg"
        await response.body_iterator.aclose()

    @pytest.mark.asyncio
    async def test_unsatisfiable_response(self, tmp_path):
        path = write_junk(tmp_path / "a.mp3", size=1000)
        response = await stream_file(path, "bytes=2000-")
        assert response.status_code == 416
        assert response.headers["content-range"] == "bytes */1000"


class TestClientDisconnect:
    """The file handle is released when the client goes away mid-stream."""

    @pytest.fixture
    def opened(self, monkeypatch):
        handles = []
        real_open = open

        def tracking_open(*args, **kwargs):
            f = real_open(*args, **kwargs)
            handles.append(f)
            return f

        monkeypatch.setattr(streaming, "open", tracking_open, raising=False)
        return handles

    async def _serve(self, response):
        body_messages = 0
        never = asyncio.Event()

        async def receive():
            await never.wait()

        async def send(message):
            nonlocal body_messages
            if message["type"] == "http.response.body":
                body_messages += 1
                if body_messages == 2:
                    raise OSError("connection reset by peer")

        scope = {"type": "http", "asgi": {"version": "3.0", "spec_version": "2.4"}}
        with pytest.raises((OSError, ClientDisconnect)):
            await response(scope, receive, send)
        return body_messages

    @pytest.mark.asyncio
    async def test_send_failure_closes_file(self, tmp_path, opened):
        path = write_junk(tmp_path / "long.flac", size=4 * streaming.STREAM_CHUNK_SIZE)

        response = await stream_file(path, None)
        sent = await self._serve(response)

        assert sent == 2
        assert len(opened) == 1
        assert opened[0].closed

    @pytest.mark.asyncio
    async def test_send_failure_during_range_closes_file(self, tmp_path, opened):
        path = write_junk(tmp_path / "long.flac", size=4 * streaming.STREAM_CHUNK_SIZE)

        response = await stream_file(path, "bytes=100-")
        await self._serve(response)

        assert response.status_code == 206
        assert [f.closed for f in opened] == [True]


class TestStreamRoute:
    """``GET /api/stream/{id}`` through the application."""

    @pytest.fixture
    def song(self, music_dir):
        return write_junk(music_dir / "Album" / "song.mp3", size=1000)

    def test_whole_file(self, song, app_client):
        response = app_client.get(f"/api/stream/{track_id('Album/song.mp3')}")

        assert response.status_code == 200
        assert response.headers["content-length"] == "1000"
        assert response.headers["content-type"] == "audio/mpeg"
        assert response.content == song.read_bytes()

    def test_partial_content(self, song, app_client):
        response = app_client.get(
            f"/api/stream/{track_id('Album/song.mp3')}",
            headers={"Range": "bytes=0-99"},
        )

        assert response.status_code == 206
        assert response.headers["content-range"] == "bytes 0-99/1000"
        assert response.headers["content-length"] == "100"
        assert response.headers["accept-ranges"] == "bytes"
        assert response.content == song.read_bytes()[:100]

    def test_open_ended_range(self, song, app_client):
        response = app_client.get(
            f"/api/stream/{track_id('Album/song.mp3')}",
            headers={"Range": "bytes=990-"},
        )

        assert response.status_code == 206
        assert response.headers["content-range"] == "bytes 990-999/1000"
        assert response.content == song.read_bytes()[990:]

    def test_inverted_range(self, song, app_client):
        response = app_client.get(
            f"/api/stream/{track_id('Album/song.mp3')}",
            headers={"Range": "bytes=500-100"},
        )

        assert response.status_code == 416
        assert response.headers["content-range"] == "bytes */1000"

    def test_unknown_id(self, app_client):
        assert app_client.get("/api/stream/" + "0" * 40).status_code == 404

    def test_file_removed_after_indexing(self, song, app_client):
        song.unlink()
        response = app_client.get(f"/api/stream/{track_id('Album/song.mp3')}")
        assert response.status_code == 404

    def test_cors_exposes_range_headers(self, song, app_client):
        response = app_client.get(
            f"/api/stream/{track_id('Album/song.mp3')}",
            headers={"Range": "bytes=0-9", "Origin": "http://localhost:5173"},
        )
        exposed = response.headers["access-control-expose-headers"].lower()
        assert "content-range" in exposed
        assert "accept-ranges" in exposed
