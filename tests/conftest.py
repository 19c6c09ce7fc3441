"""
Pytest configuration and fixtures.
"""
import random
from functools import lru_cache
from typing import Callable, Dict, List, Optional

import httpx
import pytest
from fastapi.testclient import TestClient

from feedcore.api import dependencies
from feedcore.core.blob_cache import InMemoryBlobCache
from feedcore.models.schemas import VideoItem
from feedcore.repositories.memory import InMemoryKeyPoolConfigStore
from feedcore.services.key_pool import KeyPoolClient, VoiceSettings

PROVIDER_URL = "https://tts.test"
CDN = "https://cdn.test"


# =============================================================================
# HTTP doubles
# =============================================================================


class RecordingTransport(httpx.MockTransport):
    """MockTransport that keeps every request it served."""

    def __init__(self, handler: Callable[[httpx.Request], httpx.Response]) -> None:
        self.requests: List[httpx.Request] = []

        def recording_handler(request: httpx.Request) -> httpx.Response:
            self.requests.append(request)
            return handler(request)

        super().__init__(recording_handler)

    def count(self, url: str) -> int:
        return sum(1 for r in self.requests if str(r.url) == url)


def cdn_handler(
    files: Dict[str, bytes],
    content_types: Optional[Dict[str, str]] = None,
    honor_range: bool = True,
) -> Callable[[httpx.Request], httpx.Response]:
    """Serve static files, optionally honoring single byte ranges."""
    content_types = content_types or {}

    def handler(request: httpx.Request) -> httpx.Response:
        url = str(request.url)
        if url not in files:
            return httpx.Response(404)
        body = files[url]
        ctype = content_types.get(url, "application/octet-stream")
        range_header = request.headers.get("range")
        if honor_range and range_header:
            start, end = range_header.replace("bytes=", "").split("-")
            part = body[int(start): int(end) + 1]
            return httpx.Response(
                206,
                content=part,
                headers={
                    "Content-Type": ctype,
                    "Content-Range": f"bytes {start}-{int(start) + len(part) - 1}/{len(body)}",
                },
            )
        return httpx.Response(200, content=body, headers={"Content-Type": ctype})

    return handler


# =============================================================================
# Audio doubles
# =============================================================================


class FakePlaybackHandle:
    def __init__(self, player: "FakeAudioPlayer") -> None:
        self._player = player
        self.stopped = False

    def stop(self) -> None:
        self.stopped = True
        self._player.playing = False


class FakeAudioPlayer:
    """Starts playback synchronously; tests finish it by calling finish()."""

    def __init__(self) -> None:
        self.played: List[bytes] = []
        self.handles: List[FakePlaybackHandle] = []
        self.playing = False
        self._on_finished = None

    def play(self, audio, on_started, on_finished):
        self.played.append(audio)
        handle = FakePlaybackHandle(self)
        self.handles.append(handle)
        self._on_finished = on_finished
        self.playing = True
        on_started()
        return handle

    def finish(self) -> None:
        self.playing = False
        if self._on_finished:
            self._on_finished()


# =============================================================================
# Domain fixtures
# =============================================================================


@pytest.fixture
def rng():
    """Deterministic random source."""
    return random.Random(1234)


@pytest.fixture
def corpus() -> List[VideoItem]:
    """Ten videos across three categories, two trending."""
    categories = ["horror", "comedy", "nature"]
    return [
        VideoItem(
            id=f"v{i}",
            title=f"Video {i}",
            category=categories[i % 3],
            is_trending=i in (4, 7),
            source_url=f"{CDN}/video/v{i}.mp4",
            poster_url=f"{CDN}/poster/v{i}.jpg",
        )
        for i in range(10)
    ]


@pytest.fixture
def media_cache():
    return InMemoryBlobCache("media-buffer-test")


@pytest.fixture
def image_cache():
    return InMemoryBlobCache("image-cache-test")


@pytest.fixture
def voice() -> VoiceSettings:
    return VoiceSettings(voice_id="voice-1", model_id="model-1")


@pytest.fixture
def key_store() -> InMemoryKeyPoolConfigStore:
    return InMemoryKeyPoolConfigStore()


@pytest.fixture
def make_key_pool(key_store, voice):
    """Build a KeyPoolClient around a request handler."""

    def factory(handler):
        transport = RecordingTransport(handler)
        client = httpx.AsyncClient(transport=transport)
        pool = KeyPoolClient(
            client=client,
            store=key_store,
            voice=voice,
            base_url=PROVIDER_URL,
        )
        return pool, transport

    return factory


@pytest.fixture
def audio_player() -> FakeAudioPlayer:
    return FakeAudioPlayer()


# =============================================================================
# Application fixtures
# =============================================================================


@pytest.fixture
def cdn_files() -> Dict[str, bytes]:
    """Files served by the fake CDN to the application's HTTP client."""
    return {}


@pytest.fixture
def app_transport(cdn_files):
    return RecordingTransport(cdn_handler(cdn_files, honor_range=True))


@pytest.fixture
def test_client(monkeypatch, app_transport):
    """
    TestClient fixture with a mocked outbound HTTP client.
    Singletons are rebuilt for every test.
    """
    from feedcore.main import app

    dependencies.clear_caches()
    mock_client = httpx.AsyncClient(transport=app_transport)
    monkeypatch.setattr(
        dependencies, "get_http_client", lru_cache()(lambda: mock_client)
    )

    with TestClient(app) as client:
        yield client

    dependencies.clear_caches()
