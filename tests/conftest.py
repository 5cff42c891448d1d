import asyncio

import httpx
import pytest

from moodtunes.classifier import CHIN, FOREHEAD, LOWER_LIP, MIN_LANDMARKS, UPPER_LIP
from moodtunes.client import RecommendationClient
from moodtunes.credentials import CredentialRefresher
from moodtunes.models import LandmarkPoint

TOKEN_URL = "https://accounts.test/api/token"
API_BASE = "https://api.test/v1"


class FakeProvider:
    """Scriptable stand-in for the playlist provider's HTTP API."""

    def __init__(self):
        self.playlists: list = []
        self.tracks: dict[str, list] = {}
        self.expires_in = 3600
        self.token_status = 200
        self.token_body: dict | None = None
        self.token_delay = 0.0
        self.search_status = 200
        self.search_body = None
        self.search_raw: bytes | None = None
        self.search_delay = 0.0
        self.search_delays: dict[str, float] = {}
        self.tracks_status = 200
        self.grant_calls = 0
        self.requests: list[httpx.Request] = []

    @property
    def api_requests(self) -> list[httpx.Request]:
        return [r for r in self.requests if r.url.path.startswith("/v1/")]

    async def handler(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        path = request.url.path

        if path == "/api/token":
            self.grant_calls += 1
            if self.token_delay:
                await asyncio.sleep(self.token_delay)
            if self.token_status != 200:
                return httpx.Response(self.token_status, json={"error": "invalid_client"})
            body = self.token_body or {
                "access_token": f"token-{self.grant_calls}",
                "token_type": "Bearer",
                "expires_in": self.expires_in,
            }
            return httpx.Response(200, json=body)

        if not request.headers.get("Authorization", "").startswith("Bearer "):
            return httpx.Response(401, json={"error": {"status": 401}})

        if path == "/v1/search":
            delay = self.search_delays.get(request.url.params.get("q"), self.search_delay)
            if delay:
                await asyncio.sleep(delay)
            if self.search_status != 200:
                return httpx.Response(self.search_status, json={"error": {}})
            if self.search_raw is not None:
                return httpx.Response(200, content=self.search_raw)
            body = self.search_body
            if body is None:
                body = {"playlists": {"items": self.playlists}}
            return httpx.Response(200, json=body)

        if path.startswith("/v1/playlists/") and path.endswith("/tracks"):
            if self.tracks_status != 200:
                return httpx.Response(self.tracks_status, json={"error": {}})
            playlist_id = path.split("/")[3]
            return httpx.Response(200, json={"items": self.tracks.get(playlist_id, [])})

        return httpx.Response(404)


class FakeClock:
    """Millisecond clock that only moves when told to."""

    def __init__(self, start: float = 1_700_000_000_000.0):
        self.now = start

    def __call__(self) -> float:
        return self.now

    def advance(self, ms: float) -> None:
        self.now += ms


def playlist_record(playlist_id, name="Playlist", owner="Curator", image=None):
    record = {
        "id": playlist_id,
        "name": name,
        "description": f"{name} description",
        "owner": {"display_name": owner} if owner else {},
        "images": [{"url": image}] if image else [],
        "external_urls": {"spotify": f"https://open.spotify.com/playlist/{playlist_id}"},
    }
    return record


def track_item(track_id, name="Song", artists=("Artist",)):
    return {
        "track": {
            "id": track_id,
            "name": name,
            "artists": [{"name": a} for a in artists],
            "external_urls": {"spotify": f"https://open.spotify.com/track/{track_id}"},
        }
    }


@pytest.fixture
def provider():
    return FakeProvider()


@pytest.fixture
def clock():
    return FakeClock()


@pytest.fixture
def http(provider):
    return httpx.AsyncClient(transport=httpx.MockTransport(provider.handler))


@pytest.fixture
def credentials(http, clock):
    return CredentialRefresher(
        http, "client-id", "client-secret", token_url=TOKEN_URL, clock=clock
    )


@pytest.fixture
def recommendation_client(http, credentials):
    return RecommendationClient(http, credentials, api_base=API_BASE)


@pytest.fixture
def make_frame():
    """Build a full landmark frame with a given mouth gap and face height."""

    def _make(mouth_open: float, face_height: float = 100.0, count: int = MIN_LANDMARKS):
        points = [LandmarkPoint(x=0.5, y=0.5) for _ in range(count)]
        top = 0.0
        lip = face_height / 2
        overrides = {
            FOREHEAD: top,
            CHIN: top + face_height,
            UPPER_LIP: lip,
            LOWER_LIP: lip + mouth_open,
        }
        for index, y in overrides.items():
            if index < count:
                points[index] = LandmarkPoint(x=0.5, y=y)
        return points

    return _make
