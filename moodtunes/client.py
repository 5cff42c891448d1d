"""
Playlist provider client for the MoodTunes service.

This module turns a mood and language preference into a provider search
query and normalizes the provider's playlist and track records. The provider
is treated as best-effort: any transport error, error status or unexpected
payload yields an empty result instead of an exception.
"""

import logging
from typing import Any
from urllib.parse import quote

import httpx

from .credentials import CredentialRefresher
from .models import Playlist, Recommendation, Track

logger = logging.getLogger(__name__)

DEFAULT_API_BASE = "https://api.spotify.com/v1"
DEFAULT_SEARCH_LIMIT = 12
DEFAULT_TRACKS_LIMIT = 50

MOOD_QUERIES: dict[str, str] = {
    "happy": "happy upbeat",
    "sad": "sad emotional",
    "calm": "calm chill relax",
    "energetic": "energetic workout cardio",
    "surprised": "party dance",
    "neutral": "lofi chill beats",
}
FALLBACK_MOOD_QUERY = "mood booster"

LANGUAGE_QUERIES: dict[str, str] = {
    "any": "",
    "english": "english",
    "hindi": "hindi bollywood",
    "urdu": "urdu",
    "punjabi": "punjabi",
    "tamil": "tamil",
    "telugu": "telugu",
    "korean": "kpop korean",
    "japanese": "jpop japanese anime",
    "arabic": "arabic",
}


def build_query(mood: str, language: str | None) -> str:
    """Combine the mood and language fragments into one search query."""
    mood_part = MOOD_QUERIES.get(mood, FALLBACK_MOOD_QUERY)
    language_part = LANGUAGE_QUERIES.get(language or "", "")
    return f"{mood_part} {language_part}".strip()


def _first_image_url(record: dict[str, Any]) -> str | None:
    images = record.get("images") or []
    if images and isinstance(images[0], dict):
        return images[0].get("url") or None
    return None


def _external_url(record: dict[str, Any]) -> str | None:
    urls = record.get("external_urls") or {}
    return urls.get("spotify") or None


def parse_playlist(record: Any) -> Playlist | None:
    """Normalize one search result, or None if it has no id."""
    if not isinstance(record, dict) or not record.get("id"):
        return None
    owner = record.get("owner") or {}
    return Playlist(
        id=str(record["id"]),
        name=record.get("name") or "",
        description=record.get("description") or None,
        owner=owner.get("display_name") or "Unknown",
        image_url=_first_image_url(record),
        external_url=_external_url(record),
    )


def parse_track(item: Any) -> Track | None:
    """Normalize one playlist item, skipping local or unavailable tracks."""
    if not isinstance(item, dict):
        return None
    track = item.get("track")
    if not isinstance(track, dict) or not track.get("id"):
        return None
    artists = track.get("artists") or []
    return Track(
        id=str(track["id"]),
        name=track.get("name") or "",
        artists=", ".join(
            a["name"] for a in artists if isinstance(a, dict) and a.get("name")
        ),
        external_url=_external_url(track),
    )


class RecommendationClient:
    """
    Searches the provider for playlists matching a mood.

    Every call asks the credential refresher for a valid token first. If no
    token can be obtained the request is still sent, and the provider's
    rejection is handled like any other provider failure.
    """

    def __init__(
        self,
        http: httpx.AsyncClient,
        credentials: CredentialRefresher,
        api_base: str = DEFAULT_API_BASE,
        search_limit: int = DEFAULT_SEARCH_LIMIT,
        tracks_limit: int = DEFAULT_TRACKS_LIMIT,
    ) -> None:
        self._http = http
        self.credentials = credentials
        self.api_base = api_base.rstrip("/")
        self.search_limit = search_limit
        self.tracks_limit = tracks_limit

    async def recommend(self, mood: str, language: str | None) -> Recommendation:
        """
        Search playlists for a mood and language.

        Args:
            mood: Mood label; unknown moods use the fallback query
            language: Language preference; unknown languages add nothing

        Returns:
            The query used and the normalized playlists (possibly empty)
        """
        query = build_query(mood, language)
        body = await self._get(
            "/search", {"q": query, "type": "playlist", "limit": self.search_limit}
        )
        playlists: list[Playlist] = []
        try:
            items = body["playlists"]["items"] if body is not None else []
            for record in items or []:
                playlist = parse_playlist(record)
                if playlist is not None:
                    playlists.append(playlist)
        except (KeyError, TypeError, AttributeError, ValueError) as e:
            logger.warning("Malformed playlist search response for %r: %s", query, e)
            playlists = []

        return Recommendation(
            mood=mood, language=language or "", query=query, playlists=playlists
        )

    async def fetch_playlists(self, mood: str, language: str | None) -> list[Playlist]:
        recommendation = await self.recommend(mood, language)
        return recommendation.playlists

    async def fetch_tracks(self, playlist_id: str) -> list[Track]:
        """
        List the playable tracks of a playlist, capped at the page size.

        Args:
            playlist_id: Provider playlist identifier

        Returns:
            Normalized tracks (possibly empty)
        """
        body = await self._get(
            f"/playlists/{quote(playlist_id, safe='')}/tracks",
            {"limit": self.tracks_limit},
        )
        tracks: list[Track] = []
        try:
            items = body["items"] if body is not None else []
            for item in items or []:
                track = parse_track(item)
                if track is not None:
                    tracks.append(track)
        except (KeyError, TypeError, AttributeError, ValueError) as e:
            logger.warning("Malformed tracks response for %s: %s", playlist_id, e)
            return []

        return tracks[: self.tracks_limit]

    async def aclose(self) -> None:
        await self._http.aclose()

    # MARK: - Private Helpers

    async def _get(self, path: str, params: dict[str, Any]) -> Any:
        """GET a provider resource; returns the decoded body or None on failure."""
        token = await self.credentials.ensure_valid()
        headers = {"Authorization": f"Bearer {token}"} if token else {}

        try:
            response = await self._http.get(
                f"{self.api_base}{path}", params=params, headers=headers
            )
            response.raise_for_status()
            return response.json()
        except httpx.HTTPStatusError as e:
            logger.warning("Provider %s returned HTTP %s", path, e.response.status_code)
        except httpx.HTTPError as e:
            logger.warning("Provider %s unreachable: %s", path, type(e).__name__)
        except ValueError as e:
            logger.warning("Provider %s returned invalid JSON: %s", path, e)
        return None
