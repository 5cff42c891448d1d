"""
FastAPI server for the MoodTunes service.

This module implements the HTTP API for playlist recommendations and playlist
tracks, the landmark-frame intake that drives the mood pipeline, and the
Server-Sent Events stream of stabilized moods.
"""

import asyncio
import json
import logging
import time
from collections.abc import AsyncGenerator
from contextlib import asynccontextmanager

import httpx
from fastapi import FastAPI, HTTPException, status
from fastapi.responses import StreamingResponse
from pydantic import BaseModel, Field

from .client import RecommendationClient
from .config import Settings
from .credentials import CredentialRefresher
from .feed import MoodFeed
from .gate import RecommendationGate
from .models import Language, LandmarkPoint, MoodSnapshot, Playlist, Track
from .pipeline import FrameResult, MoodPipeline, PipelineStopped
from .smoother import MoodSmoother

logger = logging.getLogger(__name__)


# API Request/Response Schemas
class RecommendationQuery(BaseModel):
    """Payload for recommendation requests."""

    mood: str | None = Field(None, description="Mood to find playlists for")
    language: str | None = Field(Language.ANY.value, description="Language preference")


class RecommendationResponse(BaseModel):
    mood: str
    language: str
    query: str = Field(..., description="Search query sent to the provider")
    playlists: list[Playlist]


class TracksResponse(BaseModel):
    tracks: list[Track]


class FrameSubmission(BaseModel):
    """Payload for one landmark detection cycle."""

    landmarks: list[LandmarkPoint] | None = Field(
        None, description="Face landmarks, or null when no face was found"
    )
    timestamp_ms: float | None = Field(
        None, description="Frame timestamp in milliseconds (defaults to now)"
    )
    language: str | None = Field(None, description="Update the language preference")


class FrameResponse(BaseModel):
    mood: str | None = Field(..., description="Mood of this frame, null if no face")
    stable_mood: str = Field(..., description="Majority-vote mood over recent frames")
    fetch_scheduled: bool


class PipelineStatus(BaseModel):
    running: bool


class MoodResponse(BaseModel):
    """Response model for mood endpoints."""

    mood: MoodSnapshot = Field(..., description="The latest mood snapshot")


def create_app(
    client: RecommendationClient,
    pipeline: MoodPipeline | None = None,
) -> FastAPI:
    """
    Create a FastAPI application around a recommendation client.

    Args:
        client: The provider client (and its credential refresher) to use
        pipeline: The mood pipeline fed by /api/frames; one is created if omitted

    Returns:
        Configured FastAPI application
    """
    if pipeline is None:
        pipeline = MoodPipeline(client)

    @asynccontextmanager
    async def lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
        """Keep the provider credential warm while the app is running."""
        client.credentials.start()
        yield
        await pipeline.stop()
        await client.credentials.stop()
        await client.aclose()

    app = FastAPI(
        title="MoodTunes",
        description="Mood-driven playlist recommendations from facial landmarks",
        version="0.1.0",
        lifespan=lifespan,
    )

    @app.get("/")
    async def root() -> dict[str, str]:
        """Health check endpoint."""
        return {"status": "ok", "service": "moodtunes"}

    @app.post("/api/recommendations")
    async def recommendations(
        payload: RecommendationQuery | None = None,
    ) -> RecommendationResponse:
        """
        Search playlists matching a mood and language.

        A missing body counts as a missing mood. Provider failures produce an
        empty playlist list, not an error.
        """
        if payload is None or not payload.mood:
            raise HTTPException(
                status_code=status.HTTP_400_BAD_REQUEST, detail="Mood is required"
            )
        language = payload.language or Language.ANY.value

        try:
            result = await client.recommend(payload.mood, language)
        except Exception:
            logger.exception(
                "POST /api/recommendations failed (mood=%r, language=%r)",
                payload.mood,
                language,
            )
            raise HTTPException(
                status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
                detail="Failed to fetch playlists",
            )

        return RecommendationResponse(
            mood=payload.mood,
            language=language,
            query=result.query,
            playlists=result.playlists,
        )

    @app.get("/api/playlists/{playlist_id}/tracks")
    async def playlist_tracks(playlist_id: str) -> TracksResponse:
        """List the playable tracks of a playlist."""
        if not playlist_id.strip():
            raise HTTPException(
                status_code=status.HTTP_400_BAD_REQUEST, detail="Playlist ID required"
            )

        try:
            tracks = await client.fetch_tracks(playlist_id)
        except Exception:
            logger.exception("GET /api/playlists/%s/tracks failed", playlist_id)
            raise HTTPException(
                status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
                detail="Failed to fetch tracks",
            )

        return TracksResponse(tracks=tracks)

    @app.post("/api/frames")
    async def submit_frame(frame: FrameSubmission) -> FrameResponse:
        """
        Feed one landmark frame into the mood pipeline.

        The response returns as soon as the frame is classified; any playlist
        search it triggers runs in the background and lands on the mood stream.
        """
        if frame.language is not None:
            pipeline.language = frame.language

        now_ms = frame.timestamp_ms if frame.timestamp_ms is not None else time.time() * 1000
        try:
            result: FrameResult | None = await pipeline.submit(frame.landmarks, now_ms)
        except PipelineStopped:
            raise HTTPException(
                status_code=status.HTTP_409_CONFLICT, detail="Pipeline is stopped"
            )

        if result is None:
            return FrameResponse(
                mood=None,
                stable_mood=pipeline.stable_mood.value,
                fetch_scheduled=False,
            )
        return FrameResponse(
            mood=result.mood.value,
            stable_mood=result.stable_mood.value,
            fetch_scheduled=result.fetch_scheduled,
        )

    @app.post("/api/pipeline/start")
    async def pipeline_start() -> PipelineStatus:
        pipeline.start()
        return PipelineStatus(running=pipeline.running)

    @app.post("/api/pipeline/stop")
    async def pipeline_stop() -> PipelineStatus:
        await pipeline.stop()
        return PipelineStatus(running=pipeline.running)

    @app.get("/api/mood")
    async def get_mood() -> MoodResponse:
        """
        Get the latest mood snapshot.

        Returns:
            The current snapshot (defaults to "neutral")
        """
        return MoodResponse(mood=await pipeline.feed.read())

    @app.get("/api/mood/stream")
    async def stream_mood() -> StreamingResponse:
        """
        Stream mood snapshots via Server-Sent Events.

        The current snapshot is sent immediately upon connection, followed by
        every stabilized-mood change and every completed playlist search.

        Returns:
            StreamingResponse with text/event-stream content type
        """

        async def event_generator() -> AsyncGenerator[str, None]:
            try:
                async with pipeline.feed.stream() as snapshots:
                    async for snapshot in snapshots:
                        data = json.dumps(snapshot.model_dump())
                        yield f"data: {data}\n\n"
            except asyncio.CancelledError:
                # Client disconnected
                pass
            except Exception:
                logger.exception("Mood stream failed")
                error_data = json.dumps({"error": "Mood stream failed"})
                yield f"event: error\ndata: {error_data}\n\n"

        return StreamingResponse(
            event_generator(),
            media_type="text/event-stream",
            headers={
                "Cache-Control": "no-cache",
                "Connection": "keep-alive",
                "Access-Control-Allow-Origin": "*",
                "Access-Control-Allow-Headers": "*",
            },
        )

    return app


def build_app(settings: Settings) -> FastAPI:
    """Wire the provider client, credential refresher and pipeline from settings."""
    http = httpx.AsyncClient(timeout=settings.PROVIDER_TIMEOUT_S)
    credentials = CredentialRefresher(
        http,
        client_id=settings.SPOTIFY_CLIENT_ID,
        client_secret=settings.SPOTIFY_CLIENT_SECRET,
        token_url=settings.SPOTIFY_TOKEN_URL,
        refresh_interval_s=settings.TOKEN_REFRESH_INTERVAL_S,
        expiry_margin_s=settings.TOKEN_EXPIRY_MARGIN_S,
    )
    if not settings.has_credentials:
        logger.warning("SPOTIFY_CLIENT_ID/SPOTIFY_CLIENT_SECRET not set; searches will be empty")

    client = RecommendationClient(
        http,
        credentials,
        api_base=settings.SPOTIFY_API_BASE,
        search_limit=settings.PLAYLIST_SEARCH_LIMIT,
        tracks_limit=settings.PLAYLIST_TRACKS_LIMIT,
    )
    pipeline = MoodPipeline(
        client,
        feed=MoodFeed(),
        smoother=MoodSmoother(settings.MOOD_HISTORY_LEN),
        gate=RecommendationGate(settings.MOOD_SEND_INTERVAL_MS),
    )
    return create_app(client, pipeline)


app = build_app(Settings())


def main() -> None:
    """Main entry point for the server."""
    import uvicorn

    settings = Settings()
    logging.basicConfig(level=settings.LOG_LEVEL.upper())
    uvicorn.run(
        "moodtunes.server:app",
        host=settings.HOST,
        port=settings.PORT,
        log_level=settings.LOG_LEVEL,
    )


if __name__ == "__main__":
    main()
