"""
Command-line interface tools for the MoodTunes service.
"""

import asyncio
import json
from collections.abc import Coroutine
from datetime import datetime
from typing import Any

import httpx
import typer
from httpx_sse import ServerSentEvent, aconnect_sse

from .models import Language, MoodSnapshot, Playlist, Track

DEFAULT_BASE_URL = "http://localhost:8000"

app = typer.Typer(help="MoodTunes CLI tools")


# MARK: - CLI Entry Points


def cli_recommend() -> None:
    """Entry point for moodtunes-recommend CLI command."""
    typer.run(recommend)


def cli_tracks() -> None:
    """Entry point for moodtunes-tracks CLI command."""
    typer.run(tracks)


def cli_stream() -> None:
    """Entry point for moodtunes-stream CLI command."""
    typer.run(stream)


# MARK: - Commands


@app.command()
def recommend(
    mood: str = typer.Argument(..., help="Mood to find playlists for"),
    language: str = typer.Option(
        Language.ANY.value, "--language", "-l", help="Language preference"
    ),
    base_url: str = typer.Option(
        DEFAULT_BASE_URL, "--url", "-u", help="Base URL of the MoodTunes service"
    ),
    json_output: bool = typer.Option(False, "--json", "-j", help="Output raw JSON"),
) -> None:
    """Search playlists for a mood and language."""

    async def _recommend() -> None:
        async with httpx.AsyncClient() as client:
            response = await client.post(
                f"{base_url}/api/recommendations",
                json={"mood": mood, "language": language},
            )
            response.raise_for_status()
            result = response.json()

            if json_output:
                print(json.dumps(result, indent=2))
                return

            print(f"Query: {result['query']}")
            playlists = [Playlist.model_validate(p) for p in result["playlists"]]
            if not playlists:
                print("No playlists found for this mood + language.")
            for playlist in playlists:
                print(_format_playlist(playlist))

    _run_with_error_handling(_recommend(), base_url)


@app.command()
def tracks(
    playlist_id: str = typer.Argument(..., help="Playlist identifier"),
    base_url: str = typer.Option(
        DEFAULT_BASE_URL, "--url", "-u", help="Base URL of the MoodTunes service"
    ),
    json_output: bool = typer.Option(False, "--json", "-j", help="Output raw JSON"),
) -> None:
    """List the tracks of a playlist."""

    async def _tracks() -> None:
        async with httpx.AsyncClient() as client:
            response = await client.get(f"{base_url}/api/playlists/{playlist_id}/tracks")
            response.raise_for_status()
            result = response.json()

            if json_output:
                print(json.dumps(result, indent=2))
                return

            items = [Track.model_validate(t) for t in result["tracks"]]
            if not items:
                print("No tracks")
            for index, track in enumerate(items, start=1):
                print(f"{index:2d}. {track.name} - {track.artists}")

    _run_with_error_handling(_tracks(), base_url)


@app.command()
def stream(
    base_url: str = typer.Option(
        DEFAULT_BASE_URL, "--url", "-u", help="Base URL of the MoodTunes service"
    ),
) -> None:
    """Stream stabilized moods and recommendations in real-time."""

    async def _stream() -> None:
        print(f"Streaming from {base_url}/api/mood/stream... (Ctrl+C to stop)")

        async with httpx.AsyncClient(timeout=None) as client:
            async with aconnect_sse(
                client, "GET", f"{base_url}/api/mood/stream"
            ) as event_source:
                async for sse in event_source.aiter_sse():
                    _handle_sse_event(sse)

    _run_with_error_handling(_stream(), base_url)


# MARK: - Private Helpers


def _format_playlist(playlist: Playlist) -> str:
    line = f"{playlist.name} (by {playlist.owner})"
    if playlist.external_url:
        line += f" {playlist.external_url}"
    return line


def _format_snapshot(snapshot: MoodSnapshot) -> str:
    """Format a snapshot with optional timestamp and playlist count."""
    text = snapshot.mood
    if snapshot.playlists is not None:
        text += f" [{len(snapshot.playlists)} playlists: {snapshot.query}]"
    if not snapshot.timestamp:
        return text

    dt = datetime.fromtimestamp(snapshot.timestamp)
    timestamp = dt.strftime("%H:%M:%S")
    return f"{timestamp} > {text}"


def _handle_sse_event(sse: ServerSentEvent) -> None:
    """Handle a single SSE event."""
    try:
        if sse.event == "error":
            error_data = json.loads(sse.data)
            print(f"Server error: {error_data.get('error', 'Unknown error')}")
            return

        raw_data = json.loads(sse.data)
        snapshot = MoodSnapshot.model_validate(raw_data)
        print(_format_snapshot(snapshot))

    except json.JSONDecodeError as e:
        print(f"Warning: Could not parse SSE data: {sse.data} - {e}")
    except ValueError as e:
        print(f"Warning: Invalid mood snapshot: {e}")


def _run_with_error_handling(coro: Coroutine[Any, Any, Any], base_url: str) -> None:
    """Run an async coroutine with standardized error handling."""
    try:
        asyncio.run(coro)
    except KeyboardInterrupt:
        print("\nStopped")
        raise typer.Exit(0)
    except httpx.ConnectError:
        print(f"Error: Could not connect to {base_url}")
        raise typer.Exit(1)
    except httpx.HTTPStatusError as e:
        print(f"Error: HTTP {e.response.status_code}")
        raise typer.Exit(1)
    except Exception as e:
        error_msg = str(e) if str(e) else f"Unknown error of type {type(e).__name__}"
        print(f"Error: {error_msg}")
        raise typer.Exit(1)


if __name__ == "__main__":
    app()
