import json

from httpx_sse import ServerSentEvent

from moodtunes import cli
from moodtunes.models import MoodSnapshot, Playlist


def test_format_snapshot_without_timestamp():
    snapshot = MoodSnapshot(mood="calm")
    assert cli._format_snapshot(snapshot) == "calm"


def test_format_snapshot_with_playlists():
    snapshot = MoodSnapshot(
        mood="happy", query="happy upbeat", playlists=[Playlist(id="p1")]
    )
    assert cli._format_snapshot(snapshot) == "happy [1 playlists: happy upbeat]"


def test_handle_sse_event(capsys):
    data = json.dumps({"mood": "surprised", "timestamp": None})
    cli._handle_sse_event(ServerSentEvent(event="message", data=data))
    assert capsys.readouterr().out.strip() == "surprised"


def test_handle_sse_error_event(capsys):
    data = json.dumps({"error": "Mood stream failed"})
    cli._handle_sse_event(ServerSentEvent(event="error", data=data))
    assert "Server error: Mood stream failed" in capsys.readouterr().out


def test_handle_sse_bad_data(capsys):
    cli._handle_sse_event(ServerSentEvent(event="message", data="not json"))
    assert "Could not parse SSE data" in capsys.readouterr().out
