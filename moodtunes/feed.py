"""
Stabilized-mood feed for the MoodTunes service.

This module holds the latest mood snapshot produced by the pipeline and
streams every new snapshot to any number of subscribers (the SSE endpoint,
tests, or an embedding application).
"""

import asyncio
import time
from collections.abc import AsyncGenerator
from contextlib import asynccontextmanager

from .models import MoodLabel, MoodSnapshot, Playlist


class MoodFeed:
    """
    In-memory mood snapshot with real-time streaming.

    Subscribers wait on a condition variable and a publish counter, so a
    slow subscriber skips to the newest snapshot instead of queueing.
    """

    def __init__(self) -> None:
        self._current = MoodSnapshot(mood=MoodLabel.NEUTRAL.value, timestamp=time.time())
        self._condition = asyncio.Condition()
        self._publish_counter = 0

    async def publish(
        self,
        mood: str,
        query: str | None = None,
        playlists: list[Playlist] | None = None,
        recommended_for: str | None = None,
    ) -> MoodSnapshot:
        """
        Replace the current snapshot and notify all subscribers.

        Args:
            mood: The stabilized mood
            query: Search query, when the snapshot carries playlists
            playlists: Playlists found by the search
            recommended_for: Mood the search was made for

        Returns:
            The published snapshot with timestamp
        """
        async with self._condition:
            snapshot = MoodSnapshot(
                mood=mood,
                timestamp=time.time(),
                recommended_for=recommended_for,
                query=query,
                playlists=playlists,
            )
            self._current = snapshot
            self._publish_counter += 1
            self._condition.notify_all()
            return snapshot

    async def read(self) -> MoodSnapshot:
        async with self._condition:
            return self._current

    @asynccontextmanager
    async def stream(self) -> AsyncGenerator[AsyncGenerator[MoodSnapshot, None], None]:
        """
        Stream snapshots to a subscriber, starting with the current one.

        Yields:
            An async generator of MoodSnapshot objects
        """

        async def snapshot_generator() -> AsyncGenerator[MoodSnapshot, None]:
            async with self._condition:
                last_seen = self._publish_counter
                yield self._current

            try:
                while True:
                    async with self._condition:
                        await self._condition.wait_for(
                            lambda: self._publish_counter > last_seen
                        )
                        last_seen = self._publish_counter
                        yield self._current
            except (asyncio.CancelledError, GeneratorExit):
                return

        yield snapshot_generator()
