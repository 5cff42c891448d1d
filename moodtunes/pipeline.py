"""
Frame-to-recommendation pipeline.

Landmark frames flow through the classifier and smoother in arrival order.
Whenever the recommendation gate opens, a playlist search for the current
stabilized mood is started in the background so frame processing never
waits on the network.
"""

import asyncio
import logging
from collections.abc import AsyncIterable, Callable, Sequence

from pydantic import BaseModel

from .classifier import classify
from .client import RecommendationClient
from .feed import MoodFeed
from .gate import RecommendationGate
from .models import Language, LandmarkPoint, MoodLabel, RecommendationRequest
from .smoother import MoodSmoother

logger = logging.getLogger(__name__)

LandmarkFrame = Sequence[LandmarkPoint]


class PipelineStopped(RuntimeError):
    """Raised when a frame is submitted to a stopped pipeline."""


class FrameResult(BaseModel):
    """Outcome of processing one landmark frame."""

    mood: MoodLabel
    stable_mood: MoodLabel
    fetch_scheduled: bool


class MoodPipeline:
    """
    Owns one session's mood history, gate and background searches.

    Several pipelines can share a RecommendationClient (and so one
    credential) without sharing any mood state.
    """

    def __init__(
        self,
        client: RecommendationClient,
        feed: MoodFeed | None = None,
        smoother: MoodSmoother | None = None,
        gate: RecommendationGate | None = None,
        language: str = Language.ANY.value,
        classifier: Callable[[LandmarkFrame | None], MoodLabel] = classify,
    ) -> None:
        self.client = client
        self.feed = feed or MoodFeed()
        self.smoother = smoother or MoodSmoother()
        self.gate = gate or RecommendationGate()
        self.language = language
        self._classify = classifier
        self._stable_mood: MoodLabel | None = None
        self._tasks: set[asyncio.Task[None]] = set()
        self._search_seq = 0
        self._published_seq = 0
        self.running = True

    @property
    def stable_mood(self) -> MoodLabel:
        return self._stable_mood or MoodLabel.NEUTRAL

    @property
    def pending(self) -> int:
        return len(self._tasks)

    async def submit(self, frame: LandmarkFrame | None, now_ms: float) -> FrameResult | None:
        """
        Process one detection cycle.

        Args:
            frame: Landmarks of the tracked face, or None when no face was found
            now_ms: Frame timestamp in milliseconds

        Returns:
            The per-frame and stabilized moods, or None if no face was found

        Raises:
            PipelineStopped: If the pipeline has been stopped
        """
        if not self.running:
            raise PipelineStopped("pipeline is stopped")
        if not frame:
            return None

        mood = self._classify(frame)
        stable = self.smoother.observe(mood)
        if stable != self._stable_mood:
            self._stable_mood = stable
            await self.feed.publish(stable.value)

        # Mark before the search resolves so later frames in the window are dropped
        scheduled = self.gate.try_acquire(now_ms)
        if scheduled:
            logger.debug("Scheduling playlist search for %s (%s)", stable.value, self.language)
            request = RecommendationRequest(mood=stable.value, language=self.language)
            self._search_seq += 1
            task = asyncio.create_task(self._search(request, self._search_seq))
            self._tasks.add(task)
            task.add_done_callback(self._tasks.discard)

        return FrameResult(mood=mood, stable_mood=stable, fetch_scheduled=scheduled)

    async def run(self, frames: AsyncIterable[tuple[LandmarkFrame | None, float]]) -> None:
        """Consume (landmarks, timestamp_ms) pairs in order until exhausted or stopped."""
        async for landmarks, timestamp_ms in frames:
            if not self.running:
                break
            await self.submit(landmarks, timestamp_ms)

    def start(self) -> None:
        self.running = True

    async def stop(self) -> None:
        """Stop accepting frames and cancel searches still in flight.

        Mood history, gate and credentials are left as they are, so a later
        start() resumes where this session left off.
        """
        self.running = False
        tasks = list(self._tasks)
        for task in tasks:
            task.cancel()
        await asyncio.gather(*tasks, return_exceptions=True)

    async def wait_idle(self) -> None:
        """Wait for all background searches to finish."""
        while self._tasks:
            await asyncio.gather(*list(self._tasks), return_exceptions=True)

    async def _search(self, request: RecommendationRequest, seq: int) -> None:
        try:
            recommendation = await self.client.recommend(request.mood, request.language)
        except asyncio.CancelledError:
            raise
        except Exception:
            logger.exception(
                "Playlist search failed for mood=%s language=%s",
                request.mood,
                request.language,
            )
            return

        # A newer search has already landed
        if seq < self._published_seq:
            logger.debug("Dropping stale playlist search for mood=%s", request.mood)
            return
        self._published_seq = seq

        await self.feed.publish(
            self.stable_mood.value,
            query=recommendation.query,
            playlists=recommendation.playlists,
            recommended_for=request.mood,
        )
