"""Majority-vote temporal smoothing of per-frame mood labels."""

from collections import Counter, deque

from .models import MoodLabel

DEFAULT_HISTORY_LEN = 10


class MoodSmoother:
    """
    Rolling window of recent mood labels with a majority vote.

    Each observation is appended to a bounded FIFO history and the most
    frequent label in the window is returned as the stabilized mood. On a
    tie the label just observed wins if it is among the leaders; otherwise
    the leader that first appears earliest in the window wins.
    """

    def __init__(self, capacity: int = DEFAULT_HISTORY_LEN) -> None:
        if capacity < 1:
            raise ValueError("capacity must be at least 1")
        self._history: deque[MoodLabel] = deque(maxlen=capacity)

    @property
    def capacity(self) -> int:
        return self._history.maxlen

    @property
    def history(self) -> list[MoodLabel]:
        return list(self._history)

    def observe(self, label: MoodLabel) -> MoodLabel:
        """Record a per-frame label and return the stabilized mood."""
        self._history.append(label)

        # Counter keeps first-occurrence order, which fixes the tie order
        counts = Counter(self._history)
        best = max(counts.values())
        leaders = [mood for mood, count in counts.items() if count == best]
        if label in leaders:
            return label
        return leaders[0]

    def reset(self) -> None:
        self._history.clear()
