"""Rate limiting of recommendation requests from the mood stream."""

DEFAULT_INTERVAL_MS = 4000.0


class RecommendationGate:
    """
    Single-slot rate limiter for recommendation lookups.

    A lookup is allowed once at least ``interval_ms`` has passed since the
    last one. Requests inside the cooldown window are dropped, not queued.
    Callers mark the slot as used as soon as they decide to fetch, before
    the request resolves.
    """

    def __init__(self, interval_ms: float = DEFAULT_INTERVAL_MS) -> None:
        self.interval_ms = interval_ms
        self.last_sent_at: float | None = None

    def should_fetch(self, now: float) -> bool:
        if self.last_sent_at is None:
            return True
        return now - self.last_sent_at >= self.interval_ms

    def mark_fetched(self, now: float) -> None:
        self.last_sent_at = now

    def try_acquire(self, now: float) -> bool:
        """Check and mark in one step. Returns True if a fetch may proceed."""
        if not self.should_fetch(now):
            return False
        self.mark_fetched(now)
        return True
