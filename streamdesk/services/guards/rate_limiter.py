from collections import deque

from streamdesk.logging_config import get_logger
from streamdesk.services.guards.clock import Clock, monotonic_ms

logger = get_logger("rate_limiter")

DEFAULT_WINDOW_MS = 15_000
DEFAULT_MAX_MESSAGES = 5


class RateLimiter:
    """Sliding-window counter per conversation.

    Every call is recorded, allowed or not: a rejected message still occupies a
    slot in the window, so retry floods keep the sender blocked.
    """

    def __init__(
        self,
        window_ms: int = DEFAULT_WINDOW_MS,
        max_messages: int = DEFAULT_MAX_MESSAGES,
        clock: Clock = monotonic_ms,
    ):
        self.window_ms = window_ms
        self.max_messages = max_messages
        self._clock = clock
        self._buckets: dict[str, deque[float]] = {}

    def _purge(self, bucket: deque[float], now: float) -> None:
        while bucket and now - bucket[0] >= self.window_ms:
            bucket.popleft()

    def allow(self, conversation_id: str) -> bool:
        now = self._clock()
        bucket = self._buckets.setdefault(conversation_id, deque())
        self._purge(bucket, now)
        bucket.append(now)
        allowed = len(bucket) <= self.max_messages
        if not allowed:
            logger.info(
                "Rate limited",
                extra={"context": {"conversation_id": conversation_id, "in_window": len(bucket)}},
            )
        return allowed

    def bucket_size(self, conversation_id: str) -> int:
        bucket = self._buckets.get(conversation_id)
        if not bucket:
            return 0
        self._purge(bucket, self._clock())
        return len(bucket)

    def reset(self, conversation_id: str) -> None:
        self._buckets.pop(conversation_id, None)

    def sweep(self) -> int:
        """Drop buckets whose every entry has left the window."""
        now = self._clock()
        removed = 0
        for conversation_id in list(self._buckets):
            bucket = self._buckets[conversation_id]
            self._purge(bucket, now)
            if not bucket:
                del self._buckets[conversation_id]
                removed += 1
        return removed

    def __len__(self) -> int:
        return len(self._buckets)
