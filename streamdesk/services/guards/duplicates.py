from dataclasses import dataclass

from streamdesk.services.guards.clock import Clock, monotonic_ms

DEFAULT_DUPLICATE_WINDOW_MS = 2_500


@dataclass
class LastMessageRecord:
    text: str
    timestamp: float


class DuplicateSuppressor:
    """Drops an exact repeat of the immediately preceding message inside a short window.

    History is one message deep: "A", "B", "A" is never flagged.
    """

    def __init__(self, window_ms: int = DEFAULT_DUPLICATE_WINDOW_MS, clock: Clock = monotonic_ms):
        self.window_ms = window_ms
        self._clock = clock
        self._last: dict[str, LastMessageRecord] = {}

    def should_drop(self, conversation_id: str, text: str) -> bool:
        previous = self._last.get(conversation_id)
        if previous is None:
            return False
        return previous.text == text and (self._clock() - previous.timestamp) < self.window_ms

    def record(self, conversation_id: str, text: str) -> None:
        self._last[conversation_id] = LastMessageRecord(text=text, timestamp=self._clock())

    def forget(self, conversation_id: str) -> None:
        self._last.pop(conversation_id, None)

    def sweep(self) -> int:
        now = self._clock()
        stale = [key for key, record in self._last.items() if now - record.timestamp >= self.window_ms]
        for key in stale:
            del self._last[key]
        return len(stale)

    def __len__(self) -> int:
        return len(self._last)
