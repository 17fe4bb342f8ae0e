import math
from typing import Awaitable, Callable

from streamdesk.services.guards.clock import Clock, monotonic_ms

DEFAULT_MENU_COOLDOWN_MS = 15_000
DEFAULT_QUERY_COOLDOWN_MS = 10_000

MSG_MENU_COOLDOWN = "🕒 Ya te envié el menú hace unos segundos. Intenta de nuevo en {seconds}s."


class Cooldown:
    """Per-conversation "not before" timestamps."""

    def __init__(self, window_ms: int, clock: Clock = monotonic_ms):
        self.window_ms = window_ms
        self._clock = clock
        self._until: dict[str, float] = {}

    def active(self, conversation_id: str) -> bool:
        return self._clock() < self._until.get(conversation_id, 0)

    def arm(self, conversation_id: str) -> None:
        self._until[conversation_id] = self._clock() + self.window_ms

    def remaining_seconds(self, conversation_id: str) -> int:
        remaining_ms = self._until.get(conversation_id, 0) - self._clock()
        return max(0, math.ceil(remaining_ms / 1000))

    def clear(self, conversation_id: str) -> None:
        self._until.pop(conversation_id, None)

    def sweep(self) -> int:
        now = self._clock()
        stale = [key for key, until in self._until.items() if until <= now]
        for key in stale:
            del self._until[key]
        return len(stale)

    def __len__(self) -> int:
        return len(self._until)


class MenuCooldownGate:
    """Throttles unprompted re-sends of the main menu."""

    def __init__(
        self,
        send_menu: Callable[[str], Awaitable[None]],
        send_text: Callable[[str, str], Awaitable[None]],
        window_ms: int = DEFAULT_MENU_COOLDOWN_MS,
        clock: Clock = monotonic_ms,
    ):
        self._send_menu = send_menu
        self._send_text = send_text
        self.cooldown = Cooldown(window_ms, clock)

    async def try_send(self, conversation_id: str, *, notify_if_cooldown: bool = False) -> bool:
        if self.cooldown.active(conversation_id):
            if notify_if_cooldown:
                seconds = self.cooldown.remaining_seconds(conversation_id)
                await self._send_text(conversation_id, MSG_MENU_COOLDOWN.format(seconds=seconds))
            return False

        await self._send_menu(conversation_id)
        self.cooldown.arm(conversation_id)
        return True

    async def force_send(self, conversation_id: str) -> None:
        await self._send_menu(conversation_id)
        self.cooldown.arm(conversation_id)

    def arm(self, conversation_id: str) -> None:
        self.cooldown.arm(conversation_id)
