"""Human-like pacing around outbound messages.

Every delay is in milliseconds and scaled by `flow_delay_scale`; a scale of
0 turns pacing off without changing message order.
"""

import asyncio
import time
from typing import Awaitable, Callable, TypeVar

from streamdesk.logging_config import get_logger
from streamdesk.services.transport.base import MessagingTransport, PresenceState

logger = get_logger("pacing")

T = TypeVar("T")

# Per-step delays of the conversation flow.
DELAY = {
    "greeting": 2000,
    "pre_video_text": 700,
    "after_video_menu": 1200,
    "query_ack": 5000,
    "query_min": 5000,
    "email_lookup_ack": 5000,
    "email_lookup_min": 7000,
    "single_email_ack": 8000,
    "search_code_ack": 18000,
    "search_code_min": 3000,
    "multi_email_announce": 5000,
    "confirm_ack": 15000,
    "confirm_min": 10000,
    "validate_ack": 5000,
    "validate_min": 15000,
    "invalid_ack": 3000,
    "admin_ack": 600,
    "admin_min": 1500,
}


class FlowPacer:
    def __init__(
        self,
        transport: MessagingTransport,
        scale: float = 1.0,
        sleep: Callable[[float], Awaitable[None]] = asyncio.sleep,
    ):
        self.transport = transport
        self.scale = max(scale, 0.0)
        self._sleep = sleep

    def seconds(self, ms: float) -> float:
        return ms * self.scale / 1000

    async def pause(self, ms: float) -> None:
        if self.scale > 0 and ms > 0:
            await self._sleep(self.seconds(ms))

    async def _typing(self, jid: str, state: PresenceState) -> None:
        await self.transport.send_presence(jid, state)

    async def send_ack_and_hold(self, jid: str, text: str, ms: float) -> None:
        """Send `text` right away, then keep showing typing for `ms`."""
        await self.transport.send_text(jid, text)
        await self._typing(jid, PresenceState.COMPOSING)
        await self.pause(ms)
        await self._typing(jid, PresenceState.PAUSED)

    async def send_typing_text(self, jid: str, text: str, ms: float) -> None:
        """Show typing for `ms`, then send `text`."""
        await self._typing(jid, PresenceState.COMPOSING)
        await self.pause(ms)
        await self._typing(jid, PresenceState.PAUSED)
        await self.transport.send_text(jid, text)

    async def with_typing(self, jid: str, work: Callable[[], Awaitable[T]], ms: float) -> T:
        """Run `work` under typing and make the whole thing last at least `ms`.

        A failure in `work` is re-raised after the padding so pacing stays
        consistent for the customer.
        """
        started = time.monotonic()
        await self._typing(jid, PresenceState.COMPOSING)
        try:
            return await work()
        finally:
            elapsed_ms = (time.monotonic() - started) * 1000
            if self.scale > 0:
                await self.pause(max(ms - elapsed_ms / self.scale, 0))
            await self._typing(jid, PresenceState.PAUSED)
