import asyncio
from dataclasses import dataclass, field
from typing import Callable, Iterable

from streamdesk.logging_config import get_logger
from streamdesk.services.guards.clock import Clock, monotonic_ms
from streamdesk.services.state_machine import FlowState, Service

logger = get_logger("session_store")

DEFAULT_SESSION_TTL_MS = 10 * 60 * 1000
DEFAULT_SWEEP_INTERVAL_MS = 60_000


@dataclass
class SessionState:
    state: FlowState = FlowState.IDLE
    service: Service | None = None
    email_options: list[str] = field(default_factory=list)
    expires_at: float | None = None

    @property
    def awaiting_email_pick(self) -> bool:
        return self.state in (FlowState.AWAITING_EMAIL_PICK, FlowState.AWAITING_TV_EMAIL_PICK)

    @property
    def pick_for_tv(self) -> bool:
        return self.state == FlowState.AWAITING_TV_EMAIL_PICK

    @property
    def awaiting_tv_code(self) -> bool:
        return self.state == FlowState.AWAITING_TV_CODE

    @property
    def selected_email(self) -> str | None:
        return self.email_options[0] if self.email_options else None


class SessionStore:
    """Ephemeral per-conversation flow state with an inactivity TTL.

    Expired records are cleared eagerly by the orchestrator and in the
    background by the sweeper task.
    """

    def __init__(self, ttl_ms: int = DEFAULT_SESSION_TTL_MS, clock: Clock = monotonic_ms):
        self.ttl_ms = ttl_ms
        self._clock = clock
        self._sessions: dict[str, SessionState] = {}
        self._sweeper_task: asyncio.Task | None = None

    def get(self, conversation_id: str) -> SessionState:
        """Current record, or a detached blank one when nothing is tracked."""
        return self._sessions.get(conversation_id) or SessionState()

    def has(self, conversation_id: str) -> bool:
        return conversation_id in self._sessions

    def arm(self, conversation_id: str) -> SessionState:
        session = self._sessions.setdefault(conversation_id, SessionState())
        session.expires_at = self._clock() + self.ttl_ms
        return session

    def update(
        self,
        conversation_id: str,
        *,
        state: FlowState,
        service: Service | None = None,
        email_options: Iterable[str] | None = None,
    ) -> SessionState:
        """Move to `state` and refresh the TTL. Omitted fields keep their value."""
        session = self.arm(conversation_id)
        session.state = state
        if service is not None:
            session.service = service
        if email_options is not None:
            session.email_options = list(email_options)
        return session

    def expired(self, conversation_id: str) -> bool:
        session = self._sessions.get(conversation_id)
        if session is None or session.expires_at is None:
            return False
        return self._clock() > session.expires_at

    def clear(self, conversation_id: str) -> None:
        self._sessions.pop(conversation_id, None)

    def sweep(self) -> int:
        now = self._clock()
        stale = [
            conversation_id
            for conversation_id, session in self._sessions.items()
            if session.expires_at is not None and now > session.expires_at
        ]
        for conversation_id in stale:
            self.clear(conversation_id)
        return len(stale)

    def __len__(self) -> int:
        return len(self._sessions)

    # === BACKGROUND SWEEP ===

    async def _sweep_loop(self, interval_seconds: float, hooks: tuple[Callable[[], int], ...]) -> None:
        while True:
            try:
                await asyncio.sleep(interval_seconds)
                cleared = self.sweep()
                for hook in hooks:
                    hook()
                if cleared:
                    logger.info("Expired sessions cleared", extra={"context": {"cleared": cleared}})
            except asyncio.CancelledError:
                break
            except Exception as exc:
                logger.error("Session sweep failed", extra={"context": {"error": str(exc)}})

    def start_sweeper(
        self,
        interval_ms: int = DEFAULT_SWEEP_INTERVAL_MS,
        hooks: Iterable[Callable[[], int]] = (),
    ) -> asyncio.Task:
        """Start the periodic sweep; extra `hooks` run on every tick."""
        if self._sweeper_task is None or self._sweeper_task.done():
            self._sweeper_task = asyncio.create_task(self._sweep_loop(max(interval_ms, 100) / 1000, tuple(hooks)))
            logger.info("Session sweeper started", extra={"context": {"interval_ms": interval_ms}})
        return self._sweeper_task

    async def stop_sweeper(self) -> None:
        if self._sweeper_task is None:
            return
        self._sweeper_task.cancel()
        try:
            await self._sweeper_task
        except asyncio.CancelledError:
            pass
        self._sweeper_task = None
