import itertools
from dataclasses import dataclass
from enum import Enum
from typing import Any, Awaitable, Callable, Iterable

from streamdesk.logging_config import get_logger
from streamdesk.services.guards.clock import Clock, monotonic_ms

logger = get_logger("step_locks")

DEFAULT_LOCK_TTL_MS = 30_000


class StepKey(str, Enum):
    WELCOME = "welcome"
    MISDATOS = "misdatos"
    SERVICE_LOOKUP = "serviceLookup"
    CODE_LOOKUP = "codeLookup"


LONG_RUNNING_STEPS = tuple(StepKey)


@dataclass
class StepLock:
    key: str
    token: int
    expires_at: float


class StepLockManager:
    """Per-conversation named locks with expiry.

    An expired lock counts as absent and is dropped lazily on the next check.
    Each acquisition carries a token, so a holder whose lock already expired
    and was taken over cannot release the newer holder's lock.
    """

    def __init__(self, clock: Clock = monotonic_ms):
        self._clock = clock
        self._locks: dict[str, dict[str, StepLock]] = {}
        self._tokens = itertools.count(1)

    def _current(self, conversation_id: str, key: str) -> StepLock | None:
        held = self._locks.get(conversation_id)
        if not held:
            return None
        lock = held.get(key)
        if lock is None:
            return None
        if self._clock() > lock.expires_at:
            del held[key]
            if not held:
                del self._locks[conversation_id]
            logger.info("Step lock expired", extra={"context": {"conversation_id": conversation_id, "key": key}})
            return None
        return lock

    def is_locked(self, conversation_id: str, key: StepKey | str) -> bool:
        return self._current(conversation_id, _key(key)) is not None

    def any_locked(self, conversation_id: str, keys: Iterable[StepKey | str] = LONG_RUNNING_STEPS) -> bool:
        return any(self.is_locked(conversation_id, key) for key in keys)

    def acquire(self, conversation_id: str, key: StepKey | str, ttl_ms: int = DEFAULT_LOCK_TTL_MS) -> StepLock | None:
        name = _key(key)
        if self._current(conversation_id, name) is not None:
            return None
        lock = StepLock(key=name, token=next(self._tokens), expires_at=self._clock() + ttl_ms)
        self._locks.setdefault(conversation_id, {})[name] = lock
        return lock

    def release(self, conversation_id: str, lock: StepLock) -> None:
        held = self._locks.get(conversation_id)
        if not held:
            return
        current = held.get(lock.key)
        if current is not None and current.token == lock.token:
            del held[lock.key]
            if not held:
                del self._locks[conversation_id]

    async def with_lock(
        self,
        conversation_id: str,
        key: StepKey | str,
        ttl_ms: int,
        fn: Callable[[], Awaitable[Any]],
    ) -> bool:
        """Run `fn` holding the lock. False (without running) if already held.

        The lock is released however `fn` settles; its exception propagates
        after the release.
        """
        lock = self.acquire(conversation_id, key, ttl_ms)
        if lock is None:
            return False
        try:
            await fn()
        finally:
            self.release(conversation_id, lock)
        return True

    def reset(self, conversation_id: str) -> None:
        self._locks.pop(conversation_id, None)

    def sweep(self) -> int:
        now = self._clock()
        removed = 0
        for conversation_id in list(self._locks):
            held = self._locks[conversation_id]
            for name in [name for name, lock in held.items() if now > lock.expires_at]:
                del held[name]
                removed += 1
            if not held:
                del self._locks[conversation_id]
        return removed

    def active_count(self) -> int:
        return sum(len(held) for held in self._locks.values())


def _key(key: StepKey | str) -> str:
    return key.value if isinstance(key, StepKey) else key
