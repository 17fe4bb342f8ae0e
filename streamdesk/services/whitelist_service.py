from typing import Awaitable, Callable

from streamdesk.logging_config import get_logger
from streamdesk.services.guards.clock import Clock, monotonic_ms
from streamdesk.services.phone import normalize_local

logger = get_logger("whitelist_service")

NumbersLoader = Callable[[], Awaitable[list[str]]]


class WhitelistService:
    """Allow-list of customer numbers, refreshed from CLIENTES at most once per TTL.

    A failed refresh caches an empty set, so everyone but admins is denied
    until the next refresh succeeds.
    """

    def __init__(self, load_numbers: NumbersLoader, cache_ttl_ms: int = 60_000, clock: Clock = monotonic_ms):
        self._load_numbers = load_numbers
        self.cache_ttl_ms = cache_ttl_ms
        self._clock = clock
        self._numbers: set[str] = set()
        self._loaded_at: float | None = None

    async def numbers(self) -> set[str]:
        now = self._clock()
        if self._loaded_at is None or now - self._loaded_at > self.cache_ttl_ms:
            try:
                loaded = await self._load_numbers()
                self._numbers = {normalize_local(number) for number in loaded if number}
            except Exception as e:
                logger.error(f"Failed to load whitelist: {e}", exc_info=True)
                self._numbers = set()
            self._loaded_at = now
            logger.debug(f"Whitelist refreshed: {len(self._numbers)} numbers")
        return self._numbers

    async def is_allowed(self, number: str) -> bool:
        allowed = normalize_local(number) in await self.numbers()
        logger.info("Whitelist check", extra={"context": {"number": number, "allowed": allowed}})
        return allowed

    def invalidate(self) -> None:
        self._loaded_at = None
