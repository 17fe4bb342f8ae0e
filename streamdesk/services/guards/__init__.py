from streamdesk.services.guards.cooldown import Cooldown, MenuCooldownGate
from streamdesk.services.guards.duplicates import DuplicateSuppressor
from streamdesk.services.guards.rate_limiter import RateLimiter
from streamdesk.services.guards.session_store import SessionState, SessionStore
from streamdesk.services.guards.step_locks import StepKey, StepLockManager

__all__ = [
    "Cooldown",
    "DuplicateSuppressor",
    "MenuCooldownGate",
    "RateLimiter",
    "SessionState",
    "SessionStore",
    "StepKey",
    "StepLockManager",
]
