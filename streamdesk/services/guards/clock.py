import time
from typing import Callable

Clock = Callable[[], float]


def monotonic_ms() -> float:
    """Milliseconds from a monotonic source; guard windows are measured with it."""
    return time.monotonic() * 1000
