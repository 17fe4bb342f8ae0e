from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import Optional

from streamdesk.services.result import Result


@dataclass
class TvLoginOutcome:
    message: str
    screenshot: Optional[bytes] = None


class TvLoginAutomation(ABC):
    """Signs a TV into the customer's streaming account."""

    @abstractmethod
    async def verify_tv_code(self, email: str, password: Optional[str], code: str) -> Result[TvLoginOutcome]:
        """Submit `code` on the provider's TV activation page for `email`.

        Business failures come back as `Result.failure` with a user-facing
        message; only programming errors raise.
        """
        pass
