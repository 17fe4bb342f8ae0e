from abc import ABC, abstractmethod
from enum import Enum
from typing import Callable, Optional

LOGGED_OUT_STATUS = 401


class ConnectionStatus(str, Enum):
    CONNECTING = "connecting"
    OPEN = "open"
    CLOSED = "closed"
    LOGGED_OUT = "logged_out"


class PresenceState(str, Enum):
    COMPOSING = "composing"
    PAUSED = "paused"


class TransportError(Exception):
    """A message could not be delivered."""

    def __init__(self, message: str, status_code: Optional[int] = None):
        self.status_code = status_code
        super().__init__(message)


DisconnectListener = Callable[[Optional[int]], None]


class MessagingTransport(ABC):
    """Outbound side of the messaging channel.

    Sends raise TransportError on failure; presence updates never raise.
    """

    def __init__(self):
        self.status = ConnectionStatus.CLOSED
        self._disconnect_listeners: list[DisconnectListener] = []

    @property
    def is_open(self) -> bool:
        return self.status == ConnectionStatus.OPEN

    def add_disconnect_listener(self, listener: DisconnectListener) -> None:
        self._disconnect_listeners.append(listener)

    def _mark_disconnected(self, status_code: Optional[int]) -> None:
        self.status = ConnectionStatus.LOGGED_OUT if status_code == LOGGED_OUT_STATUS else ConnectionStatus.CLOSED
        for listener in self._disconnect_listeners:
            listener(status_code)

    @abstractmethod
    async def connect(self) -> ConnectionStatus:
        pass

    @abstractmethod
    async def send_text(self, jid: str, text: str) -> None:
        pass

    @abstractmethod
    async def send_image(self, jid: str, image: str | bytes, caption: Optional[str] = None) -> None:
        """`image` is a local file path or raw PNG/JPEG bytes."""
        pass

    @abstractmethod
    async def send_video(self, jid: str, path: str, caption: Optional[str] = None) -> None:
        pass

    @abstractmethod
    async def send_presence(self, jid: str, state: PresenceState) -> None:
        pass

    async def close(self) -> None:
        self.status = ConnectionStatus.CLOSED
