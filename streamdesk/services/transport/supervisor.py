import asyncio
from typing import Awaitable, Callable, Optional

from streamdesk.logging_config import get_logger
from streamdesk.services import alert_service
from streamdesk.services.transport.base import LOGGED_OUT_STATUS, MessagingTransport, TransportError

logger = get_logger("connection_supervisor")

AlertFn = Callable[[str, dict], Awaitable[bool]]


async def _critical_alert(message: str, context: dict) -> bool:
    return await alert_service.notify(alert_service.alert_critical, message, context)


class ConnectionSupervisor:
    """Keeps the transport connected.

    Any disconnect schedules a single reconnect after `delay_seconds`, except
    a logged-out (401) one, which alerts the operators and stops for good.
    """

    def __init__(self, transport: MessagingTransport, delay_seconds: float = 10.0, alert: AlertFn = _critical_alert):
        self.transport = transport
        self.delay_seconds = delay_seconds
        self._alert = alert
        self._reconnect_task: Optional[asyncio.Task] = None
        self._background: set[asyncio.Task] = set()
        self.stopped = False
        transport.add_disconnect_listener(self.handle_disconnect)

    async def start(self) -> None:
        try:
            await self.transport.connect()
        except TransportError as e:
            logger.error(f"Initial connect failed: {e}")
            self.handle_disconnect(e.status_code)

    def handle_disconnect(self, status_code: Optional[int]) -> None:
        if self.stopped:
            return
        if status_code == LOGGED_OUT_STATUS:
            self.stopped = True
            logger.error("Transport logged out, not reconnecting", extra={"context": {"status_code": status_code}})
            task = asyncio.get_running_loop().create_task(
                self._alert("WhatsApp transport logged out", {"status_code": status_code})
            )
            self._background.add(task)
            task.add_done_callback(self._background.discard)
            return
        if self._reconnect_task and not self._reconnect_task.done():
            return
        logger.warning(
            f"Transport disconnected, reconnecting in {self.delay_seconds}s",
            extra={"context": {"status_code": status_code}},
        )
        self._reconnect_task = asyncio.get_running_loop().create_task(self._reconnect_after_delay())

    async def _reconnect_after_delay(self) -> None:
        await asyncio.sleep(self.delay_seconds)
        try:
            await self.transport.connect()
            logger.info("Transport reconnected")
        except TransportError as e:
            logger.error(f"Reconnect failed: {e}")
            self._reconnect_task = None
            self.handle_disconnect(e.status_code)

    async def stop(self) -> None:
        self.stopped = True
        for task in [self._reconnect_task, *self._background]:
            if task and not task.done():
                task.cancel()
                try:
                    await task
                except asyncio.CancelledError:
                    pass
        self._reconnect_task = None
        await self.transport.close()
