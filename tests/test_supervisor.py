import asyncio
from unittest.mock import AsyncMock

from streamdesk.services.transport import ConnectionStatus, ConnectionSupervisor, TransportError

from tests.conftest import FakeTransport


class FlakyTransport(FakeTransport):
    def __init__(self, failures: list[int | None]):
        super().__init__()
        self.failures = list(failures)

    async def connect(self):
        self.connect_calls += 1
        if self.failures:
            raise TransportError("connect failed", status_code=self.failures.pop(0))
        self.status = ConnectionStatus.OPEN
        return self.status


class TestConnectionSupervisor:
    def test_start_connects(self):
        transport = FakeTransport()

        async def run():
            supervisor = ConnectionSupervisor(transport, 0, alert=AsyncMock())
            await supervisor.start()
            await supervisor.stop()

        asyncio.run(run())
        assert transport.connect_calls == 1
        assert transport.status == ConnectionStatus.CLOSED

    def test_disconnect_schedules_single_reconnect(self):
        transport = FakeTransport()

        async def run():
            supervisor = ConnectionSupervisor(transport, 0.01, alert=AsyncMock())
            transport._mark_disconnected(None)
            transport._mark_disconnected(503)
            await asyncio.sleep(0.05)
            await supervisor.stop()

        asyncio.run(run())
        assert transport.connect_calls == 1

    def test_failed_reconnect_retries(self):
        transport = FlakyTransport([None, None])

        async def run():
            supervisor = ConnectionSupervisor(transport, 0, alert=AsyncMock())
            await supervisor.start()
            await asyncio.sleep(0.05)
            status = transport.status
            await supervisor.stop()
            return status

        assert asyncio.run(run()) == ConnectionStatus.OPEN
        assert transport.connect_calls == 3

    def test_logged_out_alerts_and_stops(self):
        transport = FakeTransport()
        alert = AsyncMock(return_value=True)

        async def run():
            supervisor = ConnectionSupervisor(transport, 0, alert=alert)
            transport._mark_disconnected(401)
            await asyncio.sleep(0.01)
            transport._mark_disconnected(None)
            await asyncio.sleep(0.01)
            stopped = supervisor.stopped
            await supervisor.stop()
            return stopped

        assert asyncio.run(run()) is True
        assert transport.connect_calls == 0
        alert.assert_awaited_once()
        assert alert.await_args[0][1] == {"status_code": 401}
