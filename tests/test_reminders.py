import asyncio
from datetime import date
from types import SimpleNamespace
from unittest.mock import AsyncMock, Mock, patch

from streamdesk.services.reminder_service import (
    expired_message,
    notify_due_accounts,
    notify_expired_accounts,
    renewal_message,
)
from streamdesk.services.transport.base import TransportError

from tests.conftest import FakeTransport


def _account(number="3312345678", days_left=2, platform="Netflix"):
    return SimpleNamespace(
        number=number,
        name="Ana",
        platform=platform,
        email="ana@mail.com",
        days_left=days_left,
        ends_on=date(2026, 3, 14),
    )


class TestMessages:
    def test_renewal_message(self):
        text = renewal_message(_account())
        assert "Tu *Netflix* vence el *2026-03-14*" in text
        assert "Te quedan *2 días*." in text

    def test_expired_message(self):
        text = expired_message(_account(days_left=0))
        assert "Tu *Netflix* finalizó el *2026-03-14*." in text


class TestNotifyDueAccounts:
    def test_sends_to_each_account(self):
        transport = FakeTransport()
        analytics = Mock(due_for_renewal=AsyncMock(return_value=[_account(), _account(number="3311111111")]))

        result = asyncio.run(notify_due_accounts(transport, analytics, days=3, limit=10, pause_seconds=0))

        analytics.due_for_renewal.assert_awaited_once_with(3, 10, None)
        assert result == {"count": 2, "sent": 2}
        assert [jid for _, jid, _ in transport.sent] == [
            "5213312345678@s.whatsapp.net",
            "5213311111111@s.whatsapp.net",
        ]

    def test_dry_run_sends_nothing(self):
        transport = FakeTransport()
        analytics = Mock(due_for_renewal=AsyncMock(return_value=[_account()]))

        result = asyncio.run(notify_due_accounts(transport, analytics, dry_run=True, pause_seconds=0))

        assert result == {"count": 1, "sent": 0}
        assert transport.sent == []

    def test_failed_send_is_skipped(self):
        transport = Mock(send_text=AsyncMock(side_effect=[TransportError("boom"), None]))
        analytics = Mock(due_for_renewal=AsyncMock(return_value=[_account(), _account(number="3311111111")]))

        with patch("streamdesk.services.alert_service.alert_warning", return_value=True) as alert:
            result = asyncio.run(notify_due_accounts(transport, analytics, pause_seconds=0))

        assert result == {"count": 2, "sent": 1}
        alert.assert_called_once()
        assert alert.call_args[0][1]["failed"] == 1
        assert alert.call_args[0][1]["numbers"] == "3312345678"


class TestNotifyExpiredAccounts:
    def test_filters_by_platform(self):
        transport = FakeTransport()
        analytics = Mock(expired_accounts=AsyncMock(return_value=[_account(days_left=0)]))

        result = asyncio.run(notify_expired_accounts(transport, analytics, limit=5, platform="Netflix", pause_seconds=0))

        analytics.expired_accounts.assert_awaited_once_with(5, "Netflix")
        assert result == {"count": 1, "sent": 1}
