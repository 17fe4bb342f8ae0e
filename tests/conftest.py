from types import SimpleNamespace
from unittest.mock import AsyncMock, Mock

import pytest

from streamdesk.config import Settings
from streamdesk.services.orchestrator import ConversationOrchestrator
from streamdesk.services.transport.base import ConnectionStatus, MessagingTransport, TransportError
from streamdesk.services.whitelist_service import WhitelistService

CUSTOMER_JID = "5213312345678@s.whatsapp.net"
CUSTOMER_NUMBER = "3312345678"
ADMIN_JID = "5213300000001@s.whatsapp.net"
ADMIN_NUMBER = "3300000001"
STRANGER_JID = "5219999999999@s.whatsapp.net"


class FakeClock:
    """Manually advanced millisecond clock."""

    def __init__(self, start: float = 1_000_000.0):
        self.now = start

    def __call__(self) -> float:
        return self.now

    def advance(self, ms: float) -> None:
        self.now += ms


class FakeTransport(MessagingTransport):
    def __init__(self):
        super().__init__()
        self.sent: list[tuple[str, str, object]] = []
        self.presence: list[tuple[str, str]] = []
        self.fail_sends = False
        self.connect_calls = 0

    async def connect(self) -> ConnectionStatus:
        self.connect_calls += 1
        self.status = ConnectionStatus.OPEN
        return self.status

    async def send_text(self, jid, text):
        if self.fail_sends:
            raise TransportError("send failed")
        self.sent.append(("text", jid, text))

    async def send_image(self, jid, image, caption=None):
        if self.fail_sends:
            raise TransportError("send failed")
        self.sent.append(("image", jid, image))

    async def send_video(self, jid, path, caption=None):
        if self.fail_sends:
            raise TransportError("send failed")
        self.sent.append(("video", jid, path))

    async def send_presence(self, jid, state):
        self.presence.append((jid, state.value))

    def texts(self, jid: str | None = None) -> list[str]:
        return [payload for kind, to, payload in self.sent if kind == "text" and (jid is None or to == jid)]

    def clear(self) -> None:
        self.sent.clear()


def account_row(**overrides):
    values = {
        "number": CUSTOMER_NUMBER,
        "name": "Ana",
        "platform": "Netflix",
        "email": "ana@mail.com",
        "password": "secreta",
        "profile": "Perfil 1",
        "pin": "1234",
        "days_left": 12,
        "ends_on": None,
    }
    values.update(overrides)
    return SimpleNamespace(**values)


def code_row(mail="ana@mail.com", url="4821"):
    return SimpleNamespace(mail=mail, url=url)


@pytest.fixture
def mock_env(monkeypatch):
    """Set test environment variables."""
    monkeypatch.setenv("DATABASE_URL", "sqlite:///:memory:")
    monkeypatch.setenv("CHATFLOW_TOKEN", "test-token")
    monkeypatch.setenv("CHATFLOW_INSTANCE_ID", "test-instance")
    monkeypatch.setenv("MEDIA_SIGNING_SECRET", "test-secret")


@pytest.fixture
def clock():
    return FakeClock()


@pytest.fixture
def transport():
    return FakeTransport()


@pytest.fixture
def test_settings(tmp_path):
    return Settings(
        _env_file=None,
        flow_delay_scale=0,
        admin_numbers=f"{ADMIN_NUMBER}  # ops",
        menu_image_path=str(tmp_path / "missing-menu.png"),
        tutorial_video_path=str(tmp_path / "missing-tutorial.mp4"),
        screenshots_dir=str(tmp_path / "screenshots"),
    )


@pytest.fixture
def repository():
    repo = Mock()
    repo.customer_name = AsyncMock(return_value="Ana")
    repo.account_data = AsyncMock(return_value=[account_row()])
    repo.emails_for_service = AsyncMock(return_value=["ana@mail.com"])
    repo.codes_for_email = AsyncMock(return_value=[code_row()])
    repo.whitelist_numbers = AsyncMock(return_value=[CUSTOMER_NUMBER])
    return repo


@pytest.fixture
def analytics():
    service = Mock()
    service.ping = AsyncMock(return_value=True)
    service.general_summary = AsyncMock(
        return_value={
            "total": 3,
            "emails": 3,
            "unique_emails": 2,
            "passwords": 3,
            "with_pin": 1,
            "active": 2,
            "expired": 1,
            "platforms": [("Netflix", 2), ("PrimeVideo", 1)],
        }
    )
    return service


@pytest.fixture
def automation():
    return Mock(verify_tv_code=AsyncMock())


@pytest.fixture
def orchestrator(transport, repository, automation, analytics, test_settings, clock):
    whitelist = WhitelistService(repository.whitelist_numbers, test_settings.whitelist_cache_ttl_ms, clock)
    return ConversationOrchestrator(
        transport=transport,
        repository=repository,
        automation=automation,
        whitelist=whitelist,
        analytics=analytics,
        config=test_settings,
        clock=clock,
    )
