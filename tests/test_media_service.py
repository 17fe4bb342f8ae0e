import asyncio
from unittest.mock import AsyncMock

from streamdesk.services.media_service import (
    MSG_VIDEO_MISSING,
    file_info,
    send_image_with_retry,
    send_video_with_retry,
)
from streamdesk.services.transport.base import TransportError

from tests.conftest import FakeTransport

JID = "5213312345678@s.whatsapp.net"


class TestFileInfo:
    def test_existing_file(self, tmp_path):
        video = tmp_path / "tutorial.mp4"
        video.write_bytes(b"x" * 2048)
        info = file_info(str(video))
        assert info.exists
        assert info.size == 2048
        assert info.mtime is not None

    def test_missing_file(self, tmp_path):
        assert file_info(str(tmp_path / "nope.mp4")).exists is False


class TestSendWithRetry:
    def test_missing_video_notifies(self, tmp_path):
        transport = FakeTransport()
        assert asyncio.run(send_video_with_retry(transport, JID, str(tmp_path / "nope.mp4"))) is False
        assert transport.texts() == [MSG_VIDEO_MISSING]

    def test_retries_until_success(self, tmp_path):
        image = tmp_path / "menu.png"
        image.write_bytes(b"png")
        transport = FakeTransport()
        transport.send_image = AsyncMock(side_effect=[TransportError("timeout"), None])

        assert asyncio.run(send_image_with_retry(transport, JID, str(image), attempts=3, delay_seconds=0)) is True
        assert transport.send_image.await_count == 2

    def test_gives_up_after_attempts(self, tmp_path):
        video = tmp_path / "tutorial.mp4"
        video.write_bytes(b"mp4")
        transport = FakeTransport()
        transport.send_video = AsyncMock(side_effect=TransportError("timeout"))

        assert asyncio.run(send_video_with_retry(transport, JID, str(video), attempts=2, delay_seconds=0)) is False
        assert transport.send_video.await_count == 2
