import asyncio
import uuid
from pathlib import Path
from typing import Optional

import httpx

from streamdesk.config import Settings, settings as default_settings
from streamdesk.logging_config import get_logger
from streamdesk.services.media_urls import build_signed_media_url, media_root, relative_media_path
from streamdesk.services.transport.base import (
    LOGGED_OUT_STATUS,
    ConnectionStatus,
    MessagingTransport,
    PresenceState,
    TransportError,
)

logger = get_logger("chatflow_transport")

OUTBOX_DIR = "outbox"


class ChatFlowTransport(MessagingTransport):
    """WhatsApp delivery through the ChatFlow HTTP API.

    ChatFlow only accepts media by URL, so local files (and screenshot bytes,
    which are first written to the outbox under the media dir) are sent as
    signed links served by this app.
    """

    def __init__(self, config: Settings = default_settings):
        super().__init__()
        self.config = config

    async def connect(self) -> ConnectionStatus:
        if not self.config.chatflow_token or not self.config.chatflow_instance_id:
            logger.error("ChatFlow token or instance id missing")
            self._mark_disconnected(LOGGED_OUT_STATUS)
            raise TransportError("missing_chatflow_token", status_code=LOGGED_OUT_STATUS)
        self.status = ConnectionStatus.OPEN
        logger.info("ChatFlow transport ready", extra={"context": {"instance_id": self.config.chatflow_instance_id[:20]}})
        return self.status

    def _base_params(self, jid: str) -> dict:
        return {
            "token": self.config.chatflow_token,
            "instance_id": self.config.chatflow_instance_id,
            "jid": jid,
        }

    def _get(self, url: str, params: dict) -> httpx.Response:
        with httpx.Client(timeout=30.0) as client:
            return client.get(url, params=params)

    async def _request(self, url: str, params: dict) -> httpx.Response:
        if self.status == ConnectionStatus.LOGGED_OUT:
            raise TransportError("transport logged out", status_code=LOGGED_OUT_STATUS)
        try:
            response = await asyncio.to_thread(self._get, url, params)
        except httpx.HTTPError as e:
            logger.error(f"ChatFlow request failed: {e}", extra={"context": {"jid": params.get("jid")}})
            self._mark_disconnected(None)
            raise TransportError(str(e)) from e

        logger.info(
            f"ChatFlow response: status={response.status_code}, jid={params.get('jid')}, body={response.text[:200]}"
        )
        if response.status_code == LOGGED_OUT_STATUS:
            self._mark_disconnected(LOGGED_OUT_STATUS)
            raise TransportError("ChatFlow rejected credentials", status_code=LOGGED_OUT_STATUS)
        if response.status_code != 200:
            raise TransportError(f"ChatFlow returned {response.status_code}", status_code=response.status_code)
        if self.status != ConnectionStatus.OPEN:
            self.status = ConnectionStatus.OPEN
        return response

    async def send_text(self, jid: str, text: str) -> None:
        if not text:
            return
        params = self._base_params(jid)
        params["msg"] = text
        await self._request(self.config.chatflow_api_url, params)

    async def _send_media(self, jid: str, endpoint: str, url_param: str, path: str, caption: Optional[str]) -> None:
        relative = relative_media_path(path)
        if relative is None:
            raise TransportError(f"Media outside {self.config.media_dir}: {path}")
        media_url = build_signed_media_url(relative)
        if not media_url:
            raise TransportError("media signing not configured")

        params = self._base_params(jid)
        params[url_param] = media_url
        # ChatFlow rejects image/video requests without a non-empty caption.
        params["caption"] = caption.strip() if caption and caption.strip() else " "
        response = await self._request(f"{self.config.chatflow_media_base_url.rstrip('/')}/{endpoint}", params)
        try:
            payload = response.json()
        except ValueError as e:
            raise TransportError("ChatFlow media response is not JSON") from e
        if not payload.get("success"):
            raise TransportError(f"ChatFlow refused media: {payload}")

    def _write_outbox(self, data: bytes) -> str:
        outbox = media_root() / OUTBOX_DIR
        outbox.mkdir(parents=True, exist_ok=True)
        target = outbox / f"{uuid.uuid4().hex}.png"
        target.write_bytes(data)
        return str(target)

    async def send_image(self, jid: str, image: str | bytes, caption: Optional[str] = None) -> None:
        path = self._write_outbox(image) if isinstance(image, bytes) else image
        if not Path(path).is_file():
            raise TransportError(f"Image not found: {path}")
        await self._send_media(jid, "send-image", "imageurl", path, caption)

    async def send_video(self, jid: str, path: str, caption: Optional[str] = None) -> None:
        if not Path(path).is_file():
            raise TransportError(f"Video not found: {path}")
        await self._send_media(jid, "send-video", "videourl", path, caption)

    async def send_presence(self, jid: str, state: PresenceState) -> None:
        # No typing endpoint in the HTTP API; pacing delays still apply.
        logger.debug(f"presence {state.value} for {jid}")
