import asyncio
from dataclasses import dataclass
from datetime import datetime
from pathlib import Path
from typing import Optional

from streamdesk.logging_config import get_logger
from streamdesk.services.transport.base import MessagingTransport, TransportError

logger = get_logger("media_service")

MSG_VIDEO_MISSING = "⚠️ No pude adjuntar el video ahora mismo."
MSG_IMAGE_MISSING = "⚠️ No pude adjuntar la imagen ahora mismo."
LARGE_VIDEO_MB = 16


@dataclass
class FileInfo:
    path: str
    exists: bool
    size: int = 0
    mtime: Optional[datetime] = None

    @property
    def size_mb(self) -> float:
        return round(self.size / 1024 / 1024, 1)


def file_info(path: str) -> FileInfo:
    target = Path(path).resolve()
    if not target.is_file():
        return FileInfo(path=str(target), exists=False)
    stat = target.stat()
    return FileInfo(path=str(target), exists=True, size=stat.st_size, mtime=datetime.fromtimestamp(stat.st_mtime))


async def _notify_missing(transport: MessagingTransport, jid: str, text: str) -> None:
    try:
        await transport.send_text(jid, text)
    except TransportError as e:
        logger.warning(f"Could not tell {jid} about missing media: {e}")


async def send_video_with_retry(
    transport: MessagingTransport,
    jid: str,
    path: str,
    caption: Optional[str] = None,
    attempts: int = 3,
    delay_seconds: float = 1.2,
) -> bool:
    info = file_info(path)
    if not info.exists:
        logger.error(f"Video not found: {info.path}")
        await _notify_missing(transport, jid, MSG_VIDEO_MISSING)
        return False
    if info.size_mb > LARGE_VIDEO_MB:
        logger.warning(f"Large video ({info.size_mb} MB) may fail to deliver")

    for attempt in range(1, attempts + 1):
        try:
            await transport.send_video(jid, path, caption)
            logger.info("Video sent", extra={"context": {"jid": jid, "attempt": attempt}})
            return True
        except TransportError as e:
            logger.error(f"Error sending video (attempt {attempt}): {e}")
            if attempt < attempts:
                await asyncio.sleep(delay_seconds)
    return False


async def send_image_with_retry(
    transport: MessagingTransport,
    jid: str,
    path: str,
    caption: Optional[str] = None,
    attempts: int = 3,
    delay_seconds: float = 0.8,
) -> bool:
    info = file_info(path)
    if not info.exists:
        logger.error(f"Image not found: {info.path}")
        await _notify_missing(transport, jid, MSG_IMAGE_MISSING)
        return False

    for attempt in range(1, attempts + 1):
        try:
            await transport.send_image(jid, path, caption)
            logger.info("Image sent", extra={"context": {"jid": jid, "attempt": attempt}})
            return True
        except TransportError as e:
            logger.error(f"Error sending image (attempt {attempt}): {e}")
            if attempt < attempts:
                await asyncio.sleep(delay_seconds)
    return False
