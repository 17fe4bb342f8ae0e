"""Signed public URLs for files under the media directory.

ChatFlow fetches images and videos by URL, so local files are exposed through
`/media/<path>?expires=<ts>&sig=<hmac>` and nothing else.
"""

import hashlib
import hmac
import time
from pathlib import Path
from typing import Optional
from urllib.parse import quote

from streamdesk.config import settings
from streamdesk.logging_config import get_logger

logger = get_logger("media_urls")


def normalize_media_path(path: str) -> str:
    normalized = (path or "").strip().lstrip("/")
    return normalized.replace("\\", "/")


def _sign(path: str, expires: int, secret: str) -> str:
    payload = f"{path}:{expires}".encode("utf-8")
    return hmac.new(secret.encode("utf-8"), payload, hashlib.sha256).hexdigest()


def media_root() -> Path:
    return Path(settings.media_dir).resolve()


def relative_media_path(path: str | Path) -> Optional[str]:
    """Path relative to the media root, or None when the file lives outside it."""
    target = Path(path).resolve()
    try:
        return target.relative_to(media_root()).as_posix()
    except ValueError:
        return None


def build_signed_media_url(relative_path: str, *, ttl_seconds: Optional[int] = None) -> Optional[str]:
    if not settings.media_signing_secret:
        logger.error("MEDIA_SIGNING_SECRET not configured")
        return None
    ttl = ttl_seconds if ttl_seconds is not None else settings.media_url_ttl_seconds
    expires = int(time.time()) + max(int(ttl), 60)
    normalized = normalize_media_path(relative_path)
    signature = _sign(normalized, expires, settings.media_signing_secret)
    return f"{settings.public_base_url.rstrip('/')}/media/{quote(normalized, safe='/')}?expires={expires}&sig={signature}"


def verify_signed_media_path(relative_path: str, expires: int, signature: str) -> bool:
    if not settings.media_signing_secret or not signature:
        return False
    if expires < int(time.time()):
        return False
    expected = _sign(normalize_media_path(relative_path), expires, settings.media_signing_secret)
    return hmac.compare_digest(expected, signature)
