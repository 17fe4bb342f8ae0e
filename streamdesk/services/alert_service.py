"""Operator alerts delivered through a Telegram bot."""

import asyncio
from typing import Callable, Optional

import httpx

from streamdesk.config import settings
from streamdesk.logging_config import get_logger

logger = get_logger("alert_service")

TELEGRAM_API = "https://api.telegram.org"
LEVEL_EMOJI = {"INFO": "ℹ️", "WARNING": "⚠️", "ERROR": "❌", "CRITICAL": "🔥"}


def format_alert(level: str, message: str, context: Optional[dict] = None) -> str:
    text = f"{LEVEL_EMOJI.get(level, '📢')} *{level}* · streamdesk\n\n{message}"
    if context:
        lines = "\n".join(f"  {key}: {value}" for key, value in context.items())
        text += f"\n\n```\n{lines}\n```"
    return text


def send_alert(level: str, message: str, context: Optional[dict] = None) -> bool:
    """Send an alert to the operators' Telegram chat.

    Returns False when alerts are not configured or delivery fails; alerting
    never raises into the caller.
    """
    if not settings.alert_bot_token or not settings.alert_chat_id:
        logger.warning(f"Alert not configured: {level} - {message}")
        return False

    try:
        with httpx.Client(timeout=10) as client:
            response = client.post(
                f"{TELEGRAM_API}/bot{settings.alert_bot_token}/sendMessage",
                json={
                    "chat_id": settings.alert_chat_id,
                    "text": format_alert(level, message, context),
                    "parse_mode": "Markdown",
                },
            )
            return response.status_code == 200
    except httpx.HTTPError as e:
        logger.error(f"Failed to send alert: {e}")
        return False


def alert_error(message: str, context: Optional[dict] = None) -> bool:
    return send_alert("ERROR", message, context)


def alert_critical(message: str, context: Optional[dict] = None) -> bool:
    return send_alert("CRITICAL", message, context)


def alert_warning(message: str, context: Optional[dict] = None) -> bool:
    return send_alert("WARNING", message, context)


async def notify(alert: Callable[[str, Optional[dict]], bool], message: str, context: Optional[dict] = None) -> bool:
    """Run one of the blocking alert helpers in a worker thread."""
    return await asyncio.to_thread(alert, message, context)
