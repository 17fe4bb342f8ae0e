"""Renewal and expiry notices sent straight to customers."""

import asyncio
from typing import Optional

from streamdesk.logging_config import get_logger
from streamdesk.services import alert_service
from streamdesk.services.analytics_service import AnalyticsService
from streamdesk.services.phone import jid_from_local
from streamdesk.services.transport.base import MessagingTransport, TransportError

logger = get_logger("reminder_service")

SEND_PAUSE_SECONDS = 0.4


def _plural(count: int, singular: str, plural: Optional[str] = None) -> str:
    return f"{count} {singular if count == 1 else (plural or singular + 's')}"


def _ends_on(row) -> str:
    return row.ends_on.strftime("%Y-%m-%d") if row.ends_on else ""


def renewal_message(row) -> str:
    return "\n".join(
        [
            f"⏳ Hola {row.name or '👋'}",
            f"Tu *{row.platform or 'tu servicio'}* vence el *{_ends_on(row)}*",
            f"Te quedan *{_plural(int(row.days_left or 0), 'día')}*.",
            "Si quieres renovar, responde por aquí y te ayudamos. 🙌",
        ]
    )


def expired_message(row) -> str:
    return "\n".join(
        [
            f"❌ Hola {row.name or '👋'}",
            f"Tu *{row.platform or 'tu servicio'}* finalizó el *{_ends_on(row)}*.",
            "¿Deseas reactivarlo? Escríbenos por aquí y lo vemos. 🔁",
        ]
    )


async def _broadcast(transport: MessagingTransport, rows, build_message, kind: str, pause_seconds: float) -> int:
    sent = 0
    failed = []
    for row in rows:
        try:
            await transport.send_text(jid_from_local(row.number), build_message(row))
            sent += 1
        except TransportError as e:
            logger.error(f"Reminder ({kind}) failed: {e}", extra={"context": {"number": row.number}})
            failed.append(row.number)
            continue
        if pause_seconds:
            await asyncio.sleep(pause_seconds)
    logger.info(f"Reminders ({kind}) sent", extra={"context": {"sent": sent, "total": len(rows)}})
    if failed:
        await alert_service.notify(
            alert_service.alert_warning,
            f"Reminders ({kind}) not delivered",
            {"failed": len(failed), "total": len(rows), "numbers": ", ".join(str(number) for number in failed[:10])},
        )
    return sent


async def notify_due_accounts(
    transport: MessagingTransport,
    analytics: AnalyticsService,
    days: int = 3,
    limit: int = 50,
    platform: Optional[str] = None,
    dry_run: bool = False,
    pause_seconds: float = SEND_PAUSE_SECONDS,
) -> dict:
    rows = await analytics.due_for_renewal(days, limit, platform)
    logger.info(
        "Accounts due for renewal",
        extra={"context": {"days": days, "limit": limit, "platform": platform, "count": len(rows)}},
    )
    if dry_run:
        return {"count": len(rows), "sent": 0}
    sent = await _broadcast(transport, rows, renewal_message, "renewal", pause_seconds)
    return {"count": len(rows), "sent": sent}


async def notify_expired_accounts(
    transport: MessagingTransport,
    analytics: AnalyticsService,
    limit: int = 50,
    platform: Optional[str] = None,
    dry_run: bool = False,
    pause_seconds: float = SEND_PAUSE_SECONDS,
) -> dict:
    rows = await analytics.expired_accounts(limit, platform)
    logger.info("Expired accounts", extra={"context": {"limit": limit, "platform": platform, "count": len(rows)}})
    if dry_run:
        return {"count": len(rows), "sent": 0}
    sent = await _broadcast(transport, rows, expired_message, "expired", pause_seconds)
    return {"count": len(rows), "sent": sent}
