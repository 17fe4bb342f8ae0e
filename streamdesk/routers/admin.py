from typing import Optional

from fastapi import APIRouter, Depends, Header, HTTPException

from streamdesk.config import settings
from streamdesk.dependencies import get_analytics, get_orchestrator
from streamdesk.logging_config import get_logger
from streamdesk.schemas.admin import (
    ExpiredReminderRequest,
    HealthResponse,
    ReminderResponse,
    RenewalReminderRequest,
)
from streamdesk.services.analytics_service import AnalyticsService
from streamdesk.services.health_service import get_system_health
from streamdesk.services.orchestrator import ConversationOrchestrator
from streamdesk.services.reminder_service import notify_due_accounts, notify_expired_accounts

logger = get_logger("admin_router")

router = APIRouter(prefix="/admin", tags=["admin"])


def _require_admin_token(provided: Optional[str]) -> None:
    expected = settings.admin_token
    if not expected:
        raise HTTPException(status_code=500, detail="ADMIN_TOKEN not configured")
    if not provided or provided != expected:
        raise HTTPException(status_code=401, detail="Invalid admin token")


@router.get("/health", response_model=HealthResponse)
async def system_health(
    orchestrator: ConversationOrchestrator = Depends(get_orchestrator),
    analytics: AnalyticsService = Depends(get_analytics),
    x_admin_token: Optional[str] = Header(default=None, alias="X-Admin-Token"),
):
    _require_admin_token(x_admin_token)
    return await get_system_health(orchestrator, analytics)


@router.post("/reminders/renewals", response_model=ReminderResponse)
async def send_renewal_reminders(
    request: RenewalReminderRequest,
    orchestrator: ConversationOrchestrator = Depends(get_orchestrator),
    analytics: AnalyticsService = Depends(get_analytics),
    x_admin_token: Optional[str] = Header(default=None, alias="X-Admin-Token"),
):
    _require_admin_token(x_admin_token)
    result = await notify_due_accounts(
        orchestrator.transport,
        analytics,
        days=max(request.days, 1),
        limit=max(request.limit, 1),
        platform=request.platform,
        dry_run=request.dry_run,
    )
    logger.info("Renewal reminders triggered", extra={"context": result})
    return result


@router.post("/reminders/expired", response_model=ReminderResponse)
async def send_expired_reminders(
    request: ExpiredReminderRequest,
    orchestrator: ConversationOrchestrator = Depends(get_orchestrator),
    analytics: AnalyticsService = Depends(get_analytics),
    x_admin_token: Optional[str] = Header(default=None, alias="X-Admin-Token"),
):
    _require_admin_token(x_admin_token)
    result = await notify_expired_accounts(
        orchestrator.transport,
        analytics,
        limit=max(request.limit, 1),
        platform=request.platform,
        dry_run=request.dry_run,
    )
    logger.info("Expired reminders triggered", extra={"context": result})
    return result
