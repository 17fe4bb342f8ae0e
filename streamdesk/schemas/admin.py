from typing import Optional

from pydantic import BaseModel


class HealthResponse(BaseModel):
    checked_at: str
    transport: str
    database: str
    guards: dict


class RenewalReminderRequest(BaseModel):
    days: int = 3
    limit: int = 50
    platform: Optional[str] = None
    dry_run: bool = False


class ExpiredReminderRequest(BaseModel):
    limit: int = 50
    platform: Optional[str] = None
    dry_run: bool = False


class ReminderResponse(BaseModel):
    count: int
    sent: int
