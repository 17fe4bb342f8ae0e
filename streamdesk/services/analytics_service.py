"""Read-only reports over CLIENTES / codes for the admin commands."""

import re
from datetime import date, timedelta
from typing import Optional

from sqlalchemy import case, func, text
from sqlalchemy.orm import Session

from streamdesk.database import SessionQueries
from streamdesk.models import ClientAccount, Code

SHORT_CODE = re.compile(r"^\d{4}$")


class NotFoundError(LookupError):
    pass


def _non_blank(column):
    return func.coalesce(func.trim(column), "") != ""


def list_platforms(db: Session) -> list[str]:
    name = func.trim(ClientAccount.platform)
    rows = db.query(name).filter(_non_blank(ClientAccount.platform)).distinct().order_by(name).all()
    return [row[0] for row in rows]


def list_code_services(db: Session) -> list[str]:
    name = func.trim(Code.service)
    rows = db.query(name).filter(_non_blank(Code.service)).distinct().order_by(name).all()
    return [row[0] for row in rows]


def resolve_platform(db: Session, text: Optional[str]) -> Optional[str]:
    """Case-insensitive exact match first, then the first partial match."""
    return _resolve(db, ClientAccount.platform, text)


def resolve_code_service(db: Session, text: Optional[str]) -> Optional[str]:
    return _resolve(db, Code.service, text)


def _resolve(db: Session, column, text: Optional[str]) -> Optional[str]:
    if not text:
        return None
    query = text.strip().lower()
    normalized = func.lower(func.trim(column))
    exact = db.query(column).filter(normalized == query).first()
    if exact:
        return exact[0]
    partial = db.query(column).filter(normalized.like(f"%{query}%")).order_by(column.asc()).first()
    return partial[0] if partial else None


def _require_platform(db: Session, text: str) -> str:
    platform = resolve_platform(db, text)
    if not platform:
        raise NotFoundError(f'Plataforma no encontrada: "{text}"')
    return platform


def _client_counters():
    return [
        func.count(ClientAccount.id),
        func.count(ClientAccount.email),
        func.count(func.distinct(ClientAccount.email)),
        func.sum(case((_non_blank(ClientAccount.password), 1), else_=0)),
        func.sum(case((_non_blank(ClientAccount.pin), 1), else_=0)),
        func.sum(case((func.coalesce(ClientAccount.days_left, 0) > 0, 1), else_=0)),
        func.sum(case((func.coalesce(ClientAccount.days_left, 0) <= 0, 1), else_=0)),
    ]


def _counters_to_dict(row) -> dict:
    total, emails, unique_emails, passwords, with_pin, active, expired = row
    return {
        "total": total or 0,
        "emails": emails or 0,
        "unique_emails": unique_emails or 0,
        "passwords": int(passwords or 0),
        "with_pin": int(with_pin or 0),
        "active": int(active or 0),
        "expired": int(expired or 0),
    }


def general_summary(db: Session) -> dict:
    summary = _counters_to_dict(db.query(*_client_counters()).one())
    accounts = func.count(ClientAccount.id)
    per_platform = (
        db.query(ClientAccount.platform, accounts)
        .filter(_non_blank(ClientAccount.platform))
        .group_by(ClientAccount.platform)
        .order_by(accounts.desc())
        .all()
    )
    summary["platforms"] = [(platform, count) for platform, count in per_platform]
    return summary


def platform_summary(db: Session, text: str) -> dict:
    platform = _require_platform(db, text)
    summary = _counters_to_dict(db.query(*_client_counters()).filter(ClientAccount.platform == platform).one())
    summary["platform"] = platform
    return summary


def code_summary(db: Session, text: str) -> Optional[dict]:
    service = resolve_code_service(db, text)
    if not service:
        return None
    rows = db.query(Code.mail, Code.url).filter(Code.service == service).all()
    return {
        "service": service,
        "total": len(rows),
        "codes_in_mail": sum(1 for mail, _ in rows if SHORT_CODE.match(mail or "")),
        "codes_in_url": sum(1 for _, url in rows if SHORT_CODE.match(url or "")),
        "links_in_url": sum(1 for _, url in rows if url and not SHORT_CODE.match(url)),
        "distinct_mails": len({mail for mail, _ in rows if mail}),
    }


def repeated_credentials(db: Session, min_count: int = 2, limit: int = 30, platform_text: Optional[str] = None) -> list[dict]:
    times = func.count(ClientAccount.id)
    query = db.query(ClientAccount.platform, ClientAccount.email, ClientAccount.password, times).filter(
        _non_blank(ClientAccount.email)
    )
    if platform_text:
        query = query.filter(ClientAccount.platform == _require_platform(db, platform_text))
    rows = (
        query.group_by(ClientAccount.platform, ClientAccount.email, ClientAccount.password)
        .having(times >= min_count)
        .order_by(times.desc(), ClientAccount.platform.asc(), ClientAccount.email.asc())
        .limit(limit)
        .all()
    )
    return [{"platform": p, "email": e, "password": pw, "times": n} for p, e, pw, n in rows]


def recent_codes(db: Session, text: str, limit: int = 10) -> tuple[str, list[Code]]:
    service = resolve_code_service(db, text)
    if not service:
        raise NotFoundError(f'Servicio (codes) no encontrado: "{text}"')
    rows = (
        db.query(Code)
        .filter(Code.service == service)
        .order_by(Code.created_at.desc(), Code.id.desc())
        .limit(limit)
        .all()
    )
    return service, rows


def due_for_renewal(db: Session, days: int = 3, limit: int = 30, platform: Optional[str] = None) -> list[ClientAccount]:
    query = db.query(ClientAccount).filter(func.coalesce(ClientAccount.days_left, 0).between(1, days))
    if platform:
        query = query.filter(ClientAccount.platform == platform)
    return query.order_by(ClientAccount.days_left.asc(), ClientAccount.ends_on.asc()).limit(limit).all()


def expired_accounts(db: Session, limit: int = 30, platform: Optional[str] = None) -> list[ClientAccount]:
    query = db.query(ClientAccount).filter(func.coalesce(ClientAccount.days_left, 0) <= 0)
    if platform:
        query = query.filter(ClientAccount.platform == platform)
    return query.order_by(ClientAccount.ends_on.desc(), ClientAccount.number.asc()).limit(limit).all()


def ending_on(db: Session, day: date, limit: int = 50) -> list[ClientAccount]:
    return (
        db.query(ClientAccount)
        .filter(ClientAccount.ends_on == day)
        .order_by(ClientAccount.platform.asc(), ClientAccount.number.asc())
        .limit(limit)
        .all()
    )


def ended_before(db: Session, day: date, limit: int = 50) -> list[ClientAccount]:
    return (
        db.query(ClientAccount)
        .filter(ClientAccount.ends_on < day)
        .order_by(ClientAccount.ends_on.desc(), ClientAccount.platform.asc())
        .limit(limit)
        .all()
    )


def emails_by_platform(db: Session, text: str, limit: int = 100) -> tuple[str, list[tuple[str, int]]]:
    platform = _require_platform(db, text)
    times = func.count(ClientAccount.id)
    rows = (
        db.query(ClientAccount.email, times)
        .filter(ClientAccount.platform == platform, _non_blank(ClientAccount.email))
        .group_by(ClientAccount.email)
        .order_by(times.desc(), ClientAccount.email.asc())
        .limit(limit)
        .all()
    )
    return platform, [(email, count) for email, count in rows]


def find_by_number(db: Session, number: str, platform_text: Optional[str] = None, limit: int = 50) -> list[ClientAccount]:
    query = db.query(ClientAccount).filter(ClientAccount.number == number)
    if platform_text:
        query = query.filter(ClientAccount.platform == _require_platform(db, platform_text))
    return query.order_by(ClientAccount.platform.asc()).limit(limit).all()


def find_by_email(db: Session, text: str, limit: int = 50) -> list[ClientAccount]:
    return (
        db.query(ClientAccount)
        .filter(ClientAccount.email.like(f"%{text}%"))
        .order_by(ClientAccount.email.asc())
        .limit(limit)
        .all()
    )


def _dashboard_counters(today: date):
    return [
        func.count(ClientAccount.id),
        func.sum(case((ClientAccount.ends_on >= today, 1), else_=0)),
        func.sum(case((ClientAccount.ends_on == today + timedelta(days=1), 1), else_=0)),
        func.sum(case((ClientAccount.ends_on < today, 1), else_=0)),
    ]


def dashboard(db: Session, today: Optional[date] = None) -> dict:
    today = today or date.today()
    total, active, due, expired = db.query(*_dashboard_counters(today)).one()
    rows = (
        db.query(ClientAccount.platform, *_dashboard_counters(today))
        .filter(_non_blank(ClientAccount.platform))
        .group_by(ClientAccount.platform)
        .order_by(func.count(ClientAccount.id).desc(), ClientAccount.platform.asc())
        .all()
    )
    return {
        "total": total or 0,
        "active": int(active or 0),
        "due_tomorrow": int(due or 0),
        "expired": int(expired or 0),
        "platforms": [
            {"platform": p, "total": t or 0, "active": int(a or 0), "due_tomorrow": int(d or 0), "expired": int(e or 0)}
            for p, t, a, d, e in rows
        ],
    }


def ping(db: Session) -> bool:
    return db.execute(text("SELECT 1")).scalar() == 1


class AnalyticsService(SessionQueries):
    async def platforms(self) -> list[str]:
        return await self._run(list_platforms)

    async def code_services(self) -> list[str]:
        return await self._run(list_code_services)

    async def general_summary(self) -> dict:
        return await self._run(general_summary)

    async def platform_summary(self, text: str) -> dict:
        return await self._run(platform_summary, text)

    async def code_summary(self, text: str) -> Optional[dict]:
        return await self._run(code_summary, text)

    async def repeated_credentials(self, min_count: int, limit: int, platform_text: Optional[str] = None) -> list[dict]:
        return await self._run(repeated_credentials, min_count, limit, platform_text)

    async def recent_codes(self, text: str, limit: int) -> tuple[str, list[Code]]:
        return await self._run(recent_codes, text, limit)

    async def due_for_renewal(self, days: int, limit: int, platform: Optional[str] = None) -> list[ClientAccount]:
        return await self._run(due_for_renewal, days, limit, platform)

    async def expired_accounts(self, limit: int, platform: Optional[str] = None) -> list[ClientAccount]:
        return await self._run(expired_accounts, limit, platform)

    async def ending_on(self, day: date, limit: int) -> list[ClientAccount]:
        return await self._run(ending_on, day, limit)

    async def ended_before(self, day: date, limit: int) -> list[ClientAccount]:
        return await self._run(ended_before, day, limit)

    async def emails_by_platform(self, text: str, limit: int) -> tuple[str, list[tuple[str, int]]]:
        return await self._run(emails_by_platform, text, limit)

    async def find_by_number(self, number: str, platform_text: Optional[str], limit: int = 50) -> list[ClientAccount]:
        return await self._run(find_by_number, number, platform_text, limit)

    async def find_by_email(self, text: str, limit: int = 50) -> list[ClientAccount]:
        return await self._run(find_by_email, text, limit)

    async def dashboard(self) -> dict:
        return await self._run(dashboard)

    async def ping(self) -> bool:
        return await self._run(ping)
