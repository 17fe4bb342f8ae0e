import re
from typing import Optional

from sqlalchemy import func, or_
from sqlalchemy.orm import Session

from streamdesk.database import SessionQueries
from streamdesk.logging_config import get_logger
from streamdesk.models import ClientAccount, Code

logger = get_logger("account_service")


def _strip_mobile_prefix(number: str) -> str:
    return re.sub(r"^521", "", number or "")


def get_customer_name(db: Session, number: str) -> Optional[str]:
    """First registered name for a customer number."""
    account = db.query(ClientAccount).filter(ClientAccount.number == _strip_mobile_prefix(number)).first()
    return account.name if account else None


def get_account_data(db: Session, number: str) -> list[ClientAccount]:
    return db.query(ClientAccount).filter(ClientAccount.number == _strip_mobile_prefix(number)).all()


def get_emails_for_service(db: Session, number: str, service: str) -> list[str]:
    """Distinct e-mails of a number on a platform (exact or partial platform name)."""
    email = func.trim(ClientAccount.email)
    rows = (
        db.query(email)
        .filter(
            ClientAccount.number == _strip_mobile_prefix(number),
            ClientAccount.email.isnot(None),
            ClientAccount.email != "",
            or_(ClientAccount.platform == service, ClientAccount.platform.like(f"%{service}%")),
        )
        .distinct()
        .all()
    )
    return [row[0] for row in rows]


def get_codes_for_email(db: Session, service: str, email: str) -> list[Code]:
    return db.query(Code).filter(Code.service == service, Code.mail == email).all()


def get_whitelist_numbers(db: Session) -> list[str]:
    rows = db.query(ClientAccount.number).filter(ClientAccount.number.isnot(None), ClientAccount.number != "").all()
    numbers = [str(row[0]).strip() for row in rows]
    return [number for number in numbers if number.isdigit()]


def get_latest_unused_code(db: Session, email: str, service: str) -> Optional[str]:
    code = (
        db.query(Code)
        .filter(Code.mail == email, Code.service == service, Code.used.is_(False))
        .order_by(Code.created_at.desc())
        .first()
    )
    return str(code.url).strip() if code and code.url else None


def mark_code_used(db: Session, email: str, code: str) -> int:
    updated = (
        db.query(Code)
        .filter(Code.mail == email, Code.url == code)
        .update({Code.used: True}, synchronize_session=False)
    )
    db.commit()
    logger.info(f"Code marked as used: email={email}, rows={updated}")
    return updated


class AccountRepository(SessionQueries):
    """Async façade over the account queries.

    Each call opens its own session and runs in a worker thread, so a slow
    query only suspends the conversation that issued it.
    """

    async def customer_name(self, number: str) -> Optional[str]:
        return await self._run(get_customer_name, number)

    async def account_data(self, number: str) -> list[ClientAccount]:
        return await self._run(get_account_data, number)

    async def emails_for_service(self, number: str, service: str) -> list[str]:
        return await self._run(get_emails_for_service, number, service)

    async def codes_for_email(self, service: str, email: str) -> list[Code]:
        return await self._run(get_codes_for_email, service, email)

    async def whitelist_numbers(self) -> list[str]:
        return await self._run(get_whitelist_numbers)

    def latest_unused_code(self, email: str, service: str) -> Optional[str]:
        """Blocking variant for callers already off the event loop."""
        return self._in_session(get_latest_unused_code, email, service)

    def mark_code_used(self, email: str, code: str) -> int:
        return self._in_session(mark_code_used, email, code)
