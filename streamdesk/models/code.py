from sqlalchemy import Boolean, Column, DateTime, Integer, Text

from streamdesk.database import Base


class Code(Base):
    """Sign-in code or access link scraped from a provider e-mail."""

    __tablename__ = "codes"

    id = Column(Integer, primary_key=True, autoincrement=True)
    service = Column(Text, nullable=False)
    mail = Column(Text)
    url = Column(Text)
    used = Column(Boolean, nullable=False, default=False)
    created_at = Column(DateTime)
