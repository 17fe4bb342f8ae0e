import asyncio

from sqlalchemy import create_engine
from sqlalchemy.orm import declarative_base, sessionmaker

from streamdesk.config import settings

engine = create_engine(settings.database_url, pool_pre_ping=True, pool_recycle=3600)
SessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine)

Base = declarative_base()


def get_db():
    db = SessionLocal()
    try:
        yield db
    finally:
        db.close()


class SessionQueries:
    """Runs blocking ORM queries in a worker thread, one session per call."""

    def __init__(self, session_factory=SessionLocal):
        self._session_factory = session_factory

    def _in_session(self, query, *args):
        db = self._session_factory()
        try:
            return query(db, *args)
        finally:
            db.close()

    async def _run(self, query, *args):
        return await asyncio.to_thread(self._in_session, query, *args)
