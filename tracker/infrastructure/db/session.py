"""
Tracker database access: engine, sessions and the readiness check.

Request handlers get a session through get_db; the reminder scheduler opens
its own sessions from get_session_factory for each job run.
"""
import psycopg
from sqlalchemy import create_engine
from sqlalchemy.orm import DeclarativeBase, sessionmaker, Session

from tracker.config import get_settings


class Base(DeclarativeBase):
    """Parent of the tracker tables (users, goals, tasks, habits, notes)"""
    pass


# Built on first use so importing models never needs DATABASE_URL
_engine = None
_SessionLocal = None


def get_engine():
    """Engine for DATABASE_URL; pre-ping drops connections Postgres has closed"""
    global _engine
    if _engine is None:
        _engine = create_engine(get_settings().get_sqlalchemy_url(), pool_pre_ping=True)
    return _engine


def get_session_factory():
    """
    Session factory shared by API requests and scheduled reminder jobs.

    autoflush is off; use cases commit explicitly after validation.
    """
    global _SessionLocal
    if _SessionLocal is None:
        _SessionLocal = sessionmaker(bind=get_engine(), autoflush=False, autocommit=False)
    return _SessionLocal


def get_db() -> Session:
    """
    One session per API request, closed when the response is done.

    Usage:
        @router.get("/api/notes")
        def list_notes(db: Session = Depends(get_db)):
            ...
    """
    db = get_session_factory()()
    try:
        yield db
    finally:
        db.close()


def check_db_connection() -> None:
    """
    Backs GET /ready: one round trip over a plain psycopg connection,
    outside the engine pool.

    Raises:
        psycopg.OperationalError: if the database is unreachable
    """
    with psycopg.connect(get_settings().DATABASE_URL, connect_timeout=3) as conn:
        with conn.cursor() as cur:
            cur.execute("SELECT 1;")
            cur.fetchone()
