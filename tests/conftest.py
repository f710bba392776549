"""
Pytest fixtures for testing
"""
from datetime import datetime, timezone

import pytest
from fastapi.testclient import TestClient
from sqlalchemy import create_engine, JSON
from sqlalchemy.orm import sessionmaker, Session
from sqlalchemy.pool import StaticPool
from sqlalchemy.dialects.postgresql import JSONB

from tracker.auth import issue_token
from tracker.infrastructure.db.session import Base
from tracker.infrastructure.db.models import User


@pytest.fixture
def db_engine():
    """In-memory SQLite engine shared across threads (TestClient runs sync routes in a pool)"""
    engine = create_engine(
        "sqlite:///:memory:",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    # SQLite doesn't support JSONB - remap to JSON for tests
    for table in Base.metadata.tables.values():
        for col in table.columns:
            if isinstance(col.type, JSONB):
                col.type = JSON()
    Base.metadata.create_all(engine)
    yield engine
    engine.dispose()


@pytest.fixture
def session_factory(db_engine):
    return sessionmaker(bind=db_engine, autoflush=False, autocommit=False)


@pytest.fixture
def db_session(session_factory) -> Session:
    """Create database session for tests"""
    session = session_factory()
    try:
        yield session
    finally:
        session.rollback()
        session.close()


@pytest.fixture
def now():
    """Fixed clock: Wednesday 2026-03-11 10:00 UTC"""
    return datetime(2026, 3, 11, 10, 0, tzinfo=timezone.utc)


def make_user(db: Session, email: str = "alice@example.com", **fields) -> User:
    user = User(email=email, display_name=fields.pop("display_name", email.split("@")[0]), settings={}, **fields)
    db.add(user)
    db.commit()
    db.refresh(user)
    return user


@pytest.fixture
def user(db_session) -> User:
    return make_user(db_session)


@pytest.fixture
def other_user(db_session) -> User:
    return make_user(db_session, email="bob@example.com")


@pytest.fixture
def sample_user_id(user) -> int:
    return user.id


@pytest.fixture
def client(session_factory):
    """Test client with get_db bound to the in-memory engine"""
    from tracker.api.deps import get_db
    from tracker.main import create_app

    app = create_app(start_scheduler=False)

    def _get_test_db():
        db = session_factory()
        try:
            yield db
        finally:
            db.close()

    app.dependency_overrides[get_db] = _get_test_db
    return TestClient(app)


@pytest.fixture
def auth_headers(user) -> dict:
    return {"Authorization": f"Bearer {issue_token(user)}"}


@pytest.fixture
def other_headers(other_user) -> dict:
    return {"Authorization": f"Bearer {issue_token(other_user)}"}
