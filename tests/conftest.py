"""
Pytest fixtures for testing
"""
import pytest
from sqlalchemy import create_engine, JSON
from sqlalchemy.orm import sessionmaker, Session
from sqlalchemy.pool import StaticPool
from sqlalchemy.dialects.postgresql import JSONB

from fintrack.infrastructure.db.session import Base
from fintrack.infrastructure.db.models import User


@pytest.fixture
def db_engine():
    """In-memory SQLite engine for tests, with JSONB→JSON mapping.

    StaticPool keeps one connection, so TestClient worker threads see the
    same database as the test.
    """
    engine = create_engine(
        "sqlite:///:memory:",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )

    # SQLite doesn't support JSONB, remap to JSON for tests
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
def sample_user_id(db_session):
    """Owner of the rows a test creates"""
    user = User(email="owner@example.com", password_hash="x")
    db_session.add(user)
    db_session.commit()
    return user.id


@pytest.fixture
def other_user_id(db_session):
    """A second user, for ownership checks"""
    user = User(email="other@example.com", password_hash="x")
    db_session.add(user)
    db_session.commit()
    return user.id
