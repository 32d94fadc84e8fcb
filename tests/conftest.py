# tests/conftest.py

import os

# The lifespan must not start real background jobs under test
os.environ["SCHEDULER_ENABLED"] = "false"

import pytest
from starlette.testclient import TestClient
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

from app.main import app
from app.api import deps
from app.db.session import get_db
from app.models import Base
from app.schemas.token import TokenPayload


# --- Test Database Setup ---
# One in-memory SQLite database per test; StaticPool keeps the single
# connection alive across sessions.
@pytest.fixture(scope="function")
def engine():
    engine = create_engine(
        "sqlite://",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    Base.metadata.create_all(bind=engine)
    yield engine
    Base.metadata.drop_all(bind=engine)
    engine.dispose()


@pytest.fixture(scope="function")
def session_factory(engine):
    return sessionmaker(autocommit=False, autoflush=False, bind=engine)


@pytest.fixture(scope="function")
def db_session(session_factory):
    session = session_factory()
    yield session
    session.close()


# --- Mock Dependencies Setup ---
def override_get_current_user():
    return TokenPayload(sub="user_123", name="Test User", role="user", exp=9999999999)


def override_get_current_admin():
    return TokenPayload(sub="admin_1", name="Shop Admin", role="admin", exp=9999999999)


# --- Test Client Fixtures ---
@pytest.fixture(scope="function")
def test_client(db_session):
    """
    Provides a TestClient on the per-test database with authentication mocked.
    """

    def override_get_db():
        yield db_session

    app.dependency_overrides[get_db] = override_get_db
    app.dependency_overrides[deps.get_current_user] = override_get_current_user
    app.dependency_overrides[deps.get_current_admin] = override_get_current_admin

    with TestClient(app) as client:
        yield client

    app.dependency_overrides.clear()


@pytest.fixture(scope="function")
def anonymous_client(db_session):
    """TestClient with the real authentication dependencies."""

    def override_get_db():
        yield db_session

    app.dependency_overrides[get_db] = override_get_db

    with TestClient(app) as client:
        yield client

    app.dependency_overrides.clear()
