# groupplan/conftest.py
from datetime import datetime, timezone

import pytest
from fastapi.testclient import TestClient
from sqlalchemy.orm import sessionmaker

from groupplan.core.config import AppConfig
from groupplan.core.database import build_engine, get_db, metadata
from groupplan.features.plans.repository import PlanRepository
from groupplan.features.plans.service import Planner
from groupplan.features.users.repository import UserRepository
from groupplan.main import create_app


def unix(year: int, month: int, day: int, hour: int = 0, minute: int = 0) -> int:
    """UTC wall-clock time as a unix timestamp."""
    return int(datetime(year, month, day, hour, minute, tzinfo=timezone.utc).timestamp())


@pytest.fixture
def to_unix():
    return unix


@pytest.fixture
def engine():
    """Fresh in-memory SQLite database per test."""
    engine = build_engine("sqlite:///:memory:")
    metadata.create_all(engine)
    yield engine
    engine.dispose()


@pytest.fixture
def session_factory(engine):
    return sessionmaker(bind=engine, autocommit=False, autoflush=False)


@pytest.fixture
def db_session(session_factory):
    session = session_factory()
    UserRepository(session).seed_providers()
    yield session
    session.close()


@pytest.fixture
def user_repository(db_session):
    return UserRepository(db_session)


@pytest.fixture
def plan_repository(db_session):
    return PlanRepository(db_session)


@pytest.fixture
def planner(plan_repository):
    return Planner(plan_repository)


@pytest.fixture
def make_user(user_repository):
    def _make(email: str = "owner@example.com", name: str = "Owner", avatar_url=None):
        return user_repository.get_or_create_user(email, name, avatar_url)
    return _make


@pytest.fixture
def app_config():
    return AppConfig(
        hostname="groupplan.test",
        discord_key="discord-client-id",
        discord_secret="discord-client-secret",
        session_secret="test-session-secret-0123456789abcdef",
    )


@pytest.fixture
def app(app_config, session_factory, db_session):
    application = create_app(app_config)

    def override_get_db():
        db = session_factory()
        try:
            yield db
        finally:
            db.close()

    application.dependency_overrides[get_db] = override_get_db
    yield application
    application.dependency_overrides.clear()


@pytest.fixture
def client(app):
    return TestClient(app)


@pytest.fixture
def auth_headers(app):
    """Authorization header carrying a freshly issued session for `user`."""
    def _headers(user):
        token = app.state.session_issuer.issue(user)
        return {"Authorization": f"Bearer {token}"}
    return _headers
