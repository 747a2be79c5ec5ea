"""Shared fixtures: an isolated in-memory database and a TestClient wired to it."""
import os
import tempfile

# Must be set before anything imports app.core.config
_bootstrap_dir = tempfile.mkdtemp(prefix="clinicdesk-tests-")
os.environ.setdefault("DATABASE_URL", f"sqlite:///{os.path.join(_bootstrap_dir, 'bootstrap.db')}")
os.environ.setdefault("SEED_DEMO_DATA", "false")
os.environ.setdefault("ADMIN_EMAIL", "admin@clinicdesk.test")
os.environ.setdefault("ADMIN_PASSWORD", "AdminPass123!")
os.environ.setdefault("UPLOAD_DIR", os.path.join(_bootstrap_dir, "uploads"))

import pytest  # noqa: E402
from sqlalchemy import create_engine  # noqa: E402
from sqlalchemy.orm import sessionmaker  # noqa: E402
from sqlalchemy.pool import StaticPool  # noqa: E402

import app.models  # noqa: F401, E402  registers every table
from app.models.base import Base, get_db  # noqa: E402


@pytest.fixture()
def session_factory(monkeypatch):
    """Provide an isolated in-memory SQLite database for each test."""
    test_engine = create_engine(
        "sqlite://",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    TestSession = sessionmaker(autocommit=False, autoflush=False, bind=test_engine)
    Base.metadata.create_all(bind=test_engine)

    # The audit middleware opens its own sessions
    import app.models.base as mb
    monkeypatch.setattr(mb, "engine", test_engine)
    monkeypatch.setattr(mb, "SessionLocal", TestSession)

    yield TestSession
    test_engine.dispose()


@pytest.fixture()
def db(session_factory):
    session = session_factory()
    yield session
    session.close()


@pytest.fixture()
def client(session_factory):
    from fastapi.testclient import TestClient
    from app.main import app

    def override_get_db():
        session = session_factory()
        try:
            yield session
        finally:
            session.close()

    app.dependency_overrides[get_db] = override_get_db
    with TestClient(app) as test_client:
        yield test_client
    app.dependency_overrides.clear()
