"""
tests/conftest.py — Shared Test Fixtures
=========================================
"""

from __future__ import annotations

import asyncio
import os
import threading
from concurrent.futures import ThreadPoolExecutor

# ---------------------------------------------------------------------------
# Ensure a valid JWT_SECRET is always set for test runs.
# This must happen before any import of lasexta.api.deps which validates
# the secret at module-load time.
# ---------------------------------------------------------------------------
_TEST_JWT_SECRET = "test-secret-for-pytest-only-" + "x" * 40  # > 32 chars
os.environ.setdefault("JWT_SECRET", _TEST_JWT_SECRET)

import pytest  # noqa: E402
from sqlalchemy import Engine, create_engine  # noqa: E402
from sqlalchemy.pool import StaticPool  # noqa: E402

from lasexta.config import LaSextaConfig  # noqa: E402
from lasexta.database.engine import get_session  # noqa: E402
from lasexta.database.models import Base, Role, User  # noqa: E402
from lasexta.engine.passwords import hash_password  # noqa: E402


@pytest.fixture
def db_engine() -> Engine:
    """Create an in-memory SQLite engine with all La Sexta tables.

    Uses StaticPool so all threads share the same in-memory database
    (required by ``asyncio.to_thread`` used in :func:`run_db`).
    """
    engine = create_engine(
        "sqlite://",
        echo=False,
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    Base.metadata.create_all(engine)
    return engine


@pytest.fixture
def config() -> LaSextaConfig:
    return LaSextaConfig()


def make_user(
    engine: Engine,
    *,
    name: str = "Alice",
    email: str = "alice@example.com",
    role: Role = Role.CLIENT,
    points: int = 0,
    password: str | None = None,
) -> User:
    """Insert a user directly.  Usable from any test module."""
    with get_session(engine) as session:
        user = User(
            name=name,
            email=email,
            role=role,
            points=points,
            password_hash=hash_password(password) if password else None,
        )
        session.add(user)
        session.flush()
    return user


@pytest.fixture
def alice(db_engine: Engine) -> User:
    return make_user(db_engine)


@pytest.fixture
def admin_user(db_engine: Engine) -> User:
    return make_user(db_engine, name="Staff", email="staff@example.com", role=Role.ADMIN)


def make_token(user: User) -> str:
    """Sign a session token for *user* with the test secret."""
    from lasexta.api.deps import JWT_SECRET
    from lasexta.services.auth_service import session_token

    return session_token(user, JWT_SECRET)


def auth_header(user: User) -> dict[str, str]:
    return {"Authorization": f"Bearer {make_token(user)}"}


def run(coro):
    """Drive a coroutine on a private event loop."""
    loop = asyncio.new_event_loop()
    try:
        return loop.run_until_complete(coro)
    finally:
        loop.close()


class FakeMailer:
    """Records messages instead of talking to SMTP."""

    def __init__(self, fail: Exception | None = None) -> None:
        self.fail = fail
        self.tickets: list[dict] = []
        self.reset_codes: list[dict] = []

    async def send_ticket_email(self, **kwargs) -> None:
        if self.fail is not None:
            raise self.fail
        self.tickets.append(kwargs)

    async def send_reset_code_email(self, **kwargs) -> None:
        if self.fail is not None:
            raise self.fail
        self.reset_codes.append(kwargs)


@pytest.fixture
def mailer() -> FakeMailer:
    return FakeMailer()


@pytest.fixture
def hub():
    from lasexta.services.event_stream import EventStreamHub

    return EventStreamHub(keepalive_seconds=0.05)


@pytest.fixture
def client(db_engine: Engine, config: LaSextaConfig, mailer: FakeMailer, hub):
    """FastAPI TestClient wired to the in-memory database and fakes."""
    from fastapi.testclient import TestClient

    from lasexta.api import deps
    from lasexta.api.main import app

    app.dependency_overrides[deps.get_engine] = lambda: db_engine
    app.dependency_overrides[deps.get_config] = lambda: config
    app.dependency_overrides[deps.get_mailer] = lambda: mailer
    app.dependency_overrides[deps.get_event_hub] = lambda: hub
    try:
        yield TestClient(app, raise_server_exceptions=False)
    finally:
        app.dependency_overrides.clear()


@pytest.fixture
def file_engine(tmp_path) -> Engine:
    """File-backed SQLite engine; each thread gets its own connection."""
    engine = create_engine(
        f"sqlite:///{tmp_path / 'lasexta.db'}",
        echo=False,
        connect_args={"check_same_thread": False, "timeout": 15},
    )
    Base.metadata.create_all(engine)
    yield engine
    engine.dispose()


def race(func, *args, workers: int = 2) -> list:
    """Call ``func(*args)`` from *workers* threads released at the same moment.

    Returns each call's result, or the exception it raised.
    """
    barrier = threading.Barrier(workers)

    def attempt():
        barrier.wait()
        try:
            return func(*args)
        except Exception as exc:
            return exc

    with ThreadPoolExecutor(max_workers=workers) as pool:
        futures = [pool.submit(attempt) for _ in range(workers)]
        return [f.result() for f in futures]
