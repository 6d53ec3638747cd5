"""
tests/conftest.py — Shared Test Fixtures
=========================================
"""

from __future__ import annotations

import os

# ---------------------------------------------------------------------------
# Ensure a valid JWT_SECRET is always set for test runs.
# This must happen before any import of ladderboard.api.deps which validates
# the secret at module-load time.
# ---------------------------------------------------------------------------
_TEST_JWT_SECRET = "test-secret-for-pytest-only-" + "x" * 40  # > 32 chars
os.environ.setdefault("JWT_SECRET", _TEST_JWT_SECRET)

import pytest  # noqa: E402
from sqlalchemy import Engine, create_engine  # noqa: E402
from sqlalchemy.orm import Session  # noqa: E402
from sqlalchemy.pool import StaticPool  # noqa: E402

from ladderboard.config import LadderConfig, SyncConfig  # noqa: E402
from ladderboard.database.models import Base, Member  # noqa: E402

from fakes import FakeRiotApi  # noqa: E402


@pytest.fixture
def db_engine() -> Engine:
    """Create an in-memory SQLite engine with all Ladderboard tables.

    Uses StaticPool so all threads share the same in-memory database
    (FastAPI runs sync endpoints on a worker thread).
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
def db_session(db_engine: Engine):
    """Provide a session that rolls back after each test."""
    with Session(db_engine) as session:
        yield session
        session.rollback()


@pytest.fixture
def riot() -> FakeRiotApi:
    return FakeRiotApi()


@pytest.fixture
def sleeps() -> list[float]:
    """Recorder handed to code under test in place of ``time.sleep``."""
    return []


@pytest.fixture
def fast_config() -> LadderConfig:
    """Config with every pause and backoff zeroed."""
    return LadderConfig(
        community_name="Test Club",
        sync=SyncConfig(
            backoff_base=0.0,
            backoff_cap=0.0,
            backoff_jitter=0.0,
            throttle_fallback=0.0,
            match_delay=0.0,
            member_delay=0.0,
        ),
    )


def add_member(
    engine: Engine,
    name: str = "Drew",
    game_name: str = "drew",
    tagline: str = "KR1",
    **fields,
) -> int:
    """Insert a member row and return its id."""
    with Session(engine) as session:
        member = Member(
            member_name=name,
            riot_game_name=game_name,
            riot_tagline=tagline,
            **fields,
        )
        session.add(member)
        session.commit()
        return member.id


def make_admin_token(sub: str = "99999", username: str = "FixtureAdmin", is_admin: bool = True) -> str:
    """Create an admin JWT.  Usable as both a fixture helper and a factory."""
    import jwt

    from ladderboard.api.deps import JWT_ALGORITHM, JWT_SECRET

    return jwt.encode(
        {"sub": sub, "username": username, "is_admin": is_admin},
        JWT_SECRET,
        algorithm=JWT_ALGORITHM,
    )


@pytest.fixture
def admin_token() -> str:
    return make_admin_token()


@pytest.fixture
def client(db_engine, riot, fast_config):
    """FastAPI TestClient wired to the in-memory DB and the fake Riot API."""
    from fastapi.testclient import TestClient

    from ladderboard.api import deps
    from ladderboard.api.main import app

    app.dependency_overrides[deps.get_engine] = lambda: db_engine
    app.dependency_overrides[deps.get_config] = lambda: fast_config
    app.dependency_overrides[deps.get_riot_client] = riot.client
    yield TestClient(app, raise_server_exceptions=False)
    app.dependency_overrides.clear()
