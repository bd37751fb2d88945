"""
tests/conftest.py — Shared Test Fixtures
=========================================
"""

from __future__ import annotations

import os

# ---------------------------------------------------------------------------
# Ensure a valid JWT_SECRET is always set for test runs.
# This must happen before any import of scorebot.api.deps which validates
# the secret at module-load time.
# ---------------------------------------------------------------------------
_TEST_JWT_SECRET = "test-secret-for-pytest-only-" + "x" * 40  # > 32 chars
os.environ.setdefault("JWT_SECRET", _TEST_JWT_SECRET)
os.environ.pop("BADGR_TOKEN", None)

import pytest  # noqa: E402
from sqlalchemy import Engine, create_engine  # noqa: E402

# ---------------------------------------------------------------------------
# Make JSONB columns work in SQLite for testing.
# SQLite doesn't support JSONB natively; render it as TEXT and let the
# JSON type processors handle (de)serialization.
# ---------------------------------------------------------------------------
from sqlalchemy.dialects.postgresql import JSONB as PG_JSONB  # noqa: E402

from scorebot.config import BadgeConfig, PointsConfig, parse_config  # noqa: E402
from scorebot.database.models import Base  # noqa: E402
from scorebot.engine.points import PointsCalculator  # noqa: E402

_jsonb_sqlite_registered = False


def _register_jsonb_sqlite_compat():
    """Register SQLite compilation for PG JSONB type (idempotent).

    Also maps BigInteger → INTEGER so autoincrement works on SQLite.
    """
    global _jsonb_sqlite_registered
    if _jsonb_sqlite_registered:
        return
    from sqlalchemy import BigInteger
    from sqlalchemy.ext.compiler import compiles

    @compiles(PG_JSONB, "sqlite")
    def _compile_jsonb_as_text(type_, compiler, **kw):
        return "TEXT"

    @compiles(BigInteger, "sqlite")
    def _compile_bigint_as_integer(type_, compiler, **kw):
        return "INTEGER"

    _jsonb_sqlite_registered = True


_register_jsonb_sqlite_compat()


@pytest.fixture
def db_engine() -> Engine:
    """Create an in-memory SQLite engine with all ScoreBot tables.

    Uses StaticPool so all threads share the same in-memory database
    (``run_db`` hops to a worker thread).
    """
    from sqlalchemy.pool import StaticPool

    engine = create_engine(
        "sqlite://",
        echo=False,
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    Base.metadata.create_all(engine)
    return engine


@pytest.fixture
def calculator() -> PointsCalculator:
    return PointsCalculator(PointsConfig())


@pytest.fixture
def badge_config() -> BadgeConfig:
    return BadgeConfig(base_url="https://badges.test/v2", token="test-token")


@pytest.fixture
def cfg():
    return parse_config({
        "community_name": "Puzzle Club",
        "bot": {
            "admins": [1000],
            "success_announcements": {"enabled": True, "channel_id": 555},
            "game_announcements": {"enabled": True, "channel_id": 777},
        },
    })


# ---------------------------------------------------------------------------
# Domain factories
# ---------------------------------------------------------------------------
ADMIN_ID = 1000
MAKER_ID = 2000


def make_challenge(engine: Engine, **overrides):
    """Create a challenge through the service and return it (pending)."""
    from scorebot.services import challenge_service
    from scorebot.services.challenge_service import ChallengeDraft

    fields = dict(
        name="Piano Riddle",
        description="What has keys but can't open locks?",
        answer="piano",
        owner_id=MAKER_ID,
        author="Maker",
        difficulty=1,
        hints=["It makes music.", "It has 88 of them."],
        reward_type="text",
        reward_text="The secret word is crescendo.",
    )
    fields.update(overrides)
    return challenge_service.create(engine, ChallengeDraft(**fields))


def make_approved_challenge(engine: Engine, index=None, **overrides):
    from scorebot.services import challenge_service

    challenge = make_challenge(engine, **overrides)
    result = challenge_service.approve(
        engine, challenge.id, actor_id=ADMIN_ID, is_admin=True, index=index
    )
    return result.challenge


def make_user(engine: Engine, discord_id: int = 42, username: str = "player",
              email: str | None = "player@example.com"):
    from scorebot.services import user_service

    user_service.register(engine, discord_id, username, email)
    return user_service.require_user(engine, discord_id)


@pytest.fixture
def admin_token():
    """Generate a valid admin JWT for use in API integration tests."""
    return make_admin_token()


def make_admin_token(sub: str = "99999", username: str = "FixtureAdmin",
                     is_admin: bool = True) -> str:
    """Create an admin JWT.  Usable as both a fixture and a factory function."""
    import jwt

    from scorebot.api.deps import JWT_ALGORITHM, JWT_SECRET

    return jwt.encode(
        {"sub": sub, "username": username, "is_admin": is_admin},
        JWT_SECRET,
        algorithm=JWT_ALGORITHM,
    )


@pytest.fixture
def client(db_engine):
    """FastAPI TestClient bound to the in-memory database."""
    from fastapi.testclient import TestClient

    from scorebot.api.deps import get_engine
    from scorebot.api.main import app

    app.dependency_overrides[get_engine] = lambda: db_engine
    yield TestClient(app, raise_server_exceptions=False)
    app.dependency_overrides.clear()
