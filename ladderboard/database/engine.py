"""
ladderboard.database.engine — Database Connection & Session Helper
===================================================================

Every pipeline write is its own short-lived session: the sync pass never
holds a transaction open across an external API call.

Usage::

    from ladderboard.database.engine import create_db_engine, get_session, init_db

    engine = create_db_engine()          # reads DATABASE_URL from .env
    init_db(engine)

    with get_session(engine) as session:
        session.add(Member(member_name="drew", riot_game_name="drew", riot_tagline="KR1"))
"""

from __future__ import annotations

import logging
import os
from contextlib import contextmanager

from sqlalchemy import Engine, create_engine, event
from sqlalchemy.orm import Session

from ladderboard.database.models import Base

logger = logging.getLogger(__name__)

# Pool sizing for PostgreSQL.  The API and the scheduler each hold their own
# engine, and a sync pass uses one connection at a time.
_POOL_OPTIONS = {
    "pool_size": 5,
    "max_overflow": 10,
    "pool_pre_ping": True,
    "pool_timeout": 10,
    "pool_recycle": 3600,
}


def _enable_sqlite_foreign_keys(engine: Engine) -> None:
    @event.listens_for(engine, "connect")
    def _on_connect(dbapi_connection, connection_record):
        cursor = dbapi_connection.cursor()
        cursor.execute("PRAGMA foreign_keys=ON")
        cursor.close()


# ---------------------------------------------------------------------------
# Engine creation
# ---------------------------------------------------------------------------
def create_db_engine(url: str | None = None) -> Engine:
    """Build an :class:`Engine` for *url*, defaulting to ``$DATABASE_URL``.

    SQLite (local development) gets foreign keys switched on and may be
    shared across threads; anything else gets the pooled settings in
    ``_POOL_OPTIONS``.  Set ``DATABASE_ECHO=1`` to log every statement.

    Raises
    ------
    RuntimeError
        If no URL is given and ``DATABASE_URL`` is not set.
    """
    url = url or os.getenv("DATABASE_URL")
    if not url:
        raise RuntimeError(
            "DATABASE_URL is not set.  "
            "Copy .env.example → .env and set a valid database URL."
        )
    echo = os.getenv("DATABASE_ECHO", "").lower() in ("1", "true", "yes")

    if url.startswith("sqlite"):
        engine = create_engine(url, echo=echo, connect_args={"check_same_thread": False})
        _enable_sqlite_foreign_keys(engine)
    else:
        engine = create_engine(url, echo=echo, **_POOL_OPTIONS)

    logger.info(
        "Database engine created → %s (%s)",
        engine.url.host or engine.url.database, engine.dialect.name,
    )
    return engine


def init_db(engine: Engine) -> None:
    """Create any missing tables.

    Production schemas are owned by Alembic (``alembic upgrade head``); this
    only fills the gap for local SQLite files and fresh dev databases.
    """
    Base.metadata.create_all(engine)
    logger.info("Database tables verified / created.")


# ---------------------------------------------------------------------------
# Session helper
# ---------------------------------------------------------------------------
@contextmanager
def get_session(engine: Engine):
    """Yield a :class:`Session` that commits on clean exit and rolls back
    if the block raises.
    """
    session = Session(engine)
    try:
        yield session
        session.commit()
    except Exception:
        session.rollback()
        raise
    finally:
        session.close()
