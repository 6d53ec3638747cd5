"""
ladderboard.api.deps — FastAPI dependency injection
=====================================================

Process-wide singletons (engine, config, Riot client) are cached with
``lru_cache``; tests swap them through ``app.dependency_overrides``.

Admin identity comes from an external auth provider that issues HS256 JWTs
signed with ``JWT_SECRET`` and carrying an ``is_admin`` claim.  The secret is
checked when this module is imported, so a misconfigured deployment fails
at startup rather than on the first admin request.
"""

from __future__ import annotations

import os
from functools import lru_cache
from typing import Annotated

import jwt
from fastapi import Depends, Header, HTTPException, status
from jwt.exceptions import InvalidTokenError
from sqlalchemy import Engine
from sqlalchemy.orm import Session

from ladderboard.config import LadderConfig, load_config
from ladderboard.database.engine import create_db_engine
from ladderboard.services.member_sync import MemberSyncer
from ladderboard.services.riot_client import RiotClient
from ladderboard.services.sync_runner import RetryPolicy

JWT_ALGORITHM = "HS256"
MIN_SECRET_LENGTH = 32

_WEAK_SECRETS = frozenset({"", "change-me", "changeme", "secret", "dev", "ladderboard"})


# ---------------------------------------------------------------------------
# JWT secret
# ---------------------------------------------------------------------------
def _load_jwt_secret() -> str:
    """Return ``$JWT_SECRET`` or raise :class:`RuntimeError` if it is unusable."""
    secret = os.getenv("JWT_SECRET", "")
    if not secret:
        problem = "JWT_SECRET environment variable is not set"
    elif secret.lower() in _WEAK_SECRETS:
        problem = f"JWT_SECRET is a known weak default ({secret!r})"
    elif len(secret) < MIN_SECRET_LENGTH:
        problem = (
            f"JWT_SECRET is too short ({len(secret)} chars, "
            f"need at least {MIN_SECRET_LENGTH})"
        )
    else:
        return secret
    raise RuntimeError(f"{problem}. Use the signing secret configured in your auth provider.")


JWT_SECRET: str = _load_jwt_secret()


# ---------------------------------------------------------------------------
# Singletons
# ---------------------------------------------------------------------------
@lru_cache(maxsize=1)
def get_engine() -> Engine:
    return create_db_engine()


@lru_cache(maxsize=1)
def get_config() -> LadderConfig:
    return load_config()


@lru_cache(maxsize=1)
def get_riot_client() -> RiotClient:
    return RiotClient(get_config().riot)


# ---------------------------------------------------------------------------
# Per-request
# ---------------------------------------------------------------------------
def get_session(engine: Annotated[Engine, Depends(get_engine)]):
    with Session(engine) as session:
        yield session


def get_retry_policy(
    cfg: Annotated[LadderConfig, Depends(get_config)],
) -> RetryPolicy:
    return RetryPolicy.from_config(cfg.sync)


def get_manual_syncer(
    engine: Annotated[Engine, Depends(get_engine)],
    client: Annotated[RiotClient, Depends(get_riot_client)],
    cfg: Annotated[LadderConfig, Depends(get_config)],
) -> MemberSyncer:
    """Syncer for admin-triggered runs (manual cooldown window)."""
    return MemberSyncer.from_config(engine, client, cfg.sync)


def get_current_admin(
    authorization: Annotated[str | None, Header()] = None,
) -> dict:
    """Decode the bearer token; 401 if absent or invalid, 403 if not an admin."""
    scheme, _, token = (authorization or "").partition(" ")
    if scheme.lower() != "bearer" or not token:
        raise HTTPException(status.HTTP_401_UNAUTHORIZED, "Missing token")
    try:
        claims = jwt.decode(token, JWT_SECRET, algorithms=[JWT_ALGORITHM])
    except InvalidTokenError:
        raise HTTPException(status.HTTP_401_UNAUTHORIZED, "Invalid token")
    if claims.get("is_admin") is not True:
        raise HTTPException(status.HTTP_403_FORBIDDEN, "Not admin")
    return claims
