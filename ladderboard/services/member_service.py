"""
ladderboard.services.member_service — Roster Administration
=============================================================

Admin-side mutations of the ``members`` table.  The sync pipeline never
calls these; it only touches standing and bookkeeping columns.
"""

from __future__ import annotations

import logging

from sqlalchemy import Engine, delete, update
from sqlalchemy.orm import Session

from ladderboard.database.engine import get_session
from ladderboard.database.models import MatchParticipant, Member, SyncStatus

logger = logging.getLogger(__name__)


class MemberValidationError(ValueError):
    pass


def create_member(
    engine: Engine,
    *,
    member_name: str,
    riot_game_name: str,
    riot_tagline: str,
    memo: str | None = None,
) -> Member:
    """Register a new member.  All three identity fields are required."""
    member_name = (member_name or "").strip()
    riot_game_name = (riot_game_name or "").strip()
    riot_tagline = (riot_tagline or "").strip().lstrip("#")
    if not member_name or not riot_game_name or not riot_tagline:
        raise MemberValidationError(
            "member_name, riot_game_name and riot_tagline are required"
        )

    with Session(engine, expire_on_commit=False) as session:
        member = Member(
            member_name=member_name,
            riot_game_name=riot_game_name,
            riot_tagline=riot_tagline,
            memo=memo,
            sync_status=SyncStatus.PENDING,
        )
        session.add(member)
        session.commit()
        session.refresh(member)
        session.expunge(member)

    logger.info("Registered member %d (%s#%s)", member.id, riot_game_name, riot_tagline)
    return member


def delete_member(engine: Engine, member_id: int) -> bool:
    """Remove a member's participation rows, then the member.

    Returns ``False`` if the member does not exist.
    """
    with get_session(engine) as session:
        if session.get(Member, member_id) is None:
            return False
        parts = session.execute(
            delete(MatchParticipant).where(MatchParticipant.member_id == member_id)
        )
        session.execute(delete(Member).where(Member.id == member_id))

    logger.info(
        "Deleted member %d and %d participation row(s)", member_id, parts.rowcount
    )
    return True


def reset_identity(engine: Engine, member_id: int) -> bool:
    """Clear the stored PUUID so the next sync resolves it again."""
    with get_session(engine) as session:
        result = session.execute(
            update(Member).where(Member.id == member_id).values(riot_puuid=None)
        )
        found = result.rowcount > 0
    if found:
        logger.info("Cleared resolved identity for member %d", member_id)
    return found
