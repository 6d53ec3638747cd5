"""
ladderboard.api.routes.public — Read-only public endpoints
=============================================================
"""

from __future__ import annotations

from fastapi import APIRouter, Depends, HTTPException, Query
from sqlalchemy import select
from sqlalchemy.orm import Session

from ladderboard.api.deps import get_session
from ladderboard.constants import QUEUE_ALIASES, QUEUE_DOUBLE_UP, QUEUE_SOLO
from ladderboard.database.models import Match, MatchParticipant, Member
from ladderboard.engine.ranking import sort_members, standing_of
from ladderboard.engine.recent import decode_recent, recent_outcomes, recent_win_rate

router = APIRouter(tags=["public"])


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------
def _iso(value) -> str | None:
    return value.isoformat() if value else None


def member_dict(m: Member) -> dict:
    return {
        "id": m.id,
        "member_name": m.member_name,
        "riot_id": f"{m.riot_game_name}#{m.riot_tagline}",
        "solo": standing_of(m, QUEUE_SOLO),
        "doubleup": standing_of(m, QUEUE_DOUBLE_UP),
        "recent_placements": decode_recent(m.tft_recent5),
        "recent_outcomes": recent_outcomes(m.tft_recent5),
        "recent_win_rate": recent_win_rate(m.tft_recent5),
        "sync_status": str(m.sync_status),
        "last_synced_at": _iso(m.last_synced_at),
    }


# ---------------------------------------------------------------------------
# GET /leaderboard
# ---------------------------------------------------------------------------
@router.get("/leaderboard")
def get_leaderboard(
    queue: str = Query("solo", pattern="^(solo|doubleup)$"),
    session: Session = Depends(get_session),
):
    """All members, best-ranked first for the chosen queue."""
    members = session.scalars(select(Member).order_by(Member.id)).all()
    ranked = sort_members(list(members), QUEUE_ALIASES[queue])
    return {
        "queue": queue,
        "members": [
            {"position": idx + 1, **member_dict(m)} for idx, m in enumerate(ranked)
        ],
    }


# ---------------------------------------------------------------------------
# GET /members/{id}
# ---------------------------------------------------------------------------
@router.get("/members/{member_id}")
def get_member(
    member_id: int,
    limit: int = Query(20, ge=1, le=100),
    session: Session = Depends(get_session),
):
    """Member profile plus their most recent stored matches."""
    member = session.get(Member, member_id)
    if member is None:
        raise HTTPException(404, "Member not found")

    rows = session.execute(
        select(MatchParticipant, Match)
        .join(Match, Match.match_id == MatchParticipant.match_id)
        .where(MatchParticipant.member_id == member_id)
        .order_by(Match.game_datetime.desc())
        .limit(limit)
    ).all()

    return {
        **member_dict(member),
        "matches": [
            {
                "match_id": match.match_id,
                "game_datetime": _iso(match.game_datetime),
                "queue_id": match.queue_id,
                "tft_set_number": match.tft_set_number,
                "game_length_seconds": match.game_length_seconds,
                "placement": part.placement,
                "level": part.level,
                "total_damage_to_players": part.total_damage_to_players,
                "traits": part.traits,
                "units": part.units,
                "augments": part.augments,
            }
            for part, match in rows
        ],
    }
