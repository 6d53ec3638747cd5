"""
ladderboard.engine.ranking — Leaderboard Ordering
==================================================

Sort key for the public leaderboard: tier, then division, then league
points (descending).  Unranked members sink to the bottom.
"""

from __future__ import annotations

from typing import Any

from ladderboard.constants import DIVISION_ORDER, QUEUE_DOUBLE_UP, QUEUE_SOLO, TIER_ORDER

_UNRANKED = len(TIER_ORDER)

# queueType → member column prefix
_COLUMN_PREFIX: dict[str, str] = {
    QUEUE_SOLO: "tft_",
    QUEUE_DOUBLE_UP: "tft_doubleup_",
}


def tier_index(tier: str | None) -> int:
    if not tier:
        return _UNRANKED
    try:
        return TIER_ORDER.index(tier.upper())
    except ValueError:
        return _UNRANKED


def division_index(division: str | None) -> int:
    if not division:
        return len(DIVISION_ORDER)
    try:
        return DIVISION_ORDER.index(division.upper())
    except ValueError:
        return len(DIVISION_ORDER)


def standing_of(member: Any, queue_type: str) -> dict[str, Any]:
    """Read one queue variant's standing fields off a member row."""
    prefix = _COLUMN_PREFIX[queue_type]
    return {
        "tier": getattr(member, f"{prefix}tier"),
        "rank": getattr(member, f"{prefix}rank"),
        "league_points": getattr(member, f"{prefix}league_points"),
        "wins": getattr(member, f"{prefix}wins"),
        "losses": getattr(member, f"{prefix}losses"),
    }


def ranking_key(member: Any, queue_type: str = QUEUE_SOLO) -> tuple[int, int, int]:
    standing = standing_of(member, queue_type)
    return (
        tier_index(standing["tier"]),
        division_index(standing["rank"]),
        -(standing["league_points"] or 0),
    )


def sort_members(members: list[Any], queue_type: str = QUEUE_SOLO) -> list[Any]:
    """Return *members* best-first for *queue_type* (stable for ties)."""
    return sorted(members, key=lambda m: ranking_key(m, queue_type))
