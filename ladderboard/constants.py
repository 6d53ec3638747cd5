"""
ladderboard.constants — Shared Constants
==========================================

Single source of truth for the ranked queue identifiers, the tier ladder
and the lobby size used by the win-rate rule.
"""

from __future__ import annotations

# ---------------------------------------------------------------------------
# Queue variants tracked per member
# ---------------------------------------------------------------------------
QUEUE_SOLO = "RANKED_TFT"
QUEUE_DOUBLE_UP = "RANKED_TFT_DOUBLE_UP"

# Public short name → Riot queueType
QUEUE_ALIASES: dict[str, str] = {
    "solo": QUEUE_SOLO,
    "doubleup": QUEUE_DOUBLE_UP,
}

# ---------------------------------------------------------------------------
# Tier ladder, best first
# ---------------------------------------------------------------------------
TIER_ORDER: tuple[str, ...] = (
    "CHALLENGER",
    "GRANDMASTER",
    "MASTER",
    "DIAMOND",
    "EMERALD",
    "PLATINUM",
    "GOLD",
    "SILVER",
    "BRONZE",
    "IRON",
)

DIVISION_ORDER: tuple[str, ...] = ("I", "II", "III", "IV")

# ---------------------------------------------------------------------------
# Match outcomes
# ---------------------------------------------------------------------------
LOBBY_SIZE = 8
WIN_PLACEMENT_CUTOFF = LOBBY_SIZE // 2  # top half counts as a win
RECENT_RESULTS_LIMIT = 5
