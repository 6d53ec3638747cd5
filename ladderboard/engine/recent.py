"""
ladderboard.engine.recent — Rolling Recent-Results Record
==========================================================

Pure functions — no DB, no HTTP.

The member row keeps the last few placements as a short comma-separated
string, most recent first::

    encode_recent([3, 1, 5, 8, 2])  →  "3,1,5,8,2"
    decode_recent("3,1,5,8,2")      →  [3, 1, 5, 8, 2]

Older rows may still hold the letter encoding (``"W,L,W"``).  Those decode
to an empty placement list but still yield outcomes for the win-rate display.
"""

from __future__ import annotations

from collections.abc import Iterable

from ladderboard.constants import LOBBY_SIZE, RECENT_RESULTS_LIMIT, WIN_PLACEMENT_CUTOFF

SEPARATOR = ","


def encode_recent(placements: Iterable[int], limit: int = RECENT_RESULTS_LIMIT) -> str:
    """Encode up to *limit* placements (already ordered most-recent-first)."""
    kept = []
    for placement in placements:
        if len(kept) >= limit:
            break
        value = int(placement)
        if not 1 <= value <= LOBBY_SIZE:
            raise ValueError(f"placement out of range: {placement!r}")
        kept.append(str(value))
    return SEPARATOR.join(kept)


def decode_recent(raw: str | None) -> list[int]:
    """Parse a stored record back into placements.  Unknown tokens are dropped."""
    if not raw:
        return []
    placements: list[int] = []
    for token in raw.split(SEPARATOR):
        token = token.strip()
        if token.isdigit():
            placements.append(int(token))
    return placements


def is_win(placement: int) -> bool:
    return placement <= WIN_PLACEMENT_CUTOFF


def recent_outcomes(raw: str | None) -> list[str]:
    """Return ``"W"``/``"L"`` per stored result, accepting both encodings."""
    if not raw:
        return []
    outcomes: list[str] = []
    for token in raw.split(SEPARATOR):
        token = token.strip().upper()
        if token in ("W", "L"):
            outcomes.append(token)
        elif token.isdigit():
            outcomes.append("W" if is_win(int(token)) else "L")
    return outcomes


def recent_win_rate(raw: str | None) -> int:
    """Whole-number percentage of wins in the stored record (0 when empty)."""
    outcomes = recent_outcomes(raw)
    if not outcomes:
        return 0
    wins = sum(1 for o in outcomes if o == "W")
    return round(wins / len(outcomes) * 100)
