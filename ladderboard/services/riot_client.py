"""
ladderboard.services.riot_client — Riot TFT API Client
=======================================================

Thin synchronous wrappers around the four GET endpoints the sync pipeline
needs.  No caching and no self-throttling: pacing and retries belong to the
caller (:mod:`ladderboard.services.sync_runner`).

Every non-2xx response raises a :class:`RiotApiError` subclass carrying the
HTTP status and the ``Retry-After`` header (seconds) when the server sent one.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from datetime import UTC, datetime
from typing import Any
from urllib.parse import quote

import httpx

from ladderboard.config import RiotConfig
from ladderboard.services.errors import RiotApiError

logger = logging.getLogger(__name__)

# Longest response body excerpt kept in an error message
_BODY_EXCERPT = 200


# ---------------------------------------------------------------------------
# Response types
# ---------------------------------------------------------------------------
@dataclass(frozen=True, slots=True)
class Standing:
    """One ranked queue entry from the league endpoint."""
    queue_type: str
    tier: str | None
    rank: str | None
    league_points: int | None
    wins: int | None
    losses: int | None

    @classmethod
    def from_payload(cls, data: dict[str, Any]) -> Standing:
        return cls(
            queue_type=str(data.get("queueType") or ""),
            tier=data.get("tier"),
            rank=data.get("rank"),
            league_points=data.get("leaguePoints"),
            wins=data.get("wins"),
            losses=data.get("losses"),
        )


@dataclass(frozen=True, slots=True)
class MatchDetail:
    """Match-level metadata plus the raw participant list."""
    match_id: str
    data_version: str | None
    game_datetime: datetime | None
    queue_id: int | None
    tft_set_number: int | None
    game_length_seconds: int | None
    participants: list[dict[str, Any]] = field(default_factory=list)

    @classmethod
    def from_payload(cls, data: dict[str, Any]) -> MatchDetail:
        metadata = data.get("metadata") or {}
        info = data.get("info") or {}

        started = info.get("game_datetime")
        length = info.get("game_length")
        return cls(
            match_id=str(metadata["match_id"]),
            data_version=metadata.get("data_version"),
            game_datetime=(
                datetime.fromtimestamp(started / 1000, tz=UTC) if started else None
            ),
            queue_id=info.get("queue_id"),
            tft_set_number=info.get("tft_set_number"),
            game_length_seconds=round(length) if length is not None else None,
            participants=list(info.get("participants") or []),
        )

    def participant(self, puuid: str) -> dict[str, Any] | None:
        for entry in self.participants:
            if entry.get("puuid") == puuid:
                return entry
        return None


def _retry_after(response: httpx.Response) -> float | None:
    raw = response.headers.get("Retry-After")
    if raw is None:
        return None
    try:
        value = float(raw)
    except ValueError:
        return None
    return value if value >= 0 else None


# ---------------------------------------------------------------------------
# Client
# ---------------------------------------------------------------------------
class RiotClient:
    """Blocking Riot API client.

    Pass *http* to share a pre-built :class:`httpx.Client` (tests hand in one
    backed by :class:`httpx.MockTransport`).
    """

    def __init__(self, cfg: RiotConfig, http: httpx.Client | None = None) -> None:
        self.cfg = cfg
        self._http = http
        self._owns_http = http is None

    @property
    def http(self) -> httpx.Client:
        if self._http is None:
            self._http = httpx.Client(timeout=self.cfg.timeout_seconds)
        return self._http

    def close(self) -> None:
        if self._owns_http and self._http is not None:
            self._http.close()
            self._http = None

    def __enter__(self) -> RiotClient:
        return self

    def __exit__(self, *exc_info) -> None:
        self.close()

    def _get(self, url: str, params: dict[str, Any] | None = None) -> Any:
        if not self.cfg.api_key:
            raise RiotApiError.from_status(401, "RIOT_API_KEY is not set")
        response = self.http.get(
            url, params=params, headers={"X-Riot-Token": self.cfg.api_key}
        )
        if response.is_success:
            return response.json()

        retry_after = _retry_after(response)
        logger.debug(
            "Riot API %s → %d (retry_after=%s)", url, response.status_code, retry_after
        )
        raise RiotApiError.from_status(
            response.status_code,
            f"Riot API error ({response.status_code}): {response.text[:_BODY_EXCERPT]}",
            retry_after,
        )

    # -- endpoints ----------------------------------------------------------
    def resolve_identity(self, game_name: str, tag_line: str) -> str:
        """Riot ID (``name#tag``) → PUUID."""
        url = f"{self.cfg.account_base_url}/{quote(game_name, safe='')}/{quote(tag_line, safe='')}"
        data = self._get(url)
        return str(data["puuid"])

    def fetch_standings(self, puuid: str) -> list[Standing]:
        """All ranked entries for *puuid*.  An absent queue means unranked there."""
        data = self._get(f"{self.cfg.league_base_url}/{quote(puuid, safe='')}")
        return [Standing.from_payload(entry) for entry in data or []]

    def fetch_recent_match_ids(self, puuid: str, count: int = 5) -> list[str]:
        """Most recent match ids, newest first (server order is preserved)."""
        url = f"{self.cfg.match_base_url}/matches/by-puuid/{quote(puuid, safe='')}/ids"
        data = self._get(url, params={"start": 0, "count": count})
        return [str(match_id) for match_id in data or []]

    def fetch_match_detail(self, match_id: str) -> MatchDetail:
        data = self._get(f"{self.cfg.match_base_url}/matches/{quote(match_id, safe='')}")
        return MatchDetail.from_payload(data)
