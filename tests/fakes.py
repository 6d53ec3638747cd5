"""
tests/fakes.py — In-memory Riot API behind ``httpx.MockTransport``
===================================================================

The real :class:`RiotClient` is used end to end; only the transport is fake.
"""

from __future__ import annotations

from collections import deque
from dataclasses import dataclass

import httpx

from ladderboard.config import RiotConfig
from ladderboard.services.riot_client import RiotClient

BASE = "https://riot.test"

TEST_RIOT_CONFIG = RiotConfig(
    api_key="RGAPI-test",
    account_base_url=f"{BASE}/account",
    league_base_url=f"{BASE}/league",
    match_base_url=f"{BASE}/match",
)


@dataclass
class _Failure:
    status: int
    path_contains: str | None
    retry_after: str | None


def league_entry(
    queue_type: str = "RANKED_TFT",
    tier: str = "GOLD",
    rank: str = "II",
    league_points: int = 40,
    wins: int = 12,
    losses: int = 30,
) -> dict:
    return {
        "queueType": queue_type,
        "tier": tier,
        "rank": rank,
        "leaguePoints": league_points,
        "wins": wins,
        "losses": losses,
    }


def match_payload(match_id: str, placements: dict[str, int], *, started_ms: int = 1_760_000_000_000) -> dict:
    """Build a match-detail response with one participant per ``puuid → placement``."""
    return {
        "metadata": {
            "data_version": "6",
            "match_id": match_id,
            "participants": list(placements),
        },
        "info": {
            "game_datetime": started_ms,
            "game_length": 2101.4,
            "queue_id": 1100,
            "tft_set_number": 15,
            "participants": [
                {
                    "puuid": puuid,
                    "placement": placement,
                    "level": 8,
                    "time_eliminated": 1900.5,
                    "total_damage_to_players": 90,
                    "augments": ["TFT_Augment_A"],
                    "traits": [{"name": "TFT15_Star", "num_units": 3}],
                    "units": [{"character_id": "TFT15_Ahri", "tier": 2}],
                }
                for puuid, placement in placements.items()
            ],
        },
    }


class FakeRiotApi:
    """Scriptable Riot API.

    Populate ``accounts``, ``leagues``, ``match_ids`` and ``matches``; queue
    error responses with :meth:`fail_next`.  Every request path is appended
    to ``calls``.
    """

    def __init__(self) -> None:
        self.accounts: dict[tuple[str, str], str] = {}
        self.leagues: dict[str, list[dict]] = {}
        self.match_ids: dict[str, list[str]] = {}
        self.matches: dict[str, dict] = {}
        self.calls: list[str] = []
        self.headers: list[httpx.Headers] = []
        self._failures: deque[_Failure] = deque()
        self._client: RiotClient | None = None

    # -- scripting -----------------------------------------------------------
    def add_player(
        self,
        game_name: str,
        tagline: str,
        puuid: str,
        *,
        leagues: list[dict] | None = None,
        match_ids: list[str] | None = None,
    ) -> None:
        self.accounts[(game_name, tagline)] = puuid
        self.leagues[puuid] = leagues or []
        self.match_ids[puuid] = match_ids or []

    def fail_next(
        self,
        status: int,
        *,
        times: int = 1,
        path_contains: str | None = None,
        retry_after: str | None = None,
    ) -> None:
        for _ in range(times):
            self._failures.append(_Failure(status, path_contains, retry_after))

    def calls_to(self, fragment: str) -> int:
        return sum(1 for path in self.calls if fragment in path)

    # -- transport -------------------------------------------------------------
    def _take_failure(self, path: str) -> _Failure | None:
        if self._failures and (
            self._failures[0].path_contains is None
            or self._failures[0].path_contains in path
        ):
            return self._failures.popleft()
        return None

    def handler(self, request: httpx.Request) -> httpx.Response:
        path = request.url.path
        self.calls.append(path)
        self.headers.append(request.headers)

        failure = self._take_failure(path)
        if failure is not None:
            headers = {"Retry-After": failure.retry_after} if failure.retry_after else {}
            return httpx.Response(failure.status, json={"status": failure.status}, headers=headers)

        parts = path.strip("/").split("/")
        if parts[0] == "account" and len(parts) == 3:
            puuid = self.accounts.get((parts[1], parts[2]))
            if puuid is None:
                return httpx.Response(404, json={"status": {"message": "Data not found"}})
            return httpx.Response(200, json={"puuid": puuid, "gameName": parts[1], "tagLine": parts[2]})
        if parts[0] == "league" and len(parts) == 2:
            return httpx.Response(200, json=self.leagues.get(parts[1], []))
        if parts[:3] == ["match", "matches", "by-puuid"]:
            count = int(request.url.params.get("count", "20"))
            return httpx.Response(200, json=self.match_ids.get(parts[3], [])[:count])
        if parts[:2] == ["match", "matches"] and len(parts) == 3:
            match = self.matches.get(parts[2])
            if match is None:
                return httpx.Response(404, json={"status": {"message": "Data not found"}})
            return httpx.Response(200, json=match)
        return httpx.Response(404, json={"status": {"message": "unknown path"}})

    def client(self) -> RiotClient:
        if self._client is None:
            http = httpx.Client(transport=httpx.MockTransport(self.handler))
            self._client = RiotClient(TEST_RIOT_CONFIG, http=http)
        return self._client
