"""
tests/test_riot_client.py — Riot API client over a mock transport
===================================================================
"""

from __future__ import annotations

from datetime import UTC, datetime

import httpx
import pytest

from fakes import league_entry, match_payload
from ladderboard.config import RiotConfig
from ladderboard.services.errors import (
    UpstreamRejected,
    UpstreamThrottled,
    UpstreamUnavailable,
)
from ladderboard.services.riot_client import MatchDetail, RiotClient


class TestEndpoints:
    def test_resolve_identity_sends_token(self, riot):
        riot.add_player("drew", "KR1", "puuid-drew")
        puuid = riot.client().resolve_identity("drew", "KR1")
        assert puuid == "puuid-drew"
        assert riot.calls == ["/account/drew/KR1"]
        assert riot.headers[0]["X-Riot-Token"] == "RGAPI-test"

    def test_resolve_identity_escapes_path(self, riot):
        riot.add_player("two words", "KR1", "puuid-x")
        assert riot.client().resolve_identity("two words", "KR1") == "puuid-x"

    def test_fetch_standings(self, riot):
        riot.add_player(
            "drew", "KR1", "p1",
            leagues=[league_entry(), league_entry("RANKED_TFT_TURBO", tier=None)],
        )
        standings = riot.client().fetch_standings("p1")
        assert [s.queue_type for s in standings] == ["RANKED_TFT", "RANKED_TFT_TURBO"]
        solo = standings[0]
        assert (solo.tier, solo.rank, solo.league_points) == ("GOLD", "II", 40)
        assert (solo.wins, solo.losses) == (12, 30)

    def test_fetch_standings_unranked_is_empty(self, riot):
        riot.add_player("drew", "KR1", "p1")
        assert riot.client().fetch_standings("p1") == []

    def test_fetch_recent_match_ids_passes_count(self, riot):
        riot.add_player("drew", "KR1", "p1", match_ids=["KR_1", "KR_2", "KR_3"])
        assert riot.client().fetch_recent_match_ids("p1", count=2) == ["KR_1", "KR_2"]
        assert riot.calls == ["/match/matches/by-puuid/p1/ids"]

    def test_fetch_match_detail(self, riot):
        riot.matches["KR_1"] = match_payload("KR_1", {"p1": 3, "p2": 6})
        detail = riot.client().fetch_match_detail("KR_1")
        assert detail.match_id == "KR_1"
        assert detail.queue_id == 1100
        assert detail.tft_set_number == 15
        assert detail.game_length_seconds == 2101
        assert detail.game_datetime == datetime.fromtimestamp(1_760_000_000, tz=UTC)
        assert detail.participant("p2")["placement"] == 6
        assert detail.participant("nobody") is None


class TestErrors:
    def test_throttled_carries_retry_after(self, riot):
        riot.fail_next(429, retry_after="5")
        with pytest.raises(UpstreamThrottled) as exc_info:
            riot.client().fetch_standings("p1")
        assert exc_info.value.status == 429
        assert exc_info.value.retry_after == 5.0
        assert exc_info.value.retryable

    def test_throttled_without_header(self, riot):
        riot.fail_next(429)
        with pytest.raises(UpstreamThrottled) as exc_info:
            riot.client().fetch_standings("p1")
        assert exc_info.value.retry_after is None

    @pytest.mark.parametrize("status", [502, 503, 504])
    def test_gateway_errors_are_retryable(self, riot, status):
        riot.fail_next(status)
        with pytest.raises(UpstreamUnavailable) as exc_info:
            riot.client().fetch_standings("p1")
        assert exc_info.value.status == status
        assert exc_info.value.retryable

    def test_unknown_account_is_fatal(self, riot):
        with pytest.raises(UpstreamRejected) as exc_info:
            riot.client().resolve_identity("ghost", "KR1")
        assert exc_info.value.status == 404
        assert not exc_info.value.retryable
        assert "Riot API error (404)" in exc_info.value.message

    def test_missing_api_key_is_fatal_without_request(self, riot):
        http = httpx.Client(transport=httpx.MockTransport(riot.handler))
        client = RiotClient(RiotConfig(api_key=""), http=http)
        with pytest.raises(UpstreamRejected) as exc_info:
            client.fetch_standings("p1")
        assert exc_info.value.status == 401
        assert riot.calls == []


def test_match_detail_tolerates_missing_info():
    detail = MatchDetail.from_payload({"metadata": {"match_id": "KR_9"}})
    assert detail.game_datetime is None
    assert detail.game_length_seconds is None
    assert detail.participants == []
