"""
ladderboard.services.member_sync — Single-Member Sync Pass
============================================================

One pass, no internal retry — :mod:`ladderboard.services.sync_runner` owns
retries.  Any classified failure aborts the pass and propagates.

Steps:
    1. Load the member (``MemberNotFound`` if absent).
    2. Cooldown guard against ``last_synced_at`` (``CooldownActive``).
    3. Resolve the PUUID unless one is already stored (kept in memory).
    4. Fetch standings; a missing queue variant means unranked (all NULL).
    5. Write standings + PUUID in one UPDATE (``PersistenceConflict`` on 0 rows).
    6. For each recent match id: pause, fetch detail, upsert the match row,
       upsert this member's participation, remember the placement.
       A single match's persistence failure is logged and skipped.
    7. Best-effort write of the rolling recent-results record.

Each write is its own statement; a pass that dies between steps 5 and 7
leaves fresh standings with a stale rolling record until the next sync.
"""

from __future__ import annotations

import logging
import time
from collections.abc import Callable
from typing import Any

from sqlalchemy import Engine, update
from sqlalchemy.dialects import postgresql, sqlite
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from ladderboard.config import SyncConfig
from ladderboard.constants import LOBBY_SIZE, QUEUE_DOUBLE_UP, QUEUE_SOLO
from ladderboard.database.engine import get_session
from ladderboard.database.models import Match, MatchParticipant, Member
from ladderboard.engine.recent import encode_recent
from ladderboard.services import sync_state
from ladderboard.services.errors import CooldownActive, MemberNotFound, PersistenceConflict
from ladderboard.services.riot_client import MatchDetail, RiotClient, Standing

logger = logging.getLogger(__name__)


def _standing_values(prefix: str, standing: Standing | None) -> dict[str, Any]:
    return {
        f"{prefix}tier": standing.tier if standing else None,
        f"{prefix}rank": standing.rank if standing else None,
        f"{prefix}league_points": standing.league_points if standing else None,
        f"{prefix}wins": standing.wins if standing else None,
        f"{prefix}losses": standing.losses if standing else None,
    }


def standing_columns(standings: list[Standing]) -> dict[str, Any]:
    """Map fetched standings onto member columns; absent queues become NULL."""
    by_queue = {s.queue_type: s for s in standings}
    values = _standing_values("tft_", by_queue.get(QUEUE_SOLO))
    values.update(_standing_values("tft_doubleup_", by_queue.get(QUEUE_DOUBLE_UP)))
    return values


def _insert_for(session: Session):
    """Dialect ``insert`` that supports ``on_conflict_do_update``."""
    if session.get_bind().dialect.name == "postgresql":
        return postgresql.insert
    return sqlite.insert


class MemberSyncer:
    """Performs the single-pass sync for one member at a time.

    Parameters
    ----------
    engine:
        SQLAlchemy engine.
    client:
        Riot API client.
    cooldown_seconds:
        Minimum gap since ``last_synced_at``; 0 disables the guard.
    match_count:
        How many recent match ids to fetch.
    match_delay:
        Pause before each match detail request, in seconds.
    sleep:
        Injected for tests.
    """

    def __init__(
        self,
        engine: Engine,
        client: RiotClient,
        *,
        cooldown_seconds: int = 600,
        match_count: int = 5,
        match_delay: float = 1.2,
        sleep: Callable[[float], None] = time.sleep,
    ) -> None:
        self.engine = engine
        self.client = client
        self.cooldown_seconds = cooldown_seconds
        self.match_count = match_count
        self.match_delay = match_delay
        self.sleep = sleep

    @classmethod
    def from_config(
        cls,
        engine: Engine,
        client: RiotClient,
        cfg: SyncConfig,
        *,
        batch: bool = False,
        sleep: Callable[[float], None] = time.sleep,
    ) -> MemberSyncer:
        return cls(
            engine,
            client,
            cooldown_seconds=cfg.batch_cooldown_seconds if batch else cfg.cooldown_seconds,
            match_count=cfg.match_count,
            match_delay=cfg.match_delay,
            sleep=sleep,
        )

    # -- steps --------------------------------------------------------------
    def _load(self, member_id: int) -> Member:
        with Session(self.engine, expire_on_commit=False) as session:
            member = session.get(Member, member_id)
            if member is None:
                raise MemberNotFound(member_id)
            session.expunge(member)
            return member

    def _check_cooldown(self, member: Member) -> None:
        last = sync_state.as_utc(member.last_synced_at)
        if last is None or self.cooldown_seconds <= 0:
            return
        elapsed = (sync_state.utcnow() - last).total_seconds()
        if elapsed < self.cooldown_seconds:
            remaining = max(1, int(self.cooldown_seconds - elapsed + 0.999))
            raise CooldownActive(elapsed, remaining)

    def _write_standings(self, member_id: int, puuid: str, standings: list[Standing]) -> None:
        with get_session(self.engine) as session:
            result = session.execute(
                update(Member)
                .where(Member.id == member_id)
                .values(riot_puuid=puuid, **standing_columns(standings))
            )
            if result.rowcount == 0:
                raise PersistenceConflict(
                    f"Standing update for member {member_id} affected 0 rows"
                )

    def _store_match(self, member_id: int, puuid: str, detail: MatchDetail) -> int | None:
        """Upsert the match and this member's participation.

        Returns the member's placement, or ``None`` when the member is not in
        the participant list.
        """
        part = detail.participant(puuid)
        with get_session(self.engine) as session:
            insert = _insert_for(session)
            match_values = {
                "match_id": detail.match_id,
                "data_version": detail.data_version,
                "game_datetime": detail.game_datetime,
                "queue_id": detail.queue_id,
                "tft_set_number": detail.tft_set_number,
                "game_length_seconds": detail.game_length_seconds,
            }
            stmt = insert(Match).values(**match_values)
            session.execute(
                stmt.on_conflict_do_update(
                    index_elements=[Match.match_id],
                    set_={k: v for k, v in match_values.items() if k != "match_id"},
                )
            )

            if part is None:
                logger.warning(
                    "Match %s has no participant for member=%s; skipping",
                    detail.match_id, member_id,
                )
                return None

            part_values = {
                "match_id": detail.match_id,
                "member_id": member_id,
                "puuid": puuid,
                "placement": part.get("placement"),
                "level": part.get("level"),
                "time_eliminated": part.get("time_eliminated"),
                "total_damage_to_players": part.get("total_damage_to_players"),
                "augments": part.get("augments"),
                "traits": part.get("traits"),
                "units": part.get("units"),
            }
            stmt = insert(MatchParticipant).values(**part_values)
            session.execute(
                stmt.on_conflict_do_update(
                    index_elements=[MatchParticipant.match_id, MatchParticipant.member_id],
                    set_={
                        k: v for k, v in part_values.items()
                        if k not in ("match_id", "member_id")
                    },
                )
            )
        return part.get("placement") or LOBBY_SIZE

    def _write_recent(self, member_id: int, placements: list[int]) -> None:
        try:
            with get_session(self.engine) as session:
                session.execute(
                    update(Member)
                    .where(Member.id == member_id)
                    .values(tft_recent5=encode_recent(placements))
                )
        except (SQLAlchemyError, ValueError):
            logger.exception("Failed to write recent results for member=%s", member_id)

    # -- entry point ----------------------------------------------------------
    def sync(self, member_id: int) -> None:
        """Run one pass for *member_id*.  Raises on any classified failure."""
        member = self._load(member_id)
        self._check_cooldown(member)

        puuid = member.riot_puuid
        if not puuid:
            puuid = self.client.resolve_identity(member.riot_game_name, member.riot_tagline)
            logger.info("Resolved member=%s → puuid=%s…", member_id, puuid[:8])

        standings = self.client.fetch_standings(puuid)
        self._write_standings(member_id, puuid, standings)

        match_ids = self.client.fetch_recent_match_ids(puuid, self.match_count)
        placements: list[int] = []
        for match_id in match_ids:
            if self.match_delay > 0:
                self.sleep(self.match_delay)
            detail = self.client.fetch_match_detail(match_id)
            try:
                placement = self._store_match(member_id, puuid, detail)
            except SQLAlchemyError:
                logger.exception(
                    "Failed to store match %s for member=%s", match_id, member_id
                )
                continue
            if placement is not None:
                placements.append(placement)

        if placements:
            self._write_recent(member_id, placements)

        logger.info(
            "Synced member=%s: %d standing(s), %d/%d match(es) stored",
            member_id, len(standings), len(placements), len(match_ids),
        )
