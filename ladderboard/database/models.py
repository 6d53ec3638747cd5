"""
ladderboard.database.models — SQLAlchemy 2.0 Data Models
==========================================================

Tables:
- members                 — Roster entries with ranked standing + sync bookkeeping
- tft_matches             — One row per external match id (shared across members)
- tft_match_participants  — One row per (match, member) with that member's result
- sync_logs               — Append-only audit trail of sync attempts
"""

from __future__ import annotations

import enum
from datetime import datetime

from sqlalchemy import (
    JSON,
    DateTime,
    Enum,
    ForeignKey,
    Index,
    Integer,
    String,
    Text,
    UniqueConstraint,
    func,
)
from sqlalchemy.dialects.postgresql import JSONB
from sqlalchemy.orm import DeclarativeBase, Mapped, mapped_column, relationship

# Portable JSON column: JSONB on PostgreSQL, JSON (TEXT) elsewhere.
JSONPayload = JSON().with_variant(JSONB(), "postgresql")


# ---------------------------------------------------------------------------
# Base
# ---------------------------------------------------------------------------
class Base(DeclarativeBase):
    """Shared base for all Ladderboard ORM models."""


# ---------------------------------------------------------------------------
# Enums
# ---------------------------------------------------------------------------
class SyncStatus(enum.StrEnum):
    """Per-member sync state persisted on the member row."""
    PENDING = "pending"
    RUNNING = "running"
    SUCCESS = "success"
    FAILED = "failed"


class SyncTrigger(enum.StrEnum):
    """Who started a sync attempt."""
    MANUAL = "manual"
    CRON = "cron"


class SyncOutcome(enum.StrEnum):
    """Final outcome recorded in sync_logs."""
    SUCCESS = "success"
    SKIPPED = "skipped"
    ERROR = "error"


# ---------------------------------------------------------------------------
# Members — one row per registered roster member
# ---------------------------------------------------------------------------
class Member(Base):
    __tablename__ = "members"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    member_name: Mapped[str] = mapped_column(String(100), nullable=False)
    riot_game_name: Mapped[str] = mapped_column(String(100), nullable=False)
    riot_tagline: Mapped[str] = mapped_column(String(20), nullable=False)
    # Resolved once, then reused until an admin clears it.
    riot_puuid: Mapped[str | None] = mapped_column(String(100), default=None)
    memo: Mapped[str | None] = mapped_column(Text, default=None)

    # RANKED_TFT standing; NULL means unranked / never synced
    tft_tier: Mapped[str | None] = mapped_column(String(20), default=None)
    tft_rank: Mapped[str | None] = mapped_column(String(5), default=None)
    tft_league_points: Mapped[int | None] = mapped_column(Integer, default=None)
    tft_wins: Mapped[int | None] = mapped_column(Integer, default=None)
    tft_losses: Mapped[int | None] = mapped_column(Integer, default=None)

    # RANKED_TFT_DOUBLE_UP standing
    tft_doubleup_tier: Mapped[str | None] = mapped_column(String(20), default=None)
    tft_doubleup_rank: Mapped[str | None] = mapped_column(String(5), default=None)
    tft_doubleup_league_points: Mapped[int | None] = mapped_column(Integer, default=None)
    tft_doubleup_wins: Mapped[int | None] = mapped_column(Integer, default=None)
    tft_doubleup_losses: Mapped[int | None] = mapped_column(Integer, default=None)

    # Comma-separated placements, most recent first ("3,1,5,8,2")
    tft_recent5: Mapped[str | None] = mapped_column(String(40), default=None)

    # Sync bookkeeping
    sync_status: Mapped[SyncStatus] = mapped_column(
        Enum(SyncStatus, native_enum=False, length=20,
             values_callable=lambda e: [m.value for m in e]),
        default=SyncStatus.PENDING,
        nullable=False,
    )
    sync_attempts: Mapped[int] = mapped_column(Integer, default=0, nullable=False)
    last_sync_started_at: Mapped[datetime | None] = mapped_column(
        DateTime(timezone=True), default=None
    )
    last_sync_finished_at: Mapped[datetime | None] = mapped_column(
        DateTime(timezone=True), default=None
    )
    last_sync_error: Mapped[str | None] = mapped_column(Text, default=None)
    last_synced_at: Mapped[datetime | None] = mapped_column(
        DateTime(timezone=True), default=None
    )

    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), server_default=func.now()
    )

    participations: Mapped[list[MatchParticipant]] = relationship(
        back_populates="member", passive_deletes=True
    )

    __table_args__ = (
        Index("ix_members_last_synced_at", "last_synced_at"),
    )

    def __repr__(self) -> str:
        return (
            f"<Member id={self.id} name={self.member_name!r} "
            f"riot={self.riot_game_name}#{self.riot_tagline} status={self.sync_status}>"
        )


# ---------------------------------------------------------------------------
# Matches — shared by every member that appeared in them
# ---------------------------------------------------------------------------
class Match(Base):
    __tablename__ = "tft_matches"

    match_id: Mapped[str] = mapped_column(String(50), primary_key=True)
    data_version: Mapped[str | None] = mapped_column(String(10), default=None)
    game_datetime: Mapped[datetime | None] = mapped_column(
        DateTime(timezone=True), default=None
    )
    queue_id: Mapped[int | None] = mapped_column(Integer, default=None)
    tft_set_number: Mapped[int | None] = mapped_column(Integer, default=None)
    game_length_seconds: Mapped[int | None] = mapped_column(Integer, default=None)

    participants: Mapped[list[MatchParticipant]] = relationship(
        back_populates="match"
    )

    def __repr__(self) -> str:
        return f"<Match id={self.match_id!r} queue={self.queue_id}>"


# ---------------------------------------------------------------------------
# MatchParticipant — one member's result in one match
# ---------------------------------------------------------------------------
class MatchParticipant(Base):
    __tablename__ = "tft_match_participants"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    match_id: Mapped[str] = mapped_column(
        String(50), ForeignKey("tft_matches.match_id", ondelete="CASCADE"), nullable=False
    )
    member_id: Mapped[int] = mapped_column(
        Integer, ForeignKey("members.id", ondelete="CASCADE"), nullable=False
    )
    puuid: Mapped[str] = mapped_column(String(100), nullable=False)
    placement: Mapped[int | None] = mapped_column(Integer, default=None)
    level: Mapped[int | None] = mapped_column(Integer, default=None)
    time_eliminated: Mapped[float | None] = mapped_column(default=None)
    total_damage_to_players: Mapped[int | None] = mapped_column(Integer, default=None)
    augments: Mapped[list | None] = mapped_column(JSONPayload, default=None)
    traits: Mapped[list | None] = mapped_column(JSONPayload, default=None)
    units: Mapped[list | None] = mapped_column(JSONPayload, default=None)

    match: Mapped[Match] = relationship(back_populates="participants")
    member: Mapped[Member] = relationship(back_populates="participations")

    __table_args__ = (
        UniqueConstraint("match_id", "member_id", name="uq_participant_match_member"),
        Index("ix_participants_member", "member_id"),
    )

    def __repr__(self) -> str:
        return (
            f"<MatchParticipant match={self.match_id!r} member={self.member_id} "
            f"placement={self.placement}>"
        )


# ---------------------------------------------------------------------------
# SyncLog — append-only audit trail
# ---------------------------------------------------------------------------
class SyncLog(Base):
    """One row per finished sync attempt.  Never updated, only pruned.

    ``member_id`` is not a foreign key: rows outlive deleted members.
    """
    __tablename__ = "sync_logs"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    type: Mapped[str] = mapped_column(String(10), nullable=False)  # manual / cron
    member_id: Mapped[int] = mapped_column(Integer, nullable=False)
    status: Mapped[str] = mapped_column(String(10), nullable=False)  # success / skipped / error
    message: Mapped[str | None] = mapped_column(Text, default=None)
    duration_ms: Mapped[int | None] = mapped_column(Integer, default=None)
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), server_default=func.now()
    )

    __table_args__ = (
        Index("ix_sync_logs_status_created", "status", "created_at"),
        Index("ix_sync_logs_member", "member_id", "created_at"),
    )

    def __repr__(self) -> str:
        return f"<SyncLog id={self.id} member={self.member_id} status={self.status}>"
