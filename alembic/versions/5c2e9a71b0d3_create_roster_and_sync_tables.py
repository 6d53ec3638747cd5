"""Create members, tft_matches, tft_match_participants and sync_logs

Revision ID: 5c2e9a71b0d3
Revises:
Create Date: 2026-10-19 09:00:00.000000

"""
from collections.abc import Sequence

import sqlalchemy as sa
from sqlalchemy.dialects import postgresql

from alembic import op

# revision identifiers, used by Alembic.
revision: str = "5c2e9a71b0d3"
down_revision: str | Sequence[str] | None = None
branch_labels: str | Sequence[str] | None = None
depends_on: str | Sequence[str] | None = None

_json = sa.JSON().with_variant(postgresql.JSONB(), "postgresql")


def _standing_columns(prefix: str) -> list[sa.Column]:
    return [
        sa.Column(f"{prefix}tier", sa.String(20), nullable=True),
        sa.Column(f"{prefix}rank", sa.String(5), nullable=True),
        sa.Column(f"{prefix}league_points", sa.Integer(), nullable=True),
        sa.Column(f"{prefix}wins", sa.Integer(), nullable=True),
        sa.Column(f"{prefix}losses", sa.Integer(), nullable=True),
    ]


def upgrade() -> None:
    """Create the roster, match and sync audit tables."""
    op.create_table(
        "members",
        sa.Column("id", sa.Integer(), primary_key=True, autoincrement=True),
        sa.Column("member_name", sa.String(100), nullable=False),
        sa.Column("riot_game_name", sa.String(100), nullable=False),
        sa.Column("riot_tagline", sa.String(20), nullable=False),
        sa.Column("riot_puuid", sa.String(100), nullable=True),
        sa.Column("memo", sa.Text(), nullable=True),
        *_standing_columns("tft_"),
        *_standing_columns("tft_doubleup_"),
        sa.Column("tft_recent5", sa.String(40), nullable=True),
        sa.Column(
            "sync_status", sa.String(20), nullable=False, server_default="pending"
        ),
        sa.Column("sync_attempts", sa.Integer(), nullable=False, server_default="0"),
        sa.Column("last_sync_started_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("last_sync_finished_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("last_sync_error", sa.Text(), nullable=True),
        sa.Column("last_synced_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column(
            "created_at",
            sa.DateTime(timezone=True),
            nullable=False,
            server_default=sa.func.now(),
        ),
    )
    op.create_index("ix_members_last_synced_at", "members", ["last_synced_at"])

    op.create_table(
        "tft_matches",
        sa.Column("match_id", sa.String(50), primary_key=True),
        sa.Column("data_version", sa.String(10), nullable=True),
        sa.Column("game_datetime", sa.DateTime(timezone=True), nullable=True),
        sa.Column("queue_id", sa.Integer(), nullable=True),
        sa.Column("tft_set_number", sa.Integer(), nullable=True),
        sa.Column("game_length_seconds", sa.Integer(), nullable=True),
    )

    op.create_table(
        "tft_match_participants",
        sa.Column("id", sa.Integer(), primary_key=True, autoincrement=True),
        sa.Column(
            "match_id",
            sa.String(50),
            sa.ForeignKey("tft_matches.match_id", ondelete="CASCADE"),
            nullable=False,
        ),
        sa.Column(
            "member_id",
            sa.Integer(),
            sa.ForeignKey("members.id", ondelete="CASCADE"),
            nullable=False,
        ),
        sa.Column("puuid", sa.String(100), nullable=False),
        sa.Column("placement", sa.Integer(), nullable=True),
        sa.Column("level", sa.Integer(), nullable=True),
        sa.Column("time_eliminated", sa.Float(), nullable=True),
        sa.Column("total_damage_to_players", sa.Integer(), nullable=True),
        sa.Column("augments", _json, nullable=True),
        sa.Column("traits", _json, nullable=True),
        sa.Column("units", _json, nullable=True),
        sa.UniqueConstraint("match_id", "member_id", name="uq_participant_match_member"),
    )
    op.create_index("ix_participants_member", "tft_match_participants", ["member_id"])

    op.create_table(
        "sync_logs",
        sa.Column("id", sa.Integer(), primary_key=True, autoincrement=True),
        sa.Column("type", sa.String(10), nullable=False),
        sa.Column("member_id", sa.Integer(), nullable=False),
        sa.Column("status", sa.String(10), nullable=False),
        sa.Column("message", sa.Text(), nullable=True),
        sa.Column("duration_ms", sa.Integer(), nullable=True),
        sa.Column(
            "created_at",
            sa.DateTime(timezone=True),
            nullable=False,
            server_default=sa.func.now(),
        ),
    )
    op.create_index("ix_sync_logs_status_created", "sync_logs", ["status", "created_at"])
    op.create_index("ix_sync_logs_member", "sync_logs", ["member_id", "created_at"])


def downgrade() -> None:
    """Drop all Ladderboard tables."""
    op.drop_index("ix_sync_logs_member", table_name="sync_logs")
    op.drop_index("ix_sync_logs_status_created", table_name="sync_logs")
    op.drop_table("sync_logs")

    op.drop_index("ix_participants_member", table_name="tft_match_participants")
    op.drop_table("tft_match_participants")
    op.drop_table("tft_matches")

    op.drop_index("ix_members_last_synced_at", table_name="members")
    op.drop_table("members")
