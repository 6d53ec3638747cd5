"""
ladderboard.services.sync_state — Sync Bookkeeping & Audit Log Store
=====================================================================

Pure persistence, no business logic:

* atomic single-statement updates to a member's bookkeeping columns
  (``sync_status``, ``sync_attempts``, timestamps, ``last_sync_error``);
* append-only inserts into ``sync_logs``.

:func:`write_sync_log` is fire-and-forget: a failed audit insert is logged
locally and never propagates into the sync it describes.
"""

from __future__ import annotations

import logging
from datetime import UTC, datetime

from sqlalchemy import Engine, select, update

from ladderboard.database.engine import get_session
from ladderboard.database.models import Member, SyncLog, SyncOutcome, SyncStatus, SyncTrigger

logger = logging.getLogger(__name__)


def utcnow() -> datetime:
    return datetime.now(UTC)


def as_utc(value: datetime | None) -> datetime | None:
    """SQLite hands back naive datetimes; treat them as UTC."""
    if value is None:
        return None
    if value.tzinfo is None:
        return value.replace(tzinfo=UTC)
    return value


# ---------------------------------------------------------------------------
# Member bookkeeping
# ---------------------------------------------------------------------------
def mark_running(engine: Engine, member_id: int, started_at: datetime) -> SyncStatus | None:
    """Flag the member ``running`` and bump its attempt counter.

    Returns the status the member had before, or ``None`` when the member
    row does not exist (nothing is written in that case).
    """
    with get_session(engine) as session:
        previous = session.scalar(
            select(Member.sync_status).where(Member.id == member_id)
        )
        if previous is None:
            return None
        session.execute(
            update(Member)
            .where(Member.id == member_id)
            .values(
                sync_status=SyncStatus.RUNNING,
                last_sync_started_at=started_at,
                last_sync_error=None,
                sync_attempts=Member.sync_attempts + 1,
            )
        )
    return SyncStatus(previous)


def mark_success(engine: Engine, member_id: int, finished_at: datetime) -> None:
    with get_session(engine) as session:
        session.execute(
            update(Member)
            .where(Member.id == member_id)
            .values(
                sync_status=SyncStatus.SUCCESS,
                last_sync_finished_at=finished_at,
                last_sync_error=None,
                last_synced_at=finished_at,
            )
        )


def mark_failed(
    engine: Engine, member_id: int, finished_at: datetime, error: str
) -> None:
    with get_session(engine) as session:
        session.execute(
            update(Member)
            .where(Member.id == member_id)
            .values(
                sync_status=SyncStatus.FAILED,
                last_sync_finished_at=finished_at,
                last_sync_error=error,
            )
        )


def restore_status(
    engine: Engine, member_id: int, status: SyncStatus, finished_at: datetime
) -> None:
    """Put back the pre-run status after a skipped pass."""
    with get_session(engine) as session:
        session.execute(
            update(Member)
            .where(Member.id == member_id)
            .values(sync_status=status, last_sync_finished_at=finished_at)
        )


# ---------------------------------------------------------------------------
# Audit log
# ---------------------------------------------------------------------------
def write_sync_log(
    engine: Engine,
    *,
    trigger: SyncTrigger,
    member_id: int,
    outcome: SyncOutcome,
    message: str | None = None,
    duration_ms: int | None = None,
) -> None:
    """Append one ``sync_logs`` row.  Never raises."""
    try:
        with get_session(engine) as session:
            session.add(SyncLog(
                type=str(trigger),
                member_id=member_id,
                status=str(outcome),
                message=message,
                duration_ms=duration_ms,
                created_at=utcnow(),
            ))
    except Exception:
        logger.exception(
            "sync_logs insert failed (member=%s outcome=%s)", member_id, outcome
        )
