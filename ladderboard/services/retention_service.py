"""
ladderboard.services.retention_service — Sync Log Retention Cleanup
====================================================================

Periodic pruning of ``sync_logs``:

* ``success`` rows older than ``success_days`` (default 7);
* every other status older than ``failure_days`` (default 30).

Runs at the start of each scheduled batch, or ad hoc.

**Deletion is batched**: rows are removed in chunks of ``BATCH_SIZE`` so a
large backlog never holds a long lock on the table.
"""

from __future__ import annotations

import logging
from datetime import UTC, datetime, timedelta

from sqlalchemy import Engine, delete, func, select
from sqlalchemy.sql.elements import ColumnElement

from ladderboard.database.engine import get_session
from ladderboard.database.models import SyncLog, SyncOutcome

logger = logging.getLogger(__name__)

# How many rows to delete in each batch
BATCH_SIZE = 5_000


def _delete_batched(engine: Engine, condition: ColumnElement[bool]) -> int:
    deleted = 0
    while True:
        with get_session(engine) as session:
            ids = session.scalars(
                select(SyncLog.id).where(condition).limit(BATCH_SIZE)
            ).all()
            if not ids:
                break
            result = session.execute(delete(SyncLog).where(SyncLog.id.in_(ids)))
            deleted += result.rowcount  # type: ignore[operator]
    return deleted


def prune_sync_logs(
    engine: Engine,
    success_days: int = 7,
    failure_days: int = 30,
    *,
    now: datetime | None = None,
) -> dict[str, int]:
    """Delete aged ``sync_logs`` rows.

    Returns ``{"success_deleted": N, "other_deleted": M}``.
    """
    now = now or datetime.now(UTC)
    success_cutoff = now - timedelta(days=success_days)
    failure_cutoff = now - timedelta(days=failure_days)

    success_deleted = _delete_batched(
        engine,
        (SyncLog.status == str(SyncOutcome.SUCCESS)) & (SyncLog.created_at < success_cutoff),
    )
    other_deleted = _delete_batched(
        engine,
        (SyncLog.status != str(SyncOutcome.SUCCESS)) & (SyncLog.created_at < failure_cutoff),
    )

    logger.info(
        "Retention cleanup complete — %d success, %d other sync_logs removed "
        "(success_days=%d, failure_days=%d)",
        success_deleted, other_deleted, success_days, failure_days,
    )
    return {"success_deleted": success_deleted, "other_deleted": other_deleted}


def get_sync_log_stats(engine: Engine) -> dict:
    """Row counts per status plus the oldest entry, for the admin dashboard."""
    with get_session(engine) as session:
        counts = dict(
            session.execute(
                select(SyncLog.status, func.count()).group_by(SyncLog.status)
            ).all()
        )
        oldest = session.scalar(select(func.min(SyncLog.created_at)))

    return {
        "counts": counts,
        "total": sum(counts.values()),
        "oldest": oldest.isoformat() if oldest else None,
    }
