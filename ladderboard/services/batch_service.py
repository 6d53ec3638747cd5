"""
ladderboard.services.batch_service — Stale-Member Batch Coordinator
====================================================================

Selects members whose last successful sync is missing or older than the
staleness threshold, and syncs them one at a time through the retry engine.

Pagination is keyset-based on ``members.id``::

    page = run_batch(..., limit=10, cursor=None)
    while not page.done:
        page = run_batch(..., limit=10, cursor=page.next_cursor)

Members currently ``running`` are skipped unless their run started longer
ago than ``running_timeout`` seconds (an abandoned run).  This is a soft
guard read from the database, not a lock: two overlapping batches can
still pick the same member.
"""

from __future__ import annotations

import logging
import time
from collections.abc import Callable
from dataclasses import dataclass, field
from datetime import timedelta

from sqlalchemy import Engine, or_, select
from sqlalchemy.orm import Session

from ladderboard.database.models import Member, SyncStatus, SyncTrigger
from ladderboard.services import retention_service, sync_state
from ladderboard.services.sync_runner import RetryPolicy, SyncResult, run_member_sync

logger = logging.getLogger(__name__)


@dataclass(slots=True)
class BatchResult:
    next_cursor: int | None
    done: bool
    results: list[SyncResult] = field(default_factory=list)
    pruned: dict[str, int] | None = None

    def to_dict(self) -> dict:
        return {
            "next_cursor": self.next_cursor,
            "done": self.done,
            "processed": len(self.results),
            "succeeded": sum(1 for r in self.results if r.ok),
            "results": [
                {
                    "member_id": r.member_id,
                    "ok": r.ok,
                    "status": r.status,
                    "skipped": r.skipped,
                    "error": r.error,
                }
                for r in self.results
            ],
            "pruned": self.pruned,
        }


def select_stale_members(
    engine: Engine,
    *,
    limit: int,
    cursor: int | None = None,
    stale_after: int = 3600,
    running_timeout: int = 1800,
) -> list[int]:
    """Return up to *limit* stale member ids after *cursor*, ascending."""
    now = sync_state.utcnow()
    stale_cutoff = now - timedelta(seconds=stale_after)
    abandoned_cutoff = now - timedelta(seconds=running_timeout)

    q = (
        select(Member.id)
        .where(
            or_(Member.last_synced_at.is_(None), Member.last_synced_at < stale_cutoff),
            or_(
                Member.sync_status != SyncStatus.RUNNING,
                Member.last_sync_started_at.is_(None),
                Member.last_sync_started_at < abandoned_cutoff,
            ),
        )
        .order_by(Member.id)
        .limit(limit)
    )
    if cursor is not None:
        q = q.where(Member.id > cursor)

    with Session(engine) as session:
        return list(session.scalars(q).all())


def run_batch(
    engine: Engine,
    do_sync: Callable[[int], None],
    *,
    limit: int = 10,
    cursor: int | None = None,
    policy: RetryPolicy | None = None,
    trigger: SyncTrigger = SyncTrigger.MANUAL,
    stale_after: int = 3600,
    running_timeout: int = 1800,
    member_delay: float = 1.5,
    retention: tuple[int, int] | None = None,
    sleep: Callable[[float], None] = time.sleep,
) -> BatchResult:
    """Sync one page of stale members.

    Parameters
    ----------
    do_sync:
        Single-pass sync callable, usually ``MemberSyncer.sync``.
    retention:
        ``(success_days, failure_days)``.  When given and *trigger* is
        ``cron``, old sync logs are pruned before the page is processed.
    """
    pruned = None
    if trigger == SyncTrigger.CRON and retention is not None:
        try:
            pruned = retention_service.prune_sync_logs(engine, *retention)
        except Exception:
            logger.exception("Sync log pruning failed; continuing with batch")

    member_ids = select_stale_members(
        engine,
        limit=limit,
        cursor=cursor,
        stale_after=stale_after,
        running_timeout=running_timeout,
    )

    results: list[SyncResult] = []
    for member_id in member_ids:
        try:
            result = run_member_sync(
                engine, member_id, do_sync, policy=policy, trigger=trigger, sleep=sleep
            )
        except Exception as exc:
            # keep the batch moving whatever one member raises
            logger.exception("Batch sync of member=%s aborted", member_id)
            result = SyncResult(
                member_id=member_id, ok=False, status=0, error=f"unexpected error: {exc}"
            )
        results.append(result)

        if member_delay > 0:
            sleep(member_delay)

    batch = BatchResult(
        next_cursor=member_ids[-1] if member_ids else cursor,
        done=len(member_ids) < limit,
        results=results,
        pruned=pruned,
    )
    logger.info(
        "Batch (%s) processed %d member(s), %d ok, next_cursor=%s, done=%s",
        trigger, len(results), sum(1 for r in results if r.ok),
        batch.next_cursor, batch.done,
    )
    return batch
