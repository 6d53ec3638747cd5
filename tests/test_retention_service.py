"""
tests/test_retention_service.py — Sync log retention cleanup
==============================================================
"""

from __future__ import annotations

from datetime import UTC, datetime, timedelta

from sqlalchemy import select
from sqlalchemy.orm import Session

from ladderboard.database.models import SyncLog
from ladderboard.services import retention_service
from ladderboard.services.retention_service import get_sync_log_stats, prune_sync_logs

NOW = datetime(2026, 3, 1, 12, 0, tzinfo=UTC)


def _log(session, status: str, days_old: float, member_id: int = 1) -> None:
    session.add(SyncLog(
        type="cron",
        member_id=member_id,
        status=status,
        created_at=NOW - timedelta(days=days_old),
    ))


def _remaining(engine) -> list[tuple[str, int]]:
    with Session(engine) as session:
        rows = session.scalars(select(SyncLog).order_by(SyncLog.id)).all()
        return [(row.status, row.member_id) for row in rows]


class TestPruneSyncLogs:
    def test_success_and_failure_windows(self, db_engine):
        with Session(db_engine) as session:
            _log(session, "success", 8, member_id=1)   # pruned
            _log(session, "success", 2, member_id=2)   # kept
            _log(session, "error", 10, member_id=3)    # kept
            _log(session, "error", 31, member_id=4)    # pruned
            _log(session, "skipped", 45, member_id=5)  # pruned
            session.commit()

        result = prune_sync_logs(db_engine, success_days=7, failure_days=30, now=NOW)

        assert result == {"success_deleted": 1, "other_deleted": 2}
        assert _remaining(db_engine) == [("success", 2), ("error", 3)]

    def test_nothing_to_prune(self, db_engine):
        with Session(db_engine) as session:
            _log(session, "success", 1)
            session.commit()
        assert prune_sync_logs(db_engine, now=NOW) == {"success_deleted": 0, "other_deleted": 0}

    def test_deletes_in_batches(self, db_engine, monkeypatch):
        monkeypatch.setattr(retention_service, "BATCH_SIZE", 2)
        with Session(db_engine) as session:
            for member_id in range(5):
                _log(session, "success", 20, member_id=member_id)
            session.commit()

        result = prune_sync_logs(db_engine, now=NOW)

        assert result["success_deleted"] == 5
        assert _remaining(db_engine) == []


def test_sync_log_stats(db_engine):
    with Session(db_engine) as session:
        _log(session, "success", 3)
        _log(session, "success", 1)
        _log(session, "error", 5)
        session.commit()

    stats = get_sync_log_stats(db_engine)

    assert stats["counts"] == {"success": 2, "error": 1}
    assert stats["total"] == 3
    assert stats["oldest"].startswith("2026-02-24")


def test_sync_log_stats_empty(db_engine):
    assert get_sync_log_stats(db_engine) == {"counts": {}, "total": 0, "oldest": None}
