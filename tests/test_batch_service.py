"""
tests/test_batch_service.py — Stale-member batch coordinator & scheduled sweep
================================================================================
"""

from __future__ import annotations

from datetime import timedelta
from types import SimpleNamespace

from sqlalchemy import select
from sqlalchemy.orm import Session

from conftest import add_member
from ladderboard.config import LadderConfig, SyncConfig
from ladderboard.database.models import Member, SyncLog, SyncStatus, SyncTrigger
from ladderboard.scheduler import run_sweep
from ladderboard.services import batch_service
from ladderboard.services.batch_service import run_batch, select_stale_members
from ladderboard.services.errors import UpstreamRejected
from ladderboard.services.sync_state import utcnow
from ladderboard.services.sync_runner import RetryPolicy

NO_WAIT = RetryPolicy(
    max_attempts=2, backoff_base=0.0, backoff_cap=0.0, backoff_jitter=0.0, throttle_fallback=0.0
)


def _noop(member_id):
    return None


def _add_stale(engine, count: int) -> list[int]:
    return [add_member(engine, name=f"m{i}", game_name=f"m{i}") for i in range(count)]


# ---------------------------------------------------------------------------
# Selection
# ---------------------------------------------------------------------------
class TestSelectStaleMembers:
    def test_never_synced_and_old_are_stale(self, db_engine):
        never = add_member(db_engine, name="never")
        old = add_member(db_engine, name="old", last_synced_at=utcnow() - timedelta(hours=3))
        add_member(db_engine, name="fresh", last_synced_at=utcnow() - timedelta(minutes=10))

        assert select_stale_members(db_engine, limit=10) == [never, old]

    def test_running_member_excluded(self, db_engine):
        idle = add_member(db_engine, name="idle")
        add_member(
            db_engine,
            name="busy",
            sync_status=SyncStatus.RUNNING,
            last_sync_started_at=utcnow() - timedelta(minutes=1),
        )
        assert select_stale_members(db_engine, limit=10) == [idle]

    def test_abandoned_running_member_included(self, db_engine):
        stuck = add_member(
            db_engine,
            sync_status=SyncStatus.RUNNING,
            last_sync_started_at=utcnow() - timedelta(hours=2),
        )
        assert select_stale_members(db_engine, limit=10, running_timeout=1800) == [stuck]

    def test_cursor_and_limit(self, db_engine):
        ids = _add_stale(db_engine, 5)
        assert select_stale_members(db_engine, limit=2) == ids[:2]
        assert select_stale_members(db_engine, limit=2, cursor=ids[1]) == ids[2:4]
        assert select_stale_members(db_engine, limit=2, cursor=ids[4]) == []


# ---------------------------------------------------------------------------
# Batch
# ---------------------------------------------------------------------------
class TestRunBatch:
    def test_first_page_of_five(self, db_engine, sleeps):
        ids = _add_stale(db_engine, 5)
        batch = run_batch(
            db_engine, _noop, limit=2, policy=NO_WAIT, member_delay=0, sleep=sleeps.append
        )

        assert [r.member_id for r in batch.results] == ids[:2]
        assert all(r.ok for r in batch.results)
        assert batch.done is False
        assert batch.next_cursor == ids[1]

    def test_pages_until_done(self, db_engine, sleeps):
        ids = _add_stale(db_engine, 5)
        seen: list[int] = []
        cursor = None
        while True:
            batch = run_batch(
                db_engine, _noop, limit=2, cursor=cursor, policy=NO_WAIT,
                member_delay=0, sleep=sleeps.append,
            )
            seen.extend(r.member_id for r in batch.results)
            if batch.done:
                break
            cursor = batch.next_cursor
        assert seen == ids

    def test_empty_page_keeps_cursor(self, db_engine):
        batch = run_batch(db_engine, _noop, limit=5, cursor=17, policy=NO_WAIT, member_delay=0)
        assert batch.results == []
        assert batch.done is True
        assert batch.next_cursor == 17

    def test_synced_members_drop_out_of_selection(self, db_engine, sleeps):
        _add_stale(db_engine, 3)
        run_batch(db_engine, _noop, limit=10, policy=NO_WAIT, member_delay=0)
        assert select_stale_members(db_engine, limit=10) == []

    def test_one_failure_does_not_stop_batch(self, db_engine, sleeps):
        ids = _add_stale(db_engine, 3)

        def do_sync(member_id):
            if member_id == ids[0]:
                raise UpstreamRejected("Riot API error (403): Forbidden", 403)

        batch = run_batch(db_engine, do_sync, limit=10, policy=NO_WAIT, member_delay=0)

        assert [r.ok for r in batch.results] == [False, True, True]
        assert batch.results[0].status == 403
        with Session(db_engine) as session:
            assert session.get(Member, ids[0]).sync_status == SyncStatus.FAILED

    def test_engine_crash_recorded_and_batch_continues(self, db_engine, monkeypatch):
        ids = _add_stale(db_engine, 2)
        original = batch_service.run_member_sync

        def crashing(engine, member_id, *args, **kwargs):
            if member_id == ids[0]:
                raise RuntimeError("connection reset")
            return original(engine, member_id, *args, **kwargs)

        monkeypatch.setattr(batch_service, "run_member_sync", crashing)
        batch = run_batch(db_engine, _noop, limit=10, policy=NO_WAIT, member_delay=0)

        assert batch.results[0].ok is False
        assert batch.results[0].status == 0
        assert "connection reset" in batch.results[0].error
        assert batch.results[1].ok is True

    def test_member_delay_between_members(self, db_engine, sleeps):
        _add_stale(db_engine, 2)
        run_batch(db_engine, _noop, limit=10, policy=NO_WAIT, member_delay=1.5, sleep=sleeps.append)
        assert sleeps == [1.5, 1.5]

    def test_cron_prunes_logs_first(self, db_engine):
        with Session(db_engine) as session:
            session.add(SyncLog(
                type="cron", member_id=1, status="success",
                created_at=utcnow() - timedelta(days=8),
            ))
            session.commit()

        batch = run_batch(
            db_engine, _noop, limit=10, policy=NO_WAIT, member_delay=0,
            trigger=SyncTrigger.CRON, retention=(7, 30),
        )
        assert batch.pruned == {"success_deleted": 1, "other_deleted": 0}

    def test_manual_trigger_never_prunes(self, db_engine):
        batch = run_batch(
            db_engine, _noop, limit=10, policy=NO_WAIT, member_delay=0,
            trigger=SyncTrigger.MANUAL, retention=(7, 30),
        )
        assert batch.pruned is None

    def test_to_dict_summary(self, db_engine):
        ids = _add_stale(db_engine, 2)
        body = run_batch(db_engine, _noop, limit=10, policy=NO_WAIT, member_delay=0).to_dict()
        assert body["processed"] == 2
        assert body["succeeded"] == 2
        assert body["done"] is True
        assert body["next_cursor"] == ids[1]
        assert body["results"][0] == {
            "member_id": ids[0], "ok": True, "status": 200, "skipped": False, "error": None,
        }


# ---------------------------------------------------------------------------
# Scheduled sweep
# ---------------------------------------------------------------------------
def test_sweep_follows_cursor_and_prunes_once(db_engine, sleeps):
    ids = _add_stale(db_engine, 5)
    cfg = LadderConfig(sync=SyncConfig(
        batch_size=2, member_delay=0.0, backoff_base=0.0, backoff_cap=0.0, backoff_jitter=0.0,
    ))
    syncer = SimpleNamespace(sync=_noop)

    pages = run_sweep(db_engine, syncer, cfg, sleep=sleeps.append)

    assert [len(p.results) for p in pages] == [2, 2, 1]
    assert pages[-1].done
    assert pages[0].pruned is not None
    assert all(p.pruned is None for p in pages[1:])
    with Session(db_engine) as session:
        logs = session.scalars(select(SyncLog)).all()
    assert sorted(log.member_id for log in logs) == ids
    assert {log.type for log in logs} == {"cron"}
