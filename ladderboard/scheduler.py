"""
ladderboard.scheduler — Entry point for ``python -m ladderboard.scheduler``
============================================================================

Meant to be run from cron (or any external scheduler):

1. Load .env (secrets) and config.
2. Create the SQLAlchemy engine and ensure tables exist.
3. Build the Riot client and member syncer.
4. Page through every stale member with ``run_batch(trigger=cron)`` until
   the coordinator reports ``done``.

Run with::

    uv run python -m ladderboard.scheduler
"""

from __future__ import annotations

import logging
import time
from collections.abc import Callable

from dotenv import load_dotenv
from sqlalchemy import Engine

from ladderboard.config import LadderConfig, load_config
from ladderboard.database.engine import create_db_engine, init_db
from ladderboard.database.models import SyncTrigger
from ladderboard.services.batch_service import BatchResult, run_batch
from ladderboard.services.member_sync import MemberSyncer
from ladderboard.services.riot_client import RiotClient
from ladderboard.services.sync_runner import RetryPolicy

logger = logging.getLogger("ladderboard")


def run_sweep(
    engine: Engine,
    syncer: MemberSyncer,
    cfg: LadderConfig,
    *,
    sleep: Callable[[float], None] = time.sleep,
    max_pages: int = 1000,
) -> list[BatchResult]:
    """Run cron batches following ``next_cursor`` until every stale member is done."""
    pages: list[BatchResult] = []
    cursor: int | None = None
    policy = RetryPolicy.from_config(cfg.sync)

    for _ in range(max_pages):
        page = run_batch(
            engine,
            syncer.sync,
            limit=cfg.sync.batch_size,
            cursor=cursor,
            policy=policy,
            trigger=SyncTrigger.CRON,
            stale_after=cfg.sync.stale_after_seconds,
            running_timeout=cfg.sync.running_timeout_seconds,
            member_delay=cfg.sync.member_delay,
            # Pruning once per sweep is enough.
            retention=(
                (cfg.sync.success_log_retention_days, cfg.sync.failure_log_retention_days)
                if not pages else None
            ),
            sleep=sleep,
        )
        pages.append(page)
        if page.done:
            break
        cursor = page.next_cursor
    else:
        logger.warning("Sweep stopped after %d pages without finishing", max_pages)

    return pages


def main() -> None:
    """Bootstrap and run one full scheduled sweep."""
    logging.basicConfig(
        level=logging.INFO,
        format="%(asctime)s │ %(levelname)-8s │ %(name)s │ %(message)s",
        datefmt="%H:%M:%S",
    )

    # 1. Environment + config.
    load_dotenv()
    cfg = load_config()
    logger.info("Config loaded — community: %s", cfg.community_name)

    # 2. Database.
    engine = create_db_engine()
    init_db(engine)

    # 3-4. Client + sweep.
    with RiotClient(cfg.riot) as client:
        syncer = MemberSyncer.from_config(engine, client, cfg.sync, batch=True)
        pages = run_sweep(engine, syncer, cfg)

    processed = sum(len(p.results) for p in pages)
    succeeded = sum(1 for p in pages for r in p.results if r.ok)
    logger.info("Sweep finished — %d/%d member(s) synced", succeeded, processed)


if __name__ == "__main__":
    main()
