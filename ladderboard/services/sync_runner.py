"""
ladderboard.services.sync_runner — Retry / Backoff Engine
==========================================================

Wraps one member's single-pass sync in a bounded retry loop.

State machine per invocation::

    PENDING ──► RUNNING ──► SUCCESS
                   │
                   └──────► FAILED

1. Mark the member ``running`` (start time, cleared error, attempts + 1)
   *before* any work, so a crash mid-sync leaves evidence behind.
2. Call ``do_sync(member_id)`` up to ``max_attempts`` times:

   * success → ``success`` + ``last_synced_at``;
   * upstream 429 → wait ``Retry-After`` seconds, or the fallback;
   * upstream 502/503/504 → wait ``min(cap, base * 2**(attempt-1)) + jitter``;
   * unexpected exception → same exponential wait, status 0;
   * any other classified error → stop immediately.

3. Out of attempts → ``failed`` with the last status and message.

A local cooldown is not a failure: the run is reported as *skipped*, the
previous status is restored and nothing is slept.

Every outcome is caught here; nothing escapes to the caller.
"""

from __future__ import annotations

import logging
import random
import time
from collections.abc import Callable
from dataclasses import asdict, dataclass

from sqlalchemy import Engine

from ladderboard.config import SyncConfig
from ladderboard.database.models import SyncOutcome, SyncStatus, SyncTrigger
from ladderboard.services import sync_state
from ladderboard.services.errors import CooldownActive, SyncError

logger = logging.getLogger(__name__)


# ---------------------------------------------------------------------------
# Policy
# ---------------------------------------------------------------------------
@dataclass(frozen=True, slots=True)
class RetryPolicy:
    max_attempts: int = 5
    backoff_base: float = 1.0
    backoff_cap: float = 16.0
    backoff_jitter: float = 0.3
    throttle_fallback: float = 30.0

    @classmethod
    def from_config(cls, cfg: SyncConfig) -> RetryPolicy:
        return cls(
            max_attempts=cfg.max_attempts,
            backoff_base=cfg.backoff_base,
            backoff_cap=cfg.backoff_cap,
            backoff_jitter=cfg.backoff_jitter,
            throttle_fallback=cfg.throttle_fallback,
        )

    def backoff(self, attempt: int) -> float:
        """Exponential wait for the 1-based *attempt*, capped, plus jitter."""
        base = min(self.backoff_cap, self.backoff_base * 2 ** (attempt - 1))
        return base + random.uniform(0, self.backoff_jitter)

    def wait_for(self, exc: SyncError, attempt: int) -> float:
        if exc.status == 429:
            # Retry-After: 0 counts as absent
            if exc.retry_after:
                return float(exc.retry_after)
            return self.throttle_fallback
        return self.backoff(attempt)


# ---------------------------------------------------------------------------
# Result
# ---------------------------------------------------------------------------
@dataclass(slots=True)
class SyncResult:
    member_id: int
    ok: bool
    status: int
    skipped: bool = False
    error: str | None = None
    retry_after: float | None = None
    attempts: int = 0
    duration_ms: int = 0

    def to_dict(self) -> dict:
        return asdict(self)


# ---------------------------------------------------------------------------
# Engine
# ---------------------------------------------------------------------------
def run_member_sync(
    engine: Engine,
    member_id: int,
    do_sync: Callable[[int], None],
    *,
    policy: RetryPolicy | None = None,
    trigger: SyncTrigger = SyncTrigger.MANUAL,
    sleep: Callable[[float], None] = time.sleep,
) -> SyncResult:
    """Run *do_sync* for one member under *policy* and persist the outcome.

    A failed bookkeeping write (``mark_running``, ``mark_success`` ...) is
    reported as a status-0 failure instead of propagating; the member is
    moved to ``failed`` if the database still accepts that write.
    """
    policy = policy or RetryPolicy()
    started = time.monotonic()
    try:
        return _run_attempts(engine, member_id, do_sync, policy, trigger, sleep, started)
    except Exception as exc:
        logger.exception("Sync bookkeeping for member=%s failed", member_id)
        error = f"unexpected error: {exc}"
        try:
            sync_state.mark_failed(engine, member_id, sync_state.utcnow(), error)
        except Exception:
            logger.exception("Could not mark member=%s failed", member_id)
        result = SyncResult(
            member_id=member_id,
            ok=False,
            status=0,
            error=error,
            duration_ms=_elapsed_ms(started),
        )
        _audit(engine, trigger, result, SyncOutcome.ERROR)
        return result


def _run_attempts(
    engine: Engine,
    member_id: int,
    do_sync: Callable[[int], None],
    policy: RetryPolicy,
    trigger: SyncTrigger,
    sleep: Callable[[float], None],
    started: float,
) -> SyncResult:
    previous = sync_state.mark_running(engine, member_id, sync_state.utcnow())

    last_status = 0
    last_error: str | None = None
    attempt = 0

    for attempt in range(1, policy.max_attempts + 1):
        try:
            do_sync(member_id)
        except CooldownActive as exc:
            sync_state.restore_status(
                engine, member_id, previous or SyncStatus.PENDING, sync_state.utcnow()
            )
            result = SyncResult(
                member_id=member_id,
                ok=False,
                status=exc.status,
                skipped=True,
                error=exc.message,
                retry_after=exc.retry_after,
                attempts=attempt,
                duration_ms=_elapsed_ms(started),
            )
            logger.info("Sync member=%s skipped: %s", member_id, exc.message)
            _audit(engine, trigger, result, SyncOutcome.SKIPPED)
            return result
        except SyncError as exc:
            last_status = exc.status
            last_error = exc.message
            if not exc.retryable:
                logger.warning(
                    "Sync member=%s failed (status=%d, not retryable): %s",
                    member_id, exc.status, exc.message,
                )
                break
            wait = policy.wait_for(exc, attempt)
        except Exception as exc:
            last_status = 0
            last_error = f"unexpected error: {exc}"
            logger.exception("Sync member=%s raised unexpectedly", member_id)
            wait = policy.backoff(attempt)
        else:
            sync_state.mark_success(engine, member_id, sync_state.utcnow())
            result = SyncResult(
                member_id=member_id,
                ok=True,
                status=200,
                attempts=attempt,
                duration_ms=_elapsed_ms(started),
            )
            logger.info(
                "Sync member=%s succeeded after %d attempt(s)", member_id, attempt
            )
            _audit(engine, trigger, result, SyncOutcome.SUCCESS)
            return result

        if attempt == policy.max_attempts:
            break
        logger.warning(
            "Sync member=%s attempt %d/%d failed (status=%d); retrying in %.1fs",
            member_id, attempt, policy.max_attempts, last_status, wait,
        )
        sleep(wait)

    error = last_error or f"unknown error (status={last_status})"
    sync_state.mark_failed(engine, member_id, sync_state.utcnow(), error)
    result = SyncResult(
        member_id=member_id,
        ok=False,
        status=last_status,
        error=error,
        attempts=attempt,
        duration_ms=_elapsed_ms(started),
    )
    _audit(engine, trigger, result, SyncOutcome.ERROR)
    return result


def _elapsed_ms(started: float) -> int:
    return int((time.monotonic() - started) * 1000)


def _audit(
    engine: Engine, trigger: SyncTrigger, result: SyncResult, outcome: SyncOutcome
) -> None:
    sync_state.write_sync_log(
        engine,
        trigger=trigger,
        member_id=result.member_id,
        outcome=outcome,
        message=result.error,
        duration_ms=result.duration_ms,
    )
