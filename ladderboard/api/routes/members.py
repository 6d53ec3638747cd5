"""
ladderboard.api.routes.members — Single-member sync trigger
=============================================================

``POST /api/members/{member_id}/sync`` runs one member through the retry
engine and always answers with a well-formed result body::

    {"member_id": 7, "ok": true, "status": 200, "skipped": false, "error": null, ...}

HTTP status: 200 on success, 404 unknown member, 429 cooldown or upstream
throttling (with ``Retry-After``), 500 for every other failure.  The exact
internal status is always in the body.
"""

from __future__ import annotations

import math

from fastapi import APIRouter, Depends
from fastapi.responses import JSONResponse
from sqlalchemy import Engine

from ladderboard.api.deps import get_engine, get_manual_syncer, get_retry_policy
from ladderboard.database.models import SyncTrigger
from ladderboard.services.member_sync import MemberSyncer
from ladderboard.services.sync_runner import RetryPolicy, SyncResult, run_member_sync

router = APIRouter(tags=["members"])


def sync_response(result: SyncResult) -> JSONResponse:
    """Translate a :class:`SyncResult` into an HTTP response."""
    if result.ok:
        http_status = 200
    elif result.status in (404, 429):
        http_status = result.status
    else:
        http_status = 500

    headers = {}
    if http_status == 429 and result.retry_after is not None:
        headers["Retry-After"] = str(math.ceil(result.retry_after))

    return JSONResponse(result.to_dict(), status_code=http_status, headers=headers)


@router.post("/members/{member_id}/sync")
def sync_member(
    member_id: int,
    engine: Engine = Depends(get_engine),
    syncer: MemberSyncer = Depends(get_manual_syncer),
    policy: RetryPolicy = Depends(get_retry_policy),
):
    result = run_member_sync(
        engine, member_id, syncer.sync, policy=policy, trigger=SyncTrigger.MANUAL
    )
    return sync_response(result)
