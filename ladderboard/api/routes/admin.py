"""
ladderboard.api.routes.admin — Admin roster & sync endpoints (JWT‑protected)
==============================================================================
"""

from __future__ import annotations

from fastapi import APIRouter, Depends, HTTPException, Query
from pydantic import BaseModel, Field
from sqlalchemy import Engine, select
from sqlalchemy.orm import Session

from ladderboard.api.deps import (
    get_config,
    get_current_admin,
    get_engine,
    get_manual_syncer,
    get_retry_policy,
    get_session,
)
from ladderboard.config import LadderConfig
from ladderboard.database.models import Member, SyncLog, SyncTrigger
from ladderboard.services import member_service, retention_service
from ladderboard.services.batch_service import run_batch
from ladderboard.services.member_sync import MemberSyncer
from ladderboard.services.sync_runner import RetryPolicy

router = APIRouter(prefix="/admin", tags=["admin"])


# ---------------------------------------------------------------------------
# Pydantic schemas
# ---------------------------------------------------------------------------
class MemberCreate(BaseModel):
    member_name: str
    riot_game_name: str
    riot_tagline: str
    memo: str | None = None


class SyncAllRequest(BaseModel):
    limit: int | None = Field(default=None, ge=1, le=100)
    cursor: int | None = None


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------
def _iso(value) -> str | None:
    return value.isoformat() if value else None


def _admin_member_dict(m: Member) -> dict:
    return {
        "id": m.id,
        "member_name": m.member_name,
        "riot_game_name": m.riot_game_name,
        "riot_tagline": m.riot_tagline,
        "riot_puuid": m.riot_puuid,
        "memo": m.memo,
        "sync_status": str(m.sync_status),
        "sync_attempts": m.sync_attempts,
        "last_sync_started_at": _iso(m.last_sync_started_at),
        "last_sync_finished_at": _iso(m.last_sync_finished_at),
        "last_sync_error": m.last_sync_error,
        "last_synced_at": _iso(m.last_synced_at),
    }


# ---------------------------------------------------------------------------
# Members
# ---------------------------------------------------------------------------
@router.get("/members")
def list_members(
    admin: dict = Depends(get_current_admin),
    session: Session = Depends(get_session),
):
    members = session.scalars(select(Member).order_by(Member.member_name)).all()
    return {"members": [_admin_member_dict(m) for m in members]}


@router.post("/members", status_code=201)
def create_member(
    body: MemberCreate,
    admin: dict = Depends(get_current_admin),
    engine: Engine = Depends(get_engine),
):
    try:
        member = member_service.create_member(
            engine,
            member_name=body.member_name,
            riot_game_name=body.riot_game_name,
            riot_tagline=body.riot_tagline,
            memo=body.memo,
        )
    except member_service.MemberValidationError as exc:
        raise HTTPException(400, str(exc))
    return {"ok": True, "member_id": member.id}


@router.delete("/members/{member_id}")
def delete_member(
    member_id: int,
    admin: dict = Depends(get_current_admin),
    engine: Engine = Depends(get_engine),
):
    if not member_service.delete_member(engine, member_id):
        raise HTTPException(404, "Member not found")
    return {"ok": True, "member_id": member_id}


@router.post("/members/{member_id}/reset-identity")
def reset_identity(
    member_id: int,
    admin: dict = Depends(get_current_admin),
    engine: Engine = Depends(get_engine),
):
    if not member_service.reset_identity(engine, member_id):
        raise HTTPException(404, "Member not found")
    return {"ok": True, "member_id": member_id}


# ---------------------------------------------------------------------------
# Sync
# ---------------------------------------------------------------------------
@router.post("/sync-all")
def sync_all(
    body: SyncAllRequest | None = None,
    admin: dict = Depends(get_current_admin),
    engine: Engine = Depends(get_engine),
    cfg: LadderConfig = Depends(get_config),
    syncer: MemberSyncer = Depends(get_manual_syncer),
    policy: RetryPolicy = Depends(get_retry_policy),
):
    """Sync one page of stale members (manual trigger, no log pruning)."""
    body = body or SyncAllRequest()
    batch = run_batch(
        engine,
        syncer.sync,
        limit=body.limit or cfg.sync.batch_size,
        cursor=body.cursor,
        policy=policy,
        trigger=SyncTrigger.MANUAL,
        stale_after=cfg.sync.stale_after_seconds,
        running_timeout=cfg.sync.running_timeout_seconds,
        member_delay=cfg.sync.member_delay,
    )
    return batch.to_dict()


@router.get("/sync-logs")
def list_sync_logs(
    limit: int = Query(50, ge=1, le=500),
    status: str | None = Query(None, pattern="^(success|skipped|error)$"),
    member_id: int | None = None,
    admin: dict = Depends(get_current_admin),
    session: Session = Depends(get_session),
):
    q = select(SyncLog).order_by(SyncLog.created_at.desc(), SyncLog.id.desc()).limit(limit)
    if status:
        q = q.where(SyncLog.status == status)
    if member_id is not None:
        q = q.where(SyncLog.member_id == member_id)
    logs = session.scalars(q).all()
    return {
        "logs": [
            {
                "id": log.id,
                "type": log.type,
                "member_id": log.member_id,
                "status": log.status,
                "message": log.message,
                "duration_ms": log.duration_ms,
                "created_at": _iso(log.created_at),
            }
            for log in logs
        ]
    }


@router.get("/sync-logs/stats")
def sync_log_stats(
    admin: dict = Depends(get_current_admin),
    engine: Engine = Depends(get_engine),
):
    return retention_service.get_sync_log_stats(engine)
