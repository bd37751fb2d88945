"""
scorebot.api.routes.admin — Admin workflow endpoints (JWT‑protected)
======================================================================

Approval transitions, progress resets, player deletion and the audit
trail.  Every mutation goes through the same service functions the bot
uses, so the admin_log and index rebuild behave identically.
"""

from __future__ import annotations

from dataclasses import asdict
from typing import Literal

from fastapi import APIRouter, Depends, Query
from pydantic import BaseModel, Field
from sqlalchemy import Engine, select

from scorebot.api.deps import actor_id, get_current_admin, get_engine, get_index
from scorebot.database.engine import get_session
from scorebot.database.models import AdminLog, ChallengeState
from scorebot.engine.index import ChallengeIndex
from scorebot.services import challenge_service, progress_service, user_service
from scorebot.services.audit import row_to_dict
from scorebot.services.challenge_service import ListFilter

router = APIRouter(prefix="/admin", tags=["admin"])


# ---------------------------------------------------------------------------
# Pydantic schemas
# ---------------------------------------------------------------------------
class TransitionBody(BaseModel):
    reason: str | None = Field(default=None, max_length=1000)


class ResetBody(BaseModel):
    discord_id: int
    challenge_id: str | None = None


class HintAdjustBody(BaseModel):
    discord_id: int
    challenge_id: str
    action: Literal["add", "remove", "reset"]


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------
def _challenge_dict(c) -> dict:
    data = row_to_dict(c, exclude=("answer",))
    data["owner_id"] = str(c.owner_id)
    return data


# ---------------------------------------------------------------------------
# Challenges
# ---------------------------------------------------------------------------
@router.get("/challenges")
def list_challenges(
    state: ChallengeState | None = None,
    engine: Engine = Depends(get_engine),
    admin: dict = Depends(get_current_admin),
):
    rows = challenge_service.list_challenges(
        engine, ListFilter.ALL, state=state.value if state else None
    )
    return [_challenge_dict(c) for c in rows]


@router.post("/challenges/{challenge_id}/{action}")
def transition_challenge(
    challenge_id: str,
    action: Literal["approve", "reject", "disable", "enable"],
    body: TransitionBody | None = None,
    engine: Engine = Depends(get_engine),
    index: ChallengeIndex = Depends(get_index),
    admin: dict = Depends(get_current_admin),
):
    result = challenge_service.transition(
        engine,
        challenge_id,
        action,
        actor_id=actor_id(admin),
        is_admin=True,
        reason=body.reason if body else None,
        index=index,
    )
    return {
        "challenge": _challenge_dict(result.challenge),
        "previous_state": result.previous_state,
        "state": result.state,
    }


# ---------------------------------------------------------------------------
# Progress
# ---------------------------------------------------------------------------
@router.post("/progress/reset")
def reset_progress(
    body: ResetBody,
    engine: Engine = Depends(get_engine),
    admin: dict = Depends(get_current_admin),
):
    user = user_service.require_user(engine, body.discord_id)
    result = progress_service.reset(
        engine, user.id, body.challenge_id, actor_id=actor_id(admin), is_admin=True
    )
    return asdict(result)


@router.post("/progress/hints")
def adjust_hints(
    body: HintAdjustBody,
    engine: Engine = Depends(get_engine),
    admin: dict = Depends(get_current_admin),
):
    user = user_service.require_user(engine, body.discord_id)
    previous, new = progress_service.admin_adjust_hints(
        engine, user.id, body.challenge_id, body.action,
        actor_id=actor_id(admin), is_admin=True,
    )
    return {"previous": previous, "hints_used": new}


@router.get("/stats")
def stats(
    engine: Engine = Depends(get_engine),
    admin: dict = Depends(get_current_admin),
):
    return [asdict(s) for s in progress_service.all_challenge_stats(engine)]


# ---------------------------------------------------------------------------
# Users
# ---------------------------------------------------------------------------
@router.delete("/users/{discord_id}")
def delete_user(
    discord_id: int,
    reason: str | None = Query(None, max_length=1000),
    engine: Engine = Depends(get_engine),
    admin: dict = Depends(get_current_admin),
):
    result = user_service.delete_user(
        engine, discord_id, actor_id=actor_id(admin), is_admin=True, reason=reason
    )
    return asdict(result)


# ---------------------------------------------------------------------------
# Audit log
# ---------------------------------------------------------------------------
@router.get("/audit")
def audit_log(
    limit: int = Query(50, ge=1, le=500),
    target_id: str | None = None,
    engine: Engine = Depends(get_engine),
    admin: dict = Depends(get_current_admin),
):
    stmt = select(AdminLog).order_by(AdminLog.id.desc()).limit(limit)
    if target_id:
        stmt = stmt.where(AdminLog.target_id == target_id)
    with get_session(engine) as session:
        rows = session.scalars(stmt).all()
        return [
            {**row_to_dict(r), "actor_id": str(r.actor_id)}
            for r in rows
        ]
