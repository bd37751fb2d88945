"""
scorebot.api.routes.public — Read-only public endpoints
=========================================================

Only approved challenges are ever exposed here, and never their answers.
"""

from __future__ import annotations

from dataclasses import asdict

from fastapi import APIRouter, Depends, Query
from sqlalchemy import Engine

from scorebot.api.deps import get_engine, get_index
from scorebot.engine.index import ChallengeIndex
from scorebot.errors import NotFound
from scorebot.services import progress_service

router = APIRouter(tags=["public"])


@router.get("/challenges")
def list_challenges(index: ChallengeIndex = Depends(get_index)):
    """Approved challenges, easiest first."""
    return [asdict(c) for c in index.all()]


@router.get("/challenges/{challenge_id}/stats")
def challenge_stats(
    challenge_id: str,
    engine: Engine = Depends(get_engine),
    index: ChallengeIndex = Depends(get_index),
):
    if challenge_id not in index:
        raise NotFound(
            f"Challenge {challenge_id!r} not approved.",
            user_message="That challenge does not exist or is not available.",
        )
    return asdict(progress_service.challenge_stats(engine, challenge_id))


@router.get("/leaderboard")
def leaderboard(
    limit: int = Query(10, ge=1, le=100),
    offset: int = Query(0, ge=0),
    engine: Engine = Depends(get_engine),
):
    return [
        {**asdict(e), "discord_id": str(e.discord_id)}
        for e in progress_service.leaderboard(engine, limit, offset)
    ]


@router.get("/leaderboard/recent")
def recent_completions(
    limit: int = Query(50, ge=1, le=1000),
    offset: int = Query(0, ge=0),
    engine: Engine = Depends(get_engine),
):
    """Detailed leaderboard: completions, newest first."""
    return [
        {**row, "completed_at": row["completed_at"].isoformat() if row["completed_at"] else None}
        for row in progress_service.recent_completions(engine, limit, offset)
    ]
