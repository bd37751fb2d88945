"""
scorebot.services.progress_service — Progress Store & Aggregates
==================================================================

Per (user, challenge) play state plus the read-side aggregates behind
/progress, /leaderboard and the stats endpoints.

Every counter change is a single conditional ``UPDATE … SET x = x + 1``
so two near-simultaneous hint requests can never lose an increment, and
the ``completed = false`` guard makes completion a one-way switch.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import UTC, datetime
from typing import TYPE_CHECKING

from sqlalchemy import Select, case, delete, distinct, func, select, update
from sqlalchemy.exc import IntegrityError

from scorebot.constants import COMPLETION_HISTORY_MAX, LEADERBOARD_MAX
from scorebot.database.engine import get_session
from scorebot.database.models import (
    AdminActionType,
    Challenge,
    Progress,
    RewardRecord,
    SuccessAnnouncement,
    User,
)
from scorebot.errors import AlreadyCompleted, NotFound, PermissionDenied, ValidationError
from scorebot.services.audit import log_admin_action, row_to_dict

if TYPE_CHECKING:
    from sqlalchemy import Engine
    from sqlalchemy.orm import Session

logger = logging.getLogger(__name__)


# ---------------------------------------------------------------------------
# Result types
# ---------------------------------------------------------------------------
@dataclass(frozen=True, slots=True)
class UserTotals:
    completed: int = 0
    total_points: int = 0
    total_hints: int = 0
    total_attempts: int = 0
    started: int = 0


@dataclass(frozen=True, slots=True)
class ChallengeStats:
    challenge_id: str
    completions: int = 0
    players: int = 0
    avg_hints: float | None = None
    avg_attempts: float | None = None


@dataclass(frozen=True, slots=True)
class LeaderboardEntry:
    rank: int
    discord_id: int
    username: str
    completed: int
    total_points: int


@dataclass(frozen=True, slots=True)
class ResetResult:
    progress: int
    rewards: int
    announcements: int


# ---------------------------------------------------------------------------
# Row access
# ---------------------------------------------------------------------------
def _select_row(user_id: int, challenge_id: str) -> Select:
    return select(Progress).where(
        Progress.user_id == user_id, Progress.challenge_id == challenge_id
    )


def _get_or_init(session: Session, user_id: int, challenge_id: str) -> Progress:
    row = session.scalar(_select_row(user_id, challenge_id))
    if row is not None:
        return row
    try:
        with session.begin_nested():  # SAVEPOINT
            row = Progress(user_id=user_id, challenge_id=challenge_id)
            session.add(row)
            session.flush()
        return row
    except IntegrityError:
        # Another request created the row first; the unique constraint
        # kept us from duplicating it.
        return session.scalars(_select_row(user_id, challenge_id)).one()


def get_or_init(engine: Engine, user_id: int, challenge_id: str) -> Progress:
    """Return the progress row for (user, challenge), creating a zeroed one
    if none exists.  Idempotent."""
    with get_session(engine) as session:
        return _get_or_init(session, user_id, challenge_id)


def get_progress(engine: Engine, user_id: int, challenge_id: str) -> Progress | None:
    with get_session(engine) as session:
        return session.scalar(_select_row(user_id, challenge_id))


def record_attempt(engine: Engine, user_id: int, challenge_id: str) -> int:
    """Increment the attempt counter unconditionally; returns the new count."""
    with get_session(engine) as session:
        _get_or_init(session, user_id, challenge_id)
        session.execute(
            update(Progress)
            .where(Progress.user_id == user_id, Progress.challenge_id == challenge_id)
            .values(attempts=Progress.attempts + 1)
        )
        return session.scalar(
            select(Progress.attempts).where(
                Progress.user_id == user_id, Progress.challenge_id == challenge_id
            )
        )


def consume_hint(
    engine: Engine, user_id: int, challenge_id: str, max_hints: int | None = None
) -> int:
    """Use one hint.  Returns the new ``hints_used`` (1-based hint number).

    With *max_hints* set, the counter never moves past it.

    Raises
    ------
    AlreadyCompleted
        If the challenge is already completed; nothing is changed.
    ValidationError
        If all *max_hints* hints are already used; nothing is changed.
    """
    with get_session(engine) as session:
        row = _get_or_init(session, user_id, challenge_id)
        stmt = (
            update(Progress)
            .where(
                Progress.user_id == user_id,
                Progress.challenge_id == challenge_id,
                Progress.completed.is_(False),
            )
            .values(hints_used=Progress.hints_used + 1)
        )
        if max_hints is not None:
            stmt = stmt.where(Progress.hints_used < max_hints)
        result = session.execute(stmt)
        if result.rowcount == 0:
            session.refresh(row)
            if row.completed:
                raise AlreadyCompleted(f"User {user_id} already completed {challenge_id!r}.")
            raise ValidationError("No more hints are available for this challenge.")
        return session.scalar(
            select(Progress.hints_used).where(
                Progress.user_id == user_id, Progress.challenge_id == challenge_id
            )
        )


def complete(engine: Engine, user_id: int, challenge_id: str, points: int) -> Progress:
    """Mark (user, challenge) completed with *points*.

    The row may only be completed once; a second call raises
    :class:`AlreadyCompleted` and leaves the stored points untouched.

    Raises
    ------
    ValidationError
        If *points* is not a non-negative integer.
    AlreadyCompleted
        If the row was already completed.
    """
    if isinstance(points, bool) or not isinstance(points, int) or points < 0:
        raise ValidationError(f"Points must be a non-negative integer, got {points!r}.")

    with get_session(engine) as session:
        _get_or_init(session, user_id, challenge_id)
        result = session.execute(
            update(Progress)
            .where(
                Progress.user_id == user_id,
                Progress.challenge_id == challenge_id,
                Progress.completed.is_(False),
            )
            .values(completed=True, points_earned=points, completed_at=datetime.now(UTC))
        )
        if result.rowcount == 0:
            raise AlreadyCompleted(f"User {user_id} already completed {challenge_id!r}.")
        session.expire_all()
        row = session.scalars(_select_row(user_id, challenge_id)).one()

    logger.info("User %d completed %s for %d points", user_id, challenge_id, points)
    return row


# ---------------------------------------------------------------------------
# Admin operations
# ---------------------------------------------------------------------------
def _delete_user_rows(
    session: Session, model: type, user_id: int, challenge_id: str | None
) -> int:
    stmt = delete(model).where(model.user_id == user_id)
    if challenge_id is not None:
        stmt = stmt.where(model.challenge_id == challenge_id)
    return session.execute(stmt).rowcount or 0


def reset(
    engine: Engine,
    user_id: int,
    challenge_id: str | None = None,
    *,
    actor_id: int,
    is_admin: bool,
) -> ResetResult:
    """Delete progress (and dependent rewards / announcements) for one
    challenge or, with ``challenge_id=None``, every challenge of the user.

    Runs in a single transaction: a storage failure at any step leaves
    every row in place and raises :class:`StorageError`.
    """
    if not is_admin:
        raise PermissionDenied(f"User {actor_id} may not reset progress.")

    with get_session(engine) as session:
        announcements = _delete_user_rows(session, SuccessAnnouncement, user_id, challenge_id)
        rewards = _delete_user_rows(session, RewardRecord, user_id, challenge_id)
        progress = _delete_user_rows(session, Progress, user_id, challenge_id)
        log_admin_action(
            session,
            actor_id=actor_id,
            action_type=AdminActionType.RESET_PROGRESS,
            target_table="progress",
            target_id=f"{user_id}:{challenge_id or '*'}",
            before={"progress": progress, "rewards": rewards, "announcements": announcements},
            after=None,
        )

    logger.info(
        "Progress reset for user %d (%s) by %d: %d progress, %d rewards, %d announcements",
        user_id, challenge_id or "all challenges", actor_id, progress, rewards, announcements,
    )
    return ResetResult(progress=progress, rewards=rewards, announcements=announcements)


HINT_ACTIONS = ("add", "remove", "reset")


def admin_adjust_hints(
    engine: Engine,
    user_id: int,
    challenge_id: str,
    action: str,
    *,
    actor_id: int,
    is_admin: bool,
) -> tuple[int, int]:
    """Admin override of a hint counter.  Returns ``(previous, new)``.

    ``add`` → +1, ``remove`` → −1 (floored at 0), ``reset`` → 0.

    Raises
    ------
    NotFound
        If *challenge_id* does not exist; no progress row is created.
    AlreadyCompleted
        If the player already completed the challenge; completed rows are
        frozen.
    """
    if not is_admin:
        raise PermissionDenied(f"User {actor_id} may not adjust hints.")
    if action not in HINT_ACTIONS:
        raise ValidationError(f"Action must be one of: {', '.join(HINT_ACTIONS)}.")

    with get_session(engine) as session:
        if session.get(Challenge, challenge_id) is None:
            raise NotFound(
                f"Challenge {challenge_id!r} not found.",
                user_message="That challenge does not exist.",
            )
        row = session.scalar(_select_row(user_id, challenge_id).with_for_update())
        if row is None:
            row = _get_or_init(session, user_id, challenge_id)
        if row.completed:
            raise AlreadyCompleted(
                f"User {user_id} already completed {challenge_id!r}; hints are frozen.",
                user_message="That player already completed this challenge; "
                "hints can no longer be changed.",
            )
        before = row_to_dict(row)
        previous = row.hints_used
        if action == "add":
            row.hints_used = previous + 1
        elif action == "remove":
            row.hints_used = max(0, previous - 1)
        else:
            row.hints_used = 0
        session.flush()
        log_admin_action(
            session,
            actor_id=actor_id,
            action_type=AdminActionType.ADJUST_HINTS,
            target_table="progress",
            target_id=f"{user_id}:{challenge_id}",
            before=before,
            after=row_to_dict(row),
            reason=action,
        )
        return previous, row.hints_used


# ---------------------------------------------------------------------------
# Aggregates
# ---------------------------------------------------------------------------
def user_totals(engine: Engine, user_id: int) -> UserTotals:
    with get_session(engine) as session:
        row = session.execute(
            select(
                func.count(case((Progress.completed.is_(True), 1))),
                func.coalesce(func.sum(Progress.points_earned), 0),
                func.coalesce(func.sum(Progress.hints_used), 0),
                func.coalesce(func.sum(Progress.attempts), 0),
                func.count(Progress.id),
            ).where(Progress.user_id == user_id)
        ).one()
    return UserTotals(
        completed=row[0] or 0,
        total_points=int(row[1] or 0),
        total_hints=int(row[2] or 0),
        total_attempts=int(row[3] or 0),
        started=row[4] or 0,
    )


def user_progress_rows(engine: Engine, user_id: int) -> list[Progress]:
    """Per-challenge rows, completed first (most recent first), then open."""
    with get_session(engine) as session:
        return list(session.scalars(
            select(Progress)
            .where(Progress.user_id == user_id)
            .order_by(
                case((Progress.completed_at.is_(None), 1), else_=0),
                Progress.completed_at.desc(),
                Progress.challenge_id,
            )
        ).all())


def play_status(engine: Engine, discord_id: int) -> dict[str, str]:
    """``challenge_id → "completed" | "started"`` for a Discord user.

    Challenges the user never touched are absent; unregistered users get
    an empty map.
    """
    with get_session(engine) as session:
        rows = session.execute(
            select(Progress.challenge_id, Progress.completed, Progress.hints_used,
                   Progress.attempts)
            .join(User, User.id == Progress.user_id)
            .where(User.discord_id == discord_id)
        ).all()
    status: dict[str, str] = {}
    for r in rows:
        if r.completed:
            status[r.challenge_id] = "completed"
        elif r.hints_used or r.attempts:
            status[r.challenge_id] = "started"
    return status


def completed_count(engine: Engine, user_id: int) -> int:
    with get_session(engine) as session:
        return session.scalar(
            select(func.count(Progress.id)).where(
                Progress.user_id == user_id, Progress.completed.is_(True)
            )
        ) or 0


def has_completed_any(engine: Engine, user_id: int) -> bool:
    return completed_count(engine, user_id) > 0


def _stats_columns():
    return (
        func.count(case((Progress.completed.is_(True), 1))),
        func.count(distinct(Progress.user_id)),
        func.avg(case((Progress.completed.is_(True), Progress.hints_used))),
        func.avg(case((Progress.completed.is_(True), Progress.attempts))),
    )


def _to_stats(challenge_id: str, row) -> ChallengeStats:
    return ChallengeStats(
        challenge_id=challenge_id,
        completions=row[0] or 0,
        players=row[1] or 0,
        avg_hints=float(row[2]) if row[2] is not None else None,
        avg_attempts=float(row[3]) if row[3] is not None else None,
    )


def challenge_stats(engine: Engine, challenge_id: str) -> ChallengeStats:
    """Completions, distinct players, and averages among completers."""
    with get_session(engine) as session:
        row = session.execute(
            select(*_stats_columns()).where(Progress.challenge_id == challenge_id)
        ).one()
    return _to_stats(challenge_id, row)


def all_challenge_stats(engine: Engine) -> list[ChallengeStats]:
    with get_session(engine) as session:
        rows = session.execute(
            select(Progress.challenge_id, *_stats_columns())
            .group_by(Progress.challenge_id)
            .order_by(Progress.challenge_id)
        ).all()
    return [_to_stats(r[0], r[1:]) for r in rows]


def leaderboard(engine: Engine, limit: int = 10, offset: int = 0) -> list[LeaderboardEntry]:
    """Players ranked by total points, then completed count.

    *offset* skips that many ranked players; ranks stay absolute.
    """
    if not isinstance(limit, int) or limit <= 0:
        limit = 10
    limit = min(limit, LEADERBOARD_MAX)
    offset = max(0, offset or 0)

    total_points = func.coalesce(func.sum(Progress.points_earned), 0).label("total_points")
    completed = func.count(case((Progress.completed.is_(True), 1))).label("completed")
    with get_session(engine) as session:
        rows = session.execute(
            select(User.discord_id, User.username, completed, total_points)
            .join(Progress, Progress.user_id == User.id)
            .group_by(User.id, User.discord_id, User.username)
            .order_by(total_points.desc(), completed.desc(), User.username)
            .limit(limit)
            .offset(offset)
        ).all()
    return [
        LeaderboardEntry(
            rank=i,
            discord_id=r.discord_id,
            username=r.username,
            completed=r.completed,
            total_points=int(r.total_points),
        )
        for i, r in enumerate(rows, start=offset + 1)
    ]


def count_ranked_players(engine: Engine) -> int:
    """Number of players that appear on the leaderboard."""
    with get_session(engine) as session:
        return session.scalar(select(func.count(distinct(Progress.user_id)))) or 0


def count_completions(engine: Engine) -> int:
    with get_session(engine) as session:
        return session.scalar(
            select(func.count()).select_from(Progress).where(Progress.completed.is_(True))
        ) or 0


def recent_completions(
    engine: Engine, limit: int | None = 50, offset: int = 0
) -> list[dict]:
    """Completion history, newest first (the detailed leaderboard)."""
    stmt = (
        select(
            User.username,
            Progress.challenge_id,
            Progress.points_earned,
            Progress.completed_at,
        )
        .join(User, User.id == Progress.user_id)
        .where(Progress.completed.is_(True))
        .order_by(Progress.completed_at.desc(), Progress.id.desc())
    )
    if limit is not None and limit > 0:
        stmt = stmt.limit(min(limit, COMPLETION_HISTORY_MAX))
    if offset:
        stmt = stmt.offset(max(0, offset))
    with get_session(engine) as session:
        rows = session.execute(stmt).all()
    return [
        {
            "username": r.username,
            "challenge_id": r.challenge_id,
            "points": r.points_earned,
            "completed_at": r.completed_at,
        }
        for r in rows
    ]


@dataclass(frozen=True, slots=True)
class UserDetail:
    totals: UserTotals
    rows: list[Progress]
    last_active: datetime | None


def user_detail(engine: Engine, user_id: int) -> UserDetail:
    """Totals, per-challenge rows and the last time the user played."""
    with get_session(engine) as session:
        last = session.scalar(
            select(func.max(Progress.updated_at)).where(Progress.user_id == user_id)
        )
    return UserDetail(
        totals=user_totals(engine, user_id),
        rows=user_progress_rows(engine, user_id),
        last_active=last,
    )


def record_success_announcement(
    engine: Engine,
    user_id: int,
    challenge_id: str,
    points: int,
    channel_id: int,
    message_id: int | None,
) -> None:
    with get_session(engine) as session:
        session.add(SuccessAnnouncement(
            user_id=user_id,
            challenge_id=challenge_id,
            points_earned=points,
            channel_id=channel_id,
            message_id=message_id,
        ))
