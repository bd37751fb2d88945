"""
scorebot.services.gameplay_service — Hint & Answer Flows
==========================================================

Ties the stores, the points calculator and the reward dispatcher together
for the two player actions.  Both run synchronously on a worker thread via
``run_db``; the cog only formats the returned dataclasses.

Answer submission order:

  1. Challenge must be approved, player registered, row not completed
  2. Record the attempt (counts even when wrong)
  3. Compare answers (case- and whitespace-insensitive)
  4. Compute points from hints used, complete the row (once only)
  5. Dispatch the reward; a failure here is reported, not rolled back
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import TYPE_CHECKING

from scorebot.constants import answers_match
from scorebot.errors import AlreadyCompleted, ScoreBotError, ValidationError
from scorebot.services import challenge_service, progress_service, reward_service, user_service

if TYPE_CHECKING:
    from sqlalchemy import Engine

    from scorebot.database.models import Challenge, User
    from scorebot.engine.points import PointsCalculator
    from scorebot.services.badge_client import BadgeClient
    from scorebot.services.reward_service import RewardOutcome

logger = logging.getLogger(__name__)


@dataclass(frozen=True, slots=True)
class HintPreview:
    challenge_name: str
    next_hint_number: int
    total_hints: int
    cost: int
    max_points_after: int


@dataclass(frozen=True, slots=True)
class HintResult:
    challenge_name: str
    hint: str
    hints_used: int
    total_hints: int
    cost: int
    max_points: int


@dataclass(frozen=True, slots=True)
class SubmissionResult:
    correct: bool
    challenge: Challenge
    user: User
    attempts: int
    points: int | None = None
    reward: RewardOutcome | None = None
    reward_error: ScoreBotError | None = None
    first_completion: bool = False
    all_completed: bool = False


def _load(engine: Engine, discord_id: int, challenge_id: str) -> tuple[User, Challenge]:
    user = user_service.require_user(engine, discord_id)
    challenge = challenge_service.get_playable(engine, challenge_id)
    return user, challenge


def preview_hint(
    engine: Engine,
    calculator: PointsCalculator,
    discord_id: int,
    challenge_id: str,
) -> HintPreview:
    """Describe what the next hint would cost without consuming it."""
    user, challenge = _load(engine, discord_id, challenge_id)
    row = progress_service.get_progress(engine, user.id, challenge.id)
    hints_used = row.hints_used if row else 0
    if row is not None and row.completed:
        raise AlreadyCompleted(f"User {user.id} already completed {challenge.id!r}.")

    total = len(challenge.hints or [])
    if hints_used >= total:
        raise ValidationError(f'No more hints available for "{challenge.name}"!')

    return HintPreview(
        challenge_name=challenge.name,
        next_hint_number=hints_used + 1,
        total_hints=total,
        cost=calculator.cost_of_next_hint(hints_used),
        max_points_after=calculator.max_possible_points(hints_used + 1, challenge.difficulty),
    )


def request_hint(
    engine: Engine,
    calculator: PointsCalculator,
    discord_id: int,
    challenge_id: str,
) -> HintResult:
    """Consume and return the next hint.

    Raises
    ------
    ValidationError
        No hints remain; the counter is not touched.
    AlreadyCompleted
        The player already solved this challenge.
    """
    user, challenge = _load(engine, discord_id, challenge_id)
    hints = list(challenge.hints or [])
    if not hints:
        raise ValidationError(f'No more hints available for "{challenge.name}"!')

    hints_used = progress_service.consume_hint(
        engine, user.id, challenge.id, max_hints=len(hints)
    )
    logger.info("User %d took hint %d/%d on %s", user.id, hints_used, len(hints), challenge.id)
    return HintResult(
        challenge_name=challenge.name,
        hint=hints[hints_used - 1],
        hints_used=hints_used,
        total_hints=len(hints),
        cost=calculator.cost_of_next_hint(hints_used - 1),
        max_points=calculator.max_possible_points(hints_used, challenge.difficulty),
    )


def submit_answer(
    engine: Engine,
    calculator: PointsCalculator,
    badge_client: BadgeClient,
    discord_id: int,
    challenge_id: str,
    answer: str,
    *,
    community_name: str,
) -> SubmissionResult:
    """Check *answer* and, on success, complete the challenge and reward.

    Raises
    ------
    NotFound
        Unregistered player or challenge not playable.
    AlreadyCompleted
        The player already solved this challenge (before or concurrently).
    """
    user, challenge = _load(engine, discord_id, challenge_id)
    row = progress_service.get_progress(engine, user.id, challenge.id)
    if row is not None and row.completed:
        raise AlreadyCompleted(f"User {user.id} already completed {challenge.id!r}.")

    attempts = progress_service.record_attempt(engine, user.id, challenge.id)
    if not answers_match(answer, challenge.answer):
        logger.info("Wrong answer from user %d on %s (attempt %d)", user.id, challenge.id, attempts)
        return SubmissionResult(
            correct=False, challenge=challenge, user=user, attempts=attempts
        )

    first_completion = not progress_service.has_completed_any(engine, user.id)
    hints_used = progress_service.get_or_init(engine, user.id, challenge.id).hints_used
    points = calculator.calculate_points(hints_used, challenge.difficulty)
    progress_service.complete(engine, user.id, challenge.id, points)

    reward = None
    reward_error = None
    try:
        reward = reward_service.dispatch(
            engine, badge_client, user, challenge, community_name=community_name
        )
    except ScoreBotError as exc:
        # Completion stands; the player is told the reward needs an admin.
        logger.error("Reward for user %d on %s failed: %s", user.id, challenge.id, exc)
        reward_error = exc

    completed = progress_service.completed_count(engine, user.id)
    approved = challenge_service.count_approved(engine)
    return SubmissionResult(
        correct=True,
        challenge=challenge,
        user=user,
        attempts=attempts,
        points=points,
        reward=reward,
        reward_error=reward_error,
        first_completion=first_completion,
        all_completed=approved > 0 and completed >= approved,
    )
