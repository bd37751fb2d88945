"""
scorebot.services.reward_service — Reward Dispatch
====================================================

Called once per successful completion.  Badge rewards go out through the
credential API and are recorded only when the API accepted them; text
rewards are recorded and revealed immediately.  There is no retry: a
failure is returned to the caller as an exception and nothing is written.
"""

from __future__ import annotations

import json
import logging
from dataclasses import dataclass, field
from typing import TYPE_CHECKING, Any

from sqlalchemy import select
from sqlalchemy.exc import IntegrityError

from scorebot.database.engine import get_session
from scorebot.database.models import RewardRecord, RewardType
from scorebot.engine.rewards import Badge, Text, reward_from_challenge
from scorebot.errors import MissingEmail, UnknownRewardType

if TYPE_CHECKING:
    from sqlalchemy import Engine

    from scorebot.database.models import Challenge, User
    from scorebot.services.badge_client import BadgeClient

logger = logging.getLogger(__name__)


@dataclass(frozen=True, slots=True)
class RewardOutcome:
    """What the player received."""

    reward_type: RewardType
    message: str
    text: str | None = None
    data: dict[str, Any] = field(default_factory=dict)


def _record(engine: Engine, user_id: int, challenge_id: str, reward_type: str, data: str) -> bool:
    """Insert the reward row.  Returns False if one already existed."""
    with get_session(engine) as session:
        try:
            with session.begin_nested():  # SAVEPOINT
                session.add(RewardRecord(
                    user_id=user_id,
                    challenge_id=challenge_id,
                    reward_type=reward_type,
                    reward_data=data,
                ))
                session.flush()
        except IntegrityError:
            logger.warning("Reward for user %d on %s already recorded", user_id, challenge_id)
            return False
    return True


def dispatch(
    engine: Engine,
    badge_client: BadgeClient,
    user: User,
    challenge: Challenge,
    *,
    community_name: str,
) -> RewardOutcome:
    """Issue *challenge*'s reward to *user*.

    Raises
    ------
    UnknownRewardType
        The challenge's stored type is neither badge nor text.
    ValidationError
        The payload for the stored type is missing.
    MissingEmail
        Badge reward and the user has no email on file.
    ExternalServiceError
        The credential API failed; no reward row is written.
    """
    reward = reward_from_challenge(challenge)

    match reward:
        case Badge(class_id=class_id):
            if not user.email:
                raise MissingEmail(f"User {user.discord_id} has no email for badge {class_id}")
            narrative = badge_client.narrative(challenge.name, community_name)
            data = badge_client.issue_assertion(class_id, user.email, narrative)
            _record(engine, user.id, challenge.id, RewardType.BADGE.value, json.dumps(data))
            logger.info("Badge %s issued to user %d for %s", class_id, user.id, challenge.id)
            return RewardOutcome(
                reward_type=RewardType.BADGE,
                message=f'Badge "{challenge.name}" issued to {user.email}',
                data=data,
            )
        case Text(body=body):
            _record(engine, user.id, challenge.id, RewardType.TEXT.value, body)
            logger.info("Text reward revealed to user %d for %s", user.id, challenge.id)
            return RewardOutcome(
                reward_type=RewardType.TEXT,
                message=f'Text reward for "{challenge.name}" is available',
                text=body,
            )
        case _:
            raise UnknownRewardType(f"Unsupported reward {reward!r}")


def rewards_for_user(engine: Engine, user_id: int) -> list[RewardRecord]:
    with get_session(engine) as session:
        return list(session.scalars(
            select(RewardRecord)
            .where(RewardRecord.user_id == user_id)
            .order_by(RewardRecord.issued_at.desc())
        ).all())
