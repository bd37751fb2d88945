"""
scorebot.engine.rewards — Reward Payload Types
================================================

A challenge's reward is a tagged union::

    Reward = Badge(class_id, description) | Text(body)

The ``challenges`` table stores the union flattened into nullable columns;
:func:`reward_from_challenge` is the only place that reads those columns
back into a typed value.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import TYPE_CHECKING

from scorebot.database.models import RewardType
from scorebot.errors import UnknownRewardType, ValidationError

if TYPE_CHECKING:
    from scorebot.database.models import Challenge

MAX_REWARD_TEXT_LENGTH = 2000


@dataclass(frozen=True, slots=True)
class Badge:
    class_id: str
    description: str | None = None

    @property
    def type(self) -> RewardType:
        return RewardType.BADGE


@dataclass(frozen=True, slots=True)
class Text:
    body: str

    @property
    def type(self) -> RewardType:
        return RewardType.TEXT


Reward = Badge | Text


def parse_reward_type(value: str) -> RewardType:
    """Map a stored or user-supplied type name to :class:`RewardType`.

    ``badgr`` is accepted as a legacy alias of ``badge``.
    """
    normalized = (value or "").strip().lower()
    if normalized == "badgr":
        normalized = RewardType.BADGE.value
    try:
        return RewardType(normalized)
    except ValueError:
        raise UnknownRewardType(f"Unknown reward type: {value!r}") from None


def make_reward(
    reward_type: str,
    *,
    badge_class_id: str | None = None,
    badge_description: str | None = None,
    reward_text: str | None = None,
) -> Reward:
    """Build a validated :data:`Reward` from loose fields.

    Raises
    ------
    UnknownRewardType
        If *reward_type* is neither badge nor text.
    ValidationError
        If the payload for the chosen type is missing or oversized.
    """
    kind = parse_reward_type(reward_type)
    if kind is RewardType.BADGE:
        class_id = (badge_class_id or "").strip()
        if not class_id:
            raise ValidationError("A badge class ID is required for badge rewards.")
        return Badge(class_id=class_id, description=(badge_description or None))

    body = (reward_text or "").strip()
    if not body:
        raise ValidationError("Reward text is required for text rewards.")
    if len(body) > MAX_REWARD_TEXT_LENGTH:
        raise ValidationError(
            f"Reward text must be at most {MAX_REWARD_TEXT_LENGTH} characters."
        )
    return Text(body=body)


def reward_from_challenge(challenge: Challenge) -> Reward:
    """Read the typed reward of *challenge*; raises if not configured."""
    return make_reward(
        challenge.reward_type,
        badge_class_id=challenge.badge_class_id,
        badge_description=challenge.badge_description,
        reward_text=challenge.reward_text,
    )


def apply_reward(challenge: Challenge, reward: Reward) -> None:
    """Write *reward* into *challenge*'s columns, clearing the other variant."""
    match reward:
        case Badge(class_id=class_id, description=description):
            challenge.reward_type = RewardType.BADGE.value
            challenge.badge_class_id = class_id
            challenge.badge_description = description
            challenge.reward_text = None
        case Text(body=body):
            challenge.reward_type = RewardType.TEXT.value
            challenge.reward_text = body
            challenge.badge_class_id = None
            challenge.badge_description = None
