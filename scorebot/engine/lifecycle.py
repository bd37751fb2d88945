"""
scorebot.engine.lifecycle — Challenge Approval State Machine
==============================================================

Pure transition rules for a challenge's lifecycle.  Persistence lives in
:mod:`scorebot.services.challenge_service`; this module only decides
whether a transition is legal and which fields it sets or clears.

::

    pending ──approve──▶ approved ──disable──▶ disabled
       │                  │   ▲                    │
     reject            reject └──────enable────────┘
       ▼                  ▼
    rejected ◀────────────┘

    approved ──revise──▶ pending     (owner edits gameplay fields)
    disabled ──revise──▶ pending     (same; enable never restores an edit)
    rejected ──resubmit─▶ pending    (owner edits after feedback)
"""

from __future__ import annotations

import enum
from datetime import UTC, datetime
from typing import TYPE_CHECKING

from scorebot.database.models import ChallengeState
from scorebot.errors import InvalidStateTransition, ValidationError
from scorebot.engine.rewards import reward_from_challenge

if TYPE_CHECKING:
    from scorebot.database.models import Challenge


class Transition(enum.StrEnum):
    APPROVE = "approve"
    REJECT = "reject"
    DISABLE = "disable"
    ENABLE = "enable"
    REVISE = "revise"
    RESUBMIT = "resubmit"


# transition → (allowed source states, target state)
TRANSITIONS: dict[Transition, tuple[frozenset[ChallengeState], ChallengeState]] = {
    Transition.APPROVE: (frozenset({ChallengeState.PENDING}), ChallengeState.APPROVED),
    Transition.REJECT: (
        frozenset({ChallengeState.PENDING, ChallengeState.APPROVED}),
        ChallengeState.REJECTED,
    ),
    Transition.DISABLE: (frozenset({ChallengeState.APPROVED}), ChallengeState.DISABLED),
    Transition.ENABLE: (frozenset({ChallengeState.DISABLED}), ChallengeState.APPROVED),
    Transition.REVISE: (
        frozenset({ChallengeState.APPROVED, ChallengeState.DISABLED}),
        ChallengeState.PENDING,
    ),
    Transition.RESUBMIT: (frozenset({ChallengeState.REJECTED}), ChallengeState.PENDING),
}

# Player-visible states.  Everything else is hidden from ordinary users.
VISIBLE_STATES: frozenset[ChallengeState] = frozenset({ChallengeState.APPROVED})

# Fields whose change on an approved (or disabled) challenge invalidates the approval.
GAMEPLAY_FIELDS: frozenset[str] = frozenset({"answer", "difficulty", "hints"})

_APPROVAL_FIELDS = ("approved_by", "approved_at")
_REJECTION_FIELDS = ("rejected_by", "rejected_at", "rejection_reason")
_DISABLE_FIELDS = ("disabled_by", "disabled_at", "disable_reason")


def is_visible(state: str) -> bool:
    """True if a challenge in *state* may be shown to ordinary players."""
    return state in VISIBLE_STATES


def target_state(current: str, transition: Transition) -> ChallengeState:
    """Return the state *transition* leads to from *current*.

    Raises
    ------
    InvalidStateTransition
        If the transition is not legal from *current*.
    """
    transition = Transition(transition)
    sources, target = TRANSITIONS[transition]
    if ChallengeState(current) not in sources:
        raise InvalidStateTransition(
            f"Cannot {transition.value} a challenge that is {current}."
        )
    return target


def _clear(challenge: Challenge, fields: tuple[str, ...]) -> None:
    for name in fields:
        setattr(challenge, name, None)


def _require_reason(reason: str | None, action: str) -> str:
    reason = (reason or "").strip()
    if not reason:
        raise ValidationError(f"A reason is required to {action} a challenge.")
    return reason


def apply_transition(
    challenge: Challenge,
    transition: Transition,
    *,
    actor_id: int,
    reason: str | None = None,
    now: datetime | None = None,
) -> ChallengeState:
    """Mutate *challenge* in place according to *transition*.

    The caller owns the session and commit.  Returns the new state.
    """
    transition = Transition(transition)
    target = target_state(challenge.state, transition)
    now = now or datetime.now(UTC)

    if transition is Transition.APPROVE:
        # Raises ValidationError when no reward payload is configured.
        reward_from_challenge(challenge)
        challenge.approved_by = actor_id
        challenge.approved_at = now
        _clear(challenge, _REJECTION_FIELDS + _DISABLE_FIELDS)
        challenge.revision_note = None

    elif transition is Transition.REJECT:
        reason = _require_reason(reason, "reject")
        _clear(challenge, _APPROVAL_FIELDS + _DISABLE_FIELDS)
        challenge.rejected_by = actor_id
        challenge.rejected_at = now
        challenge.rejection_reason = reason
        challenge.revision_note = None

    elif transition is Transition.DISABLE:
        reason = _require_reason(reason, "disable")
        challenge.disabled_by = actor_id
        challenge.disabled_at = now
        challenge.disable_reason = reason

    elif transition is Transition.ENABLE:
        _clear(challenge, _DISABLE_FIELDS)

    elif transition is Transition.REVISE:
        _clear(challenge, _APPROVAL_FIELDS + _DISABLE_FIELDS)
        challenge.revision_note = reason or "Gameplay changes require admin review"

    elif transition is Transition.RESUBMIT:
        _clear(challenge, _REJECTION_FIELDS)
        challenge.revision_note = reason or "Resubmitted after feedback"

    challenge.state = target.value
    return target
