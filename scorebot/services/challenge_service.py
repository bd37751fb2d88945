"""
scorebot.services.challenge_service — Challenge Store & Approval Workflow
==========================================================================

Shared service module callable by both the bot and the API.  Every write
follows the same pattern:

  1. Begin transaction, load the row with a row lock
  2. Check ownership / admin rights
  3. Read "before" snapshot
  4. Apply the change (state rules from :mod:`scorebot.engine.lifecycle`)
  5. Write admin_log with before/after
  6. Commit, then rebuild the :class:`ChallengeIndex` if the approved set
     may have changed

Players read challenges through the index, whose
:class:`scorebot.engine.index.ChallengeSummary` never carries the answer.
"""

from __future__ import annotations

import enum
import logging
from dataclasses import dataclass, field
from typing import TYPE_CHECKING, Any

from sqlalchemy import func, select

from scorebot.constants import (
    MAX_ANSWER_LENGTH,
    MAX_DESCRIPTION_LENGTH,
    MAX_HINT_LENGTH,
    MAX_HINTS,
    MAX_NAME_LENGTH,
    MAX_REASON_LENGTH,
    generate_challenge_id,
)
from scorebot.database.engine import get_session
from scorebot.database.models import AdminActionType, Challenge, ChallengeState
from scorebot.engine.lifecycle import GAMEPLAY_FIELDS, Transition, apply_transition, is_visible
from scorebot.engine.points import validate_difficulty
from scorebot.engine.rewards import Reward, apply_reward, make_reward, parse_reward_type
from scorebot.errors import NotFound, PermissionDenied, ValidationError
from scorebot.services.audit import log_admin_action, row_to_dict

if TYPE_CHECKING:
    from sqlalchemy import Engine
    from sqlalchemy.orm import Session

    from scorebot.engine.index import ChallengeIndex

logger = logging.getLogger(__name__)

TABLE = "challenges"

# The answer is a secret; keep it out of the audit snapshots.
_SNAPSHOT_EXCLUDE = ("answer",)

EDITABLE_FIELDS: frozenset[str] = frozenset(
    {"name", "description", "author", "answer", "difficulty", "hints"}
)

# States that carry an approval a gameplay edit must invalidate.
_REVIEWED_STATES = frozenset({ChallengeState.APPROVED.value, ChallengeState.DISABLED.value})

_TRANSITION_ACTIONS: dict[Transition, AdminActionType] = {
    Transition.APPROVE: AdminActionType.APPROVE,
    Transition.REJECT: AdminActionType.REJECT,
    Transition.DISABLE: AdminActionType.DISABLE,
    Transition.ENABLE: AdminActionType.ENABLE,
    Transition.REVISE: AdminActionType.REVISE,
    Transition.RESUBMIT: AdminActionType.UPDATE,
}


class ListFilter(enum.StrEnum):
    APPROVED = "approved"
    OWNED = "owned"
    ALL = "all"


@dataclass(slots=True)
class ChallengeDraft:
    """Creator input for a new challenge."""

    name: str
    description: str
    answer: str
    owner_id: int
    author: str = "Anonymous"
    difficulty: int = 1
    hints: list[str] = field(default_factory=list)
    reward_type: str = "badge"
    badge_class_id: str | None = None
    badge_description: str | None = None
    reward_text: str | None = None


@dataclass(frozen=True, slots=True)
class ChangeResult:
    """Outcome of a mutation: the detached row plus what happened to its state."""

    challenge: Challenge
    previous_state: str
    state_changed: bool

    @property
    def state(self) -> str:
        return self.challenge.state


# ---------------------------------------------------------------------------
# Validation helpers
# ---------------------------------------------------------------------------
def _clean_text(value: Any, label: str, limit: int, *, required: bool = True) -> str:
    text = (value or "").strip() if isinstance(value, str) or value is None else str(value)
    if required and not text:
        raise ValidationError(f"{label} is required.")
    if len(text) > limit:
        raise ValidationError(f"{label} must be at most {limit} characters.")
    return text


def _clean_hints(hints: Any) -> list[str]:
    if hints is None:
        return []
    if isinstance(hints, str):
        raise ValidationError("Hints must be a list of strings.")
    cleaned = [str(h).strip() for h in hints if str(h).strip()]
    if len(cleaned) > MAX_HINTS:
        raise ValidationError(f"A challenge can have at most {MAX_HINTS} hints.")
    for hint in cleaned:
        if len(hint) > MAX_HINT_LENGTH:
            raise ValidationError(f"Each hint must be at most {MAX_HINT_LENGTH} characters.")
    return cleaned


def _clean_patch(patch: dict[str, Any]) -> dict[str, Any]:
    unknown = set(patch) - EDITABLE_FIELDS
    if unknown:
        raise ValidationError(f"Cannot edit field(s): {', '.join(sorted(unknown))}.")
    cleaned: dict[str, Any] = {}
    for key, value in patch.items():
        if key == "name":
            cleaned[key] = _clean_text(value, "Name", MAX_NAME_LENGTH)
        elif key == "description":
            cleaned[key] = _clean_text(value, "Description", MAX_DESCRIPTION_LENGTH)
        elif key == "answer":
            cleaned[key] = _clean_text(value, "Answer", MAX_ANSWER_LENGTH)
        elif key == "author":
            cleaned[key] = (
                _clean_text(value, "Author", MAX_NAME_LENGTH, required=False) or "Anonymous"
            )
        elif key == "difficulty":
            cleaned[key] = validate_difficulty(value)
        elif key == "hints":
            cleaned[key] = _clean_hints(value)
    return cleaned


def _clean_reason(reason: str | None) -> str | None:
    if reason is None:
        return None
    reason = reason.strip()
    if len(reason) > MAX_REASON_LENGTH:
        raise ValidationError(f"Reason must be at most {MAX_REASON_LENGTH} characters.")
    return reason


def _changed_fields(challenge: Challenge, patch: dict[str, Any]) -> set[str]:
    return {key for key, value in patch.items() if getattr(challenge, key) != value}


# ---------------------------------------------------------------------------
# Session helpers
# ---------------------------------------------------------------------------
def _load_for_update(session: Session, challenge_id: str) -> Challenge:
    challenge = session.get(Challenge, challenge_id, with_for_update=True)
    if challenge is None:
        raise NotFound(
            f"Challenge {challenge_id!r} not found.",
            user_message="That challenge does not exist.",
        )
    return challenge


def _check_owner(challenge: Challenge, actor_id: int, is_admin: bool) -> None:
    if not is_admin and challenge.owner_id != actor_id:
        raise PermissionDenied(
            f"User {actor_id} does not own challenge {challenge.id!r}.",
            user_message="You can only manage challenges you created.",
        )


def _check_admin(actor_id: int, is_admin: bool) -> None:
    if not is_admin:
        raise PermissionDenied(f"User {actor_id} is not an admin.")


def _rebuild(index: ChallengeIndex | None, *states: str) -> None:
    if index is not None and any(s == ChallengeState.APPROVED.value for s in states):
        index.rebuild()


# ---------------------------------------------------------------------------
# Create / read
# ---------------------------------------------------------------------------
def validate_draft(draft: ChallengeDraft) -> tuple[dict[str, Any], Reward | None]:
    """Clean every editable field of *draft* and build its reward, if given.

    Raises
    ------
    ValidationError
        Blank required text, out-of-range difficulty, oversized hints, or
        a reward type without its payload.
    UnknownRewardType
        The reward type is neither badge nor text.
    """
    fields = _clean_patch({
        "name": draft.name,
        "description": draft.description,
        "answer": draft.answer,
        "author": draft.author,
        "difficulty": draft.difficulty,
        "hints": draft.hints,
    })
    reward_type = parse_reward_type(draft.reward_type)
    reward: Reward | None = None
    if draft.badge_class_id or draft.reward_text:
        reward = make_reward(
            reward_type,
            badge_class_id=draft.badge_class_id,
            badge_description=draft.badge_description,
            reward_text=draft.reward_text,
        )
    return fields, reward


def create(engine: Engine, draft: ChallengeDraft, *, now_ms: int | None = None) -> Challenge:
    """Validate *draft* and store it as a new *pending* challenge.

    The reward payload is optional at creation time; it is required
    before approval.

    Raises
    ------
    ValidationError
        If name, description or answer are blank, or any field is out of
        range.
    """
    fields, reward = validate_draft(draft)

    with get_session(engine) as session:
        base_id = generate_challenge_id(fields["name"], draft.owner_id, now_ms)
        challenge_id = base_id
        suffix = 1
        while session.get(Challenge, challenge_id) is not None:
            suffix += 1
            challenge_id = f"{base_id}{suffix}"

        challenge = Challenge(
            id=challenge_id,
            owner_id=draft.owner_id,
            reward_type=parse_reward_type(draft.reward_type).value,
            state=ChallengeState.PENDING.value,
            **fields,
        )
        if reward is not None:
            apply_reward(challenge, reward)
        session.add(challenge)
        session.flush()
        log_admin_action(
            session,
            actor_id=draft.owner_id,
            action_type=AdminActionType.CREATE,
            target_table=TABLE,
            target_id=challenge.id,
            before=None,
            after=row_to_dict(challenge, exclude=_SNAPSHOT_EXCLUDE),
        )
        session.flush()
        session.refresh(challenge)

    logger.info("Challenge %s created by %d (pending)", challenge.id, draft.owner_id)
    return challenge


def get(engine: Engine, challenge_id: str) -> Challenge:
    """Return the full challenge row (including the answer) or raise."""
    with get_session(engine) as session:
        challenge = session.get(Challenge, challenge_id)
        if challenge is None:
            raise NotFound(
                f"Challenge {challenge_id!r} not found.",
                user_message="That challenge does not exist.",
            )
        return challenge


def get_playable(engine: Engine, challenge_id: str) -> Challenge:
    """Like :func:`get` but hides anything players must not see."""
    challenge = get(engine, challenge_id)
    if not is_visible(challenge.state):
        raise NotFound(
            f"Challenge {challenge_id!r} is {challenge.state}.",
            user_message="That challenge does not exist or is not available.",
        )
    return challenge


def list_challenges(
    engine: Engine,
    scope: ListFilter | str = ListFilter.APPROVED,
    *,
    owner_id: int | None = None,
    state: str | None = None,
) -> list[Challenge]:
    """List challenges.

    ``approved`` — player-visible only; ``owned`` — everything *owner_id*
    created; ``all`` — admin view, optionally narrowed to one *state*.
    """
    scope = ListFilter(scope)
    stmt = select(Challenge).order_by(Challenge.difficulty, Challenge.name)
    if scope is ListFilter.APPROVED:
        stmt = stmt.where(Challenge.state == ChallengeState.APPROVED.value)
    elif scope is ListFilter.OWNED:
        if owner_id is None:
            raise ValidationError("owner_id is required for the 'owned' filter.")
        stmt = stmt.where(Challenge.owner_id == owner_id)
    if state is not None:
        stmt = stmt.where(Challenge.state == ChallengeState(state).value)

    with get_session(engine) as session:
        return list(session.scalars(stmt).all())


def count_approved(engine: Engine) -> int:
    with get_session(engine) as session:
        return session.scalar(
            select(func.count(Challenge.id)).where(
                Challenge.state == ChallengeState.APPROVED.value
            )
        ) or 0


# ---------------------------------------------------------------------------
# Update / revise / remove
# ---------------------------------------------------------------------------
def _apply_patch(
    session: Session,
    challenge: Challenge,
    patch: dict[str, Any],
    *,
    actor_id: int,
    transition: Transition | None,
    reason: str | None = None,
) -> ChangeResult:
    previous = challenge.state
    before = row_to_dict(challenge, exclude=_SNAPSHOT_EXCLUDE)
    for key, value in patch.items():
        setattr(challenge, key, value)
    if transition is not None:
        apply_transition(challenge, transition, actor_id=actor_id, reason=reason)
    session.flush()
    log_admin_action(
        session,
        actor_id=actor_id,
        action_type=_TRANSITION_ACTIONS[transition] if transition else AdminActionType.UPDATE,
        target_table=TABLE,
        target_id=challenge.id,
        before=before,
        after=row_to_dict(challenge, exclude=_SNAPSHOT_EXCLUDE),
        reason=reason,
    )
    return ChangeResult(
        challenge=challenge,
        previous_state=previous,
        state_changed=previous != challenge.state,
    )


def _revise(
    session: Session,
    challenge: Challenge,
    patch: dict[str, Any],
    *,
    actor_id: int,
    reason: str | None = None,
) -> ChangeResult:
    return _apply_patch(
        session, challenge, patch,
        actor_id=actor_id, transition=Transition.REVISE,
        reason=reason or "Gameplay changes require admin review",
    )


def revise_approved_challenge(
    engine: Engine,
    challenge_id: str,
    patch: dict[str, Any],
    *,
    actor_id: int,
    is_admin: bool = False,
    index: ChallengeIndex | None = None,
    reason: str | None = None,
) -> ChangeResult:
    """Apply a gameplay change to an *approved* (or *disabled*) challenge.

    Changing the answer, difficulty or hints invalidates the approval: the
    challenge returns to *pending* and drops out of the player index until
    an admin re-approves it.

    Raises
    ------
    InvalidStateTransition
        If the challenge is neither approved nor disabled.
    """
    cleaned = _clean_patch(patch)
    with get_session(engine) as session:
        challenge = _load_for_update(session, challenge_id)
        _check_owner(challenge, actor_id, is_admin)
        result = _revise(session, challenge, cleaned, actor_id=actor_id, reason=reason)

    logger.info("Challenge %s revised by %d — back to pending", challenge_id, actor_id)
    _rebuild(index, result.previous_state)
    return result


def update(
    engine: Engine,
    challenge_id: str,
    patch: dict[str, Any],
    *,
    actor_id: int,
    is_admin: bool = False,
    index: ChallengeIndex | None = None,
) -> ChangeResult:
    """Edit a challenge.  Owner or admin only.

    * Gameplay changes (answer, difficulty, hints) on an approved or
      disabled challenge are routed through :func:`revise_approved_challenge`,
      so a later ``enable`` cannot put an unreviewed answer live.
    * Editing a rejected challenge resubmits it for review (→ pending).
    * Anything else is a plain in-place edit.
    """
    cleaned = _clean_patch(patch)
    if not cleaned:
        raise ValidationError("Nothing to update.")

    with get_session(engine) as session:
        challenge = _load_for_update(session, challenge_id)
        _check_owner(challenge, actor_id, is_admin)
        changed = _changed_fields(challenge, cleaned)
        if challenge.state in _REVIEWED_STATES and changed & GAMEPLAY_FIELDS:
            result = _revise(session, challenge, cleaned, actor_id=actor_id)
        else:
            follow_up = (
                Transition.RESUBMIT
                if challenge.state == ChallengeState.REJECTED.value
                else None
            )
            result = _apply_patch(
                session, challenge, cleaned, actor_id=actor_id, transition=follow_up,
            )

    logger.info(
        "Challenge %s updated by %d (%s) — now %s",
        challenge_id, actor_id, ", ".join(sorted(changed)) or "no changes", result.state,
    )
    # Name/description edits on an approved challenge change what players see.
    _rebuild(index, result.previous_state, result.state)
    return result


def configure_reward(
    engine: Engine,
    challenge_id: str,
    reward: Reward,
    *,
    actor_id: int,
    is_admin: bool = False,
    index: ChallengeIndex | None = None,
) -> ChangeResult:
    """Set the badge class / reward text for a challenge.  Owner or admin."""
    with get_session(engine) as session:
        challenge = _load_for_update(session, challenge_id)
        _check_owner(challenge, actor_id, is_admin)
        previous = challenge.state
        before = row_to_dict(challenge, exclude=_SNAPSHOT_EXCLUDE)
        apply_reward(challenge, reward)
        session.flush()
        log_admin_action(
            session,
            actor_id=actor_id,
            action_type=AdminActionType.UPDATE,
            target_table=TABLE,
            target_id=challenge.id,
            before=before,
            after=row_to_dict(challenge, exclude=_SNAPSHOT_EXCLUDE),
            reason="reward configured",
        )

    _rebuild(index, previous)
    return ChangeResult(challenge=challenge, previous_state=previous, state_changed=False)


def remove(
    engine: Engine,
    challenge_id: str,
    *,
    actor_id: int,
    is_admin: bool = False,
    index: ChallengeIndex | None = None,
) -> Challenge:
    """Hard-delete a challenge.  Owner or admin only.  Returns the removed row."""
    with get_session(engine) as session:
        challenge = _load_for_update(session, challenge_id)
        _check_owner(challenge, actor_id, is_admin)
        log_admin_action(
            session,
            actor_id=actor_id,
            action_type=AdminActionType.DELETE,
            target_table=TABLE,
            target_id=challenge.id,
            before=row_to_dict(challenge, exclude=_SNAPSHOT_EXCLUDE),
            after=None,
        )
        session.delete(challenge)

    logger.info("Challenge %s removed by %d", challenge_id, actor_id)
    _rebuild(index, challenge.state)
    return challenge


# ---------------------------------------------------------------------------
# Approval workflow (admin only)
# ---------------------------------------------------------------------------
def transition(
    engine: Engine,
    challenge_id: str,
    action: Transition | str,
    *,
    actor_id: int,
    is_admin: bool,
    reason: str | None = None,
    index: ChallengeIndex | None = None,
) -> ChangeResult:
    """Run one admin workflow transition (approve/reject/disable/enable).

    Raises
    ------
    PermissionDenied
        If the actor is not an admin.
    InvalidStateTransition
        If the transition is not legal from the current state.
    ValidationError
        Missing reward payload (approve) or missing reason (reject/disable).
    """
    action = Transition(action)
    if action in (Transition.REVISE, Transition.RESUBMIT):
        raise ValidationError(f"{action.value} is triggered by editing, not directly.")
    _check_admin(actor_id, is_admin)
    reason = _clean_reason(reason)

    with get_session(engine) as session:
        challenge = _load_for_update(session, challenge_id)
        result = _apply_patch(
            session, challenge, {}, actor_id=actor_id, transition=action, reason=reason,
        )

    logger.info(
        "Challenge %s %s → %s by %d",
        challenge_id, result.previous_state, result.state, actor_id,
    )
    _rebuild(index, result.previous_state, result.state)
    return result


def approve(engine: Engine, challenge_id: str, **kwargs: Any) -> ChangeResult:
    return transition(engine, challenge_id, Transition.APPROVE, **kwargs)


def reject(engine: Engine, challenge_id: str, **kwargs: Any) -> ChangeResult:
    return transition(engine, challenge_id, Transition.REJECT, **kwargs)


def disable(engine: Engine, challenge_id: str, **kwargs: Any) -> ChangeResult:
    return transition(engine, challenge_id, Transition.DISABLE, **kwargs)


def enable(engine: Engine, challenge_id: str, **kwargs: Any) -> ChangeResult:
    return transition(engine, challenge_id, Transition.ENABLE, **kwargs)
