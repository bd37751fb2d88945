"""
tests/test_lifecycle.py — Challenge State Machine Unit Tests
==============================================================
Transitions are checked on plain ``Challenge`` instances; nothing is
persisted.
"""

from __future__ import annotations

import pytest

from scorebot.database.models import Challenge, ChallengeState, RewardType
from scorebot.engine.lifecycle import (
    Transition,
    apply_transition,
    is_visible,
    target_state,
)
from scorebot.errors import InvalidStateTransition, ValidationError


def _challenge(state: ChallengeState = ChallengeState.PENDING, **kw) -> Challenge:
    fields = dict(
        id="riddle",
        name="Riddle",
        description="d",
        answer="a",
        owner_id=7,
        difficulty=1,
        reward_type=RewardType.TEXT.value,
        reward_text="secret",
        hints=[],
        state=state.value,
    )
    fields.update(kw)
    return Challenge(**fields)


# ===========================================================================
# Legal / illegal transitions
# ===========================================================================
class TestTargetState:
    @pytest.mark.parametrize(
        ("current", "transition", "expected"),
        [
            (ChallengeState.PENDING, Transition.APPROVE, ChallengeState.APPROVED),
            (ChallengeState.PENDING, Transition.REJECT, ChallengeState.REJECTED),
            (ChallengeState.APPROVED, Transition.REJECT, ChallengeState.REJECTED),
            (ChallengeState.APPROVED, Transition.DISABLE, ChallengeState.DISABLED),
            (ChallengeState.DISABLED, Transition.ENABLE, ChallengeState.APPROVED),
            (ChallengeState.APPROVED, Transition.REVISE, ChallengeState.PENDING),
            (ChallengeState.DISABLED, Transition.REVISE, ChallengeState.PENDING),
            (ChallengeState.REJECTED, Transition.RESUBMIT, ChallengeState.PENDING),
        ],
    )
    def test_legal(self, current, transition, expected):
        assert target_state(current.value, transition) is expected

    @pytest.mark.parametrize(
        ("current", "transition"),
        [
            (ChallengeState.APPROVED, Transition.APPROVE),
            (ChallengeState.REJECTED, Transition.APPROVE),
            (ChallengeState.DISABLED, Transition.APPROVE),
            (ChallengeState.PENDING, Transition.DISABLE),
            (ChallengeState.REJECTED, Transition.DISABLE),
            (ChallengeState.PENDING, Transition.ENABLE),
            (ChallengeState.APPROVED, Transition.ENABLE),
            (ChallengeState.DISABLED, Transition.REJECT),
            (ChallengeState.PENDING, Transition.REVISE),
        ],
    )
    def test_illegal(self, current, transition):
        with pytest.raises(InvalidStateTransition):
            target_state(current.value, transition)

    def test_only_approved_is_visible(self):
        assert is_visible("approved")
        for state in ("pending", "rejected", "disabled"):
            assert not is_visible(state)


# ===========================================================================
# Field bookkeeping
# ===========================================================================
class TestApplyTransition:
    def test_approve_sets_approval_metadata(self):
        c = _challenge(rejection_reason="old", revision_note="note")
        apply_transition(c, Transition.APPROVE, actor_id=1)
        assert c.state == "approved"
        assert c.approved_by == 1
        assert c.approved_at is not None
        assert c.rejection_reason is None
        assert c.revision_note is None

    def test_approve_requires_reward_payload(self):
        c = _challenge(reward_text=None)
        with pytest.raises(ValidationError):
            apply_transition(c, Transition.APPROVE, actor_id=1)
        assert c.state == "pending"

    def test_reject_requires_reason(self):
        c = _challenge()
        with pytest.raises(ValidationError):
            apply_transition(c, Transition.REJECT, actor_id=1, reason="   ")
        assert c.state == "pending"

    def test_reject_clears_approval(self):
        c = _challenge(ChallengeState.APPROVED, approved_by=1)
        apply_transition(c, Transition.REJECT, actor_id=2, reason="Too easy")
        assert c.state == "rejected"
        assert c.approved_by is None
        assert c.rejected_by == 2
        assert c.rejection_reason == "Too easy"

    def test_disable_keeps_approval_for_restore(self):
        c = _challenge(ChallengeState.APPROVED, approved_by=1)
        apply_transition(c, Transition.DISABLE, actor_id=2, reason="Broken")
        assert c.state == "disabled"
        assert c.approved_by == 1
        assert c.disable_reason == "Broken"

        apply_transition(c, Transition.ENABLE, actor_id=2)
        assert c.state == "approved"
        assert c.approved_by == 1
        assert c.disabled_by is None

    def test_revise_drops_approval(self):
        c = _challenge(ChallengeState.APPROVED, approved_by=1)
        apply_transition(c, Transition.REVISE, actor_id=7)
        assert c.state == "pending"
        assert c.approved_by is None
        assert c.revision_note

    def test_revise_from_disabled_drops_approval_and_disable(self):
        c = _challenge(
            ChallengeState.DISABLED, approved_by=1, disabled_by=2, disable_reason="typo"
        )
        apply_transition(c, Transition.REVISE, actor_id=7)
        assert c.state == "pending"
        assert c.approved_by is None
        assert c.disabled_by is None
        assert c.disable_reason is None

    def test_resubmit_clears_rejection(self):
        c = _challenge(ChallengeState.REJECTED, rejection_reason="No")
        apply_transition(c, Transition.RESUBMIT, actor_id=7)
        assert c.state == "pending"
        assert c.rejection_reason is None
