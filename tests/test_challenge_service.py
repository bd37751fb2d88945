"""
tests/test_challenge_service.py — Challenge Store & Approval Workflow Tests
=============================================================================
Service-level tests against an in-memory SQLite database.
"""

from __future__ import annotations

import pytest
from sqlalchemy import select
from sqlalchemy.orm import Session

from scorebot.database.models import AdminLog
from scorebot.engine.index import ChallengeIndex
from scorebot.engine.rewards import Badge, Text
from scorebot.errors import (
    InvalidStateTransition,
    NotFound,
    PermissionDenied,
    UnknownRewardType,
    ValidationError,
)
from scorebot.services import challenge_service
from scorebot.services.challenge_service import ChallengeDraft, ListFilter
from conftest import ADMIN_ID, MAKER_ID, make_approved_challenge, make_challenge


@pytest.fixture
def index(db_engine):
    return ChallengeIndex(db_engine)


def _audit_actions(engine, target_id):
    with Session(engine) as session:
        return [
            row.action_type
            for row in session.scalars(
                select(AdminLog).where(AdminLog.target_id == target_id).order_by(AdminLog.id)
            )
        ]


# ===========================================================================
# Create
# ===========================================================================
class TestCreate:
    def test_new_challenge_is_pending(self, db_engine):
        c = make_challenge(db_engine)
        assert c.state == "pending"
        assert c.owner_id == MAKER_ID
        assert c.id.startswith("piano_riddle_")
        assert c.id.endswith(str(MAKER_ID)[-4:])
        assert _audit_actions(db_engine, c.id) == ["CREATE"]

    def test_blank_name_rejected(self, db_engine):
        with pytest.raises(ValidationError):
            make_challenge(db_engine, name="   ")
        assert challenge_service.list_challenges(db_engine, ListFilter.ALL) == []

    def test_difficulty_out_of_range(self, db_engine):
        with pytest.raises(ValidationError):
            make_challenge(db_engine, difficulty=5)

    def test_unknown_reward_type(self, db_engine):
        with pytest.raises(UnknownRewardType):
            make_challenge(db_engine, reward_type="coupon")

    def test_blank_author_defaults_to_anonymous(self, db_engine):
        assert make_challenge(db_engine, author="  ").author == "Anonymous"

    def test_reward_is_optional_at_creation(self, db_engine):
        c = make_challenge(db_engine, reward_type="badge", reward_text=None)
        assert c.badge_class_id is None

    def test_id_collision_gets_suffix(self, db_engine):
        draft = ChallengeDraft(
            name="Same", description="d", answer="a", owner_id=MAKER_ID,
            reward_type="text", reward_text="x",
        )
        first = challenge_service.create(db_engine, draft, now_ms=1)
        second = challenge_service.create(db_engine, draft, now_ms=1)
        assert first.id != second.id
        assert second.id.startswith(first.id)

    def test_hints_stored_as_list(self, db_engine):
        c = make_challenge(db_engine, hints=[" one ", "", "two"])
        assert challenge_service.get(db_engine, c.id).hints == ["one", "two"]

    def test_get_returns_every_draft_field(self, db_engine):
        draft = ChallengeDraft(
            name="Lighthouse",
            description="Which keeper never sleeps?",
            answer="the lamp",
            owner_id=MAKER_ID,
            author="Keeper",
            difficulty=3,
            hints=["It shines.", "It turns."],
            reward_type="badge",
            badge_class_id="cls-lighthouse",
            badge_description="Night watch",
        )
        created = challenge_service.create(db_engine, draft)
        stored = challenge_service.get(db_engine, created.id)

        assert stored.name == draft.name
        assert stored.description == draft.description
        assert stored.author == draft.author
        assert stored.owner_id == draft.owner_id
        assert stored.answer == draft.answer
        assert stored.difficulty == draft.difficulty
        assert stored.hints == draft.hints
        assert stored.reward_type == draft.reward_type
        assert stored.badge_class_id == draft.badge_class_id
        assert stored.badge_description == draft.badge_description
        assert stored.reward_text is None
        assert stored.state == "pending"

    def test_get_returns_text_reward_body(self, db_engine):
        c = make_challenge(db_engine, reward_type="text", reward_text="Open sesame")
        stored = challenge_service.get(db_engine, c.id)
        assert stored.reward_type == "text"
        assert stored.reward_text == "Open sesame"
        assert stored.badge_class_id is None


# ===========================================================================
# Listing & visibility
# ===========================================================================
class TestListing:
    def test_players_only_see_approved(self, db_engine):
        pending = make_challenge(db_engine, name="Pending One")
        approved = make_approved_challenge(db_engine, name="Live One")

        visible = [c.id for c in challenge_service.list_challenges(db_engine)]
        assert visible == [approved.id]
        with pytest.raises(NotFound):
            challenge_service.get_playable(db_engine, pending.id)

    def test_owned_filter(self, db_engine):
        mine = make_challenge(db_engine)
        make_challenge(db_engine, owner_id=3000)
        rows = challenge_service.list_challenges(db_engine, "owned", owner_id=MAKER_ID)
        assert [c.id for c in rows] == [mine.id]

    def test_owned_filter_requires_owner(self, db_engine):
        with pytest.raises(ValidationError):
            challenge_service.list_challenges(db_engine, ListFilter.OWNED)

    def test_summaries_hide_answer(self, db_engine, index):
        make_approved_challenge(db_engine)
        summary = index.all()[0]
        assert not hasattr(summary, "answer")
        assert summary.hint_count == 2

    def test_count_approved(self, db_engine):
        make_challenge(db_engine)
        make_approved_challenge(db_engine, name="A")
        make_approved_challenge(db_engine, name="B")
        assert challenge_service.count_approved(db_engine) == 2


# ===========================================================================
# Approval workflow
# ===========================================================================
class TestWorkflow:
    def test_approve_rebuilds_index(self, db_engine, index):
        c = make_challenge(db_engine)
        index.rebuild()
        assert c.id not in index

        result = challenge_service.approve(
            db_engine, c.id, actor_id=ADMIN_ID, is_admin=True, index=index
        )
        assert result.state == "approved"
        assert result.previous_state == "pending"
        assert result.state_changed
        assert c.id in index

    def test_non_admin_cannot_approve(self, db_engine):
        c = make_challenge(db_engine)
        with pytest.raises(PermissionDenied):
            challenge_service.approve(db_engine, c.id, actor_id=MAKER_ID, is_admin=False)
        assert challenge_service.get(db_engine, c.id).state == "pending"

    def test_approve_without_reward_payload(self, db_engine):
        c = make_challenge(db_engine, reward_type="badge", reward_text=None)
        with pytest.raises(ValidationError):
            challenge_service.approve(db_engine, c.id, actor_id=ADMIN_ID, is_admin=True)
        assert challenge_service.get(db_engine, c.id).state == "pending"

    def test_double_approve_is_invalid(self, db_engine):
        c = make_approved_challenge(db_engine)
        with pytest.raises(InvalidStateTransition):
            challenge_service.approve(db_engine, c.id, actor_id=ADMIN_ID, is_admin=True)

    def test_reject_needs_reason(self, db_engine):
        c = make_challenge(db_engine)
        with pytest.raises(ValidationError):
            challenge_service.reject(db_engine, c.id, actor_id=ADMIN_ID, is_admin=True)
        result = challenge_service.reject(
            db_engine, c.id, actor_id=ADMIN_ID, is_admin=True, reason="Too vague"
        )
        assert result.state == "rejected"
        assert result.challenge.rejection_reason == "Too vague"

    def test_disable_and_enable(self, db_engine, index):
        c = make_approved_challenge(db_engine, index=index)
        assert c.id in index

        challenge_service.disable(
            db_engine, c.id, actor_id=ADMIN_ID, is_admin=True, reason="Typo", index=index
        )
        assert c.id not in index
        with pytest.raises(NotFound):
            challenge_service.get_playable(db_engine, c.id)

        result = challenge_service.enable(db_engine, c.id, actor_id=ADMIN_ID, is_admin=True, index=index)
        assert result.state == "approved"
        assert result.challenge.approved_by == ADMIN_ID
        assert c.id in index

    def test_enable_pending_is_invalid(self, db_engine):
        c = make_challenge(db_engine)
        with pytest.raises(InvalidStateTransition):
            challenge_service.enable(db_engine, c.id, actor_id=ADMIN_ID, is_admin=True)

    def test_revise_cannot_be_called_directly(self, db_engine):
        c = make_approved_challenge(db_engine)
        with pytest.raises(ValidationError):
            challenge_service.transition(
                db_engine, c.id, "revise", actor_id=ADMIN_ID, is_admin=True
            )

    def test_every_transition_is_audited(self, db_engine):
        c = make_approved_challenge(db_engine)
        challenge_service.disable(db_engine, c.id, actor_id=ADMIN_ID, is_admin=True, reason="x")
        assert _audit_actions(db_engine, c.id) == ["CREATE", "APPROVE", "DISABLE"]

    def test_audit_snapshots_never_contain_answer(self, db_engine):
        c = make_approved_challenge(db_engine)
        with Session(db_engine) as session:
            for row in session.scalars(select(AdminLog).where(AdminLog.target_id == c.id)):
                for snap in (row.before_snapshot, row.after_snapshot):
                    assert snap is None or "answer" not in snap


# ===========================================================================
# Editing
# ===========================================================================
class TestUpdate:
    def test_owner_edits_pending(self, db_engine):
        c = make_challenge(db_engine)
        result = challenge_service.update(
            db_engine, c.id, {"name": "Renamed"}, actor_id=MAKER_ID
        )
        assert result.challenge.name == "Renamed"
        assert result.state == "pending"
        assert not result.state_changed

    def test_non_owner_cannot_edit(self, db_engine):
        c = make_challenge(db_engine)
        with pytest.raises(PermissionDenied):
            challenge_service.update(db_engine, c.id, {"name": "X"}, actor_id=9999)

    def test_admin_can_edit_any(self, db_engine):
        c = make_challenge(db_engine)
        result = challenge_service.update(
            db_engine, c.id, {"name": "Admin Edit"}, actor_id=ADMIN_ID, is_admin=True
        )
        assert result.challenge.name == "Admin Edit"

    def test_unknown_field_rejected(self, db_engine):
        c = make_challenge(db_engine)
        with pytest.raises(ValidationError):
            challenge_service.update(db_engine, c.id, {"state": "approved"}, actor_id=MAKER_ID)

    def test_gameplay_edit_on_approved_goes_back_to_review(self, db_engine, index):
        c = make_approved_challenge(db_engine, index=index)
        result = challenge_service.update(
            db_engine, c.id, {"answer": "organ"}, actor_id=MAKER_ID, index=index
        )
        assert result.state == "pending"
        assert result.state_changed
        assert result.challenge.approved_by is None
        assert c.id not in index
        assert _audit_actions(db_engine, c.id)[-1] == "REVISE"

    def test_cosmetic_edit_on_approved_stays_live(self, db_engine, index):
        c = make_approved_challenge(db_engine, index=index)
        result = challenge_service.update(
            db_engine, c.id, {"description": "New text"}, actor_id=MAKER_ID, index=index
        )
        assert result.state == "approved"
        assert index.get(c.id).description == "New text"

    def test_same_answer_is_not_a_gameplay_change(self, db_engine):
        c = make_approved_challenge(db_engine)
        result = challenge_service.update(
            db_engine, c.id, {"answer": "piano", "name": "Piano"}, actor_id=MAKER_ID
        )
        assert result.state == "approved"

    def test_editing_rejected_resubmits(self, db_engine):
        c = make_challenge(db_engine)
        challenge_service.reject(db_engine, c.id, actor_id=ADMIN_ID, is_admin=True, reason="No")
        result = challenge_service.update(db_engine, c.id, {"hints": ["Better"]}, actor_id=MAKER_ID)
        assert result.state == "pending"
        assert result.challenge.rejection_reason is None

    def test_gameplay_edit_on_disabled_needs_fresh_approval(self, db_engine, index):
        c = make_approved_challenge(db_engine, index=index)
        challenge_service.disable(
            db_engine, c.id, actor_id=ADMIN_ID, is_admin=True, reason="typo", index=index
        )
        result = challenge_service.update(
            db_engine, c.id, {"answer": "totally different"}, actor_id=MAKER_ID, index=index
        )
        assert result.state == "pending"
        assert result.challenge.approved_by is None
        assert result.challenge.disable_reason is None

        with pytest.raises(InvalidStateTransition):
            challenge_service.enable(db_engine, c.id, actor_id=ADMIN_ID, is_admin=True)
        assert challenge_service.get(db_engine, c.id).state == "pending"
        assert c.id not in index

        challenge_service.approve(db_engine, c.id, actor_id=ADMIN_ID, is_admin=True, index=index)
        assert index.get(c.id) is not None

    def test_cosmetic_edit_on_disabled_stays_disabled(self, db_engine):
        c = make_approved_challenge(db_engine)
        challenge_service.disable(db_engine, c.id, actor_id=ADMIN_ID, is_admin=True, reason="x")
        result = challenge_service.update(
            db_engine, c.id, {"description": "Clearer"}, actor_id=MAKER_ID
        )
        assert result.state == "disabled"
        assert result.challenge.approved_by == ADMIN_ID

    def test_revise_requires_approved(self, db_engine):
        c = make_challenge(db_engine)
        with pytest.raises(InvalidStateTransition):
            challenge_service.revise_approved_challenge(
                db_engine, c.id, {"difficulty": 2}, actor_id=MAKER_ID
            )


class TestRewardAndRemove:
    def test_configure_reward_switches_variant(self, db_engine):
        c = make_challenge(db_engine)
        challenge_service.configure_reward(
            db_engine, c.id, Badge(class_id="cls123"), actor_id=MAKER_ID
        )
        stored = challenge_service.get(db_engine, c.id)
        assert stored.reward_type == "badge"
        assert stored.badge_class_id == "cls123"
        assert stored.reward_text is None

    def test_configure_reward_owner_only(self, db_engine):
        c = make_challenge(db_engine)
        with pytest.raises(PermissionDenied):
            challenge_service.configure_reward(db_engine, c.id, Text(body="x"), actor_id=1)

    def test_remove(self, db_engine, index):
        c = make_approved_challenge(db_engine, index=index)
        challenge_service.remove(db_engine, c.id, actor_id=MAKER_ID, index=index)
        with pytest.raises(NotFound):
            challenge_service.get(db_engine, c.id)
        assert c.id not in index
        assert _audit_actions(db_engine, c.id)[-1] == "DELETE"

    def test_remove_missing(self, db_engine):
        with pytest.raises(NotFound):
            challenge_service.remove(db_engine, "nope", actor_id=ADMIN_ID, is_admin=True)
