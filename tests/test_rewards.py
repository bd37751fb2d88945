"""
tests/test_rewards.py — Reward Payload Unit Tests
===================================================
"""

from __future__ import annotations

import pytest

from scorebot.database.models import Challenge, RewardType
from scorebot.engine.rewards import (
    MAX_REWARD_TEXT_LENGTH,
    Badge,
    Text,
    apply_reward,
    make_reward,
    parse_reward_type,
    reward_from_challenge,
)
from scorebot.errors import UnknownRewardType, ValidationError


class TestParseRewardType:
    def test_known_types(self):
        assert parse_reward_type("badge") is RewardType.BADGE
        assert parse_reward_type(" TEXT ") is RewardType.TEXT

    def test_legacy_alias(self):
        assert parse_reward_type("badgr") is RewardType.BADGE

    @pytest.mark.parametrize("bad", ["", "coupon", None])
    def test_unknown(self, bad):
        with pytest.raises(UnknownRewardType):
            parse_reward_type(bad)


class TestMakeReward:
    def test_badge(self):
        assert make_reward("badge", badge_class_id=" abc ") == Badge(class_id="abc")

    def test_badge_requires_class_id(self):
        with pytest.raises(ValidationError):
            make_reward("badge", reward_text="ignored")

    def test_text(self):
        assert make_reward("text", reward_text="hi") == Text(body="hi")

    def test_text_length_limit(self):
        with pytest.raises(ValidationError):
            make_reward("text", reward_text="x" * (MAX_REWARD_TEXT_LENGTH + 1))


class TestChallengeColumns:
    def test_apply_clears_other_variant(self):
        c = Challenge(reward_type="text", reward_text="old")
        apply_reward(c, Badge(class_id="cls", description="Gold"))
        assert c.reward_type == "badge"
        assert c.reward_text is None
        assert reward_from_challenge(c) == Badge(class_id="cls", description="Gold")

        apply_reward(c, Text(body="new"))
        assert c.badge_class_id is None
        assert reward_from_challenge(c) == Text(body="new")
