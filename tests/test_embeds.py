"""
tests/test_embeds.py — Embed Builder Tests
============================================
"""

from __future__ import annotations

from dataclasses import replace
from datetime import UTC, datetime
from types import SimpleNamespace

from scorebot.constants import CHALLENGES_PER_PAGE
from scorebot.engine.index import ChallengeSummary
from scorebot.engine.paging import page_window, paginate
from scorebot.errors import MissingEmail
from scorebot.services.embeds import (
    build_challenge_embed,
    build_challenge_list_embed,
    build_challenge_status_embed,
    build_completion_history_embed,
    build_help_embed,
    build_leaderboard_embed,
    build_progress_embed,
    build_submission_embed,
    format_reward_type,
    state_label,
)
from scorebot.services.progress_service import LeaderboardEntry, UserDetail, UserTotals
from scorebot.services.reward_service import RewardOutcome

SUMMARY = ChallengeSummary(
    id="riddle", name="Piano Riddle", description="Keys but no locks.",
    author="Maker", difficulty=3, reward_type="text", hint_count=2,
)


def _fields(embed) -> dict[str, str]:
    return {f.name: f.value for f in embed.fields}


class TestLabels:
    def test_reward_type_labels(self):
        assert "Badge" in format_reward_type("badge")
        assert "Badge" in format_reward_type("badgr")
        assert "Secret" in format_reward_type("text")

    def test_state_label(self):
        assert state_label("pending").endswith("Pending")


class TestPlayerEmbeds:
    def test_challenge_embed_shows_max_points(self, calculator):
        fields = _fields(build_challenge_embed(SUMMARY, calculator))
        assert fields["Max Points"] == "150"
        assert fields["Hints"] == "2"

    def test_empty_listing(self):
        embed = build_challenge_list_embed("Club", paginate([], 1, CHALLENGES_PER_PAGE))
        assert "No challenges" in embed.description

    def test_listing_pages(self):
        summaries = [replace(SUMMARY, id=f"c{i}", name=f"Riddle {i:02d}") for i in range(20)]
        embed = build_challenge_list_embed(
            "Club", paginate(summaries, 3, CHALLENGES_PER_PAGE), sort_label="Name (A-Z)"
        )
        assert [f.name.split()[1] for f in embed.fields] == ["18", "19"]
        assert embed.description == "Page 3 of 3 • Sorted by: Name (A-Z)"
        assert embed.footer.text == "Showing 19-20 of 20 challenges"

    def test_listing_points_to_next_page(self):
        embed = build_challenge_list_embed("Club", paginate([SUMMARY] * 10, 1, 9))
        assert len(embed.fields) == 9
        assert embed.footer.text == "Showing 1-9 of 10 challenges • /challenges page:2 for more"

    def test_listing_marks_play_status(self):
        summaries = [replace(SUMMARY, id=cid) for cid in ("done", "busy", "new")]
        embed = build_challenge_list_embed(
            "Club",
            paginate(summaries, 1, 9),
            status={"done": "completed", "busy": "started"},
        )
        markers = [f.name.split()[0] for f in embed.fields]
        assert markers == ["✅", "\U0001f536", "\U0001f537"]

    def test_listing_without_status_has_no_markers(self):
        embed = build_challenge_list_embed("Club", paginate([SUMMARY], 1, 9))
        assert embed.fields[0].name.startswith("Piano Riddle")

    def test_leaderboard_medals(self):
        entries = [
            LeaderboardEntry(rank=i, discord_id=i, username=f"u{i}", completed=1, total_points=10)
            for i in range(1, 5)
        ]
        lines = build_leaderboard_embed("Club", entries).description.splitlines()
        assert lines[0].startswith("\U0001f947")
        assert lines[3].startswith("**4.**")

    def test_leaderboard_page_footer(self):
        entries = [
            LeaderboardEntry(rank=11, discord_id=11, username="u11", completed=1, total_points=5)
        ]
        embed = build_leaderboard_embed("Club", entries, page_window(11, 2, 10))
        assert embed.description.startswith("**11.**")
        assert embed.footer.text == "Page 2 of 2 • 11 players"

    def test_completion_history(self):
        rows = [
            {"username": "ada", "challenge_id": "riddle", "points": 30,
             "completed_at": datetime(2024, 3, 1, tzinfo=UTC)},
            {"username": "bob", "challenge_id": "gone", "points": 10, "completed_at": None},
        ]
        embed = build_completion_history_embed(
            "Club", rows, page_window(12, 2, 2), {"riddle": "Piano Riddle"}
        )
        assert embed.description.splitlines() == [
            "**ada** - Piano Riddle: ✅ Completed (on 2024-03-01)",
            "**bob** - gone: ✅ Completed",
        ]
        assert embed.footer.text == "Showing 3-4 of 12 completions"

    def test_empty_history(self):
        embed = build_completion_history_embed("Club", [], page_window(0, 1, 10))
        assert "No challenges have been completed" in embed.description

    def test_progress_lists_rewards(self):
        detail = UserDetail(totals=UserTotals(completed=1), rows=[], last_active=None)
        rewards = [SimpleNamespace(reward_type="badge", challenge_id="riddle")]
        fields = _fields(build_progress_embed("Ada", detail, rewards))
        assert "Badge" in fields["Rewards"]
        assert "`riddle`" in fields["Rewards"]

    def test_progress_without_rewards(self):
        detail = UserDetail(totals=UserTotals(), rows=[], last_active=None)
        assert "Rewards" not in _fields(build_progress_embed("Ada", detail))


class TestHelpEmbed:
    COMMANDS = [
        ("submit", "Submit your answer to a challenge."),
        ("maker-create", "Submit a new challenge for review."),
        ("admin-approve", "Approve a pending challenge."),
        ("challenges", "List available challenges."),
    ]

    def test_admin_commands_hidden_from_players(self):
        fields = _fields(build_help_embed("Club", self.COMMANDS))
        assert list(fields) == ["\U0001f3ae Players", "\U0001f528 Makers"]
        assert fields["\U0001f3ae Players"].splitlines() == [
            "`/challenges` - List available challenges.",
            "`/submit` - Submit your answer to a challenge.",
        ]
        assert "admin-approve" not in str(fields)

    def test_admins_see_admin_section(self):
        fields = _fields(build_help_embed("Club", self.COMMANDS, show_admin=True))
        assert "`/admin-approve` - Approve a pending challenge." in fields["\U0001f6e0️ Admin"]


class TestSubmissionEmbed:
    def _result(self, **kw):
        fields = dict(challenge=SimpleNamespace(name="Piano Riddle"), attempts=2,
                      reward=None, reward_error=None)
        fields.update(kw)
        return SimpleNamespace(**fields)

    def test_text_reward_revealed(self):
        reward = RewardOutcome(reward_type="text", message="m", text="crescendo")
        fields = _fields(build_submission_embed(self._result(reward=reward), "75 points"))
        assert "crescendo" in fields.values()

    def test_reward_error_shows_user_message(self):
        embed = build_submission_embed(self._result(reward_error=MissingEmail()), "75 points")
        assert MissingEmail.user_message in _fields(embed).values()


class TestStatusEmbed:
    def test_rejection_reason_shown(self):
        challenge = SimpleNamespace(
            id="riddle", name="Riddle", description="d", owner_id=5, difficulty=1,
            hints=[], reward_type="text", state="rejected", rejection_reason="Too easy",
            disable_reason=None, revision_note=None, approved_by=None,
        )
        assert _fields(build_challenge_status_embed(challenge))["Rejection Reason"] == "Too easy"
