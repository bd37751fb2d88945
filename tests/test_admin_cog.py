"""
tests/test_admin_cog.py — Admin Review Command Tests
======================================================
Command callbacks are driven directly with a mocked interaction; the
service layer and owner DMs are patched out.
"""

from __future__ import annotations

import asyncio
from types import SimpleNamespace
from unittest.mock import AsyncMock, MagicMock, patch

import pytest

from scorebot.bot.cogs.admin import Admin
from scorebot.errors import InvalidStateTransition
from scorebot.services import user_service


def run_async(coro):
    return asyncio.new_event_loop().run_until_complete(coro)


def _interaction() -> MagicMock:
    inter = MagicMock()
    inter.user.id = 1000
    inter.user.display_name = "Admin"
    inter.response.is_done.return_value = False
    inter.response.send_message = AsyncMock()
    inter.followup.send = AsyncMock()
    return inter


def _result(state: str) -> SimpleNamespace:
    challenge = SimpleNamespace(id="riddle", name="Piano Riddle", owner_id=2000, state=state)
    return SimpleNamespace(challenge=challenge, previous_state="approved", state=state)


@pytest.fixture
def cog():
    return Admin(MagicMock())


# ===========================================================================
# Owner notifications
# ===========================================================================
class TestReviewNotifiesOwner:
    @pytest.mark.parametrize(
        ("command", "args", "action", "reason", "state"),
        [
            ("reject", ("riddle", "Too vague"), "reject", "Too vague", "rejected"),
            ("disable", ("riddle", "Broken"), "disable", "Broken", "disabled"),
            ("enable", ("riddle",), "enable", None, "approved"),
        ],
    )
    def test_decision_is_sent_to_owner(self, cog, command, args, action, reason, state):
        inter = _interaction()
        result = _result(state)
        with patch("scorebot.bot.cogs.admin.run_db", new=AsyncMock(return_value=result)), \
                patch("scorebot.bot.cogs.admin.notify_owner", new_callable=AsyncMock) as notify:
            run_async(getattr(Admin, command).callback(cog, inter, *args))

        inter.response.send_message.assert_awaited_once()
        notify.assert_awaited_once_with(
            cog.bot, result.challenge, action, reason, actor_name="Admin"
        )

    def test_failed_transition_sends_nothing(self, cog):
        inter = _interaction()
        failing = AsyncMock(side_effect=InvalidStateTransition("Cannot enable"))
        with patch("scorebot.bot.cogs.admin.run_db", new=failing), \
                patch("scorebot.bot.cogs.admin.notify_owner", new_callable=AsyncMock) as notify:
            with pytest.raises(InvalidStateTransition):
                run_async(Admin.enable.callback(cog, inter, "riddle"))
        notify.assert_not_awaited()


# ===========================================================================
# Player deletion
# ===========================================================================
class TestDeleteUser:
    def test_confirm_deletes_player(self, cog):
        inter = _interaction()
        member = MagicMock(id=42, display_name="Ada", mention="<@42>")
        removed = SimpleNamespace(progress=2, rewards=1, announcements=1)
        fake_db = AsyncMock(side_effect=[SimpleNamespace(id=7), removed])
        confirm = MagicMock()
        confirm.response.edit_message = AsyncMock()
        with patch("scorebot.bot.cogs.admin.run_db", new=fake_db), \
                patch("scorebot.bot.cogs.admin.confirm_view") as view, \
                patch("scorebot.bot.cogs.admin.reply", new_callable=AsyncMock):
            run_async(Admin.delete_user.callback(cog, inter, member, "spam"))
            _, actor, action, on_confirm, payload = view.call_args.args
            assert (actor, action) == (1000, "delete-user")
            assert payload == {"discord_id": 42, "reason": "spam"}
            run_async(on_confirm(confirm, SimpleNamespace(actor_id=1000, payload=payload)))

        fake_db.assert_awaited_with(
            user_service.delete_user, cog.bot.engine, 42,
            actor_id=1000, is_admin=True, reason="spam",
        )
        assert "2 progress" in confirm.response.edit_message.await_args.kwargs["content"]
