"""
tests/test_bot_views.py — Shared Reply & Error Handling Tests
===============================================================
"""

from __future__ import annotations

import asyncio
from types import SimpleNamespace
from unittest.mock import AsyncMock, MagicMock

from discord import app_commands

from scorebot.bot.views import handle_command_error, reply
from scorebot.errors import NotFound


def run_async(coro):
    return asyncio.new_event_loop().run_until_complete(coro)


def _interaction(done: bool = False) -> MagicMock:
    inter = MagicMock()
    inter.response.is_done.return_value = done
    inter.response.send_message = AsyncMock()
    inter.followup.send = AsyncMock()
    inter.user.id = 42
    inter.command.name = "submit"
    return inter


class TestReply:
    def test_first_reply_is_ephemeral_response(self):
        inter = _interaction()
        run_async(reply(inter, "hi"))
        inter.response.send_message.assert_awaited_once_with("hi", ephemeral=True)
        inter.followup.send.assert_not_awaited()

    def test_followup_after_defer(self):
        inter = _interaction(done=True)
        run_async(reply(inter, "later"))
        inter.followup.send.assert_awaited_once_with("later", ephemeral=True)


class TestHandleCommandError:
    def test_domain_error_shows_user_message(self):
        inter = _interaction()
        error = SimpleNamespace(original=NotFound("internal detail", user_message="Nope."))
        run_async(handle_command_error(inter, error))
        sent = inter.response.send_message.call_args.args[0]
        assert sent == "❌ Nope."
        assert "internal detail" not in sent

    def test_check_failure(self):
        inter = _interaction()
        run_async(handle_command_error(inter, app_commands.CheckFailure()))
        assert "permission" in inter.response.send_message.call_args.args[0]

    def test_unexpected_error_is_generic(self):
        inter = _interaction()
        error = SimpleNamespace(original=RuntimeError("db exploded"))
        run_async(handle_command_error(inter, error))
        sent = inter.response.send_message.call_args.args[0]
        assert "db exploded" not in sent
