"""
scorebot.bot.views — Shared Buttons, Modals & Error Replies
=============================================================

Confirmation flows issue a pending-operation token when the buttons are
shown and redeem it when *Confirm* is pressed.  Nothing is written before
that; a timeout or *Cancel* just drops the token.
"""

from __future__ import annotations

import logging
from collections.abc import Awaitable, Callable
from typing import TYPE_CHECKING

import discord
from discord import app_commands

from scorebot.errors import ScoreBotError

if TYPE_CHECKING:
    from scorebot.bot.core import ScoreBot
    from scorebot.engine.pending import PendingOperation

logger = logging.getLogger(__name__)

ConfirmCallback = Callable[[discord.Interaction, "PendingOperation"], Awaitable[None]]


async def reply(interaction: discord.Interaction, content: str | None = None, **kwargs) -> None:
    """Send an ephemeral reply, or a follow-up if already responded."""
    kwargs.setdefault("ephemeral", True)
    if interaction.response.is_done():
        await interaction.followup.send(content, **kwargs)
    else:
        await interaction.response.send_message(content, **kwargs)


async def handle_command_error(
    interaction: discord.Interaction, error: app_commands.AppCommandError
) -> None:
    """Map domain errors to their user message; log everything else."""
    original = getattr(error, "original", error)
    if isinstance(original, ScoreBotError):
        logger.info(
            "%s in /%s by %d: %s",
            type(original).__name__,
            interaction.command.name if interaction.command else "?",
            interaction.user.id,
            original,
        )
        await reply(interaction, f"❌ {original.user_message}")
        return
    if isinstance(error, app_commands.CheckFailure):
        await reply(interaction, "❌ You don't have permission to use this command.")
        return
    logger.error("Unhandled command error", exc_info=original)
    await reply(interaction, "❌ An error occurred. Please try again later.")


class ConfirmView(discord.ui.View):
    """Confirm / Cancel buttons bound to one pending operation."""

    def __init__(
        self,
        bot: ScoreBot,
        op: PendingOperation,
        on_confirm: ConfirmCallback,
        *,
        confirm_label: str = "Confirm",
        confirm_style: discord.ButtonStyle = discord.ButtonStyle.success,
        timeout: float | None = None,
    ) -> None:
        super().__init__(timeout=timeout or bot.cfg.confirmation_timeout_seconds)
        self.bot = bot
        self.op = op
        self.on_confirm = on_confirm
        self.confirm.label = confirm_label
        self.confirm.style = confirm_style

    @discord.ui.button(label="Confirm", style=discord.ButtonStyle.success)
    async def confirm(self, interaction: discord.Interaction, button: discord.ui.Button) -> None:
        try:
            op = self.bot.pending.redeem(self.op.token, interaction.user.id, self.op.action)
        except ScoreBotError as exc:
            await reply(interaction, exc.user_message)
            return
        self.stop()
        try:
            await self.on_confirm(interaction, op)
        except ScoreBotError as exc:
            logger.info("Confirmed %s failed: %s", op.action, exc)
            await reply(interaction, f"❌ {exc.user_message}")

    @discord.ui.button(label="Cancel", style=discord.ButtonStyle.secondary)
    async def cancel(self, interaction: discord.Interaction, button: discord.ui.Button) -> None:
        if interaction.user.id != self.op.actor_id:
            await reply(interaction, "These buttons are not for you!")
            return
        self.bot.pending.cancel(self.op.token)
        self.stop()
        await interaction.response.edit_message(
            content="Cancelled. Nothing was changed.", embed=None, view=None
        )

    async def on_timeout(self) -> None:
        self.bot.pending.cancel(self.op.token)


def confirm_view(
    bot: ScoreBot,
    actor_id: int,
    action: str,
    on_confirm: ConfirmCallback,
    payload: dict | None = None,
    **kwargs,
) -> ConfirmView:
    op = bot.pending.issue(
        actor_id, action, payload, ttl=bot.cfg.confirmation_timeout_seconds
    )
    return ConfirmView(bot, op, on_confirm, **kwargs)
