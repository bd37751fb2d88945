"""
scorebot.bot.cogs.admin — Admin Slash Commands
================================================

Discord slash commands for server admins:
- /admin-queue    — challenges awaiting review
- /admin-approve  — approve (after confirmation) and announce
- /admin-reject   — reject with a reason
- /admin-disable  — hide an approved challenge, with a reason
- /admin-enable   — restore a disabled challenge
- /admin-reset    — delete a player's progress (after confirmation)
- /admin-delete-user — remove a player and all their data (after confirmation)
- /admin-hints    — add / remove / reset a player's hint counter
- /admin-stats    — completion stats per challenge
- /admin-user     — one player's detail
- /admin-reload   — re-import challenges.yaml

Every review decision is also sent to the challenge owner by DM.
All commands require a configured admin id or the admin role.
"""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING

import discord
from discord import app_commands
from discord.ext import commands

from scorebot.bot.views import confirm_view, handle_command_error, reply
from scorebot.database.engine import run_db
from scorebot.database.models import ChallengeState
from scorebot.services import (
    challenge_service,
    progress_service,
    reward_service,
    seed,
    user_service,
)
from scorebot.services.announcement_service import announce_approval, notify_owner
from scorebot.services.challenge_service import ListFilter
from scorebot.services.embeds import build_challenge_status_embed, build_progress_embed
from scorebot.services.progress_service import HINT_ACTIONS

if TYPE_CHECKING:
    from scorebot.bot.core import ScoreBot
    from scorebot.engine.pending import PendingOperation

logger = logging.getLogger(__name__)


def is_admin():
    """Decorator that checks the admin id list or the configured admin role."""
    async def predicate(interaction: discord.Interaction) -> bool:
        bot: ScoreBot = interaction.client  # type: ignore[assignment]
        return bot.is_admin(interaction.user)
    return app_commands.check(predicate)


class Admin(commands.Cog, name="Admin"):
    """Challenge review and player administration."""

    def __init__(self, bot: ScoreBot) -> None:
        self.bot = bot

    async def cog_app_command_error(
        self, interaction: discord.Interaction, error: app_commands.AppCommandError
    ) -> None:
        await handle_command_error(interaction, error)

    async def any_challenge_autocomplete(
        self, interaction: discord.Interaction, current: str,
    ) -> list[app_commands.Choice[str]]:
        rows = await run_db(challenge_service.list_challenges, self.bot.engine, ListFilter.ALL)
        needle = current.lower()
        return [
            app_commands.Choice(name=f"{c.name} ({c.state})"[:100], value=c.id)
            for c in rows
            if needle in c.name.lower() or needle in c.id
        ][:25]

    async def _transition(
        self,
        interaction: discord.Interaction,
        action: str,
        challenge_id: str,
        reason: str | None = None,
    ) -> challenge_service.ChangeResult:
        result = await run_db(
            challenge_service.transition,
            self.bot.engine,
            challenge_id,
            action,
            actor_id=interaction.user.id,
            is_admin=True,
            reason=reason,
            index=self.bot.index,
        )
        return result

    async def _notify(
        self,
        interaction: discord.Interaction,
        result: challenge_service.ChangeResult,
        action: str,
        reason: str | None = None,
    ) -> None:
        await notify_owner(
            self.bot, result.challenge, action, reason,
            actor_name=interaction.user.display_name,
        )

    # -------------------------------------------------------------------
    # /admin-queue
    # -------------------------------------------------------------------
    @app_commands.command(name="admin-queue", description="List challenges awaiting review.")
    @is_admin()
    async def queue(self, interaction: discord.Interaction) -> None:
        rows = await run_db(
            challenge_service.list_challenges,
            self.bot.engine,
            ListFilter.ALL,
            state=ChallengeState.PENDING.value,
        )
        if not rows:
            await reply(interaction, "✅ The review queue is empty.")
            return
        lines = []
        for c in rows[:25]:
            line = f"`{c.id}` — **{c.name}** by <@{c.owner_id}>"
            if c.revision_note:
                line += f" _(re-review: {c.revision_note})_"
            lines.append(line)
        embed = discord.Embed(
            title=f"⏳ Review Queue ({len(rows)})",
            description="\n".join(lines),
            color=discord.Color.orange(),
        )
        await reply(interaction, embed=embed)

    # -------------------------------------------------------------------
    # /admin-approve
    # -------------------------------------------------------------------
    @app_commands.command(name="admin-approve", description="Approve a pending challenge.")
    @app_commands.autocomplete(challenge_id=any_challenge_autocomplete)
    @is_admin()
    async def approve(self, interaction: discord.Interaction, challenge_id: str) -> None:
        challenge = await run_db(challenge_service.get, self.bot.engine, challenge_id)

        async def on_confirm(confirm_inter: discord.Interaction, op: PendingOperation) -> None:
            result = await self._transition(confirm_inter, "approve", op.payload["challenge_id"])
            await confirm_inter.response.edit_message(
                content=f"✅ `{result.challenge.id}` approved and now playable.",
                embed=None,
                view=None,
            )
            await announce_approval(
                self.bot,
                challenge=result.challenge,
                approver_name=confirm_inter.user.display_name,
            )
            await self._notify(confirm_inter, result, "approve")

        view = confirm_view(
            self.bot, interaction.user.id, "approve", on_confirm,
            {"challenge_id": challenge.id}, confirm_label="Approve",
        )
        await reply(interaction, embed=build_challenge_status_embed(challenge), view=view)

    # -------------------------------------------------------------------
    # /admin-reject, /admin-disable, /admin-enable
    # -------------------------------------------------------------------
    @app_commands.command(name="admin-reject", description="Reject a challenge with a reason.")
    @app_commands.autocomplete(challenge_id=any_challenge_autocomplete)
    @is_admin()
    async def reject(self, interaction: discord.Interaction, challenge_id: str, reason: str) -> None:
        result = await self._transition(interaction, "reject", challenge_id, reason)
        await reply(interaction, f"❌ `{result.challenge.id}` rejected: {reason}")
        await self._notify(interaction, result, "reject", reason)

    @app_commands.command(name="admin-disable", description="Hide an approved challenge.")
    @app_commands.autocomplete(challenge_id=any_challenge_autocomplete)
    @is_admin()
    async def disable(self, interaction: discord.Interaction, challenge_id: str, reason: str) -> None:
        result = await self._transition(interaction, "disable", challenge_id, reason)
        await reply(interaction, f"\U0001f6ab `{result.challenge.id}` disabled: {reason}")
        await self._notify(interaction, result, "disable", reason)

    @app_commands.command(name="admin-enable", description="Restore a disabled challenge.")
    @app_commands.autocomplete(challenge_id=any_challenge_autocomplete)
    @is_admin()
    async def enable(self, interaction: discord.Interaction, challenge_id: str) -> None:
        result = await self._transition(interaction, "enable", challenge_id)
        await reply(interaction, f"✅ `{result.challenge.id}` is playable again.")
        await self._notify(interaction, result, "enable")

    # -------------------------------------------------------------------
    # /admin-reset
    # -------------------------------------------------------------------
    @app_commands.command(name="admin-reset", description="Reset a player's progress.")
    @app_commands.describe(
        member="The player",
        challenge_id="Only this challenge (default: all challenges)",
    )
    @app_commands.autocomplete(challenge_id=any_challenge_autocomplete)
    @is_admin()
    async def reset(
        self,
        interaction: discord.Interaction,
        member: discord.Member,
        challenge_id: str | None = None,
    ) -> None:
        user = await run_db(user_service.require_user, self.bot.engine, member.id)
        scope = f"`{challenge_id}`" if challenge_id else "**all challenges**"

        async def on_confirm(confirm_inter: discord.Interaction, op: PendingOperation) -> None:
            result = await run_db(
                progress_service.reset,
                self.bot.engine,
                op.payload["user_id"],
                op.payload["challenge_id"],
                actor_id=op.actor_id,
                is_admin=True,
            )
            await confirm_inter.response.edit_message(
                content=(
                    f"\U0001f504 Reset {member.display_name} on {scope}: "
                    f"{result.progress} progress, {result.rewards} rewards, "
                    f"{result.announcements} announcements removed."
                ),
                embed=None,
                view=None,
            )

        view = confirm_view(
            self.bot, interaction.user.id, "reset-progress", on_confirm,
            {"user_id": user.id, "challenge_id": challenge_id},
            confirm_label="Reset", confirm_style=discord.ButtonStyle.danger,
        )
        await reply(
            interaction,
            f"⚠️ Reset {member.mention}'s progress on {scope}? This cannot be undone.",
            view=view,
        )

    # -------------------------------------------------------------------
    # /admin-delete-user
    # -------------------------------------------------------------------
    @app_commands.command(name="admin-delete-user", description="Delete a player and all their data.")
    @app_commands.describe(member="The player", reason="Why the player is being removed")
    @is_admin()
    async def delete_user(
        self,
        interaction: discord.Interaction,
        member: discord.Member,
        reason: str | None = None,
    ) -> None:
        await run_db(user_service.require_user, self.bot.engine, member.id)

        async def on_confirm(confirm_inter: discord.Interaction, op: PendingOperation) -> None:
            result = await run_db(
                user_service.delete_user,
                self.bot.engine,
                op.payload["discord_id"],
                actor_id=op.actor_id,
                is_admin=True,
                reason=op.payload["reason"],
            )
            await confirm_inter.response.edit_message(
                content=(
                    f"\U0001f5d1️ Deleted {member.display_name}: "
                    f"{result.progress} progress, {result.rewards} rewards, "
                    f"{result.announcements} announcements removed."
                ),
                embed=None,
                view=None,
            )

        view = confirm_view(
            self.bot, interaction.user.id, "delete-user", on_confirm,
            {"discord_id": member.id, "reason": reason},
            confirm_label="Delete", confirm_style=discord.ButtonStyle.danger,
        )
        await reply(
            interaction,
            f"⚠️ Delete {member.mention} and all of their progress? This cannot be undone.",
            view=view,
        )

    # -------------------------------------------------------------------
    # /admin-hints
    # -------------------------------------------------------------------
    @app_commands.command(name="admin-hints", description="Adjust a player's hint counter.")
    @app_commands.choices(
        action=[app_commands.Choice(name=a.capitalize(), value=a) for a in HINT_ACTIONS],
    )
    @app_commands.autocomplete(challenge_id=any_challenge_autocomplete)
    @is_admin()
    async def hints(
        self,
        interaction: discord.Interaction,
        member: discord.Member,
        challenge_id: str,
        action: str,
    ) -> None:
        user = await run_db(user_service.require_user, self.bot.engine, member.id)
        previous, new = await run_db(
            progress_service.admin_adjust_hints,
            self.bot.engine,
            user.id,
            challenge_id,
            action,
            actor_id=interaction.user.id,
            is_admin=True,
        )
        await reply(
            interaction,
            f"✅ Hints for {member.display_name} on `{challenge_id}`: {previous} → {new}",
        )

    # -------------------------------------------------------------------
    # /admin-stats, /admin-user
    # -------------------------------------------------------------------
    @app_commands.command(name="admin-stats", description="Completion stats per challenge.")
    @is_admin()
    async def stats(self, interaction: discord.Interaction) -> None:
        rows = await run_db(progress_service.all_challenge_stats, self.bot.engine)
        if not rows:
            await reply(interaction, "No one has played yet.")
            return
        lines = []
        for s in rows[:25]:
            avg_hints = f"{s.avg_hints:.1f}" if s.avg_hints is not None else "–"
            avg_attempts = f"{s.avg_attempts:.1f}" if s.avg_attempts is not None else "–"
            lines.append(
                f"`{s.challenge_id}` — {s.completions}/{s.players} solved, "
                f"avg hints {avg_hints}, avg attempts {avg_attempts}"
            )
        embed = discord.Embed(
            title="\U0001f4c8 Challenge Stats",
            description="\n".join(lines),
            color=discord.Color.blurple(),
        )
        await reply(interaction, embed=embed)

    @app_commands.command(name="admin-user", description="Show one player's details.")
    @is_admin()
    async def user(self, interaction: discord.Interaction, member: discord.Member) -> None:
        user = await run_db(user_service.require_user, self.bot.engine, member.id)
        detail = await run_db(progress_service.user_detail, self.bot.engine, user.id)
        rewards = await run_db(reward_service.rewards_for_user, self.bot.engine, user.id)
        embed = build_progress_embed(member.display_name, detail, rewards)
        embed.add_field(name="Email", value=user.email or "(none)", inline=True)
        embed.add_field(
            name="Registered", value=f"{user.registered_at:%Y-%m-%d}", inline=True
        )
        await reply(interaction, embed=embed)

    # -------------------------------------------------------------------
    # /admin-reload
    # -------------------------------------------------------------------
    @app_commands.command(name="admin-reload", description="Re-import challenges.yaml.")
    @is_admin()
    async def reload(self, interaction: discord.Interaction) -> None:
        await interaction.response.defer(ephemeral=True, thinking=True)
        result = await run_db(
            seed.reload_from_file,
            self.bot.engine,
            self.bot.cfg.challenges_file,
            index=self.bot.index,
        )
        await reply(
            interaction,
            f"\U0001f504 Reloaded: {result.created} created, {result.updated} updated, "
            f"{result.skipped} unchanged/skipped, {result.invalid} invalid.",
        )


async def setup(bot: ScoreBot) -> None:
    await bot.add_cog(Admin(bot))
