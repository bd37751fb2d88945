"""
scorebot.bot.cogs.player — Player Slash Commands
==================================================

- /register    — sign up and set the email used for badges
- /challenges  — browse playable challenges, paged and sorted, with solved markers
- /challenge   — details of one challenge
- /hint        — preview the cost, confirm, receive the next hint
- /submit      — answer a challenge
- /progress    — your (or another player's) progress
- /leaderboard — top players by points, or the completion history
- /help        — command reference

Every DB call goes through ``run_db``; domain errors are turned into
their ``user_message`` by :func:`handle_command_error`.
"""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING

import discord
from discord import app_commands
from discord.ext import commands

from scorebot.bot.views import confirm_view, handle_command_error, reply
from scorebot.constants import CHALLENGES_PER_PAGE, EMBED_PAGE_MAX, LEADERBOARD_PAGE_SIZE
from scorebot.database.engine import run_db
from scorebot.engine.index import SORT_LABELS, SortOrder, sort_summaries
from scorebot.engine.paging import page_window, paginate
from scorebot.errors import NotFound
from scorebot.services import gameplay_service, progress_service, reward_service, user_service
from scorebot.services.announcement_service import announce_success
from scorebot.services.embeds import (
    build_challenge_embed,
    build_challenge_list_embed,
    build_completion_history_embed,
    build_help_embed,
    build_hint_embed,
    build_hint_preview_embed,
    build_leaderboard_embed,
    build_progress_embed,
    build_submission_embed,
)

if TYPE_CHECKING:
    from scorebot.bot.core import ScoreBot
    from scorebot.engine.pending import PendingOperation

logger = logging.getLogger(__name__)


class Player(commands.Cog, name="Player"):
    """Commands for playing challenges."""

    def __init__(self, bot: ScoreBot) -> None:
        self.bot = bot

    async def cog_app_command_error(
        self, interaction: discord.Interaction, error: app_commands.AppCommandError
    ) -> None:
        await handle_command_error(interaction, error)

    async def challenge_autocomplete(
        self, interaction: discord.Interaction, current: str,
    ) -> list[app_commands.Choice[str]]:
        """Approved challenges from the in-memory index."""
        return [
            app_commands.Choice(name=f"{c.name} ({c.id})"[:100], value=c.id)
            for c in self.bot.index.search(current, limit=25)
        ]

    # -------------------------------------------------------------------
    # /register
    # -------------------------------------------------------------------
    @app_commands.command(name="register", description="Register to play, with your email for badges.")
    @app_commands.describe(email="Email address that will receive your badges")
    async def register(self, interaction: discord.Interaction, email: str | None = None) -> None:
        result = await run_db(
            user_service.register,
            self.bot.engine,
            interaction.user.id,
            interaction.user.display_name,
            email,
        )
        if result.created:
            msg = "✅ You are registered! Use `/challenges` to see what you can play."
        elif result.email_updated:
            msg = "✅ Your email address has been updated."
        else:
            msg = "✅ You are already registered."
        if not result.user.email:
            msg += "\nℹ️ Add an email with `/register email:` to receive badge rewards."
        await reply(interaction, msg)

    # -------------------------------------------------------------------
    # /challenges, /challenge
    # -------------------------------------------------------------------
    @app_commands.command(name="challenges", description="List available challenges.")
    @app_commands.describe(page="Page number (default 1)", sort="How to order the list")
    @app_commands.choices(
        sort=[
            app_commands.Choice(name=label, value=order.value)
            for order, label in SORT_LABELS.items()
        ]
    )
    async def challenges(
        self,
        interaction: discord.Interaction,
        page: app_commands.Range[int, 1] = 1,
        sort: str = SortOrder.DIFFICULTY_ASC.value,
    ) -> None:
        order = SortOrder(sort)
        listing = paginate(
            sort_summaries(self.bot.index.all(), order), page, CHALLENGES_PER_PAGE
        )
        status = await run_db(progress_service.play_status, self.bot.engine, interaction.user.id)
        embed = build_challenge_list_embed(
            self.bot.cfg.community_name,
            listing,
            sort_label=SORT_LABELS[order],
            status=status,
        )
        await reply(interaction, embed=embed)

    @app_commands.command(name="challenge", description="Show details of a challenge.")
    @app_commands.describe(challenge_id="The challenge to show")
    @app_commands.autocomplete(challenge_id=challenge_autocomplete)
    async def challenge(self, interaction: discord.Interaction, challenge_id: str) -> None:
        summary = self.bot.index.get(challenge_id)
        if summary is None:
            raise NotFound(
                f"Challenge {challenge_id!r} not in index.",
                user_message="That challenge does not exist or is not available.",
            )
        await reply(interaction, embed=build_challenge_embed(summary, self.bot.calculator))

    # -------------------------------------------------------------------
    # /hint
    # -------------------------------------------------------------------
    @app_commands.command(name="hint", description="Request a hint for a challenge (costs points).")
    @app_commands.describe(challenge_id="The challenge you need help with")
    @app_commands.autocomplete(challenge_id=challenge_autocomplete)
    async def hint(self, interaction: discord.Interaction, challenge_id: str) -> None:
        preview = await run_db(
            gameplay_service.preview_hint,
            self.bot.engine,
            self.bot.calculator,
            interaction.user.id,
            challenge_id,
        )

        async def on_confirm(confirm_inter: discord.Interaction, op: PendingOperation) -> None:
            result = await run_db(
                gameplay_service.request_hint,
                self.bot.engine,
                self.bot.calculator,
                op.actor_id,
                op.payload["challenge_id"],
            )
            await confirm_inter.response.edit_message(
                content=None, embed=build_hint_embed(result), view=None
            )

        view = confirm_view(
            self.bot,
            interaction.user.id,
            "hint",
            on_confirm,
            {"challenge_id": challenge_id},
            confirm_label="Get Hint",
            confirm_style=discord.ButtonStyle.primary,
        )
        await reply(interaction, embed=build_hint_preview_embed(preview), view=view)

    # -------------------------------------------------------------------
    # /submit
    # -------------------------------------------------------------------
    @app_commands.command(name="submit", description="Submit your answer to a challenge.")
    @app_commands.describe(challenge_id="The challenge to answer", answer="Your answer")
    @app_commands.autocomplete(challenge_id=challenge_autocomplete)
    async def submit(self, interaction: discord.Interaction, challenge_id: str, answer: str) -> None:
        await interaction.response.defer(ephemeral=True, thinking=True)
        result = await run_db(
            gameplay_service.submit_answer,
            self.bot.engine,
            self.bot.calculator,
            self.bot.badges,
            interaction.user.id,
            challenge_id,
            answer,
            community_name=self.bot.cfg.community_name,
        )
        if not result.correct:
            await reply(
                interaction,
                f'❌ That is not the right answer for "{result.challenge.name}". '
                f"Attempts so far: {result.attempts}.",
            )
            return

        points_text = self.bot.calculator.format_points(result.points, result.challenge.difficulty)
        await reply(interaction, embed=build_submission_embed(result, points_text))
        await announce_success(self.bot, member=interaction.user, result=result)

    # -------------------------------------------------------------------
    # /progress, /leaderboard
    # -------------------------------------------------------------------
    @app_commands.command(name="progress", description="Show challenge progress.")
    @app_commands.describe(member="Whose progress to show (default: you)")
    async def progress(
        self, interaction: discord.Interaction, member: discord.Member | None = None
    ) -> None:
        target = member or interaction.user
        user = await run_db(user_service.require_user, self.bot.engine, target.id)
        detail = await run_db(progress_service.user_detail, self.bot.engine, user.id)
        rewards = await run_db(reward_service.rewards_for_user, self.bot.engine, user.id)
        await reply(interaction, embed=build_progress_embed(target.display_name, detail, rewards))

    @app_commands.command(name="leaderboard", description="Top players by points.")
    @app_commands.describe(
        page="Page number (default 1)",
        entries="Entries per page (1-25, default 10)",
        detailed="Show every completion instead of player totals",
    )
    async def leaderboard(
        self,
        interaction: discord.Interaction,
        page: app_commands.Range[int, 1] = 1,
        entries: app_commands.Range[int, 1, EMBED_PAGE_MAX] = LEADERBOARD_PAGE_SIZE,
        detailed: bool = False,
    ) -> None:
        engine = self.bot.engine
        community = self.bot.cfg.community_name
        if detailed:
            total = await run_db(progress_service.count_completions, engine)
            window = page_window(total, page, entries)
            rows = await run_db(
                progress_service.recent_completions, engine, window.per_page, window.offset
            )
            names = {}
            for row in rows:
                summary = self.bot.index.get(row["challenge_id"])
                if summary is not None:
                    names[row["challenge_id"]] = summary.name
            embed = build_completion_history_embed(community, rows, window, names)
        else:
            total = await run_db(progress_service.count_ranked_players, engine)
            window = page_window(total, page, entries)
            ranked = await run_db(progress_service.leaderboard, engine, window.per_page, window.offset)
            embed = build_leaderboard_embed(community, ranked, window)
        await interaction.response.send_message(embed=embed)

    # -------------------------------------------------------------------
    # /help
    # -------------------------------------------------------------------
    def command_reference(self) -> list[tuple[str, str]]:
        return [
            (cmd.name, cmd.description)
            for cmd in self.bot.tree.walk_commands()
            if isinstance(cmd, app_commands.Command)
        ]

    @app_commands.command(name="help", description="List the bot's commands.")
    async def help(self, interaction: discord.Interaction) -> None:
        embed = build_help_embed(
            self.bot.cfg.community_name,
            self.command_reference(),
            show_admin=self.bot.is_admin(interaction.user),
        )
        await reply(interaction, embed=embed)


async def setup(bot: ScoreBot) -> None:
    await bot.add_cog(Player(bot))
