"""
scorebot.bot.cogs.maker — Challenge Maker Commands
====================================================

Makers submit challenges for review and manage the ones they own:

- /maker-create  — modal form; the challenge starts as *pending*
- /maker-reward  — set the badge class id or secret reward text
- /maker-edit    — change one field (answer / difficulty / hint edits on an
                   approved challenge send it back to review)
- /maker-list    — your challenges with their status
- /maker-view    — full owner view of one challenge
- /maker-delete  — delete, after confirmation

Who counts as a maker comes from ``maker_role_id`` in config.yaml.
"""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING

import discord
from discord import app_commands
from discord.ext import commands

from scorebot.bot.views import confirm_view, handle_command_error, reply
from scorebot.constants import parse_hints
from scorebot.database.engine import run_db
from scorebot.database.models import ChallengeState
from scorebot.engine.rewards import make_reward
from scorebot.errors import PermissionDenied, ScoreBotError
from scorebot.services import challenge_service
from scorebot.services.challenge_service import ChallengeDraft, ListFilter
from scorebot.services.embeds import build_challenge_status_embed, state_label

if TYPE_CHECKING:
    from scorebot.bot.core import ScoreBot
    from scorebot.engine.pending import PendingOperation

logger = logging.getLogger(__name__)

EDIT_FIELDS = ["name", "description", "author", "answer", "difficulty", "hints"]


def is_maker():
    """Check that the user may create challenges."""
    async def predicate(interaction: discord.Interaction) -> bool:
        bot: ScoreBot = interaction.client  # type: ignore[assignment]
        return bot.is_maker(interaction.user)
    return app_commands.check(predicate)


class CreateChallengeModal(discord.ui.Modal, title="Create a Challenge"):
    name = discord.ui.TextInput(label="Name", max_length=100)
    description = discord.ui.TextInput(
        label="Description", style=discord.TextStyle.paragraph, max_length=4000
    )
    answer = discord.ui.TextInput(label="Answer", max_length=500)
    hints = discord.ui.TextInput(
        label="Hints (one per line)",
        style=discord.TextStyle.paragraph,
        required=False,
        max_length=4000,
    )
    author = discord.ui.TextInput(label="Author name", required=False, max_length=100)

    def __init__(self, bot: ScoreBot, difficulty: int, reward_type: str) -> None:
        super().__init__()
        self.bot = bot
        self.difficulty = difficulty
        self.reward_type = reward_type

    async def on_submit(self, interaction: discord.Interaction) -> None:
        draft = ChallengeDraft(
            name=self.name.value,
            description=self.description.value,
            answer=self.answer.value,
            owner_id=interaction.user.id,
            author=self.author.value or interaction.user.display_name,
            difficulty=self.difficulty,
            hints=parse_hints(self.hints.value),
            reward_type=self.reward_type,
        )
        try:
            challenge = await run_db(challenge_service.create, self.bot.engine, draft)
        except ScoreBotError as exc:
            await reply(interaction, f"❌ {exc.user_message}")
            return
        await reply(
            interaction,
            f"✅ Challenge `{challenge.id}` created and awaiting admin review.\n"
            f"Set its reward with `/maker-reward {challenge.id}` before it can be approved.",
            embed=build_challenge_status_embed(challenge),
        )


class Maker(commands.Cog, name="Maker"):
    """Create and manage your own challenges."""

    def __init__(self, bot: ScoreBot) -> None:
        self.bot = bot

    async def cog_app_command_error(
        self, interaction: discord.Interaction, error: app_commands.AppCommandError
    ) -> None:
        await handle_command_error(interaction, error)

    async def owned_autocomplete(
        self, interaction: discord.Interaction, current: str,
    ) -> list[app_commands.Choice[str]]:
        """The caller's challenges (all of them for admins)."""
        if self.bot.is_admin(interaction.user):
            rows = await run_db(challenge_service.list_challenges, self.bot.engine, ListFilter.ALL)
        else:
            rows = await run_db(
                challenge_service.list_challenges,
                self.bot.engine,
                ListFilter.OWNED,
                owner_id=interaction.user.id,
            )
        needle = current.lower()
        return [
            app_commands.Choice(name=f"{c.name} ({c.state})"[:100], value=c.id)
            for c in rows
            if needle in c.name.lower() or needle in c.id
        ][:25]

    # -------------------------------------------------------------------
    # /maker-create
    # -------------------------------------------------------------------
    @app_commands.command(name="maker-create", description="Submit a new challenge for review.")
    @app_commands.describe(difficulty="1 (easy) to 4 (expert)", reward_type="What solvers receive")
    @app_commands.choices(
        reward_type=[
            app_commands.Choice(name="Digital Badge", value="badge"),
            app_commands.Choice(name="Secret Text", value="text"),
        ],
    )
    @is_maker()
    async def create(
        self,
        interaction: discord.Interaction,
        difficulty: app_commands.Range[int, 1, 4] = 1,
        reward_type: str = "badge",
    ) -> None:
        await interaction.response.send_modal(
            CreateChallengeModal(self.bot, difficulty, reward_type)
        )

    # -------------------------------------------------------------------
    # /maker-reward
    # -------------------------------------------------------------------
    @app_commands.command(name="maker-reward", description="Set the reward for your challenge.")
    @app_commands.describe(
        challenge_id="Your challenge",
        reward_type="Badge or text",
        value="Badge class id, or the secret text revealed on completion",
        badge_description="Optional note about the badge",
    )
    @app_commands.choices(
        reward_type=[
            app_commands.Choice(name="Digital Badge", value="badge"),
            app_commands.Choice(name="Secret Text", value="text"),
        ],
    )
    @app_commands.autocomplete(challenge_id=owned_autocomplete)
    @is_maker()
    async def reward(
        self,
        interaction: discord.Interaction,
        challenge_id: str,
        reward_type: str,
        value: str,
        badge_description: str | None = None,
    ) -> None:
        reward = make_reward(
            reward_type,
            badge_class_id=value,
            badge_description=badge_description,
            reward_text=value,
        )
        result = await run_db(
            challenge_service.configure_reward,
            self.bot.engine,
            challenge_id,
            reward,
            actor_id=interaction.user.id,
            is_admin=self.bot.is_admin(interaction.user),
            index=self.bot.index,
        )
        await reply(interaction, f"✅ Reward updated for `{result.challenge.id}`.")

    # -------------------------------------------------------------------
    # /maker-edit
    # -------------------------------------------------------------------
    @app_commands.command(name="maker-edit", description="Edit one field of your challenge.")
    @app_commands.describe(
        challenge_id="Your challenge",
        field="Field to change",
        value="New value (hints: one per line or separated by |)",
    )
    @app_commands.choices(
        field=[app_commands.Choice(name=f.capitalize(), value=f) for f in EDIT_FIELDS],
    )
    @app_commands.autocomplete(challenge_id=owned_autocomplete)
    @is_maker()
    async def edit(
        self, interaction: discord.Interaction, challenge_id: str, field: str, value: str
    ) -> None:
        if field == "hints":
            new_value = parse_hints(value.replace("|", "\n"))
        elif field == "difficulty":
            new_value = int(value) if value.strip().isdigit() else value
        else:
            new_value = value

        result = await run_db(
            challenge_service.update,
            self.bot.engine,
            challenge_id,
            {field: new_value},
            actor_id=interaction.user.id,
            is_admin=self.bot.is_admin(interaction.user),
            index=self.bot.index,
        )
        msg = f"✅ `{result.challenge.id}` updated."
        if result.state_changed and result.state == ChallengeState.PENDING.value:
            msg += " It is back in the review queue until an admin approves it again."
        await reply(interaction, msg)

    # -------------------------------------------------------------------
    # /maker-list, /maker-view
    # -------------------------------------------------------------------
    @app_commands.command(name="maker-list", description="List the challenges you created.")
    @is_maker()
    async def list_owned(self, interaction: discord.Interaction) -> None:
        rows = await run_db(
            challenge_service.list_challenges,
            self.bot.engine,
            ListFilter.OWNED,
            owner_id=interaction.user.id,
        )
        if not rows:
            await reply(interaction, "You have not created any challenges yet. Try `/maker-create`.")
            return
        lines = [f"`{c.id}` — **{c.name}** — {state_label(c.state)}" for c in rows[:25]]
        embed = discord.Embed(
            title="\U0001f6e0️ Your Challenges",
            description="\n".join(lines),
            color=discord.Color.blurple(),
        )
        await reply(interaction, embed=embed)

    @app_commands.command(name="maker-view", description="View one of your challenges.")
    @app_commands.autocomplete(challenge_id=owned_autocomplete)
    @is_maker()
    async def view(self, interaction: discord.Interaction, challenge_id: str) -> None:
        challenge = await run_db(challenge_service.get, self.bot.engine, challenge_id)
        if challenge.owner_id != interaction.user.id and not self.bot.is_admin(interaction.user):
            raise PermissionDenied(
                f"User {interaction.user.id} viewed {challenge_id!r}",
                user_message="You can only manage challenges you created.",
            )
        embed = build_challenge_status_embed(challenge)
        embed.add_field(name="Answer", value=f"||{challenge.answer}||", inline=False)
        await reply(interaction, embed=embed)

    # -------------------------------------------------------------------
    # /maker-delete
    # -------------------------------------------------------------------
    @app_commands.command(name="maker-delete", description="Delete one of your challenges.")
    @app_commands.autocomplete(challenge_id=owned_autocomplete)
    @is_maker()
    async def delete(self, interaction: discord.Interaction, challenge_id: str) -> None:
        challenge = await run_db(challenge_service.get, self.bot.engine, challenge_id)

        async def on_confirm(confirm_inter: discord.Interaction, op: PendingOperation) -> None:
            await run_db(
                challenge_service.remove,
                self.bot.engine,
                op.payload["challenge_id"],
                actor_id=op.actor_id,
                is_admin=self.bot.is_admin(confirm_inter.user),
                index=self.bot.index,
            )
            await confirm_inter.response.edit_message(
                content=f"\U0001f5d1️ `{op.payload['challenge_id']}` deleted.",
                embed=None,
                view=None,
            )

        view = confirm_view(
            self.bot,
            interaction.user.id,
            "delete-challenge",
            on_confirm,
            {"challenge_id": challenge.id},
            confirm_label="Delete",
            confirm_style=discord.ButtonStyle.danger,
        )
        await reply(
            interaction,
            f'⚠️ Delete "{challenge.name}"? This cannot be undone.',
            view=view,
        )


async def setup(bot: ScoreBot) -> None:
    await bot.add_cog(Maker(bot))
