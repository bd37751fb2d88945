"""
scorebot.bot.core — Bot Instance & Cog Loader
===============================================

Defines :class:`ScoreBot`, a ``commands.Bot`` subclass that carries the
shared handles every cog needs:

* ``bot.cfg``        — parsed :class:`ScoreBotConfig`
* ``bot.engine``     — SQLAlchemy engine
* ``bot.index``      — :class:`ChallengeIndex` of approved challenges
* ``bot.pending``    — :class:`PendingOperations` for confirm buttons
* ``bot.calculator`` — :class:`PointsCalculator`
* ``bot.badges``     — :class:`BadgeClient`

There is no module-level state; cogs reach everything through ``self.bot``.
"""

from __future__ import annotations

import logging
import os

import discord
from discord.ext import commands
from sqlalchemy import Engine

from scorebot.config import ScoreBotConfig
from scorebot.database.engine import run_db
from scorebot.engine.index import ChallengeIndex
from scorebot.engine.pending import PendingOperations
from scorebot.engine.points import PointsCalculator
from scorebot.services.badge_client import BadgeClient

logger = logging.getLogger(__name__)

# Cog modules to load on startup.
EXTENSIONS: list[str] = [
    "scorebot.bot.cogs.player",
    "scorebot.bot.cogs.maker",
    "scorebot.bot.cogs.admin",
]


class ScoreBot(commands.Bot):
    """Custom Bot subclass that carries project-wide state.

    Parameters
    ----------
    cfg:
        The parsed :class:`ScoreBotConfig` from ``config.yaml``.
    engine:
        A SQLAlchemy :class:`Engine`.
    index:
        The approved-challenge index, already built or lazily loaded.
    """

    def __init__(
        self,
        cfg: ScoreBotConfig,
        engine: Engine,
        index: ChallengeIndex,
        badges: BadgeClient | None = None,
    ) -> None:
        # Slash commands only; no privileged intents needed.
        intents = discord.Intents.default()

        super().__init__(
            command_prefix=commands.when_mentioned,
            intents=intents,
            description=f"{cfg.community_name} challenges",
        )

        self.cfg = cfg
        self.engine = engine
        self.index = index
        self.pending = PendingOperations()
        self.calculator = PointsCalculator(cfg.points)
        self.badges = badges or BadgeClient(cfg.badge)

    def member_role_ids(self, user: discord.abc.User) -> set[int]:
        roles = getattr(user, "roles", None) or []
        return {r.id for r in roles}

    def is_admin(self, user: discord.abc.User) -> bool:
        return self.cfg.is_admin(user.id, self.member_role_ids(user))

    def is_maker(self, user: discord.abc.User) -> bool:
        return self.cfg.is_maker(user.id, self.member_role_ids(user))

    # -----------------------------------------------------------------------
    # Lifecycle hooks
    # -----------------------------------------------------------------------
    async def setup_hook(self) -> None:
        """Load cogs and warm the challenge index before connecting."""
        for ext in EXTENSIONS:
            try:
                await self.load_extension(ext)
                logger.info("Loaded extension: %s", ext)
            except Exception as exc:
                logger.error("Failed to load extension %s: %s", ext, exc)

        await run_db(self.index.rebuild)

    async def on_ready(self) -> None:
        """Fired when the bot has connected and the cache is populated."""
        assert self.user is not None
        logger.info("Logged in as %s (ID: %s)", self.user.name, self.user.id)

        dev_guild_id = os.getenv("DEV_GUILD_ID") or (
            str(self.cfg.guild_id) if self.cfg.guild_id else None
        )
        if dev_guild_id:
            guild = discord.Object(id=int(dev_guild_id))
            self.tree.copy_global_to(guild=guild)
            synced = await self.tree.sync(guild=guild)
            logger.info("Synced %d commands to guild %s", len(synced), dev_guild_id)
        else:
            synced = await self.tree.sync()
            logger.info("Synced %d commands globally", len(synced))

        if not self.badges.configured:
            logger.warning("BADGR_TOKEN is not set; badge rewards will fail.")
