"""
scorebot.services.announcement_service — Success & Approval Announcements
===========================================================================

Posts public celebrations to the channels configured under
``success_announcements`` and ``game_announcements``.  Announcing is
best-effort: every failure is logged and swallowed so it can never undo
the completion or approval that triggered it.  Makers also get a direct
message for every review decision on their challenges.

Embed construction lives in :mod:`scorebot.services.embeds`.
"""

from __future__ import annotations

import asyncio
import logging
import random
from typing import TYPE_CHECKING

import discord
from discord.abc import Messageable

from scorebot.database.engine import run_db
from scorebot.services import progress_service
from scorebot.services.embeds import (
    build_approval_embed,
    build_owner_notice_embed,
    build_success_embed,
)

if TYPE_CHECKING:
    from scorebot.bot.core import ScoreBot
    from scorebot.config import AnnouncementConfig
    from scorebot.database.models import Challenge
    from scorebot.services.gameplay_service import SubmissionResult

logger = logging.getLogger(__name__)

SUCCESS_REACTIONS = ["\U0001f389", "\U0001f38a", "\U0001f3c6", "\U0001f44f"]
APPROVAL_REACTIONS = ["\U0001f3ae", "\U0001f3af", "\U0001f3b2", "\U0001f9e9", "\U0001f3c6"]


# ---------------------------------------------------------------------------
# Message content (pure — unit tested)
# ---------------------------------------------------------------------------
def success_content(
    cfg: AnnouncementConfig,
    mention: str,
    *,
    first_completion: bool,
    all_completed: bool,
) -> str:
    parts = []
    if cfg.ping_everyone:
        parts.append("@everyone")
    elif cfg.ping_role_id:
        parts.append(f"<@&{cfg.ping_role_id}>")

    if first_completion and cfg.first_completion_message:
        parts.append(cfg.first_completion_message.replace("{{user}}", mention))
    elif all_completed and cfg.all_completed_message:
        parts.append(cfg.all_completed_message.replace("{{user}}", mention))
    return " ".join(parts)


def approval_content(cfg: AnnouncementConfig, creator_mention: str) -> str:
    prefix = ""
    if cfg.ping_makers:
        prefix = f"{creator_mention} "
    elif cfg.approvals_ping_role_id:
        prefix = f"<@&{cfg.approvals_ping_role_id}> "
    return prefix + "A new challenge has been approved and is now available to play!"


# ---------------------------------------------------------------------------
# Channel resolution & sending
# ---------------------------------------------------------------------------
def _resolve_channel(bot: ScoreBot, channel_id: int | None) -> Messageable | None:
    if not channel_id:
        return None
    ch = bot.get_channel(channel_id)
    if ch and isinstance(ch, Messageable):
        return ch
    logger.error("Announcement channel %d not found or not messageable", channel_id)
    return None


async def _add_reactions(message: discord.Message, emojis: list[str]) -> None:
    try:
        for emoji in random.sample(emojis, k=min(2, len(emojis))):
            await message.add_reaction(emoji)
            await asyncio.sleep(0.5)
    except discord.HTTPException as exc:
        logger.warning("Failed to add reaction: %s", exc)


# ---------------------------------------------------------------------------
# Public API — called by cogs
# ---------------------------------------------------------------------------
async def announce_success(
    bot: ScoreBot,
    *,
    member: discord.abc.User,
    result: SubmissionResult,
) -> discord.Message | None:
    """Celebrate a completion and record the post in success_announcements."""
    cfg = bot.cfg.announcements
    if not cfg.success_enabled or not cfg.success_channel_id:
        logger.debug("Success announcements disabled; skipping.")
        return None

    channel = _resolve_channel(bot, cfg.success_channel_id)
    if channel is None:
        return None

    try:
        content = success_content(
            cfg,
            member.mention,
            first_completion=result.first_completion,
            all_completed=result.all_completed,
        )
        embed = build_success_embed(
            member.id,
            member.display_name,
            member.display_avatar.url,
            result.challenge,
            bot.calculator.format_points(result.points or 0, result.challenge.difficulty),
            show_reward_details=cfg.show_reward_details,
        )
        message = await channel.send(content=content or None, embed=embed)
        await _add_reactions(message, SUCCESS_REACTIONS)
        await run_db(
            progress_service.record_success_announcement,
            bot.engine,
            result.user.id,
            result.challenge.id,
            result.points or 0,
            cfg.success_channel_id,
            message.id,
        )
    except Exception:
        logger.exception("Failed to send success announcement for %s", result.challenge.id)
        return None

    logger.info(
        "Success announcement sent for %s completing %r",
        member.display_name, result.challenge.name,
    )
    return message


async def announce_approval(
    bot: ScoreBot,
    *,
    challenge: Challenge,
    approver_name: str | None = None,
) -> discord.Message | None:
    """Tell the community a challenge is now playable."""
    cfg = bot.cfg.announcements
    if not cfg.approvals_enabled or not cfg.approvals_channel_id:
        logger.debug("Approval announcements disabled; skipping.")
        return None

    channel = _resolve_channel(bot, cfg.approvals_channel_id)
    if channel is None:
        return None

    creator_mention = f"<@{challenge.owner_id}>" if challenge.owner_id else "a creative Maker"
    try:
        message = await channel.send(
            content=approval_content(cfg, creator_mention),
            embed=build_approval_embed(challenge, creator_mention, approver_name),
        )
        await _add_reactions(message, APPROVAL_REACTIONS)
    except Exception:
        logger.exception("Failed to send approval announcement for %s", challenge.id)
        return None

    logger.info("Approval announcement sent for %r", challenge.name)
    return message


async def notify_owner(
    bot: ScoreBot,
    challenge: Challenge,
    transition: str,
    reason: str | None = None,
    *,
    actor_name: str | None = None,
) -> discord.Message | None:
    """DM the challenge's maker about an approve / reject / disable / enable.

    Makers with DMs closed simply miss the notice.
    """
    try:
        owner = bot.get_user(challenge.owner_id) or await bot.fetch_user(challenge.owner_id)
        message = await owner.send(
            embed=build_owner_notice_embed(challenge, transition, reason, actor_name)
        )
    except Exception:
        logger.warning(
            "Unable to notify owner %d of %s on %s",
            challenge.owner_id, transition, challenge.id, exc_info=True,
        )
        return None

    logger.info("Notified owner %d: %s %s", challenge.owner_id, challenge.id, transition)
    return message
