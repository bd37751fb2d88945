"""
scorebot.services.embeds — Discord embed builders
===================================================

All embed construction lives here so the announcement service and
cogs only need to supply data — no layout concerns.
"""

from __future__ import annotations

from typing import TYPE_CHECKING

import discord

from scorebot.constants import (
    DEFAULT_COLOR,
    DIFFICULTY_COLORS,
    EMBED_PAGE_MAX,
    RANK_BADGES,
    difficulty_stars,
)
from scorebot.database.models import ChallengeState, RewardType

if TYPE_CHECKING:
    from scorebot.database.models import Challenge, RewardRecord
    from scorebot.engine.index import ChallengeSummary
    from scorebot.engine.paging import Page, PageWindow
    from scorebot.engine.points import PointsCalculator
    from scorebot.services.gameplay_service import HintPreview, HintResult, SubmissionResult
    from scorebot.services.progress_service import LeaderboardEntry, UserDetail

_STATE_EMOJI = {
    ChallengeState.PENDING.value: "⏳",
    ChallengeState.APPROVED.value: "✅",
    ChallengeState.REJECTED.value: "❌",
    ChallengeState.DISABLED.value: "\U0001f6ab",  # 🚫
}


def difficulty_color(difficulty: int | None) -> discord.Color:
    return discord.Color(DIFFICULTY_COLORS.get(difficulty or 1, DEFAULT_COLOR))


def format_reward_type(reward_type: str | None) -> str:
    if reward_type in (RewardType.BADGE.value, "badgr"):
        return "\U0001f3c5 Digital Badge"
    if reward_type == RewardType.TEXT.value:
        return "\U0001f4dd Secret Message"
    return "\U0001f381 Reward"


def state_label(state: str) -> str:
    return f"{_STATE_EMOJI.get(state, '')} {state.capitalize()}".strip()


# ---------------------------------------------------------------------------
# Announcements
# ---------------------------------------------------------------------------
def build_success_embed(
    user_id: int,
    display_name: str,
    avatar_url: str | None,
    challenge: Challenge,
    points_text: str,
    *,
    show_reward_details: bool = False,
) -> discord.Embed:
    """Public "challenge completed" celebration."""
    embed = discord.Embed(
        title="\U0001f389 Challenge Completed!",
        description=f'<@{user_id}> has completed the "{challenge.name}" challenge!',
        color=difficulty_color(challenge.difficulty),
        timestamp=discord.utils.utcnow(),
    )
    embed.add_field(name="Challenge", value=challenge.name, inline=True)
    embed.add_field(name="Author", value=challenge.author or "Anonymous", inline=True)
    embed.add_field(name="Difficulty", value=difficulty_stars(challenge.difficulty), inline=True)
    embed.add_field(name="Points Earned", value=points_text, inline=True)
    if show_reward_details:
        embed.add_field(
            name="Reward Type", value=format_reward_type(challenge.reward_type), inline=True
        )
    embed.set_author(name=display_name, icon_url=avatar_url)
    embed.set_footer(text="Complete challenges to see your name here!")
    return embed


def build_approval_embed(
    challenge: Challenge,
    creator_mention: str,
    approver_name: str | None,
) -> discord.Embed:
    """Public "new challenge available" notice."""
    embed = discord.Embed(
        title="\U0001f3ae New Challenge Available!",
        description=f'"{challenge.name}" by {creator_mention} is now available to play!',
        color=difficulty_color(challenge.difficulty),
        timestamp=discord.utils.utcnow(),
    )
    embed.add_field(name="Challenge Name", value=challenge.name, inline=True)
    embed.add_field(name="Author", value=challenge.author or "Anonymous", inline=True)
    embed.add_field(name="Difficulty", value=difficulty_stars(challenge.difficulty), inline=True)
    embed.add_field(
        name="Description",
        value=(challenge.description or "No description provided")[:1024],
        inline=False,
    )
    embed.add_field(
        name="Reward Type", value=format_reward_type(challenge.reward_type), inline=True
    )
    if approver_name:
        embed.add_field(name="Approved By", value=approver_name, inline=True)
    embed.add_field(
        name="How to Play",
        value=(
            f"Use `/submit {challenge.id}` to answer or "
            f"`/hint {challenge.id}` if you need help!"
        ),
        inline=False,
    )
    embed.set_footer(text="New challenges are regularly added!")
    return embed


# transition → (title, description template, colour)
_OWNER_NOTICES: dict[str, tuple[str, str, discord.Color]] = {
    "approve": (
        "\U0001f389 Your Challenge Has Been Approved!",
        'Your challenge "{name}" has been approved and is now available to all players!',
        discord.Color.green(),
    ),
    "reject": (
        "Your Challenge Needs Revisions",
        'Your challenge "{name}" requires revisions before it can be approved.',
        discord.Color.orange(),
    ),
    "disable": (
        "⚠️ Your Challenge Has Been Temporarily Disabled",
        'Your challenge "{name}" has been temporarily disabled.',
        discord.Color.orange(),
    ),
    "enable": (
        "✅ Your Challenge Is Playable Again",
        'Your challenge "{name}" has been re-enabled and is available to players.',
        discord.Color.green(),
    ),
}


def build_owner_notice_embed(
    challenge: Challenge,
    transition: str,
    reason: str | None = None,
    actor_name: str | None = None,
) -> discord.Embed:
    """Direct message telling a maker what happened to their challenge."""
    title, template, color = _OWNER_NOTICES[transition]
    embed = discord.Embed(
        title=title,
        description=template.format(name=challenge.name),
        color=color,
    )
    if reason:
        label = "Feedback" if transition == "reject" else "Reason"
        embed.add_field(name=label, value=reason[:1024], inline=False)
    if transition == "reject":
        embed.add_field(
            name="Next Steps",
            value=(
                f"Revise your challenge with `/maker-edit {challenge.id}`; "
                "any edit sends it back for review."
            ),
            inline=False,
        )
    if actor_name:
        embed.set_footer(text=f"Reviewed by {actor_name}")
    return embed


# ---------------------------------------------------------------------------
# Player views
# ---------------------------------------------------------------------------
_PLAY_STATUS_EMOJI = {
    "completed": "✅",
    "started": "\U0001f536",  # 🔶
}
_NOT_STARTED_EMOJI = "\U0001f537"  # 🔷


def build_challenge_list_embed(
    community_name: str,
    page: Page[ChallengeSummary],
    *,
    sort_label: str | None = None,
    status: dict[str, str] | None = None,
) -> discord.Embed:
    """One page of the challenge browser.

    With *status* (from ``progress_service.play_status``) each entry is
    marked ✅ completed, 🔶 in progress or 🔷 not started.
    """
    embed = discord.Embed(
        title=f"\U0001f9e9 {community_name} Challenges",
        color=discord.Color.blurple(),
    )
    if not page.window.total_items:
        embed.description = "No challenges are available yet. Check back soon!"
        return embed

    header = f"Page {page.number} of {page.total_pages}"
    if sort_label:
        header += f" • Sorted by: {sort_label}"
    embed.description = header
    for c in page.items[:EMBED_PAGE_MAX]:
        marker = ""
        if status is not None:
            marker = _PLAY_STATUS_EMOJI.get(status.get(c.id, ""), _NOT_STARTED_EMOJI) + " "
        embed.add_field(
            name=f"{marker}{c.name} {difficulty_stars(c.difficulty)}",
            value=(
                f"ID: `{c.id}` • by {c.author}\n"
                f"Hints: {c.hint_count} • {format_reward_type(c.reward_type)}"
            ),
            inline=False,
        )
    w = page.window
    footer = f"Showing {w.first_item}-{w.last_item} of {w.total_items} challenges"
    if page.number < page.total_pages:
        footer += f" • /challenges page:{page.number + 1} for more"
    embed.set_footer(text=footer)
    return embed


def build_challenge_embed(summary: ChallengeSummary, calculator: PointsCalculator) -> discord.Embed:
    embed = discord.Embed(
        title=summary.name,
        description=summary.description[:4000],
        color=difficulty_color(summary.difficulty),
    )
    embed.add_field(name="Author", value=summary.author, inline=True)
    embed.add_field(name="Difficulty", value=difficulty_stars(summary.difficulty), inline=True)
    embed.add_field(
        name="Max Points",
        value=str(calculator.calculate_points(0, summary.difficulty)),
        inline=True,
    )
    embed.add_field(name="Hints", value=str(summary.hint_count), inline=True)
    embed.add_field(name="Reward", value=format_reward_type(summary.reward_type), inline=True)
    embed.set_footer(text=f"ID: {summary.id}")
    return embed


def build_hint_preview_embed(preview: HintPreview) -> discord.Embed:
    embed = discord.Embed(
        title=f"\U0001f4a1 Hint for {preview.challenge_name}",
        description=f"This will be hint #{preview.next_hint_number} of {preview.total_hints}",
        color=discord.Color.orange(),
    )
    embed.add_field(
        name="Cost", value=f"This hint will cost you {preview.cost} points", inline=False
    )
    embed.add_field(
        name="Max points after this hint",
        value=f"{preview.max_points_after} points",
        inline=False,
    )
    embed.set_footer(
        text="Hints cannot be undone and permanently reduce your potential points."
    )
    return embed


def build_hint_embed(result: HintResult) -> discord.Embed:
    embed = discord.Embed(
        title=f"\U0001f4a1 Hint for {result.challenge_name}",
        description="Here is your hint:",
        color=discord.Color.gold(),
    )
    embed.add_field(name="Hint", value=result.hint[:1024], inline=False)
    embed.add_field(
        name="Hints Used", value=f"{result.hints_used} of {result.total_hints}", inline=True
    )
    embed.add_field(name="Max Points Now", value=f"{result.max_points} points", inline=True)
    return embed


def build_submission_embed(result: SubmissionResult, points_text: str) -> discord.Embed:
    """Private reply to a correct answer, including the reward."""
    embed = discord.Embed(
        title="\U0001f3c6 Challenge Completed!",
        description=(
            f'Congratulations! You have successfully completed the '
            f'"{result.challenge.name}" challenge.'
        ),
        color=discord.Color.green(),
    )
    embed.add_field(name="Points Earned", value=points_text, inline=True)
    embed.add_field(name="Attempts", value=str(result.attempts), inline=True)

    if result.reward is not None:
        if result.reward.text is not None:
            embed.add_field(name="\U0001f4dd Your Reward", value=result.reward.text[:1024], inline=False)
        else:
            embed.add_field(name="\U0001f3c5 Badge Issued", value=result.reward.message, inline=False)
    elif result.reward_error is not None:
        embed.add_field(
            name="⚠️ Reward", value=result.reward_error.user_message, inline=False
        )
    return embed


def build_progress_embed(
    display_name: str,
    detail: UserDetail,
    rewards: list[RewardRecord] | None = None,
) -> discord.Embed:
    totals = detail.totals
    embed = discord.Embed(
        title=f"\U0001f4ca Progress for {display_name}",
        color=discord.Color.blurple(),
    )
    embed.add_field(name="Completed", value=str(totals.completed), inline=True)
    embed.add_field(name="Total Points", value=str(totals.total_points), inline=True)
    embed.add_field(name="Hints Used", value=str(totals.total_hints), inline=True)
    embed.add_field(name="Attempts", value=str(totals.total_attempts), inline=True)

    lines = []
    for row in detail.rows[:15]:
        if row.completed:
            lines.append(f"✅ `{row.challenge_id}` — {row.points_earned} pts")
        else:
            lines.append(
                f"⏳ `{row.challenge_id}` — {row.attempts} attempts, "
                f"{row.hints_used} hints"
            )
    if lines:
        embed.add_field(name="Challenges", value="\n".join(lines), inline=False)
    if rewards:
        earned = [
            f"{format_reward_type(r.reward_type)} for `{r.challenge_id}`" for r in rewards[:10]
        ]
        if len(rewards) > 10:
            earned.append(f"…and {len(rewards) - 10} more")
        embed.add_field(name="Rewards", value="\n".join(earned), inline=False)
    if detail.last_active:
        embed.set_footer(text=f"Last active {detail.last_active:%Y-%m-%d %H:%M} UTC")
    return embed


def build_leaderboard_embed(
    community_name: str,
    entries: list[LeaderboardEntry],
    window: PageWindow | None = None,
) -> discord.Embed:
    embed = discord.Embed(
        title=f"\U0001f3c6 {community_name} Leaderboard",
        color=discord.Color.gold(),
    )
    if not entries:
        embed.description = "No one has scored yet. Be the first!"
        return embed
    lines = []
    for e in entries:
        badge = RANK_BADGES[e.rank - 1] if e.rank <= len(RANK_BADGES) else f"**{e.rank}.**"
        lines.append(
            f"{badge} <@{e.discord_id}> — **{e.total_points}** pts "
            f"({e.completed} completed)"
        )
    embed.description = "\n".join(lines)
    if window is not None and window.total_pages > 1:
        embed.set_footer(
            text=f"Page {window.number} of {window.total_pages} • {window.total_items} players"
        )
    return embed


def build_completion_history_embed(
    community_name: str,
    completions: list[dict],
    window: PageWindow,
    challenge_names: dict[str, str] | None = None,
) -> discord.Embed:
    """Detailed leaderboard: who completed what, newest first."""
    embed = discord.Embed(
        title="\U0001f3c6 Challenge Completion History",
        color=discord.Color.gold(),
    )
    if not completions:
        embed.description = f"No challenges have been completed on {community_name} yet."
        return embed
    names = challenge_names or {}
    lines = []
    for c in completions:
        when = c["completed_at"]
        on = f" (on {when:%Y-%m-%d})" if when else ""
        lines.append(
            f"**{c['username']}** - {names.get(c['challenge_id'], c['challenge_id'])}: "
            f"✅ Completed{on}"
        )
    embed.description = "\n".join(lines)[:4096]
    embed.set_footer(
        text=f"Showing {window.first_item}-{window.last_item} of {window.total_items} completions"
    )
    return embed


_HELP_SECTIONS = (
    ("admin-", "\U0001f6e0️ Admin"),
    ("maker-", "\U0001f528 Makers"),
    ("", "\U0001f3ae Players"),
)


def build_help_embed(
    community_name: str,
    commands: list[tuple[str, str]],
    *,
    show_admin: bool = False,
) -> discord.Embed:
    """Slash-command reference grouped as player / maker / admin.

    *commands* is ``(name, description)`` pairs; ``admin-*`` commands are
    left out unless *show_admin*.
    """
    embed = discord.Embed(
        title=f"❓ {community_name} Help",
        description="Solve challenges, earn points, and climb the leaderboard.",
        color=discord.Color.blurple(),
    )
    grouped: dict[str, list[str]] = {label: [] for _, label in _HELP_SECTIONS}
    for name, description in sorted(commands):
        for prefix, label in _HELP_SECTIONS:
            if name.startswith(prefix):
                grouped[label].append(f"`/{name}` - {description}")
                break
    for prefix, label in reversed(_HELP_SECTIONS):
        if prefix == "admin-" and not show_admin:
            continue
        if grouped[label]:
            embed.add_field(name=label, value="\n".join(grouped[label])[:1024], inline=False)
    return embed


# ---------------------------------------------------------------------------
# Maker / admin views
# ---------------------------------------------------------------------------
def build_challenge_status_embed(challenge: Challenge) -> discord.Embed:
    """Owner/admin view of a challenge, including lifecycle metadata."""
    embed = discord.Embed(
        title=f"{challenge.name} — {state_label(challenge.state)}",
        description=(challenge.description or "")[:4000],
        color=difficulty_color(challenge.difficulty),
    )
    embed.add_field(name="ID", value=f"`{challenge.id}`", inline=True)
    embed.add_field(name="Owner", value=f"<@{challenge.owner_id}>", inline=True)
    embed.add_field(name="Difficulty", value=difficulty_stars(challenge.difficulty), inline=True)
    embed.add_field(name="Hints", value=str(len(challenge.hints or [])), inline=True)
    embed.add_field(name="Reward", value=format_reward_type(challenge.reward_type), inline=True)

    if challenge.state == ChallengeState.REJECTED.value and challenge.rejection_reason:
        embed.add_field(name="Rejection Reason", value=challenge.rejection_reason, inline=False)
    if challenge.state == ChallengeState.DISABLED.value and challenge.disable_reason:
        embed.add_field(name="Disabled Because", value=challenge.disable_reason, inline=False)
    if challenge.state == ChallengeState.PENDING.value and challenge.revision_note:
        embed.add_field(name="Awaiting Re-review", value=challenge.revision_note, inline=False)
    if challenge.approved_by:
        embed.add_field(name="Approved By", value=f"<@{challenge.approved_by}>", inline=True)
    return embed
