"""
scorebot.config — YAML Configuration Loader
============================================

Reads ``config.yaml`` for identity, admin access, points tuning,
announcement routing and the badge service endpoint.  Secrets (bot token,
database URL, badge API token) stay in the environment / ``.env``.

Usage::

    from scorebot.config import load_config

    cfg = load_config()              # reads ./config.yaml by default
    print(cfg.points.starting_points) # 100
    print(cfg.is_admin(1234))         # False
"""

from __future__ import annotations

import os
from dataclasses import dataclass, field
from pathlib import Path

import yaml


# ---------------------------------------------------------------------------
# Typed settings objects
# ---------------------------------------------------------------------------
@dataclass(frozen=True, slots=True)
class PointsConfig:
    """Scoring constants consumed by :class:`PointsCalculator`."""

    starting_points: int = 100
    hint_base_penalty: int = 10
    hint_penalty_increase: int = 5


@dataclass(frozen=True, slots=True)
class AnnouncementConfig:
    """Where and how success / approval announcements are posted."""

    success_enabled: bool = False
    success_channel_id: int | None = None
    show_reward_details: bool = False
    ping_everyone: bool = False
    ping_role_id: int | None = None
    first_completion_message: str | None = None
    all_completed_message: str | None = None

    approvals_enabled: bool = False
    approvals_channel_id: int | None = None
    ping_makers: bool = True
    approvals_ping_role_id: int | None = None


@dataclass(frozen=True, slots=True)
class BadgeConfig:
    """Badgr-compatible credential API endpoint."""

    base_url: str = "https://api.badgr.io/v2"
    timeout_seconds: float = 15.0
    narrative_template: str = 'Completed the "{challenge}" challenge in {community}'
    token: str | None = field(default=None, repr=False)


@dataclass(frozen=True, slots=True)
class ScoreBotConfig:
    """Immutable configuration loaded from ``config.yaml``."""

    # Identity
    community_name: str

    # Discord
    guild_id: int | None = None

    # Access control
    admin_ids: frozenset[int] = frozenset()
    admin_role_id: int | None = None
    maker_role_id: int | None = None  # None → anyone may create challenges

    # Gameplay
    points: PointsConfig = PointsConfig()
    challenges_file: str = "challenges.yaml"
    confirmation_timeout_seconds: int = 60

    # Integrations
    announcements: AnnouncementConfig = AnnouncementConfig()
    badge: BadgeConfig = BadgeConfig()

    # Logging
    log_level: str = "INFO"

    def is_admin(self, user_id: int, role_ids: set[int] | None = None) -> bool:
        """True if *user_id* is listed as admin or holds the admin role."""
        if user_id in self.admin_ids:
            return True
        return bool(self.admin_role_id and role_ids and self.admin_role_id in role_ids)

    def is_maker(self, user_id: int, role_ids: set[int] | None = None) -> bool:
        """True if the user may create challenges."""
        if self.maker_role_id is None or self.is_admin(user_id, role_ids):
            return True
        return bool(role_ids and self.maker_role_id in role_ids)


# ---------------------------------------------------------------------------
# Parsing helpers
# ---------------------------------------------------------------------------
def _opt_int(value) -> int | None:
    return int(value) if value not in (None, "") else None


def _parse_points(raw: dict | None) -> PointsConfig:
    # Missing or zero values fall back to the documented defaults.
    raw = raw or {}
    defaults = PointsConfig()
    return PointsConfig(
        starting_points=int(raw.get("starting_points") or defaults.starting_points),
        hint_base_penalty=int(raw.get("hint_base_penalty") or defaults.hint_base_penalty),
        hint_penalty_increase=int(
            raw.get("hint_penalty_increase") or defaults.hint_penalty_increase
        ),
    )


def _parse_announcements(success: dict | None, approvals: dict | None) -> AnnouncementConfig:
    success = success or {}
    approvals = approvals or {}
    milestones = success.get("milestone_messages") or {}
    return AnnouncementConfig(
        success_enabled=bool(success.get("enabled", False)),
        success_channel_id=_opt_int(success.get("channel_id")),
        show_reward_details=bool(success.get("show_reward_details", False)),
        ping_everyone=bool(success.get("ping_everyone", False)),
        ping_role_id=_opt_int(success.get("ping_role_id")),
        first_completion_message=milestones.get("first_completion"),
        all_completed_message=milestones.get("all_completed"),
        approvals_enabled=bool(approvals.get("enabled", False)),
        approvals_channel_id=_opt_int(approvals.get("channel_id")),
        ping_makers=bool(approvals.get("ping_makers", True)),
        approvals_ping_role_id=_opt_int(approvals.get("ping_role_id")),
    )


def _parse_badge(raw: dict | None) -> BadgeConfig:
    raw = raw or {}
    defaults = BadgeConfig()
    return BadgeConfig(
        base_url=str(raw.get("base_url") or defaults.base_url).rstrip("/"),
        timeout_seconds=float(raw.get("timeout_seconds") or defaults.timeout_seconds),
        narrative_template=raw.get("narrative_template") or defaults.narrative_template,
        token=os.getenv("BADGR_TOKEN") or raw.get("token"),
    )


# ---------------------------------------------------------------------------
# Public API
# ---------------------------------------------------------------------------
def parse_config(raw: dict) -> ScoreBotConfig:
    """Build a :class:`ScoreBotConfig` from an already-parsed YAML mapping."""
    bot = raw.get("bot") or {}
    logging_cfg = raw.get("logging") or {}

    return ScoreBotConfig(
        community_name=raw["community_name"],
        guild_id=_opt_int(raw.get("guild_id")),
        admin_ids=frozenset(int(a) for a in bot.get("admins") or []),
        admin_role_id=_opt_int(bot.get("admin_role_id")),
        maker_role_id=_opt_int(bot.get("maker_role_id")),
        points=_parse_points(bot.get("points")),
        challenges_file=bot.get("challenges_file") or "challenges.yaml",
        confirmation_timeout_seconds=int(bot.get("confirmation_timeout_seconds") or 60),
        announcements=_parse_announcements(
            bot.get("success_announcements"), bot.get("game_announcements")
        ),
        badge=_parse_badge(raw.get("badgr")),
        log_level=str(logging_cfg.get("level") or "INFO").upper(),
    )


def load_config(path: str | Path = "config.yaml") -> ScoreBotConfig:
    """Read *path* and return a :class:`ScoreBotConfig` instance.

    Raises
    ------
    FileNotFoundError
        If the YAML file doesn't exist.
    KeyError
        If a required key is missing from the YAML file.
    """
    config_path = Path(path)
    if not config_path.exists():
        raise FileNotFoundError(
            f"Configuration file not found: {config_path.resolve()}\n"
            "Hint: copy config.yaml.example → config.yaml and edit it."
        )

    with open(config_path, encoding="utf-8") as fh:
        raw: dict = yaml.safe_load(fh) or {}

    return parse_config(raw)
