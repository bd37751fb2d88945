"""
scorebot.constants — Shared Constants & Helpers
================================================

Presentation constants, input limits and the small text helpers used by
both the services and the bot layer.
"""

from __future__ import annotations

import re
import time

# ---------------------------------------------------------------------------
# Difficulty presentation (used by embeds and listings)
# ---------------------------------------------------------------------------
DIFFICULTY_COLORS: dict[int, int] = {
    1: 0x4CAF50,  # green
    2: 0x2196F3,  # blue
    3: 0xFFC107,  # amber
    4: 0xF44336,  # red
}
DEFAULT_COLOR = 0x9E9E9E

RANK_BADGES: list[str] = ["\U0001f947", "\U0001f948", "\U0001f949"]  # 🥇🥈🥉


def difficulty_stars(difficulty: int) -> str:
    return "⭐" * max(int(difficulty or 1), 1)


# ---------------------------------------------------------------------------
# Input limits
# ---------------------------------------------------------------------------
MAX_NAME_LENGTH = 100
MAX_DESCRIPTION_LENGTH = 4000
MAX_ANSWER_LENGTH = 500
MAX_HINT_LENGTH = 1000
MAX_HINTS = 10
MAX_REASON_LENGTH = 1000
MAX_EMAIL_LENGTH = 254  # RFC 5321

LEADERBOARD_MAX = 100
COMPLETION_HISTORY_MAX = 1000

# Discord embeds hold at most 25 fields.
CHALLENGES_PER_PAGE = 9
LEADERBOARD_PAGE_SIZE = 10
EMBED_PAGE_MAX = 25


# ---------------------------------------------------------------------------
# Text helpers
# ---------------------------------------------------------------------------
_EMAIL_RE = re.compile(
    r"^[a-zA-Z0-9.!#$%&'*+/=?^_`{|}~-]+@[a-zA-Z0-9](?:[a-zA-Z0-9-]{0,61}[a-zA-Z0-9])?"
    r"(?:\.[a-zA-Z0-9](?:[a-zA-Z0-9-]{0,61}[a-zA-Z0-9])?)*$"
)
_WHITESPACE_RE = re.compile(r"\s+")
_SLUG_RE = re.compile(r"[^a-z0-9]+")
_BASE36 = "0123456789abcdefghijklmnopqrstuvwxyz"


def is_valid_email(email: str | None) -> bool:
    if not email:
        return False
    return len(email) <= MAX_EMAIL_LENGTH and bool(_EMAIL_RE.match(email))


def normalize_answer(text: str | None) -> str:
    """Lower-case and collapse runs of whitespace."""
    return _WHITESPACE_RE.sub(" ", (text or "").lower()).strip()


def answers_match(submitted: str | None, expected: str | None) -> bool:
    """Case- and whitespace-insensitive comparison; blanks never match."""
    left, right = normalize_answer(submitted), normalize_answer(expected)
    return bool(left) and bool(right) and left == right


def parse_hints(text: str | None) -> list[str]:
    """Split a newline-separated block into non-blank hint strings."""
    return [line.strip() for line in (text or "").splitlines() if line.strip()]


def _to_base36(value: int) -> str:
    digits = []
    while True:
        value, rem = divmod(value, 36)
        digits.append(_BASE36[rem])
        if value == 0:
            return "".join(reversed(digits))


def generate_challenge_id(name: str, owner_id: int, now_ms: int | None = None) -> str:
    """Slug of *name* + base36 creation instant + owner suffix.

    ``"The Riddle!"`` by ``123456789`` → ``the_riddle_lz4k9q1c_6789``.
    """
    base = _SLUG_RE.sub("_", name.lower()).strip("_")[:15].strip("_") or "challenge"
    stamp = _to_base36(now_ms if now_ms is not None else time.time_ns() // 1_000_000)
    owner = str(owner_id)[-4:]
    return f"{base}_{stamp}_{owner}"
