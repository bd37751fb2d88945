"""
scorebot.engine.index — Approved Challenge Index
==================================================

Read-through, in-memory snapshot of the player-visible (approved)
challenges.  Listing commands and autocomplete read from here instead of
querying the DB on every keystroke.

The index is eventually consistent: :mod:`scorebot.services.challenge_service`
calls :meth:`ChallengeIndex.rebuild` after every mutation that can change
the approved set.  Consumers receive the index as a handle (``bot.index``)
— there is no module-level instance.
"""

from __future__ import annotations

import enum
import logging
import threading
from dataclasses import dataclass
from typing import TYPE_CHECKING

from sqlalchemy import select
from sqlalchemy.orm import Session

from scorebot.database.models import Challenge, ChallengeState

if TYPE_CHECKING:
    from sqlalchemy import Engine

logger = logging.getLogger(__name__)


@dataclass(frozen=True, slots=True)
class ChallengeSummary:
    """Player-safe projection of a challenge: no answer, no owner internals."""

    id: str
    name: str
    description: str
    author: str
    difficulty: int
    reward_type: str
    hint_count: int

    @classmethod
    def from_row(cls, row: Challenge) -> ChallengeSummary:
        return cls(
            id=row.id,
            name=row.name,
            description=row.description,
            author=row.author,
            difficulty=row.difficulty,
            reward_type=row.reward_type,
            hint_count=len(row.hints or []),
        )


class SortOrder(enum.StrEnum):
    DIFFICULTY_ASC = "difficulty_asc"
    DIFFICULTY_DESC = "difficulty_desc"
    NAME_ASC = "name_asc"
    NAME_DESC = "name_desc"


SORT_LABELS: dict[SortOrder, str] = {
    SortOrder.DIFFICULTY_ASC: "Difficulty (Ascending)",
    SortOrder.DIFFICULTY_DESC: "Difficulty (Descending)",
    SortOrder.NAME_ASC: "Name (A-Z)",
    SortOrder.NAME_DESC: "Name (Z-A)",
}


def sort_summaries(
    summaries: list[ChallengeSummary], order: SortOrder | str = SortOrder.DIFFICULTY_ASC
) -> list[ChallengeSummary]:
    """Order a listing; ties on difficulty fall back to name."""
    order = SortOrder(order)
    if order in (SortOrder.NAME_ASC, SortOrder.NAME_DESC):
        return sorted(
            summaries,
            key=lambda c: (c.name.lower(), c.id),
            reverse=order is SortOrder.NAME_DESC,
        )
    ranked = sorted(summaries, key=lambda c: (c.name.lower(), c.id))
    return sorted(
        ranked, key=lambda c: c.difficulty, reverse=order is SortOrder.DIFFICULTY_DESC
    )


class ChallengeIndex:
    """Thread-safe snapshot of approved challenges.

    Usage::

        index = ChallengeIndex(engine)
        index.rebuild()

        index.get("riddle_lz4k9q1c_6789")
        index.search("rid", limit=25)   # autocomplete
    """

    def __init__(self, engine: Engine) -> None:
        self._engine = engine
        self._lock = threading.Lock()
        self._by_id: dict[str, ChallengeSummary] = {}
        self._loaded = False

    # -------------------------------------------------------------------
    # Loading (synchronous — called via run_db or from services)
    # -------------------------------------------------------------------
    def rebuild(self) -> None:
        """Reload the approved set from the database."""
        with Session(self._engine) as session:
            rows = session.scalars(
                select(Challenge)
                .where(Challenge.state == ChallengeState.APPROVED.value)
                .order_by(Challenge.difficulty, Challenge.name)
            ).all()
            snapshot = {row.id: ChallengeSummary.from_row(row) for row in rows}

        with self._lock:
            self._by_id = snapshot
            self._loaded = True
        logger.info("Challenge index rebuilt: %d approved challenges", len(snapshot))

    def _ensure_loaded(self) -> None:
        with self._lock:
            loaded = self._loaded
        if not loaded:
            self.rebuild()

    # -------------------------------------------------------------------
    # Reads
    # -------------------------------------------------------------------
    def all(self) -> list[ChallengeSummary]:
        self._ensure_loaded()
        with self._lock:
            return list(self._by_id.values())

    def get(self, challenge_id: str) -> ChallengeSummary | None:
        self._ensure_loaded()
        with self._lock:
            return self._by_id.get(challenge_id)

    def __contains__(self, challenge_id: str) -> bool:
        return self.get(challenge_id) is not None

    def __len__(self) -> int:
        self._ensure_loaded()
        with self._lock:
            return len(self._by_id)

    def search(self, query: str, limit: int = 25) -> list[ChallengeSummary]:
        """Case-insensitive substring match on id or name (autocomplete)."""
        needle = (query or "").strip().lower()
        results = [
            c for c in self.all()
            if not needle or needle in c.name.lower() or needle in c.id.lower()
        ]
        return results[:limit]
