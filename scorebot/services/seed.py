"""
scorebot.services.seed — Challenge Definitions Loader
=======================================================

Imports curated challenges from ``challenges.yaml`` at startup and on the
admin ``/reload`` command.  Curated challenges are owned by the system
(``owner_id = 0``) and go live immediately as *approved*.

Idempotent: a definition whose id already exists is updated in place if
the system owns it and skipped if a maker owns it.  Player progress is
never touched.

File format::

    challenges:
      - id: first_riddle
        name: First Riddle
        description: What has keys but can't open locks?
        answer: piano
        difficulty: 1
        reward_type: text
        reward_text: You found the secret!
        hints:
          - It makes music.
"""

from __future__ import annotations

import logging
import re
from dataclasses import dataclass
from datetime import UTC, datetime
from pathlib import Path
from typing import TYPE_CHECKING, Any

import yaml

from scorebot.database.engine import get_session
from scorebot.database.models import AdminActionType, Challenge, ChallengeState
from scorebot.engine.rewards import apply_reward, parse_reward_type
from scorebot.errors import ScoreBotError, ValidationError
from scorebot.services.audit import log_admin_action, row_to_dict
from scorebot.services.challenge_service import ChallengeDraft, validate_draft

if TYPE_CHECKING:
    from sqlalchemy import Engine

    from scorebot.engine.index import ChallengeIndex

logger = logging.getLogger(__name__)

SYSTEM_OWNER_ID = 0
_ID_RE = re.compile(r"^[a-z0-9_\-]{1,64}$")


@dataclass(frozen=True, slots=True)
class SeedResult:
    created: int = 0
    updated: int = 0
    skipped: int = 0
    invalid: int = 0


def load_definitions(path: str | Path) -> list[dict[str, Any]]:
    """Read the ``challenges`` list from *path*; a missing file yields []."""
    path = Path(path)
    if not path.exists():
        logger.warning("Challenge definitions file not found: %s", path)
        return []
    with open(path, encoding="utf-8") as fh:
        raw = yaml.safe_load(fh) or {}
    items = raw.get("challenges") if isinstance(raw, dict) else raw
    if not isinstance(items, list):
        raise ValidationError(f"{path}: expected a 'challenges' list.")
    return items


def _to_draft(item: dict[str, Any]) -> tuple[str, ChallengeDraft]:
    challenge_id = str(item.get("id") or "").strip().lower()
    if not _ID_RE.match(challenge_id):
        raise ValidationError(f"Invalid challenge id {item.get('id')!r}.")
    draft = ChallengeDraft(
        name=item.get("name"),
        description=item.get("description"),
        answer=str(item.get("answer") or ""),
        owner_id=SYSTEM_OWNER_ID,
        author=item.get("author") or "Anonymous",
        difficulty=item.get("difficulty", 1),
        hints=item.get("hints") or [],
        reward_type=item.get("reward_type") or "badge",
        badge_class_id=item.get("badge_class_id"),
        badge_description=item.get("badge_description"),
        reward_text=item.get("reward_text"),
    )
    return challenge_id, draft


def import_definitions(
    engine: Engine,
    items: list[dict[str, Any]],
    *,
    index: ChallengeIndex | None = None,
) -> SeedResult:
    """Upsert curated challenges.  Invalid entries are logged and skipped."""
    created = updated = skipped = invalid = 0
    now = datetime.now(UTC)

    with get_session(engine) as session:
        for item in items:
            try:
                challenge_id, draft = _to_draft(item)
                fields, reward = validate_draft(draft)
                if reward is None:
                    raise ValidationError("A curated challenge needs a reward payload.")
            except ScoreBotError as exc:
                logger.error("Skipping challenge definition %r: %s", item.get("id"), exc)
                invalid += 1
                continue

            existing = session.get(Challenge, challenge_id, with_for_update=True)
            if existing is not None and existing.owner_id != SYSTEM_OWNER_ID:
                logger.warning("Challenge id %s belongs to a maker; not overwriting", challenge_id)
                skipped += 1
                continue

            if existing is None:
                challenge = Challenge(
                    id=challenge_id,
                    owner_id=SYSTEM_OWNER_ID,
                    reward_type=parse_reward_type(draft.reward_type).value,
                    state=ChallengeState.APPROVED.value,
                    approved_by=SYSTEM_OWNER_ID,
                    approved_at=now,
                    **fields,
                )
                apply_reward(challenge, reward)
                session.add(challenge)
                session.flush()
                before, action = None, AdminActionType.CREATE
                created += 1
            else:
                challenge = existing
                before = row_to_dict(challenge, exclude=("answer",))
                for key, value in fields.items():
                    setattr(challenge, key, value)
                apply_reward(challenge, reward)
                if not session.is_modified(challenge):
                    skipped += 1
                    continue
                session.flush()
                action = AdminActionType.UPDATE
                updated += 1

            log_admin_action(
                session,
                actor_id=SYSTEM_OWNER_ID,
                action_type=action,
                target_table="challenges",
                target_id=challenge_id,
                before=before,
                after=row_to_dict(challenge, exclude=("answer",)),
                reason="challenges.yaml import",
            )

    if index is not None and (created or updated):
        index.rebuild()
    logger.info(
        "Challenge import: %d created, %d updated, %d skipped, %d invalid",
        created, updated, skipped, invalid,
    )
    return SeedResult(created=created, updated=updated, skipped=skipped, invalid=invalid)


def reload_from_file(
    engine: Engine, path: str | Path, *, index: ChallengeIndex | None = None
) -> SeedResult:
    return import_definitions(engine, load_definitions(path), index=index)
