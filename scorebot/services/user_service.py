"""
scorebot.services.user_service — Player Registration
======================================================

Registration creates the ``users`` row on first contact and lets the
player attach or change the email address used for badge delivery.
Admins can delete a player outright, which also drops their progress,
rewards and announcements.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import TYPE_CHECKING

from sqlalchemy import delete, select

from scorebot.constants import MAX_NAME_LENGTH, is_valid_email
from scorebot.database.engine import get_session
from scorebot.database.models import (
    AdminActionType,
    Progress,
    RewardRecord,
    SuccessAnnouncement,
    User,
)
from scorebot.errors import NotFound, PermissionDenied, ValidationError
from scorebot.services.audit import log_admin_action, row_to_dict
from scorebot.services.progress_service import ResetResult

if TYPE_CHECKING:
    from sqlalchemy import Engine
    from sqlalchemy.orm import Session

logger = logging.getLogger(__name__)


@dataclass(frozen=True, slots=True)
class Registration:
    user: User
    created: bool
    email_updated: bool


def _find_by_discord_id(session: Session, discord_id: int) -> User | None:
    return session.scalar(select(User).where(User.discord_id == discord_id))


def _email_in_use(session: Session, email: str, discord_id: int) -> bool:
    owner = session.scalar(select(User).where(User.email == email))
    return owner is not None and owner.discord_id != discord_id


def register(
    engine: Engine,
    discord_id: int,
    username: str,
    email: str | None = None,
) -> Registration:
    """Create the user, or update their email if they already exist.

    Raises
    ------
    ValidationError
        If the username is blank, the email is malformed, or the email is
        already registered to someone else.
    """
    username = (username or "").strip()[:MAX_NAME_LENGTH]
    if not username:
        raise ValidationError("A display name is required.")
    if email is not None:
        email = email.strip()
        if not is_valid_email(email):
            raise ValidationError("Please provide a valid email address.")

    with get_session(engine) as session:
        if email and _email_in_use(session, email, discord_id):
            raise ValidationError("That email address is already registered.")

        user = _find_by_discord_id(session, discord_id)
        if user is None:
            user = User(discord_id=discord_id, username=username, email=email or None)
            session.add(user)
            session.flush()
            logger.info("Registered user %s (%d)", username, discord_id)
            return Registration(user=user, created=True, email_updated=bool(email))

        user.username = username
        email_updated = bool(email) and user.email != email
        if email_updated:
            user.email = email
            logger.info("Updated email for user %d", discord_id)
        session.flush()
        return Registration(user=user, created=False, email_updated=email_updated)


def get_by_external_id(engine: Engine, discord_id: int) -> User | None:
    with get_session(engine) as session:
        return _find_by_discord_id(session, discord_id)


def require_user(engine: Engine, discord_id: int) -> User:
    """Return the registered user or raise :class:`NotFound`."""
    user = get_by_external_id(engine, discord_id)
    if user is None:
        raise NotFound(
            f"User {discord_id} is not registered.",
            user_message="You need to register first. Use /register to get started.",
        )
    return user


def delete_user(
    engine: Engine,
    discord_id: int,
    *,
    actor_id: int,
    is_admin: bool,
    reason: str | None = None,
) -> ResetResult:
    """Remove a player and every row that belongs to them, in one transaction.

    Returns the number of dependent rows removed alongside the user.
    """
    if not is_admin:
        raise PermissionDenied(f"User {actor_id} may not delete players.")

    with get_session(engine) as session:
        user = _find_by_discord_id(session, discord_id)
        if user is None:
            raise NotFound(
                f"User {discord_id} is not registered.",
                user_message="That player is not registered.",
            )
        before = row_to_dict(user)
        removed = {
            name: session.execute(delete(model).where(model.user_id == user.id)).rowcount or 0
            for name, model in (
                ("announcements", SuccessAnnouncement),
                ("rewards", RewardRecord),
                ("progress", Progress),
            )
        }
        session.delete(user)
        log_admin_action(
            session,
            actor_id=actor_id,
            action_type=AdminActionType.DELETE,
            target_table="users",
            target_id=str(discord_id),
            before={**before, "removed": removed},
            after=None,
            reason=reason,
        )

    logger.info("User %d deleted by %d (%s)", discord_id, actor_id, removed)
    return ResetResult(**removed)
