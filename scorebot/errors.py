"""
scorebot.errors — Domain Error Taxonomy
=========================================

Every failure a service can raise derives from :class:`ScoreBotError`.
Each class carries a short, non-technical ``user_message`` that cogs and
API routes may show to end users.  The exception's own ``str()`` holds
the internal detail and only ever goes to the log.
"""

from __future__ import annotations


class ScoreBotError(Exception):
    """Base class for all domain errors."""

    user_message = "Something went wrong. Please try again later."

    def __init__(self, detail: str = "", *, user_message: str | None = None) -> None:
        super().__init__(detail or self.user_message)
        if user_message is not None:
            self.user_message = user_message


class ValidationError(ScoreBotError):
    """Malformed input, rejected before any mutation."""

    user_message = "That input is not valid."

    def __init__(self, detail: str = "", *, user_message: str | None = None) -> None:
        # Validation messages are written for users, so reuse them.
        super().__init__(detail, user_message=user_message or detail or None)


class PermissionDenied(ScoreBotError):
    user_message = "You don't have permission to do that."


class NotFound(ScoreBotError):
    user_message = "That could not be found."


class InvalidStateTransition(ScoreBotError):
    user_message = "That action is not allowed for this challenge's current status."


class AlreadyCompleted(ScoreBotError):
    user_message = "You have already completed this challenge."


class MissingEmail(ScoreBotError):
    user_message = (
        "A registered email address is required to receive a badge. "
        "Use /register to add one."
    )


class UnknownRewardType(ScoreBotError):
    user_message = "This challenge has an invalid reward configuration."


class ExternalServiceError(ScoreBotError):
    user_message = "The reward service is unavailable right now. An admin has been notified."


class StorageError(ScoreBotError):
    user_message = "A database error occurred. No changes were saved."
