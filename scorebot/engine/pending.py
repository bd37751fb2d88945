"""
scorebot.engine.pending — Short-Lived Confirmation Tokens
===========================================================

Multi-step interactions (confirm-to-reset, confirm-to-approve, answer
modals) are modelled as a pending operation with an explicit expiry.  The
first step *issues* a token and stores nothing else; the follow-up step
*redeems* it and only then performs the mutation.  If the user never
follows up, the token simply expires — no state was touched.
"""

from __future__ import annotations

import logging
import secrets
import threading
import time
from collections.abc import Callable
from dataclasses import dataclass, field
from typing import Any

from scorebot.errors import NotFound, PermissionDenied

logger = logging.getLogger(__name__)

DEFAULT_TTL_SECONDS = 60.0


@dataclass(frozen=True, slots=True)
class PendingOperation:
    token: str
    actor_id: int
    action: str
    payload: dict[str, Any] = field(default_factory=dict)
    expires_at: float = 0.0

    def is_expired(self, now: float) -> bool:
        return now >= self.expires_at


class PendingOperations:
    """In-memory registry of pending confirmations.

    Parameters
    ----------
    clock:
        Monotonic time source; injectable for tests.
    """

    def __init__(self, clock: Callable[[], float] = time.monotonic) -> None:
        self._clock = clock
        self._lock = threading.Lock()
        self._ops: dict[str, PendingOperation] = {}

    def issue(
        self,
        actor_id: int,
        action: str,
        payload: dict[str, Any] | None = None,
        ttl: float = DEFAULT_TTL_SECONDS,
    ) -> PendingOperation:
        """Register a new pending operation and return it (with its token)."""
        op = PendingOperation(
            token=secrets.token_urlsafe(12),
            actor_id=actor_id,
            action=action,
            payload=dict(payload or {}),
            expires_at=self._clock() + ttl,
        )
        with self._lock:
            self._purge_locked()
            self._ops[op.token] = op
        return op

    def redeem(self, token: str, actor_id: int, action: str | None = None) -> PendingOperation:
        """Consume *token*.  Each token can be redeemed exactly once.

        Raises
        ------
        NotFound
            Unknown, already used, or expired token.
        PermissionDenied
            *actor_id* is not the user who started the operation, or the
            token belongs to a different *action*.
        """
        now = self._clock()
        with self._lock:
            op = self._ops.get(token)
            if op is None:
                raise NotFound(
                    "Unknown or already used confirmation token.",
                    user_message="This confirmation is no longer valid.",
                )
            if op.actor_id != actor_id or (action is not None and op.action != action):
                raise PermissionDenied(
                    "Confirmation token belongs to another user.",
                    user_message="These buttons are not for you!",
                )
            del self._ops[token]
        if op.is_expired(now):
            logger.info("Pending %s for %d expired before confirmation", op.action, op.actor_id)
            raise NotFound(
                "Confirmation token expired.",
                user_message="This confirmation has expired. Nothing was changed.",
            )
        return op

    def cancel(self, token: str) -> bool:
        with self._lock:
            return self._ops.pop(token, None) is not None

    def purge_expired(self) -> int:
        with self._lock:
            return self._purge_locked()

    def _purge_locked(self) -> int:
        now = self._clock()
        expired = [t for t, op in self._ops.items() if op.is_expired(now)]
        for token in expired:
            del self._ops[token]
        return len(expired)

    def __len__(self) -> int:
        with self._lock:
            return len(self._ops)
