"""
scorebot.services.badge_client — Badgr Assertion Client
=========================================================

Issues a badge assertion through a Badgr-compatible credential API.  The
client is synchronous because reward dispatch already runs on a worker
thread (``run_db``) together with the database writes it precedes.
"""

from __future__ import annotations

import logging
from typing import Any

import httpx

from scorebot.config import BadgeConfig
from scorebot.errors import ExternalServiceError

logger = logging.getLogger(__name__)


class BadgeClient:
    """Thin wrapper around ``POST /badgeclasses/{id}/assertions``.

    Parameters
    ----------
    config:
        Endpoint, timeout and bearer token.
    transport:
        Optional ``httpx`` transport; tests pass an ``httpx.MockTransport``.
    """

    def __init__(
        self,
        config: BadgeConfig,
        transport: httpx.BaseTransport | None = None,
    ) -> None:
        self._config = config
        self._transport = transport

    @property
    def configured(self) -> bool:
        return bool(self._config.token)

    def narrative(self, challenge_name: str, community: str) -> str:
        return self._config.narrative_template.format(
            challenge=challenge_name, community=community
        )

    def issue_assertion(self, class_id: str, email: str, narrative: str) -> dict[str, Any]:
        """Issue one assertion and return the API's JSON response.

        Raises
        ------
        ExternalServiceError
            On any network failure, non-2xx status, or unparseable body.
        """
        url = f"{self._config.base_url}/badgeclasses/{class_id}/assertions"
        body = {
            "recipient": {"identity": email, "type": "email", "hashed": True},
            "evidence": [{"type": "Evidence", "narrative": narrative}],
        }
        headers = {"Authorization": f"Bearer {self._config.token or ''}"}

        try:
            with httpx.Client(
                timeout=self._config.timeout_seconds, transport=self._transport
            ) as client:
                resp = client.post(url, json=body, headers=headers)
        except httpx.HTTPError as exc:
            logger.error("Badge API request failed for class %s: %s", class_id, exc)
            raise ExternalServiceError(f"Badge API unreachable: {exc}") from exc

        if resp.status_code < 200 or resp.status_code >= 300:
            logger.error(
                "Badge API returned %d for class %s: %s",
                resp.status_code, class_id, resp.text[:500],
            )
            raise ExternalServiceError(f"Badge API returned HTTP {resp.status_code}")

        try:
            return resp.json()
        except ValueError as exc:
            raise ExternalServiceError("Badge API returned a non-JSON body") from exc
