"""
tests/test_api_routes.py — FastAPI Route Integration Tests
============================================================
Public read endpoints, admin auth guards, and the admin workflow
endpoints, all against the in-memory SQLite database.
"""

from __future__ import annotations

import pytest

from scorebot.services import challenge_service, progress_service
from conftest import make_admin_token, make_approved_challenge, make_challenge, make_user


@pytest.fixture
def non_admin_token():
    return make_admin_token(sub="67890", username="RegularUser", is_admin=False)


def _auth(token: str) -> dict:
    return {"Authorization": f"Bearer {token}"}


# ===========================================================================
# Health endpoint
# ===========================================================================
class TestHealthEndpoint:
    def test_health_returns_ok(self, client):
        resp = client.get("/api/health")
        assert resp.status_code == 200
        assert resp.json() == {"status": "ok"}


# ===========================================================================
# Public endpoints
# ===========================================================================
class TestPublicEndpoints:
    def test_challenges_lists_only_approved(self, client, db_engine):
        make_challenge(db_engine, name="Hidden")
        live = make_approved_challenge(db_engine, name="Live")

        resp = client.get("/api/challenges")
        assert resp.status_code == 200
        body = resp.json()
        assert [c["id"] for c in body] == [live.id]
        assert "answer" not in body[0]
        assert body[0]["hint_count"] == 2

    def test_challenge_stats(self, client, db_engine):
        c = make_approved_challenge(db_engine)
        user = make_user(db_engine)
        progress_service.complete(db_engine, user.id, c.id, 100)

        resp = client.get(f"/api/challenges/{c.id}/stats")
        assert resp.status_code == 200
        assert resp.json()["completions"] == 1

    def test_stats_hidden_for_pending(self, client, db_engine):
        c = make_challenge(db_engine)
        resp = client.get(f"/api/challenges/{c.id}/stats")
        assert resp.status_code == 404
        assert resp.json()["error"] == "NotFound"

    def test_leaderboard(self, client, db_engine):
        user = make_user(db_engine)
        progress_service.complete(db_engine, user.id, "x", 40)
        resp = client.get("/api/leaderboard")
        assert resp.status_code == 200
        assert resp.json() == [{
            "rank": 1, "discord_id": "42", "username": "player",
            "completed": 1, "total_points": 40,
        }]

    def test_leaderboard_offset(self, client, db_engine):
        for i in range(3):
            user = make_user(db_engine, 100 + i, f"user{i}", None)
            progress_service.complete(db_engine, user.id, "x", (i + 1) * 10)
        rows = client.get("/api/leaderboard?limit=1&offset=1").json()
        assert [(r["rank"], r["username"]) for r in rows] == [(2, "user1")]

    @pytest.mark.parametrize("limit", [0, 101])
    def test_leaderboard_limit_bounds(self, client, limit):
        assert client.get(f"/api/leaderboard?limit={limit}").status_code == 422

    def test_recent_completions(self, client, db_engine):
        user = make_user(db_engine)
        progress_service.complete(db_engine, user.id, "x", 40)
        rows = client.get("/api/leaderboard/recent").json()
        assert rows[0]["challenge_id"] == "x"
        assert rows[0]["completed_at"]


# ===========================================================================
# Auth guards — admin endpoints should reject unauthenticated/non-admin users
# ===========================================================================
class TestAdminAuthGuards:
    ADMIN_GET_ENDPOINTS = [
        "/api/admin/challenges",
        "/api/admin/audit",
        "/api/admin/stats",
    ]

    @pytest.mark.parametrize("endpoint", ADMIN_GET_ENDPOINTS)
    def test_no_token_returns_401(self, client, endpoint):
        assert client.get(endpoint).status_code == 401

    @pytest.mark.parametrize("endpoint", ADMIN_GET_ENDPOINTS)
    def test_invalid_token_returns_401(self, client, endpoint):
        assert client.get(endpoint, headers=_auth("garbage")).status_code == 401

    @pytest.mark.parametrize("endpoint", ADMIN_GET_ENDPOINTS)
    def test_non_admin_returns_403(self, client, endpoint, non_admin_token):
        assert client.get(endpoint, headers=_auth(non_admin_token)).status_code == 403

    def test_non_admin_cannot_approve(self, client, db_engine, non_admin_token):
        c = make_challenge(db_engine)
        resp = client.post(f"/api/admin/challenges/{c.id}/approve", headers=_auth(non_admin_token))
        assert resp.status_code == 403
        assert challenge_service.get(db_engine, c.id).state == "pending"


# ===========================================================================
# Admin workflow
# ===========================================================================
class TestAdminWorkflow:
    def test_list_by_state(self, client, db_engine, admin_token):
        pending = make_challenge(db_engine, name="Queue")
        make_approved_challenge(db_engine, name="Live")
        resp = client.get("/api/admin/challenges?state=pending", headers=_auth(admin_token))
        assert resp.status_code == 200
        body = resp.json()
        assert [c["id"] for c in body] == [pending.id]
        assert "answer" not in body[0]

    def test_approve(self, client, db_engine, admin_token):
        c = make_challenge(db_engine)
        resp = client.post(f"/api/admin/challenges/{c.id}/approve", headers=_auth(admin_token))
        assert resp.status_code == 200
        assert resp.json()["state"] == "approved"
        assert resp.json()["previous_state"] == "pending"
        assert [x["id"] for x in client.get("/api/challenges").json()] == [c.id]

    def test_reject_requires_reason(self, client, db_engine, admin_token):
        c = make_challenge(db_engine)
        resp = client.post(f"/api/admin/challenges/{c.id}/reject", headers=_auth(admin_token))
        assert resp.status_code == 422

        resp = client.post(
            f"/api/admin/challenges/{c.id}/reject",
            json={"reason": "Needs a clearer description"},
            headers=_auth(admin_token),
        )
        assert resp.status_code == 200
        assert resp.json()["challenge"]["rejection_reason"] == "Needs a clearer description"

    def test_illegal_transition_is_409(self, client, db_engine, admin_token):
        c = make_challenge(db_engine)
        resp = client.post(f"/api/admin/challenges/{c.id}/enable", headers=_auth(admin_token))
        assert resp.status_code == 409
        assert resp.json()["error"] == "InvalidStateTransition"

    def test_unknown_action_is_422(self, client, db_engine, admin_token):
        c = make_challenge(db_engine)
        resp = client.post(f"/api/admin/challenges/{c.id}/revise", headers=_auth(admin_token))
        assert resp.status_code == 422

    def test_missing_challenge_is_404(self, client, admin_token):
        resp = client.post("/api/admin/challenges/nope/approve", headers=_auth(admin_token))
        assert resp.status_code == 404

    def test_reset_progress(self, client, db_engine, admin_token):
        c = make_approved_challenge(db_engine)
        user = make_user(db_engine)
        progress_service.complete(db_engine, user.id, c.id, 100)

        resp = client.post(
            "/api/admin/progress/reset",
            json={"discord_id": 42, "challenge_id": c.id},
            headers=_auth(admin_token),
        )
        assert resp.status_code == 200
        assert resp.json()["progress"] == 1
        assert progress_service.get_progress(db_engine, user.id, c.id) is None

    def test_reset_unknown_user_is_404(self, client, admin_token):
        resp = client.post(
            "/api/admin/progress/reset", json={"discord_id": 1}, headers=_auth(admin_token)
        )
        assert resp.status_code == 404

    def test_delete_user(self, client, db_engine, admin_token):
        user = make_user(db_engine)
        progress_service.complete(db_engine, user.id, "x", 40)
        resp = client.delete("/api/admin/users/42?reason=spam", headers=_auth(admin_token))
        assert resp.status_code == 200
        assert resp.json() == {"progress": 1, "rewards": 0, "announcements": 0}
        assert client.delete("/api/admin/users/42", headers=_auth(admin_token)).status_code == 404

    def test_delete_user_needs_admin(self, client, db_engine, non_admin_token):
        make_user(db_engine)
        resp = client.delete("/api/admin/users/42", headers=_auth(non_admin_token))
        assert resp.status_code == 403

    def test_adjust_hints(self, client, db_engine, admin_token):
        make_user(db_engine)
        c = make_challenge(db_engine)
        resp = client.post(
            "/api/admin/progress/hints",
            json={"discord_id": 42, "challenge_id": c.id, "action": "add"},
            headers=_auth(admin_token),
        )
        assert resp.status_code == 200
        assert resp.json() == {"previous": 0, "hints_used": 1}

    def test_adjust_hints_unknown_challenge_is_404(self, client, db_engine, admin_token):
        make_user(db_engine)
        resp = client.post(
            "/api/admin/progress/hints",
            json={"discord_id": 42, "challenge_id": "no_such_challenge", "action": "add"},
            headers=_auth(admin_token),
        )
        assert resp.status_code == 404

    def test_adjust_hints_on_completed_is_409(self, client, db_engine, admin_token):
        user = make_user(db_engine)
        c = make_challenge(db_engine)
        progress_service.complete(db_engine, user.id, c.id, 10)
        resp = client.post(
            "/api/admin/progress/hints",
            json={"discord_id": 42, "challenge_id": c.id, "action": "reset"},
            headers=_auth(admin_token),
        )
        assert resp.status_code == 409
        assert resp.json()["error"] == "AlreadyCompleted"

    def test_audit_log_records_actor(self, client, db_engine, admin_token):
        c = make_challenge(db_engine)
        client.post(f"/api/admin/challenges/{c.id}/approve", headers=_auth(admin_token))
        resp = client.get(f"/api/admin/audit?target_id={c.id}", headers=_auth(admin_token))
        assert resp.status_code == 200
        rows = resp.json()
        assert [r["action_type"] for r in rows] == ["APPROVE", "CREATE"]
        assert rows[0]["actor_id"] == "99999"

    def test_stats(self, client, db_engine, admin_token):
        user = make_user(db_engine)
        progress_service.complete(db_engine, user.id, "x", 10)
        resp = client.get("/api/admin/stats", headers=_auth(admin_token))
        assert resp.json()[0]["challenge_id"] == "x"
