"""
Integration tests for admin API endpoints.
"""

import pytest
from fastapi.testclient import TestClient

from persona_library.models.admin import AdminRole
from persona_library.models.sessions import Message
from persona_library.sessions import LegacyMessageReader
from personad import dependencies

ADMIN = {"X-Admin-Id": "mod-1"}
SUPER = {"X-Admin-Id": "root"}


@pytest.fixture
def admins(client: TestClient) -> None:
    directory = dependencies.get_admin_directory()
    directory.set_role("mod-1", AdminRole.MODERATOR)
    directory.set_role("root", AdminRole.SUPER)


@pytest.mark.integration
class TestAdminAuthorization:
    def test_missing_header_rejected(self, client: TestClient, admins) -> None:
        assert client.get("/api/v1/admin/users").status_code == 403
        assert client.get("/api/v1/admin/users/user-1/sessions").status_code == 403

    def test_regular_user_rejected(self, client: TestClient, admins, created_character: dict) -> None:
        headers = {"X-Admin-Id": "user-1"}

        assert client.get("/api/v1/admin/audit-log", headers=headers).status_code == 403
        response = client.post(
            f"/api/v1/admin/users/user-1/characters/{created_character['id']}/flag",
            json={"reason": "x"},
            headers=headers,
        )
        assert response.status_code == 403

    def test_moderator_cannot_change_roles(self, client: TestClient, admins, created_character: dict) -> None:
        response = client.put("/api/v1/admin/users/user-1/role", json={"role": "support"}, headers=ADMIN)

        assert response.status_code == 403

    def test_super_admin_changes_roles(self, client: TestClient, admins, created_character: dict) -> None:
        response = client.put(
            "/api/v1/admin/users/user-1/role", json={"role": "support", "reason": "new hire"}, headers=SUPER
        )

        assert response.status_code == 200
        assert response.json()["role"] == "support"


@pytest.mark.integration
class TestModerationAPI:
    def test_flag_character_and_audit(self, client: TestClient, admins, created_character: dict) -> None:
        response = client.post(
            f"/api/v1/admin/users/user-1/characters/{created_character['id']}/flag",
            json={"reason": "inappropriate"},
            headers=ADMIN,
        )

        assert response.status_code == 200
        assert response.json()["isFlagged"] is True
        assert response.json()["flagReason"] == "inappropriate"

        audit = client.get("/api/v1/admin/audit-log", headers=ADMIN).json()
        assert audit[0]["action"] == "flag_character"
        assert audit[0]["targetType"] == "character"
        assert audit[0]["details"]["userId"] == "user-1"

    def test_unflag_character(self, client: TestClient, admins, created_character: dict) -> None:
        url = f"/api/v1/admin/users/user-1/characters/{created_character['id']}"
        client.post(f"{url}/flag", json={"reason": "x"}, headers=ADMIN)

        response = client.post(f"{url}/unflag", json={}, headers=ADMIN)

        assert response.json()["isFlagged"] is False
        assert response.json()["flagReason"] is None

    def test_flag_missing_character(self, client: TestClient, admins) -> None:
        response = client.post(
            "/api/v1/admin/users/user-1/characters/missing/flag", json={"reason": "x"}, headers=ADMIN
        )

        assert response.status_code == 404

    def test_delete_character_cascades(self, client: TestClient, admins, created_session: dict) -> None:
        response = client.delete(
            f"/api/v1/admin/users/user-1/characters/{created_session['characterId']}",
            params={"reason": "abuse"},
            headers=ADMIN,
        )

        assert response.status_code == 200
        assert response.json()["sessionsRemoved"] == 1
        assert client.get("/api/v1/users/user-1/sessions").json() == []

    def test_flag_and_delete_session(self, client: TestClient, admins, created_session: dict) -> None:
        url = f"/api/v1/admin/users/user-1/sessions/{created_session['id']}"

        flagged = client.post(f"{url}/flag", json={"reason": "spam"}, headers=ADMIN)
        deleted = client.delete(url, headers=ADMIN)

        assert flagged.json()["isFlagged"] is True
        assert deleted.status_code == 204
        assert client.delete(url, headers=ADMIN).status_code == 404

    def test_session_messages_for_admin(self, client: TestClient, admins, created_session: dict) -> None:
        client.post(f"/api/v1/users/user-1/sessions/{created_session['id']}/messages", json={"text": "hi"})

        response = client.get(
            f"/api/v1/admin/users/user-1/sessions/{created_session['id']}/messages", headers=ADMIN
        )

        assert [m["text"] for m in response.json()["messages"]] == ["hi", "Callsign? It's Nova-1."]

    def test_legacy_session_visible_and_read_only(self, client: TestClient, admins, created_session: dict) -> None:
        store = dependencies.get_document_store()
        store.write(
            LegacyMessageReader.collection("user-1"),
            "old-1",
            Message(id="old-1", text="from the old days", created_at="2023-01-01T00:00:00Z", uid="user-1"),
        )

        sessions = client.get("/api/v1/admin/users/user-1/sessions", headers=ADMIN).json()
        legacy_ids = [s["id"] for s in sessions if s["name"] == "Legacy Messages"]
        assert legacy_ids == ["legacy-messages-user-1"]

        messages = client.get(
            "/api/v1/admin/users/user-1/sessions/legacy-messages-user-1/messages", headers=ADMIN
        ).json()
        assert [m["text"] for m in messages["messages"]] == ["from the old days"]

        flag = client.post(
            "/api/v1/admin/users/user-1/sessions/legacy-messages-user-1/flag", json={"reason": "x"}, headers=ADMIN
        )
        assert flag.status_code == 400

    def test_block_and_unblock_user(self, client: TestClient, admins, created_session: dict) -> None:
        blocked = client.post("/api/v1/admin/users/user-1/block", json={"reason": "spam"}, headers=ADMIN)

        assert blocked.status_code == 200
        assert blocked.json()["isBlocked"] is True
        send = client.post(
            f"/api/v1/users/user-1/sessions/{created_session['id']}/messages", json={"text": "hi"}
        )
        assert send.status_code == 403

        unblocked = client.post("/api/v1/admin/users/user-1/unblock", json={}, headers=ADMIN)
        assert unblocked.json()["isBlocked"] is False

    def test_block_self_rejected(self, client: TestClient, admins) -> None:
        response = client.post("/api/v1/admin/users/mod-1/block", json={"reason": "x"}, headers=ADMIN)

        assert response.status_code == 400

    def test_block_unknown_user(self, client: TestClient, admins) -> None:
        response = client.post("/api/v1/admin/users/ghost/block", json={"reason": "x"}, headers=ADMIN)

        assert response.status_code == 404

    def test_list_users(self, client: TestClient, admins, created_character: dict) -> None:
        uids = {u["uid"] for u in client.get("/api/v1/admin/users", headers=ADMIN).json()}

        assert {"mod-1", "root", "user-1"} <= uids


@pytest.mark.integration
class TestAnalyticsAPI:
    def test_summary_counts_today(self, client: TestClient, admins, created_session: dict) -> None:
        client.post(f"/api/v1/users/user-1/sessions/{created_session['id']}/messages", json={"text": "hi"})

        summary = client.get("/api/v1/admin/analytics/summary", params={"days": 7}, headers=ADMIN).json()

        assert summary["totalCharactersCreated"] == 1
        assert summary["totalChatsStarted"] == 1
        assert summary["totalMessagesSent"] == 1
        assert len(summary["peakUsageHours"]) == 24

    def test_overview(self, client: TestClient, admins, created_session: dict) -> None:
        overview = client.get("/api/v1/admin/analytics/overview", headers=ADMIN).json()

        assert overview["totalCharacters"] == 1
        assert overview["totalSessions"] == 1
        assert overview["popularCharacters"][0]["name"] == "Nova"

    def test_daily_range_validation(self, client: TestClient, admins) -> None:
        response = client.get(
            "/api/v1/admin/analytics/daily",
            params={"start": "2024-03-05", "end": "2024-03-01"},
            headers=ADMIN,
        )

        assert response.status_code == 400

    def test_recent_events_by_type(self, client: TestClient, admins, created_character: dict) -> None:
        events = client.get(
            "/api/v1/admin/analytics/events", params={"type": "character_created"}, headers=ADMIN
        ).json()

        assert len(events) == 1
        assert events[0]["metadata"]["characterName"] == "Nova"
