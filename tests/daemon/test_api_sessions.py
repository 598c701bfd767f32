"""
Integration tests for sessions API endpoints.
"""

import pytest
from fastapi.testclient import TestClient

from persona_library.models.admin import AnalyticsEventType
from personad import dependencies


@pytest.mark.integration
class TestSessionsAPI:
    def test_create_session_snapshots_character(self, client: TestClient, created_character: dict) -> None:
        response = client.post("/api/v1/users/user-1/sessions", json={"characterId": created_character["id"]})

        assert response.status_code == 201
        data = response.json()
        assert data["name"] == "Chat with Nova"
        assert data["characterId"] == created_character["id"]
        assert data["characterData"]["profession"] == "Starship Pilot"
        assert data["messageCount"] == 0
        assert data["lastMessage"] == ""

    def test_create_session_for_missing_character(self, client: TestClient) -> None:
        response = client.post("/api/v1/users/user-1/sessions", json={"characterId": "missing"})

        assert response.status_code == 404

    def test_list_sessions_filters(self, client: TestClient, created_session: dict, nova_payload: dict) -> None:
        ada = client.post("/api/v1/users/user-1/characters", json={**nova_payload, "name": "Ada"}).json()
        client.post("/api/v1/users/user-1/sessions", json={"characterId": ada["id"]})

        everything = client.get("/api/v1/users/user-1/sessions").json()
        only_nova = client.get(
            "/api/v1/users/user-1/sessions", params={"characterId": created_session["characterId"]}
        ).json()
        limited = client.get("/api/v1/users/user-1/sessions", params={"limit": 1}).json()

        assert len(everything) == 2
        assert [s["id"] for s in only_nova] == [created_session["id"]]
        assert len(limited) == 1

    def test_delete_session(self, client: TestClient, created_session: dict) -> None:
        url = f"/api/v1/users/user-1/sessions/{created_session['id']}"

        assert client.delete(url).status_code == 204
        assert client.get(url).status_code == 404
        assert client.delete(url).status_code == 404

    def test_chat_context_without_characters(self, client: TestClient) -> None:
        response = client.get("/api/v1/users/user-1/chat-context")

        assert response.status_code == 200
        assert response.json() is None

    def test_chat_context_resumes_latest_session(self, client: TestClient, created_session: dict) -> None:
        client.post(
            f"/api/v1/users/user-1/sessions/{created_session['id']}/messages",
            json={"text": "Hi there, pilot!"},
        )

        data = client.get("/api/v1/users/user-1/chat-context").json()

        assert data["session"]["id"] == created_session["id"]
        assert [m["text"] for m in data["messages"]] == ["Hi there, pilot!", "Callsign? It's Nova-1."]
        assert data["characterData"]["name"] == "Nova"

    def test_chat_context_for_selected_character(self, client: TestClient, created_session: dict) -> None:
        data = client.get(
            "/api/v1/users/user-1/chat-context", params={"characterId": created_session["characterId"]}
        ).json()

        assert data["session"] is None
        assert data["character"]["id"] == created_session["characterId"]

    def test_login_tracks_signup_once(self, client: TestClient) -> None:
        first = client.post("/api/v1/users/user-1/login", json={"email": "u1@example.com"})
        client.post("/api/v1/users/user-1/login", json={})

        assert first.status_code == 200
        assert first.json()["email"] == "u1@example.com"
        assert first.json()["role"] == "user"
        signups = dependencies.get_analytics_service().recent_events(event_type=AnalyticsEventType.USER_SIGNUP)
        logins = dependencies.get_analytics_service().recent_events(event_type=AnalyticsEventType.USER_LOGIN)
        assert len(signups) == 1
        assert len(logins) == 2
