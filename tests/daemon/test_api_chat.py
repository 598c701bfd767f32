"""
Integration tests for the streaming completion gateway endpoint.
"""

import pytest
from fastapi.testclient import TestClient

from personad import dependencies
from personad.main import app
from personad.services.gateway import CompletionGateway
from personad.services.provider import ProviderUnavailableError

CHARACTER_DATA = {"name": "Nova", "age": 29, "profession": "Starship Pilot", "tone": "casual", "description": ""}


def body_lines(response) -> list[str]:
    return [line for line in response.text.split("\n") if line]


@pytest.mark.integration
class TestChatEndpoint:
    def test_streams_frames_then_done(self, client: TestClient) -> None:
        response = client.post(
            "/api/chat",
            json={"userMessage": "What's your callsign?", "characterData": CHARACTER_DATA, "messages": []},
        )

        assert response.status_code == 200
        assert response.headers["content-type"].startswith("text/event-stream")
        assert response.headers["cache-control"] == "no-cache"
        assert body_lines(response) == [
            'data: {"content": "Callsign? "}',
            'data: {"content": "It\'s Nova-1."}',
            "data: [DONE]",
        ]

    def test_history_is_forwarded(self, client: TestClient, provider) -> None:
        client.post(
            "/api/chat",
            json={
                "userMessage": "again?",
                "characterData": CHARACTER_DATA,
                "messages": [{"text": "hi", "character": False}, {"text": "hey", "character": True}],
            },
        )

        _, turns, _ = provider.calls[0]
        assert [(t.role, t.text) for t in turns] == [("user", "hi"), ("model", "hey"), ("user", "again?")]

    def test_messages_default_to_empty(self, client: TestClient) -> None:
        response = client.post("/api/chat", json={"userMessage": "hi", "characterData": CHARACTER_DATA})

        assert response.status_code == 200
        assert body_lines(response)[-1] == "data: [DONE]"

    @pytest.mark.parametrize(
        "body",
        [
            {"characterData": CHARACTER_DATA},
            {"userMessage": "", "characterData": CHARACTER_DATA},
            {"userMessage": "hi"},
            {"userMessage": "hi", "characterData": "Nova"},
        ],
    )
    def test_missing_fields_rejected(self, client: TestClient, provider, body: dict) -> None:
        response = client.post("/api/chat", json=body)

        assert response.status_code == 400
        assert response.json() == {"error": "Missing required fields"}
        assert provider.calls == []

    def test_invalid_json_rejected(self, client: TestClient) -> None:
        response = client.post("/api/chat", content=b"{not json", headers={"content-type": "application/json"})

        assert response.status_code == 400
        assert response.json() == {"error": "Missing required fields"}

    def test_provider_unavailable_returns_500(self, client: TestClient) -> None:
        def no_provider():
            raise ProviderUnavailableError("Gemini API key is not configured")

        app.dependency_overrides[dependencies.get_gateway] = lambda: CompletionGateway(no_provider)

        response = client.post("/api/chat", json={"userMessage": "hi", "characterData": CHARACTER_DATA})

        assert response.status_code == 500
        assert response.json() == {"error": "Failed to process request"}

    def test_provider_failure_mid_stream(self, client: TestClient, provider) -> None:
        provider.fail_after = 1

        response = client.post("/api/chat", json={"userMessage": "hi", "characterData": CHARACTER_DATA})

        assert response.status_code == 200
        assert body_lines(response) == [
            'data: {"content": "Callsign? "}',
            'data: {"error": "Stream processing failed"}',
            "data: [DONE]",
        ]

    def test_provider_rejecting_request_returns_500(self, client: TestClient, provider) -> None:
        provider.fail_on_open = True

        response = client.post("/api/chat", json={"userMessage": "hi", "characterData": CHARACTER_DATA})

        assert response.status_code == 500
        assert response.json() == {"error": "Failed to process request"}

    @pytest.mark.parametrize(
        "history",
        [
            [{"text": None, "character": True}],
            [{"text": "hi", "character": None}],
        ],
    )
    def test_null_history_fields_accepted(self, client: TestClient, provider, history: list) -> None:
        response = client.post(
            "/api/chat",
            json={"userMessage": "again?", "characterData": CHARACTER_DATA, "messages": history},
        )

        assert response.status_code == 200
        assert body_lines(response)[-1] == "data: [DONE]"
        _, turns, _ = provider.calls[0]
        assert all(t.role == "user" for t in turns)
        assert turns[-1].text == "again?"
