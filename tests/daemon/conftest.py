"""
Fixtures for daemon API tests.

Every test gets fresh singletons rooted at a temporary PERSONAD_HOME, and the
gateway talks to a scripted provider instead of Gemini.
"""

from collections.abc import Generator
from pathlib import Path

import pytest
from fastapi.testclient import TestClient

from persona_library.chat import ChatClient
from persona_library.chat import StreamConsumer
from personad import dependencies
from personad.main import app
from personad.services.gateway import CompletionGateway
from personad.services.gateway import GatewayFrameSource

CACHED_FACTORIES = (
    dependencies.get_settings,
    dependencies.get_document_store,
    dependencies.get_session_manager,
    dependencies.get_character_manager,
    dependencies.get_legacy_reader,
    dependencies.get_admin_directory,
    dependencies.get_audit_log,
    dependencies.get_analytics_service,
    dependencies.get_moderation_service,
    dependencies.get_model_provider,
    dependencies.get_gateway,
    dependencies.get_chat_client,
    dependencies.get_event_hub,
)


def clear_caches() -> None:
    for factory in CACHED_FACTORIES:
        factory.cache_clear()


@pytest.fixture
def provider(scripted_provider):
    """Provider replying with two fragments. Tests may replace .fragments."""
    return scripted_provider(["Callsign? ", "It's Nova-1."])


@pytest.fixture
def gateway(provider) -> CompletionGateway:
    return CompletionGateway(lambda: provider)


@pytest.fixture
def client(mock_storage_env: Path, gateway: CompletionGateway) -> Generator[TestClient, None, None]:
    """Test client with isolated storage and a scripted gateway."""
    clear_caches()
    sessions = dependencies.get_session_manager()
    chat_client = ChatClient(
        dependencies.get_character_manager(),
        sessions,
        StreamConsumer(sessions, GatewayFrameSource(gateway)),
        dependencies.get_analytics_service(),
    )
    app.dependency_overrides[dependencies.get_gateway] = lambda: gateway
    app.dependency_overrides[dependencies.get_chat_client] = lambda: chat_client

    yield TestClient(app)

    app.dependency_overrides.clear()
    clear_caches()


@pytest.fixture
def nova_payload() -> dict:
    return {
        "name": "Nova",
        "age": 29,
        "profession": "Starship Pilot",
        "tone": "casual",
        "description": "Grew up on a mining colony.",
    }


@pytest.fixture
def created_character(client: TestClient, nova_payload: dict) -> dict:
    response = client.post("/api/v1/users/user-1/characters", json=nova_payload)
    assert response.status_code == 201
    return response.json()


@pytest.fixture
def created_session(client: TestClient, created_character: dict) -> dict:
    response = client.post("/api/v1/users/user-1/sessions", json={"characterId": created_character["id"]})
    assert response.status_code == 201
    return response.json()
