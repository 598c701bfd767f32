"""
Tests for the SSE bridge between session listeners and stream connections.
"""

import json

import pytest
from fastapi.testclient import TestClient

from persona_library.models.sessions import ChatSession
from persona_library.sessions import SessionManager
from personad.routers.stream import _relay
from personad.streaming import EventQueueEmitter
from personad.streaming import SessionEventHub


@pytest.mark.unit
class TestEventQueueEmitter:
    def test_emit_reaches_every_subscriber(self) -> None:
        emitter = EventQueueEmitter()
        first = emitter.subscribe()
        second = emitter.subscribe()

        emitter.emit("messages", {"n": 1})

        assert first.get_nowait() == {"event": "messages", "data": {"n": 1}}
        assert second.get_nowait() == {"event": "messages", "data": {"n": 1}}

    def test_unsubscribed_queue_gets_nothing(self) -> None:
        emitter = EventQueueEmitter()
        queue = emitter.subscribe()
        emitter.unsubscribe(queue)

        emitter.emit("messages", {})

        assert queue.empty()


@pytest.mark.unit
class TestSessionEventHub:
    async def test_first_event_is_current_log(self, session_manager: SessionManager, nova_session: ChatSession) -> None:
        session_manager.append_message("user-1", nova_session.id, "hello", uid="user-1")
        hub = SessionEventHub(session_manager)

        queue = hub.subscribe_messages("user-1", nova_session.id)

        event = queue.get_nowait()
        assert event["event"] == "messages"
        assert event["data"]["sessionId"] == nova_session.id
        assert [m["text"] for m in event["data"]["messages"]] == ["hello"]
        assert queue.empty()

    async def test_append_pushes_full_log(self, session_manager: SessionManager, nova_session: ChatSession) -> None:
        hub = SessionEventHub(session_manager)
        queue = hub.subscribe_messages("user-1", nova_session.id)
        queue.get_nowait()

        session_manager.append_message("user-1", nova_session.id, "one", uid="user-1")
        session_manager.append_message("user-1", nova_session.id, "two", uid="user-1")

        assert [m["text"] for m in queue.get_nowait()["data"]["messages"]] == ["one"]
        assert [m["text"] for m in queue.get_nowait()["data"]["messages"]] == ["one", "two"]

    async def test_connections_share_one_listener(
        self, session_manager: SessionManager, nova_session: ChatSession
    ) -> None:
        hub = SessionEventHub(session_manager)
        first = hub.subscribe_messages("user-1", nova_session.id)
        second = hub.subscribe_messages("user-1", nova_session.id)
        assert hub.subscriber_count("user-1", nova_session.id) == 2

        hub.unsubscribe("user-1", nova_session.id, first)
        session_manager.append_message("user-1", nova_session.id, "still here", uid="user-1")
        assert hub.subscriber_count("user-1", nova_session.id) == 1
        assert second.qsize() == 2

        hub.unsubscribe("user-1", nova_session.id, second)
        assert hub.subscriber_count("user-1", nova_session.id) == 0

    async def test_session_list_events(self, session_manager: SessionManager, nova_session: ChatSession) -> None:
        hub = SessionEventHub(session_manager)
        queue = hub.subscribe_sessions("user-1")

        event = queue.get_nowait()

        assert event["event"] == "sessions"
        assert [s["id"] for s in event["data"]["sessions"]] == [nova_session.id]


@pytest.mark.unit
class TestRelay:
    async def test_connected_then_snapshot(self, session_manager: SessionManager, nova_session: ChatSession) -> None:
        hub = SessionEventHub(session_manager)
        queue = hub.subscribe_messages("user-1", nova_session.id)
        relay = _relay(hub, "user-1", nova_session.id, queue)

        connected = await relay.__anext__()
        snapshot = await relay.__anext__()
        await relay.aclose()

        assert connected.event == "connected"
        assert json.loads(connected.data)["sessionId"] == nova_session.id
        assert snapshot.event == "messages"
        assert json.loads(snapshot.data)["messages"] == []
        assert hub.subscriber_count("user-1", nova_session.id) == 0


@pytest.mark.integration
class TestStreamAPI:
    def test_missing_session_returns_404(self, client: TestClient) -> None:
        response = client.get("/api/v1/users/user-1/sessions/missing/stream")

        assert response.status_code == 404
