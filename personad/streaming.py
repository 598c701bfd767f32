"""SSE streaming utilities for personad.

Bridges the session manager's synchronous change listeners to per-connection
asyncio queues consumed by the /stream endpoints.
"""

import asyncio
import logging
from collections.abc import Callable
from typing import Any

from persona_library.models.sessions import ChatSession
from persona_library.models.sessions import Message
from persona_library.sessions.manager import SessionManager

logger = logging.getLogger(__name__)


class EventQueueEmitter:
    """SSE emitter that queues events for async consumption.

    Allows multiple subscribers to receive the same events.
    Each subscriber gets their own queue to prevent blocking.
    """

    def __init__(self: "EventQueueEmitter") -> None:
        self.queues: list[asyncio.Queue[dict[str, Any]]] = []

    def subscribe(self: "EventQueueEmitter") -> asyncio.Queue[dict[str, Any]]:
        """Create new subscriber queue.

        Returns:
            asyncio.Queue that will receive all emitted events
        """
        queue: asyncio.Queue[dict[str, Any]] = asyncio.Queue()
        self.queues.append(queue)
        return queue

    def emit(self: "EventQueueEmitter", event_type: str, data: dict[str, Any]) -> None:
        """Emit event to all subscriber queues without waiting.

        Args:
            event_type: Event type identifier (e.g., "messages")
            data: Event payload
        """
        event = {"event": event_type, "data": data}
        for queue in list(self.queues):
            try:
                queue.put_nowait(event)
            except Exception as e:
                logger.error(f"Failed to emit event to queue: {e}")

    def unsubscribe(self: "EventQueueEmitter", queue: asyncio.Queue[dict[str, Any]]) -> None:
        """Remove subscriber queue.

        Args:
            queue: Queue to remove
        """
        if queue in self.queues:
            self.queues.remove(queue)


def messages_payload(session_id: str, messages: list[Message]) -> dict[str, Any]:
    return {
        "sessionId": session_id,
        "messages": [m.model_dump(mode="json", by_alias=True) for m in messages],
    }


def sessions_payload(sessions: list[ChatSession]) -> dict[str, Any]:
    return {"sessions": [s.model_dump(mode="json", by_alias=True) for s in sessions]}


class SessionEventHub:
    """One emitter per watched session (or session list), shared by connections.

    The store listener is registered when the first connection subscribes and
    removed when the last one leaves.
    """

    def __init__(self, sessions: SessionManager) -> None:
        self.sessions = sessions
        self._emitters: dict[tuple[str, str | None], EventQueueEmitter] = {}
        self._unsubscribers: dict[tuple[str, str | None], Callable[[], None]] = {}

    def subscribe_messages(self, user_id: str, session_id: str) -> asyncio.Queue[dict[str, Any]]:
        """Queue receiving a "messages" event with the full log after every change.

        The first event is the current log.
        """
        key = (user_id, session_id)
        emitter = self._emitters.get(key)
        if emitter is None:
            emitter = self._emitters[key] = EventQueueEmitter()
            self._unsubscribers[key] = self.sessions.subscribe(
                user_id,
                session_id,
                lambda messages: emitter.emit("messages", messages_payload(session_id, messages)),
            )
            logger.info(f"Watching session {session_id} for user {user_id}")

        queue = emitter.subscribe()
        queue.put_nowait(
            {"event": "messages", "data": messages_payload(session_id, self.sessions.get_messages(user_id, session_id))}
        )
        return queue

    def subscribe_sessions(self, user_id: str) -> asyncio.Queue[dict[str, Any]]:
        """Queue receiving a "sessions" event with the session list after every change."""
        key = (user_id, None)
        emitter = self._emitters.get(key)
        if emitter is None:
            emitter = self._emitters[key] = EventQueueEmitter()
            self._unsubscribers[key] = self.sessions.subscribe_sessions(
                user_id,
                lambda sessions: emitter.emit("sessions", sessions_payload(sessions)),
            )

        queue = emitter.subscribe()
        queue.put_nowait({"event": "sessions", "data": sessions_payload(self.sessions.list_sessions(user_id))})
        return queue

    def unsubscribe(self, user_id: str, session_id: str | None, queue: asyncio.Queue[dict[str, Any]]) -> None:
        """Drop a connection's queue; stop listening when none are left."""
        key = (user_id, session_id)
        emitter = self._emitters.get(key)
        if emitter is None:
            return

        emitter.unsubscribe(queue)
        if not emitter.queues:
            del self._emitters[key]
            self._unsubscribers.pop(key)()
            logger.info(f"Stopped watching {session_id or 'session list'} for user {user_id}")

    def subscriber_count(self, user_id: str, session_id: str | None) -> int:
        emitter = self._emitters.get((user_id, session_id))
        return len(emitter.queues) if emitter is not None else 0
