"""SSE stream endpoints for live session views.

Long-lived connections that receive the full message log (or session list)
every time it changes.
"""

import asyncio
import json
import logging
from datetime import UTC
from datetime import datetime
from typing import Annotated

from fastapi import APIRouter
from fastapi import Depends
from fastapi import HTTPException
from sse_starlette.event import ServerSentEvent
from sse_starlette.sse import EventSourceResponse

from persona_library.sessions import SessionManager

from ..dependencies import get_event_hub
from ..dependencies import get_session_manager
from ..streaming import SessionEventHub

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/v1/users/{user_id}", tags=["stream"])

KEEPALIVE_SECONDS = 30.0


async def _relay(
    hub: SessionEventHub,
    user_id: str,
    session_id: str | None,
    queue: asyncio.Queue,
):
    """Yield queued events as SSE until the client disconnects."""
    label = session_id or "session list"
    try:
        yield ServerSentEvent(
            data=json.dumps(
                {
                    "userId": user_id,
                    "sessionId": session_id,
                    "timestamp": datetime.now(UTC).isoformat(),
                }
            ),
            event="connected",
        )
        logger.info(f"SSE stream connected for {label} of user {user_id}")

        while True:
            try:
                # Wait for events with timeout (allows keepalive + cancellation)
                event = await asyncio.wait_for(queue.get(), timeout=KEEPALIVE_SECONDS)
                yield ServerSentEvent(data=json.dumps(event["data"]), event=event["event"])

            except TimeoutError:
                yield ServerSentEvent(
                    data=json.dumps({"timestamp": datetime.now(UTC).isoformat()}),
                    event="keepalive",
                )

    except asyncio.CancelledError:
        logger.info(f"SSE stream disconnected for {label} of user {user_id}")
        raise

    except Exception as e:
        logger.error(f"SSE stream error for {label} of user {user_id}: {e}")
        yield ServerSentEvent(
            data=json.dumps({"error": str(e), "timestamp": datetime.now(UTC).isoformat()}),
            event="error",
        )

    finally:
        hub.unsubscribe(user_id, session_id, queue)


@router.get("/sessions/{session_id}/stream")
async def stream_session(
    user_id: str,
    session_id: str,
    sessions: Annotated[SessionManager, Depends(get_session_manager)],
    hub: Annotated[SessionEventHub, Depends(get_event_hub)],
) -> EventSourceResponse:
    """Persistent SSE stream of a session's messages.

    Events:
        - connected: Initial connection established
        - messages: Full ordered log, sent first on connect and after every change
        - keepalive: Periodic heartbeat (every 30s)
        - error: Stream error occurred

    Raises:
        HTTPException: 404 if session not found
    """
    if sessions.get_session(user_id, session_id) is None:
        raise HTTPException(status_code=404, detail=f"Session {session_id} not found")

    queue = hub.subscribe_messages(user_id, session_id)
    return EventSourceResponse(_relay(hub, user_id, session_id, queue))


@router.get("/sessions-stream")
async def stream_sessions(
    user_id: str,
    hub: Annotated[SessionEventHub, Depends(get_event_hub)],
) -> EventSourceResponse:
    """Persistent SSE stream of the user's session list (history view).

    Events:
        - connected, sessions, keepalive, error
    """
    queue = hub.subscribe_sessions(user_id)
    return EventSourceResponse(_relay(hub, user_id, None, queue))
