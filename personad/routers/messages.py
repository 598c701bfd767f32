"""Messages router for personad API.

Handles message operations: read the log, send and wait for the reply, send
and stream the reply to live subscribers, clear the log.
"""

import logging
from typing import Annotated

from fastapi import APIRouter
from fastapi import Depends
from fastapi import HTTPException

from persona_library.admin import AdminDirectory
from persona_library.chat import ChatClient
from persona_library.chat import SendResult
from persona_library.chat import SessionBusyError
from persona_library.models.sessions import SenderProfile
from persona_library.sessions import SessionManager

from ..dependencies import get_admin_directory
from ..dependencies import get_chat_client
from ..dependencies import get_session_manager
from ..models import ClearMessagesResponse
from ..models import MessagesResponse
from ..models import ReplyResponse
from ..models import SendMessageRequest
from ..models import SendMessageResponse

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/v1/users/{user_id}/sessions/{session_id}", tags=["messages"])


def _check_can_send(
    user_id: str,
    session_id: str,
    sessions: SessionManager,
    client: ChatClient,
    directory: AdminDirectory,
) -> None:
    if directory.is_blocked(user_id):
        raise HTTPException(status_code=403, detail=f"User {user_id} is blocked")
    if sessions.get_session(user_id, session_id) is None:
        raise HTTPException(status_code=404, detail=f"Session {session_id} not found")
    if client.is_busy(session_id):
        raise HTTPException(status_code=409, detail=f"Session {session_id} already has a reply in progress")


def _to_response(result: SendResult) -> SendMessageResponse:
    reply = result.reply
    return SendMessageResponse(
        session=result.session,
        user_message=result.user_message,
        reply=ReplyResponse(
            status=reply.status.value,
            text=reply.text,
            message_id=reply.message_id,
            fragments=reply.fragments,
            error=reply.error,
        ),
    )


@router.get("/messages", response_model=MessagesResponse)
async def get_messages(
    user_id: str,
    session_id: str,
    sessions: Annotated[SessionManager, Depends(get_session_manager)],
) -> MessagesResponse:
    """Get the session's messages in creation order.

    Raises:
        HTTPException: 404 if session not found
    """
    try:
        sessions.require_session(user_id, session_id)
        return MessagesResponse(session_id=session_id, messages=sessions.get_messages(user_id, session_id))
    except FileNotFoundError as exc:
        raise HTTPException(status_code=404, detail=str(exc)) from exc
    except ValueError as exc:
        raise HTTPException(status_code=400, detail=str(exc)) from exc
    except Exception as exc:
        logger.error(f"Failed to get messages for session {session_id}: {exc}")
        raise HTTPException(status_code=500, detail="Internal server error") from exc


@router.post("/messages", response_model=SendMessageResponse, status_code=201)
async def send_message(
    user_id: str,
    session_id: str,
    request: SendMessageRequest,
    sessions: Annotated[SessionManager, Depends(get_session_manager)],
    client: Annotated[ChatClient, Depends(get_chat_client)],
    directory: Annotated[AdminDirectory, Depends(get_admin_directory)],
) -> SendMessageResponse:
    """Send a message and wait for the full reply.

    Raises:
        HTTPException: 403 if blocked, 404 if session not found, 409 if a
            reply is already streaming
    """
    try:
        _check_can_send(user_id, session_id, sessions, client, directory)
        result = await client.send_message(
            user_id,
            request.text,
            session_id=session_id,
            sender=SenderProfile(display_name=request.display_name, photo_url=request.photo_url),
        )
        return _to_response(result)

    except HTTPException:
        raise
    except FileNotFoundError as exc:
        raise HTTPException(status_code=404, detail=str(exc)) from exc
    except ValueError as exc:
        raise HTTPException(status_code=400, detail=str(exc)) from exc
    except Exception as exc:
        logger.error(f"Failed to send message to session {session_id}: {exc}")
        raise HTTPException(status_code=500, detail="Internal server error") from exc


@router.post("/send-message", status_code=202)
async def send_message_streaming(
    user_id: str,
    session_id: str,
    request: SendMessageRequest,
    sessions: Annotated[SessionManager, Depends(get_session_manager)],
    client: Annotated[ChatClient, Depends(get_chat_client)],
    directory: Annotated[AdminDirectory, Depends(get_admin_directory)],
) -> dict[str, str]:
    """Send a message and return immediately.

    The reply streams into the session in the background; subscribers of
    GET .../stream see the message text grow.

    Raises:
        HTTPException: 403 if blocked, 404 if session not found, 409 if a
            reply is already streaming
    """
    try:
        _check_can_send(user_id, session_id, sessions, client, directory)
        await client.send_in_background(
            user_id,
            request.text,
            session_id=session_id,
            sender=SenderProfile(display_name=request.display_name, photo_url=request.photo_url),
        )
        return {"status": "executing", "sessionId": session_id}

    except HTTPException:
        raise
    except SessionBusyError as exc:
        raise HTTPException(status_code=409, detail=str(exc)) from exc
    except FileNotFoundError as exc:
        raise HTTPException(status_code=404, detail=str(exc)) from exc
    except ValueError as exc:
        raise HTTPException(status_code=400, detail=str(exc)) from exc
    except Exception as exc:
        logger.error(f"Failed to send message to session {session_id}: {exc}")
        raise HTTPException(status_code=500, detail="Internal server error") from exc


@router.delete("/messages", response_model=ClearMessagesResponse)
async def clear_messages(
    user_id: str,
    session_id: str,
    sessions: Annotated[SessionManager, Depends(get_session_manager)],
    client: Annotated[ChatClient, Depends(get_chat_client)],
) -> ClearMessagesResponse:
    """Remove every message from the session and reset its summary."""
    try:
        if client.is_busy(session_id):
            raise HTTPException(status_code=409, detail=f"Session {session_id} has a reply in progress")
        removed = sessions.clear_messages(user_id, session_id)
        return ClearMessagesResponse(session_id=session_id, removed=removed)
    except HTTPException:
        raise
    except FileNotFoundError as exc:
        raise HTTPException(status_code=404, detail=str(exc)) from exc
    except ValueError as exc:
        raise HTTPException(status_code=400, detail=str(exc)) from exc
    except Exception as exc:
        logger.error(f"Failed to clear session {session_id}: {exc}")
        raise HTTPException(status_code=500, detail="Internal server error") from exc
