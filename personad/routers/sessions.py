"""Sessions router for personad API.

Session listing and lifecycle, chat-context resolution, and login tracking.
"""

import logging
from typing import Annotated

from fastapi import APIRouter
from fastapi import Depends
from fastapi import HTTPException
from fastapi import Query

from persona_library.admin import AdminDirectory
from persona_library.admin import AnalyticsService
from persona_library.characters import CharacterManager
from persona_library.chat import ChatClient
from persona_library.models.admin import AdminUser
from persona_library.models.sessions import ChatSession
from persona_library.sessions import SessionManager
from persona_library.sessions import resolve_chat_context

from ..dependencies import get_admin_directory
from ..dependencies import get_analytics_service
from ..dependencies import get_character_manager
from ..dependencies import get_chat_client
from ..dependencies import get_session_manager
from ..models import ChatContextResponse
from ..models import CreateSessionRequest
from ..models import LoginRequest

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/v1/users/{user_id}", tags=["sessions"])


@router.get("/sessions", response_model=list[ChatSession])
async def list_sessions(
    user_id: str,
    sessions: Annotated[SessionManager, Depends(get_session_manager)],
    character_id: Annotated[str | None, Query(alias="characterId")] = None,
    limit: Annotated[int | None, Query(ge=1)] = None,
) -> list[ChatSession]:
    """List sessions, most recently active first.

    Args:
        user_id: Owner of the sessions
        sessions: Session manager dependency
        character_id: Optional filter by character
        limit: Optional maximum number of results
    """
    try:
        return sessions.list_sessions(user_id, character_id=character_id, limit=limit)
    except ValueError as exc:
        raise HTTPException(status_code=400, detail=str(exc)) from exc
    except Exception as exc:
        logger.error(f"Failed to list sessions for {user_id}: {exc}")
        raise HTTPException(status_code=500, detail="Internal server error") from exc


@router.post("/sessions", response_model=ChatSession, status_code=201)
async def create_session(
    user_id: str,
    request: CreateSessionRequest,
    client: Annotated[ChatClient, Depends(get_chat_client)],
) -> ChatSession:
    """Start a session bound to a snapshot of the character.

    Raises:
        HTTPException: 404 if the character does not exist
    """
    try:
        return client.start_session(user_id, request.character_id)
    except FileNotFoundError as exc:
        raise HTTPException(status_code=404, detail=str(exc)) from exc
    except ValueError as exc:
        raise HTTPException(status_code=400, detail=str(exc)) from exc
    except Exception as exc:
        logger.error(f"Failed to create session for {user_id}: {exc}")
        raise HTTPException(status_code=500, detail="Internal server error") from exc


@router.get("/sessions/{session_id}", response_model=ChatSession)
async def get_session(
    user_id: str,
    session_id: str,
    sessions: Annotated[SessionManager, Depends(get_session_manager)],
) -> ChatSession:
    try:
        return sessions.require_session(user_id, session_id)
    except FileNotFoundError as exc:
        raise HTTPException(status_code=404, detail=str(exc)) from exc
    except ValueError as exc:
        raise HTTPException(status_code=400, detail=str(exc)) from exc
    except Exception as exc:
        logger.error(f"Failed to get session {session_id}: {exc}")
        raise HTTPException(status_code=500, detail="Internal server error") from exc


@router.delete("/sessions/{session_id}", status_code=204)
async def delete_session(
    user_id: str,
    session_id: str,
    sessions: Annotated[SessionManager, Depends(get_session_manager)],
    client: Annotated[ChatClient, Depends(get_chat_client)],
) -> None:
    """Delete a session and its messages.

    Raises:
        HTTPException: 404 if not found, 409 while a reply is streaming
    """
    try:
        if client.is_busy(session_id):
            raise HTTPException(status_code=409, detail=f"Session {session_id} has a reply in progress")
        if not sessions.delete_session(user_id, session_id):
            raise HTTPException(status_code=404, detail=f"Session {session_id} not found")
    except HTTPException:
        raise
    except ValueError as exc:
        raise HTTPException(status_code=400, detail=str(exc)) from exc
    except Exception as exc:
        logger.error(f"Failed to delete session {session_id}: {exc}")
        raise HTTPException(status_code=500, detail="Internal server error") from exc


@router.get("/chat-context", response_model=ChatContextResponse | None)
async def get_chat_context(
    user_id: str,
    characters: Annotated[CharacterManager, Depends(get_character_manager)],
    sessions: Annotated[SessionManager, Depends(get_session_manager)],
    session_id: Annotated[str | None, Query(alias="sessionId")] = None,
    character_id: Annotated[str | None, Query(alias="characterId")] = None,
) -> ChatContextResponse | None:
    """Resolve which character and session the chat view opens on.

    Returns null when the user has no characters yet.
    """
    try:
        context = resolve_chat_context(
            characters,
            sessions,
            user_id,
            session_id=session_id,
            character_id=character_id,
        )
        if context is None:
            return None
        return ChatContextResponse(
            character_data=context.character_data,
            character=context.character,
            session=context.session,
            messages=context.messages,
        )
    except FileNotFoundError as exc:
        raise HTTPException(status_code=404, detail=str(exc)) from exc
    except ValueError as exc:
        raise HTTPException(status_code=400, detail=str(exc)) from exc
    except Exception as exc:
        logger.error(f"Failed to resolve chat context for {user_id}: {exc}")
        raise HTTPException(status_code=500, detail="Internal server error") from exc


@router.post("/login", response_model=AdminUser)
async def record_login(
    user_id: str,
    request: LoginRequest,
    directory: Annotated[AdminDirectory, Depends(get_admin_directory)],
    analytics: Annotated[AnalyticsService, Depends(get_analytics_service)],
) -> AdminUser:
    """Record a login; the first login of an account also counts as a signup."""
    try:
        is_new = directory.get_user(user_id) is None
        user = directory.record_login(user_id, email=request.email, display_name=request.display_name)
        if is_new:
            analytics.track_user_signup(user_id)
        analytics.track_user_login(user_id)
        return user
    except ValueError as exc:
        raise HTTPException(status_code=400, detail=str(exc)) from exc
    except Exception as exc:
        logger.error(f"Failed to record login for {user_id}: {exc}")
        raise HTTPException(status_code=500, detail="Internal server error") from exc
