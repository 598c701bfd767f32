"""Admin router for personad API.

Moderation, audit log and analytics. The acting admin is identified by the
X-Admin-Id header and must hold an admin role.
"""

import logging
from datetime import date
from typing import Annotated

from fastapi import APIRouter
from fastapi import Depends
from fastapi import Header
from fastapi import HTTPException
from fastapi import Query

from persona_library.admin import AdminDirectory
from persona_library.admin import AnalyticsService
from persona_library.admin import AuditLog
from persona_library.admin import ModerationService
from persona_library.models.admin import AdminUser
from persona_library.models.admin import AnalyticsEvent
from persona_library.models.admin import AnalyticsEventType
from persona_library.models.admin import AnalyticsSummary
from persona_library.models.admin import AuditLogEntry
from persona_library.models.admin import DailyAnalytics
from persona_library.models.admin import SystemOverview
from persona_library.models.admin import TargetType
from persona_library.models.characters import Character
from persona_library.models.sessions import ChatSession
from persona_library.models.sessions import Message

from ..dependencies import get_admin_directory
from ..dependencies import get_analytics_service
from ..dependencies import get_audit_log
from ..dependencies import get_moderation_service
from ..models import AdminActionRequest
from ..models import DeleteCharacterResponse
from ..models import MessagesResponse
from ..models import SetRoleRequest

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/v1/admin", tags=["admin"])

AdminId = Annotated[str | None, Header(alias="X-Admin-Id")]


def require_admin(
    directory: Annotated[AdminDirectory, Depends(get_admin_directory)],
    x_admin_id: AdminId = None,
) -> str:
    """Dependency that resolves the acting admin for read-only admin endpoints.

    Raises:
        HTTPException: 403 if the header is missing or the user is not an admin
    """
    if not x_admin_id or not directory.is_admin(x_admin_id):
        raise HTTPException(status_code=403, detail="Admin privileges required")
    return x_admin_id


def _acting_admin(x_admin_id: str | None) -> str:
    if not x_admin_id:
        raise HTTPException(status_code=403, detail="Admin privileges required")
    return x_admin_id


# --- Users ---


@router.get("/users", response_model=list[AdminUser])
async def list_users(
    _admin_id: Annotated[str, Depends(require_admin)],
    directory: Annotated[AdminDirectory, Depends(get_admin_directory)],
) -> list[AdminUser]:
    """List every known user, newest account first."""
    try:
        return directory.list_users()
    except Exception as exc:
        logger.error(f"Failed to list users: {exc}")
        raise HTTPException(status_code=500, detail="Internal server error") from exc


@router.get("/users/{user_id}/characters", response_model=list[Character])
async def list_user_characters(
    user_id: str,
    moderation: Annotated[ModerationService, Depends(get_moderation_service)],
    x_admin_id: AdminId = None,
) -> list[Character]:
    try:
        return moderation.list_user_characters(_acting_admin(x_admin_id), user_id)
    except HTTPException:
        raise
    except PermissionError as exc:
        raise HTTPException(status_code=403, detail=str(exc)) from exc
    except ValueError as exc:
        raise HTTPException(status_code=400, detail=str(exc)) from exc
    except Exception as exc:
        logger.error(f"Failed to list characters for {user_id}: {exc}")
        raise HTTPException(status_code=500, detail="Internal server error") from exc


@router.get("/users/{user_id}/sessions", response_model=list[ChatSession])
async def list_user_sessions(
    user_id: str,
    moderation: Annotated[ModerationService, Depends(get_moderation_service)],
    x_admin_id: AdminId = None,
) -> list[ChatSession]:
    """List a user's sessions, including the synthetic Legacy Messages session."""
    try:
        return moderation.list_user_sessions(_acting_admin(x_admin_id), user_id)
    except HTTPException:
        raise
    except PermissionError as exc:
        raise HTTPException(status_code=403, detail=str(exc)) from exc
    except ValueError as exc:
        raise HTTPException(status_code=400, detail=str(exc)) from exc
    except Exception as exc:
        logger.error(f"Failed to list sessions for {user_id}: {exc}")
        raise HTTPException(status_code=500, detail="Internal server error") from exc


@router.get("/users/{user_id}/sessions/{session_id}/messages", response_model=MessagesResponse)
async def get_user_session_messages(
    user_id: str,
    session_id: str,
    moderation: Annotated[ModerationService, Depends(get_moderation_service)],
    x_admin_id: AdminId = None,
) -> MessagesResponse:
    """Read any session's log, including legacy-messages-{userId}."""
    try:
        messages: list[Message] = moderation.get_session_messages(_acting_admin(x_admin_id), user_id, session_id)
        return MessagesResponse(session_id=session_id, messages=messages)
    except HTTPException:
        raise
    except PermissionError as exc:
        raise HTTPException(status_code=403, detail=str(exc)) from exc
    except FileNotFoundError as exc:
        raise HTTPException(status_code=404, detail=str(exc)) from exc
    except ValueError as exc:
        raise HTTPException(status_code=400, detail=str(exc)) from exc
    except Exception as exc:
        logger.error(f"Failed to read session {session_id} for {user_id}: {exc}")
        raise HTTPException(status_code=500, detail="Internal server error") from exc


@router.post("/users/{user_id}/block", response_model=AdminUser)
async def block_user(
    user_id: str,
    request: AdminActionRequest,
    moderation: Annotated[ModerationService, Depends(get_moderation_service)],
    x_admin_id: AdminId = None,
) -> AdminUser:
    try:
        return moderation.block_user(_acting_admin(x_admin_id), user_id, request.reason)
    except HTTPException:
        raise
    except PermissionError as exc:
        raise HTTPException(status_code=403, detail=str(exc)) from exc
    except FileNotFoundError as exc:
        raise HTTPException(status_code=404, detail=str(exc)) from exc
    except ValueError as exc:
        raise HTTPException(status_code=400, detail=str(exc)) from exc
    except Exception as exc:
        logger.error(f"Failed to block user {user_id}: {exc}")
        raise HTTPException(status_code=500, detail="Internal server error") from exc


@router.post("/users/{user_id}/unblock", response_model=AdminUser)
async def unblock_user(
    user_id: str,
    request: AdminActionRequest,
    moderation: Annotated[ModerationService, Depends(get_moderation_service)],
    x_admin_id: AdminId = None,
) -> AdminUser:
    try:
        return moderation.unblock_user(_acting_admin(x_admin_id), user_id, request.reason)
    except HTTPException:
        raise
    except PermissionError as exc:
        raise HTTPException(status_code=403, detail=str(exc)) from exc
    except FileNotFoundError as exc:
        raise HTTPException(status_code=404, detail=str(exc)) from exc
    except ValueError as exc:
        raise HTTPException(status_code=400, detail=str(exc)) from exc
    except Exception as exc:
        logger.error(f"Failed to unblock user {user_id}: {exc}")
        raise HTTPException(status_code=500, detail="Internal server error") from exc


@router.put("/users/{user_id}/role", response_model=AdminUser)
async def set_user_role(
    user_id: str,
    request: SetRoleRequest,
    moderation: Annotated[ModerationService, Depends(get_moderation_service)],
    x_admin_id: AdminId = None,
) -> AdminUser:
    """Change a user's role (super admins only)."""
    try:
        return moderation.set_role(_acting_admin(x_admin_id), user_id, request.role, request.reason)
    except HTTPException:
        raise
    except PermissionError as exc:
        raise HTTPException(status_code=403, detail=str(exc)) from exc
    except FileNotFoundError as exc:
        raise HTTPException(status_code=404, detail=str(exc)) from exc
    except ValueError as exc:
        raise HTTPException(status_code=400, detail=str(exc)) from exc
    except Exception as exc:
        logger.error(f"Failed to set role for {user_id}: {exc}")
        raise HTTPException(status_code=500, detail="Internal server error") from exc


# --- Characters ---


@router.post("/users/{user_id}/characters/{character_id}/flag", response_model=Character)
async def flag_character(
    user_id: str,
    character_id: str,
    request: AdminActionRequest,
    moderation: Annotated[ModerationService, Depends(get_moderation_service)],
    x_admin_id: AdminId = None,
) -> Character:
    try:
        return moderation.flag_character(_acting_admin(x_admin_id), user_id, character_id, request.reason)
    except HTTPException:
        raise
    except PermissionError as exc:
        raise HTTPException(status_code=403, detail=str(exc)) from exc
    except FileNotFoundError as exc:
        raise HTTPException(status_code=404, detail=str(exc)) from exc
    except ValueError as exc:
        raise HTTPException(status_code=400, detail=str(exc)) from exc
    except Exception as exc:
        logger.error(f"Failed to flag character {character_id}: {exc}")
        raise HTTPException(status_code=500, detail="Internal server error") from exc


@router.post("/users/{user_id}/characters/{character_id}/unflag", response_model=Character)
async def unflag_character(
    user_id: str,
    character_id: str,
    request: AdminActionRequest,
    moderation: Annotated[ModerationService, Depends(get_moderation_service)],
    x_admin_id: AdminId = None,
) -> Character:
    try:
        return moderation.unflag_character(_acting_admin(x_admin_id), user_id, character_id, request.reason)
    except HTTPException:
        raise
    except PermissionError as exc:
        raise HTTPException(status_code=403, detail=str(exc)) from exc
    except FileNotFoundError as exc:
        raise HTTPException(status_code=404, detail=str(exc)) from exc
    except ValueError as exc:
        raise HTTPException(status_code=400, detail=str(exc)) from exc
    except Exception as exc:
        logger.error(f"Failed to unflag character {character_id}: {exc}")
        raise HTTPException(status_code=500, detail="Internal server error") from exc


@router.delete("/users/{user_id}/characters/{character_id}", response_model=DeleteCharacterResponse)
async def delete_character(
    user_id: str,
    character_id: str,
    moderation: Annotated[ModerationService, Depends(get_moderation_service)],
    x_admin_id: AdminId = None,
    reason: str = "",
) -> DeleteCharacterResponse:
    """Delete a character with its sessions and messages."""
    try:
        removed = moderation.delete_character(_acting_admin(x_admin_id), user_id, character_id, reason)
        return DeleteCharacterResponse(character_id=character_id, sessions_removed=removed)
    except HTTPException:
        raise
    except PermissionError as exc:
        raise HTTPException(status_code=403, detail=str(exc)) from exc
    except FileNotFoundError as exc:
        raise HTTPException(status_code=404, detail=str(exc)) from exc
    except ValueError as exc:
        raise HTTPException(status_code=400, detail=str(exc)) from exc
    except Exception as exc:
        logger.error(f"Failed to delete character {character_id}: {exc}")
        raise HTTPException(status_code=500, detail="Internal server error") from exc


# --- Sessions ---


@router.post("/users/{user_id}/sessions/{session_id}/flag", response_model=ChatSession)
async def flag_session(
    user_id: str,
    session_id: str,
    request: AdminActionRequest,
    moderation: Annotated[ModerationService, Depends(get_moderation_service)],
    x_admin_id: AdminId = None,
) -> ChatSession:
    try:
        return moderation.flag_session(_acting_admin(x_admin_id), user_id, session_id, request.reason)
    except HTTPException:
        raise
    except PermissionError as exc:
        raise HTTPException(status_code=403, detail=str(exc)) from exc
    except FileNotFoundError as exc:
        raise HTTPException(status_code=404, detail=str(exc)) from exc
    except ValueError as exc:
        raise HTTPException(status_code=400, detail=str(exc)) from exc
    except Exception as exc:
        logger.error(f"Failed to flag session {session_id}: {exc}")
        raise HTTPException(status_code=500, detail="Internal server error") from exc


@router.post("/users/{user_id}/sessions/{session_id}/unflag", response_model=ChatSession)
async def unflag_session(
    user_id: str,
    session_id: str,
    request: AdminActionRequest,
    moderation: Annotated[ModerationService, Depends(get_moderation_service)],
    x_admin_id: AdminId = None,
) -> ChatSession:
    try:
        return moderation.unflag_session(_acting_admin(x_admin_id), user_id, session_id, request.reason)
    except HTTPException:
        raise
    except PermissionError as exc:
        raise HTTPException(status_code=403, detail=str(exc)) from exc
    except FileNotFoundError as exc:
        raise HTTPException(status_code=404, detail=str(exc)) from exc
    except ValueError as exc:
        raise HTTPException(status_code=400, detail=str(exc)) from exc
    except Exception as exc:
        logger.error(f"Failed to unflag session {session_id}: {exc}")
        raise HTTPException(status_code=500, detail="Internal server error") from exc


@router.delete("/users/{user_id}/sessions/{session_id}", status_code=204)
async def delete_session(
    user_id: str,
    session_id: str,
    moderation: Annotated[ModerationService, Depends(get_moderation_service)],
    x_admin_id: AdminId = None,
    reason: str = "",
) -> None:
    try:
        moderation.delete_session(_acting_admin(x_admin_id), user_id, session_id, reason)
    except HTTPException:
        raise
    except PermissionError as exc:
        raise HTTPException(status_code=403, detail=str(exc)) from exc
    except FileNotFoundError as exc:
        raise HTTPException(status_code=404, detail=str(exc)) from exc
    except ValueError as exc:
        raise HTTPException(status_code=400, detail=str(exc)) from exc
    except Exception as exc:
        logger.error(f"Failed to delete session {session_id}: {exc}")
        raise HTTPException(status_code=500, detail="Internal server error") from exc


# --- Audit log and analytics ---


@router.get("/audit-log", response_model=list[AuditLogEntry])
async def get_audit_log(
    _admin_id: Annotated[str, Depends(require_admin)],
    audit: Annotated[AuditLog, Depends(get_audit_log)],
    limit: Annotated[int, Query(ge=1, le=500)] = 20,
    target_type: Annotated[TargetType | None, Query(alias="targetType")] = None,
) -> list[AuditLogEntry]:
    """Most recent admin actions first."""
    try:
        return audit.list_recent(limit=limit, target_type=target_type)
    except Exception as exc:
        logger.error(f"Failed to read audit log: {exc}")
        raise HTTPException(status_code=500, detail="Internal server error") from exc


@router.get("/analytics/summary", response_model=AnalyticsSummary)
async def get_analytics_summary(
    _admin_id: Annotated[str, Depends(require_admin)],
    analytics: Annotated[AnalyticsService, Depends(get_analytics_service)],
    days: Annotated[int, Query(ge=1, le=365)] = 30,
) -> AnalyticsSummary:
    try:
        return analytics.summary(days=days)
    except Exception as exc:
        logger.error(f"Failed to build analytics summary: {exc}")
        raise HTTPException(status_code=500, detail="Internal server error") from exc


@router.get("/analytics/overview", response_model=SystemOverview)
async def get_system_overview(
    _admin_id: Annotated[str, Depends(require_admin)],
    analytics: Annotated[AnalyticsService, Depends(get_analytics_service)],
) -> SystemOverview:
    try:
        return analytics.system_overview()
    except Exception as exc:
        logger.error(f"Failed to build system overview: {exc}")
        raise HTTPException(status_code=500, detail="Internal server error") from exc


@router.get("/analytics/daily", response_model=list[DailyAnalytics])
async def get_daily_analytics(
    start: date,
    end: date,
    _admin_id: Annotated[str, Depends(require_admin)],
    analytics: Annotated[AnalyticsService, Depends(get_analytics_service)],
) -> list[DailyAnalytics]:
    """Daily rollups between start and end (inclusive, YYYY-MM-DD)."""
    if end < start:
        raise HTTPException(status_code=400, detail="end must not be before start")
    try:
        return analytics.get_daily_range(start, end)
    except Exception as exc:
        logger.error(f"Failed to read daily analytics: {exc}")
        raise HTTPException(status_code=500, detail="Internal server error") from exc


@router.get("/analytics/events", response_model=list[AnalyticsEvent])
async def get_recent_events(
    _admin_id: Annotated[str, Depends(require_admin)],
    analytics: Annotated[AnalyticsService, Depends(get_analytics_service)],
    event_type: Annotated[AnalyticsEventType | None, Query(alias="type")] = None,
    limit: Annotated[int, Query(ge=1, le=1000)] = 100,
) -> list[AnalyticsEvent]:
    try:
        return analytics.recent_events(event_type=event_type, limit=limit)
    except Exception as exc:
        logger.error(f"Failed to read analytics events: {exc}")
        raise HTTPException(status_code=500, detail="Internal server error") from exc
