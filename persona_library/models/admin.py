"""Administrative records: admin users, audit entries, analytics rollups."""

from datetime import UTC
from datetime import datetime
from enum import Enum
from typing import Any

from pydantic import Field

from persona_library.models.base import CamelCaseModel


class AdminRole(str, Enum):
    """Access level of an account in the admin console."""

    SUPER = "super"
    MODERATOR = "moderator"
    SUPPORT = "support"
    USER = "user"


class TargetType(str, Enum):
    """Kind of record an audit entry refers to."""

    USER = "user"
    CHARACTER = "character"
    CHAT = "chat"
    SYSTEM = "system"


class AdminUser(CamelCaseModel):
    """Account metadata kept by the admin layer at admin/users/{uid}.json."""

    uid: str
    email: str | None = None
    display_name: str | None = None
    role: AdminRole = AdminRole.USER
    is_blocked: bool = False
    blocked_reason: str | None = None
    blocked_at: datetime | None = None
    blocked_by: str | None = None
    created_at: datetime = Field(default_factory=lambda: datetime.now(UTC))
    last_login: datetime | None = None

    @property
    def is_admin(self) -> bool:
        return self.role != AdminRole.USER


class AuditLogEntry(CamelCaseModel):
    """One moderation or administrative action."""

    id: str
    admin_id: str
    admin_email: str | None = None
    action: str
    target_type: TargetType
    target_id: str
    reason: str = ""
    details: dict[str, Any] = Field(default_factory=dict)
    impact: str = "low"
    timestamp: datetime


class AnalyticsEventType(str, Enum):
    """Tracked product events."""

    USER_LOGIN = "user_login"
    USER_SIGNUP = "user_signup"
    CHARACTER_CREATED = "character_created"
    MESSAGE_SENT = "message_sent"
    CHAT_STARTED = "chat_started"


class AnalyticsEvent(CamelCaseModel):
    """Raw analytics event stored at analytics/events/{id}.json."""

    id: str
    type: AnalyticsEventType
    user_id: str
    timestamp: datetime
    metadata: dict[str, Any] = Field(default_factory=dict)


def _empty_hours() -> list[int]:
    return [0] * 24


class DailyAnalytics(CamelCaseModel):
    """Per-day rollup stored at analytics/daily/{date}.json."""

    date: str
    new_users: int = 0
    active_users: int = 0
    characters_created: int = 0
    messages_sent: int = 0
    chats_started: int = 0
    peak_hour: int = 0
    hourly_activity: list[int] = Field(default_factory=_empty_hours, min_length=24, max_length=24)


class AnalyticsSummary(CamelCaseModel):
    """Aggregate over a window of daily rollups."""

    total_new_users: int = 0
    total_active_users: int = 0
    total_characters_created: int = 0
    total_messages_sent: int = 0
    total_chats_started: int = 0
    average_daily_users: int = 0
    peak_usage_hours: list[int] = Field(default_factory=_empty_hours)
    daily_trends: list[DailyAnalytics] = Field(default_factory=list)


class PopularCharacter(CamelCaseModel):
    """Character ranked by the number of messages exchanged with it."""

    character_id: str
    user_id: str
    name: str
    message_count: int


class SystemOverview(CamelCaseModel):
    """Point-in-time totals across all stored users."""

    total_users: int = 0
    total_characters: int = 0
    total_sessions: int = 0
    total_messages: int = 0
    flagged_characters: int = 0
    flagged_chats: int = 0
    blocked_users: int = 0
    popular_characters: list[PopularCharacter] = Field(default_factory=list)
