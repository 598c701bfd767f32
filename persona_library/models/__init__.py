"""Models for persona library."""

from .admin import AdminRole
from .admin import AdminUser
from .admin import AnalyticsEvent
from .admin import AnalyticsEventType
from .admin import AnalyticsSummary
from .admin import AuditLogEntry
from .admin import DailyAnalytics
from .admin import PopularCharacter
from .admin import SystemOverview
from .admin import TargetType
from .characters import Character
from .characters import CharacterCreate
from .characters import CharacterProfile
from .characters import CharacterSnapshot
from .characters import CharacterUpdate
from .characters import ModerationFields
from .characters import Tone
from .chat import ChatRequest
from .chat import PriorTurn
from .sessions import AI_SENDER
from .sessions import ChatSession
from .sessions import Message
from .sessions import SenderProfile

__all__ = [
    "AI_SENDER",
    "AdminRole",
    "AdminUser",
    "AnalyticsEvent",
    "AnalyticsEventType",
    "AnalyticsSummary",
    "AuditLogEntry",
    "Character",
    "CharacterCreate",
    "CharacterProfile",
    "CharacterSnapshot",
    "CharacterUpdate",
    "ChatRequest",
    "ChatSession",
    "DailyAnalytics",
    "Message",
    "ModerationFields",
    "PopularCharacter",
    "PriorTurn",
    "SenderProfile",
    "SystemOverview",
    "TargetType",
    "Tone",
]
