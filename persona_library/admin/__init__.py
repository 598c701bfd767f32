"""Admin oversight: audit log, user directory, moderation and analytics.

Public Interface:
    - AuditLog: Append and query audit entries
    - AdminDirectory: Account roles, blocks and logins
    - ModerationService: Flag, unflag, delete and block with auditing
    - AnalyticsService: Event tracking, daily rollups, dashboard summaries
"""

from .analytics import AnalyticsService
from .audit import AuditLog
from .moderation import ModerationService
from .users import AdminDirectory

__all__ = [
    "AuditLog",
    "AdminDirectory",
    "ModerationService",
    "AnalyticsService",
]
