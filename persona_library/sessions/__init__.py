"""Session management module for persona_library.

Public Interface:
    - SessionManager: Sessions and message logs with change listeners
    - LegacyMessageReader: Read-only access to pre-session messages
    - ChatContext, resolve_chat_context: Session bootstrap and resume
"""

from .bootstrap import ChatContext
from .bootstrap import resolve_chat_context
from .legacy import LegacyMessageReader
from .legacy import is_legacy_session_id
from .legacy import legacy_session_id
from .manager import SessionManager

__all__ = [
    "SessionManager",
    "LegacyMessageReader",
    "ChatContext",
    "resolve_chat_context",
    "is_legacy_session_id",
    "legacy_session_id",
]
