"""API models for personad daemon.

This module defines request and response models for the REST API.
"""

from .errors import ErrorResponse
from .requests import AdminActionRequest
from .requests import CreateSessionRequest
from .requests import LoginRequest
from .requests import SendMessageRequest
from .requests import SetRoleRequest
from .responses import ChatContextResponse
from .responses import ClearMessagesResponse
from .responses import DeleteCharacterResponse
from .responses import MessagesResponse
from .responses import ReplyResponse
from .responses import SendMessageResponse
from .responses import StatusResponse

__all__ = [
    "ErrorResponse",
    "AdminActionRequest",
    "CreateSessionRequest",
    "LoginRequest",
    "SendMessageRequest",
    "SetRoleRequest",
    "ChatContextResponse",
    "ClearMessagesResponse",
    "DeleteCharacterResponse",
    "MessagesResponse",
    "ReplyResponse",
    "SendMessageResponse",
    "StatusResponse",
]
