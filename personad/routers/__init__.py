"""API routers for personad daemon.

This module contains FastAPI routers for all API endpoints.
"""

from .admin import router as admin_router
from .characters import router as characters_router
from .chat import router as chat_router
from .messages import router as messages_router
from .sessions import router as sessions_router
from .status import router as status_router
from .stream import router as stream_router

__all__ = [
    "admin_router",
    "characters_router",
    "chat_router",
    "messages_router",
    "sessions_router",
    "status_router",
    "stream_router",
]
