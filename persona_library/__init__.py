"""Persona chat library layer.

This is the domain layer that sits between personad (transport) and the
document store on disk.

Public Interface:
    Modules:
    - storage: Path resolution and JSON document persistence
    - config: Configuration loading
    - models: Shared record types
    - persona: Persona compilation
    - characters: Character store
    - sessions: Conversation store, legacy reader, session bootstrap
    - chat: Event frames, frame sources, stream consumer, chat client
    - admin: Audit log, user directory, moderation, analytics
"""

from .models import Character
from .models import ChatSession
from .models import Message

__all__ = [
    "Character",
    "ChatSession",
    "Message",
]
