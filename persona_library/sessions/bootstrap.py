"""Decide which character and session the chat surface opens on.

Selection is always passed in explicitly; nothing is read from ambient state.
"""

import logging
from dataclasses import dataclass
from dataclasses import field
from typing import TYPE_CHECKING

from persona_library.models.characters import Character
from persona_library.models.characters import CharacterSnapshot
from persona_library.models.sessions import ChatSession
from persona_library.models.sessions import Message
from persona_library.sessions.manager import SessionManager

if TYPE_CHECKING:
    from persona_library.characters.manager import CharacterManager

logger = logging.getLogger(__name__)


@dataclass
class ChatContext:
    """What the chat surface should render.

    Attributes:
        character_data: Persona used for rendering and for new sends. For a
            resumed session this is the session's snapshot, not the live character.
        character: Live character record, if it still exists
        session: Active session, or None when a session is created on first send
        messages: Ordered log of the active session
    """

    character_data: CharacterSnapshot
    character: Character | None = None
    session: ChatSession | None = None
    messages: list[Message] = field(default_factory=list)


def resolve_chat_context(
    characters: "CharacterManager",
    sessions: SessionManager,
    user_id: str,
    session_id: str | None = None,
    character_id: str | None = None,
) -> ChatContext | None:
    """Resolve the character and session to show.

    Args:
        characters: Character store
        sessions: Conversation store
        user_id: Current user
        session_id: Session the user navigated to (from history)
        character_id: Character the user explicitly selected

    Returns:
        Chat context, or None if the user has no characters yet

    Raises:
        FileNotFoundError: If session_id or character_id does not exist
    """
    if session_id is not None:
        session = sessions.require_session(user_id, session_id)
        return ChatContext(
            character_data=session.character_data,
            character=characters.get_character(user_id, session.character_id),
            session=session,
            messages=sessions.get_messages(user_id, session_id),
        )

    if character_id is not None:
        character = characters.touch(user_id, character_id)
        logger.info(f"User {user_id} selected character {character_id}")
        return ChatContext(character_data=character.snapshot(), character=character)

    recent = characters.list_characters(user_id)
    if not recent:
        logger.debug(f"User {user_id} has no characters, waiting for explicit selection")
        return None

    character = recent[0]
    latest = sessions.list_sessions(user_id, character_id=character.id, limit=1)
    if not latest:
        return ChatContext(character_data=character.snapshot(), character=character)

    session = latest[0]
    return ChatContext(
        character_data=session.character_data,
        character=character,
        session=session,
        messages=sessions.get_messages(user_id, session.id),
    )
