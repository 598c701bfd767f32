"""Read-only access to the pre-session flat message log.

Older accounts stored every message at users/{uid}/messages with no session
concept. Those messages stay readable and are presented to admins as one
synthetic session.
"""

import logging

from persona_library.models.characters import CharacterSnapshot
from persona_library.models.sessions import ChatSession
from persona_library.models.sessions import Message
from persona_library.storage.documents import DocumentStore

logger = logging.getLogger(__name__)

LEGACY_SESSION_PREFIX = "legacy-messages-"
LEGACY_CHARACTER_ID = "legacy"
LEGACY_SESSION_NAME = "Legacy Messages"


def legacy_session_id(user_id: str) -> str:
    """Id of the synthetic session that wraps a user's legacy messages."""
    return f"{LEGACY_SESSION_PREFIX}{user_id}"


def is_legacy_session_id(session_id: str) -> bool:
    return session_id.startswith(LEGACY_SESSION_PREFIX)


class LegacyMessageReader:
    """Reads the flat users/{uid}/messages collection."""

    def __init__(self, store: DocumentStore) -> None:
        self.store = store

    @staticmethod
    def collection(user_id: str) -> str:
        return f"users/{user_id}/messages"

    def has_messages(self, user_id: str) -> bool:
        return self.store.count(self.collection(user_id)) > 0

    def list_messages(self, user_id: str) -> list[Message]:
        """Legacy messages in creation order."""
        messages = self.store.list_documents(self.collection(user_id), Message)
        messages.sort(key=lambda m: (m.created_at, m.id))
        return messages

    def session_view(self, user_id: str) -> ChatSession | None:
        """Build the synthetic read-only session for a user's legacy messages.

        Returns:
            The synthetic session, or None if the user has no legacy messages
        """
        messages = self.list_messages(user_id)
        if not messages:
            return None

        first, last = messages[0], messages[-1]
        logger.debug(f"Found {len(messages)} legacy messages for user {user_id}")
        return ChatSession(
            id=legacy_session_id(user_id),
            name=LEGACY_SESSION_NAME,
            character_id=LEGACY_CHARACTER_ID,
            character_data=CharacterSnapshot(
                name="Legacy Character",
                age=0,
                profession="",
                tone="",
                description="Legacy character from old message structure",
            ),
            last_message=last.text or "Legacy message",
            last_message_time=last.created_at,
            created_at=first.created_at,
            message_count=len(messages),
        )
