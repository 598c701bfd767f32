"""Character store: user-authored personas."""

import logging
from collections.abc import Callable
from datetime import UTC
from datetime import datetime

from pydantic import ValidationError

from persona_library.models.characters import Character
from persona_library.models.characters import CharacterCreate
from persona_library.models.characters import CharacterUpdate
from persona_library.sessions.manager import SessionManager
from persona_library.storage.documents import DocumentStore
from persona_library.storage.documents import new_document_id

logger = logging.getLogger(__name__)

CharactersListener = Callable[[list[Character]], None]


class CharacterManager:
    """Manages characters stored at users/{uid}/characters/{id}.json.

    Deleting a character cascades to every session that references it.
    """

    def __init__(self, store: DocumentStore, sessions: SessionManager) -> None:
        """Initialize with a document store.

        Args:
            store: Backing document store
            sessions: Session manager used for cascading deletes
        """
        self.store = store
        self.sessions = sessions
        self._listeners: dict[str, list[CharactersListener]] = {}

    @staticmethod
    def collection(user_id: str) -> str:
        return f"users/{user_id}/characters"

    def create_character(self, user_id: str, data: CharacterCreate) -> Character:
        """Create a character from a validated payload."""
        now = datetime.now(UTC)
        character = Character(
            id=new_document_id(),
            created_at=now,
            last_used=now,
            **data.model_dump(),
        )
        self.store.write(self.collection(user_id), character.id, character)
        logger.info(f"Created character {character.id} ({character.name}) for user {user_id}")

        self._notify(user_id)
        return character

    def get_character(self, user_id: str, character_id: str) -> Character | None:
        """Get a character by id, or None if it does not exist."""
        return self.store.read(self.collection(user_id), character_id, Character)

    def require_character(self, user_id: str, character_id: str) -> Character:
        """Get a character by id.

        Raises:
            FileNotFoundError: If the character does not exist
        """
        character = self.get_character(user_id, character_id)
        if character is None:
            raise FileNotFoundError(f"Character {character_id} not found")
        return character

    def list_characters(self, user_id: str) -> list[Character]:
        """List a user's characters, most recently used first."""
        characters = self.store.list_documents(self.collection(user_id), Character)
        characters.sort(key=lambda c: c.last_used, reverse=True)
        return characters

    def update_character(self, user_id: str, character_id: str, update: CharacterUpdate) -> Character:
        """Edit a character in place.

        Existing sessions keep the snapshot taken when they started.

        Raises:
            FileNotFoundError: If the character does not exist
            ValueError: If the merged record fails validation
        """
        character = self.require_character(user_id, character_id)
        changes = update.model_dump(exclude_unset=True, exclude_none=True)

        try:
            updated = Character.model_validate({**character.model_dump(), **changes})
        except ValidationError as e:
            raise ValueError(f"Invalid character update: {e.error_count()} validation error(s)") from e

        self.store.write(self.collection(user_id), character_id, updated)
        logger.info(f"Updated character {character_id} fields {sorted(changes)}")

        self._notify(user_id)
        return updated

    def touch(self, user_id: str, character_id: str) -> Character:
        """Bump lastUsed when the character is selected.

        Raises:
            FileNotFoundError: If the character does not exist
        """
        character = self.require_character(user_id, character_id)
        character.last_used = max(datetime.now(UTC), character.last_used)
        self.store.write(self.collection(user_id), character_id, character)

        self._notify(user_id)
        return character

    def delete_character(self, user_id: str, character_id: str) -> int:
        """Delete a character and every session that references it.

        Returns:
            Number of sessions removed by the cascade

        Raises:
            FileNotFoundError: If the character does not exist
        """
        if not self.store.exists(self.collection(user_id), character_id):
            raise FileNotFoundError(f"Character {character_id} not found")

        removed_sessions = self.sessions.delete_sessions_for_character(user_id, character_id)
        self.store.delete(self.collection(user_id), character_id)
        logger.info(f"Deleted character {character_id} for user {user_id} ({removed_sessions} sessions)")

        self._notify(user_id)
        return removed_sessions

    def set_flag(
        self,
        user_id: str,
        character_id: str,
        flagged: bool,
        reason: str | None = None,
        admin_id: str | None = None,
    ) -> Character:
        """Set or clear the moderation flag on a character.

        Raises:
            FileNotFoundError: If the character does not exist
        """
        character = self.require_character(user_id, character_id)
        character.is_flagged = flagged
        character.flag_reason = reason if flagged else None
        character.flagged_at = datetime.now(UTC) if flagged else None
        character.flagged_by = admin_id if flagged else None
        self.store.write(self.collection(user_id), character_id, character)

        self._notify(user_id)
        return character

    def subscribe(self, user_id: str, callback: CharactersListener) -> Callable[[], None]:
        """Listen for changes to a user's character list.

        Returns:
            Function that removes the listener
        """
        self._listeners.setdefault(user_id, []).append(callback)
        self._deliver(callback, self.list_characters(user_id))

        def unsubscribe() -> None:
            listeners = self._listeners.get(user_id, [])
            if callback in listeners:
                listeners.remove(callback)

        return unsubscribe

    def _notify(self, user_id: str) -> None:
        listeners = list(self._listeners.get(user_id, []))
        if not listeners:
            return
        characters = self.list_characters(user_id)
        for callback in listeners:
            self._deliver(callback, characters)

    @staticmethod
    def _deliver(callback: CharactersListener, characters: list[Character]) -> None:
        try:
            callback(list(characters))
        except Exception as e:
            logger.error(f"Character listener {callback!r} failed: {e}")
