"""Conversation store: chat sessions and their message logs."""

import logging
from collections.abc import Callable
from datetime import UTC
from datetime import datetime
from datetime import timedelta

from persona_library.models.characters import Character
from persona_library.models.sessions import ChatSession
from persona_library.models.sessions import Message
from persona_library.storage.documents import DocumentStore
from persona_library.storage.documents import new_document_id

logger = logging.getLogger(__name__)

MessagesListener = Callable[[list[Message]], None]
SessionsListener = Callable[[list[ChatSession]], None]

_TICK = timedelta(microseconds=1)


class SessionManager:
    """Manages chat sessions and their ordered message logs.

    Sessions live at users/{uid}/chatSessions/{id}.json and messages at
    users/{uid}/chatSessions/{id}/messages/{messageId}.json. Each session
    carries denormalized summary fields (lastMessage, lastMessageTime,
    messageCount) that are refreshed after writes on a best-effort basis.

    Listeners registered with subscribe() and subscribe_sessions() are called
    synchronously after every write with the full current state.
    """

    def __init__(self, store: DocumentStore, summary_length: int = 100) -> None:
        """Initialize with a document store.

        Args:
            store: Backing document store
            summary_length: Characters of the latest message kept in lastMessage
        """
        self.store = store
        self.summary_length = summary_length
        self._message_listeners: dict[tuple[str, str], list[MessagesListener]] = {}
        self._session_listeners: dict[str, list[SessionsListener]] = {}
        self._last_created: dict[tuple[str, str], datetime] = {}

    # --- Collections ---

    @staticmethod
    def sessions_collection(user_id: str) -> str:
        return f"users/{user_id}/chatSessions"

    @staticmethod
    def messages_collection(user_id: str, session_id: str) -> str:
        return f"users/{user_id}/chatSessions/{session_id}/messages"

    # --- Sessions ---

    def create_session(self, user_id: str, character: Character) -> ChatSession:
        """Start a new session bound to a snapshot of the character.

        Args:
            user_id: Owner of the session
            character: Character the session talks to

        Returns:
            Created session with an empty message log
        """
        now = datetime.now(UTC)
        session = ChatSession(
            id=new_document_id(),
            name=f"Chat with {character.name}",
            character_id=character.id,
            character_data=character.snapshot(),
            last_message="",
            last_message_time=now,
            created_at=now,
            message_count=0,
        )
        self.store.write(self.sessions_collection(user_id), session.id, session)
        logger.info(f"Created session {session.id} for user {user_id} with character {character.id}")

        self._notify_sessions(user_id)
        return session

    def get_session(self, user_id: str, session_id: str) -> ChatSession | None:
        """Get a session by id, or None if it does not exist."""
        return self.store.read(self.sessions_collection(user_id), session_id, ChatSession)

    def require_session(self, user_id: str, session_id: str) -> ChatSession:
        """Get a session by id.

        Raises:
            FileNotFoundError: If the session does not exist
        """
        session = self.get_session(user_id, session_id)
        if session is None:
            raise FileNotFoundError(f"Session {session_id} not found")
        return session

    def list_sessions(
        self,
        user_id: str,
        character_id: str | None = None,
        limit: int | None = None,
    ) -> list[ChatSession]:
        """List a user's sessions, most recently active first.

        Args:
            user_id: Owner of the sessions
            character_id: Optional filter by character
            limit: Optional maximum number of results
        """
        sessions = self.store.list_documents(self.sessions_collection(user_id), ChatSession)
        if character_id is not None:
            sessions = [s for s in sessions if s.character_id == character_id]

        sessions.sort(key=lambda s: s.last_message_time, reverse=True)

        if limit is not None:
            return sessions[:limit]
        return sessions

    def delete_session(self, user_id: str, session_id: str) -> bool:
        """Delete a session together with its messages.

        Returns:
            True if the session existed
        """
        deleted = self.store.delete(self.sessions_collection(user_id), session_id)
        self._last_created.pop((user_id, session_id), None)
        if deleted:
            logger.info(f"Deleted session {session_id} for user {user_id}")
            self._notify_messages(user_id, session_id)
            self._notify_sessions(user_id)
        return deleted

    def delete_sessions_for_character(self, user_id: str, character_id: str) -> int:
        """Delete every session that references a character.

        Returns:
            Number of sessions removed
        """
        removed = 0
        for session in self.list_sessions(user_id, character_id=character_id):
            if self.delete_session(user_id, session.id):
                removed += 1
        return removed

    def set_flag(
        self,
        user_id: str,
        session_id: str,
        flagged: bool,
        reason: str | None = None,
        admin_id: str | None = None,
    ) -> ChatSession:
        """Set or clear the moderation flag on a session.

        Clearing the flag also clears flagReason, flaggedAt and flaggedBy.

        Raises:
            FileNotFoundError: If the session does not exist
        """

        def update(session: ChatSession) -> None:
            session.is_flagged = flagged
            session.flag_reason = reason if flagged else None
            session.flagged_at = datetime.now(UTC) if flagged else None
            session.flagged_by = admin_id if flagged else None

        return self._update_session(user_id, session_id, update)

    def update_summary(self, user_id: str, session_id: str, last_message: str) -> ChatSession:
        """Refresh the summary fields after a write to the log.

        messageCount is recomputed from the stored log so a previously
        missed update corrects itself.

        Args:
            user_id: Owner of the session
            session_id: Session to update
            last_message: Text of the newest message (truncated before storing)

        Raises:
            FileNotFoundError: If the session does not exist
        """
        message_count = self.store.count(self.messages_collection(user_id, session_id))

        def update(session: ChatSession) -> None:
            session.last_message = last_message[: self.summary_length]
            session.last_message_time = datetime.now(UTC)
            session.message_count = message_count

        return self._update_session(user_id, session_id, update)

    # --- Messages ---

    def append_message(
        self,
        user_id: str,
        session_id: str,
        text: str,
        uid: str,
        character: bool = False,
        display_name: str | None = None,
        photo_url: str | None = None,
    ) -> Message:
        """Append a message to the end of a session's log.

        Creation timestamps are strictly increasing within a session so the
        log order is well defined even for writes in the same clock tick.

        Raises:
            FileNotFoundError: If the session does not exist
        """
        self.require_session(user_id, session_id)

        message = Message(
            id=new_document_id(),
            text=text,
            created_at=self._next_timestamp(user_id, session_id),
            uid=uid,
            photo_url=photo_url,
            display_name=display_name,
            character=character,
        )
        self.store.write(self.messages_collection(user_id, session_id), message.id, message)
        logger.debug(f"Appended message {message.id} to session {session_id}")

        self._notify_messages(user_id, session_id)
        return message

    def get_message(self, user_id: str, session_id: str, message_id: str) -> Message | None:
        """Get a single message, or None if it does not exist."""
        return self.store.read(self.messages_collection(user_id, session_id), message_id, Message)

    def update_message_text(self, user_id: str, session_id: str, message_id: str, text: str) -> Message:
        """Overwrite the text of an AI-authored message.

        This is the only mutation a message accepts after creation.

        Raises:
            FileNotFoundError: If the message does not exist
            ValueError: If the message was not authored by the character
        """
        message = self.get_message(user_id, session_id, message_id)
        if message is None:
            raise FileNotFoundError(f"Message {message_id} not found in session {session_id}")
        if not message.character:
            raise ValueError(f"Message {message_id} is user-authored and cannot be modified")

        message.text = text
        self.store.write(self.messages_collection(user_id, session_id), message.id, message)

        self._notify_messages(user_id, session_id)
        return message

    def delete_message(self, user_id: str, session_id: str, message_id: str) -> bool:
        """Delete a single message.

        Returns:
            True if the message existed
        """
        deleted = self.store.delete(self.messages_collection(user_id, session_id), message_id)
        if deleted:
            self._notify_messages(user_id, session_id)
        return deleted

    def get_messages(self, user_id: str, session_id: str, limit: int | None = None) -> list[Message]:
        """Read a session's log in creation order (optionally the last N)."""
        messages = self.store.list_documents(self.messages_collection(user_id, session_id), Message)
        messages.sort(key=lambda m: (m.created_at, m.id))

        if limit is not None:
            return messages[-limit:]
        return messages

    def clear_messages(self, user_id: str, session_id: str) -> int:
        """Remove every message from a session and reset its summary.

        Returns:
            Number of messages removed

        Raises:
            FileNotFoundError: If the session does not exist
        """
        self.require_session(user_id, session_id)
        removed = self.store.delete_collection(self.messages_collection(user_id, session_id))

        def update(session: ChatSession) -> None:
            session.last_message = ""
            session.last_message_time = datetime.now(UTC)
            session.message_count = 0

        self._update_session(user_id, session_id, update)
        logger.info(f"Cleared {removed} messages from session {session_id}")

        self._notify_messages(user_id, session_id)
        return removed

    # --- Listeners ---

    def subscribe(self, user_id: str, session_id: str, callback: MessagesListener) -> Callable[[], None]:
        """Listen for changes to a session's message log.

        The callback is invoked immediately with the current log, then after
        every append, overwrite, delete or clear.

        Returns:
            Function that removes the listener
        """
        key = (user_id, session_id)
        self._message_listeners.setdefault(key, []).append(callback)
        self._deliver(callback, self.get_messages(user_id, session_id))

        def unsubscribe() -> None:
            listeners = self._message_listeners.get(key, [])
            if callback in listeners:
                listeners.remove(callback)
            if not listeners:
                self._message_listeners.pop(key, None)

        return unsubscribe

    def subscribe_sessions(self, user_id: str, callback: SessionsListener) -> Callable[[], None]:
        """Listen for changes to a user's session list and summaries.

        Returns:
            Function that removes the listener
        """
        self._session_listeners.setdefault(user_id, []).append(callback)
        self._deliver(callback, self.list_sessions(user_id))

        def unsubscribe() -> None:
            listeners = self._session_listeners.get(user_id, [])
            if callback in listeners:
                listeners.remove(callback)
            if not listeners:
                self._session_listeners.pop(user_id, None)

        return unsubscribe

    # --- Helpers ---

    def _update_session(
        self,
        user_id: str,
        session_id: str,
        update_fn: Callable[[ChatSession], None],
    ) -> ChatSession:
        """Read-modify-write a session document atomically."""
        session = self.require_session(user_id, session_id)
        update_fn(session)
        self.store.write(self.sessions_collection(user_id), session_id, session)

        self._notify_sessions(user_id)
        return session

    def _next_timestamp(self, user_id: str, session_id: str) -> datetime:
        key = (user_id, session_id)
        last = self._last_created.get(key)
        if last is None:
            tail = self.get_messages(user_id, session_id, limit=1)
            if tail:
                last = tail[0].created_at

        now = datetime.now(UTC)
        if last is not None and now <= last:
            now = last + _TICK
        self._last_created[key] = now
        return now

    def _notify_messages(self, user_id: str, session_id: str) -> None:
        listeners = list(self._message_listeners.get((user_id, session_id), []))
        if not listeners:
            return
        messages = self.get_messages(user_id, session_id)
        for callback in listeners:
            self._deliver(callback, messages)

    def _notify_sessions(self, user_id: str) -> None:
        listeners = list(self._session_listeners.get(user_id, []))
        if not listeners:
            return
        sessions = self.list_sessions(user_id)
        for callback in listeners:
            self._deliver(callback, sessions)

    @staticmethod
    def _deliver(callback: Callable, payload: list) -> None:
        try:
            callback(list(payload))
        except Exception as e:
            logger.error(f"Listener {callback!r} failed: {e}")
