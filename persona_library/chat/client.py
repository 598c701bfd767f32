"""Send orchestration: one user message in, one streamed AI reply out."""

import asyncio
import logging
import weakref
from dataclasses import dataclass

from persona_library.admin.analytics import AnalyticsService
from persona_library.characters.manager import CharacterManager
from persona_library.chat.consumer import ReplyResult
from persona_library.chat.consumer import StreamConsumer
from persona_library.models.chat import ChatRequest
from persona_library.models.chat import PriorTurn
from persona_library.models.sessions import ChatSession
from persona_library.models.sessions import Message
from persona_library.models.sessions import SenderProfile
from persona_library.sessions.legacy import is_legacy_session_id
from persona_library.sessions.manager import SessionManager

logger = logging.getLogger(__name__)


@dataclass
class SendResult:
    """What a send produced."""

    session: ChatSession
    user_message: Message
    reply: ReplyResult


class SessionBusyError(RuntimeError):
    """Raised when a reply is already streaming into the session."""

    def __init__(self, session_id: str) -> None:
        super().__init__(f"Session {session_id} already has a reply in progress")
        self.session_id = session_id


class ChatClient:
    """Sends user messages and streams the character's replies.

    At most one reply is in flight per session: sends to the same session
    wait for each other. Use is_busy() to reject instead of waiting.
    """

    def __init__(
        self,
        characters: CharacterManager,
        sessions: SessionManager,
        consumer: StreamConsumer,
        analytics: AnalyticsService | None = None,
    ) -> None:
        self.characters = characters
        self.sessions = sessions
        self.consumer = consumer
        self.analytics = analytics
        # Entries live only while a send holds or waits on the lock
        self._locks: weakref.WeakValueDictionary[str, asyncio.Lock] = weakref.WeakValueDictionary()
        self._background: set[asyncio.Task] = set()

    def is_busy(self, session_id: str) -> bool:
        """True while a reply is streaming into the session."""
        lock = self._locks.get(session_id)
        return lock is not None and lock.locked()

    def start_session(self, user_id: str, character_id: str) -> ChatSession:
        """Create a session for a character, bumping its lastUsed.

        Raises:
            FileNotFoundError: If the character does not exist
        """
        character = self.characters.touch(user_id, character_id)
        session = self.sessions.create_session(user_id, character)
        if self.analytics is not None:
            self.analytics.track_chat_started(user_id, character.id, character.name)
        return session

    async def send_message(
        self,
        user_id: str,
        text: str,
        session_id: str | None = None,
        character_id: str | None = None,
        sender: SenderProfile | None = None,
    ) -> SendResult:
        """Append a user message and stream the reply into the session.

        Args:
            user_id: Sender and owner of the session
            text: Message text
            session_id: Existing session to continue
            character_id: Character to start a new session with (when no session_id)
            sender: Display name and avatar stored on the user message

        Returns:
            The session, the stored user message and the reply result

        Raises:
            ValueError: If text is empty, neither id is given, or the session is read-only
            FileNotFoundError: If the session or character does not exist
        """
        session = self._resolve_session(user_id, text, session_id, character_id)
        async with self._lock_for(session.id):
            return await self._send_locked(user_id, session, text, sender or SenderProfile())

    async def send_in_background(
        self,
        user_id: str,
        text: str,
        session_id: str,
        sender: SenderProfile | None = None,
    ) -> "asyncio.Task[SendResult]":
        """Claim the session and stream the reply in a background task.

        The session is busy from the moment this returns, so a second send
        is rejected instead of queued. Failures inside the task are logged.

        Raises:
            ValueError: If text is empty or the session is read-only
            FileNotFoundError: If the session does not exist
            SessionBusyError: If a reply is already streaming into the session
        """
        session = self._resolve_session(user_id, text, session_id, None)
        lock = self._lock_for(session.id)
        if lock.locked():
            raise SessionBusyError(session.id)
        await lock.acquire()

        async def run() -> SendResult:
            try:
                return await self._send_locked(user_id, session, text, sender or SenderProfile())
            finally:
                lock.release()

        task = asyncio.create_task(run())
        self._background.add(task)
        task.add_done_callback(self._background_done)
        return task

    # --- Helpers ---

    def _lock_for(self, session_id: str) -> asyncio.Lock:
        lock = self._locks.get(session_id)
        if lock is None:
            lock = asyncio.Lock()
            self._locks[session_id] = lock
        return lock

    def _resolve_session(
        self,
        user_id: str,
        text: str,
        session_id: str | None,
        character_id: str | None,
    ) -> ChatSession:
        if not text or not text.strip():
            raise ValueError("Message text must not be empty")

        if session_id is not None:
            if is_legacy_session_id(session_id):
                raise ValueError("Legacy messages are read-only")
            return self.sessions.require_session(user_id, session_id)
        if character_id is not None:
            return self.start_session(user_id, character_id)
        raise ValueError("Either session_id or character_id is required")

    async def _send_locked(self, user_id: str, session: ChatSession, text: str, sender: SenderProfile) -> SendResult:
        prior = self.sessions.get_messages(user_id, session.id)
        user_message = self.sessions.append_message(
            user_id,
            session.id,
            text,
            user_id,
            display_name=sender.display_name,
            photo_url=sender.photo_url,
        )
        try:
            self.sessions.update_summary(user_id, session.id, text)
        except Exception as e:
            logger.error(f"Failed to update summary for session {session.id}: {e}")

        request = ChatRequest(
            user_message=text,
            character_data=session.character_data,
            messages=[PriorTurn(text=m.text, character=m.character) for m in prior],
        )
        reply = await self.consumer.stream_reply(
            user_id,
            session.id,
            request,
            display_name=session.character_data.name,
        )

        if self.analytics is not None:
            self.analytics.track_message_sent(user_id, session.character_id, len(text))

        logger.info(f"Reply in session {session.id} finished with status {reply.status.value}")
        return SendResult(
            session=self.sessions.get_session(user_id, session.id) or session,
            user_message=user_message,
            reply=reply,
        )

    def _background_done(self, task: asyncio.Task) -> None:
        self._background.discard(task)
        if task.cancelled():
            return
        error = task.exception()
        if error is not None:
            logger.error(f"Background send failed: {error}")
