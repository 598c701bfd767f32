"""Stream consumer and incremental persister.

Turns the gateway's event stream into a live-updating AI message: the reply
row is created empty before the stream opens and overwritten with the full
accumulated text after every content fragment, so every listener on the
session sees the text grow.

Contract:
- Inputs: Chat request, frame source, target session
- Outputs: ReplyResult describing what was persisted
- Side Effects: Creates, overwrites and possibly deletes one AI message;
  refreshes the session summary
"""

import asyncio
import logging
from contextlib import aclosing
from dataclasses import dataclass
from enum import Enum

from persona_library.chat.frames import FrameKind
from persona_library.chat.frames import MalformedFrameError
from persona_library.chat.frames import parse_frame
from persona_library.chat.sources import FrameSource
from persona_library.models.chat import ChatRequest
from persona_library.models.sessions import AI_SENDER
from persona_library.sessions.manager import SessionManager

logger = logging.getLogger(__name__)

ERROR_REPLY_TEXT = "I'm sorry, I'm having trouble responding right now. Please try again."


class ReplyStatus(str, Enum):
    COMPLETE = "complete"
    PARTIAL = "partial"
    FAILED = "failed"


@dataclass
class ReplyResult:
    """Outcome of one streamed reply.

    Attributes:
        status: complete (clean finish), partial (text kept after a failure
            or cancellation) or failed (no content; an error message was stored)
        text: Text of the message left in the log
        message_id: Id of the AI message or the substituted error message
        fragments: Number of content fragments received
        error: Error reported by the gateway or raised while reading
    """

    status: ReplyStatus
    text: str
    message_id: str | None
    fragments: int = 0
    error: str | None = None


class StreamConsumer:
    """Applies a gateway stream to the conversation store.

    Not reentrant per session: callers serialize sends (see ChatClient).
    """

    def __init__(self, sessions: SessionManager, source: FrameSource) -> None:
        self.sessions = sessions
        self.source = source

    async def stream_reply(
        self,
        user_id: str,
        session_id: str,
        request: ChatRequest,
        display_name: str | None = None,
    ) -> ReplyResult:
        """Stream the AI reply for a request into a session.

        If nothing was received, the empty reply row is removed and a
        distinct error message is stored instead. Partial text is kept when
        the stream fails midway. On cancellation the reply row is settled the
        same way before the cancellation propagates.

        Args:
            user_id: Owner of the session
            session_id: Session to write the reply into
            request: Gateway request (user message, persona, prior turns)
            display_name: Name shown on the reply (defaults to the persona name)

        Returns:
            ReplyResult for the persisted reply

        Raises:
            FileNotFoundError: If the session does not exist
            asyncio.CancelledError: If the calling task is cancelled
        """
        display_name = display_name or request.character_data.name
        in_flight = self.sessions.append_message(
            user_id,
            session_id,
            "",
            AI_SENDER,
            character=True,
            display_name=display_name,
        )
        logger.debug(f"Created in-flight message {in_flight.id} in session {session_id}")

        reply = _Accumulator()
        try:
            async with aclosing(self.source.open(request)) as lines:
                async for line in lines:
                    try:
                        frame = parse_frame(line)
                    except MalformedFrameError as e:
                        logger.warning(f"Skipping malformed frame in session {session_id}: {e}")
                        continue

                    if frame is None:
                        continue
                    if frame.kind == FrameKind.DONE:
                        break
                    if frame.kind == FrameKind.ERROR:
                        logger.error(f"Gateway reported an error for session {session_id}: {frame.text}")
                        reply.error = frame.text
                        continue

                    reply.add(frame.text)
                    reply.dirty = not self._overwrite(user_id, session_id, in_flight.id, reply.text)

        except asyncio.CancelledError:
            logger.info(f"Reply stream for session {session_id} cancelled after {reply.fragments} fragments")
            self._settle(user_id, session_id, in_flight.id, display_name, reply, cancelled=True)
            raise

        except Exception as e:
            logger.error(f"Reply stream for session {session_id} failed: {e}")
            reply.error = str(e) or type(e).__name__

        return self._settle(user_id, session_id, in_flight.id, display_name, reply)

    # --- Helpers ---

    def _overwrite(self, user_id: str, session_id: str, message_id: str, text: str) -> bool:
        try:
            self.sessions.update_message_text(user_id, session_id, message_id, text)
            return True
        except Exception as e:
            logger.error(f"Failed to update in-flight message {message_id}: {e}")
            return False

    def _settle(
        self,
        user_id: str,
        session_id: str,
        message_id: str,
        display_name: str,
        reply: "_Accumulator",
        cancelled: bool = False,
    ) -> ReplyResult:
        if reply.text:
            if reply.dirty:
                self._overwrite(user_id, session_id, message_id, reply.text)
            self._refresh_summary(user_id, session_id, reply.text)

            status = ReplyStatus.COMPLETE
            if reply.error is not None or cancelled:
                status = ReplyStatus.PARTIAL
            return ReplyResult(status, reply.text, message_id, reply.fragments, reply.error)

        try:
            self.sessions.delete_message(user_id, session_id, message_id)
        except Exception as e:
            logger.error(f"Failed to remove empty in-flight message {message_id}: {e}")

        if cancelled:
            return ReplyResult(ReplyStatus.FAILED, "", None, 0, "cancelled")

        logger.warning(f"No content received for session {session_id}, storing error message")
        error_message_id = None
        try:
            error_message = self.sessions.append_message(
                user_id,
                session_id,
                ERROR_REPLY_TEXT,
                AI_SENDER,
                character=True,
                display_name=display_name,
            )
            error_message_id = error_message.id
        except Exception as e:
            logger.error(f"Failed to store error message in session {session_id}: {e}")

        self._refresh_summary(user_id, session_id, ERROR_REPLY_TEXT)
        return ReplyResult(
            ReplyStatus.FAILED,
            ERROR_REPLY_TEXT,
            error_message_id,
            0,
            reply.error or "empty response",
        )

    def _refresh_summary(self, user_id: str, session_id: str, text: str) -> None:
        try:
            self.sessions.update_summary(user_id, session_id, text)
        except Exception as e:
            logger.error(f"Failed to update summary for session {session_id}: {e}")


class _Accumulator:
    """In-memory reply text built from content fragments in receipt order."""

    def __init__(self) -> None:
        self.text = ""
        self.fragments = 0
        self.error: str | None = None
        self.dirty = False

    def add(self, fragment: str) -> None:
        self.text += fragment
        self.fragments += 1
