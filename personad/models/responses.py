"""Response models for personad API.

Pydantic models for API responses.
"""

from pydantic import Field

from persona_library.models.base import CamelCaseModel
from persona_library.models.characters import Character
from persona_library.models.characters import CharacterSnapshot
from persona_library.models.sessions import ChatSession
from persona_library.models.sessions import Message


class StatusResponse(CamelCaseModel):
    """Daemon status.

    Attributes:
        status: Daemon status (running)
        version: Daemon version
        uptime_seconds: Seconds since start
        state_dir: Directory holding stored documents
        model: Model used by the gateway
    """

    status: str = Field(..., description="Daemon status")
    version: str = Field(..., description="Daemon version")
    uptime_seconds: float = Field(..., description="Uptime in seconds")
    state_dir: str = Field(..., description="State directory")
    model: str = Field(..., description="Gateway model")


class MessagesResponse(CamelCaseModel):
    """A session's message log in creation order."""

    session_id: str = Field(..., description="Session ID")
    messages: list[Message] = Field(default_factory=list, description="Ordered messages")


class ReplyResponse(CamelCaseModel):
    """Outcome of a streamed reply."""

    status: str = Field(..., description="complete, partial or failed")
    text: str = Field(..., description="Text left in the log")
    message_id: str | None = Field(default=None, description="Id of the reply or error message")
    fragments: int = Field(default=0, description="Content fragments received")
    error: str | None = Field(default=None, description="Error reported while streaming")


class SendMessageResponse(CamelCaseModel):
    """Result of a synchronous send."""

    session: ChatSession
    user_message: Message
    reply: ReplyResponse


class ChatContextResponse(CamelCaseModel):
    """What the chat surface should open on."""

    character_data: CharacterSnapshot
    character: Character | None = None
    session: ChatSession | None = None
    messages: list[Message] = Field(default_factory=list)


class DeleteCharacterResponse(CamelCaseModel):
    character_id: str
    sessions_removed: int


class ClearMessagesResponse(CamelCaseModel):
    session_id: str
    removed: int
