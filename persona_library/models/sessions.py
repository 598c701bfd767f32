"""Chat session and message records."""

from datetime import datetime

from pydantic import Field

from persona_library.models.base import CamelCaseModel
from persona_library.models.characters import CharacterSnapshot
from persona_library.models.characters import ModerationFields

AI_SENDER = "ai"


class Message(CamelCaseModel):
    """Single message in a session's log.

    Stored at users/{uid}/chatSessions/{sessionId}/messages/{id}.json.
    Append-only, except the text of an AI-authored reply while it streams.
    """

    id: str = Field(description="Message id")
    text: str = Field(description="Message body (markdown for AI replies)")
    created_at: datetime = Field(description="Creation timestamp, the canonical order")
    uid: str = Field(description="Sender user id, or 'ai' for character replies")
    photo_url: str | None = Field(default=None, alias="photoURL", description="Sender avatar")
    display_name: str | None = Field(default=None, description="Sender display name")
    character: bool = Field(default=False, description="True if authored by the AI character")


class ChatSession(ModerationFields):
    """One conversation thread tied to one character.

    characterData is a snapshot taken at session start and is not updated
    when the character is edited later.
    """

    id: str = Field(description="Session id")
    name: str = Field(description="Display name, e.g. 'Chat with Nova'")
    character_id: str = Field(description="Id of the character this session belongs to")
    character_data: CharacterSnapshot = Field(description="Character snapshot at session start")
    last_message: str = Field(default="", description="Truncated text of the latest message")
    last_message_time: datetime = Field(description="Time of the latest message")
    created_at: datetime = Field(description="Session creation timestamp")
    message_count: int = Field(default=0, ge=0, description="Number of messages in the log")


class SenderProfile(CamelCaseModel):
    """Identity attached to user-authored messages."""

    display_name: str | None = None
    photo_url: str | None = Field(default=None, alias="photoURL")
