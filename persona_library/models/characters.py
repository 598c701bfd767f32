"""Character records.

Characters are stored at users/{uid}/characters/{id}.json. A session keeps its
own CharacterSnapshot copy taken when the session starts.
"""

from datetime import datetime
from enum import Enum

from pydantic import Field
from pydantic import field_validator

from persona_library.models.base import CamelCaseModel

DESCRIPTION_MAX_LENGTH = 500


class Tone(str, Enum):
    """Communication style a character speaks in."""

    FRIENDLY = "friendly"
    FORMAL = "formal"
    HUMOROUS = "humorous"
    SERIOUS = "serious"
    CASUAL = "casual"
    ENTHUSIASTIC = "enthusiastic"


class ModerationFields(CamelCaseModel):
    """Optional moderation markers shared by characters and chat sessions."""

    is_flagged: bool = Field(default=False, description="Whether an admin flagged this record")
    flag_reason: str | None = Field(default=None, description="Reason given when flagging")
    flagged_at: datetime | None = Field(default=None, description="When the record was flagged")
    flagged_by: str | None = Field(default=None, description="Admin id that flagged the record")


class CharacterProfile(CamelCaseModel):
    """User-authored persona fields, validated at creation time."""

    name: str = Field(min_length=1, max_length=100, description="Character name")
    age: int = Field(ge=1, le=100, description="Character age")
    profession: str = Field(min_length=1, max_length=100, description="Character profession")
    tone: Tone = Field(description="Communication tone")
    description: str = Field(default="", max_length=DESCRIPTION_MAX_LENGTH, description="Free-text background")

    @field_validator("name", "profession")
    @classmethod
    def strip_required_text(cls, v: str) -> str:
        """Reject names and professions that are only whitespace."""
        stripped = v.strip()
        if not stripped:
            raise ValueError("must not be blank")
        return stripped


class CharacterCreate(CharacterProfile):
    """Payload for creating a character."""


class CharacterUpdate(CamelCaseModel):
    """Partial update for an existing character. Unset fields are left alone."""

    name: str | None = Field(default=None, min_length=1, max_length=100)
    age: int | None = Field(default=None, ge=1, le=100)
    profession: str | None = Field(default=None, min_length=1, max_length=100)
    tone: Tone | None = None
    description: str | None = Field(default=None, max_length=DESCRIPTION_MAX_LENGTH)


class CharacterSnapshot(CamelCaseModel):
    """Denormalized copy of a character embedded in a chat session.

    Loosely typed on purpose: snapshots outlive the character they were taken
    from, and synthetic snapshots (legacy messages) carry placeholder values.
    """

    id: str | None = None
    name: str
    age: int = 0
    profession: str = ""
    tone: str = ""
    description: str = ""
    created_at: datetime | None = None
    last_used: datetime | None = None


class Character(ModerationFields, CharacterProfile):
    """Stored character owned by exactly one user."""

    id: str = Field(description="Character id")
    created_at: datetime = Field(description="Creation timestamp")
    last_used: datetime = Field(description="Bumped every time the character is selected")

    def snapshot(self) -> CharacterSnapshot:
        """Deep copy the persona fields for embedding into a new session."""
        return CharacterSnapshot(
            id=self.id,
            name=self.name,
            age=self.age,
            profession=self.profession,
            tone=self.tone.value,
            description=self.description,
            created_at=self.created_at,
            last_used=self.last_used,
        )
