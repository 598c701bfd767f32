"""Request models for personad API.

Pydantic models for validating incoming API requests.
"""

from pydantic import Field

from persona_library.models.admin import AdminRole
from persona_library.models.base import CamelCaseModel


class SendMessageRequest(CamelCaseModel):
    """Request to send a message to a session.

    Attributes:
        text: Message text
        display_name: Sender display name stored on the message
        photo_url: Sender avatar stored on the message
    """

    text: str = Field(..., min_length=1, description="Message text")
    display_name: str | None = Field(default=None, description="Sender display name")
    photo_url: str | None = Field(default=None, alias="photoURL", description="Sender avatar URL")


class CreateSessionRequest(CamelCaseModel):
    """Request to start a session with a character."""

    character_id: str = Field(..., description="Character to talk to")


class LoginRequest(CamelCaseModel):
    """Login notification used to keep account records and analytics current."""

    email: str | None = Field(default=None, description="Account email")
    display_name: str | None = Field(default=None, description="Account display name")


class AdminActionRequest(CamelCaseModel):
    """Body for moderation actions."""

    reason: str = Field(default="", description="Reason recorded in the audit log")


class SetRoleRequest(CamelCaseModel):
    """Body for changing a user's admin role."""

    role: AdminRole = Field(..., description="New role")
    reason: str = Field(default="", description="Reason recorded in the audit log")
