"""Error models for personad API."""

from pydantic import Field

from persona_library.models.base import CamelCaseModel


class ErrorResponse(CamelCaseModel):
    """Error body returned by the completion gateway.

    Attributes:
        error: Error message
    """

    error: str = Field(..., description="Error message")
