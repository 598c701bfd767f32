"""Request body accepted by the completion gateway."""

from pydantic import Field

from persona_library.models.base import CamelCaseModel
from persona_library.models.characters import CharacterSnapshot


class PriorTurn(CamelCaseModel):
    """Earlier message passed as context. Extra message fields are ignored.

    Null text is dropped from the model history and a null character flag
    counts as a user turn.
    """

    text: str | None = None
    character: bool | None = False


class ChatRequest(CamelCaseModel):
    """Body of POST /api/chat.

    Example:
        {"userMessage": "Hi", "characterData": {"name": "Nova", ...}, "messages": []}
    """

    user_message: str = Field(min_length=1, description="New user message")
    character_data: CharacterSnapshot = Field(description="Persona to answer as")
    messages: list[PriorTurn] = Field(default_factory=list, description="Prior turns, oldest first")
