"""Model provider used by the completion gateway.

The gateway only needs a stream of text fragments for a system instruction
and a turn history; GeminiProvider is the production implementation.
"""

import logging
from collections.abc import AsyncIterator
from dataclasses import dataclass
from typing import Protocol

from google import genai
from google.genai import types

logger = logging.getLogger(__name__)


class ProviderUnavailableError(RuntimeError):
    """Raised when the provider cannot be constructed (e.g. no API key)."""


@dataclass(frozen=True)
class Turn:
    """One entry of the conversation sent to the model.

    Attributes:
        role: "user" or "model"
        text: Turn text
    """

    role: str
    text: str


class ModelProvider(Protocol):
    """Streaming chat-completion backend."""

    async def open_stream(
        self,
        system_instruction: str,
        turns: list[Turn],
        temperature: float,
    ) -> AsyncIterator[str]:
        """Send the request and return its text fragments.

        Awaiting this raises if the request itself is rejected. The returned
        iterator yields fragments in the order the model produces them.
        """
        ...


class GeminiProvider:
    """Streams completions from Google Gemini."""

    def __init__(self, api_key: str, model: str = "gemini-2.5-flash") -> None:
        """Create the Gemini client.

        Args:
            api_key: Gemini API key
            model: Model name

        Raises:
            ProviderUnavailableError: If no API key is configured
        """
        if not api_key:
            raise ProviderUnavailableError("Gemini API key is not configured (set GEMINI_API_KEY)")
        self.model = model
        self.client = genai.Client(api_key=api_key)

    async def open_stream(
        self,
        system_instruction: str,
        turns: list[Turn],
        temperature: float,
    ) -> AsyncIterator[str]:
        contents = [types.Content(role=turn.role, parts=[types.Part(text=turn.text)]) for turn in turns]
        config = types.GenerateContentConfig(
            system_instruction=system_instruction,
            temperature=temperature,
        )

        logger.debug(f"Requesting {self.model} stream with {len(contents)} turns")
        stream = await self.client.aio.models.generate_content_stream(
            model=self.model,
            contents=contents,
            config=config,
        )

        return self._fragments(stream)

    async def _fragments(self, stream) -> AsyncIterator[str]:
        chunk_count = 0
        async for chunk in stream:
            chunk_count += 1
            if chunk.text:
                yield chunk.text
        logger.debug(f"Stream completed with {chunk_count} chunks")
