"""Streaming completion gateway.

Compiles the persona, maps prior messages to model turns, and relays the
provider's fragments as event frames. The frame stream always ends with
exactly one ``[DONE]`` frame.
"""

import logging
from collections.abc import AsyncIterator
from collections.abc import Callable

from persona_library.chat.frames import DONE_FRAME
from persona_library.chat.frames import content_frame
from persona_library.chat.frames import error_frame
from persona_library.models.chat import ChatRequest
from persona_library.models.chat import PriorTurn
from persona_library.persona import compile_persona

from .provider import ModelProvider
from .provider import Turn

logger = logging.getLogger(__name__)

STREAM_ERROR_MESSAGE = "Stream processing failed"


def build_turns(messages: list[PriorTurn], user_message: str) -> list[Turn]:
    """Map prior messages to model turns and append the new user message.

    Messages with empty text are dropped. Character-authored messages become
    "model" turns, everything else "user".
    """
    turns = [Turn(role="model" if m.character else "user", text=m.text) for m in messages if m.text]
    turns.append(Turn(role="user", text=user_message))
    return turns


class CompletionGateway:
    """Stateless bridge between chat requests and a model provider."""

    def __init__(self, provider_factory: Callable[[], ModelProvider], temperature: float = 0.7) -> None:
        """Initialize the gateway.

        Args:
            provider_factory: Returns the provider; may raise if it cannot be built
            temperature: Sampling temperature for every request
        """
        self.provider_factory = provider_factory
        self.temperature = temperature

    def open_provider(self) -> ModelProvider:
        """Get the provider before streaming starts.

        Raises:
            Exception: Whatever the factory raises (mapped to 500 by the router)
        """
        return self.provider_factory()

    async def open_stream(self, request: ChatRequest, provider: ModelProvider) -> AsyncIterator[str]:
        """Compile the persona and send the request to the provider.

        Returns:
            The provider's fragment iterator

        Raises:
            Exception: Whatever the provider raises while opening the request
        """
        system_instruction = compile_persona(request.character_data)
        turns = build_turns(request.messages, request.user_message)
        return await provider.open_stream(system_instruction, turns, self.temperature)

    async def relay_frames(self, fragments: AsyncIterator[str]) -> AsyncIterator[str]:
        """Yield event frames for an opened stream.

        Each non-empty fragment becomes one content frame, unmerged and in
        receipt order. A provider failure yields one error frame. The done
        frame is always last.
        """
        count = 0
        try:
            async for fragment in fragments:
                if fragment:
                    count += 1
                    yield content_frame(fragment)
        except Exception as e:
            logger.error(f"Stream processing error after {count} fragments: {e}")
            yield error_frame(STREAM_ERROR_MESSAGE)

        yield DONE_FRAME

    async def stream_frames(self, request: ChatRequest, provider: ModelProvider) -> AsyncIterator[str]:
        """Open the request and yield its frames.

        A failure to open becomes a single error frame followed by done.
        """
        try:
            fragments = await self.open_stream(request, provider)
        except Exception as e:
            logger.error(f"Failed to open provider stream: {e}")
            yield error_frame(STREAM_ERROR_MESSAGE)
            yield DONE_FRAME
            return

        async for frame in self.relay_frames(fragments):
            yield frame


class GatewayFrameSource:
    """Frame source that runs the gateway in-process instead of over HTTP."""

    def __init__(self, gateway: CompletionGateway) -> None:
        self.gateway = gateway

    async def open(self, request: ChatRequest) -> AsyncIterator[str]:
        provider = self.gateway.open_provider()
        async for frame in self.gateway.stream_frames(request, provider):
            for line in frame.split("\n"):
                yield line
