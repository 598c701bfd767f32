"""Frame sources: where the stream consumer reads gateway lines from."""

import logging
from collections.abc import AsyncIterator
from typing import Protocol

import httpx

from persona_library.models.chat import ChatRequest

logger = logging.getLogger(__name__)


class GatewayError(RuntimeError):
    """Raised when the gateway refuses a request before streaming starts."""

    def __init__(self, status_code: int, body: str) -> None:
        super().__init__(f"Gateway returned {status_code}: {body}")
        self.status_code = status_code
        self.body = body


class FrameSource(Protocol):
    """Anything that turns a chat request into event-stream lines."""

    def open(self, request: ChatRequest) -> AsyncIterator[str]:
        """Send the request and yield response lines without trailing newlines."""
        ...


class HttpFrameSource:
    """Reads frames from a remote gateway over HTTP.

    Example:
        >>> source = HttpFrameSource("http://127.0.0.1:8420/api/chat")
        >>> async for line in source.open(request):
        ...     print(line)
    """

    def __init__(
        self,
        url: str,
        client: httpx.AsyncClient | None = None,
        timeout_seconds: float | None = None,
    ) -> None:
        """Initialize the source.

        Args:
            url: Gateway endpoint (POST /api/chat)
            client: Optional shared client; a short-lived one is created per request otherwise
            timeout_seconds: Read timeout between chunks (None waits forever)
        """
        self.url = url
        self.client = client
        self.timeout = httpx.Timeout(10.0, read=timeout_seconds)

    async def open(self, request: ChatRequest) -> AsyncIterator[str]:
        """POST the request and yield the streamed response line by line.

        Raises:
            GatewayError: If the gateway answers with a non-200 status
            httpx.HTTPError: On transport failures and read timeouts
        """
        body = request.model_dump(mode="json", by_alias=True)

        if self.client is not None:
            async for line in self._stream(self.client, body):
                yield line
            return

        async with httpx.AsyncClient() as client:
            async for line in self._stream(client, body):
                yield line

    async def _stream(self, client: httpx.AsyncClient, body: dict) -> AsyncIterator[str]:
        async with client.stream("POST", self.url, json=body, timeout=self.timeout) as response:
            if response.status_code != 200:
                text = (await response.aread()).decode("utf-8", errors="replace")
                logger.error(f"Gateway request failed with status {response.status_code}: {text}")
                raise GatewayError(response.status_code, text)

            async for line in response.aiter_lines():
                yield line
