"""Streaming completion gateway endpoint.

POST /api/chat relays the model's reply as ``data: <json>\\n\\n`` frames that
always end with ``data: [DONE]\\n\\n``. Errors before streaming starts use a
JSON ``{"error": ...}`` body.
"""

import logging
from typing import Annotated

from fastapi import APIRouter
from fastapi import Depends
from fastapi import Request
from fastapi.responses import JSONResponse
from fastapi.responses import StreamingResponse
from pydantic import ValidationError

from persona_library.models.chat import ChatRequest

from ..dependencies import get_gateway
from ..models import ErrorResponse
from ..services.gateway import CompletionGateway

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api", tags=["chat"])

MISSING_FIELDS_ERROR = "Missing required fields"
REQUEST_FAILED_ERROR = "Failed to process request"


def _error(status_code: int, message: str) -> JSONResponse:
    return JSONResponse(status_code=status_code, content=ErrorResponse(error=message).model_dump())


@router.post(
    "/chat",
    response_model=None,
    responses={400: {"model": ErrorResponse}, 500: {"model": ErrorResponse}},
)
async def chat(
    request: Request,
    gateway: Annotated[CompletionGateway, Depends(get_gateway)],
) -> StreamingResponse | JSONResponse:
    """Stream a persona reply.

    Body: ``{userMessage, characterData, messages}``. A missing or empty
    userMessage, or a missing characterData object, is rejected with 400
    before the provider is contacted. A provider that rejects the request
    before streaming begins gives a 500.

    Returns:
        text/event-stream of content frames, at most one error frame, then [DONE]
    """
    try:
        body = await request.json()
    except ValueError:
        return _error(400, MISSING_FIELDS_ERROR)

    try:
        chat_request = ChatRequest.model_validate(body)
    except ValidationError as e:
        logger.info(f"Rejected chat request: {e.error_count()} validation error(s)")
        return _error(400, MISSING_FIELDS_ERROR)

    try:
        provider = gateway.open_provider()
        fragments = await gateway.open_stream(chat_request, provider)
    except Exception as e:
        logger.error(f"Failed to prepare completion request: {e}")
        return _error(500, REQUEST_FAILED_ERROR)

    logger.info(f"Streaming reply as {chat_request.character_data.name} with {len(chat_request.messages)} prior messages")
    return StreamingResponse(
        gateway.relay_frames(fragments),
        media_type="text/event-stream",
        headers={"Cache-Control": "no-cache", "Connection": "keep-alive"},
    )
