"""Status router for personad API.

Provides health check and status information.
"""

import logging
import time
from typing import Annotated

from fastapi import APIRouter
from fastapi import Depends

from persona_library.config import PersonaSettings
from persona_library.storage import get_state_dir

from .. import __version__
from ..dependencies import get_settings
from ..models import StatusResponse

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/v1", tags=["status"])

# Track daemon start time for uptime calculation
_start_time = time.time()


@router.get("/status", response_model=StatusResponse)
async def get_status(settings: Annotated[PersonaSettings, Depends(get_settings)]) -> StatusResponse:
    """Get daemon status.

    Returns:
        Daemon status information including version, uptime, state directory and model
    """
    return StatusResponse(
        status="running",
        version=__version__,
        uptime_seconds=time.time() - _start_time,
        state_dir=str(get_state_dir()),
        model=settings.model,
    )


@router.get("/health")
async def health_check() -> dict[str, str]:
    """Health check endpoint.

    Returns:
        Simple health status
    """
    return {"status": "healthy"}
