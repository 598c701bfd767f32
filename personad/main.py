"""Main FastAPI application for personad daemon.

This module creates and configures the FastAPI application that exposes
persona_library via REST API with SSE streaming, plus the streaming
completion gateway at /api/chat.
"""

import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from persona_library.config import PersonaSettings
from persona_library.config import load_config
from persona_library.storage import get_state_dir

from . import __version__
from .routers import admin_router
from .routers import characters_router
from .routers import chat_router
from .routers import messages_router
from .routers import sessions_router
from .routers import status_router
from .routers import stream_router

# Configure logging
logging.basicConfig(
    level=logging.INFO,
    format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
)
logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Application lifespan manager.

    Handles startup and shutdown events.

    Args:
        app: FastAPI application instance
    """
    # Startup
    config = load_config()
    logger.info(f"Starting personad daemon on {config.host}:{config.port}")
    logger.info(f"State directory: {get_state_dir()}")
    if not config.gemini_api_key:
        logger.warning("No Gemini API key configured; /api/chat will answer 500 until one is set")

    yield

    # Shutdown
    logger.info("Shutting down personad daemon")


# Create FastAPI application
app = FastAPI(
    title="personad",
    description="REST API daemon for persona chat with SSE streaming support",
    version=__version__,
    lifespan=lifespan,
)

# Origins come from the environment (PERSONAD_CORS_ORIGINS)
app.add_middleware(
    CORSMiddleware,
    allow_origins=PersonaSettings().cors_origins,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

# Include routers
app.include_router(chat_router)
app.include_router(characters_router)
app.include_router(sessions_router)
app.include_router(messages_router)
app.include_router(stream_router)
app.include_router(admin_router)
app.include_router(status_router)


@app.get("/")
async def root() -> dict[str, str]:
    """Root endpoint.

    Returns:
        Welcome message with API information
    """
    return {
        "name": "personad",
        "version": __version__,
        "description": "REST API daemon for persona chat",
        "docs": "/docs",
        "openapi": "/openapi.json",
    }
