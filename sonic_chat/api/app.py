"""Relay HTTP application: /api/chat and /health."""

import logging
from collections.abc import AsyncGenerator
from contextlib import asynccontextmanager

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from sonic_chat import __version__
from sonic_chat.api.chat import router as chat_router
from sonic_chat.relay.service import close_relay_service

logger = logging.getLogger(__name__)

DESCRIPTION = (
    "Streaming relay between the chat UI and an OpenAI-compatible "
    "completion API. Generated text is forwarded fragment by fragment "
    "as it arrives."
)


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncGenerator[None]:
    """Close the shared upstream client when the server stops."""
    logger.info("Sonic Chat relay ready")
    yield
    await close_relay_service()
    logger.info("Sonic Chat relay stopped")


async def health_check() -> dict[str, str]:
    return {"status": "healthy", "service": "sonic-chat"}


def create_app() -> FastAPI:
    """Build the relay app.

    CORS is open so a UI served from another origin can reach the relay.
    """
    application = FastAPI(
        title="Sonic Chat API",
        description=DESCRIPTION,
        version=__version__,
        lifespan=lifespan,
    )
    application.add_middleware(
        CORSMiddleware,
        allow_origins=["*"],
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
        expose_headers=["*"],
    )
    application.include_router(chat_router)
    application.add_api_route("/health", health_check, methods=["GET"])
    return application


app = create_app()
