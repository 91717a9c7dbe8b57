"""
FastAPI Application Entry Point.

Usage:
    # Run with uvicorn
    uvicorn feedtape_tts.main:app --host 0.0.0.0 --port 8000

    # Or use the module directly
    python -m uvicorn feedtape_tts.main:app --reload
"""

from __future__ import annotations

import os
from contextlib import asynccontextmanager

from fastapi import FastAPI

from feedtape_tts import __version__
from feedtape_tts.api.dependencies import get_tts_service
from feedtape_tts.api.routes import router
from feedtape_tts.core.logging import configure_logging, get_logger, info


def init_service() -> None:
    """
    Build the shared TTSService at startup.

    Configuration errors (unknown provider, bad limits) then fail the boot
    instead of the first request. Skipped with FEEDTAPE_TTS_SKIP_INIT=1.
    """
    if os.getenv("FEEDTAPE_TTS_SKIP_INIT", "0") == "1":
        return
    service = get_tts_service()
    info(get_logger("feedtape-tts.main"), "service_ready", provider=service.provider.name,
         cache=service.cache is not None)


@asynccontextmanager
async def lifespan(app: FastAPI):
    init_service()
    yield


def create_app() -> FastAPI:
    """
    Create and configure the FastAPI application.

    Configures structured logging (FEEDTAPE_TTS_LOG_LEVEL), registers the
    routes and the lifespan that initializes the service.
    """
    configure_logging()

    app = FastAPI(title="feedtape-tts", version=__version__, lifespan=lifespan)
    app.include_router(router)

    return app


# Global application instance for ASGI servers (uvicorn, gunicorn, etc.)
app = create_app()
