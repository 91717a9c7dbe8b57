"""
FastAPI Dependency Injection Providers.

Dependency hierarchy:
    1. get_settings() - Loads and caches application configuration
    2. get_tts_service() - Creates/returns the singleton TTSService
    3. get_user_id() - Reads the caller's id from the X-User-Id header

Authentication happens in front of this service; the gateway forwards the
authenticated user id in X-User-Id.

Usage in Route Handlers:
    from fastapi import Depends
    from feedtape_tts.api.dependencies import get_tts_service

    @router.get("/api/tts/usage")
    def usage(service: TTSService = Depends(get_tts_service)):
        ...
"""
from __future__ import annotations

import os
from functools import lru_cache
from typing import Optional

from fastapi import Header

from feedtape_tts.core.config import Settings, load_settings
from feedtape_tts.core.logging import get_logger, warn
from feedtape_tts.services.tts_service import TTSService, get_service

_LOG = get_logger("feedtape-tts.api")


@lru_cache(maxsize=1)
def get_settings() -> Settings:
    """
    Load and cache application settings.

    The path comes from FEEDTAPE_TTS_SETTINGS (default
    config/settings.yaml). A missing file means built-in defaults.
    """
    path = os.getenv("FEEDTAPE_TTS_SETTINGS", "config/settings.yaml")
    try:
        return load_settings(path)
    except FileNotFoundError:
        warn(_LOG, "settings_missing", path=path, using="defaults")
        return Settings(raw={})


def get_tts_service() -> TTSService:
    """
    Get the singleton TTSService instance.

    All requests share one service: one provider client, one detector and
    one result cache.
    """
    return get_service(get_settings())


def get_user_id(x_user_id: Optional[str] = Header(default=None)) -> Optional[str]:
    """Raw X-User-Id header; validated by the route so errors share one format."""
    return x_user_id
