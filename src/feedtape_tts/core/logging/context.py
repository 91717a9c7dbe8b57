"""
Request Context and Logging State.

Holds the per-request correlation id in a ContextVar (safe across threads
and asyncio tasks) plus the process-wide logging configuration.

Environment Variables:
    FEEDTAPE_TTS_SETTINGS:         settings file to read the logging section from
    FEEDTAPE_TTS_LOG_LEVEL:        level (1-4 or a level name)
    FEEDTAPE_TTS_LOG_DIR:          directory for the JSONL log file
    FEEDTAPE_TTS_JSONL_FILE:       JSONL file name
    FEEDTAPE_TTS_LOG_ROTATE_BYTES: rotate after this many bytes
    FEEDTAPE_TTS_LOG_ROTATE_BACKUP: rotated files to keep
"""
from __future__ import annotations

import os
from contextvars import ContextVar
from typing import Any, Dict

import yaml

from .levels import LEVEL_NAMES, LogLevel

_request_id: ContextVar[str] = ContextVar("request_id", default="-")

_configured: bool = False
_log_config: Dict[str, Any] = {}
_current_level: LogLevel = LogLevel.NORMAL


def get_request_id() -> str:
    """Request id of the current context, "-" outside a request."""
    return _request_id.get()


def set_request_id(rid: str) -> None:
    """Bind a request id to the current context for log correlation."""
    _request_id.set(rid)


def get_level() -> LogLevel:
    return _current_level


def set_level(level: LogLevel) -> None:
    global _current_level
    _current_level = level


def get_level_name() -> str:
    return LEVEL_NAMES.get(int(_current_level), "NORMAL")


def is_configured() -> bool:
    return _configured


def set_configured(value: bool) -> None:
    global _configured
    _configured = value


def get_log_config() -> Dict[str, Any]:
    return _log_config


def set_log_config(config: Dict[str, Any]) -> None:
    global _log_config
    _log_config = config


def _env_int(name: str, cfg: Dict[str, Any], key: str) -> None:
    raw = os.getenv(name)
    if not raw:
        return
    try:
        cfg[key] = int(raw)
    except ValueError:
        pass  # keep the settings-file value


def read_logging_config() -> Dict[str, Any]:
    """
    Resolve logging options from the settings file and the environment.

    The ``logging`` section of the settings file is read first; environment
    variables override it. A missing or unreadable settings file leaves the
    defaults in place.

    Returns:
        Dict with any of: level, log_dir, jsonl_file, rotate_max_bytes,
        rotate_backup_count.
    """
    cfg: Dict[str, Any] = {}

    settings_path = os.getenv("FEEDTAPE_TTS_SETTINGS", "config/settings.yaml")
    try:
        from feedtape_tts.core.config import load_settings
        settings = load_settings(settings_path)
        cfg.update(settings.raw.get("logging", {}) or {})
    except (FileNotFoundError, yaml.YAMLError):
        pass

    if os.getenv("FEEDTAPE_TTS_LOG_LEVEL"):
        cfg["level"] = os.environ["FEEDTAPE_TTS_LOG_LEVEL"]
    if os.getenv("FEEDTAPE_TTS_LOG_DIR"):
        cfg["log_dir"] = os.environ["FEEDTAPE_TTS_LOG_DIR"]
    if os.getenv("FEEDTAPE_TTS_JSONL_FILE"):
        cfg["jsonl_file"] = os.environ["FEEDTAPE_TTS_JSONL_FILE"]
    _env_int("FEEDTAPE_TTS_LOG_ROTATE_BYTES", cfg, "rotate_max_bytes")
    _env_int("FEEDTAPE_TTS_LOG_ROTATE_BACKUP", cfg, "rotate_backup_count")

    return cfg
