"""
Log formatters: JSON Lines for files, colored single lines for the console.

JSONL:
    {"ts":"2026-01-15T14:30:05+00:00","level":2,"tag":"INFO","message":"synthesized",
     "request_id":"a1b2c3d4e5f6","seconds":0.84,"extra":{"batches":2,"provider":"polly"}}

Console:
    14:30:05 [ INFO  ] (a1b2c3d4e5f6) synthesized batches=2 provider=polly 0.840s
"""
from __future__ import annotations

import json
import logging
from datetime import datetime
from typing import Any, Dict

from .colors import Colors, get_tag_color


def _colorize(text: str, color: str) -> str:
    # Read the flag at call time so configure_logging() and tests can flip it.
    from . import colors
    if not colors.USE_COLORS:
        return text
    return f"{color}{text}{Colors.RESET}"


def _seconds_color(seconds: float) -> str:
    if seconds < 0.5:
        return Colors.GREEN
    if seconds < 5.0:
        return Colors.YELLOW
    return Colors.RED


# Fields worth highlighting in the console; everything else is dimmed.
_FIELD_COLORS = {
    "provider": Colors.MAGENTA,
    "language": Colors.BLUE,
    "code": Colors.YELLOW,
    "cache": Colors.CYAN,
}


class JsonlFormatter(logging.Formatter):
    """One JSON object per record, for log shipping and jq."""

    def format(self, record: logging.LogRecord) -> str:
        payload: Dict[str, Any] = {
            "ts": datetime.fromtimestamp(record.created).astimezone().isoformat(),
            "level": getattr(record, "numeric_level", 2),
            "tag": getattr(record, "tag", record.levelname),
            "message": record.getMessage(),
            "request_id": getattr(record, "request_id", "-"),
        }

        event = getattr(record, "event", None)
        if event:
            payload["event"] = event

        seconds = getattr(record, "seconds", None)
        if seconds is not None:
            payload["seconds"] = seconds

        extra_data = getattr(record, "extra_data", None)
        if extra_data:
            payload["extra"] = extra_data

        return json.dumps(payload, ensure_ascii=False, default=str)


class ColoredConsoleFormatter(logging.Formatter):
    """
    Human-readable console lines.

    Format: ``HH:MM:SS [ TAG ] (request_id) message key=value ... 0.123s``.
    The request id is omitted outside a request. Durations are green under
    half a second, yellow under five seconds, red above.
    """

    def format(self, record: logging.LogRecord) -> str:
        ts = datetime.fromtimestamp(record.created).strftime("%H:%M:%S")
        tag = getattr(record, "tag", record.levelname)
        rid = getattr(record, "request_id", "-")

        parts = [
            _colorize(ts, Colors.DIM),
            _colorize(f"[{tag:^7}]", get_tag_color(tag)),
        ]
        if rid != "-":
            parts.append(_colorize(f"({rid})", Colors.DIM + Colors.CYAN))
        parts.append(record.getMessage())

        event = getattr(record, "event", None)
        if event:
            parts.append(_colorize(f"event={event}", Colors.BLUE))

        extra_data = getattr(record, "extra_data", None)
        if extra_data:
            for key, value in extra_data.items():
                parts.append(_colorize(f"{key}={value}", _FIELD_COLORS.get(key, Colors.DIM)))

        seconds = getattr(record, "seconds", None)
        if seconds is not None:
            parts.append(_colorize(f"{seconds:.3f}s", _seconds_color(seconds)))

        return " ".join(parts)
