"""Tests for numeric log levels, filtering and log formats."""
from __future__ import annotations

import io
import json
import logging
import os
from pathlib import Path
from unittest.mock import patch

import pytest

from feedtape_tts.core.logging import (
    LogLevel,
    configure_logging,
    coerce_level,
    debug,
    fail,
    get_level,
    get_level_name,
    get_logger,
    info,
    set_request_id,
    success,
    verbose,
    warn,
)


def capture(level, emit):
    """Configure logging at level with stdout captured, run emit(logger), return the output."""
    captured = io.StringIO()
    with patch("sys.stdout", captured):
        configure_logging(level=level, force=True)
        emit(get_logger("feedtape-tts.test"))
    return captured.getvalue()


def emit_all(log):
    fail(log, "fail message")
    info(log, "info message")
    verbose(log, "verbose message")
    debug(log, "debug message")


class TestLevelCoercion:
    """Tests for coerce_level()."""

    @pytest.mark.parametrize("value,expected", [
        (1, LogLevel.MINIMAL),
        (4, LogLevel.DEBUG),
        ("3", LogLevel.VERBOSE),
        ("verbose", LogLevel.VERBOSE),
        (" Normal ", LogLevel.NORMAL),
        ("TRACE", LogLevel.DEBUG),
        ("WARNING", LogLevel.MINIMAL),
        ("INFO", LogLevel.NORMAL),
        (logging.ERROR, LogLevel.MINIMAL),
        (logging.INFO, LogLevel.NORMAL),
        (logging.DEBUG, LogLevel.DEBUG),
        (LogLevel.VERBOSE, LogLevel.VERBOSE),
    ])
    def test_accepted_values(self, value, expected):
        assert coerce_level(value) == expected

    @pytest.mark.parametrize("value", [None, "loud", True, 2.5])
    def test_unparseable_is_normal(self, value):
        assert coerce_level(value) == LogLevel.NORMAL

    def test_ordering(self):
        assert LogLevel.MINIMAL < LogLevel.NORMAL < LogLevel.VERBOSE < LogLevel.DEBUG


class TestLevelFiltering:
    """Messages above the configured level are dropped."""

    def test_minimal(self):
        output = capture(1, emit_all)
        assert "fail message" in output
        assert "info message" not in output

    def test_normal(self):
        output = capture(2, emit_all)
        assert "info message" in output
        assert "verbose message" not in output

    def test_verbose(self):
        output = capture(3, emit_all)
        assert "verbose message" in output
        assert "debug message" not in output

    def test_debug(self):
        output = capture(4, emit_all)
        for message in ("fail message", "info message", "verbose message", "debug message"):
            assert message in output

    def test_level_names(self):
        for level, name in ((1, "MINIMAL"), (2, "NORMAL"), (3, "VERBOSE"), (4, "DEBUG")):
            configure_logging(level=level, force=True)
            assert get_level_name() == name


class TestConsoleFormat:
    """Tests for the console line layout."""

    def test_fields_and_request_id(self):
        def emit(log):
            set_request_id("rid-quota-42")
            warn(log, "quota_exceeded", user_id="u-1", used=19990, limit=20000)
            set_request_id("-")

        output = capture(2, emit)

        assert "(rid-quota-42)" in output
        assert "quota_exceeded" in output
        assert "used=19990" in output
        assert "limit=20000" in output

    def test_seconds_rendered(self):
        output = capture(2, lambda log: success(log, "done", provider="polly", seconds=0.25))
        assert "provider=polly" in output
        assert "0.250s" in output


class TestEnvOverride:
    """Environment variables override the settings file."""

    def test_env_log_level(self):
        with patch.dict(os.environ, {"FEEDTAPE_TTS_LOG_LEVEL": "verbose"}):
            configure_logging(force=True)
            assert get_level() == LogLevel.VERBOSE
        configure_logging(level=2, force=True)


class TestJsonlOutput:
    """JSONL file output."""

    def test_jsonl_lines(self, tmp_path):
        with patch.dict(os.environ, {
            "FEEDTAPE_TTS_LOG_DIR": str(tmp_path),
            "FEEDTAPE_TTS_JSONL_FILE": "run.jsonl",
        }):
            with patch("sys.stdout", io.StringIO()):
                configure_logging(level=2, force=True)
                info(get_logger("feedtape-tts.test"), "synthesized", provider="openai", batches=2)

            root = logging.getLogger()
            for handler in root.handlers:
                handler.flush()
                handler.close()
            root.handlers = []

        lines = Path(tmp_path, "run.jsonl").read_text(encoding="utf-8").splitlines()
        records = [json.loads(line) for line in lines if line]
        record = next(r for r in records if r["message"] == "synthesized")

        assert record["level"] == 2
        assert record["tag"] == "INFO"
        assert record["extra"] == {"provider": "openai", "batches": 2}
        assert "ts" in record

        configure_logging(level=2, force=True)
