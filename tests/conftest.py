"""Shared fixtures: settings, a fake Polly client and in-memory stores."""
from __future__ import annotations

import io
from datetime import datetime, timedelta, timezone
from unittest.mock import MagicMock

import pytest

from feedtape_tts.core.config import Settings
from feedtape_tts.stores.base import SubscriptionTier
from feedtape_tts.stores.memory import InMemoryUsageStore, InMemoryUserStore

NOW = datetime(2026, 10, 17, 12, 0, tzinfo=timezone.utc)


def fake_polly_audio(Text: str, VoiceId: str, **kwargs) -> dict:
    """Polly-shaped response whose audio spells out the voice and text."""
    return {"AudioStream": io.BytesIO(f"<{VoiceId}:{Text}>".encode("utf-8"))}


@pytest.fixture
def polly_client():
    client = MagicMock()
    client.synthesize_speech.side_effect = fake_polly_audio
    return client


@pytest.fixture
def settings():
    return Settings(raw={
        "tts": {"provider": "polly", "default_language": "en", "max_text_chars": 10000},
        "cache": {"enabled": False},
        "logging": {"level": 1, "text_preview_chars": 20},
    })


@pytest.fixture
def clock():
    return lambda: NOW


@pytest.fixture
def user_store():
    store = InMemoryUserStore()
    store.create("free-new", tier=SubscriptionTier.FREE, created_at=NOW - timedelta(days=1))
    store.create("free-old", tier=SubscriptionTier.FREE, created_at=NOW - timedelta(days=8))
    store.create("pro", tier=SubscriptionTier.PRO, created_at=NOW - timedelta(days=365))
    return store


@pytest.fixture
def usage_store(clock):
    return InMemoryUsageStore(clock=clock)
