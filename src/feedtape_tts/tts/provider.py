"""
Synthesis Provider Base Class and Factory.

This module provides:
    - BaseSynthesisProvider: abstract base for speech-synthesis backends
    - ProviderCapabilities: what a provider accepts and returns
    - create_provider() / get_provider(): configuration-driven selection

Providers:
    - polly:  Amazon Polly, neural voices, MP3, 3000 characters per call
    - openai: OpenAI audio.speech (tts-1), MP3, 4096 characters per call

The active provider is named by ``tts.provider`` in settings.yaml (or
FEEDTAPE_TTS_PROVIDER). Provider modules are imported lazily, so the SDK
of an inactive provider is never loaded.

Contract:
    synthesize_batch(text, language) makes exactly one upstream call and
    returns audio bytes. Any SDK or transport failure surfaces as a single
    DependencyError carrying the upstream message; nothing is retried.

    synthesize_all(batches, language) calls synthesize_batch once per batch
    in order, one after another, and concatenates the audio. The first
    failure aborts the whole call; partial audio is never returned.

Implementing a New Provider:
    1. Create providers/<name>_provider.py
    2. Inherit from BaseSynthesisProvider
    3. Implement _create_client(), _request() and max_batch_size
    4. Add a voice for every language in tts/language.py LANGUAGE_TABLE
    5. Register it in _PROVIDERS below
"""
from __future__ import annotations

import importlib
import threading
from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import Any, Dict, List, Optional, Sequence, Tuple, Type

from feedtape_tts.core.config import ServiceConfig, Settings
from feedtape_tts.core.errors import DependencyError, ErrorCode, InvalidInputError
from feedtape_tts.core.logging import fail, get_logger, verbose
from feedtape_tts.core.metrics import metrics
from feedtape_tts.tts.language import LANGUAGE_TABLE, LanguageCode
from feedtape_tts.utils.timeit import timeit


@dataclass(frozen=True)
class ProviderCapabilities:
    """
    Describes what a provider accepts and returns.

    Attributes:
        max_batch_chars: Longest text a single call accepts.
        output_format: Audio container ("mp3").
        media_type: HTTP media type of the audio.
        languages: Languages the provider has a voice for.
    """
    max_batch_chars: int
    output_format: str
    media_type: str
    languages: Tuple[LanguageCode, ...]


_MEDIA_TYPES = {
    "mp3": "audio/mpeg",
    "ogg_vorbis": "audio/ogg",
    "opus": "audio/ogg",
    "aac": "audio/aac",
    "flac": "audio/flac",
    "wav": "audio/wav",
    "pcm": "audio/L16",
}


def media_type_for(output_format: str) -> str:
    return _MEDIA_TYPES.get(output_format.lower(), "application/octet-stream")


class BaseSynthesisProvider(ABC):
    """
    Abstract base class for synthesis providers.

    Subclasses implement:
        - max_batch_size: per-call character limit
        - output_format: audio container they request
        - _create_client(): build the SDK client (called lazily, once)
        - _request(text, voice, language): the single upstream call

    Attributes:
        name: Provider identifier; also the voice column in LANGUAGE_TABLE.
        upstream_errors: SDK exception types turned into DependencyError.
        settings: Application settings.
        config: Validated ServiceConfig.
        logger: Logger for this provider.
    """
    name: str = "base"
    upstream_errors: Tuple[Type[BaseException], ...] = ()

    def __init__(self, settings: Settings, client: Any = None):
        """
        Args:
            settings: Application settings.
            client: Prebuilt SDK client (tests, custom sessions). Built from
                settings on first use when omitted.
        """
        self.settings = settings
        self.config: ServiceConfig = settings.get_service_config()
        self.logger = get_logger(f"feedtape-tts.provider.{self.name}")
        self._client = client
        self._client_lock = threading.Lock()

    # ─────────────────────────────────────────────────────────────────────
    # Subclass hooks
    # ─────────────────────────────────────────────────────────────────────

    @property
    @abstractmethod
    def max_batch_size(self) -> int:
        """Longest text one upstream call accepts."""

    @property
    @abstractmethod
    def output_format(self) -> str:
        """Audio container returned by the provider."""

    @abstractmethod
    def _create_client(self) -> Any:
        """Build the SDK client."""

    @abstractmethod
    def _request(self, text: str, voice: str, language: LanguageCode) -> bytes:
        """Perform one upstream synthesis call and return the audio bytes."""

    # ─────────────────────────────────────────────────────────────────────
    # Public API
    # ─────────────────────────────────────────────────────────────────────

    @property
    def client(self) -> Any:
        if self._client is None:
            with self._client_lock:
                if self._client is None:
                    self._client = self._create_client()
        return self._client

    @property
    def capabilities(self) -> ProviderCapabilities:
        return ProviderCapabilities(
            max_batch_chars=self.max_batch_size,
            output_format=self.output_format,
            media_type=media_type_for(self.output_format),
            languages=tuple(code for code, p in LANGUAGE_TABLE.items() if self.name in p.voices),
        )

    @property
    def media_type(self) -> str:
        return media_type_for(self.output_format)

    def voice_for(self, language: LanguageCode | str) -> str:
        """
        Voice id this provider uses for a language.

        Raises:
            InvalidInputError: If the language is not supported.
        """
        code = LanguageCode.parse(language)
        if code is None:
            raise InvalidInputError(
                f"Unsupported language: {language}",
                code=ErrorCode.UNSUPPORTED_LANGUAGE,
                details={"language": str(language)},
            )
        return LANGUAGE_TABLE[code].voice(self.name)

    def synthesize_batch(self, text: str, language: LanguageCode | str) -> bytes:
        """
        Synthesize one batch with one upstream call.

        Args:
            text: Batch text, at most max_batch_size characters.
            language: Language to speak; selects the voice.

        Returns:
            Audio bytes in output_format.

        Raises:
            InvalidInputError: Empty/oversized batch or unsupported language.
            DependencyError: The upstream call failed or returned no audio.
        """
        voice = self.voice_for(language)
        code = LanguageCode.parse(language)

        if not text or not text.strip():
            raise InvalidInputError("Batch text is empty", code=ErrorCode.TEXT_REQUIRED)
        if len(text) > self.max_batch_size:
            raise InvalidInputError(
                f"Batch of {len(text)} characters exceeds the {self.name} limit of {self.max_batch_size}",
                code=ErrorCode.TEXT_TOO_LONG,
                details={"chars": len(text), "max_batch_size": self.max_batch_size},
            )

        t = timeit("provider_call")
        try:
            with t:
                audio = self._request(text, voice, code)
        except self.upstream_errors as exc:
            metrics.record_provider_call(self.name, "error", t.seconds)
            fail(self.logger, "provider_call_failed", provider=self.name, voice=voice, error=str(exc))
            raise DependencyError(
                f"{self.name} synthesis failed: {exc}",
                details={"provider": self.name, "upstream": type(exc).__name__},
            ) from exc
        metrics.record_provider_call(self.name, "success", t.seconds)

        if not audio:
            raise DependencyError(
                f"{self.name} returned empty audio",
                details={"provider": self.name},
            )

        verbose(
            self.logger,
            "batch_synthesized",
            provider=self.name,
            voice=voice,
            chars=len(text),
            bytes=len(audio),
            seconds=round(t.seconds, 4),
        )
        return audio

    def synthesize_all(self, batches: Sequence[str], language: LanguageCode | str) -> bytes:
        """
        Synthesize every batch in order and concatenate the audio.

        Batches run one after another so the audio keeps the order of the
        text. The first failing batch aborts the call.

        Raises:
            InvalidInputError: No batches, or a batch is invalid.
            DependencyError: Any upstream call failed.
        """
        if not batches:
            raise InvalidInputError("Nothing to synthesize", code=ErrorCode.TEXT_REQUIRED)

        parts: List[bytes] = []
        for index, batch in enumerate(batches):
            verbose(self.logger, "batch_start", provider=self.name, index=index + 1, total=len(batches))
            parts.append(self.synthesize_batch(batch, language))
        return b"".join(parts)

    def get_info(self) -> Dict[str, Any]:
        caps = self.capabilities
        return {
            "name": self.name,
            "max_batch_chars": caps.max_batch_chars,
            "output_format": caps.output_format,
            "media_type": caps.media_type,
            "languages": [c.value for c in caps.languages],
        }


# =============================================================================
# Provider Factory (Singleton Pattern)
# =============================================================================

_PROVIDERS: Dict[str, Tuple[str, str]] = {
    "polly": ("feedtape_tts.tts.providers.polly_provider", "PollyProvider"),
    "openai": ("feedtape_tts.tts.providers.openai_provider", "OpenAIProvider"),
}

_PROVIDER: Optional[BaseSynthesisProvider] = None
_PROVIDER_NAME: Optional[str] = None
_PROVIDER_LOCK = threading.Lock()


def available_providers() -> List[str]:
    return sorted(_PROVIDERS)


def create_provider(settings: Settings, client: Any = None) -> BaseSynthesisProvider:
    """
    Build the provider named by the settings.

    Args:
        settings: Application settings; ``tts.provider`` picks the backend.
        client: Optional prebuilt SDK client passed to the provider.

    Raises:
        ValueError: If the provider name is unknown.
    """
    name = settings.provider_name
    try:
        module_name, class_name = _PROVIDERS[name]
    except KeyError:
        raise ValueError(
            f"Unknown provider: {name} (available: {', '.join(available_providers())})"
        ) from None
    provider_cls = getattr(importlib.import_module(module_name), class_name)
    return provider_cls(settings, client=client)


def get_provider(settings: Settings) -> BaseSynthesisProvider:
    """
    Get or create the process-wide provider.

    A change of ``tts.provider`` replaces the shared instance.
    """
    global _PROVIDER
    global _PROVIDER_NAME

    name = settings.provider_name
    if _PROVIDER is None or _PROVIDER_NAME != name:
        with _PROVIDER_LOCK:
            if _PROVIDER is None or _PROVIDER_NAME != name:
                _PROVIDER = create_provider(settings)
                _PROVIDER_NAME = name
    return _PROVIDER


def reset_provider() -> None:
    """Drop the shared provider (tests, reconfiguration)."""
    global _PROVIDER
    global _PROVIDER_NAME
    with _PROVIDER_LOCK:
        _PROVIDER = None
        _PROVIDER_NAME = None
