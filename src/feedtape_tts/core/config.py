"""
Configuration Management for feedtape-tts.

This module provides centralized configuration handling with:
    - Default values (Defaults class)
    - Dataclass-based configuration sections
    - YAML file loading with environment variable overrides
    - Validation with meaningful error messages

Configuration Hierarchy (highest priority first):
    1. Environment variables (FEEDTAPE_TTS_PROVIDER, AWS_REGION, ...)
    2. YAML config file (config/settings.yaml)
    3. Defaults class values

Example settings.yaml:
    tts:
      provider: polly
      default_language: en
      max_text_chars: 10000

    quota:
      free_daily_characters: 20000
      pro_daily_characters: 200000
      trial_days: 7

    cache:
      enabled: true
      max_items: 256
      ttl_seconds: 3600

Credentials are never read from this file: Polly uses the standard AWS
credential chain and OpenAI reads OPENAI_API_KEY.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Dict, Optional
import os
import yaml


class ConfigValidationError(Exception):
    """Raised when a configuration value is out of bounds or of the wrong type."""
    pass


class Defaults:
    """
    Centralized default configuration values.

    Used whenever neither the YAML file nor the environment provides a value.
    """

    # ─────────────────────────────────────────────────────────────────────────
    # Provider selection
    # ─────────────────────────────────────────────────────────────────────────
    PROVIDER = "polly"                  # polly | openai
    PROVIDER_TIMEOUT_S = 30.0           # Per-call SDK timeout

    # ─────────────────────────────────────────────────────────────────────────
    # Amazon Polly
    # ─────────────────────────────────────────────────────────────────────────
    POLLY_REGION = "eu-west-1"
    POLLY_ENGINE = "neural"
    POLLY_OUTPUT_FORMAT = "mp3"
    POLLY_MAX_BATCH_CHARS = 3000        # Polly SynthesizeSpeech text limit

    # ─────────────────────────────────────────────────────────────────────────
    # OpenAI speech
    # ─────────────────────────────────────────────────────────────────────────
    OPENAI_MODEL = "tts-1"
    OPENAI_RESPONSE_FORMAT = "mp3"
    OPENAI_MAX_BATCH_CHARS = 4096       # audio.speech input limit

    # ─────────────────────────────────────────────────────────────────────────
    # Quota
    # ─────────────────────────────────────────────────────────────────────────
    QUOTA_FREE_DAILY_CHARACTERS = 20000
    QUOTA_PRO_DAILY_CHARACTERS = 200000
    QUOTA_FREE_DAILY_MINUTES = 20
    QUOTA_PRO_DAILY_MINUTES = 200
    QUOTA_TRIAL_DAYS = 7
    QUOTA_CHARACTERS_PER_MINUTE = 1000.0

    # ─────────────────────────────────────────────────────────────────────────
    # Language detection
    # ─────────────────────────────────────────────────────────────────────────
    LANGUAGE_DEFAULT = "en"             # Used when detection is not confident
    LANGUAGE_MIN_RELATIVE_DISTANCE = 0.1

    # ─────────────────────────────────────────────────────────────────────────
    # Result cache
    # ─────────────────────────────────────────────────────────────────────────
    CACHE_ENABLED = False
    CACHE_MAX_ITEMS = 256               # Cached articles
    CACHE_TTL_SECONDS = 3600            # Idle time before an entry expires

    # ─────────────────────────────────────────────────────────────────────────
    # Input / usage reporting
    # ─────────────────────────────────────────────────────────────────────────
    INPUT_MAX_TEXT_CHARS = 10000
    USAGE_HISTORY_DAYS = 30

    # ─────────────────────────────────────────────────────────────────────────
    # Logging
    # ─────────────────────────────────────────────────────────────────────────
    LOGGING_TEXT_PREVIEW_CHARS = 80
    LOGGING_LEVEL = 2                   # 1=MINIMAL, 2=NORMAL, 3=VERBOSE, 4=DEBUG


SUPPORTED_PROVIDERS = ("polly", "openai")

_TRUE_VALUES = {"1", "true", "yes", "on"}


@dataclass
class ProviderConfig:
    """Which synthesis backend is active, and the per-call timeout."""
    name: str = Defaults.PROVIDER
    timeout_s: float = Defaults.PROVIDER_TIMEOUT_S


@dataclass
class PollyConfig:
    region: str = Defaults.POLLY_REGION
    engine: str = Defaults.POLLY_ENGINE
    output_format: str = Defaults.POLLY_OUTPUT_FORMAT
    max_batch_chars: int = Defaults.POLLY_MAX_BATCH_CHARS


@dataclass
class OpenAIConfig:
    """
    OpenAI speech configuration.

    default_voice, when set, replaces the per-language voice for every
    language.
    """
    model: str = Defaults.OPENAI_MODEL
    response_format: str = Defaults.OPENAI_RESPONSE_FORMAT
    max_batch_chars: int = Defaults.OPENAI_MAX_BATCH_CHARS
    default_voice: Optional[str] = None
    base_url: Optional[str] = None


@dataclass
class QuotaConfig:
    """
    Daily limits per subscription tier and the free-trial window.

    Minutes are reported to clients only; enforcement is on characters.
    """
    free_daily_characters: int = Defaults.QUOTA_FREE_DAILY_CHARACTERS
    pro_daily_characters: int = Defaults.QUOTA_PRO_DAILY_CHARACTERS
    free_daily_minutes: int = Defaults.QUOTA_FREE_DAILY_MINUTES
    pro_daily_minutes: int = Defaults.QUOTA_PRO_DAILY_MINUTES
    trial_days: int = Defaults.QUOTA_TRIAL_DAYS
    characters_per_minute: float = Defaults.QUOTA_CHARACTERS_PER_MINUTE


@dataclass
class LanguageConfig:
    default: str = Defaults.LANGUAGE_DEFAULT
    min_relative_distance: float = Defaults.LANGUAGE_MIN_RELATIVE_DISTANCE


@dataclass
class CacheConfig:
    """
    Result cache configuration.

    Entries are keyed by article link and expire after ttl_seconds without
    being read.
    """
    enabled: bool = Defaults.CACHE_ENABLED
    max_items: int = Defaults.CACHE_MAX_ITEMS
    ttl_seconds: int = Defaults.CACHE_TTL_SECONDS


@dataclass
class InputConfig:
    max_text_chars: int = Defaults.INPUT_MAX_TEXT_CHARS


@dataclass
class UsageConfig:
    history_days: int = Defaults.USAGE_HISTORY_DAYS


@dataclass
class LoggingConfig:
    """
    Logging configuration.

    Log levels:
        1 = MINIMAL: Startup, shutdown, failures only
        2 = NORMAL: Request lifecycle, cache status (default)
        3 = VERBOSE: Per-stage timing, batch layout
        4 = DEBUG: Internal state
    """
    text_preview_chars: int = Defaults.LOGGING_TEXT_PREVIEW_CHARS
    level: int = Defaults.LOGGING_LEVEL


@dataclass
class ServiceConfig:
    """
    Validated configuration for TTSService.

    Usage:
        settings = load_settings("config/settings.yaml")
        config = ServiceConfig.from_settings(settings)
        print(config.quota.trial_days)
    """
    provider: ProviderConfig = field(default_factory=ProviderConfig)
    polly: PollyConfig = field(default_factory=PollyConfig)
    openai: OpenAIConfig = field(default_factory=OpenAIConfig)
    quota: QuotaConfig = field(default_factory=QuotaConfig)
    language: LanguageConfig = field(default_factory=LanguageConfig)
    cache: CacheConfig = field(default_factory=CacheConfig)
    input: InputConfig = field(default_factory=InputConfig)
    usage: UsageConfig = field(default_factory=UsageConfig)
    logging: LoggingConfig = field(default_factory=LoggingConfig)

    @classmethod
    def from_settings(cls, settings: "Settings") -> "ServiceConfig":
        """
        Create ServiceConfig from Settings with validation.

        Args:
            settings: Raw Settings object loaded from YAML.

        Returns:
            Validated ServiceConfig instance.

        Raises:
            ConfigValidationError: If any value fails validation.
        """
        from feedtape_tts.tts.language import LanguageCode

        raw = settings.raw
        tts_raw = raw.get("tts", {}) or {}

        # ─────────────────────────────────────────────────────────────────────
        # Provider
        # ─────────────────────────────────────────────────────────────────────
        provider = ProviderConfig(
            name=str(tts_raw.get("provider", Defaults.PROVIDER)).strip().lower(),
            timeout_s=float(tts_raw.get("timeout_s", Defaults.PROVIDER_TIMEOUT_S)),
        )
        if provider.name not in SUPPORTED_PROVIDERS:
            raise ConfigValidationError(
                f"tts.provider must be one of {', '.join(SUPPORTED_PROVIDERS)}, got {provider.name!r}"
            )
        cls._validate_positive("tts.timeout_s", provider.timeout_s)

        polly_raw = raw.get("polly", {}) or {}
        polly = PollyConfig(
            region=str(polly_raw.get("region", Defaults.POLLY_REGION)),
            engine=str(polly_raw.get("engine", Defaults.POLLY_ENGINE)),
            output_format=str(polly_raw.get("output_format", Defaults.POLLY_OUTPUT_FORMAT)),
            max_batch_chars=int(polly_raw.get("max_batch_chars", Defaults.POLLY_MAX_BATCH_CHARS)),
        )
        cls._validate_positive("polly.max_batch_chars", polly.max_batch_chars)

        openai_raw = raw.get("openai", {}) or {}
        openai_cfg = OpenAIConfig(
            model=str(openai_raw.get("model", Defaults.OPENAI_MODEL)),
            response_format=str(openai_raw.get("response_format", Defaults.OPENAI_RESPONSE_FORMAT)),
            max_batch_chars=int(openai_raw.get("max_batch_chars", Defaults.OPENAI_MAX_BATCH_CHARS)),
            default_voice=openai_raw.get("default_voice") or None,
            base_url=openai_raw.get("base_url") or None,
        )
        cls._validate_positive("openai.max_batch_chars", openai_cfg.max_batch_chars)

        # ─────────────────────────────────────────────────────────────────────
        # Quota
        # ─────────────────────────────────────────────────────────────────────
        quota_raw = raw.get("quota", {}) or {}
        quota = QuotaConfig(
            free_daily_characters=int(quota_raw.get("free_daily_characters", Defaults.QUOTA_FREE_DAILY_CHARACTERS)),
            pro_daily_characters=int(quota_raw.get("pro_daily_characters", Defaults.QUOTA_PRO_DAILY_CHARACTERS)),
            free_daily_minutes=int(quota_raw.get("free_daily_minutes", Defaults.QUOTA_FREE_DAILY_MINUTES)),
            pro_daily_minutes=int(quota_raw.get("pro_daily_minutes", Defaults.QUOTA_PRO_DAILY_MINUTES)),
            trial_days=int(quota_raw.get("trial_days", Defaults.QUOTA_TRIAL_DAYS)),
            characters_per_minute=float(
                quota_raw.get("characters_per_minute", Defaults.QUOTA_CHARACTERS_PER_MINUTE)
            ),
        )
        cls._validate_non_negative("quota.free_daily_characters", quota.free_daily_characters)
        cls._validate_non_negative("quota.pro_daily_characters", quota.pro_daily_characters)
        cls._validate_non_negative("quota.trial_days", quota.trial_days)
        cls._validate_positive("quota.characters_per_minute", quota.characters_per_minute)

        # ─────────────────────────────────────────────────────────────────────
        # Language
        # ─────────────────────────────────────────────────────────────────────
        language_raw = raw.get("language", {}) or {}
        language = LanguageConfig(
            default=str(tts_raw.get("default_language", Defaults.LANGUAGE_DEFAULT)).strip().lower(),
            min_relative_distance=float(
                language_raw.get("min_relative_distance", Defaults.LANGUAGE_MIN_RELATIVE_DISTANCE)
            ),
        )
        if LanguageCode.parse(language.default) is None:
            raise ConfigValidationError(
                f"tts.default_language must be one of {', '.join(c.value for c in LanguageCode)}, "
                f"got {language.default!r}"
            )
        cls._validate_range("language.min_relative_distance", language.min_relative_distance, 0.0, 0.99)

        # ─────────────────────────────────────────────────────────────────────
        # Cache
        # ─────────────────────────────────────────────────────────────────────
        cache_raw = raw.get("cache", {}) or {}
        cache = CacheConfig(
            enabled=_as_bool(cache_raw.get("enabled", Defaults.CACHE_ENABLED)),
            max_items=int(cache_raw.get("max_items", Defaults.CACHE_MAX_ITEMS)),
            ttl_seconds=int(cache_raw.get("ttl_seconds", Defaults.CACHE_TTL_SECONDS)),
        )
        cls._validate_positive("cache.max_items", cache.max_items)
        cls._validate_positive("cache.ttl_seconds", cache.ttl_seconds)

        # ─────────────────────────────────────────────────────────────────────
        # Input and usage reporting
        # ─────────────────────────────────────────────────────────────────────
        input_cfg = InputConfig(
            max_text_chars=int(tts_raw.get("max_text_chars", Defaults.INPUT_MAX_TEXT_CHARS)),
        )
        cls._validate_positive("tts.max_text_chars", input_cfg.max_text_chars)

        usage_raw = raw.get("usage", {}) or {}
        usage = UsageConfig(
            history_days=int(usage_raw.get("history_days", Defaults.USAGE_HISTORY_DAYS)),
        )
        cls._validate_positive("usage.history_days", usage.history_days)

        # ─────────────────────────────────────────────────────────────────────
        # Logging
        # ─────────────────────────────────────────────────────────────────────
        from feedtape_tts.core.logging.levels import coerce_level

        logging_raw = raw.get("logging", {}) or {}
        logging_cfg = LoggingConfig(
            text_preview_chars=int(logging_raw.get("text_preview_chars", Defaults.LOGGING_TEXT_PREVIEW_CHARS)),
            level=int(coerce_level(logging_raw.get("level", Defaults.LOGGING_LEVEL))),
        )
        cls._validate_non_negative("logging.text_preview_chars", logging_cfg.text_preview_chars)

        return cls(
            provider=provider,
            polly=polly,
            openai=openai_cfg,
            quota=quota,
            language=language,
            cache=cache,
            input=input_cfg,
            usage=usage,
            logging=logging_cfg,
        )

    @staticmethod
    def _validate_positive(name: str, value: int | float) -> None:
        if value <= 0:
            raise ConfigValidationError(f"{name} must be positive, got {value}")

    @staticmethod
    def _validate_non_negative(name: str, value: int | float) -> None:
        if value < 0:
            raise ConfigValidationError(f"{name} must be non-negative, got {value}")

    @staticmethod
    def _validate_range(name: str, value: int | float, min_val: int | float, max_val: int | float) -> None:
        if not (min_val <= value <= max_val):
            raise ConfigValidationError(f"{name} must be between {min_val} and {max_val}, got {value}")


def _as_bool(value: Any) -> bool:
    if isinstance(value, str):
        return value.strip().lower() in _TRUE_VALUES
    return bool(value)


@dataclass(frozen=True)
class Settings:
    """
    Immutable settings container loaded from YAML.

    This is the raw settings object before validation. Use
    get_service_config() for the validated ServiceConfig.

    Attributes:
        raw: Dictionary of raw configuration values.
    """
    raw: Dict[str, Any]

    @property
    def provider_name(self) -> str:
        """Active synthesis provider (polly, openai)."""
        return str((self.raw.get("tts") or {}).get("provider", Defaults.PROVIDER)).strip().lower()

    @property
    def default_language(self) -> str:
        """Language used when detection is not confident."""
        return str((self.raw.get("tts") or {}).get("default_language", Defaults.LANGUAGE_DEFAULT))

    @property
    def cache_enabled(self) -> bool:
        return _as_bool((self.raw.get("cache") or {}).get("enabled", Defaults.CACHE_ENABLED))

    def get_service_config(self) -> ServiceConfig:
        """
        Get validated ServiceConfig from these settings.

        Raises:
            ConfigValidationError: If validation fails.
        """
        return ServiceConfig.from_settings(self)


def load_settings(path: str = "config/settings.yaml") -> Settings:
    """
    Load settings from a YAML configuration file.

    Environment variable overrides:
        - FEEDTAPE_TTS_PROVIDER: tts.provider
        - FEEDTAPE_TTS_DEFAULT_LANGUAGE: tts.default_language
        - FEEDTAPE_TTS_CACHE_ENABLED: cache.enabled (1/true/yes)
        - AWS_REGION: polly.region

    Args:
        path: Path to the YAML configuration file.

    Returns:
        Settings object with loaded configuration.

    Raises:
        FileNotFoundError: If the settings file doesn't exist.
    """
    p = Path(path)
    if not p.exists():
        raise FileNotFoundError(f"settings file not found: {p.resolve()}")

    with p.open("r", encoding="utf-8") as f:
        raw: Dict[str, Any] = yaml.safe_load(f) or {}

    provider = os.getenv("FEEDTAPE_TTS_PROVIDER")
    if provider:
        raw.setdefault("tts", {})["provider"] = provider

    default_language = os.getenv("FEEDTAPE_TTS_DEFAULT_LANGUAGE")
    if default_language:
        raw.setdefault("tts", {})["default_language"] = default_language

    cache_enabled = os.getenv("FEEDTAPE_TTS_CACHE_ENABLED")
    if cache_enabled is not None:
        raw.setdefault("cache", {})["enabled"] = cache_enabled.strip().lower() in _TRUE_VALUES

    region = os.getenv("AWS_REGION")
    if region:
        raw.setdefault("polly", {})["region"] = region

    return Settings(raw=raw)
