"""
TTSService - Article Synthesis Pipeline.

This module provides the TTSService class, the single entry point the
HTTP layer and the CLI use to turn an article into audio while enforcing
per-user daily quotas.

Architecture:
    Cache → Validate → Normalize → Detect → User → Guard → Split
          → Synthesize → Charge usage → Cache write

Key Components:
    - Provider: the configured speech backend (Polly or OpenAI)
    - LanguageDetector: picks the language, and with it the voice
    - UsageGuard: trial window and daily character limits
    - ResultCache: optional memo of finished results keyed by article link
    - User/Usage stores: injected collaborators (see feedtape_tts.stores)

Guarantees:
    - Empty, oversized or unsupported input and quota rejections are raised
      before any provider call and never charge usage.
    - Usage is incremented once, after the provider returns all audio.
    - A cache hit returns the stored result unchanged and charges nothing.

Error Handling:
    - InvalidInputError: bad text, unknown user, unsupported language
    - PaymentRequiredError: trial expired or daily limit reached
    - DependencyError: provider or store failure (upstream message kept)
    - InternalError: anything else

Example:
    >>> from feedtape_tts.core.config import Settings
    >>> from feedtape_tts.services import TTSService
    >>> service = TTSService(Settings(raw={"tts": {"provider": "polly"}}))
    >>> result = service.synthesize("user-1", "<p>Hello world.</p>", "https://blog.example/1")
    >>> result.language_detected, result.char_count
    (<LanguageCode.ENGLISH: 'en'>, 12)
"""
from __future__ import annotations

import threading
import time
from dataclasses import dataclass, field
from datetime import date, datetime, time as dtime, timedelta
from typing import Any, Callable, Dict, List, Optional, TypeVar

from feedtape_tts.core.config import ServiceConfig, Settings
from feedtape_tts.core.errors import (
    DependencyError,
    ErrorCode,
    InternalError,
    InvalidInputError,
    PaymentRequiredError,
    TTSError,
)
from feedtape_tts.core.logging import debug, fail, get_logger, info, success, verbose
from feedtape_tts.core.metrics import metrics
from feedtape_tts.services.usage_guard import Quota, UsageGuard
from feedtape_tts.services.validators import ValidationError, validate_language, validate_text
from feedtape_tts.stores.base import UsageRecord, UsageStore, UserRecord, UserStore, utc_now
from feedtape_tts.stores.memory import InMemoryUsageStore, InMemoryUserStore
from feedtape_tts.tts.cache import ResultCache
from feedtape_tts.tts.chunker import split_into_batches
from feedtape_tts.tts.language import LanguageCode, LanguageDetector
from feedtape_tts.tts.provider import BaseSynthesisProvider, create_provider
from feedtape_tts.utils.text import normalize_text
from feedtape_tts.utils.timeit import timeit

_LOG = get_logger("feedtape-tts.service")

T = TypeVar("T")

__all__ = [
    "DependencyError",
    "ErrorCode",
    "InternalError",
    "InvalidInputError",
    "PaymentRequiredError",
    "SynthesisResult",
    "SynthesizeRequest",
    "TTSError",
    "TTSService",
    "UsageSummary",
    "get_service",
    "reset_service",
]


# =============================================================================
# Request/Response Dataclasses
# =============================================================================

@dataclass
class SynthesizeRequest:
    """
    One article to synthesize for one user.

    Attributes:
        user_id: Requesting user.
        text: Raw article text, HTML allowed.
        source_link: Article URL; the cache key.
        language: Optional two-letter override; skips detection.
    """
    user_id: str
    text: str
    source_link: str
    language: Optional[str] = None


@dataclass(frozen=True)
class SynthesisResult:
    """
    Finished synthesis.

    Attributes:
        audio_bytes: Concatenated audio of every batch, in order.
        language_detected: Language the audio is spoken in.
        char_count: Normalized character count (what was charged).
        duration_minutes: Estimated listening time.
    """
    audio_bytes: bytes
    language_detected: LanguageCode
    char_count: int
    duration_minutes: float

    @property
    def duration_seconds(self) -> int:
        return int(self.duration_minutes * 60)


@dataclass
class UsageSummary:
    """Today's consumption against the user's tier limits."""
    user_id: str
    subscription_tier: str
    day: date
    characters_used: int
    minutes_used: float
    requests: int
    character_limit: int
    minute_limit: int
    remaining_characters: int
    resets_at: datetime
    is_trial: bool
    trial_ends_at: Optional[datetime]
    history: List[UsageRecord] = field(default_factory=list)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "user_id": self.user_id,
            "subscription_tier": self.subscription_tier,
            "date": self.day.isoformat(),
            "usage": {
                "characters": self.characters_used,
                "minutes": round(self.minutes_used, 2),
                "requests": self.requests,
            },
            "limits": {
                "characters": self.character_limit,
                "minutes": self.minute_limit,
            },
            "remaining_characters": self.remaining_characters,
            "resets_at": self.resets_at.isoformat(),
            "is_trial": self.is_trial,
            "trial_ends_at": self.trial_ends_at.isoformat() if self.trial_ends_at else None,
            "history": [
                {
                    "date": r.date.isoformat(),
                    "characters": r.characters_used,
                    "articles": r.articles_synthesized,
                }
                for r in self.history
            ],
        }


# =============================================================================
# Main Service Class
# =============================================================================

class TTSService:
    """
    Orchestrates one article synthesis from raw text to charged audio.

    Every collaborator can be injected; anything omitted is built from the
    settings (provider from ``tts.provider``, detector from ``language``,
    cache only when ``cache.enabled``, in-memory stores).

    Usage:
        service = TTSService(settings, user_store=users, usage_store=usage)
        result = service.synthesize("user-1", text, "https://blog.example/1")
    """

    def __init__(
        self,
        settings: Settings,
        user_store: Optional[UserStore] = None,
        usage_store: Optional[UsageStore] = None,
        provider: Optional[BaseSynthesisProvider] = None,
        cache: Optional[ResultCache] = None,
        detector: Optional[LanguageDetector] = None,
        guard: Optional[UsageGuard] = None,
        clock: Callable[[], datetime] = utc_now,
    ):
        self._settings = settings
        self._config: ServiceConfig = settings.get_service_config()
        self._clock = clock

        self._user_store: UserStore = user_store if user_store is not None else InMemoryUserStore()
        self._usage_store: UsageStore = usage_store if usage_store is not None else InMemoryUsageStore()
        self._provider = provider if provider is not None else create_provider(settings)
        self._detector = detector if detector is not None else LanguageDetector.from_config(self._config)
        self._guard = guard if guard is not None else UsageGuard(self._config.quota, clock=clock)

        # ─────────────────────────────────────────────────────────────────────
        # Cache: explicit instance wins, otherwise only when enabled
        # ─────────────────────────────────────────────────────────────────────
        self._cache: Optional[ResultCache[SynthesisResult]] = cache
        if self._cache is None and self._config.cache.enabled:
            self._cache = ResultCache(
                max_items=self._config.cache.max_items,
                ttl_seconds=self._config.cache.ttl_seconds,
            )

        self._max_text_chars = self._config.input.max_text_chars
        self._chars_per_minute = self._config.quota.characters_per_minute
        self._text_preview_chars = self._config.logging.text_preview_chars
        self._started_at = time.monotonic()

    # =========================================================================
    # Properties
    # =========================================================================

    @property
    def settings(self) -> Settings:
        return self._settings

    @property
    def provider(self) -> BaseSynthesisProvider:
        return self._provider

    @property
    def cache(self) -> Optional[ResultCache]:
        """The result cache, or None when caching is disabled."""
        return self._cache

    @property
    def detector(self) -> LanguageDetector:
        return self._detector

    @property
    def guard(self) -> UsageGuard:
        return self._guard

    # =========================================================================
    # Helper Methods
    # =========================================================================

    def _store_call(self, operation: str, fn: Callable[..., T], *args: Any) -> T:
        """Run a store call, reporting non-TTSError failures as DependencyError."""
        try:
            return fn(*args)
        except TTSError:
            raise
        except Exception as e:
            fail(_LOG, "store_failed", operation=operation, error=str(e), error_type=type(e).__name__)
            raise DependencyError(
                f"{operation} failed: {e}",
                code=ErrorCode.STORE_FAILED,
                details={"operation": operation, "error_type": type(e).__name__},
            ) from e

    def _load_user(self, user_id: str) -> UserRecord:
        user = self._store_call("find_user", self._user_store.find_by_id, user_id)
        if user is None:
            raise InvalidInputError(
                "User not found",
                code=ErrorCode.USER_NOT_FOUND,
                details={"user_id": user_id},
            )
        return user

    def _used_today(self, user_id: str) -> int:
        record = self._store_call("get_today_usage", self._usage_store.get_today_usage, user_id)
        return record.characters_used if record is not None else 0

    def _resolve_language(self, normalized: str, override: Optional[LanguageCode]) -> LanguageCode:
        if override is not None:
            verbose(_LOG, "language_override", language=override.value)
            return override
        code, confidence, fell_back = self._detector.detect_with_confidence(normalized)
        verbose(_LOG, "language_detected", language=code.value,
                confidence=round(confidence, 3), fallback=fell_back)
        return code

    def duration_minutes_for(self, char_count: int) -> float:
        return char_count / self._chars_per_minute

    # =========================================================================
    # Public API: synthesize()
    # =========================================================================

    def synthesize(
        self,
        user_id: str,
        text: str,
        source_link: str,
        language: Optional[str] = None,
    ) -> SynthesisResult:
        """
        Synthesize an article for a user and charge their daily usage.

        Pipeline:
            1. Cache lookup by source_link (when caching is enabled)
            2. Validate raw text and language override; normalize
            3. Detect the language (unless overridden)
            4. Load the user
            5. Check trial and daily quota against today's usage
            6. Split into provider-sized batches
            7. Synthesize every batch in order
            8. Charge usage
            9. Estimate duration
            10. Cache the result

        Args:
            user_id: Requesting user.
            text: Raw article text, HTML allowed.
            source_link: Article URL, used as the cache key.
            language: Optional two-letter override; skips detection.

        Returns:
            SynthesisResult with the audio and what was charged.

        Raises:
            InvalidInputError: Empty/oversized text, unknown user, unsupported language.
            PaymentRequiredError: Trial expired or quota exceeded.
            DependencyError: Provider or store failure.
            InternalError: Unexpected failure.
        """
        timings: Dict[str, float] = {}
        provider_name = self._provider.name
        cache_status = "off" if self._cache is None else "miss"
        t0 = time.perf_counter()

        preview = (text or "")[:self._text_preview_chars] if self._text_preview_chars > 0 else ""
        info(_LOG, "request", user_id=user_id, chars=len(text or ""), link=source_link, text_preview=preview)
        debug(_LOG, "request_full", text=text, language=language)

        try:
            # ─────────────────────────────────────────────────────────────
            # Stage 1: Cache lookup
            # ─────────────────────────────────────────────────────────────
            if self._cache is not None and source_link:
                cached, cache_timings = self._cache.get(source_link)
                timings.update(cache_timings)
                metrics.record_cache("hit" if cached is not None else "miss")
                if cached is not None:
                    total_s = time.perf_counter() - t0
                    success(_LOG, "done", cache="hit", bytes=len(cached.audio_bytes),
                            seconds=round(total_s, 4))
                    metrics.record_request(provider_name, "success", total_s,
                                           cache_status="hit", audio_bytes=len(cached.audio_bytes))
                    return cached

            # ─────────────────────────────────────────────────────────────
            # Stage 2: Validate and normalize
            # ─────────────────────────────────────────────────────────────
            try:
                validate_text(text, max_length=self._max_text_chars)
                override = validate_language(language)
            except ValidationError as e:
                raise InvalidInputError(e.message, code=e.code, details=e.details) from e

            normalized, norm_timings = normalize_text(text)
            timings.update(norm_timings)
            if not normalized:
                raise InvalidInputError("Text is empty after normalization", code=ErrorCode.TEXT_REQUIRED)
            char_count = len(normalized)

            # ─────────────────────────────────────────────────────────────
            # Stage 3: Language
            # ─────────────────────────────────────────────────────────────
            with timeit("detect") as t_detect:
                code = self._resolve_language(normalized, override)
            timings["detect"] = t_detect.seconds

            # ─────────────────────────────────────────────────────────────
            # Stage 4-5: User and quota
            # ─────────────────────────────────────────────────────────────
            with timeit("guard") as t_guard:
                user = self._load_user(user_id)
                used = self._used_today(user_id)
                self._guard.check(user, used, char_count, now=self._clock())
            timings["guard"] = t_guard.seconds
            verbose(_LOG, "stage", event="guard", tier=user.subscription_tier.value,
                    used=used, requested=char_count, seconds=round(t_guard.seconds, 4))

            # ─────────────────────────────────────────────────────────────
            # Stage 6: Split
            # ─────────────────────────────────────────────────────────────
            batches = split_into_batches(normalized, self._provider.max_batch_size)
            timings.update(batches.timings_s)

            # ─────────────────────────────────────────────────────────────
            # Stage 7: Synthesize
            # ─────────────────────────────────────────────────────────────
            with timeit("synth") as t_synth:
                audio = self._provider.synthesize_all(batches.batches, code)
            timings["synth"] = t_synth.seconds
            verbose(_LOG, "stage", event="synth", provider=provider_name,
                    batches=len(batches), seconds=round(t_synth.seconds, 4))

            # ─────────────────────────────────────────────────────────────
            # Stage 8-9: Charge and estimate
            # ─────────────────────────────────────────────────────────────
            self._store_call("increment_usage", self._usage_store.increment_usage, user_id, char_count)
            metrics.record_characters(provider_name, char_count)

            result = SynthesisResult(
                audio_bytes=audio,
                language_detected=code,
                char_count=char_count,
                duration_minutes=self.duration_minutes_for(char_count),
            )

            # ─────────────────────────────────────────────────────────────
            # Stage 10: Cache write
            # ─────────────────────────────────────────────────────────────
            if self._cache is not None and source_link:
                timings.update(self._cache.set(source_link, result))

        except TTSError as e:
            metrics.record_request(provider_name, e.kind, time.perf_counter() - t0, cache_status=cache_status)
            fail(_LOG, "request_failed", error=e.code, kind=e.kind, message=e.message)
            raise
        except Exception as e:
            fail(_LOG, "request_failed", error=str(e), error_type=type(e).__name__)
            metrics.record_request(provider_name, "internal", time.perf_counter() - t0, cache_status=cache_status)
            raise InternalError(
                f"Unexpected error: {e}",
                {"error_type": type(e).__name__},
            ) from e

        total_s = time.perf_counter() - t0
        success(
            _LOG,
            "done",
            provider=provider_name,
            language=code.value,
            chars=char_count,
            batches=len(batches),
            bytes=len(audio),
            seconds=round(total_s, 3),
        )
        debug(_LOG, "timings", **{k: round(v, 5) for k, v in timings.items()})
        metrics.record_request(provider_name, "success", total_s, cache_status=cache_status,
                               audio_bytes=len(audio))
        return result

    def synthesize_request(self, request: SynthesizeRequest) -> SynthesisResult:
        return self.synthesize(request.user_id, request.text, request.source_link, request.language)

    # =========================================================================
    # Usage
    # =========================================================================

    def remaining_characters(self, user_id: str) -> int:
        """Characters the user may still synthesize today."""
        user = self._load_user(user_id)
        return self._guard.remaining(user, self._used_today(user_id))

    def get_usage_summary(self, user_id: str) -> UsageSummary:
        """
        Today's usage, the tier's limits and recent history for a user.

        Raises:
            InvalidInputError: Unknown user.
            DependencyError: Store failure.
        """
        user = self._load_user(user_id)
        record = self._store_call("get_today_usage", self._usage_store.get_today_usage, user_id)
        history = self._store_call(
            "get_usage_history",
            self._usage_store.get_usage_history,
            user_id,
            self._config.usage.history_days,
        )

        now = self._clock()
        quota: Quota = self._guard.quota_for(user)
        used = record.characters_used if record is not None else 0
        requests = record.articles_synthesized if record is not None else 0
        is_trial = self._guard.is_trial(user, now)

        return UsageSummary(
            user_id=user.user_id,
            subscription_tier=user.subscription_tier.value,
            day=now.date(),
            characters_used=used,
            minutes_used=self.duration_minutes_for(used),
            requests=requests,
            character_limit=quota.character_limit,
            minute_limit=quota.minute_limit,
            remaining_characters=self._guard.remaining(user, used),
            resets_at=datetime.combine(now.date() + timedelta(days=1), dtime.min, tzinfo=now.tzinfo),
            is_trial=is_trial,
            trial_ends_at=self._guard.trial_ends_at(user) if is_trial else None,
            history=list(history),
        )

    # =========================================================================
    # Health Check
    # =========================================================================

    def get_health_info(self) -> Dict[str, Any]:
        """
        Service status for the /health endpoint.

        Returns a dictionary with the provider description, cache state and
        statistics, the default language and uptime.
        """
        return {
            "ok": True,
            "provider": self._provider.get_info(),
            "default_language": self._detector.default.value,
            "languages": [c.value for c in self._detector.languages],
            "max_text_chars": self._max_text_chars,
            "cache": {
                "enabled": self._cache is not None,
                **(self._cache.stats() if self._cache is not None else {}),
            },
            "uptime_seconds": round(time.monotonic() - self._started_at, 1),
        }


# =============================================================================
# Global Service Singleton
# =============================================================================

_service: Optional[TTSService] = None
_service_lock = threading.Lock()


def get_service(settings: Settings) -> TTSService:
    """
    Get or create the global TTSService instance.

    Thread-safe lazy singleton. The service is created on first call
    and reused for subsequent calls.
    """
    global _service
    if _service is None:
        with _service_lock:
            if _service is None:
                _service = TTSService(settings)
    return _service


def reset_service() -> None:
    """
    Reset the global service instance.

    Used primarily for testing to ensure clean state between tests.
    """
    global _service
    with _service_lock:
        _service = None
