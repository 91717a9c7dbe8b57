"""
Supported Languages and Language Detection.

One table, LANGUAGE_TABLE, is the single source of truth for every
supported language: its two-letter code, display name, the lingua
language used for detection, and the voice each provider speaks it with.
Detection output and voice selection both read from it, so adding a
language is a one-row change.

Supported:
    en English      Polly Joanna   OpenAI alloy
    es Spanish      Polly Lupe     OpenAI echo
    fr French       Polly Lea      OpenAI nova
    de German       Polly Vicki    OpenAI onyx
    it Italian      Polly Bianca   OpenAI fable
    pt Portuguese   Polly Ines     OpenAI shimmer

Detection uses lingua restricted to these six languages. When lingua is
not confident (no letters, too short, ambiguous) the configured default
language is returned instead of an error.

Example:
    >>> detector = LanguageDetector(default=LanguageCode.ENGLISH)
    >>> detector.detect("Dies ist ein Test auf Deutsch, um die Erkennung zu prüfen.")
    <LanguageCode.GERMAN: 'de'>
"""
from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import Dict, Iterable, Optional, Tuple

from lingua import Language, LanguageDetectorBuilder

from feedtape_tts.core.logging import debug, get_logger

_LOG = get_logger("feedtape-tts.language")


class LanguageCode(str, Enum):
    """Closed set of languages the service can speak."""
    ENGLISH = "en"
    SPANISH = "es"
    FRENCH = "fr"
    GERMAN = "de"
    ITALIAN = "it"
    PORTUGUESE = "pt"

    def __str__(self) -> str:
        return self.value

    @classmethod
    def parse(cls, value: object) -> Optional["LanguageCode"]:
        """
        Resolve a code ("de"), a name ("german") or a member to a LanguageCode.

        Returns None for anything unsupported.
        """
        if isinstance(value, LanguageCode):
            return value
        if not isinstance(value, str):
            return None
        key = value.strip().lower()
        for member in cls:
            if key == member.value or key == member.name.lower():
                return member
        return None

    @property
    def profile(self) -> "LanguageProfile":
        return LANGUAGE_TABLE[self]

    @property
    def display_name(self) -> str:
        return LANGUAGE_TABLE[self].name


@dataclass(frozen=True)
class LanguageProfile:
    """One row of the language table."""
    code: LanguageCode
    name: str
    lingua: Language
    voices: Dict[str, str]

    def voice(self, provider: str) -> str:
        """Voice id for a provider name ("polly", "openai")."""
        try:
            return self.voices[provider]
        except KeyError:
            raise KeyError(f"no {provider!r} voice configured for {self.code.value}") from None


LANGUAGE_TABLE: Dict[LanguageCode, LanguageProfile] = {
    LanguageCode.ENGLISH: LanguageProfile(
        code=LanguageCode.ENGLISH, name="English", lingua=Language.ENGLISH,
        voices={"polly": "Joanna", "openai": "alloy"},
    ),
    LanguageCode.SPANISH: LanguageProfile(
        code=LanguageCode.SPANISH, name="Spanish", lingua=Language.SPANISH,
        voices={"polly": "Lupe", "openai": "echo"},
    ),
    LanguageCode.FRENCH: LanguageProfile(
        code=LanguageCode.FRENCH, name="French", lingua=Language.FRENCH,
        voices={"polly": "Lea", "openai": "nova"},
    ),
    LanguageCode.GERMAN: LanguageProfile(
        code=LanguageCode.GERMAN, name="German", lingua=Language.GERMAN,
        voices={"polly": "Vicki", "openai": "onyx"},
    ),
    LanguageCode.ITALIAN: LanguageProfile(
        code=LanguageCode.ITALIAN, name="Italian", lingua=Language.ITALIAN,
        voices={"polly": "Bianca", "openai": "fable"},
    ),
    LanguageCode.PORTUGUESE: LanguageProfile(
        code=LanguageCode.PORTUGUESE, name="Portuguese", lingua=Language.PORTUGUESE,
        voices={"polly": "Ines", "openai": "shimmer"},
    ),
}

_BY_LINGUA: Dict[Language, LanguageCode] = {p.lingua: code for code, p in LANGUAGE_TABLE.items()}


def supported_codes() -> Tuple[str, ...]:
    return tuple(code.value for code in LANGUAGE_TABLE)


class LanguageDetector:
    """
    Statistical language detector over the supported languages.

    The underlying lingua detector is immutable once built and safe to
    share between threads; build one per process and reuse it.

    Args:
        default: Returned when detection is not confident.
        min_relative_distance: lingua's minimum distance between the top two
            candidates (0.0-0.99). Higher values fall back more often.
        languages: Restrict detection further (defaults to the full table).
    """

    def __init__(
        self,
        default: LanguageCode = LanguageCode.ENGLISH,
        min_relative_distance: float = 0.1,
        languages: Optional[Iterable[LanguageCode]] = None,
    ):
        codes = list(languages) if languages is not None else list(LANGUAGE_TABLE)
        if len(codes) < 2:
            raise ValueError("language detection needs at least two candidate languages")

        self._default = default
        self._languages = tuple(codes)
        self._detector = (
            LanguageDetectorBuilder.from_languages(*(LANGUAGE_TABLE[c].lingua for c in codes))
            .with_minimum_relative_distance(min_relative_distance)
            .build()
        )

    @classmethod
    def from_config(cls, config) -> "LanguageDetector":
        """Build from a ServiceConfig's language section."""
        return cls(
            default=LanguageCode.parse(config.language.default) or LanguageCode.ENGLISH,
            min_relative_distance=config.language.min_relative_distance,
        )

    @property
    def default(self) -> LanguageCode:
        return self._default

    @property
    def languages(self) -> Tuple[LanguageCode, ...]:
        return self._languages

    def detect(self, text: str) -> LanguageCode:
        """Detected language of text, or the default when not confident."""
        code, _, _ = self.detect_with_confidence(text)
        return code

    def detect_with_confidence(self, text: str) -> Tuple[LanguageCode, float, bool]:
        """
        Detect and report how sure the detector was.

        Returns:
            Tuple of (language, confidence, fell_back). confidence is lingua's
            value for the returned language (0.0 on fallback).
        """
        detected = self._detector.detect_language_of(text) if text else None
        code = _BY_LINGUA.get(detected) if detected is not None else None

        if code is None:
            debug(_LOG, "language_fallback", default=self._default.value, chars=len(text))
            return self._default, 0.0, True

        confidence = self._detector.compute_language_confidence(text, detected)
        return code, float(confidence), False
