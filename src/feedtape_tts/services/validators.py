"""
Input Validation for the TTS Service.

Validation runs before any normalization, detection, store read or
provider call, so a bad request never costs an upstream round-trip or
touches usage.

Validation Rules:
    - Text: required, max ``tts.max_text_chars`` (10000) characters
    - Language: optional, one of the six supported two-letter codes
    - User id: required, max 128 characters, no whitespace

Error Handling:
    All validation functions raise ValidationError with:
        - message: Human-readable error description
        - code: Machine-readable error code (e.g., "TEXT_TOO_LONG")

    TTSService turns ValidationError into InvalidInputError with the same
    code.

Usage:
    from feedtape_tts.services.validators import validate_text, ValidationError

    try:
        text = validate_text(request.text, max_length=10000)
    except ValidationError as e:
        return error_response(e.code, e.message)
"""
from __future__ import annotations

from typing import Optional

from feedtape_tts.core.config import Defaults
from feedtape_tts.core.errors import ErrorCode
from feedtape_tts.tts.language import LanguageCode, supported_codes

MAX_USER_ID_LENGTH = 128


class ValidationError(Exception):
    """
    Exception raised when input validation fails.

    Attributes:
        message: Human-readable error description.
        code: Machine-readable error code.
        details: Extra context for the error response.
    """

    def __init__(self, message: str, code: str = ErrorCode.INVALID_INPUT, details: Optional[dict] = None):
        self.message = message
        self.code = code
        self.details = details or {}
        super().__init__(message)


def validate_text(text: Optional[str], max_length: int = Defaults.INPUT_MAX_TEXT_CHARS) -> str:
    """
    Validate raw article text.

    The length cap applies to the text as received, before markup and
    URLs are stripped.

    Args:
        text: Input text
        max_length: Maximum allowed length

    Returns:
        The text, unchanged

    Raises:
        ValidationError: If the text is empty or too long
    """
    if not text or not text.strip():
        raise ValidationError("Text is required", ErrorCode.TEXT_REQUIRED)

    if len(text) > max_length:
        raise ValidationError(
            f"Text exceeds maximum length ({len(text)} > {max_length})",
            ErrorCode.TEXT_TOO_LONG,
            details={"chars": len(text), "max_length": max_length},
        )

    return text


def validate_language(language: Optional[str]) -> Optional[LanguageCode]:
    """
    Resolve an explicit language override.

    Returns:
        The LanguageCode, or None when no override was given.

    Raises:
        ValidationError: If the code is not supported.
    """
    if language is None or not str(language).strip():
        return None

    code = LanguageCode.parse(language)
    if code is None:
        raise ValidationError(
            f"Unsupported language: {language} (supported: {', '.join(supported_codes())})",
            ErrorCode.UNSUPPORTED_LANGUAGE,
            details={"language": str(language)},
        )
    return code


def validate_user_id(user_id: Optional[str], max_length: int = MAX_USER_ID_LENGTH) -> str:
    if not user_id or not user_id.strip():
        raise ValidationError("User id is required", ErrorCode.INVALID_INPUT)

    user_id = user_id.strip()
    if len(user_id) > max_length or any(ch.isspace() for ch in user_id):
        raise ValidationError(
            "User id is malformed",
            ErrorCode.INVALID_INPUT,
            details={"max_length": max_length},
        )
    return user_id
