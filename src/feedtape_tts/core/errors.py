"""
Error Codes and Exceptions.

Every failure leaving the synthesis pipeline is a TTSError in one of four
kinds, which the HTTP layer maps to a status family:

    InvalidInputError     invalid_input      4xx  (bad text, unknown user,
                                                   unsupported language)
    PaymentRequiredError  payment_required   402  (quota used up, trial over)
    DependencyError       dependency         502  (provider or store failed)
    InternalError         internal           500  (anything unexpected)

InvalidInput and PaymentRequired are always raised before any provider
call, so they never cost synthesis time or quota.
"""
from __future__ import annotations

from typing import Any, Dict, Optional


class ErrorCode:
    """
    Standardized error codes for API responses.
    """
    INVALID_INPUT = "INVALID_INPUT"             # Generic bad request data
    TEXT_REQUIRED = "TEXT_REQUIRED"             # Empty after normalization
    TEXT_TOO_LONG = "TEXT_TOO_LONG"             # Above tts.max_text_chars
    USER_NOT_FOUND = "USER_NOT_FOUND"
    UNSUPPORTED_LANGUAGE = "UNSUPPORTED_LANGUAGE"
    QUOTA_EXCEEDED = "QUOTA_EXCEEDED"           # Daily character limit
    TRIAL_EXPIRED = "TRIAL_EXPIRED"             # Free tier past trial window
    PROVIDER_FAILED = "PROVIDER_FAILED"         # Upstream synthesis call failed
    STORE_FAILED = "STORE_FAILED"               # User/usage store call failed
    INTERNAL_ERROR = "INTERNAL_ERROR"           # Unexpected error


class ErrorKind:
    INVALID_INPUT = "invalid_input"
    PAYMENT_REQUIRED = "payment_required"
    DEPENDENCY = "dependency"
    INTERNAL = "internal"


class TTSError(Exception):
    """
    Base exception for synthesis errors.

    Attributes:
        message: Human-readable error message.
        code: Error code from ErrorCode.
        details: Additional context (e.g. used/limit/requested for quota).
    """
    kind = ErrorKind.INTERNAL

    def __init__(self, message: str, code: str = ErrorCode.INTERNAL_ERROR, details: Optional[Dict] = None):
        self.message = message
        self.code = code
        self.details = details or {}
        super().__init__(message)

    def to_dict(self) -> Dict[str, Any]:
        """Standardized error response body."""
        result = {
            "ok": False,
            "error": self.code,
            "kind": self.kind,
            "message": self.message,
        }
        if self.details:
            result["details"] = self.details
        return result


class InvalidInputError(TTSError):
    """Bad request data: empty or oversized text, unknown user, unsupported language."""
    kind = ErrorKind.INVALID_INPUT

    def __init__(self, message: str, code: str = ErrorCode.INVALID_INPUT, details: Optional[Dict] = None):
        super().__init__(message, code, details)


class PaymentRequiredError(TTSError):
    """Daily quota exceeded or free trial expired."""
    kind = ErrorKind.PAYMENT_REQUIRED

    def __init__(self, message: str, code: str = ErrorCode.QUOTA_EXCEEDED, details: Optional[Dict] = None):
        super().__init__(message, code, details)


class DependencyError(TTSError):
    """A provider or store call failed; message carries the upstream error."""
    kind = ErrorKind.DEPENDENCY

    def __init__(self, message: str, code: str = ErrorCode.PROVIDER_FAILED, details: Optional[Dict] = None):
        super().__init__(message, code, details)


class InternalError(TTSError):
    """Unexpected, unclassified failure."""
    kind = ErrorKind.INTERNAL

    def __init__(self, message: str, details: Optional[Dict] = None):
        super().__init__(message, ErrorCode.INTERNAL_ERROR, details)
