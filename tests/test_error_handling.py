"""
Tests for error codes and exception classes.

Tests cover:
- ErrorCode and ErrorKind constants
- TTSError base class and to_dict()
- Default codes of each error kind
- HTTP status mapping of error kinds
"""
import json

import pytest

from feedtape_tts.api.routes import status_for
from feedtape_tts.core.errors import (
    DependencyError,
    ErrorCode,
    ErrorKind,
    InternalError,
    InvalidInputError,
    PaymentRequiredError,
    TTSError,
)


class TestErrorCode:
    """Tests for ErrorCode constants."""

    def test_codes_are_their_names(self):
        for name in ("TEXT_REQUIRED", "TEXT_TOO_LONG", "USER_NOT_FOUND", "QUOTA_EXCEEDED",
                     "TRIAL_EXPIRED", "PROVIDER_FAILED", "STORE_FAILED", "INTERNAL_ERROR"):
            assert getattr(ErrorCode, name) == name


class TestTTSError:
    """Tests for the TTSError base class."""

    def test_defaults(self):
        error = TTSError("Something broke")
        assert error.message == "Something broke"
        assert error.code == ErrorCode.INTERNAL_ERROR
        assert error.details == {}
        assert error.kind == ErrorKind.INTERNAL
        assert str(error) == "Something broke"

    def test_to_dict_without_details(self):
        assert TTSError("x", ErrorCode.STORE_FAILED).to_dict() == {
            "ok": False,
            "error": "STORE_FAILED",
            "kind": "internal",
            "message": "x",
        }

    def test_to_dict_with_details(self):
        error = PaymentRequiredError("Daily character limit exceeded",
                                     details={"used": 19990, "limit": 20000, "requested": 100})
        data = error.to_dict()

        assert data["error"] == "QUOTA_EXCEEDED"
        assert data["kind"] == "payment_required"
        assert data["details"] == {"used": 19990, "limit": 20000, "requested": 100}
        json.dumps(data)


class TestErrorKinds:
    """Each subclass carries its kind and default code."""

    @pytest.mark.parametrize("cls,kind,code", [
        (InvalidInputError, "invalid_input", ErrorCode.INVALID_INPUT),
        (PaymentRequiredError, "payment_required", ErrorCode.QUOTA_EXCEEDED),
        (DependencyError, "dependency", ErrorCode.PROVIDER_FAILED),
        (InternalError, "internal", ErrorCode.INTERNAL_ERROR),
    ])
    def test_kind_and_default_code(self, cls, kind, code):
        error = cls("message")
        assert error.kind == kind
        assert error.code == code
        assert isinstance(error, TTSError)

    def test_caught_as_base(self):
        with pytest.raises(TTSError):
            raise DependencyError("Polly unavailable")

    def test_internal_error_details(self):
        error = InternalError("Unexpected error: boom", {"error_type": "RuntimeError"})
        assert error.details == {"error_type": "RuntimeError"}


class TestStatusMapping:
    """Tests for the HTTP status of each error."""

    @pytest.mark.parametrize("error,status", [
        (InvalidInputError("bad"), 400),
        (InvalidInputError("empty", code=ErrorCode.TEXT_REQUIRED), 400),
        (InvalidInputError("long", code=ErrorCode.TEXT_TOO_LONG), 413),
        (InvalidInputError("who", code=ErrorCode.USER_NOT_FOUND), 404),
        (PaymentRequiredError("quota"), 402),
        (PaymentRequiredError("trial", code=ErrorCode.TRIAL_EXPIRED), 402),
        (DependencyError("polly"), 502),
        (DependencyError("db", code=ErrorCode.STORE_FAILED), 502),
        (InternalError("boom"), 500),
    ])
    def test_status_for(self, error, status):
        assert status_for(error) == status
