"""
feedtape-tts Services Layer.

Business logic between the HTTP/CLI surfaces and the synthesis pipeline.

Components:
    - tts_service.py: TTSService (synthesis orchestrator, usage summary)
    - usage_guard.py: Trial and daily quota enforcement
    - validators.py: Input validation functions
"""
from .tts_service import (
    DependencyError,
    ErrorCode,
    InternalError,
    InvalidInputError,
    PaymentRequiredError,
    SynthesisResult,
    SynthesizeRequest,
    TTSError,
    TTSService,
    UsageSummary,
)
from .usage_guard import Quota, UsageGuard

__all__ = [
    "TTSService",
    "SynthesizeRequest",
    "SynthesisResult",
    "UsageSummary",
    "UsageGuard",
    "Quota",
    "TTSError",
    "InvalidInputError",
    "PaymentRequiredError",
    "DependencyError",
    "InternalError",
    "ErrorCode",
]
