"""
TTS API Routes.

Endpoints:
    POST /api/tts/synthesize  - Synthesize an article (returns MP3 audio)
    GET  /api/tts/usage       - Today's usage, limits and history
    GET  /health              - Health check for load balancers and probes
    GET  /metrics             - Prometheus metrics (requires prometheus_client)

The caller is identified by the X-User-Id header.

Error Handling:
    All errors are returned as JSON:
    {
        "ok": false,
        "error": "<ERROR_CODE>",
        "kind": "<invalid_input|payment_required|dependency|internal>",
        "message": "<human readable message>",
        "details": {...},
        "request_id": "<id>"
    }

    HTTP status codes follow the error kind:
        - invalid_input -> 400 (TEXT_TOO_LONG 413, USER_NOT_FOUND 404)
        - payment_required -> 402
        - dependency -> 502
        - internal -> 500

Example Usage:
    curl -X POST http://localhost:8000/api/tts/synthesize \\
        -H "Content-Type: application/json" -H "X-User-Id: user-1" \\
        -d '{"text": "Hello world.", "link": "https://blog.example/1"}' \\
        --output article.mp3
"""
from __future__ import annotations

import uuid
from typing import Optional

from fastapi import APIRouter, Depends, Response
from fastapi.responses import JSONResponse

from feedtape_tts.api.dependencies import get_tts_service, get_user_id
from feedtape_tts.api.schemas import SynthesizeBody, UsageResponse
from feedtape_tts.core.errors import ErrorCode, ErrorKind, InternalError, InvalidInputError, TTSError
from feedtape_tts.core.logging import fail, get_logger, set_request_id, warn
from feedtape_tts.core.metrics import metrics
from feedtape_tts.services.tts_service import TTSService
from feedtape_tts.services.validators import ValidationError, validate_user_id

router = APIRouter()

_LOG = get_logger("feedtape-tts.api")

# Requests-per-day value reported by the usage endpoint.
UNLIMITED_REQUESTS = 999999

_STATUS_BY_KIND = {
    ErrorKind.INVALID_INPUT: 400,
    ErrorKind.PAYMENT_REQUIRED: 402,
    ErrorKind.DEPENDENCY: 502,
    ErrorKind.INTERNAL: 500,
}

_STATUS_BY_CODE = {
    ErrorCode.TEXT_TOO_LONG: 413,
    ErrorCode.USER_NOT_FOUND: 404,
}


def status_for(error: TTSError) -> int:
    return _STATUS_BY_CODE.get(error.code, _STATUS_BY_KIND.get(error.kind, 500))


def _error_response(error: TTSError, request_id: str) -> JSONResponse:
    content = error.to_dict()
    content["request_id"] = request_id
    return JSONResponse(status_code=status_for(error), content=content)


def _new_request_id() -> str:
    rid = str(uuid.uuid4())[:12]
    set_request_id(rid)
    return rid


def _require_user(user_id: Optional[str]) -> str:
    try:
        return validate_user_id(user_id)
    except ValidationError as e:
        raise InvalidInputError(e.message, code=e.code, details=e.details) from e


def _remaining_header(service: TTSService, user_id: str) -> Optional[str]:
    """Remaining characters for the response header, or None if unavailable."""
    try:
        return str(service.remaining_characters(user_id))
    except TTSError as e:
        warn(_LOG, "usage_remaining_unavailable", user_id=user_id, error=e.code)
        return None


@router.post("/api/tts/synthesize", response_class=Response)
def synthesize(
    req: SynthesizeBody,
    user_id: Optional[str] = Depends(get_user_id),
    service: TTSService = Depends(get_tts_service),
):
    """
    Synthesize an article for the calling user.

    Returns:
        Response: Audio bytes with headers:
            - X-Request-Id: Request identifier for tracing
            - X-Duration-Seconds: Estimated listening time
            - X-Character-Count: Characters charged
            - X-Language-Detected: Language the audio is spoken in
            - X-Usage-Remaining: Characters left today
    """
    rid = _new_request_id()

    try:
        uid = _require_user(user_id)
        result = service.synthesize(uid, req.text, req.link, language=req.language)
    except TTSError as e:
        return _error_response(e, rid)
    except Exception as e:
        fail(_LOG, "unhandled", error=str(e), error_type=type(e).__name__)
        return _error_response(InternalError("Internal server error"), rid)

    headers = {
        "X-Request-Id": rid,
        "X-Duration-Seconds": str(result.duration_seconds),
        "X-Character-Count": str(result.char_count),
        "X-Language-Detected": result.language_detected.value,
    }
    remaining = _remaining_header(service, uid)
    if remaining is not None:
        headers["X-Usage-Remaining"] = remaining

    return Response(content=result.audio_bytes, media_type=service.provider.media_type, headers=headers)


@router.get("/api/tts/usage", response_model=UsageResponse)
def usage(
    user_id: Optional[str] = Depends(get_user_id),
    service: TTSService = Depends(get_tts_service),
):
    """
    Today's usage for the calling user.

    Counters reset at UTC midnight (``resets_at``). History covers the last
    ``usage.history_days`` days, newest first.
    """
    rid = _new_request_id()

    try:
        summary = service.get_usage_summary(_require_user(user_id))
    except TTSError as e:
        return _error_response(e, rid)

    body = summary.to_dict()
    return UsageResponse(
        period="daily",
        usage=body["usage"],
        limits={**body["limits"], "requests": UNLIMITED_REQUESTS},
        remaining_characters=body["remaining_characters"],
        resets_at=body["resets_at"],
        subscription_tier=body["subscription_tier"],
        is_trial=body["is_trial"],
        trial_ends_at=body["trial_ends_at"],
        history=body["history"],
    )


@router.get("/health")
def health(service: TTSService = Depends(get_tts_service)):
    """
    Health check endpoint for load balancers and orchestration.

    Reports the active provider, cache state and uptime.
    """
    return service.get_health_info()


@router.get("/metrics")
def prometheus_metrics():
    """
    Prometheus metrics endpoint.

    Requires prometheus_client. Returns placeholder text if unavailable.
    """
    content, content_type = metrics.get_metrics_response()
    return Response(content=content, media_type=content_type)
