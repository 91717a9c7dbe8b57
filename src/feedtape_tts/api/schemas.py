"""
API Request/Response Schemas.

Models:
    SynthesizeBody: Input for POST /api/tts/synthesize
    UsageResponse: Output of GET /api/tts/usage

Example Request:
    {
        "text": "<p>Die Bundesregierung hat am Mittwoch ...</p>",
        "link": "https://news.example/artikel/123",
        "language": null
    }

Text length is not constrained here: the service enforces
``tts.max_text_chars`` so an oversized article gets a TEXT_TOO_LONG error
body instead of a generic validation error.
"""
from __future__ import annotations

from typing import List

from pydantic import BaseModel, Field


class SynthesizeBody(BaseModel):
    """
    Article synthesis request.

    Attributes:
        text: Article text, HTML allowed.
        link: Article URL; identifies the article for the result cache.
        language: Optional two-letter override (en, es, fr, de, it, pt).
            Detection is skipped when given.
    """
    text: str = Field(..., description="Article text to synthesize (HTML allowed)")
    link: str = Field(..., min_length=1, description="Source article URL")
    language: str | None = Field(
        default=None,
        max_length=10,
        description="Language override (e.g. 'de'); auto-detected when omitted",
    )


class UsageAmounts(BaseModel):
    characters: int
    minutes: float
    requests: int


class UsageHistoryItem(BaseModel):
    date: str
    characters: int
    articles: int


class UsageResponse(BaseModel):
    """
    Daily usage report.

    Example Response:
        {
            "period": "daily",
            "usage": {"characters": 4200, "minutes": 4.2, "requests": 3},
            "limits": {"characters": 20000, "minutes": 20, "requests": 999999},
            "remaining_characters": 15800,
            "resets_at": "2026-10-18T00:00:00+00:00",
            "subscription_tier": "free",
            "is_trial": true,
            "trial_ends_at": "2026-10-20T09:12:00+00:00",
            "history": [{"date": "2026-10-17", "characters": 4200, "articles": 3}]
        }
    """
    period: str = "daily"
    usage: UsageAmounts
    limits: UsageAmounts
    remaining_characters: int
    resets_at: str
    subscription_tier: str
    is_trial: bool
    trial_ends_at: str | None = None
    history: List[UsageHistoryItem] = Field(default_factory=list)
