"""
feedtape-tts: Article-to-Speech Service with Daily Quotas.

Turns article text from a feed reader into spoken audio and charges it
against per-user daily character allowances.

Features:
    - Interchangeable synthesis providers (Amazon Polly, OpenAI)
    - Automatic language detection over en, es, fr, de, it, pt
    - Sentence-aware batching for texts longer than one provider call
    - Free-trial window and tiered daily limits (free / pro)
    - Optional result cache keyed by article link
    - Prometheus metrics and structured logging

Example Usage:
    >>> from feedtape_tts.core.config import Settings
    >>> from feedtape_tts.services import TTSService
    >>>
    >>> service = TTSService(Settings(raw={"tts": {"provider": "polly"}}))
    >>> result = service.synthesize("user-1", article_html, "https://blog.example/1")
    >>> with open("article.mp3", "wb") as f:
    ...     f.write(result.audio_bytes)
"""

__version__ = "0.1.0"
__all__ = ["__version__"]
