"""
Batch Splitting for Provider Calls.

Every synthesis provider caps the text a single call may carry (Polly
3000 characters, OpenAI 4096). This module cuts normalized article text
into ordered batches under such a cap, preferring sentence boundaries so
each call ends on a natural pause.

Algorithm (split_into_batches):
    1. Text that already fits is returned as one batch.
    2. Otherwise whole sentences are accumulated greedily; when the next
       sentence would overflow the cap, the current batch is flushed.
    3. The tail after the last sentence boundary is appended if it fits,
       started as a new batch otherwise, and hard-split when it alone
       exceeds the cap.
    4. Any non-empty trailing batch is flushed.

Hard splitting cuts at the last space inside the window; only a single
word longer than the cap is cut mid-word. Joining the batches with single
spaces therefore gives back the same words in the same order.

Sentence boundaries come from one place, find_sentence_boundaries(), for
every provider.

Example:
    >>> from feedtape_tts.tts.chunker import split_into_batches
    >>> result = split_into_batches("First one. Second one! Third?", max_size=12)
    >>> result.batches
    ['First one.', 'Second one!', 'Third?']
"""
from __future__ import annotations

import re
from dataclasses import dataclass
from typing import Dict, List, Tuple

from feedtape_tts.core.logging import get_logger, verbose
from feedtape_tts.utils.timeit import timeit

_LOG = get_logger("feedtape-tts.chunker")


# =============================================================================
# Sentence Boundaries
# =============================================================================

# Terminator run followed by whitespace: "end. Next", "what?! Next".
# A terminator at the very end of the text has no whitespace after it and
# is therefore part of the tail.
_SENTENCE_END = re.compile(r"[.!?]+\s+")


def find_sentence_boundaries(text: str) -> List[int]:
    """
    Offsets where a new sentence starts.

    Each offset points just past a terminator and its trailing whitespace,
    so ``text[prev:offset]`` is a whole sentence including its separator.
    """
    return [m.end() for m in _SENTENCE_END.finditer(text)]


def split_sentences(text: str) -> Tuple[List[str], str]:
    """
    Split text into complete sentences and the unterminated tail.

    Returns:
        Tuple of (sentences, tail). Sentences keep their terminator and
        trailing whitespace; ``"".join(sentences) + tail == text``.
    """
    sentences: List[str] = []
    start = 0
    for end in find_sentence_boundaries(text):
        sentences.append(text[start:end])
        start = end
    return sentences, text[start:]


# =============================================================================
# Data Classes
# =============================================================================

@dataclass
class BatchResult:
    """
    Result of splitting text for a provider.

    Attributes:
        batches: Ordered text batches, each at most max_size characters.
        timings_s: Timing measurements in seconds.
    """
    batches: List[str]
    timings_s: Dict[str, float]

    def __len__(self) -> int:
        return len(self.batches)


# =============================================================================
# Splitting
# =============================================================================

def hard_split(text: str, max_size: int) -> List[str]:
    """
    Cut text into pieces of at most max_size characters without looking
    at punctuation.

    Cuts at the last space inside each window; a window with no space is
    cut at exactly max_size characters.
    """
    pieces: List[str] = []
    rest = text.strip()
    while len(rest) > max_size:
        cut = rest.rfind(" ", 1, max_size + 1)
        if cut <= 0:
            piece, rest = rest[:max_size], rest[max_size:]
        else:
            piece, rest = rest[:cut], rest[cut + 1:]
        piece = piece.strip()
        if piece:
            pieces.append(piece)
        rest = rest.lstrip()
    if rest:
        pieces.append(rest)
    return pieces


def split_into_batches(text: str, max_size: int) -> BatchResult:
    """
    Split normalized text into provider-sized batches.

    Args:
        text: Normalized text (single spaces, trimmed).
        max_size: Provider's per-call character limit.

    Returns:
        BatchResult. Empty or whitespace-only text gives no batches.

    Raises:
        ValueError: If max_size is smaller than 1.
    """
    if max_size < 1:
        raise ValueError(f"max_size must be positive, got {max_size}")

    timings: Dict[str, float] = {}

    with timeit("split") as t:
        batches = _split(text, max_size)

    timings["split"] = t.seconds
    verbose(
        _LOG,
        "split",
        chars=len(text),
        max_size=max_size,
        batches=len(batches),
        sizes=[len(b) for b in batches],
        seconds=round(t.seconds, 4),
    )
    return BatchResult(batches=batches, timings_s=timings)


def _split(text: str, max_size: int) -> List[str]:
    stripped = text.strip()
    if not stripped:
        return []
    if len(stripped) <= max_size:
        return [stripped]

    batches: List[str] = []
    current = ""

    def flush() -> None:
        nonlocal current
        piece = current.strip()
        if piece:
            batches.append(piece)
        current = ""

    sentences, tail = split_sentences(stripped)

    for sentence in sentences:
        if len(sentence.strip()) > max_size:
            # A single sentence over the cap.
            flush()
            batches.extend(hard_split(sentence, max_size))
            continue
        if current and len(current) + len(sentence) > max_size:
            flush()
        current += sentence

    if tail:
        if len(current) + len(tail) <= max_size:
            current += tail
        else:
            flush()
            if len(tail) > max_size:
                batches.extend(hard_split(tail, max_size))
            else:
                current = tail

    flush()
    return batches
