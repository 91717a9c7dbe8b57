"""
Text Normalization for Speech Synthesis.

Article bodies arrive as HTML fragments, feed summaries or plain text.
Before language detection and batching they are reduced to one line of
plain prose:

    1. Render markup to text (tags dropped, entities decoded, block
       elements separated by a space)
    2. Remove bare http/https URLs
    3. Collapse every whitespace run, newlines included, to one space
    4. Trim

The result never holds tags, URLs or repeated whitespace, and normalizing
it again returns it unchanged. Empty or whitespace-only input yields "".

Example:
    >>> from feedtape_tts.utils.text import normalize_text
    >>> text, timings = normalize_text("<p>Read   more at https://x.io/a</p>\\n<p>Bye.</p>")
    >>> text
    'Read more at Bye.'
"""
from __future__ import annotations

import re
from typing import Dict

from bs4 import BeautifulSoup

from feedtape_tts.core.logging import get_logger, verbose
from feedtape_tts.utils.timeit import timeit

_LOG = get_logger("feedtape-tts.text")

_URL_RE = re.compile(r"https?://\S+")
_WS_RE = re.compile(r"\s+")
# Something that looks like a tag or an entity; plain text skips the parser.
_MARKUP_HINT_RE = re.compile(r"<[A-Za-z!/?]|&(?:#\d+|#x[0-9A-Fa-f]+|[A-Za-z]+);")
_MAX_MARKUP_PASSES = 5


def _render_once(text: str) -> str:
    soup = BeautifulSoup(text, "html.parser")
    for node in soup(["script", "style", "noscript"]):
        node.decompose()
    return soup.get_text(separator=" ")


def strip_markup(text: str) -> str:
    """
    Render HTML/XML markup to plain text.

    Script and style contents are dropped. Text nodes are joined with a
    space so adjacent block elements do not glue words together. Escaped
    markup such as ``&lt;b&gt;`` or ``&amp;amp;`` is rendered again until
    nothing tag- or entity-like is left.
    """
    for _ in range(_MAX_MARKUP_PASSES):
        if not _MARKUP_HINT_RE.search(text):
            break
        rendered = _render_once(text)
        if rendered == text:
            break
        text = rendered
    return text


def remove_urls(text: str) -> str:
    return _URL_RE.sub(" ", text)


def collapse_whitespace(text: str) -> str:
    return _WS_RE.sub(" ", text).strip()


def normalize_text(text: str) -> tuple[str, Dict[str, float]]:
    """
    Normalize raw article text for synthesis.

    Args:
        text: Raw input, possibly containing HTML.

    Returns:
        Tuple of (normalized_text, timing_dict). timing_dict has a
        'normalize' key with the duration in seconds.
    """
    timings: Dict[str, float] = {}

    with timeit("normalize") as t:
        s = strip_markup(text or "")
        s = remove_urls(s)
        s = collapse_whitespace(s)

    timings["normalize"] = t.seconds
    verbose(_LOG, "normalized", chars_in=len(text or ""), chars_out=len(s), seconds=round(t.seconds, 4))
    return s, timings
