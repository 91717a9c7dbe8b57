"""
Tests for article text normalization.

Tests cover:
- Markup rendering (tags, entities, script/style removal)
- URL removal
- Whitespace collapsing and trimming
- Empty input
- Idempotence
"""
import pytest

from feedtape_tts.utils.text import collapse_whitespace, normalize_text, remove_urls, strip_markup


def norm(text: str) -> str:
    return normalize_text(text)[0]


class TestMarkup:
    """Tests for markup rendering."""

    def test_tags_removed(self):
        """Tags are dropped and their text kept."""
        assert norm("<p>Hello <b>bold</b> world</p>") == "Hello bold world"

    def test_block_elements_do_not_glue_words(self):
        """Adjacent paragraphs are separated by a space."""
        assert norm("<p>First.</p><p>Second.</p>") == "First. Second."

    def test_entities_decoded(self):
        """HTML entities become characters."""
        assert norm("Fish &amp; chips &eacute;t&eacute;") == "Fish & chips été"

    def test_script_and_style_dropped(self):
        """Script and style contents are not spoken."""
        text = "<style>p {color: red}</style><p>Visible</p><script>alert('x')</script>"
        assert norm(text) == "Visible"

    def test_plain_text_with_angle_bracket_untouched(self):
        """A comparison sign is not mistaken for a tag."""
        assert strip_markup("if a < b then") == "if a < b then"


class TestUrlsAndWhitespace:
    """Tests for URL removal and whitespace handling."""

    def test_urls_removed(self):
        """Bare http and https URLs disappear."""
        assert norm("Read https://example.com/a?b=1 and http://x.io now") == "Read and now"

    def test_link_text_kept_href_dropped(self):
        """Anchor text is spoken, the href attribute is not."""
        assert norm('<a href="https://example.com">the article</a> says') == "the article says"

    def test_remove_urls_leaves_other_text(self):
        assert remove_urls("no links here") == "no links here"

    def test_whitespace_collapsed(self):
        """Newlines, tabs and runs of spaces become one space."""
        assert norm("  one\n\ntwo\t\tthree    four  ") == "one two three four"

    def test_collapse_whitespace_trims(self):
        assert collapse_whitespace("\n  x  \n") == "x"


class TestEdgeCases:
    """Tests for empty input, idempotence and timings."""

    @pytest.mark.parametrize("text", ["", "   ", "\n\t", "<p> </p>", "https://only.a/link"])
    def test_empty_results(self, text):
        """Input with nothing speakable normalizes to an empty string."""
        assert norm(text) == ""

    def test_none_is_empty(self):
        assert norm(None) == ""

    @pytest.mark.parametrize("text", [
        "<div><h1>Title</h1>\n<p>Body text, see https://x.io/y.</p></div>",
        "Already   plain\ttext.",
        "Caf&eacute; au lait &amp; more",
        "<ul><li>one</li><li>two</li></ul> end",
        "Use &lt;b&gt;bold&lt;/b&gt; tags.",
        "Tom &amp;amp; Jerry",
        "a &amp;lt;b&amp;gt; c",
    ])
    def test_idempotent(self, text):
        """Normalizing twice gives the same result as once."""
        once = norm(text)
        assert norm(once) == once

    @pytest.mark.parametrize("text,expected", [
        ("Use &lt;b&gt;bold&lt;/b&gt; tags.", "Use bold tags."),
        ("Tom &amp;amp; Jerry", "Tom & Jerry"),
        ("&lt;p&gt;Feed &amp;lt;i&amp;gt;summary&amp;lt;/i&amp;gt;&lt;/p&gt;", "Feed summary"),
    ])
    def test_escaped_markup_is_rendered(self, text, expected):
        """Entity-escaped markup from feed bodies leaves no tags or entities."""
        assert norm(text) == expected

    def test_timings_returned(self):
        """The timing dict carries the normalize stage."""
        _, timings = normalize_text("<p>x</p>")
        assert "normalize" in timings
        assert timings["normalize"] >= 0
