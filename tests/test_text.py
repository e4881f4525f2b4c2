"""Tests for title/abstract normalization and text column reading.

This module verifies:
- Whitespace rules (leading strip, markup-adjacent collapse, global collapse)
- Substitution table and stray question mark removal
- normalize is idempotent
- sanitize leaves whitespace alone
- Markup helpers used for display and diagnostics
- read_text accepts strings, UTF-8 bytes and large-object handles
"""

import io

import pytest

from pubsync.config import SyncConfig
from pubsync.errors import TextUnavailableError
from pubsync.text import (
    TextNormalizer,
    collapse_whitespace,
    find_markup_tags,
    normalize,
    read_text,
    sanitize,
    strip_markup,
)


class TestNormalize:
    """Tests for the full normalization pipeline."""

    def test_html_entity_replaced(self) -> None:
        assert normalize("a &amp; b") == "a & b"

    def test_greek_letter_repaired(self) -> None:
        assert normalize("TGF-?") == "TGF-β"
        assert normalize("the ?-macroglobulin receptor") == "the α-macroglobulin receptor"

    def test_none_passes_through(self) -> None:
        assert normalize(None) is None

    def test_whitespace_collapsed_and_trimmed(self) -> None:
        raw = "  Loss of Brca1 sensitizes cells.\n\nTP53 mutations   co-occur with BRCA1 loss. "
        assert normalize(raw) == "Loss of Brca1 sensitizes cells. TP53 mutations co-occur with BRCA1 loss."

    def test_markup_kept_with_single_spaces(self) -> None:
        assert normalize("  <b>x</b>   \n <i>y</i>  ") == "<b>x</b> <i>y</i>"

    def test_stray_question_marks_removed(self) -> None:
        """A '?' is kept only before whitespace, '.,;:' or the end of the text."""
        assert normalize("what?ever") == "whatever"
        assert normalize("why? not") == "why? not"
        assert normalize("really?") == "really?"
        assert normalize("a?. b?, c?; d?:") == "a?. b?, c?; d?:"

    def test_nbsp_does_not_leave_double_spaces(self) -> None:
        assert normalize("a &nbsp; b") == "a b"

    @pytest.mark.parametrize(
        "raw",
        [
            "a &amp;amp; b",
            "??x",
            "a?&amp;?",
            "  <p> TGF-?   signalling </p>  ",
            "x &nbsp;&nbsp; y",
            "homologyepatocellular carcinoma?",
            "a &" + "amp;" * 40 + " b",
        ],
    )
    def test_idempotent(self, raw: str) -> None:
        once = normalize(raw)
        assert normalize(once) == once

    def test_deeply_nested_entity_fully_unescaped(self) -> None:
        assert normalize("a &" + "amp;" * 40 + " b") == "a & b"

    def test_custom_substitutions(self) -> None:
        normalizer = TextNormalizer(SyncConfig(substitutions=[("colour", "color")]))
        assert normalizer.normalize("colour &amp; shape") == "color &amp; shape"


class TestSanitize:
    """Tests for the sanitizer used on metadata columns."""

    def test_keeps_whitespace(self) -> None:
        assert sanitize("a  &amp;\nb") == "a  &\nb"

    def test_none_passes_through(self) -> None:
        assert sanitize(None) is None

    def test_collapse_whitespace_alone(self) -> None:
        assert collapse_whitespace("\t a \n\n b  ") == "a b"


class TestMarkup:
    """Tests for markup helpers."""

    def test_strip_markup(self) -> None:
        assert strip_markup("<i>Brca1</i> loss") == "Brca1 loss"
        assert strip_markup(None) is None

    def test_find_markup_tags(self) -> None:
        assert find_markup_tags("a<b>c</b>") == [(1, 4, "<b>"), (5, 9, "</b>")]

    def test_no_tags(self) -> None:
        assert find_markup_tags("plain text") == []


class TestReadText:
    """Tests for reading column values that may be large objects."""

    def test_string_and_none(self) -> None:
        assert read_text("abc") == "abc"
        assert read_text(None) is None

    def test_utf8_bytes(self) -> None:
        assert read_text("TGF-β".encode("utf-8")) == "TGF-β"
        assert read_text(memoryview(b"abc")) == "abc"
        assert read_text(bytearray(b"abc")) == "abc"

    def test_large_object_handle(self) -> None:
        assert read_text(io.StringIO("from a clob")) == "from a clob"
        assert read_text(io.BytesIO("from a blob".encode("utf-8"))) == "from a blob"

    def test_invalid_utf8_raises(self) -> None:
        with pytest.raises(TextUnavailableError) as exc_info:
            read_text(b"\xff\xfe\xfa", column="abstract")
        assert exc_info.value.column == "abstract"

    def test_unreadable_handle_raises(self) -> None:
        handle = io.StringIO("closed")
        handle.close()
        with pytest.raises(TextUnavailableError):
            read_text(handle, column="title")

    def test_unsupported_type_raises(self) -> None:
        with pytest.raises(TextUnavailableError):
            read_text(object(), column="title")


class TestTextNormalizer:
    """Tests for free-text field detection."""

    def test_is_text_field(self) -> None:
        normalizer = TextNormalizer()
        assert normalizer.is_text_field("authors")
        assert normalizer.is_text_field("mp_term")
        assert normalizer.is_text_field("organism_term")
        assert not normalizer.is_text_field("issn")
        assert not normalizer.is_text_field("gene")
