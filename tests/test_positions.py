"""Tests for entity position search.

This module verifies:
- Overlapping, case-insensitive matching
- Sentinel span for entities that do not occur
- Title matches precede abstract matches
- Input order and duplicates are preserved
- UTF-16 versus code point offsets
- Span token parsing and formatting
"""

import pytest

from pubsync.config import SyncConfig
from pubsync.positions import (
    PositionIndexer,
    Section,
    find_positions,
    format_span,
    index_entities,
    parse_span,
)

TITLE = "BRCA1 and TP53 interplay in breast cancer"
ABSTRACT = "Loss of Brca1 sensitizes cells. TP53 mutations co-occur with BRCA1 loss."


class TestIndexEntities:
    """Tests for index_entities and rendering."""

    def test_overlapping_matches(self) -> None:
        """'AA' occurs three times in 'AAAA'."""
        (positions,) = index_entities(["AA"], "AAAA", "")
        spans = [(m.start_offset, m.end_offset) for m in positions.mentions]
        assert spans == [(0, 2), (1, 3), (2, 4)]
        assert positions.count == 3
        assert positions.group() == "0;0-2|0;1-3|0;2-4"

    def test_absent_entity_gets_sentinel(self) -> None:
        (positions,) = index_entities(["Myc"], TITLE, ABSTRACT)
        assert len(positions.mentions) == 1
        assert positions.mentions[0].is_sentinel
        assert positions.group() == "0;0-0"
        assert positions.count == 0

    def test_title_before_abstract(self) -> None:
        (positions,) = index_entities(["brca1"], TITLE, ABSTRACT)
        assert positions.group() == "0;0-5|1;8-13|1;61-66"
        assert positions.title_count == 1
        assert positions.abstract_count == 2

    def test_case_insensitive(self) -> None:
        (positions,) = index_entities(["tp53"], TITLE, ABSTRACT)
        assert positions.group() == "0;10-14|1;32-36"
        assert positions.mentions[0].text == "tp53"

    def test_order_and_duplicates_preserved(self) -> None:
        positions = index_entities(["TP53", " ", "BRCA1", "TP53"], TITLE, ABSTRACT)
        assert [p.name for p in positions] == ["TP53", "BRCA1", "TP53"]

    def test_names_trimmed(self) -> None:
        (positions,) = index_entities(["  TP53 "], TITLE, None)
        assert positions.name == "TP53"
        assert positions.group() == "0;10-14"

    def test_missing_sections(self) -> None:
        (positions,) = index_entities(["TP53"], None, None)
        assert positions.group() == "0;0-0"

    def test_render_arrays(self) -> None:
        indexer = PositionIndexer()
        groups, counts = indexer.render(indexer.index_entities(["BRCA1", "TP53", "Myc"], TITLE, ABSTRACT))
        assert groups == ["0;0-5|1;8-13|1;61-66", "0;10-14|1;32-36", "0;0-0"]
        assert counts == [3, 2, 0]

    def test_context_snippet(self) -> None:
        indexer = PositionIndexer(SyncConfig(context_chars=5))
        (positions,) = indexer.index_entities(["cells"], None, ABSTRACT)
        assert positions.mentions[0].context == "izes cells. TP5"
        assert positions.mentions[0].section == Section.ABSTRACT


class TestOffsetUnits:
    """Tests for offsets in texts with characters outside the BMP."""

    TEXT = "\U0001d6fc Brca1"

    def test_utf16_offsets_by_default(self) -> None:
        (positions,) = index_entities(["Brca1"], self.TEXT, "")
        assert positions.group() == "0;3-8"

    def test_codepoint_offsets(self) -> None:
        config = SyncConfig(offset_units="codepoint")
        (positions,) = index_entities(["Brca1"], self.TEXT, "", config=config)
        assert positions.group() == "0;2-7"


class TestFindPositions:
    """Tests for the name-keyed lookup."""

    def test_keyed_by_name(self) -> None:
        found = find_positions(["BRCA1", "Myc"], TITLE, ABSTRACT)
        assert set(found) == {"BRCA1", "Myc"}
        assert len(found["BRCA1"]) == 3
        assert found["Myc"][0].is_sentinel

    def test_category_recorded(self) -> None:
        found = find_positions(["breast"], TITLE, ABSTRACT, category="rdo")
        assert found["breast"][0].category == "rdo"


class TestSpanTokens:
    """Tests for the section;start-end token format."""

    def test_format(self) -> None:
        assert format_span(Section.ABSTRACT, 4, 9) == "1;4-9"

    def test_parse(self) -> None:
        assert parse_span(" 1;4-9 ") == (Section.ABSTRACT, 4, 9)
        assert parse_span("0;0-0") == (Section.TITLE, 0, 0)

    @pytest.mark.parametrize("token", ["", "2;1-3", "0;a-3", "0-1;3", "0;1-"])
    def test_parse_rejects_malformed(self, token: str) -> None:
        with pytest.raises(ValueError):
            parse_span(token)
