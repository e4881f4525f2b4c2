"""Entity position search over the title and abstract of a record.

Positions are recomputed from the current normalized text instead of trusting
stored legacy strings, which keeps the term, position and count arrays aligned:
every input name yields exactly one EntityPositions, in input order.

Matching is case-insensitive and overlap-permissive: after a match at index i
the scan resumes at i + 1, so "AA" occurs three times in "AAAA". Names that do
not occur anywhere get a single sentinel span ``0;0-0`` and a count of 0.

Span tokens use the legacy wire format ``section;start-end`` with section 0 for
the title and 1 for the abstract; an entity's tokens are joined with ``|``.
"""

from __future__ import annotations

import re
from enum import IntEnum
from typing import Iterator, Sequence

from pydantic import BaseModel, Field

from pubsync.config import SyncConfig

_SPAN_TOKEN = re.compile(r"^\s*([01]);(\d+)-(\d+)\s*$")


class Section(IntEnum):
    """Text zones eligible for position search."""

    TITLE = 0
    ABSTRACT = 1


class EntityMention(BaseModel, frozen=True):
    """One occurrence of an entity name in a section of normalized text."""

    category: str = Field(description="Entity category, e.g. 'gene' or 'mp'.")
    text: str = Field(description="The entity name as listed on the record.")
    section: Section = Field(description="Section the span lies in.")
    start_offset: int = Field(ge=0, description="Span start, inclusive.")
    end_offset: int = Field(ge=0, description="Span end, exclusive.")
    context: str | None = Field(default=None, description="Surrounding text of the match.")

    @property
    def is_sentinel(self) -> bool:
        """True for the 0;0-0 marker emitted when an entity was not found."""
        return self.start_offset == self.end_offset

    def token(self) -> str:
        return format_span(self.section, self.start_offset, self.end_offset)


class EntityPositions(BaseModel, frozen=True):
    """All mentions of one entity, title matches first."""

    category: str
    name: str
    mentions: tuple[EntityMention, ...]

    @property
    def count(self) -> int:
        return sum(1 for m in self.mentions if not m.is_sentinel)

    @property
    def title_count(self) -> int:
        return sum(1 for m in self.mentions if not m.is_sentinel and m.section == Section.TITLE)

    @property
    def abstract_count(self) -> int:
        return sum(1 for m in self.mentions if not m.is_sentinel and m.section == Section.ABSTRACT)

    def group(self, delimiter: str = "|") -> str:
        """Render the legacy position group, e.g. ``0;3-8|1;40-45``."""
        return delimiter.join(m.token() for m in self.mentions)


def format_span(section: int, start: int, end: int) -> str:
    return f"{int(section)};{start}-{end}"


def parse_span(token: str) -> tuple[Section, int, int]:
    """Parse ``section;start-end``.

    Raises:
        ValueError: the token is not a span token.
    """
    match = _SPAN_TOKEN.match(token)
    if match is None:
        raise ValueError(f"Malformed span token: {token!r}")
    return Section(int(match.group(1))), int(match.group(2)), int(match.group(3))


def _fold(text: str) -> str:
    """Lower-case text without changing its length."""
    lowered = text.lower()
    if len(lowered) == len(text):
        return lowered
    # a few characters (e.g. U+0130) expand when lower-cased
    return "".join(c.lower() if len(c.lower()) == 1 else c for c in text)


def _utf16_index(text: str) -> list[int] | None:
    """Map code point index -> UTF-16 index, or None when they coincide."""
    if all(ord(c) < 0x10000 for c in text):
        return None
    index = [0]
    for c in text:
        index.append(index[-1] + (2 if ord(c) >= 0x10000 else 1))
    return index


def _scan(haystack: str, needle: str) -> Iterator[int]:
    """Yield every start index of needle in haystack, overlaps included."""
    start = 0
    while start < len(haystack):
        index = haystack.find(needle, start)
        if index == -1:
            return
        yield index
        start = index + 1


class PositionIndexer:
    """Find entity spans in a two-section text."""

    def __init__(self, config: SyncConfig | None = None):
        self._config = config or SyncConfig()

    def _section_mentions(self, category: str, name: str, section: Section, text: str) -> list[EntityMention]:
        if not text:
            return []
        needle = _fold(name)
        haystack = _fold(text)
        units = _utf16_index(text) if self._config.offset_units == "utf-16" else None
        width = self._config.context_chars
        mentions = []
        for index in _scan(haystack, needle):
            end = index + len(needle)
            mentions.append(
                EntityMention(
                    category=category,
                    text=name,
                    section=section,
                    start_offset=units[index] if units else index,
                    end_offset=units[end] if units else end,
                    context=text[max(0, index - width) : end + width],
                )
            )
        return mentions

    def locate(self, name: str, title: str, abstract: str, category: str = "gene") -> EntityPositions:
        """Positions of one (already trimmed, non-empty) name."""
        mentions = self._section_mentions(category, name, Section.TITLE, title)
        mentions += self._section_mentions(category, name, Section.ABSTRACT, abstract)
        if not mentions:
            mentions = [
                EntityMention(category=category, text=name, section=Section.TITLE, start_offset=0, end_offset=0)
            ]
        return EntityPositions(category=category, name=name, mentions=tuple(mentions))

    def index_entities(
        self,
        entity_names: Sequence[str],
        title: str | None,
        abstract: str | None,
        category: str = "gene",
    ) -> list[EntityPositions]:
        """One EntityPositions per non-blank name, in input order (duplicates kept)."""
        results = []
        for raw_name in entity_names:
            name = raw_name.strip()
            if not name:
                continue
            results.append(self.locate(name, title or "", abstract or "", category))
        return results

    def find_positions(
        self,
        entity_names: Sequence[str],
        title: str | None,
        abstract: str | None,
        category: str = "gene",
    ) -> dict[str, list[EntityMention]]:
        """Mentions keyed by entity name; a repeated name keeps its first entry."""
        found: dict[str, list[EntityMention]] = {}
        for positions in self.index_entities(entity_names, title, abstract, category):
            found.setdefault(positions.name, list(positions.mentions))
        return found

    def render(self, positions: Sequence[EntityPositions]) -> tuple[list[str], list[int]]:
        """Legacy (position groups, counts) arrays for a list of entities."""
        delimiter = self._config.secondary_delimiter
        return [p.group(delimiter) for p in positions], [p.count for p in positions]


def index_entities(
    entity_names: Sequence[str],
    title: str | None,
    abstract: str | None,
    category: str = "gene",
    config: SyncConfig | None = None,
) -> list[EntityPositions]:
    return PositionIndexer(config).index_entities(entity_names, title, abstract, category)


def find_positions(
    entity_names: Sequence[str],
    title: str | None,
    abstract: str | None,
    category: str = "gene",
    config: SyncConfig | None = None,
) -> dict[str, list[EntityMention]]:
    return PositionIndexer(config).find_positions(entity_names, title, abstract, category)
