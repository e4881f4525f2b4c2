"""Position diagnostics for a single record.

Helpers for investigating highlighting problems: where each entity of a
category occurs in the normalized title and abstract, and whether the position
groups stored on the record still agree with what the current text produces.

Example:
    ```python
    report = position_report(record)
    for entity in report.entities:
        print(entity.name, entity.title_count, entity.abstract_count)

    for drift in position_drift(record):
        if not drift.matches:
            print(drift.name, drift.stored, "->", drift.recomputed)
    ```
"""

from __future__ import annotations

from pydantic import BaseModel, ConfigDict, Field

from pubsync.codec import FieldValueCodec
from pubsync.config import SyncConfig
from pubsync.document import SourceRecord
from pubsync.fields import CATEGORY_BY_NAME, EntityCategory
from pubsync.legacy import LegacyPositionRepair
from pubsync.logging import setup_logging
from pubsync.positions import EntityPositions, PositionIndexer, Section
from pubsync.text import TextNormalizer, find_markup_tags


class MarkupTag(BaseModel):
    model_config = ConfigDict(frozen=True)

    section: Section
    start: int
    end: int
    tag: str


class EntityReport(BaseModel):
    """Occurrences of one entity name."""

    model_config = ConfigDict(frozen=True)

    name: str
    title_count: int
    abstract_count: int
    spans: tuple[str, ...] = Field(description="Span tokens, sentinel included when not found.")
    contexts: tuple[str, ...] = Field(default=(), description="Text around each match.")

    @property
    def total(self) -> int:
        return self.title_count + self.abstract_count


class PositionReport(BaseModel):
    """Where the entities of one category occur in a record's text."""

    model_config = ConfigDict(frozen=True)

    key: str
    category: str
    title: str | None
    abstract: str | None
    entities: tuple[EntityReport, ...]
    markup_tags: tuple[MarkupTag, ...] = Field(
        default=(), description="Markup tags in the normalized text; spans count them as text."
    )

    @property
    def title_length(self) -> int:
        return len(self.title or "")

    @property
    def abstract_length(self) -> int:
        return len(self.abstract or "")


class PositionDrift(BaseModel):
    """Stored versus recomputed positions for one entity."""

    model_config = ConfigDict(frozen=True)

    name: str
    stored: str | None = Field(description="Stored group after legacy repair, None if there was none.")
    recomputed: str
    stored_count: int | None = None
    recomputed_count: int

    @property
    def matches(self) -> bool:
        return self.stored == self.recomputed and (
            self.stored_count is None or self.stored_count == self.recomputed_count
        )


def _position_category(category: str) -> EntityCategory:
    entry = CATEGORY_BY_NAME.get(category)
    if entry is None or entry.term_field is None or entry.pos_field is None:
        raise ValueError(f"{category!r} is not a category with entity positions")
    return entry


def _locate(
    record: SourceRecord, category: EntityCategory, config: SyncConfig
) -> tuple[str | None, str | None, list[EntityPositions]]:
    normalizer = TextNormalizer(config)
    title = normalizer.normalize(record.get_text("title"))
    abstract = normalizer.normalize(record.get_text("abstract"))
    names = FieldValueCodec(config).split(record.get_text(category.term_field))  # type: ignore[arg-type]
    positions = PositionIndexer(config).index_entities(names, title, abstract, category.name)
    return title, abstract, positions


def position_report(record: SourceRecord, category: str = "gene", config: SyncConfig | None = None) -> PositionReport:
    """Report title, abstract and total occurrences of each entity of category.

    Raises:
        ValueError: category has no term or position field.
        TextUnavailableError: the title, abstract or term column cannot be read.
    """
    config = config or SyncConfig()
    entry = _position_category(category)
    title, abstract, positions = _locate(record, entry, config)

    tags = [
        MarkupTag(section=section, start=start, end=end, tag=tag)
        for section, text in ((Section.TITLE, title), (Section.ABSTRACT, abstract))
        if text
        for start, end, tag in find_markup_tags(text)
    ]
    entities = tuple(
        EntityReport(
            name=p.name,
            title_count=p.title_count,
            abstract_count=p.abstract_count,
            spans=tuple(m.token() for m in p.mentions),
            contexts=tuple(m.context for m in p.mentions if m.context is not None),
        )
        for p in positions
    )
    return PositionReport(
        key=record.key,
        category=entry.name,
        title=title,
        abstract=abstract,
        entities=entities,
        markup_tags=tuple(tags),
    )


def position_drift(
    record: SourceRecord, category: str = "gene", config: SyncConfig | None = None
) -> list[PositionDrift]:
    """Compare the record's stored position groups with freshly computed ones.

    Stored groups are aligned with entity names by index after legacy repair.
    """
    config = config or SyncConfig()
    entry = _position_category(category)
    _, _, positions = _locate(record, entry, config)

    raw_counts = record.get_text(entry.count_field) if entry.count_field else None
    stored_groups = LegacyPositionRepair(config).repair(record.get_text(entry.pos_field), raw_counts)  # type: ignore[arg-type]
    stored_counts: list[int] = []
    if raw_counts is not None and raw_counts.strip():
        stored_counts = list(FieldValueCodec(config).decode_counts(entry.count_field, raw_counts).values)  # type: ignore[arg-type]

    delimiter = config.secondary_delimiter
    drifts = [
        PositionDrift(
            name=p.name,
            stored=stored_groups[i] if i < len(stored_groups) else None,
            recomputed=p.group(delimiter),
            stored_count=stored_counts[i] if i < len(stored_counts) else None,
            recomputed_count=p.count,
        )
        for i, p in enumerate(positions)
    ]

    drifted = [d.name for d in drifts if not d.matches]
    if drifted:
        logger = setup_logging()
        logger.info(
            {"message": f"{len(drifted)} {entry.name} position groups drifted on {record.key}", "names": drifted},
            pprint=True,
        )
    return drifts
