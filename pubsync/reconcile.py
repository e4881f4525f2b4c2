"""Assemble the index document for one source record.

The reconciler walks the requested fields in schema order and builds each one
according to its FieldKind:

- a full selection (``FieldSelection.all()``) produces plain values, used for
  complete (re)indexing
- any other selection wraps every emitted field in an atomic ``set`` so the
  index merges just those fields; the key is always bare

Positions of the categories listed in ``SyncConfig.recompute_categories`` are
recomputed from the normalized title and abstract, and the category's count is
written from the same computation, replacing any separately requested count.
Other position fields are rebuilt from the stored strings by
LegacyPositionRepair.

Data problems never abort the record. A column that cannot be read is logged
and its field omitted; if the title or abstract cannot be read while
recomputing positions, that category's position and count fields are omitted.
"""

from __future__ import annotations

from pubsync.codec import FieldValue, FieldValueCodec, IntScalarList, Scalar, ScalarList
from pubsync.config import SyncConfig
from pubsync.document import FieldUpdate, SourceRecord, TargetDocument, UpdateMode
from pubsync.errors import TextUnavailableError
from pubsync.fields import (
    FACET_SOURCES,
    FULL_TEXT_SOURCES,
    SCHEMA,
    EntityCategory,
    FieldKind,
    FieldSelection,
    category_for_field,
)
from pubsync.legacy import LegacyPositionRepair, alignment_mismatch
from pubsync.logging import setup_logging
from pubsync.positions import PositionIndexer
from pubsync.text import TextNormalizer


class _Sections:
    """Normalized title and abstract of one record, read on first use."""

    def __init__(self, record: SourceRecord, normalizer: TextNormalizer):
        self._record = record
        self._normalizer = normalizer
        self._cache: dict[str, str | None] = {}

    def get(self, column: str) -> str | None:
        if column not in self._cache:
            self._cache[column] = self._normalizer.normalize(self._record.get_text(column))
        return self._cache[column]


class DocumentReconciler:
    """Build TargetDocuments from SourceRecords."""

    def __init__(self, config: SyncConfig | None = None):
        self._config = config or SyncConfig()
        self._codec = FieldValueCodec(self._config)
        self._normalizer = TextNormalizer(self._config)
        self._indexer = PositionIndexer(self._config)
        self._repair = LegacyPositionRepair(self._config)

    @property
    def config(self) -> SyncConfig:
        return self._config

    def reconcile(self, record: SourceRecord, requested: FieldSelection | None = None) -> TargetDocument:
        """Build the document for record restricted to the requested fields."""
        logger = setup_logging()
        selection = requested if requested is not None else FieldSelection.all()
        mode = UpdateMode.REPLACE if selection.is_all else UpdateMode.SET
        sections = _Sections(record, self._normalizer)

        values: dict[str, FieldValue] = {}
        # categories whose pos/count fields are settled (recomputed or dropped)
        settled: set[str] = set()

        for name in selection.ordered():
            kind = SCHEMA[name]
            if kind is FieldKind.KEY or name in values:
                continue

            category = category_for_field(name)
            if category is not None and category.name in settled and name in (category.pos_field, category.count_field):
                continue
            if self._recomputes(category, name, selection):
                computed = self._recompute_positions(record, category, sections)  # type: ignore[arg-type]
                if computed is not False:
                    settled.add(category.name)  # type: ignore[union-attr]
                    if computed is not None:
                        values[category.pos_field], values[category.count_field] = computed  # type: ignore[index]
                    continue

            try:
                value = self._build(record, name, kind, sections)
            except TextUnavailableError as exc:
                logger.warning(
                    {
                        "message": f"Could not read {exc.column} for {record.key}; omitting {name}",
                        "key": record.key,
                        "field": name,
                        "reason": exc.reason,
                    },
                    pprint=True,
                )
                continue
            if value is not None:
                values[name] = value

        document = TargetDocument(
            key_field=self._config.key_field,
            key=record.key,
            updates={name: FieldUpdate(value=value, mode=mode) for name, value in values.items()},
        )
        logger.debug(document)
        return document

    def _recomputes(self, category: EntityCategory | None, name: str, selection: FieldSelection) -> bool:
        """True when name is a position field whose positions are recomputed from text."""
        if category is None or category.name not in self._config.recompute_categories:
            return False
        if category.term_field is None or category.pos_field is None or category.count_field is None:
            return False
        return name == category.pos_field and category.pos_field in selection

    def _recompute_positions(
        self,
        record: SourceRecord,
        category: EntityCategory,
        sections: _Sections,
    ) -> tuple[ScalarList, IntScalarList] | None | bool:
        """Recomputed (positions, counts) for a category.

        Returns None when the text is unreadable (the field group is omitted)
        and False when the record lists no entity names, in which case the
        fields fall back to their stored values.
        """
        logger = setup_logging()
        try:
            names = self._codec.split(record.get_text(category.term_field))  # type: ignore[arg-type]
        except TextUnavailableError as exc:
            logger.warning(
                {"message": f"Could not read {category.term_field} for {record.key}", "reason": exc.reason},
                pprint=True,
            )
            return None
        if not names:
            return False

        try:
            title = sections.get("title")
            abstract = sections.get("abstract")
        except TextUnavailableError as exc:
            logger.error(
                {
                    "message": f"Text unavailable for {category.name} position calculation on {record.key}; "
                    f"omitting {category.pos_field} and {category.count_field}",
                    "key": record.key,
                    "column": exc.column,
                    "reason": exc.reason,
                },
                pprint=True,
            )
            return None

        positions = self._indexer.index_entities(names, title, abstract, category.name)
        groups, counts = self._indexer.render(positions)
        logger.debug(
            {
                "message": f"Calculated {category.name} positions for {record.key}",
                "occurrences": {p.name: p.count for p in positions},
                "groups": groups,
            },
            pprint=True,
        )
        return ScalarList(values=tuple(groups)), IntScalarList(values=tuple(counts))

    def _build(self, record: SourceRecord, name: str, kind: FieldKind, sections: _Sections) -> FieldValue | None:
        codec = self._codec

        if kind is FieldKind.TITLE:
            text = sections.get(name)
            return Scalar(value=text) if text else None

        if kind is FieldKind.COUNT:
            return codec.decode_counts(name, record.get(name))

        if kind is FieldKind.POSITIONS:
            return self._stored_positions(record, name)

        if kind is FieldKind.DATE:
            return codec.format_date(record.get(name))

        if kind is FieldKind.YEAR:
            return codec.decode_year(record.get(name))

        if kind is FieldKind.SOURCE:
            return Scalar(value=self._config.source_literal)

        if kind is FieldKind.MESH_TERMS:
            mesh_terms = record.get_text("mesh_terms") or ""
            terms = [t.strip() for t in mesh_terms.split(self._config.mesh_delimiter) if t.strip()]
            return ScalarList(values=tuple(terms)) if terms else None

        if kind is FieldKind.FACET_LIST:
            source = codec.decode(FACET_SOURCES[name], record.get(FACET_SOURCES[name]))
            if not isinstance(source, ScalarList):
                return None
            return ScalarList(values=tuple(codec.limit(name, v) for v in source.values))

        if kind is FieldKind.FACET_SCALAR:
            source = codec.decode(FACET_SOURCES[name], record.get(FACET_SOURCES[name]))
            if not isinstance(source, Scalar):
                return None
            return Scalar(value=codec.limit(name, source.value))

        if kind is FieldKind.FULL_TEXT:
            return self._full_text(record)

        return codec.decode(name, record.get(name))

    def _stored_positions(self, record: SourceRecord, name: str) -> ScalarList | None:
        category = category_for_field(name)
        count_field = category.count_field if category else None
        raw_positions = record.get_text(name)
        raw_counts = record.get_text(count_field) if count_field else None
        groups = self._repair.repair(raw_positions, raw_counts)
        if not groups:
            return None

        if category is not None and category.term_field:
            terms = self._codec.split(record.get_text(category.term_field))
            counts = self._codec.split(raw_counts)
            if terms and alignment_mismatch(terms, groups, counts):
                logger = setup_logging()
                logger.warning(
                    {
                        "message": f"{category.name} term/position/count lengths disagree for {record.key}",
                        "key": record.key,
                        "terms": len(terms),
                        "positions": len(groups),
                        "counts": len(counts),
                    },
                    pprint=True,
                )
        return ScalarList(values=tuple(groups))

    def _full_text(self, record: SourceRecord) -> ScalarList | None:
        # raw, unsanitized text is kept for full-text matching
        parts: list[str] = []
        for column in FULL_TEXT_SOURCES:
            try:
                text = record.get_text(column)
            except TextUnavailableError as exc:
                logger = setup_logging()
                logger.warning(
                    {
                        "message": f"Could not read {exc.column} for {record.key}; leaving it out of text",
                        "key": record.key,
                        "field": "text",
                        "reason": exc.reason,
                    },
                    pprint=True,
                )
                continue
            if text is None:
                continue
            if column == "abstract" and not text.strip():
                continue
            parts.append(text)
        return ScalarList(values=tuple(parts)) if parts else None


def reconcile(
    record: SourceRecord,
    requested: FieldSelection | None = None,
    config: SyncConfig | None = None,
) -> TargetDocument:
    return DocumentReconciler(config).reconcile(record, requested)
