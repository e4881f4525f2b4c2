"""The index schema: which fields exist and how each one is built.

Every index field belongs to one FieldKind, resolved once from its name.
Entity categories are declared in CATEGORIES, one row per category naming its
id/term/position/count columns; the schema is the union of those columns and
the publication-level fields.
"""

from __future__ import annotations

from enum import Enum
from typing import Iterable

from pydantic import BaseModel, ConfigDict, Field

from pubsync.errors import UnknownFieldError


class FieldKind(str, Enum):
    """How an index field is produced from a source record."""

    KEY = "key"
    """Primary key, always emitted bare."""

    TITLE = "title"
    """Normalized section text (title or abstract)."""

    SCALAR = "scalar"
    """Trimmed single value, sanitized when the column is free text."""

    LIST = "list"
    """Primary-delimiter list (ids, terms, gene names)."""

    COUNT = "count"
    """Integer list, at least one value."""

    POSITIONS = "positions"
    """Stored position groups, repaired with the count column."""

    DATE = "date"
    YEAR = "year"
    SOURCE = "source"

    MESH_TERMS = "mesh_terms"
    """mt_term: mesh_terms split on ';'."""

    FACET_LIST = "facet_list"
    """String-field list copy of another list column (gene_s, organism_term_s)."""

    FACET_SCALAR = "facet_scalar"
    """String-field copy of a scalar column (affiliation_s)."""

    FULL_TEXT = "full_text"
    """text: raw keywords, mesh terms, chemicals, title and abstract."""


class EntityCategory(BaseModel):
    """Column names for one entity category; None where the column does not exist."""

    model_config = ConfigDict(frozen=True)

    name: str
    id_field: str | None = None
    term_field: str | None = None
    pos_field: str | None = None
    count_field: str | None = None
    is_multi_valued: bool = True

    def fields(self) -> tuple[str, ...]:
        return tuple(f for f in (self.id_field, self.term_field, self.pos_field, self.count_field) if f)


def _ontology(name: str) -> EntityCategory:
    return EntityCategory(
        name=name,
        id_field=f"{name}_id",
        term_field=f"{name}_term",
        pos_field=f"{name}_pos",
        count_field=f"{name}_count",
    )


CATEGORIES: tuple[EntityCategory, ...] = (
    EntityCategory(name="gene", term_field="gene", pos_field="gene_pos", count_field="gene_count"),
    _ontology("mp"),
    _ontology("bp"),
    _ontology("vt"),
    _ontology("chebi"),
    _ontology("rs"),
    _ontology("rdo"),
    _ontology("nbo"),
    _ontology("xco"),
    _ontology("so"),
    _ontology("hp"),
    _ontology("rgd_obj"),
    EntityCategory(
        name="organism",
        id_field="organism_ncbi_id",
        term_field="organism_term",
        pos_field="organism_pos",
        count_field="organism_count",
    ),
    EntityCategory(name="go", count_field="go_count"),
    EntityCategory(name="xdb", id_field="xdb_id"),
)

CATEGORY_BY_NAME: dict[str, EntityCategory] = {c.name: c for c in CATEGORIES}

# Publication-level fields, in the order a full document lists them.
_PUBLICATION_FIELDS: tuple[tuple[str, FieldKind], ...] = (
    ("pmid", FieldKind.KEY),
    ("title", FieldKind.TITLE),
    ("abstract", FieldKind.TITLE),
    ("p_date", FieldKind.DATE),
    ("authors", FieldKind.SCALAR),
    ("keywords", FieldKind.SCALAR),
    ("mesh_terms", FieldKind.SCALAR),
    ("affiliation", FieldKind.SCALAR),
    ("issn", FieldKind.SCALAR),
    ("p_year", FieldKind.YEAR),
    ("p_type", FieldKind.SCALAR),
    ("doi_s", FieldKind.SCALAR),
    ("citation", FieldKind.SCALAR),
    ("chemicals", FieldKind.SCALAR),
    ("j_date_s", FieldKind.SCALAR),
    ("pmc_id", FieldKind.SCALAR),
    ("organism_common_name", FieldKind.SCALAR),
)

_DERIVED_FIELDS: tuple[tuple[str, FieldKind], ...] = (
    ("mt_term", FieldKind.MESH_TERMS),
    ("gene_s", FieldKind.FACET_LIST),
    ("organism_term_s", FieldKind.FACET_LIST),
    ("affiliation_s", FieldKind.FACET_SCALAR),
    ("text", FieldKind.FULL_TEXT),
    ("p_source", FieldKind.SOURCE),
)

# Source column each derived copy reads from.
FACET_SOURCES: dict[str, str] = {
    "gene_s": "gene",
    "organism_term_s": "organism_term",
    "affiliation_s": "affiliation",
}

FULL_TEXT_SOURCES: tuple[str, ...] = ("keywords", "mesh_terms", "chemicals", "title", "abstract")


def classify(field_name: str) -> FieldKind:
    """Resolve the kind of a field from its name (suffix rules for unlisted names)."""
    if field_name in _FIXED_KINDS:
        return _FIXED_KINDS[field_name]
    if field_name.endswith("_count"):
        return FieldKind.COUNT
    if field_name.endswith("_pos"):
        return FieldKind.POSITIONS
    if field_name.endswith(("_id", "_term")) or field_name == "gene":
        return FieldKind.LIST
    return FieldKind.SCALAR


def _category_fields() -> list[str]:
    # terms, then ids, then positions, then counts across categories
    ordered: list[str] = []
    for attr in ("term_field", "id_field", "pos_field", "count_field"):
        for category in CATEGORIES:
            name = getattr(category, attr)
            if name:
                ordered.append(name)
    return ordered


_FIXED_KINDS: dict[str, FieldKind] = dict(_PUBLICATION_FIELDS + _DERIVED_FIELDS)

SCHEMA: dict[str, FieldKind] = {
    **dict(_PUBLICATION_FIELDS),
    **{name: classify(name) for name in _category_fields()},
    **dict(_DERIVED_FIELDS),
}

SCHEMA_FIELDS: frozenset[str] = frozenset(SCHEMA)


def category_for_field(field_name: str) -> EntityCategory | None:
    """The category owning a term/id/pos/count column, if any."""
    for category in CATEGORIES:
        if field_name in category.fields():
            return category
    return None


class FieldSelection(BaseModel):
    """The fields a caller asked to (re)index.

    ``FieldSelection.all()`` means a full document; any strict subset of the
    schema means an atomic partial update of just those fields.
    """

    model_config = ConfigDict(frozen=True)

    names: frozenset[str] = Field(default=SCHEMA_FIELDS)

    @classmethod
    def all(cls) -> "FieldSelection":
        return cls(names=SCHEMA_FIELDS)

    @classmethod
    def of(cls, names: Iterable[str]) -> "FieldSelection":
        """Selection of the given field names.

        Raises:
            UnknownFieldError: a name is not part of the index schema.
        """
        cleaned = {n.strip() for n in names if n and n.strip()}
        unknown = cleaned - SCHEMA_FIELDS
        if unknown:
            raise UnknownFieldError(list(unknown))
        return cls(names=frozenset(cleaned))

    @classmethod
    def parse(cls, value: str) -> "FieldSelection":
        """Parse a comma-separated list such as ``"gene,gene_pos"``; ``*`` or ``all`` selects everything."""
        if value.strip().lower() in ("*", "all"):
            return cls.all()
        return cls.of(value.split(","))

    @property
    def is_all(self) -> bool:
        return self.names >= SCHEMA_FIELDS

    def __contains__(self, name: str) -> bool:
        return name in self.names

    def ordered(self) -> list[str]:
        """Selected names in schema order."""
        return [name for name in SCHEMA if name in self.names]
