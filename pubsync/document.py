"""Source records read from the relational store and target index documents.

A SourceRecord wraps one row keyed by publication id. Column values may be
plain strings, UTF-8 bytes or large-object handles. Handles are read once,
when the record is built; text columns are then read through `get_text`.

A TargetDocument is built fresh for every record and handed to the index
client. Each field carries a FieldUpdate that is either a replace (plain value
or list, used for full documents) or an atomic ``set`` (partial update). The
key is always written bare:

    {"pmid": "12345", "gene": {"set": ["Brca1", "Tp53"]}}
"""

from __future__ import annotations

import json
from enum import Enum
from typing import Any, Mapping

from pydantic import BaseModel, ConfigDict, Field, field_validator

from pubsync.codec import FieldValue, IntScalarList, ScalarList
from pubsync.errors import TextUnavailableError
from pubsync.text import read_text


class _UnreadableText:
    """Stands in for a large object whose read failed; every read repeats the failure."""

    def __init__(self, reason: str):
        self.reason = reason

    def read(self) -> str:
        raise OSError(self.reason)


class SourceRecord(BaseModel):
    """One publication row."""

    model_config = ConfigDict(frozen=True)

    key: str = Field(description="Publication key (e.g. a PMID digit string).")
    columns: dict[str, Any] = Field(default_factory=dict, description="Raw column values by name.")

    @field_validator("columns")
    @classmethod
    def read_large_objects(cls, columns: dict[str, Any]) -> dict[str, Any]:
        # a large-object handle can only be read once
        for name, value in columns.items():
            if isinstance(value, _UnreadableText) or not callable(getattr(value, "read", None)):
                continue
            try:
                columns[name] = read_text(value, name)
            except TextUnavailableError as exc:
                columns[name] = _UnreadableText(exc.reason)
        return columns

    @classmethod
    def from_row(cls, row: Mapping[str, Any], key_field: str = "pmid") -> "SourceRecord":
        """Build a record from a column mapping.

        Raises:
            ValueError: the row has no value for key_field.
        """
        key = row.get(key_field)
        if key is None or not str(key).strip():
            raise ValueError(f"Row has no {key_field}")
        return cls(key=str(key).strip(), columns=dict(row))

    def has(self, column: str) -> bool:
        return column in self.columns

    def get(self, column: str) -> Any:
        return self.columns.get(column)

    def get_text(self, column: str) -> str | None:
        """Column value as text (raises TextUnavailableError if unreadable)."""
        return read_text(self.columns.get(column), column)


class UpdateMode(str, Enum):
    REPLACE = "replace"
    SET = "set"


class FieldUpdate(BaseModel):
    """One field of a target document."""

    model_config = ConfigDict(frozen=True)

    value: FieldValue
    mode: UpdateMode = UpdateMode.REPLACE

    @property
    def is_atomic(self) -> bool:
        return self.mode is UpdateMode.SET

    @property
    def is_list(self) -> bool:
        return isinstance(self.value, (ScalarList, IntScalarList))

    @property
    def variant(self) -> str:
        """ReplaceValue, ReplaceValueList, AtomicSet or AtomicSetList."""
        base = "AtomicSet" if self.is_atomic else "ReplaceValue"
        return base + ("List" if self.is_list else "")

    def payload(self) -> Any:
        value = self.value.payload
        return {"set": value} if self.is_atomic else value


class TargetDocument(BaseModel):
    """Field-level update plan for one record."""

    model_config = ConfigDict(frozen=True)

    key_field: str
    key: str
    updates: dict[str, FieldUpdate] = Field(default_factory=dict)

    def __contains__(self, field_name: str) -> bool:
        return field_name == self.key_field or field_name in self.updates

    def get(self, field_name: str) -> FieldUpdate | None:
        return self.updates.get(field_name)

    def field_names(self) -> list[str]:
        return [self.key_field, *self.updates]

    @property
    def has_updates(self) -> bool:
        """False when the document would carry nothing but its key."""
        return bool(self.updates)

    @property
    def is_partial(self) -> bool:
        return any(u.is_atomic for u in self.updates.values())

    def to_payload(self) -> dict[str, Any]:
        payload: dict[str, Any] = {self.key_field: self.key}
        for name, update in self.updates.items():
            payload[name] = update.payload()
        return payload

    def to_json(self, indent: int | None = 2) -> str:
        return json.dumps(self.to_payload(), indent=indent, ensure_ascii=False)
