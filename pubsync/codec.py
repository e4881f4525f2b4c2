"""Conversion of raw column values into typed index field values.

Classification follows the field name:

- ``*_count``: integer list split on the primary delimiter; tokens that are
  not integers are dropped with a warning, and an empty result becomes ``[0]``
  so every count field carries a value
- ``*_id``, ``*_term``, ``*_pos`` and ``gene``: string list split on the
  primary delimiter
- anything else: a single trimmed string

Free-text columns are passed through the sanitizer, and ``*_s`` string fields
are cut to the index's byte ceiling.
"""

from __future__ import annotations

from datetime import date, datetime
from typing import Any, Union

from pydantic import BaseModel

from pubsync.config import SyncConfig
from pubsync.fields import FieldKind, classify
from pubsync.legacy import split_groups
from pubsync.logging import setup_logging
from pubsync.text import TextNormalizer, read_text


class Scalar(BaseModel, frozen=True):
    value: str

    @property
    def payload(self) -> str:
        return self.value


class ScalarList(BaseModel, frozen=True):
    values: tuple[str, ...]

    @property
    def payload(self) -> list[str]:
        return list(self.values)


class IntScalar(BaseModel, frozen=True):
    value: int

    @property
    def payload(self) -> int:
        return self.value


class IntScalarList(BaseModel, frozen=True):
    values: tuple[int, ...]

    @property
    def payload(self) -> list[int]:
        return list(self.values)


FieldValue = Union[Scalar, ScalarList, IntScalar, IntScalarList]


def truncate_utf8(value: str, max_bytes: int, marker: str = "...") -> str:
    """Cut value to at most max_bytes UTF-8 bytes, then append marker.

    The cut never splits a multi-byte character. Values already within the
    limit are returned unchanged.
    """
    encoded = value.encode("utf-8")
    if len(encoded) <= max_bytes:
        return value
    return encoded[:max_bytes].decode("utf-8", errors="ignore") + marker


def _as_text(value: Any, column: str) -> str | None:
    if isinstance(value, (int, float)) and not isinstance(value, bool):
        return str(value)
    return read_text(value, column)


class FieldValueCodec:
    """Decode raw column values according to the index schema."""

    def __init__(self, config: SyncConfig | None = None):
        self._config = config or SyncConfig()
        self._normalizer = TextNormalizer(self._config)

    @property
    def config(self) -> SyncConfig:
        return self._config

    def split(self, raw: str | None) -> list[str]:
        return split_groups(raw, self._config.primary_delimiter)

    def limit(self, field_name: str, value: str) -> str:
        """Apply the byte ceiling to *_s fields."""
        if not field_name.endswith("_s"):
            return value
        limited = truncate_utf8(value, self._config.max_field_bytes, self._config.truncation_marker)
        if limited is not value:
            logger = setup_logging()
            logger.warning(
                {
                    "message": f"Truncated {field_name} to {self._config.max_field_bytes} bytes",
                    "field": field_name,
                    "original_bytes": len(value.encode("utf-8")),
                },
                pprint=True,
            )
        return limited

    def decode(self, field_name: str, raw_value: Any) -> FieldValue | None:
        """Decode one column value; None means the field is omitted.

        Count fields never decode to None.
        """
        kind = classify(field_name)
        text = _as_text(raw_value, field_name)
        if kind is FieldKind.COUNT:
            return self.decode_counts(field_name, text)

        if text is None or not text.strip():
            return None

        sanitize = self._normalizer.is_text_field(field_name)
        if kind in (FieldKind.LIST, FieldKind.POSITIONS):
            values = self.split(text)
            if sanitize:
                values = [v for v in (self._normalizer.sanitize(v) for v in values) if v]
            values = [self.limit(field_name, v) for v in values]
            return ScalarList(values=tuple(values)) if values else None

        value = text.strip()
        if sanitize:
            value = self._normalizer.sanitize(value)
        return Scalar(value=self.limit(field_name, value))

    def decode_counts(self, field_name: str, raw_value: Any) -> IntScalarList:
        """Integer list from a count column, ``[0]`` when nothing parses."""
        text = _as_text(raw_value, field_name)
        counts: list[int] = []
        for token in self.split(text):
            try:
                counts.append(int(token))
            except ValueError:
                logger = setup_logging()
                logger.warning(
                    {
                        "message": f"Invalid count value '{token}' for field {field_name}",
                        "field": field_name,
                        "token": token,
                    },
                    pprint=True,
                )
        return IntScalarList(values=tuple(counts) or (0,))

    def decode_year(self, raw_value: Any) -> IntScalar | Scalar | None:
        """Publication year as an integer, or the raw string when not numeric."""
        text = _as_text(raw_value, "p_year")
        if text is None or not text.strip():
            return None
        try:
            return IntScalar(value=int(text.strip()))
        except ValueError:
            logger = setup_logging()
            logger.warning(
                {"message": f"Non-numeric p_year '{text}', keeping it as a string", "p_year": text},
                pprint=True,
            )
            return Scalar(value=text)

    def format_date(self, raw_value: Any) -> Scalar | None:
        """Index date string, e.g. ``2016-10-03T06:00:00Z``."""
        if raw_value is None:
            return None
        if isinstance(raw_value, datetime):
            raw_value = raw_value.date()
        if isinstance(raw_value, date):
            return Scalar(value=raw_value.isoformat() + self._config.date_suffix)
        text = _as_text(raw_value, "p_date")
        if text is None or not text.strip():
            return None
        text = text.strip()
        if "T" in text:
            return Scalar(value=text)
        return Scalar(value=text + self._config.date_suffix)
