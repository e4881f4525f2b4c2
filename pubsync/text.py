"""Text cleanup for titles, abstracts and free-text columns.

Entity offsets are only meaningful against the exact string they were
computed on, so callers normalize a section once and index that result:

    title = normalize(record.get_text("title"))
    abstract = normalize(record.get_text("abstract"))
    positions = index_entities(names, title or "", abstract or "")

`normalize` rules, in order:
    1. strip leading whitespace
    2. collapse whitespace after ``>`` and before ``<`` to one space (tags stay)
    3. collapse every other whitespace run to one space, trim the end
    4. substitution table (mis-encoded Greek letters, HTML entities, a known
       extraction corruption)
    5. drop ``?`` characters that are not followed by whitespace, ``.,;:``
       or the end of the text

The rules are repeated until the text stops changing, so normalizing twice
gives the same result as normalizing once.

`sanitize` applies rules 4 and 5 only and is used on metadata columns whose
whitespace is left as stored.
"""

from __future__ import annotations

import re
from typing import Any, Iterable

from pubsync.config import DEFAULT_SUBSTITUTIONS, SyncConfig
from pubsync.errors import TextUnavailableError

_LEADING_WS = re.compile(r"^\s+")
_WS_AFTER_TAG = re.compile(r">\s+")
_WS_BEFORE_TAG = re.compile(r"\s+<")
_WS_RUN = re.compile(r"\s+")
_STRAY_QUESTION_MARK = re.compile(r"\?(?![\s.,;:]|$)")
_MARKUP_TAG = re.compile(r"<[^>]+>")

Substitutions = Iterable[tuple[str, str]]


def collapse_whitespace(text: str) -> str:
    """Rules 1-3: leading strip, markup-adjacent collapse, global collapse."""
    text = _LEADING_WS.sub("", text)
    text = _WS_AFTER_TAG.sub("> ", text)
    text = _WS_BEFORE_TAG.sub(" <", text)
    return _WS_RUN.sub(" ", text).rstrip()


def sanitize(text: str | None, substitutions: Substitutions = DEFAULT_SUBSTITUTIONS) -> str | None:
    """Rules 4-5: fix known corruptions and remove stray question marks."""
    if text is None:
        return None
    for corrupted, replacement in substitutions:
        text = text.replace(corrupted, replacement)
    return _STRAY_QUESTION_MARK.sub("", text)


def normalize(raw: str | None, substitutions: Substitutions = DEFAULT_SUBSTITUTIONS) -> str | None:
    """Normalize title or abstract text for indexing and position search."""
    if raw is None:
        return None
    substitutions = tuple(substitutions)
    text = raw
    while True:
        cleaned = sanitize(collapse_whitespace(text), substitutions)
        if cleaned == text:
            return text
        text = cleaned


def strip_markup(text: str | None) -> str | None:
    """Remove markup tags for display ("clean text"); not used for indexing."""
    if text is None:
        return None
    return _MARKUP_TAG.sub("", text)


def find_markup_tags(text: str) -> list[tuple[int, int, str]]:
    """Return (start, end, tag) for every markup tag, end exclusive."""
    return [(m.start(), m.end(), m.group(0)) for m in _MARKUP_TAG.finditer(text)]


def read_text(value: Any, column: str | None = None) -> str | None:
    """Read a column value that may be a string or a large object.

    Accepts str, UTF-8 bytes (bytes, bytearray, memoryview), or a file-like
    large object with read(). Returns None for None.

    Raises:
        TextUnavailableError: the value cannot be turned into text.
    """
    if value is None or isinstance(value, str):
        return value
    if isinstance(value, (bytes, bytearray, memoryview)):
        try:
            return bytes(value).decode("utf-8")
        except UnicodeDecodeError as exc:
            raise TextUnavailableError(column, f"invalid UTF-8: {exc}") from exc
    reader = getattr(value, "read", None)
    if callable(reader):
        try:
            content = reader()
        except (OSError, ValueError) as exc:
            raise TextUnavailableError(column, str(exc)) from exc
        if isinstance(content, str) or content is None:
            return content
        return read_text(content, column)
    raise TextUnavailableError(column, f"unsupported value type {type(value).__name__}")


class TextNormalizer:
    """Normalizer bound to the substitution table of a SyncConfig."""

    def __init__(self, config: SyncConfig | None = None):
        self._config = config or SyncConfig()

    @property
    def substitutions(self) -> tuple[tuple[str, str], ...]:
        return self._config.substitutions

    def normalize(self, raw: str | None) -> str | None:
        return normalize(raw, self.substitutions)

    def sanitize(self, text: str | None) -> str | None:
        return sanitize(text, self.substitutions)

    def is_text_field(self, field_name: str) -> bool:
        """True for free-text columns that get sanitized before indexing."""
        return field_name in self._config.text_fields or field_name.endswith("_term")
