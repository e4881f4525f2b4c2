"""In-memory record source and index client for testing and development.

These keep everything in dictionaries and are suitable for unit tests, quick
experiments with the reconciler, and small demos. They implement the same
merge rules a search index applies: a document whose fields are ``{"set": v}``
updates only those fields of the stored document, anything else replaces it.

Not thread-safe, no persistence.
"""

from typing import Any, Iterable, Iterator, Mapping, Sequence

from pubsync.document import SourceRecord, TargetDocument
from pubsync.storage.interfaces import IndexClientInterface, RecordSourceInterface


class InMemoryRecordSource(RecordSourceInterface):
    """Records held in a dict keyed by publication key.

    Example:
        ```python
        source = InMemoryRecordSource.from_rows([{"pmid": "1", "title": "..."}])
        record = source.fetch("1")
        ```
    """

    def __init__(self, records: Iterable[SourceRecord] = ()) -> None:
        self._records: dict[str, SourceRecord] = {r.key: r for r in records}

    @classmethod
    def from_rows(cls, rows: Iterable[Mapping[str, Any]], key_field: str = "pmid") -> "InMemoryRecordSource":
        return cls(SourceRecord.from_row(row, key_field) for row in rows)

    def add(self, record: SourceRecord) -> None:
        self._records[record.key] = record

    def fetch(self, key: str) -> SourceRecord | None:
        return self._records.get(key)

    def iter_keys(self, year: int | None = None, limit: int | None = None) -> Iterator[str]:
        yielded = 0
        for key, record in self._records.items():
            if limit is not None and yielded >= limit:
                return
            if year is not None and str(record.get("p_year") or "").strip() != str(year):
                continue
            yielded += 1
            yield key


class InMemoryIndexClient(IndexClientInterface):
    """Index documents held as plain payload dicts.

    Submitted documents are staged until commit(), mirroring an index where
    writes only become searchable after a commit.
    """

    def __init__(self, key_field: str = "pmid") -> None:
        self._key_field = key_field
        self._pending: list[dict[str, Any]] = []
        self._documents: dict[str, dict[str, Any]] = {}
        self.commits = 0

    def add(self, documents: Sequence[TargetDocument]) -> None:
        for document in documents:
            self._pending.append(document.to_payload())

    def commit(self) -> None:
        for payload in self._pending:
            self._apply(payload)
        self._pending.clear()
        self.commits += 1

    def _apply(self, payload: dict[str, Any]) -> None:
        key = str(payload[self._key_field])
        fields = {name: value for name, value in payload.items() if name != self._key_field}
        atomic = any(isinstance(v, dict) and "set" in v for v in fields.values())
        if not atomic:
            self._documents[key] = dict(payload)
            return
        stored = self._documents.setdefault(key, {self._key_field: key})
        for name, value in fields.items():
            stored[name] = value["set"] if isinstance(value, dict) and "set" in value else value

    @property
    def pending(self) -> list[dict[str, Any]]:
        return list(self._pending)

    def get(self, key: str) -> dict[str, Any] | None:
        return self._documents.get(key)

    def count(self) -> int:
        return len(self._documents)
