"""Interfaces to the relational store and the search index.

The sync core only reads records and hands finished documents on; connection
handling, retries, batching and commits belong to implementations of these
interfaces.
"""

from abc import ABC, abstractmethod
from typing import Iterator, Sequence

from pubsync.document import SourceRecord, TargetDocument


class RecordSourceInterface(ABC):
    """Read access to publication rows."""

    @abstractmethod
    def fetch(self, key: str) -> SourceRecord | None:
        """Return the record for key, or None if the store has no such row."""

    @abstractmethod
    def iter_keys(self, year: int | None = None, limit: int | None = None) -> Iterator[str]:
        """Yield record keys, optionally restricted to a publication year.

        At most limit keys are yielded when limit is given.
        """


class IndexClientInterface(ABC):
    """Write access to the search index."""

    @abstractmethod
    def add(self, documents: Sequence[TargetDocument]) -> None:
        """Submit documents.

        Documents with atomic updates are merged into the stored document;
        full documents replace it.
        """

    @abstractmethod
    def commit(self) -> None:
        """Make submitted documents visible."""
