"""Record source and index client interfaces, with in-memory implementations."""

from pubsync.storage.interfaces import IndexClientInterface, RecordSourceInterface
from pubsync.storage.memory import InMemoryIndexClient, InMemoryRecordSource

__all__ = [
    "RecordSourceInterface",
    "IndexClientInterface",
    "InMemoryRecordSource",
    "InMemoryIndexClient",
]
