"""
Publication Index Sync - Reconcile relational publication records into search documents.

Reads publication rows (title, abstract, entity annotations, bibliographic
metadata), normalizes their text, recomputes entity positions, repairs legacy
position strings and emits index documents, either complete or as atomic
partial updates of selected fields.

    from pubsync import FieldSelection, SourceRecord, reconcile

    record = SourceRecord.from_row(row)
    document = reconcile(record, FieldSelection.parse("gene,gene_pos"))
"""

from pubsync.config import SyncConfig, load_sync_config
from pubsync.document import FieldUpdate, SourceRecord, TargetDocument, UpdateMode
from pubsync.errors import ConfigError, SyncError, TextUnavailableError, UnknownFieldError
from pubsync.fields import SCHEMA_FIELDS, FieldKind, FieldSelection
from pubsync.legacy import LegacyPositionRepair
from pubsync.positions import EntityMention, EntityPositions, PositionIndexer, find_positions, index_entities
from pubsync.reconcile import DocumentReconciler, reconcile
from pubsync.sync import RecordResult, RecordStatus, SyncResult, SyncRunner
from pubsync.text import TextNormalizer, normalize, sanitize

__version__ = "0.1.0"

__all__ = [
    "SyncConfig",
    "load_sync_config",
    "SourceRecord",
    "TargetDocument",
    "FieldUpdate",
    "UpdateMode",
    "SyncError",
    "TextUnavailableError",
    "UnknownFieldError",
    "ConfigError",
    "FieldKind",
    "FieldSelection",
    "SCHEMA_FIELDS",
    "LegacyPositionRepair",
    "EntityMention",
    "EntityPositions",
    "PositionIndexer",
    "find_positions",
    "index_entities",
    "DocumentReconciler",
    "reconcile",
    "SyncRunner",
    "SyncResult",
    "RecordResult",
    "RecordStatus",
    "TextNormalizer",
    "normalize",
    "sanitize",
]
