"""Record-at-a-time sync driver.

Reads records from a RecordSourceInterface, reconciles each one against the
requested field selection, and submits the resulting documents to an
IndexClientInterface. A failure while processing one record is logged and
counted; the run continues with the next record.

Example:
    ```python
    runner = SyncRunner(
        source=source,
        index=index,
        selection=FieldSelection.parse("gene,gene_pos"),
    )
    result = runner.sync_all(year=2024, limit=1000)
    print(f"{result.updated} updated, {result.failed} failed")
    ```
"""

from __future__ import annotations

import time
from enum import Enum

from pydantic import BaseModel, ConfigDict, Field

from pubsync.config import SyncConfig
from pubsync.fields import FieldSelection
from pubsync.logging import setup_logging
from pubsync.reconcile import DocumentReconciler
from pubsync.storage.interfaces import IndexClientInterface, RecordSourceInterface


class RecordStatus(str, Enum):
    UPDATED = "updated"
    """A document was submitted."""

    SKIPPED = "skipped"
    """The record produced no fields beyond its key."""

    NOT_FOUND = "not_found"
    FAILED = "failed"


class RecordResult(BaseModel):
    """Outcome of syncing a single record."""

    model_config = ConfigDict(frozen=True)

    key: str
    status: RecordStatus
    fields: tuple[str, ...] = Field(default=(), description="Fields written, key excluded.")
    error: str | None = None


class SyncResult(BaseModel):
    """Outcome of a sync pass over many records."""

    model_config = ConfigDict(frozen=True)

    processed: int
    updated: int
    skipped: int
    not_found: int
    failed: int
    elapsed_seconds: float = 0.0
    record_results: tuple[RecordResult, ...] = ()
    errors: tuple[str, ...] = ()


class ProgressTracker(BaseModel):
    """Log a progress line every `interval` records."""

    interval: int = 100
    completed: int = 0
    start_time: float = Field(default_factory=time.time)

    def increment(self) -> None:
        self.completed += 1
        if self.completed % self.interval == 0:
            self.report()

    def report(self) -> None:
        elapsed = time.time() - self.start_time
        rate = self.completed / elapsed if elapsed > 0 else 0.0
        logger = setup_logging()
        logger.info(f"Processed {self.completed} records ({rate:.1f} records/sec)")


class SyncRunner:
    """Drive reconciliation from a record source into an index."""

    def __init__(
        self,
        source: RecordSourceInterface,
        index: IndexClientInterface,
        selection: FieldSelection | None = None,
        reconciler: DocumentReconciler | None = None,
        config: SyncConfig | None = None,
    ):
        if reconciler is not None and config is not None and reconciler.config != config:
            raise ValueError("reconciler and runner were given different configurations")
        self._config = config or (reconciler.config if reconciler else SyncConfig())
        self._reconciler = reconciler or DocumentReconciler(self._config)
        self._source = source
        self._index = index
        self._selection = selection or FieldSelection.all()

    @property
    def selection(self) -> FieldSelection:
        return self._selection

    def sync_record(self, key: str, commit: bool = True) -> RecordResult:
        """Reconcile and submit one record.

        Exceptions from the source, reconciler or index propagate; sync_all
        is the caller that isolates them.
        """
        logger = setup_logging()
        record = self._source.fetch(key)
        if record is None:
            logger.warning(f"{self._config.key_field} {key} not found in the record source")
            return RecordResult(key=key, status=RecordStatus.NOT_FOUND)

        document = self._reconciler.reconcile(record, self._selection)
        if not document.has_updates:
            logger.warning(f"No matching fields found to update for {self._config.key_field} {key}")
            return RecordResult(key=key, status=RecordStatus.SKIPPED)

        self._index.add([document])
        if commit:
            self._index.commit()
        return RecordResult(key=key, status=RecordStatus.UPDATED, fields=tuple(document.updates))

    def sync_all(self, year: int | None = None, limit: int | None = None) -> SyncResult:
        """Sync every record the source yields (optionally one year, at most limit records)."""
        logger = setup_logging()
        logger.info(
            {
                "message": "Starting sync",
                "fields": "ALL" if self._selection.is_all else self._selection.ordered(),
                "year": year,
                "limit": limit,
            },
            pprint=True,
        )
        progress = ProgressTracker(interval=self._config.progress_interval)
        results: list[RecordResult] = []
        errors: list[str] = []

        for key in self._source.iter_keys(year=year, limit=limit):
            try:
                result = self.sync_record(key, commit=False)
            except Exception as e:
                logger.exception(
                    {"message": f"Error updating {self._config.key_field} {key}: {e}", "key": key},
                    pprint=True,
                )
                errors.append(f"{key}: {e}")
                result = RecordResult(key=key, status=RecordStatus.FAILED, error=str(e))
            results.append(result)
            progress.increment()

        self._index.commit()

        def tally(status: RecordStatus) -> int:
            return sum(1 for r in results if r.status is status)

        summary = SyncResult(
            processed=len(results),
            updated=tally(RecordStatus.UPDATED),
            skipped=tally(RecordStatus.SKIPPED),
            not_found=tally(RecordStatus.NOT_FOUND),
            failed=tally(RecordStatus.FAILED),
            elapsed_seconds=time.time() - progress.start_time,
            record_results=tuple(results),
            errors=tuple(errors),
        )
        logger.info(
            {
                "message": "Sync completed",
                "processed": summary.processed,
                "updated": summary.updated,
                "failed": summary.failed,
            },
            pprint=True,
        )
        return summary
