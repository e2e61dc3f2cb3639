"""
Import reconciliation for Girth Weld Dig CSV uploads.

One :class:`ImportReconciler` run walks through the phases in
:class:`ImportPhase`: parse the CSV, validate rows, stage them into
``gwds_import``, fetch the staged rows and their stored counterparts,
auto-insert records that have no counterpart, and compare the rest. Nothing
is kept on the reconciler between runs; everything a caller needs comes back
on the :class:`ReconciliationResult`.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import IO, Any, Iterable, Mapping

from gwd_tracker.importer.adapters import GWDCSVAdapter
from gwd_tracker.utils.logging_config import get_logger

from .compare import compare_records
from .differences import DifferenceSet
from .staging import (
    BATCH_SIZE,
    NoValidRowsError,
    ReconciliationError,
    StagingError,
    StagingSummary,
    clean_import_rows,
    stage_rows,
)
from .store import GWDStore, StoreError, to_existing_shape


class InsertError(StagingError):
    """Raised when auto-inserting unmatched records fails."""


class FetchError(ReconciliationError):
    """Raised when staged or existing records cannot be read back."""


class ImportPhase(str, Enum):
    PARSING = "parsing"
    VALIDATING = "validating"
    STAGING = "staging"
    FETCHING = "fetching"
    AUTO_INSERTING = "auto_inserting"
    COMPARING = "comparing"
    DONE = "done"


@dataclass
class ReconciliationResult:
    """Everything produced by one import run."""

    imported: list[dict[str, Any]] = field(default_factory=list)
    existing: list[dict[str, Any]] = field(default_factory=list)
    inserted: list[dict[str, Any]] = field(default_factory=list)
    differences: DifferenceSet = field(default_factory=DifferenceSet)
    staging: StagingSummary | None = None
    rows_without_external_id: int = 0
    rows_skipped_blank: int = 0
    phases: list[ImportPhase] = field(default_factory=list)

    @property
    def new_count(self) -> int:
        return len(self.differences.new_record_groups())

    @property
    def conflict_count(self) -> int:
        return len(self.differences.conflict_groups())

    def summary(self) -> dict[str, Any]:
        staging = self.staging.to_dict() if self.staging else {}
        return {
            **staging,
            "rows_skipped_blank": self.rows_skipped_blank,
            "rows_without_external_id": self.rows_without_external_id,
            "records_imported": len(self.imported),
            "records_matched": len(self.existing),
            "records_inserted": len(self.inserted),
            "new_groups": self.new_count,
            "conflict_groups": self.conflict_count,
            "conflicting_fields": sum(len(group.entries) for group in self.differences.conflict_groups()),
            "phases": [phase.value for phase in self.phases],
        }


class ImportReconciler:
    """Stage imported GWD rows and compute their differences against ``gwds``."""

    def __init__(self, store: GWDStore, *, batch_size: int = BATCH_SIZE):
        self.store = store
        self.batch_size = batch_size

    def _enter(self, result: ReconciliationResult, phase: ImportPhase) -> None:
        result.phases.append(phase)
        get_logger(__name__).info("GWD import phase: %s", phase.value)

    def import_csv(self, file_obj: IO[str]) -> ReconciliationResult:
        """Parse a CSV upload and reconcile its rows."""

        result = ReconciliationResult()
        self._enter(result, ImportPhase.PARSING)
        adapter = GWDCSVAdapter(file_obj)
        rows = adapter.read_rows()
        result.rows_skipped_blank = adapter.statistics.rows_skipped_blank
        return self.process_imported_data(rows, result=result)

    def process_imported_data(
        self,
        rows: Iterable[Mapping[str, Any]],
        *,
        result: ReconciliationResult | None = None,
    ) -> ReconciliationResult:
        """Run validation, staging, fetching, auto-insertion and comparison."""

        result = result or ReconciliationResult()

        self._enter(result, ImportPhase.VALIDATING)
        valid_rows, summary = clean_import_rows(rows)
        result.staging = summary
        if not valid_rows:
            raise NoValidRowsError("No valid rows found in import file")

        self._enter(result, ImportPhase.STAGING)
        stage_rows(self.store, valid_rows, summary, batch_size=self.batch_size)

        self._enter(result, ImportPhase.FETCHING)
        try:
            staged = self.store.fetch_staged_with_external_id()
            external_ids = [row["digtracker_id"] for row in staged]
            existing = self.store.fetch_existing_by_external_ids(external_ids)
        except StoreError as exc:
            raise FetchError(f"Failed to fetch records for comparison: {exc}") from exc
        result.imported = staged
        result.existing = existing
        result.rows_without_external_id = max(summary.rows_staged - len(staged), 0)
        if result.rows_without_external_id:
            get_logger(__name__).warning(
                "%s staged rows have no digtracker_id and were not reconciled", result.rows_without_external_id
            )

        self._enter(result, ImportPhase.AUTO_INSERTING)
        result.inserted = self._auto_insert(staged, existing)
        inserted_ids = {record["digtracker_id"]: record["gwd_id"] for record in result.inserted}

        self._enter(result, ImportPhase.COMPARING)
        result.differences = compare_records(existing, staged, inserted_ids=inserted_ids)

        self._enter(result, ImportPhase.DONE)
        get_logger(__name__).info(
            "GWD import complete: %s new, %s conflicting", result.new_count, result.conflict_count
        )
        return result

    def _auto_insert(
        self, staged: list[dict[str, Any]], existing: list[dict[str, Any]]
    ) -> list[dict[str, Any]]:
        known_ids = {record.get("digtracker_id") for record in existing}
        unmatched = [row for row in staged if row.get("digtracker_id") not in known_ids]
        # One record per external id; the last staged row wins, matching its difference group.
        latest = {row["digtracker_id"]: row for row in unmatched}
        duplicates = len(unmatched) - len(latest)
        if duplicates:
            get_logger(__name__).warning(
                "Dropped %s duplicate import rows sharing a digtracker_id before auto-insert", duplicates
            )
        new_records = [to_existing_shape(row) for row in latest.values()]
        if not new_records:
            return []
        try:
            inserted = self.store.insert_records(new_records)
        except StoreError as exc:
            raise InsertError(f"Failed to insert new records: {exc}") from exc
        get_logger(__name__).info("Auto-inserted %s new GWD records", len(inserted))
        return inserted
