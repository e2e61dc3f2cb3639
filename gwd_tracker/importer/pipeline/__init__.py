"""Importer pipeline helpers."""

from __future__ import annotations

from .compare import METADATA_FIELDS, compare_records
from .differences import (
    ConflictGroup,
    DifferenceEntry,
    DifferenceSet,
    DifferenceSetError,
    NewRecordGroup,
)
from .reconcile import FetchError, ImportPhase, ImportReconciler, InsertError, ReconciliationResult
from .resolution import ResolutionCoordinator, ResolutionError
from .staging import (
    BATCH_SIZE,
    NoValidRowsError,
    ReconciliationError,
    StagingError,
    StagingSummary,
    clean_import_row,
    clean_import_rows,
    stage_rows,
)
from .store import GWDStore, SQLAlchemyGWDStore, StoreError

__all__ = [
    "BATCH_SIZE",
    "ConflictGroup",
    "DifferenceEntry",
    "DifferenceSet",
    "DifferenceSetError",
    "FetchError",
    "GWDStore",
    "ImportPhase",
    "ImportReconciler",
    "InsertError",
    "METADATA_FIELDS",
    "NewRecordGroup",
    "NoValidRowsError",
    "ReconciliationError",
    "ReconciliationResult",
    "ResolutionCoordinator",
    "ResolutionError",
    "SQLAlchemyGWDStore",
    "StagingError",
    "StagingSummary",
    "StoreError",
    "clean_import_row",
    "clean_import_rows",
    "compare_records",
    "stage_rows",
]
