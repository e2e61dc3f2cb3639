"""Helpers for cleaning and staging GWD rows into ``gwds_import``."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Iterable, Mapping, Sequence

from gwd_tracker.importer.contracts import transform_row
from gwd_tracker.models import GWD_RECORD_FIELDS
from gwd_tracker.utils.importer import DEFAULT_STAGING_BATCH_SIZE
from gwd_tracker.utils.logging_config import get_logger

from .store import GWDStore, StoreError

BATCH_SIZE = DEFAULT_STAGING_BATCH_SIZE


class ReconciliationError(Exception):
    """Base exception for import reconciliation failures."""


class NoValidRowsError(ReconciliationError):
    """Raised when an import contains no row that can be staged."""


class StagingError(ReconciliationError):
    """Raised when writing to the staging area fails."""


@dataclass
class StagingSummary:
    """Outcome statistics for a staging operation."""

    rows_received: int
    rows_valid: int
    rows_skipped: int
    rows_staged: int = 0
    batches: int = 0

    def to_dict(self) -> dict[str, int]:
        return {
            "rows_received": self.rows_received,
            "rows_valid": self.rows_valid,
            "rows_skipped": self.rows_skipped,
            "rows_staged": self.rows_staged,
            "batches": self.batches,
        }


def clean_import_row(row: Mapping[str, Any]) -> dict[str, Any] | None:
    """
    Transform ``row`` and reduce it to the staging columns.

    ``row`` may be keyed by raw CSV headers or canonical names and may carry
    raw strings or already typed values. Returns ``None`` when no usable
    ``gwd_number`` remains. Columns that are not part of the GWD record shape
    are discarded.
    """

    transformed = transform_row(row)
    if transformed.get("gwd_number") is None:
        return None
    return {name: value for name, value in transformed.items() if name in GWD_RECORD_FIELDS}


def clean_import_rows(rows: Iterable[Mapping[str, Any]]) -> tuple[list[dict[str, Any]], StagingSummary]:
    valid: list[dict[str, Any]] = []
    received = 0
    for row in rows:
        received += 1
        cleaned = clean_import_row(row)
        if cleaned is None:
            get_logger(__name__).warning("Skipping import row %s: gwd_number is required", received)
            continue
        valid.append(cleaned)

    summary = StagingSummary(rows_received=received, rows_valid=len(valid), rows_skipped=received - len(valid))
    get_logger(__name__).info(
        "GWD import validation: %s received, %s valid, %s skipped",
        summary.rows_received,
        summary.rows_valid,
        summary.rows_skipped,
    )
    return valid, summary


def chunked(rows: Sequence[Mapping[str, Any]], size: int) -> Iterable[Sequence[Mapping[str, Any]]]:
    if size < 1:
        raise ValueError("batch size must be at least 1")
    for start in range(0, len(rows), size):
        yield rows[start : start + size]


def stage_rows(
    store: GWDStore,
    rows: Sequence[Mapping[str, Any]],
    summary: StagingSummary,
    *,
    batch_size: int = BATCH_SIZE,
) -> StagingSummary:
    """Write cleaned rows into the staging table in batches of ``batch_size``."""

    if not rows:
        raise NoValidRowsError("No valid rows found in import file")

    try:
        store.clear_staging()
        for batch in chunked(rows, batch_size):
            store.insert_staging(batch)
            summary.rows_staged += len(batch)
            summary.batches += 1
    except StoreError as exc:
        get_logger(__name__).error(
            "Staging failed after %s batches (%s rows): %s", summary.batches, summary.rows_staged, exc
        )
        raise StagingError(f"Failed to stage import rows: {exc}") from exc

    return summary
