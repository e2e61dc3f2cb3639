"""Importer adapter implementations."""

from __future__ import annotations

from .csv_gwds import (
    CSVAdapterError,
    CSVHeaderError,
    CSVRowError,
    GWDCSVAdapter,
    GWDCSVRow,
    GWDCSVStatistics,
    HeaderValidationResult,
)

__all__ = [
    "CSVAdapterError",
    "CSVHeaderError",
    "CSVRowError",
    "GWDCSVAdapter",
    "GWDCSVRow",
    "GWDCSVStatistics",
    "HeaderValidationResult",
]
