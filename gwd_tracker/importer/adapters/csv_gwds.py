"""CSV adapter for Girth Weld Dig imports.

Reads a DigTracker CSV export, resolves headers through the GWD contract, and
coerces every cell with the contract's value hooks so the reconciler receives
canonical, typed row dictionaries.
"""

from __future__ import annotations

import csv
from dataclasses import dataclass
from typing import IO, Any, Iterator, Sequence

from gwd_tracker.importer.contracts import (
    IGNORE,
    IGNORE_FIELD,
    get_gwd_required_fields,
    transform_header,
    transform_value,
)


class CSVAdapterError(Exception):
    """Base exception for CSV adapter failures."""


class CSVHeaderError(CSVAdapterError):
    """Raised when the CSV header row does not meet contract requirements."""

    def __init__(
        self,
        *,
        missing: Sequence[str] | None = None,
        duplicates: Sequence[str] | None = None,
    ) -> None:
        details: list[str] = []
        if missing:
            details.append(f"Missing required columns: {', '.join(sorted(missing))}.")
        if duplicates:
            details.append(
                "Duplicate canonical columns detected: "
                + ", ".join(sorted(duplicates))
                + ". Ensure each canonical field appears only once."
            )

        message = "CSV header validation failed. " + " ".join(details) if details else "CSV header validation failed."
        super().__init__(message)
        self.missing = tuple(missing or ())
        self.duplicates = tuple(duplicates or ())


class CSVRowError(CSVAdapterError):
    """Raised when an individual row cannot be parsed."""

    def __init__(self, row_number: int, message: str) -> None:
        super().__init__(f"Row {row_number}: {message}")
        self.row_number = row_number


@dataclass(frozen=True)
class HeaderValidationResult:
    raw_headers: tuple[str, ...]
    canonical_headers: tuple[str, ...]


@dataclass(frozen=True)
class GWDCSVRow:
    """A parsed CSV row keyed by canonical field name."""

    sequence_number: int
    source_line: int
    raw: dict[str, Any]
    values: dict[str, Any]


@dataclass
class GWDCSVStatistics:
    rows_processed: int = 0
    rows_skipped_blank: int = 0


def _validate_headers(raw_headers: Sequence[str]) -> HeaderValidationResult:
    canonical_headers = tuple(transform_header(header) for header in raw_headers)
    seen: set[str] = set()
    duplicates: list[str] = []
    for canonical in canonical_headers:
        if canonical == IGNORE_FIELD:
            continue
        if canonical in seen:
            duplicates.append(canonical)
        seen.add(canonical)

    missing = sorted(set(get_gwd_required_fields()) - seen)
    if missing or duplicates:
        raise CSVHeaderError(missing=missing, duplicates=duplicates)
    return HeaderValidationResult(raw_headers=tuple(raw_headers), canonical_headers=canonical_headers)


def _row_is_blank(row: dict[str | None, Any]) -> bool:
    return all((value is None or (isinstance(value, str) and value.strip() == "")) for value in row.values())


class GWDCSVAdapter:
    """CSV reader that enforces the GWD ingest contract."""

    def __init__(self, file_obj: IO[str], *, skip_blank_rows: bool = True) -> None:
        self._file_obj = file_obj
        self.skip_blank_rows = skip_blank_rows
        self._header_result: HeaderValidationResult | None = None
        self.statistics = GWDCSVStatistics()

    @property
    def header(self) -> HeaderValidationResult | None:
        return self._header_result

    def _prepare_reader(self) -> tuple[csv.DictReader, HeaderValidationResult]:
        self._file_obj.seek(0)
        reader = csv.DictReader(self._file_obj)
        try:
            fieldnames = reader.fieldnames
        except csv.Error as exc:
            raise CSVRowError(1, str(exc)) from exc
        if fieldnames is None:
            raise CSVHeaderError(missing=get_gwd_required_fields())

        self._header_result = _validate_headers(fieldnames)
        return reader, self._header_result

    def iter_rows(self) -> Iterator[GWDCSVRow]:
        reader, header = self._prepare_reader()
        sequence_number = 0
        while True:
            try:
                raw_row = next(reader)
            except StopIteration:
                break
            except csv.Error as exc:
                raise CSVRowError(reader.line_num, str(exc)) from exc
            sequence_number += 1

            # Cells beyond the header row land under the ``None`` key.
            raw_row.pop(None, None)
            if self.skip_blank_rows and _row_is_blank(raw_row):
                self.statistics.rows_skipped_blank += 1
                continue

            values = self._apply_transforms(raw_row, header)
            self.statistics.rows_processed += 1
            yield GWDCSVRow(
                sequence_number=sequence_number,
                source_line=reader.line_num,
                raw=dict(raw_row),
                values=values,
            )

    def read_rows(self) -> list[dict[str, Any]]:
        """Return every non-blank row as a canonical value dictionary."""

        return [row.values for row in self.iter_rows()]

    @staticmethod
    def _apply_transforms(raw_row: dict[str, Any], header: HeaderValidationResult) -> dict[str, Any]:
        values: dict[str, Any] = {}
        for raw_header, canonical in zip(header.raw_headers, header.canonical_headers):
            value = transform_value(raw_row.get(raw_header), canonical)
            if value is IGNORE:
                continue
            values[canonical] = value
        return values
