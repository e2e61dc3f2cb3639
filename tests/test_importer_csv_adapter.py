import csv
import io

import pytest

from gwd_tracker.importer.adapters import CSVHeaderError, CSVRowError, GWDCSVAdapter


def _make_csv(contents: str) -> io.StringIO:
    stream = io.StringIO(contents, newline="")
    stream.seek(0)
    return stream


def test_adapter_resolves_alias_headers_and_transforms_values():
    csv_stream = _make_csv(
        "ID,Target Girth Weld,Dig_Status,Land Cost,Path\n" "101, 5001 ,Dig Completed,\"$1,500\",/sites/gwd\n"
    )

    adapter = GWDCSVAdapter(csv_stream)
    rows = list(adapter.iter_rows())

    assert adapter.header is not None
    assert adapter.header.canonical_headers[:3] == ("digtracker_id", "gwd_number", "status")
    assert len(rows) == 1
    row = rows[0]
    assert row.raw["Target Girth Weld"] == " 5001 "
    assert row.values["digtracker_id"] == 101
    assert row.values["gwd_number"] == 5001
    assert row.values["status"] == "Complete"
    assert "_ignore_" not in row.values
    assert adapter.statistics.rows_processed == 1


def test_adapter_rejects_missing_required_headers():
    adapter = GWDCSVAdapter(_make_csv("ID,System\n101,North\n"))

    with pytest.raises(CSVHeaderError) as excinfo:
        adapter.read_rows()

    assert "Missing required columns" in str(excinfo.value)
    assert "gwd_number" in excinfo.value.missing


def test_adapter_rejects_duplicate_canonical_headers():
    adapter = GWDCSVAdapter(_make_csv("ID,Digtracker ID,gwd_number\n1,1,5\n"))

    with pytest.raises(CSVHeaderError) as excinfo:
        adapter.read_rows()

    assert excinfo.value.duplicates == ("digtracker_id",)


def test_adapter_allows_repeated_ignored_headers():
    adapter = GWDCSVAdapter(_make_csv("gwd_number,Path,Item Type\n5,/a,Item\n"))

    assert adapter.read_rows() == [{"gwd_number": 5}]


def test_adapter_skips_blank_rows_and_tracks_statistics():
    csv_stream = _make_csv("ID,gwd_number\n" "1,10\n" ",\n" "2,20\n")

    adapter = GWDCSVAdapter(csv_stream)
    rows = list(adapter.iter_rows())

    assert [row.values["gwd_number"] for row in rows] == [10, 20]
    assert rows[1].sequence_number == 3  # Blank row still increments the sequence counter.
    assert adapter.statistics.rows_processed == 2
    assert adapter.statistics.rows_skipped_blank == 1


def test_adapter_keeps_rows_missing_gwd_number_for_validation():
    adapter = GWDCSVAdapter(_make_csv("ID,gwd_number,Dig_Status\n7,,\n"))

    assert adapter.read_rows() == [{"digtracker_id": 7, "gwd_number": None, "status": "Not Started"}]


def test_adapter_empty_file_reports_missing_header():
    with pytest.raises(CSVHeaderError):
        GWDCSVAdapter(_make_csv("")).read_rows()


def test_adapter_wraps_csv_errors():
    adapter = GWDCSVAdapter(_make_csv("gwd_number,notes\n1,a very long note\n"))
    previous_limit = csv.field_size_limit(4)
    try:
        with pytest.raises(CSVRowError) as excinfo:
            adapter.read_rows()
    finally:
        csv.field_size_limit(previous_limit)

    assert "Row" in str(excinfo.value)
