import pytest

from gwd_tracker.importer.contracts import (
    CANONICAL_STATUSES,
    IGNORE,
    IGNORE_FIELD,
    LEGACY_STATUS_MAP,
    get_gwd_field_specs,
    get_gwd_required_fields,
    get_header_alias_map,
    transform_header,
    transform_row,
    transform_value,
)

INTEGER_FIELDS = (
    "digtracker_id",
    "gwd_number",
    "execution_year",
    "class_location",
    "b_sleeve",
    "petro_sleeve",
    "composite",
    "recoat",
    "afe_id",
)
NUMERIC_FIELDS = (
    "initial_budget",
    "land_cost",
    "dig_cost",
    "inspection_start_relative",
    "smys",
    "mop",
    "latitude",
    "longitude",
    "actual_inspection_length",
)


@pytest.mark.parametrize(
    "raw, expected",
    [
        ("ID", "digtracker_id"),
        ("Id", "digtracker_id"),
        ("id", "digtracker_id"),
        ("DigTracker ID", "digtracker_id"),
        ("Target Girth Weld", "gwd_number"),
        ("Dig_Status", "status"),
        ("  Target Girth Weld  ", "gwd_number"),
        ("Some Unknown Column", "some_unknown_column"),
        ("  Mixed   Case\tHeader ", "mixed_case_header"),
        ("Item Type", IGNORE_FIELD),
    ],
)
def test_transform_header_resolves_aliases_and_falls_back(raw, expected):
    assert transform_header(raw) == expected


def test_transform_header_is_idempotent_for_canonical_names():
    for spec in get_gwd_field_specs():
        assert transform_header(spec.name) == spec.name


def test_alias_map_covers_every_spec_alias():
    alias_map = get_header_alias_map()
    for spec in get_gwd_field_specs():
        for alias in spec.aliases:
            assert alias_map[alias] == spec.name


def test_transform_header_strips_byte_order_mark():
    assert transform_header("\ufeffID") == "digtracker_id"


def test_gwd_number_is_the_only_required_field():
    assert get_gwd_required_fields() == ("gwd_number",)


@pytest.mark.parametrize("field", INTEGER_FIELDS + NUMERIC_FIELDS)
def test_numeric_fields_return_none_for_garbage(field):
    assert transform_value("not a number", field) is None


def test_integer_fields_strip_formatting():
    assert transform_value("1,234", "gwd_number") == 1234
    assert transform_value(" #42 ", "digtracker_id") == 42
    assert transform_value("-7", "class_location") == -7
    assert transform_value("2024.0", "execution_year") == 2024
    assert transform_value("2.5", "b_sleeve") is None


def test_numeric_fields_parse_leading_prefix():
    assert transform_value("$1,250.50", "land_cost") == pytest.approx(1250.5)
    assert transform_value("12.5 m", "inspection_start_relative") == pytest.approx(12.5)
    assert transform_value("1e999", "smys") is None
    assert transform_value("nan", "mop") is None


@pytest.mark.parametrize("blank", [None, ""])
def test_blank_values(blank):
    assert transform_value(blank, "status") == "Not Started"
    assert transform_value(blank, "land_cost") is None
    assert transform_value(blank, "notes") is None
    assert transform_value(blank, "some_unknown_column") is None


@pytest.mark.parametrize("legacy, canonical", sorted(LEGACY_STATUS_MAP.items()))
def test_legacy_statuses_map_to_canonical(legacy, canonical):
    assert transform_value(legacy, "status") == canonical
    assert canonical in CANONICAL_STATUSES


def test_status_whitespace_is_collapsed_before_lookup():
    assert transform_value("  Dig   Completed ", "status") == "Complete"


def test_canonical_statuses_pass_through():
    for status in CANONICAL_STATUSES:
        assert transform_value(status, "status") == status


def test_unknown_status_defaults_with_warning(caplog):
    with caplog.at_level("WARNING"):
        assert transform_value("Awaiting Permits", "status") == "Not Started"
    assert "Awaiting Permits" in caplog.text


def test_ignore_sentinel_is_distinct_from_none():
    value = transform_value("anything", IGNORE_FIELD)
    assert value is IGNORE
    assert value is not None
    assert not value


def test_text_is_trimmed_and_case_preserved():
    assert transform_value("  North Line ", "system") == "North Line"
    assert transform_value("   ", "notes") is None


def test_date_only_field_is_unchanged():
    assert transform_value("2024-03-01", "inspection_completion_date") == "2024-03-01"


def test_timestamps_render_as_utc_with_milliseconds():
    assert transform_value("2024-03-01T10:15:30Z", "last_updated") == "2024-03-01T10:15:30.000Z"
    assert transform_value("2024-03-01T10:15:30-05:00", "last_updated") == "2024-03-01T15:15:30.000Z"
    assert transform_value("03/01/2024 10:15", "last_updated") == "2024-03-01T10:15:00.000Z"
    assert transform_value("yesterday", "last_updated") is None


def test_unknown_fields_pass_through():
    assert transform_value("  raw  ", "some_unknown_column") == "  raw  "


def test_transform_row_drops_ignored_columns():
    row = transform_row({"ID": "101", "Target Girth Weld": "5001", "Path": "/sites/x", "Dig_Status": ""})

    assert row == {"digtracker_id": 101, "gwd_number": 5001, "status": "Not Started"}


def test_transform_row_is_stable_on_transformed_rows():
    raw = {
        "ID": " 101 ",
        "Target Girth Weld": "5,001",
        "Notes": "   ",
        "System": " North ",
        "Land Cost": "$1,250.50",
        "Dig_Status": "Dig Postponed",
        "Last Updated": "2024-03-01T10:15:30Z",
    }

    once = transform_row(raw)

    assert once["notes"] is None
    assert once["status"] == "On Hold"
    assert transform_row(once) == once
