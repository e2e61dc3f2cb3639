"""Canonical Girth Weld Dig ingest contract.

Maps DigTracker export headers onto ``gwds`` columns and coerces raw CSV cell
values into typed values. The CSV adapter calls :func:`transform_header` and
:func:`transform_value` as per-header and per-cell hooks.
"""

from __future__ import annotations

import enum
import math
import re
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Any, Mapping, Tuple

from gwd_tracker.models.gwd import DEFAULT_STATUS
from gwd_tracker.utils.logging_config import get_logger

IGNORE_FIELD = "_ignore_"
STATUS_FIELD = "status"

CANONICAL_STATUSES: Tuple[str, ...] = (
    "Ready",
    "Cancelled",
    "Complete",
    "On Hold",
    "Not Started",
    "Waiting for CLEIR",
    "In Progress",
    "No Longer Mine",
)

# DigTracker dig statuses and the tracker status each one means.
LEGACY_STATUS_MAP: Mapping[str, str] = {
    "CLEIR Approved": "Ready",
    "Dig Cancelled": "Cancelled",
    "Dig Completed": "Complete",
    "Dig Postponed": "On Hold",
    "Dig Report Received": "Complete",
    "Site Selected": "Not Started",
    "With CLEIR": "Waiting for CLEIR",
}

# SharePoint list columns that carry no record data.
IGNORED_HEADERS: Tuple[str, ...] = ("Item Type", "Path", "Attachments")

_WHITESPACE_RUN = re.compile(r"\s+")
_FLOAT_PREFIX = re.compile(r"^[+-]?(?:\d+\.?\d*|\.\d+)(?:[eE][+-]?\d+)?")
_TIMESTAMP_FORMATS = (
    "%Y-%m-%d %H:%M:%S",
    "%Y-%m-%d %H:%M",
    "%m/%d/%Y %H:%M:%S",
    "%m/%d/%Y %H:%M",
    "%m/%d/%Y %I:%M %p",
    "%m/%d/%Y",
)


class FieldKind(str, enum.Enum):
    """Coercion applied to a canonical field's raw value."""

    INTEGER = "integer"
    NUMERIC = "numeric"
    TEXT = "text"
    DATE = "date"
    TIMESTAMP = "timestamp"
    STATUS = "status"


class _IgnoreType:
    """Marker returned for columns that should be dropped entirely."""

    _instance: "_IgnoreType | None" = None

    def __new__(cls):
        if cls._instance is None:
            cls._instance = super().__new__(cls)
        return cls._instance

    def __bool__(self) -> bool:
        return False

    def __repr__(self) -> str:
        return "IGNORE"


IGNORE = _IgnoreType()


@dataclass(frozen=True)
class FieldSpec:
    """Metadata describing a canonical GWD ingest field."""

    name: str
    description: str
    kind: FieldKind = FieldKind.TEXT
    required: bool = False
    aliases: Tuple[str, ...] = ()

    def headers(self) -> Tuple[str, ...]:
        """Return the canonical header plus the raw export aliases."""

        return (self.name, *self.aliases)


GWD_CANONICAL_FIELDS: Tuple[FieldSpec, ...] = (
    FieldSpec(
        name="digtracker_id",
        description="Stable DigTracker identifier used to match re-imports.",
        kind=FieldKind.INTEGER,
        aliases=("ID", "Id", "id", "Digtracker ID", "DigTracker ID", "Digtracker Id"),
    ),
    FieldSpec(
        name="gwd_number",
        description="Target girth weld number (business key).",
        kind=FieldKind.INTEGER,
        required=True,
        aliases=("Target Girth Weld",),
    ),
    FieldSpec(name="afe_id", description="Linked AFE identifier.", kind=FieldKind.INTEGER),
    FieldSpec(name="system", description="Pipeline system name.", aliases=("System",)),
    FieldSpec(name="pipeline", description="Pipeline name.", aliases=("Pipeline",)),
    FieldSpec(
        name="status",
        description="Dig status, normalized to tracker statuses.",
        kind=FieldKind.STATUS,
        aliases=("Dig_Status",),
    ),
    FieldSpec(name="notes", description="Free-form notes."),
    FieldSpec(name="initial_budget", description="Initial budget.", kind=FieldKind.NUMERIC),
    FieldSpec(name="land_cost", description="Land cost.", kind=FieldKind.NUMERIC),
    FieldSpec(name="dig_cost", description="Dig cost.", kind=FieldKind.NUMERIC),
    FieldSpec(name="b_sleeve", description="B-sleeve repair count.", kind=FieldKind.INTEGER),
    FieldSpec(name="petro_sleeve", description="Petro-sleeve repair count.", kind=FieldKind.INTEGER),
    FieldSpec(name="composite", description="Composite repair count.", kind=FieldKind.INTEGER),
    FieldSpec(name="recoat", description="Recoat repair count.", kind=FieldKind.INTEGER),
    FieldSpec(
        name="execution_year",
        description="Planned execution year.",
        kind=FieldKind.INTEGER,
        aliases=("Execution Year",),
    ),
    FieldSpec(name="dig_name", description="Dig name.", aliases=("Dig Name",)),
    FieldSpec(
        name="inspection_provider",
        description="Inspection service provider.",
        aliases=("Name_of_Inspection_Service_Provider",),
    ),
    FieldSpec(name="ili_analysis", description="ILI run used for analysis.", aliases=("ILI Used For Analysis",)),
    FieldSpec(name="dig_criteria", description="Dig criteria.", aliases=("Dig Criteria",)),
    FieldSpec(
        name="inspection_start_relative",
        description="Planned inspection start relative to target girth weld (m).",
        kind=FieldKind.NUMERIC,
        aliases=("Inspection Start - Relative to Target G/W (m",),
    ),
    FieldSpec(
        name="inspection_end_relative",
        description="Planned inspection end relative to target girth weld (m).",
        kind=FieldKind.NUMERIC,
        aliases=("Inspection End - Relative to Target G/W (m)",),
    ),
    FieldSpec(
        name="inspection_length",
        description="Planned inspection length (m).",
        kind=FieldKind.NUMERIC,
        aliases=("Inspection Length (m)",),
    ),
    FieldSpec(
        name="target_features",
        description="Target features, including feature IDs.",
        aliases=("Target Feature(s) - Include Feature ID's if possible",),
    ),
    FieldSpec(name="smys", description="Specified minimum yield strength.", kind=FieldKind.NUMERIC, aliases=("SMYS",)),
    FieldSpec(name="mop", description="Maximum operating pressure.", kind=FieldKind.NUMERIC, aliases=("MOP",)),
    FieldSpec(name="design_factor", description="Design factor.", kind=FieldKind.NUMERIC, aliases=("Design Factor",)),
    FieldSpec(
        name="class_location",
        description="Class location.",
        kind=FieldKind.INTEGER,
        aliases=("Class Location",),
    ),
    FieldSpec(
        name="class_location_factor",
        description="Class location factor.",
        kind=FieldKind.NUMERIC,
        aliases=("Class Location Factor",),
    ),
    FieldSpec(
        name="p_failure",
        description="Predicted failure pressure (kPa).",
        kind=FieldKind.NUMERIC,
        aliases=("P-Failure (kPa)",),
    ),
    FieldSpec(name="latitude", description="Dig latitude.", kind=FieldKind.NUMERIC, aliases=("Latitude",)),
    FieldSpec(name="longitude", description="Dig longitude.", kind=FieldKind.NUMERIC, aliases=("Longitude",)),
    FieldSpec(name="program_engineer", description="Program engineer.", aliases=("Program Engineer Name",)),
    FieldSpec(
        name="program_engineer_comments",
        description="Program engineer comments.",
        aliases=("Program Engineer Comments",),
    ),
    FieldSpec(name="project_engineer", description="Project engineer.", aliases=("Project Engineer Name",)),
    FieldSpec(
        name="post_execution_comments",
        description="Post-execution comments.",
        aliases=("Post-Execution Comments",),
    ),
    FieldSpec(
        name="last_updated",
        description="Source last-updated timestamp.",
        kind=FieldKind.TIMESTAMP,
        aliases=("LastUpdated",),
    ),
    FieldSpec(name="created_by", description="Source record author.", aliases=("Created By",)),
    FieldSpec(
        name="inspection_completion_date",
        description="Date the excavation/inspection was completed.",
        kind=FieldKind.DATE,
        aliases=("Date Excavation/Inspection was Completed",),
    ),
    FieldSpec(
        name="actual_inspection_start",
        description="Actual inspection start reference girth weld.",
        kind=FieldKind.NUMERIC,
        aliases=("Actual Inspection Start Ref Girth Weld",),
    ),
    FieldSpec(
        name="actual_inspection_start_relative",
        description="Actual inspection start relative to reference girth weld.",
        kind=FieldKind.NUMERIC,
        aliases=("Actual Inspection Start (relative to RGW)",),
    ),
    FieldSpec(
        name="actual_inspection_end_relative",
        description="Actual inspection end relative to reference girth weld.",
        kind=FieldKind.NUMERIC,
        aliases=("Actual Inspection End (relative to RGW)",),
    ),
    FieldSpec(
        name="actual_inspection_length",
        description="Actual inspection length (m).",
        kind=FieldKind.NUMERIC,
        aliases=("Actual Inspection Length (m)",),
    ),
    FieldSpec(
        name="created_date",
        description="Creation timestamp of the stored record.",
        kind=FieldKind.TIMESTAMP,
    ),
)

_FIELD_KINDS: Mapping[str, FieldKind] = {spec.name: spec.kind for spec in GWD_CANONICAL_FIELDS}


def get_gwd_field_specs() -> Tuple[FieldSpec, ...]:
    """Return the canonical GWD field specifications."""

    return GWD_CANONICAL_FIELDS


def get_gwd_required_fields() -> Tuple[str, ...]:
    """Fields every staged row must carry."""

    return tuple(field.name for field in GWD_CANONICAL_FIELDS if field.required)


def get_field_kind(field: str) -> FieldKind | None:
    return _FIELD_KINDS.get(field)


def get_header_alias_map() -> Mapping[str, str]:
    """Map raw export headers (exact, after trimming) to canonical field names."""

    mapping: dict[str, str] = {}
    for field in GWD_CANONICAL_FIELDS:
        for alias in field.aliases:
            mapping[alias] = field.name
    for header in IGNORED_HEADERS:
        mapping[header] = IGNORE_FIELD
    return mapping


_HEADER_ALIASES = get_header_alias_map()


def transform_header(raw_header: str | None) -> str:
    """
    Resolve a raw CSV header to its canonical field name.

    Known export headers map through the alias table; anything else is
    lower-cased with whitespace runs collapsed to underscores.
    """

    cleaned = (raw_header or "").strip().lstrip("\ufeff")
    canonical = _HEADER_ALIASES.get(cleaned)
    if canonical is not None:
        return canonical
    return _WHITESPACE_RUN.sub("_", cleaned.lower())


def normalize_status(raw_status: str) -> str:
    """Translate a DigTracker dig status into a tracker status."""

    collapsed = " ".join(raw_status.split())
    if not collapsed:
        return DEFAULT_STATUS
    mapped = LEGACY_STATUS_MAP.get(collapsed)
    if mapped is not None:
        return mapped
    if collapsed in CANONICAL_STATUSES:
        return collapsed
    get_logger(__name__).warning("Unmapped dig status %r; defaulting to %r", raw_status, DEFAULT_STATUS)
    return DEFAULT_STATUS


def parse_integer(raw: object, *, field: str | None = None) -> int | None:
    text = str(raw).strip()
    negative = text.startswith("-")
    cleaned = re.sub(r"[^\d.]", "", text)
    if not cleaned:
        return None
    try:
        number = float(cleaned) if "." in cleaned else int(cleaned)
    except ValueError:
        number = None
    if isinstance(number, float):
        number = int(number) if number.is_integer() else None
    if number is None:
        get_logger(__name__).warning("Failed to parse integer for %s: %r", field or "value", raw)
        return None
    return -number if negative else number


def parse_numeric(raw: object) -> float | None:
    text = str(raw).strip().replace(",", "").replace("$", "")
    match = _FLOAT_PREFIX.match(text)
    if match is None:
        return None
    number = float(match.group(0))
    if math.isnan(number) or math.isinf(number):
        return None
    return number


def parse_timestamp(raw: object) -> str | None:
    """Return ``raw`` as a UTC ISO-8601 string (millisecond precision, ``Z`` suffix)."""

    text = str(raw).strip()
    if not text:
        return None
    parsed: datetime | None = None
    candidate = text[:-1] + "+00:00" if text.endswith("Z") else text
    try:
        parsed = datetime.fromisoformat(candidate)
    except ValueError:
        for fmt in _TIMESTAMP_FORMATS:
            try:
                parsed = datetime.strptime(text, fmt)
                break
            except ValueError:
                continue
    if parsed is None:
        get_logger(__name__).warning("Failed to parse timestamp %r", raw)
        return None
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=timezone.utc)
    rendered = parsed.astimezone(timezone.utc).isoformat(timespec="milliseconds")
    return rendered.replace("+00:00", "Z")


def transform_value(raw_value: Any, field: str) -> Any:
    """
    Coerce a raw CSV cell into the typed value stored for ``field``.

    Returns :data:`IGNORE` for the ``_ignore_`` column, ``None`` for blanks
    (``"Not Started"`` for ``status``), and never raises on malformed input.
    """

    if field == IGNORE_FIELD:
        return IGNORE

    kind = _FIELD_KINDS.get(field)
    if raw_value is None or (isinstance(raw_value, str) and raw_value == ""):
        return DEFAULT_STATUS if kind is FieldKind.STATUS else None

    if kind is FieldKind.STATUS:
        return normalize_status(str(raw_value))
    if kind is FieldKind.INTEGER:
        return parse_integer(raw_value, field=field)
    if kind is FieldKind.NUMERIC:
        return parse_numeric(raw_value)
    if kind is FieldKind.TEXT:
        text = str(raw_value).strip()
        return text or None
    if kind is FieldKind.DATE:
        return raw_value
    if kind is FieldKind.TIMESTAMP:
        return parse_timestamp(raw_value)
    return raw_value


def transform_row(raw_row: Mapping[str, Any]) -> dict[str, Any]:
    """Apply header and value transforms to a whole row, dropping ignored columns."""

    transformed: dict[str, Any] = {}
    for raw_header, raw_value in raw_row.items():
        field = transform_header(raw_header)
        value = transform_value(raw_value, field)
        if value is IGNORE:
            continue
        transformed[field] = value
    return transformed
