"""Canonical ingest contract helpers for importer adapters."""

from __future__ import annotations

from .gwd import (
    CANONICAL_STATUSES,
    GWD_CANONICAL_FIELDS,
    IGNORE,
    IGNORE_FIELD,
    LEGACY_STATUS_MAP,
    FieldKind,
    FieldSpec,
    get_field_kind,
    get_gwd_field_specs,
    get_gwd_required_fields,
    get_header_alias_map,
    normalize_status,
    transform_header,
    transform_row,
    transform_value,
)

__all__ = [
    "CANONICAL_STATUSES",
    "FieldKind",
    "FieldSpec",
    "GWD_CANONICAL_FIELDS",
    "IGNORE",
    "IGNORE_FIELD",
    "LEGACY_STATUS_MAP",
    "get_field_kind",
    "get_gwd_field_specs",
    "get_gwd_required_fields",
    "get_header_alias_map",
    "normalize_status",
    "transform_header",
    "transform_row",
    "transform_value",
]
