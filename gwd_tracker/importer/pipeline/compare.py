"""Field-level comparison of imported GWD rows against stored records."""

from __future__ import annotations

from typing import Any, Iterable, Mapping

from .differences import ConflictGroup, DifferenceEntry, DifferenceSet, NewRecordGroup

# Bookkeeping columns that never represent a disagreement.
METADATA_FIELDS: frozenset[str] = frozenset({"gwd_id", "created_date", "import_date", "sync_status"})


def comparable_fields(record: Mapping[str, Any]) -> list[str]:
    """Fields of ``record`` that take part in comparison, in record order."""

    return [name for name, value in record.items() if name not in METADATA_FIELDS and value is not None]


def _conflict_group(existing: Mapping[str, Any], imported: Mapping[str, Any]) -> ConflictGroup:
    gwd_id = existing["gwd_id"]
    gwd_number = existing.get("gwd_number")
    entries = tuple(
        DifferenceEntry(
            gwd_id=gwd_id,
            gwd_number=gwd_number,
            field=name,
            existing=existing.get(name),
            imported=imported[name],
        )
        for name in comparable_fields(imported)
        if imported[name] != existing.get(name)
    )
    return ConflictGroup(gwd_id=gwd_id, gwd_number=gwd_number, entries=entries)


def _new_record_group(imported: Mapping[str, Any], inserted_gwd_id: int | None) -> NewRecordGroup:
    gwd_number = imported.get("gwd_number")
    entries = tuple(
        DifferenceEntry(gwd_number=gwd_number, field=name, imported=imported[name], is_new=True)
        for name in comparable_fields(imported)
    )
    return NewRecordGroup(
        digtracker_id=imported.get("digtracker_id"),
        gwd_number=gwd_number,
        entries=entries,
        inserted_gwd_id=inserted_gwd_id,
    )


def compare_records(
    existing: Iterable[Mapping[str, Any]],
    imported: Iterable[Mapping[str, Any]],
    *,
    inserted_ids: Mapping[Any, int] | None = None,
) -> DifferenceSet:
    """
    Build the :class:`DifferenceSet` for an import.

    Records are matched on ``digtracker_id``. Matched records produce a
    :class:`ConflictGroup` only when at least one imported value differs;
    unmatched records always produce a :class:`NewRecordGroup`. Imported
    ``None`` values are never reported. ``inserted_ids`` maps a
    ``digtracker_id`` to the ``gwd_id`` it was auto-inserted as.
    """

    by_external_id = {}
    for record in existing:
        external_id = record.get("digtracker_id")
        if external_id is not None:
            by_external_id.setdefault(external_id, record)

    inserted_ids = inserted_ids or {}
    groups: dict[str, ConflictGroup | NewRecordGroup] = {}
    for row in imported:
        match = by_external_id.get(row.get("digtracker_id"))
        if match is None:
            group = _new_record_group(row, inserted_ids.get(row.get("digtracker_id")))
            groups[group.key] = group
            continue

        group = _conflict_group(match, row)
        if group.entries:
            groups[group.key] = group

    return DifferenceSet(groups)
