"""
Difference-set value objects produced by reconciliation.

A :class:`DifferenceSet` maps a group key to either a :class:`ConflictGroup`
(an existing record whose stored values disagree with the import) or a
:class:`NewRecordGroup` (an imported record with no stored counterpart). Sets
are immutable: every mutation helper returns a new instance, which lets the
HTTP layer hand the serialized set to the client and accept it back on the
next resolution request.
"""

from __future__ import annotations

from dataclasses import dataclass, field, replace
from typing import Any, Iterator, Mapping, Union

NEW_GROUP_PREFIX = "new_"
CONFLICT_KIND = "conflict"
NEW_RECORD_KIND = "new"


class DifferenceSetError(ValueError):
    """Raised when a serialized difference set cannot be decoded."""


@dataclass(frozen=True)
class DifferenceEntry:
    """One field whose imported value needs a decision."""

    gwd_number: int | None
    field: str
    imported: Any
    existing: Any = None
    gwd_id: int | None = None
    is_new: bool = False

    def __post_init__(self) -> None:
        if self.is_new and (self.gwd_id is not None or self.existing is not None):
            raise ValueError("New-record entries cannot carry a gwd_id or an existing value")
        if not self.is_new and self.gwd_id is None:
            raise ValueError("Conflict entries require a gwd_id")

    def to_dict(self) -> dict[str, Any]:
        return {
            "gwd_id": self.gwd_id,
            "gwd_number": self.gwd_number,
            "field": self.field,
            "existing": self.existing,
            "imported": self.imported,
            "is_new": self.is_new,
        }

    @classmethod
    def from_dict(cls, payload: Mapping[str, Any]) -> "DifferenceEntry":
        try:
            return cls(
                gwd_id=payload.get("gwd_id"),
                gwd_number=payload.get("gwd_number"),
                field=payload["field"],
                existing=payload.get("existing"),
                imported=payload.get("imported"),
                is_new=bool(payload.get("is_new", False)),
            )
        except KeyError as exc:
            raise DifferenceSetError(f"Difference entry is missing {exc.args[0]!r}") from exc
        except ValueError as exc:
            raise DifferenceSetError(str(exc)) from exc


@dataclass(frozen=True)
class ConflictGroup:
    """Fields of an existing record that differ from the imported row."""

    gwd_id: int
    gwd_number: int | None
    entries: tuple[DifferenceEntry, ...] = field(default_factory=tuple)

    kind = CONFLICT_KIND

    @property
    def key(self) -> str:
        return str(self.gwd_id)

    def entry_for(self, field_name: str) -> DifferenceEntry | None:
        for entry in self.entries:
            if entry.field == field_name:
                return entry
        return None

    def without_field(self, field_name: str) -> "ConflictGroup":
        return replace(self, entries=tuple(entry for entry in self.entries if entry.field != field_name))

    def to_dict(self) -> dict[str, Any]:
        return {
            "kind": self.kind,
            "gwd_id": self.gwd_id,
            "gwd_number": self.gwd_number,
            "entries": [entry.to_dict() for entry in self.entries],
        }


@dataclass(frozen=True)
class NewRecordGroup:
    """
    An imported record with no stored counterpart.

    ``inserted_gwd_id`` is set when the reconciler already inserted the record
    during the import run; resolving the group then updates that row.
    """

    digtracker_id: int | None
    gwd_number: int | None
    entries: tuple[DifferenceEntry, ...] = field(default_factory=tuple)
    inserted_gwd_id: int | None = None

    kind = NEW_RECORD_KIND

    @property
    def key(self) -> str:
        return f"{NEW_GROUP_PREFIX}{self.digtracker_id}"

    def entry_for(self, field_name: str) -> DifferenceEntry | None:
        for entry in self.entries:
            if entry.field == field_name:
                return entry
        return None

    def record(self) -> dict[str, Any]:
        """Assemble the imported values as a record payload."""

        return {entry.field: entry.imported for entry in self.entries}

    def to_dict(self) -> dict[str, Any]:
        return {
            "kind": self.kind,
            "digtracker_id": self.digtracker_id,
            "gwd_number": self.gwd_number,
            "inserted_gwd_id": self.inserted_gwd_id,
            "entries": [entry.to_dict() for entry in self.entries],
        }


DifferenceGroup = Union[ConflictGroup, NewRecordGroup]


def _group_from_dict(key: str, payload: Mapping[str, Any]) -> DifferenceGroup:
    if not isinstance(payload, Mapping):
        raise DifferenceSetError(f"Group {key!r} must be an object")
    entries = tuple(DifferenceEntry.from_dict(item) for item in payload.get("entries") or ())
    kind = payload.get("kind") or (NEW_RECORD_KIND if key.startswith(NEW_GROUP_PREFIX) else CONFLICT_KIND)

    if kind == NEW_RECORD_KIND:
        if any(not entry.is_new for entry in entries):
            raise DifferenceSetError(f"Group {key!r} mixes conflict entries into a new-record group")
        return NewRecordGroup(
            digtracker_id=payload.get("digtracker_id"),
            gwd_number=payload.get("gwd_number"),
            entries=entries,
            inserted_gwd_id=payload.get("inserted_gwd_id"),
        )
    if kind == CONFLICT_KIND:
        if any(entry.is_new for entry in entries):
            raise DifferenceSetError(f"Group {key!r} mixes new-record entries into a conflict group")
        gwd_id = payload.get("gwd_id")
        if gwd_id is None:
            raise DifferenceSetError(f"Conflict group {key!r} is missing gwd_id")
        return ConflictGroup(gwd_id=gwd_id, gwd_number=payload.get("gwd_number"), entries=entries)
    raise DifferenceSetError(f"Unknown group kind {kind!r}")


class DifferenceSet:
    """Immutable, insertion-ordered mapping of group key to difference group."""

    __slots__ = ("_groups",)

    def __init__(self, groups: Mapping[str, DifferenceGroup] | None = None):
        self._groups: dict[str, DifferenceGroup] = dict(groups or {})

    @classmethod
    def from_groups(cls, groups) -> "DifferenceSet":
        return cls({group.key: group for group in groups})

    def __len__(self) -> int:
        return len(self._groups)

    def __iter__(self) -> Iterator[str]:
        return iter(self._groups)

    def __contains__(self, key: object) -> bool:
        return key in self._groups

    def __getitem__(self, key: str) -> DifferenceGroup:
        return self._groups[key]

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, DifferenceSet):
            return NotImplemented
        return list(self._groups.items()) == list(other._groups.items())

    def __repr__(self) -> str:
        return f"<DifferenceSet groups={list(self._groups)}>"

    def get(self, key: str) -> DifferenceGroup | None:
        return self._groups.get(key)

    def keys(self) -> list[str]:
        return list(self._groups)

    def groups(self) -> list[DifferenceGroup]:
        return list(self._groups.values())

    def conflict_groups(self) -> list[ConflictGroup]:
        return [group for group in self._groups.values() if isinstance(group, ConflictGroup)]

    def new_record_groups(self) -> list[NewRecordGroup]:
        return [group for group in self._groups.values() if isinstance(group, NewRecordGroup)]

    def entries(self) -> list[DifferenceEntry]:
        return [entry for group in self._groups.values() for entry in group.entries]

    def find_new_record_group(self, gwd_number: int | None) -> NewRecordGroup | None:
        for group in self.new_record_groups():
            if group.gwd_number == gwd_number:
                return group
        return None

    def with_group(self, group: DifferenceGroup) -> "DifferenceSet":
        groups = dict(self._groups)
        groups[group.key] = group
        return DifferenceSet(groups)

    def without_group(self, key: str) -> "DifferenceSet":
        if key not in self._groups:
            return self
        groups = dict(self._groups)
        del groups[key]
        return DifferenceSet(groups)

    def without_entry(self, key: str, field_name: str) -> "DifferenceSet":
        group = self._groups.get(key)
        if not isinstance(group, ConflictGroup) or group.entry_for(field_name) is None:
            return self
        remaining = group.without_field(field_name)
        if not remaining.entries:
            return self.without_group(key)
        groups = dict(self._groups)
        groups[key] = remaining
        return DifferenceSet(groups)

    def to_dict(self) -> dict[str, dict[str, Any]]:
        return {key: group.to_dict() for key, group in self._groups.items()}

    @classmethod
    def from_dict(cls, payload: Mapping[str, Any] | None) -> "DifferenceSet":
        if payload is None:
            return cls()
        if not isinstance(payload, Mapping):
            raise DifferenceSetError("Differences must be an object keyed by group")
        return cls({str(key): _group_from_dict(str(key), value) for key, value in payload.items()})
