"""Apply a reviewer's decision for one entry of a :class:`DifferenceSet`."""

from __future__ import annotations

from typing import Any

from gwd_tracker.utils.logging_config import get_logger

from .differences import ConflictGroup, DifferenceSet, NewRecordGroup
from .staging import ReconciliationError
from .store import GWDStore, StoreError


class ResolutionError(ReconciliationError):
    """Raised when a resolution cannot be written to the store."""


class ResolutionCoordinator:
    def __init__(self, store: GWDStore):
        self.store = store

    def resolve(
        self,
        differences: DifferenceSet,
        target_id: int | str | None,
        field: str,
        value: Any,
        *,
        is_new: bool = False,
        gwd_number: int | None = None,
    ) -> DifferenceSet:
        """
        Persist ``value`` for ``field`` and return the remaining differences.

        For new records the whole group is written at once, using the imported
        values with ``field`` overridden by ``value``. For conflicts only the
        single field is updated. ``differences`` is never modified; on failure
        :class:`ResolutionError` is raised and the caller keeps its set.
        """

        if is_new:
            return self._resolve_new(differences, target_id, field, value, gwd_number)
        return self._resolve_conflict(differences, target_id, field, value)

    def _resolve_conflict(
        self, differences: DifferenceSet, target_id: int | str | None, field: str, value: Any
    ) -> DifferenceSet:
        if target_id is None:
            raise ResolutionError("A gwd_id is required to resolve an existing record")
        key = str(target_id)
        group = differences.get(key)
        if not isinstance(group, ConflictGroup) or group.entry_for(field) is None:
            get_logger(__name__).debug("Difference %s/%s already resolved", key, field)
            return differences

        try:
            self.store.update_record_field(group.gwd_id, field, value)
        except StoreError as exc:
            raise ResolutionError(f"Failed to update GWD {group.gwd_id}: {exc}") from exc

        get_logger(__name__).info("Resolved %s on GWD %s", field, group.gwd_id)
        return differences.without_entry(key, field)

    def _resolve_new(
        self,
        differences: DifferenceSet,
        target_id: int | str | None,
        field: str,
        value: Any,
        gwd_number: int | None,
    ) -> DifferenceSet:
        group = self._find_new_group(differences, target_id, gwd_number)
        if group is None:
            get_logger(__name__).debug("New-record group %s already resolved", target_id or gwd_number)
            return differences

        record = group.record()
        record[field] = value
        try:
            if group.inserted_gwd_id is not None:
                self.store.update_record(group.inserted_gwd_id, record)
            else:
                self.store.insert_record(record)
        except StoreError as exc:
            raise ResolutionError(f"Failed to save new GWD {group.gwd_number}: {exc}") from exc

        get_logger(__name__).info("Saved new GWD %s", group.gwd_number)
        return differences.without_group(group.key)

    @staticmethod
    def _find_new_group(
        differences: DifferenceSet, target_id: int | str | None, gwd_number: int | None
    ) -> NewRecordGroup | None:
        if target_id is not None:
            group = differences.get(str(target_id))
            if isinstance(group, NewRecordGroup):
                return group
        if gwd_number is not None:
            return differences.find_new_record_group(gwd_number)
        return None
