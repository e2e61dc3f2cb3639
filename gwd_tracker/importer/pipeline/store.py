"""
Data-access layer used by the import reconciliation pipeline.

The pipeline only talks to the :class:`GWDStore` protocol. Records cross this
boundary as plain dictionaries keyed by column name, so the comparison and
resolution code never holds ORM state.
"""

from __future__ import annotations

from typing import Any, Iterable, Mapping, Protocol, Sequence

from sqlalchemy import delete, select, update
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from gwd_tracker.models import GWD_RECORD_FIELDS, GirthWeldDig, GirthWeldDigImport, db

Record = dict[str, Any]

STAGING_ONLY_FIELDS: tuple[str, ...] = ("gwd_id", "import_date", "sync_status")


class StoreError(Exception):
    """Raised when the backing store rejects an operation."""


class GWDStore(Protocol):
    """Operations the reconciler and resolution coordinator need from storage."""

    def clear_staging(self) -> None: ...

    def insert_staging(self, rows: Sequence[Mapping[str, Any]]) -> None: ...

    def fetch_staged_with_external_id(self) -> list[Record]: ...

    def fetch_existing_by_external_ids(self, external_ids: Iterable[int]) -> list[Record]: ...

    def insert_records(self, rows: Sequence[Mapping[str, Any]]) -> list[Record]: ...

    def insert_record(self, row: Mapping[str, Any]) -> Record: ...

    def update_record_field(self, gwd_id: int, field: str, value: Any) -> Record: ...

    def update_record(self, gwd_id: int, values: Mapping[str, Any]) -> Record: ...


def to_existing_shape(staged: Mapping[str, Any]) -> Record:
    """
    Drop staging bookkeeping so a staged row can be inserted into ``gwds``.

    Blank values are omitted so the stored defaults apply.
    """

    return {
        key: value
        for key, value in staged.items()
        if key not in STAGING_ONLY_FIELDS and value is not None
    }


def _filter_columns(row: Mapping[str, Any]) -> Record:
    return {key: value for key, value in row.items() if key in GWD_RECORD_FIELDS}


class SQLAlchemyGWDStore:
    """:class:`GWDStore` backed by the Flask-SQLAlchemy session."""

    def __init__(self, session: Session | None = None):
        self.session = session or db.session

    def _commit(self) -> None:
        try:
            self.session.commit()
        except SQLAlchemyError as exc:
            self.session.rollback()
            raise StoreError(str(exc)) from exc

    def clear_staging(self) -> None:
        try:
            self.session.execute(delete(GirthWeldDigImport))
        except SQLAlchemyError as exc:
            self.session.rollback()
            raise StoreError(f"Failed to clear staging table: {exc}") from exc
        self._commit()

    def insert_staging(self, rows: Sequence[Mapping[str, Any]]) -> None:
        try:
            self.session.add_all(GirthWeldDigImport(**_filter_columns(row)) for row in rows)
            self.session.flush()
        except SQLAlchemyError as exc:
            self.session.rollback()
            raise StoreError(f"Failed to stage {len(rows)} rows: {exc}") from exc
        self._commit()

    def fetch_staged_with_external_id(self) -> list[Record]:
        statement = (
            select(GirthWeldDigImport)
            .where(GirthWeldDigImport.digtracker_id.is_not(None))
            .order_by(GirthWeldDigImport.gwd_id)
        )
        try:
            rows = self.session.scalars(statement).all()
        except SQLAlchemyError as exc:
            raise StoreError(f"Failed to fetch staged rows: {exc}") from exc
        return [_staged_to_dict(row) for row in rows]

    def fetch_existing_by_external_ids(self, external_ids: Iterable[int]) -> list[Record]:
        ids = list(dict.fromkeys(external_ids))
        if not ids:
            return []
        statement = select(GirthWeldDig).where(GirthWeldDig.digtracker_id.in_(ids)).order_by(GirthWeldDig.gwd_id)
        try:
            rows = self.session.scalars(statement).all()
        except SQLAlchemyError as exc:
            raise StoreError(f"Failed to fetch existing records: {exc}") from exc
        return [row.to_dict() for row in rows]

    def insert_records(self, rows: Sequence[Mapping[str, Any]]) -> list[Record]:
        records = [GirthWeldDig(**_filter_columns(row)) for row in rows]
        try:
            self.session.add_all(records)
            self.session.flush()
        except SQLAlchemyError as exc:
            self.session.rollback()
            raise StoreError(f"Failed to insert {len(records)} records: {exc}") from exc
        self._commit()
        return [record.to_dict() for record in records]

    def insert_record(self, row: Mapping[str, Any]) -> Record:
        return self.insert_records([row])[0]

    def update_record_field(self, gwd_id: int, field: str, value: Any) -> Record:
        return self.update_record(gwd_id, {field: value})

    def update_record(self, gwd_id: int, values: Mapping[str, Any]) -> Record:
        unknown = sorted(set(values) - set(GWD_RECORD_FIELDS))
        if unknown:
            raise StoreError(f"Unknown GWD fields: {', '.join(unknown)}")
        statement = update(GirthWeldDig).where(GirthWeldDig.gwd_id == gwd_id).values(**values)
        try:
            result = self.session.execute(statement)
        except SQLAlchemyError as exc:
            self.session.rollback()
            raise StoreError(f"Failed to update GWD {gwd_id}: {exc}") from exc
        if result.rowcount == 0:
            self.session.rollback()
            raise StoreError(f"GWD {gwd_id} not found")
        self._commit()
        record = self.session.get(GirthWeldDig, gwd_id, populate_existing=True)
        return record.to_dict()


def _staged_to_dict(row: GirthWeldDigImport) -> Record:
    payload = row.to_dict()
    if payload.get("sync_status") is not None:
        payload["sync_status"] = payload["sync_status"].value
    return payload
