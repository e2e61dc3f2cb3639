"""
SQLAlchemy models for Girth Weld Dig records.

``gwds`` holds the authoritative records; ``gwds_import`` is the disposable
staging table that CSV imports land in before reconciliation. Both share the
same domain columns so staged rows can be compared field-by-field against
existing rows.
"""

from __future__ import annotations

import enum
from datetime import datetime, timezone

from sqlalchemy import Enum, Index
from sqlalchemy.orm import Mapped, mapped_column

from .base import BaseModel, db

DEFAULT_STATUS = "Not Started"


class SyncStatus(str, enum.Enum):
    """Processing state of a staged import row."""

    PENDING = "pending"
    PROCESSED = "processed"
    ERROR = "error"


class GirthWeldDigFields:
    """Domain columns shared by the authoritative and staging tables."""

    digtracker_id: Mapped[int | None] = mapped_column(db.Integer, nullable=True, index=True)
    gwd_number: Mapped[int] = mapped_column(db.Integer, nullable=False, index=True)
    afe_id: Mapped[int | None] = mapped_column(db.Integer, nullable=True)
    system: Mapped[str | None] = mapped_column(db.String(255), nullable=True)
    pipeline: Mapped[str | None] = mapped_column(db.String(255), nullable=True)
    status: Mapped[str | None] = mapped_column(db.String(50), nullable=True)
    notes: Mapped[str | None] = mapped_column(db.Text, nullable=True)

    # Costs
    initial_budget: Mapped[float | None] = mapped_column(db.Float, nullable=True)
    land_cost: Mapped[float | None] = mapped_column(db.Float, nullable=True)
    dig_cost: Mapped[float | None] = mapped_column(db.Float, nullable=True)

    # Repair counts
    b_sleeve: Mapped[int | None] = mapped_column(db.Integer, nullable=True)
    petro_sleeve: Mapped[int | None] = mapped_column(db.Integer, nullable=True)
    composite: Mapped[int | None] = mapped_column(db.Integer, nullable=True)
    recoat: Mapped[int | None] = mapped_column(db.Integer, nullable=True)

    # Planning
    execution_year: Mapped[int | None] = mapped_column(db.Integer, nullable=True)
    dig_name: Mapped[str | None] = mapped_column(db.String(255), nullable=True)
    inspection_provider: Mapped[str | None] = mapped_column(db.String(255), nullable=True)
    ili_analysis: Mapped[str | None] = mapped_column(db.String(255), nullable=True)
    dig_criteria: Mapped[str | None] = mapped_column(db.Text, nullable=True)
    inspection_start_relative: Mapped[float | None] = mapped_column(db.Float, nullable=True)
    inspection_end_relative: Mapped[float | None] = mapped_column(db.Float, nullable=True)
    inspection_length: Mapped[float | None] = mapped_column(db.Float, nullable=True)
    target_features: Mapped[str | None] = mapped_column(db.Text, nullable=True)

    # Engineering metrics
    smys: Mapped[float | None] = mapped_column(db.Float, nullable=True)
    mop: Mapped[float | None] = mapped_column(db.Float, nullable=True)
    design_factor: Mapped[float | None] = mapped_column(db.Float, nullable=True)
    class_location: Mapped[int | None] = mapped_column(db.Integer, nullable=True)
    class_location_factor: Mapped[float | None] = mapped_column(db.Float, nullable=True)
    p_failure: Mapped[float | None] = mapped_column(db.Float, nullable=True)

    # Location
    latitude: Mapped[float | None] = mapped_column(db.Float, nullable=True)
    longitude: Mapped[float | None] = mapped_column(db.Float, nullable=True)

    # Personnel and comments
    program_engineer: Mapped[str | None] = mapped_column(db.String(255), nullable=True)
    program_engineer_comments: Mapped[str | None] = mapped_column(db.Text, nullable=True)
    project_engineer: Mapped[str | None] = mapped_column(db.String(255), nullable=True)
    post_execution_comments: Mapped[str | None] = mapped_column(db.Text, nullable=True)
    created_by: Mapped[str | None] = mapped_column(db.String(255), nullable=True)

    # Stored as normalized ISO strings so imported and stored values compare exactly.
    last_updated: Mapped[str | None] = mapped_column(db.String(40), nullable=True)
    inspection_completion_date: Mapped[str | None] = mapped_column(db.String(40), nullable=True)

    # Actual inspection results
    actual_inspection_start: Mapped[float | None] = mapped_column(db.Float, nullable=True)
    actual_inspection_start_relative: Mapped[float | None] = mapped_column(db.Float, nullable=True)
    actual_inspection_end_relative: Mapped[float | None] = mapped_column(db.Float, nullable=True)
    actual_inspection_length: Mapped[float | None] = mapped_column(db.Float, nullable=True)


class GirthWeldDig(GirthWeldDigFields, BaseModel):
    """Authoritative Girth Weld Dig record."""

    __tablename__ = "gwds"

    gwd_id: Mapped[int] = mapped_column(db.Integer, primary_key=True, autoincrement=True)
    created_date: Mapped[datetime] = mapped_column(
        db.DateTime(timezone=True),
        nullable=False,
        default=lambda: datetime.now(timezone.utc),
    )

    # Staged rows keep blanks as NULL; authoritative rows fall back to defaults.
    status: Mapped[str] = mapped_column(db.String(50), nullable=False, default=DEFAULT_STATUS)
    initial_budget: Mapped[float] = mapped_column(db.Float, nullable=False, default=0)
    land_cost: Mapped[float] = mapped_column(db.Float, nullable=False, default=0)
    dig_cost: Mapped[float] = mapped_column(db.Float, nullable=False, default=0)
    b_sleeve: Mapped[int] = mapped_column(db.Integer, nullable=False, default=0)
    petro_sleeve: Mapped[int] = mapped_column(db.Integer, nullable=False, default=0)
    composite: Mapped[int] = mapped_column(db.Integer, nullable=False, default=0)
    recoat: Mapped[int] = mapped_column(db.Integer, nullable=False, default=0)

    __table_args__ = (Index("idx_gwds_system_status", "system", "status"),)


class GirthWeldDigImport(GirthWeldDigFields, BaseModel):
    """
    Girth Weld Dig row staged from a CSV import.

    Rows are cleared at the start of every import run and are never treated as
    a source of truth.
    """

    __tablename__ = "gwds_import"

    gwd_id: Mapped[int] = mapped_column(db.Integer, primary_key=True, autoincrement=True)
    import_date: Mapped[datetime] = mapped_column(
        db.DateTime(timezone=True),
        nullable=False,
        default=lambda: datetime.now(timezone.utc),
    )
    sync_status: Mapped[SyncStatus] = mapped_column(
        Enum(SyncStatus, name="gwd_import_sync_status_enum"),
        nullable=False,
        default=SyncStatus.PENDING,
        index=True,
    )


# Columns every GWD record carries, excluding surrogate keys and bookkeeping.
GWD_RECORD_FIELDS: tuple[str, ...] = tuple(
    column.name
    for column in GirthWeldDig.__table__.columns
    if column.name not in ("gwd_id", "created_date")
)
