# gwd_tracker/models/__init__.py
"""
Database models package
"""

from .base import BaseModel, db
from .gwd import DEFAULT_STATUS, GWD_RECORD_FIELDS, GirthWeldDig, GirthWeldDigImport, SyncStatus

__all__ = [
    "db",
    "BaseModel",
    "DEFAULT_STATUS",
    "GWD_RECORD_FIELDS",
    "GirthWeldDig",
    "GirthWeldDigImport",
    "SyncStatus",
]
