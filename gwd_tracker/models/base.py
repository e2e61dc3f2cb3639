# gwd_tracker/models/base.py

from __future__ import annotations

from typing import Any

from flask_sqlalchemy import SQLAlchemy

db = SQLAlchemy()


class BaseModel(db.Model):
    """Abstract base for application models."""

    __abstract__ = True

    def to_dict(self) -> dict[str, Any]:
        """Return column values keyed by column name."""
        return {column.name: getattr(self, column.key) for column in self.__table__.columns}

    def __repr__(self):
        identity = ", ".join(str(value) for value in (self.__mapper__.primary_key_from_instance(self) or ()))
        return f"<{self.__class__.__name__} {identity}>"
