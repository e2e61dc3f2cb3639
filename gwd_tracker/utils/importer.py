"""
Utility helpers for importer feature flag checks.
"""

from __future__ import annotations

from flask import current_app

DEFAULT_STAGING_BATCH_SIZE = 100


def _get_config(app=None):
    if app is not None:
        return app.config
    return current_app.config


def is_importer_enabled(app=None) -> bool:
    """Return True when the importer feature flag is enabled."""
    config = _get_config(app)
    return bool(config.get("IMPORTER_ENABLED", False))


def get_staging_batch_size(app=None) -> int:
    """Return the configured staging batch size, never below one."""
    config = _get_config(app)
    try:
        size = int(config.get("IMPORTER_STAGING_BATCH_SIZE", DEFAULT_STAGING_BATCH_SIZE))
    except (TypeError, ValueError):
        return DEFAULT_STAGING_BATCH_SIZE
    return max(size, 1)

