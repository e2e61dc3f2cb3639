"""
Startup checks for the settings a production GWD tracker cannot run without.

Development and testing fall back to the defaults in ``config.base``; in
production a silently defaulted secret, database or importer setting is
reported instead.
"""

import os
import sys
from typing import Callable, List, Optional, Tuple

_PLACEHOLDER_SECRETS = {"your-secret-key", "your_secret_key", "change-me"}
_BOOL_WORDS = {"1", "true", "yes", "on", "0", "false", "no", "off"}


def _check_secret_key(environ) -> Optional[str]:
    secret_key = environ.get("SECRET_KEY", "").strip()
    if not secret_key or secret_key in _PLACEHOLDER_SECRETS:
        return "SECRET_KEY must be set to a non-placeholder value."
    return None


def _check_database_url(environ) -> Optional[str]:
    if not environ.get("DATABASE_URL", "").strip():
        return "DATABASE_URL must point at the production database."
    return None


def _check_importer_flag(environ) -> Optional[str]:
    value = environ.get("IMPORTER_ENABLED")
    if value is not None and value.strip().lower() not in _BOOL_WORDS:
        return f"IMPORTER_ENABLED must be a boolean, got {value!r}."
    return None


def _positive_int_check(name: str) -> Callable[..., Optional[str]]:
    def check(environ) -> Optional[str]:
        value = environ.get(name)
        if value is None:
            return None
        if not value.strip().isdigit() or int(value) < 1:
            return f"{name} must be a positive integer, got {value!r}."
        return None

    return check


PRODUCTION_CHECKS: Tuple[Callable[..., Optional[str]], ...] = (
    _check_secret_key,
    _check_database_url,
    _check_importer_flag,
    _positive_int_check("IMPORTER_STAGING_BATCH_SIZE"),
    _positive_int_check("IMPORTER_MAX_UPLOAD_MB"),
)


def validate_environment(flask_env: str = None, environ=None) -> Tuple[bool, List[str]]:
    """Return ``(is_valid, errors)`` for the given environment; only production is checked."""
    environ = os.environ if environ is None else environ
    flask_env = flask_env or environ.get("FLASK_ENV", "development")
    if flask_env != "production":
        return True, []

    errors = [message for message in (check(environ) for check in PRODUCTION_CHECKS) if message]
    return not errors, errors


def validate_and_exit(flask_env: str = None) -> None:
    """Abort startup with a readable report when production settings are invalid."""
    is_valid, errors = validate_environment(flask_env)
    if is_valid:
        return

    report = "\n".join(f"  - {error}" for error in errors)
    print(f"Refusing to start: invalid production settings\n{report}", file=sys.stderr)
    sys.exit(1)
