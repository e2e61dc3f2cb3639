import logging

import pytest

from config.base import _coerce_bool, _coerce_int
from config.validation import validate_and_exit, validate_environment
from gwd_tracker.utils.logging_config import HANDLER_MARKER, get_logger, setup_logging


@pytest.mark.parametrize(
    "value, expected",
    [("true", True), ("On", True), ("0", False), ("no", False), (None, True), ("maybe", True)],
)
def test_coerce_bool(value, expected):
    assert _coerce_bool(value, default=True) is expected


def test_coerce_int_parses_clamps_and_falls_back():
    assert _coerce_int("250", 100, minimum=1) == 250
    assert _coerce_int("0", 100, minimum=1) == 1
    assert _coerce_int("many", 100) == 100
    assert _coerce_int("  ", 100) == 100


def test_validation_is_skipped_outside_production():
    assert validate_environment("development") == (True, [])


def test_production_validation_reports_missing_settings(monkeypatch):
    monkeypatch.delenv("SECRET_KEY", raising=False)
    monkeypatch.delenv("DATABASE_URL", raising=False)
    monkeypatch.setenv("IMPORTER_STAGING_BATCH_SIZE", "lots")
    monkeypatch.delenv("IMPORTER_ENABLED", raising=False)
    monkeypatch.delenv("IMPORTER_MAX_UPLOAD_MB", raising=False)

    is_valid, errors = validate_environment("production")

    assert is_valid is False
    assert len(errors) == 3
    with pytest.raises(SystemExit):
        validate_and_exit("production")


def test_production_validation_accepts_complete_environment(monkeypatch):
    monkeypatch.setenv("SECRET_KEY", "a" * 64)
    monkeypatch.setenv("DATABASE_URL", "postgresql://gwd@db/gwd")
    monkeypatch.delenv("IMPORTER_STAGING_BATCH_SIZE", raising=False)
    monkeypatch.delenv("IMPORTER_ENABLED", raising=False)
    monkeypatch.delenv("IMPORTER_MAX_UPLOAD_MB", raising=False)

    assert validate_environment("production") == (True, [])


def test_setup_logging_replaces_its_own_handlers(app, tmp_path):
    app.config.update(
        LOG_LEVEL="INFO",
        ENABLE_CONSOLE_LOGGING=True,
        ENABLE_FILE_LOGGING=True,
        LOG_DIR=str(tmp_path),
        LOG_FORMAT="json",
    )

    setup_logging(app)
    setup_logging(app)

    marked = [handler for handler in app.logger.handlers if getattr(handler, HANDLER_MARKER, False)]
    assert len(marked) == 2
    assert app.logger.level == logging.INFO
    assert (tmp_path / "gwd_tracker.log").exists()

    app.config.update(ENABLE_CONSOLE_LOGGING=False, ENABLE_FILE_LOGGING=False)
    setup_logging(app)
    assert not [handler for handler in app.logger.handlers if getattr(handler, HANDLER_MARKER, False)]


def test_get_logger_prefers_app_logger(app):
    assert get_logger("gwd_tracker.test") is app.logger


def test_production_validation_checks_importer_settings():
    environ = {
        "SECRET_KEY": "a" * 64,
        "DATABASE_URL": "postgresql://gwd@db/gwd",
        "IMPORTER_ENABLED": "sometimes",
        "IMPORTER_STAGING_BATCH_SIZE": "0",
        "IMPORTER_MAX_UPLOAD_MB": "-5",
    }

    is_valid, errors = validate_environment("production", environ)

    assert is_valid is False
    assert [error.split(" ")[0] for error in errors] == [
        "IMPORTER_ENABLED",
        "IMPORTER_STAGING_BATCH_SIZE",
        "IMPORTER_MAX_UPLOAD_MB",
    ]


def test_placeholder_secret_is_rejected():
    environ = {"SECRET_KEY": "change-me", "DATABASE_URL": "sqlite:///gwd.db"}

    assert validate_environment("production", environ) == (
        False,
        ["SECRET_KEY must be set to a non-placeholder value."],
    )
