# conftest.py

import atexit
import os
import tempfile

import pytest

# Set testing environment BEFORE importing app so app.py picks TestingConfig
# and binds its engine to a throwaway SQLite file.
os.environ["FLASK_ENV"] = "testing"
_db_fd, _temp_db = tempfile.mkstemp(suffix="_gwd_tracker.db")
os.environ["TEST_DATABASE_URL"] = f"sqlite:///{_temp_db}"


def _remove_temp_db():
    try:
        os.close(_db_fd)
    except OSError:
        pass
    try:
        if os.path.exists(_temp_db):
            os.unlink(_temp_db)
    except OSError:
        pass


atexit.register(_remove_temp_db)

# Now import app and other modules after environment is set
from app import app as flask_app  # noqa: E402
from gwd_tracker.importer import init_importer  # noqa: E402
from gwd_tracker.models import GirthWeldDig, db  # noqa: E402


@pytest.fixture(scope="function")
def app():
    """Create and configure a test Flask application"""
    flask_app.config.update(
        {
            "TESTING": True,
            "SECRET_KEY": "test-secret-key-for-testing-only",
            "ENABLE_FILE_LOGGING": False,
            "ENABLE_CONSOLE_LOGGING": False,
            "LOG_LEVEL": "DEBUG",
            "IMPORTER_ENABLED": True,
            "IMPORTER_STAGING_BATCH_SIZE": 100,
        }
    )

    # Re-initialize logging with updated config to pick up LOG_LEVEL=DEBUG
    from gwd_tracker.utils.logging_config import setup_logging

    setup_logging(flask_app)
    init_importer(flask_app)

    with flask_app.app_context():
        # Drop any existing tables to ensure clean state
        db.drop_all()
        db.create_all()
        yield flask_app
        db.session.remove()
        db.drop_all()


@pytest.fixture(autouse=True)
def app_context(app):
    """Automatically provide app context for all tests"""
    with app.app_context():
        yield


@pytest.fixture
def client(app):
    """Create a test client for the Flask application"""
    return app.test_client()


@pytest.fixture
def runner(app):
    """Create a test CLI runner for the Flask application"""
    return app.test_cli_runner()


@pytest.fixture
def existing_gwd(app):
    """Persist an authoritative GWD matched by digtracker_id 101."""
    record = GirthWeldDig(
        digtracker_id=101,
        gwd_number=5001,
        system="North",
        pipeline="Line 7",
        status="In Progress",
        land_cost=1000.0,
    )
    db.session.add(record)
    db.session.commit()
    return record
