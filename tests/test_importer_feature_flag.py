import json

from flask import Flask

from gwd_tracker.importer import IMPORTER_EXTENSION_KEY, init_importer


def build_app(enabled=False, batch_size=100):
    app = Flask(__name__)
    app.config.update(
        SECRET_KEY="test-secret",
        TESTING=True,
        IMPORTER_ENABLED=enabled,
        IMPORTER_STAGING_BATCH_SIZE=batch_size,
    )

    init_importer(app)
    return app


def test_importer_disabled_registers_stub_cli():
    app = build_app(enabled=False)

    assert "importer" not in app.blueprints
    assert app.extensions[IMPORTER_EXTENSION_KEY]["enabled"] is False

    runner = app.test_cli_runner()
    result = runner.invoke(args=["importer"])
    assert result.exit_code != 0
    assert "Importer commands are unavailable" in result.output


def test_importer_enabled_registers_blueprint_and_cli():
    app = build_app(enabled=True, batch_size=25)

    assert "importer" in app.blueprints
    assert "importer.upload_gwds" in app.view_functions
    assert "importer.resolve_gwd_difference" in app.view_functions
    assert "importer" in app.cli.commands

    client = app.test_client()
    response = client.get("/importer/health")
    assert response.status_code == 200
    payload = json.loads(response.data)
    assert payload == {"status": "ok", "enabled": True, "staging_batch_size": 25}


def test_invalid_batch_size_falls_back_to_default():
    app = build_app(enabled=True, batch_size="lots")

    assert app.extensions[IMPORTER_EXTENSION_KEY]["staging_batch_size"] == 100


def test_reinitializing_swaps_cli_group():
    app = build_app(enabled=True)
    app.config["IMPORTER_ENABLED"] = False

    init_importer(app)

    result = app.test_cli_runner().invoke(args=["importer"])
    assert "Importer commands are unavailable" in result.output
