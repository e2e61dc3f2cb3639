"""
Importer blueprint endpoints for health, CSV upload, and difference resolution.
"""

from __future__ import annotations

from http import HTTPStatus

from flask import Blueprint, current_app, jsonify, request
from werkzeug.utils import secure_filename

from gwd_tracker.importer.adapters import CSVAdapterError
from gwd_tracker.importer.pipeline import (
    DifferenceSet,
    DifferenceSetError,
    ImportReconciler,
    NoValidRowsError,
    ReconciliationError,
    ResolutionCoordinator,
    SQLAlchemyGWDStore,
)
from gwd_tracker.utils.importer import get_staging_batch_size, is_importer_enabled

from .utils import UploadError, allowed_file, ensure_json_serializable, read_upload_text

importer_blueprint = Blueprint("importer", __name__, url_prefix="/importer")


def _json_error(message: str, status: HTTPStatus):
    return jsonify({"error": message}), status


def _ensure_importer_enabled_api():
    if not is_importer_enabled(current_app):
        return _json_error("Importer is disabled.", HTTPStatus.NOT_FOUND)
    return None


@importer_blueprint.get("/health")
def importer_healthcheck():
    """
    Lightweight health endpoint proving the importer blueprint mounted correctly.
    """
    importer_state = current_app.extensions.get("importer", {})
    return (
        jsonify(
            {
                "status": "ok",
                "enabled": importer_state.get("enabled", False),
                "staging_batch_size": importer_state.get("staging_batch_size"),
            }
        ),
        200,
    )


@importer_blueprint.post("/gwds/upload")
def upload_gwds():
    """Import a GWD CSV export and return the differences awaiting review."""
    error_response = _ensure_importer_enabled_api()
    if error_response:
        return error_response

    file_storage = request.files.get("file")
    if file_storage is None or not file_storage.filename:
        return _json_error("A CSV file is required in the 'file' field.", HTTPStatus.BAD_REQUEST)
    if not allowed_file(file_storage.filename):
        return _json_error("Only .csv files are supported.", HTTPStatus.BAD_REQUEST)

    try:
        buffer = read_upload_text(file_storage)
    except UploadError as exc:
        return _json_error(str(exc), HTTPStatus.BAD_REQUEST)

    reconciler = ImportReconciler(
        SQLAlchemyGWDStore(),
        batch_size=get_staging_batch_size(current_app),
    )
    try:
        result = reconciler.import_csv(buffer)
    except (CSVAdapterError, NoValidRowsError) as exc:
        current_app.logger.warning("GWD import rejected: %s", exc)
        return _json_error(str(exc), HTTPStatus.BAD_REQUEST)
    except ReconciliationError as exc:
        current_app.logger.exception("GWD import failed")
        return _json_error(str(exc), HTTPStatus.BAD_GATEWAY)

    current_app.logger.info(
        "GWD import from %s finished",
        secure_filename(file_storage.filename),
        extra={"importer_summary": result.summary()},
    )
    return (
        jsonify(
            {
                "summary": ensure_json_serializable(result.summary()),
                "differences": ensure_json_serializable(result.differences.to_dict()),
            }
        ),
        200,
    )


@importer_blueprint.post("/gwds/resolve")
def resolve_gwd_difference():
    """Apply one resolution and return the remaining differences."""
    error_response = _ensure_importer_enabled_api()
    if error_response:
        return error_response

    payload = request.get_json(silent=True)
    if not isinstance(payload, dict):
        return _json_error("Request body must be a JSON object.", HTTPStatus.BAD_REQUEST)

    field = payload.get("field")
    if not isinstance(field, str) or not field:
        return _json_error("'field' is required.", HTTPStatus.BAD_REQUEST)
    if "value" not in payload:
        return _json_error("'value' is required.", HTTPStatus.BAD_REQUEST)

    try:
        differences = DifferenceSet.from_dict(payload.get("differences"))
    except DifferenceSetError as exc:
        return _json_error(f"Invalid differences payload: {exc}", HTTPStatus.BAD_REQUEST)

    is_new = bool(payload.get("is_new", False))
    target_id = payload.get("target_id")
    if not is_new and target_id is None:
        return _json_error("'target_id' is required for existing records.", HTTPStatus.BAD_REQUEST)

    coordinator = ResolutionCoordinator(SQLAlchemyGWDStore())
    try:
        remaining = coordinator.resolve(
            differences,
            target_id,
            field,
            payload["value"],
            is_new=is_new,
            gwd_number=payload.get("gwd_number"),
        )
    except ReconciliationError as exc:
        current_app.logger.exception("GWD resolution failed")
        return _json_error(str(exc), HTTPStatus.BAD_GATEWAY)

    return jsonify({"differences": ensure_json_serializable(remaining.to_dict())}), 200
