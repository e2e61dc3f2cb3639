import io
import json
from unittest.mock import patch

from gwd_tracker.models import GirthWeldDig, db

SCENARIO_CSV = (
    "ID,Target Girth Weld,System,Pipeline,Dig_Status,Land Cost\n"
    "101,5001,North,Line 7,In Progress,1250\n"
    "202,6002,South,Line 9,Site Selected,\n"
    "303,,East,Line 1,,\n"
)


def _upload(client, contents=SCENARIO_CSV, filename="gwds.csv"):
    data = {"file": (io.BytesIO(contents.encode("utf-8")), filename)}
    return client.post("/importer/gwds/upload", data=data, content_type="multipart/form-data")


def test_health_reports_enabled_importer(client):
    response = client.get("/importer/health")

    assert response.status_code == 200
    payload = response.get_json()
    assert payload["status"] == "ok"
    assert payload["enabled"] is True
    assert payload["staging_batch_size"] == 100


def test_upload_returns_summary_and_serialized_differences(client, existing_gwd):
    response = _upload(client)

    assert response.status_code == 200, response.get_data(as_text=True)
    payload = response.get_json()
    assert payload["summary"]["rows_received"] == 3
    assert payload["summary"]["rows_skipped"] == 1
    assert payload["summary"]["phases"][-1] == "done"

    conflict = payload["differences"][str(existing_gwd.gwd_id)]
    assert conflict["kind"] == "conflict"
    assert [entry["field"] for entry in conflict["entries"]] == ["land_cost"]
    new_group = payload["differences"]["new_202"]
    assert new_group["kind"] == "new"
    assert new_group["inserted_gwd_id"] is not None
    assert all(entry["is_new"] for entry in new_group["entries"])


def test_upload_accepts_byte_order_mark(client):
    response = _upload(client, contents="\ufeffID,gwd_number\n1,10\n")

    assert response.status_code == 200
    assert "new_1" in response.get_json()["differences"]


def test_upload_requires_csv_file(client):
    assert client.post("/importer/gwds/upload", data={}).status_code == 400
    assert _upload(client, filename="gwds.xlsx").status_code == 400


def test_upload_rejects_missing_required_header(client):
    response = _upload(client, contents="ID,System\n1,North\n")

    assert response.status_code == 400
    assert "gwd_number" in response.get_json()["error"]


def test_upload_without_valid_rows_is_bad_request(client):
    response = _upload(client, contents="ID,gwd_number\n1,\n2,\n")

    assert response.status_code == 400
    assert "No valid rows" in response.get_json()["error"]


def test_upload_store_failure_maps_to_bad_gateway(client):
    from gwd_tracker.importer.pipeline import StoreError

    with patch(
        "gwd_tracker.importer.pipeline.store.SQLAlchemyGWDStore.fetch_existing_by_external_ids",
        side_effect=StoreError("database unavailable"),
    ):
        response = _upload(client, contents="\ufeffID,gwd_number\n1,10\n")

    assert response.status_code == 502
    assert "database unavailable" in response.get_json()["error"]


def test_resolve_round_trip_updates_record(client, existing_gwd):
    differences = _upload(client).get_json()["differences"]
    gwd_id = existing_gwd.gwd_id

    response = client.post(
        "/importer/gwds/resolve",
        json={"differences": differences, "target_id": gwd_id, "field": "land_cost", "value": 1250.0},
    )

    assert response.status_code == 200
    remaining = response.get_json()["differences"]
    assert str(gwd_id) not in remaining
    assert "new_202" in remaining
    db.session.expire_all()
    assert db.session.get(GirthWeldDig, gwd_id).land_cost == 1250.0


def test_resolve_new_record_group(client):
    differences = _upload(client, contents="ID,gwd_number,System\n8,80,North\n").get_json()["differences"]

    response = client.post(
        "/importer/gwds/resolve",
        data=json.dumps(
            {
                "differences": differences,
                "target_id": "new_8",
                "field": "system",
                "value": "Central",
                "is_new": True,
            }
        ),
        content_type="application/json",
    )

    assert response.status_code == 200
    assert response.get_json()["differences"] == {}
    db.session.expire_all()
    records = db.session.query(GirthWeldDig).filter_by(digtracker_id=8).all()
    assert [record.system for record in records] == ["Central"]


def test_resolve_rejects_bad_payloads(client):
    assert client.post("/importer/gwds/resolve", data="nope").status_code == 400
    assert client.post("/importer/gwds/resolve", json={"value": 1}).status_code == 400
    assert client.post("/importer/gwds/resolve", json={"field": "land_cost"}).status_code == 400
    assert (
        client.post(
            "/importer/gwds/resolve",
            json={"field": "land_cost", "value": 1, "differences": {}},
        ).status_code
        == 400
    )
    response = client.post(
        "/importer/gwds/resolve",
        json={"field": "land_cost", "value": 1, "target_id": 1, "differences": {"1": {"kind": "mystery"}}},
    )
    assert response.status_code == 400
    assert "Invalid differences" in response.get_json()["error"]


def test_resolve_store_failure_maps_to_bad_gateway(client):
    differences = {
        "9": {
            "kind": "conflict",
            "gwd_id": 9,
            "gwd_number": 90,
            "entries": [
                {"gwd_id": 9, "gwd_number": 90, "field": "land_cost", "existing": 1.0, "imported": 2.0, "is_new": False}
            ],
        }
    }

    response = client.post(
        "/importer/gwds/resolve",
        json={"differences": differences, "target_id": 9, "field": "land_cost", "value": 2.0},
    )

    assert response.status_code == 502
    assert "GWD 9" in response.get_json()["error"]


def test_endpoints_return_404_when_importer_disabled(app, client):
    app.config["IMPORTER_ENABLED"] = False

    assert _upload(client).status_code == 404
    assert client.post("/importer/gwds/resolve", json={}).status_code == 404
