from __future__ import annotations

import pytest
from fastapi.testclient import TestClient
from sqlalchemy.exc import OperationalError

from conftest import FakeResponse, bearer
from devicehub.core.config import Settings
from devicehub.db.models import Device
from devicehub.main import create_app
from devicehub.services import registration as registration_mod
from devicehub.services.device_registry import DeviceRegistry

REGISTER = "/api/v2/device/register"
PAYLOAD = {
    "deviceId": "gauge-01",
    "deviceSecretKey": "k3y",
    "monitorItem": "water_level",
    "customName": "Pier 3",
    "deviceLocation": {"latitude": "13.75", "longtitude": "100.50"},
}


def test_register_ok_and_repeatable(client, verifier):
    headers = {"authorization": bearer(verifier, 11)}
    for _ in range(2):
        r = client.post(REGISTER, json=PAYLOAD, headers=headers)
        assert r.status_code == 200
        assert r.json() == {"code": 200, "message": "ok"}


def test_register_without_header(client):
    r = client.post(REGISTER, json=PAYLOAD)
    assert r.status_code == 200
    assert r.json() == {"code": 401, "message": "Missing Authorization header"}


def test_register_with_bad_token(client):
    r = client.post(REGISTER, json=PAYLOAD, headers={"authorization": "Bearer nope"})
    assert r.json() == {"code": 401, "message": "Invalid or expired token"}


def test_register_wrong_device_secret(client, verifier):
    client.post(REGISTER, json=PAYLOAD, headers={"authorization": bearer(verifier, 1)})
    r = client.post(
        REGISTER,
        json={**PAYLOAD, "deviceSecretKey": "other"},
        headers={"authorization": bearer(verifier, 2)},
    )
    assert r.json() == {"code": 401, "message": "Invalid device secret"}


def test_register_schema_violation(client, verifier):
    r = client.post(REGISTER, json={"deviceId": "x"}, headers={"authorization": bearer(verifier, 1)})
    assert r.status_code == 422
    body = r.json()
    assert body["code"] == 422
    assert "deviceSecretKey" in body["message"]


def test_latest_forwards_body_and_projects(client, fake_http):
    fake_http.response = FakeResponse(200, {"code": 200, "data": [
        {"data": []},
        {"data": [{"monitorValue": "1.23", "monitorTime": "T1"}, {"monitorValue": "9.99", "monitorTime": "T2"}]},
    ]})
    body = {"deviceId": "gauge-01", "deviceSecretKey": "k3y", "monitorItem": "water_level"}
    r = client.post("/api/v2/device/latest", json=body)

    assert r.status_code == 200
    assert r.json() == {"code": 200, "monitorValue": "1.23", "monitorTime": "T1"}
    assert fake_http.calls[0]["url"] == "http://upstream.test/latest"
    assert fake_http.calls[0]["json"] == body


def test_latest_upstream_failure(client, fake_http):
    fake_http.response = FakeResponse(500, None, text="boom")
    r = client.post("/api/v2/device/latest", json={"deviceId": "a", "deviceSecretKey": "b", "monitorItem": "c"})
    assert r.status_code == 200
    assert r.json() == {"code": 500, "monitorValue": "", "monitorTime": ""}


def test_latest_unconfigured(settings):
    app = create_app(settings)
    with TestClient(app) as c:
        r = c.post("/api/v2/device/latest", json={"deviceId": "a", "deviceSecretKey": "b", "monitorItem": "c"})
        assert r.json() == {"code": 500, "monitorValue": "", "monitorTime": ""}
        assert c.get("/health").json() == {"ok": True, "telemetry_configured": False}


def test_history_placeholder(client):
    r = client.post("/api/v2/device/", json={
        "deviceId": "gauge-01", "deviceSecretKey": "k3y", "minitorItem": "water_level", "start": 0, "end": 10,
    })
    assert r.status_code == 200
    assert r.json() == {
        "code": 0,
        "message": "ok",
        "status": "ok",
        "data": [{
            "data": [], "dataStatus": 0, "deviceId": "gauge-01", "deviceStatus": 0,
            "id": 0, "customname": "", "name": "", "sensorNumber": 0,
        }],
    }


@pytest.mark.parametrize("device_list, expected", [
    ([{"deviceId": "first", "deviceSecretKey": "a"}, {"deviceId": "second", "deviceSecretKey": "b"}], "first"),
    ([], ""),
])
def test_batch_placeholder_keyed_by_first_device(client, device_list, expected):
    r = client.post("/api/v2/device/batch", json={
        "deviceList": device_list, "monitorItem": ["water_level"], "start": 0, "end": 10,
    })
    assert r.json()["data"][0]["deviceId"] == expected


def test_health(client):
    assert client.get("/health").json() == {"ok": True, "telemetry_configured": True}


def test_app_refuses_to_start_without_signing_secret(tmp_path, db_url):
    s = Settings(JWT_SECRET="", DATABASE_URL=db_url, CONFIG_FILE=str(tmp_path / "absent.yaml"))
    with pytest.raises(ValueError, match="JWT_SECRET"):
        create_app(s)


@pytest.mark.parametrize("location", [
    {"latitude": "1.0"},
    {"latitude": "1.0", "longtitude": ""},
    {"longtitude": "100.50"},
])
def test_register_partial_location_is_not_stored(client, verifier, location):
    r = client.post(
        REGISTER,
        json={**PAYLOAD, "deviceLocation": location},
        headers={"authorization": bearer(verifier, 1)},
    )
    assert r.json() == {"code": 200, "message": "ok"}

    with client.app.state.session_factory() as db:
        row = db.query(Device).one()
        assert row.latitude is None and row.longitude is None


def test_register_full_location_is_stored(client, verifier):
    client.post(REGISTER, json=PAYLOAD, headers={"authorization": bearer(verifier, 1)})

    with client.app.state.session_factory() as db:
        row = db.query(Device).one()
        assert (row.latitude, row.longitude) == ("13.75", "100.50")


def test_storage_fault_returns_json_envelope(client, verifier, monkeypatch):
    class _Locked(DeviceRegistry):
        def find(self, secret_id):
            raise OperationalError("SELECT devices", {}, Exception("database is locked"))

    monkeypatch.setattr(registration_mod, "DeviceRegistry", _Locked)
    r = client.post(REGISTER, json=PAYLOAD, headers={"authorization": bearer(verifier, 1)})

    assert r.status_code == 200
    assert r.headers["content-type"].startswith("application/json")
    assert r.json() == {"code": 500, "message": "Failed to register device"}
