from __future__ import annotations

from pathlib import Path

import jwt
import pytest
from fastapi.testclient import TestClient

from app.api.routes import get_clock, get_store
from app.core.config import settings
from app.core.errors import DuplicateActiveLeakError, StorageError
from app.main import app
from tests.conftest import NOW_MS, FakeDocumentStore, minutes_ago


@pytest.fixture
def client(monkeypatch, tmp_path: Path):
    monkeypatch.setattr(settings, "DATABASE_PATH", str(tmp_path / "airscan.db"))
    monkeypatch.setattr(settings, "AUTH_ENABLED", False)
    app.dependency_overrides[get_clock] = lambda: (lambda: NOW_MS)
    with TestClient(app) as test_client:
        yield test_client
    app.dependency_overrides.clear()


def observation(minutes: float, **overrides) -> dict:
    payload = {
        "asset_id": "A1",
        "asset_name": "Compressor A1",
        "network_id": "N1",
        "current_lpm": 20,
        "current_pressure": 6.5,
        "start_time": minutes_ago(minutes),
        "current_db_id": None,
        "contact_emails": ["ops@example.com"],
    }
    payload.update(overrides)
    return payload


@pytest.mark.integration
def test_health(client):
    response = client.get("/health")

    assert response.status_code == 200
    assert response.json() == {"status": "ok", "service": settings.PROJECT_NAME}


@pytest.mark.integration
def test_sync_resolve_and_list_flow(client):
    quiet = client.post("/leaks/sync", json=observation(2))
    assert quiet.json() == {"record_id": None, "action": "none", "severity": "normal", "alert_id": None}

    created = client.post("/leaks/sync", json=observation(6)).json()
    assert created["action"] == "created"
    assert created["severity"] == "moderate"
    assert created["alert_id"]

    record_id = created["record_id"]
    updated = client.post(
        "/leaks/sync",
        json=observation(11, current_db_id=record_id, previous_severity="moderate"),
    ).json()
    assert updated == {"record_id": record_id, "action": "updated", "severity": "critical", "alert_id": updated["alert_id"]}
    assert updated["alert_id"]

    active = client.get("/leaks", params={"status": "active", "asset_id": "A1"}).json()
    assert [r["id"] for r in active] == [record_id]
    assert active[0]["hourly_cost"] == 0.8

    resolved = client.post(f"/leaks/{record_id}/resolve")
    assert resolved.json()["status"] == "resolved"
    assert resolved.json()["end_time"]

    record = client.get(f"/leaks/{record_id}").json()
    assert record["status"] == "resolved"
    assert record["end_time"]
    assert client.get("/leaks", params={"status": "active"}).json() == []


@pytest.mark.integration
def test_get_unknown_leak_is_404(client):
    assert client.get("/leaks/unknown").status_code == 404


@pytest.mark.integration
def test_storage_failure_maps_to_503(client):
    failing = FakeDocumentStore()
    failing.fail_on = {"query"}
    failing.error = StorageError("database unreachable")
    app.dependency_overrides[get_store] = lambda: failing

    response = client.post("/leaks/sync", json=observation(6))

    assert response.status_code == 503
    assert response.json()["error_code"] == "STORAGE_ERROR"


@pytest.mark.integration
def test_auth_enabled_requires_valid_token(client, monkeypatch):
    monkeypatch.setattr(settings, "AUTH_ENABLED", True)

    assert client.get("/leaks").status_code == 401
    assert client.get("/leaks", headers={"Authorization": "Bearer garbage"}).status_code == 401

    token = jwt.encode({"sub": "worker"}, settings.JWT_SECRET, algorithm=settings.JWT_ALGORITHM)
    assert client.get("/leaks", headers={"Authorization": f"Bearer {token}"}).status_code == 200


@pytest.mark.integration
def test_resolve_requires_operator_role(client, monkeypatch):
    monkeypatch.setattr(settings, "AUTH_ENABLED", True)
    worker = jwt.encode({"sub": "worker", "role": "monitor"}, settings.JWT_SECRET, algorithm=settings.JWT_ALGORITHM)
    operator = jwt.encode({"sub": "ana", "role": "operator"}, settings.JWT_SECRET, algorithm=settings.JWT_ALGORITHM)

    created = client.post(
        "/leaks/sync",
        json=observation(6),
        headers={"Authorization": f"Bearer {worker}"},
    ).json()
    record_id = created["record_id"]

    denied = client.post(f"/leaks/{record_id}/resolve", headers={"Authorization": f"Bearer {worker}"})
    assert denied.status_code == 403

    allowed = client.post(f"/leaks/{record_id}/resolve", headers={"Authorization": f"Bearer {operator}"})
    assert allowed.status_code == 200


@pytest.mark.integration
def test_token_without_subject_is_rejected(client, monkeypatch):
    monkeypatch.setattr(settings, "AUTH_ENABLED", True)
    token = jwt.encode({"role": "operator"}, settings.JWT_SECRET, algorithm=settings.JWT_ALGORITHM)

    assert client.get("/leaks", headers={"Authorization": f"Bearer {token}"}).status_code == 401


@pytest.mark.integration
def test_resolve_unknown_leak_is_404(client):
    assert client.post("/leaks/unknown/resolve").status_code == 404


@pytest.mark.integration
def test_resolve_reports_status_left_by_failed_update(client):
    flaky = FakeDocumentStore()
    flaky.collections[settings.LEAKS_COLLECTION] = {"doc-7": {"asset_id": "A1", "status": "active"}}
    flaky.fail_on = {"update"}
    flaky.error = StorageError("write timed out")
    app.dependency_overrides[get_store] = lambda: flaky

    response = client.post("/leaks/doc-7/resolve")

    assert response.status_code == 200
    assert response.json() == {"record_id": "doc-7", "status": "active", "end_time": None}


@pytest.mark.integration
def test_duplicate_active_leak_maps_to_409(client):
    conflicting = FakeDocumentStore()
    conflicting.fail_on = {"query"}
    conflicting.error = DuplicateActiveLeakError("An active leak is already open for this asset.")
    app.dependency_overrides[get_store] = lambda: conflicting

    response = client.post("/leaks/sync", json=observation(6))

    assert response.status_code == 409
    assert response.json()["error_code"] == "DUPLICATE_ACTIVE_LEAK"
