import pytest
from fastapi.testclient import TestClient

import siteops.api.main as api_main
from siteops.application.context import AppContext
from siteops.config.settings import Settings
from siteops.persistence.known_columns import KnownMissingColumns


@pytest.fixture
def client(ctx):
    api_main.app.dependency_overrides[api_main.get_context] = lambda: ctx
    yield TestClient(api_main.app)
    api_main.app.dependency_overrides.clear()


def _site(client, name="Tower A"):
    resp = client.post("/api/sites", json={"name": name})
    assert resp.status_code == 201
    return resp.json()["data"]


def test_health_and_security_headers(client):
    resp = client.get("/health")
    assert resp.status_code == 200
    assert resp.json() == {"status": "ok"}
    assert resp.headers["X-Content-Type-Options"] == "nosniff"


def test_daily_report_create_update_envelope(client):
    site = _site(client)
    body = {"site_id": site["id"], "work_date": "2024-05-01", "member_name": "Yoon", "process_type": "concrete"}

    created = client.post("/api/mobile/daily-reports", json=body)
    updated = client.post("/api/mobile/daily-reports", json={**body, "issues": "pump delay"})

    assert created.status_code == 200
    assert created.json()["success"] is True
    assert created.json()["message"] == "daily report created"
    assert updated.json()["message"] == "daily report updated"
    assert updated.json()["data"]["id"] == created.json()["data"]["id"]

    listed = client.get("/api/mobile/daily-reports", params={"site_id": site["id"]})
    assert listed.status_code == 200
    assert len(listed.json()["data"]) == 1
    assert "warning" not in listed.json()


def test_error_statuses_use_the_envelope(client):
    missing_fields = client.post("/api/mobile/daily-reports", json={"work_date": "2024-05-01"})
    assert missing_fields.status_code == 400
    assert missing_fields.json() == {"success": False, "error": "site_id and work_date are required"}

    unknown = client.get("/api/daily-reports/does-not-exist")
    assert unknown.status_code == 404
    assert unknown.json()["success"] is False

    malformed = client.post("/api/mobile/daily-reports", json={"site_id": "s", "work_date": "May 1st"})
    assert malformed.status_code == 422


def test_approved_report_is_locked(client):
    site = _site(client, "Tower B")
    body = {"site_id": site["id"], "work_date": "2024-05-02", "member_name": "Yoon", "process_type": "x"}
    report_id = client.post("/api/mobile/daily-reports", json=body).json()["data"]["id"]

    assert client.post(f"/api/daily-reports/{report_id}/submit").status_code == 200
    approved = client.post(f"/api/daily-reports/{report_id}/approve", json={"approve": True, "approver_id": "m1"})
    assert approved.json()["data"]["status"] == "approved"

    locked = client.patch(f"/api/daily-reports/{report_id}", json={"issues": "edit"})
    assert locked.status_code == 403
    assert locked.json()["success"] is False


def test_listing_fails_soft_when_the_store_breaks(quiet_logger):
    class ExplodingStore:
        backend = "broken"

        def select(self, *args, **kwargs):
            raise RuntimeError("database is locked")

    broken = AppContext(store=ExplodingStore(), known_missing=KnownMissingColumns(), logger=quiet_logger)
    api_main.app.dependency_overrides[api_main.get_context] = lambda: broken
    try:
        resp = TestClient(api_main.app).get("/api/mobile/daily-reports", params={"site_id": "s1"})
    finally:
        api_main.app.dependency_overrides.clear()

    assert resp.status_code == 200
    assert resp.json() == {"success": True, "data": [], "warning": "fallback"}


def test_listing_fails_soft_on_bad_filters(client):
    resp = client.get("/api/mobile/daily-reports", params={"limit": "lots"})
    assert resp.status_code == 200
    assert resp.json()["warning"] == "fallback"


def test_listing_fails_soft_when_the_database_cannot_open(monkeypatch, tmp_path):
    monkeypatch.setattr(api_main, "_settings", Settings(db_path=tmp_path))
    monkeypatch.setattr(api_main, "_context", None)

    resp = TestClient(api_main.app).get("/api/mobile/daily-reports")

    assert resp.status_code == 200
    assert resp.json() == {"success": True, "data": [], "warning": "fallback"}


def test_moving_a_report_onto_an_occupied_date_conflicts(client):
    site = _site(client, "Tower D")
    body = {"site_id": site["id"], "member_name": "Yoon", "process_type": "x"}
    client.post("/api/mobile/daily-reports", json={**body, "work_date": "2024-05-01"})
    second = client.post("/api/mobile/daily-reports", json={**body, "work_date": "2024-05-02"}).json()["data"]

    moved = client.patch(f"/api/daily-reports/{second['id']}", json={"work_date": "2024-05-01"})

    assert moved.status_code == 409
    assert moved.json()["success"] is False
    assert client.get(f"/api/daily-reports/{second['id']}").json()["data"]["work_date"] == "2024-05-02"


def test_photos_round_trip(client):
    site = _site(client, "Tower C")
    body = {"site_id": site["id"], "work_date": "2024-05-03", "member_name": "Yoon", "process_type": "x"}
    report_id = client.post("/api/mobile/daily-reports", json=body).json()["data"]["id"]

    added = client.post(
        f"/api/daily-reports/{report_id}/photos",
        json={"photo_type": "before", "file_url": "https://cdn/p.jpg"},
    )
    assert added.status_code == 201
    photo_id = added.json()["data"]["id"]

    listed = client.get(f"/api/daily-reports/{report_id}/photos")
    assert [item["id"] for item in listed.json()["data"]] == [photo_id]

    deleted = client.delete(f"/api/daily-reports/photos/{photo_id}")
    assert deleted.json() == {"success": True, "message": "additional photo deleted"}


def test_shipment_flow(client):
    site = _site(client, "Yard")
    created = client.post(
        "/api/shipments",
        json={"site_id": site["id"], "quantity_shipped": 12, "tracking_number": "TRK-9", "carrier": "CJ"},
    )
    assert created.status_code == 201
    shipment_id = created.json()["data"]["id"]

    patched = client.patch(f"/api/shipments/{shipment_id}", json={"shipping_cost": 5000})
    assert patched.json()["data"]["shipping_cost"] == 5000

    status = client.post(f"/api/shipments/{shipment_id}/status", json={"status": "in_transit"})
    assert status.json()["data"]["status"] == "in_transit"

    tracked = client.get("/api/shipments/track/TRK-9")
    assert tracked.json()["data"]["site_name"] == "Yard"

    history = client.get("/api/shipments", params={"site_id": site["id"]})
    assert len(history.json()["data"]) == 1

    analytics = client.get("/api/shipments/analytics", params={"period": "year"})
    assert analytics.json()["data"][0]["shipments"] == 1

    bad_status = client.post(f"/api/shipments/{shipment_id}/status", json={"status": "lost"})
    assert bad_status.status_code == 422
