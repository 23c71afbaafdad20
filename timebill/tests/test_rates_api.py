from fastapi.testclient import TestClient

from timebill.main import app

client = TestClient(app)


def _auth_headers(tenant_id: int, user_id: str = "test", role: str = "STAFF") -> dict:
    r = client.post("/auth/token", json={"user_id": user_id, "tenant_id": tenant_id, "role": role})
    assert r.status_code == 200, r.text
    token = r.json()["access_token"]
    return {"X-Tenant-Id": str(tenant_id), "Authorization": f"Bearer {token}"}


def test_manager_creates_and_lists_rates():
    headers = _auth_headers(1, user_id="mgr", role="MANAGER")

    r = client.post("/rates/task-types", json={"task_id": 4, "hourly_rate_cents": 7500}, headers=headers)
    assert r.status_code == 200, r.text
    assert r.json()["task_id"] == 4

    r = client.post("/rates/clients", json={"client_id": 9, "hourly_rate_cents": 5000}, headers=headers)
    assert r.status_code == 200, r.text

    r = client.get("/rates/task-types", headers=headers)
    assert r.status_code == 200, r.text
    assert [row["hourly_rate_cents"] for row in r.json()["data"]] == [7500]

    # other tenants see nothing
    r = client.get("/rates/clients", headers=_auth_headers(2, role="MANAGER"))
    assert r.status_code == 200
    assert r.json()["data"] == []


def test_staff_gets_403_on_rate_write():
    r = client.post(
        "/rates/staff",
        json={"user_id": "alice", "hourly_rate_cents": 10000},
        headers=_auth_headers(1, user_id="alice"),
    )
    assert r.status_code == 403
    assert r.json()["code"] == "FORBIDDEN"


def test_negative_rate_rejected_422():
    r = client.post(
        "/rates/clients",
        json={"client_id": 1, "hourly_rate_cents": -1},
        headers=_auth_headers(1, role="ADMIN"),
    )
    assert r.status_code == 422


def test_deactivate_rate():
    headers = _auth_headers(1, role="ADMIN")
    r = client.post("/rates/staff", json={"user_id": "dave", "hourly_rate_cents": 9000}, headers=headers)
    rate_id = r.json()["id"]

    r = client.delete(f"/rates/staff/{rate_id}", headers=headers)
    assert r.status_code == 200, r.text
    assert r.json()["is_active"] is False

    r = client.get("/rates/staff", params={"user_id": "dave"}, headers=headers)
    assert r.json()["data"] == []

    assert client.delete(f"/rates/unknown/{rate_id}", headers=headers).status_code == 404
    assert client.delete("/rates/staff/999999", headers=headers).status_code == 404
