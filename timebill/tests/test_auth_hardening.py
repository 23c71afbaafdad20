import os

import jwt
from fastapi.testclient import TestClient

from timebill.main import app
from timebill.services.auth_service import create_access_token

client = TestClient(app)


def _mint_token(user_id="dev-user", tenant_id=1, role="STAFF") -> str:
    # /auth/token requires JWT_SECRET
    os.environ.setdefault("JWT_SECRET", "test-jwt-secret-for-pytest-only-0000000000000000")
    r = client.post("/auth/token", json={"user_id": user_id, "tenant_id": tenant_id, "role": role})
    assert r.status_code == 200, r.text
    return r.json()["access_token"]


def _headers(token: str, tenant_id=1) -> dict:
    return {"Authorization": f"Bearer {token}", "X-Tenant-Id": str(tenant_id)}


def test_missing_authorization_header_401():
    r = client.get("/timer/active", headers={"X-Tenant-Id": "1"})
    assert r.status_code == 401


def test_wrong_scheme_401():
    token = _mint_token()
    r = client.get("/timer/active", headers={"Authorization": f"Basic {token}", "X-Tenant-Id": "1"})
    assert r.status_code == 401


def test_garbled_bearer_token_401():
    r = client.get("/timer/active", headers={"Authorization": "Bearer not-a-real-token", "X-Tenant-Id": "1"})
    assert r.status_code == 401


def test_missing_tenant_header_403():
    token = _mint_token()
    r = client.get("/timer/active", headers={"Authorization": f"Bearer {token}"})
    assert r.status_code == 403
    assert "X-Tenant-Id" in r.text


def test_tenant_mismatch_403():
    token = _mint_token(tenant_id=1)
    r = client.get("/timer/active", headers=_headers(token, tenant_id=2))
    assert r.status_code == 403
    assert "Tenant mismatch" in r.text


def test_unknown_role_claim_403():
    token = create_access_token(user_id="u1", tenant_id=1, role="SUPERUSER")
    r = client.get("/timer/active", headers=_headers(token))
    assert r.status_code == 403


def test_token_without_role_defaults_to_staff():
    token = jwt.encode(
        {"sub": "u1", "tenant_id": 1, "iss": "timebill"},
        os.environ["JWT_SECRET"],
        algorithm="HS256",
    )
    r = client.get("/timer/active", headers=_headers(token))
    assert r.status_code == 200, r.text

    # staff cannot review
    r = client.get("/approval-queue", headers=_headers(token))
    assert r.status_code == 403
    assert r.json()["code"] == "FORBIDDEN"


def test_token_endpoint_hidden_outside_dev(monkeypatch):
    monkeypatch.setenv("ENV", "production")
    r = client.post("/auth/token", json={"user_id": "u1", "tenant_id": 1})
    assert r.status_code == 404


def test_expired_token_401():
    token = jwt.encode(
        {"sub": "u1", "tenant_id": 1, "role": "ADMIN", "iss": "timebill", "exp": 1},
        os.environ["JWT_SECRET"],
        algorithm="HS256",
    )
    r = client.get("/timer/active", headers=_headers(token))
    assert r.status_code == 401


def test_me_reflects_token_claims():
    token = _mint_token(user_id="mgr-7", tenant_id=4, role="MANAGER")
    r = client.get("/auth/me", headers=_headers(token, tenant_id=4))
    assert r.status_code == 200, r.text
    assert r.json() == {"user_id": "mgr-7", "tenant_id": 4, "role": "MANAGER"}
