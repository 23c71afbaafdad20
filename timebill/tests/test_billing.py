from datetime import datetime, timedelta

import pytest
from fastapi.testclient import TestClient

from timebill.core.authorization import Role
from timebill.core.errors import ValidationError
from timebill.main import app
from timebill.models.audit_record import AuditRecord
from timebill.services import approval_service, billing_service, rate_resolver, time_entry_service
from timebill.services.rate_resolver import RateKind

client = TestClient(app)

WHEN = datetime(2026, 3, 2, 9, 0, 0)


def _auth_headers(tenant_id: int, user_id: str = "test", role: str = "STAFF") -> dict:
    r = client.post("/auth/token", json={"user_id": user_id, "tenant_id": tenant_id, "role": role})
    assert r.status_code == 200, r.text
    token = r.json()["access_token"]
    return {"X-Tenant-Id": str(tenant_id), "Authorization": f"Bearer {token}"}


@pytest.fixture
def staff(caller_factory):
    return caller_factory(user_id="alice")


@pytest.fixture
def manager(caller_factory):
    return caller_factory(user_id="mgr", role=Role.MANAGER)


def _approved(db, staff, manager, **kwargs):
    entry = time_entry_service.create_entry(staff, start_time=WHEN, db=db, **kwargs)
    db.commit()
    approval_service.submit_entry(staff, entry.id, db=db)
    approval_service.approve_entry(manager, entry.id, db=db)
    db.commit()
    return entry


def test_unbilled_time_groups_approved_entries_by_client(db, staff, manager):
    rate_resolver.create_rate(manager, RateKind.CLIENT, subject_id=10, hourly_rate_cents=6000, db=db)
    db.commit()

    a = _approved(db, staff, manager, duration_seconds=3600, client_id=10)
    b = _approved(db, staff, manager, duration_seconds=1800, client_id=10, entry_type="non_billable")
    c = _approved(db, staff, manager, duration_seconds=900, client_id=20)
    # drafts stay out of the invoice
    time_entry_service.create_entry(staff, start_time=WHEN, duration_seconds=7200, client_id=10, db=db)
    db.commit()

    groups = {g["client_id"]: g for g in billing_service.get_unbilled_time(staff, db=db)}

    assert set(groups) == {10, 20}
    assert groups[10]["entry_count"] == 2
    assert groups[10]["total_hours"] == 1.5
    assert groups[10]["billable_hours"] == 1.0
    assert groups[10]["total_amount_cents"] == 6000
    assert groups[10]["unpriced_count"] == 0
    assert sorted(groups[10]["entry_ids"]) == sorted([a.id, b.id])

    assert groups[20]["unpriced_count"] == 1
    assert groups[20]["total_amount_cents"] == 0
    assert groups[20]["entry_ids"] == [c.id]


def test_mark_as_billed_is_idempotent(db, staff, manager):
    entry = _approved(db, staff, manager, duration_seconds=3600, client_id=10)

    first = billing_service.mark_as_billed(staff, [entry.id], db=db)
    db.commit()
    assert first.billed == [entry.id]
    assert first.count == 1

    second = billing_service.mark_as_billed(staff, [entry.id], db=db)
    db.commit()
    assert second.billed == []
    assert second.already_billed == [entry.id]

    db.refresh(entry)
    assert entry.is_billed is True
    assert entry.status == "approved"
    assert db.query(AuditRecord).filter(AuditRecord.action == "mark_billed").count() == 1
    assert billing_service.get_unbilled_time(staff, db=db) == []


def test_mark_as_billed_skips_unapproved_and_unknown_ids(db, staff, manager):
    approved = _approved(db, staff, manager, duration_seconds=600)
    draft = time_entry_service.create_entry(staff, start_time=WHEN, duration_seconds=600, db=db)
    db.commit()

    result = billing_service.mark_as_billed(staff, [approved.id, draft.id, 424242], db=db)
    db.commit()

    assert result.billed == [approved.id]
    assert result.skipped == [draft.id, 424242]

    with pytest.raises(ValidationError):
        billing_service.mark_as_billed(staff, [], db=db)


def test_billed_entry_rejects_edits_and_transitions(db, staff, manager):
    entry = _approved(db, staff, manager, duration_seconds=600)
    billing_service.mark_as_billed(staff, [entry.id], db=db)
    db.commit()

    r = client.put(
        f"/entries/{entry.id}",
        json={"description": "after invoicing"},
        headers=_auth_headers(1, user_id="mgr", role="MANAGER"),
    )
    assert r.status_code == 409


def test_billing_endpoints():
    alice = _auth_headers(1, user_id="alice")
    manager = _auth_headers(1, user_id="mgr", role="MANAGER")

    start = datetime(2026, 3, 2, 9, 0, 0)
    r = client.post(
        "/entries",
        json={"start_time": start.isoformat(), "end_time": (start + timedelta(hours=2)).isoformat(), "client_id": 3},
        headers=alice,
    )
    entry_id = r.json()["id"]
    client.post(f"/entries/{entry_id}/submit", headers=alice)
    client.post(f"/entries/{entry_id}/approve", headers=manager)

    r = client.get("/unbilled", headers=alice)
    assert r.status_code == 200, r.text
    assert r.json()["data"][0]["entry_ids"] == [entry_id]
    assert r.json()["data"][0]["total_hours"] == 2.0

    r = client.post("/mark-billed", json={"entry_ids": [entry_id]}, headers=alice)
    assert r.status_code == 200, r.text
    assert r.json() == {"success": True, "count": 1, "already_billed": [], "skipped": []}

    r = client.post("/mark-billed", json={"entry_ids": [entry_id]}, headers=alice)
    assert r.json()["count"] == 0
    assert r.json()["already_billed"] == [entry_id]

    assert client.get("/unbilled", headers=alice).json()["data"] == []
