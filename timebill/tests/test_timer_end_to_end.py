from datetime import datetime, timedelta, timezone

import pytest
from fastapi.testclient import TestClient

from timebill.core.clock import utc_now
from timebill.core.errors import NotFoundError, ValidationError
from timebill.database import SessionLocal
from timebill.main import app
from timebill.models.time_entry_comment import TimeEntryComment
from timebill.models.timer_session import TimerSession
from timebill.services import timer_service

client = TestClient(app)


def _auth_headers(tenant_id: int, user_id: str = "test", role: str = "STAFF") -> dict:
    resp = client.post("/auth/token", json={"user_id": user_id, "tenant_id": tenant_id, "role": role})
    assert resp.status_code == 200, f"token request failed: {resp.status_code} {resp.text}"
    data = resp.json()
    return {"X-Tenant-Id": str(tenant_id), "Authorization": f"Bearer {data['access_token']}"}


def test_timer_stop_creates_priced_draft_entry():
    tenant_id = 1
    manager = _auth_headers(tenant_id, user_id="mgr", role="MANAGER")
    staff = _auth_headers(tenant_id, user_id="alice")

    r = client.post("/rates/staff", json={"user_id": "alice", "hourly_rate_cents": 12000}, headers=manager)
    assert r.status_code == 200, r.text

    started = datetime(2026, 3, 2, 9, 0, 0, tzinfo=timezone.utc)
    r = client.post(
        "/timer/start",
        json={"client_id": 10, "task_id": 3, "description": "Design review", "started_at": started.isoformat()},
        headers=staff,
    )
    assert r.status_code == 200, r.text
    session_id = r.json()["id"]

    r = client.post(
        "/timer/stop",
        json={
            "session_id": session_id,
            "notes": "Walked through the mockups",
            "stopped_at": (started + timedelta(seconds=1800)).isoformat(),
        },
        headers=staff,
    )
    assert r.status_code == 200, r.text
    entry = r.json()

    assert entry["duration_seconds"] == 1800
    assert entry["status"] == "draft"
    assert entry["type"] == "billable"
    assert entry["rate_applied_cents"] == 12000
    assert entry["rate_source"] == "staff"
    assert entry["billable_amount_cents"] == 6000
    assert entry["client_id"] == 10
    assert entry["description"] == "Design review"

    # notes become a comment on the new entry
    r = client.get(f"/entries/{entry['id']}/comments", headers=staff)
    assert r.status_code == 200, r.text
    comments = r.json()["data"]
    assert [c["comment"] for c in comments] == ["Walked through the mockups"]

    r = client.get("/timer/active", headers=staff)
    assert r.status_code == 200
    assert r.json()["data"] is None

    db = SessionLocal()
    try:
        session = db.query(TimerSession).filter(TimerSession.id == session_id).one()
        assert session.is_active is False
        assert session.time_entry_id == entry["id"]
    finally:
        db.close()


def test_active_timer_reports_elapsed_seconds():
    headers = _auth_headers(1, user_id="bob")
    started = datetime.now(timezone.utc) - timedelta(minutes=10)

    r = client.post("/timer/start", json={"started_at": started.isoformat()}, headers=headers)
    assert r.status_code == 200, r.text

    r = client.get("/timer/active", headers=headers)
    assert r.status_code == 200, r.text
    data = r.json()["data"]
    assert data["user_id"] == "bob"
    assert data["is_active"] is True
    assert data["elapsed_seconds"] >= 600


def test_stop_requires_own_active_session(db, caller_factory):
    owner = caller_factory(user_id="owner")
    other = caller_factory(user_id="other")

    session = timer_service.start_timer(owner, db=db)
    db.commit()

    with pytest.raises(NotFoundError):
        timer_service.stop_timer(other, session.id, db=db)

    entry = timer_service.stop_timer(owner, session.id, db=db)
    db.commit()
    assert entry.user_id == "owner"

    # already stopped
    with pytest.raises(NotFoundError):
        timer_service.stop_timer(owner, session.id, db=db)


def test_stop_before_start_is_rejected(db, caller_factory):
    caller = caller_factory(user_id="clock-skew")
    started = datetime(2026, 3, 2, 9, 0, 0)

    session = timer_service.start_timer(caller, started_at=started, db=db)
    db.commit()

    with pytest.raises(ValidationError):
        timer_service.stop_timer(caller, session.id, stopped_at=started - timedelta(seconds=5), db=db)


def test_stop_without_notes_adds_no_comment(db, caller_factory):
    caller = caller_factory(user_id="quiet")
    started = datetime(2026, 3, 2, 9, 0, 0)

    session = timer_service.start_timer(caller, started_at=started, db=db)
    entry = timer_service.stop_timer(caller, session.id, notes="   ", stopped_at=started + timedelta(minutes=5), db=db)
    db.commit()

    assert entry.duration_seconds == 300
    assert entry.rate_source == "unresolved"
    assert entry.billable_amount_cents is None
    assert db.query(TimeEntryComment).count() == 0


def test_future_start_is_rejected_and_leaves_no_active_timer():
    headers = _auth_headers(1, user_id="future")
    ahead = datetime.now(timezone.utc) + timedelta(days=365)

    r = client.post("/timer/start", json={"started_at": ahead.isoformat()}, headers=headers)
    assert r.status_code == 422, r.text
    assert r.json()["field"] == "started_at"

    r = client.get("/timer/active", headers=headers)
    assert r.status_code == 200
    assert r.json()["data"] is None

    r = client.post("/timer/start", json={}, headers=headers)
    assert r.status_code == 200, r.text

    r = client.post("/timer/stop", json={"session_id": r.json()["id"]}, headers=headers)
    assert r.status_code == 200, r.text


def test_future_stop_is_rejected_and_session_stays_open(db, caller_factory):
    caller = caller_factory(user_id="early-bird")
    session = timer_service.start_timer(caller, started_at=datetime(2026, 3, 2, 9, 0, 0), db=db)
    db.commit()

    with pytest.raises(ValidationError) as excinfo:
        timer_service.stop_timer(caller, session.id, stopped_at=utc_now() + timedelta(days=1), db=db)
    assert excinfo.value.field == "stopped_at"

    assert timer_service.get_active_timer(caller, db=db).id == session.id
