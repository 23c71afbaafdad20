from datetime import datetime

import pytest
from fastapi.testclient import TestClient
from sqlalchemy.exc import IntegrityError

from timebill.core.errors import ConflictError
from timebill.database import SessionLocal
from timebill.main import app
from timebill.models.timer_session import TimerSession
from timebill.services import timer_service

client = TestClient(app)


def _auth_headers(tenant_id: int, user_id: str = "test") -> dict:
    r = client.post("/auth/token", json={"user_id": user_id, "tenant_id": tenant_id})
    assert r.status_code == 200, r.text
    token = r.json()["access_token"]
    return {"X-Tenant-Id": str(tenant_id), "Authorization": f"Bearer {token}"}


def test_unique_active_timer_prevents_duplicates():
    db1 = SessionLocal()
    db2 = SessionLocal()

    try:
        row1 = TimerSession(
            tenant_id=1,
            user_id="racer",
            started_at=datetime.utcnow(),
            is_active=True,
        )
        row2 = TimerSession(
            tenant_id=1,
            user_id="racer",
            started_at=datetime.utcnow(),
            is_active=True,
        )

        db1.add(row1)
        db2.add(row2)

        db1.commit()

        with pytest.raises(IntegrityError):
            db2.commit()
    finally:
        db1.rollback()
        db2.rollback()
        db1.close()
        db2.close()


def test_inactive_sessions_do_not_count_against_the_guard():
    db = SessionLocal()
    try:
        for _ in range(2):
            db.add(
                TimerSession(
                    tenant_id=1,
                    user_id="history",
                    started_at=datetime(2026, 3, 2, 9, 0, 0),
                    stopped_at=datetime(2026, 3, 2, 10, 0, 0),
                    is_active=False,
                )
            )
        db.add(TimerSession(tenant_id=1, user_id="history", started_at=datetime.utcnow(), is_active=True))
        db.commit()

        assert db.query(TimerSession).filter(TimerSession.user_id == "history").count() == 3
    finally:
        db.rollback()
        db.close()


def test_start_timer_twice_raises_conflict(db, caller_factory):
    caller = caller_factory(user_id="u-1")

    timer_service.start_timer(caller, db=db)
    db.commit()

    with pytest.raises(ConflictError):
        timer_service.start_timer(caller, db=db)

    active = db.query(TimerSession).filter(TimerSession.is_active.is_(True)).all()
    assert len(active) == 1


def test_same_user_id_in_another_tenant_may_run_a_timer(db, caller_factory):
    timer_service.start_timer(caller_factory(user_id="shared", tenant_id=1), db=db)
    timer_service.start_timer(caller_factory(user_id="shared", tenant_id=2), db=db)
    db.commit()

    assert db.query(TimerSession).filter(TimerSession.is_active.is_(True)).count() == 2


def test_second_start_over_http_returns_409():
    headers = _auth_headers(1, user_id="http-user")

    r1 = client.post("/timer/start", json={"client_id": 5}, headers=headers)
    assert r1.status_code == 200, r1.text
    assert r1.json()["is_active"] is True

    r2 = client.post("/timer/start", json={"client_id": 6}, headers=headers)
    assert r2.status_code == 409, r2.text
    assert r2.json()["code"] == "CONFLICT"
