from __future__ import annotations

import logging
from datetime import datetime
from typing import Optional

from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from timebill.core.authorization import CallerContext, Operation, authorize
from timebill.core.clock import seconds_between, to_naive_utc, utc_now
from timebill.core.errors import ConflictError, NotFoundError, ValidationError
from timebill.models.time_entry import EntryType, TimeEntry
from timebill.models.timer_session import TimerSession
from timebill.services import audit_service
from timebill.services.time_entry_service import insert_entry

logger = logging.getLogger(__name__)


def _get_active_session(db: Session, tenant_id: int, user_id: str) -> Optional[TimerSession]:
    return (
        db.query(TimerSession)
        .filter(
            TimerSession.tenant_id == int(tenant_id),
            TimerSession.user_id == str(user_id),
            TimerSession.is_active.is_(True),
        )
        .first()
    )


def start_timer(
    caller: CallerContext,
    *,
    client_id: Optional[int] = None,
    project_id: Optional[int] = None,
    task_id: Optional[int] = None,
    description: Optional[str] = None,
    started_at: Optional[datetime] = None,
    db: Session,
) -> TimerSession:
    """
    Open a timer for the caller. Caller owns the transaction.

    The existence check gives a readable error; the partial unique index on
    (tenant_id, user_id) WHERE is_active is what makes a concurrent second start fail.
    """
    authorize(caller, Operation.TRACK_TIME)

    started_at = to_naive_utc(started_at)
    if started_at is not None and started_at > utc_now():
        raise ValidationError("started_at must not be in the future", field="started_at")

    if _get_active_session(db, caller.tenant_id, caller.user_id) is not None:
        raise ConflictError("An active timer already exists; stop it first")

    session = TimerSession(
        tenant_id=int(caller.tenant_id),
        user_id=str(caller.user_id),
        client_id=client_id,
        project_id=project_id,
        task_id=task_id,
        description=description,
        started_at=started_at or utc_now(),
        is_active=True,
    )

    db.add(session)
    try:
        db.flush()
    except IntegrityError as exc:
        db.rollback()
        raise ConflictError("An active timer already exists; stop it first") from exc

    db.refresh(session)

    logger.info(
        "Timer started",
        extra={"tenant_id": caller.tenant_id, "user_id": caller.user_id, "session_id": session.id},
    )
    return session


def stop_timer(
    caller: CallerContext,
    session_id: int,
    *,
    notes: Optional[str] = None,
    entry_type: EntryType = EntryType.BILLABLE,
    stopped_at: Optional[datetime] = None,
    db: Session,
) -> TimeEntry:
    """
    Close the caller's session and convert it into a priced draft entry.
    Caller owns the transaction.
    """
    authorize(caller, Operation.TRACK_TIME)

    session = (
        db.query(TimerSession)
        .filter(
            TimerSession.id == int(session_id),
            TimerSession.tenant_id == int(caller.tenant_id),
            TimerSession.user_id == str(caller.user_id),
            TimerSession.is_active.is_(True),
        )
        .first()
    )
    if session is None:
        raise NotFoundError("Timer session")

    stopped_at = to_naive_utc(stopped_at)
    if stopped_at is not None and stopped_at > utc_now():
        raise ValidationError("stopped_at must not be in the future", field="stopped_at")
    stopped_at = stopped_at or utc_now()
    duration = seconds_between(session.started_at, stopped_at)
    if duration < 0:
        raise ValidationError("stopped_at must not be before the timer start", field="stopped_at")

    # only one stop may convert the session
    closed = (
        db.query(TimerSession)
        .filter(
            TimerSession.id == session.id,
            TimerSession.is_active.is_(True),
        )
        .update(
            {TimerSession.is_active: False, TimerSession.stopped_at: stopped_at},
            synchronize_session="fetch",
        )
    )
    if closed != 1:
        raise NotFoundError("Timer session")

    entry = insert_entry(
        db,
        tenant_id=caller.tenant_id,
        user_id=caller.user_id,
        actor_id=caller.user_id,
        start_time=session.started_at,
        end_time=stopped_at,
        entry_type=entry_type,
        client_id=session.client_id,
        project_id=session.project_id,
        task_id=session.task_id,
        description=session.description,
    )

    db.query(TimerSession).filter(TimerSession.id == session.id).update(
        {TimerSession.time_entry_id: entry.id},
        synchronize_session="fetch",
    )

    note = (notes or "").strip()
    if note:
        audit_service.append_comment(
            db,
            entry_id=entry.id,
            tenant_id=entry.tenant_id,
            user_id=caller.user_id,
            comment=note,
            is_internal=False,
        )

    logger.info(
        "Timer stopped",
        extra={
            "tenant_id": caller.tenant_id,
            "user_id": caller.user_id,
            "session_id": session.id,
            "time_entry_id": entry.id,
            "duration_seconds": entry.duration_seconds,
        },
    )
    return entry


def get_active_timer(caller: CallerContext, *, db: Session) -> Optional[TimerSession]:
    authorize(caller, Operation.TRACK_TIME)
    return _get_active_session(db, caller.tenant_id, caller.user_id)
