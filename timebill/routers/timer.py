from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from timebill.core.authorization import CallerContext
from timebill.core.clock import seconds_between, utc_now
from timebill.database import get_db
from timebill.deps.auth import require_auth
from timebill.schemas.time_entry import TimeEntryResponse
from timebill.schemas.timer import (
    ActiveTimerResponse,
    TimerSessionResponse,
    TimerStartRequest,
    TimerStopRequest,
)
from timebill.services import timer_service

router = APIRouter(prefix="/timer", tags=["Timer"])


@router.post("/start", response_model=TimerSessionResponse)
def start_timer(
    payload: TimerStartRequest,
    caller: CallerContext = Depends(require_auth),
    db: Session = Depends(get_db),
):
    session = timer_service.start_timer(
        caller,
        client_id=payload.client_id,
        project_id=payload.project_id,
        task_id=payload.task_id,
        description=payload.description,
        started_at=payload.started_at,
        db=db,
    )
    db.commit()
    return session


@router.post("/stop", response_model=TimeEntryResponse)
def stop_timer(
    payload: TimerStopRequest,
    caller: CallerContext = Depends(require_auth),
    db: Session = Depends(get_db),
):
    entry = timer_service.stop_timer(
        caller,
        payload.session_id,
        notes=payload.notes,
        entry_type=payload.type,
        stopped_at=payload.stopped_at,
        db=db,
    )
    db.commit()
    return entry


@router.get("/active", response_model=ActiveTimerResponse)
def get_active_timer(
    caller: CallerContext = Depends(require_auth),
    db: Session = Depends(get_db),
):
    session = timer_service.get_active_timer(caller, db=db)
    if session is None:
        return {"data": None}

    data = TimerSessionResponse.model_validate(session)
    data.elapsed_seconds = max(seconds_between(session.started_at, utc_now()), 0)
    return {"data": data}
