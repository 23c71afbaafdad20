from typing import Optional

from fastapi import APIRouter, Depends, HTTPException
from sqlalchemy.orm import Session

from timebill.core.authorization import CallerContext
from timebill.database import get_db
from timebill.deps.auth import require_auth
from timebill.schemas.rate import (
    ClientRateCreate,
    ClientRateListResponse,
    ClientRateResponse,
    StaffRateCreate,
    StaffRateListResponse,
    StaffRateResponse,
    TaskTypeRateCreate,
    TaskTypeRateListResponse,
    TaskTypeRateResponse,
)
from timebill.services import rate_resolver
from timebill.services.rate_resolver import RateKind

router = APIRouter(prefix="/rates", tags=["Rates"])

_PATH_KINDS = {
    "staff": RateKind.STAFF,
    "task-types": RateKind.TASK_TYPE,
    "clients": RateKind.CLIENT,
}


@router.post("/staff", response_model=StaffRateResponse)
def create_staff_rate(
    payload: StaffRateCreate,
    caller: CallerContext = Depends(require_auth),
    db: Session = Depends(get_db),
):
    row = rate_resolver.create_rate(
        caller,
        RateKind.STAFF,
        subject_id=payload.user_id,
        hourly_rate_cents=payload.hourly_rate_cents,
        effective_from=payload.effective_from,
        db=db,
    )
    db.commit()
    return row


@router.get("/staff", response_model=StaffRateListResponse)
def list_staff_rates(
    user_id: Optional[str] = None,
    caller: CallerContext = Depends(require_auth),
    db: Session = Depends(get_db),
):
    return {"data": rate_resolver.list_rates(caller, RateKind.STAFF, subject_id=user_id, db=db)}


@router.post("/task-types", response_model=TaskTypeRateResponse)
def create_task_type_rate(
    payload: TaskTypeRateCreate,
    caller: CallerContext = Depends(require_auth),
    db: Session = Depends(get_db),
):
    row = rate_resolver.create_rate(
        caller,
        RateKind.TASK_TYPE,
        subject_id=payload.task_id,
        hourly_rate_cents=payload.hourly_rate_cents,
        effective_from=payload.effective_from,
        db=db,
    )
    db.commit()
    return row


@router.get("/task-types", response_model=TaskTypeRateListResponse)
def list_task_type_rates(
    task_id: Optional[int] = None,
    caller: CallerContext = Depends(require_auth),
    db: Session = Depends(get_db),
):
    return {"data": rate_resolver.list_rates(caller, RateKind.TASK_TYPE, subject_id=task_id, db=db)}


@router.post("/clients", response_model=ClientRateResponse)
def create_client_rate(
    payload: ClientRateCreate,
    caller: CallerContext = Depends(require_auth),
    db: Session = Depends(get_db),
):
    row = rate_resolver.create_rate(
        caller,
        RateKind.CLIENT,
        subject_id=payload.client_id,
        hourly_rate_cents=payload.hourly_rate_cents,
        effective_from=payload.effective_from,
        db=db,
    )
    db.commit()
    return row


@router.get("/clients", response_model=ClientRateListResponse)
def list_client_rates(
    client_id: Optional[int] = None,
    caller: CallerContext = Depends(require_auth),
    db: Session = Depends(get_db),
):
    return {"data": rate_resolver.list_rates(caller, RateKind.CLIENT, subject_id=client_id, db=db)}


@router.delete("/{kind}/{rate_id}")
def deactivate_rate(
    kind: str,
    rate_id: int,
    caller: CallerContext = Depends(require_auth),
    db: Session = Depends(get_db),
):
    if kind not in _PATH_KINDS:
        raise HTTPException(status_code=404, detail="Not Found")

    row = rate_resolver.deactivate_rate(caller, _PATH_KINDS[kind], rate_id, db=db)
    db.commit()
    return {"success": True, "id": row.id, "is_active": row.is_active}
