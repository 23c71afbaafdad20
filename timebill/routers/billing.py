from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from timebill.core.authorization import CallerContext
from timebill.database import get_db
from timebill.deps.auth import require_auth
from timebill.schemas.billing import MarkBilledRequest, MarkBilledResponse, UnbilledResponse
from timebill.services import billing_service

router = APIRouter(tags=["Billing"])


@router.get("/unbilled", response_model=UnbilledResponse)
def get_unbilled_time(
    caller: CallerContext = Depends(require_auth),
    db: Session = Depends(get_db),
):
    return {"data": billing_service.get_unbilled_time(caller, db=db)}


@router.post("/mark-billed", response_model=MarkBilledResponse)
def mark_billed(
    payload: MarkBilledRequest,
    caller: CallerContext = Depends(require_auth),
    db: Session = Depends(get_db),
):
    result = billing_service.mark_as_billed(caller, payload.entry_ids, db=db)
    db.commit()
    return {
        "success": True,
        "count": result.count,
        "already_billed": result.already_billed,
        "skipped": result.skipped,
    }
