from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from timebill.core.authorization import CallerContext
from timebill.database import get_db
from timebill.deps.auth import require_auth
from timebill.models.time_entry import EntryStatus
from timebill.schemas.time_entry import (
    BulkApproveRequest,
    BulkRejectRequest,
    BulkResponse,
    RejectRequest,
    TimeEntryListResponse,
    TimeEntryResponse,
)
from timebill.services import approval_service

router = APIRouter(tags=["Approvals"])


def _bulk_response(results) -> dict:
    succeeded = sum(1 for r in results if r.ok)
    return {
        "success": succeeded > 0,
        "count": succeeded,
        "results": results,
    }


@router.post("/entries/bulk-approve", response_model=BulkResponse)
def bulk_approve(
    payload: BulkApproveRequest,
    caller: CallerContext = Depends(require_auth),
    db: Session = Depends(get_db),
):
    results = approval_service.bulk_approve(caller, payload.entry_ids, db=db)
    return _bulk_response(results)


@router.post("/entries/bulk-reject", response_model=BulkResponse)
def bulk_reject(
    payload: BulkRejectRequest,
    caller: CallerContext = Depends(require_auth),
    db: Session = Depends(get_db),
):
    results = approval_service.bulk_reject(caller, payload.entry_ids, reason=payload.reason, db=db)
    return _bulk_response(results)


@router.post("/entries/{entry_id}/submit", response_model=TimeEntryResponse)
def submit_entry(
    entry_id: int,
    caller: CallerContext = Depends(require_auth),
    db: Session = Depends(get_db),
):
    entry = approval_service.submit_entry(caller, entry_id, db=db)
    db.commit()
    return entry


@router.post("/entries/{entry_id}/approve", response_model=TimeEntryResponse)
def approve_entry(
    entry_id: int,
    caller: CallerContext = Depends(require_auth),
    db: Session = Depends(get_db),
):
    entry = approval_service.approve_entry(caller, entry_id, db=db)
    db.commit()
    return entry


@router.post("/entries/{entry_id}/reject", response_model=TimeEntryResponse)
def reject_entry(
    entry_id: int,
    payload: RejectRequest,
    caller: CallerContext = Depends(require_auth),
    db: Session = Depends(get_db),
):
    entry = approval_service.reject_entry(caller, entry_id, reason=payload.reason, db=db)
    db.commit()
    return entry


@router.get("/approval-queue", response_model=TimeEntryListResponse)
def approval_queue(
    status: EntryStatus = EntryStatus.SUBMITTED,
    caller: CallerContext = Depends(require_auth),
    db: Session = Depends(get_db),
):
    return {"data": approval_service.approval_queue(caller, status=status, db=db)}
