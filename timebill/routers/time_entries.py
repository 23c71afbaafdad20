from datetime import datetime
from typing import Optional

from fastapi import APIRouter, Depends, Query, Response
from sqlalchemy.orm import Session

from timebill.core.authorization import CallerContext
from timebill.database import get_db
from timebill.deps.auth import require_auth
from timebill.models.time_entry import EntryStatus
from timebill.schemas.time_entry import (
    AuditHistoryResponse,
    BulkCreateResponse,
    CommentCreate,
    CommentListResponse,
    CommentResponse,
    TimeEntryBulkCreate,
    TimeEntryCreate,
    TimeEntryListResponse,
    TimeEntryResponse,
    TimeEntryUpdate,
)
from timebill.services import audit_service, time_entry_service

router = APIRouter(
    prefix="/entries",
    tags=["Time Entries"],
)


@router.post("", response_model=TimeEntryResponse)
def create_entry(
    payload: TimeEntryCreate,
    caller: CallerContext = Depends(require_auth),
    db: Session = Depends(get_db),
):
    entry = time_entry_service.create_entry(
        caller,
        start_time=payload.start_time,
        end_time=payload.end_time,
        duration_seconds=payload.duration_seconds,
        entry_type=payload.type,
        client_id=payload.client_id,
        project_id=payload.project_id,
        task_id=payload.task_id,
        description=payload.description,
        db=db,
    )
    db.commit()
    return entry


@router.post("/bulk", response_model=BulkCreateResponse, status_code=201)
def create_entries_bulk(
    payload: TimeEntryBulkCreate,
    caller: CallerContext = Depends(require_auth),
    db: Session = Depends(get_db),
):
    overlay = payload.apply_to_all.model_dump(exclude_unset=True) if payload.apply_to_all else None
    results = time_entry_service.create_entries_bulk(
        caller,
        [item.model_dump() for item in payload.entries],
        apply_to_all=overlay,
        db=db,
    )
    created = sum(1 for r in results if r.ok)
    return {"success": created > 0, "count": created, "results": results}


@router.get("", response_model=TimeEntryListResponse)
def list_entries(
    caller: CallerContext = Depends(require_auth),
    db: Session = Depends(get_db),
    user_id: Optional[str] = None,
    client_id: Optional[int] = None,
    project_id: Optional[int] = None,
    task_id: Optional[int] = None,
    status: Optional[EntryStatus] = None,
    start_date: Optional[datetime] = None,
    end_date: Optional[datetime] = None,
    limit: int = Query(default=50, ge=1, le=200),
    offset: int = Query(default=0, ge=0),
):
    rows = time_entry_service.list_entries(
        caller,
        db=db,
        user_id=user_id,
        client_id=client_id,
        project_id=project_id,
        task_id=task_id,
        status=status,
        start_date=start_date,
        end_date=end_date,
        limit=limit,
        offset=offset,
    )
    return {"data": rows}


@router.get("/{entry_id}", response_model=TimeEntryResponse)
def get_entry(
    entry_id: int,
    caller: CallerContext = Depends(require_auth),
    db: Session = Depends(get_db),
):
    return time_entry_service.get_entry(caller, entry_id, db=db)


@router.put("/{entry_id}", response_model=TimeEntryResponse)
def update_entry(
    entry_id: int,
    payload: TimeEntryUpdate,
    caller: CallerContext = Depends(require_auth),
    db: Session = Depends(get_db),
):
    entry = time_entry_service.update_entry(
        caller,
        entry_id,
        payload.model_dump(exclude_unset=True),
        db=db,
    )
    db.commit()
    return entry


@router.delete("/{entry_id}", status_code=204)
def delete_entry(
    entry_id: int,
    caller: CallerContext = Depends(require_auth),
    db: Session = Depends(get_db),
):
    time_entry_service.delete_entry(caller, entry_id, db=db)
    db.commit()
    return Response(status_code=204)


@router.post("/{entry_id}/comments", response_model=CommentResponse)
def add_comment(
    entry_id: int,
    payload: CommentCreate,
    caller: CallerContext = Depends(require_auth),
    db: Session = Depends(get_db),
):
    row = audit_service.add_comment(
        caller,
        entry_id,
        payload.comment,
        is_internal=payload.is_internal,
        db=db,
    )
    db.commit()
    return row


@router.get("/{entry_id}/comments", response_model=CommentListResponse)
def list_comments(
    entry_id: int,
    caller: CallerContext = Depends(require_auth),
    db: Session = Depends(get_db),
):
    return {"data": audit_service.list_comments(caller, entry_id, db=db)}


@router.get("/{entry_id}/audit", response_model=AuditHistoryResponse)
def get_audit_history(
    entry_id: int,
    caller: CallerContext = Depends(require_auth),
    db: Session = Depends(get_db),
):
    return {"data": audit_service.get_audit_history(caller, entry_id, db=db)}
