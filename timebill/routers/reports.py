from datetime import datetime
from typing import Optional

from fastapi import APIRouter, Depends, Query
from sqlalchemy.orm import Session

from timebill.core.authorization import CallerContext
from timebill.database import get_db
from timebill.deps.auth import require_auth
from timebill.schemas.report import (
    AnalyticsSummary,
    BillableComparison,
    ClientTimeReport,
    ProjectTimeReport,
    StaffTimeReport,
)
from timebill.services import reporting_service

router = APIRouter(prefix="/reports", tags=["Reports"])


@router.get("/by-client", response_model=ClientTimeReport)
def time_by_client(
    start_date: Optional[datetime] = None,
    end_date: Optional[datetime] = None,
    caller: CallerContext = Depends(require_auth),
    db: Session = Depends(get_db),
):
    rows = reporting_service.time_by_client(caller, start_date=start_date, end_date=end_date, db=db)
    return {"data": rows}


@router.get("/by-staff", response_model=StaffTimeReport)
def time_by_staff(
    start_date: Optional[datetime] = None,
    end_date: Optional[datetime] = None,
    caller: CallerContext = Depends(require_auth),
    db: Session = Depends(get_db),
):
    rows = reporting_service.time_by_staff(caller, start_date=start_date, end_date=end_date, db=db)
    return {"data": rows}


@router.get("/by-project", response_model=ProjectTimeReport)
def time_by_project(
    start_date: Optional[datetime] = None,
    end_date: Optional[datetime] = None,
    caller: CallerContext = Depends(require_auth),
    db: Session = Depends(get_db),
):
    rows = reporting_service.time_by_project(caller, start_date=start_date, end_date=end_date, db=db)
    return {"data": rows}


@router.get("/billable-comparison", response_model=BillableComparison)
def billable_comparison(
    start_date: Optional[datetime] = None,
    end_date: Optional[datetime] = None,
    caller: CallerContext = Depends(require_auth),
    db: Session = Depends(get_db),
):
    return reporting_service.billable_comparison(caller, start_date=start_date, end_date=end_date, db=db)


@router.get("/summary", response_model=AnalyticsSummary)
def analytics_summary(
    start_date: Optional[datetime] = None,
    end_date: Optional[datetime] = None,
    user_id: Optional[str] = None,
    client_id: Optional[int] = None,
    project_id: Optional[int] = None,
    group_by: str = Query(default="day"),
    caller: CallerContext = Depends(require_auth),
    db: Session = Depends(get_db),
):
    return reporting_service.analytics_summary(
        caller,
        start_date=start_date,
        end_date=end_date,
        user_id=user_id,
        client_id=client_id,
        project_id=project_id,
        group_by=group_by,
        db=db,
    )
