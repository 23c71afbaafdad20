from __future__ import annotations

import logging
from datetime import datetime
from typing import Any, Optional

from sqlalchemy import case, func
from sqlalchemy.orm import Session

from timebill.core.authorization import CallerContext, Operation, authorize, is_allowed
from timebill.core.clock import seconds_to_hours, to_naive_utc
from timebill.core.errors import ValidationError
from timebill.models.time_entry import EntryStatus, EntryType, TimeEntry

logger = logging.getLogger(__name__)

_GROUP_COLUMNS = {
    "client": TimeEntry.client_id,
    "staff": TimeEntry.user_id,
    "project": TimeEntry.project_id,
}

_GROUP_KEYS = {
    "client": "client_id",
    "staff": "user_id",
    "project": "project_id",
}

TREND_BUCKETS = {
    "day": lambda ts: ts.strftime("%Y-%m-%d"),
    "week": lambda ts: "{0}-W{1:02d}".format(*ts.isocalendar()[:2]),
    "month": lambda ts: ts.strftime("%Y-%m"),
}

TOP_PROJECTS = 10


def _window_filters(tenant_id: int, start_date: Optional[datetime], end_date: Optional[datetime]) -> list:
    filters = [TimeEntry.tenant_id == int(tenant_id)]
    if start_date is not None:
        filters.append(TimeEntry.start_time >= to_naive_utc(start_date))
    if end_date is not None:
        filters.append(TimeEntry.end_time <= to_naive_utc(end_date))
    return filters


def _seconds_columns():
    billable = func.coalesce(
        func.sum(
            case((TimeEntry.type == EntryType.BILLABLE.value, TimeEntry.duration_seconds), else_=0)
        ),
        0,
    )
    non_billable = func.coalesce(
        func.sum(
            case((TimeEntry.type != EntryType.BILLABLE.value, TimeEntry.duration_seconds), else_=0)
        ),
        0,
    )
    total = func.coalesce(func.sum(TimeEntry.duration_seconds), 0)
    return total, billable, non_billable


def time_by(
    caller: CallerContext,
    group: str,
    *,
    start_date: Optional[datetime] = None,
    end_date: Optional[datetime] = None,
    db: Session,
) -> list[dict[str, Any]]:
    """
    Rollup of hours, billable hours and amount per client, staff member or
    project.

    Window semantics:
      start_time >= start_date AND end_time <= end_date
    """
    authorize(caller, Operation.REPORTS)

    column = _GROUP_COLUMNS[group]
    key = _GROUP_KEYS[group]
    total, billable, non_billable = _seconds_columns()

    rows = (
        db.query(
            column.label("group_id"),
            total.label("total_seconds"),
            billable.label("billable_seconds"),
            non_billable.label("non_billable_seconds"),
            func.coalesce(func.sum(TimeEntry.billable_amount_cents), 0).label("total_amount_cents"),
            func.count(TimeEntry.id).label("entry_count"),
        )
        .filter(*_window_filters(caller.tenant_id, start_date, end_date))
        .group_by(column)
        .order_by(column.is_(None).asc(), column.asc())
        .all()
    )

    return [
        {
            key: r.group_id,
            "total_hours": seconds_to_hours(r.total_seconds),
            "billable_hours": seconds_to_hours(r.billable_seconds),
            "non_billable_hours": seconds_to_hours(r.non_billable_seconds),
            "total_amount_cents": int(r.total_amount_cents or 0),
            "entry_count": int(r.entry_count),
        }
        for r in rows
    ]


def time_by_client(caller: CallerContext, **kwargs) -> list[dict[str, Any]]:
    return time_by(caller, "client", **kwargs)


def time_by_staff(caller: CallerContext, **kwargs) -> list[dict[str, Any]]:
    return time_by(caller, "staff", **kwargs)


def time_by_project(caller: CallerContext, **kwargs) -> list[dict[str, Any]]:
    return time_by(caller, "project", **kwargs)


def billable_percentage(billable_seconds: int, total_seconds: int) -> float:
    if total_seconds < 0:
        logger.warning(
            "Negative total duration in billable comparison",
            extra={"total_seconds": total_seconds},
        )
        return 0.0
    if total_seconds == 0:
        return 0.0
    return round(billable_seconds / total_seconds * 100, 2)


def billable_comparison(
    caller: CallerContext,
    *,
    start_date: Optional[datetime] = None,
    end_date: Optional[datetime] = None,
    db: Session,
) -> dict[str, Any]:
    authorize(caller, Operation.REPORTS)

    total, billable, non_billable = _seconds_columns()
    row = (
        db.query(
            total.label("total_seconds"),
            billable.label("billable_seconds"),
            non_billable.label("non_billable_seconds"),
        )
        .filter(*_window_filters(caller.tenant_id, start_date, end_date))
        .one()
    )

    total_seconds = int(row.total_seconds or 0)
    billable_seconds = int(row.billable_seconds or 0)

    return {
        "total_hours": seconds_to_hours(total_seconds),
        "billable_hours": seconds_to_hours(billable_seconds),
        "non_billable_hours": seconds_to_hours(row.non_billable_seconds),
        "billable_percentage": billable_percentage(billable_seconds, total_seconds),
    }


def analytics_summary(
    caller: CallerContext,
    *,
    start_date: Optional[datetime] = None,
    end_date: Optional[datetime] = None,
    user_id: Optional[str] = None,
    client_id: Optional[int] = None,
    project_id: Optional[int] = None,
    group_by: str = "day",
    db: Session,
) -> dict[str, Any]:
    """
    Totals, per-type and top-project breakdowns, and trends bucketed by day,
    ISO week or month.

    Staff only ever see their own entries; reviewers may narrow by user_id.
    """
    authorize(caller, Operation.REPORTS)

    bucket = TREND_BUCKETS.get(group_by)
    if bucket is None:
        raise ValidationError("group_by must be one of day, week, month", field="group_by")

    if not is_allowed(caller.role, Operation.REVIEW_ENTRIES):
        user_id = caller.user_id

    filters = _window_filters(caller.tenant_id, start_date, end_date)
    if user_id is not None:
        filters.append(TimeEntry.user_id == str(user_id))
    if client_id is not None:
        filters.append(TimeEntry.client_id == int(client_id))
    if project_id is not None:
        filters.append(TimeEntry.project_id == int(project_id))

    total, billable, non_billable = _seconds_columns()
    amount = func.coalesce(func.sum(TimeEntry.billable_amount_cents), 0)
    approved = func.coalesce(
        func.sum(
            case((TimeEntry.status == EntryStatus.APPROVED.value, TimeEntry.duration_seconds), else_=0)
        ),
        0,
    )

    totals = (
        db.query(
            func.count(TimeEntry.id).label("entry_count"),
            total.label("total_seconds"),
            billable.label("billable_seconds"),
            non_billable.label("non_billable_seconds"),
            approved.label("approved_seconds"),
            amount.label("total_amount_cents"),
        )
        .filter(*filters)
        .one()
    )

    entry_count = int(totals.entry_count or 0)
    total_seconds = int(totals.total_seconds or 0)
    billable_seconds = int(totals.billable_seconds or 0)

    by_type = (
        db.query(
            TimeEntry.type.label("type"),
            total.label("total_seconds"),
            func.count(TimeEntry.id).label("entry_count"),
            amount.label("total_amount_cents"),
        )
        .filter(*filters)
        .group_by(TimeEntry.type)
        .order_by(TimeEntry.type.asc())
        .all()
    )

    by_project = (
        db.query(
            TimeEntry.project_id.label("project_id"),
            total.label("total_seconds"),
            func.count(TimeEntry.id).label("entry_count"),
            amount.label("total_amount_cents"),
        )
        .filter(*filters)
        .group_by(TimeEntry.project_id)
        .order_by(total.desc(), TimeEntry.project_id.is_(None).asc(), TimeEntry.project_id.asc())
        .limit(TOP_PROJECTS)
        .all()
    )

    trends: dict[str, dict[str, int]] = {}
    for start_time, duration, entry_type in (
        db.query(TimeEntry.start_time, TimeEntry.duration_seconds, TimeEntry.type).filter(*filters).all()
    ):
        period = trends.setdefault(bucket(start_time), {"total": 0, "billable": 0, "count": 0})
        period["total"] += int(duration or 0)
        if entry_type == EntryType.BILLABLE.value:
            period["billable"] += int(duration or 0)
        period["count"] += 1

    return {
        "summary": {
            "total_entries": entry_count,
            "total_hours": seconds_to_hours(total_seconds),
            "billable_hours": seconds_to_hours(billable_seconds),
            "non_billable_hours": seconds_to_hours(totals.non_billable_seconds),
            "approved_hours": seconds_to_hours(totals.approved_seconds),
            "total_amount_cents": int(totals.total_amount_cents or 0),
            "avg_session_hours": seconds_to_hours(total_seconds / entry_count) if entry_count else 0.0,
            "utilization_rate": billable_percentage(billable_seconds, total_seconds),
        },
        "by_type": [
            {
                "type": r.type,
                "hours": seconds_to_hours(r.total_seconds),
                "entry_count": int(r.entry_count),
                "total_amount_cents": int(r.total_amount_cents or 0),
            }
            for r in by_type
        ],
        "by_project": [
            {
                "project_id": r.project_id,
                "hours": seconds_to_hours(r.total_seconds),
                "entry_count": int(r.entry_count),
                "total_amount_cents": int(r.total_amount_cents or 0),
            }
            for r in by_project
        ],
        "trends": [
            {
                "period": key,
                "total_hours": seconds_to_hours(values["total"]),
                "billable_hours": seconds_to_hours(values["billable"]),
                "entry_count": values["count"],
            }
            for key, values in sorted(trends.items())
        ],
    }
