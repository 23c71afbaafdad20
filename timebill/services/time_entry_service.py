from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import datetime, timedelta
from typing import Any, Optional

from sqlalchemy.orm import Session

from timebill.core.authorization import CallerContext, Operation, authorize, is_allowed
from timebill.core.clock import seconds_between, to_naive_utc, utc_now
from timebill.core.errors import ConflictError, DomainError, ForbiddenError, NotFoundError, ValidationError
from timebill.models.time_entry import EntryStatus, EntryType, RateSource, TimeEntry
from timebill.services import audit_service
from timebill.services.approval_service import ensure_editable
from timebill.services.rate_resolver import compute_billable_amount_cents, resolve_rate

logger = logging.getLogger(__name__)

EDITABLE_FIELDS = (
    "user_id",
    "client_id",
    "project_id",
    "task_id",
    "description",
    "start_time",
    "end_time",
    "duration_seconds",
    "type",
)

# changing any of these picks a new rate
RATE_FIELDS = {"user_id", "task_id", "client_id"}

CREATE_FIELDS = (
    "client_id",
    "project_id",
    "task_id",
    "description",
    "start_time",
    "end_time",
    "duration_seconds",
    "type",
)

# fields a bulk overlay may set on every item
OVERLAY_FIELDS = {"client_id", "project_id", "task_id", "description", "type"}


@dataclass(frozen=True)
class BulkCreateResult:
    index: int
    ok: bool
    entry_id: Optional[int] = None
    error: Optional[str] = None


def _resolve_duration(
    start_time: datetime,
    end_time: Optional[datetime],
    duration_seconds: Optional[int],
) -> tuple[Optional[datetime], int]:
    if end_time is not None:
        derived = seconds_between(start_time, end_time)
        if derived < 0:
            raise ValidationError("end_time must not be before start_time", field="end_time")
        if duration_seconds is not None and int(duration_seconds) != derived:
            raise ValidationError(
                "duration_seconds does not match end_time - start_time",
                field="duration_seconds",
            )
        return end_time, derived

    if duration_seconds is None:
        raise ValidationError("Either end_time or duration_seconds is required", field="end_time")
    if int(duration_seconds) < 0:
        raise ValidationError("duration_seconds must be non-negative", field="duration_seconds")

    return start_time + timedelta(seconds=int(duration_seconds)), int(duration_seconds)


def apply_pricing(db: Session, entry: TimeEntry, *, re_resolve: bool = True) -> None:
    """
    Price the entry in place. With re_resolve=False the stored rate is kept and
    only the amount is recomputed.
    """
    if re_resolve:
        resolved = resolve_rate(
            db,
            tenant_id=entry.tenant_id,
            user_id=entry.user_id,
            task_id=entry.task_id,
            client_id=entry.client_id,
            as_of=entry.start_time,
        )
        entry.rate_applied_cents = resolved.hourly_rate_cents
        entry.rate_source = resolved.source.value
    elif entry.rate_applied_cents is None:
        entry.rate_source = RateSource.UNRESOLVED.value

    entry.billable_amount_cents = compute_billable_amount_cents(
        entry.duration_seconds,
        entry.rate_applied_cents,
        entry.type,
    )


def insert_entry(
    db: Session,
    *,
    tenant_id: int,
    user_id: str,
    actor_id: str,
    start_time: datetime,
    end_time: Optional[datetime] = None,
    duration_seconds: Optional[int] = None,
    entry_type: EntryType = EntryType.BILLABLE,
    client_id: Optional[int] = None,
    project_id: Optional[int] = None,
    task_id: Optional[int] = None,
    description: Optional[str] = None,
) -> TimeEntry:
    """
    Insert a priced draft entry and its create audit row. No authorization;
    caller owns the transaction.
    """
    if start_time is None:
        raise ValidationError("start_time is required", field="start_time")

    start_time = to_naive_utc(start_time)
    end_time, duration = _resolve_duration(start_time, to_naive_utc(end_time), duration_seconds)

    now = utc_now()
    entry = TimeEntry(
        tenant_id=int(tenant_id),
        user_id=str(user_id),
        client_id=client_id,
        project_id=project_id,
        task_id=task_id,
        description=description,
        start_time=start_time,
        end_time=end_time,
        duration_seconds=duration,
        type=EntryType(entry_type).value,
        status=EntryStatus.DRAFT.value,
        is_billed=False,
        created_at=now,
        updated_at=now,
    )
    apply_pricing(db, entry)

    db.add(entry)
    db.flush()
    db.refresh(entry)

    audit_service.record(
        db,
        entry_id=entry.id,
        tenant_id=entry.tenant_id,
        actor_id=actor_id,
        action="create",
        new_status=entry.status,
    )

    logger.info(
        "Time entry created",
        extra={
            "tenant_id": entry.tenant_id,
            "time_entry_id": entry.id,
            "user_id": entry.user_id,
            "duration_seconds": entry.duration_seconds,
            "rate_source": entry.rate_source,
        },
    )
    return entry


def create_entry(
    caller: CallerContext,
    *,
    start_time: datetime,
    end_time: Optional[datetime] = None,
    duration_seconds: Optional[int] = None,
    entry_type: EntryType = EntryType.BILLABLE,
    client_id: Optional[int] = None,
    project_id: Optional[int] = None,
    task_id: Optional[int] = None,
    description: Optional[str] = None,
    db: Session,
) -> TimeEntry:
    authorize(caller, Operation.TRACK_TIME)

    return insert_entry(
        db,
        tenant_id=caller.tenant_id,
        user_id=caller.user_id,
        actor_id=caller.user_id,
        start_time=start_time,
        end_time=end_time,
        duration_seconds=duration_seconds,
        entry_type=entry_type,
        client_id=client_id,
        project_id=project_id,
        task_id=task_id,
        description=description,
    )


def create_entries_bulk(
    caller: CallerContext,
    items: list[dict[str, Any]],
    *,
    apply_to_all: Optional[dict[str, Any]] = None,
    db: Session,
) -> list[BulkCreateResult]:
    """
    Create one entry per item for the caller, committing each on its own.

    Values in apply_to_all override the matching item values. A failing item
    is rolled back and reported by its index; the rest still go through.
    """
    authorize(caller, Operation.TRACK_TIME)

    if not items:
        raise ValidationError("entries must not be empty", field="entries")

    overlay = dict(apply_to_all or {})
    unknown = set(overlay) - OVERLAY_FIELDS
    if unknown:
        raise ValidationError(f"Field not allowed in apply_to_all: {sorted(unknown)[0]}", field="apply_to_all")

    results: list[BulkCreateResult] = []
    for index, item in enumerate(items):
        values = {field: item.get(field) for field in CREATE_FIELDS}
        values.update(overlay)
        try:
            entry = insert_entry(
                db,
                tenant_id=caller.tenant_id,
                user_id=caller.user_id,
                actor_id=caller.user_id,
                start_time=values["start_time"],
                end_time=values["end_time"],
                duration_seconds=values["duration_seconds"],
                entry_type=values["type"] or EntryType.BILLABLE,
                client_id=values["client_id"],
                project_id=values["project_id"],
                task_id=values["task_id"],
                description=values["description"],
            )
            db.commit()
            results.append(BulkCreateResult(index=index, ok=True, entry_id=entry.id))
        except DomainError as exc:
            db.rollback()
            results.append(BulkCreateResult(index=index, ok=False, error=exc.message))

    created = sum(1 for r in results if r.ok)
    logger.info(
        "Bulk time entry create",
        extra={
            "tenant_id": caller.tenant_id,
            "user_id": caller.user_id,
            "created": created,
            "failed": len(results) - created,
        },
    )
    return results


def get_entry(caller: CallerContext, entry_id: int, *, db: Session) -> TimeEntry:
    authorize(caller, Operation.VIEW_ENTRIES)

    entry = (
        db.query(TimeEntry)
        .filter(
            TimeEntry.id == int(entry_id),
            TimeEntry.tenant_id == int(caller.tenant_id),
        )
        .first()
    )
    if entry is None:
        raise NotFoundError("Time entry")
    return entry


def list_entries(
    caller: CallerContext,
    *,
    db: Session,
    user_id: Optional[str] = None,
    client_id: Optional[int] = None,
    project_id: Optional[int] = None,
    task_id: Optional[int] = None,
    status: Optional[EntryStatus] = None,
    start_date: Optional[datetime] = None,
    end_date: Optional[datetime] = None,
    limit: int = 50,
    offset: int = 0,
) -> list[TimeEntry]:
    authorize(caller, Operation.VIEW_ENTRIES)

    q = db.query(TimeEntry).filter(TimeEntry.tenant_id == int(caller.tenant_id))

    if user_id is not None:
        q = q.filter(TimeEntry.user_id == str(user_id))
    if client_id is not None:
        q = q.filter(TimeEntry.client_id == int(client_id))
    if project_id is not None:
        q = q.filter(TimeEntry.project_id == int(project_id))
    if task_id is not None:
        q = q.filter(TimeEntry.task_id == int(task_id))
    if status is not None:
        q = q.filter(TimeEntry.status == EntryStatus(status).value)
    if start_date is not None:
        q = q.filter(TimeEntry.start_time >= to_naive_utc(start_date))
    if end_date is not None:
        q = q.filter(TimeEntry.end_time <= to_naive_utc(end_date))

    return (
        q.order_by(TimeEntry.start_time.desc(), TimeEntry.id.desc())
        .offset(int(offset))
        .limit(int(limit))
        .all()
    )


def _audit_value(value: Any) -> Any:
    if isinstance(value, datetime):
        return value.isoformat()
    return value


def update_entry(
    caller: CallerContext,
    entry_id: int,
    changes: dict[str, Any],
    *,
    db: Session,
) -> TimeEntry:
    entry = get_entry(caller, entry_id, db=db)

    if entry.user_id != caller.user_id and not is_allowed(caller.role, Operation.EDIT_OTHERS_ENTRIES):
        raise ForbiddenError("Only the owner or a manager/admin may edit this time entry")

    unknown = set(changes) - set(EDITABLE_FIELDS)
    if unknown:
        raise ValidationError(f"Field not editable: {sorted(unknown)[0]}", field=sorted(unknown)[0])

    if "user_id" in changes and str(changes["user_id"]) != entry.user_id:
        authorize(caller, Operation.REASSIGN_ENTRY)

    if entry.is_billed:
        raise ConflictError("Billed time entries are immutable")
    ensure_editable(entry)

    proposed = {field: getattr(entry, field) for field in EDITABLE_FIELDS}
    for field, value in changes.items():
        if field in ("start_time", "end_time"):
            value = to_naive_utc(value)
        elif field == "type" and value is not None:
            value = EntryType(value).value
        elif field == "user_id" and value is not None:
            value = str(value)
        proposed[field] = value

    if proposed["start_time"] is None:
        raise ValidationError("start_time is required", field="start_time")
    if proposed["user_id"] is None:
        raise ValidationError("user_id is required", field="user_id")
    if proposed["type"] is None:
        raise ValidationError("type is required", field="type")

    if "start_time" in changes or "end_time" in changes:
        explicit = proposed["duration_seconds"] if "duration_seconds" in changes else None
        end_time, duration = _resolve_duration(proposed["start_time"], proposed["end_time"], explicit)
    elif "duration_seconds" in changes:
        if proposed["duration_seconds"] is None:
            raise ValidationError("duration_seconds must not be null", field="duration_seconds")
        end_time, duration = _resolve_duration(proposed["start_time"], None, proposed["duration_seconds"])
    else:
        end_time, duration = entry.end_time, entry.duration_seconds
    proposed["end_time"] = end_time
    proposed["duration_seconds"] = duration

    diff = {
        field: [_audit_value(getattr(entry, field)), _audit_value(proposed[field])]
        for field in EDITABLE_FIELDS
        if getattr(entry, field) != proposed[field]
    }
    if not diff:
        return entry

    for field in diff:
        setattr(entry, field, proposed[field])

    re_resolve = bool(RATE_FIELDS & set(diff))
    if re_resolve or {"duration_seconds", "type"} & set(diff):
        apply_pricing(db, entry, re_resolve=re_resolve)

    entry.updated_at = utc_now()
    db.flush()

    audit_service.record(
        db,
        entry_id=entry.id,
        tenant_id=entry.tenant_id,
        actor_id=caller.user_id,
        action="edit",
        previous_status=entry.status,
        new_status=entry.status,
        changes=diff,
    )

    logger.info(
        "Time entry edited",
        extra={
            "tenant_id": entry.tenant_id,
            "time_entry_id": entry.id,
            "fields": sorted(diff),
            "repriced": re_resolve,
        },
    )
    return entry


def delete_entry(caller: CallerContext, entry_id: int, *, db: Session) -> None:
    authorize(caller, Operation.DELETE_ENTRY)
    entry = get_entry(caller, entry_id, db=db)

    audit_service.record(
        db,
        entry_id=entry.id,
        tenant_id=entry.tenant_id,
        actor_id=caller.user_id,
        action="delete",
        previous_status=entry.status,
    )

    db.delete(entry)
    db.flush()

    logger.info(
        "Time entry deleted",
        extra={"tenant_id": caller.tenant_id, "time_entry_id": int(entry_id)},
    )
