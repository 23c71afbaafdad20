from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Any, Iterable

from sqlalchemy import case, func
from sqlalchemy.orm import Session

from timebill.core.authorization import CallerContext, Operation, authorize
from timebill.core.clock import seconds_to_hours, utc_now
from timebill.core.errors import ValidationError
from timebill.models.time_entry import EntryStatus, EntryType, TimeEntry
from timebill.services import audit_service

logger = logging.getLogger(__name__)


@dataclass
class MarkBilledResult:
    billed: list[int] = field(default_factory=list)
    already_billed: list[int] = field(default_factory=list)
    skipped: list[int] = field(default_factory=list)

    @property
    def count(self) -> int:
        return len(self.billed)


def get_unbilled_time(caller: CallerContext, *, db: Session) -> list[dict[str, Any]]:
    """
    Approved entries not yet billed, grouped by client for invoicing.

    Entries with no resolved amount are counted in unpriced_count; they need
    manual pricing before they can be invoiced.
    """
    authorize(caller, Operation.BILLING)

    base = (
        TimeEntry.tenant_id == int(caller.tenant_id),
        TimeEntry.status == EntryStatus.APPROVED.value,
        TimeEntry.is_billed.is_(False),
    )

    rows = (
        db.query(
            TimeEntry.client_id.label("client_id"),
            func.count(TimeEntry.id).label("entry_count"),
            func.coalesce(func.sum(TimeEntry.duration_seconds), 0).label("total_seconds"),
            func.coalesce(
                func.sum(
                    case(
                        (TimeEntry.type == EntryType.BILLABLE.value, TimeEntry.duration_seconds),
                        else_=0,
                    )
                ),
                0,
            ).label("billable_seconds"),
            func.coalesce(func.sum(TimeEntry.billable_amount_cents), 0).label("total_amount_cents"),
            func.sum(case((TimeEntry.billable_amount_cents.is_(None), 1), else_=0)).label("unpriced_count"),
        )
        .filter(*base)
        .group_by(TimeEntry.client_id)
        .order_by(TimeEntry.client_id.is_(None).asc(), TimeEntry.client_id.asc())
        .all()
    )

    ids_by_client: dict[Any, list[int]] = {}
    for entry_id, client_id in (
        db.query(TimeEntry.id, TimeEntry.client_id)
        .filter(*base)
        .order_by(TimeEntry.start_time.asc(), TimeEntry.id.asc())
        .all()
    ):
        ids_by_client.setdefault(client_id, []).append(int(entry_id))

    return [
        {
            "client_id": None if r.client_id is None else int(r.client_id),
            "entry_count": int(r.entry_count),
            "total_hours": seconds_to_hours(r.total_seconds),
            "billable_hours": seconds_to_hours(r.billable_seconds),
            "total_amount_cents": int(r.total_amount_cents or 0),
            "unpriced_count": int(r.unpriced_count or 0),
            "entry_ids": ids_by_client.get(r.client_id, []),
        }
        for r in rows
    ]


def mark_as_billed(
    caller: CallerContext,
    entry_ids: Iterable[int],
    *,
    db: Session,
) -> MarkBilledResult:
    """
    Flag approved entries as billed. Idempotent: ids already billed are
    reported, not rejected. Status is left untouched. Caller owns the
    transaction.
    """
    authorize(caller, Operation.BILLING)

    ids = list(dict.fromkeys(int(i) for i in entry_ids))
    if not ids:
        raise ValidationError("entry_ids must not be empty", field="entry_ids")

    entries = {
        e.id: e
        for e in db.query(TimeEntry)
        .filter(
            TimeEntry.tenant_id == int(caller.tenant_id),
            TimeEntry.id.in_(ids),
        )
        .all()
    }

    result = MarkBilledResult()
    now = utc_now()

    for entry_id in ids:
        entry = entries.get(entry_id)
        if entry is None or entry.status != EntryStatus.APPROVED.value:
            result.skipped.append(entry_id)
            continue
        if entry.is_billed:
            result.already_billed.append(entry_id)
            continue

        updated = (
            db.query(TimeEntry)
            .filter(
                TimeEntry.id == entry_id,
                TimeEntry.tenant_id == int(caller.tenant_id),
                TimeEntry.status == EntryStatus.APPROVED.value,
                TimeEntry.is_billed.is_(False),
            )
            .update(
                {TimeEntry.is_billed: True, TimeEntry.billed_at: now, TimeEntry.updated_at: now},
                synchronize_session="fetch",
            )
        )
        if updated != 1:
            # billed by a concurrent call in the meantime
            result.already_billed.append(entry_id)
            continue

        audit_service.record(
            db,
            entry_id=entry_id,
            tenant_id=caller.tenant_id,
            actor_id=caller.user_id,
            action="mark_billed",
            previous_status=entry.status,
            new_status=entry.status,
        )
        result.billed.append(entry_id)

    logger.info(
        "Entries marked billed",
        extra={
            "tenant_id": caller.tenant_id,
            "billed": len(result.billed),
            "already_billed": len(result.already_billed),
            "skipped": len(result.skipped),
        },
    )
    return result
