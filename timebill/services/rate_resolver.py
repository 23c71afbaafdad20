from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import datetime
from decimal import ROUND_HALF_UP, Decimal
from enum import Enum
from typing import Optional, Union

from sqlalchemy.orm import Session

from timebill.core.authorization import CallerContext, Operation, authorize
from timebill.core.clock import to_naive_utc
from timebill.core.errors import NotFoundError, ValidationError
from timebill.models.rate import ClientRate, StaffRate, TaskTypeRate
from timebill.models.time_entry import EntryType, RateSource

logger = logging.getLogger(__name__)

SECONDS_PER_HOUR = 3600


class RateKind(str, Enum):
    STAFF = "staff"
    TASK_TYPE = "task_type"
    CLIENT = "client"


# kind -> (model, subject column name)
_RATE_TABLES = {
    RateKind.STAFF: (StaffRate, "user_id"),
    RateKind.TASK_TYPE: (TaskTypeRate, "task_id"),
    RateKind.CLIENT: (ClientRate, "client_id"),
}

RateRow = Union[StaffRate, TaskTypeRate, ClientRate]


@dataclass(frozen=True)
class ResolvedRate:
    hourly_rate_cents: Optional[int]
    source: RateSource

    @property
    def is_resolved(self) -> bool:
        return self.hourly_rate_cents is not None


UNRESOLVED = ResolvedRate(hourly_rate_cents=None, source=RateSource.UNRESOLVED)


def _normalize_subject(kind: RateKind, subject_id) -> Union[str, int]:
    if kind is RateKind.STAFF:
        return str(subject_id)
    return int(subject_id)


def _lookup(
    db: Session,
    kind: RateKind,
    tenant_id: int,
    subject_id,
    as_of: Optional[datetime],
) -> Optional[RateRow]:
    model, subject_col = _RATE_TABLES[kind]
    column = getattr(model, subject_col)

    q = db.query(model).filter(
        model.tenant_id == int(tenant_id),
        column == _normalize_subject(kind, subject_id),
        model.is_active.is_(True),
    )
    if as_of is not None:
        q = q.filter((model.effective_from.is_(None)) | (model.effective_from <= as_of))

    # latest effective_from first, undated rows last
    return (
        q.order_by(
            model.effective_from.is_(None).asc(),
            model.effective_from.desc(),
            model.id.desc(),
        )
        .first()
    )


def resolve_rate(
    db: Session,
    *,
    tenant_id: int,
    user_id: str,
    task_id: Optional[int] = None,
    client_id: Optional[int] = None,
    as_of: Optional[datetime] = None,
) -> ResolvedRate:
    """
    Precedence: staff rate > task-type rate > client rate > unresolved.

    Reads only the three rate tables of the tenant; no writes.
    """
    as_of = to_naive_utc(as_of)
    candidates = [
        (RateKind.STAFF, RateSource.STAFF, user_id),
        (RateKind.TASK_TYPE, RateSource.TASK_TYPE, task_id),
        (RateKind.CLIENT, RateSource.CLIENT, client_id),
    ]

    for kind, source, subject_id in candidates:
        if subject_id is None:
            continue
        row = _lookup(db, kind, tenant_id, subject_id, as_of)
        if row is not None:
            return ResolvedRate(hourly_rate_cents=int(row.hourly_rate_cents), source=source)

    return UNRESOLVED


def compute_billable_amount_cents(
    duration_seconds: int,
    hourly_rate_cents: Optional[int],
    entry_type: Union[EntryType, str],
) -> Optional[int]:
    if EntryType(entry_type) is EntryType.NON_BILLABLE:
        return 0
    if hourly_rate_cents is None:
        return None

    amount = Decimal(int(duration_seconds)) * Decimal(int(hourly_rate_cents)) / Decimal(SECONDS_PER_HOUR)
    return int(amount.quantize(Decimal("1"), rounding=ROUND_HALF_UP))


# ---------- Rate tables ----------


def create_rate(
    caller: CallerContext,
    kind: RateKind,
    *,
    subject_id,
    hourly_rate_cents: int,
    effective_from: Optional[datetime] = None,
    db: Session,
) -> RateRow:
    authorize(caller, Operation.MANAGE_RATES)

    if hourly_rate_cents is None or int(hourly_rate_cents) < 0:
        raise ValidationError("hourly_rate_cents must be non-negative", field="hourly_rate_cents")

    model, subject_col = _RATE_TABLES[kind]
    row = model(
        tenant_id=int(caller.tenant_id),
        hourly_rate_cents=int(hourly_rate_cents),
        effective_from=to_naive_utc(effective_from),
        is_active=True,
    )
    setattr(row, subject_col, _normalize_subject(kind, subject_id))

    db.add(row)
    db.flush()
    db.refresh(row)

    logger.info(
        "Rate created",
        extra={
            "tenant_id": caller.tenant_id,
            "rate_kind": kind.value,
            "rate_id": row.id,
            "hourly_rate_cents": row.hourly_rate_cents,
        },
    )
    return row


def list_rates(
    caller: CallerContext,
    kind: RateKind,
    *,
    subject_id=None,
    include_inactive: bool = False,
    db: Session,
) -> list[RateRow]:
    authorize(caller, Operation.VIEW_RATES)

    model, subject_col = _RATE_TABLES[kind]
    q = db.query(model).filter(model.tenant_id == int(caller.tenant_id))

    if subject_id is not None:
        q = q.filter(getattr(model, subject_col) == _normalize_subject(kind, subject_id))
    if not include_inactive:
        q = q.filter(model.is_active.is_(True))

    return q.order_by(model.id.asc()).all()


def deactivate_rate(caller: CallerContext, kind: RateKind, rate_id: int, *, db: Session) -> RateRow:
    authorize(caller, Operation.MANAGE_RATES)

    model, _ = _RATE_TABLES[kind]
    row = (
        db.query(model)
        .filter(model.id == int(rate_id), model.tenant_id == int(caller.tenant_id))
        .first()
    )
    if row is None:
        raise NotFoundError("Rate")

    row.is_active = False
    db.flush()
    return row
