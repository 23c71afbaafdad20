from __future__ import annotations

import logging
from dataclasses import dataclass
from enum import Enum
from typing import Iterable, Optional

from sqlalchemy.orm import Session

from timebill.core.authorization import CallerContext, Operation, authorize
from timebill.core.clock import utc_now
from timebill.core.errors import ConflictError, DomainError, ForbiddenError, NotFoundError, ValidationError
from timebill.models.time_entry import EntryStatus, TimeEntry
from timebill.services import audit_service

logger = logging.getLogger(__name__)


class Action(str, Enum):
    SUBMIT = "submit"
    APPROVE = "approve"
    REJECT = "reject"


@dataclass(frozen=True)
class Transition:
    from_states: frozenset
    to_state: EntryStatus
    # None means the entry owner performs it
    operation: Optional[Operation]
    stamp_field: Optional[str] = None


TRANSITIONS = {
    Action.SUBMIT: Transition(
        from_states=frozenset({EntryStatus.DRAFT, EntryStatus.REJECTED}),
        to_state=EntryStatus.SUBMITTED,
        operation=None,
        stamp_field="submitted_at",
    ),
    Action.APPROVE: Transition(
        from_states=frozenset({EntryStatus.SUBMITTED}),
        to_state=EntryStatus.APPROVED,
        operation=Operation.REVIEW_ENTRIES,
        stamp_field="approved_at",
    ),
    Action.REJECT: Transition(
        from_states=frozenset({EntryStatus.SUBMITTED}),
        to_state=EntryStatus.REJECTED,
        operation=Operation.REVIEW_ENTRIES,
    ),
}

EDITABLE_STATUSES = frozenset({EntryStatus.DRAFT, EntryStatus.REJECTED})

BULK_ACTIONS = frozenset({Action.APPROVE, Action.REJECT})


@dataclass(frozen=True)
class BulkResult:
    entry_id: int
    ok: bool
    status: Optional[str] = None
    error: Optional[str] = None


def ensure_editable(entry: TimeEntry) -> None:
    if EntryStatus(entry.status) not in EDITABLE_STATUSES:
        raise ConflictError(f"Time entry in status '{entry.status}' cannot be edited")


def _get_entry(db: Session, tenant_id: int, entry_id: int) -> TimeEntry:
    entry = (
        db.query(TimeEntry)
        .filter(
            TimeEntry.id == int(entry_id),
            TimeEntry.tenant_id == int(tenant_id),
        )
        .first()
    )
    if entry is None:
        raise NotFoundError("Time entry")
    return entry


def transition(
    caller: CallerContext,
    entry_id: int,
    action: Action,
    *,
    reason: Optional[str] = None,
    audit_action: Optional[str] = None,
    db: Session,
) -> TimeEntry:
    """
    Move one entry along the approval lifecycle.

    The status write is conditional on the entry still being in one of the
    allowed source states, so two concurrent reviewers cannot both win.
    Caller owns the transaction.
    """
    rule = TRANSITIONS[Action(action)]
    if rule.operation is not None:
        authorize(caller, rule.operation)
    else:
        authorize(caller, Operation.TRACK_TIME)

    entry = _get_entry(db, caller.tenant_id, entry_id)

    if rule.operation is None and entry.user_id != caller.user_id:
        raise ForbiddenError(f"Only the owner may {action.value} this time entry")

    if entry.is_billed:
        raise ConflictError("Billed time entries are immutable")

    previous_status = entry.status
    if EntryStatus(previous_status) not in rule.from_states:
        raise ConflictError(
            f"Cannot {action.value} a time entry in status '{previous_status}'"
        )

    now = utc_now()
    values = {TimeEntry.status: rule.to_state.value, TimeEntry.updated_at: now}
    if rule.stamp_field is not None:
        values[getattr(TimeEntry, rule.stamp_field)] = now

    updated = (
        db.query(TimeEntry)
        .filter(
            TimeEntry.id == entry.id,
            TimeEntry.tenant_id == int(caller.tenant_id),
            TimeEntry.status.in_([s.value for s in rule.from_states]),
        )
        .update(values, synchronize_session="fetch")
    )
    if updated != 1:
        raise ConflictError("Time entry status changed concurrently")

    db.refresh(entry)

    text = (reason or "").strip() or None
    audit_service.record(
        db,
        entry_id=entry.id,
        tenant_id=entry.tenant_id,
        actor_id=caller.user_id,
        action=audit_action or action.value,
        previous_status=previous_status,
        new_status=entry.status,
        reason=text,
    )

    if action is Action.REJECT and text:
        audit_service.append_comment(
            db,
            entry_id=entry.id,
            tenant_id=entry.tenant_id,
            user_id=caller.user_id,
            comment=text,
            is_internal=False,
        )

    logger.info(
        "Time entry status changed",
        extra={
            "tenant_id": entry.tenant_id,
            "time_entry_id": entry.id,
            "action": audit_action or action.value,
            "previous_status": previous_status,
            "new_status": entry.status,
            "actor_id": caller.user_id,
        },
    )
    return entry


def submit_entry(caller: CallerContext, entry_id: int, *, db: Session) -> TimeEntry:
    return transition(caller, entry_id, Action.SUBMIT, db=db)


def approve_entry(caller: CallerContext, entry_id: int, *, db: Session) -> TimeEntry:
    return transition(caller, entry_id, Action.APPROVE, db=db)


def reject_entry(
    caller: CallerContext,
    entry_id: int,
    *,
    reason: Optional[str] = None,
    db: Session,
) -> TimeEntry:
    return transition(caller, entry_id, Action.REJECT, reason=reason, db=db)


def bulk_transition(
    caller: CallerContext,
    action: Action,
    entry_ids: Iterable[int],
    *,
    reason: Optional[str] = None,
    db: Session,
) -> list[BulkResult]:
    """
    Attempt the transition on every id independently and commit each success
    on its own. There is no all-or-nothing guarantee: the returned list says
    which ids moved and why the others did not.
    """
    action = Action(action)
    if action not in BULK_ACTIONS:
        raise ValidationError(f"Bulk {action.value} is not supported", field="action")

    authorize(caller, TRANSITIONS[action].operation)

    results: list[BulkResult] = []
    for entry_id in dict.fromkeys(int(i) for i in entry_ids):
        try:
            entry = transition(
                caller,
                entry_id,
                action,
                reason=reason,
                audit_action=f"bulk_{action.value}",
                db=db,
            )
            db.commit()
            results.append(BulkResult(entry_id=entry_id, ok=True, status=entry.status))
        except DomainError as exc:
            db.rollback()
            results.append(BulkResult(entry_id=entry_id, ok=False, error=exc.message))

    logger.info(
        "Bulk transition finished",
        extra={
            "tenant_id": caller.tenant_id,
            "action": action.value,
            "requested": len(results),
            "succeeded": sum(1 for r in results if r.ok),
        },
    )
    return results


def bulk_approve(caller: CallerContext, entry_ids: Iterable[int], *, db: Session) -> list[BulkResult]:
    return bulk_transition(caller, Action.APPROVE, entry_ids, db=db)


def bulk_reject(
    caller: CallerContext,
    entry_ids: Iterable[int],
    *,
    reason: Optional[str] = None,
    db: Session,
) -> list[BulkResult]:
    return bulk_transition(caller, Action.REJECT, entry_ids, reason=reason, db=db)


def approval_queue(
    caller: CallerContext,
    *,
    status: EntryStatus = EntryStatus.SUBMITTED,
    db: Session,
) -> list[TimeEntry]:
    authorize(caller, Operation.REVIEW_ENTRIES)

    return (
        db.query(TimeEntry)
        .filter(
            TimeEntry.tenant_id == int(caller.tenant_id),
            TimeEntry.status == EntryStatus(status).value,
        )
        .order_by(
            TimeEntry.submitted_at.is_(None).asc(),
            TimeEntry.submitted_at.desc(),
            TimeEntry.id.desc(),
        )
        .all()
    )
