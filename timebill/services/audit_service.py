from __future__ import annotations

import logging
from typing import Any, Optional

from sqlalchemy.orm import Session

from timebill.core.authorization import CallerContext, Operation, authorize
from timebill.core.errors import NotFoundError, ValidationError
from timebill.models.audit_record import AuditRecord
from timebill.models.time_entry import TimeEntry
from timebill.models.time_entry_comment import TimeEntryComment

logger = logging.getLogger(__name__)


def record(
    db: Session,
    *,
    entry_id: int,
    tenant_id: int,
    actor_id: str,
    action: str,
    previous_status: Optional[str] = None,
    new_status: Optional[str] = None,
    reason: Optional[str] = None,
    changes: Optional[dict[str, Any]] = None,
) -> AuditRecord:
    """
    Append one audit row. Caller owns the transaction.
    """
    row = AuditRecord(
        time_entry_id=int(entry_id),
        tenant_id=int(tenant_id),
        actor_id=str(actor_id),
        action=action,
        previous_status=previous_status,
        new_status=new_status,
        reason=reason,
        changes=changes,
    )
    db.add(row)
    db.flush()
    return row


def _require_entry(db: Session, tenant_id: int, entry_id: int) -> TimeEntry:
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


def append_comment(
    db: Session,
    *,
    entry_id: int,
    tenant_id: int,
    user_id: str,
    comment: str,
    is_internal: bool = False,
) -> TimeEntryComment:
    row = TimeEntryComment(
        time_entry_id=int(entry_id),
        tenant_id=int(tenant_id),
        user_id=str(user_id),
        comment=comment,
        is_internal=bool(is_internal),
    )
    db.add(row)
    db.flush()
    return row


def add_comment(
    caller: CallerContext,
    entry_id: int,
    comment: str,
    *,
    is_internal: bool = False,
    db: Session,
) -> TimeEntryComment:
    authorize(caller, Operation.COMMENT)

    text = (comment or "").strip()
    if not text:
        raise ValidationError("Comment must not be empty", field="comment")

    _require_entry(db, caller.tenant_id, entry_id)

    row = append_comment(
        db,
        entry_id=entry_id,
        tenant_id=caller.tenant_id,
        user_id=caller.user_id,
        comment=text,
        is_internal=is_internal,
    )
    logger.info(
        "Comment added to time entry",
        extra={"tenant_id": caller.tenant_id, "time_entry_id": int(entry_id), "comment_id": row.id},
    )
    return row


def list_comments(caller: CallerContext, entry_id: int, *, db: Session) -> list[TimeEntryComment]:
    authorize(caller, Operation.VIEW_ENTRIES)
    _require_entry(db, caller.tenant_id, entry_id)

    return (
        db.query(TimeEntryComment)
        .filter(
            TimeEntryComment.tenant_id == int(caller.tenant_id),
            TimeEntryComment.time_entry_id == int(entry_id),
        )
        .order_by(TimeEntryComment.created_at.asc(), TimeEntryComment.id.asc())
        .all()
    )


def get_audit_history(caller: CallerContext, entry_id: int, *, db: Session) -> list[AuditRecord]:
    """
    Ascending by occurred_at. Rows of a hard-deleted entry stay readable, so an
    unknown id simply yields an empty list.
    """
    authorize(caller, Operation.VIEW_ENTRIES)

    return (
        db.query(AuditRecord)
        .filter(
            AuditRecord.tenant_id == int(caller.tenant_id),
            AuditRecord.time_entry_id == int(entry_id),
        )
        .order_by(AuditRecord.occurred_at.asc(), AuditRecord.id.asc())
        .all()
    )
