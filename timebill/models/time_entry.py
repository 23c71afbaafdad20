from enum import Enum

from sqlalchemy import Boolean, CheckConstraint, Column, DateTime, Index, Integer, String

from timebill.core.clock import utc_now
from timebill.database import Base


class EntryStatus(str, Enum):
    DRAFT = "draft"
    SUBMITTED = "submitted"
    APPROVED = "approved"
    REJECTED = "rejected"


class EntryType(str, Enum):
    BILLABLE = "billable"
    NON_BILLABLE = "non_billable"


class RateSource(str, Enum):
    STAFF = "staff"
    TASK_TYPE = "task_type"
    CLIENT = "client"
    UNRESOLVED = "unresolved"


class TimeEntry(Base):
    __tablename__ = "time_entries"

    __table_args__ = (
        CheckConstraint("duration_seconds >= 0", name="ck_time_entries_duration_nonnegative"),
        CheckConstraint(
            "status IN ('draft', 'submitted', 'approved', 'rejected')",
            name="ck_time_entries_status",
        ),
        CheckConstraint("type IN ('billable', 'non_billable')", name="ck_time_entries_type"),
        CheckConstraint(
            "billable_amount_cents IS NULL OR billable_amount_cents >= 0",
            name="ck_time_entries_billable_amount_nonnegative",
        ),
        Index("ix_time_entries_tenant_status", "tenant_id", "status"),
        Index("ix_time_entries_tenant_start_time", "tenant_id", "start_time"),
    )

    id = Column(Integer, primary_key=True, index=True)

    tenant_id = Column(Integer, nullable=False, index=True)
    user_id = Column(String, nullable=False, index=True)

    client_id = Column(Integer, nullable=True, index=True)
    project_id = Column(Integer, nullable=True, index=True)
    task_id = Column(Integer, nullable=True, index=True)
    description = Column(String, nullable=True)

    start_time = Column(DateTime, nullable=False)
    end_time = Column(DateTime, nullable=True)
    duration_seconds = Column(Integer, nullable=False)

    type = Column(String, nullable=False, default=EntryType.BILLABLE.value)
    status = Column(String, nullable=False, default=EntryStatus.DRAFT.value)

    rate_applied_cents = Column(Integer, nullable=True)
    rate_source = Column(String, nullable=False, default=RateSource.UNRESOLVED.value)
    billable_amount_cents = Column(Integer, nullable=True)

    is_billed = Column(Boolean, nullable=False, default=False)

    submitted_at = Column(DateTime, nullable=True)
    approved_at = Column(DateTime, nullable=True)
    billed_at = Column(DateTime, nullable=True)

    created_at = Column(DateTime, nullable=False, default=utc_now)
    updated_at = Column(DateTime, nullable=False, default=utc_now)
