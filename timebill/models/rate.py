from sqlalchemy import Boolean, CheckConstraint, Column, DateTime, Integer, String

from timebill.core.clock import utc_now
from timebill.database import Base


class StaffRate(Base):
    __tablename__ = "staff_rates"

    __table_args__ = (
        CheckConstraint("hourly_rate_cents >= 0", name="ck_staff_rates_hourly_rate_nonnegative"),
    )

    id = Column(Integer, primary_key=True, index=True)
    tenant_id = Column(Integer, nullable=False, index=True)
    user_id = Column(String, nullable=False, index=True)
    hourly_rate_cents = Column(Integer, nullable=False)
    effective_from = Column(DateTime, nullable=True)
    is_active = Column(Boolean, nullable=False, default=True)
    created_at = Column(DateTime, nullable=False, default=utc_now)


class TaskTypeRate(Base):
    __tablename__ = "task_type_rates"

    __table_args__ = (
        CheckConstraint("hourly_rate_cents >= 0", name="ck_task_type_rates_hourly_rate_nonnegative"),
    )

    id = Column(Integer, primary_key=True, index=True)
    tenant_id = Column(Integer, nullable=False, index=True)
    task_id = Column(Integer, nullable=False, index=True)
    hourly_rate_cents = Column(Integer, nullable=False)
    effective_from = Column(DateTime, nullable=True)
    is_active = Column(Boolean, nullable=False, default=True)
    created_at = Column(DateTime, nullable=False, default=utc_now)


class ClientRate(Base):
    __tablename__ = "client_rates"

    __table_args__ = (
        CheckConstraint("hourly_rate_cents >= 0", name="ck_client_rates_hourly_rate_nonnegative"),
    )

    id = Column(Integer, primary_key=True, index=True)
    tenant_id = Column(Integer, nullable=False, index=True)
    client_id = Column(Integer, nullable=False, index=True)
    hourly_rate_cents = Column(Integer, nullable=False)
    effective_from = Column(DateTime, nullable=True)
    is_active = Column(Boolean, nullable=False, default=True)
    created_at = Column(DateTime, nullable=False, default=utc_now)
