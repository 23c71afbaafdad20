from sqlalchemy import Boolean, Column, DateTime, Index, Integer, String, text

from timebill.core.clock import utc_now
from timebill.database import Base


class TimerSession(Base):
    __tablename__ = "timer_sessions"

    id = Column(Integer, primary_key=True, index=True)

    tenant_id = Column(Integer, nullable=False, index=True)
    user_id = Column(String, nullable=False, index=True)

    client_id = Column(Integer, nullable=True)
    project_id = Column(Integer, nullable=True)
    task_id = Column(Integer, nullable=True)
    description = Column(String, nullable=True)

    started_at = Column(DateTime, nullable=False)
    stopped_at = Column(DateTime, nullable=True)
    is_active = Column(Boolean, nullable=False, default=True)

    time_entry_id = Column(Integer, nullable=True)

    created_at = Column(DateTime, nullable=False, default=utc_now)

    __table_args__ = (
        Index(
            "uq_timer_sessions_active_user",
            "tenant_id",
            "user_id",
            unique=True,
            postgresql_where=text("is_active"),
            sqlite_where=text("is_active"),
        ),
    )
