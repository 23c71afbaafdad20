from sqlalchemy import JSON, Column, DateTime, Integer, String, Text

from timebill.core.clock import utc_now
from timebill.database import Base


class AuditRecord(Base):
    __tablename__ = "time_entry_audit_log"

    id = Column(Integer, primary_key=True, index=True)

    # no foreign key: the trail outlives a hard-deleted entry
    time_entry_id = Column(Integer, nullable=False, index=True)
    tenant_id = Column(Integer, nullable=False, index=True)
    actor_id = Column(String, nullable=False)

    action = Column(String, nullable=False, index=True)
    previous_status = Column(String, nullable=True)
    new_status = Column(String, nullable=True)
    reason = Column(Text, nullable=True)
    changes = Column(JSON, nullable=True)

    occurred_at = Column(DateTime, nullable=False, default=utc_now)
