from sqlalchemy import Boolean, Column, DateTime, Integer, String, Text

from timebill.core.clock import utc_now
from timebill.database import Base


class TimeEntryComment(Base):
    __tablename__ = "time_entry_comments"

    id = Column(Integer, primary_key=True, index=True)
    time_entry_id = Column(Integer, nullable=False, index=True)
    tenant_id = Column(Integer, nullable=False, index=True)
    user_id = Column(String, nullable=False)
    comment = Column(Text, nullable=False)
    is_internal = Column(Boolean, nullable=False, default=False)
    created_at = Column(DateTime, nullable=False, default=utc_now)
