from timebill.models.audit_record import AuditRecord
from timebill.models.rate import ClientRate, StaffRate, TaskTypeRate
from timebill.models.time_entry import EntryStatus, EntryType, RateSource, TimeEntry
from timebill.models.time_entry_comment import TimeEntryComment
from timebill.models.timer_session import TimerSession

__all__ = [
    "AuditRecord",
    "ClientRate",
    "EntryStatus",
    "EntryType",
    "RateSource",
    "StaffRate",
    "TaskTypeRate",
    "TimeEntry",
    "TimeEntryComment",
    "TimerSession",
]
