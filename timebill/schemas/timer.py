from datetime import datetime
from typing import Optional

from pydantic import BaseModel, ConfigDict, Field

from timebill.models.time_entry import EntryType


class TimerStartRequest(BaseModel):
    client_id: Optional[int] = None
    project_id: Optional[int] = None
    task_id: Optional[int] = None
    description: Optional[str] = None
    started_at: Optional[datetime] = Field(
        default=None,
        description="If omitted, server uses current UTC time.",
    )


class TimerStopRequest(BaseModel):
    session_id: int
    notes: Optional[str] = None
    type: EntryType = EntryType.BILLABLE
    stopped_at: Optional[datetime] = Field(
        default=None,
        description="If omitted, server uses current UTC time.",
    )


class TimerSessionResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    tenant_id: int
    user_id: str
    client_id: Optional[int]
    project_id: Optional[int]
    task_id: Optional[int]
    description: Optional[str]
    started_at: datetime
    stopped_at: Optional[datetime]
    is_active: bool
    elapsed_seconds: Optional[int] = None


class ActiveTimerResponse(BaseModel):
    data: Optional[TimerSessionResponse]
