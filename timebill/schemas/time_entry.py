from datetime import datetime
from typing import Optional

from pydantic import BaseModel, ConfigDict, Field

from timebill.models.time_entry import EntryType


class TimeEntryCreate(BaseModel):
    client_id: Optional[int] = None
    project_id: Optional[int] = None
    task_id: Optional[int] = None
    description: Optional[str] = None
    start_time: datetime
    end_time: Optional[datetime] = None
    duration_seconds: Optional[int] = Field(default=None, ge=0)
    type: EntryType = EntryType.BILLABLE


class BulkEntryOverlay(BaseModel):
    """Values copied onto every entry of a bulk create; only fields present are applied."""

    client_id: Optional[int] = None
    project_id: Optional[int] = None
    task_id: Optional[int] = None
    description: Optional[str] = None
    type: Optional[EntryType] = None


class TimeEntryBulkCreate(BaseModel):
    entries: list[TimeEntryCreate] = Field(min_length=1)
    apply_to_all: Optional[BulkEntryOverlay] = None


class BulkCreateResultRow(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    index: int
    ok: bool
    entry_id: Optional[int] = None
    error: Optional[str] = None


class BulkCreateResponse(BaseModel):
    success: bool
    count: int
    results: list[BulkCreateResultRow]


class TimeEntryUpdate(BaseModel):
    """Only the fields present in the request body are applied."""

    user_id: Optional[str] = None
    client_id: Optional[int] = None
    project_id: Optional[int] = None
    task_id: Optional[int] = None
    description: Optional[str] = None
    start_time: Optional[datetime] = None
    end_time: Optional[datetime] = None
    duration_seconds: Optional[int] = Field(default=None, ge=0)
    type: Optional[EntryType] = None


class TimeEntryResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    tenant_id: int
    user_id: str
    client_id: Optional[int]
    project_id: Optional[int]
    task_id: Optional[int]
    description: Optional[str]
    start_time: datetime
    end_time: Optional[datetime]
    duration_seconds: int
    type: str
    status: str
    rate_applied_cents: Optional[int]
    rate_source: str
    billable_amount_cents: Optional[int]
    is_billed: bool
    submitted_at: Optional[datetime]
    approved_at: Optional[datetime]
    billed_at: Optional[datetime]
    created_at: datetime
    updated_at: datetime


class TimeEntryListResponse(BaseModel):
    data: list[TimeEntryResponse]


class RejectRequest(BaseModel):
    reason: Optional[str] = None


class BulkApproveRequest(BaseModel):
    entry_ids: list[int] = Field(min_length=1)


class BulkRejectRequest(BaseModel):
    entry_ids: list[int] = Field(min_length=1)
    reason: Optional[str] = None


class BulkResultRow(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    entry_id: int
    ok: bool
    status: Optional[str] = None
    error: Optional[str] = None


class BulkResponse(BaseModel):
    success: bool
    count: int
    results: list[BulkResultRow]


class CommentCreate(BaseModel):
    comment: str = Field(min_length=1)
    is_internal: bool = False


class CommentResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    time_entry_id: int
    tenant_id: int
    user_id: str
    comment: str
    is_internal: bool
    created_at: datetime


class CommentListResponse(BaseModel):
    data: list[CommentResponse]


class AuditRecordResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    time_entry_id: int
    tenant_id: int
    actor_id: str
    action: str
    previous_status: Optional[str]
    new_status: Optional[str]
    reason: Optional[str]
    changes: Optional[dict]
    occurred_at: datetime


class AuditHistoryResponse(BaseModel):
    data: list[AuditRecordResponse]
