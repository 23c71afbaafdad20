from datetime import datetime
from typing import Optional

from pydantic import BaseModel, ConfigDict, Field


class StaffRateCreate(BaseModel):
    user_id: str
    hourly_rate_cents: int = Field(ge=0)
    effective_from: Optional[datetime] = None


class TaskTypeRateCreate(BaseModel):
    task_id: int
    hourly_rate_cents: int = Field(ge=0)
    effective_from: Optional[datetime] = None


class ClientRateCreate(BaseModel):
    client_id: int
    hourly_rate_cents: int = Field(ge=0)
    effective_from: Optional[datetime] = None


class _RateResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    tenant_id: int
    hourly_rate_cents: int
    effective_from: Optional[datetime]
    is_active: bool
    created_at: datetime


class StaffRateResponse(_RateResponse):
    user_id: str


class TaskTypeRateResponse(_RateResponse):
    task_id: int


class ClientRateResponse(_RateResponse):
    client_id: int


class StaffRateListResponse(BaseModel):
    data: list[StaffRateResponse]


class TaskTypeRateListResponse(BaseModel):
    data: list[TaskTypeRateResponse]


class ClientRateListResponse(BaseModel):
    data: list[ClientRateResponse]
