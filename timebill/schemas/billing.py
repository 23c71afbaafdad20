from typing import Optional

from pydantic import BaseModel, Field


class UnbilledGroup(BaseModel):
    client_id: Optional[int]
    entry_count: int
    total_hours: float
    billable_hours: float
    total_amount_cents: int
    unpriced_count: int
    entry_ids: list[int]


class UnbilledResponse(BaseModel):
    data: list[UnbilledGroup]


class MarkBilledRequest(BaseModel):
    entry_ids: list[int] = Field(min_length=1)


class MarkBilledResponse(BaseModel):
    success: bool
    count: int
    already_billed: list[int]
    skipped: list[int]
