from typing import Optional

from pydantic import BaseModel


class _TimeTotals(BaseModel):
    total_hours: float
    billable_hours: float
    non_billable_hours: float
    total_amount_cents: int
    entry_count: int


class ClientTimeRow(_TimeTotals):
    client_id: Optional[int]


class StaffTimeRow(_TimeTotals):
    user_id: str


class ProjectTimeRow(_TimeTotals):
    project_id: Optional[int]


class ClientTimeReport(BaseModel):
    data: list[ClientTimeRow]


class StaffTimeReport(BaseModel):
    data: list[StaffTimeRow]


class ProjectTimeReport(BaseModel):
    data: list[ProjectTimeRow]


class BillableComparison(BaseModel):
    total_hours: float
    billable_hours: float
    non_billable_hours: float
    billable_percentage: float


class AnalyticsTotals(BaseModel):
    total_entries: int
    total_hours: float
    billable_hours: float
    non_billable_hours: float
    approved_hours: float
    total_amount_cents: int
    avg_session_hours: float
    utilization_rate: float


class TypeBreakdownRow(BaseModel):
    type: str
    hours: float
    entry_count: int
    total_amount_cents: int


class ProjectBreakdownRow(BaseModel):
    project_id: Optional[int]
    hours: float
    entry_count: int
    total_amount_cents: int


class TrendRow(BaseModel):
    period: str
    total_hours: float
    billable_hours: float
    entry_count: int


class AnalyticsSummary(BaseModel):
    summary: AnalyticsTotals
    by_type: list[TypeBreakdownRow]
    by_project: list[ProjectBreakdownRow]
    trends: list[TrendRow]
