"""Analytics schemas for the manager dashboard."""

from datetime import date
from uuid import UUID

from pydantic import BaseModel


class Overview(BaseModel):
    total_requests: int
    active_requests: int
    completed_requests: int
    total_projects: int
    active_projects: int
    total_users: int
    total_hours_budgeted: float
    total_hours_used: float


class Share(BaseModel):
    """How many requests carry one value, and their percentage of the total."""

    key: str
    count: int
    percentage: float


class TrendPoint(BaseModel):
    day: date
    created: int
    completed: int
    in_progress: int


class ProjectUtilization(BaseModel):
    project_id: UUID
    code: str
    name: str
    total_hours: float
    used_hours: float
    available_hours: float
    utilization: float


class EngineerWorkload(BaseModel):
    engineer_id: UUID
    engineer_name: str
    open_requests: int
    completed_requests: int
    # Estimated hours of the open requests
    hours_allocated: float
    hours_logged: float
    average_completion_days: float | None


class VendorTotals(BaseModel):
    vendor: str
    request_count: int
    estimated_hours: float


class Averages(BaseModel):
    completion_days: float | None
    hours_per_request: float | None


class DashboardStats(BaseModel):
    overview: Overview
    requests_by_status: list[Share]
    requests_by_priority: list[Share]
    request_trends: list[TrendPoint]
    project_utilization: list[ProjectUtilization]
    engineer_workload: list[EngineerWorkload]
    top_vendors: list[VendorTotals]
    averages: Averages


class CompletionTimes(BaseModel):
    """Days from submission to delivery for one priority."""

    priority: str
    total_requests: int
    average_days: float
    min_days: float
    max_days: float
    median_days: float


class HourAllocation(BaseModel):
    request_id: UUID
    title: str
    priority: str
    status: str
    allocated_hours: float
    actual_hours: float
    variance: float
    usage_percentage: float
