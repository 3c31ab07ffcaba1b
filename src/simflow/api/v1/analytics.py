"""Analytics endpoints - managers and admins only."""

from datetime import date
from typing import Annotated

from fastapi import APIRouter, Query

from src.simflow.api.dependencies import AnalyticsServiceDep, ManagerUser
from src.simflow.schemas.analytics import (
    CompletionTimes,
    DashboardStats,
    EngineerWorkload,
    HourAllocation,
)

router = APIRouter(
    prefix="/analytics",
    tags=["analytics"],
    responses={403: {"description": "Manager or admin access required"}},
)

StartDateQuery = Annotated[date | None, Query(description="First submission day, inclusive")]
EndDateQuery = Annotated[date | None, Query(description="Last submission day, inclusive")]


@router.get("/dashboard", response_model=DashboardStats)
async def dashboard(
    _: ManagerUser,
    analytics_service: AnalyticsServiceDep,
    start_date: StartDateQuery = None,
    end_date: EndDateQuery = None,
) -> DashboardStats:
    return await analytics_service.dashboard(start_date, end_date)


@router.get("/completion-times", response_model=list[CompletionTimes])
async def completion_times(
    _: ManagerUser, analytics_service: AnalyticsServiceDep
) -> list[CompletionTimes]:
    """Days from submission to delivery, per priority."""
    return await analytics_service.completion_times()


@router.get("/hour-allocation", response_model=list[HourAllocation])
async def hour_allocation(
    _: ManagerUser,
    analytics_service: AnalyticsServiceDep,
    limit: Annotated[int, Query(ge=1, le=100)] = 20,
) -> list[HourAllocation]:
    """Allocated against logged hours for delivered requests."""
    return await analytics_service.hour_allocation(limit)


@router.get("/engineer-workload", response_model=list[EngineerWorkload])
async def engineer_workload(
    _: ManagerUser, analytics_service: AnalyticsServiceDep
) -> list[EngineerWorkload]:
    return await analytics_service.engineer_workload()
