"""Analytics service - read-only figures for managers.

Nothing here writes, so there is no unit of work to commit. Durations are
measured from submission to the last update of a delivered request.
"""

import statistics
from collections import Counter, defaultdict
from datetime import date, datetime, time, timedelta
from uuid import UUID

from src.simflow.core.config import get_settings
from src.simflow.core.logging import get_logger
from src.simflow.models import RequestPriority, RequestStatus, SimulationRequest
from src.simflow.models.base import utc_now
from src.simflow.repositories.analytics import (
    CLOSED_STATUSES,
    DELIVERED_STATUSES,
    AnalyticsRepository,
)
from src.simflow.schemas.analytics import (
    Averages,
    CompletionTimes,
    DashboardStats,
    EngineerWorkload,
    HourAllocation,
    Overview,
    ProjectUtilization,
    Share,
    TrendPoint,
    VendorTotals,
)
from src.simflow.workflow import ValidationFailed
from src.simflow.workflow.views import utilization

logger = get_logger(__name__)

TOP_VENDORS = 10
IN_FLIGHT_STATUSES = frozenset(
    {
        RequestStatus.ENGINEERING_REVIEW.value,
        RequestStatus.DISCUSSION.value,
        RequestStatus.IN_PROGRESS.value,
    }
)
PRIORITY_ORDER = {priority.value: rank for rank, priority in enumerate(RequestPriority)}


def days_to_deliver(request: SimulationRequest) -> float:
    return (request.updated_at - request.created_at).total_seconds() / 86400


def _shares(counts: dict[str, int]) -> list[Share]:
    total = sum(counts.values())
    return [
        Share(key=key, count=count, percentage=round(count / total * 100, 2) if total else 0.0)
        for key, count in sorted(counts.items(), key=lambda item: (-item[1], item[0]))
    ]


def _mean(values: list[float]) -> float | None:
    return round(statistics.fmean(values), 2) if values else None


class AnalyticsService:
    def __init__(self, analytics_repo: AnalyticsRepository):
        self.analytics_repo = analytics_repo

    @staticmethod
    def window(
        start_date: date | None, end_date: date | None
    ) -> tuple[datetime | None, datetime | None]:
        """Turn an inclusive date range into a half-open datetime window."""
        if start_date and end_date and start_date > end_date:
            raise ValidationFailed("start_date must not be after end_date")
        since = datetime.combine(start_date, time.min) if start_date else None
        until = datetime.combine(end_date + timedelta(days=1), time.min) if end_date else None
        return since, until

    async def dashboard(
        self,
        start_date: date | None = None,
        end_date: date | None = None,
    ) -> DashboardStats:
        """Everything the manager dashboard shows.

        The date range narrows request figures by creation date. Project,
        user and workload figures always describe the current state, and
        the trend always covers the most recent days.
        """
        since, until = self.window(start_date, end_date)
        repo = self.analytics_repo

        by_status = await repo.count_requests_by(SimulationRequest.status, since, until)
        by_priority = await repo.count_requests_by(SimulationRequest.priority, since, until)
        projects, active_projects, budgeted, used = await repo.project_totals()
        delivered = await repo.delivered_requests(since, until)

        overview = Overview(
            total_requests=sum(by_status.values()),
            active_requests=sum(
                count for status, count in by_status.items() if status not in CLOSED_STATUSES
            ),
            completed_requests=sum(by_status.get(status, 0) for status in DELIVERED_STATUSES),
            total_projects=projects,
            active_projects=active_projects,
            total_users=await repo.count_users(),
            total_hours_budgeted=budgeted,
            total_hours_used=used,
        )
        estimates = [r.estimated_hours for r in delivered if r.estimated_hours is not None]
        stats = DashboardStats(
            overview=overview,
            requests_by_status=_shares(by_status),
            requests_by_priority=_shares(by_priority),
            request_trends=await self.trends(),
            project_utilization=await self.project_utilization(),
            engineer_workload=await self.engineer_workload(),
            top_vendors=[
                VendorTotals(vendor=vendor, request_count=count, estimated_hours=hours)
                for vendor, count, hours in await repo.vendor_totals(TOP_VENDORS, since, until)
            ],
            averages=Averages(
                completion_days=_mean([days_to_deliver(r) for r in delivered]),
                hours_per_request=_mean(estimates),
            ),
        )
        logger.info(
            "dashboard_computed",
            total_requests=overview.total_requests,
            start_date=str(start_date) if start_date else None,
            end_date=str(end_date) if end_date else None,
        )
        return stats

    async def trends(self, days: int | None = None) -> list[TrendPoint]:
        """One point per day, oldest first, ending today.

        ``created`` and ``in_progress`` are keyed on the day a request was
        submitted; ``completed`` on the day a delivered request last changed.
        """
        days = days or get_settings().analytics_trend_days
        today = utc_now().date()
        first = today - timedelta(days=days - 1)
        created: Counter[date] = Counter()
        completed: Counter[date] = Counter()
        in_progress: Counter[date] = Counter()

        rows = await self.analytics_repo.requests_touched_since(datetime.combine(first, time.min))
        for status, created_at, updated_at in rows:
            if created_at.date() >= first:
                created[created_at.date()] += 1
                if status in IN_FLIGHT_STATUSES:
                    in_progress[created_at.date()] += 1
            if status in DELIVERED_STATUSES and updated_at.date() >= first:
                completed[updated_at.date()] += 1

        return [
            TrendPoint(
                day=day,
                created=created[day],
                completed=completed[day],
                in_progress=in_progress[day],
            )
            for day in (first + timedelta(days=offset) for offset in range(days))
        ]

    async def project_utilization(self) -> list[ProjectUtilization]:
        """Active projects, busiest budget first."""
        projects = await self.analytics_repo.active_projects()
        rows = [
            ProjectUtilization(
                project_id=project.id,
                code=project.code,
                name=project.name,
                total_hours=project.total_hours,
                used_hours=project.used_hours,
                available_hours=project.available_hours,
                utilization=utilization(project),
            )
            for project in projects
        ]
        return sorted(rows, key=lambda row: (-row.utilization, row.code))

    async def engineer_workload(self) -> list[EngineerWorkload]:
        """Per active engineer: open work, delivered work and hours logged."""
        repo = self.analytics_repo
        logged = await repo.hours_logged_by_engineer()
        durations: defaultdict[UUID, list[float]] = defaultdict(list)
        for request in await repo.delivered_requests():
            if request.assigned_to is not None:
                durations[request.assigned_to].append(days_to_deliver(request))

        return [
            EngineerWorkload(
                engineer_id=engineer_id,
                engineer_name=name,
                open_requests=open_count,
                completed_requests=delivered,
                hours_allocated=hours,
                hours_logged=logged.get(engineer_id, 0.0),
                average_completion_days=_mean(durations[engineer_id]),
            )
            for engineer_id, name, open_count, delivered, hours in await repo.engineer_assignments()
        ]

    async def completion_times(self) -> list[CompletionTimes]:
        """Time to delivery per priority, highest priority first."""
        by_priority: defaultdict[str, list[float]] = defaultdict(list)
        for request in await self.analytics_repo.delivered_requests():
            by_priority[request.priority].append(days_to_deliver(request))

        return [
            CompletionTimes(
                priority=priority,
                total_requests=len(values),
                average_days=round(statistics.fmean(values), 2),
                min_days=round(min(values), 2),
                max_days=round(max(values), 2),
                median_days=round(statistics.median(values), 2),
            )
            for priority, values in sorted(
                by_priority.items(),
                key=lambda item: -PRIORITY_ORDER.get(item[0], -1),
            )
        ]

    async def hour_allocation(self, limit: int = 20) -> list[HourAllocation]:
        """Allocated against logged hours for delivered requests.

        A request with nothing allocated reports full usage.
        """
        rows = []
        for request, actual in await self.analytics_repo.delivered_hours(limit):
            allocated = request.allocated_hours
            if allocated is None:
                allocated = request.estimated_hours or 0.0
            rows.append(
                HourAllocation(
                    request_id=request.id,
                    title=request.title,
                    priority=request.priority,
                    status=request.status,
                    allocated_hours=allocated,
                    actual_hours=actual,
                    variance=round(actual - allocated, 2),
                    usage_percentage=round(actual / allocated * 100, 1) if allocated > 0 else 100.0,
                )
            )
        return rows
