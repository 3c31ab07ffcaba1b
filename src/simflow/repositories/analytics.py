"""Read-only aggregates behind the manager dashboard.

Queries stay within what both SQLite and PostgreSQL support; medians and
durations are computed by the service.
"""

from datetime import datetime
from typing import Any
from uuid import UUID

from sqlalchemy import case, func, or_
from sqlalchemy.ext.asyncio import AsyncSession
from sqlmodel import col, select

from src.simflow.models import (
    Project,
    ProjectStatus,
    RequestStatus,
    SimulationRequest,
    TimeEntry,
    User,
    UserRole,
)

# Work that has been delivered, whether or not the requester signed it off
DELIVERED_STATUSES = (RequestStatus.COMPLETED.value, RequestStatus.ACCEPTED.value)
CLOSED_STATUSES = (*DELIVERED_STATUSES, RequestStatus.DENIED.value)


class AnalyticsRepository:
    """Aggregates across requests, projects, users and time entries."""

    def __init__(self, session: AsyncSession):
        self.session = session

    def _window(self, query: Any, since: datetime | None, until: datetime | None) -> Any:
        if since is not None:
            query = query.where(SimulationRequest.created_at >= since)
        if until is not None:
            query = query.where(SimulationRequest.created_at < until)
        return query

    async def count_requests_by(
        self,
        column: Any,
        since: datetime | None = None,
        until: datetime | None = None,
    ) -> dict[str, int]:
        """Request counts grouped by ``column``, e.g. status or priority."""
        query = self._window(
            select(column, func.count()).select_from(SimulationRequest).group_by(column),
            since,
            until,
        )
        result = await self.session.execute(query)
        return {key: count for key, count in result.all()}

    async def project_totals(self) -> tuple[int, int, float, float]:
        """(projects, active projects, budgeted hours, used hours)."""
        active = case((Project.status == ProjectStatus.ACTIVE.value, 1), else_=0)
        result = await self.session.execute(
            select(
                func.count(col(Project.id)),
                func.coalesce(func.sum(active), 0),
                func.coalesce(func.sum(Project.total_hours), 0.0),
                func.coalesce(func.sum(Project.used_hours), 0.0),
            )
        )
        total, active_count, budget, used = result.one()
        return int(total), int(active_count), float(budget), float(used)

    async def count_users(self) -> int:
        result = await self.session.execute(
            select(func.count(col(User.id))).where(col(User.is_active).is_(True))
        )
        return int(result.scalar_one())

    async def active_projects(self) -> list[Project]:
        result = await self.session.execute(
            select(Project).where(Project.status == ProjectStatus.ACTIVE.value)
        )
        return list(result.scalars().all())

    async def requests_touched_since(self, since: datetime) -> list[tuple[str, datetime, datetime]]:
        """(status, created_at, updated_at) of requests created or changed since ``since``."""
        result = await self.session.execute(
            select(
                SimulationRequest.status,
                SimulationRequest.created_at,
                SimulationRequest.updated_at,
            ).where(
                or_(
                    SimulationRequest.created_at >= since,
                    SimulationRequest.updated_at >= since,
                )
            )
        )
        return [tuple(row) for row in result.all()]

    async def delivered_requests(
        self,
        since: datetime | None = None,
        until: datetime | None = None,
    ) -> list[SimulationRequest]:
        query = self._window(
            select(SimulationRequest).where(
                col(SimulationRequest.status).in_(DELIVERED_STATUSES)
            ),
            since,
            until,
        )
        result = await self.session.execute(query)
        return list(result.scalars().all())

    async def vendor_totals(
        self,
        limit: int,
        since: datetime | None = None,
        until: datetime | None = None,
    ) -> list[tuple[str, int, float]]:
        """(vendor, requests, estimated hours), busiest vendors first."""
        request_count = func.count(col(SimulationRequest.id))
        query = self._window(
            select(
                SimulationRequest.vendor,
                request_count,
                func.coalesce(func.sum(SimulationRequest.estimated_hours), 0.0),
            ).where(col(SimulationRequest.vendor).is_not(None)),
            since,
            until,
        )
        query = (
            query.group_by(SimulationRequest.vendor)
            .order_by(request_count.desc(), SimulationRequest.vendor)
            .limit(limit)
        )
        result = await self.session.execute(query)
        return [(vendor, int(count), float(hours)) for vendor, count, hours in result.all()]

    async def engineer_assignments(self) -> list[tuple[UUID, str, int, int, float]]:
        """(engineer id, name, open, delivered, open estimated hours) per engineer.

        Engineers without assignments are included with zero counts.
        """
        is_open = col(SimulationRequest.status).not_in(CLOSED_STATUSES)
        is_delivered = col(SimulationRequest.status).in_(DELIVERED_STATUSES)
        query = (
            select(
                User.id,
                User.name,
                func.coalesce(func.sum(case((is_open, 1), else_=0)), 0),
                func.coalesce(func.sum(case((is_delivered, 1), else_=0)), 0),
                func.coalesce(
                    func.sum(
                        case((is_open, func.coalesce(SimulationRequest.estimated_hours, 0)), else_=0)
                    ),
                    0.0,
                ),
            )
            .select_from(User)
            .outerjoin(SimulationRequest, col(SimulationRequest.assigned_to) == User.id)
            .where(User.role == UserRole.ENGINEER.value, col(User.is_active).is_(True))
            .group_by(User.id, User.name)
            .order_by(User.name)
        )
        result = await self.session.execute(query)
        return [
            (engineer_id, name, int(open_count), int(delivered), float(hours))
            for engineer_id, name, open_count, delivered, hours in result.all()
        ]

    async def hours_logged_by_engineer(self) -> dict[UUID, float]:
        result = await self.session.execute(
            select(TimeEntry.engineer_id, func.sum(TimeEntry.hours))
            .where(col(TimeEntry.engineer_id).is_not(None))
            .group_by(TimeEntry.engineer_id)
        )
        return {engineer_id: float(hours) for engineer_id, hours in result.all()}

    async def delivered_hours(self, limit: int) -> list[tuple[SimulationRequest, float]]:
        """Delivered requests with the hours logged against them, most logged first."""
        logged = func.coalesce(func.sum(TimeEntry.hours), 0.0)
        result = await self.session.execute(
            select(SimulationRequest, logged)
            .outerjoin(TimeEntry, col(TimeEntry.request_id) == SimulationRequest.id)
            .where(col(SimulationRequest.status).in_(DELIVERED_STATUSES))
            .group_by(col(SimulationRequest.id))
            .order_by(logged.desc(), col(SimulationRequest.created_at).desc())
            .limit(limit)
        )
        return [(request, float(hours)) for request, hours in result.all()]
