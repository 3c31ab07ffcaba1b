"""Repositories for projects and their ledger, history and milestones."""

from datetime import date
from uuid import UUID

from sqlalchemy import func
from sqlmodel import col, select

from src.simflow.models import (
    HourTransactionType,
    Project,
    ProjectHourTransaction,
    ProjectMilestone,
    ProjectStatus,
    ProjectStatusHistory,
)
from src.simflow.repositories.base import BaseRepository

# Ledger rows that move used hours; extensions and rollovers move the total
USAGE_TRANSACTION_TYPES = (
    HourTransactionType.ALLOCATION.value,
    HourTransactionType.DEALLOCATION.value,
    HourTransactionType.ADJUSTMENT.value,
    HourTransactionType.COMPLETION.value,
)


class ProjectRepository(BaseRepository[Project]):
    model = Project

    async def get_by_code(self, code: str) -> Project | None:
        result = await self.session.execute(select(Project).where(Project.code == code))
        return result.scalar_one_or_none()

    async def latest_code_for_year(self, year: int) -> str | None:
        """Highest code issued for ``year``. Codes are fixed width, so text order works."""
        result = await self.session.execute(
            select(Project.code)
            .where(col(Project.code).like(f"%-{year}"))
            .order_by(col(Project.code).desc())
            .limit(1)
        )
        return result.scalar_one_or_none()

    async def list_filtered(
        self,
        cursor: str | None = None,
        limit: int = 50,
        statuses: list[ProjectStatus] | None = None,
        owner_id: UUID | None = None,
    ) -> tuple[list[Project], str | None, bool]:
        query = select(Project)
        if statuses:
            query = query.where(col(Project.status).in_([s.value for s in statuses]))
        if owner_id:
            query = query.where(Project.owner_id == owner_id)
        return await self.paginate(query, cursor, limit, Project.created_at)

    async def list_with_deadline_between(
        self,
        start: date,
        end: date,
        statuses: list[ProjectStatus],
    ) -> list[Project]:
        result = await self.session.execute(
            select(Project)
            .where(
                col(Project.status).in_([s.value for s in statuses]),
                col(Project.deadline).is_not(None),
                col(Project.deadline) >= start,
                col(Project.deadline) <= end,
            )
            .order_by(col(Project.deadline))
        )
        return list(result.scalars().all())

    async def list_overdue_ids(self, today: date) -> list[UUID]:
        """Active projects whose deadline has passed."""
        result = await self.session.execute(
            select(Project.id).where(
                Project.status == ProjectStatus.ACTIVE.value,
                col(Project.deadline).is_not(None),
                col(Project.deadline) < today,
            )
        )
        return list(result.scalars().all())


class HourTransactionRepository(BaseRepository[ProjectHourTransaction]):
    model = ProjectHourTransaction

    async def list_for_project(
        self,
        project_id: UUID,
        cursor: str | None = None,
        limit: int = 50,
    ) -> tuple[list[ProjectHourTransaction], str | None, bool]:
        query = select(ProjectHourTransaction).where(
            ProjectHourTransaction.project_id == project_id
        )
        return await self.paginate(query, cursor, limit, ProjectHourTransaction.created_at)

    async def sum_usage(self, project_id: UUID) -> float:
        """Used hours as reconstructed from the ledger alone."""
        result = await self.session.execute(
            select(func.coalesce(func.sum(ProjectHourTransaction.hours), 0.0)).where(
                ProjectHourTransaction.project_id == project_id,
                col(ProjectHourTransaction.transaction_type).in_(USAGE_TRANSACTION_TYPES),
            )
        )
        return float(result.scalar_one())


class StatusHistoryRepository(BaseRepository[ProjectStatusHistory]):
    model = ProjectStatusHistory

    async def list_for_project(self, project_id: UUID) -> list[ProjectStatusHistory]:
        result = await self.session.execute(
            select(ProjectStatusHistory)
            .where(ProjectStatusHistory.project_id == project_id)
            .order_by(col(ProjectStatusHistory.created_at).desc())
        )
        return list(result.scalars().all())


class MilestoneRepository(BaseRepository[ProjectMilestone]):
    model = ProjectMilestone

    async def list_for_project(self, project_id: UUID) -> list[ProjectMilestone]:
        result = await self.session.execute(
            select(ProjectMilestone)
            .where(ProjectMilestone.project_id == project_id)
            .order_by(col(ProjectMilestone.target_date), col(ProjectMilestone.created_at))
        )
        return list(result.scalars().all())

    async def count_by_status(self, project_id: UUID) -> dict[str, int]:
        result = await self.session.execute(
            select(ProjectMilestone.status, func.count())
            .where(ProjectMilestone.project_id == project_id)
            .group_by(ProjectMilestone.status)
        )
        return {status: count for status, count in result.all()}
