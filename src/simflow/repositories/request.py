"""Repositories for simulation requests and request-scoped records."""

from dataclasses import dataclass
from datetime import datetime
from uuid import UUID

from sqlalchemy import func, or_
from sqlmodel import col, select

from src.simflow.models import (
    Comment,
    DiscussionRequest,
    DiscussionStatus,
    RequestPriority,
    RequestStatus,
    SimulationRequest,
    TimeEntry,
    TitleChangeRequest,
    TitleChangeStatus,
)
from src.simflow.repositories.base import BaseRepository
from src.simflow.workflow.views import ATTENTION_STATUSES


@dataclass(frozen=True)
class RequestFilter:
    """Filter values for listing requests. Unset fields do not filter."""

    status: RequestStatus | None = None
    priority: RequestPriority | None = None
    project_id: UUID | None = None
    created_by: UUID | None = None
    assigned_to: UUID | None = None
    visible_to: UUID | None = None
    needs_attention: bool = False
    created_before: datetime | None = None
    created_since: datetime | None = None


class RequestRepository(BaseRepository[SimulationRequest]):
    model = SimulationRequest

    async def list_filtered(
        self,
        filters: RequestFilter,
        cursor: str | None = None,
        limit: int = 50,
    ) -> tuple[list[SimulationRequest], str | None, bool]:
        query = select(SimulationRequest)
        if filters.status:
            query = query.where(SimulationRequest.status == filters.status.value)
        if filters.priority:
            query = query.where(SimulationRequest.priority == filters.priority.value)
        if filters.project_id:
            query = query.where(SimulationRequest.project_id == filters.project_id)
        if filters.created_by:
            query = query.where(SimulationRequest.created_by == filters.created_by)
        if filters.assigned_to:
            query = query.where(SimulationRequest.assigned_to == filters.assigned_to)
        if filters.visible_to:
            query = query.where(
                or_(
                    SimulationRequest.created_by == filters.visible_to,
                    SimulationRequest.assigned_to == filters.visible_to,
                )
            )
        if filters.needs_attention:
            query = query.where(
                or_(
                    SimulationRequest.priority == RequestPriority.HIGH.value,
                    col(SimulationRequest.status).in_([s.value for s in ATTENTION_STATUSES]),
                )
            )
        if filters.created_before:
            query = query.where(SimulationRequest.created_at < filters.created_before)
        if filters.created_since:
            query = query.where(SimulationRequest.created_at >= filters.created_since)
        return await self.paginate(query, cursor, limit, SimulationRequest.created_at)

    async def list_for_project(self, project_id: UUID) -> list[SimulationRequest]:
        result = await self.session.execute(
            select(SimulationRequest).where(SimulationRequest.project_id == project_id)
        )
        return list(result.scalars().all())

    async def count_for_project(self, project_id: UUID) -> int:
        result = await self.session.execute(
            select(func.count())
            .select_from(SimulationRequest)
            .where(SimulationRequest.project_id == project_id)
        )
        return int(result.scalar_one())

    async def count_by_status_for_project(self, project_id: UUID) -> dict[str, int]:
        result = await self.session.execute(
            select(SimulationRequest.status, func.count())
            .where(SimulationRequest.project_id == project_id)
            .group_by(SimulationRequest.status)
        )
        return {status: count for status, count in result.all()}

    async def assigned_engineer_ids(self, project_id: UUID) -> set[UUID]:
        result = await self.session.execute(
            select(SimulationRequest.assigned_to)
            .where(
                SimulationRequest.project_id == project_id,
                col(SimulationRequest.assigned_to).is_not(None),
            )
            .distinct()
        )
        return set(result.scalars().all())


class CommentRepository(BaseRepository[Comment]):
    model = Comment

    async def list_for_request(
        self, request_id: UUID, include_internal: bool = True
    ) -> list[Comment]:
        query = select(Comment).where(Comment.request_id == request_id)
        if not include_internal:
            query = query.where(col(Comment.visible_to_requester).is_(True))
        result = await self.session.execute(query.order_by(col(Comment.created_at)))
        return list(result.scalars().all())


class TimeEntryRepository(BaseRepository[TimeEntry]):
    model = TimeEntry

    async def list_for_request(self, request_id: UUID) -> list[TimeEntry]:
        result = await self.session.execute(
            select(TimeEntry)
            .where(TimeEntry.request_id == request_id)
            .order_by(col(TimeEntry.created_at).desc())
        )
        return list(result.scalars().all())

    async def total_hours(self, request_id: UUID) -> float:
        result = await self.session.execute(
            select(func.coalesce(func.sum(TimeEntry.hours), 0.0)).where(
                TimeEntry.request_id == request_id
            )
        )
        return float(result.scalar_one())


class TitleChangeRepository(BaseRepository[TitleChangeRequest]):
    model = TitleChangeRequest

    async def list_for_request(self, request_id: UUID) -> list[TitleChangeRequest]:
        result = await self.session.execute(
            select(TitleChangeRequest)
            .where(TitleChangeRequest.request_id == request_id)
            .order_by(col(TitleChangeRequest.created_at).desc())
        )
        return list(result.scalars().all())

    async def list_pending(self) -> list[TitleChangeRequest]:
        result = await self.session.execute(
            select(TitleChangeRequest)
            .where(TitleChangeRequest.status == TitleChangeStatus.PENDING.value)
            .order_by(col(TitleChangeRequest.created_at).desc())
        )
        return list(result.scalars().all())


class DiscussionRepository(BaseRepository[DiscussionRequest]):
    model = DiscussionRequest

    async def list_for_request(self, request_id: UUID) -> list[DiscussionRequest]:
        result = await self.session.execute(
            select(DiscussionRequest)
            .where(DiscussionRequest.request_id == request_id)
            .order_by(col(DiscussionRequest.created_at).desc())
        )
        return list(result.scalars().all())

    async def latest_pending(self, request_id: UUID) -> DiscussionRequest | None:
        result = await self.session.execute(
            select(DiscussionRequest)
            .where(
                DiscussionRequest.request_id == request_id,
                DiscussionRequest.status == DiscussionStatus.PENDING.value,
            )
            .order_by(col(DiscussionRequest.created_at).desc())
            .limit(1)
        )
        return result.scalar_one_or_none()
