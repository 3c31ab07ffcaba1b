"""Project endpoints: lifecycle, hour budget and milestones."""

from typing import Annotated
from uuid import UUID

from fastapi import APIRouter, Query, Response, status

from src.simflow.api.dependencies import CurrentUser, ManagerUser, ProjectServiceDep
from src.simflow.models import ProjectStatus
from src.simflow.schemas.pagination import PaginatedResponse
from src.simflow.schemas.project import (
    BudgetExtension,
    CanAcceptRequests,
    ExpireOverdueResult,
    HourAdjustment,
    HourAvailability,
    HourTransactionRead,
    MilestoneCreate,
    MilestoneRead,
    MilestoneUpdate,
    ProjectCreate,
    ProjectMetrics,
    ProjectRead,
    ProjectRename,
    ProjectTransitionBody,
    ProjectTransitionResult,
    ReassignRequests,
    ReassignResult,
    StatusHistoryRead,
    ValidTransitions,
)
from src.simflow.workflow import valid_next_states

router = APIRouter(prefix="/projects", tags=["projects"])

# Query parameter types
CursorQuery = Annotated[str | None, Query(description="Pagination cursor")]
LimitQuery = Annotated[int, Query(ge=1, le=100, description="Items per page")]
StatusQuery = Annotated[
    list[ProjectStatus] | None, Query(alias="status", description="Filter by status, repeatable")
]


@router.get("", response_model=PaginatedResponse[ProjectRead])
async def list_projects(
    _: CurrentUser,
    service: ProjectServiceDep,
    cursor: CursorQuery = None,
    limit: LimitQuery = 50,
    statuses: StatusQuery = None,
    owner_id: UUID | None = None,
) -> PaginatedResponse[ProjectRead]:
    projects, next_cursor, has_more = await service.list_projects(
        cursor=cursor, limit=limit, statuses=statuses, owner_id=owner_id
    )
    return PaginatedResponse(
        items=[ProjectRead.model_validate(p) for p in projects],
        next_cursor=next_cursor,
        has_more=has_more,
    )


@router.post(
    "",
    response_model=ProjectRead,
    status_code=status.HTTP_201_CREATED,
    responses={403: {"description": "Only managers and admins may choose the initial status"}},
)
async def create_project(
    data: ProjectCreate, user: CurrentUser, service: ProjectServiceDep
) -> ProjectRead:
    """Create a project.

    Managers and admins get an Active project by default; anyone else who
    may create projects gets a Pending one that needs approval.
    """
    return ProjectRead.model_validate(await service.create(data, user))


@router.get("/near-deadline", response_model=list[ProjectRead])
async def near_deadline(
    _: ManagerUser,
    service: ProjectServiceDep,
    days: Annotated[int | None, Query(ge=0, le=365)] = None,
) -> list[ProjectRead]:
    return [ProjectRead.model_validate(p) for p in await service.near_deadline(days)]


@router.post("/expire-overdue", response_model=ExpireOverdueResult)
async def expire_overdue(user: ManagerUser, service: ProjectServiceDep) -> ExpireOverdueResult:
    """Expire every Active project whose deadline has passed."""
    return ExpireOverdueResult(expired=await service.expire_overdue(user))


@router.get("/{project_id}", response_model=ProjectRead)
async def get_project(
    project_id: UUID, _: CurrentUser, service: ProjectServiceDep
) -> ProjectRead:
    return ProjectRead.model_validate(await service.get(project_id))


@router.patch("/{project_id}", response_model=ProjectRead)
async def rename_project(
    project_id: UUID, body: ProjectRename, user: CurrentUser, service: ProjectServiceDep
) -> ProjectRead:
    project = await service.rename(
        project_id, body.name, user, expected_version=body.expected_version
    )
    return ProjectRead.model_validate(project)


@router.delete(
    "/{project_id}",
    status_code=status.HTTP_204_NO_CONTENT,
    responses={409: {"description": "Project still has requests"}},
)
async def delete_project(
    project_id: UUID, user: CurrentUser, service: ProjectServiceDep
) -> Response:
    await service.delete(project_id, user)
    return Response(status_code=status.HTTP_204_NO_CONTENT)


@router.post(
    "/{project_id}/transition",
    response_model=ProjectTransitionResult,
    responses={
        403: {"description": "Role may not make this transition"},
        409: {"description": "Transition not allowed from the current status"},
        422: {"description": "A reason is required for this target status"},
    },
)
async def transition_project(
    project_id: UUID,
    body: ProjectTransitionBody,
    user: CurrentUser,
    service: ProjectServiceDep,
) -> ProjectTransitionResult:
    project, history = await service.transition_status(
        project_id,
        body.status,
        user,
        reason=body.reason,
        expected_version=body.expected_version,
    )
    return ProjectTransitionResult(
        project=ProjectRead.model_validate(project),
        history_id=history.id,
        valid_next_states=valid_next_states(project.status),
    )


@router.get("/{project_id}/transitions", response_model=ValidTransitions)
async def list_valid_transitions(
    project_id: UUID, _: CurrentUser, service: ProjectServiceDep
) -> ValidTransitions:
    return await service.valid_transitions(project_id)


@router.get("/{project_id}/history", response_model=list[StatusHistoryRead])
async def status_history(
    project_id: UUID, _: CurrentUser, service: ProjectServiceDep
) -> list[StatusHistoryRead]:
    return [StatusHistoryRead.model_validate(h) for h in await service.history(project_id)]


# Hours


@router.get(
    "/{project_id}/hour-transactions", response_model=PaginatedResponse[HourTransactionRead]
)
async def hour_transactions(
    project_id: UUID,
    _: ManagerUser,
    service: ProjectServiceDep,
    cursor: CursorQuery = None,
    limit: LimitQuery = 50,
) -> PaginatedResponse[HourTransactionRead]:
    rows, next_cursor, has_more = await service.hour_transactions(project_id, cursor, limit)
    return PaginatedResponse(
        items=[HourTransactionRead.model_validate(r) for r in rows],
        next_cursor=next_cursor,
        has_more=has_more,
    )


@router.post("/{project_id}/extend", response_model=ProjectRead)
async def extend_budget(
    project_id: UUID, body: BudgetExtension, user: CurrentUser, service: ProjectServiceDep
) -> ProjectRead:
    project = await service.extend_budget(project_id, body.additional_hours, body.reason, user)
    return ProjectRead.model_validate(project)


@router.post("/{project_id}/adjust", response_model=ProjectRead)
async def adjust_hours(
    project_id: UUID, body: HourAdjustment, user: CurrentUser, service: ProjectServiceDep
) -> ProjectRead:
    """Correct used hours by hand; positive charges, negative releases."""
    project = await service.adjust_hours(project_id, body.hours, body.reason, user)
    return ProjectRead.model_validate(project)


@router.get("/{project_id}/availability", response_model=HourAvailability)
async def availability(
    project_id: UUID,
    _: CurrentUser,
    service: ProjectServiceDep,
    hours: Annotated[float, Query(ge=0)] = 0,
) -> HourAvailability:
    return await service.availability(project_id, hours)


@router.get("/{project_id}/can-accept", response_model=CanAcceptRequests)
async def can_accept_requests(
    project_id: UUID, _: CurrentUser, service: ProjectServiceDep
) -> CanAcceptRequests:
    return await service.can_accept_requests(project_id)


@router.get("/{project_id}/metrics", response_model=ProjectMetrics)
async def metrics(
    project_id: UUID, _: ManagerUser, service: ProjectServiceDep
) -> ProjectMetrics:
    return await service.metrics(project_id)


@router.post("/{project_id}/reassign", response_model=ReassignResult)
async def reassign_requests(
    project_id: UUID, body: ReassignRequests, user: CurrentUser, service: ProjectServiceDep
) -> ReassignResult:
    moved = await service.reassign_requests(project_id, body.target_project_id, user)
    return ReassignResult(moved=moved, target_project_id=body.target_project_id)


# Milestones


@router.get("/{project_id}/milestones", response_model=list[MilestoneRead])
async def list_milestones(
    project_id: UUID, _: CurrentUser, service: ProjectServiceDep
) -> list[MilestoneRead]:
    return [MilestoneRead.model_validate(m) for m in await service.list_milestones(project_id)]


@router.post(
    "/{project_id}/milestones",
    response_model=MilestoneRead,
    status_code=status.HTTP_201_CREATED,
)
async def create_milestone(
    project_id: UUID, body: MilestoneCreate, user: CurrentUser, service: ProjectServiceDep
) -> MilestoneRead:
    return MilestoneRead.model_validate(await service.create_milestone(project_id, body, user))


@router.patch("/{project_id}/milestones/{milestone_id}", response_model=MilestoneRead)
async def update_milestone(
    project_id: UUID,
    milestone_id: UUID,
    body: MilestoneUpdate,
    user: CurrentUser,
    service: ProjectServiceDep,
) -> MilestoneRead:
    milestone = await service.update_milestone_status(project_id, milestone_id, body.status, user)
    return MilestoneRead.model_validate(milestone)
