"""Simulation request endpoints.

Status changes go through ``/actions/...`` (or the generic ``/transition``);
everything else on a request is plain CRUD around the same service layer.
"""

from typing import Annotated
from uuid import UUID

from fastapi import APIRouter, Query, Response, status

from src.simflow.api.dependencies import (
    CurrentUser,
    RequestServiceDep,
    RequestWorkflowServiceDep,
    TransitionExecutorDep,
)
from src.simflow.models import EntityType, RequestPriority, RequestStatus
from src.simflow.schemas.pagination import PaginatedResponse
from src.simflow.schemas.request import (
    AssignEngineer,
    CommentCreate,
    CommentRead,
    DescriptionUpdate,
    DiscussionCreate,
    DiscussionRead,
    DiscussionReview,
    RequestCreate,
    RequestDetail,
    RequestRead,
    RequesterUpdate,
    RequestSort,
    RequestView,
    TimeEntryCreate,
    TimeEntryRead,
    TitleChangeCreate,
    TitleChangeRead,
    TitleChangeReview,
    TitleUpdate,
    TransitionBody,
    WorkflowActionBody,
)
from src.simflow.services import TransitionCommand
from src.simflow.services.request_service import describe
from src.simflow.workflow import RequestAction

router = APIRouter(prefix="/requests", tags=["requests"])

CursorQuery = Annotated[str | None, Query(description="Pagination cursor")]
LimitQuery = Annotated[int, Query(ge=1, le=100, description="Items per page")]

WORKFLOW_ERRORS = {
    403: {"description": "Role or relationship does not allow the action"},
    404: {"description": "Request not found or not visible"},
    409: {"description": "Invalid transition, stale version or insufficient hours"},
    422: {"description": "Invalid payload"},
}


@router.post("", response_model=RequestDetail, status_code=status.HTTP_201_CREATED)
async def create_request(
    data: RequestCreate, user: CurrentUser, service: RequestServiceDep
) -> RequestDetail:
    request = await service.create(data, user)
    return describe(request, user)


@router.get("", response_model=PaginatedResponse[RequestRead])
async def list_requests(
    user: CurrentUser,
    service: RequestServiceDep,
    view: Annotated[RequestView, Query(description="Which slice of requests")] = RequestView.ALL,
    status_filter: Annotated[RequestStatus | None, Query(alias="status")] = None,
    priority: RequestPriority | None = None,
    project_id: UUID | None = None,
    archived: Annotated[
        bool | None, Query(description="True for old requests, false for recent ones")
    ] = None,
    cursor: CursorQuery = None,
    limit: LimitQuery = 50,
    sort: RequestSort = RequestSort.NEWEST,
) -> PaginatedResponse[RequestRead]:
    requests, next_cursor, has_more = await service.list_requests(
        user,
        view=view,
        status=status_filter,
        priority=priority,
        project_id=project_id,
        archived=archived,
        cursor=cursor,
        limit=limit,
        sort=sort,
    )
    return PaginatedResponse(
        items=[RequestRead.model_validate(r) for r in requests],
        next_cursor=next_cursor,
        has_more=has_more,
    )


# Declared before /{request_id} so the literal path wins
@router.get("/title-changes/pending", response_model=list[TitleChangeRead])
async def list_pending_title_changes(
    user: CurrentUser, service: RequestServiceDep
) -> list[TitleChangeRead]:
    changes = await service.list_pending_title_changes(user)
    return [TitleChangeRead.model_validate(c) for c in changes]


@router.post("/title-changes/{change_id}/review", response_model=TitleChangeRead)
async def review_title_change(
    change_id: UUID, body: TitleChangeReview, user: CurrentUser, service: RequestServiceDep
) -> TitleChangeRead:
    change = await service.review_title_change(change_id, body.approved, user)
    return TitleChangeRead.model_validate(change)


@router.get("/{request_id}", response_model=RequestDetail)
async def get_request(
    request_id: UUID, user: CurrentUser, service: RequestServiceDep
) -> RequestDetail:
    """A request with the actions the caller may take on it."""
    return describe(await service.get(request_id, user), user)


@router.patch("/{request_id}/title", response_model=RequestDetail, responses=WORKFLOW_ERRORS)
async def update_title(
    request_id: UUID, body: TitleUpdate, user: CurrentUser, service: RequestServiceDep
) -> RequestDetail:
    request = await service.update_title(
        request_id, body.title, user, expected_version=body.expected_version
    )
    return describe(request, user)


@router.patch(
    "/{request_id}/description", response_model=RequestDetail, responses=WORKFLOW_ERRORS
)
async def update_description(
    request_id: UUID, body: DescriptionUpdate, user: CurrentUser, service: RequestServiceDep
) -> RequestDetail:
    request = await service.update_description(
        request_id, body.description, user, expected_version=body.expected_version
    )
    return describe(request, user)


@router.patch("/{request_id}/requester", response_model=RequestDetail, responses=WORKFLOW_ERRORS)
async def change_requester(
    request_id: UUID, body: RequesterUpdate, user: CurrentUser, service: RequestServiceDep
) -> RequestDetail:
    request = await service.change_requester(request_id, body.user_id, user)
    return describe(request, user)


@router.delete(
    "/{request_id}", status_code=status.HTTP_204_NO_CONTENT, responses=WORKFLOW_ERRORS
)
async def delete_request(
    request_id: UUID, user: CurrentUser, service: RequestServiceDep
) -> Response:
    await service.delete(request_id, user)
    return Response(status_code=status.HTTP_204_NO_CONTENT)


# Workflow actions


@router.post("/{request_id}/assign", response_model=RequestDetail, responses=WORKFLOW_ERRORS)
async def assign_request(
    request_id: UUID,
    body: AssignEngineer,
    user: CurrentUser,
    workflow: RequestWorkflowServiceDep,
) -> RequestDetail:
    """Assign an engineer and reserve the estimated hours on the project."""
    request = await workflow.perform(
        request_id,
        RequestAction.ASSIGN,
        user,
        payload=body.model_dump(exclude={"expected_version"}),
        expected_version=body.expected_version,
    )
    return describe(request, user)


@router.post(
    "/{request_id}/discussion", response_model=RequestDetail, responses=WORKFLOW_ERRORS
)
async def request_discussion(
    request_id: UUID,
    body: DiscussionCreate,
    user: CurrentUser,
    workflow: RequestWorkflowServiceDep,
) -> RequestDetail:
    request = await workflow.perform(
        request_id,
        RequestAction.REQUEST_DISCUSSION,
        user,
        payload=body.model_dump(exclude={"expected_version"}),
        expected_version=body.expected_version,
    )
    return describe(request, user)


@router.post(
    "/{request_id}/discussion/resolve", response_model=RequestDetail, responses=WORKFLOW_ERRORS
)
async def resolve_discussion(
    request_id: UUID,
    body: DiscussionReview,
    user: CurrentUser,
    workflow: RequestWorkflowServiceDep,
) -> RequestDetail:
    """Approve, override or deny the engineer's pending hours discussion."""
    request = await workflow.perform(
        request_id,
        RequestAction.RESOLVE_DISCUSSION,
        user,
        payload=body.model_dump(exclude={"expected_version"}),
        expected_version=body.expected_version,
    )
    return describe(request, user)


@router.post(
    "/{request_id}/actions/{action}", response_model=RequestDetail, responses=WORKFLOW_ERRORS
)
async def perform_action(
    request_id: UUID,
    action: RequestAction,
    user: CurrentUser,
    workflow: RequestWorkflowServiceDep,
    body: WorkflowActionBody | None = None,
) -> RequestDetail:
    """Run a status-changing action that takes no payload.

    Actions with a payload (assign, discussion, resolve) have their own
    endpoints; sending them here fails payload validation.
    """
    request = await workflow.perform(
        request_id,
        action,
        user,
        expected_version=body.expected_version if body else None,
    )
    return describe(request, user)


@router.post(
    "/{request_id}/transition", response_model=RequestDetail, responses=WORKFLOW_ERRORS
)
async def transition_request(
    request_id: UUID,
    body: TransitionBody,
    user: CurrentUser,
    executor: TransitionExecutorDep,
) -> RequestDetail:
    """Move a request to a target status; the matching action is looked up."""
    request = await executor.execute(
        TransitionCommand(
            entity_type=EntityType.REQUEST,
            entity_id=request_id,
            target_status=body.target_status.value,
            actor=user,
            reason=body.reason,
            extra=body.extra,
            expected_version=body.expected_version,
        )
    )
    return describe(request, user)


# Title changes


@router.get("/{request_id}/title-changes", response_model=list[TitleChangeRead])
async def list_title_changes(
    request_id: UUID, user: CurrentUser, service: RequestServiceDep
) -> list[TitleChangeRead]:
    changes = await service.list_title_changes(request_id, user)
    return [TitleChangeRead.model_validate(c) for c in changes]


@router.post(
    "/{request_id}/title-changes",
    response_model=TitleChangeRead,
    status_code=status.HTTP_201_CREATED,
    responses=WORKFLOW_ERRORS,
)
async def propose_title_change(
    request_id: UUID, body: TitleChangeCreate, user: CurrentUser, service: RequestServiceDep
) -> TitleChangeRead:
    change = await service.propose_title_change(request_id, body.proposed_title, user)
    return TitleChangeRead.model_validate(change)


@router.get("/{request_id}/discussions", response_model=list[DiscussionRead])
async def list_discussions(
    request_id: UUID, user: CurrentUser, service: RequestServiceDep
) -> list[DiscussionRead]:
    discussions = await service.list_discussions(request_id, user)
    return [DiscussionRead.model_validate(d) for d in discussions]


# Comments and time


@router.get("/{request_id}/comments", response_model=list[CommentRead])
async def list_comments(
    request_id: UUID, user: CurrentUser, service: RequestServiceDep
) -> list[CommentRead]:
    comments = await service.list_comments(request_id, user)
    return [CommentRead.model_validate(c) for c in comments]


@router.post(
    "/{request_id}/comments", response_model=CommentRead, status_code=status.HTTP_201_CREATED
)
async def add_comment(
    request_id: UUID, body: CommentCreate, user: CurrentUser, service: RequestServiceDep
) -> CommentRead:
    comment = await service.add_comment(request_id, body, user)
    return CommentRead.model_validate(comment)


@router.get("/{request_id}/time-entries", response_model=list[TimeEntryRead])
async def list_time_entries(
    request_id: UUID, user: CurrentUser, service: RequestServiceDep
) -> list[TimeEntryRead]:
    entries = await service.list_time_entries(request_id, user)
    return [TimeEntryRead.model_validate(e) for e in entries]


@router.post(
    "/{request_id}/time-entries",
    response_model=TimeEntryRead,
    status_code=status.HTTP_201_CREATED,
    responses=WORKFLOW_ERRORS,
)
async def log_time(
    request_id: UUID, body: TimeEntryCreate, user: CurrentUser, service: RequestServiceDep
) -> TimeEntryRead:
    entry = await service.log_time(request_id, body, user)
    return TimeEntryRead.model_validate(entry)
