"""Audit log endpoints - admin only."""

from typing import Annotated
from uuid import UUID

from fastapi import APIRouter, Query

from src.simflow.api.dependencies import AdminUser, AuditServiceDep
from src.simflow.schemas.audit import AuditLogRead
from src.simflow.schemas.pagination import PaginatedResponse

router = APIRouter(prefix="/audit", tags=["audit"])

# Query parameter types
CursorQuery = Annotated[str | None, Query(description="Pagination cursor")]
LimitQuery = Annotated[int, Query(ge=1, le=100, description="Items per page")]
ActionQuery = Annotated[str | None, Query(description="Filter by action, e.g. request.transition")]
EntityTypeQuery = Annotated[str | None, Query(description="Filter by entity type")]
EntityIdQuery = Annotated[UUID | None, Query(description="Filter by entity ID")]
ActorIdQuery = Annotated[UUID | None, Query(description="Filter by acting user")]


@router.get(
    "/logs",
    response_model=PaginatedResponse[AuditLogRead],
    responses={403: {"description": "Admin access required"}},
)
async def list_audit_logs(
    _: AdminUser,
    audit_service: AuditServiceDep,
    cursor: CursorQuery = None,
    limit: LimitQuery = 50,
    action: ActionQuery = None,
    entity_type: EntityTypeQuery = None,
    entity_id: EntityIdQuery = None,
    actor_id: ActorIdQuery = None,
) -> PaginatedResponse[AuditLogRead]:
    """List audit logs, newest first."""
    logs, next_cursor, has_more = await audit_service.list_logs(
        cursor=cursor,
        limit=limit,
        action=action,
        entity_type=entity_type,
        entity_id=entity_id,
        actor_id=actor_id,
    )
    return PaginatedResponse(
        items=[AuditLogRead.model_validate(log) for log in logs],
        next_cursor=next_cursor,
        has_more=has_more,
    )


@router.get("/{entity_type}/{entity_id}", response_model=PaginatedResponse[AuditLogRead])
async def entity_history(
    entity_type: str,
    entity_id: UUID,
    _: AdminUser,
    audit_service: AuditServiceDep,
    cursor: CursorQuery = None,
    limit: LimitQuery = 50,
) -> PaginatedResponse[AuditLogRead]:
    """Everything recorded against one entity."""
    logs, next_cursor, has_more = await audit_service.list_entity_history(
        entity_type, entity_id, cursor=cursor, limit=limit
    )
    return PaginatedResponse(
        items=[AuditLogRead.model_validate(log) for log in logs],
        next_cursor=next_cursor,
        has_more=has_more,
    )
