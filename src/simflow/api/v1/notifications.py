from typing import Annotated
from uuid import UUID

from fastapi import APIRouter, Query

from src.simflow.api.dependencies import CurrentUser, NotificationServiceDep
from src.simflow.schemas.notification import MarkedRead, NotificationRead, UnreadCount
from src.simflow.schemas.pagination import PaginatedResponse

router = APIRouter(prefix="/notifications", tags=["notifications"])


@router.get("", response_model=PaginatedResponse[NotificationRead])
async def list_notifications(
    user: CurrentUser,
    service: NotificationServiceDep,
    cursor: Annotated[str | None, Query(description="Pagination cursor")] = None,
    limit: Annotated[int, Query(ge=1, le=100)] = 50,
    unread_only: bool = False,
) -> PaginatedResponse[NotificationRead]:
    items, next_cursor, has_more = await service.list_for_user(
        user, cursor=cursor, limit=limit, unread_only=unread_only
    )
    return PaginatedResponse(
        items=[NotificationRead.model_validate(n) for n in items],
        next_cursor=next_cursor,
        has_more=has_more,
    )


@router.get("/unread-count", response_model=UnreadCount)
async def unread_count(user: CurrentUser, service: NotificationServiceDep) -> UnreadCount:
    return UnreadCount(unread=await service.unread_count(user))


@router.post("/{notification_id}/read", response_model=NotificationRead)
async def mark_read(
    notification_id: UUID, user: CurrentUser, service: NotificationServiceDep
) -> NotificationRead:
    notification = await service.mark_read(notification_id, user)
    return NotificationRead.model_validate(notification)


@router.post("/read-all", response_model=MarkedRead)
async def mark_all_read(user: CurrentUser, service: NotificationServiceDep) -> MarkedRead:
    return MarkedRead(updated=await service.mark_all_read(user))
