"""User administration endpoints."""

from typing import Annotated
from uuid import UUID

from fastapi import APIRouter, Query, status

from src.simflow.api.dependencies import AdminUser, UserServiceDep
from src.simflow.models import UserRole
from src.simflow.schemas.pagination import PaginatedResponse
from src.simflow.schemas.user import UserCreate, UserRead, UserUpdate

router = APIRouter(prefix="/users", tags=["users"])


@router.get("", response_model=PaginatedResponse[UserRead])
async def list_users(
    _: AdminUser,
    service: UserServiceDep,
    cursor: Annotated[str | None, Query(description="Pagination cursor")] = None,
    limit: Annotated[int, Query(ge=1, le=100)] = 50,
    role: Annotated[UserRole | None, Query(description="Filter by role")] = None,
) -> PaginatedResponse[UserRead]:
    users, next_cursor, has_more = await service.list_users(cursor, limit, role)
    return PaginatedResponse(
        items=[UserRead.model_validate(u) for u in users],
        next_cursor=next_cursor,
        has_more=has_more,
    )


@router.post("", response_model=UserRead, status_code=status.HTTP_201_CREATED)
async def create_user(data: UserCreate, admin: AdminUser, service: UserServiceDep) -> UserRead:
    user = await service.create(data, admin)
    return UserRead.model_validate(user)


@router.get("/{user_id}", response_model=UserRead)
async def get_user(user_id: UUID, _: AdminUser, service: UserServiceDep) -> UserRead:
    return UserRead.model_validate(await service.get(user_id))


@router.patch("/{user_id}", response_model=UserRead)
async def update_user(
    user_id: UUID, data: UserUpdate, admin: AdminUser, service: UserServiceDep
) -> UserRead:
    """Change a user's name, role or active flag."""
    user = await service.update(user_id, data, admin)
    return UserRead.model_validate(user)
