from uuid import UUID

from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from src.simflow.core.security import hash_password
from src.simflow.models import AuditAction, EntityType, User, UserRole
from src.simflow.models.base import utc_now
from src.simflow.repositories import UserRepository
from src.simflow.schemas.user import UserCreate, UserUpdate
from src.simflow.services.audit_service import AuditService
from src.simflow.workflow import NotFound, ValidationFailed


class UserService:
    """User management service."""

    def __init__(self, user_repo: UserRepository, audit: AuditService, session: AsyncSession):
        self.user_repo = user_repo
        self.audit = audit
        self.session = session

    async def get(self, user_id: UUID) -> User:
        user = await self.user_repo.get_by_id(user_id)
        if user is None:
            raise NotFound(EntityType.USER.value, user_id)
        return user

    async def list_users(
        self, cursor: str | None = None, limit: int = 50, role: UserRole | None = None
    ) -> tuple[list[User], str | None, bool]:
        return await self.user_repo.list_all(cursor, limit, role)

    async def create(self, data: UserCreate, actor: User) -> User:
        email = data.email.lower()
        if await self.user_repo.exists_by_email(email):
            raise ValidationFailed("A user with this email already exists")

        user = User(
            email=email,
            name=data.name,
            role=data.role.value,
            hashed_password=hash_password(data.password),
        )
        try:
            self.user_repo.add(user)
            await self.session.commit()
        except IntegrityError as e:
            await self.session.rollback()
            raise ValidationFailed("A user with this email already exists") from e

        await self.audit.log_success(
            AuditAction.USER_CREATE,
            EntityType.USER,
            entity_id=user.id,
            actor_id=actor.id,
            changes={"email": email, "role": user.role},
        )
        return user

    async def update(self, user_id: UUID, data: UserUpdate, actor: User) -> User:
        """Apply admin changes to name, role or the active flag."""
        update_data = data.model_dump(exclude_unset=True, exclude_none=True)
        if user_id == actor.id and (
            update_data.get("is_active") is False or "role" in update_data
        ):
            raise ValidationFailed("Admins cannot change their own role or deactivate themselves")

        try:
            user = await self.user_repo.get_for_update(user_id)
            if user is None:
                raise NotFound(EntityType.USER.value, user_id)

            changes = {}
            for field, value in update_data.items():
                if isinstance(value, UserRole):
                    value = value.value
                if getattr(user, field) != value:
                    changes[field] = {"from": getattr(user, field), "to": value}
                    setattr(user, field, value)
            user.updated_at = utc_now()
            await self.session.commit()
        except Exception:
            await self.session.rollback()
            raise

        await self.audit.log_success(
            AuditAction.USER_UPDATE,
            EntityType.USER,
            entity_id=user.id,
            actor_id=actor.id,
            changes=changes,
        )
        return user
