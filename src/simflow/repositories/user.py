"""Repository for User entity."""

from sqlmodel import select

from src.simflow.models import User, UserRole
from src.simflow.repositories.base import BaseRepository


class UserRepository(BaseRepository[User]):
    model = User

    async def get_by_email(self, email: str) -> User | None:
        result = await self.session.execute(select(User).where(User.email == email))
        return result.scalar_one_or_none()

    async def exists_by_email(self, email: str) -> bool:
        return await self.get_by_email(email) is not None

    async def list_active_by_role(self, role: UserRole) -> list[User]:
        """Active users holding ``role``, e.g. every manager to notify."""
        result = await self.session.execute(
            select(User).where(User.role == role.value, User.is_active.is_(True))  # type: ignore[attr-defined]
        )
        return list(result.scalars().all())

    async def list_all(
        self,
        cursor: str | None = None,
        limit: int = 50,
        role: UserRole | None = None,
    ) -> tuple[list[User], str | None, bool]:
        query = select(User)
        if role:
            query = query.where(User.role == role.value)
        return await self.paginate(query, cursor, limit, User.created_at)
