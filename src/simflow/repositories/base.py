"""Base repository with common data access operations."""

from datetime import datetime
from typing import Any
from uuid import UUID

from sqlalchemy import and_, or_
from sqlalchemy.ext.asyncio import AsyncSession
from sqlmodel import SQLModel, select

from src.simflow.schemas.pagination import decode_cursor, encode_cursor

CURSOR_SEPARATOR = "|"


class BaseRepository[ModelType: SQLModel]:
    """Base repository providing common database operations.

    Repositories handle data access only. Transaction control (commit,
    rollback) belongs to the service that owns the unit of work.
    """

    model: type[ModelType]

    def __init__(self, session: AsyncSession):
        self.session = session

    async def get_by_id(self, id: UUID) -> ModelType | None:
        """Get a record by its primary key."""
        result = await self.session.execute(
            select(self.model).where(self.model.id == id)  # type: ignore[attr-defined]
        )
        return result.scalar_one_or_none()

    async def get_for_update(self, id: UUID) -> ModelType | None:
        """Get a record and lock its row until the transaction ends.

        The identity map is bypassed so a concurrent writer's committed
        state is what the caller sees once the lock is granted.
        """
        result = await self.session.execute(
            select(self.model)
            .where(self.model.id == id)  # type: ignore[attr-defined]
            .with_for_update()
            .execution_options(populate_existing=True)
        )
        return result.scalar_one_or_none()

    def add(self, entity: ModelType) -> None:
        """Add entity to session (no flush/commit)."""
        self.session.add(entity)

    async def delete(self, entity: ModelType) -> None:
        """Mark entity for deletion (no commit)."""
        await self.session.delete(entity)

    async def paginate(
        self,
        query: Any,
        cursor: str | None,
        limit: int,
        cursor_field: Any,
    ) -> tuple[list[ModelType], str | None, bool]:
        """Execute keyset pagination on a query, newest first.

        Rows are ordered by ``cursor_field`` and then by primary key, and the
        cursor carries both, so rows sharing a timestamp at a page boundary
        are neither skipped nor repeated.

        Args:
            query: The base select to paginate
            cursor: Optional opaque cursor from a previous page
            limit: Maximum number of items to return
            cursor_field: Datetime column to order and page on

        Returns:
            Tuple of (items, next_cursor, has_more)
        """
        id_field = self.model.id  # type: ignore[attr-defined]
        if cursor:
            try:
                position, _, last_id = decode_cursor(cursor).partition(CURSOR_SEPARATOR)
                position_value = datetime.fromisoformat(position)
                query = query.where(
                    or_(
                        cursor_field < position_value,
                        and_(cursor_field == position_value, id_field < UUID(last_id)),
                    )
                )
            except (ValueError, TypeError):
                # Unreadable cursor restarts from the first page
                pass

        query = query.order_by(cursor_field.desc(), id_field.desc()).limit(limit + 1)

        result = await self.session.execute(query)
        items = list(result.scalars().all())

        has_more = len(items) > limit
        if has_more:
            items = items[:limit]

        next_cursor = None
        if has_more and items:
            last = items[-1]
            position = getattr(last, cursor_field.key)
            next_cursor = encode_cursor(f"{position.isoformat()}{CURSOR_SEPARATOR}{last.id}")

        return items, next_cursor, has_more
