"""Repository for Notification entity."""

from uuid import UUID

from sqlalchemy import func, update
from sqlmodel import col, select

from src.simflow.models import Notification
from src.simflow.models.base import utc_now
from src.simflow.repositories.base import BaseRepository


class NotificationRepository(BaseRepository[Notification]):
    model = Notification

    async def list_for_recipient(
        self,
        recipient_id: UUID,
        cursor: str | None = None,
        limit: int = 50,
        unread_only: bool = False,
    ) -> tuple[list[Notification], str | None, bool]:
        query = select(Notification).where(Notification.recipient_id == recipient_id)
        if unread_only:
            query = query.where(col(Notification.read_at).is_(None))
        return await self.paginate(query, cursor, limit, Notification.created_at)

    async def count_unread(self, recipient_id: UUID) -> int:
        result = await self.session.execute(
            select(func.count())
            .select_from(Notification)
            .where(
                Notification.recipient_id == recipient_id,
                col(Notification.read_at).is_(None),
            )
        )
        return int(result.scalar_one())

    async def mark_all_read(self, recipient_id: UUID) -> int:
        result = await self.session.execute(
            update(Notification)
            .where(
                col(Notification.recipient_id) == recipient_id,
                col(Notification.read_at).is_(None),
            )
            .values(read_at=utc_now())
        )
        return result.rowcount or 0  # type: ignore[attr-defined]
