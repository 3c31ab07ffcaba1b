"""Notification staging and the per-user notification center."""

from collections.abc import Iterable
from uuid import UUID

from sqlalchemy.ext.asyncio import AsyncSession

from src.simflow.core.logging import get_logger
from src.simflow.models import EntityType, Notification, NotificationType, User, UserRole
from src.simflow.models.base import utc_now
from src.simflow.repositories import NotificationRepository, UserRepository
from src.simflow.workflow.errors import NotFound

logger = get_logger(__name__)


def entity_link(entity_type: EntityType, entity_id: UUID) -> str:
    return f"/{entity_type.value}s/{entity_id}"


class NotificationService:
    """Creates notification rows inside the caller's unit of work.

    Nothing here commits when staging; the row lands or disappears together
    with the change that caused it. Delivery beyond the database is handled
    downstream.
    """

    def __init__(
        self,
        notification_repo: NotificationRepository,
        user_repo: UserRepository,
        session: AsyncSession,
    ):
        self.notification_repo = notification_repo
        self.user_repo = user_repo
        self.session = session

    def notify(
        self,
        recipient_id: UUID | None,
        type: NotificationType,
        title: str,
        message: str,
        entity_type: EntityType,
        entity_id: UUID,
        triggered_by: UUID | None = None,
    ) -> Notification | None:
        """Stage one notification. Users are never notified of their own actions."""
        if recipient_id is None or recipient_id == triggered_by:
            return None
        notification = Notification(
            recipient_id=recipient_id,
            type=type.value,
            title=title,
            message=message,
            link=entity_link(entity_type, entity_id),
            entity_type=entity_type.value,
            entity_id=entity_id,
            triggered_by=triggered_by,
        )
        self.notification_repo.add(notification)
        return notification

    def notify_many(
        self,
        recipient_ids: Iterable[UUID | None],
        type: NotificationType,
        title: str,
        message: str,
        entity_type: EntityType,
        entity_id: UUID,
        triggered_by: UUID | None = None,
    ) -> list[Notification]:
        staged: list[Notification] = []
        seen: set[UUID] = set()
        for recipient_id in recipient_ids:
            if recipient_id is None or recipient_id in seen:
                continue
            seen.add(recipient_id)
            notification = self.notify(
                recipient_id, type, title, message, entity_type, entity_id, triggered_by
            )
            if notification is not None:
                staged.append(notification)
        return staged

    async def notify_role(
        self,
        role: UserRole,
        type: NotificationType,
        title: str,
        message: str,
        entity_type: EntityType,
        entity_id: UUID,
        triggered_by: UUID | None = None,
    ) -> list[Notification]:
        """Stage a notification for every active user holding ``role``."""
        users = await self.user_repo.list_active_by_role(role)
        return self.notify_many(
            (user.id for user in users), type, title, message, entity_type, entity_id, triggered_by
        )

    async def list_for_user(
        self,
        user: User,
        cursor: str | None = None,
        limit: int = 50,
        unread_only: bool = False,
    ) -> tuple[list[Notification], str | None, bool]:
        return await self.notification_repo.list_for_recipient(
            user.id, cursor=cursor, limit=limit, unread_only=unread_only
        )

    async def unread_count(self, user: User) -> int:
        return await self.notification_repo.count_unread(user.id)

    async def mark_read(self, notification_id: UUID, user: User) -> Notification:
        notification = await self.notification_repo.get_by_id(notification_id)
        if notification is None or notification.recipient_id != user.id:
            raise NotFound("notification", notification_id)
        if notification.read_at is None:
            notification.read_at = utc_now()
            await self.session.commit()
        return notification

    async def mark_all_read(self, user: User) -> int:
        updated = await self.notification_repo.mark_all_read(user.id)
        await self.session.commit()
        logger.debug("Notifications marked read", user_id=str(user.id), count=updated)
        return updated
