"""Repository for AuditLog entity."""

from uuid import UUID

from sqlmodel import select

from src.simflow.models import AuditLog
from src.simflow.repositories.base import BaseRepository


class AuditLogRepository(BaseRepository[AuditLog]):
    model = AuditLog

    async def list_filtered(
        self,
        cursor: str | None = None,
        limit: int = 50,
        action: str | None = None,
        entity_type: str | None = None,
        entity_id: UUID | None = None,
        actor_id: UUID | None = None,
    ) -> tuple[list[AuditLog], str | None, bool]:
        """List audit logs, newest first, with optional filters."""
        query = select(AuditLog)
        if action:
            query = query.where(AuditLog.action == action)
        if entity_type:
            query = query.where(AuditLog.entity_type == entity_type)
        if entity_id:
            query = query.where(AuditLog.entity_id == entity_id)
        if actor_id:
            query = query.where(AuditLog.actor_id == actor_id)
        return await self.paginate(query, cursor, limit, AuditLog.created_at)

    async def list_by_entity(
        self,
        entity_type: str,
        entity_id: UUID,
        cursor: str | None = None,
        limit: int = 50,
    ) -> tuple[list[AuditLog], str | None, bool]:
        return await self.list_filtered(
            cursor=cursor, limit=limit, entity_type=entity_type, entity_id=entity_id
        )
