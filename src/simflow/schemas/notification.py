from datetime import datetime
from uuid import UUID

from pydantic import BaseModel, ConfigDict

from src.simflow.models.enums import NotificationType


class NotificationRead(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: UUID
    type: NotificationType
    title: str
    message: str
    link: str | None
    entity_type: str | None
    entity_id: UUID | None
    triggered_by: UUID | None
    read_at: datetime | None
    created_at: datetime


class UnreadCount(BaseModel):
    unread: int


class MarkedRead(BaseModel):
    updated: int
