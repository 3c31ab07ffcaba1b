"""Notification model."""

from datetime import datetime
from uuid import UUID, uuid4

from sqlalchemy import Index
from sqlmodel import Field, SQLModel

from src.simflow.models.base import utc_now


class Notification(SQLModel, table=True):
    """A notification addressed to one user. Delivery happens downstream."""

    __tablename__ = "notifications"
    __table_args__ = (Index("ix_notifications_recipient_created", "recipient_id", "created_at"),)

    id: UUID = Field(default_factory=uuid4, primary_key=True)
    recipient_id: UUID = Field(foreign_key="users.id")
    type: str = Field(max_length=40)  # NotificationType value
    title: str = Field(max_length=200)
    message: str = Field(max_length=1000)
    link: str | None = Field(default=None, max_length=500)
    entity_type: str | None = Field(default=None, max_length=50)
    entity_id: UUID | None = Field(default=None)
    triggered_by: UUID | None = Field(default=None, foreign_key="users.id")
    read_at: datetime | None = Field(default=None)
    created_at: datetime = Field(default_factory=utc_now)
