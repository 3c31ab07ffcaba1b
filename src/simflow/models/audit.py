"""Audit log model for tracking workflow actions."""

from datetime import datetime
from enum import Enum
from typing import Any
from uuid import UUID, uuid4

from sqlalchemy import JSON, Column, Index
from sqlmodel import Field, SQLModel

from src.simflow.models.base import utc_now


class AuditAction(str, Enum):
    """Audit action types for type-safe logging."""

    # Auth / users
    USER_LOGIN = "user.login"
    USER_CREATE = "user.create"
    USER_UPDATE = "user.update"

    # Requests
    REQUEST_CREATE = "request.create"
    REQUEST_TRANSITION = "request.transition"
    REQUEST_ASSIGN = "request.assign"
    REQUEST_UPDATE = "request.update"
    REQUEST_DELETE = "request.delete"
    REQUEST_TITLE_CHANGE = "request.title_change"
    REQUEST_TITLE_CHANGE_REVIEW = "request.title_change_review"
    REQUEST_DISCUSSION = "request.discussion"
    REQUEST_DISCUSSION_REVIEW = "request.discussion_review"
    REQUEST_COMMENT = "request.comment"
    REQUEST_TIME_ENTRY = "request.time_entry"

    # Projects
    PROJECT_CREATE = "project.create"
    PROJECT_UPDATE = "project.update"
    PROJECT_TRANSITION = "project.transition"
    PROJECT_DELETE = "project.delete"
    PROJECT_HOURS = "project.hours"


class AuditStatus(str, Enum):
    SUCCESS = "success"
    FAILURE = "failure"


class AuditLog(SQLModel, table=True):
    __tablename__ = "audit_logs"
    __table_args__ = (
        Index("ix_audit_logs_actor_created", "actor_id", "created_at"),
        Index("ix_audit_logs_action_created", "action", "created_at"),
        Index("ix_audit_logs_entity", "entity_type", "entity_id"),
    )

    id: UUID = Field(default_factory=uuid4, primary_key=True)

    actor_id: UUID | None = Field(foreign_key="users.id", default=None)

    action: str = Field(max_length=50)  # AuditAction value
    entity_type: str = Field(max_length=50)  # EntityType value
    entity_id: UUID | None = Field(default=None)

    # Before/after detail
    changes: dict[str, Any] | None = Field(
        default=None,
        sa_column=Column(JSON, nullable=True),
    )

    # Request metadata
    ip_address: str | None = Field(max_length=45, default=None)
    user_agent: str | None = Field(max_length=500, default=None)
    request_id: str | None = Field(max_length=36, default=None)

    status: str = Field(default=AuditStatus.SUCCESS.value, max_length=20)
    error_message: str | None = Field(max_length=1000, default=None)

    created_at: datetime = Field(default_factory=utc_now)
