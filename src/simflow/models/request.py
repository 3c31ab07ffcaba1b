"""Simulation request and its request-scoped records."""

from datetime import date, datetime
from uuid import UUID, uuid4

from sqlalchemy import Index
from sqlmodel import Field, SQLModel

from src.simflow.models.base import utc_now
from src.simflow.models.enums import (
    DiscussionStatus,
    RequestPriority,
    RequestStatus,
    TitleChangeStatus,
)


class SimulationRequest(SQLModel, table=True):
    """A request for simulation work moving through the engineering workflow."""

    __tablename__ = "requests"
    __table_args__ = (
        Index("ix_requests_status_created", "status", "created_at"),
        Index("ix_requests_assigned_status", "assigned_to", "status"),
    )

    id: UUID = Field(default_factory=uuid4, primary_key=True)
    title: str = Field(max_length=200)
    description: str = Field(max_length=5000)
    vendor: str | None = Field(default=None, max_length=200)
    priority: str = Field(default=RequestPriority.MEDIUM.value, max_length=20)
    status: str = Field(default=RequestStatus.SUBMITTED.value, max_length=30, index=True)

    # Requester; nullable so requests survive user removal
    created_by: UUID | None = Field(default=None, foreign_key="users.id", index=True)
    created_by_name: str | None = Field(default=None, max_length=100)
    created_by_admin_id: UUID | None = Field(default=None, foreign_key="users.id")

    assigned_to: UUID | None = Field(default=None, foreign_key="users.id")
    assigned_to_name: str | None = Field(default=None, max_length=100)
    estimated_hours: float | None = Field(default=None)
    allocated_hours: float | None = Field(default=None)

    project_id: UUID | None = Field(default=None, foreign_key="projects.id", index=True)
    project_name: str | None = Field(default=None, max_length=200)
    project_code: str | None = Field(default=None, max_length=20)

    version: int = Field(default=1)
    created_at: datetime = Field(default_factory=utc_now)
    updated_at: datetime = Field(default_factory=utc_now)


class Comment(SQLModel, table=True):
    __tablename__ = "comments"

    id: UUID = Field(default_factory=uuid4, primary_key=True)
    request_id: UUID = Field(foreign_key="requests.id", ondelete="CASCADE", index=True)
    author_id: UUID | None = Field(default=None, foreign_key="users.id")
    author_name: str | None = Field(default=None, max_length=100)
    author_role: str | None = Field(default=None, max_length=20)
    content: str = Field(max_length=5000)
    visible_to_requester: bool = Field(default=True)
    created_at: datetime = Field(default_factory=utc_now)


class TimeEntry(SQLModel, table=True):
    __tablename__ = "time_entries"

    id: UUID = Field(default_factory=uuid4, primary_key=True)
    request_id: UUID = Field(foreign_key="requests.id", ondelete="CASCADE", index=True)
    engineer_id: UUID | None = Field(default=None, foreign_key="users.id")
    engineer_name: str | None = Field(default=None, max_length=100)
    hours: float
    description: str | None = Field(default=None, max_length=1000)
    work_date: date | None = Field(default=None)
    created_at: datetime = Field(default_factory=utc_now)


class TitleChangeRequest(SQLModel, table=True):
    """A proposed title edit awaiting review."""

    __tablename__ = "title_change_requests"

    id: UUID = Field(default_factory=uuid4, primary_key=True)
    request_id: UUID = Field(foreign_key="requests.id", ondelete="CASCADE", index=True)
    requested_by: UUID | None = Field(default=None, foreign_key="users.id")
    requested_by_name: str | None = Field(default=None, max_length=100)
    current_title: str = Field(max_length=200)
    proposed_title: str = Field(max_length=200)
    status: str = Field(default=TitleChangeStatus.PENDING.value, max_length=20, index=True)
    reviewed_by: UUID | None = Field(default=None, foreign_key="users.id")
    reviewed_by_name: str | None = Field(default=None, max_length=100)
    reviewed_at: datetime | None = Field(default=None)
    created_at: datetime = Field(default_factory=utc_now)


class DiscussionRequest(SQLModel, table=True):
    """An engineer's request to renegotiate the hours on a request."""

    __tablename__ = "discussion_requests"

    id: UUID = Field(default_factory=uuid4, primary_key=True)
    request_id: UUID = Field(foreign_key="requests.id", ondelete="CASCADE", index=True)
    engineer_id: UUID | None = Field(default=None, foreign_key="users.id")
    engineer_name: str | None = Field(default=None, max_length=100)
    reason: str = Field(max_length=2000)
    suggested_hours: float | None = Field(default=None)
    status: str = Field(default=DiscussionStatus.PENDING.value, max_length=20)
    reviewed_by: UUID | None = Field(default=None, foreign_key="users.id")
    reviewed_at: datetime | None = Field(default=None)
    manager_response: str | None = Field(default=None, max_length=2000)
    allocated_hours: float | None = Field(default=None)
    created_at: datetime = Field(default_factory=utc_now)
