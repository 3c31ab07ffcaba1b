"""Project, hour ledger, status history and milestone models."""

from datetime import date, datetime
from uuid import UUID, uuid4

from sqlalchemy import Index
from sqlmodel import Field, SQLModel

from src.simflow.models.base import utc_now
from src.simflow.models.enums import MilestoneStatus, ProjectPriority, ProjectStatus


class Project(SQLModel, table=True):
    """A bucket of engineering hours that requests draw from.

    ``used_hours`` is a cached projection of the hour ledger and is only
    written together with a ProjectHourTransaction row.
    """

    __tablename__ = "projects"

    id: UUID = Field(default_factory=uuid4, primary_key=True)
    code: str = Field(max_length=20, unique=True, index=True)  # NNNNNN-YYYY
    name: str = Field(max_length=200, index=True)
    description: str | None = Field(default=None, max_length=2000)
    total_hours: float = Field(default=0)
    used_hours: float = Field(default=0)
    status: str = Field(default=ProjectStatus.PENDING.value, max_length=20, index=True)
    priority: str = Field(default=ProjectPriority.MEDIUM.value, max_length=20)
    category: str | None = Field(default=None, max_length=100)
    deadline: date | None = Field(default=None)

    owner_id: UUID | None = Field(default=None, foreign_key="users.id", index=True)
    created_by_name: str | None = Field(default=None, max_length=100)

    completed_at: datetime | None = Field(default=None)
    completion_notes: str | None = Field(default=None, max_length=2000)
    cancelled_at: datetime | None = Field(default=None)
    cancellation_reason: str | None = Field(default=None, max_length=2000)

    version: int = Field(default=1)
    created_at: datetime = Field(default_factory=utc_now)
    updated_at: datetime = Field(default_factory=utc_now)

    @property
    def available_hours(self) -> float:
        return self.total_hours - self.used_hours


class ProjectHourTransaction(SQLModel, table=True):
    """One ledger movement. ``balance_*`` are used hours around the movement."""

    __tablename__ = "project_hour_transactions"
    __table_args__ = (Index("ix_hour_transactions_project_created", "project_id", "created_at"),)

    id: UUID = Field(default_factory=uuid4, primary_key=True)
    project_id: UUID = Field(foreign_key="projects.id", ondelete="CASCADE")
    request_id: UUID | None = Field(default=None, foreign_key="requests.id", ondelete="SET NULL")
    transaction_type: str = Field(max_length=20)  # HourTransactionType value
    hours: float
    balance_before: float
    balance_after: float
    performed_by: UUID | None = Field(default=None, foreign_key="users.id")
    notes: str | None = Field(default=None, max_length=1000)
    created_at: datetime = Field(default_factory=utc_now)


class ProjectStatusHistory(SQLModel, table=True):
    __tablename__ = "project_status_history"
    __table_args__ = (Index("ix_status_history_project_created", "project_id", "created_at"),)

    id: UUID = Field(default_factory=uuid4, primary_key=True)
    project_id: UUID = Field(foreign_key="projects.id", ondelete="CASCADE")
    from_status: str | None = Field(default=None, max_length=20)
    to_status: str = Field(max_length=20)
    changed_by: UUID | None = Field(default=None, foreign_key="users.id")
    reason: str | None = Field(default=None, max_length=2000)
    created_at: datetime = Field(default_factory=utc_now)


class ProjectMilestone(SQLModel, table=True):
    __tablename__ = "project_milestones"

    id: UUID = Field(default_factory=uuid4, primary_key=True)
    project_id: UUID = Field(foreign_key="projects.id", ondelete="CASCADE", index=True)
    name: str = Field(max_length=200)
    description: str | None = Field(default=None, max_length=1000)
    target_date: date | None = Field(default=None)
    status: str = Field(default=MilestoneStatus.PENDING.value, max_length=20)
    completed_at: datetime | None = Field(default=None)
    created_at: datetime = Field(default_factory=utc_now)
    updated_at: datetime = Field(default_factory=utc_now)
