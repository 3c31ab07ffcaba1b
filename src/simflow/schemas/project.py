"""Project schemas for API request/response."""

from datetime import date, datetime
from uuid import UUID

from pydantic import BaseModel, ConfigDict, Field, field_validator

from src.simflow.models.enums import (
    HourTransactionType,
    MilestoneStatus,
    ProjectPriority,
    ProjectStatus,
)
from src.simflow.workflow.views import DeadlineStatus, ProjectCategory


class ProjectCreate(BaseModel):
    name: str = Field(min_length=1, max_length=200)
    description: str | None = Field(default=None, max_length=2000)
    total_hours: float = Field(default=0, ge=0)
    priority: ProjectPriority = ProjectPriority.MEDIUM
    category: str | None = Field(default=None, max_length=100)
    deadline: date | None = None
    # Only managers and admins may choose the initial status
    status: ProjectStatus | None = None

    @field_validator("name")
    @classmethod
    def validate_name(cls, v: str) -> str:
        v = v.strip()
        if not v:
            raise ValueError("Project name cannot be empty or whitespace only")
        return v

    @field_validator("description")
    @classmethod
    def validate_description(cls, v: str | None) -> str | None:
        if v is not None:
            v = v.strip()
            if not v:
                return None
        return v


class ProjectRename(BaseModel):
    name: str = Field(min_length=1, max_length=200)
    expected_version: int | None = None

    @field_validator("name")
    @classmethod
    def validate_name(cls, v: str) -> str:
        v = v.strip()
        if not v:
            raise ValueError("Project name cannot be empty or whitespace only")
        return v


class ProjectRead(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: UUID
    code: str
    name: str
    description: str | None
    total_hours: float
    used_hours: float
    available_hours: float
    status: ProjectStatus
    priority: ProjectPriority
    category: str | None
    deadline: date | None
    owner_id: UUID | None
    created_by_name: str | None
    completed_at: datetime | None
    completion_notes: str | None
    cancelled_at: datetime | None
    cancellation_reason: str | None
    version: int
    created_at: datetime
    updated_at: datetime


class ProjectTransitionBody(BaseModel):
    status: ProjectStatus
    reason: str | None = Field(default=None, max_length=2000)
    expected_version: int | None = None


class ProjectTransitionResult(BaseModel):
    project: ProjectRead
    history_id: UUID
    valid_next_states: list[ProjectStatus]


class TransitionOption(BaseModel):
    status: ProjectStatus
    requires_reason: bool


class ValidTransitions(BaseModel):
    current_status: ProjectStatus
    is_terminal: bool
    valid_next_states: list[TransitionOption]


class StatusHistoryRead(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: UUID
    project_id: UUID
    from_status: ProjectStatus | None
    to_status: ProjectStatus
    changed_by: UUID | None
    reason: str | None
    created_at: datetime


class HourTransactionRead(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: UUID
    project_id: UUID
    request_id: UUID | None
    transaction_type: HourTransactionType
    hours: float
    balance_before: float
    balance_after: float
    performed_by: UUID | None
    notes: str | None
    created_at: datetime


class BudgetExtension(BaseModel):
    additional_hours: float = Field(gt=0)
    reason: str = Field(min_length=3, max_length=1000)


class HourAdjustment(BaseModel):
    hours: float
    reason: str = Field(min_length=3, max_length=1000)

    @field_validator("hours")
    @classmethod
    def validate_hours(cls, v: float) -> float:
        if v == 0:
            raise ValueError("Adjustment hours cannot be zero")
        return v


class HourAvailability(BaseModel):
    available: bool
    current_available: float
    total_hours: float
    used_hours: float


class CanAcceptRequests(BaseModel):
    can_accept: bool
    status: ProjectStatus
    available_hours: float


class ProjectMetrics(BaseModel):
    project_id: UUID
    code: str
    status: ProjectStatus
    category: ProjectCategory
    total_hours: float
    used_hours: float
    available_hours: float
    utilization: float
    deadline: date | None
    deadline_status: DeadlineStatus | None
    requests_by_status: dict[str, int]
    milestones_by_status: dict[str, int]
    # False when the cached used hours have drifted from the ledger
    ledger_consistent: bool


class ExpireOverdueResult(BaseModel):
    expired: list[str]


class ReassignRequests(BaseModel):
    target_project_id: UUID


class ReassignResult(BaseModel):
    moved: int
    target_project_id: UUID


class MilestoneCreate(BaseModel):
    name: str = Field(min_length=1, max_length=200)
    description: str | None = Field(default=None, max_length=1000)
    target_date: date | None = None


class MilestoneUpdate(BaseModel):
    status: MilestoneStatus


class MilestoneRead(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: UUID
    project_id: UUID
    name: str
    description: str | None
    target_date: date | None
    status: MilestoneStatus
    completed_at: datetime | None
    created_at: datetime
