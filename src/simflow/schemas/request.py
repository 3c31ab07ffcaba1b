"""Simulation request schemas for API request/response."""

from datetime import date, datetime
from enum import Enum
from typing import Any
from uuid import UUID

from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator

from src.simflow.models.enums import (
    DiscussionDecision,
    DiscussionStatus,
    RequestPriority,
    RequestStatus,
    TitleChangeStatus,
    UserRole,
)
from src.simflow.workflow.actions import RequestAction
from src.simflow.workflow.capabilities import TitleEditMode


class RequestView(str, Enum):
    """Which slice of requests a listing returns."""

    MINE = "mine"
    ASSIGNED = "assigned"
    NEEDS_ATTENTION = "needs_attention"
    ALL = "all"


class RequestSort(str, Enum):
    """Order of a listing page. Pagination always walks by creation time."""

    NEWEST = "newest"
    WORKFLOW = "workflow"


def _strip_required(v: str, field: str) -> str:
    v = v.strip()
    if not v:
        raise ValueError(f"{field} cannot be empty or whitespace only")
    return v


class RequestCreate(BaseModel):
    title: str = Field(min_length=3, max_length=200)
    description: str = Field(min_length=10, max_length=5000)
    vendor: str | None = Field(default=None, max_length=200)
    priority: RequestPriority = RequestPriority.MEDIUM
    project_id: UUID | None = None
    # Admins may file a request for someone else
    on_behalf_of: UUID | None = None

    @field_validator("title")
    @classmethod
    def validate_title(cls, v: str) -> str:
        return _strip_required(v, "Title")

    @field_validator("description")
    @classmethod
    def validate_description(cls, v: str) -> str:
        return _strip_required(v, "Description")


class RequestRead(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: UUID
    title: str
    description: str
    vendor: str | None
    priority: RequestPriority
    status: RequestStatus
    created_by: UUID | None
    created_by_name: str | None
    created_by_admin_id: UUID | None
    assigned_to: UUID | None
    assigned_to_name: str | None
    estimated_hours: float | None
    allocated_hours: float | None
    project_id: UUID | None
    project_name: str | None
    project_code: str | None
    version: int
    created_at: datetime
    updated_at: datetime


class RequestDetail(RequestRead):
    """A request together with what the current user may do with it."""

    available_actions: list[RequestAction] = []
    title_edit_mode: TitleEditMode = TitleEditMode.NONE
    needs_attention: bool = False
    # Display partition by age only; workflow status is unaffected
    archived: bool = False


class TitleUpdate(BaseModel):
    title: str = Field(min_length=3, max_length=200)
    expected_version: int | None = None

    @field_validator("title")
    @classmethod
    def validate_title(cls, v: str) -> str:
        v = _strip_required(v, "Title")
        if len(v) < 3:
            raise ValueError("Title must be at least 3 characters")
        return v


class DescriptionUpdate(BaseModel):
    description: str = Field(min_length=10, max_length=5000)
    expected_version: int | None = None

    @field_validator("description")
    @classmethod
    def validate_description(cls, v: str) -> str:
        v = _strip_required(v, "Description")
        if len(v) < 10:
            raise ValueError("Description must be at least 10 characters")
        return v


class RequesterUpdate(BaseModel):
    user_id: UUID


class WorkflowActionBody(BaseModel):
    """Body for status-changing actions that carry no payload."""

    expected_version: int | None = None


class AssignEngineer(BaseModel):
    engineer_id: UUID
    estimated_hours: float = Field(ge=0)
    project_id: UUID | None = None
    expected_version: int | None = None


class DiscussionCreate(BaseModel):
    reason: str = Field(min_length=5, max_length=2000)
    suggested_hours: float | None = Field(default=None, ge=0)
    expected_version: int | None = None

    @field_validator("reason")
    @classmethod
    def validate_reason(cls, v: str) -> str:
        v = _strip_required(v, "Reason")
        if len(v) < 5:
            raise ValueError("Reason must be at least 5 characters")
        return v


class DiscussionReview(BaseModel):
    action: DiscussionDecision
    allocated_hours: float | None = Field(default=None, ge=0)
    manager_response: str | None = Field(default=None, max_length=2000)
    expected_version: int | None = None

    @model_validator(mode="after")
    def require_hours_for_override(self) -> "DiscussionReview":
        if self.action is DiscussionDecision.OVERRIDE and self.allocated_hours is None:
            raise ValueError("allocated_hours is required to override")
        return self


class TransitionBody(BaseModel):
    """Generic status change; ``extra`` carries the action-specific payload."""

    target_status: RequestStatus
    reason: str | None = Field(default=None, max_length=2000)
    expected_version: int | None = None
    extra: dict[str, Any] = Field(default_factory=dict)


class DiscussionRead(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: UUID
    request_id: UUID
    engineer_id: UUID | None
    engineer_name: str | None
    reason: str
    suggested_hours: float | None
    status: DiscussionStatus
    reviewed_by: UUID | None
    reviewed_at: datetime | None
    manager_response: str | None
    allocated_hours: float | None
    created_at: datetime


class TitleChangeCreate(BaseModel):
    proposed_title: str = Field(min_length=3, max_length=200)

    @field_validator("proposed_title")
    @classmethod
    def validate_proposed_title(cls, v: str) -> str:
        v = _strip_required(v, "Proposed title")
        if len(v) < 3:
            raise ValueError("Proposed title must be at least 3 characters")
        return v


class TitleChangeReview(BaseModel):
    approved: bool


class TitleChangeRead(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: UUID
    request_id: UUID
    requested_by: UUID | None
    requested_by_name: str | None
    current_title: str
    proposed_title: str
    status: TitleChangeStatus
    reviewed_by: UUID | None
    reviewed_by_name: str | None
    reviewed_at: datetime | None
    created_at: datetime


class CommentCreate(BaseModel):
    content: str = Field(min_length=1, max_length=5000)
    visible_to_requester: bool = True

    @field_validator("content")
    @classmethod
    def validate_content(cls, v: str) -> str:
        return _strip_required(v, "Comment")


class CommentRead(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: UUID
    request_id: UUID
    author_id: UUID | None
    author_name: str | None
    author_role: UserRole | None
    content: str
    visible_to_requester: bool
    created_at: datetime


class TimeEntryCreate(BaseModel):
    hours: float = Field(gt=0)
    description: str | None = Field(default=None, max_length=1000)
    work_date: date | None = None


class TimeEntryRead(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: UUID
    request_id: UUID
    engineer_id: UUID | None
    engineer_name: str | None
    hours: float
    description: str | None
    work_date: date | None
    created_at: datetime
