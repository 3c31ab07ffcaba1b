"""Read-only projections used when listing requests and projects."""

from collections.abc import Iterable
from datetime import date, datetime, timedelta
from enum import Enum

from src.simflow.models.enums import ProjectStatus, RequestPriority, RequestStatus
from src.simflow.models.project import Project
from src.simflow.models.request import SimulationRequest

DEFAULT_ARCHIVE_AFTER_DAYS = 30
DUE_SOON_DAYS = 7

# Feasibility Review and Resource Allocation were folded into Manager Review
ATTENTION_STATUSES: frozenset[RequestStatus] = frozenset(
    {
        RequestStatus.SUBMITTED,
        RequestStatus.MANAGER_REVIEW,
        RequestStatus.ENGINEERING_REVIEW,
        RequestStatus.DISCUSSION,
    }
)

STATUS_SORT_ORDER: dict[RequestStatus, int] = {
    status: index
    for index, status in enumerate(
        (
            RequestStatus.SUBMITTED,
            RequestStatus.MANAGER_REVIEW,
            RequestStatus.REVISION_REQUESTED,
            RequestStatus.ENGINEERING_REVIEW,
            RequestStatus.DISCUSSION,
            RequestStatus.IN_PROGRESS,
            RequestStatus.REVISION_APPROVAL,
            RequestStatus.COMPLETED,
            RequestStatus.ACCEPTED,
            RequestStatus.DENIED,
        )
    )
}


class ProjectCategory(str, Enum):
    PENDING = "pending"
    ON_HOLD = "on_hold"
    ACTIVE = "active"
    COMPLETED = "completed"
    ARCHIVED = "archived"


PROJECT_CATEGORIES: dict[ProjectStatus, ProjectCategory] = {
    ProjectStatus.PENDING: ProjectCategory.PENDING,
    ProjectStatus.ON_HOLD: ProjectCategory.ON_HOLD,
    ProjectStatus.SUSPENDED: ProjectCategory.ON_HOLD,
    ProjectStatus.EXPIRED: ProjectCategory.ON_HOLD,
    ProjectStatus.APPROVED: ProjectCategory.ACTIVE,
    ProjectStatus.ACTIVE: ProjectCategory.ACTIVE,
    ProjectStatus.COMPLETED: ProjectCategory.COMPLETED,
    ProjectStatus.CANCELLED: ProjectCategory.COMPLETED,
    ProjectStatus.ARCHIVED: ProjectCategory.ARCHIVED,
}


class DeadlineStatus(str, Enum):
    OVERDUE = "Overdue"
    DUE_SOON = "Due Soon"
    ON_TRACK = "On Track"


def needs_attention(request: SimulationRequest) -> bool:
    return (
        request.priority == RequestPriority.HIGH.value
        or RequestStatus(request.status) in ATTENTION_STATUSES
    )


def is_archived_display(
    request: SimulationRequest,
    now: datetime,
    days: int = DEFAULT_ARCHIVE_AFTER_DAYS,
) -> bool:
    """Display partition only; has nothing to do with workflow status."""
    return request.created_at < now - timedelta(days=days)


def sort_by_status(requests: Iterable[SimulationRequest]) -> list[SimulationRequest]:
    """Workflow order first, newest first within a status."""
    by_newest = sorted(requests, key=lambda r: r.created_at, reverse=True)
    return sorted(by_newest, key=lambda r: STATUS_SORT_ORDER[RequestStatus(r.status)])


def project_category(status: ProjectStatus | str) -> ProjectCategory:
    return PROJECT_CATEGORIES[ProjectStatus(status)]


def deadline_status(
    deadline: date | None,
    today: date,
    due_soon_days: int = DUE_SOON_DAYS,
) -> DeadlineStatus | None:
    if deadline is None:
        return None
    days_left = (deadline - today).days
    if days_left < 0:
        return DeadlineStatus.OVERDUE
    if days_left <= due_soon_days:
        return DeadlineStatus.DUE_SOON
    return DeadlineStatus.ON_TRACK


def utilization(project: Project) -> float:
    """Percentage of the budget in use, rounded to one decimal."""
    if project.total_hours <= 0:
        return 0.0
    return round(project.used_hours / project.total_hours * 100, 1)
