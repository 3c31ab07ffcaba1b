"""Model exports.

Import from here: `from src.simflow.models import Project, SimulationRequest`
"""

from src.simflow.models.audit import AuditAction, AuditLog, AuditStatus
from src.simflow.models.enums import (
    DiscussionDecision,
    DiscussionStatus,
    EntityType,
    HourTransactionType,
    MilestoneStatus,
    NotificationType,
    ProjectPriority,
    ProjectStatus,
    RequestPriority,
    RequestStatus,
    TitleChangeStatus,
    UserRole,
)
from src.simflow.models.notification import Notification
from src.simflow.models.project import (
    Project,
    ProjectHourTransaction,
    ProjectMilestone,
    ProjectStatusHistory,
)
from src.simflow.models.request import (
    Comment,
    DiscussionRequest,
    SimulationRequest,
    TimeEntry,
    TitleChangeRequest,
)
from src.simflow.models.user import User

__all__ = [
    # Enums
    "DiscussionDecision",
    "DiscussionStatus",
    "EntityType",
    "HourTransactionType",
    "MilestoneStatus",
    "NotificationType",
    "ProjectPriority",
    "ProjectStatus",
    "RequestPriority",
    "RequestStatus",
    "TitleChangeStatus",
    "UserRole",
    # Audit
    "AuditAction",
    "AuditLog",
    "AuditStatus",
    # Users
    "User",
    # Projects
    "Project",
    "ProjectHourTransaction",
    "ProjectMilestone",
    "ProjectStatusHistory",
    # Requests
    "Comment",
    "DiscussionRequest",
    "SimulationRequest",
    "TimeEntry",
    "TitleChangeRequest",
    # Notifications
    "Notification",
]
