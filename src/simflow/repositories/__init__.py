"""Repository layer - data access abstraction."""

from src.simflow.repositories.analytics import AnalyticsRepository
from src.simflow.repositories.audit import AuditLogRepository
from src.simflow.repositories.base import BaseRepository
from src.simflow.repositories.notification import NotificationRepository
from src.simflow.repositories.project import (
    HourTransactionRepository,
    MilestoneRepository,
    ProjectRepository,
    StatusHistoryRepository,
)
from src.simflow.repositories.request import (
    CommentRepository,
    DiscussionRepository,
    RequestFilter,
    RequestRepository,
    TimeEntryRepository,
    TitleChangeRepository,
)
from src.simflow.repositories.user import UserRepository

__all__ = [
    "BaseRepository",
    # Users
    "UserRepository",
    # Projects
    "HourTransactionRepository",
    "MilestoneRepository",
    "ProjectRepository",
    "StatusHistoryRepository",
    # Requests
    "CommentRepository",
    "DiscussionRepository",
    "RequestFilter",
    "RequestRepository",
    "TimeEntryRepository",
    "TitleChangeRepository",
    # Cross-cutting
    "AnalyticsRepository",
    "AuditLogRepository",
    "NotificationRepository",
]
