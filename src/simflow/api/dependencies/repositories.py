"""Repository factory dependencies."""

from typing import Annotated

from fastapi import Depends

from src.simflow.api.dependencies.db import DBSession
from src.simflow.repositories import (
    AnalyticsRepository,
    CommentRepository,
    DiscussionRepository,
    HourTransactionRepository,
    MilestoneRepository,
    NotificationRepository,
    ProjectRepository,
    RequestRepository,
    StatusHistoryRepository,
    TimeEntryRepository,
    TitleChangeRepository,
    UserRepository,
)


def get_user_repository(session: DBSession) -> UserRepository:
    return UserRepository(session)


def get_project_repository(session: DBSession) -> ProjectRepository:
    return ProjectRepository(session)


def get_hour_transaction_repository(session: DBSession) -> HourTransactionRepository:
    return HourTransactionRepository(session)


def get_status_history_repository(session: DBSession) -> StatusHistoryRepository:
    return StatusHistoryRepository(session)


def get_milestone_repository(session: DBSession) -> MilestoneRepository:
    return MilestoneRepository(session)


def get_request_repository(session: DBSession) -> RequestRepository:
    return RequestRepository(session)


def get_comment_repository(session: DBSession) -> CommentRepository:
    return CommentRepository(session)


def get_time_entry_repository(session: DBSession) -> TimeEntryRepository:
    return TimeEntryRepository(session)


def get_title_change_repository(session: DBSession) -> TitleChangeRepository:
    return TitleChangeRepository(session)


def get_discussion_repository(session: DBSession) -> DiscussionRepository:
    return DiscussionRepository(session)


def get_notification_repository(session: DBSession) -> NotificationRepository:
    return NotificationRepository(session)


def get_analytics_repository(session: DBSession) -> AnalyticsRepository:
    return AnalyticsRepository(session)


UserRepo = Annotated[UserRepository, Depends(get_user_repository)]
ProjectRepo = Annotated[ProjectRepository, Depends(get_project_repository)]
HourTransactionRepo = Annotated[
    HourTransactionRepository, Depends(get_hour_transaction_repository)
]
StatusHistoryRepo = Annotated[StatusHistoryRepository, Depends(get_status_history_repository)]
MilestoneRepo = Annotated[MilestoneRepository, Depends(get_milestone_repository)]
RequestRepo = Annotated[RequestRepository, Depends(get_request_repository)]
CommentRepo = Annotated[CommentRepository, Depends(get_comment_repository)]
TimeEntryRepo = Annotated[TimeEntryRepository, Depends(get_time_entry_repository)]
TitleChangeRepo = Annotated[TitleChangeRepository, Depends(get_title_change_repository)]
DiscussionRepo = Annotated[DiscussionRepository, Depends(get_discussion_repository)]
NotificationRepo = Annotated[NotificationRepository, Depends(get_notification_repository)]
AnalyticsRepo = Annotated[AnalyticsRepository, Depends(get_analytics_repository)]
