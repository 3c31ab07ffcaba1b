"""Service factory dependencies."""

from typing import Annotated

from fastapi import Depends

from src.simflow.api.dependencies.db import AuditDBSession, DBSession
from src.simflow.api.dependencies.repositories import (
    AnalyticsRepo,
    CommentRepo,
    DiscussionRepo,
    HourTransactionRepo,
    MilestoneRepo,
    NotificationRepo,
    ProjectRepo,
    RequestRepo,
    StatusHistoryRepo,
    TimeEntryRepo,
    TitleChangeRepo,
    UserRepo,
)
from src.simflow.repositories import AuditLogRepository
from src.simflow.services import (
    AnalyticsService,
    AuditService,
    AuthService,
    HourLedgerService,
    NotificationService,
    ProjectService,
    RequestService,
    RequestWorkflowService,
    TransitionExecutor,
    UserService,
)


def get_audit_service(session: AuditDBSession) -> AuditService:
    """Audit service bound to its own session, independent of the business transaction."""
    return AuditService(AuditLogRepository(session), session)


AuditServiceDep = Annotated[AuditService, Depends(get_audit_service)]


def get_notification_service(
    notification_repo: NotificationRepo, user_repo: UserRepo, session: DBSession
) -> NotificationService:
    return NotificationService(notification_repo, user_repo, session)


NotificationServiceDep = Annotated[NotificationService, Depends(get_notification_service)]


def get_ledger_service(
    project_repo: ProjectRepo, transaction_repo: HourTransactionRepo, session: DBSession
) -> HourLedgerService:
    return HourLedgerService(project_repo, transaction_repo, session)


LedgerServiceDep = Annotated[HourLedgerService, Depends(get_ledger_service)]


def get_auth_service(
    user_repo: UserRepo, audit: AuditServiceDep, session: DBSession
) -> AuthService:
    return AuthService(user_repo, audit, session)


def get_user_service(
    user_repo: UserRepo, audit: AuditServiceDep, session: DBSession
) -> UserService:
    return UserService(user_repo, audit, session)


def get_request_service(
    request_repo: RequestRepo,
    user_repo: UserRepo,
    project_repo: ProjectRepo,
    comment_repo: CommentRepo,
    time_entry_repo: TimeEntryRepo,
    title_change_repo: TitleChangeRepo,
    discussion_repo: DiscussionRepo,
    ledger: LedgerServiceDep,
    notifications: NotificationServiceDep,
    audit: AuditServiceDep,
    session: DBSession,
) -> RequestService:
    return RequestService(
        request_repo,
        user_repo,
        project_repo,
        comment_repo,
        time_entry_repo,
        title_change_repo,
        discussion_repo,
        ledger,
        notifications,
        audit,
        session,
    )


def get_request_workflow_service(
    request_repo: RequestRepo,
    user_repo: UserRepo,
    discussion_repo: DiscussionRepo,
    time_entry_repo: TimeEntryRepo,
    ledger: LedgerServiceDep,
    notifications: NotificationServiceDep,
    audit: AuditServiceDep,
    session: DBSession,
) -> RequestWorkflowService:
    return RequestWorkflowService(
        request_repo,
        user_repo,
        discussion_repo,
        time_entry_repo,
        ledger,
        notifications,
        audit,
        session,
    )


def get_project_service(
    project_repo: ProjectRepo,
    history_repo: StatusHistoryRepo,
    milestone_repo: MilestoneRepo,
    request_repo: RequestRepo,
    ledger: LedgerServiceDep,
    notifications: NotificationServiceDep,
    audit: AuditServiceDep,
    session: DBSession,
) -> ProjectService:
    return ProjectService(
        project_repo,
        history_repo,
        milestone_repo,
        request_repo,
        ledger,
        notifications,
        audit,
        session,
    )


AuthServiceDep = Annotated[AuthService, Depends(get_auth_service)]
UserServiceDep = Annotated[UserService, Depends(get_user_service)]
RequestServiceDep = Annotated[RequestService, Depends(get_request_service)]
RequestWorkflowServiceDep = Annotated[
    RequestWorkflowService, Depends(get_request_workflow_service)
]
ProjectServiceDep = Annotated[ProjectService, Depends(get_project_service)]


def get_transition_executor(
    project_service: ProjectServiceDep,
    workflow_service: RequestWorkflowServiceDep,
    request_repo: RequestRepo,
) -> TransitionExecutor:
    return TransitionExecutor(project_service, workflow_service, request_repo)


TransitionExecutorDep = Annotated[TransitionExecutor, Depends(get_transition_executor)]


def get_analytics_service(analytics_repo: AnalyticsRepo) -> AnalyticsService:
    return AnalyticsService(analytics_repo)


AnalyticsServiceDep = Annotated[AnalyticsService, Depends(get_analytics_service)]
