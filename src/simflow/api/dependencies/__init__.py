"""FastAPI dependency injection definitions."""

from src.simflow.api.dependencies.auth import (
    AdminUser,
    CurrentUser,
    ManagerUser,
    get_current_user,
    require_roles,
)
from src.simflow.api.dependencies.db import (
    AuditDBSession,
    DBSession,
    get_audit_db_session,
    get_db_session,
)
from src.simflow.api.dependencies.services import (
    AnalyticsServiceDep,
    AuditServiceDep,
    AuthServiceDep,
    LedgerServiceDep,
    NotificationServiceDep,
    ProjectServiceDep,
    RequestServiceDep,
    RequestWorkflowServiceDep,
    TransitionExecutorDep,
    UserServiceDep,
)

__all__ = [
    # Database
    "AuditDBSession",
    "DBSession",
    "get_audit_db_session",
    "get_db_session",
    # Auth
    "AdminUser",
    "CurrentUser",
    "ManagerUser",
    "get_current_user",
    "require_roles",
    # Services
    "AnalyticsServiceDep",
    "AuditServiceDep",
    "AuthServiceDep",
    "LedgerServiceDep",
    "NotificationServiceDep",
    "ProjectServiceDep",
    "RequestServiceDep",
    "RequestWorkflowServiceDep",
    "TransitionExecutorDep",
    "UserServiceDep",
]
