from src.simflow.services.analytics_service import AnalyticsService
from src.simflow.services.audit_service import AuditService
from src.simflow.services.auth_service import AuthService
from src.simflow.services.ledger_service import HourLedgerService
from src.simflow.services.notification_service import NotificationService
from src.simflow.services.project_service import ProjectService
from src.simflow.services.request_service import RequestService
from src.simflow.services.request_workflow_service import RequestWorkflowService
from src.simflow.services.transition_executor import TransitionCommand, TransitionExecutor
from src.simflow.services.user_service import UserService

__all__ = [
    "AnalyticsService",
    "AuditService",
    "AuthService",
    "HourLedgerService",
    "NotificationService",
    "ProjectService",
    "RequestService",
    "RequestWorkflowService",
    "TransitionCommand",
    "TransitionExecutor",
    "UserService",
]
