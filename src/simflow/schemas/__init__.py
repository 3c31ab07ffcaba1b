from src.simflow.schemas.audit import AuditLogRead
from src.simflow.schemas.auth import LoginRequest, TokenResponse
from src.simflow.schemas.notification import MarkedRead, NotificationRead, UnreadCount
from src.simflow.schemas.pagination import PaginatedResponse
from src.simflow.schemas.user import UserCreate, UserRead, UserUpdate

__all__ = [
    # Audit
    "AuditLogRead",
    # Auth
    "LoginRequest",
    "TokenResponse",
    # Notifications
    "MarkedRead",
    "NotificationRead",
    "UnreadCount",
    # Pagination
    "PaginatedResponse",
    # User
    "UserCreate",
    "UserRead",
    "UserUpdate",
]
