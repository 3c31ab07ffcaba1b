"""Authentication service - password login and bearer tokens."""

from sqlalchemy.ext.asyncio import AsyncSession

from src.simflow.core.logging import get_logger
from src.simflow.core.security import (
    DUMMY_PASSWORD_HASH,
    create_access_token,
    verify_password,
)
from src.simflow.models import AuditAction, EntityType
from src.simflow.repositories import UserRepository
from src.simflow.schemas.auth import TokenResponse
from src.simflow.services.audit_service import AuditService

logger = get_logger(__name__)


class AuthService:
    def __init__(self, user_repo: UserRepository, audit: AuditService, session: AsyncSession):
        self.user_repo = user_repo
        self.audit = audit
        self.session = session

    async def authenticate(self, email: str, password: str) -> TokenResponse | None:
        """Check credentials and issue an access token.

        Returns None for an unknown email, a wrong password or an inactive
        account, without saying which.
        """
        user = await self.user_repo.get_by_email(email.lower())

        # Always verify so response time does not reveal whether the email exists
        password_hash = user.hashed_password if user else DUMMY_PASSWORD_HASH
        password_valid = verify_password(password, password_hash)

        if user is None or not password_valid or not user.is_active:
            logger.info("login_failed", reason="invalid_credentials")
            await self.audit.log_failure(
                AuditAction.USER_LOGIN,
                EntityType.USER,
                error_message="Invalid credentials",
                entity_id=user.id if user else None,
            )
            return None

        token = create_access_token(user.id, user.role)
        logger.info("login_succeeded", user_id=str(user.id))
        await self.audit.log_success(
            AuditAction.USER_LOGIN, EntityType.USER, entity_id=user.id, actor_id=user.id
        )
        return TokenResponse(access_token=token)
