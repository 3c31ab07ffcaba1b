"""Request metadata for audit entries, carried in a contextvar.

The middleware fills it per request; AuditService reads it when writing.
"""

from contextvars import ContextVar
from dataclasses import dataclass

_audit_context: ContextVar["AuditContext | None"] = ContextVar("audit_context", default=None)

MAX_USER_AGENT_LENGTH = 500


@dataclass(frozen=True)
class AuditContext:
    ip_address: str | None = None
    user_agent: str | None = None
    request_id: str | None = None


def set_audit_context(
    ip_address: str | None = None,
    user_agent: str | None = None,
    request_id: str | None = None,
) -> None:
    if user_agent and len(user_agent) > MAX_USER_AGENT_LENGTH:
        user_agent = user_agent[:MAX_USER_AGENT_LENGTH]
    _audit_context.set(
        AuditContext(ip_address=ip_address, user_agent=user_agent, request_id=request_id)
    )


def get_audit_context() -> AuditContext | None:
    return _audit_context.get()


def clear_audit_context() -> None:
    _audit_context.set(None)


def get_client_ip(forwarded_for: str | None, client_host: str | None) -> str | None:
    """First hop of X-Forwarded-For, else the socket peer."""
    if forwarded_for:
        return forwarded_for.split(",")[0].strip()
    return client_host
