"""Audit context middleware - captures request metadata for audit logging."""

from asgi_correlation_id import correlation_id
from fastapi import Request, Response
from starlette.middleware.base import RequestResponseEndpoint

from src.simflow.core.audit_context import (
    clear_audit_context,
    get_client_ip,
    set_audit_context,
)


async def audit_context_middleware(
    request: Request, call_next: RequestResponseEndpoint
) -> Response:
    """Make client IP, user agent and request ID available to AuditService."""
    clear_audit_context()
    client_host = request.client.host if request.client else None
    set_audit_context(
        ip_address=get_client_ip(request.headers.get("x-forwarded-for"), client_host),
        user_agent=request.headers.get("user-agent"),
        request_id=correlation_id.get(),
    )
    try:
        return await call_next(request)
    finally:
        clear_audit_context()
