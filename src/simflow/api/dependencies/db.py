"""Database session dependencies."""

from collections.abc import AsyncGenerator
from typing import Annotated

from fastapi import Depends
from sqlalchemy.ext.asyncio import AsyncSession

from src.simflow.core.db import get_session


async def get_db_session() -> AsyncGenerator[AsyncSession]:
    """Session for the request's unit of work."""
    async with get_session() as session:
        yield session


async def get_audit_db_session() -> AsyncGenerator[AsyncSession]:
    """Separate session for audit entries.

    Audit writes commit on their own, so a failed audit write can never
    disturb the request's business objects.
    """
    async with get_session() as session:
        yield session


DBSession = Annotated[AsyncSession, Depends(get_db_session)]
AuditDBSession = Annotated[AsyncSession, Depends(get_audit_db_session)]
