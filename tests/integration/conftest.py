"""Integration test fixtures for database, services and HTTP client.

Each test gets its own SQLite file with the full schema, so tests stay
isolated without a running database server. Seed data is written through a
separate session; the objects come back detached but fully loaded, which
keeps them usable as actors after a service rolls its own session back.
"""

from collections.abc import AsyncGenerator, Awaitable, Callable
from dataclasses import dataclass
from pathlib import Path
from typing import Any

import pytest
from httpx import ASGITransport, AsyncClient
from sqlalchemy import event
from sqlalchemy.ext.asyncio import (
    AsyncEngine,
    AsyncSession,
    async_sessionmaker,
    create_async_engine,
)
from sqlalchemy.pool import NullPool
from sqlmodel import SQLModel

from src.simflow import models  # noqa: F401
from src.simflow.api.dependencies.db import get_audit_db_session, get_db_session
from src.simflow.core.db import create_session_factory, dispose_engine
from src.simflow.core.security import create_access_token
from src.simflow.main import create_app
from src.simflow.models import Project, User
from src.simflow.repositories import (
    AnalyticsRepository,
    AuditLogRepository,
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
from src.simflow.services import (
    AnalyticsService,
    AuditService,
    HourLedgerService,
    NotificationService,
    ProjectService,
    RequestService,
    RequestWorkflowService,
    TransitionExecutor,
)
from tests.factories import ProjectFactory, UserFactory

Seed = Callable[..., Awaitable[None]]


def _enable_foreign_keys(dbapi_connection: Any, connection_record: Any) -> None:
    # SQLite ignores ON DELETE rules unless asked per connection
    cursor = dbapi_connection.cursor()
    cursor.execute("PRAGMA foreign_keys=ON")
    cursor.close()


@pytest.fixture
async def engine(tmp_path: Path) -> AsyncGenerator[AsyncEngine]:
    """Create a file-backed test database with every table."""
    test_engine = create_async_engine(
        f"sqlite+aiosqlite:///{tmp_path / 'simflow.db'}", poolclass=NullPool
    )
    event.listen(test_engine.sync_engine, "connect", _enable_foreign_keys)

    async with test_engine.begin() as conn:
        await conn.run_sync(SQLModel.metadata.create_all)

    yield test_engine
    await test_engine.dispose()


@pytest.fixture
def session_factory(engine: AsyncEngine) -> async_sessionmaker[AsyncSession]:
    return create_session_factory(engine)


@pytest.fixture
async def db_session(
    session_factory: async_sessionmaker[AsyncSession],
) -> AsyncGenerator[AsyncSession]:
    """Session the services under test work in.

    Services commit and roll back themselves. After a call that failed,
    refresh any object read through this session before inspecting it.
    """
    async with session_factory() as session:
        yield session


@pytest.fixture
async def audit_session(
    session_factory: async_sessionmaker[AsyncSession],
) -> AsyncGenerator[AsyncSession]:
    async with session_factory() as session:
        yield session


@pytest.fixture
def seed(session_factory: async_sessionmaker[AsyncSession]) -> Seed:
    """Persist objects in order, flushing each so foreign keys resolve."""

    async def _seed(*objects: Any) -> None:
        async with session_factory() as session:
            for obj in objects:
                session.add(obj)
                await session.flush()
            await session.commit()

    return _seed


# Users


@pytest.fixture
async def admin(seed: Seed) -> User:
    user = UserFactory.admin()
    await seed(user)
    return user


@pytest.fixture
async def manager(seed: Seed) -> User:
    user = UserFactory.manager()
    await seed(user)
    return user


@pytest.fixture
async def engineer(seed: Seed) -> User:
    user = UserFactory.engineer()
    await seed(user)
    return user


@pytest.fixture
async def other_engineer(seed: Seed) -> User:
    user = UserFactory.engineer(name="Eli Engineer")
    await seed(user)
    return user


@pytest.fixture
async def requester(seed: Seed) -> User:
    user = UserFactory.end_user()
    await seed(user)
    return user


@pytest.fixture
async def project(seed: Seed, manager: User) -> Project:
    """Active project, 100 hours total, nothing used."""
    project = ProjectFactory.build(owner_id=manager.id)
    await seed(project)
    return project


# Services


@dataclass
class Services:
    requests: RequestService
    workflow: RequestWorkflowService
    projects: ProjectService
    ledger: HourLedgerService
    notifications: NotificationService
    executor: TransitionExecutor
    audit: AuditService
    analytics: AnalyticsService


def build_services(session: AsyncSession, audit_session: AsyncSession) -> Services:
    """Wire services the same way the API dependencies do."""
    user_repo = UserRepository(session)
    project_repo = ProjectRepository(session)
    request_repo = RequestRepository(session)
    discussion_repo = DiscussionRepository(session)
    time_entry_repo = TimeEntryRepository(session)

    audit = AuditService(AuditLogRepository(audit_session), audit_session)
    notifications = NotificationService(NotificationRepository(session), user_repo, session)
    ledger = HourLedgerService(project_repo, HourTransactionRepository(session), session)

    workflow = RequestWorkflowService(
        request_repo,
        user_repo,
        discussion_repo,
        time_entry_repo,
        ledger,
        notifications,
        audit,
        session,
    )
    projects = ProjectService(
        project_repo,
        StatusHistoryRepository(session),
        MilestoneRepository(session),
        request_repo,
        ledger,
        notifications,
        audit,
        session,
    )
    requests = RequestService(
        request_repo,
        user_repo,
        project_repo,
        CommentRepository(session),
        time_entry_repo,
        TitleChangeRepository(session),
        discussion_repo,
        ledger,
        notifications,
        audit,
        session,
    )
    return Services(
        requests=requests,
        workflow=workflow,
        projects=projects,
        ledger=ledger,
        notifications=notifications,
        executor=TransitionExecutor(projects, workflow, request_repo),
        audit=audit,
        analytics=AnalyticsService(AnalyticsRepository(session)),
    )


@pytest.fixture
def services(db_session: AsyncSession, audit_session: AsyncSession) -> Services:
    return build_services(db_session, audit_session)


# HTTP


@pytest.fixture
async def client(
    session_factory: async_sessionmaker[AsyncSession],
) -> AsyncGenerator[AsyncClient]:
    """Test client whose sessions point at the test database."""
    app = create_app()

    async def _db_session() -> AsyncGenerator[AsyncSession]:
        async with session_factory() as session:
            yield session

    async def _audit_db_session() -> AsyncGenerator[AsyncSession]:
        async with session_factory() as session:
            yield session

    app.dependency_overrides[get_db_session] = _db_session
    app.dependency_overrides[get_audit_db_session] = _audit_db_session

    async with AsyncClient(transport=ASGITransport(app=app), base_url="http://test") as client:
        yield client

    await dispose_engine()


@pytest.fixture
def auth_headers() -> Callable[[User], dict[str, str]]:
    def _headers(user: User) -> dict[str, str]:
        return {"Authorization": f"Bearer {create_access_token(user.id, user.role)}"}

    return _headers
