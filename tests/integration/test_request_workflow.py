"""Request workflow against a real database: ledger effects, ordering and rollback."""

from datetime import timedelta
from typing import Any
from uuid import UUID

import pytest
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from src.simflow.models import (
    DiscussionStatus,
    EntityType,
    HourTransactionType,
    Notification,
    NotificationType,
    Project,
    ProjectHourTransaction,
    ProjectStatus,
    RequestStatus,
    SimulationRequest,
    User,
)
from src.simflow.models.base import utc_now
from src.simflow.schemas.request import RequestCreate, RequestSort, TimeEntryCreate
from src.simflow.services import TransitionCommand
from src.simflow.services.request_service import describe
from src.simflow.workflow import (
    Conflict,
    Forbidden,
    InsufficientBudget,
    InvalidTransition,
    ProjectUnavailable,
    RequestAction,
    ValidationFailed,
)
from tests.factories import ProjectFactory, SimulationRequestFactory

pytestmark = pytest.mark.integration


async def reload[T](session: AsyncSession, model: type[T], id: UUID) -> T:
    obj = await session.get(model, id, populate_existing=True)
    assert obj is not None
    return obj


async def ledger_rows(session: AsyncSession, project_id: UUID) -> list[ProjectHourTransaction]:
    result = await session.execute(
        select(ProjectHourTransaction)
        .where(ProjectHourTransaction.project_id == project_id)
        .order_by(ProjectHourTransaction.created_at)
    )
    return list(result.scalars().all())


async def submit(services: Any, requester: User, **kwargs: Any) -> SimulationRequest:
    data = RequestCreate(
        title="Crash test simulation",
        description="Frontal impact simulation at 56 km/h for the new chassis.",
        **kwargs,
    )
    return await services.requests.create(data, requester)


async def assign(
    services: Any,
    request: SimulationRequest,
    manager: User,
    engineer: User,
    project: Project,
    hours: float,
) -> SimulationRequest:
    await services.workflow.perform(request.id, RequestAction.START_REVIEW, manager)
    return await services.workflow.perform(
        request.id,
        RequestAction.ASSIGN,
        manager,
        payload={"engineer_id": engineer.id, "estimated_hours": hours, "project_id": project.id},
    )


class TestRoundTrip:
    async def test_full_lifecycle_counts_hours_once(
        self, services, db_session, manager, engineer, requester, project
    ):
        request = await submit(services, requester)
        assert request.status == RequestStatus.SUBMITTED.value
        assert request.version == 1

        request = await assign(services, request, manager, engineer, project, 30)
        assert request.status == RequestStatus.ENGINEERING_REVIEW.value
        assert request.assigned_to == engineer.id

        request = await services.workflow.perform(request.id, RequestAction.ACCEPT_WORK, engineer)
        assert request.status == RequestStatus.IN_PROGRESS.value
        request = await services.workflow.perform(
            request.id, RequestAction.COMPLETE_WORK, engineer
        )
        assert request.status == RequestStatus.COMPLETED.value
        request = await services.workflow.perform(
            request.id, RequestAction.ACCEPT_DELIVERY, requester
        )

        assert request.status == RequestStatus.ACCEPTED.value
        assert request.version == 6
        stored = await reload(db_session, Project, project.id)
        assert stored.used_hours == 30
        assert await services.ledger.ledger_used_hours(project.id) == 30
        assert len(await ledger_rows(db_session, project.id)) == 1

    async def test_executor_maps_target_status(self, services, manager, requester):
        request = await submit(services, requester)

        result = await services.executor.execute(
            TransitionCommand(
                EntityType.REQUEST,
                request.id,
                RequestStatus.MANAGER_REVIEW.value,
                manager,
                expected_version=1,
            )
        )

        assert result.status == RequestStatus.MANAGER_REVIEW.value
        assert result.version == 2


class TestAssignment:
    async def test_allocates_exact_hours(
        self, services, db_session, manager, engineer, requester, project
    ):
        request = await submit(services, requester)

        await assign(services, request, manager, engineer, project, 30)

        stored = await reload(db_session, Project, project.id)
        assert stored.used_hours == 30
        [row] = await ledger_rows(db_session, project.id)
        assert row.transaction_type == HourTransactionType.ALLOCATION.value
        assert row.hours == 30
        assert row.balance_after == row.balance_before + 30
        assert row.request_id == request.id

    async def test_over_budget_changes_nothing(
        self, services, db_session, manager, engineer, requester, project
    ):
        request = await submit(services, requester)
        await services.workflow.perform(request.id, RequestAction.START_REVIEW, manager)

        with pytest.raises(InsufficientBudget) as exc_info:
            await services.workflow.perform(
                request.id,
                RequestAction.ASSIGN,
                manager,
                payload={
                    "engineer_id": engineer.id,
                    "estimated_hours": 120,
                    "project_id": project.id,
                },
            )

        assert exc_info.value.available == 100
        stored_project = await reload(db_session, Project, project.id)
        stored_request = await reload(db_session, SimulationRequest, request.id)
        assert stored_project.used_hours == 0
        assert stored_request.status == RequestStatus.MANAGER_REVIEW.value
        assert stored_request.assigned_to is None
        assert stored_request.version == 2
        assert await ledger_rows(db_session, project.id) == []

    async def test_inactive_project_rejected(
        self, services, db_session, seed, manager, engineer, requester
    ):
        on_hold = ProjectFactory.with_status(ProjectStatus.ON_HOLD)
        await seed(on_hold)
        request = await submit(services, requester)
        await services.workflow.perform(request.id, RequestAction.START_REVIEW, manager)

        with pytest.raises(ProjectUnavailable):
            await services.workflow.perform(
                request.id,
                RequestAction.ASSIGN,
                manager,
                payload={
                    "engineer_id": engineer.id,
                    "estimated_hours": 5,
                    "project_id": on_hold.id,
                },
            )

    async def test_assignee_must_be_engineer(self, services, manager, requester, project):
        request = await submit(services, requester)
        await services.workflow.perform(request.id, RequestAction.START_REVIEW, manager)

        with pytest.raises(ValidationFailed, match="active engineer"):
            await services.workflow.perform(
                request.id,
                RequestAction.ASSIGN,
                manager,
                payload={"engineer_id": requester.id, "estimated_hours": 5},
            )

    async def test_without_project_allocates_nothing(
        self, services, db_session, manager, engineer, requester, project
    ):
        request = await submit(services, requester)
        await services.workflow.perform(request.id, RequestAction.START_REVIEW, manager)

        request = await services.workflow.perform(
            request.id,
            RequestAction.ASSIGN,
            manager,
            payload={"engineer_id": engineer.id, "estimated_hours": 12},
        )

        assert request.estimated_hours == 12
        assert request.allocated_hours is None
        assert await ledger_rows(db_session, project.id) == []


class TestRoleGate:
    @pytest.mark.parametrize("status", list(RequestStatus))
    async def test_engineer_cannot_complete_someone_elses_work(
        self, services, seed, engineer, other_engineer, requester, status
    ):
        request = SimulationRequestFactory.in_status(
            status, created_by=requester.id, assigned_to=other_engineer.id
        )
        await seed(request)

        with pytest.raises(Forbidden):
            await services.workflow.perform(request.id, RequestAction.COMPLETE_WORK, engineer)

    @pytest.mark.parametrize("status", list(RequestStatus))
    async def test_executor_checks_role_before_status(
        self, services, seed, engineer, other_engineer, requester, status
    ):
        request = SimulationRequestFactory.in_status(
            status, created_by=requester.id, assigned_to=other_engineer.id
        )
        await seed(request)

        with pytest.raises(Forbidden):
            await services.executor.execute(
                TransitionCommand(
                    EntityType.REQUEST, request.id, RequestStatus.COMPLETED.value, engineer
                )
            )

    async def test_requester_cannot_start_review(self, services, requester):
        request = await submit(services, requester)

        with pytest.raises(Forbidden):
            await services.workflow.perform(request.id, RequestAction.START_REVIEW, requester)


class TestVersioning:
    async def test_each_action_bumps_version_once(self, services, manager, requester):
        request = await submit(services, requester)

        request = await services.workflow.perform(
            request.id, RequestAction.START_REVIEW, manager, expected_version=1
        )

        assert request.version == 2

    async def test_stale_version_persists_nothing(
        self, services, db_session, manager, engineer, requester, project
    ):
        request = await submit(services, requester)
        await services.workflow.perform(request.id, RequestAction.START_REVIEW, manager)

        with pytest.raises(Conflict):
            await services.workflow.perform(
                request.id,
                RequestAction.ASSIGN,
                manager,
                payload={
                    "engineer_id": engineer.id,
                    "estimated_hours": 10,
                    "project_id": project.id,
                },
                expected_version=1,
            )

        stored = await reload(db_session, SimulationRequest, request.id)
        assert stored.status == RequestStatus.MANAGER_REVIEW.value
        assert stored.version == 2
        assert (await reload(db_session, Project, project.id)).used_hours == 0
        assert await ledger_rows(db_session, project.id) == []

    async def test_invalid_transition_leaves_request_alone(
        self, services, db_session, admin, requester
    ):
        request = await submit(services, requester)

        with pytest.raises(InvalidTransition):
            await services.workflow.perform(request.id, RequestAction.COMPLETE_WORK, admin)

        stored = await reload(db_session, SimulationRequest, request.id)
        assert stored.status == RequestStatus.SUBMITTED.value
        assert stored.version == 1

    async def test_stray_assignment_blocks_the_move(
        self, services, db_session, seed, manager, engineer, requester
    ):
        request = SimulationRequestFactory.build(created_by=requester.id, assigned_to=engineer.id)
        await seed(request)

        with pytest.raises(ValidationFailed, match="Assigned engineer"):
            await services.workflow.perform(request.id, RequestAction.START_REVIEW, manager)

        stored = await reload(db_session, SimulationRequest, request.id)
        assert stored.status == RequestStatus.SUBMITTED.value
        assert stored.version == 1


class TestDiscussion:
    async def test_override_moves_only_the_delta(
        self, services, db_session, manager, engineer, requester, project
    ):
        request = await submit(services, requester)
        await assign(services, request, manager, engineer, project, 8)

        await services.workflow.perform(
            request.id,
            RequestAction.REQUEST_DISCUSSION,
            engineer,
            payload={"reason": "Mesh is finer than estimated", "suggested_hours": 12},
        )
        request = await services.workflow.perform(
            request.id,
            RequestAction.RESOLVE_DISCUSSION,
            manager,
            payload={
                "action": "override",
                "allocated_hours": 5,
                "manager_response": "Coarsen it",
            },
        )

        assert request.status == RequestStatus.ENGINEERING_REVIEW.value
        assert request.allocated_hours == 5
        assert request.estimated_hours == 5
        rows = await ledger_rows(db_session, project.id)
        assert [row.hours for row in rows] == [8, -3]
        assert (await reload(db_session, Project, project.id)).used_hours == 5

        [discussion] = await services.requests.list_discussions(request.id, manager)
        assert discussion.status == DiscussionStatus.OVERRIDE.value
        assert discussion.allocated_hours == 5
        assert discussion.manager_response == "Coarsen it"

    async def test_approve_uses_suggested_hours(
        self, services, db_session, manager, engineer, requester, project
    ):
        request = await submit(services, requester)
        await assign(services, request, manager, engineer, project, 8)
        await services.workflow.perform(
            request.id,
            RequestAction.REQUEST_DISCUSSION,
            engineer,
            payload={"reason": "Two load cases were missed", "suggested_hours": 12},
        )

        request = await services.workflow.perform(
            request.id, RequestAction.RESOLVE_DISCUSSION, manager, payload={"action": "approve"}
        )

        assert request.allocated_hours == 12
        assert (await reload(db_session, Project, project.id)).used_hours == 12

    async def test_discussion_notifies_managers(
        self, services, db_session, manager, engineer, requester, project
    ):
        request = await submit(services, requester)
        await assign(services, request, manager, engineer, project, 8)

        await services.workflow.perform(
            request.id,
            RequestAction.REQUEST_DISCUSSION,
            engineer,
            payload={"reason": "Need more time for validation"},
        )

        result = await db_session.execute(
            select(Notification).where(
                Notification.recipient_id == manager.id,
                Notification.type == NotificationType.DISCUSSION_REQUESTED.value,
            )
        )
        assert len(result.scalars().all()) == 1


class TestDeny:
    async def test_returns_allocated_hours(self, services, db_session, seed, manager, requester):
        project = ProjectFactory.build(used_hours=12)
        request = SimulationRequestFactory.in_status(
            RequestStatus.MANAGER_REVIEW,
            created_by=requester.id,
            project_id=project.id,
            allocated_hours=12,
            estimated_hours=12,
        )
        allocation = ProjectHourTransaction(
            project_id=project.id,
            request_id=request.id,
            transaction_type=HourTransactionType.ALLOCATION.value,
            hours=12,
            balance_before=0,
            balance_after=12,
        )
        await seed(project, request, allocation)

        request = await services.workflow.perform(request.id, RequestAction.DENY, manager)

        assert request.status == RequestStatus.DENIED.value
        assert request.allocated_hours == 0
        stored = await reload(db_session, Project, project.id)
        assert stored.used_hours == 0
        assert await services.ledger.verify_projection(stored)


class TestCompletion:
    async def test_unused_hours_are_returned(
        self, services, db_session, manager, engineer, requester, project
    ):
        request = await submit(services, requester)
        await assign(services, request, manager, engineer, project, 30)
        await services.workflow.perform(request.id, RequestAction.ACCEPT_WORK, engineer)
        await services.requests.log_time(request.id, TimeEntryCreate(hours=20), engineer)

        request = await services.workflow.perform(
            request.id, RequestAction.COMPLETE_WORK, engineer
        )

        assert request.allocated_hours == 20
        stored = await reload(db_session, Project, project.id)
        assert stored.used_hours == 20
        assert await services.ledger.verify_projection(stored)

    async def test_overage_is_capped_at_budget(
        self, services, db_session, seed, manager, engineer, requester
    ):
        project = ProjectFactory.build(total_hours=40)
        await seed(project)
        request = await submit(services, requester)
        await assign(services, request, manager, engineer, project, 30)
        await services.workflow.perform(request.id, RequestAction.ACCEPT_WORK, engineer)
        await services.requests.log_time(request.id, TimeEntryCreate(hours=50), engineer)

        request = await services.workflow.perform(
            request.id, RequestAction.COMPLETE_WORK, engineer
        )

        assert request.allocated_hours == 40
        stored = await reload(db_session, Project, project.id)
        assert stored.used_hours == 40
        assert stored.available_hours == 0


class TestRevision:
    async def test_revision_cycle(
        self, services, db_session, manager, engineer, requester, project
    ):
        request = await submit(services, requester)
        await assign(services, request, manager, engineer, project, 10)
        await services.workflow.perform(request.id, RequestAction.ACCEPT_WORK, engineer)
        await services.workflow.perform(request.id, RequestAction.COMPLETE_WORK, engineer)

        request = await services.workflow.perform(
            request.id, RequestAction.REQUEST_REVISION, requester
        )
        assert request.status == RequestStatus.REVISION_APPROVAL.value

        request = await services.workflow.perform(
            request.id, RequestAction.APPROVE_REVISION, manager
        )
        assert request.status == RequestStatus.IN_PROGRESS.value
        assert request.assigned_to == engineer.id

        request = await services.workflow.perform(
            request.id, RequestAction.COMPLETE_WORK, engineer
        )
        assert request.status == RequestStatus.COMPLETED.value
        assert (await reload(db_session, Project, project.id)).used_hours == 10

    async def test_legacy_reentry_clears_assignment(
        self, services, seed, manager, engineer, requester
    ):
        request = SimulationRequestFactory.in_status(
            RequestStatus.REVISION_REQUESTED,
            created_by=requester.id,
            assigned_to=engineer.id,
            assigned_to_name=engineer.name,
        )
        await seed(request)

        request = await services.workflow.perform(request.id, RequestAction.START_REVIEW, manager)

        assert request.status == RequestStatus.MANAGER_REVIEW.value
        assert request.assigned_to is None


class TestNotifications:
    async def test_actor_is_never_notified(self, services, db_session, manager):
        # The manager files and reviews their own request
        request = await submit(services, manager)
        await services.workflow.perform(request.id, RequestAction.START_REVIEW, manager)

        result = await db_session.execute(
            select(Notification).where(Notification.recipient_id == manager.id)
        )
        assert result.scalars().all() == []

    async def test_requester_hears_about_status_changes(
        self, services, db_session, manager, requester
    ):
        request = await submit(services, requester)
        await services.workflow.perform(request.id, RequestAction.START_REVIEW, manager)

        notifications, _, _ = await services.notifications.list_for_user(requester)
        assert [n.type for n in notifications] == [NotificationType.REQUEST_STATUS_CHANGED.value]
        assert notifications[0].link == f"/requests/{request.id}"
        assert notifications[0].triggered_by == manager.id


class TestListing:
    async def test_workflow_sort_orders_by_stage(self, services, seed, manager, requester):
        older = SimulationRequestFactory.build(
            created_by=requester.id, created_at=utc_now() - timedelta(hours=1)
        )
        newer = SimulationRequestFactory.in_status(RequestStatus.DENIED, created_by=requester.id)
        await seed(older, newer)

        by_age, _, _ = await services.requests.list_requests(manager)
        by_stage, _, _ = await services.requests.list_requests(
            manager, sort=RequestSort.WORKFLOW
        )

        assert [r.id for r in by_age] == [newer.id, older.id]
        assert [r.id for r in by_stage] == [older.id, newer.id]

    async def test_old_requests_are_flagged_archived(self, services, seed, manager, requester):
        old = SimulationRequestFactory.build(
            created_by=requester.id, created_at=utc_now() - timedelta(days=45)
        )
        await seed(old)

        assert describe(await services.requests.get(old.id, manager), manager).archived is True

    async def test_pages_do_not_skip_shared_timestamps(self, services, seed, manager, requester):
        stamp = utc_now()
        batch = [
            SimulationRequestFactory.build(created_by=requester.id, created_at=stamp)
            for _ in range(3)
        ]
        await seed(*batch)

        first, cursor, has_more = await services.requests.list_requests(manager, limit=2)
        assert has_more is True
        second, _, has_more = await services.requests.list_requests(
            manager, cursor=cursor, limit=2
        )

        assert has_more is False
        assert len(first) == 2
        assert {r.id for r in first + second} == {r.id for r in batch}
