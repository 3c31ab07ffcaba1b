"""Project lifecycle against a real database."""

from datetime import timedelta
from uuid import UUID

import pytest
from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession

from src.simflow.models import (
    EntityType,
    HourTransactionType,
    MilestoneStatus,
    Notification,
    NotificationType,
    Project,
    ProjectHourTransaction,
    ProjectMilestone,
    ProjectStatus,
    ProjectStatusHistory,
    RequestStatus,
    SimulationRequest,
)
from src.simflow.models.base import utc_now
from src.simflow.schemas.project import MilestoneCreate, ProjectCreate
from src.simflow.schemas.request import RequestCreate
from src.simflow.services import TransitionCommand
from src.simflow.workflow import (
    Forbidden,
    InvalidTransition,
    NotFound,
    ProjectInUse,
    ProjectUnavailable,
    ReasonRequired,
    RequestAction,
    ValidationFailed,
)
from src.simflow.workflow.transitions import PROJECT_TRANSITIONS, REQUIRES_REASON
from tests.factories import ProjectFactory, SimulationRequestFactory

pytestmark = pytest.mark.integration


async def reload(session: AsyncSession, project_id: UUID) -> Project:
    project = await session.get(Project, project_id, populate_existing=True)
    assert project is not None
    return project


async def history_count(session: AsyncSession, project_id: UUID) -> int:
    result = await session.execute(
        select(func.count())
        .select_from(ProjectStatusHistory)
        .where(ProjectStatusHistory.project_id == project_id)
    )
    return result.scalar_one()


class TestCreate:
    async def test_codes_are_sequential_per_year(self, services, manager):
        year = utc_now().year

        first = await services.projects.create(
            ProjectCreate(name="Chassis", total_hours=100), manager
        )
        second = await services.projects.create(ProjectCreate(name="Body"), manager)

        assert first.code == f"100001-{year}"
        assert second.code == f"100002-{year}"

    async def test_manager_project_starts_active_with_history(
        self, services, db_session, manager
    ):
        project = await services.projects.create(
            ProjectCreate(name="Chassis", total_hours=100), manager
        )

        assert project.status == ProjectStatus.ACTIVE.value
        assert project.version == 1
        assert project.used_hours == 0
        assert project.owner_id == manager.id
        [entry] = await services.projects.history(project.id)
        assert entry.from_status is None
        assert entry.to_status == ProjectStatus.ACTIVE.value

    async def test_end_user_project_waits_for_a_manager(
        self, services, db_session, manager, requester
    ):
        project = await services.projects.create(ProjectCreate(name="Bracket"), requester)

        assert project.status == ProjectStatus.PENDING.value
        result = await db_session.execute(
            select(Notification).where(
                Notification.recipient_id == manager.id,
                Notification.type == NotificationType.PROJECT_CREATED.value,
            )
        )
        assert len(result.scalars().all()) == 1

    async def test_end_user_cannot_pick_status(self, services, requester):
        with pytest.raises(Forbidden):
            await services.projects.create(
                ProjectCreate(name="Bracket", status=ProjectStatus.ACTIVE), requester
            )

    async def test_manager_may_start_pending(self, services, manager):
        project = await services.projects.create(
            ProjectCreate(name="Bracket", status=ProjectStatus.PENDING), manager
        )

        assert project.status == ProjectStatus.PENDING.value

    @pytest.mark.parametrize(
        "status",
        [s for s in ProjectStatus if s not in (ProjectStatus.PENDING, ProjectStatus.ACTIVE)],
    )
    async def test_later_statuses_need_a_transition(self, services, db_session, manager, status):
        with pytest.raises(ValidationFailed, match="Pending or Active"):
            await services.projects.create(ProjectCreate(name="Bracket", status=status), manager)

        count = await db_session.execute(select(func.count()).select_from(Project))
        assert count.scalar_one() == 0


class TestTransitions:
    async def test_pairs_outside_the_table_are_rejected(self, services, db_session, seed, manager):
        for current in ProjectStatus:
            project = ProjectFactory.with_status(current, used_hours=0)
            await seed(project)
            for target in ProjectStatus:
                if target in PROJECT_TRANSITIONS[current]:
                    continue
                with pytest.raises(InvalidTransition):
                    await services.projects.transition_status(
                        project.id, target, manager, reason="Some reason"
                    )
                stored = await reload(db_session, project.id)
                assert stored.status == current.value
                assert stored.version == 1
                assert stored.used_hours == 0
            assert await history_count(db_session, project.id) == 0

    @pytest.mark.parametrize("target", sorted(REQUIRES_REASON, key=lambda s: s.value))
    @pytest.mark.parametrize("reason", [None, "", "   "])
    async def test_blank_reason_is_rejected(
        self, services, db_session, manager, project, target, reason
    ):
        with pytest.raises(ReasonRequired):
            await services.projects.transition_status(project.id, target, manager, reason=reason)

        stored = await reload(db_session, project.id)
        assert stored.status == ProjectStatus.ACTIVE.value
        assert stored.version == 1
        assert await history_count(db_session, project.id) == 0

    async def test_reason_is_trimmed_and_recorded(self, services, manager, project):
        updated, history = await services.projects.transition_status(
            project.id, ProjectStatus.ON_HOLD, manager, reason="  Waiting on parts  "
        )

        assert updated.status == ProjectStatus.ON_HOLD.value
        assert updated.version == 2
        assert history.reason == "Waiting on parts"
        assert history.from_status == ProjectStatus.ACTIVE.value

    async def test_completion_stamps_notes(self, services, manager, project):
        updated, _ = await services.projects.transition_status(
            project.id, ProjectStatus.COMPLETED, manager, reason="Delivered"
        )

        assert updated.completed_at is not None
        assert updated.completion_notes == "Delivered"

    async def test_cancellation_stamps_reason(self, services, manager, project):
        updated, _ = await services.projects.transition_status(
            project.id, ProjectStatus.CANCELLED, manager, reason="Program stopped"
        )

        assert updated.cancelled_at is not None
        assert updated.cancellation_reason == "Program stopped"

    async def test_engineer_cannot_transition(self, services, engineer, project):
        with pytest.raises(Forbidden):
            await services.projects.transition_status(
                project.id, ProjectStatus.ON_HOLD, engineer, reason="No"
            )

    async def test_missing_project(self, services, manager):
        with pytest.raises(NotFound):
            await services.projects.transition_status(
                ProjectFactory.build().id, ProjectStatus.ON_HOLD, manager, reason="Gone"
            )

    async def test_owner_and_engineers_are_notified(
        self, services, db_session, seed, admin, manager, engineer, requester, project
    ):
        request = SimulationRequestFactory.in_status(
            RequestStatus.IN_PROGRESS,
            created_by=requester.id,
            assigned_to=engineer.id,
            project_id=project.id,
        )
        await seed(request)

        await services.projects.transition_status(
            project.id, ProjectStatus.SUSPENDED, admin, reason="Audit"
        )

        result = await db_session.execute(
            select(Notification.recipient_id).where(
                Notification.type == NotificationType.PROJECT_UPDATED.value
            )
        )
        assert set(result.scalars().all()) == {manager.id, engineer.id}

    async def test_owner_acting_alone_notifies_nobody(self, services, db_session, manager, project):
        # The owner is the actor and no engineer works on the project
        await services.projects.transition_status(
            project.id, ProjectStatus.ON_HOLD, manager, reason="Supplier delay"
        )

        count = await db_session.scalar(select(func.count()).select_from(Notification))
        assert count == 0
        assert await history_count(db_session, project.id) == 1

    async def test_valid_transitions_flag_reasons(self, services, project):
        options = await services.projects.valid_transitions(project.id)

        assert options.current_status is ProjectStatus.ACTIVE
        flags = {option.status: option.requires_reason for option in options.valid_next_states}
        assert flags[ProjectStatus.ON_HOLD] is True
        assert flags[ProjectStatus.COMPLETED] is False
        assert options.is_terminal is False

    async def test_archived_project_is_terminal(self, services, seed):
        archived = ProjectFactory.with_status(ProjectStatus.ARCHIVED)
        await seed(archived)

        options = await services.projects.valid_transitions(archived.id)

        assert options.is_terminal is True
        assert options.valid_next_states == []

    async def test_executor_routes_projects(self, services, manager, project):
        updated = await services.executor.execute(
            TransitionCommand(
                EntityType.PROJECT,
                project.id,
                ProjectStatus.ON_HOLD.value,
                manager,
                reason="Supplier delay",
                expected_version=1,
            )
        )

        assert updated.status == ProjectStatus.ON_HOLD.value
        assert updated.version == 2


class TestScenario:
    async def test_budget_then_hold(self, services, db_session, manager, engineer, requester):
        project = await services.projects.create(
            ProjectCreate(name="Suspension", total_hours=100), manager
        )
        assert (project.total_hours, project.used_hours) == (100, 0)

        request = await services.requests.create(
            RequestCreate(
                title="Modal analysis",
                description="Modal analysis of the rear subframe assembly.",
            ),
            requester,
        )
        await services.workflow.perform(request.id, RequestAction.START_REVIEW, manager)
        await services.workflow.perform(
            request.id,
            RequestAction.ASSIGN,
            manager,
            payload={"engineer_id": engineer.id, "estimated_hours": 30, "project_id": project.id},
        )
        assert (await reload(db_session, project.id)).used_hours == 30

        held, history = await services.projects.transition_status(
            project.id, ProjectStatus.ON_HOLD, manager, reason="Client budget freeze"
        )
        assert held.status == ProjectStatus.ON_HOLD.value
        assert history.reason == "Client budget freeze"
        assert [h.reason for h in await services.projects.history(project.id)][0] == (
            "Client budget freeze"
        )

        fresh = await services.projects.create(ProjectCreate(name="Fresh", total_hours=10), manager)
        with pytest.raises(ReasonRequired):
            await services.projects.transition_status(
                fresh.id, ProjectStatus.ON_HOLD, manager, reason=""
            )


class TestBudget:
    async def test_extend_keeps_used_hours(self, services, db_session, manager, project):
        updated = await services.projects.extend_budget(project.id, 50, "Scope grew", manager)

        assert updated.total_hours == 150
        assert updated.used_hours == 0
        rows, _, _ = await services.projects.hour_transactions(project.id)
        assert [r.transaction_type for r in rows] == [HourTransactionType.EXTENSION.value]
        assert await services.ledger.verify_projection(await reload(db_session, project.id))

    async def test_adjust_cannot_go_negative(self, services, db_session, manager, project):
        with pytest.raises(ValidationFailed):
            await services.projects.adjust_hours(project.id, -5, "Correction", manager)

        updated = await services.projects.adjust_hours(project.id, 5, "Missed booking", manager)
        assert updated.used_hours == 5
        assert await services.ledger.ledger_used_hours(project.id) == 5

    async def test_engineer_cannot_manage_hours(self, services, engineer, project):
        with pytest.raises(Forbidden):
            await services.projects.extend_budget(project.id, 5, "More please", engineer)

    async def test_availability_and_acceptance(self, services, seed, project):
        on_hold = ProjectFactory.with_status(ProjectStatus.ON_HOLD)
        await seed(on_hold)

        assert (await services.projects.availability(project.id, 40)).available is True
        assert (await services.projects.availability(project.id, 140)).available is False
        assert (await services.projects.availability(on_hold.id, 1)).available is False
        assert (await services.projects.can_accept_requests(project.id)).can_accept is True
        assert (await services.projects.can_accept_requests(on_hold.id)).can_accept is False

    async def test_metrics(self, services, seed, requester):
        project = ProjectFactory.build(
            total_hours=200, used_hours=50, deadline=utc_now().date() + timedelta(days=3)
        )
        await seed(
            project,
            SimulationRequestFactory.build(created_by=requester.id, project_id=project.id),
        )

        metrics = await services.projects.metrics(project.id)

        assert metrics.utilization == 25
        assert metrics.deadline_status == "Due Soon"
        assert metrics.requests_by_status == {RequestStatus.SUBMITTED.value: 1}
        # Seeded without ledger rows
        assert metrics.ledger_consistent is False


class TestDeadlines:
    async def test_expire_overdue(self, services, db_session, seed, admin):
        today = utc_now().date()
        overdue = ProjectFactory.build(deadline=today - timedelta(days=1))
        upcoming = ProjectFactory.build(deadline=today + timedelta(days=10))
        held = ProjectFactory.with_status(ProjectStatus.ON_HOLD, deadline=today - timedelta(days=5))
        await seed(overdue, upcoming, held)

        expired = await services.projects.expire_overdue(admin)

        assert expired == [overdue.code]
        stored = await reload(db_session, overdue.id)
        assert stored.status == ProjectStatus.EXPIRED.value
        [entry] = await services.projects.history(overdue.id)
        assert entry.reason == "Deadline passed"
        assert (await reload(db_session, upcoming.id)).status == ProjectStatus.ACTIVE.value
        assert (await reload(db_session, held.id)).status == ProjectStatus.ON_HOLD.value

    async def test_expire_overdue_is_admin_only(self, services, manager):
        with pytest.raises(Forbidden):
            await services.projects.expire_overdue(manager)

    async def test_near_deadline(self, services, seed):
        today = utc_now().date()
        soon = ProjectFactory.build(deadline=today + timedelta(days=2))
        later = ProjectFactory.build(deadline=today + timedelta(days=30))
        cancelled = ProjectFactory.with_status(
            ProjectStatus.CANCELLED, deadline=today + timedelta(days=1)
        )
        await seed(soon, later, cancelled)

        projects = await services.projects.near_deadline(7)

        assert [p.id for p in projects] == [soon.id]


class TestDeleteAndReassign:
    async def test_delete_refused_while_requests_exist(
        self, services, seed, manager, requester, project
    ):
        await seed(SimulationRequestFactory.build(created_by=requester.id, project_id=project.id))

        with pytest.raises(ProjectInUse) as exc_info:
            await services.projects.delete(project.id, manager)

        assert exc_info.value.request_count == 1

    async def test_delete_removes_history_and_milestones(
        self, services, db_session, manager, project
    ):
        await services.projects.create_milestone(
            project.id, MilestoneCreate(name="Kickoff"), manager
        )

        await services.projects.delete(project.id, manager)

        assert await db_session.get(Project, project.id) is None
        result = await db_session.execute(
            select(func.count())
            .select_from(ProjectMilestone)
            .where(ProjectMilestone.project_id == project.id)
        )
        assert result.scalar_one() == 0

    async def test_reassign_moves_hours(self, services, db_session, seed, manager, requester):
        source = ProjectFactory.build(used_hours=10)
        target = ProjectFactory.build()
        request = SimulationRequestFactory.in_status(
            RequestStatus.IN_PROGRESS,
            created_by=requester.id,
            project_id=source.id,
            allocated_hours=10,
        )
        allocation = ProjectHourTransaction(
            project_id=source.id,
            request_id=request.id,
            transaction_type=HourTransactionType.ALLOCATION.value,
            hours=10,
            balance_before=0,
            balance_after=10,
        )
        await seed(source, target, request, allocation)

        moved = await services.projects.reassign_requests(source.id, target.id, manager)

        assert moved == 1
        assert (await reload(db_session, source.id)).used_hours == 0
        assert (await reload(db_session, target.id)).used_hours == 10
        stored = await db_session.get(SimulationRequest, request.id, populate_existing=True)
        assert stored.project_id == target.id
        assert stored.project_code == target.code
        assert await services.ledger.ledger_used_hours(source.id) == 0
        assert await services.ledger.ledger_used_hours(target.id) == 10

    async def test_reassign_needs_active_target(self, services, seed, manager, project):
        closed = ProjectFactory.with_status(ProjectStatus.COMPLETED)
        await seed(closed)

        with pytest.raises(ProjectUnavailable):
            await services.projects.reassign_requests(project.id, closed.id, manager)


class TestMilestones:
    async def test_complete_milestone(self, services, manager, project):
        milestone = await services.projects.create_milestone(
            project.id, MilestoneCreate(name="Mesh ready"), manager
        )
        assert milestone.status == MilestoneStatus.PENDING.value

        updated = await services.projects.update_milestone_status(
            project.id, milestone.id, MilestoneStatus.COMPLETED, manager
        )

        assert updated.status == MilestoneStatus.COMPLETED.value
        assert updated.completed_at is not None
        assert [m.id for m in await services.projects.list_milestones(project.id)] == [
            milestone.id
        ]

    async def test_milestone_must_belong_to_project(self, services, seed, manager, project):
        milestone = await services.projects.create_milestone(
            project.id, MilestoneCreate(name="Mesh ready"), manager
        )
        other = ProjectFactory.build()
        await seed(other)

        with pytest.raises(NotFound):
            await services.projects.update_milestone_status(
                other.id, milestone.id, MilestoneStatus.COMPLETED, manager
            )

    async def test_requester_cannot_manage_milestones(self, services, requester, project):
        with pytest.raises(Forbidden):
            await services.projects.create_milestone(
                project.id, MilestoneCreate(name="Nope"), requester
            )
