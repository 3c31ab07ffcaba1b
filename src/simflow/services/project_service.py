"""Project service: lifecycle, budget and milestones."""

from datetime import timedelta
from uuid import UUID

from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from src.simflow.core.config import get_settings
from src.simflow.core.logging import get_logger
from src.simflow.models import (
    AuditAction,
    EntityType,
    MilestoneStatus,
    NotificationType,
    Project,
    ProjectHourTransaction,
    ProjectMilestone,
    ProjectStatus,
    ProjectStatusHistory,
    User,
    UserRole,
)
from src.simflow.models.base import utc_now
from src.simflow.repositories import (
    MilestoneRepository,
    ProjectRepository,
    RequestRepository,
    StatusHistoryRepository,
)
from src.simflow.schemas.project import (
    CanAcceptRequests,
    HourAvailability,
    MilestoneCreate,
    ProjectCreate,
    ProjectMetrics,
    TransitionOption,
    ValidTransitions,
)
from src.simflow.services.audit_service import AuditService
from src.simflow.services.ledger_service import HourLedgerService
from src.simflow.services.notification_service import NotificationService
from src.simflow.workflow import (
    Conflict,
    NotFound,
    ProjectAction,
    ProjectInUse,
    ProjectUnavailable,
    ValidationFailed,
    WorkflowError,
    assert_project_transition,
    can_perform_project,
    check_reason,
    is_terminal,
    require_project_capability,
    requires_reason,
    valid_next_states,
)
from src.simflow.workflow.views import deadline_status, project_category, utilization

logger = get_logger(__name__)

FIRST_CODE_NUMBER = 100001
CODE_ATTEMPTS = 3
EXPIRY_REASON = "Deadline passed"
# Any later status is reached through a transition
INITIAL_STATUSES = frozenset({ProjectStatus.PENDING, ProjectStatus.ACTIVE})


def next_project_code(latest: str | None, year: int) -> str:
    """Next ``NNNNNN-YYYY`` code after ``latest`` for ``year``."""
    number = FIRST_CODE_NUMBER
    if latest:
        number = max(int(latest.split("-", 1)[0]) + 1, FIRST_CODE_NUMBER)
    return f"{number:06d}-{year}"


class ProjectService:
    def __init__(
        self,
        project_repo: ProjectRepository,
        history_repo: StatusHistoryRepository,
        milestone_repo: MilestoneRepository,
        request_repo: RequestRepository,
        ledger: HourLedgerService,
        notifications: NotificationService,
        audit: AuditService,
        session: AsyncSession,
    ):
        self.project_repo = project_repo
        self.history_repo = history_repo
        self.milestone_repo = milestone_repo
        self.request_repo = request_repo
        self.ledger = ledger
        self.notifications = notifications
        self.audit = audit
        self.session = session

    async def get(self, project_id: UUID) -> Project:
        project = await self.project_repo.get_by_id(project_id)
        if project is None:
            raise NotFound(EntityType.PROJECT.value, project_id)
        return project

    async def list_projects(
        self,
        cursor: str | None = None,
        limit: int = 50,
        statuses: list[ProjectStatus] | None = None,
        owner_id: UUID | None = None,
    ) -> tuple[list[Project], str | None, bool]:
        return await self.project_repo.list_filtered(cursor, limit, statuses, owner_id)

    @staticmethod
    def _check_version(project: Project, expected_version: int | None) -> None:
        if expected_version is not None and expected_version != project.version:
            raise Conflict(expected_version, project.version)

    async def create(self, data: ProjectCreate, actor: User) -> Project:
        """Create a project with the next free code for the current year.

        Managers and admins get an Active project unless they ask for another
        status; everyone else gets a Pending one that a manager must activate.
        """
        require_project_capability(actor.role, ProjectAction.CREATE)
        privileged = can_perform_project(actor.role, ProjectAction.SET_INITIAL_STATUS)
        if data.status is not None and not privileged:
            require_project_capability(actor.role, ProjectAction.SET_INITIAL_STATUS)
        if data.status is not None and data.status not in INITIAL_STATUSES:
            raise ValidationFailed(
                f"A project starts as Pending or Active, not '{data.status.value}'"
            )
        status = data.status or (ProjectStatus.ACTIVE if privileged else ProjectStatus.PENDING)

        year = utc_now().year
        for attempt in range(1, CODE_ATTEMPTS + 1):
            try:
                code = next_project_code(await self.project_repo.latest_code_for_year(year), year)
                project = Project(
                    code=code,
                    name=data.name,
                    description=data.description,
                    total_hours=data.total_hours,
                    status=status.value,
                    priority=data.priority.value,
                    category=data.category,
                    deadline=data.deadline,
                    owner_id=actor.id,
                    created_by_name=actor.name,
                )
                self.project_repo.add(project)
                # No ORM relationships, so the parent row must exist before the history row
                await self.session.flush()
                self.history_repo.add(
                    ProjectStatusHistory(
                        project_id=project.id,
                        from_status=None,
                        to_status=status.value,
                        changed_by=actor.id,
                        reason="Project created",
                    )
                )
                if not privileged:
                    await self.notifications.notify_role(
                        UserRole.MANAGER,
                        NotificationType.PROJECT_CREATED,
                        "New project awaiting approval",
                        f'{actor.name} created project "{project.name}" ({code})',
                        EntityType.PROJECT,
                        project.id,
                        actor.id,
                    )
                await self.session.commit()
                break
            except IntegrityError as e:
                # Another writer took the same code
                await self.session.rollback()
                if attempt == CODE_ATTEMPTS:
                    raise ValidationFailed("Could not allocate a project code, try again") from e
                logger.warning("project_code_collision", code=code, attempt=attempt)
            except Exception:
                await self.session.rollback()
                raise

        logger.info("project_created", project_id=str(project.id), code=code, status=status.value)
        await self.audit.log_success(
            AuditAction.PROJECT_CREATE,
            EntityType.PROJECT,
            entity_id=project.id,
            actor_id=actor.id,
            changes={"code": code, "name": project.name, "status": status.value},
        )
        return project

    async def rename(
        self, project_id: UUID, name: str, actor: User, expected_version: int | None = None
    ) -> Project:
        try:
            project = await self.ledger.lock_project(project_id)
            require_project_capability(actor.role, ProjectAction.RENAME)
            self._check_version(project, expected_version)
            name = name.strip()
            if not name:
                raise ValidationFailed("Project name cannot be empty")
            old_name = project.name
            project.name = name
            project.version += 1
            project.updated_at = utc_now()
            await self.session.commit()
        except Exception:
            await self.session.rollback()
            raise

        await self.audit.log_success(
            AuditAction.PROJECT_UPDATE,
            EntityType.PROJECT,
            entity_id=project.id,
            actor_id=actor.id,
            changes={"name": {"from": old_name, "to": name}},
        )
        return project

    async def transition_status(
        self,
        project_id: UUID,
        target: ProjectStatus,
        actor: User,
        reason: str | None = None,
        expected_version: int | None = None,
    ) -> tuple[Project, ProjectStatusHistory]:
        """Move a project to ``target``.

        Checks run in order: existence, role, version, transition table,
        reason. The history row and notifications are committed with the
        status change.
        """
        try:
            project = await self.ledger.lock_project(project_id)
            require_project_capability(actor.role, ProjectAction.TRANSITION)
            self._check_version(project, expected_version)
            from_status = ProjectStatus(project.status)
            assert_project_transition(from_status, target)
            reason = check_reason(target, reason)

            now = utc_now()
            project.status = target.value
            project.version += 1
            project.updated_at = now
            if target is ProjectStatus.COMPLETED:
                project.completed_at = now
                project.completion_notes = reason
            elif target is ProjectStatus.CANCELLED:
                project.cancelled_at = now
                project.cancellation_reason = reason

            history = ProjectStatusHistory(
                project_id=project.id,
                from_status=from_status.value,
                to_status=target.value,
                changed_by=actor.id,
                reason=reason,
            )
            self.history_repo.add(history)

            engineers = await self.request_repo.assigned_engineer_ids(project.id)
            message = f'Project "{project.name}" moved from {from_status.value} to {target.value}'
            if reason:
                message += f": {reason}"
            self.notifications.notify_many(
                [project.owner_id, *sorted(engineers)],
                NotificationType.PROJECT_UPDATED,
                "Project status changed",
                message,
                EntityType.PROJECT,
                project.id,
                actor.id,
            )
            await self.session.commit()
        except WorkflowError as e:
            await self.session.rollback()
            logger.info(
                "project_transition_rejected",
                project_id=str(project_id),
                target=target.value,
                error=type(e).__name__,
                reason=e.message,
            )
            raise
        except Exception:
            await self.session.rollback()
            raise

        logger.info(
            "project_transitioned",
            project_id=str(project.id),
            from_status=from_status.value,
            to_status=target.value,
            version=project.version,
        )
        await self.audit.log_success(
            AuditAction.PROJECT_TRANSITION,
            EntityType.PROJECT,
            entity_id=project.id,
            actor_id=actor.id,
            changes={
                "status": {"from": from_status.value, "to": target.value},
                "reason": reason,
            },
        )
        return project, history

    async def valid_transitions(self, project_id: UUID) -> ValidTransitions:
        project = await self.get(project_id)
        return ValidTransitions(
            current_status=ProjectStatus(project.status),
            is_terminal=is_terminal(project.status),
            valid_next_states=[
                TransitionOption(status=status, requires_reason=requires_reason(status))
                for status in valid_next_states(project.status)
            ],
        )

    async def history(self, project_id: UUID) -> list[ProjectStatusHistory]:
        await self.get(project_id)
        return await self.history_repo.list_for_project(project_id)

    async def hour_transactions(
        self, project_id: UUID, cursor: str | None = None, limit: int = 50
    ) -> tuple[list[ProjectHourTransaction], str | None, bool]:
        await self.get(project_id)
        return await self.ledger.transaction_repo.list_for_project(project_id, cursor, limit)

    async def extend_budget(
        self, project_id: UUID, additional_hours: float, reason: str, actor: User
    ) -> Project:
        try:
            project = await self.ledger.lock_project(project_id)
            require_project_capability(actor.role, ProjectAction.MANAGE_HOURS)
            total_before = project.total_hours
            self.ledger.extend(project, additional_hours, reason, performed_by=actor.id)
            await self.session.commit()
        except Exception:
            await self.session.rollback()
            raise

        await self.audit.log_success(
            AuditAction.PROJECT_HOURS,
            EntityType.PROJECT,
            entity_id=project.id,
            actor_id=actor.id,
            changes={
                "total_hours": {"from": total_before, "to": project.total_hours},
                "reason": reason,
            },
        )
        return project

    async def adjust_hours(
        self, project_id: UUID, hours: float, reason: str, actor: User
    ) -> Project:
        try:
            project = await self.ledger.lock_project(project_id)
            require_project_capability(actor.role, ProjectAction.MANAGE_HOURS)
            used_before = project.used_hours
            self.ledger.adjust(project, hours, reason, performed_by=actor.id)
            await self.session.commit()
        except Exception:
            await self.session.rollback()
            raise

        await self.audit.log_success(
            AuditAction.PROJECT_HOURS,
            EntityType.PROJECT,
            entity_id=project.id,
            actor_id=actor.id,
            changes={
                "used_hours": {"from": used_before, "to": project.used_hours},
                "reason": reason,
            },
        )
        return project

    async def availability(self, project_id: UUID, hours: float) -> HourAvailability:
        return await self.ledger.check_availability(project_id, hours)

    async def can_accept_requests(self, project_id: UUID) -> CanAcceptRequests:
        project = await self.get(project_id)
        return CanAcceptRequests(
            can_accept=project.status == ProjectStatus.ACTIVE.value
            and project.available_hours > 0,
            status=ProjectStatus(project.status),
            available_hours=project.available_hours,
        )

    async def metrics(self, project_id: UUID) -> ProjectMetrics:
        project = await self.get(project_id)
        return ProjectMetrics(
            project_id=project.id,
            code=project.code,
            status=ProjectStatus(project.status),
            category=project_category(project.status),
            total_hours=project.total_hours,
            used_hours=project.used_hours,
            available_hours=project.available_hours,
            utilization=utilization(project),
            deadline=project.deadline,
            deadline_status=deadline_status(
                project.deadline, utc_now().date(), get_settings().near_deadline_days
            ),
            requests_by_status=await self.request_repo.count_by_status_for_project(project.id),
            milestones_by_status=await self.milestone_repo.count_by_status(project.id),
            ledger_consistent=await self.ledger.verify_projection(project),
        )

    async def near_deadline(self, days: int | None = None) -> list[Project]:
        """Active or on-hold projects due within ``days``."""
        if days is None:
            days = get_settings().near_deadline_days
        today = utc_now().date()
        return await self.project_repo.list_with_deadline_between(
            today,
            today + timedelta(days=days),
            [ProjectStatus.ACTIVE, ProjectStatus.ON_HOLD],
        )

    async def expire_overdue(self, actor: User) -> list[str]:
        """Expire every Active project past its deadline, one transaction each.

        A project that cannot be expired (changed concurrently, say) is
        skipped and the rest still go through.
        """
        require_project_capability(actor.role, ProjectAction.EXPIRE_OVERDUE)
        expired: list[str] = []
        for project_id in await self.project_repo.list_overdue_ids(utc_now().date()):
            try:
                project, _ = await self.transition_status(
                    project_id, ProjectStatus.EXPIRED, actor, reason=EXPIRY_REASON
                )
            except WorkflowError as e:
                logger.warning(
                    "project_expiry_skipped",
                    project_id=str(project_id),
                    error=type(e).__name__,
                )
                continue
            expired.append(project.code)

        logger.info("overdue_projects_expired", count=len(expired))
        return expired

    async def delete(self, project_id: UUID, actor: User) -> None:
        try:
            project = await self.ledger.lock_project(project_id)
            require_project_capability(actor.role, ProjectAction.DELETE)
            request_count = await self.request_repo.count_for_project(project.id)
            if request_count:
                raise ProjectInUse(request_count)
            code = project.code
            await self.project_repo.delete(project)
            await self.session.commit()
        except Exception:
            await self.session.rollback()
            raise

        logger.info("project_deleted", project_id=str(project_id), code=code)
        await self.audit.log_success(
            AuditAction.PROJECT_DELETE,
            EntityType.PROJECT,
            entity_id=project_id,
            actor_id=actor.id,
            changes={"code": code},
        )

    async def reassign_requests(
        self, project_id: UUID, target_project_id: UUID, actor: User
    ) -> int:
        """Move every request of a project, and its allocated hours, to another project."""
        require_project_capability(actor.role, ProjectAction.REASSIGN_REQUESTS)
        if project_id == target_project_id:
            raise ValidationFailed("Requests are already in this project")
        try:
            # Lock in a stable order so concurrent reassignments cannot deadlock
            locked = {
                pid: await self.ledger.lock_project(pid)
                for pid in sorted((project_id, target_project_id), key=str)
            }
            source, target = locked[project_id], locked[target_project_id]
            if target.status != ProjectStatus.ACTIVE.value:
                raise ProjectUnavailable(target.status)

            requests = await self.request_repo.list_for_project(source.id)
            moved_hours = 0.0
            for request in requests:
                hours = request.allocated_hours or 0
                if hours > 0:
                    note = f"Reassigned from {source.code} to {target.code}"
                    self.ledger.deallocate(source, hours, request.id, actor.id, notes=note)
                    self.ledger.allocate(target, hours, request.id, actor.id, notes=note)
                    moved_hours += hours
                request.project_id = target.id
                request.project_name = target.name
                request.project_code = target.code
                request.version += 1
                request.updated_at = utc_now()
            await self.session.commit()
        except Exception:
            await self.session.rollback()
            raise

        logger.info(
            "project_requests_reassigned",
            source_project_id=str(project_id),
            target_project_id=str(target_project_id),
            count=len(requests),
            hours=moved_hours,
        )
        await self.audit.log_success(
            AuditAction.PROJECT_UPDATE,
            EntityType.PROJECT,
            entity_id=project_id,
            actor_id=actor.id,
            changes={
                "reassigned_to": str(target_project_id),
                "requests": len(requests),
                "hours": moved_hours,
            },
        )
        return len(requests)

    # Milestones

    async def list_milestones(self, project_id: UUID) -> list[ProjectMilestone]:
        await self.get(project_id)
        return await self.milestone_repo.list_for_project(project_id)

    async def create_milestone(
        self, project_id: UUID, data: MilestoneCreate, actor: User
    ) -> ProjectMilestone:
        require_project_capability(actor.role, ProjectAction.MANAGE_MILESTONES)
        try:
            project = await self.get(project_id)
            milestone = ProjectMilestone(
                project_id=project.id,
                name=data.name,
                description=data.description,
                target_date=data.target_date,
            )
            self.milestone_repo.add(milestone)
            await self.session.commit()
        except Exception:
            await self.session.rollback()
            raise

        await self.audit.log_success(
            AuditAction.PROJECT_UPDATE,
            EntityType.MILESTONE,
            entity_id=milestone.id,
            actor_id=actor.id,
            changes={"project_id": str(project_id), "name": data.name},
        )
        return milestone

    async def update_milestone_status(
        self,
        project_id: UUID,
        milestone_id: UUID,
        status: MilestoneStatus,
        actor: User,
    ) -> ProjectMilestone:
        require_project_capability(actor.role, ProjectAction.MANAGE_MILESTONES)
        try:
            milestone = await self.milestone_repo.get_for_update(milestone_id)
            if milestone is None or milestone.project_id != project_id:
                raise NotFound(EntityType.MILESTONE.value, milestone_id)
            previous = milestone.status
            milestone.status = status.value
            milestone.completed_at = utc_now() if status is MilestoneStatus.COMPLETED else None
            milestone.updated_at = utc_now()
            await self.session.commit()
        except Exception:
            await self.session.rollback()
            raise

        await self.audit.log_success(
            AuditAction.PROJECT_UPDATE,
            EntityType.MILESTONE,
            entity_id=milestone.id,
            actor_id=actor.id,
            changes={"status": {"from": previous, "to": status.value}},
        )
        return milestone
