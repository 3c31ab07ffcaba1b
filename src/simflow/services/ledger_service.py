"""Project hour ledger.

Every change to a project's ``used_hours`` goes through ``record`` so the
cached figure and the ledger rows are written in the same unit of work.
Callers load the project with a row lock and commit afterwards.
"""

from uuid import UUID

from sqlalchemy.ext.asyncio import AsyncSession

from src.simflow.core.logging import get_logger
from src.simflow.models import (
    HourTransactionType,
    Project,
    ProjectHourTransaction,
    ProjectStatus,
    SimulationRequest,
)
from src.simflow.models.base import utc_now
from src.simflow.repositories import HourTransactionRepository, ProjectRepository
from src.simflow.schemas.project import HourAvailability
from src.simflow.workflow.errors import (
    InsufficientBudget,
    NotFound,
    ProjectUnavailable,
    ValidationFailed,
)

logger = get_logger(__name__)

MIN_REASON_LENGTH = 3


class HourLedgerService:
    def __init__(
        self,
        project_repo: ProjectRepository,
        transaction_repo: HourTransactionRepository,
        session: AsyncSession,
    ):
        self.project_repo = project_repo
        self.transaction_repo = transaction_repo
        self.session = session

    async def lock_project(self, project_id: UUID) -> Project:
        project = await self.project_repo.get_for_update(project_id)
        if project is None:
            raise NotFound("project", project_id)
        return project

    def record(
        self,
        project: Project,
        transaction_type: HourTransactionType,
        hours: float,
        request_id: UUID | None = None,
        performed_by: UUID | None = None,
        notes: str | None = None,
    ) -> ProjectHourTransaction:
        """Apply a signed change to used hours and append the ledger row.

        Raises:
            ProjectUnavailable: allocating against a project that is not Active
            InsufficientBudget: the change would push used hours past the total
            ValidationFailed: the change would push used hours below zero
        """
        if (
            transaction_type is HourTransactionType.ALLOCATION
            and project.status != ProjectStatus.ACTIVE.value
        ):
            raise ProjectUnavailable(project.status)

        balance_before = project.used_hours
        if hours > 0 and hours > project.available_hours:
            raise InsufficientBudget(available=project.available_hours, requested=hours)
        if balance_before + hours < 0:
            raise ValidationFailed("Cannot deallocate more hours than used")

        balance_after = balance_before + hours
        project.used_hours = balance_after
        project.version += 1
        project.updated_at = utc_now()

        transaction = ProjectHourTransaction(
            project_id=project.id,
            request_id=request_id,
            transaction_type=transaction_type.value,
            hours=hours,
            balance_before=balance_before,
            balance_after=balance_after,
            performed_by=performed_by,
            notes=notes,
        )
        self.transaction_repo.add(transaction)

        logger.info(
            "hours_recorded",
            project_id=str(project.id),
            transaction_type=transaction_type.value,
            hours=hours,
            balance_before=balance_before,
            balance_after=balance_after,
            request_id=str(request_id) if request_id else None,
        )
        return transaction

    def allocate(
        self,
        project: Project,
        hours: float,
        request_id: UUID | None = None,
        performed_by: UUID | None = None,
        notes: str | None = None,
    ) -> ProjectHourTransaction:
        if hours <= 0:
            raise ValidationFailed("Hours to allocate must be positive")
        return self.record(
            project, HourTransactionType.ALLOCATION, hours, request_id, performed_by, notes
        )

    def deallocate(
        self,
        project: Project,
        hours: float,
        request_id: UUID | None = None,
        performed_by: UUID | None = None,
        notes: str | None = None,
    ) -> ProjectHourTransaction:
        if hours <= 0:
            raise ValidationFailed("Hours to deallocate must be positive")
        return self.record(
            project, HourTransactionType.DEALLOCATION, -hours, request_id, performed_by, notes
        )

    def move(
        self,
        project: Project,
        delta: float,
        request_id: UUID | None = None,
        performed_by: UUID | None = None,
        notes: str | None = None,
    ) -> ProjectHourTransaction | None:
        """Allocate a positive delta, return a negative one, ignore zero."""
        if delta > 0:
            return self.allocate(project, delta, request_id, performed_by, notes)
        if delta < 0:
            return self.deallocate(project, -delta, request_id, performed_by, notes)
        return None

    def finalize(
        self,
        project: Project,
        request: SimulationRequest,
        actual_hours: float,
        performed_by: UUID | None = None,
    ) -> ProjectHourTransaction | None:
        """Settle a completed request's allocation against the time logged on it.

        With no time logged the allocation stands. Unused hours go back to the
        project; overage is charged up to what the project has left.
        """
        allocated = request.allocated_hours or 0
        if actual_hours <= 0 or actual_hours == allocated:
            return None

        delta = actual_hours - allocated
        if delta > 0:
            charge = min(delta, max(project.available_hours, 0))
            if charge < delta:
                logger.warning(
                    "completion_overage_uncharged",
                    project_id=str(project.id),
                    request_id=str(request.id),
                    overage=delta,
                    charged=charge,
                )
            if charge <= 0:
                return None
            delta = charge
            notes = f"Completion overage of {delta:g}h"
        else:
            notes = f"Returned {-delta:g}h unused at completion"

        transaction = self.record(
            project,
            HourTransactionType.COMPLETION,
            delta,
            request_id=request.id,
            performed_by=performed_by,
            notes=notes,
        )
        request.allocated_hours = allocated + delta
        return transaction

    def extend(
        self,
        project: Project,
        additional_hours: float,
        reason: str,
        performed_by: UUID | None = None,
    ) -> ProjectHourTransaction:
        """Raise the project's total budget."""
        if additional_hours <= 0:
            raise ValidationFailed("Additional hours must be positive")
        reason = (reason or "").strip()
        if len(reason) < MIN_REASON_LENGTH:
            raise ValidationFailed("A reason of at least 3 characters is required")

        total_before = project.total_hours
        project.total_hours = total_before + additional_hours
        project.version += 1
        project.updated_at = utc_now()

        transaction = ProjectHourTransaction(
            project_id=project.id,
            transaction_type=HourTransactionType.EXTENSION.value,
            hours=additional_hours,
            balance_before=project.used_hours,
            balance_after=project.used_hours,
            performed_by=performed_by,
            notes=f"Budget extended from {total_before:g}h to {project.total_hours:g}h: {reason}",
        )
        self.transaction_repo.add(transaction)
        logger.info(
            "budget_extended",
            project_id=str(project.id),
            additional_hours=additional_hours,
            total_hours=project.total_hours,
        )
        return transaction

    def adjust(
        self,
        project: Project,
        hours: float,
        reason: str,
        performed_by: UUID | None = None,
    ) -> ProjectHourTransaction:
        """Manual signed correction of used hours."""
        if hours == 0:
            raise ValidationFailed("Adjustment hours cannot be zero")
        reason = (reason or "").strip()
        if len(reason) < MIN_REASON_LENGTH:
            raise ValidationFailed("A reason of at least 3 characters is required")
        return self.record(
            project,
            HourTransactionType.ADJUSTMENT,
            hours,
            performed_by=performed_by,
            notes=reason,
        )

    async def check_availability(self, project_id: UUID, hours: float) -> HourAvailability:
        project = await self.project_repo.get_by_id(project_id)
        if project is None:
            return HourAvailability(
                available=False, current_available=0, total_hours=0, used_hours=0
            )
        available = project.available_hours
        return HourAvailability(
            available=project.status == ProjectStatus.ACTIVE.value and available >= hours,
            current_available=available,
            total_hours=project.total_hours,
            used_hours=project.used_hours,
        )

    async def ledger_used_hours(self, project_id: UUID) -> float:
        return await self.transaction_repo.sum_usage(project_id)

    async def verify_projection(self, project: Project) -> bool:
        """Whether the cached used hours still match the ledger."""
        ledger_total = await self.ledger_used_hours(project.id)
        consistent = abs(ledger_total - project.used_hours) < 1e-9
        if not consistent:
            logger.warning(
                "used_hours_drift",
                project_id=str(project.id),
                cached=project.used_hours,
                ledger=ledger_total,
            )
        return consistent
