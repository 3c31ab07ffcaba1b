"""Status-changing actions on simulation requests.

``perform`` is the only way a request's status changes. Each call runs as one
unit of work: lock, check, mutate, stage side effects, commit. The audit entry
is written after the commit.
"""

from collections.abc import Awaitable, Callable
from typing import Any
from uuid import UUID

from pydantic import BaseModel
from pydantic import ValidationError as PydanticValidationError
from sqlalchemy.ext.asyncio import AsyncSession

from src.simflow.core.logging import get_logger
from src.simflow.models import (
    AuditAction,
    DiscussionDecision,
    DiscussionRequest,
    DiscussionStatus,
    EntityType,
    NotificationType,
    RequestStatus,
    SimulationRequest,
    User,
    UserRole,
)
from src.simflow.models.base import utc_now
from src.simflow.repositories import (
    DiscussionRepository,
    RequestRepository,
    TimeEntryRepository,
    UserRepository,
)
from src.simflow.schemas.request import AssignEngineer, DiscussionCreate, DiscussionReview
from src.simflow.services.audit_service import AuditService
from src.simflow.services.ledger_service import HourLedgerService
from src.simflow.services.notification_service import NotificationService
from src.simflow.workflow import (
    Conflict,
    NotFound,
    RequestAction,
    ValidationFailed,
    WorkflowError,
    assignment_consistent,
    request_target,
    require_request_capability,
)

logger = get_logger(__name__)

Changes = dict[str, Any]
Handler = Callable[
    [SimulationRequest, User, dict[str, Any], RequestStatus], Awaitable[Changes]
]

AUDIT_ACTIONS: dict[RequestAction, AuditAction] = {
    RequestAction.ASSIGN: AuditAction.REQUEST_ASSIGN,
    RequestAction.REQUEST_DISCUSSION: AuditAction.REQUEST_DISCUSSION,
    RequestAction.RESOLVE_DISCUSSION: AuditAction.REQUEST_DISCUSSION_REVIEW,
}


def parse_payload[SchemaType: BaseModel](
    schema: type[SchemaType], payload: dict[str, Any]
) -> SchemaType:
    """Validate an action payload, reporting problems as ValidationFailed."""
    try:
        return schema.model_validate(payload)
    except PydanticValidationError as e:
        errors = "; ".join(
            f"{'.'.join(str(part) for part in err['loc']) or 'payload'}: {err['msg']}"
            for err in e.errors()
        )
        raise ValidationFailed(f"Invalid payload: {errors}") from e


class RequestWorkflowService:
    def __init__(
        self,
        request_repo: RequestRepository,
        user_repo: UserRepository,
        discussion_repo: DiscussionRepository,
        time_entry_repo: TimeEntryRepository,
        ledger: HourLedgerService,
        notifications: NotificationService,
        audit: AuditService,
        session: AsyncSession,
    ):
        self.request_repo = request_repo
        self.user_repo = user_repo
        self.discussion_repo = discussion_repo
        self.time_entry_repo = time_entry_repo
        self.ledger = ledger
        self.notifications = notifications
        self.audit = audit
        self.session = session

        self._handlers: dict[RequestAction, Handler] = {
            RequestAction.START_REVIEW: self._start_review,
            RequestAction.DENY: self._deny,
            RequestAction.ASSIGN: self._assign,
            RequestAction.ACCEPT_WORK: self._accept_work,
            RequestAction.REQUEST_DISCUSSION: self._request_discussion,
            RequestAction.RESOLVE_DISCUSSION: self._resolve_discussion,
            RequestAction.COMPLETE_WORK: self._complete_work,
            RequestAction.ACCEPT_DELIVERY: self._accept_delivery,
            RequestAction.REQUEST_REVISION: self._request_revision,
            RequestAction.APPROVE_REVISION: self._review_revision,
            RequestAction.DENY_REVISION: self._review_revision,
        }

    async def perform(
        self,
        request_id: UUID,
        action: RequestAction,
        actor: User,
        payload: dict[str, Any] | None = None,
        expected_version: int | None = None,
    ) -> SimulationRequest:
        """Run a workflow action against a request.

        Checks run in a fixed order and each can abort before anything is
        written: existence, role, version, transition, then budget.

        Raises:
            NotFound, Forbidden, Conflict, InvalidTransition, ValidationFailed,
            InsufficientBudget, ProjectUnavailable
        """
        if action not in self._handlers:
            raise ValidationFailed(f"'{action.value}' does not change a request's status")

        try:
            request = await self.request_repo.get_for_update(request_id)
            if request is None:
                raise NotFound(EntityType.REQUEST.value, request_id)

            require_request_capability(actor.role, action, request, actor.id)

            if expected_version is not None and expected_version != request.version:
                raise Conflict(expected_version, request.version)

            from_status = RequestStatus(request.status)
            target = request_target(from_status, action)

            changes = await self._handlers[action](request, actor, payload or {}, target)
            if not assignment_consistent(target, request.assigned_to):
                raise ValidationFailed(
                    f"Assigned engineer does not match status '{target.value}'"
                )

            request.status = target.value
            request.version += 1
            request.updated_at = utc_now()
            await self.session.commit()
        except WorkflowError as e:
            await self.session.rollback()
            logger.info(
                "request_action_rejected",
                request_id=str(request_id),
                action=action.value,
                error=type(e).__name__,
                reason=e.message,
            )
            raise
        except Exception:
            await self.session.rollback()
            raise

        logger.info(
            "request_transitioned",
            request_id=str(request.id),
            action=action.value,
            from_status=from_status.value,
            to_status=target.value,
            version=request.version,
        )
        await self.audit.log_success(
            AUDIT_ACTIONS.get(action, AuditAction.REQUEST_TRANSITION),
            EntityType.REQUEST,
            entity_id=request.id,
            actor_id=actor.id,
            changes={
                "action": action.value,
                "status": {"from": from_status.value, "to": target.value},
                **changes,
            },
        )
        return request

    # Notifications

    def _notify(
        self,
        recipients: list[UUID | None],
        type: NotificationType,
        title: str,
        message: str,
        request: SimulationRequest,
        actor: User,
    ) -> None:
        self.notifications.notify_many(
            recipients, type, title, message, EntityType.REQUEST, request.id, actor.id
        )

    def _notify_status(
        self,
        recipients: list[UUID | None],
        request: SimulationRequest,
        target: RequestStatus,
        actor: User,
    ) -> None:
        self._notify(
            recipients,
            NotificationType.REQUEST_STATUS_CHANGED,
            "Request status updated",
            f'"{request.title}" is now {target.value}',
            request,
            actor,
        )

    # Handlers; each may stage writes but must not commit

    async def _start_review(
        self, request: SimulationRequest, actor: User, payload: dict[str, Any], target: RequestStatus
    ) -> Changes:
        changes: Changes = {}
        if request.assigned_to is not None:
            # Re-entry from Revision Requested goes back to an unassigned review
            changes["assigned_to"] = {"from": str(request.assigned_to), "to": None}
            request.assigned_to = None
            request.assigned_to_name = None
        self._notify_status([request.created_by], request, target, actor)
        return changes

    async def _deny(
        self, request: SimulationRequest, actor: User, payload: dict[str, Any], target: RequestStatus
    ) -> Changes:
        changes: Changes = {}
        allocated = request.allocated_hours or 0
        if request.project_id is not None and allocated > 0:
            project = await self.ledger.lock_project(request.project_id)
            self.ledger.deallocate(
                project, allocated, request.id, actor.id, notes="Request denied"
            )
            request.allocated_hours = 0
            changes["deallocated_hours"] = allocated
        self._notify_status([request.created_by], request, target, actor)
        return changes

    async def _assign(
        self, request: SimulationRequest, actor: User, payload: dict[str, Any], target: RequestStatus
    ) -> Changes:
        body = parse_payload(AssignEngineer, payload)

        engineer = await self.user_repo.get_by_id(body.engineer_id)
        if (
            engineer is None
            or not engineer.is_active
            or engineer.role != UserRole.ENGINEER.value
        ):
            raise ValidationFailed("Requests can only be assigned to an active engineer")

        previous = request.allocated_hours or 0
        project_id = body.project_id or request.project_id

        if request.project_id is not None and project_id != request.project_id and previous > 0:
            old_project = await self.ledger.lock_project(request.project_id)
            self.ledger.deallocate(
                old_project, previous, request.id, actor.id, notes="Moved to another project"
            )
            previous = 0

        if project_id is not None:
            project = await self.ledger.lock_project(project_id)
            self.ledger.move(
                project,
                body.estimated_hours - previous,
                request.id,
                actor.id,
                notes=f"Assigned to {engineer.name}",
            )
            request.project_id = project.id
            request.project_name = project.name
            request.project_code = project.code
            request.allocated_hours = body.estimated_hours

        request.assigned_to = engineer.id
        request.assigned_to_name = engineer.name
        request.estimated_hours = body.estimated_hours

        self._notify(
            [engineer.id],
            NotificationType.REQUEST_ASSIGNED,
            "New request assigned",
            f'You have been assigned "{request.title}" ({body.estimated_hours:g}h)',
            request,
            actor,
        )
        self._notify_status([request.created_by], request, target, actor)
        return {
            "assigned_to": str(engineer.id),
            "estimated_hours": body.estimated_hours,
            "project_id": str(project_id) if project_id else None,
        }

    async def _accept_work(
        self, request: SimulationRequest, actor: User, payload: dict[str, Any], target: RequestStatus
    ) -> Changes:
        self._notify_status([request.created_by], request, target, actor)
        return {}

    async def _request_discussion(
        self, request: SimulationRequest, actor: User, payload: dict[str, Any], target: RequestStatus
    ) -> Changes:
        body = parse_payload(DiscussionCreate, payload)
        discussion = DiscussionRequest(
            request_id=request.id,
            engineer_id=actor.id,
            engineer_name=actor.name,
            reason=body.reason,
            suggested_hours=body.suggested_hours,
        )
        self.discussion_repo.add(discussion)

        await self.notifications.notify_role(
            UserRole.MANAGER,
            NotificationType.DISCUSSION_REQUESTED,
            "Discussion requested",
            f'{actor.name} wants to discuss the hours on "{request.title}"',
            EntityType.REQUEST,
            request.id,
            actor.id,
        )
        return {"discussion_id": str(discussion.id), "suggested_hours": body.suggested_hours}

    async def _resolve_discussion(
        self, request: SimulationRequest, actor: User, payload: dict[str, Any], target: RequestStatus
    ) -> Changes:
        body = parse_payload(DiscussionReview, payload)
        discussion = await self.discussion_repo.latest_pending(request.id)
        if discussion is None:
            raise ValidationFailed("There is no pending discussion to resolve")

        current = request.allocated_hours or 0
        if body.action is DiscussionDecision.APPROVE:
            if discussion.suggested_hours is None:
                raise ValidationFailed("The discussion has no suggested hours to approve")
            new_hours = discussion.suggested_hours
            status = DiscussionStatus.APPROVED
        elif body.action is DiscussionDecision.OVERRIDE:
            new_hours = body.allocated_hours
            status = DiscussionStatus.OVERRIDE
        else:
            new_hours = request.estimated_hours if request.project_id is None else current
            status = DiscussionStatus.DENIED

        if status is not DiscussionStatus.DENIED:
            if request.project_id is not None:
                project = await self.ledger.lock_project(request.project_id)
                self.ledger.move(
                    project,
                    new_hours - current,
                    request.id,
                    actor.id,
                    notes=f"Discussion {status.value.lower()}",
                )
                request.allocated_hours = new_hours
            request.estimated_hours = new_hours

        discussion.status = status.value
        discussion.reviewed_by = actor.id
        discussion.reviewed_at = utc_now()
        discussion.manager_response = body.manager_response
        discussion.allocated_hours = new_hours

        self._notify(
            [discussion.engineer_id],
            NotificationType.DISCUSSION_REVIEWED,
            "Discussion reviewed",
            f'Your discussion on "{request.title}" was {status.value.lower()}',
            request,
            actor,
        )
        return {
            "discussion_id": str(discussion.id),
            "decision": body.action.value,
            "hours": {"from": current, "to": new_hours},
        }

    async def _complete_work(
        self, request: SimulationRequest, actor: User, payload: dict[str, Any], target: RequestStatus
    ) -> Changes:
        actual = await self.time_entry_repo.total_hours(request.id)
        changes: Changes = {"actual_hours": actual}
        if request.project_id is not None:
            project = await self.ledger.lock_project(request.project_id)
            before = request.allocated_hours
            self.ledger.finalize(project, request, actual, performed_by=actor.id)
            changes["allocated_hours"] = {"from": before, "to": request.allocated_hours}
        self._notify_status([request.created_by], request, target, actor)
        return changes

    async def _accept_delivery(
        self, request: SimulationRequest, actor: User, payload: dict[str, Any], target: RequestStatus
    ) -> Changes:
        self._notify_status([request.assigned_to], request, target, actor)
        return {}

    async def _request_revision(
        self, request: SimulationRequest, actor: User, payload: dict[str, Any], target: RequestStatus
    ) -> Changes:
        await self.notifications.notify_role(
            UserRole.MANAGER,
            NotificationType.APPROVAL_NEEDED,
            "Revision needs approval",
            f'A revision was requested on "{request.title}"',
            EntityType.REQUEST,
            request.id,
            actor.id,
        )
        self._notify_status([request.assigned_to], request, target, actor)
        return {}

    async def _review_revision(
        self, request: SimulationRequest, actor: User, payload: dict[str, Any], target: RequestStatus
    ) -> Changes:
        approved = target is RequestStatus.IN_PROGRESS
        self._notify(
            [request.created_by, request.assigned_to],
            NotificationType.APPROVAL_REVIEWED,
            "Revision reviewed",
            f'The revision on "{request.title}" was {"approved" if approved else "denied"}',
            request,
            actor,
        )
        return {"revision_approved": approved}
