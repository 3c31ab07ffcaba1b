"""Single entry point for status changes on either entity type."""

from dataclasses import dataclass, field
from typing import Any
from uuid import UUID

from src.simflow.models import (
    EntityType,
    Project,
    ProjectStatus,
    RequestStatus,
    SimulationRequest,
    User,
)
from src.simflow.repositories import RequestRepository
from src.simflow.services.project_service import ProjectService
from src.simflow.services.request_workflow_service import RequestWorkflowService
from src.simflow.workflow import (
    Forbidden,
    NotFound,
    ValidationFailed,
    action_for,
    actions_reaching,
    can_perform,
)


def _parse_status[StatusType: (ProjectStatus, RequestStatus)](
    enum: type[StatusType], value: str
) -> StatusType:
    try:
        return enum(value)
    except ValueError as e:
        raise ValidationFailed(f"Unknown status '{value}'") from e


@dataclass(frozen=True)
class TransitionCommand:
    entity_type: EntityType
    entity_id: UUID
    target_status: str
    actor: User
    reason: str | None = None
    extra: dict[str, Any] = field(default_factory=dict)
    expected_version: int | None = None


class TransitionExecutor:
    """Routes a raw target status to the service that owns the entity.

    Request targets are mapped onto the action that reaches them from the
    current status, so every request move still goes through the same
    checks as the action endpoints. The role gate runs first: an actor who
    could never move a request into the target gets Forbidden whatever
    the current status is.
    """

    def __init__(
        self,
        project_service: ProjectService,
        workflow_service: RequestWorkflowService,
        request_repo: RequestRepository,
    ):
        self.project_service = project_service
        self.workflow_service = workflow_service
        self.request_repo = request_repo

    async def execute(self, command: TransitionCommand) -> Project | SimulationRequest:
        if command.entity_type is EntityType.PROJECT:
            project, _ = await self.project_service.transition_status(
                command.entity_id,
                _parse_status(ProjectStatus, command.target_status),
                command.actor,
                reason=command.reason,
                expected_version=command.expected_version,
            )
            return project

        if command.entity_type is EntityType.REQUEST:
            request = await self.request_repo.get_by_id(command.entity_id)
            if request is None:
                raise NotFound(EntityType.REQUEST.value, command.entity_id)
            target = _parse_status(RequestStatus, command.target_status)
            candidates = actions_reaching(target)
            actor = command.actor
            if candidates and not any(
                can_perform(actor.role, candidate, request, actor.id) for candidate in candidates
            ):
                raise Forbidden(actor.role, candidates[0].value)
            action = action_for(request.status, target)

            payload = dict(command.extra)
            if command.reason and "reason" not in payload:
                payload["reason"] = command.reason
            return await self.workflow_service.perform(
                command.entity_id,
                action,
                actor,
                payload=payload,
                expected_version=command.expected_version,
            )

        raise ValidationFailed(f"'{command.entity_type.value}' has no workflow")
