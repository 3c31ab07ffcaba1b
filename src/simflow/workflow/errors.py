"""Typed failures raised by the workflow rules and services.

Every error here is raised before anything is persisted. The HTTP layer
maps them to status codes in ``core.exceptions``.
"""

from typing import Any
from uuid import UUID


class WorkflowError(Exception):
    """Base class for rule violations surfaced to the caller."""

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message

    def context(self) -> dict[str, Any]:
        """Structured fields for logs and error bodies."""
        return {}


class InvalidTransition(WorkflowError):
    """Target status is not reachable from the current one."""

    def __init__(self, current: str, target: str | None, allowed: list[str] | None = None):
        self.current = current
        self.target = target
        self.allowed = allowed or []
        message = f"Invalid status transition: {current} -> {target}"
        if self.allowed:
            message += f". Allowed: {', '.join(self.allowed)}"
        super().__init__(message)

    def context(self) -> dict[str, Any]:
        return {"current": self.current, "target": self.target, "allowed": self.allowed}


class Forbidden(WorkflowError):
    def __init__(self, actor_role: str, action: str):
        self.actor_role = actor_role
        self.action = action
        super().__init__(f"Role '{actor_role}' may not perform '{action}'")

    def context(self) -> dict[str, Any]:
        return {"actor_role": self.actor_role, "action": self.action}


class InsufficientBudget(WorkflowError):
    def __init__(self, available: float, requested: float):
        self.available = available
        self.requested = requested
        super().__init__(
            f"Insufficient hours: {available:g} available, {requested:g} requested"
        )

    def context(self) -> dict[str, Any]:
        return {"available": self.available, "requested": self.requested}


class ReasonRequired(WorkflowError):
    def __init__(self, target: str):
        self.target = target
        super().__init__(f"A reason is required to move to '{target}'")

    def context(self) -> dict[str, Any]:
        return {"target": self.target}


class Conflict(WorkflowError):
    """The entity changed since the caller last read it."""

    def __init__(self, expected_version: int, actual_version: int):
        self.expected_version = expected_version
        self.actual_version = actual_version
        super().__init__(
            f"Version conflict: expected {expected_version}, found {actual_version}"
        )

    def context(self) -> dict[str, Any]:
        return {
            "expected_version": self.expected_version,
            "actual_version": self.actual_version,
        }


class NotFound(WorkflowError):
    def __init__(self, entity_type: str, entity_id: UUID | str):
        self.entity_type = entity_type
        self.entity_id = str(entity_id)
        super().__init__(f"{entity_type.replace('_', ' ').capitalize()} not found")

    def context(self) -> dict[str, Any]:
        return {"entity_type": self.entity_type, "entity_id": self.entity_id}


class ProjectUnavailable(WorkflowError):
    """Hours cannot be drawn from a project in its current status."""

    def __init__(self, project_status: str):
        self.project_status = project_status
        super().__init__(
            f"Cannot allocate hours to a project with status '{project_status}'. "
            "Project must be Active."
        )

    def context(self) -> dict[str, Any]:
        return {"project_status": self.project_status}


class ValidationFailed(WorkflowError):
    """Business-rule validation of an otherwise well-formed payload."""


class ProjectInUse(ValidationFailed):
    """The project still has requests attached."""

    def __init__(self, request_count: int):
        self.request_count = request_count
        super().__init__(
            f"Cannot delete a project with {request_count} request(s). "
            "Reassign or delete them first."
        )

    def context(self) -> dict[str, Any]:
        return {"request_count": self.request_count}
