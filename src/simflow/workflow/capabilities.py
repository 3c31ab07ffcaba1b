"""Role-capability gate.

One table keyed by (role, action) decides who may do what. The value is the
relationship the actor must have with the request. A second, smaller table
narrows a few capabilities to specific statuses. Admins bypass both.
"""

from enum import Enum
from uuid import UUID

from src.simflow.models.enums import RequestStatus, UserRole
from src.simflow.models.request import SimulationRequest
from src.simflow.workflow.actions import ProjectAction, RequestAction
from src.simflow.workflow.errors import Forbidden
from src.simflow.workflow.transitions import REQUEST_TRANSITIONS


class Relation(str, Enum):
    """How the actor must relate to the request for a capability to apply."""

    ANY = "any"
    REQUESTER = "requester"
    ASSIGNEE = "assignee"


class TitleEditMode(str, Enum):
    DIRECT = "direct"
    PROPOSE = "propose"
    NONE = "none"


REQUEST_CAPABILITIES: dict[UserRole, dict[RequestAction, Relation]] = {
    UserRole.MANAGER: {
        RequestAction.START_REVIEW: Relation.ANY,
        RequestAction.DENY: Relation.ANY,
        RequestAction.ASSIGN: Relation.ANY,
        RequestAction.APPROVE_REVISION: Relation.ANY,
        RequestAction.DENY_REVISION: Relation.ANY,
        RequestAction.RESOLVE_DISCUSSION: Relation.ANY,
        RequestAction.REVIEW_TITLE_CHANGE: Relation.ANY,
        RequestAction.EDIT_TITLE: Relation.ANY,
        RequestAction.EDIT_DESCRIPTION: Relation.ANY,
        RequestAction.COMMENT: Relation.ANY,
        RequestAction.DELETE: Relation.ANY,
    },
    UserRole.ENGINEER: {
        RequestAction.ACCEPT_WORK: Relation.ASSIGNEE,
        RequestAction.COMPLETE_WORK: Relation.ASSIGNEE,
        RequestAction.REQUEST_DISCUSSION: Relation.ASSIGNEE,
        RequestAction.LOG_TIME: Relation.ASSIGNEE,
        RequestAction.PROPOSE_TITLE_CHANGE: Relation.ANY,
        RequestAction.REVIEW_TITLE_CHANGE: Relation.REQUESTER,
        RequestAction.COMMENT: Relation.ANY,
    },
    UserRole.USER: {
        RequestAction.ACCEPT_DELIVERY: Relation.REQUESTER,
        RequestAction.REQUEST_REVISION: Relation.REQUESTER,
        RequestAction.EDIT_TITLE: Relation.REQUESTER,
        RequestAction.EDIT_DESCRIPTION: Relation.REQUESTER,
        RequestAction.REVIEW_TITLE_CHANGE: Relation.REQUESTER,
        RequestAction.COMMENT: Relation.ANY,
    },
}

STATUS_GUARDS: dict[tuple[UserRole, RequestAction], frozenset[RequestStatus]] = {
    (UserRole.ENGINEER, RequestAction.REQUEST_DISCUSSION): frozenset(
        {RequestStatus.ENGINEERING_REVIEW}
    ),
    (UserRole.USER, RequestAction.ACCEPT_DELIVERY): frozenset({RequestStatus.COMPLETED}),
    (UserRole.USER, RequestAction.REQUEST_REVISION): frozenset({RequestStatus.COMPLETED}),
}

PROJECT_CAPABILITIES: dict[ProjectAction, frozenset[UserRole]] = {
    ProjectAction.CREATE: frozenset(UserRole),
    ProjectAction.SET_INITIAL_STATUS: frozenset({UserRole.ADMIN, UserRole.MANAGER}),
    ProjectAction.RENAME: frozenset({UserRole.ADMIN, UserRole.MANAGER}),
    ProjectAction.TRANSITION: frozenset({UserRole.ADMIN, UserRole.MANAGER}),
    ProjectAction.MANAGE_HOURS: frozenset({UserRole.ADMIN, UserRole.MANAGER}),
    ProjectAction.MANAGE_MILESTONES: frozenset({UserRole.ADMIN, UserRole.MANAGER}),
    ProjectAction.DELETE: frozenset({UserRole.ADMIN, UserRole.MANAGER}),
    ProjectAction.REASSIGN_REQUESTS: frozenset({UserRole.ADMIN, UserRole.MANAGER}),
    ProjectAction.EXPIRE_OVERDUE: frozenset({UserRole.ADMIN}),
}


def _relation_holds(relation: Relation, request: SimulationRequest, actor_id: UUID) -> bool:
    if relation is Relation.REQUESTER:
        return request.created_by is not None and request.created_by == actor_id
    if relation is Relation.ASSIGNEE:
        return request.assigned_to is not None and request.assigned_to == actor_id
    return True


def can_perform(
    role: UserRole | str,
    action: RequestAction,
    request: SimulationRequest,
    actor_id: UUID,
) -> bool:
    """Whether ``actor_id`` acting as ``role`` may take ``action`` on ``request``.

    Pure lookup: does not consult the transition table, so a permitted action
    may still be an invalid move from the current status.
    """
    role = UserRole(role)
    if role is UserRole.ADMIN:
        return True

    relation = REQUEST_CAPABILITIES[role].get(action)
    if relation is None or not _relation_holds(relation, request, actor_id):
        return False

    allowed_statuses = STATUS_GUARDS.get((role, action))
    if allowed_statuses is not None and RequestStatus(request.status) not in allowed_statuses:
        return False
    return True


def require_request_capability(
    role: UserRole | str,
    action: RequestAction,
    request: SimulationRequest,
    actor_id: UUID,
) -> None:
    if not can_perform(role, action, request, actor_id):
        raise Forbidden(UserRole(role).value, action.value)


def available_actions(
    role: UserRole | str,
    request: SimulationRequest,
    actor_id: UUID,
) -> list[RequestAction]:
    """Status-changing actions the actor can take right now."""
    edges = REQUEST_TRANSITIONS[RequestStatus(request.status)]
    return [action for action in edges if can_perform(role, action, request, actor_id)]


def title_edit_mode(
    role: UserRole | str,
    request: SimulationRequest,
    actor_id: UUID,
) -> TitleEditMode:
    if can_perform(role, RequestAction.EDIT_TITLE, request, actor_id):
        return TitleEditMode.DIRECT
    if can_perform(role, RequestAction.PROPOSE_TITLE_CHANGE, request, actor_id):
        return TitleEditMode.PROPOSE
    return TitleEditMode.NONE


def can_perform_project(role: UserRole | str, action: ProjectAction) -> bool:
    return UserRole(role) in PROJECT_CAPABILITIES[action]


def require_project_capability(role: UserRole | str, action: ProjectAction) -> None:
    if not can_perform_project(role, action):
        raise Forbidden(UserRole(role).value, action.value)
