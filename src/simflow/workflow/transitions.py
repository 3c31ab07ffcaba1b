"""Status transition tables for projects and requests.

Both tables are the single source of truth for which moves exist; callers
never compare statuses ad hoc. Neither table contains self-transitions.
"""

from src.simflow.models.enums import ProjectStatus, RequestStatus
from src.simflow.workflow.actions import RequestAction
from src.simflow.workflow.errors import InvalidTransition, ReasonRequired

# Projects

PROJECT_TRANSITIONS: dict[ProjectStatus, tuple[ProjectStatus, ...]] = {
    ProjectStatus.PENDING: (
        ProjectStatus.ACTIVE,
        ProjectStatus.CANCELLED,
        ProjectStatus.ARCHIVED,
    ),
    ProjectStatus.APPROVED: (
        ProjectStatus.ACTIVE,
        ProjectStatus.ARCHIVED,
    ),
    ProjectStatus.ACTIVE: (
        ProjectStatus.ON_HOLD,
        ProjectStatus.SUSPENDED,
        ProjectStatus.COMPLETED,
        ProjectStatus.CANCELLED,
        ProjectStatus.EXPIRED,
        ProjectStatus.ARCHIVED,
    ),
    ProjectStatus.ON_HOLD: (
        ProjectStatus.ACTIVE,
        ProjectStatus.SUSPENDED,
        ProjectStatus.CANCELLED,
        ProjectStatus.ARCHIVED,
    ),
    ProjectStatus.SUSPENDED: (
        ProjectStatus.ACTIVE,
        ProjectStatus.ON_HOLD,
        ProjectStatus.CANCELLED,
        ProjectStatus.ARCHIVED,
    ),
    ProjectStatus.COMPLETED: (ProjectStatus.ARCHIVED,),
    ProjectStatus.CANCELLED: (ProjectStatus.ARCHIVED,),
    ProjectStatus.EXPIRED: (
        ProjectStatus.ACTIVE,
        ProjectStatus.ARCHIVED,
    ),
    ProjectStatus.ARCHIVED: (),
}

REQUIRES_REASON: frozenset[ProjectStatus] = frozenset(
    {
        ProjectStatus.ON_HOLD,
        ProjectStatus.SUSPENDED,
        ProjectStatus.CANCELLED,
        ProjectStatus.EXPIRED,
    }
)


def valid_next_states(current: ProjectStatus | str) -> list[ProjectStatus]:
    return list(PROJECT_TRANSITIONS[ProjectStatus(current)])


def can_transition(current: ProjectStatus | str, target: ProjectStatus | str) -> bool:
    return ProjectStatus(target) in PROJECT_TRANSITIONS[ProjectStatus(current)]


def is_terminal(status: ProjectStatus | str) -> bool:
    return not PROJECT_TRANSITIONS[ProjectStatus(status)]


def assert_project_transition(current: ProjectStatus | str, target: ProjectStatus | str) -> None:
    """Raise InvalidTransition unless ``target`` is adjacent to ``current``."""
    current, target = ProjectStatus(current), ProjectStatus(target)
    if not can_transition(current, target):
        raise InvalidTransition(
            current.value,
            target.value,
            allowed=[s.value for s in valid_next_states(current)],
        )


def requires_reason(target: ProjectStatus | str) -> bool:
    return ProjectStatus(target) in REQUIRES_REASON


def check_reason(target: ProjectStatus | str, reason: str | None) -> str | None:
    """Return the trimmed reason, or raise ReasonRequired when one is mandatory.

    Blank reasons are normalised to None for targets that do not need one.
    """
    cleaned = reason.strip() if reason else ""
    if not cleaned:
        if requires_reason(target):
            raise ReasonRequired(ProjectStatus(target).value)
        return None
    return cleaned


# Requests

REQUEST_TRANSITIONS: dict[RequestStatus, dict[RequestAction, RequestStatus]] = {
    RequestStatus.SUBMITTED: {
        RequestAction.START_REVIEW: RequestStatus.MANAGER_REVIEW,
        RequestAction.DENY: RequestStatus.DENIED,
    },
    RequestStatus.MANAGER_REVIEW: {
        RequestAction.ASSIGN: RequestStatus.ENGINEERING_REVIEW,
        RequestAction.DENY: RequestStatus.DENIED,
    },
    RequestStatus.ENGINEERING_REVIEW: {
        RequestAction.ACCEPT_WORK: RequestStatus.IN_PROGRESS,
        RequestAction.REQUEST_DISCUSSION: RequestStatus.DISCUSSION,
    },
    RequestStatus.DISCUSSION: {
        RequestAction.RESOLVE_DISCUSSION: RequestStatus.ENGINEERING_REVIEW,
    },
    RequestStatus.IN_PROGRESS: {
        RequestAction.COMPLETE_WORK: RequestStatus.COMPLETED,
    },
    RequestStatus.COMPLETED: {
        RequestAction.ACCEPT_DELIVERY: RequestStatus.ACCEPTED,
        RequestAction.REQUEST_REVISION: RequestStatus.REVISION_APPROVAL,
    },
    RequestStatus.REVISION_APPROVAL: {
        RequestAction.APPROVE_REVISION: RequestStatus.IN_PROGRESS,
        RequestAction.DENY_REVISION: RequestStatus.COMPLETED,
    },
    # Legacy re-entry; nothing writes REVISION_REQUESTED any more
    RequestStatus.REVISION_REQUESTED: {
        RequestAction.START_REVIEW: RequestStatus.MANAGER_REVIEW,
    },
    RequestStatus.ACCEPTED: {},
    RequestStatus.DENIED: {},
}

# Every workflow action leads to exactly one status
ACTION_TARGETS: dict[RequestAction, RequestStatus] = {
    action: target for edges in REQUEST_TRANSITIONS.values() for action, target in edges.items()
}

WORKFLOW_ACTIONS: frozenset[RequestAction] = frozenset(ACTION_TARGETS)


def actions_reaching(target: RequestStatus | str) -> list[RequestAction]:
    """Every action that leads to ``target``, from whichever status."""
    target = RequestStatus(target)
    return [action for action, destination in ACTION_TARGETS.items() if destination is target]


# Statuses in which a request must have an assigned engineer
ENGINEERING_STAGES: frozenset[RequestStatus] = frozenset(
    {
        RequestStatus.ENGINEERING_REVIEW,
        RequestStatus.DISCUSSION,
        RequestStatus.IN_PROGRESS,
        RequestStatus.COMPLETED,
        RequestStatus.REVISION_APPROVAL,
        RequestStatus.ACCEPTED,
    }
)

TERMINAL_REQUEST_STATUSES: frozenset[RequestStatus] = frozenset(
    status for status, edges in REQUEST_TRANSITIONS.items() if not edges
)


def request_next_states(current: RequestStatus | str) -> list[RequestStatus]:
    return list(REQUEST_TRANSITIONS[RequestStatus(current)].values())


def request_target(current: RequestStatus | str, action: RequestAction) -> RequestStatus:
    """Resolve the status ``action`` leads to from ``current``."""
    current = RequestStatus(current)
    edges = REQUEST_TRANSITIONS[current]
    if action not in edges:
        target = ACTION_TARGETS.get(action)
        raise InvalidTransition(
            current.value,
            target.value if target else None,
            allowed=[s.value for s in request_next_states(current)],
        )
    return edges[action]


def action_for(current: RequestStatus | str, target: RequestStatus | str) -> RequestAction:
    """Map a raw (current, target) pair onto the action that drives it."""
    current, target = RequestStatus(current), RequestStatus(target)
    edges = REQUEST_TRANSITIONS[current]
    for action, destination in edges.items():
        if destination is target:
            return action
    raise InvalidTransition(
        current.value,
        target.value,
        allowed=[s.value for s in request_next_states(current)],
    )


def assignment_consistent(status: RequestStatus | str, assigned_to: object | None) -> bool:
    """An engineer is assigned exactly when the request is in an engineering stage."""
    in_engineering = RequestStatus(status) in ENGINEERING_STAGES
    return in_engineering == (assigned_to is not None)
