"""Workflow rules: transition tables, capability gate, derived views, errors.

Everything in this package is pure. Persistence and side effects live in
the service layer.
"""

from src.simflow.workflow.actions import ProjectAction, RequestAction
from src.simflow.workflow.capabilities import (
    Relation,
    TitleEditMode,
    available_actions,
    can_perform,
    can_perform_project,
    require_project_capability,
    require_request_capability,
    title_edit_mode,
)
from src.simflow.workflow.errors import (
    Conflict,
    Forbidden,
    InsufficientBudget,
    InvalidTransition,
    NotFound,
    ProjectInUse,
    ProjectUnavailable,
    ReasonRequired,
    ValidationFailed,
    WorkflowError,
)
from src.simflow.workflow.transitions import (
    ENGINEERING_STAGES,
    PROJECT_TRANSITIONS,
    REQUEST_TRANSITIONS,
    REQUIRES_REASON,
    action_for,
    actions_reaching,
    assert_project_transition,
    assignment_consistent,
    can_transition,
    check_reason,
    is_terminal,
    request_next_states,
    request_target,
    requires_reason,
    valid_next_states,
)

__all__ = [
    # Actions
    "ProjectAction",
    "RequestAction",
    # Capability gate
    "Relation",
    "TitleEditMode",
    "available_actions",
    "can_perform",
    "can_perform_project",
    "require_project_capability",
    "require_request_capability",
    "title_edit_mode",
    # Errors
    "Conflict",
    "Forbidden",
    "InsufficientBudget",
    "InvalidTransition",
    "NotFound",
    "ProjectInUse",
    "ProjectUnavailable",
    "ReasonRequired",
    "ValidationFailed",
    "WorkflowError",
    # Transitions
    "ENGINEERING_STAGES",
    "PROJECT_TRANSITIONS",
    "REQUEST_TRANSITIONS",
    "REQUIRES_REASON",
    "action_for",
    "actions_reaching",
    "assert_project_transition",
    "assignment_consistent",
    "can_transition",
    "check_reason",
    "is_terminal",
    "request_next_states",
    "request_target",
    "requires_reason",
    "valid_next_states",
]
