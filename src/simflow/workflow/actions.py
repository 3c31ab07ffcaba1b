"""Actions a user can take on requests and projects."""

from enum import Enum


class RequestAction(str, Enum):
    # Status-changing
    START_REVIEW = "start_review"
    DENY = "deny"
    ASSIGN = "assign"
    ACCEPT_WORK = "accept_work"
    REQUEST_DISCUSSION = "request_discussion"
    RESOLVE_DISCUSSION = "resolve_discussion"
    COMPLETE_WORK = "complete_work"
    ACCEPT_DELIVERY = "accept_delivery"
    REQUEST_REVISION = "request_revision"
    APPROVE_REVISION = "approve_revision"
    DENY_REVISION = "deny_revision"

    # Non-status
    EDIT_TITLE = "edit_title"
    PROPOSE_TITLE_CHANGE = "propose_title_change"
    REVIEW_TITLE_CHANGE = "review_title_change"
    EDIT_DESCRIPTION = "edit_description"
    COMMENT = "comment"
    LOG_TIME = "log_time"
    CHANGE_REQUESTER = "change_requester"
    DELETE = "delete"
    CREATE_ON_BEHALF = "create_on_behalf"


class ProjectAction(str, Enum):
    CREATE = "create"
    SET_INITIAL_STATUS = "set_initial_status"
    RENAME = "rename"
    TRANSITION = "transition"
    MANAGE_HOURS = "manage_hours"
    MANAGE_MILESTONES = "manage_milestones"
    DELETE = "delete"
    REASSIGN_REQUESTS = "reassign_requests"
    EXPIRE_OVERDUE = "expire_overdue"
