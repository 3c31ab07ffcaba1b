"""Closed vocabularies shared by models, schemas and the workflow rules.

Values are the strings persisted in the database and exchanged over the API.
"""

from enum import Enum


class UserRole(str, Enum):
    """Workflow role of a user."""

    ADMIN = "Admin"
    MANAGER = "Manager"
    ENGINEER = "Engineer"
    USER = "End-User"


class RequestStatus(str, Enum):
    """Lifecycle status of a simulation request."""

    SUBMITTED = "Submitted"
    MANAGER_REVIEW = "Manager Review"
    ENGINEERING_REVIEW = "Engineering Review"
    DISCUSSION = "Discussion"
    IN_PROGRESS = "In Progress"
    COMPLETED = "Completed"
    REVISION_REQUESTED = "Revision Requested"
    REVISION_APPROVAL = "Revision Approval"
    ACCEPTED = "Accepted"
    DENIED = "Denied"


class RequestPriority(str, Enum):
    LOW = "Low"
    MEDIUM = "Medium"
    HIGH = "High"


class ProjectStatus(str, Enum):
    """Lifecycle status of a project.

    APPROVED is kept for rows created before projects went straight to ACTIVE.
    """

    PENDING = "Pending"
    APPROVED = "Approved"
    ACTIVE = "Active"
    ON_HOLD = "On Hold"
    SUSPENDED = "Suspended"
    COMPLETED = "Completed"
    CANCELLED = "Cancelled"
    EXPIRED = "Expired"
    ARCHIVED = "Archived"


class ProjectPriority(str, Enum):
    LOW = "Low"
    MEDIUM = "Medium"
    HIGH = "High"
    CRITICAL = "Critical"


class HourTransactionType(str, Enum):
    """Kind of movement recorded in a project's hour ledger."""

    ALLOCATION = "allocation"
    DEALLOCATION = "deallocation"
    ADJUSTMENT = "adjustment"
    COMPLETION = "completion"
    ROLLOVER = "rollover"
    EXTENSION = "extension"


class TitleChangeStatus(str, Enum):
    PENDING = "Pending"
    APPROVED = "Approved"
    DENIED = "Denied"


class DiscussionStatus(str, Enum):
    PENDING = "Pending"
    APPROVED = "Approved"
    DENIED = "Denied"
    OVERRIDE = "Override"


class DiscussionDecision(str, Enum):
    """Manager's resolution of a discussion request."""

    APPROVE = "approve"
    OVERRIDE = "override"
    DENY = "deny"


class MilestoneStatus(str, Enum):
    PENDING = "Pending"
    IN_PROGRESS = "In Progress"
    COMPLETED = "Completed"
    SKIPPED = "Skipped"


class NotificationType(str, Enum):
    REQUEST_CREATED = "REQUEST_CREATED"
    REQUEST_ASSIGNED = "REQUEST_ASSIGNED"
    REQUEST_STATUS_CHANGED = "REQUEST_STATUS_CHANGED"
    REQUEST_COMMENT_ADDED = "REQUEST_COMMENT_ADDED"
    APPROVAL_NEEDED = "APPROVAL_NEEDED"
    APPROVAL_REVIEWED = "APPROVAL_REVIEWED"
    PROJECT_CREATED = "PROJECT_CREATED"
    PROJECT_UPDATED = "PROJECT_UPDATED"
    TITLE_CHANGE_REQUESTED = "TITLE_CHANGE_REQUESTED"
    TITLE_CHANGE_REVIEWED = "TITLE_CHANGE_REVIEWED"
    DISCUSSION_REQUESTED = "DISCUSSION_REQUESTED"
    DISCUSSION_REVIEWED = "DISCUSSION_REVIEWED"
    TIME_LOGGED = "TIME_LOGGED"


class EntityType(str, Enum):
    """Entity kinds referenced by notifications, audit entries and the executor."""

    REQUEST = "request"
    PROJECT = "project"
    USER = "user"
    COMMENT = "comment"
    TIME_ENTRY = "time_entry"
    TITLE_CHANGE = "title_change"
    DISCUSSION = "discussion"
    MILESTONE = "milestone"
