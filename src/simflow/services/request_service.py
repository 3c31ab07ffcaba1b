"""Simulation request service: everything except status changes."""

from datetime import timedelta
from uuid import UUID

from sqlalchemy.ext.asyncio import AsyncSession

from src.simflow.core.config import get_settings
from src.simflow.core.logging import get_logger
from src.simflow.models import (
    AuditAction,
    Comment,
    DiscussionRequest,
    EntityType,
    NotificationType,
    RequestPriority,
    RequestStatus,
    SimulationRequest,
    TimeEntry,
    TitleChangeRequest,
    TitleChangeStatus,
    User,
    UserRole,
)
from src.simflow.models.base import utc_now
from src.simflow.repositories import (
    CommentRepository,
    DiscussionRepository,
    ProjectRepository,
    RequestFilter,
    RequestRepository,
    TimeEntryRepository,
    TitleChangeRepository,
    UserRepository,
)
from src.simflow.schemas.request import (
    CommentCreate,
    RequestCreate,
    RequestDetail,
    RequestRead,
    RequestSort,
    RequestView,
    TimeEntryCreate,
)
from src.simflow.services.audit_service import AuditService
from src.simflow.services.ledger_service import HourLedgerService
from src.simflow.services.notification_service import NotificationService
from src.simflow.workflow import (
    Conflict,
    Forbidden,
    NotFound,
    RequestAction,
    TitleEditMode,
    ValidationFailed,
    available_actions,
    require_request_capability,
    title_edit_mode,
)
from src.simflow.workflow.views import is_archived_display, needs_attention, sort_by_status

logger = get_logger(__name__)


def can_view(request: SimulationRequest, user: User) -> bool:
    """End-users see their own requests; engineers also see what they are assigned."""
    role = UserRole(user.role)
    if role is UserRole.USER:
        return request.created_by == user.id
    if role is UserRole.ENGINEER:
        return user.id in (request.created_by, request.assigned_to)
    return True


def describe(request: SimulationRequest, user: User) -> RequestDetail:
    """Request snapshot plus what ``user`` may do with it."""
    return RequestDetail(
        **RequestRead.model_validate(request).model_dump(),
        available_actions=available_actions(user.role, request, user.id),
        title_edit_mode=title_edit_mode(user.role, request, user.id),
        needs_attention=needs_attention(request),
        archived=is_archived_display(
            request, utc_now(), get_settings().request_archive_after_days
        ),
    )


class RequestService:
    def __init__(
        self,
        request_repo: RequestRepository,
        user_repo: UserRepository,
        project_repo: ProjectRepository,
        comment_repo: CommentRepository,
        time_entry_repo: TimeEntryRepository,
        title_change_repo: TitleChangeRepository,
        discussion_repo: DiscussionRepository,
        ledger: HourLedgerService,
        notifications: NotificationService,
        audit: AuditService,
        session: AsyncSession,
    ):
        self.request_repo = request_repo
        self.user_repo = user_repo
        self.project_repo = project_repo
        self.comment_repo = comment_repo
        self.time_entry_repo = time_entry_repo
        self.title_change_repo = title_change_repo
        self.discussion_repo = discussion_repo
        self.ledger = ledger
        self.notifications = notifications
        self.audit = audit
        self.session = session

    async def _get_visible(self, request_id: UUID, user: User) -> SimulationRequest:
        request = await self.request_repo.get_by_id(request_id)
        # Requests outside the user's view are reported as missing
        if request is None or not can_view(request, user):
            raise NotFound(EntityType.REQUEST.value, request_id)
        return request

    async def _lock(self, request_id: UUID, user: User) -> SimulationRequest:
        request = await self.request_repo.get_for_update(request_id)
        if request is None or not can_view(request, user):
            raise NotFound(EntityType.REQUEST.value, request_id)
        return request

    @staticmethod
    def _check_version(request: SimulationRequest, expected_version: int | None) -> None:
        if expected_version is not None and expected_version != request.version:
            raise Conflict(expected_version, request.version)

    @staticmethod
    def _touch(request: SimulationRequest) -> None:
        request.version += 1
        request.updated_at = utc_now()

    async def create(self, data: RequestCreate, actor: User) -> SimulationRequest:
        """File a new request in Submitted.

        An admin may file on behalf of another active user, who becomes the
        requester.
        """
        requester = actor
        try:
            if data.on_behalf_of is not None and data.on_behalf_of != actor.id:
                if UserRole(actor.role) is not UserRole.ADMIN:
                    raise Forbidden(actor.role, RequestAction.CREATE_ON_BEHALF.value)
                on_behalf = await self.user_repo.get_by_id(data.on_behalf_of)
                if on_behalf is None or not on_behalf.is_active:
                    raise ValidationFailed("Requests can only be filed for an active user")
                requester = on_behalf

            request = SimulationRequest(
                title=data.title,
                description=data.description,
                vendor=data.vendor,
                priority=data.priority.value,
                status=RequestStatus.SUBMITTED.value,
                created_by=requester.id,
                created_by_name=requester.name,
                created_by_admin_id=actor.id if requester is not actor else None,
            )
            if data.project_id is not None:
                project = await self.project_repo.get_by_id(data.project_id)
                if project is None:
                    raise NotFound(EntityType.PROJECT.value, data.project_id)
                request.project_id = project.id
                request.project_name = project.name
                request.project_code = project.code

            self.request_repo.add(request)
            await self.notifications.notify_role(
                UserRole.MANAGER,
                NotificationType.REQUEST_CREATED,
                "New simulation request",
                f'{requester.name} submitted "{request.title}"',
                EntityType.REQUEST,
                request.id,
                actor.id,
            )
            await self.session.commit()
        except Exception:
            await self.session.rollback()
            raise

        logger.info(
            "request_created",
            request_id=str(request.id),
            created_by=str(requester.id),
            on_behalf=requester is not actor,
        )
        await self.audit.log_success(
            AuditAction.REQUEST_CREATE,
            EntityType.REQUEST,
            entity_id=request.id,
            actor_id=actor.id,
            changes={"title": request.title, "created_by": str(requester.id)},
        )
        return request

    async def get(self, request_id: UUID, user: User) -> SimulationRequest:
        return await self._get_visible(request_id, user)

    async def list_requests(
        self,
        user: User,
        view: RequestView = RequestView.ALL,
        status: RequestStatus | None = None,
        priority: RequestPriority | None = None,
        project_id: UUID | None = None,
        archived: bool | None = None,
        cursor: str | None = None,
        limit: int = 50,
        sort: RequestSort = RequestSort.NEWEST,
    ) -> tuple[list[SimulationRequest], str | None, bool]:
        """List requests the user can see.

        ``archived`` selects one side of the display partition by age; it
        does not look at status. ``sort=workflow`` reorders each page by
        workflow stage, newest first within a stage.
        """
        created_by = assigned_to = visible_to = None
        role = UserRole(user.role)
        if role is UserRole.USER or view is RequestView.MINE:
            created_by = user.id
        elif view is RequestView.ASSIGNED:
            assigned_to = user.id
        elif role is UserRole.ENGINEER:
            visible_to = user.id

        created_before = created_since = None
        if archived is not None:
            cutoff = utc_now() - timedelta(days=get_settings().request_archive_after_days)
            if archived:
                created_before = cutoff
            else:
                created_since = cutoff

        filters = RequestFilter(
            status=status,
            priority=priority,
            project_id=project_id,
            created_by=created_by,
            assigned_to=assigned_to,
            visible_to=visible_to,
            needs_attention=view is RequestView.NEEDS_ATTENTION,
            created_before=created_before,
            created_since=created_since,
        )
        requests, next_cursor, has_more = await self.request_repo.list_filtered(
            filters, cursor, limit
        )
        if sort is RequestSort.WORKFLOW:
            requests = sort_by_status(requests)
        return requests, next_cursor, has_more

    async def update_title(
        self, request_id: UUID, title: str, actor: User, expected_version: int | None = None
    ) -> SimulationRequest:
        """Edit the title directly. Engineers must propose a change instead."""
        try:
            request = await self._lock(request_id, actor)
            if title_edit_mode(actor.role, request, actor.id) is not TitleEditMode.DIRECT:
                raise Forbidden(actor.role, RequestAction.EDIT_TITLE.value)
            self._check_version(request, expected_version)
            old_title = request.title
            request.title = title
            self._touch(request)
            await self.session.commit()
        except Exception:
            await self.session.rollback()
            raise

        await self.audit.log_success(
            AuditAction.REQUEST_UPDATE,
            EntityType.REQUEST,
            entity_id=request.id,
            actor_id=actor.id,
            changes={"title": {"from": old_title, "to": title}},
        )
        return request

    async def update_description(
        self,
        request_id: UUID,
        description: str,
        actor: User,
        expected_version: int | None = None,
    ) -> SimulationRequest:
        try:
            request = await self._lock(request_id, actor)
            require_request_capability(
                actor.role, RequestAction.EDIT_DESCRIPTION, request, actor.id
            )
            self._check_version(request, expected_version)
            request.description = description
            self._touch(request)
            await self.session.commit()
        except Exception:
            await self.session.rollback()
            raise

        await self.audit.log_success(
            AuditAction.REQUEST_UPDATE,
            EntityType.REQUEST,
            entity_id=request.id,
            actor_id=actor.id,
            changes={"description": "updated"},
        )
        return request

    async def propose_title_change(
        self, request_id: UUID, proposed_title: str, actor: User
    ) -> TitleChangeRequest:
        try:
            request = await self._get_visible(request_id, actor)
            require_request_capability(
                actor.role, RequestAction.PROPOSE_TITLE_CHANGE, request, actor.id
            )
            if proposed_title == request.title:
                raise ValidationFailed("Proposed title is the same as the current title")

            change = TitleChangeRequest(
                request_id=request.id,
                requested_by=actor.id,
                requested_by_name=actor.name,
                current_title=request.title,
                proposed_title=proposed_title,
            )
            self.title_change_repo.add(change)

            message = f'{actor.name} proposed renaming "{request.title}" to "{proposed_title}"'
            self.notifications.notify(
                request.created_by,
                NotificationType.TITLE_CHANGE_REQUESTED,
                "Title change proposed",
                message,
                EntityType.REQUEST,
                request.id,
                actor.id,
            )
            await self.notifications.notify_role(
                UserRole.MANAGER,
                NotificationType.TITLE_CHANGE_REQUESTED,
                "Title change proposed",
                message,
                EntityType.REQUEST,
                request.id,
                actor.id,
            )
            await self.session.commit()
        except Exception:
            await self.session.rollback()
            raise

        await self.audit.log_success(
            AuditAction.REQUEST_TITLE_CHANGE,
            EntityType.REQUEST,
            entity_id=request.id,
            actor_id=actor.id,
            changes={"title_change_id": str(change.id), "proposed_title": proposed_title},
        )
        return change

    async def review_title_change(
        self, change_id: UUID, approved: bool, actor: User
    ) -> TitleChangeRequest:
        """Approve or deny a pending title change. Approval renames the request."""
        try:
            change = await self.title_change_repo.get_for_update(change_id)
            if change is None:
                raise NotFound(EntityType.TITLE_CHANGE.value, change_id)
            request = await self._lock(change.request_id, actor)
            require_request_capability(
                actor.role, RequestAction.REVIEW_TITLE_CHANGE, request, actor.id
            )
            if change.status != TitleChangeStatus.PENDING.value:
                raise ValidationFailed("This title change has already been reviewed")

            status = TitleChangeStatus.APPROVED if approved else TitleChangeStatus.DENIED
            change.status = status.value
            change.reviewed_by = actor.id
            change.reviewed_by_name = actor.name
            change.reviewed_at = utc_now()
            if approved:
                request.title = change.proposed_title
                self._touch(request)

            self.notifications.notify(
                change.requested_by,
                NotificationType.TITLE_CHANGE_REVIEWED,
                "Title change reviewed",
                f'Your title change to "{change.proposed_title}" was {status.value.lower()}',
                EntityType.REQUEST,
                request.id,
                actor.id,
            )
            await self.session.commit()
        except Exception:
            await self.session.rollback()
            raise

        await self.audit.log_success(
            AuditAction.REQUEST_TITLE_CHANGE_REVIEW,
            EntityType.REQUEST,
            entity_id=request.id,
            actor_id=actor.id,
            changes={"title_change_id": str(change.id), "status": status.value},
        )
        return change

    async def list_title_changes(self, request_id: UUID, user: User) -> list[TitleChangeRequest]:
        await self._get_visible(request_id, user)
        return await self.title_change_repo.list_for_request(request_id)

    async def list_pending_title_changes(self, user: User) -> list[TitleChangeRequest]:
        if UserRole(user.role) not in (UserRole.ADMIN, UserRole.MANAGER):
            raise Forbidden(user.role, RequestAction.REVIEW_TITLE_CHANGE.value)
        return await self.title_change_repo.list_pending()

    async def list_discussions(self, request_id: UUID, user: User) -> list[DiscussionRequest]:
        await self._get_visible(request_id, user)
        return await self.discussion_repo.list_for_request(request_id)

    async def add_comment(self, request_id: UUID, data: CommentCreate, actor: User) -> Comment:
        try:
            request = await self._get_visible(request_id, actor)
            require_request_capability(actor.role, RequestAction.COMMENT, request, actor.id)

            # Requesters cannot write comments hidden from themselves
            visible = data.visible_to_requester or UserRole(actor.role) is UserRole.USER
            comment = Comment(
                request_id=request.id,
                author_id=actor.id,
                author_name=actor.name,
                author_role=actor.role,
                content=data.content,
                visible_to_requester=visible,
            )
            self.comment_repo.add(comment)

            recipients = [request.assigned_to]
            if visible:
                recipients.append(request.created_by)
            self.notifications.notify_many(
                recipients,
                NotificationType.REQUEST_COMMENT_ADDED,
                "New comment",
                f'{actor.name} commented on "{request.title}"',
                EntityType.REQUEST,
                request.id,
                actor.id,
            )
            await self.session.commit()
        except Exception:
            await self.session.rollback()
            raise

        await self.audit.log_success(
            AuditAction.REQUEST_COMMENT,
            EntityType.REQUEST,
            entity_id=request.id,
            actor_id=actor.id,
            changes={"comment_id": str(comment.id), "visible_to_requester": visible},
        )
        return comment

    async def list_comments(self, request_id: UUID, user: User) -> list[Comment]:
        await self._get_visible(request_id, user)
        include_internal = UserRole(user.role) is not UserRole.USER
        return await self.comment_repo.list_for_request(request_id, include_internal)

    async def log_time(self, request_id: UUID, data: TimeEntryCreate, actor: User) -> TimeEntry:
        try:
            request = await self._get_visible(request_id, actor)
            require_request_capability(actor.role, RequestAction.LOG_TIME, request, actor.id)

            entry = TimeEntry(
                request_id=request.id,
                engineer_id=actor.id,
                engineer_name=actor.name,
                hours=data.hours,
                description=data.description,
                work_date=data.work_date or utc_now().date(),
            )
            self.time_entry_repo.add(entry)
            self.notifications.notify(
                request.created_by,
                NotificationType.TIME_LOGGED,
                "Time logged",
                f'{actor.name} logged {data.hours:g}h on "{request.title}"',
                EntityType.REQUEST,
                request.id,
                actor.id,
            )
            await self.session.commit()
        except Exception:
            await self.session.rollback()
            raise

        logger.info(
            "time_logged",
            request_id=str(request.id),
            engineer_id=str(actor.id),
            hours=data.hours,
        )
        await self.audit.log_success(
            AuditAction.REQUEST_TIME_ENTRY,
            EntityType.REQUEST,
            entity_id=request.id,
            actor_id=actor.id,
            changes={"time_entry_id": str(entry.id), "hours": data.hours},
        )
        return entry

    async def list_time_entries(self, request_id: UUID, user: User) -> list[TimeEntry]:
        await self._get_visible(request_id, user)
        return await self.time_entry_repo.list_for_request(request_id)

    async def change_requester(
        self, request_id: UUID, user_id: UUID, actor: User
    ) -> SimulationRequest:
        try:
            request = await self._lock(request_id, actor)
            require_request_capability(
                actor.role, RequestAction.CHANGE_REQUESTER, request, actor.id
            )
            new_requester = await self.user_repo.get_by_id(user_id)
            if new_requester is None or not new_requester.is_active:
                raise ValidationFailed("The new requester must be an active user")

            previous = request.created_by
            request.created_by = new_requester.id
            request.created_by_name = new_requester.name
            self._touch(request)
            await self.session.commit()
        except Exception:
            await self.session.rollback()
            raise

        await self.audit.log_success(
            AuditAction.REQUEST_UPDATE,
            EntityType.REQUEST,
            entity_id=request.id,
            actor_id=actor.id,
            changes={
                "created_by": {
                    "from": str(previous) if previous else None,
                    "to": str(new_requester.id),
                }
            },
        )
        return request

    async def delete(self, request_id: UUID, actor: User) -> None:
        """Delete a request, returning any allocated hours to its project first."""
        try:
            request = await self._lock(request_id, actor)
            require_request_capability(actor.role, RequestAction.DELETE, request, actor.id)

            allocated = request.allocated_hours or 0
            if request.project_id is not None and allocated > 0:
                project = await self.ledger.lock_project(request.project_id)
                self.ledger.deallocate(
                    project, allocated, request.id, actor.id, notes="Request deleted"
                )
                # The ledger row must land before the request row goes
                await self.session.flush()
            title = request.title
            await self.request_repo.delete(request)
            await self.session.commit()
        except Exception:
            await self.session.rollback()
            raise

        logger.info("request_deleted", request_id=str(request_id), returned_hours=allocated)
        await self.audit.log_success(
            AuditAction.REQUEST_DELETE,
            EntityType.REQUEST,
            entity_id=request_id,
            actor_id=actor.id,
            changes={"title": title, "returned_hours": allocated},
        )
