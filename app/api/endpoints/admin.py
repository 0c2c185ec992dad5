# app/api/endpoints/admin.py

from typing import List, Optional

from fastapi import APIRouter, BackgroundTasks, Depends, Query, Request, status
from sqlalchemy.ext.asyncio import AsyncSession

from app.api.deps import get_current_user, get_db_session
from app.core.permissions import Permission, Role
from app.core.rbac import AllowRoles, RequirePermission, RoleGuard, get_role_guard
from app.core.storage import StorageService, get_storage_service
from app.models.enums import SubmissionEvent
from app.models.submission import Submission
from app.schemas.submission import (
    FeedbackRead,
    InternalNoteRequest,
    ModerationRequest,
    StatisticsRead,
    StatusChangeRequest,
    SubmissionRead,
)
from app.schemas.user import CurrentUser
from app.services import moderation_service, submission_service
from app.services.audit_service import log_action
from app.services.email_service import (
    send_revision_requested_email,
    send_submission_rejected_email,
    send_submission_validated_email,
)
from app.services.notification_client import NotificationClient, get_notification_client
from app.services.publication_client import PublicationClient, get_publication_client

router = APIRouter(prefix="/api/admin/submissions", tags=["Moderation"])

AUDIT_ACTIONS = {
    SubmissionEvent.APPROVE: "APPROVE",
    SubmissionEvent.REJECT: "REJECT",
    SubmissionEvent.REQUEST_REVISION: "REQUEST_REVISION",
}


def _schedule_side_effects(
    background_tasks: BackgroundTasks,
    request: Request,
    notifier: NotificationClient,
    event: SubmissionEvent,
    submission: Submission,
    moderator: CurrentUser,
    comment: Optional[str],
    internal: bool,
):
    """Owner notice, email and audit row. None of them can fail the decision."""
    comment = moderation_service.owner_comment(comment, internal)
    email_data = {
        "name": submission.main_author,
        "email": submission.owner_email or submission.author_email,
        "title": submission.title,
        "comment": comment,
        "publication_id": submission.publication_id,
    }

    if event == SubmissionEvent.APPROVE:
        background_tasks.add_task(
            notifier.submission_validated, submission.owner_id, submission.id, submission.title, submission.publication_id
        )
        background_tasks.add_task(send_submission_validated_email, email_data)
    elif event == SubmissionEvent.REJECT:
        background_tasks.add_task(
            notifier.submission_rejected, submission.owner_id, submission.id, submission.title, comment
        )
        background_tasks.add_task(send_submission_rejected_email, email_data)
    else:
        background_tasks.add_task(
            notifier.revision_requested, submission.owner_id, submission.id, submission.title, comment
        )
        background_tasks.add_task(send_revision_requested_email, email_data)

    details = {"title": submission.title, "to_status": submission.status.value}
    if submission.publication_id is not None:
        details["publication_id"] = submission.publication_id
    background_tasks.add_task(
        log_action, AUDIT_ACTIONS[event], "SUBMISSION", submission.id, moderator, details, request
    )


# ------------------------------------------------------------
# LISTINGS
# ------------------------------------------------------------
@router.get("", response_model=List[SubmissionRead])
async def list_submissions(
    status: Optional[str] = Query(None, description="Defaults to PENDING"),
    session: AsyncSession = Depends(get_db_session),
    _: CurrentUser = Depends(AllowRoles(Role.ADMIN, Role.STAFF)),
):
    return await moderation_service.list_by_status(session, moderation_service.parse_status(status))


@router.get("/queue", response_model=List[SubmissionRead])
async def moderation_queue(
    session: AsyncSession = Depends(get_db_session),
    _: CurrentUser = Depends(RequirePermission(Permission.MODERATE)),
):
    return await moderation_service.queue(session)


@router.get("/statistics", response_model=StatisticsRead)
async def submission_statistics(
    session: AsyncSession = Depends(get_db_session),
    _: CurrentUser = Depends(RequirePermission(Permission.VIEW_STATISTICS)),
):
    return await moderation_service.statistics(session)


@router.get("/{submission_id}/feedback", response_model=List[FeedbackRead])
async def submission_feedback(
    submission_id: int,
    session: AsyncSession = Depends(get_db_session),
    _: CurrentUser = Depends(RequirePermission(Permission.VIEW_ALL)),
):
    await submission_service.get_submission(session, submission_id)
    return await moderation_service.list_feedback(session, submission_id, include_internal=True)


# ------------------------------------------------------------
# DECISIONS
# Permission checks happen in the service, per event.
# ------------------------------------------------------------
@router.post("/{submission_id}/validate", response_model=SubmissionRead)
async def validate_submission(
    submission_id: int,
    request: Request,
    background_tasks: BackgroundTasks,
    payload: Optional[ModerationRequest] = None,
    session: AsyncSession = Depends(get_db_session),
    guard: RoleGuard = Depends(get_role_guard),
    publications: PublicationClient = Depends(get_publication_client),
    storage: StorageService = Depends(get_storage_service),
    notifier: NotificationClient = Depends(get_notification_client),
    current_user: CurrentUser = Depends(get_current_user),
):
    payload = payload or ModerationRequest()
    submission = await moderation_service.approve(
        session, guard, publications, storage, submission_id, current_user, payload.comment, payload.internal
    )
    _schedule_side_effects(
        background_tasks, request, notifier, SubmissionEvent.APPROVE, submission, current_user,
        payload.comment, payload.internal,
    )
    return submission


@router.post("/{submission_id}/reject", response_model=SubmissionRead)
async def reject_submission(
    submission_id: int,
    request: Request,
    background_tasks: BackgroundTasks,
    payload: Optional[ModerationRequest] = None,
    session: AsyncSession = Depends(get_db_session),
    guard: RoleGuard = Depends(get_role_guard),
    notifier: NotificationClient = Depends(get_notification_client),
    current_user: CurrentUser = Depends(get_current_user),
):
    payload = payload or ModerationRequest()
    submission = await moderation_service.reject(
        session, guard, submission_id, current_user, payload.comment, payload.internal
    )
    _schedule_side_effects(
        background_tasks, request, notifier, SubmissionEvent.REJECT, submission, current_user,
        payload.comment, payload.internal,
    )
    return submission


@router.post("/{submission_id}/request-revisions", response_model=SubmissionRead)
async def request_revisions(
    submission_id: int,
    request: Request,
    background_tasks: BackgroundTasks,
    payload: Optional[ModerationRequest] = None,
    session: AsyncSession = Depends(get_db_session),
    guard: RoleGuard = Depends(get_role_guard),
    notifier: NotificationClient = Depends(get_notification_client),
    current_user: CurrentUser = Depends(get_current_user),
):
    payload = payload or ModerationRequest()
    submission = await moderation_service.request_revision(
        session, guard, submission_id, current_user, payload.comment, payload.internal
    )
    _schedule_side_effects(
        background_tasks, request, notifier, SubmissionEvent.REQUEST_REVISION, submission, current_user,
        payload.comment, payload.internal,
    )
    return submission


@router.put("/{submission_id}/status", response_model=SubmissionRead)
async def change_submission_status(
    submission_id: int,
    payload: StatusChangeRequest,
    request: Request,
    background_tasks: BackgroundTasks,
    session: AsyncSession = Depends(get_db_session),
    guard: RoleGuard = Depends(get_role_guard),
    publications: PublicationClient = Depends(get_publication_client),
    storage: StorageService = Depends(get_storage_service),
    notifier: NotificationClient = Depends(get_notification_client),
    current_user: CurrentUser = Depends(get_current_user),
):
    event, submission = await moderation_service.change_status(
        session, guard, publications, storage, submission_id, current_user,
        payload.status, payload.comment, payload.internal,
    )
    _schedule_side_effects(
        background_tasks, request, notifier, event, submission, current_user, payload.comment, payload.internal
    )
    return submission


# ------------------------------------------------------------
# INTERNAL NOTES (staff only, no status change)
# ------------------------------------------------------------
@router.post(
    "/{submission_id}/internal-notes",
    response_model=FeedbackRead,
    status_code=status.HTTP_201_CREATED,
)
async def add_internal_note(
    submission_id: int,
    payload: InternalNoteRequest,
    request: Request,
    background_tasks: BackgroundTasks,
    session: AsyncSession = Depends(get_db_session),
    current_user: CurrentUser = Depends(RequirePermission(Permission.MODERATE)),
):
    note = await moderation_service.add_internal_note(session, submission_id, current_user, payload.comment)
    background_tasks.add_task(
        log_action, "INTERNAL_NOTE", "SUBMISSION", submission_id, current_user, {"feedback_id": note.id}, request
    )
    return note
