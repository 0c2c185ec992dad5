# app/api/endpoints/submissions.py

from typing import List, Optional

from fastapi import APIRouter, BackgroundTasks, Depends, File, Form, Query, Request, UploadFile, status
from sqlalchemy.ext.asyncio import AsyncSession

from app.api.deps import get_db_session, require_identity
from app.core.config import settings
from app.core.permissions import Permission
from app.core.rate_limiter import limiter, submission_rate_limit
from app.core.rbac import RequirePermission, RoleGuard, get_role_guard
from app.core.storage import StorageService, get_storage_service
from app.schemas.submission import DownloadLinkRead, FeedbackRead, StatisticsRead, SubmissionRead
from app.schemas.user import CurrentUser
from app.services import moderation_service, submission_service
from app.services.audit_service import log_action
from app.services.email_service import send_submission_received_email
from app.services.notification_client import NotificationClient, get_notification_client

router = APIRouter(prefix="/api/submissions", tags=["Submissions"])


# ------------------------------------------------------------
# SUBMIT A WORK (multipart: PDF + metadata)
# ------------------------------------------------------------
@router.post("", response_model=SubmissionRead, status_code=status.HTTP_201_CREATED)
@limiter.limit(submission_rate_limit)
async def create_submission(
    request: Request,
    background_tasks: BackgroundTasks,
    title: Optional[str] = Form(None),
    abstract: Optional[str] = Form(None),
    main_author: Optional[str] = Form(None),
    author_email: Optional[str] = Form(None),
    co_authors: Optional[List[str]] = Form(None),
    keywords: Optional[List[str]] = Form(None),
    research_domain: Optional[str] = Form(None),
    notes: Optional[str] = Form(None),
    file: Optional[UploadFile] = File(None),
    session: AsyncSession = Depends(get_db_session),
    storage: StorageService = Depends(get_storage_service),
    notifier: NotificationClient = Depends(get_notification_client),
    _: CurrentUser = Depends(require_identity),
    current_user: CurrentUser = Depends(RequirePermission(Permission.SUBMIT)),
):
    fields = {
        "title": title,
        "abstract": abstract,
        "main_author": main_author,
        "author_email": author_email,
        "co_authors": co_authors,
        "keywords": keywords,
        "research_domain": research_domain,
        "notes": notes,
    }
    content = await file.read() if file else None

    submission = await submission_service.create_submission(
        session,
        storage,
        current_user,
        fields,
        filename=file.filename if file else None,
        content_type=file.content_type if file else None,
        content=content,
    )

    # Best-effort side effects, after the response is settled
    background_tasks.add_task(notifier.submission_received, submission.owner_id, submission.id, submission.title)
    background_tasks.add_task(
        send_submission_received_email,
        {
            "name": current_user.name or submission.main_author,
            "email": submission.owner_email or submission.author_email,
            "submission_id": submission.id,
            "title": submission.title,
        },
    )
    background_tasks.add_task(
        log_action, "CREATE", "SUBMISSION", submission.id, current_user,
        {"title": submission.title, "file_size": submission.file_size}, request,
    )
    return submission


# ------------------------------------------------------------
# OWNER READS
# ------------------------------------------------------------
@router.get("", response_model=List[SubmissionRead])
async def list_my_submissions(
    status: Optional[str] = Query(None, description="Only submissions in this status"),
    session: AsyncSession = Depends(get_db_session),
    _: CurrentUser = Depends(require_identity),
    current_user: CurrentUser = Depends(RequirePermission(Permission.SUBMIT)),
):
    wanted = moderation_service.parse_status(status) if status else None
    return await submission_service.list_own(session, current_user, wanted)


@router.get("/statistics", response_model=StatisticsRead)
async def my_statistics(
    session: AsyncSession = Depends(get_db_session),
    _: CurrentUser = Depends(require_identity),
    current_user: CurrentUser = Depends(RequirePermission(Permission.SUBMIT)),
):
    return await moderation_service.statistics(session, owner_id=current_user.user_id)


@router.get("/{submission_id}", response_model=SubmissionRead)
async def get_my_submission(
    submission_id: int,
    session: AsyncSession = Depends(get_db_session),
    _: CurrentUser = Depends(require_identity),
    current_user: CurrentUser = Depends(RequirePermission(Permission.VIEW_OWN)),
):
    return await submission_service.get_own(session, submission_id, current_user)


@router.get("/{submission_id}/download", response_model=DownloadLinkRead)
async def get_download_link(
    submission_id: int,
    session: AsyncSession = Depends(get_db_session),
    storage: StorageService = Depends(get_storage_service),
    guard: RoleGuard = Depends(get_role_guard),
    current_user: CurrentUser = Depends(RequirePermission(Permission.VIEW_OWN)),
):
    """Fresh signed URL; stored links are never handed out."""
    url = await submission_service.download_url(session, storage, guard, submission_id, current_user)
    submission = await submission_service.get_submission(session, submission_id)
    return DownloadLinkRead(
        submission_id=submission_id,
        file_name=submission.file_name,
        url=url,
        expires_in_minutes=settings.SIGNED_URL_TTL_MINUTES,
    )


@router.get("/{submission_id}/feedback", response_model=List[FeedbackRead])
async def get_my_feedback(
    submission_id: int,
    session: AsyncSession = Depends(get_db_session),
    _: CurrentUser = Depends(require_identity),
    current_user: CurrentUser = Depends(RequirePermission(Permission.VIEW_OWN)),
):
    await submission_service.get_own(session, submission_id, current_user)
    return await moderation_service.list_feedback(session, submission_id, include_internal=False)


# ------------------------------------------------------------
# WITHDRAW (owner only)
# ------------------------------------------------------------
@router.delete("/{submission_id}", response_model=SubmissionRead)
async def withdraw_submission(
    submission_id: int,
    request: Request,
    background_tasks: BackgroundTasks,
    session: AsyncSession = Depends(get_db_session),
    _: CurrentUser = Depends(require_identity),
    current_user: CurrentUser = Depends(RequirePermission(Permission.DELETE_OWN_SUBMISSION)),
):
    submission = await submission_service.withdraw(session, submission_id, current_user)

    background_tasks.add_task(
        log_action, "WITHDRAW", "SUBMISSION", submission.id, current_user,
        {"title": submission.title, "to_status": submission.status.value}, request,
    )
    return submission
