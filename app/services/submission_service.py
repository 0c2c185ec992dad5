# app/services/submission_service.py

from typing import Any, Dict, List, Optional

from loguru import logger
from pydantic import ValidationError as PydanticValidationError
from sqlalchemy import update
from sqlalchemy.ext.asyncio import AsyncSession
from sqlmodel import select

from app.core.config import settings
from app.core.exceptions import (
    AuthenticationError,
    AuthorizationError,
    ConcurrentModificationError,
    NotFoundError,
    ValidationError,
    field_errors,
)
from app.core.permissions import Permission
from app.core.rbac import RoleGuard
from app.core.storage import StorageService
from app.models.enums import SubmissionEvent, SubmissionStatus
from app.models.submission import Submission, utcnow
from app.schemas.submission import SubmissionCreate
from app.schemas.user import CurrentUser
from app.services.workflow import INITIAL_STATUS, next_status

PDF_CONTENT_TYPE = "application/pdf"
PDF_MAGIC = b"%PDF-"


# ------------------------------------------------------------
# VALIDATION
# ------------------------------------------------------------
def validate_metadata(fields: Dict[str, Any]) -> SubmissionCreate:
    try:
        return SubmissionCreate(**fields)
    except PydanticValidationError as e:
        raise ValidationError("Invalid submission metadata", details=field_errors(e.errors())) from e


def validate_file(filename: Optional[str], content_type: Optional[str], content: Optional[bytes]) -> None:
    """Type, size and signature checks. Runs before anything is uploaded."""
    problems: List[Dict[str, str]] = []
    max_bytes = settings.MAX_UPLOAD_SIZE_MB * 1024 * 1024

    if not content:
        problems.append({"field": "file", "message": "file is required and must not be empty"})
    else:
        if len(content) > max_bytes:
            problems.append({"field": "file", "message": f"file exceeds {settings.MAX_UPLOAD_SIZE_MB} MB"})
        if not content.startswith(PDF_MAGIC):
            problems.append({"field": "file", "message": "file is not a PDF document"})

    if (content_type or "").split(";")[0].strip().lower() != PDF_CONTENT_TYPE:
        problems.append({"field": "file", "message": "content type must be application/pdf"})
    if not (filename or "").lower().endswith(".pdf"):
        problems.append({"field": "file", "message": "filename must end with .pdf"})

    if problems:
        raise ValidationError("Invalid submission file", details=problems)


# ------------------------------------------------------------
# CREATE
# ------------------------------------------------------------
async def create_submission(
    session: AsyncSession,
    storage: StorageService,
    owner: CurrentUser,
    fields: Dict[str, Any],
    filename: Optional[str],
    content_type: Optional[str],
    content: Optional[bytes],
) -> Submission:
    if not owner.is_authenticated:
        raise AuthenticationError("X-User-Id header is required")

    # 1. Metadata, 2. file: nothing touches storage until both pass
    data = validate_metadata(fields)
    validate_file(filename, content_type, content)

    # 3. Upload
    file_key = await storage.store(content, filename, settings.SUBMISSION_PATH_PREFIX, PDF_CONTENT_TYPE)

    # 4. Persist
    submission = Submission(
        **data.model_dump(),
        file_key=file_key,
        file_name=filename,
        file_size=len(content),
        status=INITIAL_STATUS,
        owner_id=owner.user_id,
        owner_email=owner.email,
    )
    session.add(submission)
    try:
        await session.commit()
    except Exception:
        await session.rollback()
        logger.error(f"Failed to persist submission for {owner.user_id}; removing stored object {file_key}")
        try:
            await storage.delete(file_key)
        except Exception as cleanup_error:
            logger.warning(f"Orphan object {file_key} left in storage: {cleanup_error}")
        raise

    await session.refresh(submission)
    logger.info(f"Submission {submission.id} created by {owner.user_id} ({submission.title!r})")
    return submission


# ------------------------------------------------------------
# READ
# ------------------------------------------------------------
async def get_submission(session: AsyncSession, submission_id: int) -> Submission:
    result = await session.execute(select(Submission).where(Submission.id == submission_id))
    submission = result.scalar_one_or_none()
    if not submission:
        raise NotFoundError(f"Submission {submission_id} not found")
    return submission


async def get_own(session: AsyncSession, submission_id: int, user: CurrentUser) -> Submission:
    # Someone else's submission reads as missing
    submission = await get_submission(session, submission_id)
    if submission.owner_id != user.user_id:
        raise NotFoundError(f"Submission {submission_id} not found")
    return submission


async def list_own(
    session: AsyncSession, user: CurrentUser, status: Optional[SubmissionStatus] = None
) -> List[Submission]:
    query = select(Submission).where(Submission.owner_id == user.user_id)
    if status is not None:
        query = query.where(Submission.status == status)
    result = await session.execute(
        query.order_by(Submission.submitted_at.desc(), Submission.id.desc())
    )
    return list(result.scalars().all())


async def download_url(
    session: AsyncSession,
    storage: StorageService,
    guard: RoleGuard,
    submission_id: int,
    user: CurrentUser,
) -> str:
    submission = await get_submission(session, submission_id)
    is_owner = user.is_authenticated and submission.owner_id == user.user_id
    if not is_owner and not guard.grants.has_permission(user.role, Permission.VIEW_ALL):
        raise NotFoundError(f"Submission {submission_id} not found")
    if not submission.file_key:
        raise NotFoundError(f"Submission {submission_id} has no stored file")
    return await storage.signed_url(submission.file_key, settings.SIGNED_URL_TTL_MINUTES)


# ------------------------------------------------------------
# GUARDED COMMIT
# ------------------------------------------------------------
async def apply_transition(session: AsyncSession, submission: Submission, target, **values) -> Submission:
    """
    Move `submission` to `target` only if nobody changed it since it was read.
    Matches on id, version and status; bumps version. Commits.
    """
    seen_version = submission.version
    seen_status = submission.status

    result = await session.execute(
        update(Submission)
        .where(
            Submission.id == submission.id,
            Submission.version == seen_version,
            Submission.status == seen_status,
        )
        .values(status=target, version=seen_version + 1, updated_at=utcnow(), **values)
        .execution_options(synchronize_session=False)
    )
    if result.rowcount != 1:
        await session.rollback()
        raise ConcurrentModificationError(
            details={"submission_id": submission.id, "seen_status": getattr(seen_status, "value", seen_status)}
        )

    await session.commit()
    await session.refresh(submission)
    return submission


# ------------------------------------------------------------
# WITHDRAW (owner)
# ------------------------------------------------------------
async def withdraw(session: AsyncSession, submission_id: int, user: CurrentUser) -> Submission:
    if not user.is_authenticated:
        raise AuthenticationError("X-User-Id header is required")

    submission = await get_submission(session, submission_id)
    if submission.owner_id != user.user_id:
        raise AuthorizationError(
            "Only the owner can withdraw a submission",
            details={"submission_id": submission_id},
        )

    target = next_status(submission.status, SubmissionEvent.WITHDRAW)
    submission = await apply_transition(session, submission, target)
    logger.info(f"Submission {submission_id} withdrawn by {user.user_id}")
    return submission
