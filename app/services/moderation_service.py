# app/services/moderation_service.py

from typing import Dict, List, Optional

from loguru import logger
from sqlalchemy import func
from sqlalchemy.ext.asyncio import AsyncSession
from sqlmodel import select

from app.core.config import settings
from app.core.exceptions import ConcurrentModificationError, StorageError, ValidationError
from app.core.rbac import RoleGuard
from app.core.storage import StorageService
from app.models.enums import FeedbackDecision, SubmissionEvent, SubmissionStatus
from app.models.feedback import SubmissionFeedback
from app.models.submission import Submission, utcnow
from app.schemas.user import CurrentUser
from app.services.publication_client import PublicationClient, build_publication_payload
from app.services.submission_service import apply_transition, get_submission
from app.services.workflow import EVENT_DECISIONS, EVENT_PERMISSIONS, STATUS_EVENTS, next_status


def _reviewer(user: CurrentUser) -> str:
    return user.email or user.user_id or "unknown"


def owner_comment(comment: Optional[str], internal: bool) -> Optional[str]:
    """The part of a decision comment the submission owner may see."""
    return None if internal else comment


def _feedback(submission_id: int, event: SubmissionEvent, user: CurrentUser, comment: Optional[str], internal: bool):
    return SubmissionFeedback(
        submission_id=submission_id,
        moderator_email=_reviewer(user),
        moderator_name=user.name,
        comment=comment,
        decision=EVENT_DECISIONS[event],
        internal=internal,
    )


async def _record_decision(
    session: AsyncSession,
    submission: Submission,
    event: SubmissionEvent,
    target: SubmissionStatus,
    user: CurrentUser,
    comment: Optional[str],
    internal: bool,
    **values,
) -> Submission:
    # Feedback row rides in the same transaction as the guarded update.
    # An internal comment never reaches the owner-visible reviewer_comment.
    session.add(_feedback(submission.id, event, user, comment, internal))
    return await apply_transition(
        session,
        submission,
        target,
        reviewer_comment=owner_comment(comment, internal),
        reviewed_by=_reviewer(user),
        reviewed_at=utcnow(),
        **values,
    )


# ------------------------------------------------------------
# APPROVE
# ------------------------------------------------------------
async def approve(
    session: AsyncSession,
    guard: RoleGuard,
    publications: PublicationClient,
    storage: StorageService,
    submission_id: int,
    user: CurrentUser,
    comment: Optional[str] = None,
    internal: bool = False,
) -> Submission:
    """
    PENDING/IN_REVIEW -> VALIDATED.

    The content service is called first; the submission is only committed as
    VALIDATED once it returned a publication id. If that call fails nothing
    is written and the error propagates.
    """
    guard.require_permission(user.role, EVENT_PERMISSIONS[SubmissionEvent.APPROVE])

    submission = await get_submission(session, submission_id)
    target = next_status(submission.status, SubmissionEvent.APPROVE)

    file_url = None
    if submission.file_key:
        try:
            file_url = await storage.signed_url(submission.file_key, settings.SIGNED_URL_TTL_MINUTES)
        except StorageError as e:
            # file_key still travels with the payload
            logger.warning(f"No signed URL for submission {submission_id}: {e.message}")

    publication_id = await publications.create_publication_from_submission(
        build_publication_payload(submission, file_url)
    )

    try:
        submission = await _record_decision(
            session, submission, SubmissionEvent.APPROVE, target, user, comment, internal,
            publication_id=publication_id,
        )
    except ConcurrentModificationError:
        logger.error(
            f"Submission {submission_id} changed during approval; "
            f"publication {publication_id} has no local link"
        )
        raise

    logger.info(f"Submission {submission_id} validated by {_reviewer(user)} -> publication {publication_id}")
    return submission


# ------------------------------------------------------------
# REJECT / REQUEST REVISION
# ------------------------------------------------------------
async def reject(
    session: AsyncSession,
    guard: RoleGuard,
    submission_id: int,
    user: CurrentUser,
    comment: Optional[str] = None,
    internal: bool = False,
) -> Submission:
    guard.require_permission(user.role, EVENT_PERMISSIONS[SubmissionEvent.REJECT])

    submission = await get_submission(session, submission_id)
    target = next_status(submission.status, SubmissionEvent.REJECT)
    submission = await _record_decision(session, submission, SubmissionEvent.REJECT, target, user, comment, internal)

    logger.info(f"Submission {submission_id} rejected by {_reviewer(user)}")
    return submission


async def request_revision(
    session: AsyncSession,
    guard: RoleGuard,
    submission_id: int,
    user: CurrentUser,
    comment: Optional[str] = None,
    internal: bool = False,
) -> Submission:
    guard.require_permission(user.role, EVENT_PERMISSIONS[SubmissionEvent.REQUEST_REVISION])

    submission = await get_submission(session, submission_id)
    target = next_status(submission.status, SubmissionEvent.REQUEST_REVISION)
    submission = await _record_decision(
        session, submission, SubmissionEvent.REQUEST_REVISION, target, user, comment, internal
    )

    logger.info(f"Revision requested on submission {submission_id} by {_reviewer(user)}")
    return submission


# ------------------------------------------------------------
# INTERNAL NOTES
# ------------------------------------------------------------
async def add_internal_note(
    session: AsyncSession,
    submission_id: int,
    user: CurrentUser,
    comment: str,
) -> SubmissionFeedback:
    """Staff-only remark on the trail. Status and version stay as they are."""
    submission = await get_submission(session, submission_id)

    note = SubmissionFeedback(
        submission_id=submission.id,
        moderator_email=_reviewer(user),
        moderator_name=user.name,
        comment=comment,
        decision=FeedbackDecision.INTERNAL_NOTE,
        internal=True,
    )
    session.add(note)
    await session.commit()
    await session.refresh(note)

    logger.info(f"Internal note {note.id} added to submission {submission_id} by {_reviewer(user)}")
    return note


# ------------------------------------------------------------
# STATUS SHORTCUT
# ------------------------------------------------------------
def event_for_status(raw_status: str) -> SubmissionEvent:
    try:
        status = SubmissionStatus((raw_status or "").strip().upper())
    except ValueError:
        status = None

    event = STATUS_EVENTS.get(status) if status else None
    if event is None:
        allowed = sorted(s.value for s in STATUS_EVENTS)
        raise ValidationError(
            f"Unsupported target status '{raw_status}'",
            details=[{"field": "status", "message": f"must be one of {allowed}"}],
        )
    return event


async def change_status(
    session: AsyncSession,
    guard: RoleGuard,
    publications: PublicationClient,
    storage: StorageService,
    submission_id: int,
    user: CurrentUser,
    raw_status: str,
    comment: Optional[str] = None,
    internal: bool = False,
) -> tuple[SubmissionEvent, Submission]:
    event = event_for_status(raw_status)
    if event == SubmissionEvent.APPROVE:
        submission = await approve(session, guard, publications, storage, submission_id, user, comment, internal)
    elif event == SubmissionEvent.REJECT:
        submission = await reject(session, guard, submission_id, user, comment, internal)
    else:
        submission = await request_revision(session, guard, submission_id, user, comment, internal)
    return event, submission


# ------------------------------------------------------------
# READS
# ------------------------------------------------------------
def parse_status(raw: Optional[str]) -> SubmissionStatus:
    if not raw:
        return SubmissionStatus.PENDING
    try:
        return SubmissionStatus(raw.strip().upper())
    except ValueError:
        raise ValidationError(
            f"Unknown status '{raw}'",
            details=[{"field": "status", "message": f"must be one of {[s.value for s in SubmissionStatus]}"}],
        )


async def list_by_status(session: AsyncSession, status: SubmissionStatus) -> List[Submission]:
    result = await session.execute(
        select(Submission)
        .where(Submission.status == status)
        .order_by(Submission.submitted_at.asc(), Submission.id.asc())
    )
    return list(result.scalars().all())


async def queue(session: AsyncSession) -> List[Submission]:
    return await list_by_status(session, SubmissionStatus.PENDING)


async def statistics(session: AsyncSession, owner_id: Optional[str] = None) -> Dict[str, object]:
    """Count per status plus total; `owner_id` narrows it to one owner."""
    query = select(Submission.status, func.count(Submission.id)).group_by(Submission.status)
    if owner_id is not None:
        query = query.where(Submission.owner_id == owner_id)
    result = await session.execute(query)
    counts = {status.value: 0 for status in SubmissionStatus}
    for status, count in result.all():
        counts[SubmissionStatus(status).value] = count
    return {"total": sum(counts.values()), "by_status": counts}


async def list_feedback(session: AsyncSession, submission_id: int, include_internal: bool) -> List[SubmissionFeedback]:
    query = (
        select(SubmissionFeedback)
        .where(SubmissionFeedback.submission_id == submission_id)
        .order_by(SubmissionFeedback.created_at.asc(), SubmissionFeedback.id.asc())
    )
    if not include_internal:
        query = query.where(SubmissionFeedback.internal == False)  # noqa: E712
    result = await session.execute(query)
    return list(result.scalars().all())
