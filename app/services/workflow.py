# app/services/workflow.py

"""
Submission lifecycle as an explicit transition table.

    PENDING   --approve-->          VALIDATED
    PENDING   --reject-->           REJECTED
    PENDING   --request revision--> IN_REVIEW
    PENDING   --withdraw-->         WITHDRAWN
    IN_REVIEW --approve-->          VALIDATED
    IN_REVIEW --reject-->           REJECTED
    IN_REVIEW --withdraw-->         WITHDRAWN

VALIDATED, REJECTED and WITHDRAWN are terminal.
"""

from types import MappingProxyType
from typing import Mapping, Optional

from app.core.exceptions import IllegalStateTransitionError
from app.core.permissions import Permission
from app.models.enums import FeedbackDecision, SubmissionEvent, SubmissionStatus

INITIAL_STATUS = SubmissionStatus.PENDING

TERMINAL_STATUSES = frozenset({
    SubmissionStatus.VALIDATED,
    SubmissionStatus.REJECTED,
    SubmissionStatus.WITHDRAWN,
})

TRANSITIONS: Mapping[tuple, SubmissionStatus] = MappingProxyType({
    (SubmissionStatus.PENDING, SubmissionEvent.APPROVE): SubmissionStatus.VALIDATED,
    (SubmissionStatus.PENDING, SubmissionEvent.REJECT): SubmissionStatus.REJECTED,
    (SubmissionStatus.PENDING, SubmissionEvent.REQUEST_REVISION): SubmissionStatus.IN_REVIEW,
    (SubmissionStatus.PENDING, SubmissionEvent.WITHDRAW): SubmissionStatus.WITHDRAWN,
    (SubmissionStatus.IN_REVIEW, SubmissionEvent.APPROVE): SubmissionStatus.VALIDATED,
    (SubmissionStatus.IN_REVIEW, SubmissionEvent.REJECT): SubmissionStatus.REJECTED,
    (SubmissionStatus.IN_REVIEW, SubmissionEvent.WITHDRAW): SubmissionStatus.WITHDRAWN,
})

# Permission a moderator needs to fire each event. WITHDRAW is owner-only.
EVENT_PERMISSIONS: Mapping[SubmissionEvent, Permission] = MappingProxyType({
    SubmissionEvent.APPROVE: Permission.APPROVE_SUBMISSION,
    SubmissionEvent.REJECT: Permission.REJECT_SUBMISSION,
    SubmissionEvent.REQUEST_REVISION: Permission.REQUEST_REVISION,
})

EVENT_DECISIONS: Mapping[SubmissionEvent, FeedbackDecision] = MappingProxyType({
    SubmissionEvent.APPROVE: FeedbackDecision.APPROVED,
    SubmissionEvent.REJECT: FeedbackDecision.REJECTED,
    SubmissionEvent.REQUEST_REVISION: FeedbackDecision.REVISION_REQUESTED,
})

# Moderator status shortcut: target status -> event
STATUS_EVENTS: Mapping[SubmissionStatus, SubmissionEvent] = MappingProxyType({
    SubmissionStatus.VALIDATED: SubmissionEvent.APPROVE,
    SubmissionStatus.REJECTED: SubmissionEvent.REJECT,
    SubmissionStatus.IN_REVIEW: SubmissionEvent.REQUEST_REVISION,
})


def is_terminal(status: SubmissionStatus) -> bool:
    return SubmissionStatus(status) in TERMINAL_STATUSES


def can_transition(current: SubmissionStatus, target: SubmissionStatus) -> bool:
    current = SubmissionStatus(current)
    target = SubmissionStatus(target)
    return any(
        source == current and destination == target
        for (source, _), destination in TRANSITIONS.items()
    )


def find_transition(current: SubmissionStatus, event: SubmissionEvent) -> Optional[SubmissionStatus]:
    return TRANSITIONS.get((SubmissionStatus(current), SubmissionEvent(event)))


def next_status(current: SubmissionStatus, event: SubmissionEvent) -> SubmissionStatus:
    """Target status for `event`, or IllegalStateTransitionError."""
    current = SubmissionStatus(current)
    event = SubmissionEvent(event)

    if current in TERMINAL_STATUSES:
        raise IllegalStateTransitionError(
            current,
            event.value,
            message=f"Submission already finalized (status {current.value})",
        )

    target = find_transition(current, event)
    if target is None:
        raise IllegalStateTransitionError(current, event.value)
    return target
