# app/models/feedback.py

from sqlmodel import SQLModel, Field, Column
from sqlalchemy import Boolean, DateTime, ForeignKey, Integer, String, Text
from sqlalchemy import Enum as SAEnum
from datetime import datetime
from typing import Optional

from app.models.enums import FeedbackDecision
from app.models.submission import utcnow


class SubmissionFeedback(SQLModel, table=True):
    """Append-only moderation trail; one row per moderator decision or internal note."""

    __tablename__ = "submission_feedback"

    id: Optional[int] = Field(default=None, primary_key=True)

    submission_id: int = Field(
        sa_column=Column(Integer, ForeignKey("submissions.id"), nullable=False, index=True)
    )

    moderator_email: str = Field(sa_column=Column(String(255), nullable=False))
    moderator_name: Optional[str] = Field(default=None, sa_column=Column(String(255), nullable=True))

    comment: Optional[str] = Field(default=None, sa_column=Column(Text, nullable=True))

    decision: FeedbackDecision = Field(
        sa_column=Column(SAEnum(FeedbackDecision, name="feedback_decision"), nullable=False)
    )

    # Internal notes are visible to staff only
    internal: bool = Field(default=False, sa_column=Column(Boolean, nullable=False, default=False))

    created_at: datetime = Field(
        default_factory=utcnow,
        sa_column=Column(DateTime(timezone=True), nullable=False)
    )
