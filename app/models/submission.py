# app/models/submission.py

from sqlmodel import SQLModel, Field, Column
from sqlalchemy import BigInteger, DateTime, Integer, JSON, String, Text
from sqlalchemy import Enum as SAEnum
from sqlalchemy.dialects.postgresql import JSONB
from datetime import datetime, timezone
from typing import List, Optional

from app.models.enums import SubmissionStatus


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


JSON_DOCUMENT = JSON().with_variant(JSONB(), "postgresql")


class Submission(SQLModel, table=True):
    __tablename__ = "submissions"

    id: Optional[int] = Field(default=None, primary_key=True)

    # --- Bibliographic metadata ---
    title: str = Field(sa_column=Column(String(500), nullable=False))
    abstract: str = Field(sa_column=Column(String(2000), nullable=False))
    main_author: str = Field(sa_column=Column(String(255), nullable=False))
    author_email: str = Field(sa_column=Column(String(255), nullable=False))
    co_authors: List[str] = Field(default_factory=list, sa_column=Column(JSON_DOCUMENT, nullable=False))
    keywords: List[str] = Field(default_factory=list, sa_column=Column(JSON_DOCUMENT, nullable=False))
    research_domain: str = Field(sa_column=Column(String(200), nullable=False))
    notes: Optional[str] = Field(default=None, sa_column=Column(String(1000), nullable=True))

    # --- Stored file ---
    file_key: Optional[str] = Field(default=None, sa_column=Column(String(500), nullable=True))
    file_name: Optional[str] = Field(default=None, sa_column=Column(String(255), nullable=True))
    file_size: Optional[int] = Field(default=None, sa_column=Column(BigInteger, nullable=True))

    # --- Workflow ---
    status: SubmissionStatus = Field(
        default=SubmissionStatus.PENDING,
        sa_column=Column(SAEnum(SubmissionStatus, name="submission_status"), nullable=False, index=True)
    )
    # Bumped by every committed transition; guards concurrent moderation
    version: int = Field(default=1, sa_column=Column(Integer, nullable=False))

    reviewer_comment: Optional[str] = Field(default=None, sa_column=Column(Text, nullable=True))
    reviewed_by: Optional[str] = Field(default=None, sa_column=Column(String(255), nullable=True))
    reviewed_at: Optional[datetime] = Field(default=None, sa_column=Column(DateTime(timezone=True), nullable=True))
    publication_id: Optional[int] = Field(default=None, sa_column=Column(BigInteger, nullable=True))

    # --- Owner (gateway identity) ---
    owner_id: str = Field(sa_column=Column(String(128), nullable=False, index=True))
    owner_email: Optional[str] = Field(default=None, sa_column=Column(String(255), nullable=True))

    submitted_at: datetime = Field(
        default_factory=utcnow,
        sa_column=Column(DateTime(timezone=True), nullable=False)
    )
    updated_at: datetime = Field(
        default_factory=utcnow,
        sa_column=Column(DateTime(timezone=True), nullable=False)
    )
