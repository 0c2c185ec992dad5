# app/schemas/submission.py
from pydantic import BaseModel, EmailStr, Field, field_validator
from typing import Dict, List, Optional
from datetime import datetime

from app.models.enums import FeedbackDecision, SubmissionStatus


def _split_entries(v):
    """Accept repeated form fields or one comma separated value."""
    if v is None:
        return []
    if isinstance(v, str):
        v = [v]
    entries = []
    for item in v:
        if isinstance(item, str) and "," in item:
            entries.extend(part for part in item.split(","))
        else:
            entries.append(item)
    return [e.strip() if isinstance(e, str) else e for e in entries]


# ------------------------------------------------------------
# CREATE (multipart form fields)
# ------------------------------------------------------------
class SubmissionCreate(BaseModel):
    title: str = Field(min_length=10, max_length=255)
    abstract: str = Field(min_length=50, max_length=2000)
    main_author: str = Field(min_length=1, max_length=255)
    author_email: EmailStr
    co_authors: List[str] = Field(default_factory=list, max_length=20)
    keywords: List[str] = Field(min_length=3, max_length=10)
    research_domain: str = Field(min_length=1, max_length=200)
    notes: Optional[str] = Field(default=None, max_length=1000)

    class Config:
        str_strip_whitespace = True

    @field_validator("co_authors", mode="before")
    def split_co_authors(cls, v):
        # Blank co-author slots are simply dropped
        return [e for e in _split_entries(v) if e]

    @field_validator("keywords", mode="before")
    def split_keywords(cls, v):
        return _split_entries(v)

    @field_validator("co_authors")
    def co_author_length(cls, v):
        for name in v:
            if len(name) > 255:
                raise ValueError("each co-author must be at most 255 characters")
        return v

    @field_validator("keywords")
    def keyword_entries(cls, v):
        for keyword in v:
            if not keyword:
                raise ValueError("keywords must not be blank")
            if len(keyword) > 100:
                raise ValueError("each keyword must be at most 100 characters")
        return v

    @field_validator("notes")
    def blank_notes(cls, v):
        return v or None


# ------------------------------------------------------------
# READ
# ------------------------------------------------------------
class SubmissionRead(BaseModel):
    id: int
    title: str
    abstract: str
    main_author: str
    author_email: str
    co_authors: List[str] = []
    keywords: List[str] = []
    research_domain: str
    notes: Optional[str] = None

    file_name: Optional[str] = None
    file_size: Optional[int] = None

    status: SubmissionStatus
    reviewer_comment: Optional[str] = None
    reviewed_by: Optional[str] = None
    reviewed_at: Optional[datetime] = None
    publication_id: Optional[int] = None

    owner_id: str
    submitted_at: datetime
    updated_at: datetime

    class Config:
        from_attributes = True


class DownloadLinkRead(BaseModel):
    submission_id: int
    file_name: Optional[str] = None
    url: str
    expires_in_minutes: int


# ------------------------------------------------------------
# MODERATION
# ------------------------------------------------------------
class ModerationRequest(BaseModel):
    comment: Optional[str] = Field(default=None, max_length=1000)
    internal: bool = False


class StatusChangeRequest(BaseModel):
    status: str
    comment: Optional[str] = Field(default=None, max_length=1000)
    internal: bool = False


class InternalNoteRequest(BaseModel):
    comment: str = Field(min_length=1, max_length=1000)

    class Config:
        str_strip_whitespace = True


class FeedbackRead(BaseModel):
    id: int
    submission_id: int
    moderator_email: str
    moderator_name: Optional[str] = None
    comment: Optional[str] = None
    decision: FeedbackDecision
    internal: bool
    created_at: datetime

    class Config:
        from_attributes = True


class StatisticsRead(BaseModel):
    total: int
    by_status: Dict[str, int]
