#app/models/audit.py

from sqlmodel import SQLModel, Field
from sqlalchemy import Column, DateTime
from typing import Optional, Dict, Any
from datetime import datetime

from app.models.submission import JSON_DOCUMENT, utcnow


class AuditLog(SQLModel, table=True):
    __tablename__ = "audit_logs"

    id: Optional[int] = Field(default=None, primary_key=True)

    actor_email: Optional[str] = Field(default=None, index=True)
    actor_role: str = "UNKNOWN"

    # CREATE, WITHDRAW, APPROVE, REJECT, REQUEST_REVISION, INTERNAL_NOTE
    action: str = Field(index=True)

    # SUBMISSION, PUBLICATION ...
    resource_type: str = Field(index=True)
    resource_id: Optional[str] = None

    # Stores {"title": "...", "from_status": "...", "to_status": "..."}
    details: Dict[str, Any] = Field(default_factory=dict, sa_column=Column(JSON_DOCUMENT))

    # Security context
    ip_address: Optional[str] = None
    user_agent: Optional[str] = None

    created_at: datetime = Field(
        default_factory=utcnow,
        sa_column=Column(DateTime(timezone=True), nullable=False, index=True)
    )
