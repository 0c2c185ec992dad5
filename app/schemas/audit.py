from pydantic import BaseModel
from typing import Optional, Dict, Any, List
from datetime import datetime


class AuditLogRead(BaseModel):
    id: int
    actor_email: Optional[str] = None
    actor_role: Optional[str] = None
    action: str
    resource_type: str
    resource_id: Optional[str] = None
    details: Dict[str, Any] = {}
    ip_address: Optional[str] = None
    user_agent: Optional[str] = None
    created_at: datetime

    class Config:
        from_attributes = True


class AuditDayCount(BaseModel):
    day: str
    count: int


class AuditStatsRead(BaseModel):
    period: str
    since: datetime
    total: int
    by_action: Dict[str, int] = {}
    by_user: Dict[str, int] = {}
    by_day: List[AuditDayCount] = []
