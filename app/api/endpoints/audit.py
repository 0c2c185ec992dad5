# app/api/endpoints/audit.py

from fastapi import APIRouter, Depends, Query
from sqlalchemy.ext.asyncio import AsyncSession
from typing import List, Optional

from app.api.deps import get_db_session
from app.core.permissions import Permission
from app.core.rbac import RequirePermission
from app.schemas.audit import AuditLogRead, AuditStatsRead
from app.schemas.user import CurrentUser
from app.services import audit_service

router = APIRouter(prefix="/api/admin/audit", tags=["Audit"])


@router.get("/recent", response_model=List[AuditLogRead])
async def recent_audit_logs(
    session: AsyncSession = Depends(get_db_session),
    _: CurrentUser = Depends(RequirePermission(Permission.VIEW_AUDIT_LOGS)),
):
    return await audit_service.recent(session, limit=100)


@router.get("", response_model=List[AuditLogRead])
async def search_audit_logs(
    user_email: Optional[str] = Query(None),
    action: Optional[str] = Query(None),
    resource_type: Optional[str] = Query(None),
    limit: int = Query(100, ge=1, le=500),
    session: AsyncSession = Depends(get_db_session),
    _: CurrentUser = Depends(RequirePermission(Permission.VIEW_AUDIT_LOGS)),
):
    return await audit_service.search(session, user_email, action, resource_type, limit)


@router.get("/stats", response_model=AuditStatsRead)
async def audit_stats(
    period: str = Query("week", description="day, week or month"),
    session: AsyncSession = Depends(get_db_session),
    _: CurrentUser = Depends(RequirePermission(Permission.VIEW_AUDIT_LOGS)),
):
    return await audit_service.stats(session, period)
