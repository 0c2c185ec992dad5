# app/services/audit_service.py

from collections import Counter
from datetime import datetime, timedelta
from typing import Optional, Dict, Any, List

from fastapi import Request
from loguru import logger
from sqlalchemy.ext.asyncio import AsyncSession
from sqlmodel import select

from app.core.database import AsyncSessionLocal
from app.core.exceptions import ValidationError
from app.core.rate_limiter import get_real_ip
from app.models.audit import AuditLog
from app.models.submission import utcnow
from app.schemas.user import CurrentUser

STATS_PERIODS = {
    "day": timedelta(days=1),
    "week": timedelta(weeks=1),
    "month": timedelta(days=30),
}


# This function manages its own session: the caller's transaction
# may already be committed or rolled back when it runs.
async def log_action(
    action: str,
    resource_type: str,
    resource_id: Optional[Any] = None,
    actor: Optional[CurrentUser] = None,
    details: Optional[Dict[str, Any]] = None,
    request: Optional[Request] = None,
):
    """
    Creates an audit log entry in a separate DB session.
    Safe for use in BackgroundTasks; never raises.
    """
    ip_address = None
    user_agent = None
    if request is not None:
        ip_address = get_real_ip(request)
        user_agent = request.headers.get("user-agent")

    async with AsyncSessionLocal() as session:
        try:
            entry = AuditLog(
                actor_email=actor.email if actor else None,
                actor_role=actor.role.value if actor else "UNKNOWN",
                action=action,
                resource_type=resource_type,
                resource_id=str(resource_id) if resource_id is not None else None,
                details=details or {},
                ip_address=ip_address,
                user_agent=user_agent,
            )
            session.add(entry)
            await session.commit()
        except Exception as e:
            logger.warning(f"Audit log '{action}' on {resource_type}:{resource_id} failed: {e}")
            await session.rollback()


# ---------------------------------------------------------
# Queries
# ---------------------------------------------------------
async def recent(session: AsyncSession, limit: int = 100) -> List[AuditLog]:
    query = select(AuditLog).order_by(AuditLog.created_at.desc(), AuditLog.id.desc()).limit(limit)
    result = await session.execute(query)
    return list(result.scalars().all())


async def search(
    session: AsyncSession,
    user_email: Optional[str] = None,
    action: Optional[str] = None,
    resource_type: Optional[str] = None,
    limit: int = 100,
) -> List[AuditLog]:
    query = select(AuditLog).order_by(AuditLog.created_at.desc(), AuditLog.id.desc()).limit(limit)

    if user_email:
        query = query.where(AuditLog.actor_email == user_email)
    if action:
        query = query.where(AuditLog.action == action.upper())
    if resource_type:
        query = query.where(AuditLog.resource_type == resource_type.upper())

    result = await session.execute(query)
    return list(result.scalars().all())


async def stats(session: AsyncSession, period: str = "week", now: Optional[datetime] = None) -> Dict[str, Any]:
    window = STATS_PERIODS.get((period or "").lower())
    if window is None:
        raise ValidationError(
            f"Unknown period '{period}'",
            details=[{"field": "period", "message": f"must be one of {sorted(STATS_PERIODS)}"}],
        )

    since = (now or utcnow()) - window
    result = await session.execute(select(AuditLog).where(AuditLog.created_at >= since))
    rows = result.scalars().all()

    by_action = Counter(r.action for r in rows)
    by_user = Counter(r.actor_email or "anonymous" for r in rows)
    by_day = Counter(r.created_at.date().isoformat() for r in rows)

    return {
        "period": period.lower(),
        "since": since,
        "total": len(rows),
        "by_action": dict(by_action),
        "by_user": dict(by_user),
        "by_day": [{"day": day, "count": count} for day, count in sorted(by_day.items())],
    }
