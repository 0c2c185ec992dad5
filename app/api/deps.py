# app/api/deps.py

from typing import AsyncGenerator, Optional
from fastapi import Depends, Header
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.database import get_session
from app.core.exceptions import AuthenticationError
from app.core.permissions import resolve_role
from app.schemas.user import CurrentUser


# ------------------------------------------------------------
# DB Session
# ------------------------------------------------------------
async def get_db_session() -> AsyncGenerator[AsyncSession, None]:
    async for session in get_session():
        yield session


# ------------------------------------------------------------
# Caller identity, injected by the gateway after it verified the token.
# Nothing here re-verifies it.
# ------------------------------------------------------------
async def get_current_user(
    x_user_id: Optional[str] = Header(default=None),
    x_user_email: Optional[str] = Header(default=None),
    x_user_name: Optional[str] = Header(default=None),
    x_user_role: Optional[str] = Header(default=None),
) -> CurrentUser:
    return CurrentUser(
        user_id=(x_user_id or "").strip() or None,
        email=(x_user_email or "").strip() or None,
        name=(x_user_name or "").strip() or None,
        role=resolve_role(x_user_role),
    )


async def require_identity(
    current_user: CurrentUser = Depends(get_current_user),
) -> CurrentUser:
    if not current_user.is_authenticated:
        raise AuthenticationError("X-User-Id header is required")
    return current_user
