# app/api/endpoints/permissions.py

from fastapi import APIRouter, Depends

from app.api.deps import get_current_user
from app.core.permissions import Permission
from app.core.rbac import RoleGuard, get_role_guard
from app.schemas.user import CurrentUser, MyPermissionsRead, PermissionCheckRead, PermissionDetail

router = APIRouter(prefix="/api/users/permissions", tags=["Permissions"])


@router.get("/me", response_model=MyPermissionsRead)
async def my_permissions(
    current_user: CurrentUser = Depends(get_current_user),
    guard: RoleGuard = Depends(get_role_guard),
):
    """Effective permissions of the caller's resolved role, for client-side gating."""
    granted = sorted(guard.grants.permissions_for(current_user.role), key=lambda p: p.code)
    return MyPermissionsRead(
        role=current_user.role,
        permissions=guard.grants.permission_codes(current_user.role),
        permission_details=[PermissionDetail(code=p.code, description=p.description) for p in granted],
    )


@router.get("/check/{permission}", response_model=PermissionCheckRead)
async def check_permission(
    permission: str,
    current_user: CurrentUser = Depends(get_current_user),
    guard: RoleGuard = Depends(get_role_guard),
):
    # Unknown names are simply not held
    resolved = Permission.from_name(permission)
    return PermissionCheckRead(
        permission=permission,
        has_permission=guard.grants.has_permission(current_user.role, resolved),
        role=current_user.role,
    )
