# app/core/rbac.py

from typing import Iterable

from fastapi import Depends

from app.api.deps import get_current_user
from app.core.exceptions import AuthorizationError
from app.core.permissions import (
    ROLE_PERMISSIONS,
    Permission,
    Role,
    RolePermissionMap,
)
from app.schemas.user import CurrentUser


def _names(items: Iterable) -> list[str]:
    return [getattr(i, "name", str(i)) for i in items]


class RoleGuard:
    """
    Authorization checks over an already resolved role.

    Pure predicates against the injected permission map: no I/O, no state.
    Every `require_*` returns None on success and raises AuthorizationError
    naming what was required otherwise.
    """

    def __init__(self, grants: RolePermissionMap):
        self.grants = grants

    def require_permission(self, role: Role, permission: Permission) -> None:
        if not self.grants.has_permission(role, permission):
            raise AuthorizationError(
                f"Permission {permission.code if permission else None} required",
                details={"role": getattr(role, "value", role), "required": _names([permission])},
            )

    def require_any_permission(self, role: Role, *permissions: Permission) -> None:
        if not self.grants.has_any(role, *permissions):
            raise AuthorizationError(
                "One of the listed permissions is required",
                details={"role": getattr(role, "value", role), "required_any": _names(permissions)},
            )

    def require_all_permissions(self, role: Role, *permissions: Permission) -> None:
        if not self.grants.has_all(role, *permissions):
            raise AuthorizationError(
                "All of the listed permissions are required",
                details={"role": getattr(role, "value", role), "required_all": _names(permissions)},
            )

    def require_role_in(self, role: Role, *allowed: Role) -> None:
        if role not in allowed:
            raise AuthorizationError(
                f"Access denied for role '{getattr(role, 'value', role)}'",
                details={"role": getattr(role, "value", role), "allowed_roles": _names(allowed)},
            )


role_guard = RoleGuard(ROLE_PERMISSIONS)


def get_role_guard() -> RoleGuard:
    return role_guard


# ------------------------------------------------------------
# FastAPI dependency factories
# ------------------------------------------------------------
def RequirePermission(permission: Permission):
    async def permission_checker(
        current_user: CurrentUser = Depends(get_current_user),
        guard: RoleGuard = Depends(get_role_guard),
    ) -> CurrentUser:
        guard.require_permission(current_user.role, permission)
        return current_user

    return permission_checker


def AllowRoles(*allowed_roles: Role):
    """Coarse role check, for endpoints where a permission would add nothing."""

    async def role_checker(
        current_user: CurrentUser = Depends(get_current_user),
        guard: RoleGuard = Depends(get_role_guard),
    ) -> CurrentUser:
        guard.require_role_in(current_user.role, *allowed_roles)
        return current_user

    return role_checker
