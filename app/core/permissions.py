# app/core/permissions.py

"""
Role and permission catalog.

Roles reach this service as a raw `X-User-Role` header set by the gateway.
`resolve_role` normalizes that header, and `RolePermissionMap` answers what a
resolved role may do. The map is built once at import time and never mutated;
`ROLE_PERMISSIONS` is the instance the rest of the service injects.
"""

from enum import Enum
from types import MappingProxyType
from typing import Iterable, Mapping, Optional


class Permission(Enum):
    """
    Atomic capabilities. Each member carries a stable `code` (exposed to
    clients) and a human readable `description`.
    """

    # Reading
    VIEW_PUBLIC = ("view_public", "View public content")
    VIEW_OWN = ("view_own", "View own content")
    VIEW_ALL = ("view_all", "View all content")

    # Submitting
    SUBMIT = ("submit", "Submit content")
    EDIT_OWN_SUBMISSION = ("edit_own_submission", "Edit own submissions")
    DELETE_OWN_SUBMISSION = ("delete_own_submission", "Withdraw own submissions")

    # Moderation
    MODERATE = ("moderate", "Moderate submissions")
    APPROVE_SUBMISSION = ("approve_submission", "Approve submissions")
    REJECT_SUBMISSION = ("reject_submission", "Reject submissions")
    REQUEST_REVISION = ("request_revision", "Request revisions")

    # Content management
    CREATE_CONTENT = ("create_content", "Create content (blog, events)")
    EDIT_CONTENT = ("edit_content", "Edit content")
    DELETE_CONTENT = ("delete_content", "Delete content")
    PUBLISH_CONTENT = ("publish_content", "Publish content")

    # Team
    MANAGE_TEAM = ("manage_team", "Manage the team")
    VIEW_TEAM = ("view_team", "View the team")

    # Administration
    MANAGE_USERS = ("manage_users", "Manage users")
    MANAGE_ROLES = ("manage_roles", "Manage roles")
    VIEW_AUDIT_LOGS = ("view_audit_logs", "View audit logs")
    VIEW_STATISTICS = ("view_statistics", "View statistics")

    # System
    MANAGE_SYSTEM = ("manage_system", "Manage the system")
    INDEXATION = ("indexation", "Run search indexation")

    # Wildcard
    ALL = ("*", "All permissions")

    def __init__(self, code: str, description: str):
        self.code = code
        self.description = description

    @classmethod
    def from_name(cls, raw: Optional[str]) -> Optional["Permission"]:
        """Lookup by member name or code, case-insensitive. Unknown -> None."""
        if not raw:
            return None
        value = raw.strip()
        member = cls.__members__.get(value.upper())
        if member is not None:
            return member
        for permission in cls:
            if permission.code == value.lower():
                return permission
        return None


class Role(str, Enum):
    ADMIN = "ADMIN"
    STAFF = "STAFF"
    STUDENT = "STUDENT"
    VIEWER = "VIEWER"


# Header aliases accepted from the gateway
ROLE_ALIASES: Mapping[str, Role] = MappingProxyType({
    "ADMIN": Role.ADMIN,
    "STAFF": Role.STAFF,
    "PERSONNEL": Role.STAFF,
    "EMPLOYEE": Role.STAFF,
    "STUDENT": Role.STUDENT,
    "ETUDIANT": Role.STUDENT,
    "ÉTUDIANT": Role.STUDENT,
    "STAGIAIRE": Role.STUDENT,
    "VIEWER": Role.VIEWER,
    "READONLY": Role.VIEWER,
    "LECTEUR": Role.VIEWER,
})


def resolve_role(raw: Optional[str]) -> Role:
    """
    Map a raw role header to a Role. Unknown, blank or missing values fall
    back to VIEWER; this function never raises.
    """
    if raw is None:
        return Role.VIEWER
    if isinstance(raw, Role):
        return raw
    value = str(raw).strip().upper()
    if not value:
        return Role.VIEWER
    return ROLE_ALIASES.get(value, Role.VIEWER)


class RolePermissionMap:
    """
    Read-only Role -> permissions table.

    A role holding `Permission.ALL` is granted everything; its effective set
    is every permission except the wildcard itself. Roles absent from the
    table have no permissions.
    """

    __slots__ = ("_grants",)

    def __init__(self, grants: Mapping[Role, Iterable[Permission]]):
        self._grants: Mapping[Role, frozenset] = MappingProxyType(
            {role: frozenset(perms) for role, perms in grants.items()}
        )

    def __setattr__(self, name, value):
        if hasattr(self, "_grants"):
            raise AttributeError("RolePermissionMap is read-only")
        object.__setattr__(self, name, value)

    def _raw(self, role: Optional[Role]) -> frozenset:
        if role is None:
            return frozenset()
        return self._grants.get(role, frozenset())

    def permissions_for(self, role: Optional[Role]) -> frozenset:
        granted = self._raw(role)
        if Permission.ALL in granted:
            return frozenset(p for p in Permission if p is not Permission.ALL)
        return granted

    def permission_codes(self, role: Optional[Role]) -> list[str]:
        return sorted(p.code for p in self.permissions_for(role))

    def has_permission(self, role: Optional[Role], permission: Optional[Permission]) -> bool:
        if role is None or permission is None:
            return False
        granted = self._raw(role)
        if Permission.ALL in granted:
            return True
        return permission in granted

    def has_any(self, role: Optional[Role], *permissions: Permission) -> bool:
        if role is None or not permissions:
            return False
        return any(self.has_permission(role, p) for p in permissions)

    def has_all(self, role: Optional[Role], *permissions: Permission) -> bool:
        if role is None or not permissions:
            return False
        return all(self.has_permission(role, p) for p in permissions)


_VIEWER = {
    Permission.VIEW_PUBLIC,
}

_STUDENT = _VIEWER | {
    Permission.VIEW_OWN,
    Permission.SUBMIT,
    Permission.EDIT_OWN_SUBMISSION,
    Permission.DELETE_OWN_SUBMISSION,
    Permission.VIEW_TEAM,
}

_STAFF = _STUDENT | {
    Permission.VIEW_ALL,
    Permission.MODERATE,
    Permission.APPROVE_SUBMISSION,
    Permission.REJECT_SUBMISSION,
    Permission.REQUEST_REVISION,
    Permission.CREATE_CONTENT,
    Permission.EDIT_CONTENT,
    Permission.DELETE_CONTENT,
    Permission.PUBLISH_CONTENT,
    Permission.MANAGE_TEAM,
    Permission.VIEW_STATISTICS,
}

ROLE_PERMISSIONS = RolePermissionMap({
    Role.VIEWER: _VIEWER,
    Role.STUDENT: _STUDENT,
    Role.STAFF: _STAFF,
    Role.ADMIN: {Permission.ALL},
})
