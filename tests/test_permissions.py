import pytest

from app.core.exceptions import AuthorizationError
from app.core.permissions import (
    ROLE_PERMISSIONS,
    Permission,
    Role,
    RolePermissionMap,
    resolve_role,
)
from app.core.rbac import RoleGuard, role_guard


# ------------------------------------------------------------
# ROLE -> PERMISSION MAP
# ------------------------------------------------------------
def test_staff_moderates_but_cannot_manage_users():
    role = resolve_role("STAFF")
    assert role == Role.STAFF
    assert ROLE_PERMISSIONS.has_permission(role, Permission.MODERATE)
    assert not ROLE_PERMISSIONS.has_permission(role, Permission.MANAGE_USERS)


@pytest.mark.parametrize("role", list(Role))
@pytest.mark.parametrize("permission", list(Permission))
def test_has_permission_matches_effective_set(role, permission):
    raw = ROLE_PERMISSIONS._raw(role)
    expected = permission in ROLE_PERMISSIONS.permissions_for(role) or Permission.ALL in raw
    assert ROLE_PERMISSIONS.has_permission(role, permission) is expected


def test_admin_effective_set_is_everything_but_wildcard():
    admin = ROLE_PERMISSIONS.permissions_for(Role.ADMIN)
    assert Permission.ALL not in admin
    assert admin == frozenset(p for p in Permission if p is not Permission.ALL)
    assert ROLE_PERMISSIONS.has_permission(Role.ADMIN, Permission.ALL)


def test_viewer_only_reads_public_content():
    assert ROLE_PERMISSIONS.permissions_for(Role.VIEWER) == frozenset({Permission.VIEW_PUBLIC})


def test_permission_codes_are_sorted_wire_codes():
    assert ROLE_PERMISSIONS.permission_codes(Role.VIEWER) == ["view_public"]
    assert ROLE_PERMISSIONS.permission_codes(None) == []

    staff = ROLE_PERMISSIONS.permission_codes(Role.STAFF)
    assert staff == sorted(staff)
    assert "moderate" in staff
    assert "*" not in ROLE_PERMISSIONS.permission_codes(Role.ADMIN)


def test_student_can_submit_but_not_moderate():
    assert ROLE_PERMISSIONS.has_permission(Role.STUDENT, Permission.SUBMIT)
    assert ROLE_PERMISSIONS.has_permission(Role.STUDENT, Permission.DELETE_OWN_SUBMISSION)
    assert not ROLE_PERMISSIONS.has_permission(Role.STUDENT, Permission.APPROVE_SUBMISSION)


def test_permissions_for_is_stable():
    first = ROLE_PERMISSIONS.permissions_for(Role.STAFF)
    second = ROLE_PERMISSIONS.permissions_for(Role.STAFF)
    assert first == second
    assert isinstance(first, frozenset)


def test_absent_role_and_permission_fail_closed():
    partial = RolePermissionMap({Role.STUDENT: {Permission.SUBMIT}})
    assert partial.permissions_for(Role.STAFF) == frozenset()
    assert not partial.has_permission(Role.STAFF, Permission.SUBMIT)
    assert partial.permissions_for(None) == frozenset()
    assert not partial.has_permission(None, Permission.SUBMIT)
    assert not partial.has_permission(Role.STUDENT, None)


def test_has_any_and_has_all():
    assert ROLE_PERMISSIONS.has_any(Role.STUDENT, Permission.MODERATE, Permission.SUBMIT)
    assert not ROLE_PERMISSIONS.has_all(Role.STUDENT, Permission.MODERATE, Permission.SUBMIT)
    assert ROLE_PERMISSIONS.has_all(Role.STAFF, Permission.MODERATE, Permission.SUBMIT)
    # Empty lists never grant anything
    assert not ROLE_PERMISSIONS.has_any(Role.ADMIN)
    assert not ROLE_PERMISSIONS.has_all(Role.ADMIN)
    assert not ROLE_PERMISSIONS.has_any(None, Permission.VIEW_PUBLIC)


def test_map_is_read_only():
    with pytest.raises(AttributeError):
        ROLE_PERMISSIONS._grants = {}
    with pytest.raises(TypeError):
        ROLE_PERMISSIONS._grants[Role.VIEWER] = frozenset({Permission.ALL})


def test_permission_lookup_by_name_or_code():
    assert Permission.from_name("moderate") is Permission.MODERATE
    assert Permission.from_name("APPROVE_SUBMISSION") is Permission.APPROVE_SUBMISSION
    assert Permission.from_name("*") is Permission.ALL
    assert Permission.from_name("fly") is None
    assert Permission.from_name("") is None


# ------------------------------------------------------------
# ROLE RESOLVER
# ------------------------------------------------------------
@pytest.mark.parametrize(
    "raw, expected",
    [
        ("ADMIN", Role.ADMIN),
        ("  staff ", Role.STAFF),
        ("Personnel", Role.STAFF),
        ("employee", Role.STAFF),
        ("étudiant", Role.STUDENT),
        ("ETUDIANT", Role.STUDENT),
        ("stagiaire", Role.STUDENT),
        ("lecteur", Role.VIEWER),
        ("readonly", Role.VIEWER),
    ],
)
def test_resolve_role_aliases(raw, expected):
    assert resolve_role(raw) == expected


@pytest.mark.parametrize("raw", [None, "", "   ", "superuser", "root", "ADMINISTRATOR"])
def test_unknown_roles_resolve_to_viewer(raw):
    assert resolve_role(raw) == Role.VIEWER


# ------------------------------------------------------------
# GUARD
# ------------------------------------------------------------
def test_guard_require_permission():
    role_guard.require_permission(Role.STAFF, Permission.APPROVE_SUBMISSION)

    with pytest.raises(AuthorizationError) as exc:
        role_guard.require_permission(Role.STUDENT, Permission.APPROVE_SUBMISSION)
    assert exc.value.status_code == 403
    assert exc.value.details["required"] == ["APPROVE_SUBMISSION"]


def test_guard_any_all_and_roles():
    role_guard.require_any_permission(Role.STUDENT, Permission.MODERATE, Permission.SUBMIT)
    role_guard.require_all_permissions(Role.ADMIN, Permission.MANAGE_USERS, Permission.MANAGE_SYSTEM)
    role_guard.require_role_in(Role.STAFF, Role.ADMIN, Role.STAFF)

    with pytest.raises(AuthorizationError):
        role_guard.require_any_permission(Role.VIEWER, Permission.MODERATE, Permission.SUBMIT)
    with pytest.raises(AuthorizationError):
        role_guard.require_all_permissions(Role.STAFF, Permission.MODERATE, Permission.MANAGE_USERS)
    with pytest.raises(AuthorizationError) as exc:
        role_guard.require_role_in(Role.STUDENT, Role.ADMIN, Role.STAFF)
    assert exc.value.details["allowed_roles"] == ["ADMIN", "STAFF"]


def test_guard_uses_injected_map():
    guard = RoleGuard(RolePermissionMap({Role.VIEWER: {Permission.MODERATE}}))
    guard.require_permission(Role.VIEWER, Permission.MODERATE)
    with pytest.raises(AuthorizationError):
        guard.require_permission(Role.ADMIN, Permission.MODERATE)
