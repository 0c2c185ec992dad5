from typing import List, Optional
from pydantic import BaseModel

from app.core.permissions import Role


# ---------------------------------------------------------
# CALLER IDENTITY (from gateway headers)
# ---------------------------------------------------------
class CurrentUser(BaseModel):
    user_id: Optional[str] = None
    email: Optional[str] = None
    name: Optional[str] = None
    role: Role = Role.VIEWER

    @property
    def is_authenticated(self) -> bool:
        return bool(self.user_id)


# ---------------------------------------------------------
# PERMISSION INTROSPECTION
# ---------------------------------------------------------
class PermissionDetail(BaseModel):
    code: str
    description: str


class MyPermissionsRead(BaseModel):
    role: Role
    permissions: List[str]
    permission_details: List[PermissionDetail]


class PermissionCheckRead(BaseModel):
    permission: str
    has_permission: bool
    role: Role
