# backend/erpguard/schemas/permission.py
from pydantic import BaseModel, ConfigDict, model_validator
from typing import Dict, List, Literal, Optional
from datetime import datetime

from erpguard.core.constants import ModuleKey, TenantRole

OverridableRoleName = Literal["admin", "user"]
PermissionKind = Literal["view", "edit"]


class PermissionEntry(BaseModel):
    """View/edit flags for one module. Edit is never granted without view."""
    view: bool = False
    edit: bool = False

    @model_validator(mode="after")
    def edit_requires_view(self):
        if self.edit and not self.view:
            self.edit = False
        return self


class ModulePermissions(BaseModel):
    admin: PermissionEntry
    user: PermissionEntry


# Per-session matrix for a single role
RolePermissionMap = Dict[ModuleKey, PermissionEntry]

# Editor matrix covering both overridable roles
CompanyPermissionMatrix = Dict[ModuleKey, ModulePermissions]


class PermissionOverrideBase(BaseModel):
    role_name: OverridableRoleName
    # Kept as a plain string: stored rows may reference modules this build does not know
    module_key: str
    can_view: bool
    can_edit: bool


class PermissionOverrideWrite(PermissionOverrideBase):
    pass


class PermissionOverrideRow(PermissionOverrideBase):
    company_id: str
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None

    model_config = ConfigDict(from_attributes=True)


class PermissionsResponse(BaseModel):
    company_id: Optional[str] = None
    role: Optional[TenantRole] = None
    loading: bool
    permissions: Dict[ModuleKey, PermissionEntry]


class PermissionCheckResponse(BaseModel):
    module: ModuleKey
    kind: PermissionKind
    allowed: bool


class RouteCheckResponse(BaseModel):
    path: str
    module: Optional[ModuleKey] = None
    allowed: bool


class CompanyPermissionsResponse(BaseModel):
    company_id: str
    permissions: Dict[ModuleKey, ModulePermissions]


class CompanyPermissionsUpdate(BaseModel):
    """Editor payload. Modules left out keep their role defaults."""
    permissions: Dict[str, ModulePermissions]


class CompanyPermissionsWriteResult(BaseModel):
    company_id: str
    rows_written: int
    permissions: Dict[ModuleKey, ModulePermissions]
    rows: List[PermissionOverrideWrite]
