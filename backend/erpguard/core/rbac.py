# backend/erpguard/core/rbac.py
"""
Module-level Role-Based Access Control

Derives the view/edit matrix for a tenant role and overlays the
company-specific override rows stored in `role_permissions`.

Rules:
- No role: nothing is visible (fail-closed)
- superadmin: everything, overrides are never consulted
- admin: view + edit by default, overrides may restrict
- user: view only by default, overrides may grant edit
- Edit always requires view; inconsistent rows only ever narrow access
"""

from typing import Any, Iterable, List, Mapping, Optional, Union

from erpguard.core.constants import (
    MODULE_KEYS,
    OVERRIDABLE_ROLES,
    ModuleKey,
    TenantRole,
    parse_module,
    parse_role,
)
from erpguard.schemas.permission import (
    CompanyPermissionMatrix,
    ModulePermissions,
    PermissionEntry,
    PermissionOverrideWrite,
    RolePermissionMap,
)

RoleLike = Union[TenantRole, str, None]

# Baselines per role, before any company override
ROLE_DEFAULTS = {
    None: PermissionEntry(view=False, edit=False),
    TenantRole.SUPERADMIN: PermissionEntry(view=True, edit=True),
    TenantRole.ADMIN: PermissionEntry(view=True, edit=True),
    TenantRole.USER: PermissionEntry(view=True, edit=False),
}


def _coerce_role(role: RoleLike) -> Optional[TenantRole]:
    if role is None or isinstance(role, TenantRole):
        return role
    return parse_role(role)


def _field(row: Any, name: str) -> Any:
    if isinstance(row, Mapping):
        return row.get(name)
    return getattr(row, name, None)


def _entry_from_row(row: Any) -> PermissionEntry:
    # Only a real boolean True grants; strings and numbers from untyped rows deny
    can_view = _field(row, "can_view") is True
    can_edit = _field(row, "can_edit") is True
    return PermissionEntry(view=can_view, edit=can_edit if can_view else False)


def derive_defaults(role: RoleLike) -> RolePermissionMap:
    """Baseline matrix for a role, covering every registered module"""
    baseline = ROLE_DEFAULTS[_coerce_role(role)]
    return {module: baseline.model_copy() for module in MODULE_KEYS}


def resolve_permissions(rows: Optional[Iterable[Any]], role: RoleLike) -> RolePermissionMap:
    """
    Overlay company override rows onto the role defaults.

    Args:
        rows: Override rows (ORM objects, schemas or plain dicts) with
            role_name, module_key, can_view and can_edit
        role: Role of the current tenant session

    Returns:
        A fully populated matrix. Rows for the other role and rows naming
        unknown modules are skipped; the last row for a module wins.
    """
    tenant_role = _coerce_role(role)
    permissions = derive_defaults(tenant_role)

    if not rows or tenant_role is None or tenant_role == TenantRole.SUPERADMIN:
        return permissions

    for row in rows:
        if _field(row, "role_name") != tenant_role.value:
            continue
        module = parse_module(_field(row, "module_key"))
        if module is None:
            continue
        permissions[module] = _entry_from_row(row)

    return permissions


def can_view(permissions: Mapping[ModuleKey, PermissionEntry], module: Union[ModuleKey, str]) -> bool:
    entry = permissions.get(parse_module(module))
    return bool(entry and entry.view)


def can_edit(permissions: Mapping[ModuleKey, PermissionEntry], module: Union[ModuleKey, str]) -> bool:
    entry = permissions.get(parse_module(module))
    return bool(entry and entry.edit)


def user_has_permission(
    permissions: Mapping[ModuleKey, PermissionEntry],
    module: Union[ModuleKey, str],
    kind: str,
) -> bool:
    """Check a single view/edit flag. Unknown kinds are denied."""
    if kind == "view":
        return can_view(permissions, module)
    if kind == "edit":
        return can_edit(permissions, module)
    return False


# ---------------------------------------------------------------------------
# Company permission editor
# ---------------------------------------------------------------------------

def default_company_matrix() -> CompanyPermissionMatrix:
    return {
        module: ModulePermissions(
            admin=ROLE_DEFAULTS[TenantRole.ADMIN].model_copy(),
            user=ROLE_DEFAULTS[TenantRole.USER].model_copy(),
        )
        for module in MODULE_KEYS
    }


def build_company_matrix(rows: Optional[Iterable[Any]]) -> CompanyPermissionMatrix:
    """Both-role matrix shown in the permission editor for one company"""
    matrix = default_company_matrix()

    for row in rows or []:
        module = parse_module(_field(row, "module_key"))
        role = parse_role(_field(row, "role_name"))
        if module is None or role not in OVERRIDABLE_ROLES:
            continue
        setattr(matrix[module], role.value, _entry_from_row(row))

    return matrix


def merge_company_matrix(updates: Mapping[str, ModulePermissions]) -> CompanyPermissionMatrix:
    """Apply an editor payload on top of the defaults, dropping unknown modules"""
    matrix = default_company_matrix()

    for key, perms in updates.items():
        module = parse_module(key)
        if module is None:
            continue
        matrix[module] = ModulePermissions(
            admin=PermissionEntry(view=perms.admin.view, edit=perms.admin.edit),
            user=PermissionEntry(view=perms.user.view, edit=perms.user.edit),
        )

    return matrix


def flatten_company_matrix(matrix: Mapping[ModuleKey, ModulePermissions]) -> List[PermissionOverrideWrite]:
    """
    One row per (role, module) for the full-replace write.

    Always emits every combination, even unchanged ones, in registry order.
    """
    rows: List[PermissionOverrideWrite] = []
    defaults = default_company_matrix()

    for module in MODULE_KEYS:
        perms = matrix.get(module) or defaults[module]
        for role in OVERRIDABLE_ROLES:
            entry: PermissionEntry = getattr(perms, role.value)
            rows.append(
                PermissionOverrideWrite(
                    role_name=role.value,
                    module_key=module.value,
                    can_view=entry.view,
                    can_edit=entry.edit if entry.view else False,
                )
            )

    return rows
