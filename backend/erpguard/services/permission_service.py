"""
Permission context for one tenant session.

Holds the resolved module matrix for the current (company, role) and
re-resolves it when the tenant input changes or on explicit refresh.
"""
from typing import Any, Awaitable, Callable, Dict, Iterable, Optional, Union
import logging

from erpguard.core.constants import ModuleKey, TenantRole, module_for_path
from erpguard.core.rbac import (
    can_edit,
    can_view,
    derive_defaults,
    resolve_permissions,
    user_has_permission,
)
from erpguard.core.tenant import TenantState, UNRESOLVED_TENANT
from erpguard.schemas.permission import PermissionEntry, RolePermissionMap

logger = logging.getLogger(__name__)

OverrideFetcher = Callable[[str, TenantRole], Awaitable[Iterable[Any]]]


class PermissionContext:
    """
    Session-scoped cache of the effective permission matrix.

    Resolution:
    - tenant still loading: nothing happens
    - no role: all modules denied
    - superadmin: all modules allowed, no fetch
    - admin/user without company: role defaults, no fetch
    - admin/user with company: overrides fetched and overlaid; a failed
      fetch falls back to role defaults instead of locking the user out

    Overlapping resolutions are ordered by a generation counter so a slow
    response never replaces the result of a newer one.
    """

    def __init__(self, fetch_overrides: OverrideFetcher, tenant: TenantState = UNRESOLVED_TENANT):
        self._fetch_overrides = fetch_overrides
        self._tenant = tenant
        self._permissions: RolePermissionMap = derive_defaults(None)
        self._loading = True
        self._generation = 0

    @property
    def loading(self) -> bool:
        return self._loading

    @property
    def tenant(self) -> TenantState:
        return self._tenant

    @property
    def permissions(self) -> Dict[ModuleKey, PermissionEntry]:
        return {module: entry.model_copy() for module, entry in self._permissions.items()}

    async def on_tenant_changed(self, tenant: TenantState) -> None:
        """Take a new tenant input and resolve against it"""
        self._tenant = tenant

        if tenant.loading:
            # Results still in flight belong to the previous tenant
            self._generation += 1
            self._loading = True
            return

        await self.refresh_permissions()

    async def refresh_permissions(self) -> None:
        tenant = self._tenant
        if tenant.loading:
            return

        self._generation += 1
        generation = self._generation
        self._loading = True

        permissions = await self._resolve(tenant)

        if generation != self._generation:
            logger.debug(
                "Discarding superseded permission resolution",
                extra={"company_id": tenant.company_id, "role": _role_value(tenant.role)},
            )
            return

        self._permissions = permissions
        self._loading = False
        logger.debug(
            "Permissions resolved",
            extra={"company_id": tenant.company_id, "role": _role_value(tenant.role)},
        )

    async def _resolve(self, tenant: TenantState) -> RolePermissionMap:
        role = tenant.role

        if role is None:
            return derive_defaults(None)

        if role == TenantRole.SUPERADMIN:
            return derive_defaults(TenantRole.SUPERADMIN)

        if not tenant.company_id:
            return derive_defaults(role)

        try:
            rows = await self._fetch_overrides(tenant.company_id, role)
        except Exception:
            logger.warning(
                "Permission override fetch failed, using role defaults",
                exc_info=True,
                extra={"company_id": tenant.company_id, "role": role.value},
            )
            return derive_defaults(role)

        return resolve_permissions(rows, role)

    def can_view_module(self, module: Union[ModuleKey, str]) -> bool:
        return can_view(self._permissions, module)

    def can_edit_module(self, module: Union[ModuleKey, str]) -> bool:
        return can_edit(self._permissions, module)

    def has_permission(self, module: Union[ModuleKey, str], kind: str) -> bool:
        return user_has_permission(self._permissions, module, kind)

    def can_access_path(self, path: str) -> bool:
        """Route guard: paths outside every module are not restricted"""
        module = module_for_path(path)
        if module is None:
            return True
        return self.can_view_module(module)

    def has_role(self, *roles: Union[TenantRole, str]) -> bool:
        role = self._tenant.role
        if role is None or self._tenant.loading:
            return False
        return any(role == r for r in roles)


def _role_value(role: Optional[TenantRole]) -> Optional[str]:
    return role.value if role else None
