# backend/erpguard/db/repositories/permission_repository.py
from typing import Dict, Iterable, List, Optional, Tuple
import logging

from pydantic import ValidationError
from sqlalchemy import select, delete
from sqlalchemy.ext.asyncio import AsyncSession

from erpguard.db.models.role_permission import RolePermission
from erpguard.db.repositories.base import BaseRepository
from erpguard.schemas.permission import PermissionOverrideRow, PermissionOverrideWrite

logger = logging.getLogger(__name__)


class PermissionRepository(BaseRepository[RolePermission]):
    """Repository for company role/module permission overrides"""

    def __init__(self, session: AsyncSession):
        super().__init__(RolePermission, session)

    async def fetch_overrides(self, company_id: str, role: Optional[str] = None) -> List[PermissionOverrideRow]:
        """
        Get the override rows of a company, optionally for one role.

        Returns an empty list when the company has no overrides. Rows that
        do not fit the override schema are skipped.
        """
        query = select(RolePermission).where(RolePermission.company_id == company_id)
        if role:
            query = query.where(RolePermission.role_name == role)
        query = query.order_by(RolePermission.role_name, RolePermission.module_key)

        result = await self.session.execute(query)

        rows: List[PermissionOverrideRow] = []
        for record in result.scalars().all():
            try:
                rows.append(PermissionOverrideRow.model_validate(record))
            except ValidationError:
                logger.warning(
                    "Skipping malformed permission row",
                    extra={"company_id": company_id, "role": record.role_name},
                )
        return rows

    async def write_overrides(self, company_id: str, rows: Iterable[PermissionOverrideWrite]) -> int:
        """
        Replace every override row of a company with the given set.

        Duplicate (role, module) pairs collapse to the last one given.
        Returns the number of rows written.
        """
        latest: Dict[Tuple[str, str], PermissionOverrideWrite] = {}
        for row in rows:
            latest[(row.role_name, row.module_key)] = row

        await self.session.execute(
            delete(RolePermission).where(RolePermission.company_id == company_id)
        )
        self.session.add_all(
            [
                RolePermission(
                    company_id=company_id,
                    role_name=row.role_name,
                    module_key=row.module_key,
                    can_view=row.can_view,
                    can_edit=row.can_edit if row.can_view else False,
                )
                for row in latest.values()
            ]
        )
        await self.session.commit()

        logger.info(
            f"Replaced {len(latest)} permission rows",
            extra={"company_id": company_id},
        )
        return len(latest)
