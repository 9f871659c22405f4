# backend/erpguard/db/models/role_permission.py
from sqlalchemy import Column, String, Boolean, ForeignKey, UniqueConstraint, CheckConstraint
from sqlalchemy.orm import relationship
import uuid
from erpguard.db.base import BaseModel


class RolePermission(BaseModel):
    """
    Company override of a role's access to one module.

    One row per (company, role, module). superadmin never has rows.
    module_key is not constrained to the registry so older or newer
    module keys can sit in the table without breaking reads.
    """
    __tablename__ = "role_permissions"
    __table_args__ = (
        UniqueConstraint("company_id", "role_name", "module_key", name="role_permissions_company_role_module_key"),
        CheckConstraint("role_name IN ('admin', 'user')", name="role_permissions_role_name_check"),
    )

    id = Column(String(36), primary_key=True, default=lambda: str(uuid.uuid4()))
    company_id = Column(String(36), ForeignKey("companies.id", ondelete="CASCADE"), nullable=False, index=True)
    role_name = Column(String(20), nullable=False)
    module_key = Column(String(50), nullable=False)
    can_view = Column(Boolean, default=True, nullable=False)
    can_edit = Column(Boolean, default=False, nullable=False)

    # Relationships
    company = relationship("Company", back_populates="role_permissions")
