# backend/erpguard/db/models/resources.py
"""
Company-scoped ERP records counted against plan quotas.

Only the columns the quota guard needs are mapped here; the full tables
are owned by the CRUD side of the application.
"""
from sqlalchemy import Column, String, ForeignKey
import uuid
from erpguard.core.constants import ResourceType
from erpguard.db.base import BaseModel


def _uuid() -> str:
    return str(uuid.uuid4())


class Profile(BaseModel):
    """Company member (counts as a user)"""
    __tablename__ = "profiles"

    id = Column(String(36), primary_key=True, default=_uuid)
    company_id = Column(String(36), ForeignKey("companies.id"), nullable=True, index=True)
    role = Column(String(20), default="user", nullable=False)


class Invoice(BaseModel):
    __tablename__ = "invoices"

    id = Column(String(36), primary_key=True, default=_uuid)
    company_id = Column(String(36), ForeignKey("companies.id"), nullable=False, index=True)


class Customer(BaseModel):
    __tablename__ = "customers"

    id = Column(String(36), primary_key=True, default=_uuid)
    company_id = Column(String(36), ForeignKey("companies.id"), nullable=False, index=True)


class Product(BaseModel):
    __tablename__ = "products"

    id = Column(String(36), primary_key=True, default=_uuid)
    company_id = Column(String(36), ForeignKey("companies.id"), nullable=False, index=True)


class Deal(BaseModel):
    __tablename__ = "deals"

    id = Column(String(36), primary_key=True, default=_uuid)
    company_id = Column(String(36), ForeignKey("companies.id"), nullable=False, index=True)


class Quote(BaseModel):
    __tablename__ = "quotes"

    id = Column(String(36), primary_key=True, default=_uuid)
    company_id = Column(String(36), ForeignKey("companies.id"), nullable=False, index=True)


RESOURCE_MODELS = {
    ResourceType.USERS: Profile,
    ResourceType.INVOICES: Invoice,
    ResourceType.CUSTOMERS: Customer,
    ResourceType.PRODUCTS: Product,
    ResourceType.DEALS: Deal,
    ResourceType.QUOTES: Quote,
}
