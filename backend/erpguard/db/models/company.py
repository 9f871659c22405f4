# backend/erpguard/db/models/company.py
from sqlalchemy import Column, String, Boolean, DateTime, ForeignKey
from sqlalchemy.orm import relationship
import uuid
from erpguard.db.base import BaseModel


class Company(BaseModel):
    """Tenant company. References at most one subscription plan."""
    __tablename__ = "companies"

    id = Column(String(36), primary_key=True, default=lambda: str(uuid.uuid4()), index=True)
    name = Column(String(255), nullable=False)

    # Subscription
    plan_id = Column(String(36), ForeignKey("subscription_plans.id"), nullable=True, index=True)
    subscription_status = Column(String(50), nullable=True)  # trial, active, cancelled, expired
    is_trial = Column(Boolean, default=False, nullable=False)
    trial_ends_at = Column(DateTime(timezone=True), nullable=True)
    subscription_started_at = Column(DateTime(timezone=True), nullable=True)

    # Relationships
    plan = relationship("SubscriptionPlan", back_populates="companies")
    role_permissions = relationship("RolePermission", back_populates="company", cascade="all, delete-orphan")
