# backend/erpguard/db/models/__init__.py
from erpguard.db.models.subscription_plan import SubscriptionPlan
from erpguard.db.models.company import Company
from erpguard.db.models.role_permission import RolePermission
from erpguard.db.models.resources import Profile, Invoice, Customer, Product, Deal, Quote, RESOURCE_MODELS

__all__ = [
    "SubscriptionPlan",
    "Company",
    "RolePermission",
    "Profile",
    "Invoice",
    "Customer",
    "Product",
    "Deal",
    "Quote",
    "RESOURCE_MODELS",
]
