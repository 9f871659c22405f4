# backend/erpguard/core/constants.py
from enum import Enum
from typing import Any, Dict, List, Optional


class ModuleKey(str, Enum):
    DASHBOARD = "dashboard"
    FINANCE = "finance"
    CUSTOMERS = "customers"
    INVOICES = "invoices"
    QUOTES = "quotes"
    PRODUCTS = "products"
    DEALS = "deals"
    ACTIVITIES = "activities"
    ACCOUNTS = "accounts"
    SETTINGS = "settings"


class TenantRole(str, Enum):
    SUPERADMIN = "superadmin"
    ADMIN = "admin"
    USER = "user"


class ActionType(str, Enum):
    CREATE_INVOICE = "CREATE_INVOICE"
    ADD_USER = "ADD_USER"
    ADD_CUSTOMER = "ADD_CUSTOMER"
    ADD_PRODUCT = "ADD_PRODUCT"
    ADD_DEAL = "ADD_DEAL"
    ADD_QUOTE = "ADD_QUOTE"


class ResourceType(str, Enum):
    USERS = "users"
    INVOICES = "invoices"
    CUSTOMERS = "customers"
    PRODUCTS = "products"
    DEALS = "deals"
    QUOTES = "quotes"


class QuotaReason(str, Enum):
    QUOTA_EXCEEDED = "quota_exceeded"
    NO_PLAN = "no_plan"
    COMPANY_NOT_FOUND = "company_not_found"


# Registry order drives matrix construction and the editor write payload
MODULE_KEYS: List[ModuleKey] = list(ModuleKey)

# Roles that can carry company override rows
OVERRIDABLE_ROLES: List[TenantRole] = [TenantRole.ADMIN, TenantRole.USER]

MODULE_ROUTE_MAP: Dict[ModuleKey, str] = {
    ModuleKey.DASHBOARD: "/",
    ModuleKey.FINANCE: "/finance",
    ModuleKey.CUSTOMERS: "/customers",
    ModuleKey.INVOICES: "/invoices",
    ModuleKey.QUOTES: "/quotes",
    ModuleKey.PRODUCTS: "/products",
    ModuleKey.DEALS: "/deals",
    ModuleKey.ACTIVITIES: "/activities",
    ModuleKey.ACCOUNTS: "/accounts",
    ModuleKey.SETTINGS: "/settings",
}

ROUTE_MODULE_MAP: Dict[str, ModuleKey] = {
    **{route: module for module, route in MODULE_ROUTE_MAP.items()},
    "/invoices/new": ModuleKey.INVOICES,
}

# i18n keys, resolved by the front-end
MODULE_LABELS: Dict[ModuleKey, str] = {
    module: f"nav.{module.value}" for module in ModuleKey
}

ACTION_TO_RESOURCE: Dict[ActionType, ResourceType] = {
    ActionType.CREATE_INVOICE: ResourceType.INVOICES,
    ActionType.ADD_USER: ResourceType.USERS,
    ActionType.ADD_CUSTOMER: ResourceType.CUSTOMERS,
    ActionType.ADD_PRODUCT: ResourceType.PRODUCTS,
    ActionType.ADD_DEAL: ResourceType.DEALS,
    ActionType.ADD_QUOTE: ResourceType.QUOTES,
}

RESOURCE_TO_ACTION: Dict[ResourceType, ActionType] = {
    resource: action for action, resource in ACTION_TO_RESOURCE.items()
}

RESOURCE_LABELS: Dict[ResourceType, str] = {
    ResourceType.USERS: "user",
    ResourceType.INVOICES: "invoice",
    ResourceType.CUSTOMERS: "customer",
    ResourceType.PRODUCTS: "product",
    ResourceType.DEALS: "deal",
    ResourceType.QUOTES: "quote",
}

# Plan feature limit sentinel
UNLIMITED = -1


def parse_module(key: Optional[str]) -> Optional[ModuleKey]:
    """Return the registered module for a key, or None if it is unknown"""
    try:
        return ModuleKey(key)
    except ValueError:
        return None


def parse_role(value: Optional[str]) -> Optional[TenantRole]:
    try:
        return TenantRole(value)
    except ValueError:
        return None


def module_for_path(path: str) -> Optional[ModuleKey]:
    """
    Find the module that guards a URL path.

    Exact routes win. Otherwise the longest registered route that is a
    prefix of the path on a segment boundary is used; "/" only matches itself.
    """
    if not path:
        return None

    normalized = path.split("?", 1)[0].split("#", 1)[0]
    if len(normalized) > 1:
        normalized = normalized.rstrip("/")

    if normalized in ROUTE_MODULE_MAP:
        return ROUTE_MODULE_MAP[normalized]

    best: Optional[str] = None
    for route in ROUTE_MODULE_MAP:
        if route == "/":
            continue
        if normalized.startswith(route + "/") and (best is None or len(route) > len(best)):
            best = route

    return ROUTE_MODULE_MAP[best] if best else None


class PlanType(str, Enum):
    FREE = "free"
    STARTER = "starter"
    PROFESSIONAL = "professional"
    ENTERPRISE = "enterprise"


# Default plan catalogue installed by scripts/seed_plans.py
PLAN_LIMITS: Dict[str, Dict[str, Any]] = {
    PlanType.FREE: {
        "display_name": "Free",
        "price": 0,
        "max_users": 1,
        "max_invoices": 20,
        "max_customers": 10,
        "max_products": 10,
        "max_deals": 5,
        "max_quotes": 5,
        "max_storage_mb": 100,
    },
    PlanType.STARTER: {
        "display_name": "Starter",
        "price": 19,
        "max_users": 3,
        "max_invoices": 200,
        "max_customers": 100,
        "max_products": 100,
        "max_deals": 50,
        "max_quotes": 50,
        "max_storage_mb": 1024,
    },
    PlanType.PROFESSIONAL: {
        "display_name": "Professional",
        "price": 49,
        "max_users": 10,
        "max_invoices": 2000,
        "max_customers": 1000,
        "max_products": 1000,
        "max_deals": 500,
        "max_quotes": 500,
        "max_storage_mb": 10240,
    },
    PlanType.ENTERPRISE: {
        "display_name": "Enterprise",
        "price": 199,
        "max_users": -1,  # Unlimited
        "max_invoices": -1,
        "max_customers": -1,
        "max_products": -1,
        "max_deals": -1,
        "max_quotes": -1,
        "max_storage_mb": -1,
    },
}
