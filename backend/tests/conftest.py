"""
Pytest configuration and fixtures
Shared test setup for all test modules
"""

import pytest
from typing import Any, Dict, List, Optional
from fastapi.testclient import TestClient

from erpguard.main import app
from erpguard.api.dependencies import get_override_fetcher, get_override_writer, get_quota_pool
from erpguard.db import models  # noqa: F401  (registers every mapper)
from erpguard.schemas.quota import CompanyPlan, PlanFeatures, UsageStats
from erpguard.services.quota_service import QuotaGuardPool

COMPANY_ID = "company-1"
OTHER_COMPANY_ID = "company-2"


def override_row(
    role_name: str,
    module_key: str,
    can_view: bool,
    can_edit: bool,
    company_id: str = COMPANY_ID,
) -> Dict[str, Any]:
    """Stored override row as the row store returns it"""
    return {
        "company_id": company_id,
        "role_name": role_name,
        "module_key": module_key,
        "can_view": can_view,
        "can_edit": can_edit,
    }


def make_plan(**limits) -> CompanyPlan:
    return CompanyPlan(id="plan-1", name="starter", features=PlanFeatures(**limits))


class FakeOverrideStore:
    """In-memory stand-in for the role_permissions row store"""

    def __init__(self, rows: Optional[List[Dict[str, Any]]] = None, error: Optional[Exception] = None):
        self.rows = list(rows or [])
        self.error = error
        self.fetch_calls = []
        self.write_calls = []

    async def fetch(self, company_id, role=None):
        self.fetch_calls.append((company_id, role))
        if self.error:
            raise self.error
        return [
            row for row in self.rows
            if row["company_id"] == company_id and (role is None or row["role_name"] == role)
        ]

    async def write(self, company_id, rows):
        rows = list(rows)
        self.write_calls.append((company_id, rows))
        self.rows = [row for row in self.rows if row["company_id"] != company_id]
        self.rows.extend(dict(company_id=company_id, **row.model_dump()) for row in rows)
        return len(rows)


class FakeQuotaSource:
    """Usage and plan collaborators with call counters"""

    def __init__(
        self,
        usage: Optional[UsageStats] = None,
        plan: Optional[CompanyPlan] = None,
        usage_error: Optional[Exception] = None,
        plan_error: Optional[Exception] = None,
    ):
        self.usage = usage if usage is not None else UsageStats()
        self.plan = plan
        self.usage_error = usage_error
        self.plan_error = plan_error
        self.usage_calls = 0
        self.plan_calls = 0

    async def fetch_usage(self, company_id):
        self.usage_calls += 1
        if self.usage_error:
            raise self.usage_error
        return self.usage

    async def fetch_plan(self, company_id):
        self.plan_calls += 1
        if self.plan_error:
            raise self.plan_error
        return self.plan


class FakeClock:
    def __init__(self, now: float = 1000.0):
        self.now = now

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += seconds


@pytest.fixture
def override_store() -> FakeOverrideStore:
    return FakeOverrideStore()


@pytest.fixture
def quota_source() -> FakeQuotaSource:
    return FakeQuotaSource(
        usage=UsageStats(users=1, invoices=3, customers=5, products=0, deals=2, quotes=9),
        plan=make_plan(
            max_users=3,
            max_invoices=10,
            max_customers=5,
            max_products=-1,
            max_deals=0,
            max_quotes=10,
        ),
    )


@pytest.fixture
def fake_clock() -> FakeClock:
    return FakeClock()


@pytest.fixture
def client(override_store: FakeOverrideStore, quota_source: FakeQuotaSource):
    """Test client wired to in-memory collaborators"""
    pool = QuotaGuardPool(quota_source.fetch_usage, quota_source.fetch_plan)

    app.dependency_overrides[get_override_fetcher] = lambda: override_store.fetch
    app.dependency_overrides[get_override_writer] = lambda: override_store.write
    app.dependency_overrides[get_quota_pool] = lambda: pool

    yield TestClient(app)

    app.dependency_overrides.clear()


def tenant_headers(role: Optional[str] = None, company_id: Optional[str] = COMPANY_ID) -> Dict[str, str]:
    headers = {}
    if role:
        headers["X-Tenant-Role"] = role
    if company_id:
        headers["X-Company-ID"] = company_id
    return headers
