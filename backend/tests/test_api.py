"""
API endpoint tests
Tests: permission endpoints, quota endpoints, plan assignment, quota enforcement
"""

import pytest
from fastapi import Depends, FastAPI
from fastapi.testclient import TestClient

from erpguard.api.dependencies import enforce_quota, get_quota_pool
from erpguard.api.v1 import companies as companies_api
from erpguard.core.constants import ActionType
from erpguard.db.database import get_db
from erpguard.main import app
from erpguard.services.quota_service import QuotaGuard, QuotaGuardPool

from conftest import COMPANY_ID, OTHER_COMPANY_ID, FakeQuotaSource, make_plan, override_row, tenant_headers


class TestHealth:
    """Test service health endpoints"""

    def test_health_check(self, client):
        response = client.get("/health")

        assert response.status_code == 200
        assert response.json()["status"] == "healthy"

    def test_request_id_header(self, client):
        response = client.get("/health")

        assert response.headers["X-Request-ID"]
        assert "X-Process-Time" in response.headers


class TestPermissionEndpoints:
    """Test /api/v1/permissions"""

    def test_my_permissions_for_user(self, client, override_store):
        override_store.rows.append(override_row("user", "invoices", True, True))

        response = client.get("/api/v1/permissions/me", headers=tenant_headers("user"))

        assert response.status_code == 200
        data = response.json()
        assert data["company_id"] == COMPANY_ID
        assert data["role"] == "user"
        assert data["loading"] is False
        assert len(data["permissions"]) == 10
        assert data["permissions"]["invoices"] == {"view": True, "edit": True}
        assert data["permissions"]["deals"] == {"view": True, "edit": False}

    def test_my_permissions_without_role(self, client):
        response = client.get("/api/v1/permissions/me", headers=tenant_headers())

        assert response.status_code == 200
        assert all(not p["view"] for p in response.json()["permissions"].values())

    def test_invalid_role_header(self, client):
        response = client.get("/api/v1/permissions/me", headers=tenant_headers("owner"))

        assert response.status_code == 400
        assert response.json()["detail"] == "Invalid tenant role"

    def test_fetch_failure_keeps_role_defaults(self, client, override_store):
        override_store.error = RuntimeError("database unavailable")

        response = client.get("/api/v1/permissions/me", headers=tenant_headers("user"))

        assert response.status_code == 200
        assert response.json()["permissions"]["customers"] == {"view": True, "edit": False}

    def test_check_permission(self, client, override_store):
        override_store.rows.append(override_row("user", "finance", False, False))

        view = client.get(
            "/api/v1/permissions/check",
            params={"module": "finance", "kind": "view"},
            headers=tenant_headers("user"),
        )
        edit = client.get(
            "/api/v1/permissions/check",
            params={"module": "quotes", "kind": "edit"},
            headers=tenant_headers("admin"),
        )

        assert view.json() == {"module": "finance", "kind": "view", "allowed": False}
        assert edit.json()["allowed"] is True

    def test_check_unknown_module(self, client):
        response = client.get(
            "/api/v1/permissions/check",
            params={"module": "payroll"},
            headers=tenant_headers("admin"),
        )

        assert response.status_code == 400

    def test_check_route(self, client, override_store):
        override_store.rows.append(override_row("user", "invoices", False, False))

        blocked = client.get(
            "/api/v1/permissions/route", params={"path": "/invoices/new"}, headers=tenant_headers("user")
        )
        open_route = client.get(
            "/api/v1/permissions/route", params={"path": "/login"}, headers=tenant_headers("user")
        )

        assert blocked.json() == {"path": "/invoices/new", "module": "invoices", "allowed": False}
        assert open_route.json() == {"path": "/login", "module": None, "allowed": True}


class TestCompanyPermissionEditor:
    """Test /api/v1/permissions/companies/{company_id}"""

    def test_get_matrix(self, client, override_store):
        override_store.rows.extend([
            override_row("admin", "settings", True, False),
            override_row("user", "invoices", True, True),
        ])

        response = client.get(
            f"/api/v1/permissions/companies/{COMPANY_ID}", headers=tenant_headers("admin")
        )

        assert response.status_code == 200
        permissions = response.json()["permissions"]
        assert permissions["settings"]["admin"] == {"view": True, "edit": False}
        assert permissions["invoices"]["user"] == {"view": True, "edit": True}
        assert permissions["deals"]["user"] == {"view": True, "edit": False}

    def test_save_writes_every_row(self, client, override_store):
        payload = {
            "permissions": {
                "invoices": {"admin": {"view": True, "edit": True}, "user": {"view": True, "edit": True}},
                "finance": {"admin": {"view": True, "edit": True}, "user": {"view": False, "edit": True}},
                "payroll": {"admin": {"view": True, "edit": True}, "user": {"view": True, "edit": True}},
            }
        }

        response = client.put(
            f"/api/v1/permissions/companies/{COMPANY_ID}", json=payload, headers=tenant_headers("admin")
        )

        assert response.status_code == 200
        data = response.json()
        assert data["rows_written"] == 20
        assert len(data["rows"]) == 20
        assert "payroll" not in data["permissions"]
        assert data["permissions"]["finance"]["user"] == {"view": False, "edit": False}
        assert len(override_store.write_calls) == 1
        assert len(override_store.rows) == 20

    def test_saved_matrix_applies_to_user_session(self, client):
        payload = {
            "permissions": {
                "deals": {"admin": {"view": True, "edit": True}, "user": {"view": True, "edit": True}},
            }
        }
        client.put(
            f"/api/v1/permissions/companies/{COMPANY_ID}", json=payload, headers=tenant_headers("superadmin")
        )

        response = client.get("/api/v1/permissions/me", headers=tenant_headers("user"))

        assert response.json()["permissions"]["deals"] == {"view": True, "edit": True}

    def test_user_cannot_edit(self, client, override_store):
        response = client.get(
            f"/api/v1/permissions/companies/{COMPANY_ID}", headers=tenant_headers("user")
        )

        assert response.status_code == 403
        assert response.json()["detail"] == "Requires one of: superadmin, admin"

    def test_role_comes_only_from_tenant_header(self, client, override_store):
        response = client.put(
            f"/api/v1/permissions/companies/{COMPANY_ID}",
            params={"role": "superadmin"},
            json={"permissions": {}},
            headers={**tenant_headers("user"), "X-Role": "superadmin"},
        )

        assert response.status_code == 403
        assert override_store.write_calls == []

    def test_missing_role_cannot_edit(self, client):
        response = client.put(
            f"/api/v1/permissions/companies/{COMPANY_ID}",
            json={"permissions": {}},
            headers=tenant_headers(),
        )

        assert response.status_code == 403
        assert response.json()["detail"] == "No tenant role"

    def test_admin_limited_to_own_company(self, client, override_store):
        response = client.put(
            f"/api/v1/permissions/companies/{OTHER_COMPANY_ID}",
            json={"permissions": {}},
            headers=tenant_headers("admin"),
        )

        assert response.status_code == 403
        assert override_store.write_calls == []

    def test_superadmin_edits_any_company(self, client, override_store):
        response = client.put(
            f"/api/v1/permissions/companies/{OTHER_COMPANY_ID}",
            json={"permissions": {}},
            headers=tenant_headers("superadmin"),
        )

        assert response.status_code == 200
        assert override_store.write_calls[0][0] == OTHER_COMPANY_ID


class TestQuotaEndpoints:
    """Test /api/v1/quotas"""

    def test_check_allowed_action(self, client):
        response = client.get("/api/v1/quotas/check/add_user", headers=tenant_headers("admin"))

        assert response.status_code == 200
        assert response.json() == {"allowed": True, "current": 1, "limit": 3, "remaining": 2}

    def test_check_exceeded_action(self, client):
        response = client.get("/api/v1/quotas/check/ADD_CUSTOMER", headers=tenant_headers("admin"))

        data = response.json()
        assert data["allowed"] is False
        assert data["reason"] == "quota_exceeded"
        assert data["remaining"] == 0

    def test_check_unknown_action(self, client):
        response = client.get("/api/v1/quotas/check/ADD_WIDGET", headers=tenant_headers("admin"))

        assert response.status_code == 400

    def test_check_without_company(self, client):
        response = client.get(
            "/api/v1/quotas/check/ADD_USER", headers=tenant_headers("admin", company_id=None)
        )

        assert response.json()["reason"] == "company_not_found"

    def test_usage(self, client):
        response = client.get("/api/v1/quotas/usage", headers=tenant_headers("user"))

        data = response.json()
        assert data["loading"] is False
        assert data["usage"]["quotes"] == 9
        assert data["percentages"] == {
            "users": 33, "invoices": 30, "customers": 100,
            "products": 0, "deals": 100, "quotes": 90,
        }

    def test_summary(self, client):
        response = client.get("/api/v1/quotas/summary", headers=tenant_headers("user"))

        data = response.json()
        assert data["has_any_quota_exceeded"] is True
        assert data["can_add_any"]["invoices"] is True
        assert data["can_add_any"]["customers"] is False
        assert data["quotas"]["quotes"]["tooltip"] == "9 / 10 used (1 left)"

    def test_usage_is_cached_between_requests(self, client, quota_source):
        client.get("/api/v1/quotas/usage", headers=tenant_headers("user"))
        client.get("/api/v1/quotas/summary", headers=tenant_headers("user"))

        assert quota_source.usage_calls == 1
        assert quota_source.plan_calls == 1


class FakeCompanyRepository:
    """Stand-in for CompanyRepository in plan assignment requests"""

    plans = {"plan-starter"}
    companies = {COMPANY_ID}
    assigned = []

    def __init__(self, db):
        self.db = db

    async def get_subscription_plan(self, plan_id):
        return {"id": plan_id} if plan_id in self.plans else None

    async def assign_plan(self, company_id, plan_id, start_trial=False):
        if company_id not in self.companies:
            return None
        self.assigned.append((company_id, plan_id, start_trial))
        return {
            "id": company_id,
            "plan_id": plan_id,
            "subscription_status": "trial" if start_trial else "active",
            "is_trial": start_trial,
        }


class TestPlanAssignment:
    """Test PUT /api/v1/companies/{company_id}/plan"""

    @pytest.fixture
    def plan_client(self, client, monkeypatch):
        async def fake_db():
            yield None

        FakeCompanyRepository.assigned = []
        monkeypatch.setattr(companies_api, "CompanyRepository", FakeCompanyRepository)
        app.dependency_overrides[get_db] = fake_db
        return client

    def test_assign_trial(self, plan_client):
        response = plan_client.put(
            f"/api/v1/companies/{COMPANY_ID}/plan",
            json={"plan_id": "plan-starter", "start_trial": True},
            headers=tenant_headers("superadmin"),
        )

        assert response.status_code == 200
        assert response.json()["subscription_status"] == "trial"
        assert FakeCompanyRepository.assigned == [(COMPANY_ID, "plan-starter", True)]

    def test_assignment_resets_cached_quota(self, plan_client, quota_source):
        plan_client.get("/api/v1/quotas/usage", headers=tenant_headers("admin"))

        plan_client.put(
            f"/api/v1/companies/{COMPANY_ID}/plan",
            json={"plan_id": "plan-starter"},
            headers=tenant_headers("superadmin"),
        )
        plan_client.get("/api/v1/quotas/usage", headers=tenant_headers("admin"))

        assert quota_source.plan_calls == 2

    def test_unknown_plan(self, plan_client):
        response = plan_client.put(
            f"/api/v1/companies/{COMPANY_ID}/plan",
            json={"plan_id": "plan-gold"},
            headers=tenant_headers("superadmin"),
        )

        assert response.status_code == 404
        assert response.json()["detail"] == "Plan not found"

    def test_unknown_company(self, plan_client):
        response = plan_client.put(
            "/api/v1/companies/missing/plan",
            json={"plan_id": None},
            headers=tenant_headers("superadmin"),
        )

        assert response.status_code == 404
        assert response.json()["detail"] == "Company not found"

    def test_admin_cannot_assign(self, plan_client):
        response = plan_client.put(
            f"/api/v1/companies/{COMPANY_ID}/plan",
            json={"plan_id": "plan-starter"},
            headers=tenant_headers("admin"),
        )

        assert response.status_code == 403
        assert FakeCompanyRepository.assigned == []


class TestQuotaEnforcement:
    """Test the enforce_quota dependency on a create endpoint"""

    @pytest.fixture
    def create_client(self, quota_source):
        create_app = FastAPI()

        @create_app.post("/customers", dependencies=[Depends(enforce_quota(ActionType.ADD_CUSTOMER))])
        async def create_customer():
            return {"created": True}

        @create_app.post("/invoices", dependencies=[Depends(enforce_quota(ActionType.CREATE_INVOICE))])
        async def create_invoice():
            return {"created": True}

        pool = QuotaGuardPool(quota_source.fetch_usage, quota_source.fetch_plan)
        create_app.dependency_overrides[get_quota_pool] = lambda: pool
        return TestClient(create_app)

    def test_allowed_create(self, create_client):
        response = create_client.post("/invoices", headers=tenant_headers("user"))

        assert response.status_code == 200
        assert response.json() == {"created": True}

    def test_exceeded_create_is_rejected(self, create_client):
        response = create_client.post("/customers", headers=tenant_headers("user"))

        assert response.status_code == 429
        detail = response.json()["detail"]
        assert detail["reason"] == "quota_exceeded"
        assert detail["limit"] == 5
        assert "customer" in detail["upgrade_message"]

    def test_create_route_recounts_after_insert(self, quota_source):
        create_app = FastAPI()

        @create_app.post("/deals")
        async def create_deal(guard: QuotaGuard = Depends(enforce_quota(ActionType.ADD_DEAL))):
            quota_source.usage = quota_source.usage.model_copy(update={"deals": quota_source.usage.deals + 1})
            guard.invalidate_usage()
            return {"created": True}

        quota_source.plan = make_plan(max_deals=3)
        pool = QuotaGuardPool(quota_source.fetch_usage, quota_source.fetch_plan)
        create_app.dependency_overrides[get_quota_pool] = lambda: pool
        create_client = TestClient(create_app)

        assert create_client.post("/deals", headers=tenant_headers("user")).status_code == 200
        response = create_client.post("/deals", headers=tenant_headers("user"))

        assert response.status_code == 429
        assert response.json()["detail"]["current"] == 3
        assert quota_source.usage_calls == 2

    def test_no_plan_is_rejected(self):
        create_app = FastAPI()

        @create_app.post("/invoices", dependencies=[Depends(enforce_quota(ActionType.CREATE_INVOICE))])
        async def create_invoice():
            return {"created": True}

        source = FakeQuotaSource()
        pool = QuotaGuardPool(source.fetch_usage, source.fetch_plan)
        create_app.dependency_overrides[get_quota_pool] = lambda: pool

        response = TestClient(create_app).post("/invoices", headers=tenant_headers("admin"))

        assert response.status_code == 429
        assert response.json()["detail"]["reason"] == "no_plan"
        assert "upgrade_message" not in response.json()["detail"]
