"""
Tests for the Company module: tenant details and document branding.
"""

import pytest
from fastapi.testclient import TestClient

from invoicehub.main import app
from invoicehub.core.config import settings
from invoicehub.modules.company.schemas import CompanyUpdate
from invoicehub.modules.company.service import get_branding, update_company


client = TestClient(app)


class TestCompanyService:

    def test_branding_falls_back_to_settings(self, db_session, admin_context):
        branding = get_branding(db_session, admin_context.tenant_id)
        assert branding["name"] == "Acme Studio"
        assert branding["phone"] == settings.COMPANY_PHONE

    def test_branding_uses_company_details(self, db_session, admin_context):
        update_company(db_session, admin_context.tenant_id, CompanyUpdate(phone="+1 555 123 4567", tax_id="TX-99"))
        branding = get_branding(db_session, admin_context.tenant_id)
        assert branding["phone"] == "+1 555 123 4567"
        assert branding["tax_id"] == "TX-99"

    def test_invalid_phone(self):
        with pytest.raises(ValueError):
            CompanyUpdate(phone="call me")


class TestCompanyEndpoints:

    def test_get_my_company(self, db_session, admin_headers):
        response = client.get("/company/me", headers=admin_headers)
        assert response.status_code == 200
        assert response.json()["name"] == "Acme Studio"

    def test_update_requires_admin(self, db_session, admin_headers, client_headers):
        response = client.patch("/company/me", json={"address": "1 Main St"}, headers=client_headers)
        assert response.status_code == 403

        response = client.patch("/company/me", json={"address": "1 Main St"}, headers=admin_headers)
        assert response.status_code == 200
        assert response.json()["address"] == "1 Main St"

    def test_portal_user_sees_own_company(self, db_session, client_headers):
        response = client.get("/company/me", headers=client_headers)
        assert response.status_code == 200
        assert response.json()["name"] == "Acme Studio"
