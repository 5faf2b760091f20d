"""
Tests for the Products module: catalog CRUD, search and categories.
"""

import pytest
from decimal import Decimal
from fastapi import HTTPException
from fastapi.testclient import TestClient

from invoicehub.main import app
from invoicehub.modules.products import service
from invoicehub.modules.products.models import ProductStatus
from invoicehub.modules.products.schemas import ProductCreate, ProductUpdate
from invoicehub.modules.transactions.models import TransactionItem
from invoicehub.modules.transactions.schemas import TransactionCreate, TransactionItemCreate
from invoicehub.modules.transactions.service import TransactionService


client = TestClient(app)


# ===== FIXTURES =====

@pytest.fixture
def catalog(db_session, admin_context):
    """A few products across two categories"""
    items = [
        ProductCreate(name="Logo Design", category="Design", price=Decimal("400.00")),
        ProductCreate(name="Hosting (yearly)", category="Services", price=Decimal("120.00"), tax_rate=Decimal("5.00")),
        ProductCreate(name="Legacy Audit", category="Services", price=Decimal("900.00"), status=ProductStatus.INACTIVE),
    ]
    return [service.create_product(db_session, p, admin_context.tenant_id, admin_context.user_id) for p in items]


# ===== SERVICE =====

class TestProductService:

    def test_paginated_listing(self, db_session, admin_context, catalog):
        page = service.get_products(db_session, admin_context.tenant_id, page=1, limit=2)
        assert page.total == 3
        assert page.total_pages == 2
        assert len(page.items) == 2
        assert [p.name for p in page.items] == ["Hosting (yearly)", "Legacy Audit"]

    def test_filters(self, db_session, admin_context, catalog):
        tenant_id = admin_context.tenant_id
        assert service.get_products(db_session, tenant_id, category="services").total == 2
        assert service.get_products(db_session, tenant_id, product_status=ProductStatus.ACTIVE).total == 2
        assert service.get_products(db_session, tenant_id, search="logo").total == 1

    def test_search_only_active(self, db_session, admin_context, catalog):
        names = [p.name for p in service.search_products(db_session, admin_context.tenant_id, "i")]
        assert "Legacy Audit" not in names
        assert "Logo Design" in names

    def test_categories(self, db_session, admin_context, catalog):
        assert service.get_categories(db_session, admin_context.tenant_id) == ["Design", "Services"]

    def test_update_rejects_null_price(self, db_session, admin_context, catalog):
        with pytest.raises(HTTPException) as exc_info:
            service.update_product(db_session, admin_context.tenant_id, catalog[0].id, ProductUpdate(price=None))
        assert exc_info.value.status_code == 400

    def test_delete_keeps_line_items(self, db_session, admin_context, sample_client, sample_product):
        transaction = TransactionService(db_session).create_transaction(
            TransactionCreate(
                client_id=sample_client.id,
                items=[TransactionItemCreate(product_id=sample_product.id, quantity=Decimal("2"))]
            ),
            admin_context.tenant_id,
            admin_context.user_id
        )

        service.delete_product(db_session, admin_context.tenant_id, sample_product.id)

        item = db_session.query(TransactionItem).filter(TransactionItem.transaction_id == transaction.id).one()
        db_session.refresh(item)
        assert item.product_id is None
        assert item.description == "Website Maintenance"
        assert item.total == Decimal("500.00")

    def test_tenant_isolation(self, db_session, catalog, other_admin_auth):
        with pytest.raises(HTTPException) as exc_info:
            service.get_product_by_id(db_session, other_admin_auth.user.tenant_id, catalog[0].id)
        assert exc_info.value.status_code == 404


# ===== ENDPOINTS =====

class TestProductEndpoints:

    def test_create_list_update_delete(self, db_session, admin_headers):
        response = client.post(
            "/products/",
            json={"name": "SEO Package", "category": "Marketing", "price": "350.00", "tax_rate": "8.00"},
            headers=admin_headers
        )
        assert response.status_code == 201
        product_id = response.json()["id"]

        response = client.get("/products/", headers=admin_headers)
        assert response.json()["total"] == 1

        response = client.patch(f"/products/{product_id}", json={"price": "375.50"}, headers=admin_headers)
        assert response.status_code == 200
        assert Decimal(response.json()["price"]) == Decimal("375.50")

        assert client.delete(f"/products/{product_id}", headers=admin_headers).status_code == 204
        assert client.get(f"/products/{product_id}", headers=admin_headers).status_code == 404

    def test_negative_price_rejected(self, db_session, admin_headers):
        response = client.post("/products/", json={"name": "Broken", "price": "-1"}, headers=admin_headers)
        assert response.status_code == 422

    def test_clients_cannot_browse_catalog(self, db_session, client_headers):
        assert client.get("/products/", headers=client_headers).status_code == 403

    def test_search_endpoint(self, db_session, admin_headers, catalog):
        response = client.get("/products/search", params={"q": "host"}, headers=admin_headers)
        assert response.status_code == 200
        assert [p["name"] for p in response.json()] == ["Hosting (yearly)"]
