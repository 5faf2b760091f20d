"""
Tests for quick templates: saved presets executed as a paid transaction or
a staff payment.
"""

import pytest
from datetime import date
from decimal import Decimal
from fastapi import HTTPException
from fastapi.testclient import TestClient

from invoicehub.main import app
from invoicehub.core.config import settings
from invoicehub.modules.ledger.models import LedgerEntry, LedgerEntryType, ReferenceType
from invoicehub.modules.quick_templates.schemas import (
    QuickTransactionTemplateCreate, QuickTransactionTemplateUpdate, QuickStaffPaymentTemplateCreate
)
from invoicehub.modules.quick_templates.service import QuickTemplateService
from invoicehub.modules.transactions.models import TransactionStatus


client = TestClient(app)


# ===== FIXTURES =====

@pytest.fixture
def transaction_template(db_session, admin_context, sample_client, sample_product):
    return QuickTemplateService(db_session).create_transaction_template(
        QuickTransactionTemplateCreate(
            name="Monthly maintenance",
            client_id=sample_client.id,
            product_id=sample_product.id,
            quantity=Decimal("1")
        ),
        admin_context.tenant_id, admin_context.user_id
    )


@pytest.fixture
def staff_template(db_session, admin_context, sample_staff):
    return QuickTemplateService(db_session).create_staff_template(
        QuickStaffPaymentTemplateCreate(name="Weekly wage", staff_id=sample_staff.id, amount=Decimal("375.00")),
        admin_context.tenant_id, admin_context.user_id
    )


# ===== TRANSACTION TEMPLATES =====

class TestTransactionTemplates:

    def test_defaults_from_product(self, transaction_template):
        assert transaction_template.unit_price == Decimal("250.00")
        assert transaction_template.tax_rate == Decimal("10.00")
        assert transaction_template.payment_method == settings.DEFAULT_PAYMENT_METHOD
        assert transaction_template.product_name == "Website Maintenance"

    def test_price_required_without_product(self, db_session, admin_context, sample_client):
        with pytest.raises(HTTPException) as exc_info:
            QuickTemplateService(db_session).create_transaction_template(
                QuickTransactionTemplateCreate(name="No price", client_id=sample_client.id),
                admin_context.tenant_id, admin_context.user_id
            )
        assert exc_info.value.status_code == 400

    def test_execute_creates_paid_transaction(self, db_session, admin_context, sample_client, transaction_template):
        transaction = QuickTemplateService(db_session).execute_transaction_template(
            transaction_template.id, admin_context.tenant_id, admin_context.user_id, date(2026, 8, 1)
        )

        assert transaction.status == TransactionStatus.PAID
        assert transaction.transaction_date == date(2026, 8, 1)
        assert transaction.due_date == date(2026, 8, 31)
        assert transaction.total_amount == Decimal("275.00")
        assert transaction.items[0].description == "Website Maintenance"

        entry = db_session.query(LedgerEntry).filter(
            LedgerEntry.reference_type == ReferenceType.CLIENT_TRANSACTION
        ).one()
        assert entry.amount == Decimal("275.00")
        db_session.refresh(sample_client)
        assert sample_client.total_spent == Decimal("275.00")

    def test_soft_delete(self, db_session, admin_context, transaction_template):
        service = QuickTemplateService(db_session)
        service.delete_transaction_template(transaction_template.id, admin_context.tenant_id)

        assert service.list_transaction_templates(admin_context.tenant_id) == []
        assert len(service.list_transaction_templates(admin_context.tenant_id, include_inactive=True)) == 1

        with pytest.raises(HTTPException) as exc_info:
            service.execute_transaction_template(transaction_template.id, admin_context.tenant_id, admin_context.user_id)
        assert exc_info.value.status_code == 400

    def test_failed_delete_rolls_back(self, db_session, admin_context, transaction_template, monkeypatch):
        def failing_commit():
            raise RuntimeError("connection lost")

        monkeypatch.setattr(db_session, "commit", failing_commit)
        with pytest.raises(HTTPException) as exc_info:
            QuickTemplateService(db_session).delete_transaction_template(
                transaction_template.id, admin_context.tenant_id
            )
        monkeypatch.undo()

        assert exc_info.value.status_code == 500
        db_session.refresh(transaction_template)
        assert transaction_template.is_active is True
        assert transaction_template.deleted_at is None

    def test_reactivate(self, db_session, admin_context, transaction_template):
        service = QuickTemplateService(db_session)
        service.delete_transaction_template(transaction_template.id, admin_context.tenant_id)
        template = service.update_transaction_template(
            transaction_template.id, QuickTransactionTemplateUpdate(is_active=True), admin_context.tenant_id
        )
        assert template.is_active is True
        assert template.deleted_at is None

    def test_update_rejects_null_client(self, db_session, admin_context, transaction_template):
        with pytest.raises(HTTPException) as exc_info:
            QuickTemplateService(db_session).update_transaction_template(
                transaction_template.id, QuickTransactionTemplateUpdate(client_id=None), admin_context.tenant_id
            )
        assert exc_info.value.status_code == 400


# ===== STAFF PAYMENT TEMPLATES =====

class TestStaffPaymentTemplates:

    def test_execute_records_payment_and_expense(self, db_session, admin_context, sample_staff, staff_template):
        payment = QuickTemplateService(db_session).execute_staff_template(
            staff_template.id, admin_context.tenant_id, admin_context.user_id, date(2026, 9, 5)
        )
        assert payment.amount == Decimal("375.00")
        assert payment.date_paid == date(2026, 9, 5)

        entry = db_session.query(LedgerEntry).filter(
            LedgerEntry.reference_id == payment.ledger_reference
        ).one()
        assert entry.entry_type == LedgerEntryType.EXPENSE
        assert entry.description == "Quick Payment to Sam Support"

    def test_failed_delete_rolls_back(self, db_session, admin_context, staff_template, monkeypatch):
        def failing_commit():
            raise RuntimeError("connection lost")

        monkeypatch.setattr(db_session, "commit", failing_commit)
        with pytest.raises(HTTPException) as exc_info:
            QuickTemplateService(db_session).delete_staff_template(staff_template.id, admin_context.tenant_id)
        monkeypatch.undo()

        assert exc_info.value.status_code == 500
        db_session.refresh(staff_template)
        assert staff_template.is_active is True

    def test_unknown_staff(self, db_session, admin_context, other_admin_auth):
        with pytest.raises(HTTPException) as exc_info:
            QuickTemplateService(db_session).create_staff_template(
                QuickStaffPaymentTemplateCreate(name="Ghost", staff_id=other_admin_auth.user.id, amount=Decimal("1")),
                admin_context.tenant_id, admin_context.user_id
            )
        assert exc_info.value.status_code == 404


# ===== ENDPOINTS =====

class TestQuickTemplateEndpoints:

    def test_execute_transaction_template_over_http(self, db_session, admin_headers, transaction_template):
        response = client.post(
            f"/quick-templates/transactions/{transaction_template.id}/execute",
            json={"execution_date": "2026-02-10"},
            headers=admin_headers
        )
        assert response.status_code == 201
        assert response.json()["status"] == "paid"
        assert response.json()["number"] == "INV-2026-0001"

    def test_execute_without_body(self, db_session, admin_headers, staff_template):
        response = client.post(f"/quick-templates/staff-payments/{staff_template.id}/execute", headers=admin_headers)
        assert response.status_code == 201
        assert response.json()["date_paid"] == date.today().isoformat()

    def test_list_templates(self, db_session, admin_headers, transaction_template, staff_template):
        response = client.get("/quick-templates/transactions", headers=admin_headers)
        assert [t["name"] for t in response.json()] == ["Monthly maintenance"]
        assert response.json()[0]["client_name"] == "Northwind Traders"

        response = client.get("/quick-templates/staff-payments", headers=admin_headers)
        assert response.json()[0]["staff_name"] == "Sam Support"

    def test_staff_payment_templates_admin_only(self, db_session, staff_headers, staff_template):
        response = client.post(f"/quick-templates/staff-payments/{staff_template.id}/execute", headers=staff_headers)
        assert response.status_code == 403
