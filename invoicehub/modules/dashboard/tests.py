"""
Tests for the Dashboard module
"""

import pytest
from decimal import Decimal
from fastapi import HTTPException
from fastapi.testclient import TestClient

from invoicehub.main import app
from invoicehub.modules.dashboard.service import DashboardService
from invoicehub.modules.staff.schemas import StaffPaymentCreate
from invoicehub.modules.staff.service import StaffService
from invoicehub.modules.transactions.models import TransactionStatus
from invoicehub.modules.transactions.schemas import PaymentCreate
from invoicehub.modules.transactions.service import TransactionService


client = TestClient(app)


# ===== FIXTURES =====

@pytest.fixture
def busy_company(db_session, admin_context, sample_staff, make_transaction):
    """
    One paid, one partially paid, one overdue and one draft transaction,
    plus a staff payment
    """
    make_transaction("1000.00", status=TransactionStatus.PAID)
    partial = make_transaction("200.00")
    TransactionService(db_session).record_payment(
        partial.id, PaymentCreate(amount=Decimal("50.00")), admin_context.tenant_id, admin_context.user_id
    )
    make_transaction("300.00", status=TransactionStatus.OVERDUE)
    make_transaction("40.00", status=TransactionStatus.DRAFT)
    StaffService(db_session).record_payment(
        sample_staff.id, StaffPaymentCreate(amount=Decimal("400.00")),
        admin_context.tenant_id, admin_context.user_id
    )


# ===== SERVICE =====

class TestDashboardService:

    def test_admin_stats(self, db_session, admin_context, busy_company):
        stats = DashboardService(db_session).admin_stats(admin_context.tenant_id)

        assert stats.total_revenue == Decimal("1050.00")
        assert stats.total_expenses == Decimal("400.00")
        assert stats.net_profit == Decimal("650.00")
        assert stats.pending_invoices == 2
        assert stats.outstanding_amount == Decimal("450.00")
        assert stats.active_clients == 1
        assert stats.staff_count == 1
        assert len(stats.recent_transactions) == 4

    def test_admin_stats_empty_company(self, db_session, admin_context):
        stats = DashboardService(db_session).admin_stats(admin_context.tenant_id)
        assert stats.total_revenue == Decimal("0.00")
        assert stats.pending_invoices == 0
        assert stats.recent_transactions == []

    def test_client_stats_skip_drafts(self, db_session, client_context, busy_company):
        stats = DashboardService(db_session).client_stats(client_context)

        assert stats.transaction_count == 3
        assert stats.total_billed == Decimal("1500.00")
        assert stats.total_paid == Decimal("1050.00")
        assert stats.outstanding_balance == Decimal("450.00")
        assert stats.overdue_count == 1

    def test_client_stats_need_a_linked_client(self, db_session, admin_context):
        with pytest.raises(HTTPException) as exc_info:
            DashboardService(db_session).client_stats(admin_context)
        assert exc_info.value.status_code == 404

    def test_staff_stats(self, db_session, staff_context, busy_company):
        stats = DashboardService(db_session).staff_stats(staff_context)

        assert stats.total_paid == Decimal("400.00")
        assert stats.payment_count == 1
        assert stats.last_payment_date is not None
        assert len(stats.recent_payments) == 1


# ===== ENDPOINTS =====

class TestDashboardEndpoints:

    def test_stats_for_admin_and_staff(self, db_session, admin_headers, staff_headers, busy_company):
        response = client.get("/dashboard/stats", headers=admin_headers)
        assert response.status_code == 200
        assert Decimal(response.json()["net_profit"]) == Decimal("650.00")

        assert client.get("/dashboard/stats", headers=staff_headers).status_code == 200

    def test_client_dashboard(self, db_session, client_headers, busy_company):
        response = client.get("/dashboard/client", headers=client_headers)
        assert response.status_code == 200
        assert Decimal(response.json()["outstanding_balance"]) == Decimal("450.00")

    def test_staff_dashboard(self, db_session, staff_headers, busy_company):
        response = client.get("/dashboard/staff", headers=staff_headers)
        assert response.status_code == 200
        assert response.json()["payment_count"] == 1

    def test_roles_are_enforced(self, db_session, admin_headers, client_headers):
        assert client.get("/dashboard/stats", headers=client_headers).status_code == 403
        assert client.get("/dashboard/client", headers=admin_headers).status_code == 403
        assert client.get("/dashboard/staff", headers=client_headers).status_code == 403
