"""
Tests for the Ledger module

Covers:
- Manual income and expense entries
- Filtered listings with totals
- Monthly, yearly and current month summaries
- Entries owned by transactions and staff payments cannot be deleted directly
"""

import pytest
from datetime import date
from decimal import Decimal
from fastapi import HTTPException
from fastapi.testclient import TestClient

from invoicehub.main import app
from invoicehub.core.config import settings
from invoicehub.modules.ledger.models import LedgerEntryType, ReferenceType
from invoicehub.modules.ledger.schemas import ManualEntryCreate
from invoicehub.modules.ledger.service import LedgerService
from invoicehub.modules.staff.schemas import StaffPaymentCreate
from invoicehub.modules.staff.service import StaffService
from invoicehub.modules.transactions.models import TransactionStatus


client = TestClient(app)


# ===== FIXTURES =====

@pytest.fixture
def booked_year(db_session, admin_context, sample_staff, make_transaction):
    """Income in January and March 2026, a staff expense in March, a manual expense in 2025"""
    make_transaction("1000.00", status=TransactionStatus.PAID, transaction_date=date(2026, 1, 15))
    make_transaction("500.00", status=TransactionStatus.PAID, transaction_date=date(2026, 3, 3))
    StaffService(db_session).record_payment(
        sample_staff.id, StaffPaymentCreate(amount=Decimal("300.00"), date_paid=date(2026, 3, 31)),
        admin_context.tenant_id, admin_context.user_id
    )
    LedgerService(db_session).add_manual_entry(
        ManualEntryCreate(entry_date=date(2025, 11, 2), entry_type=LedgerEntryType.EXPENSE,
                          amount=Decimal("80.00"), description="Office supplies"),
        admin_context.tenant_id, admin_context.user_id
    )


# ===== SERVICE =====

class TestLedgerService:

    def test_manual_entry(self, db_session, admin_context, sample_client):
        entry = LedgerService(db_session).add_manual_entry(
            ManualEntryCreate(entry_type=LedgerEntryType.INCOME, amount=Decimal("45.50"),
                              description="Tip jar", client_id=sample_client.id),
            admin_context.tenant_id, admin_context.user_id
        )
        assert entry.reference_type == ReferenceType.MANUAL
        assert entry.amount == Decimal("45.50")
        assert entry.entry_date == date.today()
        assert entry.client_name == "Northwind Traders"

    def test_manual_entry_unknown_client(self, db_session, admin_context, other_admin_auth):
        with pytest.raises(HTTPException) as exc_info:
            LedgerService(db_session).add_manual_entry(
                ManualEntryCreate(entry_type=LedgerEntryType.INCOME, amount=Decimal("1"),
                                  description="x", client_id=other_admin_auth.user.id),
                admin_context.tenant_id, admin_context.user_id
            )
        assert exc_info.value.status_code == 404

    def test_manual_entry_client_and_staff(self, sample_client, sample_staff):
        with pytest.raises(ValueError):
            ManualEntryCreate(entry_type=LedgerEntryType.INCOME, amount=Decimal("1"), description="x",
                              client_id=sample_client.id, staff_id=sample_staff.id)

    def test_manual_income_does_not_touch_total_spent(self, db_session, admin_context, sample_client):
        LedgerService(db_session).add_manual_entry(
            ManualEntryCreate(entry_type=LedgerEntryType.INCOME, amount=Decimal("99"),
                              description="Deposit", client_id=sample_client.id),
            admin_context.tenant_id, admin_context.user_id
        )
        assert LedgerService(db_session).client_income_total(admin_context.tenant_id, sample_client.id) == Decimal("0.00")

    def test_list_with_totals(self, db_session, admin_context, booked_year):
        service = LedgerService(db_session)

        everything = service.list_entries(admin_context.tenant_id)
        assert everything.total == 4
        assert everything.total_income == Decimal("1500.00")
        assert everything.total_expense == Decimal("380.00")
        assert everything.net == Decimal("1120.00")
        assert everything.entries[0].entry_date == date(2026, 3, 31)

        march = service.list_entries(admin_context.tenant_id, year=2026, month=3)
        assert march.total == 2
        assert march.net == Decimal("200.00")

        expenses = service.list_entries(admin_context.tenant_id, entry_type=LedgerEntryType.EXPENSE, limit=1)
        assert len(expenses.entries) == 1
        assert expenses.total == 2
        assert expenses.total_expense == Decimal("380.00")

    def test_monthly_summary(self, db_session, admin_context, booked_year):
        summary = LedgerService(db_session).monthly_summary(admin_context.tenant_id, 2026)

        assert len(summary.months) == 12
        assert summary.months[0].month_name == "January"
        assert summary.months[0].income == Decimal("1000.00")
        assert summary.months[1].income == Decimal("0.00")
        assert summary.months[2].income == Decimal("500.00")
        assert summary.months[2].expense == Decimal("300.00")
        assert summary.months[2].profit == Decimal("200.00")
        assert summary.net_profit == Decimal("1200.00")

    def test_yearly_summary(self, db_session, admin_context, booked_year):
        years = LedgerService(db_session).yearly_summary(admin_context.tenant_id)
        assert [y.year for y in years] == [2026, 2025]
        assert years[1].expense == Decimal("80.00")
        assert years[1].profit == Decimal("-80.00")

    def test_period_summary(self, db_session, admin_context, booked_year):
        summary = LedgerService(db_session).period_summary(admin_context.tenant_id, 2026, 1)
        assert summary.income == Decimal("1000.00")
        assert summary.expense == Decimal("0.00")

    def test_only_manual_entries_can_be_deleted(self, db_session, admin_context, make_transaction):
        make_transaction("10.00", status=TransactionStatus.PAID)
        service = LedgerService(db_session)
        entry = service.list_entries(admin_context.tenant_id).entries[0]

        with pytest.raises(HTTPException) as exc_info:
            service.delete_manual_entry(entry.id, admin_context.tenant_id)
        assert exc_info.value.status_code == 400

    def test_tenants_do_not_mix(self, db_session, admin_context, other_admin_auth, booked_year):
        result = LedgerService(db_session).list_entries(other_admin_auth.user.tenant_id)
        assert result.total == 0
        assert result.net == Decimal("0.00")


# ===== ENDPOINTS =====

class TestLedgerEndpoints:

    def test_add_and_delete_manual_entry(self, db_session, admin_headers):
        response = client.post(
            "/ledger/",
            json={"entry_type": "expense", "amount": "120.00", "description": "Software licence", "entry_date": "2026-04-01"},
            headers=admin_headers
        )
        assert response.status_code == 201
        entry_id = response.json()["id"]
        assert response.json()["reference_type"] == "manual"

        assert client.delete(f"/ledger/{entry_id}", headers=admin_headers).status_code == 204
        assert client.get("/ledger/", headers=admin_headers).json()["total"] == 0

    def test_zero_amount_rejected(self, db_session, admin_headers):
        response = client.post(
            "/ledger/", json={"entry_type": "income", "amount": "0", "description": "Nothing"}, headers=admin_headers
        )
        assert response.status_code == 422

    def test_monthly_summary_endpoint(self, db_session, admin_headers, booked_year):
        response = client.get("/ledger/summary/monthly", params={"year": 2026}, headers=admin_headers)
        assert response.status_code == 200
        assert Decimal(response.json()["total_income"]) == Decimal("1500.00")

    def test_staff_can_read_but_not_write(self, db_session, staff_headers):
        assert client.get("/ledger/", headers=staff_headers).status_code == 200
        response = client.post(
            "/ledger/", json={"entry_type": "income", "amount": "5", "description": "x"}, headers=staff_headers
        )
        assert response.status_code == 403

    def test_clients_have_no_access(self, db_session, client_headers):
        assert client.get("/ledger/summary/current-month", headers=client_headers).status_code == 403

    def test_page_size(self, db_session, admin_context, admin_headers):
        service = LedgerService(db_session)
        for day in range(1, settings.DEFAULT_PAGE_SIZE + 2):
            service.add_manual_entry(
                ManualEntryCreate(entry_date=date(2026, 1, 1 + day % 28), entry_type=LedgerEntryType.INCOME,
                                  amount=Decimal("1.00"), description=f"Sale {day}"),
                admin_context.tenant_id, admin_context.user_id
            )

        response = client.get("/ledger/", headers=admin_headers)
        assert len(response.json()["entries"]) == settings.DEFAULT_PAGE_SIZE
        assert response.json()["total"] == settings.DEFAULT_PAGE_SIZE + 1

        response = client.get("/ledger/", params={"limit": settings.MAX_PAGE_SIZE + 1}, headers=admin_headers)
        assert response.status_code == 422
