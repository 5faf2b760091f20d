"""
Tests for the Staff module

Covers:
- Staff CRUD and filters
- Payments mirrored as ledger expenses (create, update, delete)
- Totals and six month statistics
- Staff portal endpoints
"""

import pytest
from datetime import date
from decimal import Decimal
from fastapi import HTTPException
from fastapi.testclient import TestClient

from invoicehub.main import app
from invoicehub.modules.auth.models import User
from invoicehub.modules.ledger.models import LedgerEntry, LedgerEntryType, ReferenceType
from invoicehub.modules.staff.models import StaffRole, StaffStatus, StaffPayment
from invoicehub.modules.staff.schemas import StaffCreate, StaffUpdate, StaffPaymentCreate, StaffPaymentUpdate
from invoicehub.modules.staff.service import StaffService


client = TestClient(app)


def _expense_for(db_session, payment):
    return db_session.query(LedgerEntry).filter(
        LedgerEntry.reference_type == ReferenceType.STAFF_PAYMENT,
        LedgerEntry.reference_id == payment.ledger_reference
    ).first()


# ===== STAFF =====

class TestStaffService:

    def test_duplicate_email(self, db_session, admin_context, sample_staff):
        with pytest.raises(HTTPException) as exc_info:
            StaffService(db_session).create_staff(
                StaffCreate(name="Copy", email="SAM@acmestudio.com", payment_rate=Decimal("10")),
                admin_context.tenant_id
            )
        assert exc_info.value.status_code == 409

    def test_payment_rate_must_be_positive(self):
        with pytest.raises(ValueError):
            StaffCreate(name="Zero", email="zero@acmestudio.com", payment_rate=Decimal("0"))

    def test_filters(self, db_session, admin_context, sample_staff):
        service = StaffService(db_session)
        service.create_staff(
            StaffCreate(name="Fiona Finance", email="fiona@acmestudio.com", role=StaffRole.FINANCE,
                        status=StaffStatus.INACTIVE, payment_rate=Decimal("2000")),
            admin_context.tenant_id
        )
        tenant_id = admin_context.tenant_id
        assert len(service.list_staff(tenant_id)) == 2
        assert [s.name for s in service.list_staff(tenant_id, role=StaffRole.FINANCE)] == ["Fiona Finance"]
        assert [s.name for s in service.list_staff(tenant_id, staff_status=StaffStatus.ACTIVE)] == ["Sam Support"]
        assert [s.name for s in service.list_staff(tenant_id, search="engineer")] == ["Sam Support"]
        assert service.count_staff(tenant_id, active_only=True) == 1

    def test_update(self, db_session, admin_context, sample_staff):
        updated = StaffService(db_session).update_staff(
            sample_staff.id, StaffUpdate(position="Lead", payment_rate=Decimal("1800.00")), admin_context.tenant_id
        )
        assert updated.position == "Lead"
        assert updated.payment_rate == Decimal("1800.00")

        with pytest.raises(HTTPException) as exc_info:
            StaffService(db_session).update_staff(sample_staff.id, StaffUpdate(name=None), admin_context.tenant_id)
        assert exc_info.value.status_code == 400

    def test_delete_cascades(self, db_session, admin_context, sample_staff, staff_portal_auth):
        service = StaffService(db_session)
        service.record_payment(sample_staff.id, StaffPaymentCreate(amount=Decimal("500")),
                               admin_context.tenant_id, admin_context.user_id)
        service.record_payment(sample_staff.id, StaffPaymentCreate(amount=Decimal("250")),
                               admin_context.tenant_id, admin_context.user_id)

        result = service.delete_staff(sample_staff.id, admin_context.tenant_id)

        assert result["payments_deleted"] == 2
        assert result["ledger_entries_deleted"] == 2
        assert db_session.query(StaffPayment).count() == 0
        assert db_session.query(LedgerEntry).count() == 0
        user = db_session.query(User).filter(User.id == staff_portal_auth.user.id).first()
        assert user.is_active is False


# ===== PAYMENTS =====

class TestStaffPayments:

    def test_payment_creates_expense(self, db_session, admin_context, sample_staff):
        payment = StaffService(db_session).record_payment(
            sample_staff.id,
            StaffPaymentCreate(amount=Decimal("1500.00"), date_paid=date(2026, 5, 31), payment_method="Bank Transfer"),
            admin_context.tenant_id,
            admin_context.user_id
        )
        entry = _expense_for(db_session, payment)
        assert entry is not None
        assert entry.entry_type == LedgerEntryType.EXPENSE
        assert entry.amount == Decimal("1500.00")
        assert entry.entry_date == date(2026, 5, 31)
        assert entry.staff_id == sample_staff.id
        assert entry.description == "Payment to Sam Support"

    def test_update_syncs_expense(self, db_session, admin_context, sample_staff):
        service = StaffService(db_session)
        payment = service.record_payment(sample_staff.id, StaffPaymentCreate(amount=Decimal("100")),
                                         admin_context.tenant_id, admin_context.user_id)

        service.update_payment(sample_staff.id, payment.id,
                               StaffPaymentUpdate(amount=Decimal("175.25"), date_paid=date(2026, 2, 1)),
                               admin_context.tenant_id)

        entry = _expense_for(db_session, payment)
        db_session.refresh(entry)
        assert entry.amount == Decimal("175.25")
        assert entry.entry_date == date(2026, 2, 1)
        assert db_session.query(LedgerEntry).count() == 1

    def test_delete_removes_expense(self, db_session, admin_context, sample_staff):
        service = StaffService(db_session)
        payment = service.record_payment(sample_staff.id, StaffPaymentCreate(amount=Decimal("100")),
                                         admin_context.tenant_id, admin_context.user_id)
        service.delete_payment(sample_staff.id, payment.id, admin_context.tenant_id)

        assert db_session.query(StaffPayment).count() == 0
        assert db_session.query(LedgerEntry).count() == 0

    def test_payment_for_unknown_staff(self, db_session, admin_context, other_admin_auth, sample_staff):
        with pytest.raises(HTTPException) as exc_info:
            StaffService(db_session).record_payment(
                sample_staff.id, StaffPaymentCreate(amount=Decimal("10")),
                other_admin_auth.user.tenant_id, other_admin_auth.user.id
            )
        assert exc_info.value.status_code == 404
        assert db_session.query(LedgerEntry).count() == 0

    def test_totals(self, db_session, admin_context, sample_staff):
        service = StaffService(db_session)
        for amount, paid_on in (("100.00", date(2026, 1, 10)), ("250.50", date(2026, 3, 2))):
            service.record_payment(sample_staff.id, StaffPaymentCreate(amount=Decimal(amount), date_paid=paid_on),
                                   admin_context.tenant_id, admin_context.user_id)

        totals = service.total_paid(sample_staff.id, admin_context.tenant_id)
        assert totals.total_paid == Decimal("350.50")
        assert totals.payment_count == 2
        assert totals.last_payment_date == date(2026, 3, 2)

    def test_stats_last_six_months(self, db_session, admin_context, sample_staff):
        service = StaffService(db_session)
        for amount, paid_on in (
            ("100.00", date(2025, 12, 15)),  # outside the window
            ("300.00", date(2026, 1, 5)),
            ("200.00", date(2026, 6, 1)),
            ("100.00", date(2026, 6, 20)),
        ):
            service.record_payment(sample_staff.id, StaffPaymentCreate(amount=Decimal(amount), date_paid=paid_on),
                                   admin_context.tenant_id, admin_context.user_id)

        stats = service.payment_stats(sample_staff.id, admin_context.tenant_id, today=date(2026, 6, 30))

        assert [(m.year, m.month) for m in stats.months] == [
            (2026, 1), (2026, 2), (2026, 3), (2026, 4), (2026, 5), (2026, 6)
        ]
        assert stats.months[0].total == Decimal("300.00")
        assert stats.months[-1].total == Decimal("300.00")
        assert stats.months[-1].payment_count == 2
        assert stats.total_paid == Decimal("600.00")
        assert stats.average_per_month == Decimal("100.00")


# ===== ENDPOINTS =====

class TestStaffEndpoints:

    def test_create_and_pay(self, db_session, admin_headers):
        response = client.post(
            "/staff/",
            json={"name": "Rita Writer", "email": "rita@acmestudio.com", "payment_rate": "30.00", "role": "support"},
            headers=admin_headers
        )
        assert response.status_code == 201
        staff_id = response.json()["id"]

        response = client.post(f"/staff/{staff_id}/payments", json={"amount": "420.00"}, headers=admin_headers)
        assert response.status_code == 201
        payment_id = response.json()["id"]

        response = client.get(f"/staff/{staff_id}/payments/total", headers=admin_headers)
        assert Decimal(response.json()["total_paid"]) == Decimal("420.00")

        response = client.delete(f"/staff/{staff_id}/payments/{payment_id}", headers=admin_headers)
        assert response.status_code == 204

    def test_staff_portal(self, db_session, admin_context, sample_staff, staff_headers):
        StaffService(db_session).record_payment(sample_staff.id, StaffPaymentCreate(amount=Decimal("90")),
                                                admin_context.tenant_id, admin_context.user_id)

        response = client.get("/staff/me", headers=staff_headers)
        assert response.status_code == 200
        assert response.json()["email"] == "sam@acmestudio.com"

        response = client.get("/staff/me/payments", headers=staff_headers)
        assert len(response.json()) == 1

    def test_staff_cannot_record_payments(self, db_session, sample_staff, staff_headers):
        response = client.post(f"/staff/{sample_staff.id}/payments", json={"amount": "1.00"}, headers=staff_headers)
        assert response.status_code == 403

    def test_admin_has_no_staff_profile(self, db_session, admin_headers):
        assert client.get("/staff/me", headers=admin_headers).status_code == 403
