"""
Tests for the Transactions module

Covers:
- Totals, rounding and product defaults on line items
- Sequential numbering per tenant and year
- Status derived from payments
- Ledger mirror: one income entry per payment, a settlement entry for
  paid transactions not covered by payments, and client total_spent
- Overdue sweep
- Access rules for client portal users
"""

import pytest
from datetime import date
from decimal import Decimal
from fastapi import HTTPException
from fastapi.testclient import TestClient

from invoicehub.main import app
from invoicehub.modules.clients.schemas import ClientCreate
from invoicehub.modules.clients.service import ClientService
from invoicehub.modules.ledger.models import LedgerEntry, LedgerEntryType, ReferenceType
from invoicehub.modules.transactions.models import TransactionStatus
from invoicehub.modules.transactions.schemas import (
    TransactionCreate, TransactionUpdate, TransactionItemCreate, PaymentCreate, PaymentUpdate
)
from invoicehub.modules.transactions.service import TransactionService, normalize_status, status_after_payments


client = TestClient(app)

ZERO = Decimal("0.00")


def _ledger(db_session, reference_type=None):
    query = db_session.query(LedgerEntry)
    if reference_type:
        query = query.filter(LedgerEntry.reference_type == reference_type)
    return query.all()


def _pay(db_session, admin_context, transaction, amount, **kwargs):
    return TransactionService(db_session).record_payment(
        transaction.id, PaymentCreate(amount=Decimal(amount), **kwargs),
        admin_context.tenant_id, admin_context.user_id
    )


# ===== STATUS RULES =====

class TestStatusRules:
    """Pure status functions"""

    def test_normalize_fully_covered_is_paid(self):
        assert normalize_status(TransactionStatus.PENDING, Decimal("100"), Decimal("100")) == TransactionStatus.PAID

    def test_normalize_explicit_paid(self):
        assert normalize_status(TransactionStatus.PAID, ZERO, Decimal("100")) == TransactionStatus.PAID

    def test_normalize_partial_without_payments(self):
        assert normalize_status(TransactionStatus.PARTIAL, ZERO, Decimal("100")) == TransactionStatus.PENDING

    def test_normalize_with_some_payments(self):
        assert normalize_status(TransactionStatus.PENDING, Decimal("10"), Decimal("100")) == TransactionStatus.PARTIAL
        assert normalize_status(TransactionStatus.OVERDUE, Decimal("10"), Decimal("100")) == TransactionStatus.OVERDUE

    def test_normalize_keeps_draft(self):
        assert normalize_status(TransactionStatus.DRAFT, ZERO, Decimal("100")) == TransactionStatus.DRAFT

    def test_after_payments(self):
        assert status_after_payments(TransactionStatus.PENDING, Decimal("100"), Decimal("100")) == TransactionStatus.PAID
        assert status_after_payments(TransactionStatus.PAID, Decimal("40"), Decimal("100")) == TransactionStatus.PARTIAL
        assert status_after_payments(TransactionStatus.PAID, ZERO, Decimal("100")) == TransactionStatus.PENDING
        assert status_after_payments(TransactionStatus.OVERDUE, ZERO, Decimal("100")) == TransactionStatus.OVERDUE

    def test_after_payments_past_due(self):
        due, today = date(2026, 1, 31), date(2026, 2, 15)
        assert status_after_payments(
            TransactionStatus.PAID, Decimal("40"), Decimal("100"), due, today
        ) == TransactionStatus.OVERDUE
        assert status_after_payments(
            TransactionStatus.PARTIAL, ZERO, Decimal("100"), due, today
        ) == TransactionStatus.OVERDUE
        assert status_after_payments(
            TransactionStatus.PENDING, Decimal("100"), Decimal("100"), due, today
        ) == TransactionStatus.PAID
        assert status_after_payments(
            TransactionStatus.PAID, Decimal("40"), Decimal("100"), date(2026, 3, 1), today
        ) == TransactionStatus.PARTIAL
        assert status_after_payments(
            TransactionStatus.DRAFT, ZERO, Decimal("100"), due, today
        ) == TransactionStatus.DRAFT


# ===== CREATION =====

class TestTransactionCreation:

    def test_totals_with_tax_rounding(self, db_session, admin_context, sample_client):
        transaction = TransactionService(db_session).create_transaction(
            TransactionCreate(
                client_id=sample_client.id,
                items=[TransactionItemCreate(description="Widget", quantity=Decimal("3"),
                                             unit_price=Decimal("19.99"), tax_rate=Decimal("7.50"))]
            ),
            admin_context.tenant_id, admin_context.user_id
        )
        assert transaction.subtotal == Decimal("59.97")
        assert transaction.tax_amount == Decimal("4.50")
        assert transaction.total_amount == Decimal("64.47")
        assert transaction.status == TransactionStatus.PENDING

    def test_product_defaults(self, db_session, admin_context, sample_client, sample_product):
        transaction = TransactionService(db_session).create_transaction(
            TransactionCreate(
                client_id=sample_client.id,
                items=[TransactionItemCreate(product_id=sample_product.id, quantity=Decimal("2"))]
            ),
            admin_context.tenant_id, admin_context.user_id
        )
        item = transaction.items[0]
        assert item.description == "Website Maintenance"
        assert item.unit_price == Decimal("250.00")
        assert item.tax_rate == Decimal("10.00")
        assert transaction.total_amount == Decimal("550.00")

    def test_unknown_product(self, db_session, admin_context, sample_client, other_admin_auth):
        with pytest.raises(HTTPException) as exc_info:
            TransactionService(db_session).create_transaction(
                TransactionCreate(
                    client_id=sample_client.id,
                    items=[TransactionItemCreate(product_id=other_admin_auth.user.id, quantity=Decimal("1"))]
                ),
                admin_context.tenant_id, admin_context.user_id
            )
        assert exc_info.value.status_code == 404

    def test_item_without_product_needs_price(self):
        with pytest.raises(ValueError):
            TransactionItemCreate(description="Free text", quantity=Decimal("1"))

    def test_at_least_one_item(self, sample_client):
        with pytest.raises(ValueError):
            TransactionCreate(client_id=sample_client.id, items=[])

    def test_due_date_before_transaction_date(self, sample_client):
        with pytest.raises(ValueError):
            TransactionCreate(
                client_id=sample_client.id,
                transaction_date=date(2026, 5, 10),
                due_date=date(2026, 5, 1),
                items=[TransactionItemCreate(description="X", quantity=Decimal("1"), unit_price=Decimal("1"))]
            )

    def test_default_due_date(self, make_transaction):
        transaction = make_transaction(transaction_date=date(2026, 4, 1))
        assert transaction.due_date == date(2026, 5, 1)

    def test_numbers_are_sequential_per_year(self, make_transaction):
        first = make_transaction(transaction_date=date(2026, 1, 5))
        second = make_transaction(transaction_date=date(2026, 2, 5))
        other_year = make_transaction(transaction_date=date(2025, 12, 30))
        assert first.number == "INV-2026-0001"
        assert second.number == "INV-2026-0002"
        assert other_year.number == "INV-2025-0001"

    def test_numbers_are_per_tenant(self, db_session, make_transaction, other_admin_auth):
        make_transaction(transaction_date=date(2026, 1, 5))
        tenant_id = other_admin_auth.user.tenant_id
        other_client = ClientService(db_session).create_client(
            ClientCreate(business_name="Globex Retail"), tenant_id, other_admin_auth.user.id
        )
        transaction = TransactionService(db_session).create_transaction(
            TransactionCreate(
                client_id=other_client.id,
                transaction_date=date(2026, 3, 1),
                items=[TransactionItemCreate(description="X", quantity=Decimal("1"), unit_price=Decimal("5"))]
            ),
            tenant_id, other_admin_auth.user.id
        )
        assert transaction.number == "INV-2026-0001"

    def test_client_from_other_tenant(self, db_session, sample_client, other_admin_auth):
        with pytest.raises(HTTPException) as exc_info:
            TransactionService(db_session).create_transaction(
                TransactionCreate(
                    client_id=sample_client.id,
                    items=[TransactionItemCreate(description="X", quantity=Decimal("1"), unit_price=Decimal("5"))]
                ),
                other_admin_auth.user.tenant_id, other_admin_auth.user.id
            )
        assert exc_info.value.status_code == 404

    def test_created_paid_gets_settlement_entry(self, db_session, make_transaction, sample_client):
        transaction = make_transaction("250.00", status=TransactionStatus.PAID)

        entries = _ledger(db_session, ReferenceType.CLIENT_TRANSACTION)
        assert len(entries) == 1
        assert entries[0].reference_id == transaction.number
        assert entries[0].entry_type == LedgerEntryType.INCOME
        assert entries[0].amount == Decimal("250.00")
        assert transaction.balance_due == ZERO
        db_session.refresh(sample_client)
        assert sample_client.total_spent == Decimal("250.00")

    def test_created_pending_has_no_ledger_entry(self, db_session, make_transaction, sample_client):
        make_transaction("250.00")
        assert _ledger(db_session) == []
        db_session.refresh(sample_client)
        assert sample_client.total_spent == ZERO


# ===== PAYMENTS =====

class TestPayments:

    def test_partial_then_full(self, db_session, admin_context, make_transaction, sample_client):
        transaction = make_transaction("300.00")

        _pay(db_session, admin_context, transaction, "100.00")
        assert transaction.status == TransactionStatus.PARTIAL
        assert transaction.balance_due == Decimal("200.00")

        _pay(db_session, admin_context, transaction, "200.00")
        assert transaction.status == TransactionStatus.PAID

        assert len(_ledger(db_session, ReferenceType.TRANSACTION_PAYMENT)) == 2
        assert _ledger(db_session, ReferenceType.CLIENT_TRANSACTION) == []
        db_session.refresh(sample_client)
        assert sample_client.total_spent == Decimal("300.00")

    def test_payment_ledger_entry(self, db_session, admin_context, make_transaction):
        transaction = make_transaction("300.00")
        payment = _pay(db_session, admin_context, transaction, "120.00", payment_date=date(2026, 7, 4))

        entry = _ledger(db_session, ReferenceType.TRANSACTION_PAYMENT)[0]
        assert entry.reference_id == f"TXN-PAY-{payment.id}"
        assert entry.amount == Decimal("120.00")
        assert entry.entry_date == date(2026, 7, 4)
        assert entry.client_id == transaction.client_id
        assert transaction.number in entry.description

    def test_overpayment_rejected(self, db_session, admin_context, make_transaction):
        transaction = make_transaction("100.00")
        with pytest.raises(HTTPException) as exc_info:
            _pay(db_session, admin_context, transaction, "100.01")
        assert exc_info.value.status_code == 400
        assert _ledger(db_session) == []

    def test_draft_rejects_payments(self, db_session, admin_context, make_transaction):
        transaction = make_transaction("100.00", status=TransactionStatus.DRAFT)
        with pytest.raises(HTTPException) as exc_info:
            _pay(db_session, admin_context, transaction, "10.00")
        assert exc_info.value.status_code == 400

    def test_paid_rejects_payments(self, db_session, admin_context, make_transaction):
        transaction = make_transaction("100.00", status=TransactionStatus.PAID)
        with pytest.raises(HTTPException) as exc_info:
            _pay(db_session, admin_context, transaction, "10.00")
        assert exc_info.value.status_code == 400

    def test_payment_method_defaults_to_transaction(self, db_session, admin_context, sample_client):
        service = TransactionService(db_session)
        transaction = service.create_transaction(
            TransactionCreate(
                client_id=sample_client.id,
                payment_method="Check",
                items=[TransactionItemCreate(description="X", quantity=Decimal("1"), unit_price=Decimal("50"))]
            ),
            admin_context.tenant_id, admin_context.user_id
        )
        payment = _pay(db_session, admin_context, transaction, "10.00")
        assert payment.payment_method == "Check"

    def test_update_payment_above_total(self, db_session, admin_context, make_transaction):
        transaction = make_transaction("100.00")
        _pay(db_session, admin_context, transaction, "60.00")
        payment = _pay(db_session, admin_context, transaction, "20.00")

        with pytest.raises(HTTPException) as exc_info:
            TransactionService(db_session).update_payment(
                transaction.id, payment.id, PaymentUpdate(amount=Decimal("50.00")), admin_context.tenant_id
            )
        assert exc_info.value.status_code == 400

        TransactionService(db_session).update_payment(
            transaction.id, payment.id, PaymentUpdate(amount=Decimal("40.00")), admin_context.tenant_id
        )
        assert transaction.status == TransactionStatus.PAID
        entry = db_session.query(LedgerEntry).filter(LedgerEntry.reference_id == payment.ledger_reference).one()
        assert entry.amount == Decimal("40.00")

    def test_note_edit_keeps_manual_paid_status(self, db_session, admin_context, make_transaction, sample_client):
        """A paid mark set by hand survives edits that leave the amount alone"""
        transaction = make_transaction("100.00")
        payment = _pay(db_session, admin_context, transaction, "30.00")
        service = TransactionService(db_session)
        service.update_transaction(
            transaction.id, TransactionUpdate(status=TransactionStatus.PAID), admin_context.tenant_id
        )

        service.update_payment(
            transaction.id, payment.id, PaymentUpdate(notes="typo fix"), admin_context.tenant_id
        )
        service.update_payment(
            transaction.id, payment.id,
            PaymentUpdate(amount=Decimal("30.00"), payment_date=date(2026, 7, 1)), admin_context.tenant_id
        )

        assert transaction.status == TransactionStatus.PAID
        assert payment.notes == "typo fix"
        settlement = _ledger(db_session, ReferenceType.CLIENT_TRANSACTION)
        assert len(settlement) == 1
        assert settlement[0].amount == Decimal("70.00")
        entry = db_session.query(LedgerEntry).filter(LedgerEntry.reference_id == payment.ledger_reference).one()
        assert entry.entry_date == date(2026, 7, 1)
        db_session.refresh(sample_client)
        assert sample_client.total_spent == Decimal("100.00")

    def test_amount_edit_recomputes_manual_paid_status(self, db_session, admin_context, make_transaction):
        transaction = make_transaction("100.00")
        payment = _pay(db_session, admin_context, transaction, "30.00")
        service = TransactionService(db_session)
        service.update_transaction(
            transaction.id, TransactionUpdate(status=TransactionStatus.PAID), admin_context.tenant_id
        )

        service.update_payment(
            transaction.id, payment.id, PaymentUpdate(amount=Decimal("50.00")), admin_context.tenant_id
        )

        assert transaction.status == TransactionStatus.PARTIAL
        assert _ledger(db_session, ReferenceType.CLIENT_TRANSACTION) == []

    def test_delete_payment_reverts_status(self, db_session, admin_context, make_transaction, sample_client):
        transaction = make_transaction("100.00")
        first = _pay(db_session, admin_context, transaction, "40.00")
        second = _pay(db_session, admin_context, transaction, "60.00")
        assert transaction.status == TransactionStatus.PAID

        service = TransactionService(db_session)
        service.delete_payment(transaction.id, second.id, admin_context.tenant_id)
        assert transaction.status == TransactionStatus.PARTIAL

        service.delete_payment(transaction.id, first.id, admin_context.tenant_id)
        assert transaction.status == TransactionStatus.PENDING
        assert _ledger(db_session) == []
        db_session.refresh(sample_client)
        assert sample_client.total_spent == ZERO

    def test_payment_summary(self, db_session, admin_context, make_transaction):
        transaction = make_transaction("200.00")
        _pay(db_session, admin_context, transaction, "50.00")

        summary = TransactionService(db_session).payment_summary(transaction.id, admin_context)
        assert summary.total_paid == Decimal("50.00")
        assert summary.remaining == Decimal("150.00")
        assert summary.percentage_paid == Decimal("25.00")
        assert summary.payment_count == 1


# ===== UPDATES =====

class TestTransactionUpdates:

    def test_mark_paid_with_partial_payments(self, db_session, admin_context, make_transaction, sample_client):
        """Settlement entry covers what payments did not"""
        transaction = make_transaction("100.00")
        _pay(db_session, admin_context, transaction, "30.00")

        TransactionService(db_session).update_transaction(
            transaction.id, TransactionUpdate(status=TransactionStatus.PAID), admin_context.tenant_id
        )

        settlement = _ledger(db_session, ReferenceType.CLIENT_TRANSACTION)
        assert len(settlement) == 1
        assert settlement[0].amount == Decimal("70.00")
        db_session.refresh(sample_client)
        assert sample_client.total_spent == Decimal("100.00")

    def test_unmark_paid_removes_settlement(self, db_session, admin_context, make_transaction, sample_client):
        transaction = make_transaction("100.00", status=TransactionStatus.PAID)

        TransactionService(db_session).update_transaction(
            transaction.id, TransactionUpdate(status=TransactionStatus.PENDING), admin_context.tenant_id
        )

        assert _ledger(db_session) == []
        db_session.refresh(sample_client)
        assert sample_client.total_spent == ZERO

    def test_replace_items_recalculates(self, db_session, admin_context, make_transaction):
        transaction = make_transaction("100.00")
        updated = TransactionService(db_session).update_transaction(
            transaction.id,
            TransactionUpdate(items=[
                TransactionItemCreate(description="A", quantity=Decimal("2"), unit_price=Decimal("40")),
                TransactionItemCreate(description="B", quantity=Decimal("1"), unit_price=Decimal("10"), tax_rate=Decimal("20")),
            ]),
            admin_context.tenant_id
        )
        assert len(updated.items) == 2
        assert updated.subtotal == Decimal("90.00")
        assert updated.tax_amount == Decimal("2.00")
        assert updated.total_amount == Decimal("92.00")

    def test_total_below_paid_rejected(self, db_session, admin_context, make_transaction):
        transaction = make_transaction("100.00")
        _pay(db_session, admin_context, transaction, "80.00")

        with pytest.raises(HTTPException) as exc_info:
            TransactionService(db_session).update_transaction(
                transaction.id,
                TransactionUpdate(items=[TransactionItemCreate(description="A", quantity=Decimal("1"), unit_price=Decimal("50"))]),
                admin_context.tenant_id
            )
        assert exc_info.value.status_code == 400

    def test_change_client_moves_total_spent(self, db_session, admin_context, make_transaction, sample_client):
        other = ClientService(db_session).create_client(
            ClientCreate(business_name="Second Client"), admin_context.tenant_id, admin_context.user_id
        )
        transaction = make_transaction("75.00", status=TransactionStatus.PAID)

        TransactionService(db_session).update_transaction(
            transaction.id, TransactionUpdate(client_id=other.id), admin_context.tenant_id
        )

        db_session.refresh(sample_client)
        db_session.refresh(other)
        assert sample_client.total_spent == ZERO
        assert other.total_spent == Decimal("75.00")

    def test_delete_removes_ledger(self, db_session, admin_context, make_transaction, sample_client):
        transaction = make_transaction("100.00")
        _pay(db_session, admin_context, transaction, "25.00")

        TransactionService(db_session).delete_transaction(transaction.id, admin_context.tenant_id)

        assert _ledger(db_session) == []
        db_session.refresh(sample_client)
        assert sample_client.total_spent == ZERO


# ===== OVERDUE =====

class TestOverdueSweep:

    def test_mark_overdue(self, db_session, admin_context, make_transaction):
        past = make_transaction("10.00", transaction_date=date(2026, 1, 1), due_date=date(2026, 1, 31))
        also_past = make_transaction("10.00", transaction_date=date(2026, 1, 2), due_date=date(2026, 2, 1))
        paid = make_transaction("10.00", status=TransactionStatus.PAID, transaction_date=date(2026, 1, 1),
                                due_date=date(2026, 1, 31))
        future = make_transaction("10.00", transaction_date=date(2026, 1, 1), due_date=date(2026, 3, 1))

        result = TransactionService(db_session).mark_overdue(admin_context.tenant_id, today=date(2026, 2, 15))

        assert result.updated == 2
        assert set(result.numbers) == {past.number, also_past.number}
        assert paid.status == TransactionStatus.PAID
        assert future.status == TransactionStatus.PENDING

    def test_partial_payment_past_due_is_overdue(self, db_session, admin_context, make_transaction):
        transaction = make_transaction("10.00", transaction_date=date(2026, 1, 1), due_date=date(2026, 1, 31))
        _pay(db_session, admin_context, transaction, "5.00")
        assert transaction.status == TransactionStatus.OVERDUE

    def test_deleting_payment_past_due_returns_to_overdue(self, db_session, admin_context, make_transaction):
        transaction = make_transaction("100.00", transaction_date=date(2026, 1, 1), due_date=date(2026, 1, 31))
        _pay(db_session, admin_context, transaction, "40.00")
        last = _pay(db_session, admin_context, transaction, "60.00")
        assert transaction.status == TransactionStatus.PAID

        TransactionService(db_session).delete_payment(transaction.id, last.id, admin_context.tenant_id)

        assert transaction.status == TransactionStatus.OVERDUE
        assert transaction.balance_due == Decimal("60.00")

    def test_payment_on_overdue_keeps_overdue_until_paid(self, db_session, admin_context, make_transaction):
        transaction = make_transaction("10.00", status=TransactionStatus.OVERDUE)
        _pay(db_session, admin_context, transaction, "4.00")
        assert transaction.status == TransactionStatus.OVERDUE
        _pay(db_session, admin_context, transaction, "6.00")
        assert transaction.status == TransactionStatus.PAID


# ===== ENDPOINTS =====

class TestTransactionEndpoints:

    def test_create_and_pay_over_http(self, db_session, admin_headers, sample_client):
        response = client.post(
            "/transactions/",
            json={
                "client_id": str(sample_client.id),
                "transaction_date": "2026-06-01",
                "items": [{"description": "Design work", "quantity": "4", "unit_price": "75.00"}]
            },
            headers=admin_headers
        )
        assert response.status_code == 201
        data = response.json()
        assert data["number"] == "INV-2026-0001"
        assert Decimal(data["total_amount"]) == Decimal("300.00")
        assert data["status"] == "pending"
        assert len(data["items"]) == 1

        response = client.post(
            f"/transactions/{data['id']}/payments",
            json={"amount": "300.00", "payment_date": "2026-06-10"},
            headers=admin_headers
        )
        assert response.status_code == 201

        response = client.get(f"/transactions/{data['id']}", headers=admin_headers)
        assert response.json()["status"] == "paid"
        assert Decimal(response.json()["balance_due"]) == ZERO

    def test_list_filters(self, db_session, admin_headers, make_transaction):
        make_transaction("10.00", transaction_date=date(2026, 1, 10))
        make_transaction("20.00", status=TransactionStatus.PAID, transaction_date=date(2026, 2, 10))

        response = client.get("/transactions/", params={"status": "paid"}, headers=admin_headers)
        assert response.json()["total"] == 1

        response = client.get("/transactions/", params={"start_date": "2026-02-01"}, headers=admin_headers)
        assert response.json()["total"] == 1

        response = client.get("/transactions/", params={"search": "Northwind"}, headers=admin_headers)
        assert response.json()["total"] == 2

    def test_client_sees_only_own_transactions(self, db_session, admin_context, client_headers, make_transaction):
        other = ClientService(db_session).create_client(
            ClientCreate(business_name="Someone Else"), admin_context.tenant_id, admin_context.user_id
        )
        mine = make_transaction("10.00")
        theirs = make_transaction("20.00", client=other)

        response = client.get("/transactions/", headers=client_headers)
        assert [t["id"] for t in response.json()["transactions"]] == [str(mine.id)]
        assert client.get(f"/transactions/{theirs.id}", headers=client_headers).status_code == 404
        assert client.get(f"/transactions/{mine.id}", headers=client_headers).status_code == 200

    def test_client_cannot_create_or_pay(self, db_session, client_headers, make_transaction, sample_client):
        transaction = make_transaction("10.00")
        response = client.post(
            "/transactions/",
            json={"client_id": str(sample_client.id), "items": [{"description": "x", "quantity": "1", "unit_price": "1"}]},
            headers=client_headers
        )
        assert response.status_code == 403
        response = client.post(f"/transactions/{transaction.id}/payments", json={"amount": "1.00"}, headers=client_headers)
        assert response.status_code == 403

    def test_delete_requires_admin(self, db_session, admin_headers, staff_headers, make_transaction):
        transaction = make_transaction("10.00")
        assert client.delete(f"/transactions/{transaction.id}", headers=staff_headers).status_code == 403
        assert client.delete(f"/transactions/{transaction.id}", headers=admin_headers).status_code == 204
        assert client.get(f"/transactions/{transaction.id}", headers=admin_headers).status_code == 404
