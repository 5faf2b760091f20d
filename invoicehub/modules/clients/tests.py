"""
Tests for the Clients module

Covers:
- Code generation (CLT-NNNN)
- CRUD with tenant isolation
- total_spent kept in line with the ledger
- Cascading delete of transactions, ledger entries and portal users
- Payment history with summary
"""

import pytest
from datetime import date
from decimal import Decimal
from fastapi import HTTPException
from fastapi.testclient import TestClient

from invoicehub.main import app
from invoicehub.modules.auth.models import User
from invoicehub.modules.clients.models import Client
from invoicehub.modules.clients.schemas import ClientCreate, ClientUpdate
from invoicehub.modules.clients.service import ClientService
from invoicehub.modules.ledger.models import LedgerEntry
from invoicehub.modules.transactions.models import Transaction, TransactionStatus, TransactionPayment
from invoicehub.modules.transactions.schemas import PaymentCreate
from invoicehub.modules.transactions.service import TransactionService


client = TestClient(app)


# ===== FIXTURES =====

@pytest.fixture
def sample_client_data():
    return {
        "business_name": "Blue Harbor Cafe",
        "contact_person": "Lena Park",
        "email": "lena@blueharbor.com",
        "phone": "(503) 555-0199",
        "city": "Seattle",
        "payment_schedule": "weekly"
    }


# ===== SERVICE =====

class TestClientService:
    """Tests for ClientService"""

    def test_codes_are_sequential(self, db_session, admin_context, sample_client_data):
        service = ClientService(db_session)
        first = service.create_client(ClientCreate(**sample_client_data), admin_context.tenant_id, admin_context.user_id)
        second = service.create_client(
            ClientCreate(**{**sample_client_data, "business_name": "Second"}),
            admin_context.tenant_id, admin_context.user_id
        )
        assert first.code == "CLT-0001"
        assert second.code == "CLT-0002"
        assert first.total_spent == Decimal("0.00")

    def test_code_after_gap(self, db_session, admin_context, sample_client_data):
        service = ClientService(db_session)
        first = service.create_client(ClientCreate(**sample_client_data), admin_context.tenant_id, admin_context.user_id)
        first.code = "CLT-0007"
        db_session.commit()

        assert service.generate_client_code(admin_context.tenant_id) == "CLT-0008"

    def test_codes_are_per_tenant(self, db_session, admin_context, other_admin_auth, sample_client_data):
        service = ClientService(db_session)
        service.create_client(ClientCreate(**sample_client_data), admin_context.tenant_id, admin_context.user_id)
        other = service.create_client(
            ClientCreate(**sample_client_data), other_admin_auth.user.tenant_id, other_admin_auth.user.id
        )
        assert other.code == "CLT-0001"

    def test_list_with_search(self, db_session, admin_context, sample_client, sample_client_data):
        service = ClientService(db_session)
        service.create_client(ClientCreate(**sample_client_data), admin_context.tenant_id, admin_context.user_id)

        assert service.list_clients(admin_context.tenant_id).total == 2
        result = service.list_clients(admin_context.tenant_id, search="harbor")
        assert result.total == 1
        result = service.list_clients(admin_context.tenant_id, search="CLT-0001")
        assert result.clients[0].business_name == "Northwind Traders"
        result = service.list_clients(admin_context.tenant_id, search="Lena")
        assert result.total == 1
        assert result.clients[0].business_name == "Blue Harbor Cafe"

    def test_update_rejects_null_name(self, db_session, admin_context, sample_client):
        with pytest.raises(HTTPException) as exc_info:
            ClientService(db_session).update_client(
                sample_client.id, ClientUpdate(business_name=None), admin_context.tenant_id
            )
        assert exc_info.value.status_code == 400

    def test_update_deactivates(self, db_session, admin_context, sample_client):
        updated = ClientService(db_session).update_client(
            sample_client.id, ClientUpdate(is_active=False, city="Salem"), admin_context.tenant_id
        )
        assert updated.is_active is False
        assert updated.city == "Salem"
        assert ClientService(db_session).count_active(admin_context.tenant_id) == 0

    def test_get_from_other_tenant(self, db_session, sample_client, other_admin_auth):
        with pytest.raises(HTTPException) as exc_info:
            ClientService(db_session).get_client(sample_client.id, other_admin_auth.user.tenant_id)
        assert exc_info.value.status_code == 404

    def test_total_spent_follows_payments(self, db_session, admin_context, sample_client, make_transaction):
        transaction = make_transaction("300.00")
        TransactionService(db_session).record_payment(
            transaction.id, PaymentCreate(amount=Decimal("120.00")), admin_context.tenant_id, admin_context.user_id
        )
        db_session.refresh(sample_client)
        assert sample_client.total_spent == Decimal("120.00")

        make_transaction("80.00", status=TransactionStatus.PAID)
        db_session.refresh(sample_client)
        assert sample_client.total_spent == Decimal("200.00")

    def test_delete_cascades(self, db_session, admin_context, sample_client, make_transaction, client_portal_auth):
        transaction = make_transaction("300.00")
        TransactionService(db_session).record_payment(
            transaction.id, PaymentCreate(amount=Decimal("100.00")), admin_context.tenant_id, admin_context.user_id
        )
        make_transaction("50.00", status=TransactionStatus.PAID)
        client_id = sample_client.id

        result = ClientService(db_session).delete_client(client_id, admin_context.tenant_id)

        assert result["transactions_deleted"] == 2
        assert result["ledger_entries_deleted"] == 2
        assert db_session.query(Client).filter(Client.id == client_id).first() is None
        assert db_session.query(Transaction).count() == 0
        assert db_session.query(TransactionPayment).count() == 0
        assert db_session.query(LedgerEntry).count() == 0

        portal_user = db_session.query(User).filter(User.id == client_portal_auth.user.id).first()
        assert portal_user.is_active is False
        assert portal_user.client_id is None

    def test_payment_history(self, db_session, admin_context, sample_client, make_transaction):
        service = TransactionService(db_session)
        first = make_transaction("200.00")
        second = make_transaction("100.00")
        service.record_payment(
            first.id, PaymentCreate(amount=Decimal("50.00"), payment_date=date(2026, 3, 1), payment_method="Cash"),
            admin_context.tenant_id, admin_context.user_id
        )
        service.record_payment(
            second.id, PaymentCreate(amount=Decimal("100.00"), payment_date=date(2026, 3, 5), payment_method="Card"),
            admin_context.tenant_id, admin_context.user_id
        )

        history = ClientService(db_session).get_client_payments(sample_client.id, admin_context.tenant_id)

        assert history.summary.payment_count == 2
        assert history.summary.total_paid == Decimal("150.00")
        assert history.summary.average_payment == Decimal("75.00")
        assert history.summary.by_method == {"Cash": Decimal("50.00"), "Card": Decimal("100.00")}
        assert history.summary.first_payment_date == date(2026, 3, 1)
        assert history.summary.last_payment_date == date(2026, 3, 5)
        assert history.payments[0].transaction_number == second.number


# ===== ENDPOINTS =====

class TestClientEndpoints:
    """HTTP tests for /clients"""

    def test_create_and_get(self, db_session, admin_headers, sample_client_data):
        response = client.post("/clients/", json=sample_client_data, headers=admin_headers)
        assert response.status_code == 201
        data = response.json()
        assert data["code"] == "CLT-0001"

        response = client.get(f"/clients/{data['id']}", headers=admin_headers)
        assert response.status_code == 200
        assert response.json()["business_name"] == "Blue Harbor Cafe"

    def test_create_invalid_email(self, db_session, admin_headers, sample_client_data):
        response = client.post("/clients/", json={**sample_client_data, "email": "nope"}, headers=admin_headers)
        assert response.status_code == 422

    def test_list_requires_staff_or_admin(self, db_session, admin_headers, client_headers, sample_client):
        assert client.get("/clients/", headers=client_headers).status_code == 403
        response = client.get("/clients/", headers=admin_headers)
        assert response.status_code == 200
        assert response.json()["total"] == 1

    def test_other_tenant_cannot_see_client(self, db_session, sample_client, other_admin_headers):
        response = client.get(f"/clients/{sample_client.id}", headers=other_admin_headers)
        assert response.status_code == 404

    def test_client_portal_profile(self, db_session, client_headers, sample_client):
        response = client.get("/clients/me", headers=client_headers)
        assert response.status_code == 200
        assert response.json()["id"] == str(sample_client.id)

    def test_client_portal_sees_only_itself(self, db_session, admin_context, client_headers, sample_client_data):
        other = ClientService(db_session).create_client(
            ClientCreate(**sample_client_data), admin_context.tenant_id, admin_context.user_id
        )
        assert client.get(f"/clients/{other.id}", headers=client_headers).status_code == 404
        assert client.get(f"/clients/{other.id}/payments", headers=client_headers).status_code == 404

    def test_my_transactions(self, db_session, client_headers, make_transaction):
        make_transaction("10.00")
        make_transaction("20.00")
        response = client.get("/clients/me/transactions", headers=client_headers)
        assert response.status_code == 200
        assert response.json()["total"] == 2

    def test_delete_disables_portal_login(self, db_session, admin_headers, client_headers, sample_client):
        response = client.delete(f"/clients/{sample_client.id}", headers=admin_headers)
        assert response.status_code == 200
        assert client.get("/clients/me", headers=client_headers).status_code == 401
