"""
Tests for invoice and statement PDF generation.
"""

import base64
import pytest
from datetime import date
from decimal import Decimal
from fastapi import HTTPException
from fastapi.testclient import TestClient

from invoicehub.main import app
from invoicehub.modules.invoices.service import InvoicePdfService, statement_status, to_base64
from invoicehub.modules.transactions.models import TransactionStatus
from invoicehub.modules.transactions.schemas import PaymentCreate
from invoicehub.modules.transactions.service import TransactionService


client = TestClient(app)


# ===== FIXTURES =====

@pytest.fixture
def week_of_work(db_session, admin_context, make_transaction):
    """Three transactions in the first week of June 2026: paid, partially paid, pending"""
    paid = make_transaction("120.00", status=TransactionStatus.PAID, transaction_date=date(2026, 6, 1))
    partial = make_transaction("200.00", transaction_date=date(2026, 6, 3))
    TransactionService(db_session).record_payment(
        partial.id, PaymentCreate(amount=Decimal("50.00")), admin_context.tenant_id, admin_context.user_id
    )
    pending = make_transaction("80.00", transaction_date=date(2026, 6, 5))
    return [paid, partial, pending]


# ===== SERVICE =====

class TestStatementStatus:

    def test_all_paid(self, week_of_work):
        assert statement_status([week_of_work[0]]) == "paid"

    def test_some_money_in(self, week_of_work):
        assert statement_status(week_of_work) == "partial"
        assert statement_status([week_of_work[1]]) == "partial"

    def test_nothing_paid(self, week_of_work):
        assert statement_status([week_of_work[2]]) == "pending"


class TestInvoicePdfService:

    def test_invoice_pdf(self, db_session, admin_context, week_of_work):
        document = InvoicePdfService(db_session).generate_invoice(week_of_work[1].id, admin_context)
        assert document.filename == f"Invoice_{week_of_work[1].number}.pdf"
        assert document.content.startswith(b"%PDF")

    def test_invoice_with_unicode_text(self, db_session, admin_context, sample_client, make_transaction):
        sample_client.business_name = "Café Zürich — 東京"
        db_session.commit()
        transaction = make_transaction("10.00")

        document = InvoicePdfService(db_session).generate_invoice(transaction.id, admin_context)
        assert document.content.startswith(b"%PDF")

    def test_invoice_hidden_from_other_clients(self, db_session, client_context, admin_context, make_transaction):
        from invoicehub.modules.clients.schemas import ClientCreate
        from invoicehub.modules.clients.service import ClientService

        other = ClientService(db_session).create_client(
            ClientCreate(business_name="Other Co"), admin_context.tenant_id, admin_context.user_id
        )
        transaction = make_transaction("10.00", client=other)

        with pytest.raises(HTTPException) as exc_info:
            InvoicePdfService(db_session).generate_invoice(transaction.id, client_context)
        assert exc_info.value.status_code == 404

    def test_statement_pdf(self, db_session, admin_context, sample_client, week_of_work):
        document = InvoicePdfService(db_session).generate_statement(
            sample_client.id, date(2026, 6, 1), date(2026, 6, 7), admin_context
        )
        assert document.filename == "Weekly_Invoice_2026-06-01_2026-06-07.pdf"
        assert document.content.startswith(b"%PDF")

    def test_statement_empty_period(self, db_session, admin_context, sample_client, week_of_work):
        with pytest.raises(HTTPException) as exc_info:
            InvoicePdfService(db_session).generate_statement(
                sample_client.id, date(2026, 7, 1), date(2026, 7, 7), admin_context
            )
        assert exc_info.value.status_code == 404

    def test_statement_inverted_range(self, db_session, admin_context, sample_client):
        with pytest.raises(HTTPException) as exc_info:
            InvoicePdfService(db_session).generate_statement(
                sample_client.id, date(2026, 6, 7), date(2026, 6, 1), admin_context
            )
        assert exc_info.value.status_code == 400

    def test_base64(self, db_session, admin_context, week_of_work):
        document = InvoicePdfService(db_session).generate_invoice(week_of_work[0].id, admin_context)
        filename, data = to_base64(document)
        assert filename == document.filename
        assert base64.b64decode(data) == document.content


# ===== ENDPOINTS =====

class TestInvoiceEndpoints:

    def test_download_invoice(self, db_session, admin_headers, week_of_work):
        response = client.get(f"/invoices/{week_of_work[0].id}/pdf", headers=admin_headers)
        assert response.status_code == 200
        assert response.headers["content-type"] == "application/pdf"
        assert week_of_work[0].number in response.headers["content-disposition"]
        assert response.content.startswith(b"%PDF")

    def test_invoice_base64_endpoint(self, db_session, admin_headers, week_of_work):
        response = client.get(f"/invoices/{week_of_work[0].id}/pdf/base64", headers=admin_headers)
        assert response.status_code == 200
        body = response.json()
        assert body["content_type"] == "application/pdf"
        assert base64.b64decode(body["data"]).startswith(b"%PDF")

    def test_client_downloads_own_statement(self, db_session, client_headers, sample_client, week_of_work):
        response = client.get(
            "/invoices/statement",
            params={"client_id": str(sample_client.id), "start_date": "2026-06-01", "end_date": "2026-06-07"},
            headers=client_headers
        )
        assert response.status_code == 200
        assert response.content.startswith(b"%PDF")

    def test_other_tenant_cannot_download(self, db_session, other_admin_headers, week_of_work):
        response = client.get(f"/invoices/{week_of_work[0].id}/pdf", headers=other_admin_headers)
        assert response.status_code == 404
