"""
Invoice documents rendered with fpdf2.

Two documents are produced:
- a single transaction invoice, with line items and payment status
- a statement for a client over a date range ("weekly invoice"), one row
  per transaction
"""
from fastapi import HTTPException, status
from sqlalchemy.orm import Session
from fpdf import FPDF
from typing import List, Tuple
from uuid import UUID
from datetime import date
from decimal import Decimal
import base64
import logging

from invoicehub.modules.auth.schemas import AuthContext
from invoicehub.modules.clients.models import Client
from invoicehub.modules.company.service import get_branding
from invoicehub.modules.transactions.models import Transaction, TransactionStatus
from invoicehub.modules.transactions.service import TransactionService
from invoicehub.modules.invoices.schemas import PdfDocument
from invoicehub.common.validators import money
from invoicehub.core.config import settings

logger = logging.getLogger(__name__)

STATUS_COLORS = {
    "paid": (40, 167, 69),
    "partial": (255, 152, 0),
    "pending": (255, 193, 7),
    "overdue": (220, 53, 69),
    "draft": (108, 117, 125),
}


def _text(value) -> str:
    """Core PDF fonts are latin-1 only."""
    if value is None:
        return ""
    return str(value).encode("latin-1", "replace").decode("latin-1")


def _amount(value) -> str:
    return _text(f"{settings.CURRENCY_SYMBOL}{money(value):,.2f}")


def statement_status(transactions: List[Transaction]) -> str:
    """paid when every transaction is paid, partial when any money came in, else pending."""
    if transactions and all(t.status == TransactionStatus.PAID for t in transactions):
        return "paid"
    if any(t.status == TransactionStatus.PAID or t.paid_amount > 0 for t in transactions):
        return "partial"
    return "pending"


class InvoicePdfService:
    def __init__(self, db: Session):
        self.db = db
        self.transactions = TransactionService(db)

    # ===== Layout helpers =====

    def _new_document(self, tenant_id: UUID, title: str) -> FPDF:
        branding = get_branding(self.db, tenant_id)

        pdf = FPDF()
        pdf.add_page()
        pdf.set_auto_page_break(auto=True, margin=15)

        pdf.set_font("Helvetica", "B", 20)
        pdf.cell(0, 10, _text(branding["name"]), new_x="LMARGIN", new_y="NEXT", align="C")
        pdf.set_font("Helvetica", "", 10)
        for key in ("address", "email", "phone"):
            if branding[key]:
                pdf.cell(0, 5, _text(branding[key]), new_x="LMARGIN", new_y="NEXT", align="C")
        if branding["tax_id"]:
            pdf.cell(0, 5, _text(f"Tax ID: {branding['tax_id']}"), new_x="LMARGIN", new_y="NEXT", align="C")
        pdf.ln(4)

        pdf.set_font("Helvetica", "B", 16)
        pdf.cell(0, 10, _text(title), new_x="LMARGIN", new_y="NEXT", align="C")
        pdf.ln(2)
        pdf.set_fill_color(240, 240, 240)
        return pdf

    def _status_badge(self, pdf: FPDF, status_value: str) -> None:
        r, g, b = STATUS_COLORS.get(status_value, (108, 117, 125))
        pdf.set_font("Helvetica", "B", 11)
        pdf.set_text_color(r, g, b)
        pdf.cell(0, 7, _text(f"  Status: {status_value.upper()}"), new_x="LMARGIN", new_y="NEXT")
        pdf.set_text_color(0, 0, 0)

    def _bill_to(self, pdf: FPDF, client: Client) -> None:
        pdf.set_font("Helvetica", "B", 11)
        pdf.cell(0, 7, "  Bill To", new_x="LMARGIN", new_y="NEXT", fill=True)
        pdf.set_font("Helvetica", "", 10)
        lines = [client.business_name, client.contact_person, client.street]
        city_line = ", ".join(part for part in (client.city, client.state, client.zip) if part)
        lines += [city_line, client.email, client.phone]
        for line in lines:
            if line:
                pdf.cell(0, 6, _text(f"  {line}"), new_x="LMARGIN", new_y="NEXT")
        pdf.ln(4)

    @staticmethod
    def _total_row(pdf: FPDF, label: str, value, bold: bool = False) -> None:
        pdf.set_font("Helvetica", "B" if bold else "", 12 if bold else 10)
        pdf.cell(130, 7 if bold else 6, _text(f"  {label}"), new_x="RIGHT")
        pdf.cell(60, 7 if bold else 6, _amount(value), align="R", new_x="LMARGIN", new_y="NEXT")

    # ===== Documents =====

    def render_invoice(self, transaction: Transaction) -> bytes:
        pdf = self._new_document(transaction.tenant_id, "INVOICE")

        pdf.set_font("Helvetica", "B", 11)
        pdf.cell(0, 7, "  Invoice Details", new_x="LMARGIN", new_y="NEXT", fill=True)
        pdf.set_font("Helvetica", "", 10)
        pdf.cell(95, 6, _text(f"  Invoice #: {transaction.number}"), new_x="RIGHT")
        pdf.cell(95, 6, _text(f"Date: {transaction.transaction_date}"), new_x="LMARGIN", new_y="NEXT")
        pdf.cell(95, 6, _text(f"  Reference: {transaction.reference_number or '-'}"), new_x="RIGHT")
        pdf.cell(95, 6, _text(f"Due Date: {transaction.due_date}"), new_x="LMARGIN", new_y="NEXT")
        self._status_badge(pdf, transaction.status.value)
        pdf.ln(4)

        self._bill_to(pdf, transaction.client)

        # Items
        pdf.set_font("Helvetica", "B", 9)
        pdf.cell(75, 6, "  Item", border="B")
        pdf.cell(20, 6, "Qty", border="B", align="C")
        pdf.cell(35, 6, "Unit Price", border="B", align="R")
        pdf.cell(20, 6, "Tax", border="B", align="R")
        pdf.cell(40, 6, "Amount", border="B", align="R", new_x="LMARGIN", new_y="NEXT")
        pdf.set_font("Helvetica", "", 9)
        for item in transaction.items:
            pdf.cell(75, 5, _text(f"  {item.description}"[:48]))
            pdf.cell(20, 5, _text(f"{item.quantity:g}"), align="C")
            pdf.cell(35, 5, _amount(item.unit_price), align="R")
            pdf.cell(20, 5, _text(f"{item.tax_rate:g}%"), align="R")
            pdf.cell(40, 5, _amount(item.total), align="R", new_x="LMARGIN", new_y="NEXT")
        pdf.ln(4)

        self._total_row(pdf, "Subtotal:", transaction.subtotal)
        self._total_row(pdf, "Tax:", transaction.tax_amount)
        self._total_row(pdf, "TOTAL:", transaction.total_amount, bold=True)

        paid = transaction.paid_amount
        if paid > 0 and transaction.status != TransactionStatus.PAID:
            pdf.ln(2)
            self._total_row(pdf, "Paid:", paid)
            self._total_row(pdf, "Balance Due:", transaction.balance_due, bold=True)
        pdf.ln(4)

        if transaction.payment_method:
            pdf.set_font("Helvetica", "", 10)
            pdf.cell(0, 6, _text(f"  Payment Method: {transaction.payment_method}"), new_x="LMARGIN", new_y="NEXT")
        for label, value in (("Notes", transaction.notes), ("Terms", transaction.terms)):
            if value:
                pdf.ln(2)
                pdf.set_font("Helvetica", "B", 11)
                pdf.cell(0, 7, _text(f"  {label}"), new_x="LMARGIN", new_y="NEXT", fill=True)
                pdf.set_font("Helvetica", "", 10)
                pdf.multi_cell(0, 5, _text(value))

        return bytes(pdf.output())

    def render_statement(self, client: Client, transactions: List[Transaction], start: date, end: date) -> bytes:
        number = f"WEEK-{start:%Y%m%d}-{end:%Y%m%d}"
        pdf = self._new_document(client.tenant_id, "STATEMENT")

        pdf.set_font("Helvetica", "B", 11)
        pdf.cell(0, 7, "  Statement Details", new_x="LMARGIN", new_y="NEXT", fill=True)
        pdf.set_font("Helvetica", "", 10)
        pdf.cell(95, 6, _text(f"  Statement #: {number}"), new_x="RIGHT")
        pdf.cell(95, 6, _text(f"Period: {start} to {end}"), new_x="LMARGIN", new_y="NEXT")
        self._status_badge(pdf, statement_status(transactions))
        pdf.ln(4)

        self._bill_to(pdf, client)

        pdf.set_font("Helvetica", "B", 9)
        pdf.cell(35, 6, "  Number", border="B")
        pdf.cell(25, 6, "Date", border="B")
        pdf.cell(65, 6, "Description", border="B")
        pdf.cell(20, 6, "Status", border="B", align="C")
        pdf.cell(45, 6, "Amount", border="B", align="R", new_x="LMARGIN", new_y="NEXT")

        pdf.set_font("Helvetica", "", 9)
        total = Decimal("0.00")
        received = Decimal("0.00")
        for transaction in transactions:
            description = ", ".join(item.description for item in transaction.items) or "-"
            if transaction.status == TransactionStatus.PAID:
                paid = transaction.total_amount
            else:
                paid = transaction.paid_amount
            if transaction.status == TransactionStatus.PARTIAL:
                amount_text = _text(f"{_amount(paid)} / {_amount(transaction.total_amount)}")
            else:
                amount_text = _amount(transaction.total_amount)

            pdf.cell(35, 5, _text(f"  {transaction.number}"))
            pdf.cell(25, 5, _text(transaction.transaction_date))
            pdf.cell(65, 5, _text(description[:40]))
            pdf.cell(20, 5, _text(transaction.status.value), align="C")
            pdf.cell(45, 5, amount_text, align="R", new_x="LMARGIN", new_y="NEXT")

            total += transaction.total_amount
            received += paid
        pdf.ln(4)

        self._total_row(pdf, "Total:", total)
        self._total_row(pdf, "Paid:", received)
        self._total_row(pdf, "Balance Due:", total - received, bold=True)

        return bytes(pdf.output())

    def generate_invoice(self, transaction_id: UUID, auth_context: AuthContext) -> PdfDocument:
        transaction = self.transactions.get_transaction(transaction_id, auth_context)
        content = self.render_invoice(transaction)
        logger.info(f"Invoice PDF generated for {transaction.number} ({len(content)} bytes)")
        return PdfDocument(filename=f"Invoice_{transaction.number}.pdf", content=content)

    def generate_statement(
        self, client_id: UUID, start: date, end: date, auth_context: AuthContext
    ) -> PdfDocument:
        if auth_context.is_client and auth_context.client_id != client_id:
            raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Client not found")
        if end < start:
            raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="end_date cannot be before start_date")

        client = self.db.query(Client).filter(
            Client.id == client_id,
            Client.tenant_id == auth_context.tenant_id
        ).first()
        if not client:
            raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Client not found")

        transactions = self.transactions.transactions_in_range(auth_context.tenant_id, client_id, start, end)
        if not transactions:
            raise HTTPException(
                status_code=status.HTTP_404_NOT_FOUND,
                detail="No transactions found for this client in the selected period"
            )

        content = self.render_statement(client, transactions, start, end)
        return PdfDocument(filename=f"Weekly_Invoice_{start}_{end}.pdf", content=content)


def to_base64(document: PdfDocument) -> Tuple[str, str]:
    return document.filename, base64.b64encode(document.content).decode("ascii")
