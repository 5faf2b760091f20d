"""
Transaction service

Every mutation here runs as a single database transaction and keeps three
things consistent before committing:
- the transaction status, derived from its payments
- the ledger mirror: one income entry per payment plus, for a paid
  transaction, a settlement entry for whatever the payments do not cover
- the client's total_spent, recomputed from the ledger
"""
from fastapi import HTTPException, status
from sqlalchemy import or_, and_
from sqlalchemy.orm import Session, selectinload, joinedload
from typing import List, Optional, Tuple
from uuid import UUID
from datetime import date, timedelta
from decimal import Decimal
import logging

from invoicehub.modules.transactions.models import (
    Transaction, TransactionItem, TransactionPayment, TransactionSequence, TransactionStatus
)
from invoicehub.modules.transactions.schemas import (
    TransactionCreate, TransactionUpdate, TransactionItemCreate, TransactionFilters, TransactionList,
    TransactionOut, PaymentCreate, PaymentUpdate, PaymentSummary, OverdueSweepResult
)
from invoicehub.modules.auth.schemas import AuthContext
from invoicehub.modules.clients.models import Client
from invoicehub.modules.clients.service import ClientService
from invoicehub.modules.products.models import Product
from invoicehub.modules.ledger.models import LedgerEntryType, ReferenceType
from invoicehub.modules.ledger.service import LedgerService
from invoicehub.common.validators import money
from invoicehub.core.config import settings

logger = logging.getLogger(__name__)

ZERO = Decimal("0.00")


def normalize_status(requested: TransactionStatus, paid_total: Decimal, total: Decimal) -> TransactionStatus:
    """
    Status a transaction ends up with when a caller asks for `requested`.
    Fully covered transactions are always paid; paid may be set explicitly.
    """
    if total > 0 and paid_total >= total:
        return TransactionStatus.PAID
    if requested == TransactionStatus.PAID:
        return TransactionStatus.PAID
    if paid_total > 0:
        return TransactionStatus.OVERDUE if requested == TransactionStatus.OVERDUE else TransactionStatus.PARTIAL
    if requested == TransactionStatus.PARTIAL:
        return TransactionStatus.PENDING
    return requested


def status_after_payments(
    current: TransactionStatus,
    paid_total: Decimal,
    total: Decimal,
    due_date: Optional[date] = None,
    today: Optional[date] = None
) -> TransactionStatus:
    """
    Status once payments changed; payments override an explicit paid.
    An open balance past its due date is overdue.
    """
    if total > 0 and paid_total >= total:
        return TransactionStatus.PAID
    if paid_total > 0:
        new_status = TransactionStatus.OVERDUE if current == TransactionStatus.OVERDUE else TransactionStatus.PARTIAL
    elif current in (TransactionStatus.PARTIAL, TransactionStatus.PAID):
        new_status = TransactionStatus.PENDING
    else:
        return current
    if due_date and due_date < (today or date.today()):
        return TransactionStatus.OVERDUE
    return new_status


class TransactionService:
    def __init__(self, db: Session):
        self.db = db
        self.ledger = LedgerService(db)
        self.clients = ClientService(db)

    # ===== Helpers =====

    def _get(self, transaction_id: UUID, tenant_id: UUID) -> Transaction:
        transaction = self.db.query(Transaction).options(
            joinedload(Transaction.client),
            selectinload(Transaction.items),
            selectinload(Transaction.payments)
        ).filter(
            Transaction.id == transaction_id,
            Transaction.tenant_id == tenant_id
        ).first()
        if not transaction:
            raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Transaction not found")
        return transaction

    @staticmethod
    def _status_after_payments(transaction: Transaction) -> TransactionStatus:
        return status_after_payments(
            transaction.status, transaction.paid_amount, transaction.total_amount, transaction.due_date
        )

    def get_transaction(self, transaction_id: UUID, auth_context: AuthContext) -> Transaction:
        """Tenant-scoped lookup; client users only see their own transactions."""
        transaction = self._get(transaction_id, auth_context.tenant_id)
        if auth_context.is_client and transaction.client_id != auth_context.client_id:
            raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Transaction not found")
        return transaction

    def _get_client(self, client_id: UUID, tenant_id: UUID) -> Client:
        client = self.db.query(Client).filter(
            Client.id == client_id,
            Client.tenant_id == tenant_id
        ).first()
        if not client:
            raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Client not found")
        return client

    def _resolve_items(self, items: List[TransactionItemCreate], tenant_id: UUID) -> List[dict]:
        """Fill product defaults and compute line totals."""
        product_ids = {item.product_id for item in items if item.product_id}
        products = {}
        if product_ids:
            products = {
                p.id: p for p in self.db.query(Product).filter(
                    Product.id.in_(product_ids),
                    Product.tenant_id == tenant_id
                ).all()
            }
            missing = product_ids - set(products)
            if missing:
                raise HTTPException(
                    status_code=status.HTTP_404_NOT_FOUND,
                    detail=f"Product not found: {', '.join(str(m) for m in missing)}"
                )

        lines = []
        for item in items:
            product = products.get(item.product_id) if item.product_id else None
            unit_price = item.unit_price if item.unit_price is not None else product.price
            tax_rate = item.tax_rate if item.tax_rate is not None else (product.tax_rate if product else ZERO)
            description = (item.description or "").strip() or product.name
            quantity = money(item.quantity)
            unit_price = money(unit_price)
            lines.append({
                "product_id": item.product_id,
                "description": description,
                "quantity": quantity,
                "unit_price": unit_price,
                "tax_rate": money(tax_rate),
                "total": money(quantity * unit_price),
            })
        return lines

    @staticmethod
    def calculate_totals(lines: List[dict]) -> Tuple[Decimal, Decimal, Decimal]:
        """subtotal, tax and total for resolved lines, rounded half-up."""
        subtotal = money(sum((line["total"] for line in lines), ZERO))
        tax_amount = money(sum((line["total"] * line["tax_rate"] / Decimal("100") for line in lines), ZERO))
        return subtotal, tax_amount, money(subtotal + tax_amount)

    def generate_number(self, tenant_id: UUID, year: int) -> str:
        """Sequential per tenant and year: INV-2026-0001."""
        sequence = self.db.query(TransactionSequence).filter(
            TransactionSequence.tenant_id == tenant_id,
            TransactionSequence.year == year
        ).with_for_update().first()

        if not sequence:
            sequence = TransactionSequence(
                tenant_id=tenant_id,
                year=year,
                current_number=0,
                prefix=settings.INVOICE_PREFIX
            )
            self.db.add(sequence)
            self.db.flush()

        sequence.current_number += 1
        return f"{sequence.prefix or settings.INVOICE_PREFIX}-{year}-{sequence.current_number:04d}"

    def _sync_ledger(self, transaction: Transaction) -> None:
        """Bring the ledger mirror and client total in line with the transaction."""
        self.db.flush()
        client_name = transaction.client.business_name if transaction.client else ""

        for payment in transaction.payments:
            self.ledger.upsert_reference(
                transaction.tenant_id,
                ReferenceType.TRANSACTION_PAYMENT,
                payment.ledger_reference,
                entry_type=LedgerEntryType.INCOME,
                amount=payment.amount,
                entry_date=payment.payment_date,
                description=f"Payment for Invoice {transaction.number} - {client_name}",
                client_id=transaction.client_id,
                created_by=payment.created_by
            )

        remaining = money(transaction.total_amount - transaction.paid_amount)
        if transaction.status == TransactionStatus.PAID and remaining > 0:
            self.ledger.upsert_reference(
                transaction.tenant_id,
                ReferenceType.CLIENT_TRANSACTION,
                transaction.number,
                entry_type=LedgerEntryType.INCOME,
                amount=remaining,
                entry_date=transaction.transaction_date,
                description=f"Invoice {transaction.number} - {client_name}",
                client_id=transaction.client_id,
                created_by=transaction.created_by
            )
        else:
            self.ledger.delete_reference(transaction.tenant_id, ReferenceType.CLIENT_TRANSACTION, transaction.number)

        self.clients.recalculate_total_spent(transaction.tenant_id, transaction.client_id)

    # ===== Transactions =====

    def create_transaction(self, data: TransactionCreate, tenant_id: UUID, user_id: UUID) -> Transaction:
        try:
            client = self._get_client(data.client_id, tenant_id)
            lines = self._resolve_items(data.items, tenant_id)
            subtotal, tax_amount, total_amount = self.calculate_totals(lines)

            transaction = Transaction(
                tenant_id=tenant_id,
                number=self.generate_number(tenant_id, data.transaction_date.year),
                client_id=client.id,
                created_by=user_id,
                transaction_date=data.transaction_date,
                due_date=data.due_date or data.transaction_date + timedelta(days=settings.DEFAULT_DUE_DAYS),
                reference_number=data.reference_number,
                notes=data.notes,
                terms=data.terms,
                payment_method=data.payment_method,
                status=normalize_status(data.status, ZERO, total_amount),
                subtotal=subtotal,
                tax_amount=tax_amount,
                total_amount=total_amount
            )
            transaction.client = client
            transaction.items = [TransactionItem(**line) for line in lines]
            self.db.add(transaction)

            self._sync_ledger(transaction)
            self.db.commit()
            self.db.refresh(transaction)

            logger.info(f"Transaction {transaction.number} created ({transaction.status.value}, total {total_amount})")
            return transaction

        except HTTPException:
            self.db.rollback()
            raise
        except Exception as e:
            self.db.rollback()
            logger.error(f"Error creating transaction: {e}")
            raise HTTPException(
                status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
                detail=f"Error creating transaction: {str(e)}"
            )

    def update_transaction(self, transaction_id: UUID, data: TransactionUpdate, tenant_id: UUID) -> Transaction:
        try:
            transaction = self._get(transaction_id, tenant_id)
            update_data = data.model_dump(exclude_unset=True, exclude={"items", "status", "client_id"})
            previous_client_id = transaction.client_id

            if data.client_id and data.client_id != transaction.client_id:
                transaction.client = self._get_client(data.client_id, tenant_id)
                transaction.client_id = data.client_id

            for field, value in update_data.items():
                if value is None and field in ("transaction_date", "due_date"):
                    continue
                setattr(transaction, field, value)

            if transaction.due_date < transaction.transaction_date:
                raise HTTPException(
                    status_code=status.HTTP_400_BAD_REQUEST,
                    detail="due_date cannot be before transaction_date"
                )

            if data.items is not None:
                lines = self._resolve_items(data.items, tenant_id)
                subtotal, tax_amount, total_amount = self.calculate_totals(lines)
                paid_total = transaction.paid_amount
                if total_amount < paid_total:
                    raise HTTPException(
                        status_code=status.HTTP_400_BAD_REQUEST,
                        detail=f"New total {total_amount} is below the {paid_total} already paid"
                    )
                transaction.items = [TransactionItem(**line) for line in lines]
                transaction.subtotal = subtotal
                transaction.tax_amount = tax_amount
                transaction.total_amount = total_amount

            requested = data.status or transaction.status
            transaction.status = normalize_status(requested, transaction.paid_amount, transaction.total_amount)

            self._sync_ledger(transaction)
            if previous_client_id != transaction.client_id:
                self.clients.recalculate_total_spent(tenant_id, previous_client_id)

            self.db.commit()
            self.db.refresh(transaction)
            logger.info(f"Transaction {transaction.number} updated ({transaction.status.value})")
            return transaction

        except HTTPException:
            self.db.rollback()
            raise
        except Exception as e:
            self.db.rollback()
            raise HTTPException(
                status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
                detail=f"Error updating transaction: {str(e)}"
            )

    def delete_transaction(self, transaction_id: UUID, tenant_id: UUID) -> None:
        """Removes payments, items and every ledger entry mirroring them."""
        try:
            transaction = self._get(transaction_id, tenant_id)
            client_id = transaction.client_id
            number = transaction.number

            for payment in transaction.payments:
                self.ledger.delete_reference(tenant_id, ReferenceType.TRANSACTION_PAYMENT, payment.ledger_reference)
            self.ledger.delete_reference(tenant_id, ReferenceType.CLIENT_TRANSACTION, number)

            self.db.delete(transaction)
            self.db.flush()
            self.clients.recalculate_total_spent(tenant_id, client_id)
            self.db.commit()
            logger.info(f"Transaction {number} deleted")

        except HTTPException:
            self.db.rollback()
            raise
        except Exception as e:
            self.db.rollback()
            raise HTTPException(
                status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
                detail=f"Error deleting transaction: {str(e)}"
            )

    def list_transactions(
        self,
        auth_context: AuthContext,
        filters: TransactionFilters,
        limit: int = 100,
        offset: int = 0
    ) -> TransactionList:
        query = self.db.query(Transaction).join(Client, Transaction.client_id == Client.id).filter(
            Transaction.tenant_id == auth_context.tenant_id
        )

        if auth_context.is_client:
            query = query.filter(Transaction.client_id == auth_context.client_id)
        elif filters.client_id:
            query = query.filter(Transaction.client_id == filters.client_id)

        if filters.status:
            query = query.filter(Transaction.status == filters.status)
        if filters.date_from:
            query = query.filter(Transaction.transaction_date >= filters.date_from)
        if filters.date_to:
            query = query.filter(Transaction.transaction_date <= filters.date_to)
        if filters.search:
            pattern = f"%{filters.search.strip()}%"
            query = query.filter(or_(
                Transaction.number.ilike(pattern),
                Transaction.reference_number.ilike(pattern),
                Client.business_name.ilike(pattern)
            ))

        total = query.count()
        transactions = query.options(
            joinedload(Transaction.client),
            selectinload(Transaction.payments)
        ).order_by(
            Transaction.transaction_date.desc(), Transaction.number.desc()
        ).offset(offset).limit(limit).all()

        return TransactionList(
            transactions=[TransactionOut.model_validate(t) for t in transactions],
            total=total,
            limit=limit,
            offset=offset
        )

    def mark_overdue(self, tenant_id: UUID, today: Optional[date] = None) -> OverdueSweepResult:
        """Pending or partially paid transactions past their due date become overdue."""
        today = today or date.today()
        try:
            transactions = self.db.query(Transaction).filter(
                Transaction.tenant_id == tenant_id,
                Transaction.status.in_([TransactionStatus.PENDING, TransactionStatus.PARTIAL]),
                Transaction.due_date < today
            ).all()
            for transaction in transactions:
                transaction.status = TransactionStatus.OVERDUE
            self.db.commit()

            numbers = [t.number for t in transactions]
            if numbers:
                logger.info(f"Marked {len(numbers)} transactions overdue in tenant {tenant_id}")
            return OverdueSweepResult(updated=len(numbers), numbers=numbers)
        except Exception as e:
            self.db.rollback()
            raise HTTPException(
                status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
                detail=f"Error updating overdue transactions: {str(e)}"
            )

    # ===== Payments =====

    def _get_payment(self, transaction: Transaction, payment_id: UUID) -> TransactionPayment:
        payment = next((p for p in transaction.payments if p.id == payment_id), None)
        if payment is None:
            raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Payment not found")
        return payment

    def record_payment(self, transaction_id: UUID, data: PaymentCreate, tenant_id: UUID, user_id: UUID) -> TransactionPayment:
        try:
            transaction = self._get(transaction_id, tenant_id)

            if transaction.status == TransactionStatus.DRAFT:
                raise HTTPException(
                    status_code=status.HTTP_400_BAD_REQUEST,
                    detail="Payments cannot be recorded on a draft transaction"
                )
            if transaction.status == TransactionStatus.PAID:
                raise HTTPException(
                    status_code=status.HTTP_400_BAD_REQUEST,
                    detail="Transaction is already paid"
                )

            remaining = money(transaction.total_amount - transaction.paid_amount)
            amount = money(data.amount)
            if amount > remaining:
                raise HTTPException(
                    status_code=status.HTTP_400_BAD_REQUEST,
                    detail=f"Payment of {amount} exceeds the remaining balance of {remaining}"
                )

            payment = TransactionPayment(
                tenant_id=tenant_id,
                amount=amount,
                payment_date=data.payment_date,
                payment_method=data.payment_method or transaction.payment_method,
                reference_number=data.reference_number,
                notes=data.notes,
                created_by=user_id
            )
            transaction.payments.append(payment)

            transaction.status = self._status_after_payments(transaction)
            self._sync_ledger(transaction)
            self.db.commit()
            self.db.refresh(payment)

            logger.info(f"Payment {payment.id} of {amount} recorded on {transaction.number} ({transaction.status.value})")
            return payment

        except HTTPException:
            self.db.rollback()
            raise
        except Exception as e:
            self.db.rollback()
            raise HTTPException(
                status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
                detail=f"Error recording payment: {str(e)}"
            )

    def update_payment(
        self, transaction_id: UUID, payment_id: UUID, data: PaymentUpdate, tenant_id: UUID
    ) -> TransactionPayment:
        try:
            transaction = self._get(transaction_id, tenant_id)
            payment = self._get_payment(transaction, payment_id)
            update_data = data.model_dump(exclude_unset=True)
            amount_changed = False

            if update_data.get("amount") is not None:
                amount = money(update_data["amount"])
                amount_changed = amount != money(payment.amount)
                others = money(transaction.paid_amount - payment.amount)
                if others + amount > transaction.total_amount:
                    raise HTTPException(
                        status_code=status.HTTP_400_BAD_REQUEST,
                        detail=f"Payment of {amount} exceeds the remaining balance of "
                               f"{money(transaction.total_amount - others)}"
                    )
                payment.amount = amount
            if update_data.get("payment_date") is not None:
                payment.payment_date = update_data["payment_date"]
            for field in ("payment_method", "reference_number", "notes"):
                if field in update_data:
                    setattr(payment, field, update_data[field])

            # date and metadata edits leave the status alone
            if amount_changed:
                transaction.status = self._status_after_payments(transaction)
            self._sync_ledger(transaction)
            self.db.commit()
            self.db.refresh(payment)
            return payment

        except HTTPException:
            self.db.rollback()
            raise
        except Exception as e:
            self.db.rollback()
            raise HTTPException(
                status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
                detail=f"Error updating payment: {str(e)}"
            )

    def delete_payment(self, transaction_id: UUID, payment_id: UUID, tenant_id: UUID) -> Transaction:
        try:
            transaction = self._get(transaction_id, tenant_id)
            payment = self._get_payment(transaction, payment_id)

            self.ledger.delete_reference(tenant_id, ReferenceType.TRANSACTION_PAYMENT, payment.ledger_reference)
            transaction.payments.remove(payment)

            transaction.status = self._status_after_payments(transaction)
            self._sync_ledger(transaction)
            self.db.commit()
            self.db.refresh(transaction)
            logger.info(f"Payment {payment_id} deleted from {transaction.number} ({transaction.status.value})")
            return transaction

        except HTTPException:
            self.db.rollback()
            raise
        except Exception as e:
            self.db.rollback()
            raise HTTPException(
                status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
                detail=f"Error deleting payment: {str(e)}"
            )

    def list_payments(self, transaction_id: UUID, auth_context: AuthContext) -> List[TransactionPayment]:
        return list(self.get_transaction(transaction_id, auth_context).payments)

    def payment_summary(self, transaction_id: UUID, auth_context: AuthContext) -> PaymentSummary:
        transaction = self.get_transaction(transaction_id, auth_context)
        total_paid = money(transaction.paid_amount)
        total = money(transaction.total_amount)
        if transaction.status == TransactionStatus.PAID:
            percentage = Decimal("100.00")
        elif total > 0:
            percentage = money(total_paid * Decimal("100") / total)
        else:
            percentage = ZERO
        return PaymentSummary(
            transaction_id=transaction.id,
            number=transaction.number,
            status=transaction.status,
            total_amount=total,
            total_paid=total_paid,
            remaining=money(transaction.balance_due),
            payment_count=len(transaction.payments),
            percentage_paid=percentage
        )

    def transactions_in_range(self, tenant_id: UUID, client_id: UUID, start: date, end: date) -> List[Transaction]:
        return self.db.query(Transaction).options(
            selectinload(Transaction.items),
            selectinload(Transaction.payments)
        ).filter(
            Transaction.tenant_id == tenant_id,
            Transaction.client_id == client_id,
            and_(Transaction.transaction_date >= start, Transaction.transaction_date <= end)
        ).order_by(Transaction.transaction_date, Transaction.number).all()
