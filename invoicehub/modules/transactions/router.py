from fastapi import APIRouter, Depends, status, Query
from sqlalchemy.orm import Session
from typing import List, Optional
from uuid import UUID
from datetime import date

from invoicehub.database.database import get_db
from invoicehub.core.config import settings
from invoicehub.modules.auth.dependencies import AuthDependencies
from invoicehub.modules.transactions.service import TransactionService
from invoicehub.modules.transactions.models import TransactionStatus
from invoicehub.modules.transactions.schemas import (
    TransactionCreate, TransactionUpdate, TransactionDetail, TransactionList, TransactionFilters,
    PaymentCreate, PaymentUpdate, PaymentOut, PaymentSummary, OverdueSweepResult
)

router = APIRouter(prefix="/transactions", tags=["Transactions"])


@router.post("/", response_model=TransactionDetail, status_code=status.HTTP_201_CREATED)
def create_transaction(
    data: TransactionCreate,
    db: Session = Depends(get_db),
    auth_context=Depends(AuthDependencies.require_admin_or_staff())
):
    """
    Create a transaction (invoice)

    Totals are computed from the line items. A transaction created as paid
    is booked in the ledger right away.
    """
    service = TransactionService(db)
    return service.create_transaction(data, auth_context.tenant_id, auth_context.user_id)


@router.get("/", response_model=TransactionList)
def list_transactions(
    limit: int = Query(settings.DEFAULT_PAGE_SIZE, ge=1, le=settings.MAX_PAGE_SIZE),
    offset: int = Query(0, ge=0),
    start_date: Optional[date] = Query(None, description="From date (YYYY-MM-DD)"),
    end_date: Optional[date] = Query(None, description="To date (YYYY-MM-DD)"),
    client_id: Optional[UUID] = Query(None, description="Filter by client"),
    status: Optional[TransactionStatus] = Query(None, description="Transaction status"),
    search: Optional[str] = Query(None, description="Number, reference or client name"),
    db: Session = Depends(get_db),
    auth_context=Depends(AuthDependencies.require_any_role())
):
    """
    List transactions with filters

    Client users only ever see their own transactions.
    """
    filters = TransactionFilters(
        status=status,
        client_id=client_id,
        date_from=start_date,
        date_to=end_date,
        search=search
    )
    return TransactionService(db).list_transactions(auth_context, filters, limit, offset)


@router.post("/mark-overdue", response_model=OverdueSweepResult)
def mark_overdue(
    db: Session = Depends(get_db),
    auth_context=Depends(AuthDependencies.require_admin_or_staff())
):
    """Flag unpaid transactions whose due date has passed."""
    return TransactionService(db).mark_overdue(auth_context.tenant_id)


@router.get("/{transaction_id}", response_model=TransactionDetail)
def get_transaction(
    transaction_id: UUID,
    db: Session = Depends(get_db),
    auth_context=Depends(AuthDependencies.require_any_role())
):
    return TransactionService(db).get_transaction(transaction_id, auth_context)


@router.put("/{transaction_id}", response_model=TransactionDetail)
def update_transaction(
    transaction_id: UUID,
    data: TransactionUpdate,
    db: Session = Depends(get_db),
    auth_context=Depends(AuthDependencies.require_admin_or_staff())
):
    """
    Update a transaction

    Items, when sent, replace the existing lines. The total cannot drop below
    what has already been paid.
    """
    return TransactionService(db).update_transaction(transaction_id, data, auth_context.tenant_id)


@router.delete("/{transaction_id}", status_code=status.HTTP_204_NO_CONTENT)
def delete_transaction(
    transaction_id: UUID,
    db: Session = Depends(get_db),
    auth_context=Depends(AuthDependencies.require_admin())
):
    TransactionService(db).delete_transaction(transaction_id, auth_context.tenant_id)


# ===== Payments =====

@router.get("/{transaction_id}/payments", response_model=List[PaymentOut])
def list_payments(
    transaction_id: UUID,
    db: Session = Depends(get_db),
    auth_context=Depends(AuthDependencies.require_any_role())
):
    return TransactionService(db).list_payments(transaction_id, auth_context)


@router.get("/{transaction_id}/payments/summary", response_model=PaymentSummary)
def payment_summary(
    transaction_id: UUID,
    db: Session = Depends(get_db),
    auth_context=Depends(AuthDependencies.require_any_role())
):
    return TransactionService(db).payment_summary(transaction_id, auth_context)


@router.post("/{transaction_id}/payments", response_model=PaymentOut, status_code=status.HTTP_201_CREATED)
def record_payment(
    transaction_id: UUID,
    data: PaymentCreate,
    db: Session = Depends(get_db),
    auth_context=Depends(AuthDependencies.require_admin_or_staff())
):
    """
    Record a payment against a transaction

    The amount cannot exceed the remaining balance. The transaction becomes
    partial or paid accordingly.
    """
    return TransactionService(db).record_payment(
        transaction_id, data, auth_context.tenant_id, auth_context.user_id
    )


@router.put("/{transaction_id}/payments/{payment_id}", response_model=PaymentOut)
def update_payment(
    transaction_id: UUID,
    payment_id: UUID,
    data: PaymentUpdate,
    db: Session = Depends(get_db),
    auth_context=Depends(AuthDependencies.require_admin_or_staff())
):
    return TransactionService(db).update_payment(transaction_id, payment_id, data, auth_context.tenant_id)


@router.delete("/{transaction_id}/payments/{payment_id}", response_model=TransactionDetail)
def delete_payment(
    transaction_id: UUID,
    payment_id: UUID,
    db: Session = Depends(get_db),
    auth_context=Depends(AuthDependencies.require_admin())
):
    """Delete a payment; the transaction status is recomputed."""
    return TransactionService(db).delete_payment(transaction_id, payment_id, auth_context.tenant_id)
