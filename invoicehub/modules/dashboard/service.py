from fastapi import HTTPException, status
from sqlalchemy import func
from sqlalchemy.orm import Session, joinedload, selectinload
from typing import List
from uuid import UUID
from decimal import Decimal

from invoicehub.modules.auth.schemas import AuthContext
from invoicehub.modules.clients.service import ClientService
from invoicehub.modules.clients.models import Client
from invoicehub.modules.ledger.models import LedgerEntry, LedgerEntryType
from invoicehub.modules.ledger.service import LedgerService
from invoicehub.modules.staff.service import StaffService
from invoicehub.modules.staff.schemas import StaffPaymentOut
from invoicehub.modules.transactions.models import Transaction, TransactionStatus
from invoicehub.modules.transactions.schemas import TransactionOut
from invoicehub.modules.dashboard.schemas import DashboardStats, ClientDashboardStats, StaffDashboardStats
from invoicehub.common.validators import money

OPEN_STATUSES = [TransactionStatus.PENDING, TransactionStatus.PARTIAL, TransactionStatus.OVERDUE]
RECENT_LIMIT = 5


class DashboardService:
    def __init__(self, db: Session):
        self.db = db

    def _ledger_total(self, tenant_id: UUID, entry_type: LedgerEntryType) -> Decimal:
        total = self.db.query(func.coalesce(func.sum(LedgerEntry.amount), 0)).filter(
            LedgerEntry.tenant_id == tenant_id,
            LedgerEntry.entry_type == entry_type
        ).scalar()
        return money(total)

    def _transactions(self, tenant_id: UUID, client_id: UUID = None):
        query = self.db.query(Transaction).options(
            joinedload(Transaction.client),
            selectinload(Transaction.payments)
        ).filter(Transaction.tenant_id == tenant_id)
        if client_id:
            query = query.filter(Transaction.client_id == client_id)
        return query

    def _recent(self, query) -> List[TransactionOut]:
        rows = query.order_by(
            Transaction.transaction_date.desc(), Transaction.number.desc()
        ).limit(RECENT_LIMIT).all()
        return [TransactionOut.model_validate(t) for t in rows]

    def admin_stats(self, tenant_id: UUID) -> DashboardStats:
        revenue = self._ledger_total(tenant_id, LedgerEntryType.INCOME)
        expenses = self._ledger_total(tenant_id, LedgerEntryType.EXPENSE)

        open_transactions = self._transactions(tenant_id).filter(Transaction.status.in_(OPEN_STATUSES)).all()
        outstanding = sum((t.balance_due for t in open_transactions), Decimal("0.00"))

        return DashboardStats(
            total_revenue=revenue,
            total_expenses=expenses,
            net_profit=revenue - expenses,
            active_clients=ClientService(self.db).count_active(tenant_id),
            pending_invoices=len(open_transactions),
            outstanding_amount=money(outstanding),
            staff_count=StaffService(self.db).count_staff(tenant_id),
            current_month=LedgerService(self.db).current_month_summary(tenant_id),
            recent_transactions=self._recent(self._transactions(tenant_id))
        )

    def client_stats(self, auth_context: AuthContext) -> ClientDashboardStats:
        if not auth_context.client_id:
            raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="No client linked to this account")
        client = self.db.query(Client).filter(
            Client.id == auth_context.client_id,
            Client.tenant_id == auth_context.tenant_id
        ).first()
        if not client:
            raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Client not found")

        transactions = self._transactions(auth_context.tenant_id, client.id).filter(
            Transaction.status != TransactionStatus.DRAFT
        ).all()
        billed = sum((t.total_amount for t in transactions), Decimal("0.00"))
        outstanding = sum((t.balance_due for t in transactions if t.status in OPEN_STATUSES), Decimal("0.00"))

        return ClientDashboardStats(
            transaction_count=len(transactions),
            total_billed=money(billed),
            total_paid=money(client.total_spent),
            outstanding_balance=money(outstanding),
            overdue_count=sum(1 for t in transactions if t.status == TransactionStatus.OVERDUE),
            recent_transactions=self._recent(self._transactions(auth_context.tenant_id, client.id))
        )

    def staff_stats(self, auth_context: AuthContext) -> StaffDashboardStats:
        if not auth_context.staff_id:
            raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="No staff record linked to this account")
        service = StaffService(self.db)
        totals = service.total_paid(auth_context.staff_id, auth_context.tenant_id)
        payments = service.list_payments(auth_context.staff_id, auth_context.tenant_id)
        return StaffDashboardStats(
            total_paid=totals.total_paid,
            payment_count=totals.payment_count,
            last_payment_date=totals.last_payment_date,
            recent_payments=[StaffPaymentOut.model_validate(p) for p in payments[:RECENT_LIMIT]]
        )
