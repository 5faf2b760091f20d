from pydantic import BaseModel
from typing import Optional, List
from datetime import date
from decimal import Decimal
from invoicehub.modules.ledger.schemas import PeriodSummary
from invoicehub.modules.transactions.schemas import TransactionOut
from invoicehub.modules.staff.schemas import StaffPaymentOut


class DashboardStats(BaseModel):
    total_revenue: Decimal
    total_expenses: Decimal
    net_profit: Decimal
    active_clients: int
    pending_invoices: int
    outstanding_amount: Decimal
    staff_count: int
    current_month: PeriodSummary
    recent_transactions: List[TransactionOut]


class ClientDashboardStats(BaseModel):
    transaction_count: int
    total_billed: Decimal
    total_paid: Decimal
    outstanding_balance: Decimal
    overdue_count: int
    recent_transactions: List[TransactionOut]


class StaffDashboardStats(BaseModel):
    total_paid: Decimal
    payment_count: int
    last_payment_date: Optional[date] = None
    recent_payments: List[StaffPaymentOut]
