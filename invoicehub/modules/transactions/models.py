from invoicehub.database.database import Base
from sqlalchemy import Column, Integer, String, ForeignKey, Numeric, Enum, Date, Text, UniqueConstraint
from sqlalchemy.orm import relationship
from sqlalchemy.dialects.postgresql import UUID
from uuid import uuid4
from datetime import date
from decimal import Decimal
from invoicehub.common.mixins import TenantMixin, TimestampMixin
import enum


class TransactionStatus(enum.Enum):
    DRAFT = "draft"        # Not yet issued, payments not accepted
    PENDING = "pending"    # Issued, nothing paid
    PARTIAL = "partial"    # Some payments recorded
    PAID = "paid"          # Settled
    OVERDUE = "overdue"    # Past due date and not settled


class Transaction(Base, TenantMixin, TimestampMixin):
    __tablename__ = "transactions"

    id = Column(UUID(as_uuid=True), primary_key=True, default=uuid4, index=True)
    number = Column(String(30), nullable=False)  # INV-2026-0001

    client_id = Column(UUID(as_uuid=True), ForeignKey("clients.id"), nullable=False, index=True)
    created_by = Column(UUID(as_uuid=True), ForeignKey("users.id"), nullable=True)

    # Dates
    transaction_date = Column(Date, nullable=False, default=date.today)
    due_date = Column(Date, nullable=False)

    # Content
    reference_number = Column(String(100), nullable=True)
    notes = Column(Text, nullable=True)
    terms = Column(Text, nullable=True)
    payment_method = Column(String(50), nullable=True)
    status = Column(Enum(TransactionStatus), nullable=False, default=TransactionStatus.PENDING)

    # Totals
    subtotal = Column(Numeric(15, 2), nullable=False, default=Decimal("0.00"))
    tax_amount = Column(Numeric(15, 2), nullable=False, default=Decimal("0.00"))
    total_amount = Column(Numeric(15, 2), nullable=False, default=Decimal("0.00"))

    client = relationship("Client", back_populates="transactions")
    items = relationship("TransactionItem", back_populates="transaction", cascade="all, delete-orphan")
    payments = relationship("TransactionPayment", back_populates="transaction", cascade="all, delete-orphan",
                            order_by="TransactionPayment.payment_date")

    __table_args__ = (
        UniqueConstraint("tenant_id", "number", name="uq_transaction_tenant_number"),
    )

    @property
    def paid_amount(self) -> Decimal:
        return sum((p.amount for p in self.payments), Decimal("0.00"))

    @property
    def balance_due(self) -> Decimal:
        if self.status == TransactionStatus.PAID:
            return Decimal("0.00")
        return self.total_amount - self.paid_amount

    @property
    def client_name(self):
        return self.client.business_name if self.client else None


class TransactionItem(Base):
    __tablename__ = "transaction_items"

    id = Column(UUID(as_uuid=True), primary_key=True, default=uuid4)
    transaction_id = Column(UUID(as_uuid=True), ForeignKey("transactions.id", ondelete="CASCADE"), nullable=False, index=True)
    product_id = Column(UUID(as_uuid=True), ForeignKey("products.id"), nullable=True)

    description = Column(String(255), nullable=False)
    quantity = Column(Numeric(12, 2), nullable=False)
    unit_price = Column(Numeric(15, 2), nullable=False)
    tax_rate = Column(Numeric(5, 2), nullable=False, default=Decimal("0.00"))
    total = Column(Numeric(15, 2), nullable=False)  # quantity * unit_price, before tax

    transaction = relationship("Transaction", back_populates="items")


class TransactionPayment(Base, TenantMixin, TimestampMixin):
    __tablename__ = "transaction_payments"

    id = Column(UUID(as_uuid=True), primary_key=True, default=uuid4, index=True)
    transaction_id = Column(UUID(as_uuid=True), ForeignKey("transactions.id", ondelete="CASCADE"), nullable=False, index=True)
    amount = Column(Numeric(15, 2), nullable=False)
    payment_date = Column(Date, nullable=False, default=date.today)
    payment_method = Column(String(50), nullable=True)
    reference_number = Column(String(100), nullable=True)
    notes = Column(Text, nullable=True)

    created_by = Column(UUID(as_uuid=True), ForeignKey("users.id"), nullable=True)

    transaction = relationship("Transaction", back_populates="payments")

    @property
    def ledger_reference(self) -> str:
        return f"TXN-PAY-{self.id}"


class TransactionSequence(Base, TenantMixin):
    """Per-tenant, per-year numbering for transactions"""
    __tablename__ = "transaction_sequences"

    id = Column(UUID(as_uuid=True), primary_key=True, default=uuid4)
    year = Column(Integer, nullable=False)
    current_number = Column(Integer, nullable=False, default=0)
    prefix = Column(String(10), nullable=True)

    __table_args__ = (
        UniqueConstraint("tenant_id", "year", name="uq_sequence_tenant_year"),
    )
