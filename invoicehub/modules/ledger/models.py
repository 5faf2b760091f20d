from invoicehub.database.database import Base
from sqlalchemy import Column, String, ForeignKey, Numeric, Enum, Date, Index
from sqlalchemy.orm import relationship
from sqlalchemy.dialects.postgresql import UUID
from uuid import uuid4
from datetime import date
from invoicehub.common.mixins import TenantMixin, TimestampMixin
import enum


class LedgerEntryType(enum.Enum):
    INCOME = "income"
    EXPENSE = "expense"


class ReferenceType(enum.Enum):
    CLIENT_TRANSACTION = "client_transaction"    # reference_id = transaction number
    TRANSACTION_PAYMENT = "transaction_payment"  # reference_id = TXN-PAY-<payment id>
    STAFF_PAYMENT = "staff_payment"              # reference_id = STAFF-PAY-<payment id>
    MANUAL = "manual"


class LedgerEntry(Base, TenantMixin, TimestampMixin):
    __tablename__ = "ledger"

    id = Column(UUID(as_uuid=True), primary_key=True, default=uuid4, index=True)
    entry_date = Column(Date, nullable=False, default=date.today)
    entry_type = Column(Enum(LedgerEntryType), nullable=False)
    amount = Column(Numeric(15, 2), nullable=False)
    description = Column(String(255), nullable=True)

    reference_type = Column(Enum(ReferenceType), nullable=False, default=ReferenceType.MANUAL)
    reference_id = Column(String(100), nullable=True)

    client_id = Column(UUID(as_uuid=True), ForeignKey("clients.id"), nullable=True, index=True)
    staff_id = Column(UUID(as_uuid=True), ForeignKey("staff.id"), nullable=True, index=True)
    created_by = Column(UUID(as_uuid=True), ForeignKey("users.id"), nullable=True)

    client = relationship("Client")
    staff = relationship("Staff")

    __table_args__ = (
        Index("idx_ledger_reference", "tenant_id", "reference_type", "reference_id"),
    )

    @property
    def client_name(self):
        return self.client.business_name if self.client else None

    @property
    def staff_name(self):
        return self.staff.name if self.staff else None
