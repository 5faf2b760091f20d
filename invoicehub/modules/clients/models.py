from invoicehub.database.database import Base
from sqlalchemy import Column, String, Boolean, ForeignKey, Numeric, Text, UniqueConstraint
from sqlalchemy.orm import relationship
from sqlalchemy.dialects.postgresql import UUID
from uuid import uuid4
from decimal import Decimal
from invoicehub.common.mixins import TenantMixin, TimestampMixin


class Client(Base, TenantMixin, TimestampMixin):
    __tablename__ = "clients"

    id = Column(UUID(as_uuid=True), primary_key=True, default=uuid4, index=True)
    code = Column(String(20), nullable=False)  # CLT-0001

    business_name = Column(String(200), nullable=False)
    contact_person = Column(String(150), nullable=True)
    email = Column(String(255), nullable=True)
    phone = Column(String(30), nullable=True)

    # Address
    street = Column(String(255), nullable=True)
    city = Column(String(100), nullable=True)
    state = Column(String(100), nullable=True)
    zip = Column(String(20), nullable=True)

    payment_schedule = Column(String(50), nullable=True)  # weekly, monthly...
    payment_terms = Column(String(100), nullable=True)  # Net 30...
    notes = Column(Text, nullable=True)
    is_active = Column(Boolean, default=True, nullable=False)

    # Derived from the ledger, recomputed on every mutation that touches it
    total_spent = Column(Numeric(15, 2), nullable=False, default=Decimal("0.00"))

    created_by = Column(UUID(as_uuid=True), ForeignKey("users.id"), nullable=True)

    transactions = relationship("Transaction", back_populates="client")

    __table_args__ = (
        UniqueConstraint("tenant_id", "code", name="uq_client_tenant_code"),
    )
