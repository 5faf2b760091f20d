from invoicehub.database.database import Base
from sqlalchemy import Column, String, ForeignKey, Numeric, Text, Enum, Date
from sqlalchemy.orm import relationship
from sqlalchemy.dialects.postgresql import UUID
from uuid import uuid4
from datetime import date
from invoicehub.common.mixins import TenantMixin, TimestampMixin
import enum


class StaffStatus(enum.Enum):
    ACTIVE = "active"
    INACTIVE = "inactive"


class StaffRole(enum.Enum):
    ADMIN = "admin"
    SUPPORT = "support"
    FINANCE = "finance"


class Staff(Base, TenantMixin, TimestampMixin):
    __tablename__ = "staff"

    id = Column(UUID(as_uuid=True), primary_key=True, default=uuid4, index=True)
    name = Column(String(150), nullable=False)
    email = Column(String(255), nullable=False)
    position = Column(String(100), nullable=True)
    join_date = Column(Date, nullable=False, default=date.today)
    status = Column(Enum(StaffStatus), nullable=False, default=StaffStatus.ACTIVE)
    avatar = Column(String(500), nullable=True)
    role = Column(Enum(StaffRole), nullable=False, default=StaffRole.SUPPORT)
    payment_rate = Column(Numeric(15, 2), nullable=False)

    payments = relationship("StaffPayment", back_populates="staff", cascade="all, delete-orphan")


class StaffPayment(Base, TenantMixin, TimestampMixin):
    __tablename__ = "staff_payments"

    id = Column(UUID(as_uuid=True), primary_key=True, default=uuid4, index=True)
    staff_id = Column(UUID(as_uuid=True), ForeignKey("staff.id"), nullable=False, index=True)
    amount = Column(Numeric(15, 2), nullable=False)
    date_paid = Column(Date, nullable=False, default=date.today)
    payment_method = Column(String(50), nullable=True)
    notes = Column(Text, nullable=True)

    created_by = Column(UUID(as_uuid=True), ForeignKey("users.id"), nullable=True)

    staff = relationship("Staff", back_populates="payments")

    @property
    def ledger_reference(self) -> str:
        return f"STAFF-PAY-{self.id}"
