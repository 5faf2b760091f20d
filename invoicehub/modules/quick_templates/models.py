from invoicehub.database.database import Base
from sqlalchemy import Column, String, Boolean, ForeignKey, Numeric, Text
from sqlalchemy.orm import relationship
from sqlalchemy.dialects.postgresql import UUID
from uuid import uuid4
from decimal import Decimal
from invoicehub.common.mixins import TenantMixin, TimestampMixin, SoftDeleteMixin


class QuickTransactionTemplate(Base, TenantMixin, TimestampMixin, SoftDeleteMixin):
    __tablename__ = "quick_transaction_templates"

    id = Column(UUID(as_uuid=True), primary_key=True, default=uuid4, index=True)
    name = Column(String(150), nullable=False)
    description = Column(Text, nullable=True)
    client_id = Column(UUID(as_uuid=True), ForeignKey("clients.id"), nullable=False)
    product_id = Column(UUID(as_uuid=True), ForeignKey("products.id"), nullable=True)
    quantity = Column(Numeric(12, 2), nullable=False, default=Decimal("1"))
    unit_price = Column(Numeric(15, 2), nullable=False)
    tax_rate = Column(Numeric(5, 2), nullable=False, default=Decimal("0.00"))
    payment_method = Column(String(50), nullable=False, default="Bank Transfer")
    notes = Column(Text, nullable=True)
    is_active = Column(Boolean, default=True, nullable=False)

    created_by = Column(UUID(as_uuid=True), ForeignKey("users.id"), nullable=True)

    client = relationship("Client")
    product = relationship("Product")

    @property
    def client_name(self):
        return self.client.business_name if self.client else None

    @property
    def product_name(self):
        return self.product.name if self.product else None


class QuickStaffPaymentTemplate(Base, TenantMixin, TimestampMixin, SoftDeleteMixin):
    __tablename__ = "quick_staff_payment_templates"

    id = Column(UUID(as_uuid=True), primary_key=True, default=uuid4, index=True)
    name = Column(String(150), nullable=False)
    description = Column(Text, nullable=True)
    staff_id = Column(UUID(as_uuid=True), ForeignKey("staff.id"), nullable=False)
    amount = Column(Numeric(15, 2), nullable=False)
    payment_method = Column(String(50), nullable=False, default="Bank Transfer")
    notes = Column(Text, nullable=True)
    is_active = Column(Boolean, default=True, nullable=False)

    created_by = Column(UUID(as_uuid=True), ForeignKey("users.id"), nullable=True)

    staff = relationship("Staff")

    @property
    def staff_name(self):
        return self.staff.name if self.staff else None
