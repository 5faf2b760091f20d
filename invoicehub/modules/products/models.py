from invoicehub.database.database import Base
from sqlalchemy import Column, String, ForeignKey, Numeric, Text, Enum
from sqlalchemy.dialects.postgresql import UUID
from uuid import uuid4
from decimal import Decimal
from invoicehub.common.mixins import TenantMixin, TimestampMixin
import enum


class ProductStatus(enum.Enum):
    ACTIVE = "active"
    INACTIVE = "inactive"


class Product(Base, TenantMixin, TimestampMixin):
    __tablename__ = "products"

    id = Column(UUID(as_uuid=True), primary_key=True, default=uuid4, index=True)
    name = Column(String(200), nullable=False)
    description = Column(Text, nullable=True)
    category = Column(String(100), nullable=True)
    price = Column(Numeric(15, 2), nullable=False, default=Decimal("0.00"))
    tax_rate = Column(Numeric(5, 2), nullable=False, default=Decimal("0.00"))  # percent
    status = Column(Enum(ProductStatus), nullable=False, default=ProductStatus.ACTIVE)

    created_by = Column(UUID(as_uuid=True), ForeignKey("users.id"), nullable=True)
