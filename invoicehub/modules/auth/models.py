from invoicehub.database.database import Base
from sqlalchemy import Column, String, Boolean, DateTime, ForeignKey, Enum
from sqlalchemy.orm import relationship
from sqlalchemy.dialects.postgresql import UUID
from uuid import uuid4
from invoicehub.common.mixins import TimestampMixin
import enum


class UserRole(enum.Enum):
    ADMIN = "admin"
    STAFF = "staff"
    CLIENT = "client"


class User(Base, TimestampMixin):
    __tablename__ = "users"

    id = Column(UUID(as_uuid=True), primary_key=True, default=uuid4, index=True)
    tenant_id = Column(UUID(as_uuid=True), ForeignKey("companies.id"), nullable=False, index=True)
    email = Column(String(255), unique=True, nullable=False, index=True)
    password = Column(String(255), nullable=False)
    first_name = Column(String(100), nullable=False)
    last_name = Column(String(100), nullable=False, default="")
    role = Column(Enum(UserRole), nullable=False, default=UserRole.CLIENT)

    # Portal links
    client_id = Column(UUID(as_uuid=True), ForeignKey("clients.id"), nullable=True)
    staff_id = Column(UUID(as_uuid=True), ForeignKey("staff.id"), nullable=True)

    is_active = Column(Boolean, default=True, nullable=False)
    first_login = Column(Boolean, default=True, nullable=False)
    last_login = Column(DateTime(timezone=True), nullable=True)

    company = relationship("Company", back_populates="users")
