from pydantic import BaseModel, EmailStr, Field
from typing import Optional, List
from uuid import UUID
from datetime import date, datetime
from decimal import Decimal
from invoicehub.modules.staff.models import StaffStatus, StaffRole


class StaffCreate(BaseModel):
    name: str = Field(..., min_length=1, max_length=150)
    email: EmailStr
    position: Optional[str] = Field(None, max_length=100)
    join_date: date = Field(default_factory=date.today)
    status: StaffStatus = StaffStatus.ACTIVE
    avatar: Optional[str] = Field(None, max_length=500)
    role: StaffRole = StaffRole.SUPPORT
    payment_rate: Decimal = Field(..., gt=0, decimal_places=2)


class StaffUpdate(BaseModel):
    name: Optional[str] = Field(None, min_length=1, max_length=150)
    email: Optional[EmailStr] = None
    position: Optional[str] = Field(None, max_length=100)
    join_date: Optional[date] = None
    status: Optional[StaffStatus] = None
    avatar: Optional[str] = Field(None, max_length=500)
    role: Optional[StaffRole] = None
    payment_rate: Optional[Decimal] = Field(None, gt=0, decimal_places=2)


class StaffOut(BaseModel):
    id: UUID
    name: str
    email: str
    position: Optional[str] = None
    join_date: date
    status: StaffStatus
    avatar: Optional[str] = None
    role: StaffRole
    payment_rate: Decimal
    created_at: Optional[datetime] = None

    class Config:
        from_attributes = True


class StaffPaymentCreate(BaseModel):
    amount: Decimal = Field(..., gt=0, decimal_places=2)
    date_paid: date = Field(default_factory=date.today)
    payment_method: Optional[str] = Field(None, max_length=50)
    notes: Optional[str] = None


class StaffPaymentUpdate(BaseModel):
    amount: Optional[Decimal] = Field(None, gt=0, decimal_places=2)
    date_paid: Optional[date] = None
    payment_method: Optional[str] = Field(None, max_length=50)
    notes: Optional[str] = None


class StaffPaymentOut(BaseModel):
    id: UUID
    staff_id: UUID
    amount: Decimal
    date_paid: date
    payment_method: Optional[str] = None
    notes: Optional[str] = None
    created_at: Optional[datetime] = None

    class Config:
        from_attributes = True


class StaffPaymentTotal(BaseModel):
    staff_id: UUID
    total_paid: Decimal
    payment_count: int
    last_payment_date: Optional[date] = None


class MonthlyPaymentStat(BaseModel):
    year: int
    month: int
    total: Decimal
    payment_count: int


class StaffPaymentStats(BaseModel):
    staff_id: UUID
    months: List[MonthlyPaymentStat]
    total_paid: Decimal
    average_per_month: Decimal
