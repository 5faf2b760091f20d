from pydantic import BaseModel, Field
from typing import Optional
from uuid import UUID
from datetime import date, datetime
from decimal import Decimal


class QuickTransactionTemplateCreate(BaseModel):
    name: str = Field(..., min_length=1, max_length=150)
    description: Optional[str] = None
    client_id: UUID
    product_id: Optional[UUID] = None
    quantity: Decimal = Field(Decimal("1"), gt=0, decimal_places=2)
    unit_price: Optional[Decimal] = Field(None, ge=0, decimal_places=2)
    tax_rate: Optional[Decimal] = Field(None, ge=0, le=100, decimal_places=2)
    payment_method: Optional[str] = Field(None, max_length=50)
    notes: Optional[str] = None


class QuickTransactionTemplateUpdate(BaseModel):
    name: Optional[str] = Field(None, min_length=1, max_length=150)
    description: Optional[str] = None
    client_id: Optional[UUID] = None
    product_id: Optional[UUID] = None
    quantity: Optional[Decimal] = Field(None, gt=0, decimal_places=2)
    unit_price: Optional[Decimal] = Field(None, ge=0, decimal_places=2)
    tax_rate: Optional[Decimal] = Field(None, ge=0, le=100, decimal_places=2)
    payment_method: Optional[str] = Field(None, max_length=50)
    notes: Optional[str] = None
    is_active: Optional[bool] = None


class QuickTransactionTemplateOut(BaseModel):
    id: UUID
    name: str
    description: Optional[str] = None
    client_id: UUID
    client_name: Optional[str] = None
    product_id: Optional[UUID] = None
    product_name: Optional[str] = None
    quantity: Decimal
    unit_price: Decimal
    tax_rate: Decimal
    payment_method: str
    notes: Optional[str] = None
    is_active: bool
    created_at: Optional[datetime] = None

    class Config:
        from_attributes = True


class QuickStaffPaymentTemplateCreate(BaseModel):
    name: str = Field(..., min_length=1, max_length=150)
    description: Optional[str] = None
    staff_id: UUID
    amount: Decimal = Field(..., gt=0, decimal_places=2)
    payment_method: Optional[str] = Field(None, max_length=50)
    notes: Optional[str] = None


class QuickStaffPaymentTemplateUpdate(BaseModel):
    name: Optional[str] = Field(None, min_length=1, max_length=150)
    description: Optional[str] = None
    staff_id: Optional[UUID] = None
    amount: Optional[Decimal] = Field(None, gt=0, decimal_places=2)
    payment_method: Optional[str] = Field(None, max_length=50)
    notes: Optional[str] = None
    is_active: Optional[bool] = None


class QuickStaffPaymentTemplateOut(BaseModel):
    id: UUID
    name: str
    description: Optional[str] = None
    staff_id: UUID
    staff_name: Optional[str] = None
    amount: Decimal
    payment_method: str
    notes: Optional[str] = None
    is_active: bool
    created_at: Optional[datetime] = None

    class Config:
        from_attributes = True


class ExecuteTemplateRequest(BaseModel):
    """Optional date override; defaults to today."""
    execution_date: Optional[date] = None
