from pydantic import BaseModel, Field, field_validator, model_validator
from typing import Optional, List
from uuid import UUID
from datetime import date, datetime
from decimal import Decimal
from invoicehub.modules.transactions.models import TransactionStatus


class TransactionItemCreate(BaseModel):
    """
    A line item. When product_id is given, missing description, unit_price
    and tax_rate are taken from the product.
    """
    product_id: Optional[UUID] = None
    description: Optional[str] = Field(None, max_length=255)
    quantity: Decimal = Field(..., gt=0, decimal_places=2)
    unit_price: Optional[Decimal] = Field(None, ge=0, decimal_places=2)
    tax_rate: Optional[Decimal] = Field(None, ge=0, le=100, decimal_places=2)

    @model_validator(mode='after')
    def validate_source(self):
        if self.product_id is None:
            if not self.description or not self.description.strip():
                raise ValueError('description is required when no product is given')
            if self.unit_price is None:
                raise ValueError('unit_price is required when no product is given')
        return self


class TransactionCreate(BaseModel):
    client_id: UUID
    transaction_date: date = Field(default_factory=date.today)
    due_date: Optional[date] = None
    reference_number: Optional[str] = Field(None, max_length=100)
    notes: Optional[str] = None
    terms: Optional[str] = None
    payment_method: Optional[str] = Field(None, max_length=50)
    status: TransactionStatus = TransactionStatus.PENDING
    items: List[TransactionItemCreate] = Field(..., min_length=1)

    @model_validator(mode='after')
    def validate_dates(self):
        if self.due_date and self.due_date < self.transaction_date:
            raise ValueError('due_date cannot be before transaction_date')
        return self


class TransactionUpdate(BaseModel):
    """Omitted fields are left unchanged; items, when given, replace all lines."""
    client_id: Optional[UUID] = None
    transaction_date: Optional[date] = None
    due_date: Optional[date] = None
    reference_number: Optional[str] = Field(None, max_length=100)
    notes: Optional[str] = None
    terms: Optional[str] = None
    payment_method: Optional[str] = Field(None, max_length=50)
    status: Optional[TransactionStatus] = None
    items: Optional[List[TransactionItemCreate]] = Field(None, min_length=1)


class TransactionItemOut(BaseModel):
    id: UUID
    product_id: Optional[UUID] = None
    description: str
    quantity: Decimal
    unit_price: Decimal
    tax_rate: Decimal
    total: Decimal

    class Config:
        from_attributes = True


class PaymentCreate(BaseModel):
    amount: Decimal = Field(..., gt=0, decimal_places=2)
    payment_date: date = Field(default_factory=date.today)
    payment_method: Optional[str] = Field(None, max_length=50)
    reference_number: Optional[str] = Field(None, max_length=100)
    notes: Optional[str] = None


class PaymentUpdate(BaseModel):
    amount: Optional[Decimal] = Field(None, gt=0, decimal_places=2)
    payment_date: Optional[date] = None
    payment_method: Optional[str] = Field(None, max_length=50)
    reference_number: Optional[str] = Field(None, max_length=100)
    notes: Optional[str] = None


class PaymentOut(BaseModel):
    id: UUID
    transaction_id: UUID
    amount: Decimal
    payment_date: date
    payment_method: Optional[str] = None
    reference_number: Optional[str] = None
    notes: Optional[str] = None
    created_at: Optional[datetime] = None

    class Config:
        from_attributes = True


class TransactionOut(BaseModel):
    id: UUID
    number: str
    client_id: UUID
    client_name: Optional[str] = None
    transaction_date: date
    due_date: date
    reference_number: Optional[str] = None
    notes: Optional[str] = None
    terms: Optional[str] = None
    payment_method: Optional[str] = None
    status: TransactionStatus
    subtotal: Decimal
    tax_amount: Decimal
    total_amount: Decimal
    paid_amount: Decimal
    balance_due: Decimal
    created_at: Optional[datetime] = None

    class Config:
        from_attributes = True


class TransactionDetail(TransactionOut):
    items: List[TransactionItemOut] = []
    payments: List[PaymentOut] = []


class TransactionList(BaseModel):
    transactions: List[TransactionOut]
    total: int
    limit: int
    offset: int


class TransactionFilters(BaseModel):
    status: Optional[TransactionStatus] = None
    client_id: Optional[UUID] = None
    date_from: Optional[date] = None
    date_to: Optional[date] = None
    search: Optional[str] = None


class PaymentSummary(BaseModel):
    transaction_id: UUID
    number: str
    status: TransactionStatus
    total_amount: Decimal
    total_paid: Decimal
    remaining: Decimal
    payment_count: int
    percentage_paid: Decimal


class OverdueSweepResult(BaseModel):
    updated: int
    numbers: List[str]
