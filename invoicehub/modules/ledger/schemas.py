from pydantic import BaseModel, Field, model_validator
from typing import Optional, List
from uuid import UUID
from datetime import date, datetime
from decimal import Decimal
from invoicehub.modules.ledger.models import LedgerEntryType, ReferenceType


class ManualEntryCreate(BaseModel):
    entry_date: date = Field(default_factory=date.today)
    entry_type: LedgerEntryType
    amount: Decimal = Field(..., gt=0, decimal_places=2)
    description: str = Field(..., min_length=1, max_length=255)
    reference_id: Optional[str] = Field(None, max_length=100)
    client_id: Optional[UUID] = None
    staff_id: Optional[UUID] = None

    @model_validator(mode='after')
    def validate_links(self):
        if self.client_id and self.staff_id:
            raise ValueError('An entry can reference a client or a staff member, not both')
        return self


class LedgerEntryOut(BaseModel):
    id: UUID
    entry_date: date
    entry_type: LedgerEntryType
    amount: Decimal
    description: Optional[str] = None
    reference_type: ReferenceType
    reference_id: Optional[str] = None
    client_id: Optional[UUID] = None
    staff_id: Optional[UUID] = None
    client_name: Optional[str] = None
    staff_name: Optional[str] = None
    created_at: Optional[datetime] = None

    class Config:
        from_attributes = True


class LedgerList(BaseModel):
    entries: List[LedgerEntryOut]
    total: int
    limit: int
    offset: int
    total_income: Decimal
    total_expense: Decimal
    net: Decimal


class PeriodSummary(BaseModel):
    year: int
    month: Optional[int] = None
    income: Decimal
    expense: Decimal
    profit: Decimal


class MonthlySummaryRow(BaseModel):
    month: int
    month_name: str
    income: Decimal
    expense: Decimal
    profit: Decimal


class MonthlySummary(BaseModel):
    year: int
    months: List[MonthlySummaryRow]
    total_income: Decimal
    total_expense: Decimal
    net_profit: Decimal
