from pydantic import BaseModel, Field
from typing import Optional, List
from uuid import UUID
from datetime import datetime
from decimal import Decimal
from invoicehub.modules.products.models import ProductStatus


class ProductCreate(BaseModel):
    name: str = Field(..., min_length=1, max_length=200)
    description: Optional[str] = None
    category: Optional[str] = Field(None, max_length=100)
    price: Decimal = Field(..., ge=0, decimal_places=2)
    tax_rate: Decimal = Field(Decimal("0.00"), ge=0, le=100, decimal_places=2)
    status: ProductStatus = ProductStatus.ACTIVE


class ProductUpdate(BaseModel):
    name: Optional[str] = Field(None, min_length=1, max_length=200)
    description: Optional[str] = None
    category: Optional[str] = Field(None, max_length=100)
    price: Optional[Decimal] = Field(None, ge=0, decimal_places=2)
    tax_rate: Optional[Decimal] = Field(None, ge=0, le=100, decimal_places=2)
    status: Optional[ProductStatus] = None


class ProductOut(BaseModel):
    id: UUID
    name: str
    description: Optional[str] = None
    category: Optional[str] = None
    price: Decimal
    tax_rate: Decimal
    status: ProductStatus
    created_at: Optional[datetime] = None

    class Config:
        from_attributes = True


class PaginatedProductResponse(BaseModel):
    items: List[ProductOut]
    total: int
    page: int
    limit: int
    total_pages: int
