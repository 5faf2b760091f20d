from pydantic import BaseModel, Field, field_validator
from typing import Optional
from uuid import UUID
from invoicehub.common.validators import validate_phone


class CompanyUpdate(BaseModel):
    name: Optional[str] = Field(None, min_length=2, max_length=150)
    email: Optional[str] = Field(None, max_length=255)
    phone: Optional[str] = Field(None, max_length=30)
    address: Optional[str] = Field(None, max_length=255)
    tax_id: Optional[str] = Field(None, max_length=50)

    @field_validator('phone')
    @classmethod
    def check_phone(cls, v):
        if v is None or v.strip() == "":
            return v
        if not validate_phone(v):
            raise ValueError('Invalid phone number')
        return v


class CompanyOut(BaseModel):
    id: UUID
    name: str
    email: Optional[str] = None
    phone: Optional[str] = None
    address: Optional[str] = None
    tax_id: Optional[str] = None

    class Config:
        from_attributes = True
