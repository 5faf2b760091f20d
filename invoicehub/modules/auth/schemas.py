from pydantic import BaseModel, EmailStr, Field, field_validator, model_validator
from typing import Optional
from uuid import UUID
from datetime import datetime
from invoicehub.modules.auth.models import UserRole
from invoicehub.common.validators import validate_password_strength


class UserCreate(BaseModel):
    """Registration of a new company and its first admin user."""
    first_name: str = Field(..., min_length=1, max_length=100)
    last_name: str = Field("", max_length=100)
    email: EmailStr
    password: str
    company_name: str = Field(..., min_length=2, max_length=150)

    @field_validator('password')
    @classmethod
    def validate_password(cls, v):
        error = validate_password_strength(v)
        if error:
            raise ValueError(error)
        return v


class UserLogin(BaseModel):
    email: EmailStr
    password: str = Field(..., min_length=1)


class ChangePasswordRequest(BaseModel):
    current_password: str = Field(..., min_length=1)
    new_password: str

    @field_validator('new_password')
    @classmethod
    def validate_new_password(cls, v):
        error = validate_password_strength(v)
        if error:
            raise ValueError(error)
        return v


class PortalAccessCreate(BaseModel):
    """Exactly one of client_id / staff_id."""
    client_id: Optional[UUID] = None
    staff_id: Optional[UUID] = None

    @model_validator(mode='after')
    def validate_target(self):
        if (self.client_id is None) == (self.staff_id is None):
            raise ValueError('Provide exactly one of client_id or staff_id')
        return self


class UserOut(BaseModel):
    id: UUID
    tenant_id: UUID
    email: str
    first_name: str
    last_name: str
    role: UserRole
    client_id: Optional[UUID] = None
    staff_id: Optional[UUID] = None
    is_active: bool
    first_login: bool
    last_login: Optional[datetime] = None

    class Config:
        from_attributes = True


class TokenResponse(BaseModel):
    access_token: str
    token_type: str = "bearer"
    expires_in: int
    role: UserRole
    user: UserOut


class PortalAccessResponse(BaseModel):
    user: UserOut
    temporary_password: str


class AuthContext(BaseModel):
    """Authenticated caller, resolved from the bearer token."""
    user_id: UUID
    tenant_id: UUID
    user_role: str
    email: str
    client_id: Optional[UUID] = None
    staff_id: Optional[UUID] = None

    @property
    def is_client(self) -> bool:
        return self.user_role == UserRole.CLIENT.value
