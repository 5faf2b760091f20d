from datetime import datetime, timezone
from typing import Optional
from uuid import UUID
from fastapi import HTTPException, status
from sqlalchemy import func
from sqlalchemy.orm import Session
import logging

from invoicehub.modules.auth.models import User, UserRole
from invoicehub.modules.auth.schemas import (
    UserCreate, UserOut, TokenResponse, PortalAccessCreate, PortalAccessResponse, AuthContext
)
from invoicehub.modules.auth.utils import (
    hash_password, verify_password, create_access_token, generate_temporary_password
)
from invoicehub.modules.company.service import create_company
from invoicehub.modules.clients.models import Client
from invoicehub.modules.staff.models import Staff
from invoicehub.core.config import settings

logger = logging.getLogger(__name__)


class AuthService:
    """
    Registration, login and portal account management.
    """

    def __init__(self, db: Session):
        self.db = db

    def _get_by_email(self, email: str) -> Optional[User]:
        return self.db.query(User).filter(func.lower(User.email) == email.lower()).first()

    def _token_response(self, user: User) -> TokenResponse:
        token_data = {
            "sub": str(user.id),
            "tenant_id": str(user.tenant_id),
            "role": user.role.value,
            "email": user.email,
            "first_name": user.first_name,
            "last_name": user.last_name,
            "client_id": str(user.client_id) if user.client_id else None,
            "staff_id": str(user.staff_id) if user.staff_id else None,
        }
        return TokenResponse(
            access_token=create_access_token(token_data),
            token_type="bearer",
            expires_in=settings.ACCESS_TOKEN_EXPIRE_MINUTES * 60,
            role=user.role,
            user=UserOut.model_validate(user)
        )

    def register(self, user_data: UserCreate) -> TokenResponse:
        """
        Create a company and its first admin user, and log the user in.
        """
        if self._get_by_email(user_data.email):
            raise HTTPException(
                status_code=status.HTTP_409_CONFLICT,
                detail="A user with this email already exists"
            )

        try:
            company = create_company(self.db, user_data.company_name, user_data.email)
            user = User(
                tenant_id=company.id,
                email=user_data.email.lower(),
                password=hash_password(user_data.password),
                first_name=user_data.first_name.strip(),
                last_name=user_data.last_name.strip(),
                role=UserRole.ADMIN,
                first_login=False
            )
            self.db.add(user)
            self.db.commit()
            self.db.refresh(user)
        except Exception as e:
            self.db.rollback()
            logger.error(f"Registration failed for {user_data.email}: {e}")
            raise HTTPException(
                status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
                detail=f"Error registering user: {str(e)}"
            )

        logger.info(f"Registered admin {user.email} for company {company.id}")
        return self._token_response(user)

    def login(self, email: str, password: str) -> TokenResponse:
        user = self._get_by_email(email)

        if not user or not verify_password(password, user.password):
            raise HTTPException(
                status_code=status.HTTP_401_UNAUTHORIZED,
                detail="Invalid email or password"
            )

        if not user.is_active:
            raise HTTPException(
                status_code=status.HTTP_403_FORBIDDEN,
                detail="Account is inactive"
            )

        user.last_login = datetime.now(timezone.utc)
        self.db.commit()
        self.db.refresh(user)

        return self._token_response(user)

    def refresh(self, user: User) -> TokenResponse:
        """New token with the same claims and a fresh expiry."""
        return self._token_response(user)

    def change_password(self, user: User, current_password: str, new_password: str) -> dict:
        if not verify_password(current_password, user.password):
            raise HTTPException(
                status_code=status.HTTP_401_UNAUTHORIZED,
                detail="Current password is incorrect"
            )
        if current_password == new_password:
            raise HTTPException(
                status_code=status.HTTP_400_BAD_REQUEST,
                detail="New password must be different from the current one"
            )

        user.password = hash_password(new_password)
        user.first_login = False
        self.db.commit()
        logger.info(f"Password changed for user {user.id}")
        return {"message": "Password updated successfully"}

    def create_portal_access(self, data: PortalAccessCreate, auth_context: AuthContext) -> PortalAccessResponse:
        """
        Create a login for a client or staff record.
        The temporary password is returned once and never stored in clear.
        """
        if data.client_id:
            client = self.db.query(Client).filter(
                Client.id == data.client_id,
                Client.tenant_id == auth_context.tenant_id
            ).first()
            if not client:
                raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Client not found")
            email = client.email
            first_name = client.contact_person or client.business_name
            role = UserRole.CLIENT
        else:
            staff = self.db.query(Staff).filter(
                Staff.id == data.staff_id,
                Staff.tenant_id == auth_context.tenant_id
            ).first()
            if not staff:
                raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Staff member not found")
            email = staff.email
            first_name = staff.name
            role = UserRole.STAFF

        if not email:
            raise HTTPException(
                status_code=status.HTTP_400_BAD_REQUEST,
                detail="The record has no email address"
            )
        if self._get_by_email(email):
            raise HTTPException(
                status_code=status.HTTP_409_CONFLICT,
                detail="A user with this email already exists"
            )

        temporary_password = generate_temporary_password()
        try:
            user = User(
                tenant_id=auth_context.tenant_id,
                email=email.lower(),
                password=hash_password(temporary_password),
                first_name=first_name,
                last_name="",
                role=role,
                client_id=data.client_id,
                staff_id=data.staff_id,
                first_login=True
            )
            self.db.add(user)
            self.db.commit()
            self.db.refresh(user)
        except Exception as e:
            self.db.rollback()
            raise HTTPException(
                status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
                detail=f"Error creating portal access: {str(e)}"
            )

        logger.info(f"Portal access ({role.value}) created for {user.email} by {auth_context.user_id}")
        return PortalAccessResponse(user=UserOut.model_validate(user), temporary_password=temporary_password)

    def deactivate_linked_users(self, tenant_id: UUID, client_id: UUID = None, staff_id: UUID = None) -> int:
        """
        Disable and unlink portal users of a record that is being deleted.
        Part of the caller's database transaction.
        """
        query = self.db.query(User).filter(User.tenant_id == tenant_id)
        if client_id:
            query = query.filter(User.client_id == client_id)
        elif staff_id:
            query = query.filter(User.staff_id == staff_id)
        else:
            return 0

        count = 0
        for user in query.all():
            user.is_active = False
            user.client_id = None
            user.staff_id = None
            count += 1
        return count
