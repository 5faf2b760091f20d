"""
Authentication dependencies for FastAPI.
"""
from uuid import UUID
from fastapi import Depends, HTTPException, status
from fastapi.security import HTTPBearer, HTTPAuthorizationCredentials
from sqlalchemy.orm import Session
import jwt

from invoicehub.dependencies.dbDependecies import get_db
from invoicehub.modules.auth.models import User, UserRole
from invoicehub.modules.auth.schemas import AuthContext
from invoicehub.core.config import settings

# Security scheme
security = HTTPBearer()

ALL_ROLES = [UserRole.ADMIN.value, UserRole.STAFF.value, UserRole.CLIENT.value]


class AuthDependencies:
    """Reusable authentication dependencies."""

    @staticmethod
    def get_current_user(
        credentials: HTTPAuthorizationCredentials = Depends(security),
        db: Session = Depends(get_db)
    ) -> User:
        """
        Resolve the current user from the JWT token.
        The role and portal links are read from the database, not trusted from the token.
        """
        credentials_exception = HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Could not validate credentials",
            headers={"WWW-Authenticate": "Bearer"},
        )

        try:
            payload = jwt.decode(
                credentials.credentials,
                settings.APP_SECRET_STRING,
                algorithms=[settings.ALGORITHM]
            )
            user_id = UUID(str(payload.get("sub")))
            if payload.get("type", "access") != "access":
                raise credentials_exception
        except (jwt.PyJWTError, ValueError):
            raise credentials_exception

        user = db.query(User).filter(User.id == user_id).first()
        if user is None or not user.is_active:
            raise credentials_exception

        return user

    @staticmethod
    def get_auth_context(
        credentials: HTTPAuthorizationCredentials = Depends(security),
        db: Session = Depends(get_db)
    ) -> AuthContext:
        """Build the tenant-scoped context for the current user."""
        user = AuthDependencies.get_current_user(credentials, db)
        return AuthContext(
            user_id=user.id,
            tenant_id=user.tenant_id,
            user_role=user.role.value,
            email=user.email,
            client_id=user.client_id,
            staff_id=user.staff_id
        )

    @staticmethod
    def require_role(allowed_roles: list[str]):
        """
        Dependency requiring one of the given roles.
        """
        def role_checker(auth_context: AuthContext = Depends(AuthDependencies.get_auth_context)):
            if auth_context.user_role not in allowed_roles:
                raise HTTPException(
                    status_code=status.HTTP_403_FORBIDDEN,
                    detail=f"One of these roles is required: {', '.join(allowed_roles)}"
                )
            return auth_context
        return role_checker

    @staticmethod
    def require_admin():
        return AuthDependencies.require_role([UserRole.ADMIN.value])

    @staticmethod
    def require_admin_or_staff():
        return AuthDependencies.require_role([UserRole.ADMIN.value, UserRole.STAFF.value])

    @staticmethod
    def require_any_role():
        return AuthDependencies.require_role(ALL_ROLES)


# Dependency instances
get_current_user = AuthDependencies.get_current_user
get_auth_context = AuthDependencies.get_auth_context
require_admin = AuthDependencies.require_admin
require_admin_or_staff = AuthDependencies.require_admin_or_staff
require_any_role = AuthDependencies.require_any_role
