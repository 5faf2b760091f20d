from fastapi import APIRouter, Depends, status
from fastapi.security import OAuth2PasswordRequestForm
from sqlalchemy.orm import Session

from invoicehub.dependencies.dbDependecies import get_db
from invoicehub.modules.auth.service import AuthService
from invoicehub.modules.auth.schemas import (
    UserCreate, UserLogin, UserOut, TokenResponse, ChangePasswordRequest,
    PortalAccessCreate, PortalAccessResponse
)
from invoicehub.modules.auth.dependencies import AuthDependencies, get_current_user
from invoicehub.modules.auth.models import User

auth_router = APIRouter()


@auth_router.post("/register", response_model=TokenResponse, status_code=status.HTTP_201_CREATED)
def register(user_data: UserCreate, db: Session = Depends(get_db)):
    """
    Register a company and its admin account.
    """
    return AuthService(db).register(user_data)


@auth_router.post("/login", response_model=TokenResponse)
def login(credentials: UserLogin, db: Session = Depends(get_db)):
    return AuthService(db).login(credentials.email, credentials.password)


@auth_router.post("/token", response_model=TokenResponse)
def login_form(form_data: OAuth2PasswordRequestForm = Depends(), db: Session = Depends(get_db)):
    """
    Form-encoded login for OAuth2 clients; username is the email.
    """
    return AuthService(db).login(form_data.username, form_data.password)


@auth_router.get("/me", response_model=UserOut)
def get_current_user_info(current_user: User = Depends(get_current_user)):
    return current_user


@auth_router.post("/refresh", response_model=TokenResponse)
def refresh_token(current_user: User = Depends(get_current_user), db: Session = Depends(get_db)):
    return AuthService(db).refresh(current_user)


@auth_router.post("/logout", response_model=dict)
def logout():
    """
    Tokens are stateless; the client discards its copy.
    """
    return {"message": "Logged out"}


@auth_router.post("/change-password", response_model=dict)
def change_password(
    body: ChangePasswordRequest,
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db)
):
    return AuthService(db).change_password(current_user, body.current_password, body.new_password)


@auth_router.post("/portal-access", response_model=PortalAccessResponse, status_code=status.HTTP_201_CREATED)
def create_portal_access(
    body: PortalAccessCreate,
    db: Session = Depends(get_db),
    auth_context=Depends(AuthDependencies.require_admin())
):
    """
    Create a portal login for a client or staff member.

    Only admins. The temporary password appears in this response only.
    """
    return AuthService(db).create_portal_access(body, auth_context)
