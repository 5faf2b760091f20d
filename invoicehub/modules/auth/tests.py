"""
Tests for the Auth module

Covers:
- Registration of a company with its first admin
- Login (JSON and OAuth2 form), token refresh and /me
- Password policy and password change
- Portal access for clients and staff
- Role enforcement on protected endpoints
"""

import pytest
import jwt
from fastapi import HTTPException
from fastapi.testclient import TestClient

from invoicehub.main import app
from invoicehub.core.config import settings
from invoicehub.modules.auth.models import User, UserRole
from invoicehub.modules.auth.schemas import UserCreate, PortalAccessCreate
from invoicehub.modules.auth.service import AuthService
from invoicehub.modules.auth.utils import hash_password, verify_password, create_access_token, generate_temporary_password
from invoicehub.modules.company.models import Company
from invoicehub.common.validators import validate_password_strength


client = TestClient(app)


# ===== FIXTURES =====

@pytest.fixture
def registration_payload():
    return {
        "first_name": "Grace",
        "last_name": "Hopper",
        "email": "grace@navalworks.com",
        "password": "Cobol#1959",
        "company_name": "Naval Works"
    }


# ===== PASSWORD UTILITIES =====

class TestPasswordUtils:
    """Hashing and policy helpers"""

    def test_hash_and_verify(self):
        hashed = hash_password("Secret#123")
        assert hashed != "Secret#123"
        assert verify_password("Secret#123", hashed)
        assert not verify_password("secret#123", hashed)

    def test_verify_empty_hash(self):
        assert verify_password("anything", "") is False

    def test_password_policy(self):
        assert validate_password_strength("Secret#123") is None
        assert "8 characters" in validate_password_strength("Se#1")
        assert "uppercase" in validate_password_strength("secret#123")
        assert "number" in validate_password_strength("Secret#abc")
        assert "special" in validate_password_strength("Secret1234")

    def test_temporary_password_meets_policy(self):
        for _ in range(20):
            assert validate_password_strength(generate_temporary_password()) is None

    def test_token_claims(self):
        token = create_access_token({"sub": "abc"})
        payload = jwt.decode(token, settings.APP_SECRET_STRING, algorithms=[settings.ALGORITHM])
        assert payload["sub"] == "abc"
        assert payload["type"] == "access"
        assert "exp" in payload


# ===== SERVICE =====

class TestAuthService:
    """Tests for AuthService"""

    def test_register_creates_company_and_admin(self, db_session, registration_payload):
        """Registration creates the tenant and an admin user"""
        result = AuthService(db_session).register(UserCreate(**registration_payload))

        assert result.role == UserRole.ADMIN
        assert result.user.email == "grace@navalworks.com"
        company = db_session.query(Company).filter(Company.id == result.user.tenant_id).first()
        assert company is not None
        assert company.name == "Naval Works"

    def test_register_duplicate_email(self, db_session, registration_payload):
        service = AuthService(db_session)
        service.register(UserCreate(**registration_payload))

        with pytest.raises(HTTPException) as exc_info:
            service.register(UserCreate(**{**registration_payload, "email": "GRACE@navalworks.com"}))
        assert exc_info.value.status_code == 409

    def test_register_weak_password(self, registration_payload):
        with pytest.raises(ValueError):
            UserCreate(**{**registration_payload, "password": "weakpass"})

    def test_login_wrong_password(self, db_session, admin_auth):
        with pytest.raises(HTTPException) as exc_info:
            AuthService(db_session).login("ada@acmestudio.com", "Wrong#123")
        assert exc_info.value.status_code == 401

    def test_login_inactive_user(self, db_session, admin_auth):
        user = db_session.query(User).filter(User.id == admin_auth.user.id).first()
        user.is_active = False
        db_session.commit()

        with pytest.raises(HTTPException) as exc_info:
            AuthService(db_session).login("ada@acmestudio.com", "Secret#123")
        assert exc_info.value.status_code == 403

    def test_login_stamps_last_login(self, db_session, admin_auth):
        result = AuthService(db_session).login("Ada@AcmeStudio.com", "Secret#123")
        assert result.user.last_login is not None

    def test_change_password(self, db_session, admin_auth):
        service = AuthService(db_session)
        user = db_session.query(User).filter(User.id == admin_auth.user.id).first()

        with pytest.raises(HTTPException) as exc_info:
            service.change_password(user, "Wrong#123", "Newpass#456")
        assert exc_info.value.status_code == 401

        with pytest.raises(HTTPException) as exc_info:
            service.change_password(user, "Secret#123", "Secret#123")
        assert exc_info.value.status_code == 400

        service.change_password(user, "Secret#123", "Newpass#456")
        assert service.login("ada@acmestudio.com", "Newpass#456").access_token


# ===== PORTAL ACCESS =====

class TestPortalAccess:
    """Logins for clients and staff members"""

    def test_client_portal_access(self, db_session, admin_context, sample_client):
        access = AuthService(db_session).create_portal_access(
            PortalAccessCreate(client_id=sample_client.id), admin_context
        )
        assert access.user.role == UserRole.CLIENT
        assert access.user.client_id == sample_client.id
        assert access.user.first_login is True
        assert validate_password_strength(access.temporary_password) is None

        login = AuthService(db_session).login(sample_client.email, access.temporary_password)
        assert login.role == UserRole.CLIENT

    def test_staff_portal_access(self, db_session, admin_context, sample_staff):
        access = AuthService(db_session).create_portal_access(
            PortalAccessCreate(staff_id=sample_staff.id), admin_context
        )
        assert access.user.role == UserRole.STAFF
        assert access.user.staff_id == sample_staff.id

    def test_portal_access_twice(self, db_session, admin_context, sample_client):
        service = AuthService(db_session)
        service.create_portal_access(PortalAccessCreate(client_id=sample_client.id), admin_context)

        with pytest.raises(HTTPException) as exc_info:
            service.create_portal_access(PortalAccessCreate(client_id=sample_client.id), admin_context)
        assert exc_info.value.status_code == 409

    def test_portal_access_requires_one_target(self):
        with pytest.raises(ValueError):
            PortalAccessCreate()

    def test_portal_access_client_without_email(self, db_session, admin_context, sample_client):
        sample_client.email = None
        db_session.commit()

        with pytest.raises(HTTPException) as exc_info:
            AuthService(db_session).create_portal_access(PortalAccessCreate(client_id=sample_client.id), admin_context)
        assert exc_info.value.status_code == 400


# ===== ENDPOINTS =====

class TestAuthEndpoints:
    """HTTP tests for /auth"""

    def test_register_and_me(self, db_session, registration_payload):
        response = client.post("/auth/register", json=registration_payload)
        assert response.status_code == 201
        token = response.json()["access_token"]

        me = client.get("/auth/me", headers={"Authorization": f"Bearer {token}"})
        assert me.status_code == 200
        assert me.json()["email"] == "grace@navalworks.com"
        assert me.json()["role"] == "admin"

    def test_login_json_and_form(self, db_session, admin_auth):
        response = client.post("/auth/login", json={"email": "ada@acmestudio.com", "password": "Secret#123"})
        assert response.status_code == 200
        assert response.json()["token_type"] == "bearer"

        response = client.post("/auth/token", data={"username": "ada@acmestudio.com", "password": "Secret#123"})
        assert response.status_code == 200
        assert response.json()["role"] == "admin"

    def test_me_without_token(self, db_session):
        assert client.get("/auth/me").status_code in (401, 403)

    def test_me_with_garbage_token(self, db_session):
        response = client.get("/auth/me", headers={"Authorization": "Bearer not-a-token"})
        assert response.status_code == 401

    def test_refresh(self, db_session, admin_headers):
        response = client.post("/auth/refresh", headers=admin_headers)
        assert response.status_code == 200
        assert response.json()["user"]["email"] == "ada@acmestudio.com"

    def test_portal_access_endpoint_admin_only(self, db_session, admin_headers, client_headers, sample_staff):
        response = client.post("/auth/portal-access", json={"staff_id": str(sample_staff.id)}, headers=client_headers)
        assert response.status_code == 403

        response = client.post("/auth/portal-access", json={"staff_id": str(sample_staff.id)}, headers=admin_headers)
        assert response.status_code == 201
        assert response.json()["user"]["role"] == "staff"
        assert response.json()["temporary_password"]

    def test_change_password_endpoint(self, db_session, admin_headers):
        response = client.post(
            "/auth/change-password",
            json={"current_password": "Secret#123", "new_password": "short"},
            headers=admin_headers
        )
        assert response.status_code == 422

        response = client.post(
            "/auth/change-password",
            json={"current_password": "Secret#123", "new_password": "Better#456"},
            headers=admin_headers
        )
        assert response.status_code == 200
