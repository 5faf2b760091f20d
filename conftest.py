"""
Shared fixtures for the module test suites.

Tests run against an in-memory SQLite database. The application's get_db
dependency is overridden so HTTP calls and direct service calls share one
session.
"""
import os

os.environ.setdefault("ENVIRONMENT", "test")
os.environ.setdefault("DATABASE_URL", "sqlite://")
os.environ.setdefault("BCRYPT_ROUNDS", "4")

import pytest
from datetime import date
from decimal import Decimal

from invoicehub.main import app
from invoicehub.database.database import Base, SessionLocal, sync_engine, get_db
from invoicehub.modules.auth.schemas import UserCreate, PortalAccessCreate, AuthContext
from invoicehub.modules.auth.service import AuthService
from invoicehub.modules.clients.schemas import ClientCreate
from invoicehub.modules.clients.service import ClientService
from invoicehub.modules.products.schemas import ProductCreate
from invoicehub.modules.products.service import create_product
from invoicehub.modules.staff.models import StaffRole
from invoicehub.modules.staff.schemas import StaffCreate
from invoicehub.modules.staff.service import StaffService
from invoicehub.modules.transactions.models import TransactionStatus
from invoicehub.modules.transactions.schemas import TransactionCreate, TransactionItemCreate
from invoicehub.modules.transactions.service import TransactionService

ADMIN_PASSWORD = "Secret#123"


def _context(token_response) -> AuthContext:
    user = token_response.user
    return AuthContext(
        user_id=user.id,
        tenant_id=user.tenant_id,
        user_role=user.role.value,
        email=user.email,
        client_id=user.client_id,
        staff_id=user.staff_id
    )


def _headers(token_response) -> dict:
    return {"Authorization": f"Bearer {token_response.access_token}"}


# ===== DATABASE =====

@pytest.fixture
def db_session():
    """Fresh schema per test; the app uses the same session."""
    Base.metadata.create_all(bind=sync_engine)
    session = SessionLocal()
    app.dependency_overrides[get_db] = lambda: session
    try:
        yield session
    finally:
        app.dependency_overrides.pop(get_db, None)
        session.close()
        Base.metadata.drop_all(bind=sync_engine)


# ===== TENANTS AND USERS =====

@pytest.fixture
def admin_auth(db_session):
    return AuthService(db_session).register(UserCreate(
        first_name="Ada",
        last_name="Admin",
        email="ada@acmestudio.com",
        password=ADMIN_PASSWORD,
        company_name="Acme Studio"
    ))


@pytest.fixture
def admin_context(admin_auth) -> AuthContext:
    return _context(admin_auth)


@pytest.fixture
def admin_headers(admin_auth) -> dict:
    return _headers(admin_auth)


@pytest.fixture
def other_admin_auth(db_session):
    """Admin of a second, unrelated tenant."""
    return AuthService(db_session).register(UserCreate(
        first_name="Otto",
        last_name="Other",
        email="otto@globexcorp.com",
        password=ADMIN_PASSWORD,
        company_name="Globex Corp"
    ))


@pytest.fixture
def other_admin_headers(other_admin_auth) -> dict:
    return _headers(other_admin_auth)


# ===== RECORDS =====

@pytest.fixture
def sample_client(db_session, admin_context):
    return ClientService(db_session).create_client(
        ClientCreate(
            business_name="Northwind Traders",
            contact_person="Nora West",
            email="billing@northwind.com",
            phone="+1 555 010 2000",
            street="12 Harbor Rd",
            city="Portland",
            state="OR",
            zip="97201",
            payment_terms="Net 30"
        ),
        admin_context.tenant_id,
        admin_context.user_id
    )


@pytest.fixture
def sample_product(db_session, admin_context):
    return create_product(
        db_session,
        ProductCreate(name="Website Maintenance", category="Services", price=Decimal("250.00"), tax_rate=Decimal("10.00")),
        admin_context.tenant_id,
        admin_context.user_id
    )


@pytest.fixture
def sample_staff(db_session, admin_context):
    return StaffService(db_session).create_staff(
        StaffCreate(
            name="Sam Support",
            email="sam@acmestudio.com",
            position="Support Engineer",
            join_date=date(2024, 1, 15),
            role=StaffRole.SUPPORT,
            payment_rate=Decimal("1500.00")
        ),
        admin_context.tenant_id
    )


@pytest.fixture
def make_transaction(db_session, admin_context, sample_client):
    """Factory for single-line, tax-free transactions of the sample client."""
    def _make(amount="100.00", status=TransactionStatus.PENDING, transaction_date=None, due_date=None, client=None):
        data = TransactionCreate(
            client_id=(client or sample_client).id,
            transaction_date=transaction_date or date.today(),
            due_date=due_date,
            status=status,
            items=[TransactionItemCreate(description="Consulting", quantity=Decimal("1"), unit_price=Decimal(amount))]
        )
        return TransactionService(db_session).create_transaction(data, admin_context.tenant_id, admin_context.user_id)
    return _make


# ===== PORTAL USERS =====

@pytest.fixture
def client_portal_auth(db_session, admin_context, sample_client):
    access = AuthService(db_session).create_portal_access(PortalAccessCreate(client_id=sample_client.id), admin_context)
    return AuthService(db_session).login(access.user.email, access.temporary_password)


@pytest.fixture
def client_headers(client_portal_auth) -> dict:
    return _headers(client_portal_auth)


@pytest.fixture
def client_context(client_portal_auth) -> AuthContext:
    return _context(client_portal_auth)


@pytest.fixture
def staff_portal_auth(db_session, admin_context, sample_staff):
    access = AuthService(db_session).create_portal_access(PortalAccessCreate(staff_id=sample_staff.id), admin_context)
    return AuthService(db_session).login(access.user.email, access.temporary_password)


@pytest.fixture
def staff_headers(staff_portal_auth) -> dict:
    return _headers(staff_portal_auth)


@pytest.fixture
def staff_context(staff_portal_auth) -> AuthContext:
    return _context(staff_portal_auth)
