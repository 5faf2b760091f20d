from fastapi import APIRouter, Depends, status, Query, HTTPException
from sqlalchemy.orm import Session
from typing import Optional
from uuid import UUID

from invoicehub.database.database import get_db
from invoicehub.core.config import settings
from invoicehub.modules.auth.dependencies import AuthDependencies
from invoicehub.modules.auth.schemas import AuthContext
from invoicehub.modules.clients.service import ClientService
from invoicehub.modules.clients.schemas import (
    ClientCreate, ClientUpdate, ClientOut, ClientList, ClientPaymentsResponse
)
from invoicehub.modules.transactions.service import TransactionService
from invoicehub.modules.transactions.schemas import TransactionList, TransactionFilters

router = APIRouter(prefix="/clients", tags=["Clients"])


def _ensure_own_client(auth_context: AuthContext, client_id: UUID) -> None:
    if auth_context.is_client and auth_context.client_id != client_id:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Client not found")


@router.get("/", response_model=ClientList)
def list_clients(
    search: Optional[str] = Query(None, description="Name, contact, email or code"),
    is_active: Optional[bool] = Query(None),
    limit: int = Query(settings.DEFAULT_PAGE_SIZE, ge=1, le=settings.MAX_PAGE_SIZE),
    offset: int = Query(0, ge=0),
    db: Session = Depends(get_db),
    auth_context=Depends(AuthDependencies.require_admin_or_staff())
):
    return ClientService(db).list_clients(auth_context.tenant_id, search, is_active, limit, offset)


@router.get("/me", response_model=ClientOut)
def get_my_client_profile(
    db: Session = Depends(get_db),
    auth_context=Depends(AuthDependencies.require_role(["client"]))
):
    """Client portal: the client record linked to the current user."""
    if not auth_context.client_id:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="No client linked to this account")
    return ClientService(db).get_client(auth_context.client_id, auth_context.tenant_id)


@router.get("/me/transactions", response_model=TransactionList)
def get_my_transactions(
    limit: int = Query(settings.DEFAULT_PAGE_SIZE, ge=1, le=settings.MAX_PAGE_SIZE),
    offset: int = Query(0, ge=0),
    db: Session = Depends(get_db),
    auth_context=Depends(AuthDependencies.require_role(["client"]))
):
    return TransactionService(db).list_transactions(auth_context, TransactionFilters(), limit, offset)


@router.post("/", response_model=ClientOut, status_code=status.HTTP_201_CREATED)
def create_client(
    data: ClientCreate,
    db: Session = Depends(get_db),
    auth_context=Depends(AuthDependencies.require_admin())
):
    """
    Create a client

    A CLT-NNNN code is assigned automatically.
    """
    return ClientService(db).create_client(data, auth_context.tenant_id, auth_context.user_id)


@router.get("/{client_id}", response_model=ClientOut)
def get_client(
    client_id: UUID,
    db: Session = Depends(get_db),
    auth_context=Depends(AuthDependencies.require_any_role())
):
    _ensure_own_client(auth_context, client_id)
    return ClientService(db).get_client(client_id, auth_context.tenant_id)


@router.put("/{client_id}", response_model=ClientOut)
def update_client(
    client_id: UUID,
    data: ClientUpdate,
    db: Session = Depends(get_db),
    auth_context=Depends(AuthDependencies.require_admin())
):
    return ClientService(db).update_client(client_id, data, auth_context.tenant_id)


@router.delete("/{client_id}", response_model=dict)
def delete_client(
    client_id: UUID,
    db: Session = Depends(get_db),
    auth_context=Depends(AuthDependencies.require_admin())
):
    """
    Delete a client and everything attached to it

    Transactions, payments, ledger entries and quick templates are removed in
    one database transaction. Portal users are disabled.
    """
    return ClientService(db).delete_client(client_id, auth_context.tenant_id)


@router.get("/{client_id}/transactions", response_model=TransactionList)
def get_client_transactions(
    client_id: UUID,
    limit: int = Query(settings.DEFAULT_PAGE_SIZE, ge=1, le=settings.MAX_PAGE_SIZE),
    offset: int = Query(0, ge=0),
    db: Session = Depends(get_db),
    auth_context=Depends(AuthDependencies.require_admin_or_staff())
):
    ClientService(db).get_client(client_id, auth_context.tenant_id)
    filters = TransactionFilters(client_id=client_id)
    return TransactionService(db).list_transactions(auth_context, filters, limit, offset)


@router.get("/{client_id}/payments", response_model=ClientPaymentsResponse)
def get_client_payments(
    client_id: UUID,
    db: Session = Depends(get_db),
    auth_context=Depends(AuthDependencies.require_any_role())
):
    """Payments across all of a client's transactions with a summary."""
    _ensure_own_client(auth_context, client_id)
    return ClientService(db).get_client_payments(client_id, auth_context.tenant_id)
