from fastapi import APIRouter, Depends, status, Query
from sqlalchemy.orm import Session
from typing import List, Optional
from uuid import UUID
from datetime import date

from invoicehub.database.database import get_db
from invoicehub.core.config import settings
from invoicehub.modules.auth.dependencies import AuthDependencies
from invoicehub.modules.ledger.service import LedgerService
from invoicehub.modules.ledger.models import LedgerEntryType
from invoicehub.modules.ledger.schemas import (
    LedgerList, LedgerEntryOut, ManualEntryCreate, PeriodSummary, MonthlySummary
)

router = APIRouter(prefix="/ledger", tags=["Ledger"])


@router.get("/", response_model=LedgerList)
def list_entries(
    year: Optional[int] = Query(None, ge=1900, le=9999),
    month: Optional[int] = Query(None, ge=1, le=12),
    client_id: Optional[UUID] = Query(None, description="Filter by client"),
    staff_id: Optional[UUID] = Query(None, description="Filter by staff member"),
    entry_type: Optional[LedgerEntryType] = Query(None),
    limit: int = Query(settings.DEFAULT_PAGE_SIZE, ge=1, le=settings.MAX_PAGE_SIZE),
    offset: int = Query(0, ge=0),
    db: Session = Depends(get_db),
    auth_context=Depends(AuthDependencies.require_admin_or_staff())
):
    """
    Ledger entries, newest first

    Totals cover every entry matching the filters, not only the returned page.
    """
    return LedgerService(db).list_entries(
        auth_context.tenant_id, year, month, client_id, staff_id, entry_type, limit, offset
    )


@router.get("/summary/monthly", response_model=MonthlySummary)
def monthly_summary(
    year: Optional[int] = Query(None, ge=1900, le=9999, description="Defaults to the current year"),
    db: Session = Depends(get_db),
    auth_context=Depends(AuthDependencies.require_admin_or_staff())
):
    """Income, expense and profit for each month of a year."""
    return LedgerService(db).monthly_summary(auth_context.tenant_id, year or date.today().year)


@router.get("/summary/current-month", response_model=PeriodSummary)
def current_month_summary(
    db: Session = Depends(get_db),
    auth_context=Depends(AuthDependencies.require_admin_or_staff())
):
    return LedgerService(db).current_month_summary(auth_context.tenant_id)


@router.get("/summary/yearly", response_model=List[PeriodSummary])
def yearly_summary(
    db: Session = Depends(get_db),
    auth_context=Depends(AuthDependencies.require_admin_or_staff())
):
    return LedgerService(db).yearly_summary(auth_context.tenant_id)


@router.post("/", response_model=LedgerEntryOut, status_code=status.HTTP_201_CREATED)
def add_manual_entry(
    data: ManualEntryCreate,
    db: Session = Depends(get_db),
    auth_context=Depends(AuthDependencies.require_admin())
):
    """
    Record an income or expense that has no source document
    """
    return LedgerService(db).add_manual_entry(data, auth_context.tenant_id, auth_context.user_id)


@router.delete("/{entry_id}", status_code=status.HTTP_204_NO_CONTENT)
def delete_manual_entry(
    entry_id: UUID,
    db: Session = Depends(get_db),
    auth_context=Depends(AuthDependencies.require_admin())
):
    LedgerService(db).delete_manual_entry(entry_id, auth_context.tenant_id)
