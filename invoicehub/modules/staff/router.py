from fastapi import APIRouter, Depends, status, Query, HTTPException
from sqlalchemy.orm import Session
from typing import List, Optional
from uuid import UUID

from invoicehub.database.database import get_db
from invoicehub.modules.auth.dependencies import AuthDependencies
from invoicehub.modules.auth.schemas import AuthContext
from invoicehub.modules.staff.service import StaffService
from invoicehub.modules.staff.models import StaffRole, StaffStatus
from invoicehub.modules.staff.schemas import (
    StaffCreate, StaffUpdate, StaffOut, StaffPaymentCreate, StaffPaymentUpdate, StaffPaymentOut,
    StaffPaymentTotal, StaffPaymentStats
)

router = APIRouter(prefix="/staff", tags=["Staff"])


def _own_staff_id(auth_context: AuthContext) -> UUID:
    if not auth_context.staff_id:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="No staff record linked to this account")
    return auth_context.staff_id


@router.get("/", response_model=List[StaffOut])
def list_staff(
    search: Optional[str] = Query(None, description="Name, email or position"),
    role: Optional[StaffRole] = Query(None),
    status: Optional[StaffStatus] = Query(None),
    db: Session = Depends(get_db),
    auth_context=Depends(AuthDependencies.require_admin_or_staff())
):
    return StaffService(db).list_staff(auth_context.tenant_id, search, role, status)


@router.get("/me", response_model=StaffOut)
def get_my_staff_profile(
    db: Session = Depends(get_db),
    auth_context=Depends(AuthDependencies.require_role(["staff"]))
):
    """Staff portal: the staff record linked to the current user."""
    return StaffService(db).get_staff(_own_staff_id(auth_context), auth_context.tenant_id)


@router.get("/me/payments", response_model=List[StaffPaymentOut])
def get_my_payments(
    db: Session = Depends(get_db),
    auth_context=Depends(AuthDependencies.require_role(["staff"]))
):
    return StaffService(db).list_payments(_own_staff_id(auth_context), auth_context.tenant_id)


@router.post("/", response_model=StaffOut, status_code=status.HTTP_201_CREATED)
def create_staff(
    data: StaffCreate,
    db: Session = Depends(get_db),
    auth_context=Depends(AuthDependencies.require_admin())
):
    return StaffService(db).create_staff(data, auth_context.tenant_id)


@router.get("/{staff_id}", response_model=StaffOut)
def get_staff(
    staff_id: UUID,
    db: Session = Depends(get_db),
    auth_context=Depends(AuthDependencies.require_admin_or_staff())
):
    return StaffService(db).get_staff(staff_id, auth_context.tenant_id)


@router.put("/{staff_id}", response_model=StaffOut)
def update_staff(
    staff_id: UUID,
    data: StaffUpdate,
    db: Session = Depends(get_db),
    auth_context=Depends(AuthDependencies.require_admin())
):
    return StaffService(db).update_staff(staff_id, data, auth_context.tenant_id)


@router.delete("/{staff_id}", response_model=dict)
def delete_staff(
    staff_id: UUID,
    db: Session = Depends(get_db),
    auth_context=Depends(AuthDependencies.require_admin())
):
    """
    Delete a staff member

    Their payments and the matching ledger expenses are removed as well.
    """
    return StaffService(db).delete_staff(staff_id, auth_context.tenant_id)


# ===== Payments =====

@router.get("/{staff_id}/payments", response_model=List[StaffPaymentOut])
def list_payments(
    staff_id: UUID,
    db: Session = Depends(get_db),
    auth_context=Depends(AuthDependencies.require_admin())
):
    return StaffService(db).list_payments(staff_id, auth_context.tenant_id)


@router.post("/{staff_id}/payments", response_model=StaffPaymentOut, status_code=status.HTTP_201_CREATED)
def record_payment(
    staff_id: UUID,
    data: StaffPaymentCreate,
    db: Session = Depends(get_db),
    auth_context=Depends(AuthDependencies.require_admin())
):
    """
    Pay a staff member

    An expense entry is added to the ledger in the same transaction.
    """
    return StaffService(db).record_payment(staff_id, data, auth_context.tenant_id, auth_context.user_id)


@router.get("/{staff_id}/payments/total", response_model=StaffPaymentTotal)
def total_paid(
    staff_id: UUID,
    db: Session = Depends(get_db),
    auth_context=Depends(AuthDependencies.require_admin())
):
    return StaffService(db).total_paid(staff_id, auth_context.tenant_id)


@router.get("/{staff_id}/payments/stats", response_model=StaffPaymentStats)
def payment_stats(
    staff_id: UUID,
    db: Session = Depends(get_db),
    auth_context=Depends(AuthDependencies.require_admin())
):
    """Totals for the last six months."""
    return StaffService(db).payment_stats(staff_id, auth_context.tenant_id)


@router.get("/{staff_id}/payments/{payment_id}", response_model=StaffPaymentOut)
def get_payment(
    staff_id: UUID,
    payment_id: UUID,
    db: Session = Depends(get_db),
    auth_context=Depends(AuthDependencies.require_admin())
):
    return StaffService(db).get_payment(staff_id, payment_id, auth_context.tenant_id)


@router.put("/{staff_id}/payments/{payment_id}", response_model=StaffPaymentOut)
def update_payment(
    staff_id: UUID,
    payment_id: UUID,
    data: StaffPaymentUpdate,
    db: Session = Depends(get_db),
    auth_context=Depends(AuthDependencies.require_admin())
):
    return StaffService(db).update_payment(staff_id, payment_id, data, auth_context.tenant_id)


@router.delete("/{staff_id}/payments/{payment_id}", status_code=status.HTTP_204_NO_CONTENT)
def delete_payment(
    staff_id: UUID,
    payment_id: UUID,
    db: Session = Depends(get_db),
    auth_context=Depends(AuthDependencies.require_admin())
):
    StaffService(db).delete_payment(staff_id, payment_id, auth_context.tenant_id)
