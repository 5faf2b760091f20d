from fastapi import APIRouter, Depends, status, Query
from sqlalchemy.orm import Session
from typing import List, Optional
from uuid import UUID

from invoicehub.database.database import get_db
from invoicehub.modules.auth.dependencies import AuthDependencies
from invoicehub.modules.quick_templates.service import QuickTemplateService
from invoicehub.modules.quick_templates.schemas import (
    QuickTransactionTemplateCreate, QuickTransactionTemplateUpdate, QuickTransactionTemplateOut,
    QuickStaffPaymentTemplateCreate, QuickStaffPaymentTemplateUpdate, QuickStaffPaymentTemplateOut,
    ExecuteTemplateRequest
)
from invoicehub.modules.transactions.schemas import TransactionDetail
from invoicehub.modules.staff.schemas import StaffPaymentOut

router = APIRouter(prefix="/quick-templates", tags=["Quick Templates"])


# ===== Transaction templates =====

@router.get("/transactions", response_model=List[QuickTransactionTemplateOut])
def list_transaction_templates(
    include_inactive: bool = Query(False),
    db: Session = Depends(get_db),
    auth_context=Depends(AuthDependencies.require_admin_or_staff())
):
    return QuickTemplateService(db).list_transaction_templates(auth_context.tenant_id, include_inactive)


@router.post("/transactions", response_model=QuickTransactionTemplateOut, status_code=status.HTTP_201_CREATED)
def create_transaction_template(
    data: QuickTransactionTemplateCreate,
    db: Session = Depends(get_db),
    auth_context=Depends(AuthDependencies.require_admin())
):
    """
    Save a one-line transaction preset

    Price and tax rate default to the product's when omitted.
    """
    return QuickTemplateService(db).create_transaction_template(data, auth_context.tenant_id, auth_context.user_id)


@router.put("/transactions/{template_id}", response_model=QuickTransactionTemplateOut)
def update_transaction_template(
    template_id: UUID,
    data: QuickTransactionTemplateUpdate,
    db: Session = Depends(get_db),
    auth_context=Depends(AuthDependencies.require_admin())
):
    return QuickTemplateService(db).update_transaction_template(template_id, data, auth_context.tenant_id)


@router.delete("/transactions/{template_id}", status_code=status.HTTP_204_NO_CONTENT)
def delete_transaction_template(
    template_id: UUID,
    db: Session = Depends(get_db),
    auth_context=Depends(AuthDependencies.require_admin())
):
    QuickTemplateService(db).delete_transaction_template(template_id, auth_context.tenant_id)


@router.post("/transactions/{template_id}/execute", response_model=TransactionDetail,
             status_code=status.HTTP_201_CREATED)
def execute_transaction_template(
    template_id: UUID,
    body: Optional[ExecuteTemplateRequest] = None,
    db: Session = Depends(get_db),
    auth_context=Depends(AuthDependencies.require_admin_or_staff())
):
    """
    Create a paid transaction from the template

    The income is booked in the ledger and the client's total is updated.
    """
    execution_date = body.execution_date if body else None
    return QuickTemplateService(db).execute_transaction_template(
        template_id, auth_context.tenant_id, auth_context.user_id, execution_date
    )


# ===== Staff payment templates =====

@router.get("/staff-payments", response_model=List[QuickStaffPaymentTemplateOut])
def list_staff_templates(
    include_inactive: bool = Query(False),
    db: Session = Depends(get_db),
    auth_context=Depends(AuthDependencies.require_admin())
):
    return QuickTemplateService(db).list_staff_templates(auth_context.tenant_id, include_inactive)


@router.post("/staff-payments", response_model=QuickStaffPaymentTemplateOut, status_code=status.HTTP_201_CREATED)
def create_staff_template(
    data: QuickStaffPaymentTemplateCreate,
    db: Session = Depends(get_db),
    auth_context=Depends(AuthDependencies.require_admin())
):
    return QuickTemplateService(db).create_staff_template(data, auth_context.tenant_id, auth_context.user_id)


@router.put("/staff-payments/{template_id}", response_model=QuickStaffPaymentTemplateOut)
def update_staff_template(
    template_id: UUID,
    data: QuickStaffPaymentTemplateUpdate,
    db: Session = Depends(get_db),
    auth_context=Depends(AuthDependencies.require_admin())
):
    return QuickTemplateService(db).update_staff_template(template_id, data, auth_context.tenant_id)


@router.delete("/staff-payments/{template_id}", status_code=status.HTTP_204_NO_CONTENT)
def delete_staff_template(
    template_id: UUID,
    db: Session = Depends(get_db),
    auth_context=Depends(AuthDependencies.require_admin())
):
    QuickTemplateService(db).delete_staff_template(template_id, auth_context.tenant_id)


@router.post("/staff-payments/{template_id}/execute", response_model=StaffPaymentOut,
             status_code=status.HTTP_201_CREATED)
def execute_staff_template(
    template_id: UUID,
    body: Optional[ExecuteTemplateRequest] = None,
    db: Session = Depends(get_db),
    auth_context=Depends(AuthDependencies.require_admin())
):
    """Pay the staff member the template amount, with its ledger expense."""
    execution_date = body.execution_date if body else None
    return QuickTemplateService(db).execute_staff_template(
        template_id, auth_context.tenant_id, auth_context.user_id, execution_date
    )
