from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from invoicehub.database.database import get_db
from invoicehub.modules.auth.dependencies import AuthDependencies
from invoicehub.modules.dashboard.service import DashboardService
from invoicehub.modules.dashboard.schemas import DashboardStats, ClientDashboardStats, StaffDashboardStats

router = APIRouter(prefix="/dashboard", tags=["Dashboard"])


@router.get("/stats", response_model=DashboardStats)
def get_stats(
    db: Session = Depends(get_db),
    auth_context=Depends(AuthDependencies.require_admin_or_staff())
):
    """
    Revenue, open invoices, client and staff counts for the company
    """
    return DashboardService(db).admin_stats(auth_context.tenant_id)


@router.get("/client", response_model=ClientDashboardStats)
def get_client_stats(
    db: Session = Depends(get_db),
    auth_context=Depends(AuthDependencies.require_role(["client"]))
):
    return DashboardService(db).client_stats(auth_context)


@router.get("/staff", response_model=StaffDashboardStats)
def get_staff_stats(
    db: Session = Depends(get_db),
    auth_context=Depends(AuthDependencies.require_role(["staff"]))
):
    return DashboardService(db).staff_stats(auth_context)
