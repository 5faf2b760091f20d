from fastapi import APIRouter, Depends
from invoicehub.modules.company import service
from invoicehub.modules.company.schemas import CompanyOut, CompanyUpdate
from invoicehub.dependencies.dbDependecies import db_dependency
from invoicehub.modules.auth.dependencies import AuthDependencies

company_router = APIRouter()


@company_router.get("/me", response_model=CompanyOut)
def get_my_company(db: db_dependency, auth_context=Depends(AuthDependencies.require_any_role())):
    """Company the current user belongs to."""
    return service.get_company(db, auth_context.tenant_id)


@company_router.patch("/me", response_model=CompanyOut)
def update_my_company(data: CompanyUpdate, db: db_dependency,
                      auth_context=Depends(AuthDependencies.require_admin())):
    """
    Update company details. These are printed on generated invoices.
    """
    return service.update_company(db, auth_context.tenant_id, data)
