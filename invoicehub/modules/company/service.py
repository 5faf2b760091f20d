from fastapi import HTTPException, status
from sqlalchemy.orm import Session
from invoicehub.modules.company.models import Company
from invoicehub.modules.company.schemas import CompanyUpdate
from invoicehub.core.config import settings
from uuid import UUID
import logging

logger = logging.getLogger(__name__)


def create_company(db: Session, name: str, email: str = None) -> Company:
    """
    Add a new tenant to the session. The caller owns the commit.
    """
    company = Company(name=name.strip(), email=email)
    db.add(company)
    db.flush()
    logger.info(f"Company created: {company.id} ({company.name})")
    return company


def get_company(db: Session, tenant_id: UUID) -> Company:
    company = db.query(Company).filter(Company.id == tenant_id).first()
    if not company:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Company not found")
    return company


def update_company(db: Session, tenant_id: UUID, data: CompanyUpdate) -> Company:
    company = get_company(db, tenant_id)
    for field, value in data.model_dump(exclude_unset=True).items():
        setattr(company, field, value)
    db.commit()
    db.refresh(company)
    return company


def get_branding(db: Session, tenant_id: UUID) -> dict:
    """
    Header block for generated documents.
    Tenant details win over the configured defaults.
    """
    company = db.query(Company).filter(Company.id == tenant_id).first()
    return {
        "name": (company.name if company else None) or settings.COMPANY_NAME,
        "address": (company.address if company else None) or settings.COMPANY_ADDRESS,
        "email": (company.email if company else None) or settings.COMPANY_EMAIL,
        "phone": (company.phone if company else None) or settings.COMPANY_PHONE,
        "tax_id": (company.tax_id if company else None) or settings.COMPANY_TAX_ID,
    }
