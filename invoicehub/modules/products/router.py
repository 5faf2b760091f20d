from fastapi import APIRouter, Depends, Query, status
from sqlalchemy.orm import Session
from typing import List, Optional
from uuid import UUID

from invoicehub.dependencies.dbDependecies import get_db
from invoicehub.core.config import settings
from invoicehub.modules.auth.dependencies import AuthDependencies
from invoicehub.modules.products import service
from invoicehub.modules.products.models import ProductStatus
from invoicehub.modules.products.schemas import (
    ProductCreate, ProductUpdate, ProductOut, PaginatedProductResponse
)

product_router = APIRouter(prefix="/products")


@product_router.post("/", response_model=ProductOut, status_code=status.HTTP_201_CREATED)
def create_product(
    data: ProductCreate,
    db: Session = Depends(get_db),
    auth_context=Depends(AuthDependencies.require_admin())
):
    """Create a product or service in the catalog."""
    return service.create_product(db, data, auth_context.tenant_id, auth_context.user_id)


@product_router.get("/", response_model=PaginatedProductResponse)
def list_products(
    page: int = Query(1, ge=1),
    limit: int = Query(settings.DEFAULT_PAGE_SIZE, ge=1, le=settings.MAX_PAGE_SIZE),
    search: Optional[str] = Query(None),
    category: Optional[str] = Query(None),
    status: Optional[ProductStatus] = Query(None),
    db: Session = Depends(get_db),
    auth_context=Depends(AuthDependencies.require_admin_or_staff())
):
    """
    List products, filtered by category, status or a search term.
    """
    return service.get_products(db, auth_context.tenant_id, page, limit, search, category, status)


@product_router.get("/search", response_model=List[ProductOut])
def search_products(
    q: str = Query(..., min_length=1),
    db: Session = Depends(get_db),
    auth_context=Depends(AuthDependencies.require_admin_or_staff())
):
    return service.search_products(db, auth_context.tenant_id, q)


@product_router.get("/categories", response_model=List[str])
def list_categories(
    db: Session = Depends(get_db),
    auth_context=Depends(AuthDependencies.require_admin_or_staff())
):
    return service.get_categories(db, auth_context.tenant_id)


@product_router.get("/{product_id}", response_model=ProductOut)
def get_product(
    product_id: UUID,
    db: Session = Depends(get_db),
    auth_context=Depends(AuthDependencies.require_admin_or_staff())
):
    return service.get_product_by_id(db, auth_context.tenant_id, product_id)


@product_router.patch("/{product_id}", response_model=ProductOut)
def update_product(
    product_id: UUID,
    data: ProductUpdate,
    db: Session = Depends(get_db),
    auth_context=Depends(AuthDependencies.require_admin())
):
    return service.update_product(db, auth_context.tenant_id, product_id, data)


@product_router.delete("/{product_id}", status_code=status.HTTP_204_NO_CONTENT)
def delete_product(
    product_id: UUID,
    db: Session = Depends(get_db),
    auth_context=Depends(AuthDependencies.require_admin())
):
    service.delete_product(db, auth_context.tenant_id, product_id)
