from fastapi import HTTPException, status
from sqlalchemy import or_, func
from sqlalchemy.orm import Session
from typing import Optional, List
from uuid import UUID
import logging

from invoicehub.modules.products.models import Product, ProductStatus
from invoicehub.modules.products.schemas import ProductCreate, ProductUpdate, ProductOut, PaginatedProductResponse
from invoicehub.modules.transactions.models import TransactionItem
from invoicehub.modules.quick_templates.models import QuickTransactionTemplate

logger = logging.getLogger(__name__)


def get_products(
    db: Session,
    tenant_id: UUID,
    page: int = 1,
    limit: int = 50,
    search: Optional[str] = None,
    category: Optional[str] = None,
    product_status: Optional[ProductStatus] = None
) -> PaginatedProductResponse:
    """
    Paginated product list with optional filters
    """
    query = db.query(Product).filter(Product.tenant_id == tenant_id)

    if search:
        query = query.filter(
            or_(
                Product.name.ilike(f"%{search}%"),
                Product.description.ilike(f"%{search}%")
            )
        )
    if category:
        query = query.filter(func.lower(Product.category) == category.lower())
    if product_status:
        query = query.filter(Product.status == product_status)

    total = query.count()
    products = query.order_by(Product.name).offset((page - 1) * limit).limit(limit).all()

    return PaginatedProductResponse(
        items=[ProductOut.model_validate(p) for p in products],
        total=total,
        page=page,
        limit=limit,
        total_pages=(total + limit - 1) // limit if total else 0
    )


def search_products(db: Session, tenant_id: UUID, term: str) -> List[Product]:
    """Active products whose name or description contains the term."""
    return db.query(Product).filter(
        Product.tenant_id == tenant_id,
        Product.status == ProductStatus.ACTIVE,
        or_(
            Product.name.ilike(f"%{term}%"),
            Product.description.ilike(f"%{term}%")
        )
    ).order_by(Product.name).all()


def get_categories(db: Session, tenant_id: UUID) -> List[str]:
    rows = db.query(Product.category).filter(
        Product.tenant_id == tenant_id,
        Product.category.isnot(None)
    ).distinct().order_by(Product.category).all()
    return [row[0] for row in rows]


def get_product_by_id(db: Session, tenant_id: UUID, product_id: UUID) -> Product:
    product = db.query(Product).filter(
        Product.id == product_id,
        Product.tenant_id == tenant_id
    ).first()
    if not product:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Product not found")
    return product


def create_product(db: Session, data: ProductCreate, tenant_id: UUID, user_id: UUID) -> Product:
    try:
        product = Product(tenant_id=tenant_id, created_by=user_id, **data.model_dump())
        db.add(product)
        db.commit()
        db.refresh(product)
        logger.info(f"Product created: {product.id} ({product.name})")
        return product
    except Exception as e:
        db.rollback()
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail=f"Error creating product: {str(e)}"
        )


def update_product(db: Session, tenant_id: UUID, product_id: UUID, data: ProductUpdate) -> Product:
    product = get_product_by_id(db, tenant_id, product_id)
    update_data = data.model_dump(exclude_unset=True)
    for field in ("name", "price", "tax_rate", "status"):
        if field in update_data and update_data[field] is None:
            raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=f"{field} cannot be null")
    try:
        for field, value in update_data.items():
            setattr(product, field, value)
        db.commit()
        db.refresh(product)
        return product
    except Exception as e:
        db.rollback()
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail=f"Error updating product: {str(e)}"
        )


def delete_product(db: Session, tenant_id: UUID, product_id: UUID) -> None:
    """
    Delete a product. Existing line items keep their description and prices;
    templates pointing at it lose the link.
    """
    product = get_product_by_id(db, tenant_id, product_id)
    try:
        db.query(TransactionItem).filter(
            TransactionItem.product_id == product_id
        ).update({TransactionItem.product_id: None}, synchronize_session=False)
        db.query(QuickTransactionTemplate).filter(
            QuickTransactionTemplate.tenant_id == tenant_id,
            QuickTransactionTemplate.product_id == product_id
        ).update({QuickTransactionTemplate.product_id: None}, synchronize_session=False)
        db.delete(product)
        db.commit()
        logger.info(f"Product deleted: {product_id}")
    except Exception as e:
        db.rollback()
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail=f"Error deleting product: {str(e)}"
        )
