"""
Quick templates: saved presets that turn into a paid transaction or a
staff payment in one call. Execution goes through the transaction and staff
services so the ledger rules are the same as for manual entry.
"""
from fastapi import HTTPException, status
from sqlalchemy.orm import Session
from typing import List, Optional
from uuid import UUID
from datetime import date, timedelta
from decimal import Decimal
import logging

from invoicehub.modules.quick_templates.models import QuickTransactionTemplate, QuickStaffPaymentTemplate
from invoicehub.modules.quick_templates.schemas import (
    QuickTransactionTemplateCreate, QuickTransactionTemplateUpdate,
    QuickStaffPaymentTemplateCreate, QuickStaffPaymentTemplateUpdate
)
from invoicehub.modules.clients.models import Client
from invoicehub.modules.products.models import Product
from invoicehub.modules.staff.models import Staff, StaffPayment
from invoicehub.modules.staff.schemas import StaffPaymentCreate
from invoicehub.modules.staff.service import StaffService
from invoicehub.modules.transactions.models import Transaction, TransactionStatus
from invoicehub.modules.transactions.schemas import TransactionCreate, TransactionItemCreate
from invoicehub.modules.transactions.service import TransactionService
from invoicehub.common.validators import money
from invoicehub.core.config import settings

logger = logging.getLogger(__name__)

NOT_NULL_TRANSACTION_FIELDS = ("name", "client_id", "quantity", "unit_price", "tax_rate", "payment_method", "is_active")
NOT_NULL_STAFF_FIELDS = ("name", "staff_id", "amount", "payment_method", "is_active")


class QuickTemplateService:
    def __init__(self, db: Session):
        self.db = db

    def _client(self, client_id: UUID, tenant_id: UUID) -> Client:
        client = self.db.query(Client).filter(Client.id == client_id, Client.tenant_id == tenant_id).first()
        if not client:
            raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Client not found")
        return client

    def _product(self, product_id: UUID, tenant_id: UUID) -> Product:
        product = self.db.query(Product).filter(Product.id == product_id, Product.tenant_id == tenant_id).first()
        if not product:
            raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Product not found")
        return product

    def _staff(self, staff_id: UUID, tenant_id: UUID) -> Staff:
        staff = self.db.query(Staff).filter(Staff.id == staff_id, Staff.tenant_id == tenant_id).first()
        if not staff:
            raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Staff member not found")
        return staff

    @staticmethod
    def _reject_nulls(update_data: dict, fields: tuple) -> None:
        for field in fields:
            if field in update_data and update_data[field] is None:
                raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=f"{field} cannot be null")

    # ===== Transaction templates =====

    def list_transaction_templates(self, tenant_id: UUID, include_inactive: bool = False) -> List[QuickTransactionTemplate]:
        query = self.db.query(QuickTransactionTemplate).filter(QuickTransactionTemplate.tenant_id == tenant_id)
        if not include_inactive:
            query = query.filter(QuickTransactionTemplate.is_active.is_(True))
        return query.order_by(QuickTransactionTemplate.name).all()

    def get_transaction_template(self, template_id: UUID, tenant_id: UUID) -> QuickTransactionTemplate:
        template = self.db.query(QuickTransactionTemplate).filter(
            QuickTransactionTemplate.id == template_id,
            QuickTransactionTemplate.tenant_id == tenant_id
        ).first()
        if not template:
            raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Template not found")
        return template

    def create_transaction_template(
        self, data: QuickTransactionTemplateCreate, tenant_id: UUID, user_id: UUID
    ) -> QuickTransactionTemplate:
        self._client(data.client_id, tenant_id)
        product = self._product(data.product_id, tenant_id) if data.product_id else None

        unit_price = data.unit_price
        if unit_price is None:
            if product is None:
                raise HTTPException(
                    status_code=status.HTTP_400_BAD_REQUEST,
                    detail="unit_price is required when no product is given"
                )
            unit_price = product.price
        tax_rate = data.tax_rate
        if tax_rate is None:
            tax_rate = product.tax_rate if product else Decimal("0.00")

        try:
            template = QuickTransactionTemplate(
                tenant_id=tenant_id,
                name=data.name,
                description=data.description,
                client_id=data.client_id,
                product_id=data.product_id,
                quantity=data.quantity,
                unit_price=money(unit_price),
                tax_rate=money(tax_rate),
                payment_method=data.payment_method or settings.DEFAULT_PAYMENT_METHOD,
                notes=data.notes,
                created_by=user_id
            )
            self.db.add(template)
            self.db.commit()
            self.db.refresh(template)
            return template
        except Exception as e:
            self.db.rollback()
            raise HTTPException(
                status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
                detail=f"Error creating template: {str(e)}"
            )

    def update_transaction_template(
        self, template_id: UUID, data: QuickTransactionTemplateUpdate, tenant_id: UUID
    ) -> QuickTransactionTemplate:
        template = self.get_transaction_template(template_id, tenant_id)
        update_data = data.model_dump(exclude_unset=True)
        self._reject_nulls(update_data, NOT_NULL_TRANSACTION_FIELDS)
        if update_data.get("client_id"):
            self._client(update_data["client_id"], tenant_id)
        if update_data.get("product_id"):
            self._product(update_data["product_id"], tenant_id)

        try:
            for field, value in update_data.items():
                setattr(template, field, value)
            if template.is_active:
                template.deleted_at = None
            self.db.commit()
            self.db.refresh(template)
            return template
        except Exception as e:
            self.db.rollback()
            raise HTTPException(
                status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
                detail=f"Error updating template: {str(e)}"
            )

    def delete_transaction_template(self, template_id: UUID, tenant_id: UUID) -> None:
        """Soft delete; executed transactions are unaffected."""
        template = self.get_transaction_template(template_id, tenant_id)
        try:
            template.soft_delete()
            self.db.commit()
        except Exception as e:
            self.db.rollback()
            raise HTTPException(
                status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
                detail=f"Error deleting template: {str(e)}"
            )

    def execute_transaction_template(
        self, template_id: UUID, tenant_id: UUID, user_id: UUID, execution_date: Optional[date] = None
    ) -> Transaction:
        """
        Create a paid, single-line transaction from the template.
        Due date is DEFAULT_DUE_DAYS after the execution date.
        """
        template = self.get_transaction_template(template_id, tenant_id)
        if not template.is_active:
            raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="Template is inactive")

        transaction_date = execution_date or date.today()
        description = template.description or (template.product.name if template.product else template.name)
        data = TransactionCreate(
            client_id=template.client_id,
            transaction_date=transaction_date,
            due_date=transaction_date + timedelta(days=settings.DEFAULT_DUE_DAYS),
            payment_method=template.payment_method,
            notes=template.notes,
            status=TransactionStatus.PAID,
            items=[TransactionItemCreate(
                product_id=template.product_id,
                description=description,
                quantity=template.quantity,
                unit_price=template.unit_price,
                tax_rate=template.tax_rate
            )]
        )
        transaction = TransactionService(self.db).create_transaction(data, tenant_id, user_id)
        logger.info(f"Quick template {template.name} executed: {transaction.number}")
        return transaction

    # ===== Staff payment templates =====

    def list_staff_templates(self, tenant_id: UUID, include_inactive: bool = False) -> List[QuickStaffPaymentTemplate]:
        query = self.db.query(QuickStaffPaymentTemplate).filter(QuickStaffPaymentTemplate.tenant_id == tenant_id)
        if not include_inactive:
            query = query.filter(QuickStaffPaymentTemplate.is_active.is_(True))
        return query.order_by(QuickStaffPaymentTemplate.name).all()

    def get_staff_template(self, template_id: UUID, tenant_id: UUID) -> QuickStaffPaymentTemplate:
        template = self.db.query(QuickStaffPaymentTemplate).filter(
            QuickStaffPaymentTemplate.id == template_id,
            QuickStaffPaymentTemplate.tenant_id == tenant_id
        ).first()
        if not template:
            raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Template not found")
        return template

    def create_staff_template(
        self, data: QuickStaffPaymentTemplateCreate, tenant_id: UUID, user_id: UUID
    ) -> QuickStaffPaymentTemplate:
        self._staff(data.staff_id, tenant_id)
        try:
            template = QuickStaffPaymentTemplate(
                tenant_id=tenant_id,
                name=data.name,
                description=data.description,
                staff_id=data.staff_id,
                amount=money(data.amount),
                payment_method=data.payment_method or settings.DEFAULT_PAYMENT_METHOD,
                notes=data.notes,
                created_by=user_id
            )
            self.db.add(template)
            self.db.commit()
            self.db.refresh(template)
            return template
        except Exception as e:
            self.db.rollback()
            raise HTTPException(
                status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
                detail=f"Error creating template: {str(e)}"
            )

    def update_staff_template(
        self, template_id: UUID, data: QuickStaffPaymentTemplateUpdate, tenant_id: UUID
    ) -> QuickStaffPaymentTemplate:
        template = self.get_staff_template(template_id, tenant_id)
        update_data = data.model_dump(exclude_unset=True)
        self._reject_nulls(update_data, NOT_NULL_STAFF_FIELDS)
        if update_data.get("staff_id"):
            self._staff(update_data["staff_id"], tenant_id)

        try:
            for field, value in update_data.items():
                setattr(template, field, value)
            if template.is_active:
                template.deleted_at = None
            self.db.commit()
            self.db.refresh(template)
            return template
        except Exception as e:
            self.db.rollback()
            raise HTTPException(
                status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
                detail=f"Error updating template: {str(e)}"
            )

    def delete_staff_template(self, template_id: UUID, tenant_id: UUID) -> None:
        template = self.get_staff_template(template_id, tenant_id)
        try:
            template.soft_delete()
            self.db.commit()
        except Exception as e:
            self.db.rollback()
            raise HTTPException(
                status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
                detail=f"Error deleting template: {str(e)}"
            )

    def execute_staff_template(
        self, template_id: UUID, tenant_id: UUID, user_id: UUID, execution_date: Optional[date] = None
    ) -> StaffPayment:
        template = self.get_staff_template(template_id, tenant_id)
        if not template.is_active:
            raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="Template is inactive")

        staff = self._staff(template.staff_id, tenant_id)
        data = StaffPaymentCreate(
            amount=template.amount,
            date_paid=execution_date or date.today(),
            payment_method=template.payment_method,
            notes=template.notes or template.description
        )
        payment = StaffService(self.db).record_payment(
            staff.id, data, tenant_id, user_id,
            ledger_description=f"Quick Payment to {staff.name}"
        )
        logger.info(f"Quick staff template {template.name} executed: payment {payment.id}")
        return payment
