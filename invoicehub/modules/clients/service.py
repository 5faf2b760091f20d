from fastapi import HTTPException, status
from sqlalchemy import or_, func
from sqlalchemy.orm import Session
from typing import Optional
from uuid import UUID
from decimal import Decimal
import logging

from invoicehub.modules.clients.models import Client
from invoicehub.modules.clients.schemas import (
    ClientCreate, ClientUpdate, ClientOut, ClientList,
    ClientPaymentOut, ClientPaymentSummary, ClientPaymentsResponse
)
from invoicehub.modules.transactions.models import Transaction, TransactionPayment
from invoicehub.modules.quick_templates.models import QuickTransactionTemplate
from invoicehub.modules.ledger.service import LedgerService
from invoicehub.modules.auth.service import AuthService
from invoicehub.common.validators import money
from invoicehub.core.config import settings

logger = logging.getLogger(__name__)


class ClientService:
    def __init__(self, db: Session):
        self.db = db

    def get_client(self, client_id: UUID, tenant_id: UUID) -> Client:
        client = self.db.query(Client).filter(
            Client.id == client_id,
            Client.tenant_id == tenant_id
        ).first()
        if not client:
            raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Client not found")
        return client

    def list_clients(
        self,
        tenant_id: UUID,
        search: Optional[str] = None,
        is_active: Optional[bool] = None,
        limit: int = 100,
        offset: int = 0
    ) -> ClientList:
        query = self.db.query(Client).filter(Client.tenant_id == tenant_id)
        if search:
            pattern = f"%{search.strip()}%"
            query = query.filter(or_(
                Client.business_name.ilike(pattern),
                Client.contact_person.ilike(pattern),
                Client.email.ilike(pattern),
                Client.code.ilike(pattern)
            ))
        if is_active is not None:
            query = query.filter(Client.is_active == is_active)

        total = query.count()
        clients = query.order_by(Client.business_name).offset(offset).limit(limit).all()
        return ClientList(
            clients=[ClientOut.model_validate(c) for c in clients],
            total=total,
            limit=limit,
            offset=offset
        )

    def generate_client_code(self, tenant_id: UUID) -> str:
        """Next CLT-NNNN code, one past the highest code in use."""
        prefix = f"{settings.CLIENT_CODE_PREFIX}-"
        codes = self.db.query(Client.code).filter(
            Client.tenant_id == tenant_id,
            Client.code.like(f"{prefix}%")
        ).all()
        highest = 0
        for (code,) in codes:
            suffix = code[len(prefix):]
            if suffix.isdigit():
                highest = max(highest, int(suffix))
        return f"{prefix}{highest + 1:04d}"

    def create_client(self, data: ClientCreate, tenant_id: UUID, user_id: UUID) -> Client:
        try:
            client = Client(
                tenant_id=tenant_id,
                code=self.generate_client_code(tenant_id),
                created_by=user_id,
                total_spent=Decimal("0.00"),
                **data.model_dump()
            )
            self.db.add(client)
            self.db.commit()
            self.db.refresh(client)
            logger.info(f"Client {client.code} created in tenant {tenant_id}")
            return client
        except Exception as e:
            self.db.rollback()
            raise HTTPException(
                status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
                detail=f"Error creating client: {str(e)}"
            )

    def update_client(self, client_id: UUID, data: ClientUpdate, tenant_id: UUID) -> Client:
        client = self.get_client(client_id, tenant_id)
        update_data = data.model_dump(exclude_unset=True)
        if "business_name" in update_data and update_data["business_name"] is None:
            raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="business_name cannot be empty")
        try:
            for field, value in update_data.items():
                setattr(client, field, value)
            self.db.commit()
            self.db.refresh(client)
            return client
        except Exception as e:
            self.db.rollback()
            raise HTTPException(
                status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
                detail=f"Error updating client: {str(e)}"
            )

    def delete_client(self, client_id: UUID, tenant_id: UUID) -> dict:
        """
        Delete a client with everything hanging off it: transactions, their
        items and payments, ledger entries and quick templates. Portal users
        are disabled. All or nothing.
        """
        client = self.get_client(client_id, tenant_id)
        try:
            transactions = self.db.query(Transaction).filter(
                Transaction.tenant_id == tenant_id,
                Transaction.client_id == client_id
            ).all()
            for transaction in transactions:
                self.db.delete(transaction)

            ledger_deleted = LedgerService(self.db).delete_references(tenant_id, client_id=client_id)

            self.db.query(QuickTransactionTemplate).filter(
                QuickTransactionTemplate.tenant_id == tenant_id,
                QuickTransactionTemplate.client_id == client_id
            ).delete(synchronize_session=False)

            users_disabled = AuthService(self.db).deactivate_linked_users(tenant_id, client_id=client_id)

            self.db.flush()
            self.db.delete(client)
            self.db.commit()

            logger.info(
                f"Client {client.code} deleted with {len(transactions)} transactions, "
                f"{ledger_deleted} ledger entries, {users_disabled} portal users disabled"
            )
            return {
                "message": "Client deleted",
                "transactions_deleted": len(transactions),
                "ledger_entries_deleted": ledger_deleted
            }
        except Exception as e:
            self.db.rollback()
            logger.error(f"Error deleting client {client_id}: {e}")
            raise HTTPException(
                status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
                detail=f"Error deleting client: {str(e)}"
            )

    def recalculate_total_spent(self, tenant_id: UUID, client_id: UUID) -> Decimal:
        """
        Recompute total_spent from the ledger. Does not commit.
        """
        client = self.db.query(Client).filter(
            Client.id == client_id,
            Client.tenant_id == tenant_id
        ).first()
        if client is None:
            return Decimal("0.00")
        self.db.flush()
        client.total_spent = LedgerService(self.db).client_income_total(tenant_id, client_id)
        return client.total_spent

    def get_client_payments(self, client_id: UUID, tenant_id: UUID) -> ClientPaymentsResponse:
        client = self.get_client(client_id, tenant_id)

        rows = self.db.query(TransactionPayment, Transaction.number).join(
            Transaction, TransactionPayment.transaction_id == Transaction.id
        ).filter(
            Transaction.tenant_id == tenant_id,
            Transaction.client_id == client_id
        ).order_by(TransactionPayment.payment_date.desc()).all()

        payments = []
        by_method = {}
        for payment, number in rows:
            payments.append(ClientPaymentOut(
                id=payment.id,
                transaction_id=payment.transaction_id,
                transaction_number=number,
                amount=payment.amount,
                payment_date=payment.payment_date,
                payment_method=payment.payment_method,
                reference_number=payment.reference_number,
                notes=payment.notes
            ))
            method = payment.payment_method or "Unspecified"
            by_method[method] = money(by_method.get(method, Decimal("0")) + payment.amount)

        total_paid = money(sum((p.amount for p in payments), Decimal("0")))
        count = len(payments)
        dates = [p.payment_date for p in payments]

        return ClientPaymentsResponse(
            client_id=client.id,
            business_name=client.business_name,
            payments=payments,
            summary=ClientPaymentSummary(
                total_paid=total_paid,
                payment_count=count,
                average_payment=money(total_paid / count) if count else Decimal("0.00"),
                by_method=by_method,
                first_payment_date=min(dates) if dates else None,
                last_payment_date=max(dates) if dates else None
            )
        )

    def count_active(self, tenant_id: UUID) -> int:
        return self.db.query(func.count(Client.id)).filter(
            Client.tenant_id == tenant_id,
            Client.is_active.is_(True)
        ).scalar() or 0
