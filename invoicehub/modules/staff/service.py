from fastapi import HTTPException, status
from sqlalchemy import or_, func
from sqlalchemy.orm import Session
from typing import Optional, List
from uuid import UUID
from datetime import date
from decimal import Decimal
import logging

from invoicehub.modules.staff.models import Staff, StaffPayment, StaffRole, StaffStatus
from invoicehub.modules.staff.schemas import (
    StaffCreate, StaffUpdate, StaffPaymentCreate, StaffPaymentUpdate,
    StaffPaymentTotal, StaffPaymentStats, MonthlyPaymentStat
)
from invoicehub.modules.ledger.models import LedgerEntryType, ReferenceType
from invoicehub.modules.ledger.service import LedgerService
from invoicehub.modules.quick_templates.models import QuickStaffPaymentTemplate
from invoicehub.modules.auth.service import AuthService
from invoicehub.common.validators import money

logger = logging.getLogger(__name__)

STATS_MONTHS = 6


class StaffService:
    def __init__(self, db: Session):
        self.db = db
        self.ledger = LedgerService(db)

    # ===== Staff =====

    def get_staff(self, staff_id: UUID, tenant_id: UUID) -> Staff:
        staff = self.db.query(Staff).filter(
            Staff.id == staff_id,
            Staff.tenant_id == tenant_id
        ).first()
        if not staff:
            raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Staff member not found")
        return staff

    def list_staff(
        self,
        tenant_id: UUID,
        search: Optional[str] = None,
        role: Optional[StaffRole] = None,
        staff_status: Optional[StaffStatus] = None
    ) -> List[Staff]:
        query = self.db.query(Staff).filter(Staff.tenant_id == tenant_id)
        if search:
            query = query.filter(or_(
                Staff.name.ilike(f"%{search}%"),
                Staff.email.ilike(f"%{search}%"),
                Staff.position.ilike(f"%{search}%")
            ))
        if role:
            query = query.filter(Staff.role == role)
        if staff_status:
            query = query.filter(Staff.status == staff_status)
        return query.order_by(Staff.name).all()

    def _check_email_free(self, tenant_id: UUID, email: str, exclude_id: UUID = None) -> None:
        query = self.db.query(Staff.id).filter(
            Staff.tenant_id == tenant_id,
            func.lower(Staff.email) == email.lower()
        )
        if exclude_id:
            query = query.filter(Staff.id != exclude_id)
        if query.first():
            raise HTTPException(
                status_code=status.HTTP_409_CONFLICT,
                detail="A staff member with this email already exists"
            )

    def create_staff(self, data: StaffCreate, tenant_id: UUID) -> Staff:
        self._check_email_free(tenant_id, data.email)
        try:
            staff = Staff(tenant_id=tenant_id, **data.model_dump())
            self.db.add(staff)
            self.db.commit()
            self.db.refresh(staff)
            logger.info(f"Staff member created: {staff.id} ({staff.name})")
            return staff
        except Exception as e:
            self.db.rollback()
            raise HTTPException(
                status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
                detail=f"Error creating staff member: {str(e)}"
            )

    def update_staff(self, staff_id: UUID, data: StaffUpdate, tenant_id: UUID) -> Staff:
        staff = self.get_staff(staff_id, tenant_id)
        update_data = data.model_dump(exclude_unset=True)
        for field in ("name", "email", "join_date", "status", "role", "payment_rate"):
            if field in update_data and update_data[field] is None:
                raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=f"{field} cannot be null")
        if update_data.get("email"):
            self._check_email_free(tenant_id, update_data["email"], exclude_id=staff_id)

        try:
            for field, value in update_data.items():
                setattr(staff, field, value)
            self.db.commit()
            self.db.refresh(staff)
            return staff
        except Exception as e:
            self.db.rollback()
            raise HTTPException(
                status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
                detail=f"Error updating staff member: {str(e)}"
            )

    def delete_staff(self, staff_id: UUID, tenant_id: UUID) -> dict:
        """
        Delete a staff member, their payments with the matching ledger
        expenses and their quick templates. Portal users are disabled.
        """
        staff = self.get_staff(staff_id, tenant_id)
        try:
            payment_count = len(staff.payments)
            ledger_deleted = self.ledger.delete_references(tenant_id, staff_id=staff_id)

            self.db.query(QuickStaffPaymentTemplate).filter(
                QuickStaffPaymentTemplate.tenant_id == tenant_id,
                QuickStaffPaymentTemplate.staff_id == staff_id
            ).delete(synchronize_session=False)

            AuthService(self.db).deactivate_linked_users(tenant_id, staff_id=staff_id)
            self.db.flush()

            self.db.delete(staff)
            self.db.commit()
            logger.info(f"Staff member {staff_id} deleted with {payment_count} payments")
            return {
                "message": "Staff member deleted",
                "payments_deleted": payment_count,
                "ledger_entries_deleted": ledger_deleted
            }
        except Exception as e:
            self.db.rollback()
            raise HTTPException(
                status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
                detail=f"Error deleting staff member: {str(e)}"
            )

    def count_staff(self, tenant_id: UUID, active_only: bool = False) -> int:
        query = self.db.query(func.count(Staff.id)).filter(Staff.tenant_id == tenant_id)
        if active_only:
            query = query.filter(Staff.status == StaffStatus.ACTIVE)
        return query.scalar() or 0

    # ===== Payments =====

    def _mirror_payment(self, staff: Staff, payment: StaffPayment, description: str = None) -> None:
        self.db.flush()
        self.ledger.upsert_reference(
            staff.tenant_id,
            ReferenceType.STAFF_PAYMENT,
            payment.ledger_reference,
            entry_type=LedgerEntryType.EXPENSE,
            amount=payment.amount,
            entry_date=payment.date_paid,
            description=description or f"Payment to {staff.name}",
            staff_id=staff.id,
            created_by=payment.created_by
        )

    def list_payments(self, staff_id: UUID, tenant_id: UUID) -> List[StaffPayment]:
        self.get_staff(staff_id, tenant_id)
        return self.db.query(StaffPayment).filter(
            StaffPayment.tenant_id == tenant_id,
            StaffPayment.staff_id == staff_id
        ).order_by(StaffPayment.date_paid.desc(), StaffPayment.created_at.desc()).all()

    def get_payment(self, staff_id: UUID, payment_id: UUID, tenant_id: UUID) -> StaffPayment:
        payment = self.db.query(StaffPayment).filter(
            StaffPayment.id == payment_id,
            StaffPayment.staff_id == staff_id,
            StaffPayment.tenant_id == tenant_id
        ).first()
        if not payment:
            raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Payment not found")
        return payment

    def record_payment(
        self,
        staff_id: UUID,
        data: StaffPaymentCreate,
        tenant_id: UUID,
        user_id: UUID,
        ledger_description: str = None
    ) -> StaffPayment:
        """Payment and its ledger expense in one commit."""
        try:
            staff = self.get_staff(staff_id, tenant_id)
            payment = StaffPayment(
                tenant_id=tenant_id,
                staff_id=staff.id,
                amount=money(data.amount),
                date_paid=data.date_paid,
                payment_method=data.payment_method,
                notes=data.notes,
                created_by=user_id
            )
            self.db.add(payment)
            self._mirror_payment(staff, payment, ledger_description)
            self.db.commit()
            self.db.refresh(payment)
            logger.info(f"Staff payment {payment.id} of {payment.amount} recorded for {staff.name}")
            return payment

        except HTTPException:
            self.db.rollback()
            raise
        except Exception as e:
            self.db.rollback()
            raise HTTPException(
                status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
                detail=f"Error recording staff payment: {str(e)}"
            )

    def update_payment(self, staff_id: UUID, payment_id: UUID, data: StaffPaymentUpdate, tenant_id: UUID) -> StaffPayment:
        try:
            staff = self.get_staff(staff_id, tenant_id)
            payment = self.get_payment(staff_id, payment_id, tenant_id)
            update_data = data.model_dump(exclude_unset=True)

            if update_data.get("amount") is not None:
                payment.amount = money(update_data["amount"])
            if update_data.get("date_paid") is not None:
                payment.date_paid = update_data["date_paid"]
            for field in ("payment_method", "notes"):
                if field in update_data:
                    setattr(payment, field, update_data[field])

            existing = self.ledger.get_reference(tenant_id, ReferenceType.STAFF_PAYMENT, payment.ledger_reference)
            self._mirror_payment(staff, payment, existing.description if existing else None)
            self.db.commit()
            self.db.refresh(payment)
            return payment

        except HTTPException:
            self.db.rollback()
            raise
        except Exception as e:
            self.db.rollback()
            raise HTTPException(
                status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
                detail=f"Error updating staff payment: {str(e)}"
            )

    def delete_payment(self, staff_id: UUID, payment_id: UUID, tenant_id: UUID) -> None:
        try:
            payment = self.get_payment(staff_id, payment_id, tenant_id)
            self.ledger.delete_reference(tenant_id, ReferenceType.STAFF_PAYMENT, payment.ledger_reference)
            self.db.delete(payment)
            self.db.commit()
            logger.info(f"Staff payment {payment_id} deleted")

        except HTTPException:
            self.db.rollback()
            raise
        except Exception as e:
            self.db.rollback()
            raise HTTPException(
                status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
                detail=f"Error deleting staff payment: {str(e)}"
            )

    def total_paid(self, staff_id: UUID, tenant_id: UUID) -> StaffPaymentTotal:
        self.get_staff(staff_id, tenant_id)
        total, count, last_date = self.db.query(
            func.coalesce(func.sum(StaffPayment.amount), 0),
            func.count(StaffPayment.id),
            func.max(StaffPayment.date_paid)
        ).filter(
            StaffPayment.tenant_id == tenant_id,
            StaffPayment.staff_id == staff_id
        ).one()
        return StaffPaymentTotal(
            staff_id=staff_id,
            total_paid=money(total),
            payment_count=count or 0,
            last_payment_date=last_date
        )

    def payment_stats(self, staff_id: UUID, tenant_id: UUID, today: Optional[date] = None) -> StaffPaymentStats:
        """Totals for the current month and the five before it, oldest first."""
        self.get_staff(staff_id, tenant_id)
        today = today or date.today()

        periods = []
        year, month = today.year, today.month
        for _ in range(STATS_MONTHS):
            periods.append((year, month))
            month -= 1
            if month == 0:
                year, month = year - 1, 12
        periods.reverse()
        start = date(periods[0][0], periods[0][1], 1)

        payments = self.db.query(StaffPayment.amount, StaffPayment.date_paid).filter(
            StaffPayment.tenant_id == tenant_id,
            StaffPayment.staff_id == staff_id,
            StaffPayment.date_paid >= start,
            StaffPayment.date_paid <= today
        ).all()

        buckets = {period: [Decimal("0.00"), 0] for period in periods}
        for amount, date_paid in payments:
            bucket = buckets[(date_paid.year, date_paid.month)]
            bucket[0] += amount
            bucket[1] += 1

        months = [
            MonthlyPaymentStat(year=y, month=m, total=money(buckets[(y, m)][0]), payment_count=buckets[(y, m)][1])
            for y, m in periods
        ]
        total = money(sum((row.total for row in months), Decimal("0.00")))
        return StaffPaymentStats(
            staff_id=staff_id,
            months=months,
            total_paid=total,
            average_per_month=money(total / STATS_MONTHS)
        )
