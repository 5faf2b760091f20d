"""
Ledger service

The ledger is the single source for income and expense figures. Transactions,
transaction payments and staff payments mirror themselves into it through
upsert_reference / delete_reference; those calls never commit, the calling
service owns the database transaction.
"""
from fastapi import HTTPException, status
from sqlalchemy import func, extract, case
from sqlalchemy.orm import Session, joinedload
from typing import Optional, List
from uuid import UUID
from datetime import date
from decimal import Decimal
import calendar
import logging

from invoicehub.modules.ledger.models import LedgerEntry, LedgerEntryType, ReferenceType
from invoicehub.modules.ledger.schemas import (
    ManualEntryCreate, LedgerList, LedgerEntryOut, PeriodSummary, MonthlySummary, MonthlySummaryRow
)
from invoicehub.modules.clients.models import Client
from invoicehub.modules.staff.models import Staff
from invoicehub.common.validators import money

logger = logging.getLogger(__name__)

CLIENT_INCOME_REFERENCES = (ReferenceType.CLIENT_TRANSACTION, ReferenceType.TRANSACTION_PAYMENT)


class LedgerService:
    def __init__(self, db: Session):
        self.db = db

    # ===== Internal API used by other services =====

    def get_reference(self, tenant_id: UUID, reference_type: ReferenceType, reference_id: str) -> Optional[LedgerEntry]:
        return self.db.query(LedgerEntry).filter(
            LedgerEntry.tenant_id == tenant_id,
            LedgerEntry.reference_type == reference_type,
            LedgerEntry.reference_id == reference_id
        ).first()

    def upsert_reference(
        self,
        tenant_id: UUID,
        reference_type: ReferenceType,
        reference_id: str,
        entry_type: LedgerEntryType,
        amount: Decimal,
        entry_date: date,
        description: str,
        client_id: UUID = None,
        staff_id: UUID = None,
        created_by: UUID = None
    ) -> LedgerEntry:
        """Create or update the single entry mirroring a reference."""
        entry = self.get_reference(tenant_id, reference_type, reference_id)
        if entry is None:
            entry = LedgerEntry(
                tenant_id=tenant_id,
                reference_type=reference_type,
                reference_id=reference_id,
                created_by=created_by
            )
            self.db.add(entry)

        entry.entry_type = entry_type
        entry.amount = money(amount)
        entry.entry_date = entry_date
        entry.description = description
        entry.client_id = client_id
        entry.staff_id = staff_id
        self.db.flush()
        return entry

    def delete_reference(self, tenant_id: UUID, reference_type: ReferenceType, reference_id: str) -> int:
        return self.db.query(LedgerEntry).filter(
            LedgerEntry.tenant_id == tenant_id,
            LedgerEntry.reference_type == reference_type,
            LedgerEntry.reference_id == reference_id
        ).delete(synchronize_session=False)

    def delete_references(self, tenant_id: UUID, client_id: UUID = None, staff_id: UUID = None) -> int:
        """Delete every entry linked to a client or a staff member."""
        query = self.db.query(LedgerEntry).filter(LedgerEntry.tenant_id == tenant_id)
        if client_id:
            query = query.filter(LedgerEntry.client_id == client_id)
        elif staff_id:
            query = query.filter(LedgerEntry.staff_id == staff_id)
        else:
            return 0
        return query.delete(synchronize_session=False)

    def client_income_total(self, tenant_id: UUID, client_id: UUID) -> Decimal:
        total = self.db.query(func.coalesce(func.sum(LedgerEntry.amount), 0)).filter(
            LedgerEntry.tenant_id == tenant_id,
            LedgerEntry.client_id == client_id,
            LedgerEntry.entry_type == LedgerEntryType.INCOME,
            LedgerEntry.reference_type.in_(CLIENT_INCOME_REFERENCES)
        ).scalar()
        return money(total)

    # ===== Queries =====

    def _filtered(self, tenant_id: UUID, year: int = None, month: int = None,
                  client_id: UUID = None, staff_id: UUID = None,
                  entry_type: LedgerEntryType = None):
        query = self.db.query(LedgerEntry).filter(LedgerEntry.tenant_id == tenant_id)
        if year:
            query = query.filter(extract('year', LedgerEntry.entry_date) == year)
        if month:
            query = query.filter(extract('month', LedgerEntry.entry_date) == month)
        if client_id:
            query = query.filter(LedgerEntry.client_id == client_id)
        if staff_id:
            query = query.filter(LedgerEntry.staff_id == staff_id)
        if entry_type:
            query = query.filter(LedgerEntry.entry_type == entry_type)
        return query

    def _totals(self, query) -> tuple:
        income, expense = query.with_entities(
            func.coalesce(func.sum(case((LedgerEntry.entry_type == LedgerEntryType.INCOME, LedgerEntry.amount), else_=0)), 0),
            func.coalesce(func.sum(case((LedgerEntry.entry_type == LedgerEntryType.EXPENSE, LedgerEntry.amount), else_=0)), 0)
        ).one()
        return money(income), money(expense)

    def list_entries(
        self,
        tenant_id: UUID,
        year: int = None,
        month: int = None,
        client_id: UUID = None,
        staff_id: UUID = None,
        entry_type: LedgerEntryType = None,
        limit: int = 100,
        offset: int = 0
    ) -> LedgerList:
        """Entries newest first, with income/expense totals over the whole filter."""
        query = self._filtered(tenant_id, year, month, client_id, staff_id, entry_type)
        total = query.count()
        total_income, total_expense = self._totals(query)

        entries = query.options(
            joinedload(LedgerEntry.client), joinedload(LedgerEntry.staff)
        ).order_by(
            LedgerEntry.entry_date.desc(), LedgerEntry.created_at.desc()
        ).offset(offset).limit(limit).all()

        return LedgerList(
            entries=[LedgerEntryOut.model_validate(e) for e in entries],
            total=total,
            limit=limit,
            offset=offset,
            total_income=total_income,
            total_expense=total_expense,
            net=total_income - total_expense
        )

    def get_entry(self, entry_id: UUID, tenant_id: UUID) -> LedgerEntry:
        entry = self.db.query(LedgerEntry).filter(
            LedgerEntry.id == entry_id,
            LedgerEntry.tenant_id == tenant_id
        ).first()
        if not entry:
            raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Ledger entry not found")
        return entry

    def period_summary(self, tenant_id: UUID, year: int, month: int = None) -> PeriodSummary:
        income, expense = self._totals(self._filtered(tenant_id, year=year, month=month))
        return PeriodSummary(year=year, month=month, income=income, expense=expense, profit=income - expense)

    def current_month_summary(self, tenant_id: UUID) -> PeriodSummary:
        today = date.today()
        return self.period_summary(tenant_id, today.year, today.month)

    def monthly_summary(self, tenant_id: UUID, year: int) -> MonthlySummary:
        """Twelve rows, months without entries report zeros."""
        month_col = extract('month', LedgerEntry.entry_date)
        rows = self.db.query(
            month_col.label("month"),
            LedgerEntry.entry_type,
            func.sum(LedgerEntry.amount)
        ).filter(
            LedgerEntry.tenant_id == tenant_id,
            extract('year', LedgerEntry.entry_date) == year
        ).group_by(month_col, LedgerEntry.entry_type).all()

        buckets = {m: {LedgerEntryType.INCOME: Decimal("0"), LedgerEntryType.EXPENSE: Decimal("0")} for m in range(1, 13)}
        for month, entry_type, amount in rows:
            buckets[int(month)][entry_type] += money(amount)

        months = []
        for m in range(1, 13):
            income = money(buckets[m][LedgerEntryType.INCOME])
            expense = money(buckets[m][LedgerEntryType.EXPENSE])
            months.append(MonthlySummaryRow(
                month=m,
                month_name=calendar.month_name[m],
                income=income,
                expense=expense,
                profit=income - expense
            ))

        total_income = sum((row.income for row in months), Decimal("0.00"))
        total_expense = sum((row.expense for row in months), Decimal("0.00"))
        return MonthlySummary(
            year=year,
            months=months,
            total_income=total_income,
            total_expense=total_expense,
            net_profit=total_income - total_expense
        )

    def yearly_summary(self, tenant_id: UUID) -> List[PeriodSummary]:
        year_col = extract('year', LedgerEntry.entry_date)
        rows = self.db.query(
            year_col.label("year"),
            LedgerEntry.entry_type,
            func.sum(LedgerEntry.amount)
        ).filter(
            LedgerEntry.tenant_id == tenant_id
        ).group_by(year_col, LedgerEntry.entry_type).all()

        years = {}
        for year, entry_type, amount in rows:
            bucket = years.setdefault(int(year), {LedgerEntryType.INCOME: Decimal("0"), LedgerEntryType.EXPENSE: Decimal("0")})
            bucket[entry_type] += money(amount)

        result = []
        for year in sorted(years, reverse=True):
            income = money(years[year][LedgerEntryType.INCOME])
            expense = money(years[year][LedgerEntryType.EXPENSE])
            result.append(PeriodSummary(year=year, income=income, expense=expense, profit=income - expense))
        return result

    # ===== Manual entries =====

    def add_manual_entry(self, data: ManualEntryCreate, tenant_id: UUID, user_id: UUID) -> LedgerEntry:
        try:
            if data.client_id and not self.db.query(Client.id).filter(
                Client.id == data.client_id, Client.tenant_id == tenant_id
            ).first():
                raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Client not found")
            if data.staff_id and not self.db.query(Staff.id).filter(
                Staff.id == data.staff_id, Staff.tenant_id == tenant_id
            ).first():
                raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Staff member not found")

            entry = LedgerEntry(
                tenant_id=tenant_id,
                entry_date=data.entry_date,
                entry_type=data.entry_type,
                amount=money(data.amount),
                description=data.description,
                reference_type=ReferenceType.MANUAL,
                reference_id=data.reference_id,
                client_id=data.client_id,
                staff_id=data.staff_id,
                created_by=user_id
            )
            self.db.add(entry)
            self.db.commit()
            self.db.refresh(entry)
            logger.info(f"Manual {data.entry_type.value} entry {entry.id} of {entry.amount} added by {user_id}")
            return entry

        except HTTPException:
            raise
        except Exception as e:
            self.db.rollback()
            raise HTTPException(
                status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
                detail=f"Error adding ledger entry: {str(e)}"
            )

    def delete_manual_entry(self, entry_id: UUID, tenant_id: UUID) -> None:
        """Only manual entries; the others follow their source records."""
        entry = self.get_entry(entry_id, tenant_id)
        if entry.reference_type != ReferenceType.MANUAL:
            raise HTTPException(
                status_code=status.HTTP_400_BAD_REQUEST,
                detail="Only manual entries can be deleted directly"
            )
        try:
            self.db.delete(entry)
            self.db.commit()
        except Exception as e:
            self.db.rollback()
            raise HTTPException(
                status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
                detail=f"Error deleting ledger entry: {str(e)}"
            )
