"""Ledger service - idempotent posting of employee cash-outs.

Entries are append-only. Posting is idempotent via (tenant_id,
idempotency_key) uniqueness: a retried request gets the original entry back
and nothing new is written. Reusing a key for a different employee, category
or amount is rejected rather than treated as a retry.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import date
from decimal import Decimal
from uuid import UUID, uuid4

from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession

from attendance_payroll.calculators.types import PayPeriod
from attendance_payroll.database import insert_for
from attendance_payroll.errors import InvalidLedgerEntryError, InvalidPaymentAmountError
from attendance_payroll.models import LedgerCategory, LedgerEntry, PaymentMode
from attendance_payroll.services.stores import to_money

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class PostResult:
    """Result of a ledger posting operation.

    If ``is_new`` is False this was a duplicate request and the existing entry
    was returned.
    """

    entry: LedgerEntry
    is_new: bool

    @property
    def entry_id(self) -> UUID:
        return self.entry.ledger_entry_id


@dataclass(frozen=True)
class LedgerSummary:
    """Salary and advance totals for a period."""

    period: PayPeriod
    total_salary: Decimal
    total_advances: Decimal
    salary_count: int
    advance_count: int

    @property
    def total_paid(self) -> Decimal:
        return self.total_salary + self.total_advances


class LedgerService:
    """Posting and reporting over ledger entries."""

    def __init__(self, session: AsyncSession):
        self.session = session

    async def post_entry(
        self,
        *,
        tenant_id: UUID,
        employee_id: UUID,
        category: LedgerCategory | str,
        amount: Decimal,
        entry_date: date,
        payment_mode: PaymentMode | str = PaymentMode.CASH,
        idempotency_key: str | None = None,
        description: str | None = None,
    ) -> PostResult:
        """Post a cash-out entry for an employee.

        Args:
            tenant_id: Tenant identifier
            employee_id: Employee receiving the money
            category: Salary or Advance
            amount: Positive amount
            entry_date: Date the money left
            payment_mode: Cash, Bank Transfer or Online
            idempotency_key: Client key for deduplication; a fresh key is
                generated when omitted, which disables deduplication
            description: Optional free text

        Returns:
            PostResult with the entry and whether it was newly created
        """
        if amount <= 0:
            raise InvalidPaymentAmountError(f"Amount must be positive, got {amount}")
        try:
            category = LedgerCategory(category)
            payment_mode = PaymentMode(payment_mode)
        except ValueError as e:
            raise InvalidLedgerEntryError(str(e)) from e

        key = idempotency_key or f"auto:{uuid4()}"

        stmt = (
            insert_for(self.session, LedgerEntry)
            .values(
                ledger_entry_id=uuid4(),
                tenant_id=tenant_id,
                employee_id=employee_id,
                category=category.value,
                amount=amount,
                entry_date=entry_date,
                payment_mode=payment_mode.value,
                description=description,
                idempotency_key=key,
            )
            .on_conflict_do_nothing(index_elements=["tenant_id", "idempotency_key"])
        )
        result = await self.session.execute(stmt)
        is_new = (result.rowcount or 0) > 0

        entry = await self.get_by_idempotency_key(tenant_id, key)
        if entry is None:
            raise RuntimeError("Ledger post failed unexpectedly - no entry created or found")

        if is_new:
            logger.info(
                "Posted %s %s for employee %s (key=%s)",
                category.value, amount, employee_id, key,
            )
        else:
            if (
                entry.employee_id != employee_id
                or entry.category != category.value
                or to_money(entry.amount) != to_money(amount)
            ):
                raise InvalidLedgerEntryError(
                    f"Idempotency key {key!r} was already used for a different entry "
                    f"({entry.category} {entry.amount} for employee {entry.employee_id})"
                )
            logger.info("Duplicate ledger post for key %s, returning existing entry", key)

        return PostResult(entry=entry, is_new=is_new)

    async def get_by_idempotency_key(self, tenant_id: UUID, key: str) -> LedgerEntry | None:
        result = await self.session.execute(
            select(LedgerEntry)
            .where(LedgerEntry.tenant_id == tenant_id, LedgerEntry.idempotency_key == key)
            .execution_options(populate_existing=True)
        )
        return result.scalar_one_or_none()

    async def list_entries(
        self,
        tenant_id: UUID,
        period: PayPeriod,
        employee_id: UUID | None = None,
        category: LedgerCategory | None = None,
    ) -> list[LedgerEntry]:
        """List entries in a period, newest first."""
        query = select(LedgerEntry).where(
            LedgerEntry.tenant_id == tenant_id,
            LedgerEntry.entry_date >= period.start,
            LedgerEntry.entry_date <= period.end,
        )
        if employee_id is not None:
            query = query.where(LedgerEntry.employee_id == employee_id)
        if category is not None:
            query = query.where(LedgerEntry.category == LedgerCategory(category).value)

        result = await self.session.execute(
            query.order_by(LedgerEntry.entry_date.desc(), LedgerEntry.created_at.desc())
        )
        return list(result.scalars().all())

    async def summary(
        self,
        tenant_id: UUID,
        period: PayPeriod,
        employee_id: UUID | None = None,
    ) -> LedgerSummary:
        """Totals and counts per category for the period."""
        query = select(
            LedgerEntry.category,
            func.coalesce(func.sum(LedgerEntry.amount), 0),
            func.count(),
        ).where(
            LedgerEntry.tenant_id == tenant_id,
            LedgerEntry.entry_date >= period.start,
            LedgerEntry.entry_date <= period.end,
        )
        if employee_id is not None:
            query = query.where(LedgerEntry.employee_id == employee_id)

        result = await self.session.execute(query.group_by(LedgerEntry.category))
        by_category = {row[0]: (to_money(row[1]), row[2]) for row in result.all()}

        salary_total, salary_count = by_category.get(
            LedgerCategory.SALARY.value, (Decimal("0.00"), 0)
        )
        advance_total, advance_count = by_category.get(
            LedgerCategory.ADVANCE.value, (Decimal("0.00"), 0)
        )
        return LedgerSummary(
            period=period,
            total_salary=salary_total,
            total_advances=advance_total,
            salary_count=salary_count,
            advance_count=advance_count,
        )
