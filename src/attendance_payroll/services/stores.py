"""Read-side collaborators the reconciliation engine depends on.

The engine only needs three narrow views of the rest of the back office:
attendance per day, ledger totals per category, and the employee profile.
Each is a Protocol so that callers can plug in other sources; the SQL
implementations below read the ORM tables. Every call takes the tenant id
explicitly.
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import date
from decimal import Decimal
from typing import Protocol
from uuid import UUID

from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession

from attendance_payroll.calculators.types import AttendanceDay, EmployeeProfile
from attendance_payroll.config import MONEY_SCALE
from attendance_payroll.errors import EmployeeNotFoundError
from attendance_payroll.models import AttendanceRecord, Employee, LedgerCategory, LedgerEntry


class AttendanceStore(Protocol):
    async def get_records(
        self, tenant_id: UUID, employee_id: UUID, period_start: date, period_end: date
    ) -> list[AttendanceDay]: ...


class LedgerStore(Protocol):
    async def sum_by_category(
        self,
        tenant_id: UUID,
        employee_id: UUID,
        category: LedgerCategory,
        period_start: date,
        period_end: date,
    ) -> Decimal: ...


class EmployeeDirectory(Protocol):
    async def get(self, tenant_id: UUID, employee_id: UUID) -> EmployeeProfile: ...

    async def ensure_exists(self, tenant_id: UUID, employee_id: UUID) -> None: ...

    async def list_active_ids(self, tenant_id: UUID) -> list[UUID]: ...


class SqlAttendanceStore:
    def __init__(self, session: AsyncSession):
        self.session = session

    async def get_records(
        self, tenant_id: UUID, employee_id: UUID, period_start: date, period_end: date
    ) -> list[AttendanceDay]:
        """Get attendance days for employee in the date range, oldest first."""
        result = await self.session.execute(
            select(AttendanceRecord)
            .where(
                AttendanceRecord.tenant_id == tenant_id,
                AttendanceRecord.employee_id == employee_id,
                AttendanceRecord.work_date >= period_start,
                AttendanceRecord.work_date <= period_end,
            )
            .order_by(AttendanceRecord.work_date)
        )
        return [record.to_day() for record in result.scalars().all()]


class SqlLedgerStore:
    def __init__(self, session: AsyncSession):
        self.session = session

    async def sum_by_category(
        self,
        tenant_id: UUID,
        employee_id: UUID,
        category: LedgerCategory,
        period_start: date,
        period_end: date,
    ) -> Decimal:
        """Sum ledger amounts for one category in the date range."""
        total = await self.session.scalar(
            select(func.coalesce(func.sum(LedgerEntry.amount), 0)).where(
                LedgerEntry.tenant_id == tenant_id,
                LedgerEntry.employee_id == employee_id,
                LedgerEntry.category == LedgerCategory(category).value,
                LedgerEntry.entry_date >= period_start,
                LedgerEntry.entry_date <= period_end,
            )
        )
        return to_money(total)


class SqlEmployeeDirectory:
    def __init__(self, session: AsyncSession):
        self.session = session

    async def get_employee(self, tenant_id: UUID, employee_id: UUID) -> Employee:
        employee = await self.session.get(Employee, employee_id)
        if employee is None or employee.tenant_id != tenant_id:
            raise EmployeeNotFoundError(employee_id)
        return employee

    async def get(self, tenant_id: UUID, employee_id: UUID) -> EmployeeProfile:
        """Get the typed profile, raising InvalidPaymentTypeConfig on bad config."""
        employee = await self.get_employee(tenant_id, employee_id)
        return employee.to_profile()

    async def ensure_exists(self, tenant_id: UUID, employee_id: UUID) -> None:
        await self.get_employee(tenant_id, employee_id)

    async def list_active_ids(self, tenant_id: UUID) -> list[UUID]:
        result = await self.session.execute(
            select(Employee.employee_id)
            .where(Employee.tenant_id == tenant_id, Employee.is_active.is_(True))
            .order_by(Employee.employee_code)
        )
        return list(result.scalars().all())


@dataclass(frozen=True)
class PayrollSources:
    """The three collaborators bundled for one session."""

    attendance: AttendanceStore
    ledger: LedgerStore
    employees: EmployeeDirectory

    @classmethod
    def for_session(cls, session: AsyncSession) -> PayrollSources:
        return cls(
            attendance=SqlAttendanceStore(session),
            ledger=SqlLedgerStore(session),
            employees=SqlEmployeeDirectory(session),
        )


MONEY_QUANTUM = Decimal(1).scaleb(-MONEY_SCALE)


def to_money(value: object) -> Decimal:
    """Normalize a driver value (Decimal, float or int) to the money column scale."""
    if value is None:
        value = Decimal(0)
    elif not isinstance(value, Decimal):
        value = Decimal(str(value))
    return value.quantize(MONEY_QUANTUM)
