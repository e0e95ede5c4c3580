"""Attendance marking and the monthly attendance sheet."""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from datetime import date
from decimal import Decimal
from typing import Any
from uuid import UUID

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from attendance_payroll.calculators.engine import PayrollCalculator
from attendance_payroll.calculators.types import PayPeriod
from attendance_payroll.errors import AttendanceLockedError, InvalidAttendanceError, PayrollError
from attendance_payroll.models import AttendanceRecord, Employee
from attendance_payroll.services.locking_service import LockingService
from attendance_payroll.services.reconciliation_service import load_figures
from attendance_payroll.services.salary_record_service import SalaryRecordLifecycle
from attendance_payroll.services.stores import PayrollSources

logger = logging.getLogger(__name__)

MAX_HOURS_PER_DAY = Decimal("24")


@dataclass
class SheetRow:
    """One employee's line on the monthly sheet."""

    employee_id: UUID
    employee_code: str
    name: str
    days: dict[int, dict[str, Any]] = field(default_factory=dict)
    present_days: int = 0
    absent_days: int = 0
    total_hours: Decimal = Decimal("0")
    due: dict[str, Any] | None = None
    error: dict[str, Any] | None = None


@dataclass
class MonthlySheet:
    period: PayPeriod
    total_days: int
    rows: list[SheetRow] = field(default_factory=list)


class AttendanceService:
    """Write side of attendance, guarded by the period freeze."""

    def __init__(self, session: AsyncSession, calculator: PayrollCalculator | None = None):
        self.session = session
        self.calculator = calculator or PayrollCalculator.from_settings()
        self.locking_service = LockingService(session)

    async def mark(
        self,
        tenant_id: UUID,
        employee_id: UUID,
        work_date: date,
        is_present: bool,
        hours_worked: Decimal = Decimal("0"),
        notes: str | None = None,
    ) -> AttendanceRecord:
        """Create or update the attendance row for one day.

        Hours on an absent day are stored as given and ignored by the
        calculator.

        Raises:
            EmployeeNotFoundError: if the employee is not in the tenant
            InvalidAttendanceError: if hours are outside 0..24
            AttendanceLockedError: if the day's period is already paid
        """
        hours = Decimal(hours_worked)
        if hours < 0 or hours > MAX_HOURS_PER_DAY:
            raise InvalidAttendanceError(
                f"hours_worked must be between 0 and 24, got {hours_worked}"
            )

        await PayrollSources.for_session(self.session).employees.ensure_exists(
            tenant_id, employee_id
        )

        period = PayPeriod.containing(work_date)
        if await self.locking_service.is_period_frozen(tenant_id, employee_id, period):
            raise AttendanceLockedError(employee_id, work_date)

        result = await self.session.execute(
            select(AttendanceRecord).where(
                AttendanceRecord.tenant_id == tenant_id,
                AttendanceRecord.employee_id == employee_id,
                AttendanceRecord.work_date == work_date,
            )
        )
        record = result.scalar_one_or_none()
        if record is None:
            record = AttendanceRecord(
                tenant_id=tenant_id,
                employee_id=employee_id,
                work_date=work_date,
                locked_by_salary_record_id=None,
                locked_at=None,
            )
            self.session.add(record)
        elif record.is_locked:
            raise AttendanceLockedError(employee_id, work_date)

        record.is_present = is_present
        record.hours_worked = hours
        record.notes = notes
        await self.session.flush()

        logger.debug(
            "Marked employee %s %s on %s (%s h)",
            employee_id, "present" if is_present else "absent", work_date, hours,
        )
        return record

    async def monthly_sheet(
        self,
        tenant_id: UUID,
        period: PayPeriod,
        employee_id: UUID | None = None,
    ) -> MonthlySheet:
        """Day-by-day attendance plus the current due view per employee.

        Days with no row count as absent. Employees whose pay cannot be
        computed get an ``error`` entry instead of a ``due`` one.
        """
        query = select(Employee).where(Employee.tenant_id == tenant_id)
        if employee_id is not None:
            query = query.where(Employee.employee_id == employee_id)
        else:
            query = query.where(Employee.is_active.is_(True))
        employees = (await self.session.execute(query.order_by(Employee.employee_code))).scalars()

        sources = PayrollSources.for_session(self.session)
        lifecycle = SalaryRecordLifecycle(self.session)
        sheet = MonthlySheet(period=period, total_days=period.total_days)

        for employee in employees.all():
            row = SheetRow(
                employee_id=employee.employee_id,
                employee_code=employee.employee_code,
                name=employee.name,
            )
            days = await sources.attendance.get_records(
                tenant_id, employee.employee_id, period.start, period.end
            )
            for day in days:
                row.days[day.work_date.day] = {
                    "is_present": day.is_present,
                    "hours_worked": day.hours_worked,
                }
                if day.is_present:
                    row.present_days += 1
                    row.total_hours += day.hours_worked
            row.absent_days = period.total_days - row.present_days

            record = await lifecycle.find(tenant_id, employee.employee_id, period)
            if record is not None:
                row.due = {
                    "source": "stored",
                    "salary_record_id": record.salary_record_id,
                    "status": record.status,
                    "gross_amount": record.gross_amount,
                    "net_amount": record.net_amount,
                }
            else:
                try:
                    figures = await load_figures(
                        sources, self.calculator, tenant_id, employee.employee_id, period
                    )
                except PayrollError as e:
                    row.error = e.to_dict()
                else:
                    row.due = {
                        "source": "preview",
                        "salary_record_id": None,
                        "status": None,
                        "gross_amount": figures.gross_amount,
                        "net_amount": figures.net_amount,
                    }
            sheet.rows.append(row)

        return sheet
