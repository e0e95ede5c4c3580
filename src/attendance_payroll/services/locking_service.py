"""Attendance freezing for paid-out periods."""

from __future__ import annotations

from datetime import datetime, timezone
from uuid import UUID

from sqlalchemy import select, update
from sqlalchemy.ext.asyncio import AsyncSession

from attendance_payroll.calculators.types import PayPeriod
from attendance_payroll.models import AttendanceRecord, SalaryRecord
from attendance_payroll.services.state_machine import SalaryRecordStatus


class LockingService:
    """Service for freezing attendance once a salary record is paid.

    When a record transitions to paid, every attendance row of that
    employee/period is stamped with the record id. The paid record itself is
    the authority: a period is frozen as soon as a paid record exists for it,
    so days marked later (rows that did not exist at payment time) are frozen
    too.
    """

    def __init__(self, session: AsyncSession):
        self.session = session

    async def lock_attendance_for_record(self, record: SalaryRecord) -> int:
        """Lock all attendance rows covered by a paid record.

        Returns count of locked rows.
        """
        period = record.period
        result = await self.session.execute(
            update(AttendanceRecord)
            .where(
                AttendanceRecord.tenant_id == record.tenant_id,
                AttendanceRecord.employee_id == record.employee_id,
                AttendanceRecord.work_date >= period.start,
                AttendanceRecord.work_date <= period.end,
                AttendanceRecord.locked_by_salary_record_id.is_(None),
            )
            .values(
                locked_by_salary_record_id=record.salary_record_id,
                locked_at=datetime.now(timezone.utc),
            )
        )
        return result.rowcount or 0

    async def get_paid_record(
        self, tenant_id: UUID, employee_id: UUID, period: PayPeriod
    ) -> SalaryRecord | None:
        """Return the paid record freezing this period, if any."""
        result = await self.session.execute(
            select(SalaryRecord).where(
                SalaryRecord.tenant_id == tenant_id,
                SalaryRecord.employee_id == employee_id,
                SalaryRecord.period_year == period.year,
                SalaryRecord.period_month == period.month,
                SalaryRecord.status == SalaryRecordStatus.PAID.value,
            )
        )
        return result.scalar_one_or_none()

    async def is_period_frozen(
        self, tenant_id: UUID, employee_id: UUID, period: PayPeriod
    ) -> bool:
        return await self.get_paid_record(tenant_id, employee_id, period) is not None
