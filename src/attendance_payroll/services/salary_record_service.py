"""Salary record lifecycle: idempotent persistence and the paid transition."""

from __future__ import annotations

import logging
from dataclasses import asdict, dataclass
from datetime import datetime, timezone
from decimal import Decimal
from typing import Any
from uuid import UUID, uuid4

from sqlalchemy import select, update
from sqlalchemy.ext.asyncio import AsyncSession

from attendance_payroll.calculators.types import NetStatus, PayPeriod, PayrollFigures
from attendance_payroll.database import insert_for
from attendance_payroll.errors import (
    InvalidStateTransitionError,
    RecordAlreadyPaidError,
    SalaryRecordNotFoundError,
)
from attendance_payroll.models import Employee, SalaryRecord
from attendance_payroll.services.locking_service import LockingService
from attendance_payroll.services.state_machine import (
    SalaryRecordStateMachine,
    SalaryRecordStatus,
)

logger = logging.getLogger(__name__)

NATURAL_KEY = ["tenant_id", "employee_id", "period_year", "period_month"]


@dataclass(frozen=True)
class UpsertResult:
    """Outcome of ``upsert_computed``.

    ``changed`` is False when the stored record already carried the same
    calculation id; nothing was written in that case.
    """

    record: SalaryRecord
    is_new: bool
    changed: bool


@dataclass(frozen=True)
class PayslipSnapshot:
    """Read-only payslip document for one salary record."""

    salary_record_id: UUID
    tenant_id: UUID
    employee_id: UUID
    employee_code: str
    employee_name: str
    period: str
    payment_type: str
    status: str
    provisional: bool
    present_days: int
    absent_days: int
    total_days: int
    total_hours: Decimal
    overtime_hours: Decimal
    undertime_hours: Decimal
    gross_amount: Decimal
    advance_deducted: Decimal
    other_deductions: Decimal
    net_amount: Decimal
    net_status: str
    computed_at: datetime
    paid_at: datetime | None
    generated_at: datetime

    def to_dict(self) -> dict[str, Any]:
        return asdict(self)


class SalaryRecordLifecycle:
    """Persistence contract of salary records.

    Key invariants:
    1. One record per (tenant, employee, period), enforced by a unique constraint
    2. net = gross - advance_deducted - other_deductions on every write
    3. Computed records may be overwritten by fresh figures; paid ones never
    4. computed → paid happens once, as a conditional UPDATE on status
    """

    def __init__(self, session: AsyncSession):
        self.session = session
        self.locking_service = LockingService(session)

    async def get(self, tenant_id: UUID, record_id: UUID) -> SalaryRecord:
        """Load a record, raising SalaryRecordNotFoundError if absent."""
        result = await self.session.execute(
            select(SalaryRecord)
            .where(
                SalaryRecord.salary_record_id == record_id,
                SalaryRecord.tenant_id == tenant_id,
            )
            .execution_options(populate_existing=True)
        )
        record = result.scalar_one_or_none()
        if record is None:
            raise SalaryRecordNotFoundError(record_id)
        return record

    async def find(
        self, tenant_id: UUID, employee_id: UUID, period: PayPeriod
    ) -> SalaryRecord | None:
        """Look a record up by its natural key."""
        result = await self.session.execute(
            select(SalaryRecord)
            .where(
                SalaryRecord.tenant_id == tenant_id,
                SalaryRecord.employee_id == employee_id,
                SalaryRecord.period_year == period.year,
                SalaryRecord.period_month == period.month,
            )
            .execution_options(populate_existing=True)
        )
        return result.scalar_one_or_none()

    async def upsert_computed(self, tenant_id: UUID, figures: PayrollFigures) -> UpsertResult:
        """Insert or overwrite the computed record for the figures' natural key.

        Raises:
            RecordAlreadyPaidError: if the record is paid; the stored record is
                attached to the error unchanged
        """
        period = figures.period
        values = self._figure_values(figures)
        now = datetime.now(timezone.utc)

        stmt = (
            insert_for(self.session, SalaryRecord)
            .values(
                salary_record_id=uuid4(),
                tenant_id=tenant_id,
                employee_id=figures.employee_id,
                period_year=period.year,
                period_month=period.month,
                status=SalaryRecordStatus.COMPUTED.value,
                computed_at=now,
                **values,
            )
            .on_conflict_do_nothing(index_elements=NATURAL_KEY)
        )
        result = await self.session.execute(stmt)

        record = await self.find(tenant_id, figures.employee_id, period)
        if record is None:
            raise RuntimeError("Salary record upsert failed - no record created or found")

        if (result.rowcount or 0) > 0:
            logger.info(
                "Created salary record %s for employee %s %s (net %s)",
                record.salary_record_id, figures.employee_id, period, figures.net_amount,
            )
            return UpsertResult(record=record, is_new=True, changed=True)

        if not SalaryRecordStateMachine.can_calculate(record.status):
            raise RecordAlreadyPaidError(record)

        if record.calculation_id == figures.calculation_id:
            # Same inputs, same figures: leave the row (and computed_at) alone
            return UpsertResult(record=record, is_new=False, changed=False)

        # Last writer wins, but only while the record is still computed
        result = await self.session.execute(
            update(SalaryRecord)
            .where(
                SalaryRecord.salary_record_id == record.salary_record_id,
                SalaryRecord.status == SalaryRecordStatus.COMPUTED.value,
            )
            .values(computed_at=now, **values)
        )
        record = await self.get(tenant_id, record.salary_record_id)
        if (result.rowcount or 0) == 0:
            raise RecordAlreadyPaidError(record)

        logger.info(
            "Recomputed salary record %s for employee %s %s (net %s)",
            record.salary_record_id, figures.employee_id, period, figures.net_amount,
        )
        return UpsertResult(record=record, is_new=False, changed=True)

    async def mark_paid(self, tenant_id: UUID, record_id: UUID) -> SalaryRecord:
        """Transition computed → paid and freeze the period's attendance.

        The status check and the write are one statement, so of two concurrent
        callers exactly one succeeds.

        Raises:
            SalaryRecordNotFoundError: if the id does not resolve
            InvalidStateTransitionError: if the record is already paid
        """
        result = await self.session.execute(
            update(SalaryRecord)
            .where(
                SalaryRecord.salary_record_id == record_id,
                SalaryRecord.tenant_id == tenant_id,
                SalaryRecord.status == SalaryRecordStatus.COMPUTED.value,
            )
            .values(
                status=SalaryRecordStatus.PAID.value,
                paid_at=datetime.now(timezone.utc),
            )
        )

        record = await self.get(tenant_id, record_id)
        if (result.rowcount or 0) == 0:
            SalaryRecordStateMachine.validate_transition(
                record.status, SalaryRecordStatus.PAID.value
            )
            raise InvalidStateTransitionError(
                record.status, SalaryRecordStatus.PAID.value, "status changed concurrently"
            )

        locked = await self.locking_service.lock_attendance_for_record(record)
        logger.info(
            "Salary record %s marked paid (net %s, %d attendance rows frozen)",
            record_id, record.net_amount, locked,
        )
        return record

    async def generate_payslip(self, tenant_id: UUID, record_id: UUID) -> PayslipSnapshot:
        """Build a payslip snapshot; computed records yield a provisional one."""
        record = await self.get(tenant_id, record_id)
        employee = await self.session.get(Employee, record.employee_id)

        return PayslipSnapshot(
            salary_record_id=record.salary_record_id,
            tenant_id=record.tenant_id,
            employee_id=record.employee_id,
            employee_code=employee.employee_code if employee else "",
            employee_name=employee.name if employee else "",
            period=record.period_label,
            payment_type=record.payment_type,
            status=record.status,
            provisional=not record.is_paid,
            present_days=record.present_days,
            absent_days=record.total_days - record.present_days,
            total_days=record.total_days,
            total_hours=record.total_hours,
            overtime_hours=record.overtime_hours,
            undertime_hours=record.undertime_hours,
            gross_amount=record.gross_amount,
            advance_deducted=record.advance_deducted,
            other_deductions=record.other_deductions,
            net_amount=record.net_amount,
            net_status=NetStatus.of(record.net_amount).value,
            computed_at=record.computed_at,
            paid_at=record.paid_at,
            generated_at=datetime.now(timezone.utc),
        )

    def _figure_values(self, figures: PayrollFigures) -> dict[str, Any]:
        """Column values derived from figures; salary already paid is the other deduction."""
        net = figures.gross_amount - figures.advance_deducted - figures.already_paid
        if net != figures.net_amount:
            raise ValueError(
                f"Figures violate net = gross - deductions ({figures.net_amount} != {net})"
            )
        return {
            "payment_type": figures.payment_type.value,
            "gross_amount": figures.gross_amount,
            "advance_deducted": figures.advance_deducted,
            "other_deductions": figures.already_paid,
            "net_amount": figures.net_amount,
            "present_days": figures.present_days,
            "total_days": figures.total_days,
            "total_hours": figures.total_hours,
            "overtime_hours": figures.overtime_hours,
            "undertime_hours": figures.undertime_hours,
            "calculation_id": figures.calculation_id,
            "inputs_fingerprint": figures.inputs_fingerprint,
        }
