"""Reconciliation service - main orchestrator for payroll operations."""

from __future__ import annotations

import asyncio
import logging
from collections.abc import Callable
from dataclasses import dataclass, field
from datetime import date
from decimal import Decimal
from typing import Any
from uuid import UUID

from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from attendance_payroll.calculators.engine import PayrollCalculator
from attendance_payroll.calculators.types import PayPeriod, PayrollFigures
from attendance_payroll.config import Settings, get_settings
from attendance_payroll.errors import (
    InvalidStateTransitionError,
    PayrollError,
    RecordAlreadyPaidError,
    UnbackedPaymentError,
)
from attendance_payroll.models import LedgerCategory, PaymentMode, SalaryRecord
from attendance_payroll.services.ledger_service import LedgerService
from attendance_payroll.services.salary_record_service import SalaryRecordLifecycle
from attendance_payroll.services.state_machine import SalaryRecordStatus
from attendance_payroll.services.stores import PayrollSources

logger = logging.getLogger(__name__)

SourcesFactory = Callable[[AsyncSession], PayrollSources]


async def load_figures(
    sources: PayrollSources,
    calculator: PayrollCalculator,
    tenant_id: UUID,
    employee_id: UUID,
    period: PayPeriod,
) -> PayrollFigures:
    """Read profile, attendance and ledger sums, then calculate."""
    profile = await sources.employees.get(tenant_id, employee_id)
    attendance = await sources.attendance.get_records(
        tenant_id, employee_id, period.start, period.end
    )
    advances = await sources.ledger.sum_by_category(
        tenant_id, employee_id, LedgerCategory.ADVANCE, period.start, period.end
    )
    already_paid = await sources.ledger.sum_by_category(
        tenant_id, employee_id, LedgerCategory.SALARY, period.start, period.end
    )
    return calculator.calculate(profile, attendance, period, advances, already_paid)


@dataclass
class EmployeeOutcome:
    """Result of computing one employee within a batch."""

    employee_id: UUID
    figures: PayrollFigures | None = None
    salary_record_id: UUID | None = None
    status: str | None = None
    changed: bool = False
    error: dict[str, Any] | None = None

    @property
    def success(self) -> bool:
        return self.error is None


@dataclass
class BatchResult:
    """Partial-success report of a batch computation."""

    period: PayPeriod
    results: dict[UUID, EmployeeOutcome] = field(default_factory=dict)
    errors: dict[UUID, dict[str, Any]] = field(default_factory=dict)
    skipped: list[UUID] = field(default_factory=list)
    cancelled: bool = False

    @property
    def success(self) -> bool:
        return not self.errors and not self.skipped

    @property
    def total_net(self) -> Decimal:
        return sum(
            (o.figures.net_amount for o in self.results.values() if o.figures is not None),
            Decimal("0"),
        )


@dataclass
class DueView:
    """What a screen shows for one employee/period.

    ``source`` distinguishes a stored record from a preview computed on the
    fly ("not yet computed").
    """

    source: str  # "stored" | "preview"
    record: SalaryRecord | None = None
    figures: PayrollFigures | None = None

    @property
    def is_preview(self) -> bool:
        return self.source == "preview"


class ReconciliationService:
    """Service for computing, querying and paying salary records.

    Operations:
    - compute_for_period: batch/point computation with a bounded worker pool
    - get_due: current record, or an unpersisted preview
    - record_payment: post a salary cash-out and refresh the record
    - mark_paid: explicit computed → paid transition

    Each employee is computed in its own session and transaction, so one
    employee's failure or a cancellation never rolls back another's record.
    """

    def __init__(
        self,
        session_factory: async_sessionmaker[AsyncSession],
        settings: Settings | None = None,
        calculator: PayrollCalculator | None = None,
        sources_factory: SourcesFactory = PayrollSources.for_session,
    ):
        self.session_factory = session_factory
        self.settings = settings or get_settings()
        self.calculator = calculator or PayrollCalculator.from_settings(self.settings)
        self.sources_factory = sources_factory

    # === Computation ===

    async def calculate(
        self,
        session: AsyncSession,
        tenant_id: UUID,
        employee_id: UUID,
        period: PayPeriod,
    ) -> PayrollFigures:
        """Load inputs for one employee and run the calculator (no writes)."""
        return await load_figures(
            self.sources_factory(session), self.calculator, tenant_id, employee_id, period
        )

    async def compute_for_period(
        self,
        tenant_id: UUID,
        period: PayPeriod,
        employee_id: UUID | None = None,
        cancel_event: asyncio.Event | None = None,
    ) -> BatchResult:
        """Compute and persist salary records for one or all active employees.

        Args:
            tenant_id: Tenant to compute for
            period: Billing month
            employee_id: A single employee, or None for all active employees
            cancel_event: When set, no new employee jobs are started; jobs
                already running finish and stay committed

        Raises:
            EmployeeNotFoundError: if a single targeted employee does not exist
        """
        if employee_id is not None:
            async with self.session_factory() as session:
                sources = self.sources_factory(session)
                # Reject a missing employee before any computation runs
                await sources.employees.ensure_exists(tenant_id, employee_id)
            employee_ids = [employee_id]
        else:
            async with self.session_factory() as session:
                employee_ids = await self.sources_factory(session).employees.list_active_ids(
                    tenant_id
                )

        logger.info(
            "Computing payroll for %d employee(s), tenant %s, period %s",
            len(employee_ids), tenant_id, period,
        )

        batch = BatchResult(period=period)
        semaphore = asyncio.Semaphore(self.settings.batch_concurrency)

        async def worker(emp_id: UUID) -> None:
            async with semaphore:
                if cancel_event is not None and cancel_event.is_set():
                    batch.skipped.append(emp_id)
                    return
                outcome = await self._compute_one(tenant_id, emp_id, period)
                batch.results[emp_id] = outcome
                if outcome.error is not None:
                    batch.errors[emp_id] = outcome.error

        await asyncio.gather(*(worker(emp_id) for emp_id in employee_ids))

        batch.cancelled = bool(batch.skipped)
        logger.info(
            "Payroll computation for %s finished: %d ok, %d failed, %d skipped",
            period,
            len(batch.results) - len(batch.errors),
            len(batch.errors),
            len(batch.skipped),
        )
        return batch

    async def _compute_one(
        self, tenant_id: UUID, employee_id: UUID, period: PayPeriod
    ) -> EmployeeOutcome:
        async with self.session_factory() as session:
            try:
                figures = await self.calculate(session, tenant_id, employee_id, period)
                upsert = await SalaryRecordLifecycle(session).upsert_computed(tenant_id, figures)
                await session.commit()
            except RecordAlreadyPaidError as e:
                await session.rollback()
                logger.info("Skipping employee %s for %s: %s", employee_id, period, e)
                return EmployeeOutcome(
                    employee_id=employee_id,
                    salary_record_id=e.record.salary_record_id,
                    status=e.record.status,
                    error=e.to_dict(),
                )
            except PayrollError as e:
                await session.rollback()
                logger.warning("Payroll computation failed for employee %s: %s", employee_id, e)
                return EmployeeOutcome(employee_id=employee_id, error=e.to_dict())
            except Exception as e:
                await session.rollback()
                logger.exception("Unexpected error computing employee %s", employee_id)
                return EmployeeOutcome(
                    employee_id=employee_id,
                    error={
                        "code": "INTERNAL_ERROR",
                        "category": "internal",
                        "message": f"Unexpected error: {e}",
                    },
                )

        return EmployeeOutcome(
            employee_id=employee_id,
            figures=figures,
            salary_record_id=upsert.record.salary_record_id,
            status=upsert.record.status,
            changed=upsert.changed,
        )

    # === Queries ===

    async def get_due(
        self,
        tenant_id: UUID,
        employee_id: UUID,
        period: PayPeriod,
    ) -> DueView:
        """Return the stored record, or a preview that is not persisted."""
        async with self.session_factory() as session:
            record = await SalaryRecordLifecycle(session).find(tenant_id, employee_id, period)
            if record is not None:
                return DueView(source="stored", record=record)
            figures = await self.calculate(session, tenant_id, employee_id, period)
            return DueView(source="preview", figures=figures)

    # === Commands ===

    async def record_payment(
        self,
        tenant_id: UUID,
        employee_id: UUID,
        period: PayPeriod,
        amount: Decimal,
        mode: PaymentMode | str = PaymentMode.CASH,
        *,
        idempotency_key: str | None = None,
        payment_date: date | None = None,
        mark_paid: bool = False,
    ) -> SalaryRecord:
        """Post a salary payment and refresh the period's record.

        ``amount`` may exceed the net due; the overpayment shows up as a
        negative net. The record stays computed unless ``mark_paid`` is set.

        The ledger entry is committed on its own before the record is
        refreshed. If the refresh fails, for example on a bad pay
        configuration, the error propagates but the payment stays posted and
        the next recompute picks it up.

        Raises:
            InvalidPaymentAmountError: if amount is not positive
            RecordAlreadyPaidError: if the period is already paid out
            InvalidLedgerEntryError: if the idempotency key belongs to a
                different entry
        """
        entry_date = payment_date or min(date.today(), period.end)
        if not period.contains(entry_date):
            entry_date = period.end

        async with self.session_factory() as session:
            lifecycle = SalaryRecordLifecycle(session)
            existing = await lifecycle.find(tenant_id, employee_id, period)
            if existing is not None and existing.status == SalaryRecordStatus.PAID.value:
                raise RecordAlreadyPaidError(existing)

            await self.sources_factory(session).employees.ensure_exists(tenant_id, employee_id)

            posted = await LedgerService(session).post_entry(
                tenant_id=tenant_id,
                employee_id=employee_id,
                category=LedgerCategory.SALARY,
                amount=amount,
                entry_date=entry_date,
                payment_mode=mode,
                idempotency_key=idempotency_key,
                description=f"Salary {period}",
            )
            await session.commit()

            try:
                figures = await self.calculate(session, tenant_id, employee_id, period)
                upsert = await lifecycle.upsert_computed(tenant_id, figures)
            except PayrollError as e:
                await session.rollback()
                logger.warning(
                    "Payment %s posted for employee %s %s but the record was not refreshed: %s",
                    posted.entry_id, employee_id, period, e,
                )
                raise
            record = upsert.record

            if mark_paid:
                record = await lifecycle.mark_paid(tenant_id, record.salary_record_id)

            await session.commit()

        logger.info(
            "Recorded %s payment of %s for employee %s %s (new=%s, net now %s)",
            posted.entry.payment_mode, amount, employee_id, period,
            posted.is_new, record.net_amount,
        )
        return record

    async def mark_paid(self, tenant_id: UUID, record_id: UUID) -> SalaryRecord:
        """Refresh a computed record from current data, then mark it paid.

        Raises:
            SalaryRecordNotFoundError: if the id does not resolve
            InvalidStateTransitionError: if already paid
            UnbackedPaymentError: if no salary was paid out for the period
        """
        async with self.session_factory() as session:
            lifecycle = SalaryRecordLifecycle(session)
            record = await lifecycle.get(tenant_id, record_id)

            if record.status == SalaryRecordStatus.COMPUTED.value:
                figures = await self.calculate(
                    session, tenant_id, record.employee_id, record.period
                )
                try:
                    record = (await lifecycle.upsert_computed(tenant_id, figures)).record
                except RecordAlreadyPaidError as e:
                    # Another caller won the transition since the status was read
                    raise InvalidStateTransitionError(
                        e.record.status,
                        SalaryRecordStatus.PAID.value,
                        "status changed concurrently",
                    ) from e
                if record.other_deductions <= 0:
                    raise UnbackedPaymentError(
                        f"No salary payment recorded for employee {record.employee_id} "
                        f"in {record.period_label}"
                    )

            record = await lifecycle.mark_paid(tenant_id, record_id)
            await session.commit()
        return record

    async def generate_payslip(self, tenant_id: UUID, record_id: UUID):
        async with self.session_factory() as session:
            return await SalaryRecordLifecycle(session).generate_payslip(tenant_id, record_id)
