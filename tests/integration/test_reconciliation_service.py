"""Reconciliation service tests: batches, previews and payments."""

import asyncio
from datetime import date
from decimal import Decimal
from uuid import uuid4

import pytest
from sqlalchemy import func, select

from attendance_payroll.errors import (
    EmployeeNotFoundError,
    InvalidLedgerEntryError,
    InvalidPaymentAmountError,
    InvalidPaymentTypeConfig,
    InvalidStateTransitionError,
    RecordAlreadyPaidError,
    UnbackedPaymentError,
)
from attendance_payroll.models import LedgerEntry, SalaryRecord
from attendance_payroll.services.reconciliation_service import ReconciliationService
from attendance_payroll.services.salary_record_service import SalaryRecordLifecycle
from attendance_payroll.services.stores import PayrollSources
from tests.factories import HOURS_180_OVER_20, HOURS_210_OVER_25, JUNE_2024

pytestmark = pytest.mark.asyncio

JUNE_1 = date(2024, 6, 1)


async def _count(session, model) -> int:
    return await session.scalar(select(func.count()).select_from(model))


class TestComputeForPeriod:
    async def test_computes_all_active_employees(
        self, service, session, make_employee, add_attendance, add_ledger
    ):
        fixed = await make_employee()
        hourly = await make_employee(
            payment_type="hourly", basic_salary=None, hourly_rate=Decimal("100")
        )
        await make_employee(is_active=False)
        await add_attendance(fixed, JUNE_1, HOURS_210_OVER_25)
        await add_attendance(hourly, JUNE_1, HOURS_180_OVER_20)
        await add_ledger(hourly, "Advance", "2000", date(2024, 6, 10), "adv-1")

        batch = await service.compute_for_period(fixed.tenant_id, JUNE_2024)

        assert batch.success
        assert set(batch.results) == {fixed.employee_id, hourly.employee_id}
        assert batch.results[fixed.employee_id].figures.gross_amount == Decimal("28125.00")
        assert batch.results[hourly.employee_id].figures.net_amount == Decimal("16000.00")
        assert batch.total_net == Decimal("44125.00")
        assert await _count(session, SalaryRecord) == 2

    async def test_configuration_error_does_not_abort_batch(
        self, service, session, make_employee, add_attendance
    ):
        good = await make_employee()
        broken = await make_employee(basic_salary=None)
        await add_attendance(good, JUNE_1, ["8"] * 5)
        await add_attendance(broken, JUNE_1, ["8"] * 5)

        batch = await service.compute_for_period(good.tenant_id, JUNE_2024)

        assert not batch.success
        assert batch.errors[broken.employee_id]["code"] == "INVALID_PAYMENT_TYPE_CONFIG"
        assert batch.errors[broken.employee_id]["category"] == "configuration"
        assert batch.results[good.employee_id].success
        assert await _count(session, SalaryRecord) == 1

    async def test_single_employee(self, service, make_employee):
        first = await make_employee()
        await make_employee()

        batch = await service.compute_for_period(first.tenant_id, JUNE_2024, first.employee_id)

        assert list(batch.results) == [first.employee_id]

    async def test_unknown_employee_raises_before_computing(self, service, session, tenant):
        with pytest.raises(EmployeeNotFoundError):
            await service.compute_for_period(tenant.tenant_id, JUNE_2024, uuid4())
        assert await _count(session, SalaryRecord) == 0

    async def test_recompute_is_byte_identical(
        self, service, session, make_employee, add_attendance
    ):
        employee = await make_employee()
        await add_attendance(employee, JUNE_1, HOURS_210_OVER_25)

        await service.compute_for_period(employee.tenant_id, JUNE_2024)
        before = (await session.execute(select(SalaryRecord))).scalar_one().to_dict()

        batch = await service.compute_for_period(employee.tenant_id, JUNE_2024)
        record = (
            await session.execute(
                select(SalaryRecord).execution_options(populate_existing=True)
            )
        ).scalar_one()

        assert batch.results[employee.employee_id].changed is False
        assert record.to_dict() == before

    async def test_paid_record_reported_not_overwritten(
        self, service, make_employee, add_attendance
    ):
        employee = await make_employee()
        await add_attendance(employee, JUNE_1, ["8"] * 5)
        await service.record_payment(
            employee.tenant_id, employee.employee_id, JUNE_2024, Decimal("5000"), mark_paid=True
        )

        batch = await service.compute_for_period(employee.tenant_id, JUNE_2024)

        error = batch.errors[employee.employee_id]
        assert error["code"] == "RECORD_ALREADY_PAID"
        assert batch.results[employee.employee_id].status == "paid"

    async def test_cancellation_stops_new_jobs(self, session_factory, settings, make_employee):
        employees = [await make_employee() for _ in range(3)]
        cancel = asyncio.Event()

        class CancellingDirectory:
            """Signals cancellation while the first employee is being computed."""

            def __init__(self, inner):
                self.inner = inner

            async def get(self, tenant_id, employee_id):
                cancel.set()
                return await self.inner.get(tenant_id, employee_id)

            async def ensure_exists(self, tenant_id, employee_id):
                await self.inner.ensure_exists(tenant_id, employee_id)

            async def list_active_ids(self, tenant_id):
                return await self.inner.list_active_ids(tenant_id)

        def sources_factory(session):
            sources = PayrollSources.for_session(session)
            return PayrollSources(
                attendance=sources.attendance,
                ledger=sources.ledger,
                employees=CancellingDirectory(sources.employees),
            )

        service = ReconciliationService(
            session_factory, settings=settings, sources_factory=sources_factory
        )
        batch = await service.compute_for_period(employees[0].tenant_id, JUNE_2024, cancel_event=cancel)

        assert batch.cancelled
        assert list(batch.results) == [employees[0].employee_id]
        assert batch.skipped == [employees[1].employee_id, employees[2].employee_id]
        # The job already running stays committed
        async with session_factory() as session:
            assert await _count(session, SalaryRecord) == 1

    async def test_tenant_isolation(self, service, make_employee, other_tenant):
        await make_employee()

        batch = await service.compute_for_period(other_tenant.tenant_id, JUNE_2024)

        assert batch.results == {}


class TestGetDue:
    async def test_preview_not_persisted(self, service, session, make_employee, add_attendance):
        employee = await make_employee()
        await add_attendance(employee, JUNE_1, HOURS_210_OVER_25)

        view = await service.get_due(employee.tenant_id, employee.employee_id, JUNE_2024)

        assert view.is_preview
        assert view.record is None
        assert view.figures.gross_amount == Decimal("28125.00")
        assert await _count(session, SalaryRecord) == 0

    async def test_stored_record_returned(self, service, make_employee):
        employee = await make_employee()
        await service.compute_for_period(employee.tenant_id, JUNE_2024)

        view = await service.get_due(employee.tenant_id, employee.employee_id, JUNE_2024)

        assert view.source == "stored"
        # Computed but zero is distinct from not computed
        assert view.record.net_amount == Decimal("0.00")

    async def test_unknown_employee(self, service, tenant):
        with pytest.raises(EmployeeNotFoundError):
            await service.get_due(tenant.tenant_id, uuid4(), JUNE_2024)


class TestRecordPayment:
    async def test_payment_refreshes_record_and_stays_computed(
        self, service, session, make_employee, add_attendance
    ):
        employee = await make_employee()
        await add_attendance(employee, JUNE_1, HOURS_210_OVER_25)

        record = await service.record_payment(
            employee.tenant_id, employee.employee_id, JUNE_2024, Decimal("10000"), "Bank Transfer"
        )

        assert record.status == "computed"
        assert record.other_deductions == Decimal("10000.00")
        assert record.net_amount == Decimal("18125.00")
        entry = (await session.execute(select(LedgerEntry))).scalar_one()
        assert entry.category == "Salary"
        assert entry.payment_mode == "Bank Transfer"
        assert JUNE_2024.contains(entry.entry_date)

    async def test_overpayment_shows_excess(self, service, make_employee, add_attendance):
        employee = await make_employee(payment_type="hourly", basic_salary=None, hourly_rate=Decimal("100"))
        await add_attendance(employee, JUNE_1, ["8"])

        record = await service.record_payment(
            employee.tenant_id, employee.employee_id, JUNE_2024, Decimal("1000")
        )

        assert record.net_amount == Decimal("-200.00")

    async def test_idempotency_key_posts_once(self, service, session, make_employee):
        employee = await make_employee()

        for _ in range(2):
            record = await service.record_payment(
                employee.tenant_id,
                employee.employee_id,
                JUNE_2024,
                Decimal("500"),
                idempotency_key="pay-2024-06-1",
            )

        assert await _count(session, LedgerEntry) == 1
        assert record.other_deductions == Decimal("500.00")

    async def test_mark_paid_flag(self, service, make_employee, add_attendance):
        employee = await make_employee()
        await add_attendance(employee, JUNE_1, ["8"] * 2)

        record = await service.record_payment(
            employee.tenant_id, employee.employee_id, JUNE_2024, Decimal("2000"), mark_paid=True
        )

        assert record.status == "paid"
        assert record.net_amount == Decimal("0.00")

    @pytest.mark.parametrize("amount", ["0", "-10"])
    async def test_non_positive_amount(self, service, session, make_employee, amount):
        employee = await make_employee()

        with pytest.raises(InvalidPaymentAmountError):
            await service.record_payment(
                employee.tenant_id, employee.employee_id, JUNE_2024, Decimal(amount)
            )
        assert await _count(session, LedgerEntry) == 0

    async def test_paid_period_rejected(self, service, session, make_employee):
        employee = await make_employee()
        await service.record_payment(
            employee.tenant_id, employee.employee_id, JUNE_2024, Decimal("1"), mark_paid=True
        )

        with pytest.raises(RecordAlreadyPaidError):
            await service.record_payment(
                employee.tenant_id, employee.employee_id, JUNE_2024, Decimal("1")
            )
        assert await _count(session, LedgerEntry) == 1

    async def test_calculation_error_keeps_posted_payment(self, service, session, make_employee):
        employee = await make_employee(basic_salary=None)

        with pytest.raises(InvalidPaymentTypeConfig):
            await service.record_payment(
                employee.tenant_id, employee.employee_id, JUNE_2024, Decimal("500")
            )

        entry = (await session.execute(select(LedgerEntry))).scalar_one()
        assert entry.employee_id == employee.employee_id
        assert entry.amount == Decimal("500.00")
        assert await _count(session, SalaryRecord) == 0

    async def test_key_reused_by_another_employee_rejected(self, service, session, make_employee):
        first = await make_employee()
        second = await make_employee()
        await service.record_payment(
            first.tenant_id, first.employee_id, JUNE_2024, Decimal("500"), idempotency_key="pay-1"
        )

        with pytest.raises(InvalidLedgerEntryError):
            await service.record_payment(
                second.tenant_id,
                second.employee_id,
                JUNE_2024,
                Decimal("700"),
                idempotency_key="pay-1",
            )

        view = await service.get_due(second.tenant_id, second.employee_id, JUNE_2024)
        assert view.is_preview
        assert await _count(session, LedgerEntry) == 1


class TestServiceMarkPaid:
    async def test_requires_salary_payment(self, service, make_employee):
        employee = await make_employee()
        batch = await service.compute_for_period(employee.tenant_id, JUNE_2024)
        record_id = batch.results[employee.employee_id].salary_record_id

        with pytest.raises(UnbackedPaymentError):
            await service.mark_paid(employee.tenant_id, record_id)

    async def test_refreshes_then_marks(self, service, make_employee, add_attendance, add_ledger):
        employee = await make_employee()
        await add_attendance(employee, JUNE_1, ["8"] * 2)
        batch = await service.compute_for_period(employee.tenant_id, JUNE_2024)
        record_id = batch.results[employee.employee_id].salary_record_id
        # Payment recorded outside record_payment; mark_paid picks it up
        await add_ledger(employee, "Salary", "2000", date(2024, 6, 30), "cash-1")

        record = await service.mark_paid(employee.tenant_id, record_id)

        assert record.status == "paid"
        assert record.other_deductions == Decimal("2000.00")
        assert record.net_amount == Decimal("0.00")

    async def test_losing_a_race_reports_invalid_transition(
        self, service, session_factory, make_employee, add_ledger, monkeypatch
    ):
        employee = await make_employee()
        await add_ledger(employee, "Salary", "100", date(2024, 6, 30), "cash-1")
        batch = await service.compute_for_period(employee.tenant_id, JUNE_2024)
        record_id = batch.results[employee.employee_id].salary_record_id
        calculate = service.calculate

        async def calculate_after_rival_pays(session, *args):
            # The rival commits between our status read and our refresh
            async with session_factory() as rival:
                await SalaryRecordLifecycle(rival).mark_paid(employee.tenant_id, record_id)
                await rival.commit()
            return await calculate(session, *args)

        monkeypatch.setattr(service, "calculate", calculate_after_rival_pays)

        with pytest.raises(InvalidStateTransitionError) as exc_info:
            await service.mark_paid(employee.tenant_id, record_id)
        assert exc_info.value.from_status == "paid"

    async def test_twice_rejected(self, service, make_employee):
        employee = await make_employee()
        record = await service.record_payment(
            employee.tenant_id, employee.employee_id, JUNE_2024, Decimal("1"), mark_paid=True
        )

        with pytest.raises(InvalidStateTransitionError):
            await service.mark_paid(employee.tenant_id, record.salary_record_id)


async def test_payslip_passthrough(service, make_employee):
    employee = await make_employee()
    batch = await service.compute_for_period(employee.tenant_id, JUNE_2024)

    payslip = await service.generate_payslip(
        employee.tenant_id, batch.results[employee.employee_id].salary_record_id
    )

    assert payslip.provisional
