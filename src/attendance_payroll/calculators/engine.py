"""Payroll calculator - pure attendance-to-pay computation."""

from __future__ import annotations

import hashlib
import json
from collections.abc import Iterable
from decimal import ROUND_HALF_EVEN, Context, Decimal, localcontext
from typing import Any
from uuid import UUID

from attendance_payroll.calculators.types import (
    AttendanceDay,
    EmployeeProfile,
    FixedPay,
    HourlyPay,
    PayPeriod,
    PayrollFigures,
    PaymentType,
)
from attendance_payroll.config import Settings, get_settings
from attendance_payroll.errors import (
    AttendanceOutOfPeriodError,
    DuplicateAttendanceError,
    InvalidAttendanceError,
    InvalidPaymentAmountError,
    InvalidPaymentTypeConfig,
    ZeroDenominatorError,
)

ZERO = Decimal("0")

# Fixed precision for intermediate terms so results never depend on the
# caller's thread-local decimal context.
_CALC_CONTEXT = Context(prec=28, rounding=ROUND_HALF_EVEN)


class PayrollCalculator:
    """Derives gross, overtime/undertime and net pay for one employee/period.

    The calculator holds no mutable state and does no I/O. The same inputs
    always produce the same ``PayrollFigures``, including ``calculation_id``.

    Pipeline:
    1) Validate the attendance slice (period, duplicates, hours)
    2) Sum hours and present days over present records only
    3) Apply the payment-type formula to get unrounded gross
    4) Round gross once, half-to-even, to the currency minor unit
    5) Net = gross - advances - salary already paid
    """

    def __init__(
        self,
        money_quantum: Decimal = Decimal("0.01"),
        engine_version: str = "1.0.0",
    ):
        self.money_quantum = money_quantum
        self.engine_version = engine_version

    @classmethod
    def from_settings(cls, settings: Settings | None = None) -> PayrollCalculator:
        settings = settings or get_settings()
        return cls(money_quantum=settings.money_quantum, engine_version=settings.engine_version)

    def calculate(
        self,
        profile: EmployeeProfile,
        attendance: Iterable[AttendanceDay],
        period: PayPeriod,
        total_advances: Decimal = ZERO,
        total_already_paid: Decimal = ZERO,
    ) -> PayrollFigures:
        """Calculate figures for one employee.

        Raises:
            DuplicateAttendanceError: two records share a date
            AttendanceOutOfPeriodError: a record falls outside ``period``
            InvalidAttendanceError: negative hours
            InvalidPaymentTypeConfig: required salary/rate missing
            ZeroDenominatorError: fixed pay spread over zero hours
        """
        days = self._validate_attendance(profile.employee_id, attendance, period)

        if total_advances < 0 or total_already_paid < 0:
            raise InvalidPaymentAmountError("Advance and paid totals must be non-negative")

        present = [d for d in days if d.is_present]
        present_days = len(present)
        total_hours = sum((d.hours_worked for d in present), ZERO)

        with localcontext(_CALC_CONTEXT):
            pay = profile.pay
            if isinstance(pay, HourlyPay):
                terms = self._hourly_terms(pay, total_hours)
            elif isinstance(pay, FixedPay):
                terms = self._fixed_terms(pay, present_days, total_hours, profile.employee_id)
            else:
                raise InvalidPaymentTypeConfig(
                    str(getattr(pay, "payment_type", pay)), "pay configuration", profile.employee_id
                )

        advances = self.round_money(total_advances)
        already_paid = self.round_money(total_already_paid)
        gross = self.round_money(terms["gross"])
        net = gross - advances - already_paid

        inputs_fingerprint = self._compute_inputs_fingerprint(
            profile, days, period, advances, already_paid
        )
        calculation_id = self._generate_calculation_id(
            profile.employee_id, period, inputs_fingerprint
        )

        return PayrollFigures(
            employee_id=profile.employee_id,
            period=period,
            payment_type=profile.payment_type,
            present_days=present_days,
            total_days=period.total_days,
            total_hours=total_hours,
            expected_hours=terms["expected_hours"],
            overtime_hours=terms["overtime_hours"],
            undertime_hours=terms["undertime_hours"],
            derived_hourly_rate=terms["derived_hourly_rate"],
            base_salary=self.round_money(terms["base_salary"]),
            overtime_pay=self.round_money(terms["overtime_pay"]),
            undertime_deduction=self.round_money(terms["undertime_deduction"]),
            gross_amount=gross,
            advance_deducted=advances,
            already_paid=already_paid,
            net_amount=net,
            calculation_id=calculation_id,
            inputs_fingerprint=inputs_fingerprint,
        )

    def round_money(self, amount: Decimal) -> Decimal:
        """Round to the currency minor unit, half-to-even."""
        return Decimal(amount).quantize(self.money_quantum, rounding=ROUND_HALF_EVEN)

    # === Payment type formulas ===

    def _hourly_terms(self, pay: HourlyPay, total_hours: Decimal) -> dict[str, Any]:
        # No overtime concept: every hour is paid at the flat rate.
        gross = total_hours * pay.hourly_rate
        return {
            "expected_hours": ZERO,
            "overtime_hours": ZERO,
            "undertime_hours": ZERO,
            "derived_hourly_rate": None,
            "base_salary": gross,
            "overtime_pay": ZERO,
            "undertime_deduction": ZERO,
            "gross": gross,
        }

    def _fixed_terms(
        self,
        pay: FixedPay,
        present_days: int,
        total_hours: Decimal,
        employee_id: UUID,
    ) -> dict[str, Any]:
        if pay.basic_salary is None:
            raise InvalidPaymentTypeConfig(PaymentType.FIXED.value, "basic_salary", employee_id)

        contractual_hours = Decimal(pay.working_days_per_period) * pay.working_hours_per_day
        if contractual_hours == 0:
            raise ZeroDenominatorError(pay.working_days_per_period, pay.working_hours_per_day)

        rate = pay.basic_salary / contractual_hours
        # Expected hours count only the days actually marked present.
        expected_hours = present_days * pay.working_hours_per_day
        overtime_hours = max(ZERO, total_hours - expected_hours)
        undertime_hours = max(ZERO, expected_hours - total_hours)

        base_salary = total_hours * rate
        overtime_pay = overtime_hours * rate * pay.overtime_multiplier
        undertime_deduction = undertime_hours * rate

        return {
            "expected_hours": expected_hours,
            "overtime_hours": overtime_hours,
            "undertime_hours": undertime_hours,
            "derived_hourly_rate": rate.quantize(Decimal("0.0001"), rounding=ROUND_HALF_EVEN),
            "base_salary": base_salary,
            "overtime_pay": overtime_pay,
            "undertime_deduction": undertime_deduction,
            "gross": base_salary + overtime_pay - undertime_deduction,
        }

    # === Validation ===

    def _validate_attendance(
        self,
        employee_id: UUID,
        attendance: Iterable[AttendanceDay],
        period: PayPeriod,
    ) -> list[AttendanceDay]:
        seen: set = set()
        days: list[AttendanceDay] = []
        for day in attendance:
            if not period.contains(day.work_date):
                raise AttendanceOutOfPeriodError(day.work_date, period)
            if day.work_date in seen:
                raise DuplicateAttendanceError(employee_id, day.work_date)
            if day.hours_worked < 0:
                raise InvalidAttendanceError(
                    f"Negative hours ({day.hours_worked}) on {day.work_date}"
                )
            seen.add(day.work_date)
            days.append(day)
        return sorted(days, key=lambda d: d.work_date)

    # === Identity ===

    def _compute_inputs_fingerprint(
        self,
        profile: EmployeeProfile,
        days: list[AttendanceDay],
        period: PayPeriod,
        advances: Decimal,
        already_paid: Decimal,
    ) -> str:
        """Compute fingerprint of every input that affects the figures."""
        pay = profile.pay
        if isinstance(pay, FixedPay):
            pay_data = {
                "type": "fixed",
                "basic_salary": str(pay.basic_salary),
                "working_days_per_period": pay.working_days_per_period,
                "working_hours_per_day": str(pay.working_hours_per_day),
                "overtime_multiplier": str(pay.overtime_multiplier),
            }
        else:
            pay_data = {"type": "hourly", "hourly_rate": str(pay.hourly_rate)}

        data = {
            "period": str(period),
            "pay": pay_data,
            # Absent days with stray hours do not change the result
            "attendance": [
                [d.work_date.isoformat(), d.is_present, str(d.hours_worked) if d.is_present else "0"]
                for d in days
            ],
            "advances": str(advances),
            "already_paid": str(already_paid),
            "money_quantum": str(self.money_quantum),
        }
        json_str = json.dumps(data, sort_keys=True)
        return hashlib.sha256(json_str.encode()).hexdigest()[:32]

    def _generate_calculation_id(
        self,
        employee_id: UUID,
        period: PayPeriod,
        inputs_fingerprint: str,
    ) -> UUID:
        """Generate deterministic calculation ID."""
        data = {
            "employee_id": str(employee_id),
            "period": str(period),
            "engine_version": self.engine_version,
            "inputs_fingerprint": inputs_fingerprint,
        }
        json_str = json.dumps(data, sort_keys=True)
        hash_bytes = hashlib.sha256(json_str.encode()).digest()
        return UUID(bytes=hash_bytes[:16])
