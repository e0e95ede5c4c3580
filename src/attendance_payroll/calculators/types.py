"""Type definitions for the payroll calculation pipeline."""

from __future__ import annotations

import calendar
from dataclasses import dataclass
from datetime import date
from decimal import Decimal
from enum import Enum
from typing import Any, Union
from uuid import UUID

from attendance_payroll.errors import InvalidPaymentTypeConfig, InvalidPeriodError


class PaymentType(str, Enum):
    """How an employee's pay is derived."""

    FIXED = "fixed"
    HOURLY = "hourly"


class NetStatus(str, Enum):
    """Sign of the net amount."""

    DUE = "due"  # still owed to the employee
    SETTLED = "settled"
    EXCESS = "excess"  # employer has overpaid; informational only

    @classmethod
    def of(cls, amount: Decimal) -> NetStatus:
        if amount > 0:
            return cls.DUE
        if amount < 0:
            return cls.EXCESS
        return cls.SETTLED


@dataclass(frozen=True, order=True)
class PayPeriod:
    """A calendar month used as the billing period."""

    year: int
    month: int

    def __post_init__(self) -> None:
        if not 1 <= self.month <= 12:
            raise InvalidPeriodError(f"Month must be between 1 and 12, got {self.month}")
        if not 1 <= self.year <= 9999:
            raise InvalidPeriodError(f"Year out of range: {self.year}")

    @classmethod
    def parse(cls, value: str) -> PayPeriod:
        """Parse 'YYYY-MM'."""
        try:
            year_str, month_str = value.strip().split("-")
            return cls(int(year_str), int(month_str))
        except ValueError as e:
            raise InvalidPeriodError(f"Invalid period '{value}', expected YYYY-MM") from e

    @classmethod
    def containing(cls, day: date) -> PayPeriod:
        return cls(day.year, day.month)

    @property
    def start(self) -> date:
        return date(self.year, self.month, 1)

    @property
    def end(self) -> date:
        return date(self.year, self.month, self.total_days)

    @property
    def total_days(self) -> int:
        return calendar.monthrange(self.year, self.month)[1]

    def contains(self, day: date) -> bool:
        return self.start <= day <= self.end

    def __str__(self) -> str:
        return f"{self.year:04d}-{self.month:02d}"


# ===== Pay configuration (tagged union) =====


@dataclass(frozen=True)
class FixedPay:
    """Monthly salary spread over the contractual days x hours."""

    basic_salary: Decimal
    working_days_per_period: int = 26
    working_hours_per_day: Decimal = Decimal("8")
    overtime_multiplier: Decimal = Decimal("1.5")

    payment_type = PaymentType.FIXED


@dataclass(frozen=True)
class HourlyPay:
    """Every worked hour paid at a flat rate."""

    hourly_rate: Decimal

    payment_type = PaymentType.HOURLY


PayConfig = Union[FixedPay, HourlyPay]


def build_pay_config(
    *,
    payment_type: str | PaymentType,
    basic_salary: Decimal | None,
    hourly_rate: Decimal | None,
    working_days_per_period: int | None = None,
    working_hours_per_day: Decimal | None = None,
    overtime_multiplier: Decimal | None = None,
    employee_id: UUID | None = None,
) -> PayConfig:
    """Build the pay configuration authoritative for ``payment_type``.

    Only the field matching the payment type is read; the other one is
    ignored even when present.

    Raises:
        InvalidPaymentTypeConfig: if the required field is missing or the
            payment type is unknown.
    """
    try:
        kind = PaymentType(payment_type)
    except ValueError as e:
        raise InvalidPaymentTypeConfig(str(payment_type), "known payment type", employee_id) from e

    if kind == PaymentType.HOURLY:
        if hourly_rate is None:
            raise InvalidPaymentTypeConfig(kind.value, "hourly_rate", employee_id)
        return HourlyPay(hourly_rate=Decimal(hourly_rate))

    if basic_salary is None:
        raise InvalidPaymentTypeConfig(kind.value, "basic_salary", employee_id)
    return FixedPay(
        basic_salary=Decimal(basic_salary),
        working_days_per_period=26 if working_days_per_period is None else working_days_per_period,
        working_hours_per_day=(
            Decimal("8") if working_hours_per_day is None else Decimal(working_hours_per_day)
        ),
        overtime_multiplier=(
            Decimal("1.5") if overtime_multiplier is None else Decimal(overtime_multiplier)
        ),
    )


@dataclass(frozen=True)
class EmployeeProfile:
    """Identity plus pay configuration of one employee."""

    employee_id: UUID
    tenant_id: UUID
    name: str
    employee_code: str
    pay: PayConfig

    @property
    def payment_type(self) -> PaymentType:
        return self.pay.payment_type


@dataclass(frozen=True)
class AttendanceDay:
    """One day of attendance as seen by the calculator."""

    work_date: date
    is_present: bool
    hours_worked: Decimal = Decimal("0")


@dataclass(frozen=True)
class PayrollFigures:
    """Result of calculating one employee's pay for one period.

    Monetary fields are rounded to the currency's minor unit. ``gross_amount``
    is rounded once from the unrounded terms; the component fields
    (``base_salary``, ``overtime_pay``, ``undertime_deduction``) are rounded
    for display and need not add up to the gross exactly.
    """

    employee_id: UUID
    period: PayPeriod
    payment_type: PaymentType

    # Attendance
    present_days: int
    total_days: int
    total_hours: Decimal
    expected_hours: Decimal
    overtime_hours: Decimal
    undertime_hours: Decimal

    # Earnings
    derived_hourly_rate: Decimal | None
    base_salary: Decimal
    overtime_pay: Decimal
    undertime_deduction: Decimal
    gross_amount: Decimal

    # Reconciliation
    advance_deducted: Decimal
    already_paid: Decimal
    net_amount: Decimal

    calculation_id: UUID
    inputs_fingerprint: str

    @property
    def absent_days(self) -> int:
        return self.total_days - self.present_days

    @property
    def attendance_percentage(self) -> Decimal:
        if self.total_days == 0:
            return Decimal("0.0")
        return (Decimal(self.present_days) * 100 / self.total_days).quantize(Decimal("0.1"))

    @property
    def net_status(self) -> NetStatus:
        return NetStatus.of(self.net_amount)

    def to_dict(self) -> dict[str, Any]:
        return {
            "employee_id": str(self.employee_id),
            "period": str(self.period),
            "payment_type": self.payment_type.value,
            "present_days": self.present_days,
            "absent_days": self.absent_days,
            "total_days": self.total_days,
            "attendance_percentage": str(self.attendance_percentage),
            "total_hours": str(self.total_hours),
            "expected_hours": str(self.expected_hours),
            "overtime_hours": str(self.overtime_hours),
            "undertime_hours": str(self.undertime_hours),
            "derived_hourly_rate": (
                str(self.derived_hourly_rate) if self.derived_hourly_rate is not None else None
            ),
            "base_salary": str(self.base_salary),
            "overtime_pay": str(self.overtime_pay),
            "undertime_deduction": str(self.undertime_deduction),
            "gross_amount": str(self.gross_amount),
            "advance_deducted": str(self.advance_deducted),
            "already_paid": str(self.already_paid),
            "net_amount": str(self.net_amount),
            "net_status": self.net_status.value,
            "calculation_id": str(self.calculation_id),
        }
