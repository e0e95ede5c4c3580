"""Payroll calculation engine."""

from attendance_payroll.calculators.engine import PayrollCalculator
from attendance_payroll.calculators.types import (
    AttendanceDay,
    EmployeeProfile,
    FixedPay,
    HourlyPay,
    NetStatus,
    PayConfig,
    PayPeriod,
    PaymentType,
    PayrollFigures,
    build_pay_config,
)

__all__ = [
    "AttendanceDay",
    "EmployeeProfile",
    "FixedPay",
    "HourlyPay",
    "NetStatus",
    "PayConfig",
    "PayPeriod",
    "PaymentType",
    "PayrollCalculator",
    "PayrollFigures",
    "build_pay_config",
]
