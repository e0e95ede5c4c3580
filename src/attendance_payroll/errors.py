"""Domain error taxonomy.

Every error carries a stable ``code`` and one of four categories so that
batch reports and the HTTP layer can tell "bad data" from "no data yet":

- configuration: the employee profile cannot be paid as declared
- state: the operation would break a salary record's lifecycle
- input: the request or its attendance slice is malformed
- not_found: the referenced entity does not exist
"""

from __future__ import annotations

from datetime import date
from typing import TYPE_CHECKING, Any
from uuid import UUID

if TYPE_CHECKING:
    from attendance_payroll.models import SalaryRecord


class ErrorCategory:
    CONFIGURATION = "configuration"
    STATE = "state"
    INPUT = "input"
    NOT_FOUND = "not_found"


class PayrollError(Exception):
    """Base class for all reconciliation errors."""

    code = "PAYROLL_ERROR"
    category = ErrorCategory.INPUT

    def to_dict(self) -> dict[str, Any]:
        return {"code": self.code, "category": self.category, "message": str(self)}


# ===== Configuration =====


class InvalidPaymentTypeConfig(PayrollError):
    """Raised when the rate or salary required by the payment type is missing."""

    code = "INVALID_PAYMENT_TYPE_CONFIG"
    category = ErrorCategory.CONFIGURATION

    def __init__(self, payment_type: str, missing_field: str, employee_id: UUID | None = None):
        self.payment_type = payment_type
        self.missing_field = missing_field
        self.employee_id = employee_id
        who = f"Employee {employee_id}" if employee_id else "Employee"
        super().__init__(
            f"{who} has payment type '{payment_type}' but no {missing_field}"
        )


class ZeroDenominatorError(PayrollError):
    """Raised when a fixed salary cannot be spread over zero contractual hours."""

    code = "ZERO_DENOMINATOR"
    category = ErrorCategory.CONFIGURATION

    def __init__(self, working_days: Any, working_hours: Any):
        self.working_days = working_days
        self.working_hours = working_hours
        super().__init__(
            f"Cannot derive hourly rate: {working_days} working days x "
            f"{working_hours} hours per day is zero"
        )


# ===== State =====


class RecordAlreadyPaidError(PayrollError):
    """Raised when a paid salary record would be recomputed."""

    code = "RECORD_ALREADY_PAID"
    category = ErrorCategory.STATE

    def __init__(self, record: SalaryRecord):
        self.record = record
        super().__init__(
            f"Salary record {record.salary_record_id} for {record.period_label} "
            "is already paid"
        )


class InvalidStateTransitionError(PayrollError):
    """Raised when an invalid status transition is attempted."""

    code = "INVALID_STATE_TRANSITION"
    category = ErrorCategory.STATE

    def __init__(self, from_status: str, to_status: str, reason: str | None = None):
        self.from_status = from_status
        self.to_status = to_status
        self.reason = reason
        msg = f"Invalid transition from '{from_status}' to '{to_status}'"
        if reason:
            msg += f": {reason}"
        super().__init__(msg)


class AttendanceLockedError(PayrollError):
    """Raised when attendance is edited inside a paid-out period."""

    code = "ATTENDANCE_LOCKED"
    category = ErrorCategory.STATE

    def __init__(self, employee_id: UUID, work_date: date):
        self.employee_id = employee_id
        self.work_date = work_date
        super().__init__(
            f"Attendance for employee {employee_id} on {work_date} is frozen: "
            "the period has been paid"
        )


class UnbackedPaymentError(PayrollError):
    """Raised when a record would be marked paid without any salary cash-out."""

    code = "UNBACKED_PAYMENT"
    category = ErrorCategory.STATE


# ===== Input =====


class DuplicateAttendanceError(PayrollError):
    """Raised when the attendance slice has two records for one day."""

    code = "DUPLICATE_ATTENDANCE"
    category = ErrorCategory.INPUT

    def __init__(self, employee_id: UUID | None, work_date: date):
        self.employee_id = employee_id
        self.work_date = work_date
        super().__init__(f"Duplicate attendance for employee {employee_id} on {work_date}")


class AttendanceOutOfPeriodError(PayrollError):
    """Raised when the attendance slice contains a day outside the period."""

    code = "ATTENDANCE_OUT_OF_PERIOD"
    category = ErrorCategory.INPUT

    def __init__(self, work_date: date, period: Any):
        self.work_date = work_date
        self.period = period
        super().__init__(f"Attendance on {work_date} is outside period {period}")


class InvalidAttendanceError(PayrollError):
    code = "INVALID_ATTENDANCE"
    category = ErrorCategory.INPUT


class InvalidPaymentAmountError(PayrollError):
    code = "INVALID_PAYMENT_AMOUNT"
    category = ErrorCategory.INPUT


class InvalidPeriodError(PayrollError):
    code = "INVALID_PERIOD"
    category = ErrorCategory.INPUT


class InvalidLedgerEntryError(PayrollError):
    code = "INVALID_LEDGER_ENTRY"
    category = ErrorCategory.INPUT


# ===== Not found =====


class NotFoundError(PayrollError):
    code = "NOT_FOUND"
    category = ErrorCategory.NOT_FOUND


class EmployeeNotFoundError(NotFoundError):
    code = "EMPLOYEE_NOT_FOUND"

    def __init__(self, employee_id: UUID):
        self.employee_id = employee_id
        super().__init__(f"Employee {employee_id} not found")


class SalaryRecordNotFoundError(NotFoundError):
    code = "SALARY_RECORD_NOT_FOUND"

    def __init__(self, record_id: UUID):
        self.record_id = record_id
        super().__init__(f"Salary record {record_id} not found")
