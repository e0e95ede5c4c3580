"""ORM models."""

from attendance_payroll.models.attendance import AttendanceRecord
from attendance_payroll.models.base import Base, TimestampMixin
from attendance_payroll.models.company import Tenant
from attendance_payroll.models.employee import Employee
from attendance_payroll.models.ledger import LedgerCategory, LedgerEntry, PaymentMode
from attendance_payroll.models.salary import SalaryRecord

__all__ = [
    "AttendanceRecord",
    "Base",
    "Employee",
    "LedgerCategory",
    "LedgerEntry",
    "PaymentMode",
    "SalaryRecord",
    "Tenant",
    "TimestampMixin",
]
