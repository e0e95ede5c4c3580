"""Attendance payroll services."""

from attendance_payroll.services.attendance_service import AttendanceService
from attendance_payroll.services.ledger_service import LedgerService, LedgerSummary, PostResult
from attendance_payroll.services.locking_service import LockingService
from attendance_payroll.services.reconciliation_service import (
    BatchResult,
    DueView,
    EmployeeOutcome,
    ReconciliationService,
)
from attendance_payroll.services.salary_record_service import (
    PayslipSnapshot,
    SalaryRecordLifecycle,
    UpsertResult,
)
from attendance_payroll.services.state_machine import SalaryRecordStateMachine, SalaryRecordStatus

__all__ = [
    "AttendanceService",
    "BatchResult",
    "DueView",
    "EmployeeOutcome",
    "LedgerService",
    "LedgerSummary",
    "LockingService",
    "PayslipSnapshot",
    "PostResult",
    "ReconciliationService",
    "SalaryRecordLifecycle",
    "SalaryRecordStateMachine",
    "SalaryRecordStatus",
    "UpsertResult",
]
