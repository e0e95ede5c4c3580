"""Pydantic schemas for API request/response models."""

from datetime import date, datetime
from decimal import Decimal
from typing import Any
from uuid import UUID

from pydantic import BaseModel, ConfigDict, Field


class ErrorResponse(BaseModel):
    """Error body returned for domain errors."""

    detail: str
    code: str


# ============================================================================
# Figures and salary records
# ============================================================================


class FiguresResponse(BaseModel):
    """Calculated figures for one employee and period."""

    employee_id: UUID
    period: str
    payment_type: str
    present_days: int
    absent_days: int
    total_days: int
    attendance_percentage: Decimal
    total_hours: Decimal
    expected_hours: Decimal
    overtime_hours: Decimal
    undertime_hours: Decimal
    derived_hourly_rate: Decimal | None = None
    base_salary: Decimal
    overtime_pay: Decimal
    undertime_deduction: Decimal
    gross_amount: Decimal
    advance_deducted: Decimal
    already_paid: Decimal
    net_amount: Decimal
    net_status: str
    calculation_id: UUID


class SalaryRecordResponse(BaseModel):
    """Stored salary record."""

    model_config = ConfigDict(from_attributes=True)

    salary_record_id: UUID
    tenant_id: UUID
    employee_id: UUID
    period_label: str
    payment_type: str
    status: str
    gross_amount: Decimal
    advance_deducted: Decimal
    other_deductions: Decimal
    net_amount: Decimal
    present_days: int
    total_days: int
    total_hours: Decimal
    overtime_hours: Decimal
    undertime_hours: Decimal
    calculation_id: UUID
    computed_at: datetime
    paid_at: datetime | None = None


class ComputeRequest(BaseModel):
    """Compute one employee, or every active employee when omitted."""

    employee_id: UUID | None = None


class EmployeeErrorResponse(BaseModel):
    employee_id: UUID
    code: str
    category: str
    message: str


class EmployeeResultResponse(BaseModel):
    employee_id: UUID
    salary_record_id: UUID | None = None
    status: str | None = None
    changed: bool = False
    figures: FiguresResponse | None = None


class BatchResponse(BaseModel):
    """Partial-success report of a computation."""

    period: str
    results: list[EmployeeResultResponse]
    errors: list[EmployeeErrorResponse]
    skipped: list[UUID] = Field(default_factory=list)
    cancelled: bool = False
    total_net: Decimal


class DueResponse(BaseModel):
    """Stored record, or a preview when nothing has been computed yet."""

    source: str
    record: SalaryRecordResponse | None = None
    preview: FiguresResponse | None = None


class PaymentRequest(BaseModel):
    """Salary payment to record against a period."""

    amount: Decimal
    mode: str = "Cash"
    idempotency_key: str | None = Field(default=None, max_length=255)
    payment_date: date | None = None
    mark_paid: bool = False


class PayslipResponse(BaseModel):
    """Payslip snapshot; provisional until the record is paid."""

    model_config = ConfigDict(from_attributes=True)

    salary_record_id: UUID
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
    paid_at: datetime | None = None
    generated_at: datetime


# ============================================================================
# Attendance
# ============================================================================


class AttendanceMarkRequest(BaseModel):
    is_present: bool
    hours_worked: Decimal = Decimal("0")
    notes: str | None = None


class AttendanceResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    attendance_record_id: UUID
    employee_id: UUID
    work_date: date
    is_present: bool
    hours_worked: Decimal
    notes: str | None = None
    is_locked: bool


class SheetDay(BaseModel):
    is_present: bool
    hours_worked: Decimal


class SheetRowResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    employee_id: UUID
    employee_code: str
    name: str
    days: dict[int, SheetDay]
    present_days: int
    absent_days: int
    total_hours: Decimal
    due: dict[str, Any] | None = None
    error: dict[str, Any] | None = None


class MonthlySheetResponse(BaseModel):
    period: str
    total_days: int
    rows: list[SheetRowResponse]


# ============================================================================
# Ledger
# ============================================================================


class LedgerEntryCreate(BaseModel):
    """Cash-out to post; advances are recorded through this."""

    employee_id: UUID
    category: str
    amount: Decimal
    entry_date: date
    payment_mode: str = "Cash"
    idempotency_key: str | None = Field(default=None, max_length=255)
    description: str | None = None


class LedgerEntryResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    ledger_entry_id: UUID
    employee_id: UUID
    category: str
    amount: Decimal
    entry_date: date
    payment_mode: str
    idempotency_key: str
    description: str | None = None


class LedgerSummaryResponse(BaseModel):
    period: str
    total_salary: Decimal
    total_advances: Decimal
    salary_count: int
    advance_count: int
    total_paid: Decimal
