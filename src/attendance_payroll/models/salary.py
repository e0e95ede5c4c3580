"""Salary record model."""

from __future__ import annotations

from datetime import datetime
from decimal import Decimal
from uuid import UUID, uuid4

from sqlalchemy import (
    CheckConstraint,
    DateTime,
    ForeignKey,
    Integer,
    Numeric,
    String,
    UniqueConstraint,
)
from sqlalchemy.orm import Mapped, mapped_column

from attendance_payroll.calculators.types import PayPeriod
from attendance_payroll.config import MONEY_SCALE
from attendance_payroll.models.base import Base, TimestampMixin


class SalaryRecord(Base, TimestampMixin):
    """Computed salary for one employee and one monthly period.

    The natural key ``(tenant_id, employee_id, period_year, period_month)`` is
    unique. Financial fields are only ever written from a fresh calculation and
    are immutable once ``status`` is ``paid``.
    """

    __tablename__ = "salary_record"

    salary_record_id: Mapped[UUID] = mapped_column(primary_key=True, default=uuid4)
    tenant_id: Mapped[UUID] = mapped_column(
        ForeignKey("tenant.tenant_id", ondelete="CASCADE"),
        nullable=False,
    )
    employee_id: Mapped[UUID] = mapped_column(
        ForeignKey("employee.employee_id", ondelete="CASCADE"),
        nullable=False,
    )
    period_year: Mapped[int] = mapped_column(Integer, nullable=False)
    period_month: Mapped[int] = mapped_column(Integer, nullable=False)
    payment_type: Mapped[str] = mapped_column(String, nullable=False)

    gross_amount: Mapped[Decimal] = mapped_column(Numeric(14, MONEY_SCALE), nullable=False)
    advance_deducted: Mapped[Decimal] = mapped_column(Numeric(14, MONEY_SCALE), nullable=False)
    other_deductions: Mapped[Decimal] = mapped_column(Numeric(14, MONEY_SCALE), nullable=False)
    net_amount: Mapped[Decimal] = mapped_column(Numeric(14, MONEY_SCALE), nullable=False)

    present_days: Mapped[int] = mapped_column(Integer, nullable=False)
    total_days: Mapped[int] = mapped_column(Integer, nullable=False)
    total_hours: Mapped[Decimal] = mapped_column(Numeric(10, 2), nullable=False)
    overtime_hours: Mapped[Decimal] = mapped_column(Numeric(10, 2), nullable=False)
    undertime_hours: Mapped[Decimal] = mapped_column(Numeric(10, 2), nullable=False)

    status: Mapped[str] = mapped_column(String, nullable=False, default="computed")
    calculation_id: Mapped[UUID] = mapped_column(nullable=False)
    inputs_fingerprint: Mapped[str] = mapped_column(String, nullable=False)
    computed_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False)
    paid_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)

    __table_args__ = (
        UniqueConstraint(
            "tenant_id",
            "employee_id",
            "period_year",
            "period_month",
            name="salary_record_natural_key",
        ),
        CheckConstraint("status IN ('computed', 'paid')", name="salary_record_status_check"),
        CheckConstraint("period_month BETWEEN 1 AND 12", name="salary_record_month_check"),
        CheckConstraint(
            "(status = 'paid') = (paid_at IS NOT NULL)",
            name="salary_record_paid_at_check",
        ),
    )

    @property
    def period(self) -> PayPeriod:
        return PayPeriod(self.period_year, self.period_month)

    @property
    def period_label(self) -> str:
        return str(self.period)

    @property
    def is_paid(self) -> bool:
        return self.status == "paid"
