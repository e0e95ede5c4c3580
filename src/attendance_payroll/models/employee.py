"""Employee profile model."""

from __future__ import annotations

from datetime import date
from decimal import Decimal
from typing import TYPE_CHECKING
from uuid import UUID, uuid4

from sqlalchemy import (
    Boolean,
    CheckConstraint,
    Date,
    ForeignKey,
    Integer,
    Numeric,
    String,
    UniqueConstraint,
)
from sqlalchemy.orm import Mapped, mapped_column, relationship

from attendance_payroll.calculators.types import EmployeeProfile, build_pay_config
from attendance_payroll.config import MONEY_SCALE
from attendance_payroll.models.base import Base, TimestampMixin

if TYPE_CHECKING:
    from attendance_payroll.models.attendance import AttendanceRecord
    from attendance_payroll.models.company import Tenant


class Employee(Base, TimestampMixin):
    """Employee record with payment configuration.

    ``basic_salary`` and ``hourly_rate`` are both nullable columns; which one is
    authoritative depends on ``payment_type``. The row is turned into a typed
    ``EmployeeProfile`` before any calculation runs.
    """

    __tablename__ = "employee"

    employee_id: Mapped[UUID] = mapped_column(primary_key=True, default=uuid4)
    tenant_id: Mapped[UUID] = mapped_column(
        ForeignKey("tenant.tenant_id", ondelete="CASCADE"),
        nullable=False,
    )
    employee_code: Mapped[str] = mapped_column(String, nullable=False)
    name: Mapped[str] = mapped_column(String, nullable=False)
    phone: Mapped[str | None] = mapped_column(String, nullable=True)
    payment_type: Mapped[str] = mapped_column(String, nullable=False)
    basic_salary: Mapped[Decimal | None] = mapped_column(Numeric(14, MONEY_SCALE), nullable=True)
    hourly_rate: Mapped[Decimal | None] = mapped_column(Numeric(14, MONEY_SCALE), nullable=True)
    working_days_per_period: Mapped[int] = mapped_column(Integer, nullable=False, default=26)
    working_hours_per_day: Mapped[Decimal] = mapped_column(
        Numeric(5, 2), nullable=False, default=Decimal("8")
    )
    overtime_multiplier: Mapped[Decimal] = mapped_column(
        Numeric(5, 2), nullable=False, default=Decimal("1.5")
    )
    is_active: Mapped[bool] = mapped_column(Boolean, nullable=False, default=True)
    join_date: Mapped[date | None] = mapped_column(Date, nullable=True)

    __table_args__ = (
        UniqueConstraint("tenant_id", "employee_code", name="employee_tenant_code_unique"),
        CheckConstraint(
            "payment_type IN ('fixed', 'hourly')",
            name="employee_payment_type_check",
        ),
        CheckConstraint(
            "basic_salary IS NULL OR basic_salary >= 0",
            name="employee_basic_salary_check",
        ),
        CheckConstraint(
            "hourly_rate IS NULL OR hourly_rate >= 0",
            name="employee_hourly_rate_check",
        ),
        CheckConstraint(
            "working_days_per_period BETWEEN 1 AND 31",
            name="employee_working_days_check",
        ),
        CheckConstraint(
            "working_hours_per_day > 0 AND working_hours_per_day <= 24",
            name="employee_working_hours_check",
        ),
        CheckConstraint("overtime_multiplier >= 1", name="employee_overtime_multiplier_check"),
    )

    # Relationships
    tenant: Mapped[Tenant] = relationship(back_populates="employees")
    attendance: Mapped[list[AttendanceRecord]] = relationship(back_populates="employee")

    def to_profile(self) -> EmployeeProfile:
        """Build the typed profile, raising InvalidPaymentTypeConfig on bad config."""
        pay = build_pay_config(
            payment_type=self.payment_type,
            basic_salary=self.basic_salary,
            hourly_rate=self.hourly_rate,
            working_days_per_period=self.working_days_per_period,
            working_hours_per_day=self.working_hours_per_day,
            overtime_multiplier=self.overtime_multiplier,
            employee_id=self.employee_id,
        )
        return EmployeeProfile(
            employee_id=self.employee_id,
            tenant_id=self.tenant_id,
            name=self.name,
            employee_code=self.employee_code,
            pay=pay,
        )
