"""Daily attendance model."""

from __future__ import annotations

from datetime import date, datetime
from decimal import Decimal
from typing import TYPE_CHECKING
from uuid import UUID, uuid4

from sqlalchemy import (
    Boolean,
    CheckConstraint,
    Date,
    DateTime,
    ForeignKey,
    Numeric,
    String,
    UniqueConstraint,
)
from sqlalchemy.orm import Mapped, mapped_column, relationship

from attendance_payroll.calculators.types import AttendanceDay
from attendance_payroll.models.base import Base, TimestampMixin

if TYPE_CHECKING:
    from attendance_payroll.models.employee import Employee


class AttendanceRecord(Base, TimestampMixin):
    """One employee's presence and hours for one calendar day."""

    __tablename__ = "attendance_record"

    attendance_record_id: Mapped[UUID] = mapped_column(primary_key=True, default=uuid4)
    tenant_id: Mapped[UUID] = mapped_column(
        ForeignKey("tenant.tenant_id", ondelete="CASCADE"),
        nullable=False,
    )
    employee_id: Mapped[UUID] = mapped_column(
        ForeignKey("employee.employee_id", ondelete="CASCADE"),
        nullable=False,
    )
    work_date: Mapped[date] = mapped_column(Date, nullable=False)
    is_present: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    hours_worked: Mapped[Decimal] = mapped_column(
        Numeric(5, 2), nullable=False, default=Decimal("0")
    )
    notes: Mapped[str | None] = mapped_column(String, nullable=True)

    # Set when the owning period is paid out
    locked_by_salary_record_id: Mapped[UUID | None] = mapped_column(
        ForeignKey("salary_record.salary_record_id"),
        nullable=True,
    )
    locked_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)

    __table_args__ = (
        UniqueConstraint("employee_id", "work_date", name="attendance_employee_date_unique"),
        CheckConstraint(
            "hours_worked >= 0 AND hours_worked <= 24",
            name="attendance_hours_check",
        ),
    )

    employee: Mapped[Employee] = relationship(back_populates="attendance")

    @property
    def is_locked(self) -> bool:
        return self.locked_by_salary_record_id is not None

    def to_day(self) -> AttendanceDay:
        return AttendanceDay(
            work_date=self.work_date,
            is_present=self.is_present,
            hours_worked=self.hours_worked,
        )
