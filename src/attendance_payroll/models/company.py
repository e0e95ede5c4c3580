"""Tenant model."""

from __future__ import annotations

from typing import TYPE_CHECKING
from uuid import UUID, uuid4

from sqlalchemy import CheckConstraint, String
from sqlalchemy.orm import Mapped, mapped_column, relationship

from attendance_payroll.models.base import Base, TimestampMixin

if TYPE_CHECKING:
    from attendance_payroll.models.employee import Employee


class Tenant(Base, TimestampMixin):
    """Company owning employees, attendance, ledger and salary records."""

    __tablename__ = "tenant"

    tenant_id: Mapped[UUID] = mapped_column(primary_key=True, default=uuid4)
    name: Mapped[str] = mapped_column(String, nullable=False)
    status: Mapped[str] = mapped_column(String, nullable=False, default="active")

    __table_args__ = (
        CheckConstraint("status IN ('active', 'inactive')", name="tenant_status_check"),
    )

    employees: Mapped[list[Employee]] = relationship(back_populates="tenant")
