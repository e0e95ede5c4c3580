"""Cash ledger entries for employee payouts."""

from __future__ import annotations

from datetime import date
from decimal import Decimal
from enum import Enum
from uuid import UUID, uuid4

from sqlalchemy import CheckConstraint, Date, ForeignKey, Index, Numeric, String, UniqueConstraint
from sqlalchemy.orm import Mapped, mapped_column

from attendance_payroll.config import MONEY_SCALE
from attendance_payroll.models.base import Base, TimestampMixin


class LedgerCategory(str, Enum):
    """Cash-out categories relevant to payroll."""

    SALARY = "Salary"
    ADVANCE = "Advance"


class PaymentMode(str, Enum):
    CASH = "Cash"
    BANK_TRANSFER = "Bank Transfer"
    ONLINE = "Online"


class LedgerEntry(Base, TimestampMixin):
    """Append-only cash movement paid out to an employee.

    ``idempotency_key`` is unique per tenant so a retried payment request
    returns the original entry instead of posting twice.
    """

    __tablename__ = "ledger_entry"

    ledger_entry_id: Mapped[UUID] = mapped_column(primary_key=True, default=uuid4)
    tenant_id: Mapped[UUID] = mapped_column(
        ForeignKey("tenant.tenant_id", ondelete="CASCADE"),
        nullable=False,
    )
    employee_id: Mapped[UUID] = mapped_column(
        ForeignKey("employee.employee_id", ondelete="CASCADE"),
        nullable=False,
    )
    category: Mapped[str] = mapped_column(String, nullable=False)
    amount: Mapped[Decimal] = mapped_column(Numeric(14, MONEY_SCALE), nullable=False)
    entry_date: Mapped[date] = mapped_column(Date, nullable=False)
    payment_mode: Mapped[str] = mapped_column(String, nullable=False, default="Cash")
    description: Mapped[str | None] = mapped_column(String, nullable=True)
    idempotency_key: Mapped[str] = mapped_column(String, nullable=False)

    __table_args__ = (
        UniqueConstraint("tenant_id", "idempotency_key", name="ledger_tenant_idempotency_unique"),
        CheckConstraint("amount > 0", name="ledger_amount_positive"),
        CheckConstraint("category IN ('Salary', 'Advance')", name="ledger_category_check"),
        CheckConstraint(
            "payment_mode IN ('Cash', 'Bank Transfer', 'Online')",
            name="ledger_payment_mode_check",
        ),
        Index("ledger_employee_date_idx", "tenant_id", "employee_id", "entry_date"),
    )
