"""Salary record state machine with transition validation."""

from __future__ import annotations

from enum import Enum

from attendance_payroll.errors import InvalidStateTransitionError


class SalaryRecordStatus(str, Enum):
    """Salary record status values."""

    COMPUTED = "computed"
    PAID = "paid"


class SalaryRecordStateMachine:
    """State machine for salary record status transitions.

    Allowed transitions:
    - computed → paid

    There is no way back from paid. Corrections before payment are done by
    recomputing the computed record, never by editing a paid one.
    """

    VALID_TRANSITIONS: dict[str, list[str]] = {
        SalaryRecordStatus.COMPUTED: [SalaryRecordStatus.PAID],
        SalaryRecordStatus.PAID: [],  # Terminal state
    }

    # Statuses where recalculation may overwrite the stored figures
    CALCULATION_ALLOWED = {SalaryRecordStatus.COMPUTED}

    @classmethod
    def can_transition(cls, from_status: str, to_status: str) -> bool:
        """Check if a transition is valid."""
        allowed = cls.VALID_TRANSITIONS.get(from_status, [])
        return to_status in allowed

    @classmethod
    def validate_transition(cls, from_status: str, to_status: str) -> None:
        """Validate a transition, raising InvalidStateTransitionError if invalid."""
        if not cls.can_transition(from_status, to_status):
            raise InvalidStateTransitionError(from_status, to_status)

    @classmethod
    def can_calculate(cls, status: str) -> bool:
        """Check if recomputation is allowed in this status."""
        return status in cls.CALCULATION_ALLOWED
