"""Pytest fixtures for attendance payroll tests."""

from __future__ import annotations

from decimal import Decimal

import pytest

from attendance_payroll.calculators import PayPeriod, PayrollCalculator
from tests.factories import JUNE_2024


@pytest.fixture
def calculator() -> PayrollCalculator:
    return PayrollCalculator(money_quantum=Decimal("0.01"), engine_version="test")


@pytest.fixture
def period() -> PayPeriod:
    return JUNE_2024
