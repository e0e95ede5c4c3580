"""Tests for periods, pay configuration and settings."""

from datetime import date
from decimal import Decimal
from uuid import uuid4

import pytest

from attendance_payroll.calculators import (
    FixedPay,
    HourlyPay,
    PayPeriod,
    PaymentType,
    build_pay_config,
)
from attendance_payroll.config import MONEY_SCALE, Settings
from attendance_payroll.errors import InvalidPaymentTypeConfig, InvalidPeriodError
from attendance_payroll.services.stores import to_money


class TestPayPeriod:
    def test_parse_and_format(self):
        period = PayPeriod.parse("2024-06")
        assert (period.year, period.month) == (2024, 6)
        assert str(period) == "2024-06"

    def test_bounds(self):
        period = PayPeriod(2024, 2)
        assert period.start == date(2024, 2, 1)
        assert period.end == date(2024, 2, 29)
        assert period.total_days == 29
        assert period.contains(date(2024, 2, 29))
        assert not period.contains(date(2024, 3, 1))

    def test_containing(self):
        assert PayPeriod.containing(date(2023, 12, 31)) == PayPeriod(2023, 12)

    @pytest.mark.parametrize("value", ["2024-13", "2024-00", "June", "2024/06", ""])
    def test_invalid(self, value):
        with pytest.raises(InvalidPeriodError):
            PayPeriod.parse(value)

    def test_ordering(self):
        assert PayPeriod(2023, 12) < PayPeriod(2024, 1)


class TestBuildPayConfig:
    def test_fixed_reads_only_basic_salary(self):
        pay = build_pay_config(
            payment_type="fixed", basic_salary=Decimal("26000"), hourly_rate=Decimal("99")
        )
        assert isinstance(pay, FixedPay)
        assert pay.payment_type == PaymentType.FIXED
        assert not hasattr(pay, "hourly_rate")

    def test_hourly_reads_only_rate(self):
        pay = build_pay_config(
            payment_type="hourly", basic_salary=Decimal("26000"), hourly_rate=Decimal("100")
        )
        assert isinstance(pay, HourlyPay)
        assert pay.hourly_rate == Decimal("100")

    def test_hourly_without_rate(self):
        employee_id = uuid4()
        with pytest.raises(InvalidPaymentTypeConfig) as exc_info:
            build_pay_config(
                payment_type="hourly",
                basic_salary=Decimal("26000"),
                hourly_rate=None,
                employee_id=employee_id,
            )
        assert exc_info.value.missing_field == "hourly_rate"
        assert exc_info.value.employee_id == employee_id

    def test_unknown_payment_type(self):
        with pytest.raises(InvalidPaymentTypeConfig):
            build_pay_config(payment_type="piecework", basic_salary=None, hourly_rate=None)

    def test_fixed_defaults_fill_nulls(self):
        pay = build_pay_config(payment_type="fixed", basic_salary=Decimal("1"), hourly_rate=None)
        assert pay.working_days_per_period == 26
        assert pay.working_hours_per_day == Decimal("8")


class TestSettings:
    def test_from_env(self, monkeypatch):
        monkeypatch.setenv("DATABASE_URL", "sqlite+aiosqlite:///x.db")
        monkeypatch.setenv("CURRENCY_MINOR_UNITS", "0")
        monkeypatch.setenv("BATCH_CONCURRENCY", "3")
        monkeypatch.setenv("LOG_LEVEL", "debug")

        settings = Settings.from_env()

        assert settings.database_url == "sqlite+aiosqlite:///x.db"
        assert settings.money_quantum == Decimal("1")
        assert settings.batch_concurrency == 3
        assert settings.log_level == "DEBUG"

    def test_minor_units_limited_to_column_scale(self):
        with pytest.raises(ValueError, match="cannot exceed"):
            Settings(
                database_url="sqlite+aiosqlite://",
                engine_version="1",
                host="localhost",
                port=8000,
                debug=False,
                currency_minor_units=MONEY_SCALE + 1,
            )

    def test_to_money_matches_column_scale(self):
        assert to_money(None) == Decimal("0")
        assert to_money(12.5).as_tuple().exponent == -MONEY_SCALE
        assert to_money(Decimal("0.125")) == Decimal("0.12")

    def test_rejects_zero_concurrency(self):
        with pytest.raises(ValueError):
            Settings(
                database_url="sqlite+aiosqlite://",
                engine_version="1",
                host="localhost",
                port=8000,
                debug=False,
                batch_concurrency=0,
            )
