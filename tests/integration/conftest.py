"""Integration test fixtures backed by a temporary SQLite database."""

from __future__ import annotations

from collections.abc import AsyncGenerator, Awaitable, Callable
from datetime import date, timedelta
from decimal import Decimal
from typing import Any
from uuid import UUID

import pytest_asyncio
from httpx import ASGITransport, AsyncClient
from sqlalchemy.ext.asyncio import AsyncEngine, AsyncSession, async_sessionmaker

from attendance_payroll.api.app import create_app
from attendance_payroll.api.dependencies import get_reconciliation_service, get_session_factory
from attendance_payroll.config import Settings
from attendance_payroll.database import create_schema, get_engine, make_session_factory
from attendance_payroll.models import (
    AttendanceRecord,
    Employee,
    LedgerEntry,
    Tenant,
)
from attendance_payroll.services.reconciliation_service import ReconciliationService

EmployeeFactory = Callable[..., Awaitable[Employee]]


@pytest_asyncio.fixture
async def settings(tmp_path) -> Settings:
    # One worker: SQLite serializes writers across connections
    return Settings(
        database_url=f"sqlite+aiosqlite:///{tmp_path / 'payroll.db'}",
        engine_version="test",
        host="127.0.0.1",
        port=8000,
        debug=False,
        batch_concurrency=1,
    )


@pytest_asyncio.fixture
async def engine(settings: Settings) -> AsyncGenerator[AsyncEngine, None]:
    """Create test database engine with the schema in place."""
    engine = get_engine(settings.database_url)
    await create_schema(engine)
    yield engine
    await engine.dispose()


@pytest_asyncio.fixture
async def session_factory(engine: AsyncEngine) -> async_sessionmaker[AsyncSession]:
    return make_session_factory(engine)


@pytest_asyncio.fixture
async def session(
    session_factory: async_sessionmaker[AsyncSession],
) -> AsyncGenerator[AsyncSession, None]:
    """Session for seeding and assertions; seed helpers commit."""
    async with session_factory() as session:
        yield session
        await session.rollback()


@pytest_asyncio.fixture
async def service(
    session_factory: async_sessionmaker[AsyncSession], settings: Settings
) -> ReconciliationService:
    return ReconciliationService(session_factory, settings=settings)


@pytest_asyncio.fixture
async def tenant(session: AsyncSession) -> Tenant:
    tenant = Tenant(name="Sharma Traders", status="active")
    session.add(tenant)
    await session.commit()
    return tenant


@pytest_asyncio.fixture
async def other_tenant(session: AsyncSession) -> Tenant:
    tenant = Tenant(name="Other Company", status="active")
    session.add(tenant)
    await session.commit()
    return tenant


@pytest_asyncio.fixture
async def make_employee(session: AsyncSession, tenant: Tenant) -> EmployeeFactory:
    """Factory creating committed employees; fixed 26000 by default."""
    counter = 0

    async def _make(**overrides: Any) -> Employee:
        nonlocal counter
        counter += 1
        values: dict[str, Any] = {
            "tenant_id": tenant.tenant_id,
            "employee_code": f"EMP-{counter:03d}",
            "name": f"Employee {counter}",
            "payment_type": "fixed",
            "basic_salary": Decimal("26000"),
            "hourly_rate": None,
        }
        values.update(overrides)
        employee = Employee(**values)
        session.add(employee)
        await session.commit()
        return employee

    return _make


@pytest_asyncio.fixture
async def add_attendance(session: AsyncSession):
    """Insert consecutive present days directly, bypassing the freeze check."""

    async def _add(employee: Employee, start: date, hours: list[str]) -> None:
        for i, h in enumerate(hours):
            session.add(
                AttendanceRecord(
                    tenant_id=employee.tenant_id,
                    employee_id=employee.employee_id,
                    work_date=start + timedelta(days=i),
                    is_present=True,
                    hours_worked=Decimal(h),
                )
            )
        await session.commit()

    return _add


@pytest_asyncio.fixture
async def add_ledger(session: AsyncSession):
    """Insert a ledger entry directly."""

    async def _add(
        employee: Employee, category: str, amount: str, entry_date: date, key: str
    ) -> LedgerEntry:
        entry = LedgerEntry(
            tenant_id=employee.tenant_id,
            employee_id=employee.employee_id,
            category=category,
            amount=Decimal(amount),
            entry_date=entry_date,
            payment_mode="Cash",
            idempotency_key=key,
        )
        session.add(entry)
        await session.commit()
        return entry

    return _add


@pytest_asyncio.fixture
async def client(
    session_factory: async_sessionmaker[AsyncSession], settings: Settings
) -> AsyncGenerator[AsyncClient, None]:
    """HTTP client against the app with the test database injected."""
    app = create_app()
    app.dependency_overrides[get_session_factory] = lambda: session_factory
    app.dependency_overrides[get_reconciliation_service] = lambda: ReconciliationService(
        session_factory, settings=settings
    )

    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://test") as ac:
        yield ac


def tenant_headers(tenant_id: UUID) -> dict[str, str]:
    return {"X-Tenant-ID": str(tenant_id)}
