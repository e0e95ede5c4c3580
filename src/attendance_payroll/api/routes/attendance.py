"""Attendance endpoints."""

from datetime import date
from typing import Annotated
from uuid import UUID

from fastapi import APIRouter, Path, Query

from attendance_payroll.api.dependencies import DbSession, TenantId
from attendance_payroll.api.schemas import (
    AttendanceMarkRequest,
    AttendanceResponse,
    ErrorResponse,
    MonthlySheetResponse,
    SheetRowResponse,
)
from attendance_payroll.calculators.types import PayPeriod
from attendance_payroll.services.attendance_service import AttendanceService

router = APIRouter(prefix="/attendance", tags=["attendance"])


@router.put(
    "/{employee_id}/{work_date}",
    response_model=AttendanceResponse,
    responses={
        404: {"model": ErrorResponse},
        409: {"model": ErrorResponse},
        422: {"model": ErrorResponse},
    },
)
async def mark_attendance(
    db: DbSession,
    tenant_id: TenantId,
    employee_id: Annotated[UUID, Path()],
    work_date: Annotated[date, Path()],
    payload: AttendanceMarkRequest,
) -> AttendanceResponse:
    """Mark one day; rejected with 409 once the month is paid."""
    record = await AttendanceService(db).mark(
        tenant_id,
        employee_id,
        work_date,
        is_present=payload.is_present,
        hours_worked=payload.hours_worked,
        notes=payload.notes,
    )
    await db.commit()
    return AttendanceResponse.model_validate(record)


@router.get(
    "/{period}/sheet",
    response_model=MonthlySheetResponse,
    responses={422: {"model": ErrorResponse}},
)
async def monthly_sheet(
    db: DbSession,
    tenant_id: TenantId,
    period: Annotated[str, Path(description="Billing month as YYYY-MM")],
    employee_id: Annotated[UUID | None, Query()] = None,
) -> MonthlySheetResponse:
    sheet = await AttendanceService(db).monthly_sheet(
        tenant_id, PayPeriod.parse(period), employee_id=employee_id
    )
    return MonthlySheetResponse(
        period=str(sheet.period),
        total_days=sheet.total_days,
        rows=[SheetRowResponse.model_validate(row) for row in sheet.rows],
    )
