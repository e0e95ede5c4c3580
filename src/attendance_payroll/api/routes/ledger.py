"""Ledger endpoints."""

from typing import Annotated
from uuid import UUID

from fastapi import APIRouter, Path, Query, Response, status

from attendance_payroll.api.dependencies import DbSession, TenantId
from attendance_payroll.api.schemas import (
    ErrorResponse,
    LedgerEntryCreate,
    LedgerEntryResponse,
    LedgerSummaryResponse,
)
from attendance_payroll.calculators.types import PayPeriod
from attendance_payroll.models import LedgerCategory
from attendance_payroll.services.ledger_service import LedgerService
from attendance_payroll.services.stores import PayrollSources

router = APIRouter(prefix="/ledger", tags=["ledger"])


@router.post(
    "/entries",
    response_model=LedgerEntryResponse,
    status_code=status.HTTP_201_CREATED,
    responses={404: {"model": ErrorResponse}, 422: {"model": ErrorResponse}},
)
async def post_entry(
    db: DbSession,
    tenant_id: TenantId,
    payload: LedgerEntryCreate,
    response: Response,
) -> LedgerEntryResponse:
    """Post a cash-out; a repeated idempotency key returns the original entry with 200."""
    await PayrollSources.for_session(db).employees.ensure_exists(tenant_id, payload.employee_id)
    result = await LedgerService(db).post_entry(
        tenant_id=tenant_id,
        employee_id=payload.employee_id,
        category=payload.category,
        amount=payload.amount,
        entry_date=payload.entry_date,
        payment_mode=payload.payment_mode,
        idempotency_key=payload.idempotency_key,
        description=payload.description,
    )
    await db.commit()
    if not result.is_new:
        response.status_code = status.HTTP_200_OK
    return LedgerEntryResponse.model_validate(result.entry)


@router.get(
    "/{period}/entries",
    response_model=list[LedgerEntryResponse],
    responses={422: {"model": ErrorResponse}},
)
async def list_entries(
    db: DbSession,
    tenant_id: TenantId,
    period: Annotated[str, Path(description="Billing month as YYYY-MM")],
    employee_id: Annotated[UUID | None, Query()] = None,
    category: Annotated[LedgerCategory | None, Query()] = None,
) -> list[LedgerEntryResponse]:
    """Cash-outs in the period, newest first."""
    entries = await LedgerService(db).list_entries(
        tenant_id, PayPeriod.parse(period), employee_id=employee_id, category=category
    )
    return [LedgerEntryResponse.model_validate(entry) for entry in entries]


@router.get(
    "/{period}/summary",
    response_model=LedgerSummaryResponse,
    responses={422: {"model": ErrorResponse}},
)
async def ledger_summary(
    db: DbSession,
    tenant_id: TenantId,
    period: Annotated[str, Path(description="Billing month as YYYY-MM")],
    employee_id: Annotated[UUID | None, Query()] = None,
) -> LedgerSummaryResponse:
    summary = await LedgerService(db).summary(
        tenant_id, PayPeriod.parse(period), employee_id=employee_id
    )
    return LedgerSummaryResponse(
        period=str(summary.period),
        total_salary=summary.total_salary,
        total_advances=summary.total_advances,
        salary_count=summary.salary_count,
        advance_count=summary.advance_count,
        total_paid=summary.total_paid,
    )
