"""Payroll computation, payment and payslip endpoints."""

from typing import Annotated
from uuid import UUID

from fastapi import APIRouter, Path, status

from attendance_payroll.api.dependencies import Reconciliation, TenantId
from attendance_payroll.api.schemas import (
    BatchResponse,
    ComputeRequest,
    DueResponse,
    EmployeeErrorResponse,
    EmployeeResultResponse,
    ErrorResponse,
    FiguresResponse,
    PaymentRequest,
    PayslipResponse,
    SalaryRecordResponse,
)
from attendance_payroll.calculators.types import PayPeriod, PayrollFigures
from attendance_payroll.services.reconciliation_service import BatchResult

router = APIRouter(tags=["payroll"])

PeriodParam = Annotated[str, Path(description="Billing month as YYYY-MM")]


def _figures_response(figures: PayrollFigures) -> FiguresResponse:
    return FiguresResponse.model_validate(figures.to_dict())


def _batch_response(batch: BatchResult) -> BatchResponse:
    results = [
        EmployeeResultResponse(
            employee_id=outcome.employee_id,
            salary_record_id=outcome.salary_record_id,
            status=outcome.status,
            changed=outcome.changed,
            figures=_figures_response(outcome.figures) if outcome.figures else None,
        )
        for outcome in batch.results.values()
        if outcome.success
    ]
    errors = [
        EmployeeErrorResponse(employee_id=employee_id, **error)
        for employee_id, error in batch.errors.items()
    ]
    return BatchResponse(
        period=str(batch.period),
        results=results,
        errors=errors,
        skipped=batch.skipped,
        cancelled=batch.cancelled,
        total_net=batch.total_net,
    )


# ============================================================================
# Computation
# ============================================================================


@router.post(
    "/payroll/{period}/compute",
    response_model=BatchResponse,
    responses={404: {"model": ErrorResponse}, 422: {"model": ErrorResponse}},
)
async def compute_period(
    service: Reconciliation,
    tenant_id: TenantId,
    period: PeriodParam,
    payload: ComputeRequest | None = None,
) -> BatchResponse:
    """Compute salary records for one employee or all active employees.

    Per-employee failures are reported in ``errors``; they never fail the
    request.
    """
    employee_id = payload.employee_id if payload else None
    batch = await service.compute_for_period(
        tenant_id, PayPeriod.parse(period), employee_id=employee_id
    )
    return _batch_response(batch)


@router.get(
    "/payroll/{period}/employees/{employee_id}/due",
    response_model=DueResponse,
    responses={404: {"model": ErrorResponse}, 422: {"model": ErrorResponse}},
)
async def get_due(
    service: Reconciliation,
    tenant_id: TenantId,
    period: PeriodParam,
    employee_id: Annotated[UUID, Path()],
) -> DueResponse:
    """Current salary record, or an unpersisted preview."""
    view = await service.get_due(tenant_id, employee_id, PayPeriod.parse(period))
    if view.is_preview:
        return DueResponse(source=view.source, preview=_figures_response(view.figures))
    return DueResponse(
        source=view.source,
        record=SalaryRecordResponse.model_validate(view.record),
    )


# ============================================================================
# Payment
# ============================================================================


@router.post(
    "/payroll/{period}/employees/{employee_id}/payments",
    response_model=SalaryRecordResponse,
    status_code=status.HTTP_201_CREATED,
    responses={
        404: {"model": ErrorResponse},
        409: {"model": ErrorResponse},
        422: {"model": ErrorResponse},
    },
)
async def record_payment(
    service: Reconciliation,
    tenant_id: TenantId,
    period: PeriodParam,
    employee_id: Annotated[UUID, Path()],
    payload: PaymentRequest,
) -> SalaryRecordResponse:
    """Post a salary payment and return the refreshed record."""
    record = await service.record_payment(
        tenant_id,
        employee_id,
        PayPeriod.parse(period),
        payload.amount,
        payload.mode,
        idempotency_key=payload.idempotency_key,
        payment_date=payload.payment_date,
        mark_paid=payload.mark_paid,
    )
    return SalaryRecordResponse.model_validate(record)


@router.post(
    "/salary-records/{record_id}/mark-paid",
    response_model=SalaryRecordResponse,
    responses={404: {"model": ErrorResponse}, 409: {"model": ErrorResponse}},
)
async def mark_paid(
    service: Reconciliation,
    tenant_id: TenantId,
    record_id: Annotated[UUID, Path()],
) -> SalaryRecordResponse:
    """Transition a computed record to paid."""
    record = await service.mark_paid(tenant_id, record_id)
    return SalaryRecordResponse.model_validate(record)


@router.get(
    "/salary-records/{record_id}/payslip",
    response_model=PayslipResponse,
    responses={404: {"model": ErrorResponse}},
)
async def get_payslip(
    service: Reconciliation,
    tenant_id: TenantId,
    record_id: Annotated[UUID, Path()],
) -> PayslipResponse:
    payslip = await service.generate_payslip(tenant_id, record_id)
    return PayslipResponse.model_validate(payslip)
