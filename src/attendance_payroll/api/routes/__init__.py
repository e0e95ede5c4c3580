"""API routes."""

from attendance_payroll.api.routes.attendance import router as attendance_router
from attendance_payroll.api.routes.health import router as health_router
from attendance_payroll.api.routes.ledger import router as ledger_router
from attendance_payroll.api.routes.payroll import router as payroll_router

__all__ = ["attendance_router", "health_router", "ledger_router", "payroll_router"]
