"""FastAPI application factory."""

import logging
from collections.abc import AsyncGenerator
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request, status
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from attendance_payroll import __version__
from attendance_payroll.api.routes import (
    attendance_router,
    health_router,
    ledger_router,
    payroll_router,
)
from attendance_payroll.config import get_settings
from attendance_payroll.database import create_schema, dispose_db, init_db
from attendance_payroll.errors import ErrorCategory, PayrollError

logger = logging.getLogger(__name__)

STATUS_BY_CATEGORY = {
    ErrorCategory.NOT_FOUND: status.HTTP_404_NOT_FOUND,
    ErrorCategory.INPUT: status.HTTP_422_UNPROCESSABLE_ENTITY,
    ErrorCategory.CONFIGURATION: status.HTTP_422_UNPROCESSABLE_ENTITY,
    ErrorCategory.STATE: status.HTTP_409_CONFLICT,
}


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
    """Application lifespan handler."""
    settings = get_settings()
    logging.basicConfig(
        level=settings.log_level,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )
    engine, _ = init_db()
    await create_schema(engine)
    logger.info("Attendance payroll API started (engine %s)", settings.engine_version)
    yield
    await dispose_db()


def create_app() -> FastAPI:
    """Create and configure the FastAPI application."""
    app = FastAPI(
        title="Attendance Payroll API",
        description="Attendance-to-payroll reconciliation engine",
        version=__version__,
        lifespan=lifespan,
    )

    app.add_middleware(
        CORSMiddleware,
        allow_origins=["*"],
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    @app.exception_handler(PayrollError)
    async def payroll_error_handler(request: Request, exc: PayrollError) -> JSONResponse:
        """Map domain errors to HTTP codes by category."""
        return JSONResponse(
            status_code=STATUS_BY_CATEGORY.get(exc.category, status.HTTP_400_BAD_REQUEST),
            content={"detail": str(exc), "code": exc.code},
        )

    @app.exception_handler(Exception)
    async def general_exception_handler(
        request: Request, exc: Exception
    ) -> JSONResponse:
        """Handle unexpected exceptions."""
        logger.exception("Unhandled error on %s %s", request.method, request.url.path)
        return JSONResponse(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            content={
                "detail": "An unexpected error occurred",
                "code": "INTERNAL_ERROR",
            },
        )

    app.include_router(health_router)
    app.include_router(payroll_router, prefix="/api/v1")
    app.include_router(attendance_router, prefix="/api/v1")
    app.include_router(ledger_router, prefix="/api/v1")

    return app


# Default app instance for uvicorn
app = create_app()
