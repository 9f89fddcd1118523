"""
Main FastAPI application - Voucher Ledger Gateway.
"""

import logging
from collections.abc import AsyncGenerator
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from voucher_ledger.api.dependencies import Gateways, build_gateways
from voucher_ledger.api.routers import lease_revenue, reports, vouchers
from voucher_ledger.core.config import Settings
from voucher_ledger.core.logging_config import configure_logging

logger = logging.getLogger(__name__)

VERSION = "0.1.0"


def create_app(settings: Settings | None = None, gateways: Gateways | None = None) -> FastAPI:
    settings = settings or Settings.from_env()

    @asynccontextmanager
    async def lifespan(app: FastAPI) -> AsyncGenerator:
        """Application lifespan - startup and shutdown events."""
        configure_logging(settings.log_level)
        if getattr(app.state, "gateways", None) is None:
            app.state.gateways = build_gateways(settings)
        logger.info(f"Voucher ledger gateway started (store backend: {settings.store_backend})")
        yield

    app = FastAPI(
        title="Voucher Ledger Gateway API",
        description="""
## Voucher Ledger Gateway

### Features:
- **Journal & payment vouchers**: create, edit, submit, approve/reject, reverse
- **Double entry**: debits must equal credits (tolerance 0.01)
- **Approval workflow**: Draft → Pending → Posted / Rejected, reset approval
- **Lease revenue posting**: bulk posting of lease invoices and receipts
- **Reports**: trial balance, account balance

### Rules:
- Approved vouchers are immutable until their approval is reset
- Reversal creates a new linked voucher; history is never rewritten
        """,
        version=VERSION,
        lifespan=lifespan,
    )
    app.state.settings = settings
    app.state.gateways = gateways

    app.add_middleware(
        CORSMiddleware,
        allow_origins=["*"],
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    app.include_router(vouchers.journal_router)
    app.include_router(vouchers.payment_router)
    app.include_router(lease_revenue.router)
    app.include_router(reports.router)

    @app.get("/")
    def root():
        return {
            "name": "Voucher Ledger Gateway API",
            "version": VERSION,
            "store_backend": settings.store_backend,
            "docs": "/docs",
        }

    @app.get("/health")
    def health_check():
        """Health check endpoint."""
        return {"status": "healthy", "store_backend": settings.store_backend}

    @app.exception_handler(ValueError)
    async def value_error_handler(request: Request, exc: ValueError):
        """Handle validation errors."""
        return JSONResponse(status_code=400, content={"detail": str(exc)})

    return app


app = create_app()


if __name__ == "__main__":
    import uvicorn

    uvicorn.run(app, host="0.0.0.0", port=8000)
