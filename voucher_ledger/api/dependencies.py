"""
API dependencies - gateway wiring, session context and permission checks.
"""

import logging
from dataclasses import dataclass

from fastapi import Depends, Header, HTTPException, Request, status

from voucher_ledger.application.dto.voucher_dto import OperationResultDTO
from voucher_ledger.application.gateway import VoucherLedgerGateway
from voucher_ledger.application.lease_revenue import LeaseRevenuePostingGateway
from voucher_ledger.application.results import OperationResult
from voucher_ledger.core.config import Settings
from voucher_ledger.core.security import Permission, RBACService, UserRole
from voucher_ledger.domain.value_objects import SessionContext, VoucherType
from voucher_ledger.infrastructure.attachments import Base64AttachmentEncoder
from voucher_ledger.infrastructure.database import build_engine, build_session_factory, init_db
from voucher_ledger.infrastructure.ledger_store import (
    JOURNAL_VOUCHER_ENDPOINT,
    LEASE_REVENUE_POSTING_ENDPOINT,
    PAYMENT_VOUCHER_ENDPOINT,
    HttpLedgerStore,
    SqlLeaseRevenueStore,
    SqlLedgerStore,
)

logger = logging.getLogger(__name__)

rbac_service = RBACService()

STATUS_BY_ERROR_KIND = {
    "validation": status.HTTP_400_BAD_REQUEST,
    "protected": status.HTTP_409_CONFLICT,
    "not_found": status.HTTP_404_NOT_FOUND,
    "remote": status.HTTP_502_BAD_GATEWAY,
}


@dataclass
class Gateways:
    journal: VoucherLedgerGateway
    payment: VoucherLedgerGateway
    lease_revenue: LeaseRevenuePostingGateway

    def for_type(self, voucher_type: VoucherType) -> VoucherLedgerGateway:
        return self.journal if voucher_type is VoucherType.JOURNAL else self.payment


def build_gateways(settings: Settings) -> Gateways:
    encoder = Base64AttachmentEncoder()
    if settings.store_backend == "http":
        logger.info(f"Using remote ledger store at {settings.api_url}")

        def http_store(endpoint: str) -> HttpLedgerStore:
            return HttpLedgerStore(settings.api_url, endpoint, settings.api_token, settings.http_timeout)

        journal_store = http_store(JOURNAL_VOUCHER_ENDPOINT)
        payment_store = http_store(PAYMENT_VOUCHER_ENDPOINT)
        lease_store = http_store(LEASE_REVENUE_POSTING_ENDPOINT)
    elif settings.store_backend == "sql":
        logger.info("Using local SQL ledger store")
        engine = build_engine(settings.database_url)
        init_db(engine)
        session_factory = build_session_factory(engine)
        journal_store = SqlLedgerStore(session_factory, VoucherType.JOURNAL)
        payment_store = SqlLedgerStore(session_factory, VoucherType.PAYMENT)
        lease_store = SqlLeaseRevenueStore(session_factory)
    else:
        raise ValueError(f"Unsupported ledger store backend: {settings.store_backend}")

    return Gateways(
        journal=VoucherLedgerGateway(journal_store, VoucherType.JOURNAL, encoder=encoder),
        payment=VoucherLedgerGateway(payment_store, VoucherType.PAYMENT, encoder=encoder),
        lease_revenue=LeaseRevenuePostingGateway(lease_store),
    )


def get_gateways(request: Request) -> Gateways:
    return request.app.state.gateways


def get_lease_revenue_gateway(gateways: Gateways = Depends(get_gateways)) -> LeaseRevenuePostingGateway:
    return gateways.lease_revenue


def get_session_context(
    x_user_id: int = Header(..., description="Acting user id"),
    x_user_name: str = Header(..., description="Acting user name"),
    x_company_id: int | None = Header(None),
    x_user_role: str = Header(UserRole.VIEWER.value),
) -> SessionContext:
    return SessionContext(
        user_id=x_user_id,
        user_name=x_user_name,
        company_id=x_company_id,
        role=x_user_role.upper(),
    )


def require(permission: Permission):
    """Dependency factory - 403 unless the caller's role grants `permission`."""

    def check(ctx: SessionContext = Depends(get_session_context)) -> SessionContext:
        try:
            role = UserRole(ctx.role)
        except ValueError:
            raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail=f"Unknown role: {ctx.role}")
        if not rbac_service.has_permission(role, permission):
            raise HTTPException(
                status_code=status.HTTP_403_FORBIDDEN,
                detail=f"Role {role.value} lacks permission {permission.value}",
            )
        return ctx

    return check


def raise_for_result(result: OperationResult) -> None:
    if not result.success:
        raise HTTPException(
            status_code=STATUS_BY_ERROR_KIND.get(result.error_kind, status.HTTP_400_BAD_REQUEST),
            detail=OperationResultDTO.from_result(result).model_dump(mode="json"),
        )
